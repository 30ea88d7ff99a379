"""create draw_records and store_counters

Revision ID: 0001
Revises:
Create Date: 2026-10-17 09:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "draw_records",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            autoincrement=False,
            nullable=False,
        ),
        sa.Column("lottery_type", sa.String(length=50), nullable=False),
        sa.Column("draw", sa.JSON(), nullable=False),
        sa.Column("guesses", sa.JSON(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draw_records")),
    )
    op.create_index(
        "ix_draw_records_type_id", "draw_records", ["lottery_type", "id"], unique=False
    )
    op.create_index("ix_draw_records_score", "draw_records", ["score"], unique=False)

    op.create_table(
        "store_counters",
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("value", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("key", name=op.f("pk_store_counters")),
    )


def downgrade() -> None:
    op.drop_table("store_counters")
    op.drop_index("ix_draw_records_score", table_name="draw_records")
    op.drop_index("ix_draw_records_type_id", table_name="draw_records")
    op.drop_table("draw_records")
