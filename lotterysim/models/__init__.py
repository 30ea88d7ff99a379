from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .draw import DrawRecord  # noqa: F401
from .counter import StoreCounter  # noqa: F401

__all__ = [
    "Base",
    "DrawRecord",
    "StoreCounter",
]
