from __future__ import annotations

import argparse
import logging
import signal
import threading
from typing import Optional

from lotterysim.config import Settings
from lotterysim.coordinator import TickCoordinator
from lotterysim.db.engine import get_sessionmaker, make_engine
from lotterysim.lottery import DEFAULT_LOTTERY_REGISTRY
from lotterysim.logging_config import configure_logging
from lotterysim.publish import DrawPublisher, WebhookPublisher
from lotterysim.reports import prize_summary
from lotterysim.store import RecordStore

logger = logging.getLogger("lotterysim.run_draws")


def build_store(settings: Settings) -> RecordStore:
    engine = make_engine(settings.db_url)
    return RecordStore(
        get_sessionmaker(engine),
        registry=DEFAULT_LOTTERY_REGISTRY,
        max_retries=settings.store_max_retries,
        reset_grace_seconds=settings.reset_grace_seconds,
        reset_batch_size=settings.reset_batch_size,
    )


def main() -> int:
    """Run the draw loop against the configured database."""
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("--ticks", type=int, default=None, help="Stop after N iterations")
    parser.add_argument("--reset", action="store_true", help="Wipe all draws and exit")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    store = build_store(settings)
    store.initialize()

    if args.reset:
        removed = store.reset()
        print(f"Removed {removed} draw(s)")
        return 0

    # A reset interrupted mid-way would otherwise stall every worker.
    store.recover_maintenance(max_age_seconds=settings.reset_grace_seconds * 10)

    publisher: Optional[DrawPublisher] = None
    if settings.webhook_url:
        publisher = WebhookPublisher(settings.webhook_url)

    coordinator = TickCoordinator(
        store,
        DEFAULT_LOTTERY_REGISTRY,
        publisher=publisher,
        interval_seconds=settings.tick_interval_seconds,
        pause_seconds=settings.jackpot_pause_seconds,
        strict=settings.strict,
    )

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    try:
        ticks = coordinator.run_forever(stop, max_ticks=args.ticks)
    except KeyboardInterrupt:
        ticks = None
    summary = prize_summary(store)
    logger.info(
        f"Stopped after {ticks if ticks is not None else 'interrupt'} tick(s); "
        f"{summary.wins} win(s) worth {summary.total_prizes}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
