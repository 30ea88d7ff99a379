"""Delivery of committed draws to subscribers outside the core."""

from __future__ import annotations

import logging
import os
from typing import Callable, Mapping, Optional, Sequence

import requests
from dotenv import load_dotenv

from .models import DrawRecord

logger = logging.getLogger(__name__)

Subscriber = Callable[[DrawRecord], None]


class DrawPublisher:
    """Receives each batch of records committed by one tick."""

    def publish(self, records: Sequence[DrawRecord]) -> None:
        raise NotImplementedError


class FanOutPublisher(DrawPublisher):
    """Push every record to a set of in-process subscribers.

    A subscriber that raises is logged and skipped; the others still receive
    the record.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, records: Sequence[DrawRecord]) -> None:
        for subscriber in list(self._subscribers):
            for record in records:
                try:
                    subscriber(record)
                except Exception:
                    logger.exception(f"Subscriber {subscriber!r} failed on draw {record.id}")


class WebhookPublisher(DrawPublisher):
    """POST each committed record as JSON to an HTTP endpoint."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        load_dotenv()
        target = url or os.getenv("WEBHOOK_URL")
        if not target:
            raise ValueError("Environment variable 'WEBHOOK_URL' is not set")
        self.url = target
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/json", **(headers or {})}

    def publish(self, records: Sequence[DrawRecord]) -> None:
        for record in records:
            r = self.session.post(
                self.url,
                json=record.to_json(),
                headers=self.headers,
                timeout=self.timeout,
            )
            r.raise_for_status()
            logger.debug(f"Delivered draw {record.id} to webhook")


__all__ = ["DrawPublisher", "FanOutPublisher", "Subscriber", "WebhookPublisher"]
