"""Booking-created events.

Subscribers run in-process, after the booking transaction has committed.
A failing subscriber is retried, then logged; it never fails the booking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.orm import Session

from bookingpro.core.structured_logging import build_log_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingCreated:
    booking_id: int
    session_id: str | None
    booking_data: dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[Session, BookingCreated], None]


class EventBus:
    """Synchronous publish/subscribe for BookingCreated."""

    def __init__(self, retries: int = 0):
        self.retries = max(0, retries)
        self._subscribers: list[Subscriber] = []

    def subscribe(self, handler: Subscriber) -> Subscriber:
        if handler not in self._subscribers:
            self._subscribers.append(handler)
        return handler

    def unsubscribe(self, handler: Subscriber) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    @property
    def subscribers(self) -> tuple[Subscriber, ...]:
        return tuple(self._subscribers)

    def publish(self, db: Session, event: BookingCreated) -> int:
        """Deliver to every subscriber. Returns the number that succeeded."""
        delivered = 0
        for handler in list(self._subscribers):
            if self._deliver(db, handler, event):
                delivered += 1
        return delivered

    def _deliver(self, db: Session, handler: Subscriber, event: BookingCreated) -> bool:
        name = getattr(handler, "__name__", repr(handler))
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                handler(db, event)
                return True
            except Exception as exc:
                # Leave the session usable for the next attempt / subscriber
                db.rollback()
                context = build_log_context(
                    session_id=event.session_id,
                    booking_id=event.booking_id,
                    action="booking_created",
                )
                if attempt < attempts:
                    logger.warning(
                        "Booking event handler %s failed (attempt %s/%s), retrying",
                        name,
                        attempt,
                        attempts,
                        extra=context,
                    )
                    continue
                logger.error(
                    "Booking event handler %s failed: %s",
                    name,
                    type(exc).__name__,
                    exc_info=exc,
                    extra=context,
                )
        return False
