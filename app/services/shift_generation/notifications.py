"""
Event publishing for generation runs.
Delivery is best-effort: failures are logged, never raised to the caller.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Optional

import httpx

from app.core.config import settings

from .types import ShiftsGeneratedEvent


logger = logging.getLogger(__name__)


def event_to_json(event: ShiftsGeneratedEvent) -> dict[str, Any]:
    payload = asdict(event)
    for key, value in payload.items():
        if isinstance(value, (date, datetime)):
            payload[key] = value.isoformat()
    return payload


class EventPublisher(ABC):
    """Abstract base for event sinks."""

    @abstractmethod
    def publish(self, event: ShiftsGeneratedEvent) -> bool:
        """Send the event. Returns True if it was delivered."""
        ...


class NullEventPublisher(EventPublisher):
    """Used when no webhook is configured."""

    def publish(self, event: ShiftsGeneratedEvent) -> bool:
        logger.debug(
            f"No event sink configured, dropping ShiftsGenerated event "
            f"({event.status}, {event.shifts_created_count} created)"
        )
        return False


class WebhookEventPublisher(EventPublisher):
    """POSTs events as JSON to a webhook."""

    def __init__(self, url: str, timeout: Optional[float] = None):
        self.url = url
        self.timeout = timeout if timeout is not None else settings.SHIFT_EVENTS_TIMEOUT_SECONDS

    def publish(self, event: ShiftsGeneratedEvent) -> bool:
        try:
            response = httpx.post(
                self.url,
                json={"type": "ShiftsGenerated", "data": event_to_json(event)},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return True
        except httpx.HTTPStatusError as e:
            logger.error(f"Event webhook HTTP error: {e.response.status_code} - {e.response.text}")
        except httpx.HTTPError as e:
            logger.error(f"Event webhook error: {e}")
        return False


def get_event_publisher() -> EventPublisher:
    """Factory for the configured event publisher."""
    if settings.SHIFT_EVENTS_WEBHOOK_URL:
        return WebhookEventPublisher(settings.SHIFT_EVENTS_WEBHOOK_URL)
    return NullEventPublisher()
