"""Load the public event detail shown above the presence wizard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Union

from ..errors import ApiError, ApiNetworkError, ApiNotFoundError, ConfigurationError
from ..models import Event
from ..utils.localization import t


class PublicEventSource(Protocol):
    """Anything that can fetch the raw public event document."""

    async def get_public_event(self, event_id: str) -> Any:
        """Return the JSON:API document for ``event_id``."""


@dataclass(frozen=True)
class EventLoaded:
    event: Event


@dataclass(frozen=True)
class EventNotFound:
    message: str


@dataclass(frozen=True)
class EventLoadFailed:
    message: str


EventPageState = Union[EventLoaded, EventNotFound, EventLoadFailed]


class EventLoader:
    """One read per call; every failure becomes a terminal page state."""

    def __init__(self, source: PublicEventSource, logger: logging.Logger | None = None) -> None:
        self._source = source
        self._logger = logger or logging.getLogger("presence_confirm.event_loader")

    async def load(self, event_id: str) -> EventPageState:
        if not event_id:
            return EventNotFound(t("event_not_found", "Event not found"))
        try:
            document = await self._source.get_public_event(event_id)
        except ApiNotFoundError:
            self._logger.info("Event %s not found", event_id)
            return EventNotFound(t("event_not_found", "Event not found"))
        except ApiError as exc:
            self._logger.warning("Event %s failed to load: HTTP %s", event_id, exc.status)
            return EventLoadFailed(
                t("event_load_failed_status", "Failed to fetch event: {status}", status=exc.status)
            )
        except ApiNetworkError as exc:
            self._logger.warning("Event %s failed to load: %s", event_id, exc)
            return EventLoadFailed(t("event_load_failed", "Failed to load event"))
        except ConfigurationError as exc:
            self._logger.error("Event %s cannot be loaded: %s", event_id, exc)
            return EventLoadFailed(str(exc))

        try:
            event = Event.from_jsonapi(document or {})
        except ValueError as exc:
            self._logger.warning("Event %s payload rejected: %s", event_id, exc)
            return EventLoadFailed(t("event_load_failed", "Failed to load event"))

        self._logger.info("Loaded event %s (%s)", event.id or event_id, event.name)
        return EventLoaded(event)


__all__ = [
    "PublicEventSource",
    "EventLoaded",
    "EventNotFound",
    "EventLoadFailed",
    "EventPageState",
    "EventLoader",
]
