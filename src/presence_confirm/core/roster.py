"""Admin view of an event: detail with presence link, and the participant roster."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Protocol, Tuple

from ..errors import ApiError, ApiNetworkError, PresenceError
from ..models import Event, Participant
from ..utils.localization import t

logger = logging.getLogger("presence_confirm.roster")

DEFAULT_PER_PAGE = 20


class AdminEndpoint(Protocol):
    base_url: str

    async def get_admin_event(self, event_id: str) -> Any:
        ...

    async def list_event_participants(
        self, event_id: str, *, per_page: int, page: Optional[int] = None
    ) -> Any:
        ...


def absolute_presence_url(base_url: str, presence_url: Optional[str]) -> Optional[str]:
    if not presence_url:
        return None
    if presence_url.startswith(("http://", "https://")):
        return presence_url
    return f"{base_url.rstrip('/')}/{presence_url.lstrip('/')}"


def _included_names(included: Any, resource_type: str) -> Tuple[str, ...]:
    names = []
    for item in included or []:
        if isinstance(item, Mapping) and item.get("type") == resource_type:
            attributes = item.get("attributes") or {}
            names.append(str(attributes.get("name") or item.get("id") or ""))
    return tuple(names)


@dataclass(frozen=True)
class EventAdminDetail:
    event: Event
    courses: Tuple[str, ...] = ()
    class_rooms: Tuple[str, ...] = ()
    presence_url: Optional[str] = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any], base_url: str) -> "EventAdminDetail":
        meta = document.get("meta") or {}
        return cls(
            event=Event.from_jsonapi(document),
            courses=_included_names(document.get("included"), "course"),
            class_rooms=_included_names(document.get("included"), "class_rooms"),
            presence_url=absolute_presence_url(base_url, meta.get("presence_url")),
        )


async def load_event_detail(api: AdminEndpoint, event_id: str) -> EventAdminDetail:
    document = await api.get_admin_event(event_id)
    try:
        if not isinstance(document, Mapping):
            raise ValueError("Event payload must be a JSON object")
        return EventAdminDetail.from_document(document, api.base_url)
    except ValueError as exc:
        logger.warning("Admin event %s payload rejected: %s", event_id, exc)
        raise PresenceError(t("event_load_failed", "Failed to load event")) from exc


def _participants(document: Any) -> List[Participant]:
    rows = document.get("data") if isinstance(document, Mapping) else None
    return [Participant.from_resource(row) for row in rows or [] if isinstance(row, Mapping)]


@dataclass
class ParticipantRoster:
    """Paged participant list sorted by student name."""

    api: AdminEndpoint
    event_id: str
    per_page: int = DEFAULT_PER_PAGE
    participants: List[Participant] = field(default_factory=list)
    page: int = 0
    has_more: bool = True

    def __post_init__(self) -> None:
        if self.per_page < 1:
            raise ValueError("per_page must be at least 1")

    async def load_first(self) -> List[Participant]:
        try:
            document = await self.api.list_event_participants(
                self.event_id, per_page=self.per_page, page=1
            )
        except (ApiError, ApiNetworkError) as exc:
            # Older backends reject ``page``; fall back to an unpaged request.
            logger.info("Paged participant request failed (%s); retrying without page", exc)
            document = await self.api.list_event_participants(self.event_id, per_page=self.per_page)
        rows = _participants(document)
        self.participants = rows
        self.page = 1
        self.has_more = len(rows) == self.per_page
        return rows

    async def load_more(self) -> List[Participant]:
        if self.page == 0:
            return await self.load_first()
        if not self.has_more:
            return []
        next_page = self.page + 1
        document = await self.api.list_event_participants(
            self.event_id, per_page=self.per_page, page=next_page
        )
        rows = _participants(document)
        self.participants.extend(rows)
        self.page = next_page
        self.has_more = len(rows) == self.per_page
        return rows

    @property
    def present_count(self) -> int:
        return sum(1 for participant in self.participants if participant.present)


__all__ = [
    "AdminEndpoint",
    "EventAdminDetail",
    "ParticipantRoster",
    "absolute_presence_url",
    "load_event_detail",
]
