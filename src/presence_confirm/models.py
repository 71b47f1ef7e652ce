"""Value objects exchanged between the API layer and the presence flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .utils.formatting import format_location


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 timestamp from the backend into an aware datetime."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Timestamp must be a non-empty ISO-8601 string")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class EventLocation:
    """Address-like record the backend stores for an event (reverse geocoded)."""

    amenity: Optional[str] = None
    road: Optional[str] = None
    town: Optional[str] = None
    state: Optional[str] = None
    region: Optional[str] = None
    municipality: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "EventLocation":
        if not isinstance(payload, Mapping):
            return cls()
        known = {name: payload.get(name) for name in cls.__dataclass_fields__}
        return cls(**{k: (str(v) if v is not None else None) for k, v in known.items()})


@dataclass(frozen=True)
class Event:
    """Read-only projection of the public event detail."""

    id: str
    name: str
    description: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: EventLocation = field(default_factory=EventLocation)
    location_optional: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def location_validation_enabled(self) -> bool:
        """Whether the backend rejects confirmations made outside the geofence."""
        return not self.location_optional

    @property
    def location_description(self) -> str:
        return format_location(self.location)

    @classmethod
    def from_jsonapi(cls, document: Mapping[str, Any]) -> "Event":
        """Build an event from a JSON:API ``{"data": {...}}`` document or resource."""
        resource = document.get("data", document) if isinstance(document, Mapping) else None
        if not isinstance(resource, Mapping):
            raise ValueError("Event payload must be a JSON object")
        attributes = resource.get("attributes")
        if not isinstance(attributes, Mapping):
            raise ValueError("Event payload is missing 'attributes'")
        if "name" not in attributes:
            raise ValueError("Event attributes missing field: name")
        name = attributes["name"]
        start = attributes.get("event_start")
        end = attributes.get("event_end")
        return cls(
            id=str(resource.get("id") or attributes.get("id") or ""),
            name=str(name),
            description=str(attributes.get("description") or ""),
            start_time=parse_instant(start) if start else None,
            end_time=parse_instant(end) if end else None,
            location=EventLocation.from_mapping(attributes.get("location")),
            location_optional=bool(attributes.get("location_optional", False)),
            latitude=_optional_float(attributes.get("latitude")),
            longitude=_optional_float(attributes.get("longitude")),
        )


@dataclass(frozen=True)
class GeoCoordinate:
    """A device position; latitude and longitude always travel together."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        lat = float(self.latitude)
        lon = float(self.longitude)
        if not -90.0 <= lat <= 90.0:
            raise ValueError(f"Latitude out of range: {lat}")
        if not -180.0 <= lon <= 180.0:
            raise ValueError(f"Longitude out of range: {lon}")
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)


@dataclass(frozen=True)
class CapturedPhoto:
    """JPEG-encoded still frame held in memory for one wizard session."""

    data: bytes = field(repr=False)
    width: int
    height: int
    content_type: str = "image/jpeg"
    filename: str = "photo.jpg"

    def __post_init__(self) -> None:
        if not self.data:
            raise ValueError("Captured photo must not be empty")

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str

    @classmethod
    def from_jsonapi(cls, document: Mapping[str, Any]) -> "User":
        resource = document.get("data", document) if isinstance(document, Mapping) else {}
        attributes = resource.get("attributes") or {} if isinstance(resource, Mapping) else {}
        return cls(
            id=str(resource.get("id") or attributes.get("id") or ""),
            name=str(attributes.get("name") or ""),
            email=str(attributes.get("email") or ""),
        )


@dataclass(frozen=True)
class Participant:
    """One row of an event roster, as listed by the admin endpoints."""

    id: str
    student_name: str
    student_ra: str
    present: bool = False
    email: Optional[str] = None
    location: Optional[str] = None

    @classmethod
    def from_resource(cls, resource: Mapping[str, Any]) -> "Participant":
        attributes = resource.get("attributes") or {}
        return cls(
            id=str(resource.get("id") or attributes.get("id") or ""),
            student_name=str(attributes.get("student_name") or ""),
            student_ra=str(attributes.get("student_ra") or ""),
            present=bool(attributes.get("present", False)),
            email=attributes.get("email"),
            location=attributes.get("location"),
        )


__all__ = [
    "parse_instant",
    "EventLocation",
    "Event",
    "GeoCoordinate",
    "CapturedPhoto",
    "User",
    "Participant",
]
