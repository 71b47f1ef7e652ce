"""Display helpers for event details."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from .localization import t

# Order in which address fields are shown; the rest of the record is ignored.
LOCATION_FIELDS = ("amenity", "road", "town", "state")


def format_location(location: Any) -> str:
    """Join the populated address fields with commas.

    Accepts an ``EventLocation`` or a plain mapping. An empty or missing
    record yields the localized "Location not provided" text.
    """
    parts = []
    for name in LOCATION_FIELDS:
        if isinstance(location, dict):
            value = location.get(name)
        else:
            value = getattr(location, name, None)
        if value and str(value).strip():
            parts.append(str(value).strip())
    if parts:
        return ", ".join(parts)
    return t("location_not_provided", "Location not provided")


def format_datetime(instant: datetime) -> Dict[str, str]:
    local = instant.astimezone() if instant.tzinfo else instant
    date = local.strftime("%d/%m/%Y")
    time = local.strftime("%H:%M")
    joiner = t("datetime_joiner", "at")
    return {"date": date, "time": time, "full": f"{date} {joiner} {time}"}


__all__ = ["LOCATION_FIELDS", "format_location", "format_datetime"]
