"""Input validation helpers.

These are shape checks only; the backend remains the authority on whether a
registration number or a position is acceptable.
"""

from __future__ import annotations

import re
from typing import Tuple
from urllib.parse import urlparse

RA_PATTERN = re.compile(r"^\d+(-\d+)?$")
LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


def validate_url(url: str, url_type: str = "URL") -> Tuple[bool, str]:
    """
    Validate URL format.

    Args:
        url: URL to validate
        url_type: Type of URL for error messages

    Returns:
        Tuple of (is_valid, message)
    """
    if not url or not url.strip():
        return False, f"{url_type} must not be empty"

    url = url.strip()
    if " " in url:
        return False, f"{url_type} must not contain spaces"

    parsed = urlparse(url)
    if not parsed.scheme:
        return False, f"{url_type} must include a scheme (e.g. https://)"
    if parsed.scheme not in ("http", "https"):
        return False, f"{url_type} must use http or https"
    if not parsed.netloc:
        return False, f"{url_type} must include a host"
    return True, f"{url_type} looks valid"


def is_secure_origin(url: str) -> bool:
    """True for HTTPS origins and for plain HTTP on the loopback host."""
    parsed = urlparse((url or "").strip())
    if parsed.scheme == "https":
        return True
    return parsed.scheme == "http" and (parsed.hostname or "") in LOCAL_HOSTS


def looks_like_registration_number(value: str) -> bool:
    """Digits with an optional ``-digits`` suffix, e.g. ``241403-1``.

    Used for hints only; the backend performs the authoritative check.
    """
    return bool(RA_PATTERN.match((value or "").strip()))


__all__ = ["validate_url", "is_secure_origin", "looks_like_registration_number"]
