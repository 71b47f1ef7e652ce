"""Exception hierarchy shared by the presence confirmation client."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class PresenceError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(PresenceError):
    """Raised when a required setting is missing or malformed."""


# ---------------------------------------------------------------------------
# HTTP layer


class ApiError(PresenceError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status: int, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.payload = payload


class ApiNotFoundError(ApiError):
    """The backend answered 404."""


class ApiNetworkError(PresenceError):
    """No response was received (DNS, refused connection, reset...)."""


class AuthenticationRequired(PresenceError):
    """An admin endpoint was called without a session token."""


# ---------------------------------------------------------------------------
# Devices


class CameraFailure(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    DEVICE_NOT_FOUND = "device_not_found"
    DEVICE_BUSY = "device_busy"
    OVERCONSTRAINED = "overconstrained"
    INSECURE_CONTEXT = "insecure_context"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


class CameraError(PresenceError):
    """Raised by camera backends; ``reason`` selects the user-facing message."""

    def __init__(self, reason: CameraFailure, detail: Optional[str] = None) -> None:
        super().__init__(detail or reason.value)
        self.reason = reason
        self.detail = detail


class GeolocationFailure(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"


class GeolocationError(PresenceError):
    """Raised by position providers."""

    def __init__(self, reason: GeolocationFailure, detail: Optional[str] = None) -> None:
        super().__init__(detail or reason.value)
        self.reason = reason
        self.detail = detail


# ---------------------------------------------------------------------------
# Wizard


class WizardTransitionError(PresenceError):
    """An operation is not allowed from the current wizard state."""


__all__ = [
    "PresenceError",
    "ConfigurationError",
    "ApiError",
    "ApiNotFoundError",
    "ApiNetworkError",
    "AuthenticationRequired",
    "CameraFailure",
    "CameraError",
    "GeolocationFailure",
    "GeolocationError",
    "WizardTransitionError",
]
