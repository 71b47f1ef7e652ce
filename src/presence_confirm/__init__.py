"""Participant presence confirmation client: selfie, location and one multipart submit."""

from .core.coordinator import PresenceWizard
from .core.event_loader import EventLoader
from .core.submit import PresenceSubmitter

__version__ = "0.1.0"

__all__ = [
    "EventLoader",
    "PresenceSubmitter",
    "PresenceWizard",
    "__version__",
]
