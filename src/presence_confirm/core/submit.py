"""Presence confirmation submission.

``PresenceSubmitter.submit`` checks the three inputs locally, then issues one
multipart PATCH. Every outcome comes back as a value; nothing raises past it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, Union

from ..errors import ApiError, ApiNetworkError
from ..models import CapturedPhoto, GeoCoordinate
from ..utils.localization import t


class PresenceEndpoint(Protocol):
    async def confirm_presence(
        self,
        event_id: str,
        registration_number: str,
        coordinate: GeoCoordinate,
        photo: CapturedPhoto,
    ) -> Any:
        ...


class FailureKind(str, Enum):
    MISSING_REGISTRATION_NUMBER = "missing_registration_number"
    MISSING_COORDINATE = "missing_coordinate"
    MISSING_PHOTO = "missing_photo"
    SERVER_REJECTED = "server_rejected"
    NETWORK_FAILURE = "network_failure"

    @property
    def is_validation(self) -> bool:
        return self in (
            FailureKind.MISSING_REGISTRATION_NUMBER,
            FailureKind.MISSING_COORDINATE,
            FailureKind.MISSING_PHOTO,
        )


@dataclass(frozen=True)
class SubmissionSuccess:
    payload: Any = None


@dataclass(frozen=True)
class SubmissionFailure:
    kind: FailureKind
    message: str
    status: Optional[int] = None


SubmissionResult = Union[SubmissionSuccess, SubmissionFailure]


def check_preconditions(
    registration_number: Optional[str],
    coordinate: Optional[GeoCoordinate],
    photo: Optional[CapturedPhoto],
) -> Optional[SubmissionFailure]:
    """Return the first missing input as a failure, or None when all are present."""
    if not (registration_number or "").strip():
        return SubmissionFailure(
            FailureKind.MISSING_REGISTRATION_NUMBER,
            t("missing_ra", "Please enter your registration number (RA)."),
        )
    if coordinate is None:
        return SubmissionFailure(
            FailureKind.MISSING_COORDINATE,
            t("missing_coordinate", "Location not obtained. Allow location access and try again."),
        )
    if photo is None:
        return SubmissionFailure(
            FailureKind.MISSING_PHOTO,
            t("missing_photo", "Take a photo before confirming your presence."),
        )
    return None


class PresenceSubmitter:
    def __init__(self, endpoint: PresenceEndpoint, logger: logging.Logger | None = None) -> None:
        self._endpoint = endpoint
        self._logger = logger or logging.getLogger("presence_confirm.submit")

    async def submit(
        self,
        event_id: str,
        registration_number: Optional[str],
        coordinate: Optional[GeoCoordinate],
        photo: Optional[CapturedPhoto],
    ) -> SubmissionResult:
        invalid = check_preconditions(registration_number, coordinate, photo)
        if invalid is not None:
            self._logger.info("Submission blocked locally: %s", invalid.kind.value)
            return invalid
        assert registration_number is not None and coordinate is not None and photo is not None

        self._logger.info("Submitting presence for event %s", event_id)
        try:
            payload = await self._endpoint.confirm_presence(
                event_id, registration_number.strip(), coordinate, photo
            )
        except ApiError as exc:
            self._logger.warning("Presence rejected (HTTP %s): %s", exc.status, exc.message)
            return SubmissionFailure(FailureKind.SERVER_REJECTED, exc.message, exc.status)
        except ApiNetworkError as exc:
            self._logger.warning("Presence submission failed: %s", exc)
            return SubmissionFailure(
                FailureKind.NETWORK_FAILURE,
                t(
                    "submit_network_error",
                    "An error occurred while confirming your presence. Please try again.",
                ),
            )
        self._logger.info("Presence confirmed for event %s", event_id)
        return SubmissionSuccess(payload)


__all__ = [
    "PresenceEndpoint",
    "FailureKind",
    "SubmissionSuccess",
    "SubmissionFailure",
    "SubmissionResult",
    "check_preconditions",
    "PresenceSubmitter",
]
