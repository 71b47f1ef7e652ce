"""Two-step presence wizard state.

``WizardState`` is either a :class:`PhotoStep` or a :class:`DataStep`. A data
step cannot exist without a photo, and an error message exists only while the
submission status is ``ERROR``. Every transition is a pure function returning
a new state; disallowed transitions raise :class:`WizardTransitionError`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from ..errors import WizardTransitionError
from ..models import CapturedPhoto, GeoCoordinate


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class PhotoStep:
    photo: Optional[CapturedPhoto] = None
    registration_number: str = ""
    coordinate: Optional[GeoCoordinate] = None

    step_number = 1


@dataclass(frozen=True)
class DataStep:
    photo: CapturedPhoto
    registration_number: str = ""
    coordinate: Optional[GeoCoordinate] = None
    status: SubmissionStatus = SubmissionStatus.IDLE
    error_message: Optional[str] = None

    step_number = 2

    def __post_init__(self) -> None:
        if self.photo is None:
            raise WizardTransitionError("The data step requires a captured photo")
        if (self.status is SubmissionStatus.ERROR) != (self.error_message is not None):
            raise WizardTransitionError("An error message is present only in the ERROR status")

    @property
    def is_ready(self) -> bool:
        return bool(self.registration_number.strip()) and self.coordinate is not None


WizardState = Union[PhotoStep, DataStep]


def initial() -> PhotoStep:
    return PhotoStep()


def is_submitting(state: WizardState) -> bool:
    return isinstance(state, DataStep) and state.status is SubmissionStatus.SUBMITTING


def _require_data(state: WizardState, action: str) -> DataStep:
    if not isinstance(state, DataStep):
        raise WizardTransitionError(f"Cannot {action} outside the data step")
    return state


def _require_idle(state: DataStep, action: str) -> None:
    if state.status is not SubmissionStatus.IDLE:
        raise WizardTransitionError(f"Cannot {action} while the submission is {state.status.value}")


def with_photo(state: WizardState, photo: CapturedPhoto) -> PhotoStep:
    if not isinstance(state, PhotoStep):
        raise WizardTransitionError("Photos are taken on the photo step")
    return replace(state, photo=photo)


def without_photo(state: WizardState) -> PhotoStep:
    """Retake: drop the held photo."""
    if not isinstance(state, PhotoStep):
        raise WizardTransitionError("Photos are retaken on the photo step")
    return replace(state, photo=None)


def advance(state: WizardState) -> DataStep:
    if not isinstance(state, PhotoStep):
        raise WizardTransitionError("Already on the data step")
    if state.photo is None:
        raise WizardTransitionError("Capture a photo before continuing")
    return DataStep(
        photo=state.photo,
        registration_number=state.registration_number,
        coordinate=state.coordinate,
    )


def go_back(state: WizardState) -> PhotoStep:
    data = _require_data(state, "go back")
    _require_idle(data, "go back")
    return PhotoStep(
        photo=data.photo,
        registration_number=data.registration_number,
        coordinate=data.coordinate,
    )


def with_registration_number(state: WizardState, value: str) -> DataStep:
    data = _require_data(state, "edit the registration number")
    if data.status is SubmissionStatus.SUBMITTING:
        raise WizardTransitionError("Cannot edit while submitting")
    return replace(data, registration_number=value)


def with_coordinate(state: WizardState, coordinate: GeoCoordinate) -> WizardState:
    # Location may resolve on either step; it lands in the same field.
    return replace(state, coordinate=coordinate)


def begin_submission(state: WizardState) -> DataStep:
    data = _require_data(state, "submit")
    _require_idle(data, "submit")
    if not data.is_ready:
        raise WizardTransitionError("Registration number and location are required")
    return replace(data, status=SubmissionStatus.SUBMITTING)


def submission_succeeded(state: WizardState) -> DataStep:
    data = _require_data(state, "finish a submission")
    if data.status is not SubmissionStatus.SUBMITTING:
        raise WizardTransitionError("No submission in flight")
    return replace(data, status=SubmissionStatus.SUCCESS)


def submission_failed(state: WizardState, message: str) -> DataStep:
    data = _require_data(state, "fail a submission")
    if data.status is not SubmissionStatus.SUBMITTING:
        raise WizardTransitionError("No submission in flight")
    return replace(data, status=SubmissionStatus.ERROR, error_message=message)


def acknowledge_error(state: WizardState) -> WizardState:
    """Back to an editable data step; photo, RA and coordinate are kept."""
    if isinstance(state, DataStep) and state.status is SubmissionStatus.ERROR:
        return replace(state, status=SubmissionStatus.IDLE, error_message=None)
    return state


__all__ = [
    "SubmissionStatus",
    "PhotoStep",
    "DataStep",
    "WizardState",
    "initial",
    "is_submitting",
    "with_photo",
    "without_photo",
    "advance",
    "go_back",
    "with_registration_number",
    "with_coordinate",
    "begin_submission",
    "submission_succeeded",
    "submission_failed",
    "acknowledge_error",
]
