"""
██████╗  ██████╗  ███████╗ ███████╗ ███████╗ ███╗   ██╗  ██████╗ ███████╗
██╔══██╗ ██╔══██╗ ██╔════╝ ██╔════╝ ██╔════╝ ████╗  ██║ ██╔════╝ ██╔════╝
██████╔╝ ██████╔╝ █████╗   ███████╗ █████╗   ██╔██╗ ██║ ██║      █████╗
██╔═══╝  ██╔══██╗ ██╔══╝   ╚════██║ ██╔══╝   ██║╚██╗██║ ██║      ██╔══╝
██║      ██║  ██║ ███████╗ ███████║ ███████╗ ██║ ╚████║ ╚██████╗ ███████╗
╚═╝      ╚═╝  ╚═╝ ╚══════╝ ╚══════╝ ╚══════╝ ╚═╝  ╚═══╝  ╚═════╝ ╚══════╝
src/presence_confirm/core/coordinator.py
Presence wizard coordinator.

Owns the wizard state and drives the camera controller, the geolocation
acquirer and the submitter in response to user actions. It is the only writer
of the state; views observe it through ``on_change``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..errors import WizardTransitionError
from ..models import CapturedPhoto, GeoCoordinate
from ..utils.localization import t
from . import wizard
from .camera import CameraCaptureController
from .geolocation import GeolocationAcquirer
from .submit import PresenceSubmitter, SubmissionFailure, SubmissionResult, check_preconditions
from .wizard import DataStep, PhotoStep, SubmissionStatus, WizardState

DEFAULT_START_DELAY = 0.3
DEFAULT_SUCCESS_DISPLAY = 2.0
DEFAULT_ERROR_DISPLAY = 4.0


class PresenceWizard:
    """One wizard per event page; ``open()`` starts a fresh session each time."""

    def __init__(
        self,
        event_id: str,
        submitter: PresenceSubmitter,
        camera: CameraCaptureController,
        geolocation: GeolocationAcquirer,
        *,
        start_delay: float = DEFAULT_START_DELAY,
        success_display: float = DEFAULT_SUCCESS_DISPLAY,
        error_display: float = DEFAULT_ERROR_DISPLAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_change: Optional[Callable[[WizardState], None]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.event_id = event_id
        self._submitter = submitter
        self._camera = camera
        self._geolocation = geolocation
        self._start_delay = start_delay
        self._success_display = success_display
        self._error_display = error_display
        self._sleep = sleep
        self._on_change = on_change
        self._logger = logger or logging.getLogger("presence_confirm.wizard")

        self._state: WizardState = wizard.initial()
        self._is_open = False
        self._session = 0
        self._error_acknowledged = asyncio.Event()
        self.validation_message: Optional[str] = None

    # ------------------------------------------------------------------ observation

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def camera(self) -> CameraCaptureController:
        return self._camera

    @property
    def geolocation(self) -> GeolocationAcquirer:
        return self._geolocation

    @property
    def photo(self) -> Optional[CapturedPhoto]:
        return self._state.photo

    @property
    def coordinate(self) -> Optional[GeoCoordinate]:
        return self._state.coordinate

    @property
    def registration_number(self) -> str:
        return self._state.registration_number

    @property
    def can_advance(self) -> bool:
        return isinstance(self._state, PhotoStep) and self._state.photo is not None

    @property
    def can_submit(self) -> bool:
        state = self._state
        return (
            isinstance(state, DataStep)
            and state.status is SubmissionStatus.IDLE
            and check_preconditions(state.registration_number, state.coordinate, state.photo) is None
        )

    @property
    def can_close(self) -> bool:
        return not wizard.is_submitting(self._state)

    def _set(self, state: WizardState) -> None:
        self._state = state
        if self._on_change is not None:
            self._on_change(state)

    # ------------------------------------------------------------------ photo step

    async def open(self) -> None:
        if self._is_open:
            return
        await self._reset()
        self._is_open = True
        self._session += 1
        session = self._session
        self._logger.debug("Wizard opened for event %s", self.event_id)
        await self._sleep(self._start_delay)
        if self._session == session and isinstance(self._state, PhotoStep) and self._state.photo is None:
            await self._camera.start()

    async def capture(self) -> Optional[CapturedPhoto]:
        if not isinstance(self._state, PhotoStep):
            raise WizardTransitionError("Photos are taken on the photo step")
        photo = await self._camera.capture()
        if photo is not None:
            self._set(wizard.with_photo(self._state, photo))
        return photo

    async def retake(self) -> None:
        self._set(wizard.without_photo(self._state))
        await self._camera.retake()

    async def retry_camera(self) -> None:
        await self._camera.retry()

    async def next_step(self) -> None:
        self._set(wizard.advance(self._state))
        self.validation_message = None
        await self._camera.stop()
        if self._state.coordinate is None:
            await self._acquire_location(retry=False)

    # ------------------------------------------------------------------ data step

    async def previous_step(self) -> None:
        self._set(wizard.go_back(self._state))
        if self._state.photo is None:
            await self._camera.start()

    def set_registration_number(self, value: str) -> None:
        self._set(wizard.with_registration_number(self._state, value))

    async def retry_location(self) -> Optional[GeoCoordinate]:
        return await self._acquire_location(retry=True)

    async def _acquire_location(self, *, retry: bool) -> Optional[GeoCoordinate]:
        session = self._session
        if retry:
            coordinate = await self._geolocation.retry()
        else:
            coordinate = await self._geolocation.request()
        if coordinate is not None and self._session == session and self._is_open:
            self._set(wizard.with_coordinate(self._state, coordinate))
        return coordinate

    async def submit(self) -> SubmissionResult:
        """Submit once; waits out the success or error display before returning."""
        state = self._state
        invalid = check_preconditions(state.registration_number, state.coordinate, state.photo)
        if invalid is not None:
            self.validation_message = invalid.message
            return invalid
        self.validation_message = None

        self._set(wizard.begin_submission(state))
        session = self._session
        current = self._state
        assert isinstance(current, DataStep)
        try:
            result = await self._submitter.submit(
                self.event_id, current.registration_number, current.coordinate, current.photo
            )
        except BaseException:
            # cancelled or unexpected: move out of SUBMITTING so close() works again
            if wizard.is_submitting(self._state):
                self._set(
                    wizard.submission_failed(
                        self._state,
                        t("submit_network_error", "An error occurred while confirming your presence. Please try again."),
                    )
                )
            raise

        if isinstance(result, SubmissionFailure):
            self._error_acknowledged.clear()
            self._set(wizard.submission_failed(self._state, result.message))
            await self._wait_error_display()
            if self._session == session:
                self.acknowledge_error()
            return result

        self._set(wizard.submission_succeeded(self._state))
        await self._sleep(self._success_display)
        if self._session == session:
            await self.close()
        return result

    async def _wait_error_display(self) -> None:
        acknowledged = asyncio.ensure_future(self._error_acknowledged.wait())
        timer = asyncio.ensure_future(self._sleep(self._error_display))
        try:
            await asyncio.wait({acknowledged, timer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (acknowledged, timer):
                if not task.done():
                    task.cancel()

    def acknowledge_error(self) -> None:
        """The manual "try again": back to the data step with every input kept."""
        if isinstance(self._state, DataStep) and self._state.status is SubmissionStatus.ERROR:
            self._set(wizard.acknowledge_error(self._state))
        self._error_acknowledged.set()

    # ------------------------------------------------------------------ lifecycle

    async def close(self) -> bool:
        """Close and reset; refused while a submission is in flight."""
        if not self.can_close:
            self._logger.debug("Close ignored while submitting")
            return False
        self._session += 1
        self._is_open = False
        await self._reset()
        self._logger.debug("Wizard closed for event %s", self.event_id)
        return True

    async def _reset(self) -> None:
        await self._camera.reset()
        self._geolocation.reset()
        self.validation_message = None
        self._error_acknowledged.set()
        self._set(wizard.initial())


__all__ = ["PresenceWizard"]
