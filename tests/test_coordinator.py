import asyncio
from types import SimpleNamespace

import pytest

from fakes import FakeCameraDevice, FakePositionProvider, FakePresenceEndpoint, RecordingSleep
from presence_confirm.core.camera import CameraCaptureController, CameraState
from presence_confirm.core.coordinator import PresenceWizard
from presence_confirm.core.geolocation import GeolocationAcquirer, GeolocationState
from presence_confirm.core.submit import FailureKind, PresenceSubmitter, SubmissionFailure, SubmissionSuccess
from presence_confirm.core.wizard import DataStep, PhotoStep, SubmissionStatus
from presence_confirm.errors import ApiError, CameraError, CameraFailure, GeolocationError, GeolocationFailure
from presence_confirm.models import GeoCoordinate

HERE = GeoCoordinate(-22.9, -47.06)
DENIED = GeolocationError(GeolocationFailure.PERMISSION_DENIED)


def _harness(*, camera_failures=(), positions=(HERE,), outcomes=(), sleep=None, endpoint=None):
    sleep = sleep or RecordingSleep()
    device = FakeCameraDevice(failures=camera_failures)
    camera = CameraCaptureController(device, secure_context=True, sleep=sleep, frame_interval=0)
    provider = FakePositionProvider(*positions)
    endpoint = endpoint or FakePresenceEndpoint(*outcomes)
    states = []
    wizard = PresenceWizard(
        "evt-1",
        PresenceSubmitter(endpoint),
        camera,
        GeolocationAcquirer(provider),
        sleep=sleep,
        on_change=states.append,
    )
    return SimpleNamespace(
        wizard=wizard, device=device, provider=provider, endpoint=endpoint, sleep=sleep, states=states
    )


async def _ready(h, ra="241403-1"):
    await h.wizard.open()
    await h.wizard.capture()
    await h.wizard.next_step()
    h.wizard.set_registration_number(ra)


def test_open_auto_starts_camera_after_short_delay():
    async def scenario():
        h = _harness()
        await h.wizard.open()
        return h

    h = asyncio.run(scenario())

    assert h.sleep.calls[0] == 0.3
    assert h.wizard.camera.state is CameraState.STREAMING
    assert h.wizard.is_open


def test_permission_denied_keeps_continue_disabled():
    async def scenario():
        h = _harness(camera_failures=[CameraError(CameraFailure.PERMISSION_DENIED)])
        await h.wizard.open()
        snapshot = (h.wizard.camera.state, h.wizard.camera.error_message, h.wizard.can_advance)
        await h.wizard.retry_camera()
        return h, snapshot

    h, (state, message, can_advance) = asyncio.run(scenario())

    assert state is CameraState.ERROR
    assert message == "Camera permission denied. Please allow camera access in your settings."
    assert can_advance is False
    assert h.wizard.camera.state is CameraState.STREAMING
    assert isinstance(h.wizard.state, PhotoStep)


def test_next_step_stops_camera_and_requests_location_once():
    async def scenario():
        h = _harness()
        await h.wizard.open()
        await h.wizard.capture()
        await h.wizard.next_step()
        await h.wizard.previous_step()
        await h.wizard.next_step()
        return h

    h = asyncio.run(scenario())

    assert isinstance(h.wizard.state, DataStep)
    assert h.wizard.coordinate == HERE
    assert h.provider.calls == 1
    assert h.wizard.camera.active_streams == 0
    assert len(h.device.streams) == 1


def test_submit_stays_disabled_until_location_retry_succeeds():
    async def scenario():
        h = _harness(positions=(DENIED, HERE))
        await _ready(h)
        before = (h.wizard.geolocation.state, h.wizard.geolocation.error_message, h.wizard.can_submit)
        blocked = await h.wizard.submit()
        await h.wizard.retry_location()
        return h, before, blocked

    h, (geo_state, geo_message, can_submit), blocked = asyncio.run(scenario())

    assert geo_state is GeolocationState.ERROR
    assert geo_message == "Allow location access to continue."
    assert can_submit is False
    assert isinstance(blocked, SubmissionFailure)
    assert blocked.kind is FailureKind.MISSING_COORDINATE
    assert h.endpoint.calls == []
    assert h.wizard.can_submit is True
    assert h.wizard.registration_number == "241403-1"


def test_blank_registration_number_blocks_submission_locally():
    async def scenario():
        h = _harness()
        await _ready(h, ra="   ")
        return h, await h.wizard.submit()

    h, result = asyncio.run(scenario())

    assert result.kind is FailureKind.MISSING_REGISTRATION_NUMBER
    assert h.wizard.validation_message == "Please enter your registration number (RA)."
    assert h.endpoint.calls == []


def test_rejection_is_shown_then_data_step_returns_intact():
    async def scenario():
        h = _harness(outcomes=(ApiError(422, "RA not recognized"),))
        await _ready(h)
        photo = h.wizard.photo
        result = await h.wizard.submit()
        return h, photo, result

    h, photo, result = asyncio.run(scenario())

    errors = [s for s in h.states if isinstance(s, DataStep) and s.status is SubmissionStatus.ERROR]
    assert errors and errors[0].error_message == "RA not recognized"
    assert 4.0 in h.sleep.calls
    assert result.message == "RA not recognized"
    state = h.wizard.state
    assert isinstance(state, DataStep)
    assert state.status is SubmissionStatus.IDLE
    assert (state.photo, state.registration_number, state.coordinate) == (photo, "241403-1", HERE)
    assert h.wizard.is_open


def test_success_resets_everything_after_acknowledgment():
    async def scenario():
        h = _harness()
        await _ready(h)
        result = await h.wizard.submit()
        return h, result

    h, result = asyncio.run(scenario())

    assert isinstance(result, SubmissionSuccess)
    assert any(isinstance(s, DataStep) and s.status is SubmissionStatus.SUCCESS for s in h.states)
    assert 2.0 in h.sleep.calls
    assert h.wizard.state == PhotoStep()
    assert h.wizard.is_open is False
    assert h.wizard.geolocation.coordinate is None
    assert h.wizard.camera.state is CameraState.IDLE
    assert len(h.endpoint.calls) == 1


def test_close_is_refused_while_submitting():
    async def scenario():
        h = _harness()
        h.endpoint.gate = asyncio.Event()
        await _ready(h)
        task = asyncio.ensure_future(h.wizard.submit())
        while not h.endpoint.calls:
            await asyncio.sleep(0)
        refused = await h.wizard.close()
        h.endpoint.gate.set()
        await task
        return h, refused

    h, refused = asyncio.run(scenario())

    assert refused is False
    assert h.wizard.state == PhotoStep()


def test_cancelled_submission_can_still_be_closed():
    async def scenario():
        h = _harness()
        h.endpoint.gate = asyncio.Event()
        await _ready(h)
        task = asyncio.ensure_future(h.wizard.submit())
        while not h.endpoint.calls:
            await asyncio.sleep(0)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        interrupted = h.wizard.state
        closed = await h.wizard.close()
        return h, interrupted, closed

    h, interrupted, closed = asyncio.run(scenario())

    assert interrupted.status is SubmissionStatus.ERROR
    assert interrupted.photo is not None
    assert closed is True
    assert h.wizard.state == PhotoStep()


def test_unexpected_submit_error_propagates_and_leaves_form_usable():
    class BrokenEndpoint:
        async def confirm_presence(self, event_id, registration_number, coordinate, photo):
            raise RuntimeError("boom")

    async def scenario():
        h = _harness(endpoint=BrokenEndpoint())
        await _ready(h)
        with pytest.raises(RuntimeError):
            await h.wizard.submit()
        return h, h.wizard.can_close

    h, can_close = asyncio.run(scenario())

    assert h.wizard.state.status is SubmissionStatus.ERROR
    assert can_close is True


class HoldErrorDisplay(RecordingSleep):
    """Sleeps forever for the error display so only a manual acknowledgment ends it."""

    async def __call__(self, delay):
        self.calls.append(delay)
        if delay == 4.0:
            await asyncio.Event().wait()
        await asyncio.sleep(0)


def test_manual_try_again_ends_error_display_early():
    async def scenario():
        h = _harness(outcomes=(ApiError(500, "Error: 500"),), sleep=HoldErrorDisplay())
        await _ready(h)
        task = asyncio.ensure_future(h.wizard.submit())
        while not (isinstance(h.wizard.state, DataStep) and h.wizard.state.status is SubmissionStatus.ERROR):
            await asyncio.sleep(0)
        h.wizard.acknowledge_error()
        result = await asyncio.wait_for(task, timeout=5)
        return h, result

    h, result = asyncio.run(scenario())

    assert isinstance(result, SubmissionFailure)
    assert h.wizard.state.status is SubmissionStatus.IDLE
    assert h.wizard.registration_number == "241403-1"


def test_close_releases_camera_and_reopen_starts_fresh():
    async def scenario():
        h = _harness()
        await h.wizard.open()
        closed = await h.wizard.close()
        await h.wizard.open()
        return h, closed

    h, closed = asyncio.run(scenario())

    assert closed is True
    assert h.device.streams[0].released
    assert h.wizard.camera.active_streams == 1
    assert h.wizard.state == PhotoStep()


def test_retake_discards_photo_and_restarts_camera():
    async def scenario():
        h = _harness()
        await h.wizard.open()
        await h.wizard.capture()
        await h.wizard.retake()
        photo_after_retake = h.wizard.photo
        second = await h.wizard.capture()
        return h, photo_after_retake, second

    h, photo_after_retake, second = asyncio.run(scenario())

    assert photo_after_retake is None
    assert h.wizard.photo == second
    assert second.data == b"jpeg:stream2-frame"
