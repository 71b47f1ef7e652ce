import pytest

from fakes import make_photo
from presence_confirm.core import wizard
from presence_confirm.core.wizard import DataStep, PhotoStep, SubmissionStatus
from presence_confirm.errors import WizardTransitionError
from presence_confirm.models import GeoCoordinate

HERE = GeoCoordinate(-22.9, -47.06)


def _ready_data_step():
    state = wizard.advance(wizard.with_photo(wizard.initial(), make_photo()))
    state = wizard.with_registration_number(state, "241403-1")
    return wizard.with_coordinate(state, HERE)


def test_initial_state_is_empty_photo_step():
    assert wizard.initial() == PhotoStep()


def test_cannot_advance_without_photo():
    with pytest.raises(WizardTransitionError):
        wizard.advance(wizard.initial())


def test_data_step_cannot_exist_without_photo():
    with pytest.raises(WizardTransitionError):
        DataStep(photo=None)


def test_error_message_only_in_error_status():
    with pytest.raises(WizardTransitionError):
        DataStep(photo=make_photo(), error_message="boom")
    with pytest.raises(WizardTransitionError):
        DataStep(photo=make_photo(), status=SubmissionStatus.ERROR)


def test_advance_and_back_keep_every_input():
    state = _ready_data_step()

    back = wizard.go_back(state)
    forward = wizard.advance(back)

    assert back.photo == state.photo
    assert forward.registration_number == "241403-1"
    assert forward.coordinate == HERE


def test_retake_drops_photo_only_on_photo_step():
    state = wizard.with_photo(wizard.initial(), make_photo())

    assert wizard.without_photo(state).photo is None
    with pytest.raises(WizardTransitionError):
        wizard.without_photo(_ready_data_step())


def test_begin_submission_requires_registration_number_and_coordinate():
    state = wizard.advance(wizard.with_photo(wizard.initial(), make_photo()))

    with pytest.raises(WizardTransitionError):
        wizard.begin_submission(wizard.with_registration_number(state, "   "))
    with pytest.raises(WizardTransitionError):
        wizard.begin_submission(wizard.with_registration_number(state, "241403-1"))


def test_failure_then_acknowledge_returns_to_idle_with_data():
    submitting = wizard.begin_submission(_ready_data_step())

    failed = wizard.submission_failed(submitting, "RA not recognized")
    restored = wizard.acknowledge_error(failed)

    assert failed.error_message == "RA not recognized"
    assert restored.status is SubmissionStatus.IDLE
    assert restored.error_message is None
    assert (restored.photo, restored.registration_number, restored.coordinate) == (
        submitting.photo,
        "241403-1",
        HERE,
    )


def test_no_navigation_or_edits_while_submitting():
    submitting = wizard.begin_submission(_ready_data_step())

    assert wizard.is_submitting(submitting)
    with pytest.raises(WizardTransitionError):
        wizard.go_back(submitting)
    with pytest.raises(WizardTransitionError):
        wizard.with_registration_number(submitting, "1")
    with pytest.raises(WizardTransitionError):
        wizard.begin_submission(submitting)


def test_success_requires_submission_in_flight():
    with pytest.raises(WizardTransitionError):
        wizard.submission_succeeded(_ready_data_step())
