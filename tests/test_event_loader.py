import asyncio
import logging

import pytest

from fakes import event_document
from presence_confirm.core.event_loader import EventLoaded, EventLoader, EventLoadFailed, EventNotFound
from presence_confirm.errors import ApiError, ApiNetworkError, ApiNotFoundError, ConfigurationError


class StubSource:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    async def get_public_event(self, event_id):
        self.calls.append(event_id)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _load(outcome, event_id="evt-1"):
    source = StubSource(outcome)
    state = asyncio.run(EventLoader(source).load(event_id))
    return source, state


def test_scenario_event_loaded_with_validation_badge():
    source, state = _load(event_document(name="Intro Seminar", location_optional=False))

    assert source.calls == ["evt-1"]
    assert isinstance(state, EventLoaded)
    assert state.event.name == "Intro Seminar"
    assert state.event.location_validation_enabled is True


def test_404_is_not_found():
    _, state = _load(ApiNotFoundError(404, "nope"))

    assert state == EventNotFound("Event not found")


def test_other_status_is_load_failure_with_status():
    _, state = _load(ApiError(500, "boom"))

    assert state == EventLoadFailed("Failed to fetch event: 500")


def test_network_failure_is_generic_load_failure(caplog):
    with caplog.at_level(logging.WARNING):
        source, state = _load(ApiNetworkError("connection refused"))

    assert state == EventLoadFailed("Failed to load event")
    assert len(source.calls) == 1
    assert any("evt-1" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize("payload", [None, [], {"data": {"attributes": {"description": "x"}}}])
def test_malformed_payload_is_load_failure(payload):
    _, state = _load(payload)

    assert isinstance(state, EventLoadFailed)


def test_blank_event_id_never_reaches_network():
    source, state = _load(event_document(), event_id="")

    assert source.calls == []
    assert isinstance(state, EventNotFound)


def test_missing_server_url_is_load_failure():
    _, state = _load(ConfigurationError("Server URL is not configured"))

    assert state == EventLoadFailed("Server URL is not configured")


def test_minimal_event_payload_loads():
    source, state = _load({"data": {"attributes": {"name": "Intro Seminar", "location_optional": False}}})

    assert source.calls == ["evt-1"]
    assert isinstance(state, EventLoaded)
    assert state.event.name == "Intro Seminar"
    assert state.event.location_validation_enabled
    assert state.event.location_description == "Location not provided"
