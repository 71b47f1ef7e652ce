from datetime import timezone

import pytest

from fakes import event_document
from presence_confirm.models import CapturedPhoto, Event, GeoCoordinate, Participant, parse_instant


def test_event_from_jsonapi_reads_public_detail():
    event = Event.from_jsonapi(event_document())

    assert event.id == "evt-1"
    assert event.name == "Intro Seminar"
    assert event.start_time.tzinfo is not None
    assert event.location_description == "Library, Main Street, Campinas, SP"
    assert event.latitude == pytest.approx(-22.9)


def test_location_validation_follows_location_optional():
    required = Event.from_jsonapi(event_document(location_optional=False))
    optional = Event.from_jsonapi(event_document(location_optional=True))

    assert required.location_validation_enabled is True
    assert optional.location_validation_enabled is False


def test_event_without_location_uses_fallback_description():
    event = Event.from_jsonapi(event_document(location=None))

    assert event.location_description == "Location not provided"


def test_event_requires_name():
    document = event_document()
    del document["data"]["attributes"]["name"]

    with pytest.raises(ValueError):
        Event.from_jsonapi(document)


def test_event_times_are_optional():
    event = Event.from_jsonapi({"data": {"attributes": {"name": "Intro Seminar"}}})

    assert event.start_time is None
    assert event.end_time is None


def test_unparseable_event_time_is_rejected():
    with pytest.raises(ValueError):
        Event.from_jsonapi(event_document(event_start="next tuesday"))


def test_parse_instant_treats_naive_values_as_utc():
    assert parse_instant("2025-03-10T13:00:00").tzinfo == timezone.utc
    assert parse_instant("2025-03-10T13:00:00Z").hour == 13


@pytest.mark.parametrize("lat,lon", [(91, 0), (-91, 0), (0, 181), (0, -181)])
def test_coordinate_rejects_out_of_range(lat, lon):
    with pytest.raises(ValueError):
        GeoCoordinate(lat, lon)


def test_coordinate_coerces_to_float():
    coordinate = GeoCoordinate("-22.9", "-47")

    assert coordinate == GeoCoordinate(-22.9, -47.0)


def test_captured_photo_must_not_be_empty():
    with pytest.raises(ValueError):
        CapturedPhoto(data=b"", width=1, height=1)


def test_participant_from_resource():
    participant = Participant.from_resource(
        {"id": "7", "attributes": {"student_name": "Ana", "student_ra": "241403-1", "present": True}}
    )

    assert participant.student_name == "Ana"
    assert participant.present is True
    assert participant.email is None
