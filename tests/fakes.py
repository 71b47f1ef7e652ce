"""Hand-written collaborators shared by the tests."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, List, Optional, Sequence

from presence_confirm.core.camera import CameraConstraints
from presence_confirm.errors import ApiError, ApiNetworkError, CameraError, GeolocationError
from presence_confirm.models import CapturedPhoto, GeoCoordinate


def event_document(**attributes: Any) -> dict:
    base = {
        "name": "Intro Seminar",
        "description": "Opening session",
        "event_start": "2025-03-10T13:00:00Z",
        "event_end": "2025-03-10T15:00:00Z",
        "location_optional": False,
        "location": {"amenity": "Library", "road": "Main Street", "town": "Campinas", "state": "SP"},
        "latitude": -22.9,
        "longitude": -47.06,
    }
    base.update(attributes)
    return {"data": {"id": "evt-1", "type": "event", "attributes": base}}


def make_photo(tag: str = "selfie") -> CapturedPhoto:
    return CapturedPhoto(data=f"jpeg:{tag}".encode(), width=640, height=480)


class RecordingSleep:
    """Stands in for asyncio.sleep; yields once so other tasks can run."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await asyncio.sleep(0)


class FakeStream:
    def __init__(self, label: str, frames: Optional[Sequence[Any]] = None) -> None:
        self.label = label
        self.frames = list(frames) if frames is not None else [f"{label}-frame"]
        self.reads = 0
        self.release_count = 0
        self.encoded_quality: Optional[int] = None

    def read(self) -> Any:
        self.reads += 1
        if not self.frames:
            return None
        if len(self.frames) > 1:
            return self.frames.pop(0)
        return self.frames[0]

    def frame_size(self, frame: Any) -> tuple:
        return 640, 480

    def encode_jpeg(self, frame: Any, quality: int) -> bytes:
        self.encoded_quality = quality
        return f"jpeg:{frame}".encode()

    def release(self) -> None:
        self.release_count += 1

    @property
    def released(self) -> bool:
        return self.release_count > 0


class FakeCameraDevice:
    """Raises the queued errors first, then hands out a fresh stream per open."""

    def __init__(self, failures: Sequence[CameraError] = (), frames: Optional[Sequence[Any]] = None) -> None:
        self.failures = list(failures)
        self.frames = frames
        self.constraints: List[CameraConstraints] = []
        self.streams: List[FakeStream] = []
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()

    def open(self, constraints: CameraConstraints) -> FakeStream:
        self.constraints.append(constraints)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.failures:
            raise self.failures.pop(0)
        stream = FakeStream(f"stream{len(self.streams) + 1}", self.frames)
        self.streams.append(stream)
        return stream


class RecordingSink:
    def __init__(self) -> None:
        self.frames: List[Any] = []
        self.closed = False

    def show(self, frame: Any) -> None:
        self.frames.append(frame)

    def close(self) -> None:
        self.closed = True


class FakePositionProvider:
    """Returns queued coordinates or raises queued errors, one per query."""

    def __init__(self, *results: Any) -> None:
        self.results = list(results)
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None

    async def current_position(self) -> GeoCoordinate:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, GeolocationError):
            raise result
        return result


class FakePresenceEndpoint:
    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes) or [{"data": {"type": "participant"}}]
        self.calls: List[tuple] = []
        self.gate: Optional[asyncio.Event] = None

    async def confirm_presence(self, event_id, registration_number, coordinate, photo):
        self.calls.append((event_id, registration_number, coordinate, photo))
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, (ApiError, ApiNetworkError)):
            raise outcome
        return outcome
