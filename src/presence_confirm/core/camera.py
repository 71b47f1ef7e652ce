"""
██████╗  ██████╗  ███████╗ ███████╗ ███████╗ ███╗   ██╗  ██████╗ ███████╗
██╔══██╗ ██╔══██╗ ██╔════╝ ██╔════╝ ██╔════╝ ████╗  ██║ ██╔════╝ ██╔════╝
██████╔╝ ██████╔╝ █████╗   ███████╗ █████╗   ██╔██╗ ██║ ██║      █████╗
██╔═══╝  ██╔══██╗ ██╔══╝   ╚════██║ ██╔══╝   ██║╚██╗██║ ██║      ██╔══╝
██║      ██║  ██║ ███████╗ ███████║ ███████╗ ██║ ╚████║ ╚██████╗ ███████╗
╚═╝      ╚═╝  ╚═╝ ╚══════╝ ╚══════╝ ╚══════╝ ╚═╝  ╚═══╝  ╚═════╝ ╚══════╝
src/presence_confirm/core/camera.py
Camera capture controller for the selfie step.

The controller is the only owner of the camera stream. It opens the device,
feeds frames to an optional preview sink, encodes one still frame as JPEG and
releases the device on every exit path (capture, retake, stop, reset).
Device calls block, so they run in worker threads.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol, Tuple

from ..errors import CameraError, CameraFailure
from ..models import CapturedPhoto
from ..utils.localization import t

DEFAULT_JPEG_QUALITY = 80
DEFAULT_RESTART_DELAY = 0.1
DEFAULT_FRAME_INTERVAL = 1 / 30


@dataclass(frozen=True)
class CameraConstraints:
    """Ideal capture settings; ``any()`` asks for whatever video input exists."""

    width: Optional[int] = None
    height: Optional[int] = None
    facing_mode: Optional[str] = None

    @classmethod
    def preferred(cls, width: int = 1280, height: int = 720) -> "CameraConstraints":
        return cls(width=width, height=height, facing_mode="user")

    @classmethod
    def any(cls) -> "CameraConstraints":
        return cls()

    @property
    def is_relaxed(self) -> bool:
        return self.width is None and self.height is None and self.facing_mode is None


class CameraStream(Protocol):
    """An open, exclusive handle on a video input."""

    def read(self) -> Any:
        """Return the next frame, or None when no frame is available."""

    def frame_size(self, frame: Any) -> Tuple[int, int]:
        """Return ``(width, height)`` of a frame at native resolution."""

    def encode_jpeg(self, frame: Any, quality: int) -> bytes:
        """Encode a frame as JPEG without mirroring it."""

    def release(self) -> None:
        """Free the device."""


class CameraDevice(Protocol):
    def open(self, constraints: CameraConstraints) -> CameraStream:
        """Acquire the device or raise :class:`CameraError`."""


class PreviewSink(Protocol):
    """View-side surface that renders live frames (mirrored for selfies)."""

    def show(self, frame: Any) -> None:
        ...

    def close(self) -> None:
        ...


class CameraState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    CAPTURED = "captured"
    ERROR = "error"


def camera_error_message(reason: CameraFailure) -> str:
    """User-facing sentence for a camera failure."""
    messages = {
        CameraFailure.PERMISSION_DENIED: (
            "camera_permission_denied",
            "Camera permission denied. Please allow camera access in your settings.",
        ),
        CameraFailure.DEVICE_NOT_FOUND: (
            "camera_not_found",
            "No camera found. Check that a camera is connected.",
        ),
        CameraFailure.DEVICE_BUSY: (
            "camera_busy",
            "The camera is being used by another application. Close other applications that use the camera.",
        ),
        CameraFailure.INSECURE_CONTEXT: (
            "camera_insecure_context",
            "Camera access requires HTTPS or localhost. Please use an HTTPS server address.",
        ),
        CameraFailure.UNSUPPORTED: (
            "camera_unsupported",
            "Camera access is not supported on this system.",
        ),
    }
    key, fallback = messages.get(reason, ("camera_generic_error", "Could not access the camera."))
    return t(key, fallback)


class CameraCaptureController:
    """State machine: IDLE → REQUESTING → STREAMING → CAPTURED, or ERROR."""

    def __init__(
        self,
        device: Optional[CameraDevice],
        *,
        secure_context: bool,
        constraints: Optional[CameraConstraints] = None,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
        restart_delay: float = DEFAULT_RESTART_DELAY,
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._device = device
        self._secure_context = secure_context
        self._constraints = constraints or CameraConstraints.preferred()
        self._quality = jpeg_quality
        self._restart_delay = restart_delay
        self._frame_interval = frame_interval
        self._logger = logger or logging.getLogger("presence_confirm.camera")
        self._sleep = sleep

        self._state = CameraState.IDLE
        self._error_reason: Optional[CameraFailure] = None
        self._error_message: Optional[str] = None
        self._stream: Optional[CameraStream] = None
        self._sink: Optional[PreviewSink] = None
        self._latest_frame: Any = None
        self._pump_task: Optional[asyncio.Task[None]] = None
        self._pumping = False
        # Bumped whenever the stream is torn down; a late open() for an older
        # generation releases its stream immediately.
        self._generation = 0

        self.streams_opened = 0
        self.streams_released = 0

    # ------------------------------------------------------------------ properties

    @property
    def state(self) -> CameraState:
        return self._state

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def error_reason(self) -> Optional[CameraFailure]:
        return self._error_reason

    @property
    def is_streaming(self) -> bool:
        return self._state is CameraState.STREAMING

    @property
    def active_streams(self) -> int:
        return self.streams_opened - self.streams_released

    # ------------------------------------------------------------------ preview hook

    def attach(self, sink: PreviewSink) -> None:
        self._sink = sink
        if self._state is CameraState.STREAMING:
            self._start_pump()

    async def detach(self) -> None:
        await self._stop_pump()
        sink, self._sink = self._sink, None
        if sink is not None:
            sink.close()

    # ------------------------------------------------------------------ lifecycle

    async def start(self) -> None:
        if self._state in (CameraState.REQUESTING, CameraState.STREAMING, CameraState.CAPTURED):
            return
        if not self._secure_context:
            self._fail(CameraFailure.INSECURE_CONTEXT)
            return
        if self._device is None:
            self._fail(CameraFailure.UNSUPPORTED)
            return

        self._state = CameraState.REQUESTING
        self._error_reason = None
        self._error_message = None
        generation = self._generation
        self._logger.debug("Requesting camera with %s", self._constraints)

        try:
            stream = await self._open(self._constraints)
        except CameraError as exc:
            if exc.reason is not CameraFailure.OVERCONSTRAINED:
                self._logger.warning("Camera request failed: %s", exc.reason.value)
                if generation == self._generation:
                    self._fail(exc.reason)
                return
            self._logger.info("Camera rejected the requested settings; retrying with any video input")
            try:
                stream = await self._open(CameraConstraints.any())
            except CameraError as fallback_exc:
                self._logger.warning("Fallback camera request failed: %s", fallback_exc.reason.value)
                if generation == self._generation:
                    self._fail(CameraFailure.UNKNOWN)
                return

        if generation != self._generation:
            self._logger.debug("Camera opened after it was stopped; releasing it")
            await self._release_handle(stream)
            return

        self._stream = stream
        self._latest_frame = None
        self._state = CameraState.STREAMING
        self._logger.info("Camera streaming")
        if self._sink is not None:
            self._start_pump()

    async def capture(self) -> Optional[CapturedPhoto]:
        """Encode the current frame and release the camera."""
        stream = self._stream
        if self._state is not CameraState.STREAMING or stream is None:
            return None

        frame = self._latest_frame if self._pumping else None
        await self._stop_pump()
        try:
            if frame is None:
                frame = await asyncio.to_thread(stream.read)
            if frame is None:
                raise CameraError(CameraFailure.DEVICE_BUSY, "Camera returned no frame to capture")
            width, height = stream.frame_size(frame)
            data = await asyncio.to_thread(stream.encode_jpeg, frame, self._quality)
            photo = CapturedPhoto(data=data, width=width, height=height)
        except CameraError as exc:
            self._logger.warning("Capture failed: %s", exc)
            await self._release()
            self._fail(exc.reason)
            return None
        except ValueError as exc:
            # empty encoder output
            self._logger.warning("Capture failed: %s", exc)
            await self._release()
            self._fail(CameraFailure.UNKNOWN)
            return None
        await self._release()
        self._state = CameraState.CAPTURED
        self._logger.info("Captured %dx%d photo (%d bytes)", width, height, photo.size)
        return photo

    async def retake(self) -> None:
        await self._release()
        self._state = CameraState.IDLE
        self._error_reason = None
        self._error_message = None
        await self._sleep(self._restart_delay)
        await self.start()

    async def retry(self) -> None:
        """Manual "try again" after an error."""
        if self._state is CameraState.ERROR:
            self._state = CameraState.IDLE
        await self.start()

    async def stop(self) -> None:
        """Release the camera; a captured photo stays captured."""
        await self._release()
        if self._state in (CameraState.REQUESTING, CameraState.STREAMING):
            self._state = CameraState.IDLE

    async def reset(self) -> None:
        await self._release()
        self._state = CameraState.IDLE
        self._error_reason = None
        self._error_message = None

    # ------------------------------------------------------------------ internals

    async def _open(self, constraints: CameraConstraints) -> CameraStream:
        assert self._device is not None
        stream = await asyncio.to_thread(self._device.open, constraints)
        self.streams_opened += 1
        return stream

    async def _release(self) -> None:
        self._generation += 1
        await self._stop_pump()
        stream, self._stream = self._stream, None
        self._latest_frame = None
        if stream is not None:
            await self._release_handle(stream)

    async def _release_handle(self, stream: CameraStream) -> None:
        try:
            await asyncio.to_thread(stream.release)
        finally:
            self.streams_released += 1
            self._logger.debug("Camera released")

    def _fail(self, reason: CameraFailure) -> None:
        self._state = CameraState.ERROR
        self._error_reason = reason
        self._error_message = camera_error_message(reason)

    def _start_pump(self) -> None:
        if self._pump_task is not None and not self._pump_task.done():
            return
        self._pumping = True
        self._pump_task = asyncio.ensure_future(self._pump())

    async def _stop_pump(self) -> None:
        self._pumping = False
        task, self._pump_task = self._pump_task, None
        if task is not None:
            # Let the in-flight read finish; the stream is not thread-safe.
            await task

    async def _pump(self) -> None:
        while self._pumping and self._stream is not None:
            stream = self._stream
            frame = await asyncio.to_thread(stream.read)
            if not self._pumping:
                if frame is not None:
                    self._latest_frame = frame
                break
            if frame is not None:
                self._latest_frame = frame
                sink = self._sink
                if sink is not None:
                    sink.show(frame)
            await self._sleep(self._frame_interval)


__all__ = [
    "CameraConstraints",
    "CameraStream",
    "CameraDevice",
    "PreviewSink",
    "CameraState",
    "CameraCaptureController",
    "camera_error_message",
]
