"""OpenCV camera backend and mirrored preview window."""

from __future__ import annotations

import logging
from typing import Any, Tuple

import cv2

from ..core.camera import CameraConstraints
from ..errors import CameraError, CameraFailure

logger = logging.getLogger("presence_confirm.devices.camera")

PREVIEW_WINDOW = "presence-confirm"


class OpenCVStream:
    """Exclusive handle on a ``cv2.VideoCapture``."""

    def __init__(self, capture: "cv2.VideoCapture") -> None:
        self._capture = capture

    def read(self) -> Any:
        ok, frame = self._capture.read()
        return frame if ok else None

    def frame_size(self, frame: Any) -> Tuple[int, int]:
        height, width = frame.shape[:2]
        return int(width), int(height)

    def encode_jpeg(self, frame: Any, quality: int) -> bytes:
        ok, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
        if not ok:
            raise CameraError(CameraFailure.UNKNOWN, "JPEG encoding failed")
        return buffer.tobytes()

    def release(self) -> None:
        self._capture.release()


class OpenCVCamera:
    """Opens camera ``index``; resolution requests that the driver refuses are overconstrained."""

    def __init__(self, index: int = 0) -> None:
        self.index = index

    def open(self, constraints: CameraConstraints) -> OpenCVStream:
        try:
            capture = cv2.VideoCapture(self.index)
        except cv2.error as exc:
            raise CameraError(CameraFailure.UNKNOWN, str(exc)) from exc
        if not capture.isOpened():
            capture.release()
            raise CameraError(CameraFailure.DEVICE_NOT_FOUND, f"No camera at index {self.index}")

        if constraints.width and constraints.height:
            accepted = capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width) and capture.set(
                cv2.CAP_PROP_FRAME_HEIGHT, constraints.height
            )
            if not accepted:
                capture.release()
                raise CameraError(
                    CameraFailure.OVERCONSTRAINED,
                    f"Camera refused {constraints.width}x{constraints.height}",
                )

        # A device held by another process opens but yields no frames.
        ok, _ = capture.read()
        if not ok:
            capture.release()
            raise CameraError(CameraFailure.DEVICE_BUSY, f"Camera {self.index} returned no frames")

        logger.debug(
            "Opened camera %s at %sx%s",
            self.index,
            int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        return OpenCVStream(capture)


class OpenCVPreviewWindow:
    """Preview sink; frames are flipped horizontally for a selfie view only here."""

    def __init__(self, title: str = PREVIEW_WINDOW) -> None:
        self.title = title
        self._open = False

    def show(self, frame: Any) -> None:
        cv2.imshow(self.title, cv2.flip(frame, 1))
        cv2.waitKey(1)
        self._open = True

    def close(self) -> None:
        if self._open:
            cv2.destroyWindow(self.title)
            cv2.waitKey(1)
            self._open = False


__all__ = ["OpenCVCamera", "OpenCVStream", "OpenCVPreviewWindow"]
