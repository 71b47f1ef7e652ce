"""Console consent prompts standing in front of the camera and location sources.

Consent is asked once per process and remembered, like a browser remembers a
granted permission for the page.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..core.camera import CameraConstraints, CameraDevice, CameraStream
from ..core.geolocation import PositionProvider
from ..errors import CameraError, CameraFailure, GeolocationError, GeolocationFailure
from ..models import GeoCoordinate

logger = logging.getLogger("presence_confirm.devices.permissions")

Ask = Callable[[str], bool]


class ConsentGate:
    def __init__(self, ask: Ask, question: str) -> None:
        self._ask = ask
        self._question = question
        self._granted: Optional[bool] = None

    @property
    def granted(self) -> Optional[bool]:
        return self._granted

    def check(self) -> bool:
        # A denial is asked again on the next attempt so "try again" can grant it.
        if self._granted:
            return True
        self._granted = bool(self._ask(self._question))
        logger.debug("Consent %s: %s", self._question, "granted" if self._granted else "denied")
        return self._granted


class ConsentedCamera:
    def __init__(self, device: CameraDevice, gate: ConsentGate) -> None:
        self._device = device
        self._gate = gate

    def open(self, constraints: CameraConstraints) -> CameraStream:
        if not self._gate.check():
            raise CameraError(CameraFailure.PERMISSION_DENIED)
        return self._device.open(constraints)


class ConsentedPositionProvider:
    def __init__(self, provider: PositionProvider, gate: ConsentGate) -> None:
        self._provider = provider
        self._gate = gate

    async def current_position(self) -> GeoCoordinate:
        if not await asyncio.to_thread(self._gate.check):
            raise GeolocationError(GeolocationFailure.PERMISSION_DENIED)
        return await self._provider.current_position()


__all__ = ["ConsentGate", "ConsentedCamera", "ConsentedPositionProvider"]
