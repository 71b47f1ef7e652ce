"""One-shot device position acquisition for the data step."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Mapping, Optional, Protocol

import aiohttp

from ..errors import GeolocationError, GeolocationFailure
from ..models import GeoCoordinate
from ..utils.localization import t


class PositionProvider(Protocol):
    async def current_position(self) -> GeoCoordinate:
        """Return the device position or raise :class:`GeolocationError`."""


class StaticPositionProvider:
    """Position taken from configuration (kiosks installed in one room)."""

    def __init__(self, latitude: Optional[float], longitude: Optional[float]) -> None:
        self._latitude = latitude
        self._longitude = longitude

    async def current_position(self) -> GeoCoordinate:
        if self._latitude is None or self._longitude is None:
            raise GeolocationError(
                GeolocationFailure.UNAVAILABLE, "DEVICE_LATITUDE/DEVICE_LONGITUDE are not set"
            )
        try:
            return GeoCoordinate(self._latitude, self._longitude)
        except ValueError as exc:
            raise GeolocationError(GeolocationFailure.UNAVAILABLE, str(exc)) from exc


def _coordinate_from_lookup(payload: Any) -> GeoCoordinate:
    if not isinstance(payload, Mapping):
        raise GeolocationError(GeolocationFailure.UNAVAILABLE, "Lookup returned no JSON object")
    lat = payload.get("latitude", payload.get("lat"))
    lon = payload.get("longitude", payload.get("lon"))
    if lat is None or lon is None:
        raise GeolocationError(GeolocationFailure.UNAVAILABLE, "Lookup returned no coordinates")
    try:
        return GeoCoordinate(float(lat), float(lon))
    except (TypeError, ValueError) as exc:
        raise GeolocationError(GeolocationFailure.UNAVAILABLE, str(exc)) from exc


class IpPositionProvider:
    """Approximate position from an IP geolocation service."""

    def __init__(
        self,
        url: str,
        *,
        http_session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._http = http_session
        self._timeout = timeout

    async def current_position(self) -> GeoCoordinate:
        owns_session = self._http is None
        session = self._http or aiohttp.ClientSession()
        try:
            async with session.get(
                self._url, timeout=aiohttp.ClientTimeout(total=self._timeout)
            ) as response:
                if response.status >= 400:
                    raise GeolocationError(
                        GeolocationFailure.UNAVAILABLE, f"Lookup answered HTTP {response.status}"
                    )
                payload = await response.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise GeolocationError(GeolocationFailure.TIMEOUT, "Lookup timed out") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise GeolocationError(GeolocationFailure.UNAVAILABLE, str(exc)) from exc
        finally:
            if owns_session:
                await session.close()
        return _coordinate_from_lookup(payload)


class GeolocationState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    ACQUIRED = "acquired"
    ERROR = "error"


def geolocation_error_message(reason: GeolocationFailure) -> str:
    if reason is GeolocationFailure.UNSUPPORTED:
        return t("location_unsupported", "Geolocation is not supported on this device.")
    return t("location_permission", "Allow location access to continue.")


class GeolocationAcquirer:
    """At most one outstanding request per wizard session; no automatic retry."""

    def __init__(
        self,
        provider: Optional[PositionProvider],
        logger: logging.Logger | None = None,
    ) -> None:
        self._provider = provider
        self._logger = logger or logging.getLogger("presence_confirm.geolocation")
        self._state = GeolocationState.IDLE
        self._coordinate: Optional[GeoCoordinate] = None
        self._error_message: Optional[str] = None
        self._error_reason: Optional[GeolocationFailure] = None
        self._pending: Optional[asyncio.Future[Optional[GeoCoordinate]]] = None
        self._generation = 0
        self.requests_issued = 0

    @property
    def state(self) -> GeolocationState:
        return self._state

    @property
    def coordinate(self) -> Optional[GeoCoordinate]:
        return self._coordinate

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def error_reason(self) -> Optional[GeolocationFailure]:
        return self._error_reason

    async def request(self) -> Optional[GeoCoordinate]:
        """Return the held coordinate, join the in-flight query, or issue one."""
        if self._coordinate is not None:
            return self._coordinate
        if self._state is GeolocationState.ERROR:
            return None
        if self._pending is None:
            self._state = GeolocationState.REQUESTING
            self.requests_issued += 1
            self._pending = asyncio.ensure_future(self._query(self._generation))
        return await asyncio.shield(self._pending)

    async def retry(self) -> Optional[GeoCoordinate]:
        """Manual retry after a failure."""
        if self._state is GeolocationState.ERROR:
            self._state = GeolocationState.IDLE
            self._error_message = None
            self._error_reason = None
        return await self.request()

    def reset(self) -> None:
        self._coordinate = None
        self._error_message = None
        self._error_reason = None
        # A query in flight cannot be cancelled; its result is dropped on arrival.
        self._pending = None
        self._generation += 1
        self._state = GeolocationState.IDLE

    async def _query(self, generation: int) -> Optional[GeoCoordinate]:
        try:
            if self._provider is None:
                raise GeolocationError(GeolocationFailure.UNSUPPORTED)
            coordinate = await self._provider.current_position()
        except GeolocationError as exc:
            self._logger.warning("Location request failed: %s", exc)
            if generation == self._generation:
                self._pending = None
                self._state = GeolocationState.ERROR
                self._error_reason = exc.reason
                self._error_message = geolocation_error_message(exc.reason)
            return None

        if generation != self._generation:
            self._logger.debug("Dropping location that arrived after a reset")
            return None
        self._pending = None
        self._coordinate = coordinate
        self._state = GeolocationState.ACQUIRED
        self._logger.info("Location acquired")
        return coordinate


__all__ = [
    "PositionProvider",
    "StaticPositionProvider",
    "IpPositionProvider",
    "GeolocationState",
    "GeolocationAcquirer",
    "geolocation_error_message",
]
