"""
██████╗  ██████╗  ███████╗ ███████╗ ███████╗ ███╗   ██╗  ██████╗ ███████╗
██╔══██╗ ██╔══██╗ ██╔════╝ ██╔════╝ ██╔════╝ ████╗  ██║ ██╔════╝ ██╔════╝
██████╔╝ ██████╔╝ █████╗   ███████╗ █████╗   ██╔██╗ ██║ ██║      █████╗
██╔═══╝  ██╔══██╗ ██╔══╝   ╚════██║ ██╔══╝   ██║╚██╗██║ ██║      ██╔══╝
██║      ██║  ██║ ███████╗ ███████║ ███████╗ ██║ ╚████║ ╚██████╗ ███████╗
╚═╝      ╚═╝  ╚═╝ ╚══════╝ ╚══════╝ ╚══════╝ ╚═╝  ╚═══╝  ╚═════╝ ╚══════╝
src/presence_confirm/api.py
HTTP client for the attendance backend.

The backend speaks a JSON:API-flavoured dialect (``data``/``attributes``/
``included``/``meta``). Public participant endpoints are unauthenticated;
``/admin`` endpoints expect the bearer token held by the session context.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

import aiohttp

from .errors import (
    ApiError,
    ApiNetworkError,
    ApiNotFoundError,
    AuthenticationRequired,
    ConfigurationError,
)
from .models import CapturedPhoto, GeoCoordinate
from .utils.localization import t
from .utils.logger import debug_detail, get_logger

if TYPE_CHECKING:
    from .core.session import SessionContext

log = get_logger("api")

PARTICIPANT_RESOURCE_TYPE = "participant"


def format_coordinate(value: float) -> str:
    """Render a coordinate the way the web client did (no trailing ``.0``)."""
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text


def extract_error_message(
    payload: Any,
    status: int,
    reason: Optional[str] = None,
    *,
    fallback_key: str = "error_status",
    fallback: str = "Error: {status}",
) -> str:
    """Pull a human-readable message out of an error body.

    Looks at ``error``, ``message`` and JSON:API ``errors[0]`` in that order
    and falls back to a generic status line.
    """
    if isinstance(payload, Mapping):
        for key in ("error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, Mapping):
                for key in ("detail", "title"):
                    value = first.get(key)
                    if isinstance(value, str) and value.strip():
                        return value.strip()
            elif isinstance(first, str) and first.strip():
                return first.strip()
    return t(fallback_key, fallback, status=status, reason=reason or "").strip()


def build_presence_form(
    registration_number: str,
    coordinate: GeoCoordinate,
    photo: CapturedPhoto,
) -> aiohttp.FormData:
    """Multipart body for ``confirm_presence``; field names nest like JSON:API."""
    form = aiohttp.FormData()
    form.add_field("data[type]", PARTICIPANT_RESOURCE_TYPE)
    form.add_field("data[attributes][ra]", registration_number.strip())
    form.add_field("data[attributes][latitude]", format_coordinate(coordinate.latitude))
    form.add_field("data[attributes][longitude]", format_coordinate(coordinate.longitude))
    form.add_field(
        "photo",
        photo.data,
        filename=photo.filename,
        content_type=photo.content_type,
    )
    return form


def _decode_body(raw: bytes) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None


class PresenceApiClient:
    """Thin async wrapper over one :class:`aiohttp.ClientSession`."""

    def __init__(
        self,
        base_url: str,
        *,
        session_context: Optional["SessionContext"] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        base_url = (base_url or "").strip().rstrip("/")
        if not base_url:
            raise ConfigurationError(t("server_url_missing", "Server URL is not configured"))
        self.base_url = base_url
        self._session_context = session_context
        self._http = http_session
        self._owns_http = http_session is None

    async def __aenter__(self) -> "PresenceApiClient":
        if self._http is None:
            # No client-side deadline: the flow relies on the server and the user.
            self._http = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
            self._owns_http = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.close()
        self._http = None

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _auth_headers(self) -> Dict[str, str]:
        token = self._session_context.token if self._session_context else None
        if not token:
            raise AuthenticationRequired(t("auth_required", "You need to sign in first"))
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        authenticated: bool = False,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Any = None,
        form: Optional[aiohttp.FormData] = None,
        error_fallback: Tuple[str, str] = ("error_status", "Error: {status}"),
    ) -> Tuple[int, Any, Mapping[str, str]]:
        if self._http is None:
            raise RuntimeError("PresenceApiClient must be used as an async context manager")
        headers = {"Accept": "application/json"}
        if authenticated:
            headers.update(self._auth_headers())
        url = self.url(path)
        debug_detail(f"{method} {url}")
        try:
            async with self._http.request(
                method,
                url,
                params=params,
                json=json_body,
                data=form,
                headers=headers,
            ) as response:
                raw = await response.read()
                payload = _decode_body(raw)
                status = response.status
                reason = response.reason
                response_headers = response.headers
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            log.warning("%s %s failed without a response: %s", method, url, exc)
            raise ApiNetworkError(str(exc) or exc.__class__.__name__) from exc

        debug_detail(f"{method} {url} -> {status}")
        if 200 <= status < 300:
            return status, payload, response_headers
        fallback_key, fallback = error_fallback
        message = extract_error_message(
            payload, status, reason, fallback_key=fallback_key, fallback=fallback
        )
        if status == 404:
            raise ApiNotFoundError(status, message, payload)
        raise ApiError(status, message, payload)

    # ------------------------------------------------------------------ public participant endpoints

    async def get_public_event(self, event_id: str) -> Any:
        _, payload, _ = await self._request("GET", f"participants/{quote(str(event_id), safe='')}")
        return payload

    async def confirm_presence(
        self,
        event_id: str,
        registration_number: str,
        coordinate: GeoCoordinate,
        photo: CapturedPhoto,
    ) -> Any:
        form = build_presence_form(registration_number, coordinate, photo)
        _, payload, _ = await self._request(
            "PATCH",
            f"participants/{quote(str(event_id), safe='')}/confirm_presence",
            form=form,
        )
        return payload

    # ------------------------------------------------------------------ session

    async def sign_in(self, email: str, password: str) -> Tuple[Any, Optional[str]]:
        """POST the credentials; returns the body and the raw Authorization header."""
        body = {"user": {"email": email, "password": password}}
        _, payload, headers = await self._request(
            "POST",
            "users/sign_in",
            json_body=body,
            error_fallback=("auth_failed_status", "Authentication error: {status} {reason}"),
        )
        return payload, headers.get("Authorization")

    # ------------------------------------------------------------------ admin endpoints

    async def get_admin_event(self, event_id: str) -> Any:
        _, payload, _ = await self._request(
            "GET",
            f"admin/events/{quote(str(event_id), safe='')}",
            authenticated=True,
            params={"include": "courses,class_rooms"},
        )
        return payload

    async def list_event_participants(
        self,
        event_id: str,
        *,
        per_page: int,
        page: Optional[int] = None,
    ) -> Any:
        params: Dict[str, Any] = {"per_page": per_page}
        if page is not None:
            params["page"] = page
        params["q[s]"] = "student_name asc"
        _, payload, _ = await self._request(
            "GET",
            f"admin/events/{quote(str(event_id), safe='')}/participants",
            authenticated=True,
            params=params,
        )
        return payload


__all__ = [
    "PresenceApiClient",
    "build_presence_form",
    "extract_error_message",
    "format_coordinate",
]
