"""Admin session: token persistence and sign-in.

The token lives in an explicit :class:`SessionContext` that callers pass
around. ``init()`` restores a persisted token; ``teardown()`` clears it from
memory and from disk.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Protocol, Tuple

from ..errors import ApiError
from ..models import User
from ..utils.localization import t

logger = logging.getLogger("presence_confirm.session")

BEARER_PREFIX = "Bearer "


class TokenStore(Protocol):
    def load(self) -> Optional[str]:
        ...

    def save(self, token: str) -> None:
        ...

    def clear(self) -> None:
        ...


class FileTokenStore:
    """Persisted session state kept in a small JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            # corrupted file; a new one is written on the next sign-in
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None
        token = payload.get("token") if isinstance(payload, dict) else None
        return token if isinstance(token, str) and token else None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token}, indent=2), encoding="utf-8")
        try:
            os.chmod(self.path, 0o600)
        except OSError as exc:
            logger.debug("Could not restrict permissions on %s: %s", self.path, exc)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class MemoryTokenStore:
    def __init__(self, token: Optional[str] = None) -> None:
        self.token = token

    def load(self) -> Optional[str]:
        return self.token

    def save(self, token: str) -> None:
        self.token = token

    def clear(self) -> None:
        self.token = None


def extract_token(header: Optional[str]) -> Optional[str]:
    """Strip the ``Bearer `` prefix from an Authorization header."""
    if not header:
        return None
    token = header.replace(BEARER_PREFIX, "", 1).strip()
    return token or None


class SessionContext:
    def __init__(self, store: TokenStore) -> None:
        self._store = store
        self._token: Optional[str] = None
        self.user: Optional[User] = None

    def init(self) -> "SessionContext":
        self._token = self._store.load()
        if self._token:
            logger.debug("Restored persisted session")
        return self

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def begin(self, token: str, user: Optional[User] = None) -> None:
        self._token = token
        self.user = user
        self._store.save(token)

    def teardown(self) -> None:
        self._token = None
        self.user = None
        self._store.clear()


class SignInEndpoint(Protocol):
    async def sign_in(self, email: str, password: str) -> Tuple[Any, Optional[str]]:
        ...


class AuthService:
    def __init__(self, api: SignInEndpoint, session: SessionContext) -> None:
        self._api = api
        self._session = session

    async def login(self, email: str, password: str) -> User:
        payload, header = await self._api.sign_in(email, password)
        token = extract_token(header)
        if token is None:
            raise ApiError(200, t("auth_no_token", "The server did not return a session token"), payload)
        user = User.from_jsonapi(payload or {})
        self._session.begin(token, user)
        logger.info("Signed in as %s", user.email or email)
        return user

    def logout(self) -> None:
        self._session.teardown()
        logger.info("Signed out")


__all__ = [
    "TokenStore",
    "FileTokenStore",
    "MemoryTokenStore",
    "SessionContext",
    "AuthService",
    "extract_token",
]
