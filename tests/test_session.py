import asyncio
import json
import os

import pytest

from presence_confirm.core.session import (
    AuthService,
    FileTokenStore,
    MemoryTokenStore,
    SessionContext,
    extract_token,
)
from presence_confirm.errors import ApiError


class FakeSignIn:
    def __init__(self, payload, header):
        self.payload = payload
        self.header = header
        self.calls = []

    async def sign_in(self, email, password):
        self.calls.append((email, password))
        return self.payload, self.header


USER_DOCUMENT = {"data": {"id": "7", "attributes": {"name": "Ana", "email": "ana@example.edu"}}}


def test_extract_token_strips_bearer_prefix():
    assert extract_token("Bearer abc.def") == "abc.def"
    assert extract_token("abc.def") == "abc.def"
    assert extract_token("Bearer ") is None
    assert extract_token(None) is None


def test_file_store_round_trip_and_clear(tmp_path):
    path = tmp_path / "state" / "session.json"
    store = FileTokenStore(path)

    assert store.load() is None
    store.save("abc")

    assert json.loads(path.read_text(encoding="utf-8")) == {"token": "abc"}
    if os.name == "posix":
        assert path.stat().st_mode & 0o777 == 0o600
    assert FileTokenStore(path).load() == "abc"

    store.clear()
    store.clear()
    assert not path.exists()


def test_file_store_ignores_corrupted_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    assert FileTokenStore(path).load() is None


def test_session_context_restores_persisted_token():
    session = SessionContext(MemoryTokenStore("persisted")).init()

    assert session.token == "persisted"
    assert session.is_authenticated


def test_login_stores_token_and_user():
    store = MemoryTokenStore()
    session = SessionContext(store).init()
    api = FakeSignIn(USER_DOCUMENT, "Bearer t0k3n")

    user = asyncio.run(AuthService(api, session).login("ana@example.edu", "pw"))

    assert user.name == "Ana"
    assert session.token == "t0k3n"
    assert session.user == user
    assert store.token == "t0k3n"
    assert api.calls == [("ana@example.edu", "pw")]


def test_login_without_authorization_header_fails():
    session = SessionContext(MemoryTokenStore()).init()
    api = FakeSignIn(USER_DOCUMENT, None)

    with pytest.raises(ApiError):
        asyncio.run(AuthService(api, session).login("ana@example.edu", "pw"))
    assert not session.is_authenticated


def test_logout_clears_memory_and_store(tmp_path):
    store = FileTokenStore(tmp_path / "session.json")
    session = SessionContext(store).init()
    session.begin("abc")

    AuthService(FakeSignIn({}, None), session).logout()

    assert session.token is None
    assert SessionContext(store).init().token is None
