"""Shared fixtures: an isolated cache directory and a fake Supabase backend."""

import itertools
import json
import logging
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from services.document_store.DocumentStore import DocumentStore
from shared.cache.LocalCache import LocalCache
from shared.clients.remote.RemoteClientManager import RemoteClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import RemoteConfig

ENDPOINT = "https://demo.supabase.co"
ANON_KEY = "anon-key-0123456789abcdef"


class FakeSupabase:
    """In-memory stand-in for the GoTrue and PostgREST endpoints the remote client talks to.

    Pass an instance to httpx.MockTransport. Every request is recorded in
    ``calls`` as ``(method, path)``.
    """

    def __init__(self, table: str = "documents") -> None:
        self.table = table
        self.users: dict[str, dict] = {}
        self.access_tokens: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.rows: list[dict] = []
        self.calls: list[tuple[str, str]] = []
        self.auto_confirm = True
        self.fail_rows = False
        self._seq = itertools.count(1)

    # -- test helpers -------------------------------------------------

    def add_user(self, email: str, password: str) -> str:
        user_id = f"user-{next(self._seq)}"
        self.users[email] = {"id": user_id, "email": email, "password": password}
        return user_id

    def expire_access_tokens(self) -> None:
        self.access_tokens.clear()

    def revoke_all(self) -> None:
        self.access_tokens.clear()
        self.refresh_tokens.clear()

    def rows_for(self, user_id: str) -> list[dict]:
        return [r for r in self.rows if r["user_id"] == user_id]

    def row_calls(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[1].startswith("/rest/v1/")]

    # -- transport ----------------------------------------------------

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))
        if request.headers.get("apikey") != ANON_KEY:
            return httpx.Response(401, json={"message": "Invalid API key"})
        if path == "/auth/v1/health":
            return httpx.Response(200, json={"name": "GoTrue"})
        if path == "/auth/v1/token":
            return self._token(request)
        if path == "/auth/v1/signup":
            return self._signup(request)
        if path == "/auth/v1/logout":
            self.access_tokens.pop(self._bearer(request), None)
            return httpx.Response(204)
        if path == "/auth/v1/user":
            user = self._current_user(request)
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json={"id": user["id"], "email": user["email"]})
        if path == f"/rest/v1/{self.table}":
            return self._rows(request)
        return httpx.Response(404, json={"message": f"no route for {path}"})

    def _bearer(self, request: httpx.Request) -> str:
        return request.headers.get("authorization", "").removeprefix("Bearer ")

    def _current_user(self, request: httpx.Request) -> dict | None:
        user_id = self.access_tokens.get(self._bearer(request))
        return next((u for u in self.users.values() if u["id"] == user_id), None)

    def _issue(self, user: dict) -> dict:
        n = next(self._seq)
        access, refresh = f"access-{n}", f"refresh-{n}"
        self.access_tokens[access] = user["id"]
        self.refresh_tokens[refresh] = user["id"]
        return {
            "access_token": access,
            "refresh_token": refresh,
            "token_type": "bearer",
            "user": {"id": user["id"], "email": user["email"]},
        }

    def _token(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        grant = request.url.params.get("grant_type")
        if grant == "password":
            user = self.users.get(body.get("email"))
            if user is None or user["password"] != body.get("password"):
                return httpx.Response(400, json={"error_description": "Invalid login credentials"})
            return httpx.Response(200, json=self._issue(user))
        if grant == "refresh_token":
            user_id = self.refresh_tokens.pop(body.get("refresh_token"), None)
            user = next((u for u in self.users.values() if u["id"] == user_id), None)
            if user is None:
                return httpx.Response(400, json={"error_description": "Invalid Refresh Token"})
            return httpx.Response(200, json=self._issue(user))
        return httpx.Response(400, json={"error_description": "unsupported grant_type"})

    def _signup(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body.get("email") in self.users:
            return httpx.Response(422, json={"msg": "User already registered"})
        self.add_user(body["email"], body["password"])
        user = self.users[body["email"]]
        if self.auto_confirm:
            return httpx.Response(200, json=self._issue(user))
        return httpx.Response(200, json={"id": user["id"], "email": user["email"]})

    def _rows(self, request: httpx.Request) -> httpx.Response:
        user = self._current_user(request)
        if user is None:
            return httpx.Response(401, json={"message": "JWT expired"})
        if self.fail_rows:
            return httpx.Response(500, json={"message": "database unavailable"})

        if request.method == "GET":
            owned = sorted(self.rows_for(user["id"]), key=lambda r: r["created_at"], reverse=True)
            return httpx.Response(200, json=[{k: v for k, v in r.items() if k != "created_at"} for r in owned])
        if request.method == "POST":
            for row in json.loads(request.content):
                self.rows.append({**row, "created_at": next(self._seq)})
            return httpx.Response(201)
        if request.method == "PATCH":
            target = request.url.params["id"].removeprefix("eq.")
            changes = json.loads(request.content)
            for row in self.rows:
                if row["id"] == target and row["user_id"] == user["id"]:
                    row.update(changes)
            return httpx.Response(204)
        if request.method == "DELETE":
            inner = request.url.params["id"].removeprefix("in.(").removesuffix(")")
            ids = {i.strip('"') for i in inner.split(",")}
            self.rows = [r for r in self.rows if not (r["id"] in ids and r["user_id"] == user["id"])]
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ROOT_DIR and the cache at a temporary directory and clear optional settings."""
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    monkeypatch.setenv("DTS_CACHE_DIR", str(tmp_path / "cache"))
    for key in ("APP_API_KEY", "REMOTE_ENGINE", "REMOTE_TABLE", "REMOTE_TIMEOUT", "REMOTE_PERSIST_SESSION"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("dts_tracker.tests"))


@pytest.fixture
def cache(helper_config: HelperConfig) -> LocalCache:
    return LocalCache(helper_config=helper_config)


@pytest.fixture
def remote_config() -> RemoteConfig:
    return RemoteConfig(endpoint=ENDPOINT, key=ANON_KEY)


@pytest.fixture
def fake_backend() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def transport(fake_backend: FakeSupabase) -> httpx.MockTransport:
    return httpx.MockTransport(fake_backend)


@pytest.fixture
def id_factory():
    """Deterministic ids: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest_asyncio.fixture
async def remote_manager(helper_config, cache, transport):
    manager = RemoteClientManager(helper_config=helper_config, cache=cache, transport=transport)
    yield manager
    await manager.teardown()


@pytest_asyncio.fixture
async def store(helper_config, cache, remote_manager, id_factory):
    document_store = DocumentStore(
        helper_config=helper_config,
        cache=cache,
        remote_manager=remote_manager,
        id_factory=id_factory,
    )
    yield document_store
    await document_store.close()
