"""Shared fixtures: account factories, a recording navigator, and a fake
backend served through ``httpx.MockTransport``."""

import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest

from jobgate.clients.api_client import ApiClient
from jobgate.schemas.account import AccountSnapshot

TEST_BASE_URL = "http://backend.test"

# Test-only token values.
TEST_ACCESS_TOKEN = "access-token-1"  # nosec B105
TEST_REFRESHED_TOKEN = "access-token-2"  # nosec B105

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingNavigator:
    """Navigator that records every ``replace`` call instead of moving."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def replace(self, path: str) -> None:
        self.calls.append(path)

    @property
    def last(self) -> str | None:
        return self.calls[-1] if self.calls else None


class FakeBackend:
    """Routes requests by (method, path) to canned handlers.

    Handlers may be a single response or a list consumed in order (the
    last entry repeats). Every request is recorded for assertions.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list[Handler]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *handlers: Handler) -> None:
        self._routes[(method.upper(), path)] = list(handlers)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method.upper() and r.url.path == path
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handlers = self._routes.get((request.method, request.url.path))
        if not handlers:
            return httpx.Response(404, json={"error": "no route"})
        handler = handlers.pop(0) if len(handlers) > 1 else handlers[0]
        return handler(request)


def respond(status_code: int = 200, body: Any = None) -> Handler:
    """Handler returning a fixed JSON response."""

    def _handler(_: httpx.Request) -> httpx.Response:
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, content=json.dumps(body).encode())

    return _handler


def require_token(token: str, body: Any, *, status_code: int = 200) -> Handler:
    """Handler that answers 401 unless the bearer token matches."""

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.headers.get("Authorization") != f"Bearer {token}":
            return httpx.Response(401, json={"error": "Token expired"})
        return httpx.Response(status_code, json=body)

    return _handler


def account_payload(**overrides: Any) -> dict[str, Any]:
    """Wire-format account for a fully verified individual."""
    payload: dict[str, Any] = {
        "id": "user-1",
        "name": "Asha Rao",
        "email": "asha@example.com",
        "userType": "individual",
        "emailVerified": True,
        "phone": "+919800000000",
        "hasPreferences": True,
        "verificationStatus": "verified",
        "profileComplete": True,
        "permissions": ["jobs:apply"],
    }
    payload.update(overrides)
    return payload


def make_account(**overrides: Any) -> AccountSnapshot:
    """AccountSnapshot built from ``account_payload`` with overrides."""
    return AccountSnapshot.model_validate(account_payload(**overrides))


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def api_client(
    backend: FakeBackend, navigator: RecordingNavigator
) -> AsyncIterator[ApiClient]:
    """ApiClient wired to the fake backend and recording navigator."""
    client = ApiClient(
        TEST_BASE_URL,
        navigator=navigator,
        transport=httpx.MockTransport(backend),
    )
    yield client
    await client.aclose()
