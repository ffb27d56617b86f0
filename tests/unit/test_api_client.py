"""Tests for the backend HTTP client.

Tests verify:
1. Envelope unwrapping and error mapping
2. Refresh-and-replay on 401, at most once per request
3. Concurrent 401s share one refresh
4. Failed refresh clears the session and navigates to login once
5. The 403 verification escape hatch
"""

import asyncio

import httpx
import pytest

from jobgate.clients.api_client import REFRESH_PATH, ApiClient
from jobgate.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    ServerError,
    SessionExpiredError,
    UnauthorizedError,
    ValidationError,
    VerificationRequiredError,
)
from tests.conftest import (
    TEST_ACCESS_TOKEN,
    TEST_BASE_URL,
    TEST_REFRESHED_TOKEN,
    FakeBackend,
    RecordingNavigator,
    require_token,
    respond,
)

_REFRESH_OK = respond(200, {"payload": {"accessToken": TEST_REFRESHED_TOKEN}})


# =============================================================================
# Envelope
# =============================================================================


class TestEnvelope:
    """Successful responses are unwrapped once."""

    async def test_unwraps_payload(self, api_client, backend) -> None:
        backend.on("GET", "/auth/me", respond(200, {"payload": {"id": "u1"}}))
        assert await api_client.get("/auth/me") == {"id": "u1"}

    async def test_returns_bare_body_without_payload(self, api_client, backend) -> None:
        backend.on("GET", "/profile/jobseeker/skills", respond(200, {"skills": []}))
        assert await api_client.get("/profile/jobseeker/skills") == {"skills": []}

    async def test_returns_bare_list(self, api_client, backend) -> None:
        backend.on("GET", "/items", respond(200, [1, 2]))
        assert await api_client.get("/items") == [1, 2]

    async def test_empty_body_is_none(self, api_client, backend) -> None:
        backend.on("DELETE", "/auth/logout", respond(204))
        assert await api_client.delete("/auth/logout") is None

    async def test_attaches_bearer_token(self, api_client, backend) -> None:
        backend.on("GET", "/auth/me", require_token(TEST_ACCESS_TOKEN, {"payload": {}}))
        api_client.set_access_token(TEST_ACCESS_TOKEN)
        await api_client.get("/auth/me")
        request = backend.calls("GET", "/auth/me")[0]
        assert request.headers["Authorization"] == f"Bearer {TEST_ACCESS_TOKEN}"

    async def test_no_authorization_header_without_token(self, api_client, backend) -> None:
        backend.on("GET", "/public", respond(200, {}))
        await api_client.get("/public")
        assert "Authorization" not in backend.calls("GET", "/public")[0].headers


# =============================================================================
# Error Mapping
# =============================================================================


class TestErrorMapping:
    """Failures map onto the error taxonomy."""

    @pytest.mark.parametrize(
        ("status", "error_type"),
        [
            (400, ValidationError),
            (403, ForbiddenError),
            (404, NotFoundError),
            (409, ConflictError),
            (422, InvalidStateError),
            (500, ServerError),
            (503, ServerError),
        ],
    )
    async def test_status_maps_to_error(self, api_client, backend, status, error_type) -> None:
        backend.on("POST", "/thing", respond(status, {"error": "nope"}))
        with pytest.raises(error_type) as exc_info:
            await api_client.post("/thing", json={})
        assert exc_info.value.message == "nope"

    async def test_structured_error_body(self, api_client, backend) -> None:
        body = {
            "error": {
                "code": "EMAIL_TAKEN",
                "message": "Email already registered",
                "details": [{"field": "email"}],
            }
        }
        backend.on("POST", "/auth/signup", respond(409, body))
        with pytest.raises(ConflictError) as exc_info:
            await api_client.post("/auth/signup", json={})
        assert exc_info.value.code == "EMAIL_TAKEN"
        assert exc_info.value.message == "Email already registered"

    async def test_validation_details_preserved(self, api_client, backend) -> None:
        body = {"message": "Invalid", "details": [{"field": "phone", "error": "required"}]}
        backend.on("PATCH", "/auth/me", respond(400, body))
        with pytest.raises(ValidationError) as exc_info:
            await api_client.patch("/auth/me", json={})
        assert exc_info.value.details == [{"field": "phone", "error": "required"}]

    async def test_numeric_error_code_still_maps(self, api_client, backend) -> None:
        backend.on("GET", "/thing", respond(400, {"error": "bad", "code": 400}))
        with pytest.raises(ValidationError) as exc_info:
            await api_client.get("/thing")
        assert exc_info.value.message == "bad"
        assert exc_info.value.code == "VALIDATION_ERROR"

    async def test_bare_resource_with_details_string(self, api_client, backend) -> None:
        body = {"id": "e1", "details": "BSc Physics"}
        backend.on("GET", "/profile/jobseeker/education/e1", respond(200, body))
        assert await api_client.get("/profile/jobseeker/education/e1") == body

    async def test_non_json_error_body_uses_default_message(
        self, api_client, backend
    ) -> None:
        backend.on("GET", "/broken", lambda _: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(ServerError) as exc_info:
            await api_client.get("/broken")
        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "An unexpected error occurred"

    async def test_transport_failure_raises_network_error(self, navigator) -> None:
        def _fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with ApiClient(
            TEST_BASE_URL, navigator=navigator, transport=httpx.MockTransport(_fail)
        ) as client:
            with pytest.raises(NetworkError) as exc_info:
                await client.get("/auth/me")
        assert exc_info.value.status_code == 0
        assert navigator.calls == []


# =============================================================================
# Verification Escape Hatch
# =============================================================================


class TestVerificationRequired:
    """403 VERIFICATION_REQUIRED navigates to the server's target."""

    async def test_navigates_to_redirect_target(self, api_client, backend, navigator) -> None:
        body = {
            "error": "Complete KYC first",
            "code": "VERIFICATION_REQUIRED",
            "redirectTo": "/kyc",
        }
        backend.on("POST", "/jobs/7/apply", respond(403, body))
        with pytest.raises(VerificationRequiredError) as exc_info:
            await api_client.post("/jobs/7/apply")
        assert exc_info.value.redirect_to == "/kyc"
        assert navigator.calls == ["/kyc"]

    async def test_nested_error_shape(self, api_client, backend, navigator) -> None:
        body = {"error": {"code": "VERIFICATION_REQUIRED", "redirectTo": "/onboarding/contact"}}
        backend.on("GET", "/jobs", respond(403, body))
        with pytest.raises(VerificationRequiredError):
            await api_client.get("/jobs")
        assert navigator.last == "/onboarding/contact"

    async def test_plain_forbidden_does_not_navigate(self, api_client, backend, navigator) -> None:
        backend.on("GET", "/admin", respond(403, {"code": "VERIFICATION_REQUIRED"}))
        with pytest.raises(ForbiddenError) as exc_info:
            await api_client.get("/admin")
        assert not isinstance(exc_info.value, VerificationRequiredError)
        assert navigator.calls == []


# =============================================================================
# Refresh and Replay
# =============================================================================


class TestRefreshAndReplay:
    """A 401 triggers one refresh and one replay."""

    async def test_replays_once_after_refresh(self, api_client, backend) -> None:
        backend.on("GET", "/auth/me", require_token(TEST_REFRESHED_TOKEN, {"payload": {"id": "u1"}}))
        backend.on("POST", REFRESH_PATH, _REFRESH_OK)
        api_client.set_access_token(TEST_ACCESS_TOKEN)

        assert await api_client.get("/auth/me") == {"id": "u1"}
        assert api_client.access_token == TEST_REFRESHED_TOKEN
        assert len(backend.calls("GET", "/auth/me")) == 2
        assert len(backend.calls("POST", REFRESH_PATH)) == 1

    async def test_second_unauthorized_is_ordinary_error(
        self, api_client, backend, navigator
    ) -> None:
        backend.on("GET", "/auth/me", respond(401, {"error": "Token expired"}))
        backend.on("POST", REFRESH_PATH, _REFRESH_OK)

        with pytest.raises(UnauthorizedError) as exc_info:
            await api_client.get("/auth/me")
        assert not isinstance(exc_info.value, SessionExpiredError)
        assert len(backend.calls("GET", "/auth/me")) == 2
        assert len(backend.calls("POST", REFRESH_PATH)) == 1
        assert navigator.calls == []

    async def test_retry_disabled_skips_refresh(self, api_client, backend) -> None:
        backend.on("POST", "/auth/login", respond(401, {"error": "Invalid credentials"}))
        with pytest.raises(UnauthorizedError) as exc_info:
            await api_client.post("/auth/login", json={}, retry_on_unauthorized=False)
        assert exc_info.value.message == "Invalid credentials"
        assert backend.calls("POST", REFRESH_PATH) == []

    async def test_refresh_failure_expires_session(self, api_client, backend, navigator) -> None:
        backend.on("GET", "/auth/me", respond(401, {"error": "Token expired"}))
        backend.on("POST", REFRESH_PATH, respond(401, {"error": "No refresh cookie"}))
        expired = []
        api_client.add_session_expired_hook(lambda: expired.append(True))
        api_client.set_access_token(TEST_ACCESS_TOKEN)

        with pytest.raises(SessionExpiredError):
            await api_client.get("/auth/me")
        assert api_client.access_token is None
        assert expired == [True]
        assert navigator.calls == ["/login"]
        assert len(backend.calls("GET", "/auth/me")) == 1

    async def test_refresh_without_token_counts_as_failure(
        self, api_client, backend, navigator
    ) -> None:
        backend.on("GET", "/auth/me", respond(401, {}))
        backend.on("POST", REFRESH_PATH, respond(200, {"payload": {}}))
        with pytest.raises(SessionExpiredError):
            await api_client.get("/auth/me")
        assert navigator.calls == ["/login"]

    async def test_refresh_with_malformed_body_expires_session(
        self, api_client, backend, navigator
    ) -> None:
        backend.on("GET", "/auth/me", respond(401, {}))
        backend.on("POST", REFRESH_PATH, respond(200, {"code": 200, "details": "ok"}))
        expired = []
        api_client.add_session_expired_hook(lambda: expired.append(True))

        with pytest.raises(SessionExpiredError):
            await api_client.get("/auth/me")
        assert expired == [True]
        assert navigator.calls == ["/login"]

    async def test_removed_hook_not_fired(self, api_client, backend) -> None:
        backend.on("GET", "/auth/me", respond(401, {}))
        backend.on("POST", REFRESH_PATH, respond(500, {}))
        fired = []
        remove = api_client.add_session_expired_hook(lambda: fired.append(True))
        remove()
        with pytest.raises(SessionExpiredError):
            await api_client.get("/auth/me")
        assert fired == []


class TestConcurrentRefresh:
    """Concurrent 401s coalesce onto one refresh."""

    async def test_concurrent_unauthorized_share_one_refresh(self, api_client, backend) -> None:
        backend.on("GET", "/a", require_token(TEST_REFRESHED_TOKEN, {"payload": "a"}))
        backend.on("GET", "/b", require_token(TEST_REFRESHED_TOKEN, {"payload": "b"}))
        backend.on("POST", REFRESH_PATH, _REFRESH_OK)
        api_client.set_access_token(TEST_ACCESS_TOKEN)

        results = await asyncio.gather(api_client.get("/a"), api_client.get("/b"))

        assert results == ["a", "b"]
        assert len(backend.calls("POST", REFRESH_PATH)) == 1
        assert len(backend.calls("GET", "/a")) == 2
        assert len(backend.calls("GET", "/b")) == 2

    async def test_concurrent_failure_navigates_once(self, api_client, backend, navigator) -> None:
        backend.on("GET", "/a", respond(401, {}))
        backend.on("GET", "/b", respond(401, {}))
        backend.on("POST", REFRESH_PATH, respond(401, {}))
        expired = []
        api_client.add_session_expired_hook(lambda: expired.append(True))
        api_client.set_access_token(TEST_ACCESS_TOKEN)

        results = await asyncio.gather(
            api_client.get("/a"), api_client.get("/b"), return_exceptions=True
        )

        assert all(isinstance(r, SessionExpiredError) for r in results)
        assert len(backend.calls("POST", REFRESH_PATH)) == 1
        assert expired == [True]
        assert navigator.calls == ["/login"]

    async def test_refresh_access_token_direct_calls_coalesce(self, api_client, backend) -> None:
        backend.on("POST", REFRESH_PATH, _REFRESH_OK)
        tokens = await asyncio.gather(
            api_client.refresh_access_token(), api_client.refresh_access_token()
        )
        assert tokens == [TEST_REFRESHED_TOKEN, TEST_REFRESHED_TOKEN]
        assert len(backend.calls("POST", REFRESH_PATH)) == 1


class TestWithoutNavigator:
    """The client works headless."""

    async def test_refresh_failure_without_navigator(self) -> None:
        backend = FakeBackend()
        backend.on("GET", "/auth/me", respond(401, {}))
        backend.on("POST", REFRESH_PATH, respond(401, {}))
        async with ApiClient(TEST_BASE_URL, transport=httpx.MockTransport(backend)) as client:
            with pytest.raises(SessionExpiredError):
                await client.get("/auth/me")

    async def test_recording_navigator_last(self) -> None:
        navigator = RecordingNavigator()
        assert navigator.last is None
        navigator.replace("/x")
        assert navigator.last == "/x"
