"""Backend HTTP client.

Thin wrapper over ``httpx.AsyncClient`` that every endpoint module goes
through. Responsibilities:

- Attach the in-memory bearer token (never persisted).
- Unwrap the backend envelope once, centrally.
- On 401, refresh the token once and replay the original request once.
  Concurrent 401s share a single in-flight refresh. A failed refresh
  clears the token, notifies session-expired hooks and navigates to Login.
  A 401 after the replay is an ordinary error.
- On 403 carrying ``VERIFICATION_REQUIRED`` + ``redirectTo``, navigate to
  the server's target. This covers states the local gate does not know.
- Map every other failure onto ``jobgate.core.errors``.

No other retry or backoff is performed.
"""

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from jobgate.core.config import settings
from jobgate.core.errors import (
    ApiClientError,
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
from jobgate.core.navigation import Navigator
from jobgate.core.responses import ApiEnvelope, ErrorDetail

logger = structlog.get_logger()

REFRESH_PATH = "/auth/refresh"

SessionExpiredHook = Callable[[], None]


def _decode_body(response: httpx.Response) -> Any:
    """Decode a JSON body, tolerating empty or non-JSON content."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _error_for_status(status_code: int, detail: ErrorDetail) -> ApiClientError:
    """Map an HTTP failure onto the client error taxonomy.

    Args:
        status_code: HTTP status received.
        detail: Normalized error body.

    Returns:
        The exception to raise.
    """
    message = detail.message
    if status_code == 400:
        return ValidationError(
            message or "Invalid request",
            details=detail.details,
            code=detail.code or "VALIDATION_ERROR",
        )
    if status_code == 401:
        return UnauthorizedError(
            message or "Authentication required", code=detail.code or "UNAUTHORIZED"
        )
    if status_code == 403:
        return ForbiddenError(message or "Access denied", code=detail.code or "FORBIDDEN")
    if status_code == 404:
        return NotFoundError(message or "Resource not found")
    if status_code == 409:
        return ConflictError(message or "Conflict", code=detail.code or "CONFLICT")
    if status_code == 422:
        return InvalidStateError(
            message or "Request violates a business rule",
            code=detail.code or "INVALID_STATE",
        )
    if status_code >= 500:
        return ServerError(
            message or "An unexpected error occurred",
            status_code=status_code,
            code=detail.code or "INTERNAL_ERROR",
        )
    return ApiClientError(
        code=detail.code or "HTTP_ERROR",
        message=message or f"Request failed with status {status_code}",
        status_code=status_code,
        details=detail.details,
    )


class ApiClient:
    """Authenticated JSON client for the marketplace backend.

    Usage:
        async with ApiClient(navigator=router) as client:
            me = await client.request("GET", "/auth/me")

    Args:
        base_url: Backend root URL. Defaults to ``settings.api_base_url``.
        navigator: Navigation sink for forced logout and server redirects.
        timeout: Request timeout in seconds. Defaults to settings.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        navigator: Navigator | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.api_timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._navigator = navigator
        self._access_token: str | None = None
        self._refresh_task: asyncio.Task[str] | None = None
        self._session_expired_hooks: list[SessionExpiredHook] = []

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Token state
    # -------------------------------------------------------------------------

    @property
    def access_token(self) -> str | None:
        """Current bearer token (memory only)."""
        return self._access_token

    def set_access_token(self, token: str | None) -> None:
        """Replace or clear the bearer token."""
        self._access_token = token

    def add_session_expired_hook(self, hook: SessionExpiredHook) -> Callable[[], None]:
        """Register a callback fired once when a refresh fails.

        Args:
            hook: Zero-argument callable.

        Returns:
            Callable that unregisters the hook.
        """
        self._session_expired_hooks.append(hook)

        def _remove() -> None:
            if hook in self._session_expired_hooks:
                self._session_expired_hooks.remove(hook)

        return _remove

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        retry_on_unauthorized: bool = True,
    ) -> Any:
        """Send a request and return the unwrapped payload.

        Args:
            method: HTTP method.
            path: Path relative to the base URL.
            json: JSON body, if any.
            params: Query parameters, if any.
            retry_on_unauthorized: Whether a 401 triggers refresh-and-replay.
                Disabled for credential endpoints, where 401 means bad input.

        Returns:
            Payload from the response envelope.

        Raises:
            ApiClientError: Subclass matching the failure.
        """
        sent_token = self._access_token
        response = await self._send(method, path, json=json, params=params)

        if response.status_code == 401 and retry_on_unauthorized:
            # A token that changed while this request was in flight means
            # another caller already refreshed; replay with it directly.
            refreshed_elsewhere = bool(self._access_token) and (
                self._access_token != sent_token
            )
            if not refreshed_elsewhere:
                await self.refresh_access_token()
            response = await self._send(method, path, json=json, params=params)

        return self._handle_response(method, path, response)

    async def get(self, path: str, **kwargs: Any) -> Any:
        """GET shortcut."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        """POST shortcut."""
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        """PATCH shortcut."""
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        """DELETE shortcut."""
        return await self.request("DELETE", path, **kwargs)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        headers = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        try:
            return await self._client.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.TransportError as e:
            logger.error(
                "api_request_failed",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise NetworkError(f"Could not reach the server: {type(e).__name__}") from e

    def _handle_response(self, method: str, path: str, response: httpx.Response) -> Any:
        envelope = ApiEnvelope.from_body(_decode_body(response))
        if response.is_success:
            return envelope.unwrap()

        detail = envelope.error_detail()
        if response.status_code == 403 and envelope.is_verification_required:
            redirect_to = detail.redirect_to or ""
            logger.info(
                "api_verification_redirect",
                method=method,
                path=path,
                redirect_to=redirect_to,
            )
            self._navigate(redirect_to)
            raise VerificationRequiredError(
                redirect_to, message=detail.message or "Verification required"
            )

        logger.warning(
            "api_request_failed",
            method=method,
            path=path,
            status_code=response.status_code,
            code=detail.code,
        )
        raise _error_for_status(response.status_code, detail)

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def refresh_access_token(self) -> str:
        """Obtain a new access token, sharing any refresh already in flight.

        Returns:
            The new access token.

        Raises:
            SessionExpiredError: If the refresh failed. The token has been
                cleared, hooks fired and Login navigated to, exactly once
                per failed refresh regardless of how many callers waited.
        """
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._refresh())
        return await self._refresh_task

    async def _refresh(self) -> str:
        logger.info("api_refresh_start")
        token: str | None = None
        try:
            response = await self._send("POST", REFRESH_PATH)
            if response.is_success:
                payload = ApiEnvelope.from_body(_decode_body(response)).unwrap()
                if isinstance(payload, dict):
                    candidate = payload.get("accessToken")
                    token = candidate if isinstance(candidate, str) and candidate else None
        except NetworkError:
            token = None

        if token is None:
            logger.warning("api_refresh_failed")
            self._expire_session()
            raise SessionExpiredError()

        self._access_token = token
        return token

    def _expire_session(self) -> None:
        self._access_token = None
        for hook in list(self._session_expired_hooks):
            hook()
        self._navigate(settings.login_path)

    def _navigate(self, path: str) -> None:
        if self._navigator is not None and path:
            self._navigator.replace(path)
