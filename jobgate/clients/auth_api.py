"""Auth endpoints.

Credential endpoints (login, signup, refresh, logout, password reset) opt
out of refresh-and-replay: a 401 there means the input was rejected, not
that the session lapsed.
"""

from typing import Any

from jobgate.clients.api_client import REFRESH_PATH, ApiClient
from jobgate.core.responses import parse_payload
from jobgate.schemas.account import AccountSnapshot
from jobgate.schemas.auth import (
    AuthPayload,
    LoginRequest,
    ProfileUpdateRequest,
    SignupRequest,
)


def _account_from(payload: Any) -> AccountSnapshot | None:
    """Pull an account out of ``{user: {...}}`` or a bare account body."""
    if not isinstance(payload, dict):
        return None
    raw = payload.get("user", payload)
    if not isinstance(raw, dict) or "id" not in raw:
        return None
    return parse_payload(AccountSnapshot, raw)


class AuthApi:
    """Auth resource.

    Args:
        client: Shared API client; receives the access token on login and
            refresh.
    """

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def login(self, email: str, password: str) -> AuthPayload:
        """Exchange credentials for a session.

        Returns:
            AuthPayload with the account snapshot.

        Raises:
            UnauthorizedError: Credentials rejected.
        """
        body = LoginRequest(email=email, password=password)
        payload = await self._client.post(
            "/auth/login",
            json=body.model_dump(by_alias=True),
            retry_on_unauthorized=False,
        )
        result = parse_payload(AuthPayload, payload)
        if result.access_token:
            self._client.set_access_token(result.access_token)
        return result

    async def signup(self, request: SignupRequest) -> AccountSnapshot | None:
        """Register an account. The user must verify email before login.

        Returns:
            The created account, if the backend echoes it.
        """
        payload = await self._client.post(
            "/auth/signup",
            json=request.model_dump(by_alias=True, exclude_none=True),
            retry_on_unauthorized=False,
        )
        return _account_from(payload)

    async def refresh(self) -> AuthPayload:
        """Silently refresh the access token from the refresh cookie.

        Unlike the automatic refresh on 401, failure here only raises; it
        never clears the session or navigates.

        Raises:
            ApiClientError: Refresh rejected, or the body is malformed
                (InvalidResponseError).
        """
        payload = await self._client.post(REFRESH_PATH, retry_on_unauthorized=False)
        result = parse_payload(AuthPayload, payload)
        if result.access_token:
            self._client.set_access_token(result.access_token)
        return result

    async def get_me(self, *, retry_on_unauthorized: bool = True) -> AccountSnapshot | None:
        """Fetch the current account snapshot.

        Raises:
            InvalidResponseError: The account in the body is malformed.
        """
        payload = await self._client.get(
            "/auth/me", retry_on_unauthorized=retry_on_unauthorized
        )
        return _account_from(payload)

    async def update_profile(self, request: ProfileUpdateRequest) -> None:
        """Change name or contact numbers on the current account."""
        await self._client.patch(
            "/auth/me", json=request.model_dump(by_alias=True, exclude_none=True)
        )

    async def logout(self) -> None:
        """Invalidate the server-side session and drop the local token."""
        try:
            await self._client.delete("/auth/logout", retry_on_unauthorized=False)
        finally:
            self._client.set_access_token(None)

    async def verify_email(self, token: str) -> str | None:
        """Confirm an email address with the emailed token.

        Returns:
            Backend confirmation message, if any.
        """
        payload = await self._client.get(
            "/auth/verify-email",
            params={"token": token},
            retry_on_unauthorized=False,
        )
        return payload.get("message") if isinstance(payload, dict) else None

    async def resend_email_verification(self, email: str) -> None:
        """Send a fresh verification email."""
        await self._client.post(
            "/auth/verify-email/resend",
            json={"email": email},
            retry_on_unauthorized=False,
        )

    async def forgot_password(self, email: str) -> None:
        """Request a password reset code."""
        await self._client.post(
            "/auth/forgot-password",
            json={"email": email},
            retry_on_unauthorized=False,
        )

    async def reset_password(self, code: str, new_password: str) -> None:
        """Set a new password using a reset code."""
        await self._client.post(
            "/auth/reset-password",
            json={"code": code, "newPassword": new_password},
            retry_on_unauthorized=False,
        )
