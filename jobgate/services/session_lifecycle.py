"""Session lifecycle manager.

Owns the account snapshot that every gating decision reads: fetches it on
load, refreshes it after mutations, persists the non-secret part across
reloads, and clears it on logout or when the API client reports that a
token refresh failed.

The manager never navigates. Callers observe state changes through
``subscribe`` and feed them to the route guard; forced-logout navigation
belongs to the API client.
"""

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass

from jobgate.clients.api_client import ApiClient
from jobgate.clients.auth_api import AuthApi
from jobgate.core.errors import ApiClientError, InvalidResponseError
from jobgate.schemas.account import AccountSnapshot
from jobgate.schemas.auth import ProfileUpdateRequest, SignupRequest
from jobgate.services.session_store import (
    PersistedSession,
    SessionStore,
    default_session_store,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionState:
    """Snapshot of session state handed to listeners.

    Attributes:
        account: Current account, or None.
        is_authenticated: Whether a session is established.
        is_loading: Whether an auth operation is in flight.
        error: User-facing message from the last failed operation.
    """

    account: AccountSnapshot | None = None
    is_authenticated: bool = False
    is_loading: bool = True
    error: str | None = None


SessionListener = Callable[[SessionState], None]


class SessionManager:
    """Session state owner.

    Args:
        client: Shared API client. The manager registers a hook so a failed
            token refresh clears local state.
        store: Persistence for ``{account, isAuthenticated}``. Defaults to
            the store selected by ``settings.session_storage_path``.
        auth_api: Auth endpoints. Defaults to ``AuthApi(client)``.
    """

    def __init__(
        self,
        client: ApiClient,
        *,
        store: SessionStore | None = None,
        auth_api: AuthApi | None = None,
    ) -> None:
        self._client = client
        self._auth = auth_api or AuthApi(client)
        self._store = store or default_session_store()
        self._listeners: list[SessionListener] = []

        persisted = self._store.load()
        if persisted is not None:
            self._state = SessionState(
                account=persisted.account,
                is_authenticated=persisted.is_authenticated,
            )
        else:
            self._state = SessionState()

        client.add_session_expired_hook(self._on_session_expired)

    # -------------------------------------------------------------------------
    # State access
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """Current immutable session state."""
        return self._state

    @property
    def account(self) -> AccountSnapshot | None:
        """Current account, or None."""
        return self._state.account

    @property
    def is_authenticated(self) -> bool:
        """Whether a session is established."""
        return self._state.is_authenticated

    @property
    def is_loading(self) -> bool:
        """Whether an auth operation is in flight."""
        return self._state.is_loading

    @property
    def error(self) -> str | None:
        """Message from the last failed operation."""
        return self._state.error

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Receive every new state.

        Args:
            listener: Called with the new SessionState after each change.

        Returns:
            Callable that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def has_permission(self, permission: str) -> bool:
        """Whether the current account holds a named permission."""
        account = self._state.account
        return account is not None and permission in account.permissions

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> AccountSnapshot:
        """Exchange credentials for a session.

        On failure ``error`` is set, the session stays unauthenticated, and
        the error is re-raised.

        Returns:
            The authenticated account.

        Raises:
            ApiClientError: Credentials rejected or backend unreachable.
        """
        self._update(is_loading=True, error=None)
        try:
            result = await self._auth.login(email, password)
            account = result.user or await self._auth.get_me()
            if account is None:
                raise InvalidResponseError("Login failed")
        except ApiClientError as e:
            self._update(
                account=None,
                is_authenticated=False,
                is_loading=False,
                error=e.message or "Login failed",
            )
            raise

        self._update(account=account, is_authenticated=True, is_loading=False)
        return account

    async def signup(
        self,
        name: str,
        email: str,
        password: str,
        user_type: str,
        phone: str | None = None,
    ) -> AccountSnapshot | None:
        """Register a new account without signing in.

        The account must verify its email before it can log in.

        Raises:
            pydantic.ValidationError: ``user_type`` is not individual or
                employer.
            ApiClientError: Registration rejected.
        """
        request = SignupRequest(
            name=name,
            email=email,
            password=password,
            user_type=user_type,  # type: ignore[arg-type]
            phone=phone,
        )
        self._update(is_loading=True, error=None)
        try:
            account = await self._auth.signup(request)
        except ApiClientError as e:
            self._update(is_loading=False, error=e.message or "Registration failed")
            raise
        self._update(is_loading=False)
        return account

    async def check_auth(self) -> AccountSnapshot | None:
        """Silent "am I still logged in" probe, run on every app load.

        Refreshes the token, then fetches the account. Any failure clears to
        the unauthenticated state without setting ``error``.

        Returns:
            The current account, or None if there is no valid session.
        """
        self._update(is_loading=True)
        try:
            await self._auth.refresh()
            account = await self._auth.get_me(retry_on_unauthorized=False)
        except ApiClientError as e:
            logger.debug("Auth probe failed: %s", e.code)
            account = None

        if account is None:
            self._client.set_access_token(None)
            self._update(account=None, is_authenticated=False, is_loading=False)
            return None

        self._update(account=account, is_authenticated=True, is_loading=False)
        return account

    async def refresh_account(self) -> AccountSnapshot | None:
        """Re-fetch the account after a mutation that may change gating.

        Returns:
            The refreshed account, or the previous one if the backend
            returned none.

        Raises:
            ApiClientError: Fetch failed.
        """
        account = await self._auth.get_me()
        if account is not None:
            self._update(account=account, is_authenticated=True)
        return self._state.account

    async def logout(self) -> None:
        """End the session.

        Server-side invalidation is best effort; local state is cleared
        regardless.
        """
        self._update(is_loading=True)
        try:
            await self._auth.logout()
        except ApiClientError as e:
            logger.info("Ignoring logout failure: %s", e.code)
        finally:
            self._client.set_access_token(None)
            self._update(account=None, is_authenticated=False, is_loading=False)

    async def update_profile(
        self,
        *,
        name: str | None = None,
        phone: str | None = None,
        whatsapp_number: str | None = None,
    ) -> AccountSnapshot | None:
        """Change account contact details, then refresh the snapshot.

        Raises:
            ApiClientError: Update or refresh failed; ``error`` is set.
        """
        self._update(is_loading=True, error=None)
        try:
            await self._auth.update_profile(
                ProfileUpdateRequest(
                    name=name, phone=phone, whatsapp_number=whatsapp_number
                )
            )
            account = await self.refresh_account()
        except ApiClientError as e:
            self._update(is_loading=False, error=e.message or "Failed to update profile")
            raise
        self._update(is_loading=False)
        return account

    async def verify_email(self, token: str) -> str | None:
        """Confirm the email address, refreshing the snapshot if signed in.

        Returns:
            Backend confirmation message, if any.
        """
        message = await self._auth.verify_email(token)
        if self._state.is_authenticated:
            await self.refresh_account()
        return message

    async def resend_email_verification(self, email: str) -> None:
        """Send a fresh verification email."""
        await self._auth.resend_email_verification(email)

    async def forgot_password(self, email: str) -> None:
        """Request a password reset code."""
        await self._auth.forgot_password(email)

    async def reset_password(self, code: str, new_password: str) -> None:
        """Set a new password using a reset code."""
        await self._auth.reset_password(code, new_password)

    def clear_error(self) -> None:
        """Dismiss the last error message."""
        self._update(error=None)

    def set_account(self, account: AccountSnapshot | None) -> None:
        """Replace the account from an external source."""
        self._update(account=account, is_authenticated=account is not None)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _on_session_expired(self) -> None:
        self._update(account=None, is_authenticated=False, is_loading=False)

    def _update(self, **changes: object) -> None:
        previous = self._state
        self._state = dataclasses.replace(previous, **changes)  # type: ignore[arg-type]

        if (
            self._state.account != previous.account
            or self._state.is_authenticated != previous.is_authenticated
        ):
            self._persist()

        for listener in list(self._listeners):
            listener(self._state)

    def _persist(self) -> None:
        if self._state.account is None and not self._state.is_authenticated:
            self._store.clear()
            return
        self._store.save(
            PersistedSession(
                account=self._state.account,
                is_authenticated=self._state.is_authenticated,
            )
        )
