"""Route guard.

Enforces the verification gate against navigation for a protected view.

Each check short-circuits:
1. Session loading → render a neutral placeholder, never navigate
2. Not authenticated → Login, carrying the current path as ``redirect``
3. Missing required permission → Unauthorized
4. Gate requires a step elsewhere → that step (rejected users may stay
   on the KYC page to resubmit)
5. User type not allowed → Unauthorized, unless step 4 already redirected
6. Otherwise render

Deciding is separated from acting: ``evaluate_guard`` is pure and
idempotent, ``RouteGuard`` performs the single navigation call.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from jobgate.core.config import settings
from jobgate.core.navigation import Navigator, is_same_or_subpath, with_redirect_param
from jobgate.schemas.account import AccountSnapshot, UserType
from jobgate.services.verification_gate import RequiredStep, resolve

DEFAULT_ALLOWED_USER_TYPES: frozenset[str] = frozenset(
    {UserType.INDIVIDUAL.value, UserType.EMPLOYER.value}
)
"""Consumer views exclude administrators unless they opt in."""


class SessionView(Protocol):
    """Read-only session facts the guard needs."""

    @property
    def account(self) -> AccountSnapshot | None: ...

    @property
    def is_authenticated(self) -> bool: ...

    @property
    def is_loading(self) -> bool: ...


class GuardOutcome(str, Enum):
    """What the view should do."""

    LOADING = "loading"
    RENDER = "render"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GuardRequest:
    """A protected view's declared requirements.

    Attributes:
        pathname: Route template of the view (e.g. ``/jobs/[id]``); used to
            compare against gate targets.
        as_path: Concrete location (e.g. ``/jobs/42?tab=a``); carried to
            Login as the return path. Defaults to ``pathname``.
        allowed_user_types: Roles that may see the view. Empty allows all.
        required_permission: Permission name the account must hold.
    """

    pathname: str
    as_path: str | None = None
    allowed_user_types: frozenset[str] = field(
        default_factory=lambda: DEFAULT_ALLOWED_USER_TYPES
    )
    required_permission: str | None = None

    @property
    def return_path(self) -> str:
        """Location to come back to after login."""
        return self.as_path or self.pathname


@dataclass(frozen=True)
class GuardDecision:
    """Guard result.

    Attributes:
        outcome: Loading placeholder, render children, or redirect.
        target: Redirect destination (only for REDIRECT).
        reason: Short machine-readable cause, for logging and tests.
    """

    outcome: GuardOutcome
    target: str | None = None
    reason: str | None = None

    @property
    def should_render(self) -> bool:
        """Whether the protected children may be shown."""
        return self.outcome is GuardOutcome.RENDER


_LOADING = GuardDecision(GuardOutcome.LOADING, reason="loading")
_RENDER = GuardDecision(GuardOutcome.RENDER)


def _redirect(target: str, reason: str) -> GuardDecision:
    return GuardDecision(GuardOutcome.REDIRECT, target=target, reason=reason)


def has_permission(account: AccountSnapshot | None, permission: str) -> bool:
    """Whether the account holds a named permission."""
    return account is not None and permission in account.permissions


def _gate_redirect(account: AccountSnapshot, pathname: str) -> str | None:
    """Gate target if the user must leave the current view, else None."""
    step = resolve(account)
    if step is None:
        return None

    # Rejected users act on the rejection from the KYC page.
    if step is RequiredStep.VERIFICATION_REJECTED and is_same_or_subpath(
        pathname, RequiredStep.KYC.path
    ):
        return None

    if is_same_or_subpath(pathname, step.path):
        return None
    return step.path


def evaluate_guard(session: SessionView, request: GuardRequest) -> GuardDecision:
    """Decide whether a protected view renders, redirects, or waits.

    Args:
        session: Current session facts.
        request: The view's requirements and location.

    Returns:
        GuardDecision. Pure: the same inputs always give the same decision.
    """
    if session.is_loading:
        return _LOADING

    account = session.account
    if not session.is_authenticated or account is None:
        return _redirect(
            with_redirect_param(settings.login_path, request.return_path),
            "unauthenticated",
        )

    if request.required_permission and not has_permission(
        account, request.required_permission
    ):
        return _redirect(settings.unauthorized_path, "missing_permission")

    gate_target = _gate_redirect(account, request.pathname)
    if gate_target is not None:
        return _redirect(gate_target, "verification_required")

    if request.allowed_user_types and account.user_type not in request.allowed_user_types:
        if resolve(account) is None:
            return _redirect(settings.unauthorized_path, "user_type_not_allowed")
        # The user sits on their own gate step; no second redirect, no children.
        return GuardDecision(GuardOutcome.LOADING, reason="user_type_not_allowed")

    return _RENDER


class RouteGuard:
    """Applies guard decisions to a navigator.

    Args:
        navigator: Host navigation sink.
    """

    def __init__(self, navigator: Navigator) -> None:
        self._navigator = navigator

    def guard(self, session: SessionView, request: GuardRequest) -> GuardDecision:
        """Evaluate and, for a redirect, navigate once.

        Args:
            session: Current session facts.
            request: The view's requirements and location.

        Returns:
            The decision that was applied.
        """
        decision = evaluate_guard(session, request)
        if decision.outcome is GuardOutcome.REDIRECT and decision.target:
            self._navigator.replace(decision.target)
        return decision
