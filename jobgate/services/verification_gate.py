"""Verification gate resolver.

Maps an account snapshot to the single onboarding page the user must
complete next, or None for full access.

Evaluation order (first match wins):
1. No snapshot → Login
2. Verified → None (never re-gated, even on inconsistent data)
3. Email not verified → VerifyEmail
4. No phone → ContactDetails
5. Individual without preferences → Intent
6. Employer in draft → EmployerPayment
7. Individual in draft → Kyc
8. Employer payment_verified → EmployerCompanyProfile, then Kyc
9. Submitted / under review → VerificationPending
10. Rejected → VerificationRejected
11. Suspended → AccountSuspended
12. Otherwise → None

Email and phone gate everything because every later step relies on being
able to contact the user. Employer payment precedes company profile because
the backend refuses profile collection before payment.

The resolver is pure and total: it performs no I/O and never raises for a
malformed snapshot, since it runs on every navigation.
"""

import logging
from enum import Enum

from jobgate.core.config import settings
from jobgate.core.navigation import has_unresolved_placeholder
from jobgate.schemas.account import AccountSnapshot, UserType, VerificationStatus

logger = logging.getLogger(__name__)

# =============================================================================
# Required Steps
# =============================================================================


class RequiredStep(str, Enum):
    """Onboarding pages the gate can send a user to.

    Values are the route paths of those pages.
    """

    LOGIN = "/login"
    VERIFY_EMAIL = "/verify-email"
    CONTACT_DETAILS = "/onboarding/contact"
    INTENT = "/onboarding/intent"
    EMPLOYER_PAYMENT = "/employer/register/payment"
    EMPLOYER_COMPANY_PROFILE = "/employer/register/company"
    KYC = "/kyc"
    VERIFICATION_PENDING = "/verification-pending"
    VERIFICATION_REJECTED = "/verification-rejected"
    ACCOUNT_SUSPENDED = "/account-suspended"

    @property
    def path(self) -> str:
        """Route path for this step."""
        return self.value


# Status-only rules, consulted after every prerequisite has passed.
_TERMINAL_STEPS: dict[VerificationStatus, RequiredStep] = {
    VerificationStatus.SUBMITTED: RequiredStep.VERIFICATION_PENDING,
    VerificationStatus.UNDER_REVIEW: RequiredStep.VERIFICATION_PENDING,
    VerificationStatus.REJECTED: RequiredStep.VERIFICATION_REJECTED,
    VerificationStatus.SUSPENDED: RequiredStep.ACCOUNT_SUSPENDED,
}


# =============================================================================
# Resolver
# =============================================================================


def resolve(snapshot: AccountSnapshot | None) -> RequiredStep | None:
    """Decide the next required onboarding step.

    Args:
        snapshot: Current account snapshot, or None if not authenticated.

    Returns:
        The RequiredStep the user must complete, or None for full access.
    """
    if snapshot is None:
        return RequiredStep.LOGIN

    status = snapshot.status
    role = snapshot.role

    if status is VerificationStatus.VERIFIED:
        return None

    if not snapshot.email_verified:
        return RequiredStep.VERIFY_EMAIL

    if not snapshot.has_phone:
        return RequiredStep.CONTACT_DETAILS

    if role is UserType.INDIVIDUAL and not snapshot.has_preferences:
        return RequiredStep.INTENT

    if status is VerificationStatus.DRAFT:
        if role is UserType.EMPLOYER:
            return RequiredStep.EMPLOYER_PAYMENT
        if role is UserType.INDIVIDUAL:
            return RequiredStep.KYC

    if role is UserType.EMPLOYER and status is VerificationStatus.PAYMENT_VERIFIED:
        if not snapshot.profile_complete:
            return RequiredStep.EMPLOYER_COMPANY_PROFILE
        return RequiredStep.KYC

    if status is None:
        # Parsing already logged the raw value; record that no rule applied.
        logger.debug(
            "No gating rule for account %s with status %r; allowing access",
            snapshot.id,
            snapshot.verification_status,
        )
        return None

    return _TERMINAL_STEPS.get(status)


# =============================================================================
# Status Helpers
# =============================================================================


def is_verified(snapshot: AccountSnapshot | None) -> bool:
    """Whether the account has passed verification."""
    return snapshot is not None and snapshot.status is VerificationStatus.VERIFIED


def is_pending(snapshot: AccountSnapshot | None) -> bool:
    """Whether verification is awaiting server-side review."""
    return snapshot is not None and snapshot.status in (
        VerificationStatus.SUBMITTED,
        VerificationStatus.UNDER_REVIEW,
    )


def is_rejected(snapshot: AccountSnapshot | None) -> bool:
    """Whether verification was rejected."""
    return snapshot is not None and snapshot.status is VerificationStatus.REJECTED


def needs_email_verification(snapshot: AccountSnapshot | None) -> bool:
    """Whether the email address still has to be confirmed."""
    return snapshot is not None and not snapshot.email_verified


def needs_profile_completion(snapshot: AccountSnapshot | None) -> bool:
    """Whether the account is in draft with an incomplete profile."""
    return (
        snapshot is not None
        and snapshot.status is VerificationStatus.DRAFT
        and not snapshot.profile_complete
    )


# =============================================================================
# Landing Pages
# =============================================================================


def dashboard_path(snapshot: AccountSnapshot) -> str:
    """Home route for the account's role."""
    if snapshot.role is UserType.EMPLOYER:
        return settings.employer_dashboard_path
    return settings.individual_dashboard_path


def resolve_landing_path(
    snapshot: AccountSnapshot,
    requested_redirect: str | None = None,
) -> str:
    """Pick where to send a user right after login.

    A required onboarding step always wins. Otherwise the ``redirect``
    query parameter is honoured when it is an internal path without
    un-interpolated route placeholders; anything else lands on the
    role's dashboard.

    Args:
        snapshot: Freshly authenticated account.
        requested_redirect: Value of the login page's ``redirect`` param.

    Returns:
        Path to navigate to.
    """
    step = resolve(snapshot)
    if step is not None:
        return step.path

    if (
        requested_redirect
        and requested_redirect.startswith("/")
        and not requested_redirect.startswith("//")
        and not has_unresolved_placeholder(requested_redirect)
    ):
        return requested_redirect

    return dashboard_path(snapshot)


def resolve_terminal_page_redirect(
    page: RequiredStep,
    snapshot: AccountSnapshot | None,
) -> str | None:
    """Decide whether a status notice page should bounce the user.

    The pending, rejected and suspended notices are reachable directly, so
    each checks that it still applies.

    Args:
        page: Which notice page is rendering.
        snapshot: Current account snapshot, or None if not authenticated.

    Returns:
        Path to navigate to, or None to stay on the page.
    """
    if snapshot is None:
        return settings.login_path

    if is_verified(snapshot):
        return dashboard_path(snapshot)

    if (
        page is RequiredStep.ACCOUNT_SUSPENDED
        and snapshot.status is not VerificationStatus.SUSPENDED
    ):
        return dashboard_path(snapshot)

    return None
