"""Pydantic models for backend payloads and derived wizard state."""

from jobgate.schemas.account import (
    TERMINAL_STATUSES,
    AccountSnapshot,
    UserType,
    VerificationStatus,
)
from jobgate.schemas.auth import (
    AuthPayload,
    LoginRequest,
    ProfileUpdateRequest,
    SignupRequest,
    UserPreferences,
)
from jobgate.schemas.profile_wizard import (
    OPTIONAL_SECTIONS,
    REQUIRED_SECTION_ORDER,
    ListKind,
    ProfileWizardState,
    SectionKey,
    SectionState,
    SubResourceLists,
    WizardStatusPayload,
    WizardSummary,
)

__all__ = [
    # Account
    "AccountSnapshot",
    "TERMINAL_STATUSES",
    "UserType",
    "VerificationStatus",
    # Auth
    "AuthPayload",
    "LoginRequest",
    "ProfileUpdateRequest",
    "SignupRequest",
    "UserPreferences",
    # Profile wizard
    "ListKind",
    "OPTIONAL_SECTIONS",
    "ProfileWizardState",
    "REQUIRED_SECTION_ORDER",
    "SectionKey",
    "SectionState",
    "SubResourceLists",
    "WizardStatusPayload",
    "WizardSummary",
]
