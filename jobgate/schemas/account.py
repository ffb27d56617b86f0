"""Account snapshot schema.

The client's cached view of a user's auth, verification and profile state.
Every gating decision is made from this model. Field names follow the
backend's camelCase wire format via aliases.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class UserType(str, Enum):
    """Account roles known to the client."""

    INDIVIDUAL = "individual"
    EMPLOYER = "employer"
    ADMIN = "admin"


class VerificationStatus(str, Enum):
    """Server-side verification lifecycle values.

    Transitions happen on the backend; the client only reads the value.
    """

    DRAFT = "draft"
    PAYMENT_VERIFIED = "payment_verified"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    VERIFIED = "verified"
    REJECTED = "rejected"
    SUSPENDED = "suspended"

    @classmethod
    def parse(cls, value: str | None) -> "VerificationStatus | None":
        """Convert a wire string to enum without raising.

        An unknown value must not break rendering: it is logged and
        returned as None.

        Args:
            value: Status string from the backend.

        Returns:
            The matching VerificationStatus, or None if unrecognized.
        """
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unrecognized verification status: %r", value)
            return None


TERMINAL_STATUSES: frozenset[VerificationStatus] = frozenset(
    {
        VerificationStatus.SUBMITTED,
        VerificationStatus.UNDER_REVIEW,
        VerificationStatus.REJECTED,
        VerificationStatus.SUSPENDED,
    }
)
"""States reached only via server-side review, never by client action."""


class AccountSnapshot(BaseModel):
    """Authoritative input to gating decisions.

    ``user_type`` and ``verification_status`` are kept as raw strings so a
    value added on the backend after this client shipped still loads; use
    the ``role`` and ``status`` properties for typed access.

    Attributes:
        id: Opaque account identifier.
        user_type: Account role as sent by the backend.
        email_verified: Whether the email address has been confirmed.
        phone: Contact number; presence, not validity, is the gating signal.
        has_preferences: Whether job-intent preferences were captured.
        verification_status: Verification lifecycle value as sent.
        profile_complete: For employers, company profile submitted.
        rejected_reason: Display-only reason for a KYC rejection.
        permissions: Permission names granted to the account.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str
    user_type: str
    email_verified: bool = False
    phone: str | None = None
    has_preferences: bool = False
    verification_status: str | None = VerificationStatus.DRAFT.value
    profile_complete: bool = False
    rejected_reason: str | None = None

    name: str | None = None
    email: str | None = None
    permissions: tuple[str, ...] = Field(default_factory=tuple)
    profile_completion_percentage: float | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: object) -> object:
        """Accept numeric ids from the backend."""
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("has_preferences", "profile_complete", "email_verified", mode="before")
    @classmethod
    def none_is_false(cls, value: object) -> object:
        """Treat an explicit null flag as not set."""
        return False if value is None else value

    @field_validator("verification_status")
    @classmethod
    def warn_unknown_status(cls, value: str | None) -> str | None:
        """Log an unrecognized status once, when the snapshot is built."""
        VerificationStatus.parse(value)
        return value

    @field_validator("permissions", mode="before")
    @classmethod
    def none_is_empty(cls, value: object) -> object:
        """Treat a null permission list as empty."""
        return () if value is None else value

    @property
    def role(self) -> UserType | None:
        """Typed user type, or None if the backend sent an unknown role."""
        try:
            return UserType(self.user_type)
        except ValueError:
            return None

    @property
    def status(self) -> VerificationStatus | None:
        """Typed verification status, or None if unrecognized."""
        try:
            return VerificationStatus(self.verification_status)
        except ValueError:
            return None

    @property
    def has_phone(self) -> bool:
        """Whether a non-blank phone number is on file."""
        return bool(self.phone and self.phone.strip())

    def to_wire(self) -> dict[str, object]:
        """Serialize using backend field names."""
        return self.model_dump(mode="json", by_alias=True)
