"""Auth request/response schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from jobgate.schemas.account import AccountSnapshot


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class LoginRequest(_CamelModel):
    """Email/password credentials."""

    email: str
    password: str = Field(repr=False)


class SignupRequest(_CamelModel):
    """New account registration.

    Admin accounts cannot be self-registered.
    """

    name: str
    email: str
    password: str = Field(repr=False)
    user_type: Literal["individual", "employer"]
    phone: str | None = None


class AuthPayload(_CamelModel):
    """Successful login or refresh result.

    Attributes:
        access_token: Short-lived bearer token (memory only).
        expires_in: Token lifetime in seconds, if reported.
        user: Account snapshot, present on login but not always on refresh.
    """

    access_token: str | None = Field(default=None, repr=False)
    expires_in: int | None = None
    user: AccountSnapshot | None = None


class ProfileUpdateRequest(_CamelModel):
    """Fields a user may change on their own account."""

    name: str | None = None
    phone: str | None = None
    whatsapp_number: str | None = None


class UserPreferences(_CamelModel):
    """Job-intent preferences captured during onboarding."""

    wants_job_now: bool | None = None
    open_to_future_jobs: bool | None = None
    wants_skill_programs: bool | None = None
    wants_community_programs: bool | None = None
