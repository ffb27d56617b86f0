"""Profile wizard schemas.

Wire models for the backend's wizard status and sub-resource lists, and the
derived ``ProfileWizardState`` the progress engine produces for rendering
section cards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# =============================================================================
# Section Keys
# =============================================================================


class SectionKey(str, Enum):
    """Editable units of the profile wizard."""

    PERSONAL = "personal"
    ADDRESS = "address"
    EDUCATION = "education"
    SKILLS = "skills"
    EXPERIENCE = "experience"
    FAMILY = "family"
    SOCIO_ECONOMIC = "socioEconomic"
    COMMUNITY = "community"
    INTERESTS = "interests"


REQUIRED_SECTION_ORDER: tuple[SectionKey, ...] = (
    SectionKey.PERSONAL,
    SectionKey.ADDRESS,
    SectionKey.EDUCATION,
    SectionKey.SKILLS,
    SectionKey.EXPERIENCE,
)
"""Required sections in unlock order. Position matters."""

OPTIONAL_SECTIONS: frozenset[SectionKey] = frozenset(
    {
        SectionKey.FAMILY,
        SectionKey.SOCIO_ECONOMIC,
        SectionKey.COMMUNITY,
        SectionKey.INTERESTS,
    }
)
"""Bonus sections. Never locked, never affect profile completeness."""

FORM_SECTIONS: frozenset[SectionKey] = frozenset(
    {
        SectionKey.PERSONAL,
        SectionKey.ADDRESS,
        SectionKey.FAMILY,
        SectionKey.SOCIO_ECONOMIC,
        SectionKey.COMMUNITY,
    }
)
"""Sections saved as a single sub-document via a PATCH endpoint."""


class ListKind(str, Enum):
    """List-backed sub-resources with their own CRUD endpoints."""

    EDUCATION = "education"
    EXPERIENCE = "experience"
    SKILLS = "skills"
    INTERESTS = "interests"

    @property
    def section(self) -> SectionKey:
        """Wizard section this list feeds."""
        return SectionKey(self.value)


# =============================================================================
# Wire Models
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class WizardSectionStatus(_CamelModel):
    """Backend's per-section view from get-status."""

    completed: bool = False
    optional: bool = False
    count: int | None = None

    @field_validator("completed", "optional", mode="before")
    @classmethod
    def none_is_false(cls, value: object) -> object:
        """Treat a null flag as not set."""
        return False if value is None else value


class WizardProfiles(_CamelModel):
    """Raw profile sub-documents returned alongside wizard status.

    Contents are backend-owned; only a few flags are read here.
    """

    user_profile: dict[str, Any] | None = None
    jobseeker_profile: dict[str, Any] | None = None
    socio_economic_profile: dict[str, Any] | None = None
    family_profile: dict[str, Any] | None = None
    community_profile: dict[str, Any] | None = None


class WizardStatusPayload(_CamelModel):
    """Unwrapped body of the wizard get-status endpoint."""

    sections: dict[str, WizardSectionStatus] = Field(default_factory=dict)
    summary: dict[str, Any] | None = None
    profiles: WizardProfiles = Field(default_factory=WizardProfiles)

    @field_validator("sections", mode="before")
    @classmethod
    def drop_malformed_sections(cls, value: object) -> object:
        """Keep only section entries that are mappings."""
        if not isinstance(value, dict):
            return {}
        return {k: v for k, v in value.items() if isinstance(v, dict)}

    @field_validator("profiles", mode="before")
    @classmethod
    def none_is_empty(cls, value: object) -> object:
        """Treat a null profiles block as empty."""
        return {} if value is None else value

    def section_flag(self, key: SectionKey) -> bool:
        """Backend's completion flag for a section, False if absent."""
        section = self.sections.get(key.value)
        return section.completed if section is not None else False

    def _profile_flag(self, name: str) -> bool:
        for profile in (self.profiles.user_profile, self.profiles.jobseeker_profile):
            if profile and profile.get(name) is True:
                return True
        return False

    @property
    def has_no_formal_education(self) -> bool:
        """User explicitly declared no formal education."""
        return self._profile_flag("hasNoFormalEducation")

    @property
    def is_fresher(self) -> bool:
        """User explicitly declared no prior work experience."""
        return self._profile_flag("isFresher")

    @property
    def community_consent_granted(self) -> bool:
        """Whether a stored community profile carries consent.

        The backend only stores a community profile after consent, so a
        stored profile without a consent field counts as consented; an
        explicit ``false`` does not.
        """
        profile = self.profiles.community_profile
        if not profile:
            return False
        return profile.get("consent", True) is not False


@dataclass(frozen=True)
class SubResourceLists:
    """Post-mutation contents of the list-backed sections.

    Always populated from a fresh fetch, never from a cached count.
    """

    education: tuple[dict[str, Any], ...] = ()
    experience: tuple[dict[str, Any], ...] = ()
    skills: tuple[dict[str, Any], ...] = ()
    interests: tuple[dict[str, Any], ...] = ()

    def records(self, kind: ListKind) -> tuple[dict[str, Any], ...]:
        """Records for one list kind."""
        return getattr(self, kind.value)


# =============================================================================
# Derived State
# =============================================================================


@dataclass(frozen=True)
class SectionState:
    """Render state for one section card.

    Attributes:
        key: Section identifier.
        completed: Derived completion, never assumed optimistically.
        optional: True for bonus sections.
        locked: True if the previous required section is incomplete.
        points: Point value for this section.
    """

    key: SectionKey
    completed: bool
    optional: bool
    locked: bool
    points: int


@dataclass(frozen=True)
class WizardSummary:
    """Aggregate progress across all sections.

    Attributes:
        earned_points: Sum of points for completed sections (any kind).
        max_points: Sum of points for all sections.
        completion_percentage: Required sections completed, scaled to 100.
        completed_required_count: Number of required sections completed.
        total_required_count: Number of required sections.
        is_profile_complete: True iff every required section is completed.
    """

    earned_points: int
    max_points: int
    completion_percentage: int
    completed_required_count: int
    total_required_count: int
    is_profile_complete: bool

    @property
    def steps_remaining(self) -> int:
        """Required sections still to complete."""
        return self.total_required_count - self.completed_required_count


@dataclass(frozen=True)
class ProfileWizardState:
    """Derived view over the backend's wizard sub-resources.

    Holds no persistent identity; recomputed on every load and save.
    """

    sections: dict[SectionKey, SectionState]
    summary: WizardSummary
    expanded_section: SectionKey | None = None
    section_errors: dict[SectionKey, str] = field(default_factory=dict)

    def section(self, key: SectionKey) -> SectionState:
        """State for a single section."""
        return self.sections[key]

    @property
    def locked(self) -> dict[SectionKey, bool]:
        """Lock flag for each required section, in unlock order."""
        return {key: self.sections[key].locked for key in REQUIRED_SECTION_ORDER}
