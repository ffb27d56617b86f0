"""Profile wizard progress engine.

Folds independently-editable profile sections into a single ordered unlock
chain, an auto-expand target and a score.

Rules:
- Required sections unlock in fixed order (personal → address → education
  → skills → experience). Section i is locked iff section i-1 is not
  completed; personal is never locked. Optional sections are never locked.
- Completion of list-backed sections is recomputed from freshly fetched
  lists after every mutation, never from a cached flag, since another tab or
  a server-side correction may change the list without a local write.
- "No formal education" and "fresher" are completed states in their own
  right, equal to having records.
- The first incomplete required section auto-expands once per load; later
  saves never move focus away from a section the user opened.
- Points count every completed section; the completion percentage counts
  required sections only.

``compute_state`` is pure and total. ``ProfileWizardEngine`` owns the only
mutable UI state (which card is open and whether auto-expand has run).
``WizardController`` sequences API writes, reloads and recomputation.
"""

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from jobgate.clients.profile_api import ProfileApi
from jobgate.core.config import settings
from jobgate.core.errors import ApiClientError
from jobgate.schemas.account import AccountSnapshot
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

logger = logging.getLogger(__name__)

_ALL_SECTIONS: tuple[SectionKey, ...] = tuple(SectionKey)

# =============================================================================
# Completion Rules
# =============================================================================


def section_completed(
    key: SectionKey,
    status: WizardStatusPayload,
    lists: SubResourceLists,
    *,
    skills_required_count: int,
) -> bool:
    """Decide whether one section counts as completed.

    Args:
        key: Section to evaluate.
        status: Backend wizard status (flags and profile sub-documents).
        lists: Freshly fetched list-backed records.
        skills_required_count: Minimum skills for the skills section.

    Returns:
        True if the section is completed.
    """
    if key is SectionKey.EDUCATION:
        return len(lists.education) > 0 or status.has_no_formal_education
    if key is SectionKey.EXPERIENCE:
        return len(lists.experience) > 0 or status.is_fresher
    if key is SectionKey.SKILLS:
        return len(lists.skills) >= skills_required_count
    if key is SectionKey.INTERESTS:
        return len(lists.interests) > 0
    if key is SectionKey.COMMUNITY:
        # Absent consent is "not yet complete", never an error.
        return status.section_flag(key) and status.community_consent_granted
    return status.section_flag(key)


def first_incomplete_required(
    sections: Mapping[SectionKey, SectionState],
) -> SectionKey | None:
    """First required section, in unlock order, that is not completed."""
    for key in REQUIRED_SECTION_ORDER:
        section = sections.get(key)
        if section is None or not section.completed:
            return key
    return None


def next_required_section(key: SectionKey) -> SectionKey | None:
    """Required section after ``key`` in unlock order, or None."""
    if key not in REQUIRED_SECTION_ORDER:
        return None
    index = REQUIRED_SECTION_ORDER.index(key)
    if index + 1 < len(REQUIRED_SECTION_ORDER):
        return REQUIRED_SECTION_ORDER[index + 1]
    return None


def newly_completed(
    previous: ProfileWizardState | None,
    current: ProfileWizardState,
) -> frozenset[SectionKey]:
    """Sections that went from incomplete to completed between two states.

    Used to show a one-time benefit message after a save.
    """
    if previous is None:
        return frozenset()
    return frozenset(
        key
        for key, section in current.sections.items()
        if section.completed
        and key in previous.sections
        and not previous.sections[key].completed
    )


# =============================================================================
# State Computation
# =============================================================================


def compute_state(
    raw_status: WizardStatusPayload,
    lists: SubResourceLists,
    *,
    expanded_section: SectionKey | None = None,
    points: Mapping[str, int] | None = None,
    skills_required_count: int | None = None,
    section_errors: Mapping[SectionKey, str] | None = None,
) -> ProfileWizardState:
    """Derive the full wizard state from backend data.

    Args:
        raw_status: Backend wizard status.
        lists: Freshly fetched list-backed records.
        expanded_section: Card currently open, carried through unchanged.
        points: Per-section point values. Defaults to settings.
        skills_required_count: Skills threshold. Defaults to settings.
        section_errors: Inline save errors to attach.

    Returns:
        ProfileWizardState. Same inputs always give an equal state.
    """
    point_values = points if points is not None else settings.section_points
    skills_needed = (
        skills_required_count
        if skills_required_count is not None
        else settings.skills_required_count
    )

    completed = {
        key: section_completed(
            key, raw_status, lists, skills_required_count=skills_needed
        )
        for key in _ALL_SECTIONS
    }

    sections: dict[SectionKey, SectionState] = {}
    for index, key in enumerate(REQUIRED_SECTION_ORDER):
        locked = index > 0 and not completed[REQUIRED_SECTION_ORDER[index - 1]]
        sections[key] = SectionState(
            key=key,
            completed=completed[key],
            optional=False,
            locked=locked,
            points=point_values.get(key.value, 0),
        )
    for key in _ALL_SECTIONS:
        if key in OPTIONAL_SECTIONS:
            sections[key] = SectionState(
                key=key,
                completed=completed[key],
                optional=True,
                locked=False,
                points=point_values.get(key.value, 0),
            )

    completed_required = sum(1 for key in REQUIRED_SECTION_ORDER if completed[key])
    total_required = len(REQUIRED_SECTION_ORDER)
    summary = WizardSummary(
        earned_points=sum(s.points for s in sections.values() if s.completed),
        max_points=sum(s.points for s in sections.values()),
        completion_percentage=round(100 * completed_required / total_required),
        completed_required_count=completed_required,
        total_required_count=total_required,
        is_profile_complete=completed_required == total_required,
    )

    return ProfileWizardState(
        sections=sections,
        summary=summary,
        expanded_section=expanded_section,
        section_errors=dict(section_errors or {}),
    )


# =============================================================================
# Engine
# =============================================================================


class ProfileWizardEngine:
    """Holds which card is open and whether auto-expand already ran.

    Auto-expand happens once per load: ``reset()`` starts a load, the next
    ``recompute()`` opens the first incomplete required section, and every
    later ``recompute()`` keeps whatever the user has open.

    Args:
        points: Per-section point values. Defaults to settings.
        skills_required_count: Skills threshold. Defaults to settings.
    """

    def __init__(
        self,
        *,
        points: Mapping[str, int] | None = None,
        skills_required_count: int | None = None,
    ) -> None:
        self._points = points
        self._skills_required_count = skills_required_count
        self.has_auto_expanded_once = False
        self.expanded_section: SectionKey | None = None
        self._state: ProfileWizardState | None = None

    @property
    def state(self) -> ProfileWizardState | None:
        """Last computed state."""
        return self._state

    def reset(self) -> None:
        """Begin a new load; the next recompute may auto-expand again."""
        self.has_auto_expanded_once = False
        self.expanded_section = None
        self._state = None

    def recompute(
        self,
        raw_status: WizardStatusPayload,
        lists: SubResourceLists,
        *,
        section_errors: Mapping[SectionKey, str] | None = None,
    ) -> ProfileWizardState:
        """Recompute state from freshly fetched backend data.

        Returns:
            The new ProfileWizardState.
        """
        state = compute_state(
            raw_status,
            lists,
            expanded_section=self.expanded_section,
            points=self._points,
            skills_required_count=self._skills_required_count,
            section_errors=section_errors,
        )
        if not self.has_auto_expanded_once:
            self.has_auto_expanded_once = True
            self.expanded_section = first_incomplete_required(state.sections)
            state = dataclasses.replace(state, expanded_section=self.expanded_section)
        self._state = state
        return state

    def toggle(self, section: SectionKey) -> SectionKey | None:
        """Open or close a card on user request.

        Locked sections cannot be opened.

        Returns:
            The section now expanded, or None.
        """
        if self._state is not None and self._state.sections[section].locked:
            return self.expanded_section
        self.expanded_section = None if self.expanded_section is section else section
        self._sync_expanded()
        return self.expanded_section

    def after_section_saved(self, section: SectionKey, was_completed: bool) -> None:
        """Move focus after a successful form save or completion flag.

        A required section completed for the first time hands focus to the
        next required section. Re-saving a completed section, or saving an
        optional one, closes the card.
        """
        if section in OPTIONAL_SECTIONS or was_completed:
            self.expanded_section = None
        else:
            self.expanded_section = next_required_section(section)
        self._sync_expanded()

    def attach_errors(self, section_errors: Mapping[SectionKey, str]) -> None:
        """Replace inline errors on the current state.

        Completion flags are left as they were.
        """
        if self._state is not None:
            self._state = dataclasses.replace(
                self._state, section_errors=dict(section_errors)
            )

    def _sync_expanded(self) -> None:
        if self._state is not None:
            self._state = dataclasses.replace(
                self._state, expanded_section=self.expanded_section
            )


# =============================================================================
# Controller
# =============================================================================


class AccountRefresher(Protocol):
    """Anything that can refresh the session's account snapshot."""

    async def refresh_account(self) -> AccountSnapshot | None: ...


class WizardController:
    """Runs wizard mutations against the API and keeps state current.

    Every mutation awaits its write before reloading, so the recomputation
    never reads a list from before the write. Section writes are
    independent requests; nothing is transactional across sections.

    Args:
        profile_api: Profile endpoints.
        engine: Progress engine. Defaults to a fresh one.
        session: Optional session to refresh after each successful write,
            since saves can change the account's gating state.
    """

    def __init__(
        self,
        profile_api: ProfileApi,
        engine: ProfileWizardEngine | None = None,
        *,
        session: AccountRefresher | None = None,
    ) -> None:
        self._api = profile_api
        self._engine = engine or ProfileWizardEngine()
        self._session = session
        self._status: WizardStatusPayload | None = None
        self._lists = SubResourceLists()
        self._section_errors: dict[SectionKey, str] = {}
        self.last_newly_completed: frozenset[SectionKey] = frozenset()

    @property
    def engine(self) -> ProfileWizardEngine:
        """Underlying progress engine."""
        return self._engine

    @property
    def state(self) -> ProfileWizardState | None:
        """Current wizard state, or None before the first load."""
        return self._engine.state

    @property
    def status(self) -> WizardStatusPayload | None:
        """Last fetched backend status (for prefilling forms)."""
        return self._status

    @property
    def lists(self) -> SubResourceLists:
        """Last fetched list-backed records."""
        return self._lists

    @property
    def section_errors(self) -> dict[SectionKey, str]:
        """Inline save errors by section."""
        return dict(self._section_errors)

    async def load(self) -> ProfileWizardState:
        """Initial load of the wizard view; may auto-expand.

        Raises:
            ApiClientError: Wizard status could not be fetched or parsed.
        """
        self._engine.reset()
        self._section_errors.clear()
        return await self.reload()

    async def reload(self) -> ProfileWizardState:
        """Fetch status and lists concurrently and recompute.

        A failed list fetch degrades to an empty list; a failed status
        fetch propagates.

        Raises:
            ApiClientError: Wizard status could not be fetched or parsed.
        """
        previous = self._engine.state
        status, education, experience, skills, interests = await asyncio.gather(
            self._api.get_status(),
            self._fetch_list(ListKind.EDUCATION),
            self._fetch_list(ListKind.EXPERIENCE),
            self._fetch_list(ListKind.SKILLS),
            self._fetch_list(ListKind.INTERESTS),
        )
        self._status = status
        self._lists = SubResourceLists(
            education=tuple(education),
            experience=tuple(experience),
            skills=tuple(skills),
            interests=tuple(interests),
        )
        state = self._engine.recompute(
            status, self._lists, section_errors=self._section_errors
        )
        self.last_newly_completed = newly_completed(previous, state)
        return state

    async def _fetch_list(self, kind: ListKind) -> list[dict[str, Any]]:
        try:
            return await self._api.list_records(kind)
        except ApiClientError as e:
            logger.warning("Could not load %s records: %s", kind.value, e.code)
            return []

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def save_section(self, section: SectionKey, data: dict[str, Any]) -> bool:
        """Save a form section (personal, address, family, socioEconomic,
        community).

        Returns:
            True if saved; False if the save failed and an inline error was
            recorded.
        """
        return await self._mutate(
            section,
            lambda: self._api.update_section(section, data),
            moves_focus=True,
        )

    async def add_record(self, kind: ListKind, data: dict[str, Any]) -> bool:
        """Add an education, experience, skill or interest record."""
        return await self._mutate(
            kind.section, lambda: self._api.create_record(kind, data)
        )

    async def update_record(
        self, kind: ListKind, record_id: str, data: dict[str, Any]
    ) -> bool:
        """Edit an experience or skill record."""
        return await self._mutate(
            kind.section, lambda: self._api.update_record(kind, record_id, data)
        )

    async def delete_record(self, kind: ListKind, record_id: str) -> bool:
        """Remove a record; completion is re-derived from the new list."""
        return await self._mutate(
            kind.section, lambda: self._api.delete_record(kind, record_id)
        )

    async def bulk_add_skills(self, names: list[str]) -> bool:
        """Add several skills by name."""
        return await self._mutate(
            SectionKey.SKILLS, lambda: self._api.bulk_create_skills(names)
        )

    async def mark_no_formal_education(self) -> bool:
        """Complete education via the explicit no-formal-education path."""
        return await self._mutate(
            SectionKey.EDUCATION,
            self._api.mark_no_formal_education,
            moves_focus=True,
        )

    async def mark_fresher(self) -> bool:
        """Complete experience via the explicit fresher path."""
        return await self._mutate(
            SectionKey.EXPERIENCE,
            self._api.mark_fresher,
            moves_focus=True,
        )

    def toggle(self, section: SectionKey) -> SectionKey | None:
        """Open or close a section card on user request."""
        return self._engine.toggle(section)

    async def _mutate(
        self,
        section: SectionKey,
        action: Callable[[], Awaitable[Any]],
        *,
        moves_focus: bool = False,
    ) -> bool:
        current = self._engine.state
        was_completed = current.sections[section].completed if current else False

        try:
            await action()
        except ApiClientError as e:
            logger.warning("Saving section %s failed: %s", section.value, e.code)
            self._record_error(section, e.message or "Could not save this section")
            return False

        self._section_errors.pop(section, None)
        if moves_focus:
            self._engine.after_section_saved(section, was_completed)

        try:
            await self.reload()
        except ApiClientError as e:
            logger.warning("Reload after saving %s failed: %s", section.value, e.code)
            self._record_error(section, "Saved, but the latest progress could not be loaded")
            return True

        if self._session is not None:
            try:
                await self._session.refresh_account()
            except ApiClientError as e:
                logger.warning("Account refresh after wizard save failed: %s", e.code)
        return True

    def _record_error(self, section: SectionKey, message: str) -> None:
        self._section_errors[section] = message
        self._engine.attach_errors(self._section_errors)
