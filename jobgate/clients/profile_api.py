"""Profile wizard, list-backed sub-resource and preference endpoints."""

from typing import Any

from jobgate.clients.api_client import ApiClient
from jobgate.core.responses import parse_payload
from jobgate.schemas.auth import UserPreferences
from jobgate.schemas.profile_wizard import (
    FORM_SECTIONS,
    ListKind,
    SectionKey,
    WizardStatusPayload,
)

# Form sections whose URL slug differs from the section key.
_SECTION_SLUGS: dict[SectionKey, str] = {
    SectionKey.SOCIO_ECONOMIC: "socio-economic",
}

# Each list endpoint names its collection differently in the response body.
_LIST_RESPONSE_KEYS: dict[ListKind, str] = {
    ListKind.EDUCATION: "records",
    ListKind.EXPERIENCE: "records",
    ListKind.SKILLS: "skills",
    ListKind.INTERESTS: "interests",
}

_JOBSEEKER_PREFIX = "/profile/jobseeker"


def _extract_records(payload: Any, kind: ListKind) -> list[dict[str, Any]]:
    """Pull the record list out of a list response of any shape."""
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict):
        records = payload.get(_LIST_RESPONSE_KEYS[kind], [])
    else:
        records = []
    if not isinstance(records, list):
        return []
    return [r for r in records if isinstance(r, dict)]


class ProfileApi:
    """Profile wizard resource.

    Args:
        client: Shared API client.
    """

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    # -------------------------------------------------------------------------
    # Wizard status and form sections
    # -------------------------------------------------------------------------

    async def get_status(self) -> WizardStatusPayload:
        """Fetch per-section status, summary and profile sub-documents.

        Raises:
            InvalidResponseError: The status body does not match the schema.
        """
        payload = await self._client.get("/profile/wizard/status")
        return parse_payload(WizardStatusPayload, payload)

    async def update_section(self, section: SectionKey, data: dict[str, Any]) -> Any:
        """Save one form section's sub-document.

        Args:
            section: One of the form sections (personal, address, family,
                socioEconomic, community).
            data: Field values to save.

        Raises:
            ValueError: If ``section`` is list-backed.
        """
        if section not in FORM_SECTIONS:
            raise ValueError(f"Section '{section.value}' is not saved as a form")
        slug = _SECTION_SLUGS.get(section, section.value)
        return await self._client.patch(f"/profile/wizard/{slug}", json=data)

    # -------------------------------------------------------------------------
    # List-backed sections
    # -------------------------------------------------------------------------

    async def list_records(self, kind: ListKind) -> list[dict[str, Any]]:
        """Fetch every record of one list kind."""
        payload = await self._client.get(f"{_JOBSEEKER_PREFIX}/{kind.value}")
        return _extract_records(payload, kind)

    async def create_record(self, kind: ListKind, data: dict[str, Any]) -> Any:
        """Add one record."""
        return await self._client.post(f"{_JOBSEEKER_PREFIX}/{kind.value}", json=data)

    async def update_record(
        self, kind: ListKind, record_id: str, data: dict[str, Any]
    ) -> Any:
        """Edit one record. Education and interests do not support edits.

        Raises:
            ValueError: If the list kind has no update endpoint.
        """
        if kind not in (ListKind.EXPERIENCE, ListKind.SKILLS):
            raise ValueError(f"'{kind.value}' records cannot be updated")
        return await self._client.patch(
            f"{_JOBSEEKER_PREFIX}/{kind.value}/{record_id}", json=data
        )

    async def delete_record(self, kind: ListKind, record_id: str) -> None:
        """Remove one record."""
        await self._client.delete(f"{_JOBSEEKER_PREFIX}/{kind.value}/{record_id}")

    async def bulk_create_skills(self, skills: list[str]) -> Any:
        """Add several skills by name in one call."""
        return await self._client.post(
            f"{_JOBSEEKER_PREFIX}/skills/bulk", json={"skills": skills}
        )

    async def mark_no_formal_education(self) -> Any:
        """Declare no formal education (a completed state, not a skip)."""
        return await self._client.post(f"{_JOBSEEKER_PREFIX}/education/no-formal")

    async def mark_fresher(self) -> Any:
        """Declare no prior work experience (a completed state, not a skip)."""
        return await self._client.post(f"{_JOBSEEKER_PREFIX}/experience/fresher")

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    async def get_preferences(self) -> UserPreferences | None:
        """Fetch job-intent preferences, or None if never captured."""
        payload = await self._client.get("/preferences")
        raw = payload.get("preferences") if isinstance(payload, dict) else None
        if not isinstance(raw, dict):
            return None
        return parse_payload(UserPreferences, raw)

    async def save_preferences(self, preferences: UserPreferences) -> None:
        """Store job-intent preferences."""
        await self._client.post(
            "/preferences",
            json=preferences.model_dump(by_alias=True, exclude_none=True),
        )
