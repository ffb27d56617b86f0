"""Registration endpoints: onboarding data that moves verification status."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from jobgate.clients.api_client import ApiClient
from jobgate.schemas.account import UserType


class KycSubmission(BaseModel):
    """Identity documents for review.

    Document URLs point at files already uploaded to object storage.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_type: str
    document_number: str = Field(repr=False)
    document_url: str
    document_back_url: str | None = None
    selfie_url: str | None = None


class CompanyDetails(BaseModel):
    """Employer company profile."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    company_name: str
    industry: str | None = None
    company_size: str | None = None
    website: str | None = None
    description: str | None = None


class RegistrationApi:
    """Registration resource.

    Args:
        client: Shared API client.
    """

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_status(self) -> dict[str, Any]:
        """Fetch the backend's registration progress."""
        payload = await self._client.get("/registration/status")
        return payload if isinstance(payload, dict) else {}

    async def complete_jobseeker_profile(self, data: dict[str, Any]) -> Any:
        """Submit the individual's basic registration profile."""
        return await self._client.post("/registration/jobseeker/profile", json=data)

    async def complete_employer_company(self, details: CompanyDetails) -> Any:
        """Submit the employer company profile (requires payment first)."""
        return await self._client.post(
            "/registration/employer/company",
            json=details.model_dump(by_alias=True, exclude_none=True),
        )

    async def submit_kyc(self, user_type: UserType, submission: KycSubmission) -> Any:
        """Submit or resubmit identity documents.

        Args:
            user_type: Individual or employer; selects the review queue.
            submission: Uploaded document references.

        Raises:
            ValueError: For administrator accounts, which are never reviewed.
        """
        if user_type is UserType.ADMIN:
            raise ValueError("Administrator accounts do not submit KYC")
        return await self._client.post(
            f"/registration/{user_type.value}/kyc",
            json=submission.model_dump(by_alias=True, exclude_none=True),
        )
