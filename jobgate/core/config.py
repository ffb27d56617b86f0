"""Client configuration loaded from environment variables.

Settings for the backend API, route paths the gate redirects to, and the
profile wizard's point values. Uses pydantic-settings for validation and
.env file support.
"""

from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Point values are product-tuning constants, not invariants.
# Required sections sum to 95, bonus sections to 50.
DEFAULT_SECTION_POINTS: dict[str, int] = {
    "personal": 20,
    "address": 15,
    "education": 20,
    "skills": 20,
    "experience": 20,
    "family": 10,
    "socioEconomic": 15,
    "community": 10,
    "interests": 15,
}


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Backend API
    api_base_url: str = "http://localhost:3001"
    api_timeout_seconds: float = 10.0

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Session persistence. None keeps the session in memory only.
    # Only {account, isAuthenticated} is ever written here, never tokens.
    session_storage_path: Path | None = None

    # Routes outside the onboarding step table
    login_path: str = "/login"
    unauthorized_path: str = "/unauthorized"
    individual_dashboard_path: str = "/dashboard"
    employer_dashboard_path: str = "/employer/dashboard"

    # Profile wizard
    section_points: dict[str, int] = DEFAULT_SECTION_POINTS.copy()
    skills_required_count: int = 1

    @model_validator(mode="after")
    def check_consistency(self) -> "Settings":
        """Validate wizard scoring and routing configuration.

        Checks:
        - Every known section has a point value
        - Point values are non-negative
        - Skills threshold is non-negative
        - Route paths are absolute
        - API base URL uses https in production
        """
        missing = sorted(set(DEFAULT_SECTION_POINTS) - set(self.section_points))
        if missing:
            msg = f"SECTION_POINTS is missing values for: {', '.join(missing)}"
            raise ValueError(msg)

        negative = sorted(k for k, v in self.section_points.items() if v < 0)
        if negative:
            msg = f"SECTION_POINTS cannot be negative. Got negative: {negative}"
            raise ValueError(msg)

        if self.skills_required_count < 0:
            msg = (
                "SKILLS_REQUIRED_COUNT cannot be negative. "
                f"Got: {self.skills_required_count}"
            )
            raise ValueError(msg)

        for name in (
            "login_path",
            "unauthorized_path",
            "individual_dashboard_path",
            "employer_dashboard_path",
        ):
            if not getattr(self, name).startswith("/"):
                msg = f"{name.upper()} must be an absolute path starting with '/'"
                raise ValueError(msg)

        if self.environment == "production" and not self.api_base_url.startswith(
            "https://"
        ):
            msg = (
                "API_BASE_URL must use https in production. "
                "Access tokens are sent as bearer headers."
            )
            raise ValueError(msg)

        return self


settings = Settings()
