"""API client error classes.

Maps backend HTTP failures onto a small taxonomy so callers can react by
type: surface a message, force a logout, or follow a server redirect.
"""

from typing import Any


class ApiClientError(Exception):
    """Base class for backend call errors.

    All client errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code received (0 when no response).
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(ApiClientError):
    """Backend rejected the request body (400)."""

    def __init__(
        self,
        message: str,
        details: list[dict[str, Any]] | None = None,
        code: str = "VALIDATION_ERROR",
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(ApiClientError):
    """Authentication required or credentials rejected (401).

    Raised for bad credentials on login and for a 401 that survives the
    single refresh-and-replay.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        code: str = "UNAUTHORIZED",
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=401,
        )


class SessionExpiredError(UnauthorizedError):
    """Token refresh failed; the session has been cleared (401)."""

    def __init__(self, message: str = "Session expired") -> None:
        super().__init__(message=message, code="SESSION_EXPIRED")


class ForbiddenError(ApiClientError):
    """Authenticated but not allowed (403)."""

    def __init__(
        self,
        message: str = "Access denied",
        code: str = "FORBIDDEN",
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=403,
        )


class VerificationRequiredError(ForbiddenError):
    """Server demands an onboarding step before this resource (403).

    The client has already navigated to ``redirect_to`` when this is raised.

    Args:
        redirect_to: Route the server asked the client to visit.
        message: Human-readable message from the backend.
    """

    def __init__(
        self,
        redirect_to: str,
        message: str = "Verification required",
    ) -> None:
        super().__init__(message=message, code="VERIFICATION_REQUIRED")
        self.redirect_to = redirect_to


class NotFoundError(ApiClientError):
    """Resource not found (404)."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class ConflictError(ApiClientError):
    """Duplicate or conflicting resource (409)."""

    def __init__(self, message: str, code: str = "CONFLICT") -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
        )


class InvalidStateError(ApiClientError):
    """Business rule violation reported by the backend (422)."""

    def __init__(self, message: str, code: str = "INVALID_STATE") -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=422,
        )


class ServerError(ApiClientError):
    """Backend failed unexpectedly (5xx)."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=status_code,
        )


class NetworkError(ApiClientError):
    """No response received (connection refused, timeout, DNS)."""

    def __init__(self, message: str = "Network request failed") -> None:
        super().__init__(
            code="NETWORK_ERROR",
            message=message,
            status_code=0,
        )


class InvalidResponseError(ApiClientError):
    """Backend answered successfully but the body has the wrong shape."""

    def __init__(self, message: str = "Unexpected response from the server") -> None:
        super().__init__(
            code="INVALID_RESPONSE",
            message=message,
            status_code=502,
        )
