"""Backend response envelope.

The backend is inconsistent: some endpoints answer ``{"payload": ...}``,
others return the resource bare. Error bodies carry ``error`` either as a
string or as ``{"code", "message"}``, and the verification escape hatch
puts ``code``/``redirectTo`` at the top level. This module is the single
place those shapes are understood; everything above ``ApiClient`` sees the
unwrapped payload.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from jobgate.core.errors import InvalidResponseError

VERIFICATION_REQUIRED_CODE = "VERIFICATION_REQUIRED"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _dict_list_or_none(value: Any) -> list[dict[str, Any]] | None:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, dict)]


def parse_payload(model: type[ModelT], payload: Any) -> ModelT:
    """Validate an unwrapped payload against a response schema.

    Args:
        model: Pydantic model describing the expected payload.
        payload: Unwrapped response data; None is treated as an empty object.

    Returns:
        The validated model.

    Raises:
        InvalidResponseError: The payload does not match the schema.
    """
    try:
        return model.model_validate(payload or {})
    except SchemaError as e:
        raise InvalidResponseError() from e


class ErrorDetail(BaseModel):
    """Normalized error information extracted from a failure body.

    Attributes:
        code: Machine-readable error code, if the backend sent one.
        message: Human-readable error message, if the backend sent one.
        redirect_to: Route for the verification escape hatch.
        details: Optional list of field-level errors.
    """

    code: str | None = None
    message: str | None = None
    redirect_to: str | None = None
    details: list[dict[str, Any]] | None = None


class ApiEnvelope(BaseModel):
    """Canonical view of any backend response body.

    Usage:
        envelope = ApiEnvelope.from_body(response.json())
        data = envelope.unwrap()
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    payload: Any = None
    message: str | None = None
    error: Any = None
    code: str | None = None
    redirect_to: str | None = Field(default=None, alias="redirectTo")
    details: list[dict[str, Any]] | None = None

    # Decoded body as received, whatever its shape.
    raw: Any = Field(default=None, exclude=True)

    @classmethod
    def from_body(cls, body: Any) -> "ApiEnvelope":
        """Build an envelope from a decoded JSON body of any shape.

        Envelope keys holding an unexpected type (a numeric ``code``, a
        string ``details``) are treated as absent; the full body stays
        available through ``raw``.

        Args:
            body: Decoded JSON (dict, list, scalar, or None).

        Returns:
            ApiEnvelope wrapping the body.
        """
        if not isinstance(body, dict):
            return cls(raw=body)
        return cls(
            payload=body.get("payload"),
            message=_str_or_none(body.get("message")),
            error=body.get("error"),
            code=_str_or_none(body.get("code")),
            redirect_to=_str_or_none(body.get("redirectTo")),
            details=_dict_list_or_none(body.get("details")),
            raw=body,
        )

    def unwrap(self) -> Any:
        """Return the payload if present, else the whole body.

        Returns:
            The resource data the caller asked for.
        """
        if self.payload is not None:
            return self.payload
        return self.raw

    def error_detail(self) -> ErrorDetail:
        """Extract error information regardless of which shape was used.

        Returns:
            ErrorDetail with whatever fields could be found.
        """
        code = self.code
        message = self.message
        redirect_to = self.redirect_to
        details = self.details

        if isinstance(self.error, str):
            message = self.error
        elif isinstance(self.error, dict):
            code = _str_or_none(self.error.get("code")) or code
            message = _str_or_none(self.error.get("message")) or message
            redirect_to = _str_or_none(self.error.get("redirectTo")) or redirect_to
            nested_details = self.error.get("details")
            if isinstance(nested_details, list):
                details = _dict_list_or_none(nested_details)

        return ErrorDetail(
            code=code if isinstance(code, str) else None,
            message=message if isinstance(message, str) else None,
            redirect_to=redirect_to if isinstance(redirect_to, str) else None,
            details=details,
        )

    @property
    def is_verification_required(self) -> bool:
        """Whether this body is the server's verification escape hatch."""
        detail = self.error_detail()
        return detail.code == VERIFICATION_REQUIRED_CODE and bool(detail.redirect_to)
