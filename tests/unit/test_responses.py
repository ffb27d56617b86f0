"""Tests for the backend response envelope and error classes."""

from jobgate.core.errors import (
    ApiClientError,
    NetworkError,
    SessionExpiredError,
    UnauthorizedError,
    VerificationRequiredError,
)
from jobgate.core.responses import ApiEnvelope


class TestUnwrap:
    """Tests for ApiEnvelope.unwrap."""

    def test_payload_key_is_unwrapped(self):
        """Bodies with a payload key yield the payload."""
        envelope = ApiEnvelope.from_body({"payload": {"id": "1"}, "message": "ok"})
        assert envelope.unwrap() == {"id": "1"}

    def test_bare_object_is_returned_whole(self):
        """Bodies without payload are the resource itself."""
        body = {"records": [{"id": "e1"}]}
        assert ApiEnvelope.from_body(body).unwrap() == body

    def test_falsy_payload_is_kept(self):
        """An empty payload list is still the payload."""
        assert ApiEnvelope.from_body({"payload": []}).unwrap() == []

    def test_non_object_bodies(self):
        """Lists, scalars and null pass through."""
        assert ApiEnvelope.from_body([1]).unwrap() == [1]
        assert ApiEnvelope.from_body("ok").unwrap() == "ok"
        assert ApiEnvelope.from_body(None).unwrap() is None

    def test_resource_with_envelope_like_keys(self):
        """A bare resource whose fields collide with envelope keys is kept whole."""
        body = {"id": "e1", "details": "BSc Physics", "message": 3}
        envelope = ApiEnvelope.from_body(body)
        assert envelope.unwrap() == body
        assert envelope.details is None


class TestErrorDetail:
    """Tests for error extraction across body shapes."""

    def test_string_error(self):
        """A string error is the message."""
        detail = ApiEnvelope.from_body({"error": "Invalid credentials"}).error_detail()
        assert detail.message == "Invalid credentials"
        assert detail.code is None

    def test_object_error(self):
        """An error object carries code and message."""
        detail = ApiEnvelope.from_body(
            {"error": {"code": "EMAIL_TAKEN", "message": "Email in use"}}
        ).error_detail()
        assert detail.code == "EMAIL_TAKEN"
        assert detail.message == "Email in use"

    def test_top_level_message_and_code(self):
        """Top-level message and code are used when error is absent."""
        detail = ApiEnvelope.from_body({"message": "Bad", "code": "X"}).error_detail()
        assert detail.message == "Bad"
        assert detail.code == "X"

    def test_non_object_body_has_empty_detail(self):
        """HTML or empty bodies produce no detail."""
        detail = ApiEnvelope.from_body(None).error_detail()
        assert detail.message is None
        assert detail.code is None

    def test_numeric_code_is_ignored(self):
        """A non-string code is treated as absent, the message survives."""
        detail = ApiEnvelope.from_body({"error": "bad", "code": 400}).error_detail()
        assert detail.message == "bad"
        assert detail.code is None

    def test_malformed_nested_error_fields(self):
        """Only well-typed fields of an error object are used."""
        detail = ApiEnvelope.from_body(
            {"error": {"code": 17, "message": "Nope", "details": ["phone", {"field": "email"}]}}
        ).error_detail()
        assert detail.code is None
        assert detail.message == "Nope"
        assert detail.details == [{"field": "email"}]


class TestVerificationRequired:
    """Tests for the escape-hatch check."""

    def test_top_level_shape(self):
        envelope = ApiEnvelope.from_body(
            {"code": "VERIFICATION_REQUIRED", "redirectTo": "/kyc"}
        )
        assert envelope.is_verification_required
        assert envelope.error_detail().redirect_to == "/kyc"

    def test_requires_redirect_target(self):
        envelope = ApiEnvelope.from_body({"code": "VERIFICATION_REQUIRED"})
        assert not envelope.is_verification_required

    def test_other_codes_are_not_escape_hatch(self):
        envelope = ApiEnvelope.from_body({"code": "FORBIDDEN", "redirectTo": "/kyc"})
        assert not envelope.is_verification_required


class TestErrorClasses:
    """Tests for the error taxonomy."""

    def test_base_error_fields(self):
        error = ApiClientError(code="X", message="boom", status_code=418)
        assert str(error) == "boom"
        assert error.status_code == 418
        assert error.details is None

    def test_session_expired_is_unauthorized(self):
        error = SessionExpiredError()
        assert isinstance(error, UnauthorizedError)
        assert error.code == "SESSION_EXPIRED"
        assert error.status_code == 401

    def test_verification_required_carries_target(self):
        error = VerificationRequiredError("/onboarding/contact")
        assert error.redirect_to == "/onboarding/contact"
        assert error.status_code == 403

    def test_network_error_has_no_status(self):
        assert NetworkError().status_code == 0
