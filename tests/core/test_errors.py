"""Tests for flo.core.errors: status-code classification and error fields."""

import pytest

from flo.core.errors import (
    ApiError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServerError,
    TransportError,
    UnknownError,
    UnprocessableEntityError,
    ValidationError,
    classify_response,
)


class TestClassifyResponse:
    @pytest.mark.parametrize(
        "status,expected",
        [
            (400, ValidationError),
            (401, AuthenticationError),
            (403, ForbiddenError),
            (404, NotFoundError),
            (409, ConflictError),
            (422, UnprocessableEntityError),
            (500, ServerError),
            (503, ServerError),
            (418, UnknownError),
        ],
    )
    def test_status_maps_to_class(self, status, expected):
        err = classify_response(status, {})
        assert type(err) is expected
        assert err.status_code == status

    def test_unprocessable_is_validation(self):
        assert isinstance(classify_response(422, None), ValidationError)

    def test_message_from_body(self):
        err = classify_response(404, {"message": "Asset not found", "errorCode": "ASSET_404", "details": {"id": "a1"}})
        assert err.message == "Asset not found"
        assert err.error_code == "ASSET_404"
        assert err.details == {"id": "a1"}

    def test_nested_error_object(self):
        err = classify_response(409, {"error": {"message": "Duplicate email", "code": "DUP"}})
        assert err.message == "Duplicate email"
        assert err.error_code == "DUP"

    def test_fallback_message_when_body_silent(self):
        err = classify_response(500, "<html>Bad gateway</html>", "Request failed with status 500")
        assert err.message == "Request failed with status 500"

    def test_default_message_without_fallback(self):
        err = classify_response(403)
        assert err.message == ForbiddenError.default_message
        assert err.error_code == ForbiddenError.default_code


class TestApiError:
    def test_all_errors_share_base(self):
        for cls in (TransportError, AuthenticationError, ServerError, UnknownError):
            assert issubclass(cls, ApiError)

    def test_authentication_defaults_to_401(self):
        assert AuthenticationError("expired").status_code == 401

    def test_transport_error_has_no_status(self):
        err = TransportError()
        assert err.status_code == 0
        assert err.error_code == "NETWORK_ERROR"

    def test_retryable(self):
        assert TransportError().retryable
        assert ServerError(status_code=502).retryable
        assert UnknownError(status_code=429).retryable
        assert not ValidationError(status_code=400).retryable
        assert not AuthenticationError().retryable

    def test_str_is_message(self):
        assert str(NotFoundError("gone", 404)) == "gone"

    def test_repr_names_class(self):
        assert repr(ConflictError("dup", 409)).startswith("ConflictError(status=409")
