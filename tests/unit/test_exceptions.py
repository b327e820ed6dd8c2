"""
Unit tests for custom exceptions.

Tests exception hierarchy and error formatting.
"""
import pytest

from solarlens.exceptions import (
    AdapterUnavailable,
    AuthenticationError,
    AuthorizationError,
    DocumentProcessingError,
    ExtractionFailure,
    FileTooLargeError,
    InvalidFileTypeError,
    InvalidStateTransitionError,
    InvalidTokenError,
    NotFoundError,
    ProposalNotFoundError,
    ReconciliationFailure,
    ResultNotFoundError,
    SolarLensError,
    UtilityBillNotFoundError,
    ValidationError,
)


class TestExceptionHierarchy:
    """Tests for exception class hierarchy."""

    def test_base_exception(self):
        exc = SolarLensError("Test error")

        assert exc.error_code == "SLR-000"
        assert exc.message == "Test error"
        assert exc.http_status == 500
        assert str(exc) == "Test error"

    def test_extraction_failure(self):
        """ExtractionFailure is a document processing error."""
        exc = ExtractionFailure("Failed to extract text from PDF", cause=ValueError("bad xref"))

        assert isinstance(exc, DocumentProcessingError)
        assert exc.error_code == "SLR-101"
        assert exc.http_status == 422
        assert exc.details["cause"] == "ValueError: bad xref"

    def test_extraction_failure_without_cause(self):
        exc = ExtractionFailure()
        assert "cause" not in exc.details

    @pytest.mark.parametrize("exc,code", [
        (ProposalNotFoundError("p-1"), "SLR-201"),
        (UtilityBillNotFoundError("b-1"), "SLR-202"),
        (ResultNotFoundError("r-1"), "SLR-203"),
    ])
    def test_not_found_errors(self, exc, code):
        assert isinstance(exc, NotFoundError)
        assert exc.error_code == code
        assert exc.http_status == 404

    def test_not_found_message(self):
        exc = ResultNotFoundError("abc")
        assert exc.message == "Result abc not found"
        assert exc.details == {"resource": "Result", "resource_id": "abc"}

    def test_authentication_errors(self):
        exc = InvalidTokenError()

        assert isinstance(exc, AuthenticationError)
        assert exc.error_code == "SLR-502"
        assert exc.http_status == 401

    def test_authorization_error(self):
        exc = AuthorizationError()
        assert exc.error_code == "SLR-600"
        assert exc.http_status == 403

    def test_state_transition_error(self):
        exc = InvalidStateTransitionError("completed", "error")

        assert exc.http_status == 409
        assert exc.details == {"current": "completed", "requested": "error"}

    def test_adapter_unavailable(self):
        exc = AdapterUnavailable("pvwatts")

        assert exc.error_code == "SLR-900"
        assert exc.message == "External service 'pvwatts' is unavailable"
        assert exc.service_name == "pvwatts"

    def test_reconciliation_failure(self):
        exc = ReconciliationFailure()
        assert exc.message == "Failed to generate analysis results"
        assert exc.error_code == "SLR-300"


class TestErrorFormatting:
    """Tests for the API error body."""

    def test_to_dict(self):
        exc = InvalidFileTypeError("bill.gif", [".pdf", ".png"])

        assert exc.to_dict() == {
            "error": True,
            "error_code": "SLR-102",
            "message": "Invalid file type. Expected: .pdf, .png",
            "details": {"filename": "bill.gif", "expected_types": [".pdf", ".png"]},
        }

    def test_file_too_large(self):
        exc = FileTooLargeError(30 * 1024 * 1024, 20 * 1024 * 1024)

        assert exc.http_status == 413
        assert exc.message == "File too large. Maximum size: 20MB"

    def test_validation_error_lists_errors(self):
        exc = ValidationError("Bad input", errors=["latitude missing"])
        assert exc.details["errors"] == ["latitude missing"]

    def test_custom_error_code(self):
        exc = SolarLensError("Custom", error_code="SLR-042")
        assert exc.error_code == "SLR-042"
