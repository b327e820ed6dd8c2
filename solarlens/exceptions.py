"""
Custom exceptions for SolarLens.

Provides a hierarchy of exceptions with error codes for consistent error handling.
"""
from typing import Any, Dict, Optional


class SolarLensError(Exception):
    """
    Base exception for all SolarLens errors.

    Attributes:
        error_code: Unique error code (e.g., SLR-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "SLR-000"
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Document Processing Errors (SLR-1XX)
class DocumentProcessingError(SolarLensError):
    """Error during document processing."""
    error_code = "SLR-100"
    http_status = 422

    def __init__(self, message: str = "Failed to process document", **kwargs):
        super().__init__(message, **kwargs)


class ExtractionFailure(DocumentProcessingError):
    """Text could not be obtained from a document."""
    error_code = "SLR-101"
    http_status = 422

    def __init__(self, message: str = "Failed to extract text from document", cause: Optional[BaseException] = None, **kwargs):
        details = kwargs.pop("details", {})
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"
        super().__init__(message, details=details, **kwargs)
        self.cause = cause


class InvalidFileTypeError(SolarLensError):
    """Invalid file type uploaded."""
    error_code = "SLR-102"
    http_status = 400

    def __init__(self, filename: str, expected_types: list, **kwargs):
        message = f"Invalid file type. Expected: {', '.join(expected_types)}"
        super().__init__(message, details={"filename": filename, "expected_types": expected_types}, **kwargs)


class FileTooLargeError(SolarLensError):
    """File exceeds maximum size limit."""
    error_code = "SLR-103"
    http_status = 413

    def __init__(self, size: int, max_size: int, **kwargs):
        message = f"File too large. Maximum size: {max_size // (1024*1024)}MB"
        super().__init__(message, details={"size": size, "max_size": max_size}, **kwargs)


# Lookup Errors (SLR-2XX)
class NotFoundError(SolarLensError):
    """A referenced record does not exist or is not visible to the caller."""
    error_code = "SLR-200"
    http_status = 404

    def __init__(self, resource: str, resource_id: str, **kwargs):
        message = f"{resource} {resource_id} not found"
        super().__init__(message, details={"resource": resource, "resource_id": str(resource_id)}, **kwargs)


class ProposalNotFoundError(NotFoundError):
    """Proposal not found."""
    error_code = "SLR-201"

    def __init__(self, proposal_id: str, **kwargs):
        super().__init__("Proposal", proposal_id, **kwargs)


class UtilityBillNotFoundError(NotFoundError):
    """Utility bill not found."""
    error_code = "SLR-202"

    def __init__(self, utility_bill_id: str, **kwargs):
        super().__init__("Utility bill", utility_bill_id, **kwargs)


class ResultNotFoundError(NotFoundError):
    """Analysis result not found."""
    error_code = "SLR-203"

    def __init__(self, result_id: str, **kwargs):
        super().__init__("Result", result_id, **kwargs)


# Analysis Errors (SLR-3XX)
class ReconciliationFailure(SolarLensError):
    """Unexpected failure while deriving the analysis result."""
    error_code = "SLR-300"
    http_status = 500

    def __init__(self, message: str = "Failed to generate analysis results", **kwargs):
        super().__init__(message, **kwargs)


class InvalidStateTransitionError(SolarLensError):
    """A result was asked to leave a terminal state."""
    error_code = "SLR-301"
    http_status = 409

    def __init__(self, current: str, requested: str, **kwargs):
        message = f"Cannot move result from {current} to {requested}"
        super().__init__(message, details={"current": current, "requested": requested}, **kwargs)


# Authentication Errors (SLR-5XX)
class AuthenticationError(SolarLensError):
    """Authentication failed."""
    error_code = "SLR-500"
    http_status = 401

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, **kwargs)


class InvalidTokenError(AuthenticationError):
    """Authentication token is invalid."""
    error_code = "SLR-502"
    http_status = 401

    def __init__(self, **kwargs):
        message = "Invalid authentication token"
        super().__init__(message, **kwargs)


# Authorization Errors (SLR-6XX)
class AuthorizationError(SolarLensError):
    """User not authorized for this action."""
    error_code = "SLR-600"
    http_status = 403

    def __init__(self, message: str = "You do not have permission to perform this action", **kwargs):
        super().__init__(message, **kwargs)


# Validation Errors (SLR-7XX)
class ValidationError(SolarLensError):
    """Input validation failed."""
    error_code = "SLR-700"
    http_status = 400

    def __init__(self, message: str = "Validation failed", errors: list = None, **kwargs):
        details = kwargs.pop("details", {})
        details["errors"] = errors or []
        super().__init__(message, details=details, **kwargs)


# External Service Errors (SLR-9XX)
class AdapterUnavailable(SolarLensError):
    """External estimation or AI service call failed."""
    error_code = "SLR-900"
    http_status = 502

    def __init__(self, service_name: str, message: str = None, **kwargs):
        msg = message or f"External service '{service_name}' is unavailable"
        super().__init__(msg, details={"service": service_name}, **kwargs)
        self.service_name = service_name
