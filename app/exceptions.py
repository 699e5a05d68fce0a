# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Errors should tell HOW to fix, not just WHAT failed.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class AmbassadorHubException(Exception):
    """
    Base exception for the API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "AMBASSADORHUB_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Access Exceptions
# =============================================================================

class SubscriptionRequiredError(AmbassadorHubException):
    """Raised when an agency without an active subscription hits the directory."""

    def __init__(self):
        super().__init__(
            message="Subscribe to access the brand ambassador directory.",
            code="SUBSCRIPTION_REQUIRED",
            status_code=402,
            suggestion="Choose one or more regions on the /subscribe page",
        )


class NoRegionAccessError(AmbassadorHubException):
    """Raised when an active subscription covers no known region."""

    def __init__(self, regions: list[str]):
        super().__init__(
            message="Your subscription does not include any directory region.",
            code="NO_REGION_ACCESS",
            status_code=403,
            suggestion="Contact support to check the regions on your plan",
            details={"subscribed_regions": regions},
        )


class AmbassadorNotFoundError(AmbassadorHubException):
    """Raised when an ambassador ID doesn't exist or is outside the caller's regions."""

    def __init__(self, ambassador_id: str):
        super().__init__(
            message=f"Ambassador not found: {ambassador_id}",
            code="AMBASSADOR_NOT_FOUND",
            status_code=404,
            suggestion="The profile may have been removed or is outside your subscribed regions",
            details={"ambassador_id": ambassador_id},
        )


class ProfileNotFoundError(AmbassadorHubException):
    """Raised when the signed-in user has no ambassador profile yet."""

    def __init__(self, user_id: str):
        super().__init__(
            message="No ambassador profile for this account",
            code="PROFILE_NOT_FOUND",
            status_code=404,
            suggestion="Create your profile with POST /ambassadors first",
            details={"user_id": user_id},
        )


# =============================================================================
# Directory / Contact Exceptions
# =============================================================================

class DirectoryQueryError(AmbassadorHubException):
    """Raised when the directory read fails upstream."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Error loading ambassadors: {error}",
            code="DIRECTORY_QUERY_FAILED",
            status_code=502,
            suggestion="If this mentions ambassadors_directory, the view needs to be created",
            details={"error": error},
        )


class ContactRevealError(AmbassadorHubException):
    """Raised when the reveal_contact RPC refuses or fails."""

    def __init__(self, message: str, code: str = "CONTACT_REVEAL_FAILED", status_code: int = 400):
        super().__init__(message=message, code=code, status_code=status_code)


# =============================================================================
# Upload / Signup Exceptions
# =============================================================================

class MediaValidationError(AmbassadorHubException):
    """Raised when a headshot or video fails type/size/duration checks."""

    def __init__(self, message: str, field: str, status_code: int = 400):
        super().__init__(
            message=message,
            code="INVALID_MEDIA",
            status_code=status_code,
            details={"field": field},
        )


class StorageUploadError(AmbassadorHubException):
    """Raised when file upload to storage fails."""

    def __init__(self, bucket: str, error: str):
        super().__init__(
            message=f"Upload to {bucket} failed: {error}",
            code="STORAGE_UPLOAD_ERROR",
            status_code=502,
            suggestion="Try again later or contact support if the issue persists",
            details={"bucket": bucket, "error": error},
        )


class ProfileWriteError(AmbassadorHubException):
    """Raised when the ambassador row write fails; carries the raw database message."""

    def __init__(self, error: str):
        super().__init__(
            message=error,
            code="PROFILE_WRITE_FAILED",
            status_code=400,
            details={"error": error},
        )


class InvalidRequestError(AmbassadorHubException):
    """Raised for request bodies that pass schema validation but make no sense."""

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(
            message=message,
            code="INVALID_REQUEST",
            status_code=400,
            suggestion=suggestion,
        )


# =============================================================================
# Billing Exceptions
# =============================================================================

class BillingNotConfiguredError(AmbassadorHubException):
    """Raised when Stripe keys are missing."""

    def __init__(self, missing: list[str]):
        super().__init__(
            message=f"Stripe not configured (missing: {', '.join(missing)})",
            code="BILLING_NOT_CONFIGURED",
            status_code=503,
            suggestion="Set the missing keys in your .env file",
            details={"missing": missing},
        )


class BillingProviderError(AmbassadorHubException):
    """Raised when a Stripe call fails."""

    def __init__(self, error: str):
        super().__init__(
            message=error,
            code="BILLING_PROVIDER_ERROR",
            status_code=502,
            details={"error": error},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def ambassadorhub_exception_handler(
    request: Request,
    exc: AmbassadorHubException
) -> JSONResponse:
    """
    Convert AmbassadorHubException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
