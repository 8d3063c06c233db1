"""
Custom exceptions for the Owl Shoes retail assistant.

This module defines a hierarchical exception system with:
- Machine-readable error codes for API responses
- HTTP status codes per failure class (validation, not found, conflict, upstream)
- Structured error data that is merged into the JSON error body

Design pattern: Base exception → Category exceptions → Specific exceptions
- RetailAssistantError: Base for every error a handler can turn into a response
- ProvisioningError: Base for management API failures raised by the deploy CLI
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    Standardized error codes for API responses.

    Naming convention: <DOMAIN>_<NUMBER>
    - CFG_xxx: Missing or invalid configuration
    - VAL_xxx: Client sent a missing or malformed field
    - NF_xxx: No matching record
    - CONF_xxx: Ambiguous match or duplicate resource
    - UPS_xxx: Record store, telephony or management API failures
    """

    # Configuration errors
    CONFIGURATION_MISSING = "CFG_001"

    # Validation errors
    INVALID_REQUEST = "VAL_001"
    INVALID_IDENTITY = "VAL_002"
    INVALID_CONFIRMATION_DIGITS = "VAL_003"
    INVALID_SESSION = "VAL_004"
    ORDER_NOT_RETURNABLE = "VAL_005"

    # Not found errors
    RECORD_NOT_FOUND = "NF_001"
    CUSTOMER_NOT_FOUND = "NF_002"
    ORDER_NOT_FOUND = "NF_003"
    PRODUCT_NOT_FOUND = "NF_004"

    # Conflict errors
    CONFLICT = "CONF_001"
    AMBIGUOUS_ORDER = "CONF_002"
    RETURN_EXISTS = "CONF_003"

    # Upstream errors
    STORE_ERROR = "UPS_001"
    TELEPHONY_ERROR = "UPS_002"
    MANAGEMENT_API_ERROR = "UPS_003"
    RATE_LIMIT_EXCEEDED = "UPS_004"


class RetailAssistantError(Exception):
    """
    Base exception for every failure a handler converts into a response.

    Attributes:
        message: Human-readable error description
        status_code: HTTP status code returned to the caller
        error_code: Machine-readable error identifier
        details: Extra top-level fields for the JSON body (e.g. current_status)
    """

    status_code: int = 500
    error_code: ErrorCode = ErrorCode.STORE_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Details are merged at the top level so callers can read fields such as
        ``current_status`` or ``existing_return_id`` directly.
        """
        return {
            "status": "error",
            "error": self.error_code.value,
            "message": self.message,
            **self.details,
        }

    def __str__(self) -> str:
        """String representation for logging."""
        return f"{self.error_code.value}: {self.message}"


class ConfigurationError(RetailAssistantError):
    """Raised when a required credential or setting is missing. HTTP 500."""

    status_code = 500
    error_code = ErrorCode.CONFIGURATION_MISSING


# ===== Validation (400) =====


class InvalidRequestError(RetailAssistantError):
    """Raised when a required field is missing or malformed. HTTP 400."""

    status_code = 400
    error_code = ErrorCode.INVALID_REQUEST


class InvalidIdentityError(InvalidRequestError):
    """Raised when the x-identity header is absent or uses an unknown prefix."""

    error_code = ErrorCode.INVALID_IDENTITY


class InvalidConfirmationDigitsError(InvalidRequestError):
    """Raised when order confirmation digits do not normalize to four characters."""

    error_code = ErrorCode.INVALID_CONFIRMATION_DIGITS


class InvalidSessionError(InvalidRequestError):
    """Raised when a call transfer is requested for a non-voice session."""

    error_code = ErrorCode.INVALID_SESSION


class OrderNotReturnableError(InvalidRequestError):
    """
    Raised when a return is requested for an order that is not delivered.

    The current shipping status is reported back to the caller.
    """

    error_code = ErrorCode.ORDER_NOT_RETURNABLE

    def __init__(self, current_status: str | None):
        super().__init__(
            "Cannot process return - order must be in delivered status",
            details={"current_status": current_status},
        )


# ===== Not found (404) =====


class NotFoundError(RetailAssistantError):
    """Raised when no record matches the lookup. HTTP 404."""

    status_code = 404
    error_code = ErrorCode.RECORD_NOT_FOUND


class CustomerNotFoundError(NotFoundError):
    error_code = ErrorCode.CUSTOMER_NOT_FOUND


class OrderNotFoundError(NotFoundError):
    error_code = ErrorCode.ORDER_NOT_FOUND


class ProductNotFoundError(NotFoundError):
    error_code = ErrorCode.PRODUCT_NOT_FOUND


# ===== Conflict (409) =====


class ConflictError(RetailAssistantError):
    """Raised on ambiguous matches or duplicate resources. HTTP 409."""

    status_code = 409
    error_code = ErrorCode.CONFLICT


class AmbiguousOrderError(ConflictError):
    """Raised when confirmation digits match more than one order."""

    error_code = ErrorCode.AMBIGUOUS_ORDER

    def __init__(self, match_count: int):
        super().__init__(
            "Multiple orders found with these confirmation digits.",
            details={"match_count": match_count},
        )


class ReturnExistsError(ConflictError):
    """Raised when a return has already been submitted for the order."""

    error_code = ErrorCode.RETURN_EXISTS

    def __init__(self, existing_return_id: str | None):
        super().__init__(
            "Return already exists for this order",
            details={"existing_return_id": existing_return_id},
        )


# ===== Upstream (502) =====


class StoreError(RetailAssistantError):
    """
    Raised when the record store call fails.

    The backend message is surfaced but not classified further.
    """

    status_code = 502
    error_code = ErrorCode.STORE_ERROR


class TelephonyError(RetailAssistantError):
    """Raised when a live call update through Twilio fails."""

    status_code = 502
    error_code = ErrorCode.TELEPHONY_ERROR


# ===== Provisioning =====


class ProvisioningError(Exception):
    """
    Base exception for provisioning failures.

    Raised by the orchestrator when a step cannot complete; the CLI logs it
    and exits with status 1.
    """

    def __init__(self, message: str, step: str | None = None):
        self.message = message
        self.step = step
        super().__init__(self.message)


class ManagementAPIError(ProvisioningError):
    """
    Raised when the management API returns an error response.

    Attributes:
        status_code: HTTP status code returned by the API (if any)
        body: Truncated response body for logging
    """

    error_code = ErrorCode.MANAGEMENT_API_ERROR

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ManagementRateLimitError(ManagementAPIError):
    """Raised on HTTP 429; the client retries these with exponential backoff."""

    error_code = ErrorCode.RATE_LIMIT_EXCEEDED
