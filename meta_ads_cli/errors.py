"""
Error taxonomy for the meta-ads CLI.

Every failure that reaches the command boundary is a CliError carrying one
of the ErrorCode values below. Graph API error payloads and httpx transport
failures are mapped onto the taxonomy here so the rest of the code never
inspects raw Meta error codes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx
import structlog

from meta_ads_cli.models.envelope import ErrorDetail, ErrorResponse

logger = structlog.get_logger(__name__)

# Default wait suggested to callers when Meta throttles us
DEFAULT_RETRY_AFTER = 60


class ErrorCode(str, Enum):
    # Authentication
    AUTH_NOT_CONFIGURED = "AUTH_NOT_CONFIGURED"
    AUTH_TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    AUTH_INSUFFICIENT_PERMISSIONS = "AUTH_INSUFFICIENT_PERMISSIONS"

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"

    # Validation
    INVALID_ACCOUNT_ID = "INVALID_ACCOUNT_ID"
    INVALID_CAMPAIGN_ID = "INVALID_CAMPAIGN_ID"
    INVALID_ADSET_ID = "INVALID_ADSET_ID"
    INVALID_AD_ID = "INVALID_AD_ID"
    INVALID_PARAMETER = "INVALID_PARAMETER"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

    # Remote entity / API
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    DUPLICATE_ENTITY = "DUPLICATE_ENTITY"
    OPERATION_FAILED = "OPERATION_FAILED"
    API_VERSION_DEPRECATED = "API_VERSION_DEPRECATED"
    API_ERROR = "API_ERROR"

    # Network
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"

    # Configuration
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    INVALID_CONFIG = "INVALID_CONFIG"

    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class ErrorInfo:
    message: str
    suggestion: Optional[str]
    retryable: bool


ERROR_MESSAGES: Dict[ErrorCode, ErrorInfo] = {
    ErrorCode.AUTH_NOT_CONFIGURED: ErrorInfo(
        "No access token configured.",
        "Run `meta-ads auth login` to authenticate.",
        False,
    ),
    ErrorCode.AUTH_TOKEN_EXPIRED: ErrorInfo(
        "Your access token has expired.",
        "Run `meta-ads auth login` to authenticate with a new token.",
        False,
    ),
    ErrorCode.AUTH_TOKEN_INVALID: ErrorInfo(
        "Your access token is invalid.",
        "Check your token and run `meta-ads auth login` to re-authenticate.",
        False,
    ),
    ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS: ErrorInfo(
        "Your access token lacks required permissions.",
        "Ensure your token has ads_management, ads_read, and business_management permissions.",
        False,
    ),
    ErrorCode.RATE_LIMIT_EXCEEDED: ErrorInfo(
        "Rate limit exceeded. Too many requests to Meta API.",
        "Wait before retrying. Check the retry_after value.",
        True,
    ),
    ErrorCode.QUOTA_EXCEEDED: ErrorInfo(
        "API quota exceeded for this account.",
        "Wait for the quota to reset or contact Meta support.",
        True,
    ),
    ErrorCode.INVALID_ACCOUNT_ID: ErrorInfo(
        "Invalid ad account ID format.",
        'Account IDs should start with "act_" followed by numbers.',
        False,
    ),
    ErrorCode.INVALID_CAMPAIGN_ID: ErrorInfo(
        "Invalid campaign ID.",
        "Verify the campaign ID exists and you have access to it.",
        False,
    ),
    ErrorCode.INVALID_ADSET_ID: ErrorInfo(
        "Invalid ad set ID.",
        "Verify the ad set ID exists and you have access to it.",
        False,
    ),
    ErrorCode.INVALID_AD_ID: ErrorInfo(
        "Invalid ad ID.",
        "Verify the ad ID exists and you have access to it.",
        False,
    ),
    ErrorCode.INVALID_PARAMETER: ErrorInfo(
        "Invalid parameter value.",
        "Check the parameter format and allowed values.",
        False,
    ),
    ErrorCode.MISSING_REQUIRED_FIELD: ErrorInfo(
        "Missing required field.",
        "Provide all required fields for this operation.",
        False,
    ),
    ErrorCode.ENTITY_NOT_FOUND: ErrorInfo(
        "The requested entity was not found.",
        "Verify the ID is correct and you have access to it.",
        False,
    ),
    ErrorCode.DUPLICATE_ENTITY: ErrorInfo(
        "An entity with this name already exists.",
        "Use a unique name for the new entity.",
        False,
    ),
    ErrorCode.OPERATION_FAILED: ErrorInfo(
        "The operation failed.",
        "Check the error details and try again.",
        False,
    ),
    ErrorCode.API_VERSION_DEPRECATED: ErrorInfo(
        "The API version is deprecated.",
        "Update to a newer API version with `meta-ads config set api_version <version>`.",
        False,
    ),
    ErrorCode.API_ERROR: ErrorInfo(
        "Meta API returned an error.",
        "Check the error details for more information.",
        False,
    ),
    ErrorCode.NETWORK_ERROR: ErrorInfo(
        "Network error occurred.",
        "Check your internet connection and try again.",
        True,
    ),
    ErrorCode.TIMEOUT: ErrorInfo(
        "Request timed out.",
        "Try again or check your network connection.",
        True,
    ),
    ErrorCode.CONFIG_NOT_FOUND: ErrorInfo(
        "Configuration not found.",
        "Run `meta-ads config set` to configure.",
        False,
    ),
    ErrorCode.INVALID_CONFIG: ErrorInfo(
        "Invalid configuration.",
        "Check your configuration values.",
        False,
    ),
    ErrorCode.UNKNOWN_ERROR: ErrorInfo(
        "An unexpected error occurred.",
        "Check the error details and try again.",
        False,
    ),
}


class CliError(Exception):
    """A classified failure, rendered as the error envelope at the command boundary."""

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        retry_after: Optional[int] = None,
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES[code].message
        self.details = details or {}
        self.retry_after = retry_after
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return ERROR_MESSAGES[self.code].retryable

    @property
    def suggestion(self) -> Optional[str]:
        return ERROR_MESSAGES[self.code].suggestion

    def to_response(self) -> ErrorResponse:
        details = dict(self.details)
        if self.suggestion:
            details["suggestion"] = self.suggestion
        return ErrorResponse(
            error=ErrorDetail(
                code=self.code.value,
                message=self.message,
                retryable=self.retryable,
                details=details,
                retry_after=self.retry_after,
            )
        )


# Graph API error codes, grouped by the taxonomy entry they map to
_PERMISSION_CODES = {10} | set(range(200, 300))
_RATE_LIMIT_CODES = {4, 17, 32, 613}
_QUOTA_CODES = set(range(80000, 80015))
_EXPIRED_TOKEN_SUBCODES = {463, 467}


def map_graph_error(error: Dict[str, Any]) -> CliError:
    """
    Map a Graph API ``{"error": {...}}`` body onto the CLI taxonomy.

    Args:
        error: The inner error object (message, code, error_subcode, type, fbtrace_id).

    Returns:
        CliError with the matching code; unmapped codes become API_ERROR.
    """
    message = error.get("message") or ERROR_MESSAGES[ErrorCode.API_ERROR].message
    code = error.get("code")
    subcode = error.get("error_subcode")
    trace = error.get("fbtrace_id")

    if code == 190:
        if subcode in _EXPIRED_TOKEN_SUBCODES:
            return CliError(ErrorCode.AUTH_TOKEN_EXPIRED, message)
        return CliError(ErrorCode.AUTH_TOKEN_INVALID, message)

    if code == 102:
        return CliError(ErrorCode.AUTH_TOKEN_INVALID, message)

    if code in _PERMISSION_CODES:
        return CliError(ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS, message)

    if code in _RATE_LIMIT_CODES:
        return CliError(
            ErrorCode.RATE_LIMIT_EXCEEDED,
            message,
            {"fbtrace_id": trace},
            DEFAULT_RETRY_AFTER,
        )

    if code in _QUOTA_CODES:
        return CliError(
            ErrorCode.QUOTA_EXCEEDED,
            message,
            {"fbtrace_id": trace},
            DEFAULT_RETRY_AFTER,
        )

    if code == 2635:
        return CliError(ErrorCode.API_VERSION_DEPRECATED, message)

    if code == 803:
        return CliError(ErrorCode.ENTITY_NOT_FOUND, message)

    if code == 100:
        lowered = message.lower()
        if subcode == 33 or "not found" in lowered or "does not exist" in lowered:
            return CliError(ErrorCode.ENTITY_NOT_FOUND, message)
        return CliError(ErrorCode.INVALID_PARAMETER, message)

    return CliError(
        ErrorCode.API_ERROR,
        message,
        {
            "meta_code": code,
            "meta_subcode": subcode,
            "meta_type": error.get("type"),
            "fbtrace_id": trace,
        },
    )


def map_transport_error(exc: Exception) -> CliError:
    """Classify an exception raised while talking to the Graph API."""
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return CliError(ErrorCode.TIMEOUT, str(exc) or None)
    if isinstance(exc, httpx.TransportError):
        return CliError(ErrorCode.NETWORK_ERROR, str(exc) or None)

    logger.error("unclassified_error", error=str(exc), error_type=type(exc).__name__)
    return CliError(ErrorCode.UNKNOWN_ERROR, str(exc) or None, {"original": repr(exc)})
