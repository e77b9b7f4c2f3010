"""
Standardized Error Message Catalog for NavGuard.

Centralizes error codes and messages so that API responses stay consistent
and do not leak which hierarchy nodes exist for other roles.
"""
from enum import Enum
from typing import Dict, Optional


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication Errors (AUTH_*)
    AUTH_NO_TOKEN = "AUTH_001"
    AUTH_TOKEN_EXPIRED = "AUTH_002"
    AUTH_REFRESH_FAILED = "AUTH_003"
    AUTH_NO_ROLE = "AUTH_004"
    AUTH_INVALID_SESSION = "AUTH_005"
    AUTH_ROLE_NOT_ALLOWED = "AUTH_006"

    # Navigation Errors (NAV_*)
    NAV_ACCESS_DENIED = "NAV_001"
    NAV_COMPONENT_NOT_REGISTERED = "NAV_002"
    NAV_AMBIGUOUS_SLUG = "NAV_003"
    NAV_INVALID_PATH = "NAV_004"

    # Privilege Errors (PRIV_*)
    PRIV_FETCH_FAILED = "PRIV_001"
    PRIV_UPDATE_FAILED = "PRIV_002"

    # Validation Errors (VAL_*)
    VAL_INVALID_INPUT = "VAL_001"

    # System Errors (SYS_*)
    SYS_INTERNAL_ERROR = "SYS_001"
    SYS_EXTERNAL_SERVICE_ERROR = "SYS_002"
    SYS_CONFIGURATION_ERROR = "SYS_003"


class ErrorMessages:
    """Centralized error message definitions."""

    _messages: Dict[ErrorCode, str] = {
        # Authentication Errors
        ErrorCode.AUTH_NO_TOKEN: "Please log in to continue",
        ErrorCode.AUTH_TOKEN_EXPIRED: "Your session has expired. Please log in again",
        ErrorCode.AUTH_REFRESH_FAILED: "Your session could not be renewed. Please log in again",
        ErrorCode.AUTH_NO_ROLE: "No role is associated with this session",
        ErrorCode.AUTH_INVALID_SESSION: "Invalid session",
        ErrorCode.AUTH_ROLE_NOT_ALLOWED: "Your role cannot open this page. Please log in with another role",

        # Navigation Errors
        ErrorCode.NAV_ACCESS_DENIED: "You do not have permission to view this page",
        ErrorCode.NAV_COMPONENT_NOT_REGISTERED: "This page has not been configured yet",
        ErrorCode.NAV_AMBIGUOUS_SLUG: "Two menu entries share the same address",
        ErrorCode.NAV_INVALID_PATH: "Invalid page address",

        # Privilege Errors
        ErrorCode.PRIV_FETCH_FAILED: "Could not load your permissions. Please try again",
        ErrorCode.PRIV_UPDATE_FAILED: "Could not update the privilege",

        # Validation Errors
        ErrorCode.VAL_INVALID_INPUT: "Invalid input provided",

        # System Errors
        ErrorCode.SYS_INTERNAL_ERROR: "An internal error occurred. Please try again later",
        ErrorCode.SYS_EXTERNAL_SERVICE_ERROR: "External service is temporarily unavailable",
        ErrorCode.SYS_CONFIGURATION_ERROR: "System configuration error",
    }

    @classmethod
    def get(cls, code: ErrorCode, **kwargs) -> str:
        """
        Get error message for a given error code.

        Args:
            code: Error code
            **kwargs: Additional context for formatting

        Returns:
            Formatted error message
        """
        base_message = cls._messages.get(code, "An error occurred")

        if kwargs:
            try:
                return base_message.format(**kwargs)
            except KeyError:
                return base_message

        return base_message


class ErrorResponse:
    """Standardized error response structure."""

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict] = None,
    ):
        self.code = code
        self.message = message or ErrorMessages.get(code)
        self.details = details or {}

    def to_dict(self) -> Dict:
        """Convert to dictionary for API response."""
        response = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }

        if self.details:
            response["error"]["details"] = self.details

        return response

    @classmethod
    def access_denied(cls, path: str, reason: Optional[str] = None) -> "ErrorResponse":
        """Create access denied response for a navigation path."""
        details = {"path": path}
        if reason:
            details["reason"] = reason
        return cls(code=ErrorCode.NAV_ACCESS_DENIED, details=details)

    @classmethod
    def component_not_registered(cls, path: str) -> "ErrorResponse":
        """Create response for a granted path with no configured page."""
        return cls(
            code=ErrorCode.NAV_COMPONENT_NOT_REGISTERED,
            details={"path": path},
        )

    @classmethod
    def internal_error(cls, message: Optional[str] = None) -> "ErrorResponse":
        """Create response for an unhandled failure."""
        return cls(code=ErrorCode.SYS_INTERNAL_ERROR, message=message)
