"""
Custom exceptions for the application.
"""
from typing import Any, Dict, Optional, Sequence

from navguard.core.config import settings
from navguard.core.errors import ErrorCode, ErrorMessages


class NavGuardException(Exception):
    """Base exception for all NavGuard exceptions."""

    error_code: ErrorCode = ErrorCode.SYS_INTERNAL_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or ErrorMessages.get(self.error_code)
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class CredentialError(NavGuardException):
    """Credential problem recoverable only by re-authentication."""

    error_code = ErrorCode.AUTH_INVALID_SESSION

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=401, details=details)
        self.redirect_to = settings.LOGIN_PATH


class NoTokenError(CredentialError):
    """No access credential present."""

    error_code = ErrorCode.AUTH_NO_TOKEN


class TokenExpiredError(CredentialError):
    """Token expired exception."""

    error_code = ErrorCode.AUTH_TOKEN_EXPIRED


class RefreshFailedError(TokenExpiredError):
    """Expired credential whose refresh was attempted and failed."""

    error_code = ErrorCode.AUTH_REFRESH_FAILED


class NoRoleError(CredentialError):
    """Session has no associated role."""

    error_code = ErrorCode.AUTH_NO_ROLE


class RoleNotAllowedError(CredentialError):
    """Active role is not among the roles allowed onto a page."""

    error_code = ErrorCode.AUTH_ROLE_NOT_ALLOWED


class ExternalServiceError(NavGuardException):
    """External service error exception."""

    error_code = ErrorCode.SYS_EXTERNAL_SERVICE_ERROR

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        full_message = f"External service error ({service}): {message}"
        super().__init__(full_message, status_code=503, details=details)


class BackendError(ExternalServiceError):
    """Privilege backend request failed.

    ``status`` is the HTTP status, or ``None`` for network and timeout failures.
    """

    def __init__(self, message: str, status: Optional[int] = None, path: Optional[str] = None):
        self.status = status
        self.path = path
        super().__init__("privilege-backend", message, details={"status": status, "path": path})

    @property
    def is_client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500


class PrivilegeFetchError(NavGuardException):
    """Privilege snapshot could not be fetched and no cached value exists."""

    error_code = ErrorCode.PRIV_FETCH_FAILED
    retryable = True

    def __init__(self, role_id: Any, reason: str):
        self.role_id = role_id
        self.reason = reason
        super().__init__(
            status_code=503,
            details={"role_id": role_id, "reason": reason},
        )


class PrivilegeUpdateError(NavGuardException):
    """Setting a privilege record through the backend failed."""

    error_code = ErrorCode.PRIV_UPDATE_FAILED

    def __init__(self, level: str, reason: str, status_code: int = 502):
        super().__init__(status_code=status_code, details={"level": level, "reason": reason})


class AmbiguousSlugError(NavGuardException):
    """Two sibling hierarchy nodes normalize to the same slug path.

    Recorded on the slug index and logged for audit; never raised past it.
    """

    error_code = ErrorCode.NAV_AMBIGUOUS_SLUG

    def __init__(
        self,
        level: str,
        slug_path: Sequence[str],
        kept_name: str,
        dropped_name: str,
        kept_id: Optional[int] = None,
        dropped_id: Optional[int] = None,
    ):
        self.level = level
        self.slug_path = tuple(slug_path)
        self.kept_name = kept_name
        self.dropped_name = dropped_name
        message = (
            f"{level} slug '{'/'.join(self.slug_path)}' is shared by "
            f"'{kept_name}' and '{dropped_name}'; keeping '{kept_name}'"
        )
        super().__init__(
            message,
            status_code=409,
            details={
                "level": level,
                "slug_path": list(self.slug_path),
                "kept_name": kept_name,
                "kept_id": kept_id,
                "dropped_name": dropped_name,
                "dropped_id": dropped_id,
            },
        )


class ComponentNotRegisteredError(NavGuardException):
    """Access granted but no page component is configured for the path."""

    error_code = ErrorCode.NAV_COMPONENT_NOT_REGISTERED

    def __init__(self, path: str):
        self.path = path
        super().__init__(status_code=404, details={"path": path})
