"""
Structured logging for NavGuard.

Every event carries the service name and environment, and credential values
(access and refresh tokens, bearer headers) are masked before rendering so
session payloads can be logged as keyword context without leaking tokens.
"""
import logging
import sys
from typing import Any, Dict, List, MutableMapping

import structlog
from structlog.types import Processor

from navguard.core.config import Settings, settings

# Event keys whose values are credentials
CREDENTIAL_KEYS = frozenset({
    "access",
    "refresh",
    "access_token",
    "refresh_token",
    "authorization",
})

REDACTED = "***"


def redact_credentials(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential values, including one level down in dict values."""
    for key, value in list(event_dict.items()):
        if key.lower() in CREDENTIAL_KEYS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: REDACTED if k.lower() in CREDENTIAL_KEYS and v else v
                for k, v in value.items()
            }
    return event_dict


def service_context(config: Settings) -> Processor:
    """Processor stamping the service name and environment onto each event."""
    def add_service(
        logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        event_dict.setdefault("service", config.APP_NAME.lower())
        event_dict.setdefault("environment", config.ENVIRONMENT)
        return event_dict

    return add_service


def build_processors(config: Settings) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        service_context(config),
        redact_credentials,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if config.is_development:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return processors


def setup_logging(config: Settings = settings) -> None:
    """Console output in development, JSON lines elsewhere."""
    level = logging.DEBUG if config.DEBUG else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=build_processors(config),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def log_request_details(
    request_id: str,
    method: str,
    path: str,
    client_ip: str | None = None,
    session_id: str | None = None,
) -> Dict[str, Any]:
    """
    Create a context dict for request logging.

    Args:
        request_id: Unique request identifier
        method: HTTP method
        path: Request path
        client_ip: Client IP address
        session_id: Navigation session identifier

    Returns:
        Context dictionary for logging
    """
    context = {
        "request_id": request_id,
        "method": method,
        "path": path,
    }

    if client_ip:
        context["client_ip"] = client_ip

    if session_id:
        context["session_id"] = session_id

    return context


def log_error_details(
    error: Exception,
    request_id: str | None = None,
    role_id: int | None = None,
    **kwargs: Any,
) -> Dict[str, Any]:
    """
    Create a context dict for error logging.

    Args:
        error: Exception instance
        request_id: Request ID if available
        role_id: Active role if known
        **kwargs: Additional context

    Returns:
        Context dictionary for logging
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **kwargs,
    }

    if request_id:
        context["request_id"] = request_id

    if role_id is not None:
        context["role_id"] = role_id

    return context
