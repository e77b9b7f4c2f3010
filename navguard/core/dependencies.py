"""
Service composition and dependency injection for FastAPI.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from navguard.core.config import Settings, get_settings
from navguard.core.exceptions import NoTokenError
from navguard.infrastructure.backend.client import BackendClient, RetryPolicy
from navguard.services.auth.session import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionRoleResolver,
    SessionStore,
)
from navguard.services.auth.roles import RoleGate
from navguard.services.auth.token_guard import BackendTokenRefresher, TokenGuard
from navguard.services.navigation import NavigationGateway
from navguard.services.privileges.authorizer import ComponentRegistry, RouteAuthorizer
from navguard.services.privileges.backend import PrivilegeBackend
from navguard.services.privileges.mutations import PrivilegeMutationService
from navguard.services.privileges.store import PrivilegeStore


@dataclass
class Services:
    """Everything a request handler needs, wired once per application."""
    settings: Settings
    client: BackendClient
    backend: PrivilegeBackend
    sessions: SessionStore
    resolver: SessionRoleResolver
    store: PrivilegeStore
    token_guard: TokenGuard
    registry: ComponentRegistry
    authorizer: RouteAuthorizer
    gateway: NavigationGateway
    mutations: PrivilegeMutationService


def build_services(
    settings: Optional[Settings] = None,
    sessions: Optional[SessionStore] = None,
    client: Optional[BackendClient] = None,
) -> Services:
    """
    Compose the service graph from settings.

    Args:
        settings: Application settings (defaults to the cached instance)
        sessions: Session store override
        client: Backend client override

    Returns:
        Wired services
    """
    settings = settings or get_settings()

    client = client or BackendClient(
        settings.BACKEND_API_URL,
        timeout_seconds=settings.BACKEND_TIMEOUT_SECONDS,
        retry_policy=RetryPolicy(**settings.get_retry_config()),
    )
    backend = PrivilegeBackend(client, settings)

    if sessions is None:
        if settings.SESSION_BACKEND == "redis":
            sessions = RedisSessionStore(ttl_seconds=settings.SESSION_TTL_SECONDS)
        else:
            sessions = InMemorySessionStore()

    store = PrivilegeStore(
        backend.fetch_role_privileges,
        ttl_seconds=settings.PRIVILEGE_CACHE_TTL_SECONDS,
    )
    resolver = SessionRoleResolver(sessions)
    token_guard = TokenGuard(
        sessions,
        BackendTokenRefresher(client, settings),
        privilege_store=store,
        leeway_seconds=settings.TOKEN_EXPIRY_LEEWAY_SECONDS,
    )
    registry = ComponentRegistry.from_mapping(settings.PAGE_COMPONENTS)
    authorizer = RouteAuthorizer(registry)

    return Services(
        settings=settings,
        client=client,
        backend=backend,
        sessions=sessions,
        resolver=resolver,
        store=store,
        token_guard=token_guard,
        registry=registry,
        authorizer=authorizer,
        gateway=NavigationGateway(
            token_guard,
            resolver,
            store,
            authorizer,
            backend,
            role_gate=RoleGate.from_mapping(settings.PAGE_ALLOWED_ROLES),
        ),
        mutations=PrivilegeMutationService(backend, store),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_session_id(request: Request, services: Services = Depends(get_services)) -> str:
    """
    Session identifier from the session header.

    Raises:
        NoTokenError: header missing, so there is no credential to use
    """
    session_id = request.headers.get(services.settings.SESSION_HEADER, "").strip()
    if not session_id:
        raise NoTokenError(details={"header": services.settings.SESSION_HEADER})
    return session_id


def get_gateway(services: Services = Depends(get_services)) -> NavigationGateway:
    return services.gateway
