"""
Session credentials and the active role of a session.
"""

from .roles import RoleGate
from .session import InMemorySessionStore, RedisSessionStore, SessionRoleResolver, SessionStore
from .token_guard import BackendTokenRefresher, TokenGuard

__all__ = [
    "BackendTokenRefresher",
    "InMemorySessionStore",
    "RedisSessionStore",
    "RoleGate",
    "SessionRoleResolver",
    "SessionStore",
    "TokenGuard",
]
