"""
Role privileges: slug index, snapshot cache, route authorization and the
backend endpoints that feed them.
"""

from .authorizer import (
    AuthorizationDecision,
    ComponentRegistry,
    DecisionOutcome,
    DenialReason,
    RouteAuthorizer,
)
from .backend import PrivilegeBackend
from .mutations import PrivilegeMutationService
from .navigation import NavigationTree, build_navigation_tree
from .slugs import SlugIndex, to_slug, to_slug_path
from .store import PrivilegeSnapshot, PrivilegeStore

__all__ = [
    # Services
    "PrivilegeBackend",
    "PrivilegeMutationService",
    "PrivilegeStore",
    "RouteAuthorizer",

    # Models
    "AuthorizationDecision",
    "ComponentRegistry",
    "DecisionOutcome",
    "DenialReason",
    "NavigationTree",
    "PrivilegeSnapshot",
    "SlugIndex",

    # Helpers
    "build_navigation_tree",
    "to_slug",
    "to_slug_path",
]
