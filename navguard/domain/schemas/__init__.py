"""
Domain schemas for NavGuard.
"""

from .auth import RoleContext, SessionCreate, SessionState, TokenPair, TokenState
from .navigation import (
    DirectAccessResponse,
    InvalidationResponse,
    LandingPathResponse,
    NavigationResult,
    SessionResponse,
)
from .privileges import (
    ConsolidatedPrivilegeSet,
    DirectAccessSchema,
    FunctionalityNode,
    FunctionalityPrivilege,
    FunctionalityPrivilegeUpdate,
    HierarchyLevel,
    HierarchyNode,
    ModuleNode,
    ModulePrivilege,
    ModulePrivilegeUpdate,
    PaginatedResult,
    PrivilegeAction,
    PrivilegeFlags,
    PrivilegeRecord,
    PrivilegeUpdate,
    RolePrivilegesPage,
    SubmoduleNode,
    SubmodulePrivilege,
    SubmodulePrivilegeUpdate,
)

__all__ = [
    # Auth schemas
    "RoleContext",
    "SessionCreate",
    "SessionState",
    "TokenPair",
    "TokenState",

    # API responses
    "DirectAccessResponse",
    "InvalidationResponse",
    "LandingPathResponse",
    "NavigationResult",
    "SessionResponse",

    # Hierarchy
    "HierarchyLevel",
    "HierarchyNode",
    "ModuleNode",
    "SubmoduleNode",
    "FunctionalityNode",

    # Privileges
    "PrivilegeAction",
    "PrivilegeFlags",
    "PrivilegeRecord",
    "ModulePrivilege",
    "SubmodulePrivilege",
    "FunctionalityPrivilege",
    "PaginatedResult",
    "RolePrivilegesPage",
    "ConsolidatedPrivilegeSet",
    "DirectAccessSchema",

    # Updates
    "PrivilegeUpdate",
    "ModulePrivilegeUpdate",
    "SubmodulePrivilegeUpdate",
    "FunctionalityPrivilegeUpdate",
]
