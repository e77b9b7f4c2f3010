"""
Role gate for protected pages.

Some pages are restricted to named roles regardless of privilege records.
Rules are keyed by slug path prefix (``"settings"`` covers every page under
Settings); the longest matching prefix applies and ``"*"`` covers every path.
An allowed role is given either by id (int) or by exact role name (str).
"""
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

import structlog

from navguard.core.exceptions import RoleNotAllowedError
from navguard.domain.schemas.auth import RoleContext
from navguard.services.privileges.slugs import SlugPath, join_slug_path, to_slug_path

logger = structlog.get_logger(__name__)

AllowedRole = Union[int, str]

ANY_PATH = "*"


class RoleGate:
    """Allowed roles per slug path prefix."""

    def __init__(self, rules: Optional[Mapping[str, Sequence[AllowedRole]]] = None):
        self._default: Tuple[AllowedRole, ...] = ()
        self._rules: Dict[SlugPath, Tuple[AllowedRole, ...]] = {}
        for path, roles in (rules or {}).items():
            if path.strip() == ANY_PATH:
                self._default = tuple(roles)
            else:
                self._rules[to_slug_path(path.strip("/").split("/"))] = tuple(roles)

    @classmethod
    def from_mapping(cls, rules: Mapping[str, Sequence[AllowedRole]]) -> "RoleGate":
        return cls(rules)

    def allowed_roles(self, segments: Sequence[str]) -> Tuple[AllowedRole, ...]:
        """Roles allowed onto ``segments``; empty means unrestricted."""
        path = to_slug_path(segments)
        for depth in range(len(path), 0, -1):
            roles = self._rules.get(path[:depth])
            if roles:
                return roles
        return self._default

    @staticmethod
    def matches(context: RoleContext, allowed: Sequence[AllowedRole]) -> bool:
        for role in allowed:
            # bool is an int subclass but never a role id
            if isinstance(role, int) and not isinstance(role, bool):
                if context.role_id == role:
                    return True
            elif context.role_name is not None and context.role_name == str(role):
                return True
        return False

    def check(self, context: RoleContext, segments: Sequence[str]) -> None:
        """
        Raises:
            RoleNotAllowedError: the active role is not allowed onto the path
        """
        allowed = self.allowed_roles(segments)
        if not allowed or self.matches(context, allowed):
            return

        path = "/" + join_slug_path(to_slug_path(segments))
        logger.warning(
            "role_not_allowed",
            session_id=context.session_id,
            role_id=context.role_id,
            role_name=context.role_name,
            path=path,
        )
        raise RoleNotAllowedError(
            details={"path": path, "role_id": context.role_id, "role_name": context.role_name}
        )

    def __len__(self) -> int:
        return len(self._rules) + (1 if self._default else 0)
