"""
Route authorization.

Resolves a 1-3 segment navigation path against a role's privilege snapshot
and decides whether the page may be rendered.
"""
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict

from navguard.core.exceptions import ComponentNotRegisteredError
from navguard.domain.schemas.auth import RoleContext
from navguard.domain.schemas.privileges import (
    FunctionalityPrivilege,
    HierarchyLevel,
    ModulePrivilege,
    PrivilegeAction,
    SubmodulePrivilege,
)

from .slugs import SlugPath, join_slug_path, to_slug_path
from .store import PrivilegeSnapshot

logger = structlog.get_logger(__name__)


class DecisionOutcome(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    NOT_FOUND = "not_found"


class DenialReason(str, Enum):
    """Why a path was denied. Diagnostic only; every denial renders the same."""
    INVALID_PATH = "invalid_path"
    NO_RECORD = "no_record"
    VIEW_NOT_PERMITTED = "view_not_permitted"


class AuthorizationDecision(BaseModel):
    """Outcome of one navigation check."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    outcome: DecisionOutcome
    path: SlugPath
    level: Optional[HierarchyLevel] = None
    record: Optional[Union[ModulePrivilege, SubmodulePrivilege, FunctionalityPrivilege]] = None
    reason: Optional[DenialReason] = None
    component: Optional[Any] = None
    role_id: Optional[int] = None

    @property
    def granted(self) -> bool:
        return self.outcome is DecisionOutcome.GRANTED

    @property
    def denied(self) -> bool:
        return self.outcome is DecisionOutcome.DENIED

    @property
    def not_found(self) -> bool:
        return self.outcome is DecisionOutcome.NOT_FOUND

    @property
    def component_key(self) -> str:
        return join_slug_path(self.path)

    def can(self, action: PrivilegeAction) -> bool:
        """Capability check for the rendering layer; false unless granted."""
        return self.granted and self.record is not None and self.record.allows(action)


class ComponentRegistry:
    """Page components keyed by slug path (``"file/tax"``)."""

    def __init__(self, components: Optional[Mapping[str, Any]] = None):
        self._components: Dict[SlugPath, Any] = {}
        for key, component in (components or {}).items():
            self.register(key, component)

    @classmethod
    def from_mapping(cls, components: Mapping[str, Any]) -> "ComponentRegistry":
        return cls(components)

    @staticmethod
    def _key(path: Union[str, Sequence[str]]) -> SlugPath:
        segments = path.strip("/").split("/") if isinstance(path, str) else path
        return to_slug_path(segments)

    def register(self, path: Union[str, Sequence[str]], component: Any) -> None:
        key = self._key(path)
        if not key or not all(key) or len(key) > 3:
            raise ValueError(f"Invalid component path: {path!r}")
        if key in self._components:
            logger.warning("component_replaced", path=join_slug_path(key))
        self._components[key] = component

    def resolve(self, path: Union[str, Sequence[str]]) -> Optional[Any]:
        return self._components.get(self._key(path))

    def require(self, path: Union[str, Sequence[str]]) -> Any:
        component = self.resolve(path)
        if component is None:
            raise ComponentNotRegisteredError(join_slug_path(self._key(path)))
        return component

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, tuple, list)):
            return False
        return self.resolve(path) is not None

    def __len__(self) -> int:
        return len(self._components)


class RouteAuthorizer:
    """Pure decision function over a privilege snapshot."""

    def __init__(self, registry: ComponentRegistry):
        self.registry = registry

    def authorize(
        self,
        segments: Sequence[str],
        context: RoleContext,
        snapshot: PrivilegeSnapshot,
    ) -> AuthorizationDecision:
        """
        Decide whether ``segments`` may be rendered for ``context``.

        Args:
            segments: Path segments, module first
            context: Active role of the session
            snapshot: Privilege snapshot of that role

        Returns:
            GRANTED with the matching record, DENIED, or NOT_FOUND when access
            is permitted but no page component is registered.
        """
        if snapshot.role_id != context.role_id:
            raise ValueError(
                f"Snapshot for role {snapshot.role_id} applied to role {context.role_id}"
            )

        path = to_slug_path(segments)
        level = HierarchyLevel.from_depth(len(path))
        if level is None or not all(path):
            return self._decide(
                context, path, DecisionOutcome.DENIED, reason=DenialReason.INVALID_PATH
            )

        record = snapshot.index.lookup(level, path)
        if record is None:
            return self._decide(
                context, path, DecisionOutcome.DENIED, level=level, reason=DenialReason.NO_RECORD
            )

        if not record.can_view:
            return self._decide(
                context,
                path,
                DecisionOutcome.DENIED,
                level=level,
                record=record,
                reason=DenialReason.VIEW_NOT_PERMITTED,
            )

        try:
            component = self.registry.require(path)
        except ComponentNotRegisteredError as e:
            logger.error("component_not_registered", path=e.path, role_id=context.role_id)
            return self._decide(context, path, DecisionOutcome.NOT_FOUND, level=level, record=record)

        return self._decide(
            context, path, DecisionOutcome.GRANTED, level=level, record=record, component=component
        )

    def _decide(
        self,
        context: RoleContext,
        path: Tuple[str, ...],
        outcome: DecisionOutcome,
        **kwargs: Any,
    ) -> AuthorizationDecision:
        decision = AuthorizationDecision(outcome=outcome, path=path, role_id=context.role_id, **kwargs)
        logger.info(
            "route_authorization_decision",
            session_id=context.session_id,
            role_id=context.role_id,
            path=decision.component_key,
            level=decision.level.value if decision.level else None,
            outcome=outcome.value,
            reason=decision.reason.value if decision.reason else None,
        )
        return decision
