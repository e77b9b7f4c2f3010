"""
Navigation gateway.

Runs the full navigation flow for a session: credential check, active role,
privilege snapshot, then the route decision.
"""
from typing import Optional, Sequence, Tuple

import structlog
from pydantic import BaseModel, ConfigDict

from navguard.domain.schemas.auth import RoleContext, SessionState
from navguard.domain.schemas.privileges import (
    DirectAccessSchema,
    HierarchyLevel,
    PrivilegeAction,
    PrivilegeFlags,
)
from navguard.services.auth.roles import RoleGate
from navguard.services.auth.session import SessionRoleResolver
from navguard.services.auth.token_guard import TokenGuard
from navguard.services.privileges.authorizer import (
    AuthorizationDecision,
    DecisionOutcome,
    DenialReason,
    RouteAuthorizer,
)
from navguard.services.privileges.backend import PrivilegeBackend
from navguard.services.privileges.navigation import NavigationTree, build_navigation_tree
from navguard.services.privileges.store import PrivilegeSnapshot, PrivilegeStore

logger = structlog.get_logger(__name__)


class DirectAccessDecision(BaseModel):
    """Access to a submodule or functionality addressed by id."""
    model_config = ConfigDict(frozen=True)

    outcome: DecisionOutcome
    level: HierarchyLevel
    target_id: int
    role_id: int
    reason: Optional[DenialReason] = None
    privilege: Optional[PrivilegeFlags] = None
    page_schema: Optional[DirectAccessSchema] = None

    @property
    def granted(self) -> bool:
        return self.outcome is DecisionOutcome.GRANTED

    def can(self, action: PrivilegeAction) -> bool:
        return self.granted and self.privilege is not None and self.privilege.allows(action)


class NavigationGateway:
    """Entry point used by the API for every navigation request."""

    def __init__(
        self,
        token_guard: TokenGuard,
        resolver: SessionRoleResolver,
        store: PrivilegeStore,
        authorizer: RouteAuthorizer,
        backend: PrivilegeBackend,
        role_gate: Optional[RoleGate] = None,
    ):
        self.token_guard = token_guard
        self.resolver = resolver
        self.store = store
        self.authorizer = authorizer
        self.backend = backend
        self.role_gate = role_gate if role_gate is not None else RoleGate()

    async def navigate(self, session_id: str, segments: Sequence[str]) -> AuthorizationDecision:
        """
        Authorize a navigation path for a session.

        The role gate runs before any privilege is fetched.

        Raises:
            CredentialError: no token, refresh failed, no active role, or a
                role not allowed onto the path
            PrivilegeFetchError: privileges unavailable and nothing cached
        """
        context, snapshot = await self._current_snapshot(session_id, segments)
        return self.authorizer.authorize(segments, context, snapshot)

    async def navigation_tree(self, session_id: str) -> NavigationTree:
        context, snapshot = await self._current_snapshot(session_id)
        return build_navigation_tree(snapshot.privileges, role_id=context.role_id)

    async def submodule_access(self, session_id: str, submodule_id: int) -> DirectAccessDecision:
        session, context = await self._authenticate(session_id)
        schema = await self.backend.fetch_submodule_schema(submodule_id, session.access_token)
        return self._direct_decision(HierarchyLevel.SUBMODULE, submodule_id, context, schema)

    async def functionality_access(self, session_id: str, functionality_id: int) -> DirectAccessDecision:
        session, context = await self._authenticate(session_id)
        schema = await self.backend.fetch_functionality_schema(functionality_id, session.access_token)
        return self._direct_decision(HierarchyLevel.FUNCTIONALITY, functionality_id, context, schema)

    async def _authenticate(self, session_id: str) -> Tuple[SessionState, RoleContext]:
        session = await self.token_guard.ensure_valid(session_id)
        context = await self.resolver.resolve(session_id)
        return session, context

    async def _current_snapshot(
        self,
        session_id: str,
        segments: Optional[Sequence[str]] = None,
    ) -> Tuple[RoleContext, PrivilegeSnapshot]:
        session, context = await self._authenticate(session_id)
        if segments is not None:
            self.role_gate.check(context, segments)
        snapshot = await self.store.get(context.role_id, session.access_token)

        # The active role may have been switched while the fetch was suspended.
        current_role_id = await self.resolver.current_role_id(session_id)
        if current_role_id != context.role_id:
            logger.info(
                "active_role_changed_during_fetch",
                session_id=session_id,
                fetched_role_id=context.role_id,
                current_role_id=current_role_id,
            )
            session, context = await self._authenticate(session_id)
            if segments is not None:
                self.role_gate.check(context, segments)
            snapshot = await self.store.get(context.role_id, session.access_token)

        return context, snapshot

    def _direct_decision(
        self,
        level: HierarchyLevel,
        target_id: int,
        context: RoleContext,
        schema: Optional[DirectAccessSchema],
    ) -> DirectAccessDecision:
        privilege = schema.privilege if schema is not None else None
        if privilege is None:
            outcome, reason = DecisionOutcome.DENIED, DenialReason.NO_RECORD
        elif not privilege.can_view:
            outcome, reason = DecisionOutcome.DENIED, DenialReason.VIEW_NOT_PERMITTED
        else:
            outcome, reason = DecisionOutcome.GRANTED, None

        logger.info(
            "direct_access_decision",
            session_id=context.session_id,
            role_id=context.role_id,
            level=level.value,
            target_id=target_id,
            outcome=outcome.value,
            reason=reason.value if reason else None,
        )
        return DirectAccessDecision(
            outcome=outcome,
            level=level,
            target_id=target_id,
            role_id=context.role_id,
            reason=reason,
            privilege=privilege,
            page_schema=schema if outcome is DecisionOutcome.GRANTED else None,
        )
