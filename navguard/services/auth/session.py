"""
Persisted navigation sessions and the active-role resolver.
"""
import re
from abc import ABC, abstractmethod
from typing import Dict, Optional

import structlog
from pydantic import ValidationError

from navguard.core.exceptions import NoRoleError
from navguard.domain.schemas.auth import RoleContext, SessionState
from navguard.infrastructure.cache import RedisJSONStore

logger = structlog.get_logger(__name__)


class SessionStore(ABC):
    """Where session credentials and the active role are persisted."""

    @abstractmethod
    async def load(self, session_id: str) -> Optional[SessionState]:
        """Return the session, or None when it does not exist."""

    @abstractmethod
    async def save(self, session_id: str, state: SessionState) -> None:
        """Create or replace the session."""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Remove the session; True if it existed."""


class InMemorySessionStore(SessionStore):
    """Process-local session store."""

    def __init__(self):
        self._sessions: Dict[str, SessionState] = {}

    async def load(self, session_id: str) -> Optional[SessionState]:
        return self._sessions.get(session_id)

    async def save(self, session_id: str, state: SessionState) -> None:
        self._sessions[session_id] = state

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None


class RedisSessionStore(SessionStore):
    """Sessions stored as JSON under ``navguard:session:{id}`` with a TTL."""

    def __init__(self, ttl_seconds: int, store: Optional[RedisJSONStore] = None):
        self.ttl_seconds = ttl_seconds
        self._store = store or RedisJSONStore(prefix="navguard:session")

    async def load(self, session_id: str) -> Optional[SessionState]:
        data = await self._store.get(session_id)
        if data is None:
            return None
        try:
            return SessionState.model_validate(data)
        except ValidationError as e:
            logger.error("session_decode_error", session_id=session_id, error=str(e))
            return None

    async def save(self, session_id: str, state: SessionState) -> None:
        await self._store.set(session_id, state.model_dump(mode="json"), expire=self.ttl_seconds)
        logger.info("session_saved", session_id=session_id, role_id=state.role_id)

    async def delete(self, session_id: str) -> bool:
        deleted = await self._store.delete(session_id)
        logger.info("session_deleted", session_id=session_id, existed=deleted)
        return deleted


_ROLE_NAME_NOISE = re.compile(r"[\s_-]")


class SessionRoleResolver:
    """Derives the active role of a session; the role id keys the privilege cache."""

    def __init__(self, sessions: SessionStore):
        self.sessions = sessions

    async def resolve(self, session_id: str) -> RoleContext:
        """
        Read the active role from the persisted session.

        Raises:
            NoRoleError: no session, or the session carries no role
        """
        state = await self.sessions.load(session_id)
        if state is None or state.role_id is None:
            logger.info("session_without_role", session_id=session_id, has_session=state is not None)
            raise NoRoleError(details={"session_id": session_id})
        return RoleContext(session_id=session_id, role_id=state.role_id, role_name=state.role_name)

    async def current_role_id(self, session_id: str) -> Optional[int]:
        state = await self.sessions.load(session_id)
        return state.role_id if state else None

    @staticmethod
    def landing_path(role_name: Optional[str]) -> str:
        """Route a freshly authenticated role lands on."""
        normalized = _ROLE_NAME_NOISE.sub("", (role_name or "").strip().lower())
        if "super" in normalized:
            return "/superadmin"
        if "admin" in normalized:
            return "/admin"
        return "/dashboard"
