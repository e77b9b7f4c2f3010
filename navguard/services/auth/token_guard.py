"""
Access credential guard.

Tracks the credential state of every session and keeps the access token
usable: an expired token is refreshed once (shared by concurrent callers),
and a failed refresh ends the session.
"""
import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, NoReturn, Optional

import structlog
from jose import JWTError, jwt
from pydantic import ValidationError

from navguard.core.config import Settings
from navguard.core.exceptions import BackendError, NoTokenError, RefreshFailedError
from navguard.domain.schemas.auth import SessionState, TokenPair, TokenState
from navguard.infrastructure.backend.client import BackendClient
from navguard.services.privileges.store import PrivilegeStore

from .session import SessionStore

logger = structlog.get_logger(__name__)

TokenRefresher = Callable[[str], Awaitable[TokenPair]]


class BackendTokenRefresher:
    """Exchanges a refresh token for a new access token at the backend."""

    def __init__(self, client: BackendClient, settings: Settings):
        self.client = client
        self.path = settings.TOKEN_REFRESH_PATH

    async def __call__(self, refresh_token: str) -> TokenPair:
        # Never retried: a rejected refresh token stays rejected.
        body = await self.client.post(self.path, {"refresh": refresh_token})
        payload: Dict[str, Any] = {}
        if isinstance(body, dict):
            payload = body if "access" in body else body.get("data") or {}

        access = payload.get("access") if isinstance(payload, dict) else None
        if not access:
            raise BackendError("token refresh response carried no access token", path=self.path)
        try:
            return TokenPair(access_token=access, refresh_token=payload.get("refresh"))
        except ValidationError as e:
            raise BackendError(f"malformed token refresh response: {e}", path=self.path) from e


class TokenGuard:
    """Per-session credential state machine."""

    def __init__(
        self,
        sessions: SessionStore,
        refresher: TokenRefresher,
        privilege_store: Optional[PrivilegeStore] = None,
        leeway_seconds: float = 0,
        clock: Callable[[], float] = time.time,
    ):
        self.sessions = sessions
        self._refresher = refresher
        self._privilege_store = privilege_store
        self.leeway_seconds = leeway_seconds
        self._clock = clock
        self._states: Dict[str, TokenState] = {}
        self._refreshing: Dict[str, "asyncio.Task[SessionState]"] = {}

    def inspect(self, token: Optional[str]) -> TokenState:
        """
        Classify an access token by its ``exp`` claim.

        The signature is not verified; the backend does that on every call.
        Malformed tokens and tokens without ``exp`` count as expired.
        """
        if not token:
            return TokenState.NO_TOKEN
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            return TokenState.EXPIRED

        try:
            expires_at = float(claims["exp"])
        except (KeyError, TypeError, ValueError):
            return TokenState.EXPIRED

        if self._clock() + self.leeway_seconds >= expires_at:
            return TokenState.EXPIRED
        return TokenState.VALID

    def state(self, session_id: str) -> TokenState:
        """
        Last observed credential state of a session.

        Only live sessions are tracked; unknown and ended sessions read as
        ``NO_TOKEN``.
        """
        return self._states.get(session_id, TokenState.NO_TOKEN)

    @property
    def tracked_sessions(self) -> int:
        return len(self._states)

    def forget(self, session_id: str) -> None:
        self._states.pop(session_id, None)

    async def ensure_valid(self, session_id: str) -> SessionState:
        """
        Return the session with a usable access token.

        Raises:
            NoTokenError: the session has no access token
            RefreshFailedError: the token expired and could not be refreshed
        """
        state = await self.sessions.load(session_id)
        if state is None or not state.access_token:
            # Session ids come from the client; keep no entry for unknown ones.
            self.forget(session_id)
            raise NoTokenError(details={"session_id": session_id})

        token_state = self.inspect(state.access_token)
        if token_state == TokenState.VALID:
            self._states[session_id] = TokenState.VALID
            return state

        self._states[session_id] = TokenState.EXPIRED
        logger.info("access_token_expired", session_id=session_id, role_id=state.role_id)
        return await self._refresh_shared(session_id, state)

    async def _refresh_shared(self, session_id: str, state: SessionState) -> SessionState:
        task = self._refreshing.get(session_id)
        if task is None:
            task = asyncio.ensure_future(self._refresh(session_id, state))
            self._refreshing[session_id] = task
            task.add_done_callback(lambda done: self._forget_refresh(session_id, done))
        else:
            logger.debug("token_refresh_joined", session_id=session_id)
        return await asyncio.shield(task)

    def _forget_refresh(self, session_id: str, task: "asyncio.Task[SessionState]") -> None:
        if self._refreshing.get(session_id) is task:
            del self._refreshing[session_id]
        if not task.cancelled():
            task.exception()

    async def _refresh(self, session_id: str, state: SessionState) -> SessionState:
        self._states[session_id] = TokenState.REFRESHING
        if not state.refresh_token:
            await self._fail(session_id, state, "no refresh token")

        try:
            tokens = await self._refresher(state.refresh_token)
        except BackendError as e:
            await self._fail(session_id, state, e.message)

        refreshed = state.with_tokens(tokens)
        await self.sessions.save(session_id, refreshed)
        self._states[session_id] = TokenState.VALID
        logger.info(
            "token_refreshed",
            session_id=session_id,
            role_id=state.role_id,
            rotated_refresh=tokens.refresh_token is not None,
        )
        return refreshed

    async def _fail(self, session_id: str, state: SessionState, reason: str) -> NoReturn:
        self._states[session_id] = TokenState.REFRESH_FAILED
        logger.warning(
            "token_refresh_failed",
            session_id=session_id,
            role_id=state.role_id,
            reason=reason,
        )
        await self.sessions.delete(session_id)
        self.forget(session_id)
        if self._privilege_store is not None and state.role_id is not None:
            self._privilege_store.invalidate(state.role_id)
        raise RefreshFailedError(details={"session_id": session_id, "reason": reason})
