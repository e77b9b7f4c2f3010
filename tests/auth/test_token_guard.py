"""
Tests for the access credential guard.
"""
import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from jose import jwt

from navguard.core.exceptions import BackendError, NoTokenError, RefreshFailedError, TokenExpiredError
from navguard.domain.schemas.auth import SessionState, TokenPair, TokenState
from navguard.infrastructure.backend.client import NO_RETRY
from navguard.services.auth.session import InMemorySessionStore
from navguard.services.auth.token_guard import BackendTokenRefresher, TokenGuard
from navguard.services.privileges.store import PrivilegeStore

from tests.fixtures.privileges import ACCOUNTANT_ROLE, make_token


@pytest.fixture
def sessions():
    return InMemorySessionStore()


@pytest.fixture
def privilege_store():
    return MagicMock(spec=PrivilegeStore)


async def save_session(sessions, access_token, refresh_token="refresh-1", role_id=ACCOUNTANT_ROLE):
    state = SessionState(access_token=access_token, refresh_token=refresh_token, role_id=role_id)
    await sessions.save("s-1", state)
    return state


class TestInspect:
    """Test token classification by expiry."""

    @pytest.fixture
    def guard(self, sessions):
        return TokenGuard(sessions, AsyncMock())

    def test_unexpired_token_is_valid(self, guard):
        assert guard.inspect(make_token(expires_in=600)) is TokenState.VALID

    def test_expired_token(self, guard):
        assert guard.inspect(make_token(expires_in=-1)) is TokenState.EXPIRED

    def test_missing_token(self, guard):
        assert guard.inspect(None) is TokenState.NO_TOKEN
        assert guard.inspect("") is TokenState.NO_TOKEN

    def test_malformed_token_counts_as_expired(self, guard):
        assert guard.inspect("not-a-jwt") is TokenState.EXPIRED

    def test_token_without_exp_counts_as_expired(self, guard):
        token = jwt.encode({"sub": "42"}, "test-secret", algorithm="HS256")
        assert guard.inspect(token) is TokenState.EXPIRED

    def test_leeway_expires_early(self, sessions):
        """Test a token inside the leeway window is treated as expired."""
        guard = TokenGuard(sessions, AsyncMock(), leeway_seconds=60)

        assert guard.inspect(make_token(expires_in=30)) is TokenState.EXPIRED
        assert guard.inspect(make_token(expires_in=300)) is TokenState.VALID

    def test_injected_clock(self, sessions):
        token = make_token(expires_in=100)
        guard = TokenGuard(sessions, AsyncMock(), clock=lambda: time.time() + 200)

        assert guard.inspect(token) is TokenState.EXPIRED


class TestEnsureValid:
    """Test the refresh state machine."""

    @pytest.mark.asyncio
    async def test_valid_token_passes_through(self, sessions, privilege_store):
        refresher = AsyncMock()
        guard = TokenGuard(sessions, refresher, privilege_store)
        state = await save_session(sessions, make_token())

        result = await guard.ensure_valid("s-1")

        assert result == state
        assert guard.state("s-1") is TokenState.VALID
        refresher.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_session_raises_no_token(self, sessions):
        """Test a missing credential redirects to login."""
        guard = TokenGuard(sessions, AsyncMock())

        with pytest.raises(NoTokenError) as exc_info:
            await guard.ensure_valid("missing")

        assert exc_info.value.status_code == 401
        assert exc_info.value.redirect_to == "/login"
        assert guard.state("missing") is TokenState.NO_TOKEN

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed(self, sessions, privilege_store):
        """Test an expired token is replaced and the role is kept."""
        new_access = make_token()
        refresher = AsyncMock(return_value=TokenPair(access_token=new_access, refresh_token="refresh-2"))
        guard = TokenGuard(sessions, refresher, privilege_store)
        await save_session(sessions, make_token(expires_in=-10))

        result = await guard.ensure_valid("s-1")

        refresher.assert_awaited_once_with("refresh-1")
        assert result.access_token == new_access
        assert result.refresh_token == "refresh-2"
        assert result.role_id == ACCOUNTANT_ROLE
        assert (await sessions.load("s-1")).access_token == new_access
        assert guard.state("s-1") is TokenState.VALID
        privilege_store.invalidate.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_without_rotation_keeps_refresh_token(self, sessions):
        refresher = AsyncMock(return_value=TokenPair(access_token=make_token()))
        guard = TokenGuard(sessions, refresher)
        await save_session(sessions, make_token(expires_in=-10))

        result = await guard.ensure_valid("s-1")

        assert result.refresh_token == "refresh-1"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, sessions):
        """Test several requests with the same expired token refresh once."""
        release = asyncio.Event()
        new_access = make_token()

        async def refresher(refresh_token):
            await release.wait()
            return TokenPair(access_token=new_access)

        counting = AsyncMock(side_effect=refresher)
        guard = TokenGuard(sessions, counting)
        await save_session(sessions, make_token(expires_in=-10))

        waiters = [asyncio.create_task(guard.ensure_valid("s-1")) for _ in range(3)]
        for _ in range(3):
            await asyncio.sleep(0)
        assert guard.state("s-1") is TokenState.REFRESHING
        release.set()
        results = await asyncio.gather(*waiters)

        assert counting.await_count == 1
        assert all(r.access_token == new_access for r in results)

    @pytest.mark.asyncio
    async def test_failed_refresh_ends_session(self, sessions, privilege_store):
        """Test a rejected refresh deletes the session and drops the role cache."""
        refresher = AsyncMock(side_effect=BackendError("rejected", status=401))
        guard = TokenGuard(sessions, refresher, privilege_store)
        await save_session(sessions, make_token(expires_in=-10))

        with pytest.raises(RefreshFailedError) as exc_info:
            await guard.ensure_valid("s-1")

        assert isinstance(exc_info.value, TokenExpiredError)
        assert exc_info.value.redirect_to == "/login"
        assert await sessions.load("s-1") is None
        assert guard.state("s-1") is TokenState.NO_TOKEN
        assert guard.tracked_sessions == 0
        privilege_store.invalidate.assert_called_once_with(ACCOUNTANT_ROLE)
        refresher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_sessions_are_not_tracked(self, sessions):
        """Test client-chosen session ids leave no state behind."""
        guard = TokenGuard(sessions, AsyncMock())

        for i in range(100):
            with pytest.raises(NoTokenError):
                await guard.ensure_valid(f"unknown-{i}")

        assert guard.tracked_sessions == 0

    @pytest.mark.asyncio
    async def test_ended_session_is_dropped(self, sessions):
        """Test a session that disappeared from the store stops being tracked."""
        guard = TokenGuard(sessions, AsyncMock())
        await save_session(sessions, make_token())
        await guard.ensure_valid("s-1")
        assert guard.tracked_sessions == 1

        await sessions.delete("s-1")
        with pytest.raises(NoTokenError):
            await guard.ensure_valid("s-1")

        assert guard.tracked_sessions == 0

    @pytest.mark.asyncio
    async def test_malformed_refresh_response_ends_session(self, fake_backend, backend_client, test_settings, sessions):
        """Test a refresh answer with a non-string token fails like a rejection."""
        fake_backend.refresh_tokens["refresh-1"] = {"access": {"token": "x"}}
        guard = TokenGuard(sessions, BackendTokenRefresher(backend_client, test_settings))
        await save_session(sessions, make_token(expires_in=-10))

        with pytest.raises(RefreshFailedError):
            await guard.ensure_valid("s-1")

        assert await sessions.load("s-1") is None
        assert guard.state("s-1") is TokenState.NO_TOKEN

    @pytest.mark.asyncio
    async def test_missing_refresh_token_fails_without_calling_backend(self, sessions, privilege_store):
        refresher = AsyncMock()
        guard = TokenGuard(sessions, refresher, privilege_store)
        await save_session(sessions, make_token(expires_in=-10), refresh_token=None)

        with pytest.raises(RefreshFailedError):
            await guard.ensure_valid("s-1")

        refresher.assert_not_awaited()
        privilege_store.invalidate.assert_called_once_with(ACCOUNTANT_ROLE)

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(self, sessions):
        """Test the next call after a failure finds no session at all."""
        refresher = AsyncMock(side_effect=BackendError("rejected", status=401))
        guard = TokenGuard(sessions, refresher)
        await save_session(sessions, make_token(expires_in=-10))

        with pytest.raises(RefreshFailedError):
            await guard.ensure_valid("s-1")
        with pytest.raises(NoTokenError):
            await guard.ensure_valid("s-1")

        assert refresher.await_count == 1


class TestBackendTokenRefresher:
    """Test the refresh call against the backend."""

    @pytest.fixture
    def refresher(self, backend_client, test_settings):
        return BackendTokenRefresher(backend_client, test_settings)

    @pytest.mark.asyncio
    async def test_flat_response(self, fake_backend, refresher):
        fake_backend.refresh_tokens["refresh-1"] = {"access": "access-2", "refresh": "refresh-2"}

        tokens = await refresher("refresh-1")

        assert tokens == TokenPair(access_token="access-2", refresh_token="refresh-2")

    @pytest.mark.asyncio
    async def test_nested_response(self, fake_backend, refresher):
        fake_backend.refresh_tokens["refresh-1"] = {"data": {"access": "access-2"}}

        tokens = await refresher("refresh-1")

        assert tokens.access_token == "access-2"
        assert tokens.refresh_token is None

    @pytest.mark.asyncio
    async def test_rejected_refresh(self, fake_backend, refresher):
        with pytest.raises(BackendError) as exc_info:
            await refresher("unknown")

        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_server_error_is_not_retried(self, fake_backend, refresher):
        """Test refresh goes out once even on a 5xx."""
        fake_backend.refresh_tokens["refresh-1"] = {"access": "access-2"}
        fake_backend.fail_next(503)

        with pytest.raises(BackendError):
            await refresher("refresh-1")

        assert fake_backend.count("POST", "/accounts/token/refresh/") == 1

    @pytest.mark.asyncio
    async def test_response_without_access(self, fake_backend, refresher):
        fake_backend.refresh_tokens["refresh-1"] = {"detail": "ok"}

        with pytest.raises(BackendError):
            await refresher("refresh-1")

    @pytest.mark.asyncio
    async def test_non_string_access_is_backend_error(self, fake_backend, refresher):
        fake_backend.refresh_tokens["refresh-1"] = {"access": 12345}

        with pytest.raises(BackendError) as exc_info:
            await refresher("refresh-1")

        assert "malformed" in exc_info.value.message

    def test_post_default_policy_is_no_retry(self):
        assert NO_RETRY.max_retries == 0
