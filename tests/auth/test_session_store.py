"""
Tests for session stores and the active-role resolver.
"""
from unittest.mock import AsyncMock, patch

import pytest

from navguard.core.exceptions import NoRoleError
from navguard.domain.schemas.auth import SessionCreate, SessionState
from navguard.infrastructure.cache import RedisJSONStore
from navguard.services.auth.session import InMemorySessionStore, RedisSessionStore, SessionRoleResolver


@pytest.fixture
def state():
    return SessionState(access_token="access", refresh_token="refresh", role_id=3, role_name="Super Admin")


class TestInMemorySessionStore:

    @pytest.mark.asyncio
    async def test_save_load_delete(self, state):
        store = InMemorySessionStore()

        await store.save("s-1", state)
        assert await store.load("s-1") == state
        assert await store.delete("s-1") is True
        assert await store.load("s-1") is None
        assert await store.delete("s-1") is False


class TestRedisSessionStore:
    """Test JSON persistence through the Redis key/value layer."""

    @pytest.mark.asyncio
    async def test_save_uses_ttl(self, state):
        backing = AsyncMock(spec=RedisJSONStore)
        store = RedisSessionStore(ttl_seconds=600, store=backing)

        await store.save("s-1", state)

        backing.set.assert_awaited_once_with("s-1", state.model_dump(mode="json"), expire=600)

    @pytest.mark.asyncio
    async def test_load_decodes_state(self, state):
        backing = AsyncMock(spec=RedisJSONStore)
        backing.get.return_value = state.model_dump(mode="json")
        store = RedisSessionStore(ttl_seconds=600, store=backing)

        assert await store.load("s-1") == state

    @pytest.mark.asyncio
    async def test_load_missing_or_corrupt(self):
        """Test absent and undecodable sessions both read as no session."""
        backing = AsyncMock(spec=RedisJSONStore)
        backing.get.side_effect = [None, {"role_id": "not-a-number"}]
        store = RedisSessionStore(ttl_seconds=600, store=backing)

        assert await store.load("s-1") is None
        assert await store.load("s-1") is None

    @pytest.mark.asyncio
    async def test_redis_client_keys(self, state):
        """Test keys are namespaced under navguard:session."""
        redis_client = AsyncMock()
        with patch("navguard.infrastructure.cache.redis.get_redis_client", AsyncMock(return_value=redis_client)):
            store = RedisSessionStore(ttl_seconds=60)
            await store.save("abc", state)
            redis_client.delete.return_value = 1
            deleted = await store.delete("abc")

        assert redis_client.setex.await_args.args[:2] == ("navguard:session:abc", 60)
        redis_client.delete.assert_awaited_once_with("navguard:session:abc")
        assert deleted is True


class TestSessionRoleResolver:
    """Test the active role of a session."""

    @pytest.mark.asyncio
    async def test_resolve_role(self, state):
        sessions = InMemorySessionStore()
        await sessions.save("s-1", state)
        resolver = SessionRoleResolver(sessions)

        context = await resolver.resolve("s-1")

        assert context.session_id == "s-1"
        assert context.role_id == 3
        assert context.role_name == "Super Admin"
        assert await resolver.current_role_id("s-1") == 3

    @pytest.mark.asyncio
    async def test_session_without_role(self):
        """Test a session with no role is unauthenticated."""
        sessions = InMemorySessionStore()
        await sessions.save("s-1", SessionState(access_token="access"))
        resolver = SessionRoleResolver(sessions)

        with pytest.raises(NoRoleError) as exc_info:
            await resolver.resolve("s-1")
        assert exc_info.value.status_code == 401

        with pytest.raises(NoRoleError):
            await resolver.resolve("unknown")
        assert await resolver.current_role_id("unknown") is None

    @pytest.mark.parametrize(
        "role_name,expected",
        [
            ("Super Admin", "/superadmin"),
            ("super_admin", "/superadmin"),
            ("SuperAdmin", "/superadmin"),
            ("Admin", "/admin"),
            ("branch-admin", "/admin"),
            ("Accountant", "/dashboard"),
            (None, "/dashboard"),
            ("", "/dashboard"),
        ],
    )
    def test_landing_path(self, role_name, expected):
        assert SessionRoleResolver.landing_path(role_name) == expected

    def test_session_create_payload(self):
        """Test the login payload maps onto a persisted session."""
        payload = SessionCreate(access="a", refresh="r", role=7, role_name="Admin", is_active=True)

        assert payload.to_state() == SessionState(
            access_token="a", refresh_token="r", role_id=7, role_name="Admin", is_active=True
        )
