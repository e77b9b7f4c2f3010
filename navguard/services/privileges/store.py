"""
Per-role privilege snapshot cache.

Holds one ``ConsolidatedPrivilegeSet`` per role with a staleness window.
Concurrent lookups for the same role share a single backend fetch, and
``invalidate`` guarantees that a fetch started before it can never
repopulate the cache.
"""
import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional

import structlog

from navguard.core.exceptions import PrivilegeFetchError
from navguard.domain.schemas.privileges import ConsolidatedPrivilegeSet

from .slugs import SlugIndex

logger = structlog.get_logger(__name__)

PrivilegeFetcher = Callable[[int, Optional[str]], Awaitable[ConsolidatedPrivilegeSet]]


@dataclass(frozen=True)
class PrivilegeSnapshot:
    """A fetched privilege set together with its slug index."""
    role_id: int
    privileges: ConsolidatedPrivilegeSet
    index: SlugIndex = field(repr=False)
    fetched_at: float
    generation: int = 0

    @classmethod
    def build(
        cls,
        role_id: int,
        privileges: ConsolidatedPrivilegeSet,
        fetched_at: float,
        generation: int = 0,
    ) -> "PrivilegeSnapshot":
        return cls(
            role_id=role_id,
            privileges=privileges,
            index=SlugIndex.build(privileges),
            fetched_at=fetched_at,
            generation=generation,
        )

    def age(self, now: float) -> float:
        return now - self.fetched_at


class PrivilegeStore:
    """Cache of privilege snapshots keyed by role id."""

    def __init__(
        self,
        fetcher: PrivilegeFetcher,
        ttl_seconds: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[int, PrivilegeSnapshot] = {}
        self._inflight: Dict[int, "asyncio.Task[PrivilegeSnapshot]"] = {}
        self._generations: Dict[int, int] = {}

    async def get(self, role_id: int, access_token: Optional[str] = None) -> PrivilegeSnapshot:
        """
        Return the snapshot for ``role_id``, fetching it if missing or stale.

        ``access_token`` authenticates the fetch; concurrent callers joining an
        in-flight fetch reuse the token it was started with.

        Raises:
            PrivilegeFetchError: the fetch failed and nothing is cached
        """
        cached = self._entries.get(role_id)
        if cached is not None and not self.is_stale(cached):
            return cached

        try:
            return await self._fetch_shared(role_id, access_token)
        except PrivilegeFetchError as e:
            if cached is None:
                raise
            logger.warning(
                "privilege_refetch_failed_serving_stale",
                role_id=role_id,
                reason=e.reason,
                age_seconds=round(cached.age(self._clock()), 2),
            )
            return cached

    def peek(self, role_id: int) -> Optional[PrivilegeSnapshot]:
        """Cached snapshot regardless of staleness, without fetching."""
        return self._entries.get(role_id)

    def is_stale(self, snapshot: PrivilegeSnapshot) -> bool:
        return snapshot.age(self._clock()) >= self.ttl_seconds

    def invalidate(self, role_id: int) -> None:
        """
        Drop the cached snapshot for ``role_id``.

        Any fetch already in flight is detached: callers awaiting it still get
        its result, but it is not stored and the next ``get`` fetches anew.
        """
        self._generations[role_id] = self._generations.get(role_id, 0) + 1
        dropped = self._entries.pop(role_id, None)
        detached = self._inflight.pop(role_id, None)
        logger.info(
            "privilege_cache_invalidated",
            role_id=role_id,
            had_snapshot=dropped is not None,
            detached_fetch=detached is not None,
        )

    def clear(self) -> None:
        for role_id in set(self._entries) | set(self._inflight):
            self.invalidate(role_id)

    def generation(self, role_id: int) -> int:
        return self._generations.get(role_id, 0)

    async def _fetch_shared(self, role_id: int, access_token: Optional[str]) -> PrivilegeSnapshot:
        task = self._inflight.get(role_id)
        if task is None:
            task = asyncio.ensure_future(self._load(role_id, self.generation(role_id), access_token))
            self._inflight[role_id] = task
            task.add_done_callback(lambda done: self._forget(role_id, done))
        else:
            logger.debug("privilege_fetch_joined", role_id=role_id)
        # A cancelled caller must not cancel the fetch other callers share.
        return await asyncio.shield(task)

    def _forget(self, role_id: int, task: "asyncio.Task[PrivilegeSnapshot]") -> None:
        if self._inflight.get(role_id) is task:
            del self._inflight[role_id]
        if not task.cancelled():
            # Mark the exception retrieved when every waiter has gone away.
            task.exception()

    async def _load(self, role_id: int, generation: int, access_token: Optional[str]) -> PrivilegeSnapshot:
        started = self._clock()
        logger.info("privilege_fetch_started", role_id=role_id)
        try:
            privileges = await self._fetcher(role_id, access_token)
        except PrivilegeFetchError:
            raise
        except Exception as e:
            logger.error("privilege_fetch_failed", role_id=role_id, error=str(e))
            raise PrivilegeFetchError(role_id, str(e)) from e

        snapshot = PrivilegeSnapshot.build(role_id, privileges, self._clock(), generation)
        if self.generation(role_id) == generation:
            self._entries[role_id] = snapshot
        else:
            logger.info(
                "privilege_fetch_discarded",
                role_id=role_id,
                fetched_generation=generation,
                current_generation=self.generation(role_id),
            )

        logger.info(
            "privilege_fetch_completed",
            role_id=role_id,
            records=privileges.total,
            collisions=len(snapshot.index.collisions),
            duration_ms=round((self._clock() - started) * 1000, 2),
        )
        return snapshot
