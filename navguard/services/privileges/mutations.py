"""
Privilege mutations.

Every successful write invalidates the cached snapshot of the affected role
before control returns to the event loop, so no lookup can observe the
pre-mutation privileges afterwards.
"""
from typing import Optional

import structlog

from navguard.domain.schemas.privileges import (
    FunctionalityPrivilege,
    FunctionalityPrivilegeUpdate,
    ModulePrivilege,
    ModulePrivilegeUpdate,
    SubmodulePrivilege,
    SubmodulePrivilegeUpdate,
)

from .backend import PrivilegeBackend
from .store import PrivilegeStore

logger = structlog.get_logger(__name__)


class PrivilegeMutationService:
    """Sets privilege records and keeps the role cache coherent."""

    def __init__(self, backend: PrivilegeBackend, store: PrivilegeStore):
        self.backend = backend
        self.store = store

    async def set_module_privilege(
        self,
        update: ModulePrivilegeUpdate,
        access_token: Optional[str] = None,
    ) -> ModulePrivilege:
        record = await self.backend.set_module_privilege(update, access_token)
        self._invalidate(update.role, "module", update.module)
        return record

    async def set_submodule_privilege(
        self,
        update: SubmodulePrivilegeUpdate,
        access_token: Optional[str] = None,
    ) -> SubmodulePrivilege:
        record = await self.backend.set_submodule_privilege(update, access_token)
        self._invalidate(update.role, "submodule", update.submodule)
        return record

    async def set_functionality_privilege(
        self,
        update: FunctionalityPrivilegeUpdate,
        access_token: Optional[str] = None,
    ) -> FunctionalityPrivilege:
        record = await self.backend.set_functionality_privilege(update, access_token)
        self._invalidate(update.role, "functionality", update.functionality)
        return record

    def invalidate_role(self, role_id: int) -> None:
        """Manual invalidation, e.g. after privileges changed elsewhere."""
        self.store.invalidate(role_id)

    def _invalidate(self, role_id: int, level: str, target_id: int) -> None:
        # Must stay synchronous: no await between the write and this call.
        self.store.invalidate(role_id)
        logger.info("privilege_updated", role_id=role_id, level=level, target_id=target_id)
