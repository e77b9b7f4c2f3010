"""
Privilege backend endpoints.

Fetches the consolidated privilege set of a role (merging every page of the
three paginated collections), the combined schemas used for direct access by
id, and sets privilege records.
"""
import asyncio
from typing import Any, Dict, List, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from navguard.core.config import Settings
from navguard.core.exceptions import BackendError, PrivilegeFetchError, PrivilegeUpdateError
from navguard.domain.schemas.privileges import (
    ConsolidatedPrivilegeSet,
    DirectAccessSchema,
    FunctionalityPrivilege,
    FunctionalityPrivilegeUpdate,
    HierarchyLevel,
    ModulePrivilege,
    ModulePrivilegeUpdate,
    RolePrivilegesPage,
    SubmodulePrivilege,
    SubmodulePrivilegeUpdate,
)
from navguard.infrastructure.backend.client import BackendClient

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def unwrap_data(body: Any) -> Any:
    """The backend nests payloads under a ``data`` key."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class PrivilegeBackend:
    """Typed access to the privilege endpoints of the backend."""

    def __init__(self, client: BackendClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def fetch_role_privileges(
        self,
        role_id: int,
        access_token: Optional[str] = None,
    ) -> ConsolidatedPrivilegeSet:
        """
        Fetch every page of a role's privileges and merge them.

        Page 1 tells how many pages the largest collection has; the remaining
        pages are fetched concurrently.

        Raises:
            PrivilegeFetchError: backend failure or malformed payload
        """
        path = self.settings.ROLE_PRIVILEGES_PATH.format(role_id=role_id)
        first = await self._fetch_page(role_id, path, 1, access_token)
        if first is None:
            logger.info("role_privileges_empty", role_id=role_id)
            return ConsolidatedPrivilegeSet()

        pages: List[RolePrivilegesPage] = [first]
        total_pages = first.max_total_pages
        if total_pages > 1:
            rest = await asyncio.gather(
                *(self._fetch_page(role_id, path, page, access_token) for page in range(2, total_pages + 1))
            )
            for number, page in enumerate(rest, start=2):
                # A missing page would leave a partial set cached as complete.
                if page is None:
                    logger.error("role_privileges_page_empty", role_id=role_id, page=number)
                    raise PrivilegeFetchError(role_id, f"empty privilege page {number}")
                pages.append(page)

        privileges = ConsolidatedPrivilegeSet.merge(pages)
        logger.info(
            "role_privileges_fetched",
            role_id=role_id,
            pages=total_pages,
            modules=len(privileges.modules),
            submodules=len(privileges.submodules),
            functionalities=len(privileges.functionalities),
        )
        return privileges

    async def _fetch_page(
        self,
        role_id: int,
        path: str,
        page: int,
        access_token: Optional[str],
    ) -> Optional[RolePrivilegesPage]:
        try:
            body = await self.client.get(path, params={"page": page}, access_token=access_token)
        except BackendError as e:
            raise PrivilegeFetchError(role_id, e.message) from e

        data = unwrap_data(body)
        if not data:
            return None
        try:
            return RolePrivilegesPage.model_validate(data)
        except ValidationError as e:
            logger.error("role_privileges_malformed", role_id=role_id, page=page, error=str(e))
            raise PrivilegeFetchError(role_id, f"malformed privilege page {page}") from e

    async def fetch_submodule_schema(
        self,
        submodule_id: int,
        access_token: Optional[str] = None,
    ) -> Optional[DirectAccessSchema]:
        return await self._fetch_schema(
            self.settings.SUBMODULE_SCHEMA_PATH,
            {"submodule_id": submodule_id},
            access_token,
        )

    async def fetch_functionality_schema(
        self,
        functionality_id: int,
        access_token: Optional[str] = None,
    ) -> Optional[DirectAccessSchema]:
        return await self._fetch_schema(
            self.settings.FUNCTIONALITY_SCHEMA_PATH,
            {"functionality_id": functionality_id},
            access_token,
        )

    async def _fetch_schema(
        self,
        path: str,
        params: Dict[str, Any],
        access_token: Optional[str],
    ) -> Optional[DirectAccessSchema]:
        try:
            body = await self.client.get(path, params=params, access_token=access_token)
        except BackendError as e:
            # Unknown or hidden ids read as "no record", not as an outage.
            if e.status in (403, 404):
                logger.info("combined_schema_unavailable", path=path, status=e.status, **params)
                return None
            raise
        data = unwrap_data(body)
        if not data:
            return None
        try:
            return DirectAccessSchema.model_validate(data)
        except ValidationError as e:
            raise BackendError(f"malformed schema from {path}: {e}", path=path) from e

    async def set_module_privilege(
        self,
        update: ModulePrivilegeUpdate,
        access_token: Optional[str] = None,
    ) -> ModulePrivilege:
        return await self._set_privilege(
            HierarchyLevel.MODULE,
            self.settings.SET_MODULE_PRIVILEGE_PATH,
            update,
            ModulePrivilege,
            access_token,
        )

    async def set_submodule_privilege(
        self,
        update: SubmodulePrivilegeUpdate,
        access_token: Optional[str] = None,
    ) -> SubmodulePrivilege:
        return await self._set_privilege(
            HierarchyLevel.SUBMODULE,
            self.settings.SET_SUBMODULE_PRIVILEGE_PATH,
            update,
            SubmodulePrivilege,
            access_token,
        )

    async def set_functionality_privilege(
        self,
        update: FunctionalityPrivilegeUpdate,
        access_token: Optional[str] = None,
    ) -> FunctionalityPrivilege:
        return await self._set_privilege(
            HierarchyLevel.FUNCTIONALITY,
            self.settings.SET_FUNCTIONALITY_PRIVILEGE_PATH,
            update,
            FunctionalityPrivilege,
            access_token,
        )

    async def _set_privilege(
        self,
        level: HierarchyLevel,
        path: str,
        update: BaseModel,
        record_type: Type[RecordT],
        access_token: Optional[str],
    ) -> RecordT:
        try:
            body = await self.client.post(path, update.model_dump(), access_token=access_token)
        except BackendError as e:
            status_code = e.status if e.is_client_error else 502
            raise PrivilegeUpdateError(level.value, e.message, status_code=status_code) from e

        data = unwrap_data(body) or {}
        try:
            return record_type.model_validate({**update.model_dump(), **data})
        except ValidationError as e:
            raise PrivilegeUpdateError(level.value, f"malformed response: {e}") from e

