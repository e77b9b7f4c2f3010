"""
Privilege endpoints: direct access by id, privilege updates and cache
invalidation.
"""
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from navguard.core.dependencies import Services, get_gateway, get_services, get_session_id
from navguard.core.errors import ErrorResponse
from navguard.domain.schemas.navigation import DirectAccessResponse, InvalidationResponse
from navguard.domain.schemas.privileges import (
    FunctionalityPrivilege,
    FunctionalityPrivilegeUpdate,
    ModulePrivilege,
    ModulePrivilegeUpdate,
    SubmodulePrivilege,
    SubmodulePrivilegeUpdate,
)
from navguard.services.navigation import DirectAccessDecision, NavigationGateway

router = APIRouter()


def _direct_access_response(decision: DirectAccessDecision, path: str) -> Any:
    if not decision.granted:
        error = ErrorResponse.access_denied(
            path,
            reason=decision.reason.value if decision.reason else None,
        )
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=error.to_dict())

    return DirectAccessResponse(
        level=decision.level,
        target_id=decision.target_id,
        role_id=decision.role_id,
        capabilities=decision.privilege.capabilities(),
        page_schema=decision.page_schema.model_dump(mode="json") if decision.page_schema else {},
    )


@router.get("/submodules/{submodule_id}/access", response_model=DirectAccessResponse)
async def submodule_access(
    submodule_id: int,
    session_id: str = Depends(get_session_id),
    gateway: NavigationGateway = Depends(get_gateway),
) -> Any:
    """Access check for a submodule page addressed by id."""
    decision = await gateway.submodule_access(session_id, submodule_id)
    return _direct_access_response(decision, f"/manage/{submodule_id}")


@router.get("/functionalities/{functionality_id}/access", response_model=DirectAccessResponse)
async def functionality_access(
    functionality_id: int,
    session_id: str = Depends(get_session_id),
    gateway: NavigationGateway = Depends(get_gateway),
) -> Any:
    """Access check for a functionality page addressed by id."""
    decision = await gateway.functionality_access(session_id, functionality_id)
    return _direct_access_response(decision, f"/manage/functionality/{functionality_id}")


@router.post("/modules", response_model=ModulePrivilege)
async def set_module_privilege(
    update: ModulePrivilegeUpdate,
    session_id: str = Depends(get_session_id),
    services: Services = Depends(get_services),
) -> ModulePrivilege:
    """Set a module privilege; the role's cached privileges are dropped."""
    session = await services.token_guard.ensure_valid(session_id)
    return await services.mutations.set_module_privilege(update, session.access_token)


@router.post("/submodules", response_model=SubmodulePrivilege)
async def set_submodule_privilege(
    update: SubmodulePrivilegeUpdate,
    session_id: str = Depends(get_session_id),
    services: Services = Depends(get_services),
) -> SubmodulePrivilege:
    session = await services.token_guard.ensure_valid(session_id)
    return await services.mutations.set_submodule_privilege(update, session.access_token)


@router.post("/functionalities", response_model=FunctionalityPrivilege)
async def set_functionality_privilege(
    update: FunctionalityPrivilegeUpdate,
    session_id: str = Depends(get_session_id),
    services: Services = Depends(get_services),
) -> FunctionalityPrivilege:
    session = await services.token_guard.ensure_valid(session_id)
    return await services.mutations.set_functionality_privilege(update, session.access_token)


@router.post("/roles/{role_id}/invalidate", response_model=InvalidationResponse)
async def invalidate_role(
    role_id: int,
    session_id: str = Depends(get_session_id),
    services: Services = Depends(get_services),
) -> InvalidationResponse:
    """Drop the cached privileges of a role; the next lookup refetches."""
    await services.token_guard.ensure_valid(session_id)
    services.mutations.invalidate_role(role_id)
    return InvalidationResponse(role_id=role_id)
