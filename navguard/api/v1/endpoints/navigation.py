"""
Navigation endpoints.
"""
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from navguard.core.dependencies import get_gateway, get_session_id
from navguard.core.errors import ErrorResponse
from navguard.domain.schemas.navigation import NavigationResult
from navguard.services.navigation import NavigationGateway
from navguard.services.privileges.navigation import NavigationTree

router = APIRouter()


@router.get(
    "/navigate/{path:path}",
    response_model=NavigationResult,
    responses={403: {"description": "Access denied"}, 404: {"description": "Page not configured"}},
)
async def navigate(
    path: str,
    session_id: str = Depends(get_session_id),
    gateway: NavigationGateway = Depends(get_gateway),
) -> Any:
    """
    Authorize a 1-3 segment navigation path for the session's active role.

    - 200: the page may be rendered; carries the component and capabilities
    - 403: denied (no record, view not permitted, or malformed path)
    - 404: permitted but no page component is configured
    """
    segments = path.strip("/").split("/")
    decision = await gateway.navigate(session_id, segments)

    if decision.denied:
        error = ErrorResponse.access_denied(
            "/" + path.strip("/"),
            reason=decision.reason.value if decision.reason else None,
        )
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=error.to_dict())

    if decision.not_found:
        error = ErrorResponse.component_not_registered("/" + decision.component_key)
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=error.to_dict())

    return NavigationResult(
        path="/" + decision.component_key,
        level=decision.level,
        component=decision.component,
        name=decision.record.display_name,
        record_id=decision.record.id,
        capabilities=decision.record.capabilities(),
    )


@router.get("/navigation/tree", response_model=NavigationTree)
async def navigation_tree(
    session_id: str = Depends(get_session_id),
    gateway: NavigationGateway = Depends(get_gateway),
) -> NavigationTree:
    """Menu of viewable modules and submodules for the active role."""
    return await gateway.navigation_tree(session_id)
