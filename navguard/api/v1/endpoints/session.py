"""
Session endpoints: login / role switch, logout and the role landing path.
"""
import structlog
from fastapi import APIRouter, Depends, Response, status

from navguard.core.dependencies import Services, get_services, get_session_id
from navguard.domain.schemas.auth import SessionCreate
from navguard.domain.schemas.navigation import LandingPathResponse, SessionResponse
from navguard.services.auth.session import SessionRoleResolver

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.put("", response_model=SessionResponse)
async def open_session(
    payload: SessionCreate,
    session_id: str = Depends(get_session_id),
    services: Services = Depends(get_services),
) -> SessionResponse:
    """
    Persist credentials and the active role for a session.

    Called at login and on every role switch. The previous role's privilege
    snapshot stays cached; it is keyed by role, not by session.
    """
    previous = await services.sessions.load(session_id)
    state = payload.to_state()
    await services.sessions.save(session_id, state)

    logger.info(
        "session_opened",
        session_id=session_id,
        role_id=state.role_id,
        role_switched=previous is not None and previous.role_id != state.role_id,
    )
    return SessionResponse(
        role_id=state.role_id,
        role_name=state.role_name,
        landing_path=SessionRoleResolver.landing_path(state.role_name),
        token_state=services.token_guard.inspect(state.access_token),
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str = Depends(get_session_id),
    services: Services = Depends(get_services),
) -> Response:
    """Logout. Cached privileges are left for other sessions of the role."""
    existed = await services.sessions.delete(session_id)
    services.token_guard.forget(session_id)
    logger.info("session_closed", session_id=session_id, existed=existed)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/landing", response_model=LandingPathResponse)
async def landing_path(
    session_id: str = Depends(get_session_id),
    services: Services = Depends(get_services),
) -> LandingPathResponse:
    context = await services.resolver.resolve(session_id)
    return LandingPathResponse(
        role_id=context.role_id,
        role_name=context.role_name,
        landing_path=SessionRoleResolver.landing_path(context.role_name),
    )
