"""
API v1 router configuration.
"""
from fastapi import APIRouter

from navguard.api.v1.endpoints import health, navigation, privileges, session

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(session.router, prefix="/session", tags=["session"])
api_router.include_router(navigation.router, tags=["navigation"])
api_router.include_router(privileges.router, prefix="/privileges", tags=["privileges"])
