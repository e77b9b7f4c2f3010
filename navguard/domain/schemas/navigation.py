"""
API response schemas for sessions, navigation and direct access.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .auth import TokenState
from .privileges import HierarchyLevel


class SessionResponse(BaseModel):
    """Session as seen by the client after login or role switch."""
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    landing_path: str
    token_state: TokenState


class LandingPathResponse(BaseModel):
    role_id: int
    role_name: Optional[str] = None
    landing_path: str


class NavigationResult(BaseModel):
    """A granted navigation path."""
    path: str
    level: HierarchyLevel
    component: str
    name: str
    record_id: Optional[int] = None
    capabilities: Dict[str, bool] = Field(default_factory=dict)


class DirectAccessResponse(BaseModel):
    """A granted submodule or functionality addressed by id."""
    level: HierarchyLevel
    target_id: int
    role_id: int
    capabilities: Dict[str, bool] = Field(default_factory=dict)
    page_schema: Dict[str, Any] = Field(default_factory=dict)


class InvalidationResponse(BaseModel):
    role_id: int
    invalidated: bool = True
