"""
Session and credential schemas.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenState(str, Enum):
    """Access credential states tracked per session."""
    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRED = "expired"
    REFRESHING = "refreshing"
    REFRESH_FAILED = "refresh_failed"


class TokenPair(BaseModel):
    """Access and refresh token pair."""
    access_token: str
    refresh_token: Optional[str] = None


class SessionState(BaseModel):
    """Persisted session: credentials plus the active role."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    is_active: Optional[bool] = None

    def with_tokens(self, tokens: TokenPair) -> "SessionState":
        """Copy carrying the refreshed tokens; the role is kept."""
        return self.model_copy(
            update={
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token or self.refresh_token,
            }
        )


class RoleContext(BaseModel):
    """Active role for one session, the key of every privilege cache entry."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    role_id: int
    role_name: Optional[str] = None


class SessionCreate(BaseModel):
    """Payload persisted at login or role switch."""
    access: str = Field(..., min_length=1)
    refresh: Optional[str] = None
    role: int
    role_name: Optional[str] = None
    is_active: Optional[bool] = None

    def to_state(self) -> SessionState:
        return SessionState(
            access_token=self.access,
            refresh_token=self.refresh,
            role_id=self.role,
            role_name=self.role_name,
            is_active=self.is_active,
        )
