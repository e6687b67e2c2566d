from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from learnboard.auth.session_service import IssuedSession

# ==================== REQUEST SCHEMAS ====================

class LoginRequest(BaseModel):
    """
    Credential login. Both fields are checked by the session issuer so a
    missing one is reported before any database access.
    """
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=100)
    standard: Optional[str] = Field(default=None, max_length=50)

# ==================== RESPONSE SCHEMAS ====================

class SessionUser(BaseModel):
    id: str
    name: str
    email: str
    standard: Optional[str] = None
    weakTopics: List[str] = []
    provider: str


class SessionResponse(BaseModel):
    status: str = "success"
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: SessionUser


def session_response(session: IssuedSession) -> SessionResponse:
    identity = session.identity
    return SessionResponse(
        access_token=session.token,
        expires_at=session.expires_at,
        user=SessionUser(
            id=identity.id,
            name=identity.name,
            email=identity.email,
            standard=identity.standard,
            weakTopics=identity.weak_topics,
            provider=identity.provider,
        ),
    )
