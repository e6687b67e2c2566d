# learnboard/auth/auth_guard.py

from typing import Optional

from fastapi import Depends, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from learnboard.auth.session_service import IdentityContext, IssuedSession, SessionIssuer
from learnboard.core.dependencies import get_session_issuer
from learnboard.core.errors import AuthenticationFailed

SESSION_HEADER = "X-Session-Token"

bearer = HTTPBearer(auto_error=False)


def get_current_session(
    response: Response,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> IssuedSession:
    """
    Verify the bearer token and hand back a refreshed session.
    The refreshed token is also sent in the X-Session-Token header.
    """
    if not creds:
        raise AuthenticationFailed("Missing session token")

    session = issuer.rehydrate(creds.credentials)
    response.headers[SESSION_HEADER] = session.token
    return session


def get_current_identity(session: IssuedSession = Depends(get_current_session)) -> IdentityContext:
    return session.identity


def get_optional_session(
    response: Response,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> Optional[IssuedSession]:
    """Like get_current_session, but a missing or invalid token yields None"""
    if not creds:
        return None
    try:
        session = issuer.rehydrate(creds.credentials)
    except AuthenticationFailed:
        return None
    response.headers[SESSION_HEADER] = session.token
    return session
