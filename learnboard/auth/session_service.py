"""
Session issuance: credential login, provider login and token rehydration
Sessions are stateless signed JWTs; nothing is stored server-side
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from pydantic import BaseModel, Field

from learnboard.core.errors import AuthenticationFailed, InvalidInput, QueryError, StoreConnectionError
from learnboard.users.user_models import User
from learnboard.users.user_store import IdentityStore

logger = logging.getLogger(__name__)

TOKEN_TYPE = "session"


class IdentityContext(BaseModel):
    """Identity carried by a session token"""
    id: str
    name: str = ""
    email: str
    standard: Optional[str] = None
    weak_topics: List[str] = Field(default_factory=list)
    provider: str = "credentials"

    @classmethod
    def from_user(cls, user: User) -> "IdentityContext":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            standard=user.standard,
            weak_topics=list(user.weak_topics),
        )


class ProviderProfile(BaseModel):
    """Profile returned by an external identity provider"""
    provider: str
    subject: str
    email: str
    name: str = ""


class IssuedSession(BaseModel):
    token: str
    expires_at: datetime
    identity: IdentityContext


class SessionIssuer:
    """Handle all session-related operations"""

    def __init__(
        self,
        store: IdentityStore,
        secret: str,
        algorithm: str = "HS256",
        ttl_minutes: int = 30 * 24 * 60,
    ):
        self.store = store
        self.jwt_secret = secret
        self.jwt_algorithm = algorithm
        self.ttl_minutes = ttl_minutes

    async def login(self, email: Optional[str], password: Optional[str]) -> IssuedSession:
        """
        Verify credentials and mint a session.

        The failure detail is the same whether the email or the password was
        wrong.

        Raises:
            InvalidInput: email or password missing (no database access)
            AuthenticationFailed: unknown user, wrong password or lookup failure
        """
        if not email or not password:
            raise InvalidInput("Missing email or password")

        try:
            user = await self.store.find_by_email(email)
        except (QueryError, StoreConnectionError) as exc:
            logger.error("Auth error: user lookup failed: %s", exc.detail)
            raise AuthenticationFailed() from exc

        if user is None or not self.store.verify_password(password, user.password_hash):
            logger.warning("Login rejected")
            raise AuthenticationFailed()

        logger.info("Login succeeded for user %s", user.id)
        return self.issue(IdentityContext.from_user(user))

    def login_with_provider(self, profile: ProviderProfile) -> IssuedSession:
        """Provider already proved the credentials; build the session from its profile"""
        identity = IdentityContext(
            id=f"{profile.provider}:{profile.subject}",
            name=profile.name,
            email=profile.email,
            provider=profile.provider,
        )
        logger.info("Login succeeded via %s", profile.provider)
        return self.issue(identity)

    def issue(self, identity: IdentityContext) -> IssuedSession:
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(minutes=self.ttl_minutes)

        payload = {
            "sub": identity.id,
            "name": identity.name,
            "email": identity.email,
            "standard": identity.standard,
            "weaktopics": identity.weak_topics,
            "provider": identity.provider,
            "type": TOKEN_TYPE,
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)
        return IssuedSession(token=token, expires_at=expires_at, identity=identity)

    def rehydrate(self, token: str) -> IssuedSession:
        """
        Verify a session token and re-sign it with a fresh expiry

        Raises:
            AuthenticationFailed: bad signature, expired or not a session token
        """
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed("Session expired")
        except jwt.InvalidTokenError:
            raise AuthenticationFailed("Invalid session token")

        if payload.get("type") != TOKEN_TYPE or not payload.get("sub") or not payload.get("email"):
            raise AuthenticationFailed("Invalid session token")

        identity = IdentityContext(
            id=payload["sub"],
            name=payload.get("name") or "",
            email=payload["email"],
            standard=payload.get("standard"),
            weak_topics=payload.get("weaktopics") or [],
            provider=payload.get("provider") or "credentials",
        )
        return self.issue(identity)
