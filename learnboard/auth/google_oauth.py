# learnboard/auth/google_oauth.py

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Tuple
from urllib.parse import urlencode

import httpx
import jwt

from learnboard.auth.session_service import ProviderProfile
from learnboard.core.config import Config
from learnboard.core.errors import AuthenticationFailed, ServiceUnavailable

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

STATE_TTL_MINUTES = 10
STATE_TOKEN_TYPE = "oauth_state"
STATE_COOKIE = "learnboard_oauth_nonce"


class GoogleOAuth:
    """
    Google sign-in (authorization code flow).
    The `state` parameter is a short-lived signed token carrying a nonce.
    The same nonce goes to the browser in a cookie, and the callback only
    accepts a state whose nonce matches that cookie. No server-side storage
    is needed between the redirect and the callback.
    """

    def __init__(self, config: Config, client_factory: Callable[..., Any] = httpx.AsyncClient):
        self.config = config
        self._client_factory = client_factory

    def require_enabled(self) -> None:
        if not self.config.google_oauth_enabled:
            raise ServiceUnavailable(
                "Google login is not configured. Set GOOGLE_CLIENT_ID, "
                "GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI."
            )

    def authorization_request(self) -> Tuple[str, str]:
        """Returns (redirect URL, nonce for the browser cookie)"""
        self.require_enabled()
        nonce = secrets.token_urlsafe(16)
        params = {
            "client_id": self.config.GOOGLE_CLIENT_ID,
            "redirect_uri": self.config.GOOGLE_REDIRECT_URI,
            "response_type": "code",
            "scope": "openid email profile",
            "prompt": "select_account",
            "state": self._sign_state(nonce),
        }
        return f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}", nonce

    @property
    def cookie_secure(self) -> bool:
        return self.config.GOOGLE_REDIRECT_URI.startswith("https://")

    def _sign_state(self, nonce: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "nonce": nonce,
            "type": STATE_TOKEN_TYPE,
            "iat": now,
            "exp": now + timedelta(minutes=STATE_TTL_MINUTES),
        }
        return jwt.encode(payload, self.config.JWT_SECRET_KEY, algorithm=self.config.JWT_ALGORITHM)

    def verify_state(self, state: str, cookie_nonce: Optional[str]) -> None:
        try:
            payload = jwt.decode(state, self.config.JWT_SECRET_KEY, algorithms=[self.config.JWT_ALGORITHM])
        except jwt.InvalidTokenError:
            raise AuthenticationFailed("Invalid or expired OAuth state")
        if payload.get("type") != STATE_TOKEN_TYPE:
            raise AuthenticationFailed("Invalid or expired OAuth state")

        nonce = payload.get("nonce")
        if not cookie_nonce or not isinstance(nonce, str):
            raise AuthenticationFailed("Invalid or expired OAuth state")
        if not secrets.compare_digest(nonce.encode(), cookie_nonce.encode()):
            logger.warning("OAuth state does not belong to this browser")
            raise AuthenticationFailed("Invalid or expired OAuth state")

    async def fetch_profile(self, code: str) -> ProviderProfile:
        """Exchange the authorization code and read the user's profile"""
        self.require_enabled()
        try:
            async with self._client_factory(timeout=10) as client:
                token_response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.config.GOOGLE_CLIENT_ID,
                        "client_secret": self.config.GOOGLE_CLIENT_SECRET,
                        "redirect_uri": self.config.GOOGLE_REDIRECT_URI,
                        "grant_type": "authorization_code",
                    },
                )
                if token_response.status_code != 200:
                    logger.warning("Google token exchange failed: %s", token_response.text)
                    raise AuthenticationFailed("Google token exchange failed")

                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise AuthenticationFailed("Google token exchange failed")

                info_response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                if info_response.status_code != 200:
                    logger.warning("Google userinfo failed: %s", info_response.text)
                    raise AuthenticationFailed("Google userinfo request failed")
                info = info_response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Google sign-in request failed: %s", exc)
            raise AuthenticationFailed("Google sign-in failed") from exc

        email = info.get("email")
        if not email or not info.get("sub"):
            raise AuthenticationFailed("Google profile has no email")
        if info.get("email_verified") is False:
            raise AuthenticationFailed("Google email is not verified")

        return ProviderProfile(
            provider="google",
            subject=str(info["sub"]),
            email=email,
            name=info.get("name") or "",
        )
