from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse
from starlette.status import HTTP_201_CREATED

from learnboard.auth.auth_guard import get_current_session
from learnboard.auth.auth_schemas import LoginRequest, RegisterRequest, SessionResponse, session_response
from learnboard.auth.google_oauth import STATE_COOKIE, STATE_TTL_MINUTES, GoogleOAuth
from learnboard.auth.session_service import IdentityContext, IssuedSession, SessionIssuer
from learnboard.core.dependencies import get_google_oauth, get_identity_store, get_session_issuer
from learnboard.core.errors import AuthenticationFailed
from learnboard.users.user_store import IdentityStore

router = APIRouter(prefix="/auth", tags=["Auth"])

# ==================== CREDENTIALS ====================

@router.post("/login", response_model=SessionResponse)
async def login(data: LoginRequest, issuer: SessionIssuer = Depends(get_session_issuer)):
    """
    Email/password login

    - 400 if email or password is missing
    - 401 for any other failure, without saying which factor was wrong
    """
    session = await issuer.login(data.email, data.password)
    return session_response(session)


@router.post("/register", response_model=SessionResponse, status_code=HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    store: IdentityStore = Depends(get_identity_store),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    user = await store.create_user(
        email=data.email,
        password=data.password,
        name=data.name,
        standard=data.standard,
    )
    return session_response(issuer.issue(IdentityContext.from_user(user)))

# ==================== SESSION ====================

@router.get("/session", response_model=SessionResponse)
async def current_session(session: IssuedSession = Depends(get_current_session)):
    return session_response(session)


@router.post("/logout")
async def logout():
    # Sessions are stateless; the client drops its token
    return {"status": "success", "message": "Logged out"}

# ==================== GOOGLE ====================

@router.get("/google/login")
async def google_login(oauth: GoogleOAuth = Depends(get_google_oauth)):
    url, nonce = oauth.authorization_request()
    response = RedirectResponse(url=url)
    response.set_cookie(
        STATE_COOKIE,
        nonce,
        max_age=STATE_TTL_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=oauth.cookie_secure,
    )
    return response


@router.get("/google/callback", response_model=SessionResponse)
async def google_callback(
    request: Request,
    response: Response,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    oauth: GoogleOAuth = Depends(get_google_oauth),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    oauth.require_enabled()
    if error:
        raise AuthenticationFailed(f"Google sign-in was not completed: {error}")
    if not code or not state:
        raise AuthenticationFailed("Missing code or state")

    oauth.verify_state(state, request.cookies.get(STATE_COOKIE))
    response.delete_cookie(STATE_COOKIE)
    profile = await oauth.fetch_profile(code)
    return session_response(issuer.login_with_provider(profile))
