from fastapi import Depends, Request

from learnboard.auth.google_oauth import GoogleOAuth
from learnboard.auth.session_service import SessionIssuer
from learnboard.chat.chat_service import ChatService
from learnboard.core.config import Config
from learnboard.dashboard.dashboard_service import DashboardService
from learnboard.db.connection import ConnectionManager
from learnboard.users.user_store import IdentityStore

# ==================== DEPENDENCY FUNCTIONS ====================
# None of these touch the database; the connection is opened lazily by the
# first store call inside a handler.


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager


def get_identity_store(connections: ConnectionManager = Depends(get_connection_manager)) -> IdentityStore:
    return IdentityStore(connections)


def get_session_issuer(
    store: IdentityStore = Depends(get_identity_store),
    config: Config = Depends(get_config),
) -> SessionIssuer:
    return SessionIssuer(
        store,
        secret=config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
        ttl_minutes=config.SESSION_TTL_MINUTES,
    )


def get_google_oauth(config: Config = Depends(get_config)) -> GoogleOAuth:
    return GoogleOAuth(config)


def get_dashboard_service(store: IdentityStore = Depends(get_identity_store)) -> DashboardService:
    return DashboardService(store)


def get_chat_service(store: IdentityStore = Depends(get_identity_store)) -> ChatService:
    return ChatService(store)
