import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnboard.auth.auth_router import router as auth_router
from learnboard.chat.chat_router import router as chat_router
from learnboard.core.config import Config, load_config
from learnboard.core.errors import AppError, register_error_handlers
from learnboard.core.logging import setup_logging
from learnboard.dashboard.dashboard_router import router as dashboard_router
from learnboard.db.connection import ConnectionManager
from learnboard.system.health_router import router as health_router

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[Config] = None,
    connection_manager: Optional[ConnectionManager] = None,
) -> FastAPI:
    # Refuses to start without MONGO_URL / JWT_SECRET_KEY
    config = config or load_config()
    setup_logging(config.LOG_LEVEL)

    app = FastAPI(title=config.APP_NAME, version=config.APP_VERSION)
    app.state.config = config
    app.state.connection_manager = connection_manager or ConnectionManager(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Session-Token"],
    )

    register_error_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        try:
            await app.state.connection_manager.initialize()
        except AppError as exc:
            # Requests will retry the connection on their own
            logger.error("Database initialization failed at startup: %s", exc.detail)

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.connection_manager.close()

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(dashboard_router)
    app.include_router(chat_router)
    # ============================================================

    return app
