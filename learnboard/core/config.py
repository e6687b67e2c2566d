"""
Runtime configuration
Read from environment variables once at startup, fails fast on missing vars
"""

import os
from typing import List


class Config:
    """Validated configuration - fails fast on missing vars"""

    def __init__(self):
        # Base
        self.APP_NAME = "LearnBoard API"
        self.APP_ENV = os.getenv("APP_ENV", "dev")
        self.APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.CORS_ORIGINS = self._parse_list(os.getenv("CORS_ORIGINS", "*"))

        # MongoDB
        self.MONGO_URL = self._require_env("MONGO_URL")
        self.MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "learnboard")
        self.MONGO_CONNECT_TIMEOUT_MS = int(os.getenv("MONGO_CONNECT_TIMEOUT_MS", "10000"))
        self.MONGO_SOCKET_TIMEOUT_MS = int(os.getenv("MONGO_SOCKET_TIMEOUT_MS", "45000"))
        self.MONGO_SERVER_SELECTION_TIMEOUT_MS = int(
            os.getenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", "10000")
        )
        self.MONGO_MAX_POOL_SIZE = int(os.getenv("MONGO_MAX_POOL_SIZE", "10"))
        self.MONGO_MIN_POOL_SIZE = int(os.getenv("MONGO_MIN_POOL_SIZE", "0"))
        self._check_pool_bounds(self.MONGO_MIN_POOL_SIZE, self.MONGO_MAX_POOL_SIZE)

        # Sessions
        self.JWT_SECRET_KEY = self._require_env("JWT_SECRET_KEY")
        self.JWT_ALGORITHM = "HS256"
        self.SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", str(30 * 24 * 60)))

        # Google OAuth (optional)
        self.GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
        self.GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
        self.GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "")

        # Dashboard ownership check (off keeps the email-in-body contract)
        self.DASHBOARD_REQUIRE_SESSION = self._parse_bool(
            os.getenv("DASHBOARD_REQUIRE_SESSION", "false")
        )

    @property
    def google_oauth_enabled(self) -> bool:
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET and self.GOOGLE_REDIRECT_URI)

    @staticmethod
    def _require_env(key: str) -> str:
        """Get required environment variable or crash"""
        value = os.getenv(key)
        if not value:
            raise RuntimeError(f"FATAL: Missing required environment variable: {key}")
        return value

    @staticmethod
    def _check_pool_bounds(min_size: int, max_size: int) -> None:
        """maxPoolSize 0 means unbounded"""
        if min_size < 0 or max_size < 0:
            raise RuntimeError("FATAL: MONGO_MIN_POOL_SIZE and MONGO_MAX_POOL_SIZE must not be negative")
        if max_size and min_size > max_size:
            raise RuntimeError("FATAL: MONGO_MIN_POOL_SIZE must not exceed MONGO_MAX_POOL_SIZE")

    @staticmethod
    def _parse_list(raw: str) -> List[str]:
        return [item.strip() for item in raw.split(",") if item.strip()]

    @staticmethod
    def _parse_bool(raw: str) -> bool:
        return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> Config:
    """
    Read and validate the environment
    Called once by create_app()

    Raises:
        RuntimeError: If a required variable is missing
    """
    return Config()
