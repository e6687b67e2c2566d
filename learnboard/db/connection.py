"""
MongoDB connection lifecycle
One lazily created, memoized client per process
"""

import asyncio
import logging
import re
from typing import Any, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import NetworkTimeout, OperationFailure, PyMongoError

from learnboard.core.config import Config
from learnboard.core.errors import QueryError, StoreConnectionError

logger = logging.getLogger(__name__)

# MongoDB server error codes for bad credentials
_AUTH_ERROR_CODES = {18, 8000}


def redact_url(url: str) -> str:
    """Hide the password part of a mongodb:// URL before logging it"""
    return re.sub(r"//([^:/@]+):[^@/]*@", r"//\1:***@", url)


def classify_connect_error(exc: BaseException) -> str:
    """
    Map a connect failure to one of: refused, auth_failed, timeout, unknown
    """
    message = str(exc).lower()

    if isinstance(exc, OperationFailure) and exc.code in _AUTH_ERROR_CODES:
        return "auth_failed"
    if "authentication failed" in message or "bad auth" in message:
        return "auth_failed"
    if "refused" in message:
        return "refused"
    if isinstance(exc, (NetworkTimeout, asyncio.TimeoutError)):
        return "timeout"
    if "timed out" in message or "timeout" in message:
        return "timeout"
    return "unknown"


def _log_connect_failure(reason: str, url: str, exc: BaseException) -> None:
    if reason == "refused":
        logger.error("MongoDB connection refused. Make sure MongoDB is running at: %s", url)
    elif reason == "auth_failed":
        logger.error("MongoDB authentication failed. Check the username and password in MONGO_URL.")
    elif reason == "timeout":
        logger.error("MongoDB connection timed out. Check your network or firewall settings.")
    else:
        logger.error("Failed to connect to MongoDB: %s", exc)


class ConnectionManager:
    """
    Hands out the shared database handle.

    The first caller starts the connect attempt; concurrent callers await the
    same attempt and see the same result. A failed attempt is forgotten so the
    next request may try again. Nothing is retried automatically.
    """

    def __init__(self, config: Config, client_factory: Callable[..., Any] = AsyncIOMotorClient):
        self.config = config
        self._client_factory = client_factory
        self._client = None
        self._database: Optional[AsyncIOMotorDatabase] = None
        self._pending: Optional[asyncio.Future] = None
        self._initialized = False
        self.connect_attempts = 0

    @property
    def is_connected(self) -> bool:
        return self._database is not None

    async def get_connection(self) -> AsyncIOMotorDatabase:
        if self._database is not None:
            return self._database

        # No await between the check and the assignment: one attempt in flight
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._connect())

        return await asyncio.shield(self._pending)

    async def _connect(self) -> AsyncIOMotorDatabase:
        self.connect_attempts += 1
        url = redact_url(self.config.MONGO_URL)
        logger.info("Attempting to connect to MongoDB at %s", url)

        client = None
        try:
            client = self._client_factory(
                self.config.MONGO_URL,
                connectTimeoutMS=self.config.MONGO_CONNECT_TIMEOUT_MS,
                socketTimeoutMS=self.config.MONGO_SOCKET_TIMEOUT_MS,
                serverSelectionTimeoutMS=self.config.MONGO_SERVER_SELECTION_TIMEOUT_MS,
                maxPoolSize=self.config.MONGO_MAX_POOL_SIZE,
                minPoolSize=self.config.MONGO_MIN_POOL_SIZE,
            )
            await client.admin.command("ping")
            database = client.get_default_database(default=self.config.MONGO_DB_NAME)
        except (PyMongoError, OSError, ValueError, TypeError, asyncio.TimeoutError) as exc:
            # ValueError and TypeError: pymongo rejecting a client option
            if client is not None:
                client.close()
            reason = classify_connect_error(exc)
            _log_connect_failure(reason, url, exc)
            raise StoreConnectionError(f"Database connection failed: {exc}", reason=reason) from exc
        finally:
            # A settled attempt, failed or not, is never awaited again
            self._pending = None

        self._client = client
        self._database = database
        logger.info("Successfully connected to MongoDB (database=%s)", database.name)
        return database

    async def initialize(self) -> bool:
        """
        Ping the server and make sure the users collection is indexed.
        Succeeds once per process; a failure is not remembered.
        """
        if self._initialized:
            return True

        database = await self.get_connection()
        logger.info("Initializing MongoDB collections...")
        try:
            await database.users.create_index("email", unique=True)
        except PyMongoError as exc:
            logger.error("Failed to initialize MongoDB collections: %s", exc)
            raise QueryError(f"Database initialization failed: {exc}") from exc

        self._initialized = True
        logger.info("MongoDB collections initialized successfully")
        return True

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._database = None
        self._pending = None
        self._initialized = False
