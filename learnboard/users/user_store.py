"""
Identity store: user lookups and password checks on the users collection
"""

import logging
from datetime import datetime
from typing import List, Optional

from pymongo.errors import DuplicateKeyError, PyMongoError
from werkzeug.security import check_password_hash, generate_password_hash

from learnboard.core.errors import Conflict, NotFound, QueryError
from learnboard.db.connection import ConnectionManager
from learnboard.users.user_models import Score, User

logger = logging.getLogger(__name__)

MAX_SLOT_ATTEMPTS = 3


def hash_password(password: str) -> str:
    """Salted one-way hash"""
    return generate_password_hash(password)


class IdentityStore:
    def __init__(self, connections: ConnectionManager):
        self.connections = connections

    async def _users(self):
        database = await self.connections.get_connection()
        return database.users

    async def find_by_email(self, email: str) -> Optional[User]:
        """
        Returns None when no user has this email.

        Raises:
            StoreConnectionError: database unreachable
            QueryError: the lookup itself failed
        """
        users = await self._users()
        try:
            doc = await users.find_one({"email": email})
        except PyMongoError as exc:
            logger.error("MongoDB query error (users.find_one): %s", exc)
            raise QueryError(f"Database query failed: {exc}") from exc

        logger.debug("User query result: %s", "User found" if doc else "User not found")
        if doc is None:
            return None
        return User.from_document(doc)

    @staticmethod
    def verify_password(password: str, password_hash: Optional[str]) -> bool:
        if not password_hash:
            return False
        try:
            return check_password_hash(password_hash, password)
        except ValueError:
            # Hash produced by an unsupported method
            logger.warning("Stored password hash has an unsupported format")
            return False

    async def create_user(
        self,
        email: str,
        password: str,
        name: str,
        standard: Optional[str] = None,
    ) -> User:
        users = await self._users()
        doc = {
            "email": email,
            "name": name,
            "password": hash_password(password),
            "standard": standard,
            "weaktopics": [],
            "result": [],
            "created_at": datetime.utcnow(),
        }
        try:
            if await users.find_one({"email": email}) is not None:
                raise Conflict("Email already registered")
            result = await users.insert_one(doc)
        except DuplicateKeyError as exc:
            raise Conflict("Email already registered") from exc
        except PyMongoError as exc:
            logger.error("MongoDB query error (users.insert_one): %s", exc)
            raise QueryError(f"Database query failed: {exc}") from exc

        doc["_id"] = result.inserted_id
        logger.info("Registered new user %s", email)
        return User.from_document(doc)

    async def record_result(self, email: str, score: Score) -> User:
        """
        Append a quiz score, keeping whichever history shape the user already has
        """
        user = await self._reload(email)

        for _ in range(MAX_SLOT_ATTEMPTS):
            if user.results.kind != "mapping":
                await self._update(email, {"$push": {"result": score}})
                return await self._reload(email)

            # Only claim the slot if no concurrent writer took it first
            slot = f"result.{user.results.next_position()}"
            matched = await self._update_where(
                {"email": email, slot: {"$exists": False}},
                {"$set": {slot: score}},
            )
            if matched:
                return await self._reload(email)

            logger.info("Result slot %s was taken concurrently, retrying", slot)
            user = await self._reload(email)

        raise Conflict("Quiz results changed concurrently, try again")

    async def set_weak_topics(self, email: str, topics: List[str]) -> User:
        await self._update(email, {"$set": {"weaktopics": topics}})
        return await self._reload(email)

    async def _update(self, email: str, update: dict) -> None:
        if not await self._update_where({"email": email}, update):
            raise NotFound("User not found")

    async def _update_where(self, query: dict, update: dict) -> int:
        users = await self._users()
        try:
            result = await users.update_one(query, update)
        except PyMongoError as exc:
            logger.error("MongoDB query error (users.update_one): %s", exc)
            raise QueryError(f"Database query failed: {exc}") from exc
        return result.matched_count

    async def _reload(self, email: str) -> User:
        user = await self.find_by_email(email)
        if user is None:
            raise NotFound("User not found")
        return user
