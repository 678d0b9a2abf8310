"""Persistence port for user records and its backends."""

from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlparse
from uuid import UUID

import structlog
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from sessiongate.core.modules.user.models import User
from sessiongate.errors import StorageError

logger = structlog.get_logger(__name__)

MEMORY_URL = "memory://"


class UserStore(ABC):
    """Record store keyed by subject id and username.

    Writes are durable before upsert returns. Atomicity across a
    read-modify-write sequence is the caller's responsibility.
    """

    async def on_start(self) -> None:
        """Prepare the backend (indexes, connections)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def get_by_subject(self, subject_id: UUID) -> User | None: ...

    @abstractmethod
    async def get_by_name(self, username: str) -> User | None: ...

    @abstractmethod
    async def upsert(self, user: User) -> None: ...

    @abstractmethod
    async def list_all(self) -> list[User]: ...

    @abstractmethod
    async def delete(self, subject_id: UUID) -> bool: ...


class MemoryUserStore(UserStore):
    """Process-local store. Hands out copies so callers never share state."""

    def __init__(self) -> None:
        self._users: dict[UUID, User] = {}

    async def get_by_subject(self, subject_id: UUID) -> User | None:
        user = self._users.get(subject_id)
        return user.model_copy(deep=True) if user else None

    async def get_by_name(self, username: str) -> User | None:
        user = next((u for u in self._users.values() if u.username == username), None)
        return user.model_copy(deep=True) if user else None

    async def upsert(self, user: User) -> None:
        self._users[user.id] = user.model_copy(deep=True)

    async def list_all(self) -> list[User]:
        return [user.model_copy(deep=True) for user in self._users.values()]

    async def delete(self, subject_id: UUID) -> bool:
        return self._users.pop(subject_id, None) is not None


class MongoUserStore(UserStore):
    """MongoDB-backed store, one document per user in the `users` collection."""

    def __init__(self, database_url: str) -> None:
        self._client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(
            database_url, uuidRepresentation="standard", tz_aware=True
        )
        database = self._client.get_database(urlparse(database_url).path[1:])
        self._collection = database.get_collection("users")

    async def on_start(self) -> None:
        try:
            await self._collection.create_index([("username", 1)], unique=True)
        except PyMongoError as exc:
            raise StorageError("Failed to prepare user collection") from exc

    async def close(self) -> None:
        await self._client.aclose()

    async def get_by_subject(self, subject_id: UUID) -> User | None:
        return await self._find_one({"_id": subject_id})

    async def get_by_name(self, username: str) -> User | None:
        return await self._find_one({"username": username})

    async def upsert(self, user: User) -> None:
        try:
            await self._collection.replace_one({"_id": user.id}, user.to_mongo(), upsert=True)
        except PyMongoError as exc:
            logger.warning("user_store_write_failed", user_id=str(user.id), error=str(exc))
            raise StorageError("Failed to write user record") from exc

    async def list_all(self) -> list[User]:
        try:
            return [User.model_validate(doc) async for doc in self._collection.find()]
        except PyMongoError as exc:
            raise StorageError("Failed to list users") from exc

    async def delete(self, subject_id: UUID) -> bool:
        try:
            result = await self._collection.delete_one({"_id": subject_id})
        except PyMongoError as exc:
            raise StorageError("Failed to delete user record") from exc
        return result.deleted_count > 0

    async def _find_one(self, query: dict[str, Any]) -> User | None:
        try:
            doc = await self._collection.find_one(query)
        except PyMongoError as exc:
            logger.warning("user_store_read_failed", error=str(exc))
            raise StorageError("Failed to read user record") from exc
        return User.model_validate(doc) if doc is not None else None


def create_user_store(database_url: str) -> UserStore:
    """Pick a backend from the database URL."""
    if database_url.startswith(MEMORY_URL):
        return MemoryUserStore()
    return MongoUserStore(database_url)
