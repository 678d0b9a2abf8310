"""Tests for the in-memory user store and backend selection."""

import pytest

from sessiongate.core.modules.user.models import User
from sessiongate.core.modules.user.store import MemoryUserStore, MongoUserStore, create_user_store

pytestmark = pytest.mark.asyncio


@pytest.fixture
def user() -> User:
    return User(username="alice", password_hash="$2b$04$hash")


async def test_get_by_subject_and_name(user):
    store = MemoryUserStore()
    await store.upsert(user)

    by_id = await store.get_by_subject(user.id)
    by_name = await store.get_by_name("alice")
    assert by_id is not None and by_id.id == user.id
    assert by_name is not None and by_name.id == user.id


async def test_missing_records_return_none(user):
    store = MemoryUserStore()
    assert await store.get_by_subject(user.id) is None
    assert await store.get_by_name("nobody") is None


async def test_returned_records_are_copies(user):
    store = MemoryUserStore()
    await store.upsert(user)

    loaded = await store.get_by_subject(user.id)
    assert loaded is not None
    loaded.session_token = "changed-without-upsert"
    user.session_token = "changed-after-upsert"

    stored = await store.get_by_subject(user.id)
    assert stored is not None
    assert stored.session_token is None


async def test_upsert_overwrites(user):
    store = MemoryUserStore()
    await store.upsert(user)
    user.role = "admin"
    await store.upsert(user)

    users = await store.list_all()
    assert len(users) == 1
    assert users[0].role == "admin"


async def test_delete(user):
    store = MemoryUserStore()
    await store.upsert(user)
    assert await store.delete(user.id) is True
    assert await store.delete(user.id) is False
    assert await store.list_all() == []


async def test_create_user_store_selects_backend():
    assert isinstance(create_user_store("memory://"), MemoryUserStore)
    # Client construction does not connect
    mongo_store = create_user_store("mongodb://localhost:27017/sessiongate")
    assert isinstance(mongo_store, MongoUserStore)
    await mongo_store.close()


async def test_user_to_mongo_uses_underscore_id(user):
    data = user.to_mongo()
    assert data["_id"] == user.id
    assert "id" not in data
    assert data["session_token"] is None
    assert data["expires_at"] is None
