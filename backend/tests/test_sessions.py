"""
Tests for the session stores (in-memory and ``sessions`` table).
"""

import pytest
from datetime import timedelta
from unittest.mock import patch

from revenue_desk.utils import utcnow

pytestmark = pytest.mark.anyio


def _later(seconds: int):
    return lambda: utcnow() + timedelta(seconds=seconds)


async def test_set_get_destroy(storage, user):
    sessions = storage.session_store
    await sessions.set("sid-1", user.id)
    assert await sessions.get("sid-1") == user.id

    await sessions.destroy("sid-1")
    assert await sessions.get("sid-1") is None
    # Unknown ids are ignored
    await sessions.destroy("sid-1")


async def test_unknown_session(storage):
    assert await storage.session_store.get("never-issued") is None


async def test_rebinding_overwrites(storage, user):
    other_id = user.id + 1
    sessions = storage.session_store
    await sessions.set("sid-1", user.id)
    await sessions.set("sid-1", other_id)
    assert await sessions.get("sid-1") == other_id


async def test_expired_session_is_unbound(storage, user):
    sessions = storage.session_store
    await sessions.set("sid-1", user.id)
    with patch("revenue_desk.sessions.utcnow", _later(sessions.ttl.total_seconds() + 1)):
        assert await sessions.get("sid-1") is None
    assert await sessions.get("sid-1") is None


async def test_prune_expired(storage, user):
    sessions = storage.session_store
    await sessions.set("old", user.id)
    with patch("revenue_desk.sessions.utcnow", _later(sessions.ttl.total_seconds() // 2)):
        await sessions.set("fresh", user.id)
    with patch("revenue_desk.sessions.utcnow", _later(sessions.ttl.total_seconds() + 1)):
        assert await sessions.prune_expired() == 1
    assert await sessions.get("old") is None
    assert await sessions.get("fresh") == user.id
    assert await sessions.prune_expired() == 0
