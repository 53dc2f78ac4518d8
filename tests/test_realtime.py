"""
Unit tests for consultancy.services.realtime (SessionFeed).
"""
from unittest.mock import AsyncMock, patch

import pytest

from consultancy.orchestrator.state import SessionData
from consultancy.services.realtime import SessionFeed


def _session(session_id: str = "s1") -> SessionData:
    return SessionData(id=session_id, user_id="u1")


@pytest.mark.asyncio
async def test_subscriber_receives_published_session(feed):
    seen = []
    feed.subscribe("s1", seen.append)

    await feed.publish(_session("s1"))

    assert [s.id for s in seen] == ["s1"]


@pytest.mark.asyncio
async def test_only_matching_session_is_delivered(feed):
    seen = []
    feed.subscribe("s1", seen.append)

    await feed.publish(_session("other"))

    assert seen == []


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited(feed):
    callback = AsyncMock()
    feed.subscribe("s1", callback)

    await feed.publish(_session())

    callback.assert_awaited_once()


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery(feed):
    seen = []
    sub = feed.subscribe("s1", seen.append)
    sub.unsubscribe()
    sub.unsubscribe()  # second call is a no-op

    await feed.publish(_session())

    assert seen == []
    assert feed.subscriber_count("s1") == 0


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_others(feed):
    def broken(_):
        raise RuntimeError("listener crashed")

    seen = []
    feed.subscribe("s1", broken)
    feed.subscribe("s1", seen.append)

    await feed.publish(_session())

    assert len(seen) == 1


@pytest.mark.asyncio
async def test_publish_forwards_to_redis_channel():
    feed = SessionFeed()
    with patch("consultancy.services.realtime._redis.notify_session", new=AsyncMock()) as notify:
        await feed.publish(_session("s9"))

    notify.assert_awaited_once()
    session_id, event_type, payload = notify.await_args.args
    assert (session_id, event_type) == ("s9", "session.updated")
    assert payload["id"] == "s9"
