"""
Realtime change feed for sessions.

Observers register a callback per session id and get the full updated
SessionData after every store write. Registration returns a Subscription;
call unsubscribe() on teardown. Publishing also fans out through Redis
when FF_USE_REDIS is on (see core.redis).
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from ..core import redis as _redis
from ..orchestrator.state import SessionData

logger = logging.getLogger(__name__)

SessionCallback = Callable[[SessionData], Union[None, Awaitable[None]]]


@dataclass(eq=False)
class Subscription:
    feed: "SessionFeed"
    session_id: str
    callback: SessionCallback
    active: bool = True

    def unsubscribe(self) -> None:
        if self.active:
            self.feed._remove(self)
            self.active = False


class SessionFeed:
    """In-process subscription hub keyed by session id."""

    def __init__(self):
        self._subscribers: dict[str, list[Subscription]] = {}

    def subscribe(self, session_id: str, callback: SessionCallback) -> Subscription:
        sub = Subscription(feed=self, session_id=session_id, callback=callback)
        self._subscribers.setdefault(session_id, []).append(sub)
        logger.debug("Subscribed to session %s (%d listeners)",
                     session_id, len(self._subscribers[session_id]))
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.session_id, [])
        if sub in subs:
            subs.remove(sub)
        if not subs:
            self._subscribers.pop(sub.session_id, None)

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, []))

    async def publish(self, session: SessionData) -> None:
        """Deliver `session` to every listener. A failing listener never breaks the writer."""
        # Copy: callbacks may unsubscribe while we iterate
        for sub in list(self._subscribers.get(session.id, [])):
            try:
                result = sub.callback(session)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("Session listener failed (session=%s): %s", session.id, e)

        await _redis.notify_session(session.id, "session.updated", session.to_dict())


# ── Process-wide feed ────────────────────────────────────────────────

_feed: Optional[SessionFeed] = None


def get_feed() -> SessionFeed:
    global _feed
    if _feed is None:
        _feed = SessionFeed()
    return _feed
