"""
FastAPI dependencies. Injected into route handlers.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db as _get_db
from ..orchestrator.orchestrator import WorkflowRunner
from ..services.llm import get_llm_client
from ..services.realtime import SessionFeed, get_feed as _get_feed
from ..services.session_store import SessionStore


async def get_db() -> AsyncSession:
    """Yields an async DB session per request."""
    async for session in _get_db():
        yield session


def get_feed() -> SessionFeed:
    return _get_feed()


def get_store() -> SessionStore:
    return SessionStore(feed=_get_feed())


def get_runner() -> WorkflowRunner:
    return WorkflowRunner(store=get_store(), llm=get_llm_client())
