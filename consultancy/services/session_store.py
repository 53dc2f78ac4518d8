"""
Session persistence: create/read/update one `sessions` row.

No business logic lives here. Every call runs in its own transaction so a
write is durable (and visible to observers) before the caller moves on.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select, update as sql_update
from sqlalchemy.exc import ArgumentError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.database import get_session_factory
from ..core.errors import (
    ConstraintViolationError,
    SessionNotFoundError,
    StoreConfigurationError,
    StoreError,
)
from ..models.session import SessionRecord
from ..orchestrator.state import SessionData, WorkflowState
from .realtime import SessionFeed

logger = logging.getLogger(__name__)

# Fixed at creation; silently dropped from updates
IMMUTABLE_FIELDS = {"id", "user_id"}

UPDATABLE_FIELDS = {
    "chat_history",
    "company_info",
    "research_results",
    "report_final",
    "current_state",
    "research_counter",
}


class SessionStore:
    """
    Args:
        session_factory: Async session factory. When omitted the process-wide
                         one is built from settings on first use, so a bad
                         database URL or missing driver surfaces as
                         StoreConfigurationError from the call that needed it.
        feed:            Change feed notified with the full row after every update.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        feed: Optional[SessionFeed] = None,
    ):
        self._session_factory = session_factory
        self._feed = feed

    def _open(self) -> AsyncSession:
        if self._session_factory is None:
            try:
                self._session_factory = get_session_factory()
            except (ArgumentError, ImportError) as e:
                logger.error("Database is not configured: %s", e)
                raise StoreConfigurationError(f"Database is not configured: {e}") from e
        return self._session_factory()

    async def create(self, user_id: str) -> SessionData:
        """Insert a fresh session for `user_id` with empty defaults."""
        record = SessionRecord(
            user_id=user_id,
            chat_history=[],
            company_info=None,
            research_results=[],
            report_final=None,
            current_state=WorkflowState.WAITING_FOR_INFO.value,
            research_counter=0,
        )
        try:
            async with self._open() as db:
                db.add(record)
                await db.commit()
                await db.refresh(record)
        except IntegrityError as e:
            logger.warning("Session insert rejected for user %s: %s", user_id, e.orig)
            raise ConstraintViolationError(
                f"Identity {user_id!r} is not allowed to open a session"
            ) from e
        except ArgumentError as e:
            # NoSuchModuleError and friends: unknown dialect or driver
            logger.error("Database is not configured: %s", e)
            raise StoreConfigurationError(f"Database is not configured: {e}") from e
        except SQLAlchemyError as e:
            logger.error("Error creating session in DB: %s", e)
            raise StoreError(f"Database Error: {e}") from e

        logger.info("Created session %s (user=%s)", record.id, user_id)
        return SessionData.from_row(record)

    async def get(self, session_id: str) -> SessionData:
        try:
            async with self._open() as db:
                result = await db.execute(
                    select(SessionRecord).where(SessionRecord.id == session_id)
                )
                record = result.scalar_one_or_none()
        except ArgumentError as e:
            raise StoreConfigurationError(f"Database is not configured: {e}") from e
        except SQLAlchemyError as e:
            raise StoreError(f"Database Error: {e}") from e

        if record is None:
            raise SessionNotFoundError(session_id)
        return SessionData.from_row(record)

    async def update(self, session_id: str, fields: dict[str, Any]) -> None:
        """
        Field-level partial update. `id` and `user_id` are never written;
        unknown fields are a programming error.
        """
        values = {k: v for k, v in fields.items() if k not in IMMUTABLE_FIELDS}
        unknown = set(values) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown session fields: {sorted(unknown)}")
        if not values:
            return

        try:
            async with self._open() as db:
                result = await db.execute(
                    sql_update(SessionRecord)
                    .where(SessionRecord.id == session_id)
                    .values(**values)
                )
                updated = result.rowcount
                await db.commit()
        except IntegrityError as e:
            raise ConstraintViolationError(str(e.orig)) from e
        except ArgumentError as e:
            raise StoreConfigurationError(f"Database is not configured: {e}") from e
        except SQLAlchemyError as e:
            logger.error("Error updating session %s: %s", session_id, e)
            raise StoreError(f"Database Error: {e}") from e

        if updated == 0:
            raise SessionNotFoundError(session_id)

        logger.debug("Updated session %s: %s", session_id, ", ".join(sorted(values)))

        if self._feed is not None:
            await self._feed.publish(await self.get(session_id))
