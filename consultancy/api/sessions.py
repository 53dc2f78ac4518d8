"""
Sessions API.

POST /v1/sessions                : Open a session for an identity
GET  /v1/sessions/{id}           : Current session snapshot
POST /v1/sessions/{id}/messages  : Send a message and run the consultancy
GET  /v1/sessions/{id}/events    : Server-Sent Events change feed
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from ..core.dependencies import get_feed, get_runner, get_store
from ..core.errors import (
    ErrorKind,
    SessionNotFoundError,
    StoreConfigurationError,
    StoreError,
    WorkflowError,
)
from ..orchestrator.orchestrator import WorkflowRunner
from ..orchestrator.state import SessionData
from ..services.realtime import SessionFeed
from ..services.session_store import SessionStore

logger = logging.getLogger(__name__)

sessions_router = APIRouter(prefix="/sessions", tags=["sessions"])

KEEPALIVE_SECONDS = 15

ERROR_STATUS = {
    ErrorKind.INVALID_INPUT: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONSTRAINT_VIOLATION: 409,
    ErrorKind.SESSION_FINISHED: 409,
    ErrorKind.AGENT_CALL_FAILED: 502,
    ErrorKind.CONFIGURATION: 503,
    ErrorKind.DATABASE: 500,
    ErrorKind.UNKNOWN: 500,
}


class CreateSessionRequest(BaseModel):
    user_id: str


class MessageRequest(BaseModel):
    message: str


def _error_response(error: WorkflowError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(error.kind, 500),
        content={"error": error.to_dict()},
    )


def _store_http_error(e: StoreError) -> HTTPException:
    if isinstance(e, SessionNotFoundError):
        return HTTPException(status_code=404, detail="Session not found")
    if isinstance(e, StoreConfigurationError):
        return HTTPException(status_code=503, detail=str(e))
    logger.error("Store failure: %s", e)
    return HTTPException(status_code=500, detail=str(e))


@sessions_router.post("", status_code=201)
async def create_session(
    request: CreateSessionRequest,
    runner: WorkflowRunner = Depends(get_runner),
):
    result = await runner.create_session(request.user_id)
    if not result.ok:
        logger.warning("Session creation failed (%s): %s", result.error.kind.value, result.error.message)
        return _error_response(result.error)
    return result.session.to_dict()


@sessions_router.get("/{session_id}")
async def get_session(session_id: str, store: SessionStore = Depends(get_store)):
    try:
        session = await store.get(session_id)
    except StoreError as e:
        raise _store_http_error(e)
    return session.to_dict()


@sessions_router.post("/{session_id}/messages")
async def send_message(
    session_id: str,
    request: MessageRequest,
    runner: WorkflowRunner = Depends(get_runner),
):
    """Run the consultancy for one user message. Returns the final session."""
    result = await runner.advance(session_id, request.message)
    if not result.ok:
        return _error_response(result.error)
    return result.session.to_dict()


@sessions_router.get("/{session_id}/events")
async def session_events(
    session_id: str,
    request: Request,
    store: SessionStore = Depends(get_store),
    feed: SessionFeed = Depends(get_feed),
):
    """
    Stream session updates via Server-Sent Events.

    Events:
      data: {<full session>}   (once on connect, then after every write)
      : ping                   (keepalive every 15s)
    The stream ends once the session reaches FINISHED.
    """
    queue: asyncio.Queue[SessionData] = asyncio.Queue()
    subscription = feed.subscribe(session_id, queue.put_nowait)

    try:
        snapshot = await store.get(session_id)
    except StoreError as e:
        subscription.unsubscribe()
        raise _store_http_error(e)

    async def event_generator():
        try:
            yield f"data: {json.dumps(snapshot.to_dict())}\n\n"
            current = snapshot
            while not current.is_finished:
                try:
                    current = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    if await request.is_disconnected():
                        break
                    yield ": ping\n\n"
                    continue
                yield f"data: {json.dumps(current.to_dict())}\n\n"
        finally:
            subscription.unsubscribe()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
