"""
Error taxonomy shared by the adapters, the workflow runner and the API.

Adapters raise the exceptions below. The runner turns them into a
WorkflowError carrying an ErrorKind so callers never need to catch anything.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"
    CONSTRAINT_VIOLATION = "constraint_violation"
    AGENT_CALL_FAILED = "agent_call_failed"
    SESSION_FINISHED = "session_finished"
    INVALID_INPUT = "invalid_input"
    DATABASE = "database"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class WorkflowError:
    """Structured failure returned by the runner."""
    kind: ErrorKind
    message: str
    session_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "session_id": self.session_id}


# ── Store errors ─────────────────────────────────────────────────────

class StoreError(Exception):
    """Generic database failure. Carries the driver message."""


class SessionNotFoundError(StoreError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class ConstraintViolationError(StoreError):
    """The store refused the row (unknown identity, duplicate key, ...)."""


class StoreConfigurationError(StoreError):
    """Database URL or driver unusable; no query could be attempted."""


# ── LLM errors ───────────────────────────────────────────────────────

class LLMError(Exception):
    """A completion request failed."""


class LLMConfigurationError(LLMError):
    """Credential missing or rejected."""
