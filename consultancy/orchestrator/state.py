"""
Session state for the consultancy workflow.

A SessionData value is the in-memory picture of one `sessions` row. It is
immutable: every workflow step builds a new value with dataclasses.replace()
and hands it to the store for exactly one write.

State machine:
  WAITING_FOR_INFO → START_RESEARCH → DECIDE_FLOW → START_REPORT → FINISHED
"""

import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class WorkflowState(str, Enum):
    WAITING_FOR_INFO = "WAITING_FOR_INFO"
    START_RESEARCH = "START_RESEARCH"
    DECIDE_FLOW = "DECIDE_FLOW"
    START_REPORT = "START_REPORT"
    FINISHED = "FINISHED"


class AgentRole(str, Enum):
    USER = "user"
    PEDRO = "pedro"
    JUAN = "juan"
    SYSTEM = "system"


# Labels shown next to the status indicator in the chat UI
STATUS_TEXT = {
    WorkflowState.WAITING_FOR_INFO: "Esperando información...",
    WorkflowState.START_RESEARCH: "Pedro está investigando...",
    WorkflowState.DECIDE_FLOW: "Analizando profundidad...",
    WorkflowState.START_REPORT: "Juan está redactando el reporte...",
    WorkflowState.FINISHED: "Consultoría Finalizada.",
}


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ChatMessage:
    role: AgentRole
    content: str
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> dict:
        return {"role": self.role.value, "content": self.content, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMessage":
        return cls(
            role=AgentRole(data["role"]),
            content=data.get("content") or "",
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass(frozen=True)
class SessionData:
    id: str
    user_id: str
    chat_history: tuple[ChatMessage, ...] = ()
    company_info: Optional[str] = None
    research_results: tuple[str, ...] = ()
    report_final: Optional[str] = None
    current_state: WorkflowState = WorkflowState.WAITING_FOR_INFO
    research_counter: int = 0
    created_at: Optional[datetime] = None

    # ── Transitions (each returns a new value) ────────────────────────

    def with_message(self, message: ChatMessage) -> "SessionData":
        return replace(self, chat_history=self.chat_history + (message,))

    def with_company_info(self, info: str) -> "SessionData":
        return replace(self, company_info=info)

    def with_research(self, finding: str) -> "SessionData":
        """Record one completed research call. Keeps results and counter in step."""
        return replace(
            self,
            research_results=self.research_results + (finding,),
            research_counter=self.research_counter + 1,
        )

    def with_report(self, report: str) -> "SessionData":
        return replace(self, report_final=report)

    def with_state(self, state: WorkflowState) -> "SessionData":
        return replace(self, current_state=state)

    # ── Views ─────────────────────────────────────────────────────────

    @property
    def is_finished(self) -> bool:
        return self.current_state == WorkflowState.FINISHED

    @property
    def status_text(self) -> str:
        return STATUS_TEXT.get(self.current_state, "Procesando...")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "chat_history": [m.to_dict() for m in self.chat_history],
            "company_info": self.company_info,
            "research_results": list(self.research_results),
            "report_final": self.report_final,
            "current_state": self.current_state.value,
            "research_counter": self.research_counter,
            "status_text": self.status_text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_row(cls, row) -> "SessionData":
        """Build from a SessionRecord (or anything with the same attributes)."""
        return cls(
            id=row.id,
            user_id=row.user_id,
            chat_history=tuple(ChatMessage.from_dict(m) for m in (row.chat_history or [])),
            company_info=row.company_info,
            research_results=tuple(row.research_results or []),
            report_final=row.report_final,
            current_state=WorkflowState(row.current_state or WorkflowState.WAITING_FOR_INFO.value),
            research_counter=row.research_counter or 0,
            created_at=getattr(row, "created_at", None),
        )


def column_values(session: SessionData, *names: str) -> dict[str, Any]:
    """Serialize the named fields of `session` into column values for a partial update."""
    values: dict[str, Any] = {}
    for name in names:
        if name == "chat_history":
            values[name] = [m.to_dict() for m in session.chat_history]
        elif name == "research_results":
            values[name] = list(session.research_results)
        elif name == "current_state":
            values[name] = session.current_state.value
        else:
            values[name] = getattr(session, name)
    return values
