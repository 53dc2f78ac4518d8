"""
Consultancy workflow runner.

Receive message → persist it → capture company info → Pedro researches
(once or twice) → Juan writes the report → session FINISHED.

Every mutation is written before the next step starts, so observers of the
change feed see progress as it happens and a failed model call never loses
the work done before it. Public methods return a WorkflowResult and never raise.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from ..agents.juan import JuanAgent
from ..agents.pedro import PedroAgent
from ..core.errors import (
    ConstraintViolationError,
    ErrorKind,
    LLMConfigurationError,
    LLMError,
    SessionNotFoundError,
    StoreConfigurationError,
    StoreError,
    WorkflowError,
)
from ..core.guardrails import check_input
from ..services.session_store import SessionStore
from .base_agent import BaseAgent, CompletionClient
from .state import AgentRole, ChatMessage, SessionData, WorkflowState, column_values

logger = logging.getLogger(__name__)

# A second research pass runs while fewer findings than this exist
RESEARCH_TARGET = 2


@dataclass(frozen=True)
class WorkflowResult:
    ok: bool
    session: Optional[SessionData] = None
    error: Optional[WorkflowError] = None

    @classmethod
    def success(cls, session: SessionData) -> "WorkflowResult":
        return cls(ok=True, session=session)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        session_id: Optional[str] = None,
        session: Optional[SessionData] = None,
    ) -> "WorkflowResult":
        return cls(ok=False, session=session, error=WorkflowError(kind, message, session_id))


class AgentCallFailed(Exception):
    """Internal: an agent's model call failed. Carries the session as last persisted."""

    def __init__(self, agent: BaseAgent, session: SessionData, cause: Exception):
        super().__init__(str(cause))
        self.agent = agent
        self.session = session
        self.cause = cause


def agent_failure_text(agent: BaseAgent) -> str:
    return (
        f"Ocurrió un error mientras {agent.display_name} procesaba tu solicitud. "
        "Por favor intenta de nuevo."
    )


class WorkflowRunner:
    """
    Drives one session through the agent pipeline.

    Dependencies are passed in so tests can swap the store and the model:
        runner = WorkflowRunner(store=SessionStore(factory, feed), llm=get_llm_client())
    """

    def __init__(
        self,
        store: SessionStore,
        llm: CompletionClient,
        pedro: Optional[PedroAgent] = None,
        juan: Optional[JuanAgent] = None,
    ):
        self.store = store
        self.llm = llm
        self.pedro = pedro or PedroAgent()
        self.juan = juan or JuanAgent()

    # ── Session creation ─────────────────────────────────────────────

    async def create_session(self, user_id: str) -> WorkflowResult:
        if not user_id or not user_id.strip():
            return WorkflowResult.failure(ErrorKind.INVALID_INPUT, "user_id is required.")
        try:
            session = await self.store.create(user_id)
        except StoreConfigurationError as e:
            return WorkflowResult.failure(ErrorKind.CONFIGURATION, str(e))
        except ConstraintViolationError as e:
            return WorkflowResult.failure(ErrorKind.CONSTRAINT_VIOLATION, str(e))
        except StoreError as e:
            return WorkflowResult.failure(ErrorKind.DATABASE, str(e))
        except Exception as e:
            logger.exception("Unexpected error creating session for %s", user_id)
            return WorkflowResult.failure(ErrorKind.UNKNOWN, str(e))
        return WorkflowResult.success(session)

    # ── Main entry point ─────────────────────────────────────────────

    async def advance(self, session_id: str, user_message: str) -> WorkflowResult:
        """
        Append `user_message` and run the state machine to completion.

        Not idempotent. The caller must not run two advances for the same
        session concurrently.
        """
        check = check_input(user_message)
        if not check.allowed:
            return WorkflowResult.failure(ErrorKind.INVALID_INPUT, check.reason, session_id)

        if not getattr(self.llm, "is_configured", True):
            return WorkflowResult.failure(
                ErrorKind.CONFIGURATION,
                "API_KEY is not set in environment variables",
                session_id,
            )

        start = time.monotonic()
        try:
            session = await self.store.get(session_id)
            if session.is_finished:
                return WorkflowResult.failure(
                    ErrorKind.SESSION_FINISHED,
                    "La sesión ha finalizado. Comienza una nueva sesión para otra consultoría.",
                    session_id,
                    session=session,
                )

            session = await self._receive(session, user_message)
            session = await self._run(session, user_message)

        except AgentCallFailed as e:
            return await self._record_agent_failure(e)
        except SessionNotFoundError:
            return WorkflowResult.failure(ErrorKind.NOT_FOUND, "Session not found", session_id)
        except StoreConfigurationError as e:
            return WorkflowResult.failure(ErrorKind.CONFIGURATION, str(e), session_id)
        except StoreError as e:
            logger.error("Store failure during advance (session=%s): %s", session_id, e)
            return WorkflowResult.failure(ErrorKind.DATABASE, str(e), session_id)
        except Exception as e:
            logger.exception("Unexpected failure during advance (session=%s)", session_id)
            return WorkflowResult.failure(ErrorKind.UNKNOWN, str(e), session_id)

        logger.info(
            "Session %s finished: %d research call(s), %dms",
            session.id, session.research_counter, int((time.monotonic() - start) * 1000),
        )
        return WorkflowResult.success(session)

    # ── Steps ─────────────────────────────────────────────────────────
    # Each step that talks to the model makes its call before any write,
    # so the session held by the loop is the last persisted one on failure.

    async def _receive(self, session: SessionData, user_message: str) -> SessionData:
        session = await self._commit(
            session.with_message(ChatMessage(role=AgentRole.USER, content=user_message)),
            "chat_history",
        )
        if session.current_state == WorkflowState.WAITING_FOR_INFO:
            session = await self._commit(
                session.with_company_info(user_message).with_state(WorkflowState.START_RESEARCH),
                "company_info", "current_state",
            )
        return session

    async def _run(self, session: SessionData, user_message: str) -> SessionData:
        company_info = session.company_info or user_message
        steps = {
            WorkflowState.START_RESEARCH: self._start_research,
            WorkflowState.DECIDE_FLOW: self._decide_flow,
            WorkflowState.START_REPORT: self._start_report,
        }
        while session.current_state in steps:
            logger.info("Session %s: %s", session.id, session.current_state.value)
            session = await steps[session.current_state](session, company_info)
        return session

    async def _start_research(self, session: SessionData, company_info: str) -> SessionData:
        finding = await self._call(self.pedro, session, self.pedro.analyse(self.llm, company_info))
        session = await self._record_finding(session, finding)
        return await self._commit(session.with_state(WorkflowState.DECIDE_FLOW), "current_state")

    async def _decide_flow(self, session: SessionData, company_info: str) -> SessionData:
        if session.research_counter < RESEARCH_TARGET:
            first = session.research_results[0] if session.research_results else company_info
            finding = await self._call(self.pedro, session, self.pedro.deep_dive(self.llm, first))
            session = await self._record_finding(session, finding)
        return await self._commit(session.with_state(WorkflowState.START_REPORT), "current_state")

    async def _start_report(self, session: SessionData, company_info: str) -> SessionData:
        report = await self._call(
            self.juan, session,
            self.juan.write_report(self.llm, company_info, session.research_results),
        )
        session = await self._commit(session.with_message(self.juan.message(report)), "chat_history")
        return await self._commit(
            session.with_report(report).with_state(WorkflowState.FINISHED),
            "report_final", "current_state",
        )

    async def _record_finding(self, session: SessionData, finding: str) -> SessionData:
        session = await self._commit(session.with_message(self.pedro.message(finding)), "chat_history")
        # Results and counter go in one write so they never disagree
        return await self._commit(session.with_research(finding), "research_results", "research_counter")

    # ── Plumbing ──────────────────────────────────────────────────────

    async def _commit(self, session: SessionData, *fields: str) -> SessionData:
        await self.store.update(session.id, column_values(session, *fields))
        return session

    async def _call(self, agent: BaseAgent, session: SessionData, call) -> str:
        try:
            return await call
        except LLMError as e:
            raise AgentCallFailed(agent, session, e) from e

    async def _record_agent_failure(self, failure: AgentCallFailed) -> WorkflowResult:
        session = failure.session
        text = agent_failure_text(failure.agent)
        logger.error(
            "Agent loop error (session=%s, agent=%s, state=%s): %s",
            session.id, failure.agent.name, session.current_state.value, failure.cause,
        )
        try:
            session = await self._commit(
                session.with_message(ChatMessage(role=AgentRole.SYSTEM, content=text)),
                "chat_history",
            )
        except StoreError as e:
            logger.error("Could not record failure message for session %s: %s", session.id, e)

        # Rejected credential: still traced, reported as configuration
        kind = (
            ErrorKind.CONFIGURATION
            if isinstance(failure.cause, LLMConfigurationError)
            else ErrorKind.AGENT_CALL_FAILED
        )
        return WorkflowResult.failure(kind, text, session.id, session=session)
