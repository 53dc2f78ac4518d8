"""
Shared pytest fixtures.

Store-backed tests run against a throwaway SQLite file (aiosqlite) so the
foreign key on sessions.user_id is enforced exactly as in Postgres. The
model is always a FakeLLM; no test needs a Gemini key.
"""
from typing import Optional

import pytest
import pytest_asyncio

from consultancy.core.database import build_engine, build_session_factory, create_tables
from consultancy.core.errors import LLMError
from consultancy.models.user import User
from consultancy.orchestrator.orchestrator import WorkflowRunner
from consultancy.services.realtime import SessionFeed
from consultancy.services.session_store import SessionStore


class FakeLLM:
    """
    Scripted completion client.

    `responses` are returned in order (the last one repeats). Calls whose
    1-based index is in `fail_on` raise `error` (LLMError by default) instead.
    """

    def __init__(self, responses: Optional[list] = None, fail_on: tuple = (), configured: bool = True,
                 error: type = LLMError):
        self.responses = responses or ["respuesta"]
        self.fail_on = set(fail_on)
        self.is_configured = configured
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_instruction: str, prompt: str) -> str:
        self.calls.append((system_instruction, prompt))
        n = len(self.calls)
        if n in self.fail_on:
            raise self.error(f"boom on call {n}")
        return self.responses[min(n, len(self.responses)) - 1]

    @property
    def prompts(self) -> list[str]:
        return [p for _, p in self.calls]


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def feed():
    return SessionFeed()


@pytest.fixture
def store(session_factory, feed):
    return SessionStore(session_factory, feed=feed)


@pytest_asyncio.fixture
async def user_id(session_factory):
    async with session_factory() as db:
        user = User(is_anonymous=True)
        db.add(user)
        await db.commit()
        return user.id


@pytest.fixture
def llm():
    return FakeLLM(responses=["hallazgo uno", "hallazgo dos", "reporte final"])


@pytest.fixture
def runner(store, llm):
    return WorkflowRunner(store=store, llm=llm)
