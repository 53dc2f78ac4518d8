"""
Unit tests for the consultants (Pedro, Juan) and input guardrails.
"""
import json

import pytest

from consultancy.agents.juan import JUAN_SYSTEM_PROMPT, NO_REPORT, JuanAgent, build_report_prompt
from consultancy.agents.pedro import (
    NO_ANALYSIS,
    NO_DEEP_DIVE,
    PEDRO_SYSTEM_PROMPT,
    PedroAgent,
    build_analysis_prompt,
    build_deep_dive_prompt,
)
from consultancy.core.guardrails import MAX_MESSAGE_LENGTH, check_input
from consultancy.orchestrator.state import AgentRole

from conftest import FakeLLM


# ── Prompts ───────────────────────────────────────────────────────────────────

def test_analysis_prompt_quotes_company_info():
    prompt = build_analysis_prompt("Somos una startup de logística")
    assert '"Somos una startup de logística"' in prompt
    assert "3 vectores" in prompt


def test_deep_dive_prompt_embeds_first_finding_verbatim():
    finding = "1. Rutas\n2. Inventario"
    assert f'"{finding}"' in build_deep_dive_prompt(finding)


def test_report_prompt_renders_findings_as_json_list():
    prompt = build_report_prompt("Panadería", ["uno", "dos"])
    assert '"Panadería"' in prompt
    assert json.dumps(["uno", "dos"]) in prompt


def test_report_prompt_keeps_accents():
    assert "analítica" in build_report_prompt("x", ["analítica"])


# ── Agents ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_pedro_uses_his_persona():
    llm = FakeLLM(responses=["análisis"])
    text = await PedroAgent().analyse(llm, "Empresa")

    assert text == "análisis"
    assert llm.calls[0][0] == PEDRO_SYSTEM_PROMPT


@pytest.mark.asyncio
async def test_blank_answers_become_placeholders():
    llm = FakeLLM(responses=["   "])
    pedro = PedroAgent()

    assert await pedro.analyse(llm, "x") == NO_ANALYSIS
    assert await pedro.deep_dive(llm, "x") == NO_DEEP_DIVE
    assert await JuanAgent().write_report(llm, "x", []) == NO_REPORT


@pytest.mark.asyncio
async def test_juan_uses_his_persona():
    llm = FakeLLM(responses=["reporte"])
    await JuanAgent().write_report(llm, "x", ["r"])
    assert llm.calls[0][0] == JUAN_SYSTEM_PROMPT


def test_agent_messages_carry_agent_role():
    assert PedroAgent().message("a").role is AgentRole.PEDRO
    assert JuanAgent().message("b").role is AgentRole.JUAN


# ── Guardrails ────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("message", ["", "   ", None])
def test_empty_messages_blocked(message):
    result = check_input(message)
    assert not result.allowed
    assert result.reason == "Message is empty."


def test_long_message_blocked():
    assert not check_input("x" * (MAX_MESSAGE_LENGTH + 1)).allowed


def test_normal_message_allowed():
    assert check_input("Vendemos café").allowed
