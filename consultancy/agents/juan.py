"""
Juan: Project Manager and business strategist.

Turns Pedro's findings into the executive report that closes the session.
"""

import json
from typing import Sequence

from ..orchestrator.base_agent import BaseAgent, CompletionClient
from ..orchestrator.state import AgentRole

JUAN_SYSTEM_PROMPT = """
Eres Juan, un Project Manager y Estratega de Negocios en 'Consultores Empresariales IA'.
Tu tono es: Ejecutivo, Estratégico, Empático y No-técnico.
Tu tarea es tomar los hallazgos técnicos de Pedro y sintetizarlos en un plan de acción ejecutivo.
Habla en términos de valor de negocio, ROI y estrategia. Eres amable y profesional.
"""

NO_REPORT = "Error generando reporte final."


def build_report_prompt(company_info: str, findings: Sequence[str]) -> str:
    rendered = json.dumps(list(findings), ensure_ascii=False)
    return (
        f'La información de la empresa es: "{company_info}".\n'
        f"Los hallazgos técnicos de Pedro fueron: {rendered}.\n\n"
        "Genera un reporte final estratégico para el cliente. Resume los puntos técnicos "
        "en beneficios de negocio y propón los siguientes pasos."
    )


class JuanAgent(BaseAgent):
    name = "juan"
    display_name = "Juan (PM)"
    role = AgentRole.JUAN
    system_prompt = JUAN_SYSTEM_PROMPT

    async def write_report(
        self, llm: CompletionClient, company_info: str, findings: Sequence[str]
    ) -> str:
        return await self.ask(llm, build_report_prompt(company_info, findings), NO_REPORT)
