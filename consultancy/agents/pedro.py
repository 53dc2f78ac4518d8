"""
Pedro: Senior AI Engineer and data analyst.

Produces the technical findings: a first analysis of the company and,
when the workflow asks for it, a deeper pass on data infrastructure.
"""

from ..orchestrator.base_agent import BaseAgent, CompletionClient
from ..orchestrator.state import AgentRole

PEDRO_SYSTEM_PROMPT = """
Eres Pedro, un Ingeniero de IA Senior y Analista de Datos en 'Consultores Empresariales IA'.
Tu tono es: Analítico, Técnico, Objetivo y Directo.
Tu tarea es analizar la información de la empresa proporcionada e identificar puntos clave, riesgos técnicos y oportunidades de automatización.
Sé conciso. Usa terminología técnica adecuada.
"""

NO_ANALYSIS = "Sin respuesta técnica."
NO_DEEP_DIVE = "Sin detalle técnico adicional."


def build_analysis_prompt(company_info: str) -> str:
    return (
        f'Analiza esta información de la empresa: "{company_info}". '
        "Identifica 3 vectores de ataque o mejora técnica."
    )


def build_deep_dive_prompt(first_finding: str) -> str:
    return (
        f'Basado en tu análisis anterior: "{first_finding}", '
        "profundiza en la infraestructura de datos necesaria. Sé muy específico técnicamente."
    )


class PedroAgent(BaseAgent):
    name = "pedro"
    display_name = "Ing. Pedro (IA)"
    role = AgentRole.PEDRO
    system_prompt = PEDRO_SYSTEM_PROMPT

    async def analyse(self, llm: CompletionClient, company_info: str) -> str:
        """First research call."""
        return await self.ask(llm, build_analysis_prompt(company_info), NO_ANALYSIS)

    async def deep_dive(self, llm: CompletionClient, first_finding: str) -> str:
        """Second research call, built on the literal first finding."""
        return await self.ask(llm, build_deep_dive_prompt(first_finding), NO_DEEP_DIVE)
