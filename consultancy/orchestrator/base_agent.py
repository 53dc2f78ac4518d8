"""
BaseAgent: the two consultants share this interface.

An agent is a persona (system instruction) plus prompt builders. It owns
no state; the workflow runner decides when each agent speaks.
"""

from typing import Protocol

from .state import AgentRole, ChatMessage


class CompletionClient(Protocol):
    async def complete(self, system_instruction: str, prompt: str) -> str: ...


class BaseAgent:
    """
    Base class for consultants.

    Attributes:
        name:          Internal ID ("pedro")
        display_name:  Human-readable label shown in the chat
        role:          Role written on this agent's chat messages
        system_prompt: Persona instruction sent with every call
    """

    name: str = ""
    display_name: str = ""
    role: AgentRole = AgentRole.SYSTEM
    system_prompt: str = ""

    async def ask(self, llm: CompletionClient, prompt: str, fallback: str) -> str:
        """One completion with this agent's persona. Blank answers become `fallback`."""
        text = await llm.complete(self.system_prompt, prompt)
        return text if text and text.strip() else fallback

    def message(self, content: str) -> ChatMessage:
        return ChatMessage(role=self.role, content=content)

    def __repr__(self) -> str:
        return f"<Agent {self.name}>"
