"""
Guardrails: input validation before a message enters the workflow.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 10000       # Max input message length


@dataclass
class GuardrailResult:
    """Result of a guardrail check."""
    allowed: bool
    reason: Optional[str] = None


def check_input(message: Optional[str]) -> GuardrailResult:
    """
    Validate user input before processing.
    Returns GuardrailResult with allowed=False if blocked.
    """
    if message is None or not message.strip():
        return GuardrailResult(allowed=False, reason="Message is empty.")

    if len(message) > MAX_MESSAGE_LENGTH:
        logger.info("Rejected message of %d chars", len(message))
        return GuardrailResult(
            allowed=False,
            reason=f"Message too long ({len(message)} chars). Maximum is {MAX_MESSAGE_LENGTH}.",
        )

    return GuardrailResult(allowed=True)
