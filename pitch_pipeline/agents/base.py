"""
Base Agent class for all pitch pipeline roles.

Each agent:
- Has a name matching its role in the stage registry
- Carries the role description (system prompt) sent to the reasoning gateway
- Declares optional gateway capabilities (e.g. search grounding)
- Checks the run's cancellation token on both edges of the gateway call
"""

import logging
from abc import ABC
from typing import List, Optional

from pitch_pipeline.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class BaseAgent(ABC):
    """Base class for all pipeline roles."""

    agent_name: str = "base_agent"
    label: str = "Base Agent"
    description: str = "Base agent"
    system_prompt: str = ""
    capabilities: List[str] = []

    async def run(self, task_text: str, gateway, token: Optional[CancellationToken] = None,
                  stage_key: Optional[str] = None) -> str:
        """
        Invoke the gateway as this role.

        Raises RunCancelled if the token is set before the call is issued, or
        once the in-flight call returns; the output is discarded in that case.
        """
        if token is not None:
            token.raise_if_cancelled(stage_key)

        logger.info("[%s] thinking (stage=%s)", self.agent_name, stage_key)
        result = await gateway.invoke(self.system_prompt, task_text, capabilities=list(self.capabilities))

        if token is not None:
            token.raise_if_cancelled(stage_key)
        return result or ""

    def describe(self) -> dict:
        """Public role summary; the system prompt stays private."""
        return {
            "name": self.agent_name,
            "label": self.label,
            "description": self.description,
            "capabilities": list(self.capabilities),
        }
