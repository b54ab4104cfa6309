from typing import Callable, Dict, List, Optional

import pytest

from pitch_pipeline.agents import AGENT_REGISTRY
from pitch_pipeline.state import InMemoryCheckpointStore, InMemoryRunHistory


PITCH_CARD = (
    "## The Coconut Thief\n"
    "**Logline:** A veined octopus turns discarded shells into armour on a crowded reef.\n"
    "**Summary:** Tool use, filmed up close, for the first time.\n"
    "**Best For:** Netflix, BBC Studios"
)

DEFAULT_RESPONSES = {
    "discovery_scout": "Discovery Brief: a 2025 study documents shell carrying across three reef systems.",
    "market_analyst": (
        "## Slate Gap Analysis\nNo streamer owns cephalopod intelligence.\n"
        "## Narrative Strategy\nNarrative Form: **Heist caper**\n"
        "## Budget Tier\nMid-tier specialist."
    ),
    "chief_scientist": (
        "## Animal Fact Sheet\n"
        "**Primary Species:** Veined octopus (Amphioctopus marginatus)\n"
        "**B-Story:** Mimic octopus."
    ),
    "field_producer": "## Logistics\nRED Komodo in housings, 6-week shoot. Unicorn Test: 70%",
    "story_producer": "## Draft\nAct I: the shell.",
    "commissioning_editor": "## Greenlight Score: 90/100\nBroadcast-ready.",
    "showrunner": PITCH_CARD,
    "gatekeeper": "## Verdict: GREENLIT\n## Gatekeeper Score: 75/100",
}

ROLE_BY_PROMPT = {cls.system_prompt: name for name, cls in AGENT_REGISTRY.items()}


class FakeGateway:
    """
    Deterministic reasoning gateway scripted per role.

    scripts: agent_name -> queue of responses consumed in order; an Exception
    instance in the queue is raised instead of returned. When a queue is empty
    the role's default response is used.
    """

    def __init__(self, scripts: Optional[Dict[str, List]] = None,
                 defaults: Optional[Dict[str, str]] = None,
                 on_invoke: Optional[Callable[[str, str], None]] = None):
        self.scripts = {name: list(queue) for name, queue in (scripts or {}).items()}
        self.defaults = dict(DEFAULT_RESPONSES)
        self.defaults.update(defaults or {})
        self.on_invoke = on_invoke
        self.calls: List[tuple] = []

    async def invoke(self, role_description, task_text, capabilities=None):
        role = ROLE_BY_PROMPT[role_description]
        self.calls.append((role, task_text))
        if self.on_invoke:
            self.on_invoke(role, task_text)
        queue = self.scripts.get(role)
        response = queue.pop(0) if queue else self.defaults[role]
        if isinstance(response, Exception):
            raise response
        return response

    def roles_called(self) -> List[str]:
        return [role for role, _ in self.calls]

    def count(self, role: str) -> int:
        return self.roles_called().count(role)


@pytest.fixture()
def fake_gateway():
    return FakeGateway()


@pytest.fixture()
def checkpoint_store():
    return InMemoryCheckpointStore()


@pytest.fixture()
def run_history():
    return InMemoryRunHistory()
