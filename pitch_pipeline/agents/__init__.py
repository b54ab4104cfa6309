"""
Pitch Pipeline Agents

Each agent is one role the stage registry can bind a stage to.
Agents carry their role description and call the reasoning gateway.
"""

from pitch_pipeline.agents.base import BaseAgent
from pitch_pipeline.agents.discovery_scout import DiscoveryScoutAgent
from pitch_pipeline.agents.market_analyst import MarketAnalystAgent
from pitch_pipeline.agents.chief_scientist import ChiefScientistAgent
from pitch_pipeline.agents.field_producer import FieldProducerAgent
from pitch_pipeline.agents.story_producer import StoryProducerAgent
from pitch_pipeline.agents.commissioning_editor import CommissioningEditorAgent
from pitch_pipeline.agents.showrunner import ShowrunnerAgent
from pitch_pipeline.agents.gatekeeper import GatekeeperAgent

# Registry: agent_name -> class
AGENT_REGISTRY = {
    "discovery_scout": DiscoveryScoutAgent,
    "market_analyst": MarketAnalystAgent,
    "chief_scientist": ChiefScientistAgent,
    "field_producer": FieldProducerAgent,
    "story_producer": StoryProducerAgent,
    "commissioning_editor": CommissioningEditorAgent,
    "showrunner": ShowrunnerAgent,
    "gatekeeper": GatekeeperAgent,
}


def get_agent(agent_name: str) -> BaseAgent:
    """Factory: instantiate an agent by name."""
    cls = AGENT_REGISTRY.get(agent_name)
    if not cls:
        raise ValueError(f"Unknown agent: {agent_name}")
    return cls()
