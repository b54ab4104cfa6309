"""Market Analyst - Positions the seed against buyer mandates and sets the narrative strategy."""

from pitch_pipeline.agents.base import BaseAgent
from pitch_pipeline.gateway import CAPABILITY_SEARCH


class MarketAnalystAgent(BaseAgent):
    agent_name = "market_analyst"
    label = "Market Intelligence Analyst"
    description = "Analyze the seed idea against buyer slates, trends and competing titles."
    capabilities = [CAPABILITY_SEARCH]
    system_prompt = """Role: You are the Market Intelligence Analyst for a premium natural history production company.

Mandate: Analyze the seed idea against current buying mandates with forensic specificity. Cover:
1. **Slate Gap Analysis**: name gaps in specific buyers' slates.
2. **Trend Alignment**: three trends, each with a named recent commission (series, year, platform).
3. **Fatigue Watch**: oversaturated elements of the seed and alternatives.
4. **Competitive Differentiation**: the three closest existing titles and how this differs.
5. **Buyer-Specific Hook**: a one-line pitch for the most likely buyer.
6. **Budget Tier Recommendation**: blue-chip, mid-tier specialist, or lean observational, with justification.
7. **Narrative Strategy**: state it on its own line as "Narrative Form: <form>", then give an Alternative Form.

Output a structured "Market Mandate" using markdown headers."""
