"""
Pitch Pipeline Definition

13-stage pitch pipeline and 8-stage script assessment, with stage metadata, gates,
derived constraints and loop prompts. This is the single source of truth for the
pipeline structure.

Pitch phases: Discovery, Brainstorm, Draft, Murder Board, Revision, Final Output, Gatekeeper
Assessment phases: Analysis, Murder Board, Optimization, Final Output
"""

from typing import Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from pitch_pipeline import config
from pitch_pipeline.workflows import prompts


GATE_REJECTION = "rejection"
GATE_SCORE = "score"

# Output key whose accepted text becomes the run artifact
ARTIFACT_KEY = "final_pitch_deck"


@dataclass
class GateSpec:
    kind: str  # "rejection" | "score"
    threshold: Optional[int] = None  # score gates; None means the run's score_threshold
    producer_key: Optional[str] = None  # score gates: output key of the draft under review
    producer_agent: Optional[str] = None  # score gates: role that writes revised drafts
    director: Optional[str] = None  # role that turns a critique into directives before each re-draft
    director_prompt: Callable = prompts.build_director_prompt
    veto: bool = False  # verdict veto markers fail the gate regardless of score
    pivot_prompt: Callable = prompts.build_pivot_prompt
    revise_prompt: Optional[Callable] = None
    review_prompt: Optional[Callable] = None


@dataclass
class DerivedConstraint:
    """Named constraint extracted from a stage's accepted output."""
    name: str
    labels: Tuple[str, ...]
    stop_chars: str = "\n"


@dataclass
class StageDefinition:
    key: str
    label: str
    agent_name: str
    build_prompt: Callable
    phase: str
    output_key: Optional[str] = None  # defaults to key
    gate: Optional[GateSpec] = None
    derives: List[DerivedConstraint] = field(default_factory=list)
    optional: bool = False  # a gateway failure degrades to fallback_text
    fallback_text: str = ""

    def __post_init__(self):
        if not self.output_key:
            self.output_key = self.key


PIPELINE_STAGES: List[StageDefinition] = [
    # --- Discovery ---
    StageDefinition(
        key="discovery",
        label="Scouting Recent Discoveries",
        agent_name="discovery_scout",
        build_prompt=prompts.build_discovery_prompt,
        phase="Discovery",
        optional=True,
        fallback_text=prompts.DISCOVERY_FALLBACK,
    ),
    # --- Brainstorm ---
    StageDefinition(
        key="market_mandate",
        label="Market Mandate",
        agent_name="market_analyst",
        build_prompt=prompts.build_market_mandate_prompt,
        phase="Brainstorm",
        derives=[DerivedConstraint(
            "narrative_form",
            ("Narrative Strategy", "Narrative Form", "Recommended Form", "Primary Recommendation"),
        )],
    ),
    StageDefinition(
        key="fact_sheet",
        label="Animal Fact Sheet",
        agent_name="chief_scientist",
        build_prompt=prompts.build_fact_sheet_prompt,
        phase="Brainstorm",
        gate=GateSpec(kind=GATE_REJECTION),
        derives=[DerivedConstraint(
            "hero_species",
            ("Primary Species", "Hero Species", "Hero Animal"),
            stop_chars="(*\n",
        )],
    ),
    StageDefinition(
        key="logistics",
        label="Logistics & Feasibility",
        agent_name="field_producer",
        build_prompt=prompts.build_logistics_prompt,
        phase="Brainstorm",
        gate=GateSpec(kind=GATE_REJECTION),
    ),
    # --- Draft ---
    StageDefinition(
        key="draft_v1",
        label="Draft V1",
        agent_name="story_producer",
        build_prompt=prompts.build_draft_v1_prompt,
        phase="Draft",
    ),
    # --- Murder Board ---
    StageDefinition(
        key="rejection_memo",
        label="Rejection Memo",
        agent_name="commissioning_editor",
        build_prompt=prompts.build_rejection_memo_prompt,
        phase="Murder Board",
    ),
    # --- Revision ---
    StageDefinition(
        key="revision_directives",
        label="Revision Directives",
        agent_name="showrunner",
        build_prompt=prompts.build_revision_directives_prompt,
        phase="Revision",
    ),
    StageDefinition(
        key="revised_science",
        label="Revised Science",
        agent_name="chief_scientist",
        build_prompt=prompts.build_revised_science_prompt,
        phase="Revision",
    ),
    StageDefinition(
        key="revised_logistics",
        label="Revised Logistics",
        agent_name="field_producer",
        build_prompt=prompts.build_revised_logistics_prompt,
        phase="Revision",
    ),
    StageDefinition(
        key="draft_v2",
        label="Draft V2",
        agent_name="story_producer",
        build_prompt=prompts.build_draft_v2_prompt,
        phase="Revision",
    ),
    StageDefinition(
        key="greenlight_review",
        label="Greenlight Review",
        agent_name="commissioning_editor",
        build_prompt=prompts.build_greenlight_review_prompt,
        phase="Revision",
        gate=GateSpec(
            kind=GATE_SCORE,
            producer_key="draft_v2",
            producer_agent="story_producer",
            director="showrunner",
            revise_prompt=prompts.build_script_revision_prompt,
            review_prompt=prompts.build_script_review_prompt,
        ),
    ),
    # --- Final Output ---
    StageDefinition(
        key="final_pitch_deck",
        label="Master Pitch Deck",
        agent_name="showrunner",
        build_prompt=prompts.build_final_pitch_deck_prompt,
        phase="Final Output",
    ),
    # --- Gatekeeper ---
    StageDefinition(
        key="gatekeeper_verdict",
        label="Gatekeeper Verdict",
        agent_name="gatekeeper",
        build_prompt=prompts.build_gatekeeper_prompt,
        phase="Gatekeeper",
        gate=GateSpec(
            kind=GATE_SCORE,
            threshold=config.GATEKEEPER_THRESHOLD,
            producer_key="final_pitch_deck",
            producer_agent="showrunner",
            veto=True,
            revise_prompt=prompts.build_pitch_card_revision_prompt,
            review_prompt=prompts.build_verdict_review_prompt,
        ),
    ),
]

# Script assessment: analyze a submitted script, murder-board it, optimize it
# under a score gate, then compile the pitch card. The seed input is the script.
ASSESSMENT_STAGES: List[StageDefinition] = [
    # --- Analysis ---
    StageDefinition(
        key="market_assessment",
        label="Market Assessment",
        agent_name="market_analyst",
        build_prompt=prompts.build_market_assessment_prompt,
        phase="Analysis",
    ),
    StageDefinition(
        key="science_assessment",
        label="Science Assessment",
        agent_name="chief_scientist",
        build_prompt=prompts.build_science_assessment_prompt,
        phase="Analysis",
    ),
    StageDefinition(
        key="logistics_assessment",
        label="Logistics Assessment",
        agent_name="field_producer",
        build_prompt=prompts.build_logistics_assessment_prompt,
        phase="Analysis",
    ),
    # --- Murder Board ---
    StageDefinition(
        key="script_critique",
        label="Script Critique",
        agent_name="commissioning_editor",
        build_prompt=prompts.build_script_critique_prompt,
        phase="Murder Board",
    ),
    # --- Optimization ---
    StageDefinition(
        key="optimization_plan",
        label="Optimization Plan",
        agent_name="showrunner",
        build_prompt=prompts.build_optimization_plan_prompt,
        phase="Optimization",
    ),
    StageDefinition(
        key="optimized_script",
        label="Optimized Script",
        agent_name="story_producer",
        build_prompt=prompts.build_optimized_script_prompt,
        phase="Optimization",
    ),
    StageDefinition(
        key="final_review",
        label="Final Review",
        agent_name="commissioning_editor",
        build_prompt=prompts.build_final_review_prompt,
        phase="Optimization",
        gate=GateSpec(
            kind=GATE_SCORE,
            producer_key="optimized_script",
            producer_agent="story_producer",
            director="showrunner",
            revise_prompt=prompts.build_optimized_script_revision_prompt,
            review_prompt=prompts.build_script_review_prompt,
        ),
    ),
    # --- Final Output ---
    StageDefinition(
        key=ARTIFACT_KEY,
        label="Optimized Pitch Deck",
        agent_name="showrunner",
        build_prompt=prompts.build_assessment_pitch_deck_prompt,
        phase="Final Output",
    ),
]

STAGE_LISTS: Dict[str, List[StageDefinition]] = {
    config.MODE_PITCH: PIPELINE_STAGES,
    config.MODE_ASSESSMENT: ASSESSMENT_STAGES,
}

STAGE_KEYS = [s.key for s in PIPELINE_STAGES]


def stages_for_mode(mode: str) -> List[StageDefinition]:
    stages = STAGE_LISTS.get(mode)
    if stages is None:
        raise ValueError(f"Unknown run mode: {mode}")
    return stages


def get_stage_index(key: str, stages: List[StageDefinition] = None) -> int:
    keys = STAGE_KEYS if stages is None else [s.key for s in stages]
    return keys.index(key)


def get_next_stage(current_key: str, stages: List[StageDefinition] = None) -> Optional[str]:
    keys = STAGE_KEYS if stages is None else [s.key for s in stages]
    idx = keys.index(current_key)
    if idx + 1 < len(keys):
        return keys[idx + 1]
    return None


def stages_after(key: Optional[str], stages: List[StageDefinition] = None) -> List[StageDefinition]:
    """Stages strictly after key; all stages when key is None."""
    stages = PIPELINE_STAGES if stages is None else stages
    if key is None:
        return list(stages)
    return list(stages[get_stage_index(key, stages) + 1:])


def describe_stages(stages: List[StageDefinition] = None) -> List[dict]:
    stages = PIPELINE_STAGES if stages is None else stages
    return [
        {
            "key": s.key,
            "label": s.label,
            "phase": s.phase,
            "agent_name": s.agent_name,
            "output_key": s.output_key,
            "gate": s.gate.kind if s.gate else None,
            "optional": s.optional,
            "derives": [d.name for d in s.derives],
        }
        for s in stages
    ]
