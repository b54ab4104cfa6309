import pytest

from pitch_pipeline import config
from pitch_pipeline.agents import AGENT_REGISTRY
from pitch_pipeline.workflows.pipeline import (
    ARTIFACT_KEY,
    ASSESSMENT_STAGES,
    PIPELINE_STAGES,
    STAGE_KEYS,
    describe_stages,
    get_next_stage,
    get_stage_index,
    stages_after,
    stages_for_mode,
)

STAGES_BY_KEY = {s.key: s for s in PIPELINE_STAGES}


def test_stage_order():
    assert STAGE_KEYS == [
        "discovery", "market_mandate", "fact_sheet", "logistics", "draft_v1",
        "rejection_memo", "revision_directives", "revised_science", "revised_logistics",
        "draft_v2", "greenlight_review", "final_pitch_deck", "gatekeeper_verdict",
    ]
    assert len(set(STAGE_KEYS)) == len(STAGE_KEYS)


def test_every_stage_names_a_registered_agent():
    for stage in PIPELINE_STAGES:
        assert stage.agent_name in AGENT_REGISTRY
        if stage.gate and stage.gate.producer_agent:
            assert stage.gate.producer_agent in AGENT_REGISTRY


def test_navigation_helpers():
    assert get_stage_index("fact_sheet") == 2
    assert get_next_stage("discovery") == "market_mandate"
    assert get_next_stage("gatekeeper_verdict") is None
    assert [s.key for s in stages_after("greenlight_review")] == ["final_pitch_deck", "gatekeeper_verdict"]
    assert stages_after(None) == PIPELINE_STAGES
    assert stages_after("gatekeeper_verdict") == []


def test_gate_wiring():
    review = STAGES_BY_KEY["greenlight_review"].gate
    assert review.producer_key == "draft_v2"
    assert review.director == "showrunner"
    assert review.threshold is None

    verdict = STAGES_BY_KEY["gatekeeper_verdict"].gate
    assert verdict.producer_key == "final_pitch_deck"
    assert verdict.threshold == config.GATEKEEPER_THRESHOLD
    assert verdict.veto


def test_describe_stages():
    described = {d["key"]: d for d in describe_stages()}

    assert described["discovery"]["optional"] is True
    assert described["fact_sheet"]["derives"] == ["hero_species"]
    assert described["market_mandate"]["derives"] == ["narrative_form"]


def test_assessment_stage_list():
    keys = [s.key for s in ASSESSMENT_STAGES]

    assert keys == [
        "market_assessment", "science_assessment", "logistics_assessment", "script_critique",
        "optimization_plan", "optimized_script", "final_review", "final_pitch_deck",
    ]
    assert keys[-1] == ARTIFACT_KEY
    assert get_next_stage("script_critique", ASSESSMENT_STAGES) == "optimization_plan"

    gated = [s for s in ASSESSMENT_STAGES if s.gate]
    assert [s.key for s in gated] == ["final_review"]
    assert gated[0].gate.producer_key == "optimized_script"
    for stage in ASSESSMENT_STAGES:
        assert stage.agent_name in AGENT_REGISTRY


def test_stages_for_mode():
    assert stages_for_mode("pitch") is PIPELINE_STAGES
    assert stages_for_mode("assessment") is ASSESSMENT_STAGES
    with pytest.raises(ValueError):
        stages_for_mode("remix")
