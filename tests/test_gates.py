import asyncio

import pytest

from pitch_pipeline import config
from pitch_pipeline.errors import DomainRejection, ScoreBelowThreshold
from pitch_pipeline.gates import (
    DECISION_PROCEED,
    DECISION_RETRY,
    evaluate_rejection,
    run_rejection_gate,
    run_score_gate,
)
from pitch_pipeline.revision import RevisionLoop
from pitch_pipeline.state import RunContext

REJECTED = "## SCIENTIFIC REJECTION\nThese animals never share a habitat.\nPIPELINE HALT RECOMMENDED"


def pivots_returning(responses):
    responses = list(responses)
    calls = []

    async def pivot(number, category, rejected_text):
        calls.append((number, category))
        return responses.pop(0)

    return pivot, calls


def test_evaluate_rejection():
    assert evaluate_rejection(REJECTED).decision == DECISION_RETRY
    assert evaluate_rejection(REJECTED).rejection_category == "validity"
    assert evaluate_rejection("fine").decision == DECISION_PROCEED


def test_clean_output_passes_without_pivots():
    ctx = RunContext(seed_input="octopus")
    pivot, calls = pivots_returning([])

    result = asyncio.run(run_rejection_gate(ctx, "fact_sheet", "Valid sheet", pivot, 3))

    assert result.resolved
    assert result.attempts == 1
    assert calls == []


def test_pivot_clears_rejection():
    ctx = RunContext(seed_input="octopus")
    pivot, calls = pivots_returning(["A viable alternative"])

    result = asyncio.run(run_rejection_gate(ctx, "fact_sheet", REJECTED, pivot, 3))

    assert result.resolved
    assert result.text == "A viable alternative"
    assert calls == [(1, "validity")]
    assert ctx.unresolved_gates == []


def test_exhausted_pivots_proceed_with_last_attempt():
    ctx = RunContext(seed_input="polar bears in the Sahara")
    pivot, calls = pivots_returning([REJECTED + " (1)", REJECTED + " (2)", REJECTED + " (3)"])

    result = asyncio.run(run_rejection_gate(ctx, "fact_sheet", REJECTED, pivot, 3))

    assert result.decision == DECISION_PROCEED
    assert not result.resolved
    assert result.text.endswith("(3)")
    assert len(calls) == 3
    assert ctx.unresolved_gates == [
        {"stage": "fact_sheet", "gate": "rejection", "category": "validity", "attempts": 4}
    ]


def test_exhausted_pivots_hard_fail():
    ctx = RunContext(seed_input="polar bears in the Sahara")
    pivot, _ = pivots_returning([REJECTED])

    with pytest.raises(DomainRejection) as excinfo:
        asyncio.run(run_rejection_gate(ctx, "fact_sheet", REJECTED, pivot, 1,
                                       on_exhausted=config.ON_EXHAUSTED_HARD_FAIL))

    assert excinfo.value.category == "validity"
    assert excinfo.value.stage_key == "fact_sheet"


def test_zero_pivots_proceeds_unresolved():
    ctx = RunContext(seed_input="octopus")
    pivot, calls = pivots_returning([])

    result = asyncio.run(run_rejection_gate(ctx, "logistics", "## ETHICAL REJECTION", pivot, 0))

    assert not result.resolved
    assert result.rejection_category == "policy"
    assert calls == []


def _score_ctx():
    ctx = RunContext(seed_input="octopus")
    ctx.record("draft_v2", "draft 1")
    return ctx


def test_score_gate_replaces_producer_output_with_best_draft():
    ctx = _score_ctx()
    drafts = iter(["draft 2", "draft 3"])
    critiques = iter(["Score: 80/100", "Score: 70/100"])

    async def draft_fn(index, previous):
        return next(drafts)

    async def critique_fn(index, draft, previous):
        return next(critiques)

    loop = RevisionLoop(threshold=85, max_revisions=2, stage_key="greenlight_review")
    result = asyncio.run(run_score_gate(ctx, "greenlight_review", "Score: 60/100", loop,
                                        draft_fn, critique_fn, producer_key="draft_v2"))

    assert ctx.get("draft_v2") == "draft 2"
    assert result.text == "Score: 80/100"
    assert result.score == 80
    assert not result.resolved
    assert ctx.unresolved_gates[0]["gate"] == "score"
    assert ctx.unresolved_gates[0]["threshold"] == 85


def test_score_gate_hard_fail():
    ctx = _score_ctx()

    async def never(*args):
        raise AssertionError("no revisions expected")

    loop = RevisionLoop(threshold=85, max_revisions=0)
    with pytest.raises(ScoreBelowThreshold) as excinfo:
        asyncio.run(run_score_gate(ctx, "greenlight_review", "Score: 60/100", loop, never, never,
                                   producer_key="draft_v2", on_exhausted=config.ON_EXHAUSTED_HARD_FAIL))

    assert excinfo.value.score == 60
    assert excinfo.value.threshold == 85
