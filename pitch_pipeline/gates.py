"""
Gate Controller

Two gate flavors consume a stage's extracted signal:
- Rejection gate: bounded pivot loop re-invoking the same role.
- Score gate: hands the stage's first draft/critique pair to a RevisionLoop.

When a loop exhausts, the on_exhausted policy decides between proceeding with
an annotated best-effort result and raising.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from pitch_pipeline import config
from pitch_pipeline.errors import DomainRejection, ScoreBelowThreshold
from pitch_pipeline.revision import RevisionLoop, RevisionResult
from pitch_pipeline.signals import detect_rejection

logger = logging.getLogger(__name__)


DECISION_PROCEED = "proceed"
DECISION_RETRY = "retry"


@dataclass
class GateResult:
    decision: str
    rejection_category: Optional[str] = None
    score: Optional[int] = None
    attempts: int = 1
    resolved: bool = True
    text: str = ""
    revision: Optional[RevisionResult] = None

    def to_dict(self) -> dict:
        return {
            "decision": self.decision,
            "rejection_category": self.rejection_category,
            "score": self.score,
            "attempts": self.attempts,
            "resolved": self.resolved,
        }


def evaluate_rejection(text) -> GateResult:
    """Single-attempt decision: retry on any rejection signal."""
    signal = detect_rejection(text)
    if signal:
        return GateResult(DECISION_RETRY, rejection_category=signal.category, text=text or "")
    return GateResult(DECISION_PROCEED, text=text or "")


# pivot_fn(pivot_number, rejection_category, rejected_text) -> new text
PivotFn = Callable[[int, str, str], Awaitable[str]]


async def run_rejection_gate(ctx, stage_key: str, text: str, pivot_fn: PivotFn,
                             max_pivots: int, on_exhausted: str = config.ON_EXHAUSTED_BEST_EFFORT) -> GateResult:
    """
    Pivot the stage up to max_pivots times while its output carries a rejection.

    Exhaustion under best_effort proceeds with the last attempt and records the
    unresolved gate on ctx; under hard_fail it raises DomainRejection.
    """
    verdict = evaluate_rejection(text)
    pivots = 0
    while verdict.decision == DECISION_RETRY and pivots < max_pivots:
        pivots += 1
        logger.info("[gate] %s rejected (%s), pivot %d/%d", stage_key, verdict.rejection_category,
                    pivots, max_pivots)
        text = await pivot_fn(pivots, verdict.rejection_category, text)
        verdict = evaluate_rejection(text)

    attempts = pivots + 1
    if verdict.decision == DECISION_RETRY:
        category = verdict.rejection_category
        if on_exhausted == config.ON_EXHAUSTED_HARD_FAIL:
            logger.error("[gate] %s still rejected (%s) after %d attempts, halting", stage_key, category, attempts)
            raise DomainRejection(category, stage_key, text)
        logger.warning("[gate] %s still rejected (%s) after %d attempts, proceeding with last attempt",
                       stage_key, category, attempts)
        ctx.mark_unresolved(stage_key, "rejection", {"category": category, "attempts": attempts})
        return GateResult(DECISION_PROCEED, rejection_category=category, attempts=attempts,
                          resolved=False, text=text)

    if pivots:
        logger.info("[gate] %s cleared after %d pivot(s)", stage_key, pivots)
    return GateResult(DECISION_PROCEED, attempts=attempts, text=text)


async def run_score_gate(ctx, stage_key: str, critique: str, loop: RevisionLoop,
                         draft_fn, critique_fn, producer_key: Optional[str] = None,
                         on_exhausted: str = config.ON_EXHAUSTED_BEST_EFFORT) -> GateResult:
    """
    Score the stage's critique and, below threshold, run the revision loop.

    The accepted draft replaces producer_key in ctx; the returned text is the
    accepted critique for the caller to record as the stage's output.
    """
    initial_draft = ctx.get(producer_key) if producer_key else ""
    result = await loop.run(draft_fn, critique_fn, initial=(initial_draft, critique))
    best = result.best

    if not result.passed:
        if on_exhausted == config.ON_EXHAUSTED_HARD_FAIL:
            logger.error("[gate] %s below threshold after %d attempts, halting", stage_key, len(result.attempts))
            raise ScoreBelowThreshold(best.score, loop.threshold, stage_key)
        ctx.mark_unresolved(stage_key, "score", {
            "score": best.score,
            "threshold": loop.threshold,
            "attempts": len(result.attempts),
        })

    if producer_key and ctx.has(producer_key):
        ctx.replace(producer_key, best.draft)

    return GateResult(
        DECISION_PROCEED,
        score=best.score,
        attempts=len(result.attempts),
        resolved=result.passed,
        text=best.critique,
        revision=result,
    )
