"""
Revision Loop Manager

Bounded draft -> critique -> revise cycle. Every attempt is kept so the
canonical result can be the best one seen rather than the last one written.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple

from pitch_pipeline.signals import extract_score

logger = logging.getLogger(__name__)


@dataclass
class RevisionAttempt:
    index: int  # 1-based; attempt 1 is the stage's own draft and critique
    draft: str
    critique: str
    score: Optional[int]
    vetoed: bool = False
    is_best: bool = False

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "score": self.score,
            "vetoed": self.vetoed,
            "is_best": self.is_best,
        }


@dataclass
class RevisionResult:
    attempts: List[RevisionAttempt] = field(default_factory=list)
    best: Optional[RevisionAttempt] = None
    passed: bool = False
    ambiguous: bool = False  # a critique carried no readable score

    @property
    def score(self) -> Optional[int]:
        return self.best.score if self.best else None


# draft_fn(index, previous_attempt) -> draft text
DraftFn = Callable[[int, RevisionAttempt], Awaitable[str]]
# critique_fn(index, draft, previous_attempt) -> critique text
CritiqueFn = Callable[[int, str, RevisionAttempt], Awaitable[str]]


class RevisionLoop:
    """
    Runs at most 1 + max_revisions draft/critique attempts.

    The loop exits on the first attempt that scores at or above the threshold
    without a veto. A critique with no readable score and no veto also ends the
    loop; it is logged, treated as a pass, and that attempt becomes canonical.
    Otherwise the canonical attempt is the highest scoring non-vetoed one, ties
    going to the earliest, and the result only passes if that attempt does.
    """

    def __init__(self, threshold: int, max_revisions: int,
                 veto: Optional[Callable[[str], bool]] = None, stage_key: str = None):
        if max_revisions < 0:
            raise ValueError("max_revisions must be >= 0")
        self.threshold = threshold
        self.max_revisions = max_revisions
        self.veto = veto
        self.stage_key = stage_key

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_revisions

    def passes(self, attempt: RevisionAttempt) -> bool:
        return not attempt.vetoed and attempt.score is not None and attempt.score >= self.threshold

    async def run(self, draft_fn: DraftFn, critique_fn: CritiqueFn,
                  initial: Optional[Tuple[str, str]] = None) -> RevisionResult:
        result = RevisionResult()
        previous = None

        for index in range(1, self.max_attempts + 1):
            if index == 1 and initial is not None:
                draft, critique = initial
            else:
                draft = await draft_fn(index, previous)
                critique = await critique_fn(index, draft, previous)

            attempt = RevisionAttempt(
                index=index,
                draft=draft or "",
                critique=critique or "",
                score=extract_score(critique),
                vetoed=bool(self.veto and self.veto(critique)),
            )
            result.attempts.append(attempt)
            logger.info("[revision] %s attempt %d/%d scored %s%s", self.stage_key, index,
                        self.max_attempts, attempt.score, " (vetoed)" if attempt.vetoed else "")

            if self.passes(attempt):
                result.passed = True
                break
            if attempt.score is None and not attempt.vetoed:
                logger.warning("[revision] %s attempt %d: no score found in critique, accepting draft",
                               self.stage_key, index)
                result.passed = True
                result.ambiguous = True
                break
            previous = attempt

        if result.ambiguous:
            # the unscored attempt ended the loop and is the accepted one
            result.best = result.attempts[-1]
        else:
            result.best = select_best(result.attempts)
            if not self.passes(result.best):
                result.passed = False
        result.best.is_best = True
        if not result.passed:
            logger.warning("[revision] %s exhausted %d attempts below %d; best scored %s",
                           self.stage_key, len(result.attempts), self.threshold, result.best.score)
        return result


def select_best(attempts: List[RevisionAttempt]) -> RevisionAttempt:
    """Highest parsed score among non-vetoed attempts; max() keeps the earliest on ties.

    Vetoed attempts are only considered when every attempt was vetoed.
    """
    unvetoed = [a for a in attempts if not a.vetoed]
    pool = unvetoed or attempts
    scored = [a for a in pool if a.score is not None]
    if not scored:
        return pool[-1] if unvetoed else pool[0]
    return max(scored, key=lambda a: a.score)
