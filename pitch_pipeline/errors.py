"""
Pipeline error taxonomy.

DomainRejection and ScoreBelowThreshold are only raised when a bounded loop
exhausts under the hard_fail policy. RunCancelled deliberately does not
derive from PipelineError so generic error handlers never treat it as a
failure.
"""

from typing import Optional


GATEWAY_TRANSIENT = "transient"
GATEWAY_RATE_LIMITED = "rate_limited"
GATEWAY_INVALID_REQUEST = "invalid_request"

GATEWAY_FAILURE_KINDS = (GATEWAY_TRANSIENT, GATEWAY_RATE_LIMITED, GATEWAY_INVALID_REQUEST)


class PipelineError(Exception):
    """Base class for run failures."""


class DomainRejection(PipelineError):
    def __init__(self, category: str, stage_key: str, text: str = ""):
        self.category = category
        self.stage_key = stage_key
        self.text = text
        super().__init__(f"Stage '{stage_key}' still rejected ({category}) after all pivot attempts")


class ScoreBelowThreshold(PipelineError):
    def __init__(self, score: Optional[int], threshold: int, stage_key: str):
        self.score = score
        self.threshold = threshold
        self.stage_key = stage_key
        super().__init__(f"Stage '{stage_key}' scored {score}/100, below threshold {threshold}")


class GatewayFailure(PipelineError):
    def __init__(self, kind: str, message: str = ""):
        if kind not in GATEWAY_FAILURE_KINDS:
            raise ValueError(f"Unknown gateway failure kind: {kind}")
        self.kind = kind
        super().__init__(f"Gateway {kind}: {message}" if message else f"Gateway {kind}")


class RunCancelled(Exception):
    def __init__(self, stage_key: Optional[str] = None):
        self.stage_key = stage_key
        super().__init__("Pipeline cancelled by user" + (f" at '{stage_key}'" if stage_key else ""))
