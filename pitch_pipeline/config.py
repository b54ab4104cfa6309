"""
Runtime configuration.

Environment-level settings are read once at import (after load_dotenv).
Per-run options travel with each submission as a RunOptions model.
"""

import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

MONGODB_URI = os.getenv('MONGODB_URI', 'mongodb://localhost:27017/')
MONGODB_DB_NAME = os.getenv('MONGODB_DB_NAME', 'pitch_db')

GATEWAY_PROVIDER = os.getenv('PITCH_GATEWAY_PROVIDER', 'anthropic')
ANTHROPIC_API_KEY = os.getenv('ANTHROPIC_API_KEY')
ANTHROPIC_MODEL = os.getenv('ANTHROPIC_MODEL', 'claude-sonnet-4-20250514')
GOOGLE_API_KEY = os.getenv('GOOGLE_API_KEY')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')
MAX_OUTPUT_TOKENS = int(os.getenv('PITCH_MAX_OUTPUT_TOKENS', '8192'))

SCORE_THRESHOLD = int(os.getenv('PITCH_SCORE_THRESHOLD', '85'))
GATEKEEPER_THRESHOLD = int(os.getenv('PITCH_GATEKEEPER_THRESHOLD', '40'))
CHECKPOINT_SLOT = os.getenv('PITCH_CHECKPOINT_SLOT', 'current')

DEFAULT_MAX_REVISIONS = 3
MAX_REVISIONS_LIMIT = 10

ON_EXHAUSTED_BEST_EFFORT = "best_effort"
ON_EXHAUSTED_HARD_FAIL = "hard_fail"

MODE_PITCH = "pitch"  # develop a seed idea into a pitch
MODE_ASSESSMENT = "assessment"  # assess and optimize a submitted script


class RunOptions(BaseModel):
    """Standing directives and loop bounds for a single run."""

    audience: Optional[str] = None  # target platform, e.g. "Netflix"
    delivery_year: Optional[int] = None  # year the show airs, not when it is shot
    creative_lock: Optional[str] = None  # genre lock selector
    directive: Optional[str] = None  # one-off directive for externally triggered reruns
    mode: Literal["pitch", "assessment"] = MODE_PITCH
    production_year: Optional[int] = Field(default=None, ge=1900, le=2100)  # assessment era calibration
    max_revisions: int = Field(default=DEFAULT_MAX_REVISIONS, ge=0, le=MAX_REVISIONS_LIMIT)
    on_exhausted: Literal["best_effort", "hard_fail"] = ON_EXHAUSTED_BEST_EFFORT
    score_threshold: int = Field(default=SCORE_THRESHOLD, ge=0, le=100)

    def standing_directives(self) -> dict:
        return self.model_dump()
