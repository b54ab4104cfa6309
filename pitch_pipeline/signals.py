"""
Signal extraction from free agent text.

Every function here is pure and deterministic: no I/O, no gateway calls, and
None or non-string input is treated as empty text rather than raising.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union


REJECTION_VALIDITY = "validity"
REJECTION_POLICY = "policy"
REJECTION_GENERIC = "generic"

# Ordered by priority: the first category with a matching marker wins.
REJECTION_MARKERS = (
    (REJECTION_VALIDITY, ("SCIENTIFIC REJECTION",)),
    (REJECTION_POLICY, ("ETHICAL REJECTION",)),
    (REJECTION_GENERIC, ("PIPELINE HALT RECOMMENDED",)),
)

# Most specific label first; the first pattern with an in-range match wins.
SCORE_PATTERNS = (
    ("greenlight", re.compile(r"Greenlight\s*Score[\s:*]*(\d{1,3})\s*/\s*100", re.I)),
    ("labeled", re.compile(r"[A-Za-z]+\s+Score[\s:*]*(\d{1,3})\s*/\s*100", re.I)),
    ("score", re.compile(r"Score[\s:*]*(\d{1,3})\s*/\s*100", re.I)),
    ("bare", re.compile(r"(?<!\d)(\d{1,3})\s*/\s*100(?!\d)")),
)

VETO_MARKERS = ("BURN IT DOWN",)


@dataclass(frozen=True)
class RejectionSignal:
    category: str


@dataclass(frozen=True)
class ScoreSignal:
    score: int


@dataclass(frozen=True)
class NoSignal:
    reason: str = "none"  # "none" | "empty"


Signal = Union[RejectionSignal, ScoreSignal, NoSignal]


def _as_text(text) -> str:
    return text if isinstance(text, str) else ""


def detect_rejection(text) -> Optional[RejectionSignal]:
    upper = _as_text(text).upper()
    if not upper:
        return None
    for category, markers in REJECTION_MARKERS:
        if any(marker in upper for marker in markers):
            return RejectionSignal(category)
    return None


def extract_score(text) -> Optional[int]:
    """Return the first in-range score found by the highest-priority matching pattern."""
    body = _as_text(text)
    if not body:
        return None
    for _name, pattern in SCORE_PATTERNS:
        for match in pattern.finditer(body):
            value = int(match.group(1))
            if 0 <= value <= 100:
                return value
    return None


def extract_signal(text) -> Signal:
    body = _as_text(text)
    if not body.strip():
        return NoSignal("empty")
    rejection = detect_rejection(body)
    if rejection:
        return rejection
    score = extract_score(body)
    if score is not None:
        return ScoreSignal(score)
    return NoSignal("none")


def detect_verdict_veto(text) -> bool:
    """Gatekeeper hard reject: explicit kill phrase, or REJECTED without GREENLIT."""
    upper = _as_text(text).upper()
    if any(marker in upper for marker in VETO_MARKERS):
        return True
    return "REJECTED" in upper and "GREENLIT" not in upper


def extract_field(text, labels: Iterable[str], stop_chars: str = "\n") -> Optional[str]:
    """
    Pull the value following the first "<label>...: value" occurrence.

    Used as the extraction rule for derived constraints (e.g. the hero species
    named in a fact sheet). Markdown emphasis around the value is trimmed.
    """
    body = _as_text(text)
    label_list = [re.escape(label) for label in labels if label]
    if not body or not label_list:
        return None
    stop = re.escape(stop_chars) if stop_chars else ""
    value_class = f"[^{stop}\n]+" if stop else "[^\n]+"
    pattern = re.compile(rf"(?:{'|'.join(label_list)})[^:\n]*:\s*\**\s*({value_class})", re.I)
    match = pattern.search(body)
    if not match:
        return None
    value = match.group(1).strip().strip("*").strip()
    return value or None


def sanitize_final_output(text) -> str:
    """Strip role-play preambles, routing notes and wrapper fences from a final artifact."""
    cleaned = _as_text(text)

    cleaned = re.sub(r"^```(?:markdown|md)?\s*\n([\s\S]*?)\n```\s*$", r"\1", cleaned, flags=re.I)

    # "Okay, Showrunner here. Processing the..."
    cleaned = re.sub(
        r"^(?:Okay|Alright|Right)[,.]\s*(?:Showrunner|Editor|Scientist|Producer|Analyst|Gatekeeper)\s+here[.!]?"
        r"[\s\S]*?(?=(?:^#|^\*\*Working Title|^\*\*Master Pitch))",
        "", cleaned, count=1, flags=re.I | re.M,
    )

    cleaned = re.sub(
        r"\n*(?:^|\n)\*\*Action Items[:\s]*\*\*[\s\S]*?"
        r"(?=(?:^#{1,3} |^\*\*(?:Working Title|Logline|Executive Summary)))",
        "", cleaned, count=1, flags=re.I | re.M,
    )
    cleaned = re.sub(
        r"\n*(?:^|\n)Action Items:[\s\S]*?(?=(?:^#{1,3} |^\*\*(?:Working Title|Logline|Executive Summary)))",
        "", cleaned, count=1, flags=re.I | re.M,
    )

    cleaned = re.sub(r"\(Routed to [^)]+\)", "", cleaned, flags=re.I)
    cleaned = re.sub(r"^Processing the[\s\S]*?(?=(?:^#|^\*\*))", "", cleaned, count=1, flags=re.I | re.M)

    return cleaned.lstrip()
