"""
Knowledge retrieval blending.

The retrieval/ranking subsystem itself is external; this module only merges
what a retriever returns into a prompt block. Retrieval is best-effort: an
absent retriever, an empty result, or a retriever error all yield "".
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
MIN_RELEVANCE = 0.3


@dataclass(frozen=True)
class KnowledgeChunk:
    text: str
    relevance_score: float
    source_id: str


class KnowledgeRetriever(Protocol):
    def retrieve(self, query: str, top_k: int) -> List[KnowledgeChunk]:
        ...


class StaticRetriever:
    """Ranks a fixed set of documents by word overlap with the query."""

    def __init__(self, documents: Sequence[tuple]):
        # documents: (source_id, text)
        self.documents = list(documents)

    @staticmethod
    def _words(text: str) -> set:
        return set(re.findall(r"[a-z0-9]+", (text or "").lower()))

    def retrieve(self, query: str, top_k: int) -> List[KnowledgeChunk]:
        query_words = self._words(query)
        if not query_words:
            return []
        chunks = []
        for source_id, text in self.documents:
            overlap = len(query_words & self._words(text))
            if overlap:
                chunks.append(KnowledgeChunk(text, overlap / len(query_words), source_id))
        chunks.sort(key=lambda c: c.relevance_score, reverse=True)
        return chunks[:top_k]


def retrieve_context(retriever: Optional[KnowledgeRetriever], query: str,
                     top_k: int = DEFAULT_TOP_K, min_relevance: float = MIN_RELEVANCE) -> str:
    """Format the top relevant chunks as a prompt block, or "" when nothing qualifies."""
    if retriever is None or not query:
        return ""
    try:
        chunks = list(retriever.retrieve(query, top_k))
    except Exception as e:
        logger.warning("[knowledge] retrieval skipped: %s", e)
        return ""

    chunks.sort(key=lambda c: c.relevance_score, reverse=True)
    relevant = [c for c in chunks[:top_k] if c.relevance_score > min_relevance]
    if not relevant:
        return ""
    logger.info("[knowledge] retrieved %d chunks", len(relevant))

    blocks = [
        f"[Source {i}] (relevance: {round(c.relevance_score * 100)}%) {c.source_id}\n{c.text}"
        for i, c in enumerate(relevant, start=1)
    ]
    return "### Relevant Research from Knowledge Base\n\n" + "\n\n---\n\n".join(blocks)
