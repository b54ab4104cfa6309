import pytest

from pitch_pipeline.cancellation import CancellationToken
from pitch_pipeline.errors import RunCancelled
from pitch_pipeline.knowledge import KnowledgeChunk, StaticRetriever, retrieve_context


class ListRetriever:
    def __init__(self, chunks):
        self.chunks = chunks

    def retrieve(self, query, top_k):
        return self.chunks


class BrokenRetriever:
    def retrieve(self, query, top_k):
        raise ConnectionError("vector store offline")


def test_no_retriever_or_query_yields_nothing():
    assert retrieve_context(None, "octopus") == ""
    assert retrieve_context(ListRetriever([KnowledgeChunk("x", 0.9, "a")]), "") == ""


def test_low_relevance_chunks_are_dropped():
    retriever = ListRetriever([
        KnowledgeChunk("weak match", 0.3, "weak.pdf"),
        KnowledgeChunk("strong match", 0.82, "strong.pdf"),
    ])

    block = retrieve_context(retriever, "octopus")

    assert block.startswith("### Relevant Research from Knowledge Base")
    assert "[Source 1] (relevance: 82%) strong.pdf" in block
    assert "weak.pdf" not in block


def test_retriever_errors_are_swallowed():
    assert retrieve_context(BrokenRetriever(), "octopus") == ""


def test_static_retriever_ranks_by_overlap():
    retriever = StaticRetriever([
        ("reef.pdf", "reef survey"),
        ("shells.pdf", "octopus carries coconut shells"),
    ])

    chunks = retriever.retrieve("octopus coconut shells", top_k=5)

    assert [c.source_id for c in chunks] == ["shells.pdf"]
    assert chunks[0].relevance_score == 1.0


def test_cancellation_token():
    token = CancellationToken()
    token.raise_if_cancelled("discovery")
    assert not token.is_set

    token.cancel()

    assert token.is_set
    with pytest.raises(RunCancelled) as excinfo:
        token.raise_if_cancelled("fact_sheet")
    assert excinfo.value.stage_key == "fact_sheet"
