"""Tests for semantic search over stored chunks and entries."""

import pytest

from kb_core.db import KnowledgeChunk
from kb_core.exceptions import EmbeddingUnavailableError, InvalidInputError
from kb_core.knowledge import EmbeddingService, KnowledgeSearch, encode_vector, normalize

from .conftest import DIMENSION, ScriptedProvider, hash_vector

TEXT = "Microdosing is popular. It may have benefits. Evidence is mixed."


@pytest.fixture()
def indexed(workflow):
    """Two indexed entries of different source types."""
    first, _ = workflow.index_entry("Microdosing", "text", TEXT)
    second, _ = workflow.index_entry("Sleep", "qna", "Sleep matters a lot. Aim for eight hours.")
    return first, second


class TestSearchChunks:
    """Test chunk ranking."""

    def test_exact_text_ranks_first(self, search, indexed):
        first, _ = indexed

        results = search.search_chunks("Microdosing is popular.")

        top = results[0]
        assert top.parent_id == first
        assert top.chunk_index == 0
        assert top.title == "Microdosing"
        assert top.content == "Microdosing is popular."
        assert top.score == pytest.approx(1.0, abs=1e-6)

    def test_scores_are_descending_and_bounded(self, search, indexed):
        results = search.search_chunks("Anything at all", min_score=-1.0, limit=10)

        scores = [r.score for r in results]
        assert len(results) == 4
        assert scores == sorted(scores, reverse=True)
        assert all(-1.0 <= s <= 1.0 for s in scores)

    def test_min_score_and_limit(self, search, indexed):
        assert len(search.search_chunks("Sleep matters a lot.", min_score=0.999)) == 1
        assert len(search.search_chunks("Anything", min_score=-1.0, limit=2)) == 2

    def test_ties_break_by_parent_then_index(self, workflow, search):
        first, _ = workflow.index_entry("One", "text", "Same sentence.")
        second, _ = workflow.index_entry("Two", "text", "Same sentence.")

        results = search.search_chunks("Same sentence.", min_score=0.999)

        assert [r.parent_id for r in results] == [first, second]

    def test_source_type_filter(self, search, indexed):
        _, second = indexed

        results = search.search_chunks("Anything", min_score=-1.0, limit=10, source_type="qna")

        assert {r.parent_id for r in results} == {second}
        assert all(r.source_type == "qna" for r in results)

    def test_unusable_embeddings_are_skipped(self, search, session, indexed):
        first, _ = indexed
        chunks = session.query(KnowledgeChunk).filter(KnowledgeChunk.parent_id == first).all()
        chunks[0].embedding = "not json"
        chunks[1].embedding = encode_vector(normalize(hash_vector("short", DIMENSION - 2)))
        session.commit()

        results = search.search_chunks("Microdosing is popular.", min_score=-1.0, limit=10)

        assert all(r.parent_id != first for r in results)
        assert len(results) == 2

    def test_orphan_chunks_are_excluded(self, search, session, indexed):
        query = "Microdosing is popular."
        session.add(KnowledgeChunk(
            parent_id=999,
            source_type="text",
            chunk_index=0,
            content=query,
            embedding=encode_vector(normalize(hash_vector(query))),
        ))
        session.commit()

        results = search.search_chunks(query, min_score=-1.0, limit=10)

        assert all(r.parent_id != 999 for r in results)

    def test_empty_store(self, search):
        assert search.search_chunks("Anything") == []

    @pytest.mark.parametrize("limit", [0, -1, True, "5", 2.0])
    def test_invalid_limit(self, search, provider, limit):
        with pytest.raises(InvalidInputError):
            search.search_chunks("Anything", limit=limit)
        assert provider.calls == []

    @pytest.mark.parametrize("query", ["", "   ", None, "<p></p>"])
    def test_blank_query(self, search, query):
        with pytest.raises(InvalidInputError):
            search.search_chunks(query)

    def test_provider_failure_propagates(self, store, indexed):
        search = KnowledgeSearch(store, EmbeddingService(ScriptedProvider(fail_on=[1]), dimension=DIMENSION))

        with pytest.raises(EmbeddingUnavailableError):
            search.search_chunks("Microdosing is popular.")

    def test_result_to_dict(self, search, indexed):
        result = search.search_chunks("Microdosing is popular.", limit=1)[0]

        assert set(result.to_dict()) == {
            'id', 'parent_id', 'title', 'source_type', 'chunk_index', 'content', 'score'
        }


class TestSearchEntries:
    """Test whole-entry ranking."""

    def test_exact_content_ranks_first(self, search, indexed):
        first, second = indexed

        results = search.search_entries(TEXT, min_score=-1.0)

        assert [r.id for r in results] == [first, second]
        assert results[0].score == pytest.approx(1.0, abs=1e-6)
        assert results[0].chunk_index is None
        assert results[0].parent_id == first

    def test_source_type_filter(self, search, indexed):
        _, second = indexed

        results = search.search_entries("Anything", min_score=-1.0, source_type="qna")

        assert [r.id for r in results] == [second]

    def test_invalid_source_type(self, search, indexed):
        with pytest.raises(InvalidInputError):
            search.search_entries("Anything", source_type="bogus")
