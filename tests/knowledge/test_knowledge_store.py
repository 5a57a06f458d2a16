"""Tests for the knowledge store."""

import json

import pytest

from autodidact.errors import InvalidStateError, NotFoundError, StorageError
from autodidact.knowledge import (
    REFERENCE_GAPS,
    UNRANKED_SCORE,
    HashingVectorIndex,
    KnowledgeStore,
    SessionMetrics,
)
from autodidact.knowledge.similarity import SimilarityBackend


class BrokenBackend(SimilarityBackend):
    def index(self, entry):
        raise RuntimeError("index offline")

    def query(self, text, k):
        raise RuntimeError("index offline")


class TestAddAndSearch:
    def test_add_entry_assigns_id_and_timestamp(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        entry = store.add_entry("Python", "Python is a language", tags=["lang"], source="docs")

        assert entry.id
        assert entry.topic == "Python"
        assert entry.tags == ["lang"]
        assert entry.verified is False
        assert entry.created_at is not None

    def test_ids_are_unique_and_ordered(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        ids = [store.add_entry(f"t{i}", "c").id for i in range(20)]
        assert len(set(ids)) == 20
        assert ids == sorted(ids)

    def test_round_trip_search(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        store.add_entry(topic="X", content="Y")

        results = store.search("X")
        assert len(results) == 1
        assert results[0].content == "Y"

    def test_search_is_case_insensitive_over_all_fields(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        a = store.add_entry("Vector Databases", "store embeddings")
        b = store.add_entry("Other", "mentions VECTOR search")
        c = store.add_entry("Tagged", "nothing", tags=["vector"])
        store.add_entry("Unrelated", "nope")

        assert [e.id for e in store.search("vector")] == [a.id, b.id, c.id]

    def test_persists_across_instances(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        store.add_entry("Fact 1", "one")
        store.add_entry("Fact 2", "two")

        reopened = KnowledgeStore.open(temp_dir)
        assert [e.topic for e in reopened.all_entries()] == ["Fact 1", "Fact 2"]

    def test_corrupt_lines_are_skipped(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        store.add_entry("Good", "ok")
        with open(temp_dir / "entries.jsonl", "a") as f:
            f.write("{not json\n\n")

        reopened = KnowledgeStore(storage_dir=temp_dir)
        assert len(reopened.all_entries()) == 1

    def test_add_entry_storage_failure_raises(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        (temp_dir / "entries.jsonl").mkdir()

        with pytest.raises(StorageError):
            store.add_entry("X", "Y")


class TestVerification:
    def test_mark_verified(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        entry = store.add_entry("Topic", "content")

        store.mark_verified(entry.id)

        reopened = KnowledgeStore(storage_dir=temp_dir)
        loaded = reopened.get(entry.id)
        assert loaded.verified is True
        assert loaded.verified_at is not None

    def test_mark_verified_unknown(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        with pytest.raises(NotFoundError):
            store.mark_verified("missing")


class TestSimilaritySearch:
    def test_falls_back_without_backend(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        for i in range(4):
            store.add_entry(f"agents {i}", "agent architectures")

        results = store.similarity_search("agents", k=2)
        assert len(results) == 2
        assert all(score == UNRANKED_SCORE for _, score in results)

    def test_falls_back_when_backend_raises(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir, similarity=BrokenBackend())
        store.add_entry("RAG systems", "retrieval augmented generation")

        results = store.similarity_search("retrieval", k=5)
        assert [(e.topic, s) for e, s in results] == [("RAG systems", UNRANKED_SCORE)]

    def test_ranked_with_vector_index(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir, similarity=HashingVectorIndex())
        store.add_entry("cooking", "pasta sauce tomato basil")
        target = store.add_entry("security", "ethical hacking penetration testing")

        results = store.similarity_search("penetration testing", k=1)
        assert results[0][0].id == target.id
        assert 0 < results[0][1] <= 1.0

    def test_index_rebuilt_on_load(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        store.add_entry("security", "ethical hacking penetration testing")

        reopened = KnowledgeStore(storage_dir=temp_dir, similarity=HashingVectorIndex())
        results = reopened.similarity_search("hacking", k=3)
        assert results[0][0].topic == "security"
        assert results[0][1] != UNRANKED_SCORE


class TestGapsAndTags:
    def test_identify_gaps_default_list(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        assert store.identify_gaps() == list(REFERENCE_GAPS)

        store.add_entry("Intro to Cybersecurity basics", "...")
        gaps = store.identify_gaps()
        assert "cybersecurity" not in gaps
        assert "ethical hacking" in gaps

    def test_identify_gaps_candidates(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        store.add_entry("RAG Systems in production", "...")
        assert store.identify_gaps(["rag systems", "graph databases"]) == ["graph databases"]

    def test_top_tags_ties_by_first_appearance(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        store.add_entry("a", "x", tags=["beta", "alpha"])
        store.add_entry("b", "x", tags=["alpha", "gamma"])
        store.add_entry("c", "x", tags=["gamma"])

        assert store.top_tags(2) == [("alpha", 2), ("gamma", 2)]
        assert store.top_tags(0) == []


class TestSessionsAndStats:
    def test_record_session_and_stats(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        store.add_entry("agent architectures", "...")
        store.record_session(SessionMetrics(session_name="s1", tasks_completed=3, research_time_seconds=1.5))
        store.record_session(SessionMetrics(session_name="s2", tasks_completed=2, research_time_seconds=0.5))
        store.record_evaluation("task", 0.4)
        store.record_evaluation("task", 0.8, entry_id="e1", passed=True)

        stats = store.get_stats()
        assert stats.count == 1
        assert stats.session_count == 2
        assert stats.total_tasks == 5
        assert stats.total_research_time_seconds == pytest.approx(2.0)
        assert stats.avg_score == pytest.approx(0.6)
        assert "agent architectures" not in stats.gaps

    def test_session_record_is_plain_json(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        store.record_session(SessionMetrics(session_name="s1", knowledge_gaps=["RAG systems"]))

        line = (temp_dir / "sessions.jsonl").read_text().strip()
        data = json.loads(line)
        assert data["session_name"] == "s1"
        assert data["knowledge_gaps"] == ["RAG systems"]
        assert "recorded_at" in data

    def test_average_score_empty(self, temp_dir):
        assert KnowledgeStore(storage_dir=temp_dir).average_score() == 0.0

    def test_export(self, temp_dir):
        store = KnowledgeStore(storage_dir=temp_dir)
        store.add_entry("t", "c", tags=["x"])
        exported = store.export()
        assert exported[0]["topic"] == "t"
        assert exported[0]["tags"] == ["x"]


class TestLifecycle:
    def test_closed_store_rejects_calls(self, temp_dir):
        store = KnowledgeStore.open(temp_dir)
        store.close()
        with pytest.raises(InvalidStateError):
            store.add_entry("t", "c")

    def test_context_manager_closes(self, temp_dir):
        with KnowledgeStore.open(temp_dir) as store:
            store.add_entry("t", "c")
        with pytest.raises(InvalidStateError):
            store.search("t")
