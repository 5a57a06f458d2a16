"""Knowledge store: entries, session metrics and evaluations."""

from autodidact.knowledge.models import (
    Evaluation,
    KnowledgeEntry,
    KnowledgeStats,
    SessionMetrics,
)
from autodidact.knowledge.similarity import HashingVectorIndex, SimilarityBackend
from autodidact.knowledge.store import REFERENCE_GAPS, UNRANKED_SCORE, KnowledgeStore

__all__ = [
    "Evaluation",
    "HashingVectorIndex",
    "KnowledgeEntry",
    "KnowledgeStats",
    "KnowledgeStore",
    "REFERENCE_GAPS",
    "SessionMetrics",
    "SimilarityBackend",
    "UNRANKED_SCORE",
]
