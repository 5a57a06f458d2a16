"""Similarity backends for ranked knowledge lookup.

The store treats a backend as optional: when none is configured, or when
the backend raises, lookups degrade to keyword search.
"""

import hashlib
import re
from abc import ABC, abstractmethod

import numpy as np

from autodidact.knowledge.models import KnowledgeEntry

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class SimilarityBackend(ABC):
    """Interface for a ranked similarity index over knowledge entries."""

    @abstractmethod
    def index(self, entry: KnowledgeEntry) -> None:
        """Add or replace an entry in the index."""

    @abstractmethod
    def query(self, text: str, k: int) -> list[tuple[str, float]]:
        """Return up to ``k`` ``(entry_id, score)`` pairs, best first."""

    def rebuild(self, entries: list[KnowledgeEntry]) -> None:
        for entry in entries:
            self.index(entry)


def _tokens(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


class HashingVectorIndex(SimilarityBackend):
    """In-memory cosine index over hashed bag-of-words vectors."""

    def __init__(self, dim: int = 384):
        self.dim = dim
        self._ids: list[str] = []
        self._rows: dict[str, np.ndarray] = {}

    def embed(self, text: str) -> np.ndarray:
        vec = np.zeros(self.dim, dtype=np.float32)
        for token in _tokens(text):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dim
            sign = 1.0 if digest[4] & 1 else -1.0
            vec[bucket] += sign
        norm = np.linalg.norm(vec)
        return vec / norm if norm > 0 else vec

    def index(self, entry: KnowledgeEntry) -> None:
        text = " ".join([entry.topic, entry.content, " ".join(entry.tags)])
        if entry.id not in self._rows:
            self._ids.append(entry.id)
        self._rows[entry.id] = self.embed(text)

    def query(self, text: str, k: int) -> list[tuple[str, float]]:
        if not self._ids or k <= 0:
            return []
        q = self.embed(text)
        if not q.any():
            return []

        matrix = np.stack([self._rows[i] for i in self._ids])
        scores = matrix @ q
        order = np.argsort(-scores, kind="stable")[:k]
        return [(self._ids[i], float(scores[i])) for i in order if scores[i] > 0]

    def __len__(self) -> int:
        return len(self._ids)
