"""
Similarity functions used by the in-memory searcher.

Each similarity scores one term against the documents that contain it, in
a single vectorized call:

    similarity.score(tf, doc_lengths, term_stats, field_stats) -> scores

BM25 (probabilistic term frequency, Lucene variant):
    idf(t)   = log(1 + (N - df + 0.5) / (df + 0.5))
    norm(D)  = 1 - b + b * (|D| / avgdl)
    s(t, D)  = idf(t) * tf / (tf + k1 * norm(D))

Query likelihood with Dirichlet smoothing:
    s(t, D)  = log(1 + tf / (mu * P(t|C))) + log(mu / (|D| + mu))

The Dirichlet score is not clamped: long documents that mention a common
term once score below zero, which is what the relevance-model estimator
uses to recognise log-domain result lists.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import numpy as np

from ranking_expanded.errors import ConfigurationError

if TYPE_CHECKING:
    from numpy.typing import NDArray


@dataclass(frozen=True)
class TermStatistics:
    """Collection statistics for one term within one field."""

    doc_freq: int
    collection_freq: int


@dataclass(frozen=True)
class FieldStatistics:
    """Collection statistics for one field."""

    doc_count: int  # documents with at least one token in the field
    total_tokens: int

    @property
    def average_length(self) -> float:
        return self.total_tokens / self.doc_count if self.doc_count > 0 else 1.0


class Similarity(Protocol):
    name: str

    def score(
        self,
        tf: NDArray[np.float64],
        doc_lengths: NDArray[np.float64],
        term: TermStatistics,
        field: FieldStatistics,
    ) -> NDArray[np.float64]: ...


class BM25Similarity:
    """BM25 as scored by Lucene's BM25Similarity (no (k1 + 1) numerator)."""

    name = "bm25"

    def __init__(self, k1: float = 1.2, b: float = 0.75):
        self.k1 = k1
        self.b = b

    @staticmethod
    def idf(doc_freq: int, doc_count: int) -> float:
        return math.log(1 + (doc_count - doc_freq + 0.5) / (doc_freq + 0.5))

    def score(
        self,
        tf: NDArray[np.float64],
        doc_lengths: NDArray[np.float64],
        term: TermStatistics,
        field: FieldStatistics,
    ) -> NDArray[np.float64]:
        idf = self.idf(term.doc_freq, field.doc_count)
        norm = 1 - self.b + self.b * (doc_lengths / field.average_length)
        return idf * tf / (tf + self.k1 * norm)


class LMDirichletSimilarity:
    """Query likelihood with Dirichlet prior smoothing."""

    name = "ql"

    def __init__(self, mu: float = 1500.0):
        self.mu = mu

    def collection_probability(self, term: TermStatistics, field: FieldStatistics) -> float:
        """P(t | C) = collection frequency / total tokens; only scored terms have postings."""
        return term.collection_freq / field.total_tokens

    def score(
        self,
        tf: NDArray[np.float64],
        doc_lengths: NDArray[np.float64],
        term: TermStatistics,
        field: FieldStatistics,
    ) -> NDArray[np.float64]:
        mu = self.mu
        p_collection = self.collection_probability(term, field)
        return np.log1p(tf / (mu * p_collection)) + np.log(mu / (doc_lengths + mu))


SIMILARITIES = ("bm25", "ql", "default")


def get_similarity(name: str) -> Similarity:
    """
    Similarity selected by run-level name.

    ``default`` is the engine's own default, which (as in Lucene) is BM25
    with its standard parameters.
    """
    if name == "bm25":
        return BM25Similarity()
    if name == "ql":
        return LMDirichletSimilarity(mu=1500.0)
    if name == "default":
        return BM25Similarity()
    raise ConfigurationError(
        f"Unknown retrieval model '{name}', expected one of {list(SIMILARITIES)}"
    )


__all__ = [
    "TermStatistics",
    "FieldStatistics",
    "Similarity",
    "BM25Similarity",
    "LMDirichletSimilarity",
    "SIMILARITIES",
    "get_similarity",
]
