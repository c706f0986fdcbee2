"""
Relevance model (RM3-style) estimation from an initial retrieval.

Algorithm:
1. Retrieve the top ``feedback_docs`` hits for the plain query.
2. Seed the term weights with the query text itself (weight 1.0 per token).
3. Pick the score regime from the first hit (negative -> log domain).
4. Normalise hit scores into feedback weights:
       log domain:    w_i = s_i - log(sum_j exp(s_j))
       linear domain: w_i = s_i / sum_j s_j
5. Add every hit's stored text with its feedback weight.
6. Keep the ``expansion_terms`` heaviest terms.

With no feedback hits the model is just the query terms, weight 1.0 each.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import TYPE_CHECKING, Protocol

import numpy as np
from scipy.special import logsumexp

from ranking_expanded.query import QueryBuilder, RankedQuery, TermWeight

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from ranking_expanded.index import ScoredHit

DEFAULT_FEEDBACK_DOCS = 20
DEFAULT_EXPANSION_TERMS = 20


class SearcherProtocol(Protocol):
    def tokenize(self, text: str, field: str | None = None) -> list[str]: ...

    def search(self, query: RankedQuery, limit: int) -> list[ScoredHit]: ...

    def stored_field(self, hit: ScoredHit, name: str) -> str: ...


class ScoreRegime(str, Enum):
    LOG = "log"
    LINEAR = "linear"


def detect_score_regime(scores: NDArray[np.float64]) -> ScoreRegime:
    """
    Guess whether ``scores`` are log probabilities.

    Policy: ``LOG if scores[0] < 0 else LINEAR``. Only the first (best) score
    is inspected; an empty result list counts as linear.
    """
    if len(scores) > 0 and scores[0] < 0.0:
        return ScoreRegime.LOG
    return ScoreRegime.LINEAR


def feedback_weights(scores: NDArray[np.float64], regime: ScoreRegime) -> NDArray[np.float64]:
    """Normalise retrieval scores into per-document feedback weights."""
    scores = np.asarray(scores, dtype=np.float64)
    if len(scores) == 0:
        return scores
    if regime is ScoreRegime.LOG:
        return scores - logsumexp(scores)
    normalizer = scores.sum()
    if normalizer == 0.0:
        return np.zeros_like(scores)
    return scores / normalizer


class RelevanceModelEstimator:
    """
    Estimates expansion terms for a query from its own top-ranked documents.

    Args:
        searcher: Executes the feedback query and serves stored text.
        query_builder: Builds the plain feedback query and tokenizes text.
        text_field: Stored field holding each document's full text
            (default: the query builder's text field).
        verbose: Print the selected expansion terms to stderr.
    """

    def __init__(
        self,
        searcher: SearcherProtocol,
        query_builder: QueryBuilder,
        text_field: str | None = None,
        verbose: bool = False,
    ):
        self.searcher = searcher
        self.query_builder = query_builder
        self.text_field = text_field or query_builder.text_field
        self.verbose = verbose

    def estimate(
        self,
        query_text: str,
        feedback_docs: int = DEFAULT_FEEDBACK_DOCS,
        expansion_terms: int = DEFAULT_EXPANSION_TERMS,
    ) -> list[TermWeight]:
        query = self.query_builder.to_query(query_text)
        hits = self.searcher.search(query, feedback_docs)

        if not hits:
            terms = dict.fromkeys(self.searcher.tokenize(query_text, self.query_builder.text_field))
            return [TermWeight(term, 1.0) for term in list(terms)[:expansion_terms]]

        term_weights: dict[str, float] = {}
        self.query_builder.add_tokens(query_text, 1.0, term_weights)

        scores = np.array([hit.score for hit in hits], dtype=np.float64)
        regime = detect_score_regime(scores)
        weights = feedback_weights(scores, regime)

        for hit, weight in zip(hits, weights, strict=True):
            fulltext = self.searcher.stored_field(hit, self.text_field)
            self.query_builder.add_tokens(fulltext, float(weight), term_weights)

        ranked = sorted(term_weights.items(), key=lambda item: item[1], reverse=True)
        expansion = [TermWeight(term, weight) for term, weight in ranked[:expansion_terms]]

        if self.verbose:
            print(f"Expansions ({regime.value}) {expansion}", file=sys.stderr, flush=True)
        return expansion


__all__ = [
    "DEFAULT_FEEDBACK_DOCS",
    "DEFAULT_EXPANSION_TERMS",
    "ScoreRegime",
    "detect_score_regime",
    "feedback_weights",
    "RelevanceModelEstimator",
]
