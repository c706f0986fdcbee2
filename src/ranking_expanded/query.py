"""
Disjunctive ranked query construction.

A query string is analysed, capped at MAX_QUERY_TOKENS tokens and crossed
with the configured search fields; every (field, token) pair becomes one OR
clause. Expanded (RM3) queries append relevance-model terms, boosted by
their weights, after the original tokens of each field group.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import NamedTuple

# Keeps fields x tokens below the searcher's boolean clause limit
MAX_QUERY_TOKENS = 64
MAX_FIELDS_WITHOUT_WARNING = 20


class TermWeight(NamedTuple):
    term: str
    weight: float


@dataclass(frozen=True)
class Clause:
    field: str
    term: str
    boost: float = 1.0


@dataclass(frozen=True)
class RankedQuery:
    """OR-combined clauses, in construction order."""

    clauses: tuple[Clause, ...] = ()

    def __len__(self) -> int:
        return len(self.clauses)

    def __iter__(self) -> Iterator[Clause]:
        return iter(self.clauses)

    def terms(self, field: str) -> list[str]:
        return [clause.term for clause in self.clauses if clause.field == field]


class QueryBuilder:
    """
    Builds plain and RM3-expanded ranked queries over a set of search fields.

    Args:
        tokenize: Analyzer entry point, ``tokenize(text, field) -> tokens``.
        search_fields: Fields every query term is searched in.
        text_field: Field whose analysis is used for query text.
    """

    def __init__(
        self,
        tokenize: Callable[[str, str], list[str]],
        search_fields: Sequence[str],
        text_field: str,
    ):
        self._tokenize = tokenize
        self.search_fields = list(search_fields)
        self.text_field = text_field
        if len(self.search_fields) > MAX_FIELDS_WITHOUT_WARNING:
            warnings.warn(
                f"Searching {len(self.search_fields)} fields; more than "
                f"{MAX_FIELDS_WITHOUT_WARNING} fields may exceed the allowable "
                "number of 1024 boolean clauses.",
                stacklevel=2,
            )

    def tokens(self, query_text: str) -> list[str]:
        """Analysed query tokens, truncated to MAX_QUERY_TOKENS."""
        return self._tokenize(query_text, self.text_field)[:MAX_QUERY_TOKENS]

    def add_tokens(self, content: str, weight: float, term_weights: dict[str, float]) -> None:
        """Add ``weight`` to ``term_weights`` once per token of ``content``."""
        for token in self._tokenize(content, self.text_field):
            term_weights[token] = term_weights.get(token, 0.0) + weight

    def to_query(self, query_text: str) -> RankedQuery:
        tokens = self.tokens(query_text)
        return RankedQuery(
            tuple(Clause(field, token) for field in self.search_fields for token in tokens)
        )

    def to_rm3_query(self, query_text: str, relevance_model: Sequence[TermWeight]) -> RankedQuery:
        """
        Plain clauses followed by boosted expansion clauses.

        Each field receives at most ``MAX_QUERY_TOKENS - len(tokens)`` expansion
        terms, taken from the front of ``relevance_model``; a shorter model is
        used in full.
        """
        tokens = self.tokens(query_text)
        expansion = list(relevance_model[: max(MAX_QUERY_TOKENS - len(tokens), 0)])

        clauses = [Clause(field, token) for field in self.search_fields for token in tokens]
        for field in self.search_fields:
            clauses.extend(Clause(field, term, float(weight)) for term, weight in expansion)
        return RankedQuery(tuple(clauses))


__all__ = [
    "MAX_QUERY_TOKENS",
    "MAX_FIELDS_WITHOUT_WARNING",
    "TermWeight",
    "Clause",
    "RankedQuery",
    "QueryBuilder",
]
