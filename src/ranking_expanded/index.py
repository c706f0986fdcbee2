"""
In-memory multi-field index and searcher.

The index keeps, per analysed field:
1. Vocabulary - term -> term id
2. Sparse Matrix - CSR (vocab_size, N_docs) term frequencies
3. Pre-computed arrays - document lengths, document/collection frequencies

Documents are kept as their original dicts so that any field can be read
back as a stored value (document id, full text, ...).

Usage:
    from ranking_expanded.analysis import get_tokenizer
    from ranking_expanded.index import Index, Searcher
    from ranking_expanded.similarity import get_similarity

    index = Index(documents, get_tokenizer("english"))
    searcher = Searcher(index, get_similarity("bm25"))
    hits = searcher.search(query, limit=100)
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np
from scipy.sparse import csr_matrix
from tqdm import tqdm

from ranking_expanded.errors import DataIntegrityError, RetrievalError
from ranking_expanded.similarity import (
    BM25Similarity,
    FieldStatistics,
    Similarity,
    TermStatistics,
)

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from ranking_expanded.query import RankedQuery

# Lucene's default BooleanQuery clause limit
MAX_CLAUSE_COUNT = 1024


@dataclass(frozen=True)
class ScoredHit:
    """One ranked result: internal document handle, raw score, 1-based rank."""

    doc: int
    score: float
    rank: int


# =============================================================================
# Field Index
# =============================================================================


class FieldIndex:
    """Inverted statistics for a single analysed field."""

    def __init__(self, name: str, documents: list[list[str]]):
        self.name = name
        self.N = len(documents)
        self.doc_lengths = np.array([len(d) for d in documents], dtype=np.float64)

        self._vocab: dict[str, int] = {}
        rows: list[int] = []
        cols: list[int] = []
        counts: list[int] = []
        for doc_idx, doc in enumerate(documents):
            for term, count in Counter(doc).items():
                tid = self._vocab.setdefault(term, len(self._vocab))
                rows.append(tid)
                cols.append(doc_idx)
                counts.append(count)
        self.vocab_size = len(self._vocab)

        self.tf_matrix = csr_matrix(
            (
                np.array(counts, dtype=np.float64),
                (np.array(rows, dtype=np.int64), np.array(cols, dtype=np.int64)),
            ),
            shape=(self.vocab_size, self.N),
        )
        self.tf_matrix.sort_indices()

        self._df = np.diff(self.tf_matrix.indptr)
        self._cf = np.asarray(self.tf_matrix.sum(axis=1), dtype=np.float64).ravel()
        self.statistics = FieldStatistics(
            doc_count=int(np.count_nonzero(self.doc_lengths)),
            total_tokens=int(self.doc_lengths.sum()),
        )

    def __contains__(self, term: str) -> bool:
        return term in self._vocab

    def get_term_id(self, term: str) -> int | None:
        return self._vocab.get(term)

    def term_statistics(self, term: str) -> TermStatistics:
        tid = self._vocab.get(term)
        if tid is None:
            return TermStatistics(doc_freq=0, collection_freq=0)
        return TermStatistics(doc_freq=int(self._df[tid]), collection_freq=int(self._cf[tid]))

    def postings(self, term: str) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
        """Documents containing ``term`` (ascending) and their term frequencies."""
        tid = self._vocab.get(term)
        if tid is None:
            return np.array([], dtype=np.int64), np.array([], dtype=np.float64)
        start, end = self.tf_matrix.indptr[tid], self.tf_matrix.indptr[tid + 1]
        docs = self.tf_matrix.indices[start:end].astype(np.int64)
        return docs, self.tf_matrix.data[start:end]


# =============================================================================
# Index
# =============================================================================


class Index:
    """
    Collection of stored documents with one FieldIndex per analysed field.

    Args:
        documents: Stored field values per document.
        tokenizer: Analyzer applied to every indexed field.
        fields: Fields to analyse (default: every field holding text).
        progress: Show a progress bar while tokenizing.
    """

    def __init__(
        self,
        documents: list[dict[str, Any]],
        tokenizer: Callable[[str], list[str]],
        fields: Iterable[str] | None = None,
        progress: bool = False,
    ):
        self.documents = documents
        self.tokenizer = tokenizer
        self.N = len(documents)

        if fields is None:
            fields = sorted(
                {key for doc in documents for key, value in doc.items() if isinstance(value, str)}
            )
        field_names = list(fields)

        tokens: dict[str, list[list[str]]] = {name: [] for name in field_names}
        for doc in tqdm(documents, desc="Tokenizing", unit="doc", disable=not progress):
            for name in field_names:
                value = doc.get(name)
                tokens[name].append(tokenizer(value) if isinstance(value, str) else [])

        self._fields = {name: FieldIndex(name, tokens[name]) for name in field_names}

    def __len__(self) -> int:
        return self.N

    @classmethod
    def from_huggingface_dataset(
        cls,
        dataset,
        tokenizer: Callable[[str], list[str]],
        fields: Iterable[str] | None = None,
        progress: bool = True,
    ) -> Index:
        documents = [dict(doc) for doc in dataset]
        return cls(documents, tokenizer, fields=fields, progress=progress)

    @property
    def fields(self) -> list[str]:
        return list(self._fields)

    def field(self, name: str) -> FieldIndex | None:
        return self._fields.get(name)

    def stored_field(self, doc: int, name: str) -> str:
        value = self.documents[doc].get(name)
        if value is None:
            raise DataIntegrityError(doc, name)
        return str(value)


# =============================================================================
# Searcher
# =============================================================================


class Searcher:
    """
    Executes disjunctive ranked queries against an Index.

    A document is a candidate if it matches at least one clause; its score is
    the sum of ``boost * similarity`` over the clauses it matches.
    """

    def __init__(
        self,
        index: Index,
        similarity: Similarity | None = None,
        max_clause_count: int = MAX_CLAUSE_COUNT,
    ):
        self.index = index
        self.similarity = similarity if similarity is not None else BM25Similarity()
        self.max_clause_count = max_clause_count

    def tokenize(self, text: str, field: str | None = None) -> list[str]:
        """Analyse ``text`` the way ``field`` was analysed at indexing time."""
        return self.index.tokenizer(text)

    def search(self, query: RankedQuery, limit: int) -> list[ScoredHit]:
        if limit < 1:
            raise RetrievalError(f"search limit must be positive, got {limit}")
        if len(query) > self.max_clause_count:
            raise RetrievalError(
                f"query has {len(query)} clauses, maximum is {self.max_clause_count}"
            )

        scores = np.zeros(self.index.N, dtype=np.float64)
        matched = np.zeros(self.index.N, dtype=bool)

        for clause in query:
            field_index = self.index.field(clause.field)
            if field_index is None:
                continue
            docs, tf = field_index.postings(clause.term)
            if len(docs) == 0:
                continue
            term_scores = self.similarity.score(
                tf,
                field_index.doc_lengths[docs],
                field_index.term_statistics(clause.term),
                field_index.statistics,
            )
            scores[docs] += clause.boost * term_scores
            matched[docs] = True

        candidates = np.flatnonzero(matched)
        order = np.argsort(-scores[candidates], kind="stable")[:limit]
        return [
            ScoredHit(doc=int(candidates[i]), score=float(scores[candidates[i]]), rank=rank)
            for rank, i in enumerate(order, start=1)
        ]

    def stored_field(self, hit: ScoredHit | int, name: str) -> str:
        doc = hit.doc if isinstance(hit, ScoredHit) else int(hit)
        return self.index.stored_field(doc, name)


__all__ = [
    "MAX_CLAUSE_COUNT",
    "ScoredHit",
    "FieldIndex",
    "Index",
    "Searcher",
]
