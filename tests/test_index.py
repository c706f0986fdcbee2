import math

import numpy as np
import pytest
from datasets import Dataset

from ranking_expanded.analysis import StandardTokenizer
from ranking_expanded.errors import DataIntegrityError, RetrievalError
from ranking_expanded.index import Index, Searcher
from ranking_expanded.query import Clause, RankedQuery
from ranking_expanded.similarity import (
    BM25Similarity,
    FieldStatistics,
    LMDirichletSimilarity,
    TermStatistics,
    get_similarity,
)


@pytest.fixture
def documents():
    return [
        {"paragraphid": "p0", "text": "foo foo foo bar", "title": "alpha"},
        {"paragraphid": "p1", "text": "foo bar baz", "title": "beta"},
        {"paragraphid": "p2", "text": "baz qux", "title": "alpha beta"},
    ]


@pytest.fixture
def searcher(documents):
    return Searcher(Index(documents, StandardTokenizer()), BM25Similarity())


def _query(*terms, field="text", boost=1.0):
    return RankedQuery(tuple(Clause(field, term, boost) for term in terms))


def test_bm25_ordering_regression(searcher) -> None:
    """
    Documents with repeated query terms should score higher than those with
    fewer matches, and documents matching no clause are not returned.
    """
    hits = searcher.search(_query("foo", "bar"), limit=10)

    assert [hit.doc for hit in hits] == [0, 1]
    assert [hit.rank for hit in hits] == [1, 2]
    assert hits[0].score > hits[1].score > 0.0


def test_limit_truncates(searcher):
    hits = searcher.search(_query("foo", "bar", "baz"), limit=1)
    assert len(hits) == 1
    assert hits[0].rank == 1


def test_ties_keep_index_order():
    documents = [{"id": str(i), "text": "alpha beta"} for i in range(3)]
    searcher = Searcher(Index(documents, StandardTokenizer()))

    hits = searcher.search(_query("alpha"), limit=10)

    assert [hit.doc for hit in hits] == [0, 1, 2]
    assert len({hit.score for hit in hits}) == 1


def test_boost_scales_clause_score(searcher):
    plain = searcher.search(_query("qux"), limit=1)[0]
    boosted = searcher.search(_query("qux", boost=2.5), limit=1)[0]
    assert boosted.score == pytest.approx(2.5 * plain.score)


def test_clauses_span_fields(searcher):
    query = RankedQuery((Clause("title", "alpha"), Clause("text", "qux")))
    hits = searcher.search(query, limit=10)
    # p2 matches both clauses, p0 only the title clause
    assert [hit.doc for hit in hits] == [2, 0]


def test_unknown_field_or_term_matches_nothing(searcher):
    assert searcher.search(_query("foo", field="headings"), limit=10) == []
    assert searcher.search(_query("missing"), limit=10) == []
    assert searcher.search(RankedQuery(), limit=10) == []


def test_too_many_clauses(documents):
    searcher = Searcher(Index(documents, StandardTokenizer()), max_clause_count=2)
    with pytest.raises(RetrievalError, match="maximum is 2"):
        searcher.search(_query("foo", "bar", "baz"), limit=10)


def test_invalid_limit(searcher):
    with pytest.raises(RetrievalError):
        searcher.search(_query("foo"), limit=0)


def test_stored_field(searcher):
    hit = searcher.search(_query("qux"), limit=1)[0]
    assert searcher.stored_field(hit, "paragraphid") == "p2"
    assert searcher.stored_field(0, "text") == "foo foo foo bar"


def test_missing_stored_field_names_document():
    documents = [{"paragraphid": "p0", "text": "foo"}, {"paragraphid": "p1"}]
    searcher = Searcher(Index(documents, StandardTokenizer()))

    with pytest.raises(DataIntegrityError, match="document 1 .*'text'") as excinfo:
        searcher.stored_field(1, "text")
    assert excinfo.value.doc == 1
    assert excinfo.value.field == "text"


def test_field_statistics(documents):
    index = Index(documents, StandardTokenizer())

    assert index.fields == ["paragraphid", "text", "title"]
    text = index.field("text")
    assert text.statistics == FieldStatistics(doc_count=3, total_tokens=9)
    assert text.term_statistics("foo") == TermStatistics(doc_freq=2, collection_freq=4)
    assert text.term_statistics("nope") == TermStatistics(doc_freq=0, collection_freq=0)

    docs, tf = text.postings("foo")
    assert docs.tolist() == [0, 1]
    assert tf.tolist() == [3.0, 1.0]


def test_explicit_fields_only(documents):
    index = Index(documents, StandardTokenizer(), fields=["text"])
    assert index.fields == ["text"]
    assert index.field("title") is None


def test_from_huggingface_dataset(documents):
    index = Index.from_huggingface_dataset(
        Dataset.from_list(documents), StandardTokenizer(), progress=False
    )
    assert len(index) == 3
    assert index.stored_field(1, "paragraphid") == "p1"


def test_bm25_idf():
    assert BM25Similarity.idf(1, 2) == pytest.approx(math.log(2.0))


def test_dirichlet_scores_can_be_negative():
    similarity = LMDirichletSimilarity(mu=1500.0)
    scores = similarity.score(
        np.array([1.0, 50.0]),
        np.array([3000.0, 10.0]),
        TermStatistics(doc_freq=2, collection_freq=1500),
        FieldStatistics(doc_count=2, total_tokens=3000),
    )
    # long document mentioning a common term once
    assert scores[0] < 0.0
    assert scores[1] > 0.0


def test_dirichlet_collection_probability():
    similarity = LMDirichletSimilarity()
    p = similarity.collection_probability(
        TermStatistics(doc_freq=2, collection_freq=3), FieldStatistics(doc_count=3, total_tokens=9)
    )
    assert p == pytest.approx(1 / 3)


@pytest.mark.parametrize(
    "name,cls",
    [("bm25", BM25Similarity), ("ql", LMDirichletSimilarity), ("default", BM25Similarity)],
)
def test_get_similarity(name, cls):
    assert isinstance(get_similarity(name), cls)
