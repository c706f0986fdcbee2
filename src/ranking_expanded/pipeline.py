"""
Per-query-unit ranking pipeline.

Units are processed strictly one after another. For each unit the query
string is derived, the unit is ranked (plain or RM3-expanded) and its hits
are handed to the run writer. A retrieval or data-integrity failure aborts
only the current unit: it is reported on stderr, recorded in the summary,
and the run continues with the next unit.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ranking_expanded.config import ExpansionModel
from ranking_expanded.errors import DataIntegrityError, RetrievalError
from ranking_expanded.relevance_model import RelevanceModelEstimator

if TYPE_CHECKING:
    from ranking_expanded.index import ScoredHit
    from ranking_expanded.outline import QueryStringBuilder, QueryUnit
    from ranking_expanded.query import QueryBuilder
    from ranking_expanded.relevance_model import SearcherProtocol
    from ranking_expanded.run import RunWriter

RESULT_DEPTH = 100
FEEDBACK_DOCS = 20
EXPANSION_TERMS = 20


@dataclass
class RunSummary:
    """Outcome of a run: units written and units that failed."""

    processed: int = 0
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class RankingPipeline:
    """
    Drives plain or expanded retrieval for a sequence of query units.

    Args:
        searcher: Search engine used for every retrieval pass.
        query_builder: Builds plain and expanded ranked queries.
        query_string_builder: Derives the query text of a unit.
        writer: Receives each unit's ranked hits.
        expansion: Ranking mode, fixed for the run.
        estimator: Relevance-model estimator (created on demand for RM).
        verbose: Print per-unit progress to stderr.
    """

    def __init__(
        self,
        searcher: SearcherProtocol,
        query_builder: QueryBuilder,
        query_string_builder: QueryStringBuilder,
        writer: RunWriter,
        expansion: ExpansionModel = ExpansionModel.NONE,
        estimator: RelevanceModelEstimator | None = None,
        verbose: bool = False,
    ):
        self.searcher = searcher
        self.query_builder = query_builder
        self.query_string_builder = query_string_builder
        self.writer = writer
        self.expansion = ExpansionModel(expansion)
        if estimator is None and self.expansion is ExpansionModel.RM:
            estimator = RelevanceModelEstimator(searcher, query_builder, verbose=verbose)
        self.estimator = estimator
        self.verbose = verbose

    def rank(self, query_text: str) -> list[ScoredHit]:
        if self.expansion is ExpansionModel.RM:
            relevance_model = self.estimator.estimate(query_text, FEEDBACK_DOCS, EXPANSION_TERMS)
            query = self.query_builder.to_rm3_query(query_text, relevance_model)
        else:
            query = self.query_builder.to_query(query_text)

        hits = self.searcher.search(query, RESULT_DEPTH)
        if self.verbose:
            kind = "RM3 " if self.expansion is ExpansionModel.RM else ""
            print(f"Found {len(hits)} {kind}results.", file=sys.stderr, flush=True)
        return hits

    def run_unit(self, unit: QueryUnit) -> int:
        query_text = self.query_string_builder.build(unit.page, unit.section_path)
        if self.verbose:
            print(f"{unit.query_id}\t{query_text}", file=sys.stderr, flush=True)
        hits = self.rank(query_text)
        return self.writer.write_results(self.searcher, unit.query_id, hits)

    def run(self, units: Iterable[QueryUnit]) -> RunSummary:
        summary = RunSummary()
        for unit in units:
            try:
                self.run_unit(unit)
            except (RetrievalError, DataIntegrityError) as e:
                print(f"Query {unit.query_id} failed: {e}", file=sys.stderr, flush=True)
                summary.failed.append((unit.query_id, str(e)))
                continue
            summary.processed += 1
        return summary


__all__ = [
    "RESULT_DEPTH",
    "FEEDBACK_DOCS",
    "EXPANSION_TERMS",
    "RunSummary",
    "RankingPipeline",
]
