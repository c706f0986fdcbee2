"""
trec-run output.

Run mode writes one line per (query unit, hit):

    <queryId> Q0 <docId> <rank> <score> Lucene-<queryModel>-<retrievalModel>

Display mode writes a human-readable block per query unit instead:

    Query: <queryId>
    <docId> (<internalHandle>): SCORE <score>
      <stored text>

All lines of a query unit are resolved before anything is written, so a
unit that fails half way leaves no partial output behind.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol, TextIO

if TYPE_CHECKING:
    from ranking_expanded.index import ScoredHit


class OutputMode(str, Enum):
    RUN = "run"
    DISPLAY = "display"


@dataclass(frozen=True)
class RunLabel:
    """Run tag, fixed for the whole run."""

    query_model: str
    retrieval_model: str

    def __str__(self) -> str:
        return f"Lucene-{self.query_model}-{self.retrieval_model}"


class StoredFieldReader(Protocol):
    def stored_field(self, hit: ScoredHit, name: str) -> str: ...


def format_score(score: float) -> str:
    """Shortest decimal representation of the raw score (2.5, 1.7, -3.25)."""
    return repr(float(score))


def format_run_line(query_id: str, doc_id: str, rank: int, score: float, label: RunLabel | str) -> str:
    return f"{query_id} Q0 {doc_id} {rank} {format_score(score)} {label}"


class RunWriter:
    """
    Owns the output stream for a run.

    Args:
        stream: Run file (run mode) or human-readable stream (display mode).
        label: Run tag written at the end of each run line.
        id_field: Stored field holding the external document id.
        text_field: Stored field shown in display mode.
        output: Output mode, fixed for the run.
        owns_stream: Close the stream when the writer is closed.
    """

    def __init__(
        self,
        stream: TextIO,
        label: RunLabel,
        id_field: str,
        text_field: str,
        output: OutputMode = OutputMode.RUN,
        owns_stream: bool = True,
    ):
        self.stream = stream
        self.label = label
        self.id_field = id_field
        self.text_field = text_field
        self.output = OutputMode(output)
        self.owns_stream = owns_stream
        self.lines_written = 0

    def __enter__(self) -> RunWriter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def format_results(self, reader: StoredFieldReader, query_id: str, hits: list[ScoredHit]) -> list[str]:
        lines = []
        if self.output is OutputMode.DISPLAY:
            lines.append(f"Query: {query_id}")
        for hit in hits:
            doc_id = reader.stored_field(hit, self.id_field)
            if self.output is OutputMode.DISPLAY:
                lines.append(f"{doc_id} ({hit.doc}): SCORE {format_score(hit.score)}")
                lines.append("  " + reader.stored_field(hit, self.text_field))
            else:
                lines.append(format_run_line(query_id, doc_id, hit.rank, hit.score, self.label))
        return lines

    def write_results(self, reader: StoredFieldReader, query_id: str, hits: list[ScoredHit]) -> int:
        """Write all hits of one query unit; returns the number of lines written."""
        lines = self.format_results(reader, query_id, hits)
        if lines:
            self.stream.write("".join(line + "\n" for line in lines))
            self.stream.flush()
        self.lines_written += len(lines)
        return len(lines)

    def close(self) -> None:
        if self.stream.closed:
            return
        self.stream.flush()
        if self.owns_stream:
            self.stream.close()


__all__ = [
    "OutputMode",
    "RunLabel",
    "format_score",
    "format_run_line",
    "RunWriter",
]
