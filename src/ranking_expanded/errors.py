"""
Error taxonomy for expanded ranking runs.

- ConfigurationError: fatal, raised before any query unit is processed.
- RetrievalError: the search for one query unit could not be executed.
- DataIntegrityError: a hit is missing a stored field the run depends on.

Retrieval and data-integrity errors abort a single query unit; the pipeline
reports them and moves on to the next unit.
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Unknown mode, analyzer, similarity or malformed field list."""


class RetrievalError(RuntimeError):
    """A ranked query could not be executed by the searcher."""


class DataIntegrityError(LookupError):
    """A document is missing an expected stored field."""

    def __init__(self, doc: int, field: str):
        self.doc = doc
        self.field = field
        super().__init__(f"document {doc} has no stored field '{field}'")
