"""
Run-level configuration.

Every option is fixed for the whole run and validated up front; an invalid
option raises ConfigurationError before any query unit is processed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ranking_expanded.analysis import TOKENIZERS
from ranking_expanded.errors import ConfigurationError
from ranking_expanded.outline import QUERY_STRING_BUILDERS
from ranking_expanded.run import OutputMode, RunLabel
from ranking_expanded.similarity import SIMILARITIES

TOOL_VERSION = "2"

QUERY_AS = ("section", "page")
OUTPUT_MODES = tuple(mode.value for mode in OutputMode)

# Fields a collection may be searched in
SEARCH_FIELDS = (
    "text",
    "title",
    "headings",
    "leadtext",
    "entities",
    "entitylinks",
    "anchornames",
    "disambiguationnames",
    "categorynames",
    "inlinkids",
    "outlinkids",
)


class ExpansionModel(str, Enum):
    NONE = "none"
    RM = "rm"


@dataclass(frozen=True)
class IndexConfig:
    """Stored/search field layout of one document representation."""

    id_field: str
    text_field: str
    search_fields: tuple[str, ...]


REPRESENTATIONS: dict[str, IndexConfig] = {
    "paragraph": IndexConfig(
        id_field="paragraphid",
        text_field="text",
        search_fields=("text",),
    ),
    "page": IndexConfig(
        id_field="pageid",
        text_field="text",
        search_fields=("title", "headings", "text"),
    ),
    "entity": IndexConfig(
        id_field="pageid",
        text_field="leadtext",
        search_fields=("title", "leadtext", "anchornames", "disambiguationnames", "categorynames"),
    ),
    "edgedoc": IndexConfig(
        id_field="edgedocid",
        text_field="text",
        search_fields=("text", "entities"),
    ),
}


def _check_choice(option: str, value: str, choices) -> None:
    if value not in choices:
        raise ConfigurationError(f"Unknown {option} '{value}', expected one of {list(choices)}")


@dataclass(frozen=True)
class RunConfig:
    """Run configuration."""

    representation: str
    query_as: str
    output: str
    outline_file: str
    collection: str
    run_file: str
    query_model: str
    retrieval_model: str
    expansion_model: str
    analyzer: str
    search_fields: tuple[str, ...] | None = None
    verbose: bool = False

    def __post_init__(self):
        _check_choice("representation", self.representation, REPRESENTATIONS)
        _check_choice("query_as", self.query_as, QUERY_AS)
        _check_choice("output", self.output, OUTPUT_MODES)
        _check_choice("query model", self.query_model.lower(), QUERY_STRING_BUILDERS)
        _check_choice("retrieval model", self.retrieval_model, SIMILARITIES)
        _check_choice("expansion model", self.expansion_model, [m.value for m in ExpansionModel])
        _check_choice("analyzer", self.analyzer, TOKENIZERS)

        if self.search_fields is not None:
            fields = tuple(self.search_fields)
            if not fields:
                raise ConfigurationError("search field list is empty")
            if len(set(fields)) != len(fields):
                raise ConfigurationError(f"search field list has duplicates: {list(fields)}")
            for name in fields:
                _check_choice("search field", name, SEARCH_FIELDS)
            object.__setattr__(self, "search_fields", fields)

    @property
    def index_config(self) -> IndexConfig:
        return REPRESENTATIONS[self.representation]

    @property
    def search_fields_used(self) -> tuple[str, ...]:
        if self.search_fields is None:
            return self.index_config.search_fields
        return self.search_fields

    @property
    def query_as_section(self) -> bool:
        return self.query_as == "section"

    @property
    def output_mode(self) -> OutputMode:
        return OutputMode(self.output)

    @property
    def expansion(self) -> ExpansionModel:
        return ExpansionModel(self.expansion_model)

    @property
    def label(self) -> RunLabel:
        return RunLabel(query_model=self.query_model, retrieval_model=self.retrieval_model)


__all__ = [
    "TOOL_VERSION",
    "QUERY_AS",
    "OUTPUT_MODES",
    "SEARCH_FIELDS",
    "ExpansionModel",
    "IndexConfig",
    "REPRESENTATIONS",
    "RunConfig",
]
