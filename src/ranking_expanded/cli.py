"""
Command-line entry point: rank page outlines against a document collection.

Run with:
    ranking-expanded paragraph section run outlines.jsonl paragraphs.jsonl out.run \
        sectionpath bm25 rm english text
"""

from __future__ import annotations

import argparse
import sys
import warnings
from pathlib import Path

from ranking_expanded.analysis import TOKENIZERS, get_tokenizer
from ranking_expanded.config import (
    OUTPUT_MODES,
    QUERY_AS,
    REPRESENTATIONS,
    SEARCH_FIELDS,
    TOOL_VERSION,
    ExpansionModel,
    RunConfig,
)
from ranking_expanded.datasets import load_collection, load_outlines
from ranking_expanded.errors import ConfigurationError
from ranking_expanded.index import Index, Searcher
from ranking_expanded.outline import (
    QUERY_STRING_BUILDERS,
    get_query_string_builder,
    iter_query_units,
)
from ranking_expanded.pipeline import RankingPipeline
from ranking_expanded.query import QueryBuilder
from ranking_expanded.run import OutputMode, RunWriter
from ranking_expanded.similarity import SIMILARITIES, get_similarity


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rank outline query units against a collection, optionally with RM3 expansion.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Choices:
  representation   {", ".join(REPRESENTATIONS)}
  query_as         {", ".join(QUERY_AS)}
  output           {", ".join(OUTPUT_MODES)}
  query_model      {", ".join(QUERY_STRING_BUILDERS)}
  retrieval_model  {", ".join(SIMILARITIES)}
  expansion_model  {", ".join(m.value for m in ExpansionModel)}
  analyzer         {", ".join(TOKENIZERS)}
  search_fields    any of {", ".join(SEARCH_FIELDS)}
""",
    )
    parser.add_argument("--tool-version", action="version", version=TOOL_VERSION)
    parser.add_argument("--verbose", action="store_true", help="Print progress to stderr.")
    parser.add_argument("representation", help="Document representation of the collection.")
    parser.add_argument("query_as", help="Issue one query per section path or per page.")
    parser.add_argument("output", help="Write a trec run file or display results.")
    parser.add_argument("outline_file", help="JSON-lines page outlines.")
    parser.add_argument("collection", help="JSON-lines document collection.")
    parser.add_argument("run_file", help="Path of the run file to write.")
    parser.add_argument("query_model", help="Query-string derivation.")
    parser.add_argument("retrieval_model", help="Similarity function.")
    parser.add_argument("expansion_model", help="Ranking mode: none or rm.")
    parser.add_argument("analyzer", help="Tokenizer: std or english.")
    parser.add_argument("search_fields", nargs="*", help="Fields to search (default: representation preset).")
    return parser


def run(config: RunConfig) -> int:
    """Execute a configured run; returns the process exit status."""
    tokenizer = get_tokenizer(config.analyzer)
    similarity = get_similarity(config.retrieval_model)
    query_string_builder = get_query_string_builder(config.query_model)
    index_config = config.index_config

    print(f"Loading collection from {config.collection}", file=sys.stderr)
    index = Index.from_huggingface_dataset(load_collection(config.collection), tokenizer)
    print(f"Index built: {len(index):,} docs, fields {index.fields}", file=sys.stderr)

    for name in config.search_fields_used:
        if index.field(name) is None:
            warnings.warn(f"Search field '{name}' does not occur in {config.collection}", stacklevel=2)

    searcher = Searcher(index, similarity)
    query_builder = QueryBuilder(searcher.tokenize, config.search_fields_used, index_config.text_field)

    if config.output_mode is OutputMode.RUN:
        stream, owns_stream = open(config.run_file, "w", encoding="utf-8"), True
    else:
        stream, owns_stream = sys.stdout, False

    units = iter_query_units(load_outlines(config.outline_file), config.query_as_section)
    with RunWriter(
        stream,
        config.label,
        id_field=index_config.id_field,
        text_field=index_config.text_field,
        output=config.output_mode,
        owns_stream=owns_stream,
    ) as writer:
        pipeline = RankingPipeline(
            searcher,
            query_builder,
            query_string_builder,
            writer,
            expansion=config.expansion,
            verbose=config.verbose,
        )
        summary = pipeline.run(units)

    print(
        f"Processed {summary.processed} query units, {len(summary.failed)} failed.",
        file=sys.stderr,
    )
    return 0 if summary.ok else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = RunConfig(
            representation=args.representation,
            query_as=args.query_as,
            output=args.output,
            outline_file=args.outline_file,
            collection=args.collection,
            run_file=args.run_file,
            query_model=args.query_model,
            retrieval_model=args.retrieval_model,
            expansion_model=args.expansion_model,
            analyzer=args.analyzer,
            search_fields=tuple(args.search_fields) if args.search_fields else None,
            verbose=args.verbose,
        )
    except ConfigurationError as e:
        parser.error(str(e))

    for option, path in (("outline file", config.outline_file), ("collection", config.collection)):
        if not Path(path).is_file():
            parser.error(f"{option} '{path}' does not exist")

    return run(config)


if __name__ == "__main__":
    sys.exit(main())
