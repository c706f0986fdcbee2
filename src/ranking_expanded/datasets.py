import json
from collections.abc import Iterator
from pathlib import Path

from datasets import Dataset, load_dataset

from ranking_expanded.outline import Page


def load_collection(path: str | Path) -> Dataset:
    """
    Loads a JSON-lines document collection.

    Args:
        path: File with one JSON object of stored field values per line.

    Returns:
        Dataset: The collection, one row per document.
    """
    return load_dataset("json", data_files=str(path), split="train")


def load_outlines(path: str | Path) -> Iterator[Page]:
    """
    Yields the page outlines of a JSON-lines outline file, in file order.
    """
    with open(path, encoding="utf-8") as f:
        for line in f:
            if line.strip():
                yield Page.from_dict(json.loads(line))
