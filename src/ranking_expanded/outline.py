"""
Page outlines, query units and query-string derivation.

A page has a title and a skeleton of nested sections. Query units are
either whole pages or section paths (root-to-section heading chains), and a
query-string builder turns a unit into free text.

Builders (selected once per run):
    sectionpath  page title + headings on the section path
    all          page title + every heading in the outline
    subtree      page title + path headings + headings below the path
    title        page title only
    leafheading  last heading on the path (title for an empty path)
    interior     page title + path headings except the last one
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol

from ranking_expanded.errors import ConfigurationError


@dataclass
class Section:
    heading: str
    heading_id: str
    children: list[Section] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Section:
        return cls(
            heading=data["heading"],
            heading_id=data["heading_id"],
            children=[cls.from_dict(child) for child in data.get("children", [])],
        )

    def descendants(self) -> Iterator[Section]:
        """All sections below this one, pre-order."""
        for child in self.children:
            yield child
            yield from child.descendants()


@dataclass
class Page:
    page_id: str
    page_name: str
    skeleton: list[Section] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Page:
        return cls(
            page_id=data["page_id"],
            page_name=data["page_name"],
            skeleton=[Section.from_dict(section) for section in data.get("skeleton", [])],
        )

    def sections(self) -> Iterator[Section]:
        """Every section in the outline, pre-order."""
        for section in self.skeleton:
            yield section
            yield from section.descendants()

    def flat_section_paths(self) -> list[list[Section]]:
        """Root-to-section path for every section, pre-order."""
        paths: list[list[Section]] = []

        def visit(section: Section, prefix: list[Section]) -> None:
            path = prefix + [section]
            paths.append(path)
            for child in section.children:
                visit(child, path)

        for section in self.skeleton:
            visit(section, [])
        return paths


def section_path_id(page_id: str, section_path: Iterable[Section]) -> str:
    return "/".join([page_id] + [section.heading_id for section in section_path])


def section_path_headings(section_path: Iterable[Section]) -> str:
    return " ".join(section.heading for section in section_path)


@dataclass(frozen=True)
class QueryUnit:
    """One query to issue: a whole page or a section path within it."""

    query_id: str
    page: Page
    section_path: tuple[Section, ...] = ()


def iter_query_units(pages: Iterable[Page], as_sections: bool) -> Iterator[QueryUnit]:
    for page in pages:
        if not as_sections:
            yield QueryUnit(page.page_id, page)
            continue
        for path in page.flat_section_paths():
            yield QueryUnit(section_path_id(page.page_id, path), page, tuple(path))


# =============================================================================
# Query-string builders
# =============================================================================


class QueryStringBuilder(Protocol):
    name: str

    def build(self, page: Page, section_path: Iterable[Section]) -> str: ...


def _join(*parts: str) -> str:
    return " ".join(part for part in parts if part)


class SectionPathQueryStringBuilder:
    name = "sectionpath"

    def build(self, page: Page, section_path: Iterable[Section]) -> str:
        return _join(page.page_name, section_path_headings(section_path))


class OutlineQueryStringBuilder:
    name = "all"

    def build(self, page: Page, section_path: Iterable[Section]) -> str:
        return _join(page.page_name, section_path_headings(page.sections()))


class SubtreeQueryStringBuilder:
    name = "subtree"

    def build(self, page: Page, section_path: Iterable[Section]) -> str:
        path = list(section_path)
        if not path:
            return _join(page.page_name, section_path_headings(page.sections()))
        below = path[-1].descendants()
        return _join(page.page_name, section_path_headings(path), section_path_headings(below))


class TitleQueryStringBuilder:
    name = "title"

    def build(self, page: Page, section_path: Iterable[Section]) -> str:
        return page.page_name


class LeafHeadingQueryStringBuilder:
    name = "leafheading"

    def build(self, page: Page, section_path: Iterable[Section]) -> str:
        path = list(section_path)
        return path[-1].heading if path else page.page_name


class InteriorHeadingQueryStringBuilder:
    name = "interior"

    def build(self, page: Page, section_path: Iterable[Section]) -> str:
        path = list(section_path)
        return _join(page.page_name, section_path_headings(path[:-1]))


QUERY_STRING_BUILDERS: dict[str, type] = {
    builder.name: builder
    for builder in (
        SectionPathQueryStringBuilder,
        OutlineQueryStringBuilder,
        SubtreeQueryStringBuilder,
        TitleQueryStringBuilder,
        LeafHeadingQueryStringBuilder,
        InteriorHeadingQueryStringBuilder,
    )
}


def get_query_string_builder(name: str) -> QueryStringBuilder:
    try:
        return QUERY_STRING_BUILDERS[name.lower()]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown query model '{name}', expected one of {list(QUERY_STRING_BUILDERS)}"
        ) from None


__all__ = [
    "Section",
    "Page",
    "QueryUnit",
    "section_path_id",
    "section_path_headings",
    "iter_query_units",
    "QueryStringBuilder",
    "SectionPathQueryStringBuilder",
    "OutlineQueryStringBuilder",
    "SubtreeQueryStringBuilder",
    "TitleQueryStringBuilder",
    "LeafHeadingQueryStringBuilder",
    "InteriorHeadingQueryStringBuilder",
    "QUERY_STRING_BUILDERS",
    "get_query_string_builder",
]
