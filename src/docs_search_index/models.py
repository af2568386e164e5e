"""Data models for documentation search indices."""

from dataclasses import dataclass
from enum import Enum


class Category(str, Enum):
    """Kind of an index entry."""

    PAGE = "page"
    SECTION = "section"
    MODULE = "module"
    FUNCTION = "function"
    METHOD = "method"
    MACRO = "macro"
    TYPE = "type"
    CONSTANT = "constant"
    KEYWORD = "keyword"


@dataclass(frozen=True)
class IndexEntry:
    """One searchable record of a documentation page or section."""

    location: str
    page: str = ""
    title: str = ""
    text: str = ""
    category: Category = Category.PAGE


@dataclass(frozen=True)
class Block:
    """A body snippet of a section.

    Plain prose blocks keep the ``page`` category. Docstring blocks carry
    their own category, title and anchor.
    """

    text: str = ""
    category: Category = Category.PAGE
    title: str = ""
    anchor: str = ""


@dataclass(frozen=True)
class Section:
    """A heading and the body blocks that follow it."""

    title: str = ""
    anchor: str = ""
    blocks: tuple[Block, ...] = ()


@dataclass(frozen=True)
class Page:
    """A parsed documentation page in build order."""

    name: str = ""
    location: str = ""
    source: str = ""
    sections: tuple[Section, ...] = ()


@dataclass(frozen=True)
class SearchResult:
    """Represents a search result."""

    location: str
    page: str
    title: str
    snippet: str
    category: Category
    match: str
