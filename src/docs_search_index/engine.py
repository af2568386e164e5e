"""In-memory query engine over a loaded search index."""

import logging
import re
from collections import Counter
from collections.abc import Iterable, Iterator
from pathlib import Path

from docs_search_index import artifact
from docs_search_index.models import Category, IndexEntry, SearchResult
from docs_search_index.text import normalize, tokenize

logger = logging.getLogger(__name__)

MATCH_EXACT = "exact"
MATCH_TITLE = "title"
MATCH_TEXT = "text"

_TIERS = {MATCH_EXACT: 0, MATCH_TITLE: 1, MATCH_TEXT: 2}


class SearchIndex:
    """Immutable handle over a list of index entries.

    Token lists are computed once at construction; queries only read them, so
    one handle can serve concurrent callers.
    """

    __slots__ = ("_entries", "_titles", "_title_tokens", "_text_tokens")

    def __init__(self, entries: Iterable[IndexEntry]) -> None:
        """Initialise index with its entries.

        Args:
            entries: Entries in index order.
        """
        self._entries = tuple(entries)
        self._titles = tuple(normalize(entry.title) for entry in self._entries)
        self._title_tokens = tuple(tuple(tokenize(entry.title)) for entry in self._entries)
        self._text_tokens = tuple(tuple(tokenize(entry.text)) for entry in self._entries)

    @classmethod
    def load(cls, path: Path) -> "SearchIndex":
        """Load an index artifact.

        Args:
            path: Artifact path.

        Returns:
            Loaded index.

        Raises:
            ArtifactLoadError: If the artifact is missing or malformed.
        """
        index = cls(artifact.read(path))
        logger.info("Loaded search index with %d entries from %s", len(index), path)
        return index

    @property
    def entries(self) -> tuple[IndexEntry, ...]:
        """Entries in index order."""
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self._entries)

    def categories(self) -> dict[Category, int]:
        """Count entries per category.

        Returns:
            Mapping of category to entry count, in order of first appearance.
        """
        return dict(Counter(entry.category for entry in self._entries))

    @staticmethod
    def _query_tokens(query: str) -> list[str]:
        """Tokenize a user query, dropping duplicates.

        Punctuation and other non-word characters never reach matching, so
        arbitrary user input is safe.

        Args:
            query: Raw user query string.

        Returns:
            Unique query tokens in query order.
        """
        return list(dict.fromkeys(tokenize(query)))

    def search(
        self,
        query: str,
        *,
        category: Category | None = None,
        limit: int | None = None,
        snippet_chars: int = 160,
        highlight: bool = False,
    ) -> list[SearchResult]:
        """Search entries by title and text.

        An entry matches when every query token is a substring of one of its
        title or text tokens. Exact title matches rank first, then entries
        whose title holds every token, then text matches; ties keep index
        order.

        Args:
            query: Search query string.
            category: Optional category filter.
            limit: Maximum number of results.
            snippet_chars: Snippet window length.
            highlight: Wrap matched words in ``<mark>`` tags.

        Returns:
            Ranked results, empty when nothing matches.
        """
        tokens = self._query_tokens(query)
        if not tokens:
            return []
        normalized_query = " ".join(tokenize(query))

        ranked: list[tuple[int, int, str]] = []
        for position, entry in enumerate(self._entries):
            if category is not None and entry.category is not category:
                continue
            match = self._match(position, tokens, normalized_query)
            if match is not None:
                ranked.append((_TIERS[match], position, match))

        ranked.sort()
        if limit is not None:
            ranked = ranked[: max(limit, 0)]

        pattern = _token_pattern(tokens)
        results = []
        for _, position, match in ranked:
            entry = self._entries[position]
            results.append(
                SearchResult(
                    location=entry.location,
                    page=entry.page,
                    title=entry.title,
                    snippet=make_snippet(entry.text, pattern, snippet_chars, highlight),
                    category=entry.category,
                    match=match,
                )
            )
        logger.debug("Query %r matched %d entries", query, len(results))
        return results

    def _match(self, position: int, tokens: list[str], normalized_query: str) -> str | None:
        title_tokens = self._title_tokens[position]
        text_tokens = self._text_tokens[position]
        in_title = [_contains(title_tokens, token) for token in tokens]
        if all(in_title):
            return MATCH_EXACT if self._titles[position] == normalized_query else MATCH_TITLE
        if all(found or _contains(text_tokens, token) for found, token in zip(in_title, tokens, strict=True)):
            return MATCH_TEXT
        return None


def _contains(words: tuple[str, ...], token: str) -> bool:
    return any(token in word for word in words)


def _token_pattern(tokens: list[str]) -> re.Pattern[str]:
    alternatives = sorted(tokens, key=len, reverse=True)
    return re.compile("|".join(re.escape(token) for token in alternatives), re.IGNORECASE)


def make_snippet(text: str, pattern: re.Pattern[str], snippet_chars: int, highlight: bool = False) -> str:
    """Cut a window of ``text`` around the first match of ``pattern``.

    Args:
        text: Entry text.
        pattern: Pattern matching any query token.
        snippet_chars: Window length; ``0`` keeps the whole text.
        highlight: Wrap matches in ``<mark>`` tags.

    Returns:
        Snippet with ``...`` marking cut ends.
    """
    start, end = 0, len(text)
    if 0 < snippet_chars < len(text):
        found = pattern.search(text)
        anchor = found.start() if found else 0
        start = max(0, min(anchor - snippet_chars // 4, len(text) - snippet_chars))
        end = start + snippet_chars

    snippet = text[start:end]
    if highlight:
        snippet = pattern.sub(r"<mark>\g<0></mark>", snippet)
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet
