"""Text helpers shared by the builder and the query engine."""

import re

TOKEN_PATTERN = re.compile(r"\w+")


def tokenize(text: str) -> list[str]:
    """Split text into case-folded word tokens.

    Anything that is not a word character separates tokens, so
    ``"ToricCode(2, 3)"`` yields ``["toriccode", "2", "3"]``.
    """
    return TOKEN_PATTERN.findall(text.casefold())


def normalize(text: str) -> str:
    """Token-normalized form of ``text`` used for exact comparisons."""
    return " ".join(tokenize(text))


def split_text(text: str, max_chars: int) -> list[str]:
    """Split long text at whitespace into pieces of at most ``max_chars``.

    Words longer than ``max_chars`` are cut hard. ``max_chars <= 0`` disables
    splitting.
    """
    if max_chars <= 0 or len(text) <= max_chars:
        return [text]

    chunks: list[str] = []
    rest = text
    while len(rest) > max_chars:
        cut = max(rest.rfind(" ", 0, max_chars + 1), rest.rfind("\n", 0, max_chars + 1))
        if cut <= 0:
            cut = max_chars
        chunk = rest[:cut].rstrip()
        if chunk:
            chunks.append(chunk)
        rest = rest[cut:].lstrip()
    if rest:
        chunks.append(rest)
    return chunks
