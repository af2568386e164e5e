"""Serialization of search index entries.

The artifact is byte compatible with the ``search_index.js`` file read by
Documenter-style search widgets::

    var documenterSearchIndex = {"docs":
    [{"location":"...","page":"...","title":"...","text":"...","category":"page"}]
    }
"""

import json
import logging
import os
import re
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from docs_search_index.errors import ArtifactLoadError
from docs_search_index.models import Category, IndexEntry

logger = logging.getLogger(__name__)

INDEX_VARIABLE = "documenterSearchIndex"
ENTRY_FIELDS = ("location", "page", "title", "text", "category")

_ASSIGNMENT = re.compile(r"^\s*var\s+(\w+)\s*=\s*")


def dumps(entries: Sequence[IndexEntry]) -> str:
    """Serialize entries into the artifact text.

    Args:
        entries: Entries in index order.

    Returns:
        Artifact text.
    """
    docs = [
        {
            "location": entry.location,
            "page": entry.page,
            "title": entry.title,
            "text": entry.text,
            "category": entry.category.value,
        }
        for entry in entries
    ]
    body = json.dumps(docs, ensure_ascii=False, separators=(",", ":"))
    return f'var {INDEX_VARIABLE} = {{"docs":\n{body}\n}}\n'


def write(entries: Sequence[IndexEntry], path: Path) -> None:
    """Write the artifact atomically.

    Args:
        entries: Entries in index order.
        path: Destination path; parent directories are created.
    """
    data = dumps(entries).encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.chmod(temp_name, 0o644)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def loads(text: str) -> tuple[IndexEntry, ...]:
    """Parse and validate artifact text.

    The ``var documenterSearchIndex =`` assignment is optional and a
    trailing semicolon is tolerated.

    Args:
        text: Artifact text.

    Returns:
        Entries in index order.

    Raises:
        ArtifactLoadError: If the text is not a well-formed index.
    """
    match = _ASSIGNMENT.match(text)
    if match:
        if match.group(1) != INDEX_VARIABLE:
            msg = f"Unexpected index variable {match.group(1)!r}, expected {INDEX_VARIABLE!r}"
            raise ArtifactLoadError(msg)
        text = text[match.end() :]
    text = text.strip().removesuffix(";")

    try:
        data = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        msg = f"Search index is not valid JSON: {exc}"
        raise ArtifactLoadError(msg) from exc

    if not isinstance(data, dict) or not isinstance(data.get("docs"), list):
        msg = "Search index must be an object with a 'docs' list"
        raise ArtifactLoadError(msg)

    return tuple(_parse_entry(position, raw) for position, raw in enumerate(data["docs"]))


def read(path: Path) -> tuple[IndexEntry, ...]:
    """Read and validate an artifact file.

    Args:
        path: Artifact path.

    Returns:
        Entries in index order.

    Raises:
        ArtifactLoadError: If the file is missing, unreadable or malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read search index {path}: {exc}"
        raise ArtifactLoadError(msg) from exc
    entries = loads(text)
    logger.debug("Loaded %d entries from %s", len(entries), path)
    return entries


def _parse_entry(position: int, raw: Any) -> IndexEntry:
    if not isinstance(raw, dict):
        msg = f"Entry {position} is not an object"
        raise ArtifactLoadError(msg)

    unknown = set(raw) - set(ENTRY_FIELDS)
    if unknown:
        msg = f"Entry {position} has unknown fields: {', '.join(sorted(unknown))}"
        raise ArtifactLoadError(msg)

    if not isinstance(raw.get("location"), str):
        msg = f"Entry {position} needs a string 'location'"
        raise ArtifactLoadError(msg)

    for name in ("page", "title", "text"):
        if not isinstance(raw.get(name, ""), str):
            msg = f"Entry {position} has a non-string {name!r}"
            raise ArtifactLoadError(msg)

    try:
        category = Category(raw.get("category"))
    except ValueError as exc:
        msg = f"Entry {position} has unknown category {raw.get('category')!r}"
        raise ArtifactLoadError(msg) from exc

    return IndexEntry(
        location=raw["location"],
        page=raw.get("page", ""),
        title=raw.get("title", ""),
        text=raw.get("text", ""),
        category=category,
    )
