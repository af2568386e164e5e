"""Builder turning a directory of RST pages into a search index artifact."""

import logging
import tomllib
from collections.abc import Iterable
from pathlib import Path

from docs_search_index import artifact
from docs_search_index.errors import BuildInputError
from docs_search_index.models import Category, IndexEntry, Page
from docs_search_index.parser import RST_SUFFIXES, DocumentParser
from docs_search_index.text import split_text

logger = logging.getLogger(__name__)

PAGES_MANIFEST = "pages.toml"


class IndexBuilder:
    """Builds search index entries from documentation pages."""

    def __init__(self, max_text_chars: int = 2000) -> None:
        """Initialise builder.

        Args:
            max_text_chars: Longest text of one entry; longer bodies are split
                into sequential entries. ``0`` disables splitting.
        """
        self.max_text_chars = max_text_chars
        self.parser = DocumentParser()

    def build(self, docs_path: Path, output: Path) -> int:
        """Build the index from a directory and write the artifact.

        The whole index is built in memory first, so a failing build leaves
        any existing artifact untouched.

        Args:
            docs_path: Path to the documentation directory.
            output: Artifact path.

        Returns:
            Number of entries written.
        """
        entries = self.build_from_path(docs_path)
        artifact.write(entries, output)
        logger.info("Wrote %d entries to %s", len(entries), output)
        return len(entries)

    def build_from_path(self, docs_path: Path) -> list[IndexEntry]:
        """Parse every page of a documentation directory into entries.

        Args:
            docs_path: Path to the documentation directory.

        Returns:
            Entries in page order.
        """
        pages = [self.parser.parse_file(path, docs_path, name) for path, name in self.discover_pages(docs_path)]
        logger.info("Parsed %d pages", len(pages))
        return self.build_entries(pages)

    def discover_pages(self, docs_path: Path) -> list[tuple[Path, str | None]]:
        """Find the ordered page set of a documentation directory.

        Args:
            docs_path: Path to the documentation directory.

        Returns:
            ``(path, name)`` pairs in build order; ``name`` is ``None`` when
            the page name comes from its first heading.

        Raises:
            BuildInputError: If the directory or a listed page is missing, the
                manifest is malformed, no pages exist, or a page is reached
                twice.
        """
        if not docs_path.is_dir():
            msg = f"Documentation path does not exist: {docs_path}"
            raise BuildInputError(msg)

        manifest = docs_path / PAGES_MANIFEST
        if manifest.exists():
            pages = self._read_manifest(manifest, docs_path)
        else:
            pages = [(path, None) for path in self._scan(docs_path)]

        if not pages:
            msg = f"No documentation pages found in {docs_path}"
            raise BuildInputError(msg)

        seen: dict[Path, Path] = {}
        for path, _ in pages:
            resolved = path.resolve()
            if resolved in seen:
                msg = f"Cyclic page set: {path} and {seen[resolved]} are the same page"
                raise BuildInputError(msg)
            seen[resolved] = path

        logger.info("Found %d pages to index", len(pages))
        return pages

    def _scan(self, docs_path: Path) -> list[Path]:
        files = [path for path in docs_path.rglob("*") if path.suffix in RST_SUFFIXES and path.is_file()]

        def order(path: Path) -> tuple[bool, str]:
            relative = path.relative_to(docs_path).as_posix()
            return (relative not in ("index.rst", "index.rest"), relative)

        return sorted(files, key=order)

    def _read_manifest(self, manifest: Path, docs_path: Path) -> list[tuple[Path, str | None]]:
        try:
            data = tomllib.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
            msg = f"Cannot read page manifest {manifest}: {exc}"
            raise BuildInputError(msg) from exc

        raw_pages = data.get("pages")
        if not isinstance(raw_pages, list):
            msg = f"Page manifest {manifest} must define a [[pages]] array"
            raise BuildInputError(msg)

        pages: list[tuple[Path, str | None]] = []
        for position, raw in enumerate(raw_pages):
            if not isinstance(raw, dict) or not isinstance(raw.get("path"), str):
                msg = f"Page manifest entry {position} needs a string 'path'"
                raise BuildInputError(msg)
            name = raw.get("name")
            if name is not None and not isinstance(name, str):
                msg = f"Page manifest entry {position} has a non-string 'name'"
                raise BuildInputError(msg)
            path = docs_path / raw["path"]
            if not path.is_file():
                msg = f"Page listed in manifest does not exist: {path}"
                raise BuildInputError(msg)
            pages.append((path, name))
        return pages

    def build_entries(self, pages: Iterable[Page]) -> list[IndexEntry]:
        """Turn parsed pages into index entries.

        Args:
            pages: Pages in build order.

        Returns:
            Entries in page and section order.
        """
        entries: list[IndexEntry] = []
        for page in pages:
            page_entries = 0
            for section in page.sections:
                if section.title:
                    entries.append(
                        IndexEntry(
                            location=f"{page.location}#{section.anchor}",
                            page=page.name,
                            title=section.title,
                            category=Category.SECTION,
                        )
                    )
                for block in section.blocks:
                    if block.category is Category.PAGE:
                        location, title = page.location, page.name
                    else:
                        location, title = f"{page.location}#{block.anchor}", block.title
                    for text in split_text(block.text, self.max_text_chars):
                        entries.append(
                            IndexEntry(
                                location=location,
                                page=page.name,
                                title=title,
                                text=text,
                                category=block.category,
                            )
                        )
                        page_entries += 1

            if page_entries == 0:
                entries.append(IndexEntry(location=page.location, page=page.name, title=page.name))
            logger.debug("Indexed: %s", page.location or page.name)

        return entries
