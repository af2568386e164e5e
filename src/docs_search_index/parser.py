"""Parser for reStructuredText documentation pages."""

import logging
import re
from pathlib import Path

import docutils.frontend  # type: ignore[import-untyped]
import docutils.nodes  # type: ignore[import-untyped]
import docutils.parsers.rst  # type: ignore[import-untyped]
import docutils.parsers.rst.directives  # type: ignore[import-untyped]
import docutils.utils  # type: ignore[import-untyped]

from docs_search_index.errors import BuildInputError
from docs_search_index.models import Block, Category, Page, Section

logger = logging.getLogger(__name__)

RST_SUFFIXES = (".rst", ".rest")

# Unknown roles and directives stay non-fatal; broken includes and docstrings do not.
FATAL_DIRECTIVE_ERROR = re.compile(r'(?:Error in|Problems with) "(?:include|docstring)" directive')


class docstring(docutils.nodes.General, docutils.nodes.Element):  # type: ignore[misc]  # noqa: N801
    """Doctree node holding the documentation of one API binding."""


def _category_option(argument: str) -> str:
    return docutils.parsers.rst.directives.choice(argument, tuple(c.value for c in Category))


class DocstringDirective(docutils.parsers.rst.Directive):  # type: ignore[misc]
    """``.. docstring:: Module.binding`` directive.

    The body is kept verbatim as the entry text. The ``:category:`` option
    defaults to ``function``.
    """

    required_arguments = 1
    has_content = True
    option_spec = {"category": _category_option}

    def run(self) -> list[docutils.nodes.Node]:
        """Build the docstring node.

        Returns:
            Single-element list with the docstring node.
        """
        node = docstring()
        node["binding"] = self.arguments[0]
        node["category"] = self.options.get("category", Category.FUNCTION.value)
        node["text"] = "\n".join(self.content).strip()
        return [node]


docutils.parsers.rst.directives.register_directive("docstring", DocstringDirective)


class SectionVisitor(docutils.nodes.GenericNodeVisitor):  # type: ignore[misc]
    """Visitor splitting an RST document tree into sections and body blocks."""

    def __init__(self, document: docutils.nodes.document) -> None:
        """Initialise section visitor.

        Args:
            document: Docutils document tree.
        """
        super().__init__(document)
        self.sections: list[Section] = []
        self._title = ""
        self._anchor = ""
        self._blocks: list[Block] = []
        self._anchors: dict[str, int] = {}

    def _unique_anchor(self, text: str) -> str:
        anchor = re.sub(r"\s+", "-", text.strip())
        count = self._anchors.get(anchor, 0)
        self._anchors[anchor] = count + 1
        return anchor if count == 0 else f"{anchor}-{count}"

    def _flush(self) -> None:
        if self._title or self._blocks:
            self.sections.append(Section(title=self._title, anchor=self._anchor, blocks=tuple(self._blocks)))
        self._blocks = []

    def _add(self, text: str) -> None:
        self._blocks.append(Block(text=text))

    def visit_title(self, node: docutils.nodes.title) -> None:
        """Start a new section on a section heading.

        Args:
            node: Title node.

        Raises:
            docutils.nodes.SkipNode: Always raised; the heading is consumed here.
        """
        if isinstance(node.parent, docutils.nodes.section):
            self._flush()
            self._title = clean_text(node.astext())
            self._anchor = self._unique_anchor(self._title)
        else:
            self._add(clean_text(node.astext()))
        raise docutils.nodes.SkipNode

    def visit_paragraph(self, node: docutils.nodes.paragraph) -> None:
        """Collect a paragraph.

        Args:
            node: Paragraph node.

        Raises:
            docutils.nodes.SkipNode: Always raised after collecting.
        """
        self._add(clean_text(node.astext()))
        raise docutils.nodes.SkipNode

    def visit_literal_block(self, node: docutils.nodes.literal_block) -> None:
        """Collect a code block verbatim.

        Args:
            node: Literal block node.

        Raises:
            docutils.nodes.SkipNode: Always raised after collecting.
        """
        self._add(node.astext().rstrip())
        raise docutils.nodes.SkipNode

    visit_doctest_block = visit_literal_block

    def visit_bullet_list(self, node: docutils.nodes.bullet_list) -> None:
        """Collect a list, one item per line.

        Args:
            node: List node.

        Raises:
            docutils.nodes.SkipNode: Always raised after collecting.
        """
        self._add("\n".join(clean_text(item.astext()) for item in node.children))
        raise docutils.nodes.SkipNode

    visit_enumerated_list = visit_bullet_list
    visit_definition_list = visit_bullet_list
    visit_field_list = visit_bullet_list

    def visit_line_block(self, node: docutils.nodes.line_block) -> None:
        """Collect a line block keeping its line breaks.

        Args:
            node: Line block node.

        Raises:
            docutils.nodes.SkipNode: Always raised after collecting.
        """
        self._add("\n".join(line.astext().strip() for line in node.findall(docutils.nodes.line)))
        raise docutils.nodes.SkipNode

    def visit_table(self, node: docutils.nodes.table) -> None:
        """Collect a table, one row per line.

        Args:
            node: Table node.

        Raises:
            docutils.nodes.SkipNode: Always raised after collecting.
        """
        rows = (
            " ".join(clean_text(entry.astext()) for entry in row.findall(docutils.nodes.entry))
            for row in node.findall(docutils.nodes.row)
        )
        self._add("\n".join(rows))
        raise docutils.nodes.SkipNode

    def visit_image(self, node: docutils.nodes.image) -> None:
        """Collect an image placeholder.

        Args:
            node: Image node.

        Raises:
            docutils.nodes.SkipNode: Always raised after collecting.
        """
        self._add(f"(Image: {node.get('alt', '')})")
        raise docutils.nodes.SkipNode

    def visit_figure(self, node: docutils.nodes.figure) -> None:
        """Collect a figure as its image placeholder and caption.

        Args:
            node: Figure node.

        Raises:
            docutils.nodes.SkipNode: Always raised after collecting.
        """
        parts = [f"(Image: {image.get('alt', '')})" for image in node.findall(docutils.nodes.image)]
        parts.extend(clean_text(caption.astext()) for caption in node.findall(docutils.nodes.caption))
        self._add(" ".join(parts))
        raise docutils.nodes.SkipNode

    def visit_docstring(self, node: docstring) -> None:
        """Collect an API binding docstring.

        Args:
            node: Docstring node.

        Raises:
            docutils.nodes.SkipNode: Always raised after collecting.
        """
        binding = node["binding"]
        self._blocks.append(
            Block(
                text=node["text"],
                category=Category(node["category"]),
                title=binding,
                anchor=self._unique_anchor(binding),
            )
        )
        raise docutils.nodes.SkipNode

    def depart_docstring(self, node: docstring) -> None:
        """Depart docstring node.

        Args:
            node: Docstring node.
        """

    def visit_comment(self, node: docutils.nodes.comment) -> None:
        """Skip comments.

        Args:
            node: Comment node.

        Raises:
            docutils.nodes.SkipNode: Always raised to skip comments.
        """
        raise docutils.nodes.SkipNode

    visit_target = visit_comment
    visit_substitution_definition = visit_comment
    visit_system_message = visit_comment
    visit_pending = visit_comment
    visit_raw = visit_comment

    def default_visit(self, node: docutils.nodes.Node) -> None:
        """Default visit handler (walks into containers).

        Args:
            node: Any node.
        """

    def default_departure(self, node: docutils.nodes.Node) -> None:
        """Default departure handler (no-op).

        Args:
            node: Any node.
        """

    def get_sections(self) -> tuple[Section, ...]:
        """Get collected sections.

        Returns:
            Sections in document order.
        """
        self._flush()
        return tuple(self.sections)


def clean_text(text: str) -> str:
    """Clean leftover RST markup and collapse whitespace.

    Args:
        text: Raw node text.

    Returns:
        Single-line cleaned text.
    """
    # Unresolved roles (:role:`text` -> text)
    text = re.sub(r":[\w-]+:`([^`]+)`", r"\1", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def page_location(relative_path: Path) -> str:
    """Compute the page location from its source path.

    Args:
        relative_path: Path relative to the documentation directory.

    Returns:
        Pretty URL of the page, ``""`` for the root index.
    """
    stem = relative_path.with_suffix("")
    if stem.name == "index":
        parent = stem.parent.as_posix()
        return "" if parent == "." else f"{parent}/"
    return f"{stem.as_posix()}/"


class DocumentParser:
    """Parses RST documentation pages into sections."""

    def parse_file(self, file_path: Path, base_path: Path, name: str | None = None) -> Page:
        """Parse an RST file into a page.

        Args:
            file_path: Path to the RST file.
            base_path: Base path of the documentation directory.
            name: Page name; defaults to the first heading.

        Returns:
            Parsed page.

        Raises:
            BuildInputError: If the file cannot be read or parsed.
        """
        try:
            source = file_path.read_text(encoding="utf-8")
            doctree = self._parse_rst(source, file_path)
        except (OSError, UnicodeDecodeError, docutils.utils.SystemMessage) as exc:
            msg = f"Cannot parse documentation page {file_path}: {exc}"
            raise BuildInputError(msg) from exc
        self._check_directive_errors(doctree, file_path)

        relative_path = file_path.relative_to(base_path)
        sections = self._extract_sections(doctree)
        page_name = name or self._default_name(sections, file_path)
        logger.debug("Parsed %s: %d sections", relative_path, len(sections))

        return Page(
            name=page_name,
            location=page_location(relative_path),
            source=relative_path.as_posix(),
            sections=sections,
        )

    def _parse_rst(self, source: str, file_path: Path) -> docutils.nodes.document:
        """Parse RST source into docutils document tree.

        Args:
            source: RST source text.
            file_path: Path to the file (for error reporting and includes).

        Returns:
            Docutils document tree.
        """
        parser = docutils.parsers.rst.Parser()
        settings = docutils.frontend.get_default_settings(docutils.parsers.rst.Parser)
        settings.report_level = 5  # Suppress warnings
        settings.doctitle_xform = False
        document = docutils.utils.new_document(str(file_path), settings)
        parser.parse(source, document)
        return document

    def _check_directive_errors(self, doctree: docutils.nodes.document, file_path: Path) -> None:
        """Reject pages whose includes or docstrings failed.

        Docutils reports a missing include target or an invalid docstring
        option as an inline error message instead of raising, which would
        drop the affected content from the index.

        Args:
            doctree: Docutils document tree.
            file_path: Path to the file (for error reporting).

        Raises:
            BuildInputError: If a fatal directive error is found.
        """
        for message in doctree.findall(docutils.nodes.system_message):
            if message["level"] < docutils.utils.Reporter.ERROR_LEVEL:
                continue
            text = message.astext()
            if FATAL_DIRECTIVE_ERROR.search(text):
                msg = f"Cannot parse documentation page {file_path}: {text}"
                raise BuildInputError(msg)

    def _extract_sections(self, doctree: docutils.nodes.document) -> tuple[Section, ...]:
        visitor = SectionVisitor(doctree)
        doctree.walkabout(visitor)
        return visitor.get_sections()

    def _default_name(self, sections: tuple[Section, ...], file_path: Path) -> str:
        for section in sections:
            if section.title:
                return section.title
        # Fallback to filename if no title found
        return file_path.stem.replace("-", " ").replace("_", " ").title()
