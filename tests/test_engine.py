"""Tests for the search query engine."""

import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from docs_search_index import artifact
from docs_search_index.builder import IndexBuilder
from docs_search_index.engine import SearchIndex, make_snippet
from docs_search_index.errors import ArtifactLoadError
from docs_search_index.models import Block, Category, IndexEntry, Page, Section


@pytest.fixture
def index() -> SearchIndex:
    """Create an index resembling a generated documentation site.

    Returns:
        SearchIndex instance.
    """
    return SearchIndex(
        [
            IndexEntry("generated/codes/", "codes", "codes", "We provide a number of quantum error correction codes."),
            IndexEntry("generated/codes/#Toric-Code", "codes", "Toric Code", "", Category.SECTION),
            IndexEntry("generated/codes/", "codes", "codes", "The Toric code is a 2D topological code."),
            IndexEntry("generated/codes/#Surface-Code", "codes", "Surface Code", "", Category.SECTION),
            IndexEntry("generated/codes/", "codes", "codes", "The surface code is a 2D topological code."),
            IndexEntry("#TensorQEC.SurfaceCode", "Home", "TensorQEC.SurfaceCode", "SurfaceCode(m, n)", Category.TYPE),
            IndexEntry("generated/inference/", "Inference", "Inference", "Surface code inference."),
        ]
    )


def test_search_title_match(index: SearchIndex) -> None:
    """Test that title matches rank above text matches."""
    results = index.search("Toric")

    assert [(r.location, r.match) for r in results] == [
        ("generated/codes/#Toric-Code", "title"),
        ("generated/codes/", "text"),
    ]


def test_search_exact_title_ranks_first(index: SearchIndex) -> None:
    """Test that an exact title ranks at or above every text match."""
    results = index.search("surface code")

    assert [(r.title, r.match) for r in results] == [
        ("Surface Code", "exact"),
        ("TensorQEC.SurfaceCode", "title"),
        ("codes", "text"),
        ("Inference", "text"),
    ]


def test_every_title_query_finds_its_entry(index: SearchIndex) -> None:
    """Test that querying any exact title returns that entry above text-only matches."""
    for entry in index:
        results = index.search(entry.title)
        locations = [(r.location, r.title) for r in results]
        assert (entry.location, entry.title) in locations
        position = locations.index((entry.location, entry.title))
        first_text = next((i for i, r in enumerate(results) if r.match == "text"), len(results))
        assert position <= first_text


def test_search_ties_keep_index_order(index: SearchIndex) -> None:
    """Test that equally ranked entries keep their original order."""
    results = index.search("code")

    assert [r.match for r in results] == ["title"] * 6 + ["text"]
    assert [(r.location, r.title) for r in results] == [(e.location, e.title) for e in index]

    text_matches = [r.snippet for r in index.search("topological")]
    assert text_matches == [
        "The Toric code is a 2D topological code.",
        "The surface code is a 2D topological code.",
    ]


@pytest.mark.parametrize("query", ["", "   ", "\t\n", "?!*()", '"'])
def test_search_empty_query(index: SearchIndex, query: str) -> None:
    """Test that queries without words return no results."""
    assert index.search(query) == []


def test_search_no_match(index: SearchIndex) -> None:
    """Test that unmatched queries return an empty list."""
    assert index.search("Steane") == []


def test_search_requires_every_token(index: SearchIndex) -> None:
    """Test that all query words must match."""
    assert [r.location for r in index.search("toric topological")] == ["generated/codes/"]


def test_search_is_idempotent(index: SearchIndex) -> None:
    """Test that repeated queries give identical results without mutation."""
    before = index.entries

    first = index.search("code")
    second = index.search("code")

    assert first == second
    assert index.entries == before


def test_search_concurrent_readers(index: SearchIndex) -> None:
    """Test that concurrent queries agree with a sequential one."""
    expected = index.search("surface")

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: index.search("surface"), range(16)))

    assert all(result == expected for result in results)


def test_search_category_filter(index: SearchIndex) -> None:
    """Test filtering results by category."""
    results = index.search("code", category=Category.SECTION)

    assert [r.title for r in results] == ["Toric Code", "Surface Code"]


def test_search_limit(index: SearchIndex) -> None:
    """Test limiting the number of results."""
    assert len(index.search("code", limit=2)) == 2
    assert index.search("code", limit=0) == []


def test_search_negative_limit(index: SearchIndex) -> None:
    """Test that a negative limit returns nothing instead of slicing from the end."""
    assert index.search("code", limit=-1) == []


def test_search_highlight(index: SearchIndex) -> None:
    """Test highlighting matched words in snippets."""
    results = index.search("toric", highlight=True)

    assert results[1].snippet == "The <mark>Toric</mark> code is a 2D topological code."


def test_make_snippet_window() -> None:
    """Test that long text is cut around the first match."""
    text = "a " * 50 + "stabilizers " + "b " * 50
    pattern = re.compile("stabilizer", re.IGNORECASE)

    snippet = make_snippet(text, pattern, 40)

    assert snippet.startswith("...")
    assert snippet.endswith("...")
    assert "stabilizers" in snippet
    assert len(snippet) == 46


def test_make_snippet_short_text() -> None:
    """Test that short text is returned untouched."""
    assert make_snippet("Steane code", re.compile("steane", re.IGNORECASE), 40) == "Steane code"


def test_categories(index: SearchIndex) -> None:
    """Test entry counts per category."""
    assert index.categories() == {Category.PAGE: 4, Category.SECTION: 2, Category.TYPE: 1}
    assert len(index) == 7


def test_load_missing_artifact(tmp_path: Path) -> None:
    """Test that the engine refuses to start without an artifact."""
    with pytest.raises(ArtifactLoadError):
        SearchIndex.load(tmp_path / "missing.js")


def test_load_malformed_artifact(tmp_path: Path) -> None:
    """Test that a partially valid artifact is rejected as a whole."""
    path = tmp_path / "search_index.js"
    path.write_text('{"docs": [{"location": "", "category": "page"}, {"location": 1, "category": "page"}]}')

    with pytest.raises(ArtifactLoadError):
        SearchIndex.load(path)


def test_reload_round_trip(index: SearchIndex, tmp_path: Path) -> None:
    """Test that re-serializing and reloading keeps every entry."""
    path = tmp_path / "search_index.js"
    artifact.write(index.entries, path)

    reloaded = SearchIndex.load(path)

    assert reloaded.entries == index.entries
    assert reloaded.search("surface code") == index.search("surface code")


def test_build_then_query_end_to_end(tmp_path: Path) -> None:
    """Test building two pages and querying one of their sections."""
    pages = [
        Page(
            name="A",
            location="a/",
            sections=(Section(title="Toric Code", anchor="Toric-Code", blocks=(Block(text="2D topological code"),)),),
        ),
        Page(
            name="B",
            location="b/",
            sections=(Section(title="Surface Code", anchor="Surface-Code", blocks=(Block(text="2D topological code"),)),),
        ),
    ]
    path = tmp_path / "search_index.js"
    artifact.write(IndexBuilder().build_entries(pages), path)

    results = SearchIndex.load(path).search("Toric")

    assert len(results) == 1
    assert results[0].location == "a/#Toric-Code"
    assert results[0].title == "Toric Code"
    assert results[0].page == "A"


def test_build_from_sources_then_query(tmp_path: Path) -> None:
    """Test the same scenario starting from RST sources and a manifest."""
    docs = tmp_path / "src"
    docs.mkdir()
    (docs / "a.rst").write_text("Toric Code\n==========\n\n2D topological code\n")
    (docs / "b.rst").write_text("Surface Code\n============\n\n2D topological code\n")
    (docs / "pages.toml").write_text('[[pages]]\npath = "a.rst"\nname = "A"\n\n[[pages]]\npath = "b.rst"\nname = "B"\n')
    path = tmp_path / "search_index.js"
    IndexBuilder().build(docs, path)

    results = SearchIndex.load(path).search("Toric")

    assert [(r.location, r.page) for r in results] == [("a/#Toric-Code", "A")]
