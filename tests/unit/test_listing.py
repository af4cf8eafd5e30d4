"""
Unit tests for directory listing pages.
"""

import os
from pathlib import Path

import pytest

from staticserver.handlers.listing import DirectoryEntry, DirectoryRenderer


@pytest.fixture
def renderer(served_root: Path) -> DirectoryRenderer:
    return DirectoryRenderer(served_root.resolve())


class TestUrlFor:

    def test_root(self, renderer: DirectoryRenderer):
        assert renderer.url_for(renderer.root, is_dir=True) == "/"

    def test_file(self, renderer: DirectoryRenderer):
        assert renderer.url_for(renderer.root / "index.html") == "/index.html"

    def test_directory_gets_trailing_slash(self, renderer: DirectoryRenderer):
        assert renderer.url_for(renderer.root / "docs", is_dir=True) == "/docs/"

    def test_percent_encoding(self, renderer: DirectoryRenderer):
        assert renderer.url_for(renderer.root / "a b.txt") == "/a%20b.txt"
        assert renderer.url_for(renderer.root / "100%.txt") == "/100%25.txt"
        assert renderer.url_for(renderer.root / "q?.txt") == "/q%3F.txt"
        assert renderer.url_for(renderer.root / "café") == "/caf%C3%A9"

    def test_nested(self, renderer: DirectoryRenderer):
        assert renderer.url_for(renderer.root / "docs" / "readme.md") == "/docs/readme.md"


class TestParentEntry:

    def test_root_parent_is_root(self, renderer: DirectoryRenderer):
        assert renderer.parent_entry(renderer.root) == DirectoryEntry("..", "/")

    def test_top_level_parent_is_root(self, renderer: DirectoryRenderer):
        assert renderer.parent_entry(renderer.root / "docs").href == "/"

    def test_nested_parent(self, renderer: DirectoryRenderer):
        nested = renderer.root / "docs" / "deeper"
        nested.mkdir()
        assert renderer.parent_entry(nested).href == "/docs/"


class TestEntries:

    def test_one_entry_per_child(self, renderer: DirectoryRenderer):
        entries = renderer.entries(renderer.root)
        assert len(entries) == len(os.listdir(renderer.root))

    def test_sorted_by_name(self, renderer: DirectoryRenderer):
        names = [entry.display_name.rstrip("/") for entry in renderer.entries(renderer.root)]
        assert names == sorted(os.listdir(renderer.root))

    def test_directories_marked(self, renderer: DirectoryRenderer):
        entries = {e.display_name: e.href for e in renderer.entries(renderer.root)}

        assert entries["docs/"] == "/docs/"
        assert entries["empty/"] == "/empty/"
        assert entries["inner/"] == "/inner/"
        assert entries["index.html"] == "/index.html"

    def test_hrefs_use_link_name_not_target(self, renderer: DirectoryRenderer):
        """A symlink leaving the root is listed by its own name."""
        entries = {e.display_name: e.href for e in renderer.entries(renderer.root)}
        assert entries["escape/"] == "/escape/"

    def test_empty_directory(self, renderer: DirectoryRenderer):
        assert renderer.entries(renderer.root / "empty") == []

    def test_not_recursive(self, renderer: DirectoryRenderer):
        hrefs = [e.href for e in renderer.entries(renderer.root)]
        assert "/docs/readme.md" not in hrefs


class TestRender:

    def test_exactly_one_parent_link(self, renderer: DirectoryRenderer):
        listing = renderer.render(renderer.root)
        page = listing.body.decode("utf-8")

        assert listing.parent == DirectoryEntry("..", "/")
        assert page.count(">..</a>") == 1
        assert page.count("<li>") == len(listing.entries) + 1

    def test_content_length_matches_body(self, renderer: DirectoryRenderer):
        listing = renderer.render(renderer.root)
        assert listing.content_length == len(listing.body)

    def test_names_are_escaped(self, renderer: DirectoryRenderer):
        page = renderer.render(renderer.root).body.decode("utf-8")

        assert "<script>" not in page
        assert "&lt;script&gt;.txt" in page
        assert 'href="/%3Cscript%3E.txt"' in page

    def test_hrefs_are_encoded(self, renderer: DirectoryRenderer):
        page = renderer.render(renderer.root).body.decode("utf-8")
        assert 'href="/a%20b.txt"' in page

    def test_quote_in_name_cannot_break_attribute(self, renderer: DirectoryRenderer):
        (renderer.root / 'x" onmouseover="y').write_bytes(b"")
        page = renderer.render(renderer.root).body.decode("utf-8")

        assert 'onmouseover="y' not in page

    def test_title_is_root_relative(self, renderer: DirectoryRenderer):
        page = renderer.render(renderer.root / "docs").body.decode("utf-8")

        assert "<title>Index of /docs/</title>" in page
        assert str(renderer.root) not in page

    def test_empty_directory_has_only_parent(self, renderer: DirectoryRenderer):
        listing = renderer.render(renderer.root / "empty")

        assert listing.entries == ()
        assert listing.body.decode("utf-8").count("<li>") == 1

    def test_rendering_is_deterministic(self, renderer: DirectoryRenderer):
        assert renderer.render(renderer.root).body == renderer.render(renderer.root).body

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="root ignores permissions")
    def test_unreadable_directory_raises(self, renderer: DirectoryRenderer):
        locked = renderer.root / "locked"
        locked.mkdir()
        locked.chmod(0)
        try:
            with pytest.raises(OSError):
                renderer.render(locked)
        finally:
            locked.chmod(0o755)
