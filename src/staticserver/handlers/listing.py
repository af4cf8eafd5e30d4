"""
=============================================================================
DIRECTORY LISTING
=============================================================================

Renders the HTML index page served for directory requests.

=============================================================================
PAGE LAYOUT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Index of /photos/                                                   │
    │  ─────────────────────────────────────────────────────────────────  │
    │  ..                     → href="/"              (always, exactly 1) │
    │  2024/                  → href="/photos/2024/"                      │
    │  cat.png                → href="/photos/cat.png"                    │
    │  my%20notes.txt         → href="/photos/my%2520notes.txt"           │
    └─────────────────────────────────────────────────────────────────────┘

Rules:
    - Immediate children only. Nothing is recursed into.
    - Entries are sorted by name so the same directory always renders
      the same bytes.
    - Hrefs are root-relative and start with "/". They are built from
      the raw filesystem name, percent-encoded (the resolver decodes
      exactly once), then HTML-escaped.
    - Display names are HTML-escaped. A file called "<script>.txt"
      shows up as "&lt;script&gt;.txt".
    - The root's ".." link points at the root itself ("/").
    - The heading shows the root-relative path, never where the root
      lives on disk.

If any child cannot be inspected (permission error, deleted while we
were listing) the whole listing fails with OSError. A half-rendered
directory is worse than an error page.

=============================================================================
"""

import html
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote


@dataclass(frozen=True)
class DirectoryEntry:
    """
    One row of a directory listing.

    Both fields are unescaped; escaping happens at render time.
    """
    display_name: str
    href: str


@dataclass(frozen=True)
class DirectoryListing:
    """A rendered directory page."""
    directory: Path
    parent: DirectoryEntry
    entries: tuple[DirectoryEntry, ...]
    body: bytes

    @property
    def content_length(self) -> int:
        return len(self.body)


_PAGE_HEAD = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Index of {title}</title>
    <style>
        body {{ font-family: monospace; padding: 20px; }}
        h1 {{ border-bottom: 1px solid #ccc; padding-bottom: 10px; }}
        ul {{ list-style: none; padding: 0; }}
        li {{ padding: 5px 0; }}
        a {{ text-decoration: none; color: #0066cc; }}
        a:hover {{ text-decoration: underline; }}
    </style>
</head>
<body>
    <h1>Index of {title}</h1>
    <ul>
"""

_PAGE_TAIL = """    </ul>
</body>
</html>
"""


def _printable(name: str) -> str:
    """Make an os-level name safe to encode as UTF-8 for display."""
    # Undecodable bytes arrive as lone surrogates (surrogateescape)
    return os.fsencode(name).decode("utf-8", errors="replace")


class DirectoryRenderer:
    """
    Renders directory listings for paths inside a server root.

    Usage:
        renderer = DirectoryRenderer(resolver.root)
        listing = renderer.render(resolved.absolute_path)
        response_body = listing.body
    """

    def __init__(self, root: Path):
        """
        Args:
            root: Canonical server root. Hrefs are made relative to it.
        """
        self.root = root

    def url_for(self, path: Path, is_dir: bool = False) -> str:
        """
        Root-relative, percent-encoded URL for a path inside the root.

        Examples (root = /srv/www):
            /srv/www              → "/"
            /srv/www/a b.txt      → "/a%20b.txt"
            /srv/www/docs (dir)   → "/docs/"
        """
        relative = path.relative_to(self.root).as_posix()
        if relative == ".":
            return "/"

        # Encode the raw bytes so non-UTF-8 names still round-trip
        url = "/" + quote(os.fsencode(relative), safe="/")
        return url + "/" if is_dir else url

    def display_path(self, directory: Path) -> str:
        """Human-readable root-relative path of a directory, e.g. "/docs/"."""
        relative = directory.relative_to(self.root).as_posix()
        if relative == ".":
            return "/"
        return "/" + _printable(relative) + "/"

    def parent_entry(self, directory: Path) -> DirectoryEntry:
        """The ".." link. At the root it points back at the root."""
        parent = directory.parent if directory != self.root else self.root
        return DirectoryEntry(display_name="..", href=self.url_for(parent, is_dir=True))

    def entries(self, directory: Path) -> list[DirectoryEntry]:
        """
        List immediate children, sorted by name.

        Raises:
            OSError: If the directory or any child cannot be inspected.
        """
        result = []

        with os.scandir(directory) as it:
            children = sorted(it, key=lambda entry: entry.name)

        for child in children:
            # Follows symlinks, so a link to a directory lists as one.
            # A dangling link raises nothing here and lists as a file.
            is_dir = child.is_dir()
            # Raises for entries deleted or made unreadable since scandir
            child.stat(follow_symlinks=False)

            name = _printable(child.name)
            result.append(DirectoryEntry(
                display_name=name + "/" if is_dir else name,
                href=self.url_for(Path(child.path), is_dir=is_dir),
            ))

        return result

    def render(self, directory: Path) -> DirectoryListing:
        """
        Render the HTML listing of a directory.

        Args:
            directory: Canonical directory path inside the root.

        Returns:
            DirectoryListing with the page bytes and the entries shown.

        Raises:
            OSError: If any child entry cannot be read.
        """
        parent = self.parent_entry(directory)
        children = self.entries(directory)

        title = html.escape(self.display_path(directory))
        rows = [self._row(parent)]
        rows.extend(self._row(entry) for entry in children)

        page = _PAGE_HEAD.format(title=title) + "".join(rows) + _PAGE_TAIL

        return DirectoryListing(
            directory=directory,
            parent=parent,
            entries=tuple(children),
            body=page.encode("utf-8"),
        )

    @staticmethod
    def _row(entry: DirectoryEntry) -> str:
        href = html.escape(entry.href, quote=True)
        name = html.escape(entry.display_name, quote=True)
        return f'        <li><a href="{href}">{name}</a></li>\n'
