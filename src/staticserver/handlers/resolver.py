"""
=============================================================================
PATH RESOLUTION
=============================================================================

Translates an untrusted, URL-encoded request path into a location on
disk that is guaranteed to lie inside the server root.

=============================================================================
THE ALGORITHM
=============================================================================

    raw path from request line:   /docs/..%2F..%2Fetc/passwd?x=1
                │
                ▼  1. drop query string, percent-decode ONCE
    decoded:                      /docs/../../etc/passwd
                │
                ▼  2. strip leading "/", join onto root
    candidate:                    /srv/www/docs/../../etc/passwd
                │
                ▼  3. canonicalize (resolve ".", "..", symlinks)
    canonical:                    /etc/passwd
                │
                ▼  4. is canonical == root or inside root?
                         NO  → raise AccessDenied
                         YES → 5. exists?  NO  → MISSING
                                           YES → FILE / DIRECTORY

=============================================================================
WHY CANONICALIZE BEFORE THE PREFIX CHECK?
=============================================================================

The prefix check is the ONLY traversal defense, so it must run on the
path the operating system will actually open:

    - "docs/../../etc" looks like it starts with "docs" but does not
      end up inside it. Normalizing ".." first catches that.
    - "docs/link" where link → /etc is inside the root by name only.
      Resolving symlinks first catches that.

String checks like `".." in path` are both too strict (a file named
"notes..txt") and too weak (symlinks). Path.resolve() followed by a
component-wise relative_to() check is neither.

=============================================================================
DECODING EXACTLY ONCE
=============================================================================

    "%2e%2e%2f"   → "../"     decoded once: traversal, caught by step 4
    "%252e%252e"  → "%2e%2e"  decoded once: a literal file name

Decoding a second time would turn the second line into "..", which is
exactly the bypass double-encoding attacks rely on.

=============================================================================
"""

import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import unquote


class AccessDenied(PermissionError):
    """
    The requested path resolves outside the server root.

    Never rendered as content. The server answers 403 Forbidden.
    """

    def __init__(self, request_path: str):
        super().__init__(f"Access denied: {request_path!r} resolves outside the server root")
        self.request_path = request_path


class PathKind(Enum):
    """What a resolved path points at."""
    FILE = "file"
    DIRECTORY = "directory"
    MISSING = "missing"


@dataclass(frozen=True)
class ResolvedPath:
    """
    Result of resolving a request path.

    Attributes:
        absolute_path: Canonical path for FILE and DIRECTORY, always the
                       root or a descendant of it. For MISSING, the
                       intended (non-canonical) target, kept for logging.
        kind:          FILE, DIRECTORY or MISSING.
    """
    absolute_path: Path
    kind: PathKind

    @property
    def exists(self) -> bool:
        return self.kind is not PathKind.MISSING


class PathResolver:
    """
    Maps request paths onto a fixed root directory.

    The root is canonicalized once, here, and never re-read from the
    process state afterwards. Tests can point a resolver at any
    temporary directory.

    Usage:
        resolver = PathResolver("/srv/www")
        resolved = resolver.resolve("/css/site.css")
        if resolved.kind is PathKind.FILE:
            data = resolved.absolute_path.read_bytes()
    """

    def __init__(self, root: str | Path):
        """
        Args:
            root: Directory to serve. Relative paths are taken relative
                  to the current working directory.

        Raises:
            ValueError: If root is not an existing directory.
        """
        self.root = Path(root).resolve()

        if not self.root.is_dir():
            raise ValueError(f"Server root is not a directory: {root}")

    def contains(self, path: Path) -> bool:
        """Check that a canonical path is the root or inside it."""
        try:
            path.relative_to(self.root)
        except ValueError:
            return False
        return True

    def resolve(self, request_path: str) -> ResolvedPath:
        """
        Resolve a raw request path.

        Args:
            request_path: Path from the request line, still URL-encoded.

        Returns:
            ResolvedPath with kind FILE, DIRECTORY or MISSING.

        Raises:
            AccessDenied: If the path resolves outside the root.
            OSError: If the path cannot be canonicalized (symlink loop).
        """
        # ─────────────────────────────────────────────────────────────────
        # STEP 1: DECODE
        # ─────────────────────────────────────────────────────────────────
        # The query string and fragment never name a file.
        path_part = request_path.split("?", 1)[0].split("#", 1)[0]

        # unquote() turns %xx runs into bytes and decodes them as UTF-8,
        # so "%C3%A9" becomes "é". Invalid sequences become U+FFFD.
        decoded = unquote(path_part, encoding="utf-8", errors="replace")

        # ─────────────────────────────────────────────────────────────────
        # STEP 2: JOIN
        # ─────────────────────────────────────────────────────────────────
        # A leading "/" would make the join discard the root entirely.
        relative = decoded.lstrip("/")
        candidate = self.root / relative if relative else self.root

        # NUL cannot appear in a filename and makes os calls raise
        # ValueError, so nothing can exist there. The path without it
        # must still stay inside the root.
        if "\x00" in relative:
            stripped = (self.root / relative.replace("\x00", "")).resolve()
            if not self.contains(stripped):
                raise AccessDenied(request_path)
            return ResolvedPath(candidate, PathKind.MISSING)

        # ─────────────────────────────────────────────────────────────────
        # STEP 3: CANONICALIZE
        # ─────────────────────────────────────────────────────────────────
        # Non-strict: a missing tail is fine, every existing prefix
        # (including symlinks) is still resolved.
        try:
            canonical = candidate.resolve()
        except RuntimeError as e:
            # Symlink loop on Python < 3.13
            raise OSError(f"Cannot canonicalize {candidate}: {e}") from e

        # ─────────────────────────────────────────────────────────────────
        # STEP 4: CONTAINMENT CHECK
        # ─────────────────────────────────────────────────────────────────
        if not self.contains(canonical):
            raise AccessDenied(request_path)

        # ─────────────────────────────────────────────────────────────────
        # STEP 5: CLASSIFY
        # ─────────────────────────────────────────────────────────────────
        try:
            mode = canonical.stat().st_mode
        except (FileNotFoundError, NotADirectoryError):
            return ResolvedPath(candidate, PathKind.MISSING)

        if stat.S_ISDIR(mode):
            return ResolvedPath(canonical, PathKind.DIRECTORY)
        if stat.S_ISREG(mode):
            return ResolvedPath(canonical, PathKind.FILE)

        # Sockets, FIFOs and devices are never served
        return ResolvedPath(candidate, PathKind.MISSING)
