"""
=============================================================================
CONTENT CLASSIFICATION (MIME TYPE DETECTION)
=============================================================================

Decides the Content-Type of a served file from its bytes first and its
name second.

=============================================================================
TWO-TIER DETECTION
=============================================================================

    ┌────────────────────────────────────────────────────────────────────┐
    │                   classify_content(data, path)                     │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  1. CONTENT SNIFFING                                               │
    │     Look at the first SNIFF_LENGTH bytes for a known signature     │
    │     ("magic bytes"):                                               │
    │                                                                     │
    │         89 50 4E 47 0D 0A 1A 0A   → image/png                      │
    │         25 50 44 46 2D            → application/pdf  ("%PDF-")     │
    │         1F 8B                     → application/gzip               │
    │                                                                     │
    │  2. EXTENSION TABLE                                                │
    │     No signature matched (plain text, HTML, CSS, JS, ...):         │
    │         style.css → text/css                                       │
    │                                                                     │
    │  3. DEFAULT                                                        │
    │     application/octet-stream                                       │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

The order matters. A file name is chosen by whoever uploaded the file,
so "holiday.html" may well be a PNG. The bytes cannot lie about
themselves the same way, so a signature match always wins over the
extension.

The one exception is ZIP containers: .docx, .xlsx, .jar and .epub files
are all ZIP archives on the inside. When the bytes say "ZIP" and the
extension names a ZIP-based format, the more specific extension type is
used. The extension can only narrow the sniffed family, never replace it.

=============================================================================
INTERVIEW INSIGHT
=============================================================================

Q: "Why does the Content-Type of a text file not carry a charset here?"
A: "We serve bytes exactly as they are on disk and do not know their
   encoding. Claiming utf-8 for a latin-1 file would be a lie, so the
   bare MIME type is sent and the browser sniffs the charset."

=============================================================================
"""

import mimetypes
from pathlib import Path
from typing import Optional


# =============================================================================
# MIME TYPE DATABASE (by extension)
# =============================================================================
#
# Maps file extensions (lowercase, with dot) to MIME types.
# Checked before the platform mimetypes registry so results do not
# depend on which /etc/mime.types the host happens to ship.
#
# =============================================================================

MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT TYPES
    # -------------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # -------------------------------------------------------------------------
    # IMAGE TYPES
    # -------------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",       # XML text, no magic bytes to sniff
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",

    # -------------------------------------------------------------------------
    # FONT TYPES
    # -------------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",

    # -------------------------------------------------------------------------
    # AUDIO / VIDEO TYPES
    # -------------------------------------------------------------------------
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",

    # -------------------------------------------------------------------------
    # DOCUMENT TYPES
    # -------------------------------------------------------------------------
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".odt": "application/vnd.oasis.opendocument.text",
    ".epub": "application/epub+zip",

    # -------------------------------------------------------------------------
    # ARCHIVE TYPES
    # -------------------------------------------------------------------------
    ".zip": "application/zip",
    ".jar": "application/java-archive",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".bz2": "application/x-bzip2",
    ".xz": "application/x-xz",
    ".zst": "application/zstd",
    ".rar": "application/vnd.rar",
    ".7z": "application/x-7z-compressed",

    # -------------------------------------------------------------------------
    # DATA/OTHER TYPES
    # -------------------------------------------------------------------------
    ".wasm": "application/wasm",
    ".map": "application/json",

    # -------------------------------------------------------------------------
    # SOURCE CODE TYPES
    # -------------------------------------------------------------------------
    # Served as text for viewing (not execution)
    ".py": "text/x-python",
    ".java": "text/x-java-source",
    ".c": "text/x-c",
    ".cpp": "text/x-c++",
    ".h": "text/x-c",
    ".rs": "text/x-rust",
    ".go": "text/x-go",
    ".rb": "text/x-ruby",
    ".php": "text/x-php",
    ".sh": "text/x-shellscript",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".toml": "text/x-toml",
}

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"

# Bytes inspected by the sniffer. Large enough for the tar header
# ("ustar" lives at offset 257) and the EBML doctype of WebM files.
SNIFF_LENGTH = 512


# =============================================================================
# SIGNATURE DATABASE (by content)
# =============================================================================
#
# (offset, magic bytes, MIME type). First match wins, so longer and
# more specific signatures come before shorter ones.
#
# Formats that need more than one comparison (RIFF, ISO-BMFF, EBML, BMP)
# are handled in _sniff_container() below.
#
# =============================================================================

SIGNATURES: list[tuple[int, bytes, str]] = [
    # Images
    (0, b"\x89PNG\r\n\x1a\n", "image/png"),
    (0, b"\xff\xd8\xff", "image/jpeg"),
    (0, b"GIF87a", "image/gif"),
    (0, b"GIF89a", "image/gif"),
    (0, b"II*\x00", "image/tiff"),
    (0, b"MM\x00*", "image/tiff"),
    (0, b"\x00\x00\x01\x00", "image/x-icon"),

    # Documents
    (0, b"%PDF-", "application/pdf"),

    # Archives and compression
    (0, b"PK\x03\x04", "application/zip"),
    (0, b"PK\x05\x06", "application/zip"),       # Empty archive
    (0, b"\x1f\x8b", "application/gzip"),
    (0, b"BZh", "application/x-bzip2"),
    (0, b"\xfd7zXZ\x00", "application/x-xz"),
    (0, b"\x28\xb5\x2f\xfd", "application/zstd"),
    (0, b"7z\xbc\xaf\x27\x1c", "application/x-7z-compressed"),
    (0, b"Rar!\x1a\x07", "application/vnd.rar"),
    (257, b"ustar", "application/x-tar"),

    # Fonts
    (0, b"wOFF", "font/woff"),
    (0, b"wOF2", "font/woff2"),
    (0, b"OTTO", "font/otf"),
    (0, b"\x00\x01\x00\x00\x00", "font/ttf"),

    # Audio
    (0, b"OggS", "audio/ogg"),
    (0, b"fLaC", "audio/flac"),
    (0, b"ID3", "audio/mpeg"),

    # Binaries and data
    (0, b"\x00asm", "application/wasm"),
    (0, b"\x7fELF", "application/x-executable"),
    (0, b"\xca\xfe\xba\xbe", "application/java-vm"),
    (0, b"SQLite format 3\x00", "application/vnd.sqlite3"),
]

# RIFF sub-formats: "RIFF" <size:4> <form type:4>
_RIFF_FORMS = {
    b"WEBP": "image/webp",
    b"WAVE": "audio/wav",
    b"AVI ": "video/x-msvideo",
}

# ISO base media file format: <size:4> "ftyp" <major brand:4>
_FTYP_BRANDS = {
    b"avif": "image/avif",
    b"heic": "image/heic",
    b"qt  ": "video/quicktime",
    b"M4A ": "audio/mp4",
}

# Extension types the sniffer may narrow a ZIP match to
_ZIP_BASED = {
    ".docx", ".xlsx", ".pptx", ".odt", ".epub", ".jar",
}


def _sniff_container(head: bytes) -> Optional[str]:
    """Match formats whose signature is more than a fixed prefix."""
    if head[:4] == b"RIFF" and len(head) >= 12:
        return _RIFF_FORMS.get(head[8:12])

    if head[4:8] == b"ftyp" and len(head) >= 12:
        return _FTYP_BRANDS.get(head[8:12], "video/mp4")

    if head[:4] == b"\x1a\x45\xdf\xa3":
        # EBML header; the DocType element tells WebM and Matroska apart
        return "video/webm" if b"webm" in head[:64] else "video/x-matroska"

    # "BM" alone is too common in text; the four reserved bytes must be zero
    if head[:2] == b"BM" and len(head) >= 14 and head[6:10] == b"\x00\x00\x00\x00":
        return "image/bmp"

    return None


# =============================================================================
# PUBLIC FUNCTIONS
# =============================================================================

def sniff_mime_type(data: bytes) -> Optional[str]:
    """
    Detect a MIME type from the leading bytes of a file.

    Only the first SNIFF_LENGTH bytes are inspected, so this is cheap
    even for very large files.

    Args:
        data: File content (or at least its first SNIFF_LENGTH bytes)

    Returns:
        The MIME type, or None if no known signature matched.

    Examples:
        >>> sniff_mime_type(b"\\x89PNG\\r\\n\\x1a\\n....")
        'image/png'

        >>> sniff_mime_type(b"<h1>hi</h1>") is None
        True
    """
    head = data[:SNIFF_LENGTH]

    for offset, magic, mime_type in SIGNATURES:
        if head.startswith(magic, offset):
            return mime_type

    return _sniff_container(head)


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Looks in MIME_TYPES first, then the platform mimetypes registry.

    Args:
        path: File path or name with extension
        default: Default MIME type if extension not found
                 Uses application/octet-stream if not specified

    Returns:
        The MIME type string

    Examples:
        >>> get_mime_type("style.css")
        'text/css'

        >>> get_mime_type("/path/to/image.PNG")
        'image/png'

        >>> get_mime_type("unknown.qqqzz")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    extension = path.suffix.lower()  # .PNG → .png
    if extension in MIME_TYPES:
        return MIME_TYPES[extension]

    guessed, _ = mimetypes.guess_type(path.name, strict=False)
    return guessed or default or DEFAULT_MIME_TYPE


def classify_content(data: bytes, path: str | Path) -> str:
    """
    Determine the Content-Type of a file being served.

    Args:
        data: The file's bytes
        path: The file's path (only its extension is used)

    Returns:
        A bare MIME type (no charset parameter)

    Examples:
        >>> classify_content(b"<h1>hi</h1>", "index.html")
        'text/html'

        >>> classify_content(b"%PDF-1.7 ...", "report.txt")
        'application/pdf'
    """
    sniffed = sniff_mime_type(data)

    if sniffed is None:
        return get_mime_type(path)

    if sniffed == "application/zip":
        suffix = Path(path).suffix.lower()
        if suffix in _ZIP_BASED:
            return MIME_TYPES[suffix]

    return sniffed
