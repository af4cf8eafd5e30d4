"""
Request handlers: path resolution, directory listings and the static
file handler that ties them to HTTP responses.
"""

from .resolver import AccessDenied, PathKind, PathResolver, ResolvedPath
from .listing import DirectoryEntry, DirectoryListing, DirectoryRenderer
from .static import StaticFileHandler

__all__ = [
    "AccessDenied",
    "PathKind",
    "PathResolver",
    "ResolvedPath",
    "DirectoryEntry",
    "DirectoryListing",
    "DirectoryRenderer",
    "StaticFileHandler",
]
