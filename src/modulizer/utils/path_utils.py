"""
Path utilities for document keys and output locations.

Document keys are POSIX-style paths relative to the load root
(``"case-map/case-map.html"``), independent of the host platform. This
module resolves import links between keys, derives module output keys and
the relative specifiers written into ``import`` declarations, and provides
the few file-system checks the loader and the output writer need.

Examples:
    >>> from modulizer.utils.path_utils import resolve_link, module_key
    >>> resolve_link("elements/button.html", "../lib/base.html")
    'lib/base.html'
    >>> module_key("elements/button.html")
    './elements/button.js'
"""

from __future__ import annotations

import os
import posixpath
from pathlib import Path, PurePosixPath
from typing import Union
from urllib.parse import urlsplit

# Type alias for path-like objects
PathLike = Union[str, Path]


def normalize_path(path: PathLike) -> Path:
    """
    Convert a string or Path object to a normalized absolute Path.

    Args:
        path: A file system path as string or Path object.

    Returns:
        Normalized absolute Path object.

    Raises:
        ValueError: If path is empty or None.

    Examples:
        >>> normalize_path("~/components")
        PosixPath('/home/user/components')
    """
    if path is None or (isinstance(path, str) and not path.strip()):
        raise ValueError("Path cannot be None or empty")

    return Path(path).expanduser().resolve()


def ensure_directory(path: Path) -> Path:
    """
    Create directory if it doesn't exist, return Path.

    Raises:
        OSError: If directory creation fails.
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_safe_path(path: Path, base: Path) -> bool:
    """
    Validate path doesn't escape base directory.

    Args:
        path: Path to validate.
        base: Base directory that should contain the path.

    Returns:
        True if path is within base, False otherwise.

    Examples:
        >>> is_safe_path(Path("/out/a/b.js"), Path("/out"))
        True
        >>> is_safe_path(Path("/out/../etc/passwd"), Path("/out"))
        False
    """
    try:
        path.resolve().relative_to(base.resolve())
        return True
    except (ValueError, OSError):
        return False


def is_readable(path: Path) -> bool:
    """Check if path exists and has read permissions."""
    return path.exists() and os.access(path, os.R_OK)


def is_writable(path: Path) -> bool:
    """Check if path exists and has write permissions."""
    return path.exists() and os.access(path, os.W_OK)


def normalize_key(key: str) -> str:
    """
    Canonicalize a document key.

    Backslashes become forward slashes, ``.`` and ``..`` segments are
    collapsed and any leading ``./`` or ``/`` is removed.

    Raises:
        ValueError: If the key is empty or climbs above the load root.

    Examples:
        >>> normalize_key("./a/../b/c.html")
        'b/c.html'
    """
    if not key or not key.strip():
        raise ValueError("Document key cannot be empty")

    normalized = posixpath.normpath(key.replace("\\", "/")).lstrip("/")
    if normalized == ".." or normalized.startswith("../"):
        raise ValueError(f"Document key escapes the load root: {key}")
    return normalized


def is_external_href(href: str) -> bool:
    """
    Check whether a link target points outside the document set.

    Absolute URLs (``https://...``), protocol-relative URLs and ``data:``
    targets are never loaded.
    """
    parts = urlsplit(href)
    return bool(parts.scheme) or bool(parts.netloc)


def resolve_link(from_key: str, href: str) -> str:
    """
    Resolve an import link relative to the document that declares it.

    Query strings and fragments are ignored.

    Examples:
        >>> resolve_link("a/b.html", "./c.html")
        'a/c.html'
        >>> resolve_link("a/b.html", "/lib/d.html")
        'lib/d.html'
    """
    target = urlsplit(href).path
    if target.startswith("/"):
        return normalize_key(target)
    base_dir = posixpath.dirname(from_key)
    return normalize_key(posixpath.join(base_dir, target))


def change_extension(key: str, new_ext: str) -> str:
    """
    Replace the extension of a document key.

    Examples:
        >>> change_extension("a/b.html", ".js")
        'a/b.js'
        >>> change_extension("README", "js")
        'README.js'
    """
    if not new_ext.startswith("."):
        new_ext = "." + new_ext
    return str(PurePosixPath(key).with_suffix(new_ext))


def module_key(document_key: str, module_ext: str = ".js") -> str:
    """
    Derive the output key of a converted document.

    The directory structure is preserved and the key is written in the
    ``./``-prefixed form used for module specifiers.
    """
    return "./" + change_extension(normalize_key(document_key), module_ext)


def module_specifier(from_module: str, to_module: str) -> str:
    """
    Compute the relative specifier used to import one module from another.

    Examples:
        >>> module_specifier("./a/b.js", "./a/c.js")
        './c.js'
        >>> module_specifier("./a/b.js", "./lib/d.js")
        '../lib/d.js'
    """
    source_dir = posixpath.dirname(normalize_key(from_module))
    target = normalize_key(to_module)
    relative = posixpath.relpath(target, source_dir or ".")
    if relative.startswith("../"):
        return relative
    return "./" + relative
