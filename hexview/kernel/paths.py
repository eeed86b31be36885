"""Path normalization for the virtual filesystem.

Every path stored in or passed to the VFS is absolute, ``/``-separated, free
of ``.`` and ``..`` segments, and has no trailing slash (except the root).
"""

from __future__ import annotations

from hexview.kernel.exceptions import InvalidPathError

ROOT = "/"


def normalize_path(path: str) -> str:
    """Return the canonical form of an absolute VFS path.

    Args
    ----
        path: Candidate path, e.g. ``"/components//Button.jsx"``

    Returns
    -------
        Canonical path, e.g. ``"/components/Button.jsx"``

    Raises
    ------
    InvalidPathError
        If the path is empty, relative, contains ``..`` segments or NUL bytes.
    """
    if not isinstance(path, str) or not path:
        raise InvalidPathError(str(path), "path must be a non-empty string")
    if "\x00" in path:
        raise InvalidPathError(path, "path contains a NUL byte")
    if not path.startswith("/"):
        raise InvalidPathError(path, "path must be absolute")

    segments = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            raise InvalidPathError(path, "path traversal ('..') is not allowed")
        segments.append(segment)
    return "/" + "/".join(segments)


def parent_of(path: str) -> str:
    """Return the parent directory of a normalized path (root is its own parent)."""
    if path == ROOT:
        return ROOT
    head, _, _ = path.rpartition("/")
    return head or ROOT


def basename(path: str) -> str:
    """Return the last segment of a normalized path."""
    return path.rpartition("/")[2]


def ancestors(path: str) -> list[str]:
    """Return every proper ancestor of ``path``, root first."""
    result = []
    current = parent_of(path)
    while current != ROOT:
        result.append(current)
        current = parent_of(current)
    result.append(ROOT)
    result.reverse()
    return result if path != ROOT else []


def is_descendant(path: str, ancestor: str) -> bool:
    """Whether ``path`` lies strictly inside ``ancestor``."""
    if ancestor == ROOT:
        return path != ROOT
    return path.startswith(ancestor + "/")


def join(directory: str, *parts: str) -> str:
    """Join ``parts`` onto a directory and normalize the result.

    Relative ``..`` segments are resolved lexically; climbing above the root
    raises :class:`InvalidPathError`.
    """
    segments = [s for s in directory.split("/") if s]
    for part in parts:
        for segment in part.split("/"):
            if segment in ("", "."):
                continue
            if segment == "..":
                if not segments:
                    raise InvalidPathError("/".join(parts), "path escapes the project root")
                segments.pop()
            else:
                segments.append(segment)
    return "/" + "/".join(segments)


__all__ = ["ROOT", "ancestors", "basename", "is_descendant", "join", "normalize_path", "parent_of"]
