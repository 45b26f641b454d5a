"""Path and link-text normalization."""

from __future__ import annotations

from collections.abc import Iterable

from .config import MARKDOWN_EXTENSION, SUBREFERENCE_SEPARATOR


def file_path_to_link_text(path: str) -> str:
    """Convert a document path to its display identity.

    Only the markdown extension is dropped, so "board.canvas" keeps its
    suffix and never collides with a "board.md" note.

    Examples:
        "notes/Alpha.md" -> "notes/Alpha"
        "board.canvas" -> "board.canvas"
    """
    if path.endswith(MARKDOWN_EXTENSION):
        return path[: -len(MARKDOWN_EXTENSION)]
    return path


def remove_block_reference(link: str) -> str:
    """Strip a section or block reference from a link target.

    Examples:
        "Note#Heading" -> "Note"
        "Note#^abc123" -> "Note"
        "Note" -> "Note"
    """
    index = link.find(SUBREFERENCE_SEPARATOR)
    if index == -1:
        return link
    return link[:index]


def should_exclude_path(path: str, exclude_paths: Iterable[str]) -> bool:
    """Check a vault-relative path against the exclusion list.

    A pattern ending in "/" excludes the whole folder. Any other pattern
    excludes the exact path, the same path without ".md", or a folder of
    that name.
    """
    link_text = file_path_to_link_text(path)
    for pattern in exclude_paths:
        if not pattern:
            continue
        if pattern.endswith("/"):
            if path.startswith(pattern):
                return True
            continue
        if path == pattern or link_text == pattern or path.startswith(pattern + "/"):
            return True
    return False


def parent_folder(path: str) -> str:
    """Folder part of a vault-relative path ("" for the vault root)."""
    index = path.rfind("/")
    if index == -1:
        return ""
    return path[:index]
