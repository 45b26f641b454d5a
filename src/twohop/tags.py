"""Hierarchical tag extraction."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .config import HIERARCHY_SEPARATOR
from .models import FileMetadata


def expand_hierarchy(value: str) -> list[str]:
    """Expand "a/b/c" into ["a", "a/b", "a/b/c"]."""
    parts = [part for part in value.split(HIERARCHY_SEPARATOR) if part]
    return [HIERARCHY_SEPARATOR.join(parts[: i + 1]) for i in range(len(parts))]


def _frontmatter_tag_values(raw: object) -> list[str]:
    if isinstance(raw, list):
        return [tag.strip() for tag in raw if isinstance(tag, str)]
    if isinstance(raw, str):
        return [tag.strip() for tag in raw.split(",")]
    return []


def is_excluded_tag(tag: str, exclude_tags: Iterable[str]) -> bool:
    """Check a tag against exclusion patterns.

    "x/" excludes "x" and everything under it; "x" excludes only "x".
    """
    for pattern in exclude_tags:
        if pattern.endswith(HIERARCHY_SEPARATOR):
            if tag == pattern[:-1] or tag.startswith(pattern):
                return True
        elif tag == pattern:
            return True
    return False


def extract_tags(metadata: FileMetadata | None, exclude_tags: Sequence[str] = ()) -> list[str]:
    """Collect every hierarchical tag level of a document.

    Inline tags come first, then the frontmatter "tags" field. Duplicates are
    kept in first-seen order; callers deduplicate when they need to.

    Args:
        metadata: Extracted document metadata, or None when the index has
            no entry for the document.
        exclude_tags: Exclusion patterns, applied after expansion.

    Returns:
        Ordered tag list without the leading "#".
    """
    if metadata is None:
        return []

    tags: list[str] = []
    for cached in metadata.tags:
        tags.extend(expand_hierarchy(cached.tag.lstrip("#")))

    if metadata.frontmatter:
        for tag in _frontmatter_tag_values(metadata.frontmatter.get("tags")):
            tags.extend(expand_hierarchy(tag.lstrip("#")))

    return [tag for tag in tags if not is_excluded_tag(tag, exclude_tags)]
