"""Markdown parsing with YAML frontmatter support."""

import logging
from typing import Any

import frontmatter

from ..models import FileMetadata
from .links import extract_frontmatter_links, extract_references, extract_tags_from_body

log = logging.getLogger(__name__)


def split_frontmatter(text: str, path: str = "<document>") -> tuple[dict[str, Any], str]:
    """Split a document into (frontmatter, body).

    A broken frontmatter block is not fatal: the document is treated as
    having no frontmatter and the whole text as body.
    """
    try:
        post = frontmatter.loads(text)
    except Exception as e:
        log.debug("Ignoring unreadable frontmatter in %s: %s", path, e)
        return {}, text
    return dict(post.metadata), post.content


def parse_metadata(text: str, path: str = "<document>") -> FileMetadata:
    """Extract links, embeds, tags and frontmatter from a markdown document.

    Args:
        text: Full document text, frontmatter included.
        path: Used in log messages only.

    Returns:
        FileMetadata for the document. frontmatter is None when the
        document has none.
    """
    metadata, body = split_frontmatter(text, path)
    links, embeds = extract_references(body)

    return FileMetadata(
        links=links,
        embeds=embeds,
        frontmatter_links=extract_frontmatter_links(metadata),
        tags=extract_tags_from_body(body),
        frontmatter=metadata or None,
    )
