"""Markdown metadata extraction: links, embeds, tags and frontmatter."""

from ..models import FileMetadata, LinkCache, TagCache
from .links import extract_frontmatter_links, extract_references, extract_tags_from_body, strip_code
from .markdown import parse_metadata, split_frontmatter

__all__ = [
    "FileMetadata",
    "LinkCache",
    "TagCache",
    "extract_references",
    "extract_frontmatter_links",
    "extract_tags_from_body",
    "strip_code",
    "parse_metadata",
    "split_frontmatter",
]
