"""Link and tag extraction from markdown text."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import unquote

from ..models import LinkCache, TagCache

# Fenced code blocks (``` or ~~~) and inline `code` never carry links or tags
FENCED_CODE_PATTERN = re.compile(r"^(```|~~~)[^\n]*\n.*?^\1[^\n]*$", re.MULTILINE | re.DOTALL)
INLINE_CODE_PATTERN = re.compile(r"`[^`\n]+`")

# [[target]], [[target|alias]], ![[embed]], [text](target), ![alt](target)
REFERENCE_PATTERN = re.compile(
    r"(?P<bang>!?)"
    r"(?:\[\[(?P<wiki>[^\[\]\n]+?)\]\]"
    r"|\[(?P<text>[^\[\]\n]*)\]\((?P<url><[^>\n]+>|[^()\s]+)(?:\s+\"[^\"\n]*\")?\))"
)

# Wikilinks only, for frontmatter values
WIKILINK_PATTERN = re.compile(r"\[\[([^\[\]\n]+?)\]\]")

# #tag and #nested/tag, not preceded by a word character or another "#"
TAG_PATTERN = re.compile(r"(?<![\w#/])#([\w\-/]+)")

URL_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


def strip_code(content: str) -> str:
    """Blank out fenced and inline code so it is not scanned."""
    content = FENCED_CODE_PATTERN.sub(lambda m: "\n" * m.group(0).count("\n"), content)
    return INLINE_CODE_PATTERN.sub("", content)


def _split_alias(inner: str) -> tuple[str, str | None]:
    target, sep, alias = inner.partition("|")
    return target.strip(), (alias.strip() if sep else None)


def extract_references(content: str) -> tuple[list[LinkCache], list[LinkCache]]:
    """Extract outgoing references from a markdown body.

    Args:
        content: Markdown body (frontmatter already removed).

    Returns:
        Tuple of (links, embeds) in document order. External URLs are skipped.
    """
    links: list[LinkCache] = []
    embeds: list[LinkCache] = []

    for match in REFERENCE_PATTERN.finditer(strip_code(content)):
        if match.group("wiki") is not None:
            target, alias = _split_alias(match.group("wiki"))
        else:
            url = match.group("url")
            if url.startswith("<") and url.endswith(">"):
                url = url[1:-1]
            if URL_SCHEME_PATTERN.match(url):
                continue
            target, alias = unquote(url).strip(), match.group("text") or None

        if not target:
            continue

        entry = LinkCache(link=target, original=match.group(0), display_text=alias)
        if match.group("bang"):
            embeds.append(entry)
        else:
            links.append(entry)

    return links, embeds


def extract_frontmatter_links(metadata: dict[str, Any]) -> list[LinkCache]:
    """Extract [[wikilinks]] written inside frontmatter string values."""
    found: list[LinkCache] = []

    def walk(value: Any) -> None:
        if isinstance(value, str):
            for match in WIKILINK_PATTERN.finditer(value):
                target, alias = _split_alias(match.group(1))
                if target:
                    found.append(LinkCache(link=target, original=match.group(0), display_text=alias))
        elif isinstance(value, list):
            for item in value:
                walk(item)
        elif isinstance(value, dict):
            for item in value.values():
                walk(item)

    for value in metadata.values():
        walk(value)
    return found


def extract_tags_from_body(content: str) -> list[TagCache]:
    """Extract inline #tags. Purely numeric tags ("#123") are not tags."""
    tags: list[TagCache] = []
    # Targets like [[#Heading]] or (note.md#part) are not tags
    scannable = REFERENCE_PATTERN.sub(" ", strip_code(content))
    for match in TAG_PATTERN.finditer(scannable):
        tag = match.group(1).strip("/")
        if not tag or tag.replace("/", "").isdigit():
            continue
        tags.append(TagCache(tag=f"#{tag}"))
    return tags
