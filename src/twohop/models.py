"""Pydantic models for two-hop link discovery."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FileEntity(BaseModel):
    """A reference to a document as shown to the user.

    Two entities are the same iff their (source_path, link_text) pairs match.
    """

    model_config = ConfigDict(frozen=True)

    source_path: str  # Document to open when the entity is activated
    link_text: str  # Display identity (path without .md, no #subreference)

    def key(self) -> tuple[str, str]:
        return (self.source_path, self.link_text)


class PropertiesLinks(BaseModel):
    """A bucket of documents sharing a tag, a link target or a frontmatter value."""

    property: str  # Tag, target display text or frontmatter value
    key: str  # "links", "tags" or the frontmatter field name
    links: list[FileEntity] = Field(min_length=1)


class TwoHopLinks(BaseModel):
    """Everything discovered for one active document."""

    new_links: list[FileEntity] = Field(default_factory=list)
    backward_links: list[FileEntity] = Field(default_factory=list)
    tag_links_list: list[PropertiesLinks] = Field(default_factory=list)
    frontmatter_key_links_list: list[PropertiesLinks] = Field(default_factory=list)
    all_files: list[FileEntity] = Field(default_factory=list)  # Only without an active document
    warnings: list[str] = Field(default_factory=list)


# ─────────────────────────────────────────────────────────────────────────────
# Extracted metadata
# ─────────────────────────────────────────────────────────────────────────────


class LinkCache(BaseModel):
    """One outgoing reference as written in a document."""

    link: str  # Raw target, e.g. "folder/Note#Heading"
    original: str = ""  # Source text, e.g. "[[folder/Note#Heading|alias]]"
    display_text: str | None = None


class TagCache(BaseModel):
    """One inline tag occurrence."""

    tag: str  # With the leading "#", e.g. "#project/alpha"


class FileMetadata(BaseModel):
    """Metadata extracted from one markdown document."""

    links: list[LinkCache] = Field(default_factory=list)
    embeds: list[LinkCache] = Field(default_factory=list)
    frontmatter_links: list[LinkCache] = Field(default_factory=list)
    tags: list[TagCache] = Field(default_factory=list)
    frontmatter: dict[str, Any] | None = None

    def references(self) -> list[LinkCache]:
        """Links, embeds and frontmatter links, in that order."""
        return [*self.links, *self.embeds, *self.frontmatter_links]


class CanvasNode(BaseModel):
    """A node of a canvas board. Only file nodes matter for discovery."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str | None = None
    file: str | None = None
