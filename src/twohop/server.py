"""FastMCP server for twohop.

This module provides MCP protocol wrappers around the core business logic.
All actual logic lives in core.py - this file just handles MCP serialization.
"""

from fastmcp import FastMCP

from . import core
from ._logging import configure_logging
from .models import FileEntity, TwoHopLinks
from .session import DiscoverySession

mcp = FastMCP(
    name="twohop",
    instructions=(
        "Two-hop link discovery for a markdown vault. Use discover for everything "
        "related to a note, backlinks/new_links/tags for a single view."
    ),
)

# The note the client is looking at. A newer discover call supersedes an
# older one still running.
session = DiscoverySession(core.discover)

SUPERSEDED_WARNING = "Superseded by a newer discover call"


# ─────────────────────────────────────────────────────────────────────────────
# MCP Tool Wrappers
# ─────────────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="discover",
    description=(
        "Find notes within two hops of a note: back links, missing notes it references, "
        "and groups of notes sharing its links, tags or frontmatter values. "
        "Without a path, lists every note."
    ),
)
async def discover_tool(path: str | None = None) -> TwoHopLinks:
    """Discover two-hop links for the note the client now looks at."""
    result = await session.refresh(path)
    if result is None:
        return TwoHopLinks(warnings=[SUPERSEDED_WARNING])
    return result


@mcp.tool(
    name="backlinks",
    description="Find notes linking to a note, tagged with its name, or linked from it.",
)
async def backlinks_tool(path: str) -> list[FileEntity]:
    """Find back links."""
    return await core.backlinks(path)


@mcp.tool(
    name="new_links",
    description="Find links from a note to notes that do not exist yet.",
)
async def new_links_tool(path: str) -> TwoHopLinks:
    """Find new links."""
    return await core.new_links(path)


@mcp.tool(
    name="tags",
    description="List every hierarchical tag level of a note.",
)
async def tags_tool(path: str) -> list[str]:
    """List tags of a note."""
    return await core.file_tags(path)


@mcp.tool(
    name="list",
    description="List every note in the configured sort order.",
)
async def list_tool() -> list[FileEntity]:
    """List notes."""
    return await core.list_files()


def main() -> None:
    """Run the MCP server over stdio."""
    configure_logging()
    mcp.run()


if __name__ == "__main__":
    main()
