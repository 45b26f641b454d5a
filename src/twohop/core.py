"""Core business logic for twohop.

This module is the async facade shared by the CLI (cli.py) and the MCP
server (server.py). Each call takes a fresh snapshot of the vault, so
results always reflect the files on disk at query time.
"""

from __future__ import annotations

import asyncio
import difflib
import logging
from pathlib import Path, PurePosixPath

from .config import ConfigurationError, MARKDOWN_EXTENSION, Settings, get_vault_root, load_settings
from .errors import ErrorCode, TwohopError
from .index import VaultMetadataIndex
from .links import DiscoveryState, TwoHopLinkFinder
from .models import FileEntity, TwoHopLinks
from .parser import parse_metadata
from .tags import extract_tags
from .vault import FileSystemVault

log = logging.getLogger(__name__)


def get_vault(vault_root: Path | str | None = None) -> FileSystemVault:
    """Open the vault at vault_root, or the discovered one.

    Raises:
        TwohopError: If no vault can be found.
    """
    try:
        root = Path(vault_root) if vault_root is not None else get_vault_root()
    except ConfigurationError as e:
        raise TwohopError(ErrorCode.VAULT_NOT_FOUND, str(e)) from e

    if not root.is_dir():
        raise TwohopError(ErrorCode.VAULT_NOT_FOUND, f"Vault directory does not exist: {root}")
    return FileSystemVault(root)


def get_settings(vault: FileSystemVault) -> Settings:
    try:
        return load_settings(vault.root)
    except ConfigurationError as e:
        raise TwohopError(ErrorCode.CONFIG_ERROR, str(e)) from e


def _suggest_similar_paths(vault: FileSystemVault, path: str, limit: int = 5) -> list[str]:
    documents = vault.list_documents("all")
    by_name = {doc.rsplit("/", 1)[-1]: doc for doc in documents}
    matches = difflib.get_close_matches(path, documents, n=limit, cutoff=0.6)
    for name in difflib.get_close_matches(path.rsplit("/", 1)[-1], list(by_name), n=limit, cutoff=0.6):
        if by_name[name] not in matches:
            matches.append(by_name[name])
    return matches[:limit]


def resolve_document(vault: FileSystemVault, path: str) -> str:
    """Normalize a user-supplied document path.

    "notes/alpha" and "notes/alpha.md" both name notes/alpha.md.

    Raises:
        TwohopError: If the document does not exist.
    """
    if ".." in PurePosixPath(path.replace("\\", "/")).parts:
        raise TwohopError(ErrorCode.INVALID_PATH, f"Invalid path (escapes vault): {path}", {"path": path})

    candidates = [path] if path.endswith(MARKDOWN_EXTENSION) else [path, path + MARKDOWN_EXTENSION]
    for candidate in candidates:
        found = vault.exists(candidate)
        if found is not None:
            return found

    suggestions = _suggest_similar_paths(vault, path)
    details: dict = {"path": path}
    if suggestions:
        details["suggestion"] = f"Did you mean: {', '.join(suggestions)}"
        details["similar_paths"] = suggestions
    raise TwohopError(ErrorCode.ENTRY_NOT_FOUND, f"Document not found: {path}", details)


async def build_finder(vault: FileSystemVault, settings: Settings | None = None) -> TwoHopLinkFinder:
    """Snapshot the vault index and wire up a finder."""
    index = await asyncio.to_thread(VaultMetadataIndex.build, vault)
    return TwoHopLinkFinder(index, vault, settings or get_settings(vault))


async def discover(path: str | None = None, vault_root: Path | str | None = None) -> TwoHopLinks:
    """Discover everything within two hops of a document.

    Args:
        path: Vault-relative document path (".md" optional). None lists
            every document instead.
        vault_root: Vault directory; discovered when omitted.

    Returns:
        TwoHopLinks for the document.
    """
    vault = get_vault(vault_root)
    active_path = resolve_document(vault, path) if path is not None else None
    finder = await build_finder(vault)
    result = await finder.gather_two_hop_links(active_path)
    log.debug(
        "Discovered %d new, %d back, %d groups, %d property groups for %s",
        len(result.new_links),
        len(result.backward_links),
        len(result.tag_links_list),
        len(result.frontmatter_key_links_list),
        active_path,
    )
    return result


async def backlinks(path: str, vault_root: Path | str | None = None) -> list[FileEntity]:
    """Documents linking to, tagged with, or linked from a document."""
    vault = get_vault(vault_root)
    active_path = resolve_document(vault, path)
    finder = await build_finder(vault)
    cache = finder.index.get_file_cache(active_path)
    return await finder.get_back_links(active_path, cache, DiscoveryState())


async def new_links(path: str, vault_root: Path | str | None = None) -> TwoHopLinks:
    """Missing documents referenced by a document.

    Runs the full discovery so auto-creation and its warnings behave exactly
    as they do for discover().
    """
    result = await discover(path, vault_root)
    return TwoHopLinks(new_links=result.new_links, warnings=result.warnings)


async def file_tags(path: str, vault_root: Path | str | None = None) -> list[str]:
    """Every hierarchical tag level of a document, each once, in first-seen order."""
    vault = get_vault(vault_root)
    active_path = resolve_document(vault, path)
    settings = get_settings(vault)
    if not active_path.endswith(MARKDOWN_EXTENSION):
        return []
    try:
        text = await asyncio.to_thread(vault.read, active_path)
    except (OSError, UnicodeDecodeError) as e:
        raise TwohopError(ErrorCode.FILE_READ_ERROR, f"Cannot read {active_path}: {e}") from e
    metadata = parse_metadata(text, active_path)
    return list(dict.fromkeys(extract_tags(metadata, settings.exclude_tags)))


async def list_files(vault_root: Path | str | None = None) -> list[FileEntity]:
    """Every non-excluded markdown document, ranked by the configured order."""
    result = await discover(None, vault_root)
    return result.all_files
