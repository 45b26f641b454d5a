"""Metadata index: a read-only snapshot of links, tags and frontmatter.

The discovery engine only talks to the MetadataIndex protocol. The
VaultMetadataIndex implementation parses every markdown document of a
DocumentStore once and answers all queries from that snapshot.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable, Mapping
from typing import Protocol

from .config import MARKDOWN_EXTENSION
from .models import FileMetadata
from .parser import parse_metadata
from .paths import parent_folder, remove_block_reference
from .vault import DocumentStore

log = logging.getLogger(__name__)

LinkCounts = dict[str, dict[str, int]]


class MetadataIndex(Protocol):
    """Read-only queries the discovery engine runs against the index."""

    @property
    def resolved_links(self) -> Mapping[str, Mapping[str, int]]: ...

    @property
    def unresolved_links(self) -> Mapping[str, Mapping[str, int]]: ...

    def get_file_cache(self, path: str) -> FileMetadata | None: ...

    def resolve_link_target(self, raw_key: str, context_path: str) -> str | None: ...


def _candidates(link: str) -> list[str]:
    """A link may name a file with its extension or a note without ".md"."""
    if link.endswith(MARKDOWN_EXTENSION):
        return [link]
    return [link, link + MARKDOWN_EXTENSION]


class VaultMetadataIndex:
    """Snapshot index over a set of vault files.

    Args:
        files: Every document path in the vault (markdown, canvas, attachments).
        caches: Parsed metadata per markdown path.
    """

    def __init__(self, files: Iterable[str], caches: Mapping[str, FileMetadata]) -> None:
        self._files = sorted(set(files) | set(caches))
        self._file_set = set(self._files)
        self._caches = dict(caches)

        self._by_lower: dict[str, str] = {}
        self._by_basename: dict[str, list[str]] = {}
        for path in self._files:
            self._by_lower.setdefault(path.lower(), path)
            basename = path.rsplit("/", 1)[-1].lower()
            self._by_basename.setdefault(basename, []).append(path)

        self._resolved, self._unresolved = self._build_link_maps()

    @classmethod
    def build(cls, store: DocumentStore) -> VaultMetadataIndex:
        """Parse every markdown document of a store into a new index."""
        caches: dict[str, FileMetadata] = {}
        for path in store.list_documents("markdown"):
            try:
                text = store.read(path)
            except (OSError, UnicodeDecodeError) as e:
                log.warning("Skipping unreadable document %s: %s", path, e)
                continue
            caches[path] = parse_metadata(text, path)

        index = cls(store.list_documents("all"), caches)
        log.debug("Indexed %d documents (%d markdown)", len(index.files), len(caches))
        return index

    @property
    def files(self) -> list[str]:
        return list(self._files)

    @property
    def resolved_links(self) -> Mapping[str, Mapping[str, int]]:
        return self._resolved

    @property
    def unresolved_links(self) -> Mapping[str, Mapping[str, int]]:
        return self._unresolved

    def get_file_cache(self, path: str) -> FileMetadata | None:
        return self._caches.get(path)

    def _build_link_maps(self) -> tuple[LinkCounts, LinkCounts]:
        resolved: LinkCounts = {}
        unresolved: LinkCounts = {}

        for source in sorted(self._caches):
            resolved[source] = {}
            unresolved[source] = {}
            for reference in self._caches[source].references():
                key = remove_block_reference(reference.link)
                dest = self.resolve_link_target(key, source)
                if dest is not None:
                    resolved[source][dest] = resolved[source].get(dest, 0) + 1
                else:
                    unresolved[source][key] = unresolved[source].get(key, 0) + 1

        return resolved, unresolved

    def resolve_link_target(self, raw_key: str, context_path: str) -> str | None:
        """Resolve a link target to an existing document path.

        Attempts resolution in order:
        1. Empty target -> the context document itself ("[[#Heading]]")
        2. "./" or "../" targets, relative to the context document's folder
        3. Exact vault path
        4. Path relative to the context document's folder
        5. Exact vault path, case-insensitive
        6. File name or path-suffix match; the context folder wins, then the
           shortest path, then alphabetical order

        A target without ".md" matches both the file as written and the note
        with ".md" appended.

        Returns:
            Vault path of the target, or None if nothing matches.
        """
        link = raw_key.strip().replace("\\", "/")
        if not link:
            return context_path if context_path in self._file_set else None

        folder = parent_folder(context_path)

        if link.startswith("./") or link.startswith("../"):
            joined = posixpath.normpath(posixpath.join(folder, link))
            if joined.startswith(".."):
                return None
            for candidate in _candidates(joined):
                if candidate in self._file_set:
                    return candidate
            return None

        link = link.lstrip("/")
        candidates = _candidates(link)

        for candidate in candidates:
            if candidate in self._file_set:
                return candidate

        if folder:
            for candidate in candidates:
                nested = f"{folder}/{candidate}"
                if nested in self._file_set:
                    return nested

        for candidate in candidates:
            match = self._by_lower.get(candidate.lower())
            if match is not None:
                return match

        for candidate in candidates:
            lowered = candidate.lower()
            basename = lowered.rsplit("/", 1)[-1]
            matches = [
                path
                for path in self._by_basename.get(basename, [])
                if path.lower() == lowered or path.lower().endswith("/" + lowered)
            ]
            if matches:
                return min(
                    matches,
                    key=lambda path: (parent_folder(path) != folder, path.count("/"), len(path), path),
                )

        return None
