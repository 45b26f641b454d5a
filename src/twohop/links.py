"""Two-hop link discovery.

For an active document, TwoHopLinkFinder runs five passes over the metadata
index, in this order:

1. new links        references to documents that do not exist yet
2. back links       documents linking here, tagged with this name, linked
                    from here, named by one of our tags, or canvases
                    holding this document
3. link groups      documents citing the same targets as this one
4. tag groups       documents sharing a (hierarchical) tag
5. frontmatter      documents sharing a configured frontmatter value

Later passes skip documents an earlier pass already showed. That state
lives in a DiscoveryState created per call, so calls never share anything.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .canvas import CanvasParseResult, InvalidCanvas, parse_canvas
from .config import CANVAS_EXTENSION, HIERARCHY_SEPARATOR, MARKDOWN_EXTENSION, Settings, SortOrder
from .index import MetadataIndex
from .models import FileEntity, FileMetadata, PropertiesLinks, TwoHopLinks
from .paths import file_path_to_link_text, parent_folder, remove_block_reference, should_exclude_path
from .sort import StatFn, sort_by_first_occurrence, sort_entities, sort_files, sort_properties_links
from .tags import extract_tags
from .vault import DocumentStore

log = logging.getLogger(__name__)

LINKS_CATEGORY = "links"
TAGS_CATEGORY = "tags"


@dataclass
class PendingCreation:
    """An auto-created document whose creation has not been collected yet."""

    entity: FileEntity
    path: str
    task: asyncio.Task


@dataclass
class DiscoveryState:
    """State shared by the passes of one discovery call.

    forward: link texts already shown as back or forward links.
    global_: link texts already placed into a link, tag or frontmatter group.
    """

    forward: set[str] = field(default_factory=set)
    global_: set[str] = field(default_factory=set)
    pending_creations: list[PendingCreation] = field(default_factory=list)
    canvases: dict[str, CanvasParseResult] = field(default_factory=dict)

    def seen(self, link_text: str) -> bool:
        return link_text in self.forward or link_text in self.global_


def is_canvas(path: str) -> bool:
    return path.endswith(CANVAS_EXTENSION)


def _frontmatter_values(value: Any) -> list[str] | None:
    """A string is a one-element list; lists keep their strings; anything else is None."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return None


async def build_properties_links(
    properties_map: Mapping[str, Sequence[FileEntity]],
    category: str,
    key_fn: Callable[[FileEntity], str],
    order: SortOrder,
    stat: StatFn,
) -> list[PropertiesLinks]:
    """Rank every bucket and wrap the non-empty ones as PropertiesLinks.

    Args:
        properties_map: Bucket name -> unsorted members.
        category: "links", "tags" or a frontmatter field name.
        key_fn: Document path used to rank a member.
        order: Ranking strategy.
        stat: Modification-time lookup for time-based orders.

    Returns:
        Groups in bucket insertion order. Empty buckets are dropped.
    """
    names = list(properties_map)
    ranked = await asyncio.gather(
        *(sort_entities(properties_map[name], key_fn, order, stat) for name in names)
    )
    return [
        PropertiesLinks(property=name, key=category, links=members)
        for name, members in zip(names, ranked)
        if members
    ]


class TwoHopLinkFinder:
    """Discovers everything within two hops of an active document."""

    def __init__(self, index: MetadataIndex, store: DocumentStore, settings: Settings) -> None:
        self.index = index
        self.store = store
        self.settings = settings

    # ─────────────────────────────────────────────────────────────────────
    # Entry point
    # ─────────────────────────────────────────────────────────────────────

    async def gather_two_hop_links(self, active_path: str | None) -> TwoHopLinks:
        """Run every discovery pass for the active document.

        Without an active document, returns the ranked listing of all
        documents in all_files and nothing else.
        """
        if active_path is None:
            return TwoHopLinks(all_files=await self.get_all_files())

        cache = self.index.get_file_cache(active_path)
        state = DiscoveryState()

        try:
            new_links = await self.get_new_links(active_path, cache, state)

            backward_links = await self.get_back_links(active_path, cache, state)
            state.forward.update(link.link_text for link in backward_links)

            link_groups = await self.get_links_list_of_files_with_links(active_path, cache, state)
            tag_groups = await self.get_links_list_of_files_with_tags(active_path, cache, state)
            frontmatter_groups = await self.get_links_list_of_files_with_frontmatter_keys(
                active_path, cache, state
            )
        finally:
            # Creations started by pass 1 are awaited even when a later pass fails.
            warnings, failed = await self._collect_creations(state)

        new_links.extend(failed)

        return TwoHopLinks(
            new_links=new_links,
            backward_links=backward_links,
            tag_links_list=[*link_groups, *tag_groups],
            frontmatter_key_links_list=frontmatter_groups,
            warnings=warnings,
        )

    async def get_all_files(self) -> list[FileEntity]:
        paths = [
            path
            for path in self.store.list_documents("markdown")
            if not self._is_excluded(path)
        ]
        ranked = await sort_files(paths, self.settings.sort_order, self.store.stat)
        return [FileEntity(source_path=path, link_text=file_path_to_link_text(path)) for path in ranked]

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────

    def _is_excluded(self, path: str) -> bool:
        return should_exclude_path(path, self.settings.exclude_paths)

    def _tags(self, cache: FileMetadata | None) -> list[str]:
        return extract_tags(cache, self.settings.exclude_tags)

    @staticmethod
    def _reference_keys(cache: FileMetadata | None) -> list[str]:
        """Link targets of a document without #subreferences, each once."""
        if cache is None:
            return []
        keys: list[str] = []
        seen: set[str] = set()
        for reference in cache.references():
            key = remove_block_reference(reference.link)
            if key not in seen:
                seen.add(key)
                keys.append(key)
        return keys

    async def _canvas(self, path: str, state: DiscoveryState) -> CanvasParseResult:
        """Parse a canvas once per call. Unreadable canvases have no nodes."""
        if path not in state.canvases:
            try:
                content = await asyncio.to_thread(self.store.read, path)
            except (OSError, UnicodeDecodeError) as e:
                log.warning("Cannot read canvas %s: %s", path, e)
                state.canvases[path] = InvalidCanvas(f"unreadable: {e}")
            else:
                state.canvases[path] = parse_canvas(content, path)
        return state.canvases[path]

    async def _outbound_targets(
        self, active_path: str, cache: FileMetadata | None, state: DiscoveryState
    ) -> list[str]:
        """Existing documents the active document points at, in reference order.

        Self-references such as [[#Heading]] resolve to the active document
        and are left out.
        """
        candidates = [
            self.index.resolve_link_target(key, active_path) for key in self._reference_keys(cache)
        ]
        if is_canvas(active_path):
            canvas = await self._canvas(active_path, state)
            candidates.extend(self.store.exists(node_path) for node_path in canvas.file_nodes())

        targets: list[str] = []
        for target in candidates:
            if target is not None and target != active_path and target not in targets:
                targets.append(target)
        return targets

    def _creation_path(self, active_path: str, key: str) -> str:
        name = key if key.endswith(MARKDOWN_EXTENSION) else key + MARKDOWN_EXTENSION
        folder = parent_folder(active_path)
        return f"{folder}/{name}" if folder else name

    def _schedule_creation(self, entity: FileEntity, path: str, state: DiscoveryState) -> None:
        """Start creating an empty document without waiting for it."""
        log.info("Creating %s, referenced from several documents", path)
        task = asyncio.create_task(asyncio.to_thread(self.store.create, path, ""))
        state.pending_creations.append(PendingCreation(entity=entity, path=path, task=task))

    async def _collect_creations(self, state: DiscoveryState) -> tuple[list[str], list[FileEntity]]:
        """Wait for scheduled creations and report the ones that failed.

        A failed creation keeps its reference visible as a new link.
        """
        if not state.pending_creations:
            return [], []

        results = await asyncio.gather(
            *(pending.task for pending in state.pending_creations), return_exceptions=True
        )

        warnings: list[str] = []
        failed: list[FileEntity] = []
        for pending, result in zip(state.pending_creations, results):
            if isinstance(result, Exception):
                log.warning("Could not create %s: %s", pending.path, result)
                warnings.append(f"Could not create {pending.path}: {result}")
                failed.append(pending.entity)
        return warnings, failed

    def get_backlinks_count(self, key: str, exclude_path: str | None = None) -> int:
        """Count documents, other than exclude_path, with an unresolved link to key."""
        count = 0
        for source in sorted(self.index.unresolved_links):
            if source == exclude_path:
                continue
            if any(remove_block_reference(dest) == key for dest in self.index.unresolved_links[source]):
                count += 1
        return count

    # ─────────────────────────────────────────────────────────────────────
    # Pass 1: new links
    # ─────────────────────────────────────────────────────────────────────

    async def get_new_links(
        self, active_path: str, cache: FileMetadata | None, state: DiscoveryState
    ) -> list[FileEntity]:
        """References from the active document to documents that do not exist.

        A missing target referenced by enough other documents is created
        instead of reported when create_files_for_multi_linked is on. Tags
        without a page of their own are reported too.
        """
        new_links: list[FileEntity] = []

        if is_canvas(active_path):
            canvas = await self._canvas(active_path, state)
            seen_nodes: set[str] = set()
            for node_path in canvas.file_nodes():
                if node_path in seen_nodes:
                    continue
                seen_nodes.add(node_path)
                if self.store.exists(node_path) is None:
                    new_links.append(
                        FileEntity(source_path=active_path, link_text=file_path_to_link_text(node_path))
                    )
        else:
            for key in self._reference_keys(cache):
                if not key:
                    continue
                if self.index.resolve_link_target(key, active_path) is not None:
                    continue

                entity = FileEntity(source_path=active_path, link_text=key)
                if (
                    self.settings.create_files_for_multi_linked
                    and self.get_backlinks_count(key, active_path) >= self.settings.backlink_threshold
                ):
                    # [[x]] and [x](x.md) name the same new document.
                    path = self._creation_path(active_path, key)
                    if not any(pending.path == path for pending in state.pending_creations):
                        self._schedule_creation(entity, path, state)
                else:
                    new_links.append(entity)

        if cache is not None:
            seen = {link.link_text for link in new_links}
            for tag in self._tags(cache):
                if tag in seen:
                    continue
                seen.add(tag)
                if self.index.resolve_link_target(tag, active_path) is None:
                    new_links.append(FileEntity(source_path=active_path, link_text=tag))

        return new_links

    # ─────────────────────────────────────────────────────────────────────
    # Pass 2: back links
    # ─────────────────────────────────────────────────────────────────────

    async def get_back_links(
        self, active_path: str, cache: FileMetadata | None, state: DiscoveryState
    ) -> list[FileEntity]:
        """Documents associated with the active document in either direction.

        Collected in this precedence, each source at most once:
        linking documents, documents tagged with the active name, documents
        the active document links to, pages named by the active tags, and
        canvases holding the active document.
        """
        entities: list[FileEntity] = []
        seen_sources: set[str] = set()
        dedup = self.settings.enable_duplicate_removal

        def accept(source: str) -> None:
            if source == active_path or source in seen_sources or self._is_excluded(source):
                return
            link_text = file_path_to_link_text(source)
            if dedup and link_text in state.forward:
                return
            seen_sources.add(source)
            entities.append(FileEntity(source_path=source, link_text=link_text))

        resolved = self.index.resolved_links
        for source in sorted(resolved):
            if active_path in resolved[source]:
                accept(source)

        active_name = file_path_to_link_text(active_path)
        for path in self.store.list_documents("markdown"):
            if path == active_path or path in seen_sources or self._is_excluded(path):
                continue
            if active_name in self._tags(self.index.get_file_cache(path)):
                accept(path)

        for target in await self._outbound_targets(active_path, cache, state):
            accept(target)

        for tag in self._tags(cache):
            tag_page = self.index.resolve_link_target(tag, active_path)
            if tag_page is not None:
                accept(tag_page)

        for canvas_path in self.store.list_documents("canvas"):
            if canvas_path == active_path or canvas_path in seen_sources:
                continue
            canvas = await self._canvas(canvas_path, state)
            if active_path in canvas.file_nodes():
                accept(canvas_path)

        return await sort_entities(
            entities, lambda entity: entity.source_path, self.settings.sort_order, self.store.stat
        )

    # ─────────────────────────────────────────────────────────────────────
    # Passes 3-5: groups
    # ─────────────────────────────────────────────────────────────────────

    async def _build_groups(
        self,
        properties_map: Mapping[str, Sequence[FileEntity]],
        category: str,
        member_paths: Mapping[FileEntity, str],
    ) -> list[PropertiesLinks]:
        # Every member's source_path is the active document, so rank by the
        # member's own path instead.
        return await build_properties_links(
            properties_map,
            category,
            lambda entity: member_paths.get(entity, entity.source_path),
            self.settings.sort_order,
            self.store.stat,
        )

    async def get_links_list_of_files_with_links(
        self, active_path: str, cache: FileMetadata | None, state: DiscoveryState
    ) -> list[PropertiesLinks]:
        """Group documents that cite the same targets as the active document."""
        active_links = {
            target
            for target in await self._outbound_targets(active_path, cache, state)
            if not self._is_excluded(target)
        }
        if not active_links:
            return []

        dedup = self.settings.enable_duplicate_removal
        link_map: dict[str, list[FileEntity]] = {}
        member_paths: dict[FileEntity, str] = {}
        resolved = self.index.resolved_links

        for source in sorted(resolved):
            if source == active_path or self._is_excluded(source):
                continue
            link_text = file_path_to_link_text(source)
            for dest in sorted(resolved[source]):
                if dest not in active_links:
                    continue
                if dedup and state.seen(link_text):
                    continue

                bucket = link_map.setdefault(file_path_to_link_text(dest), [])
                entity = FileEntity(source_path=active_path, link_text=link_text)
                if entity not in bucket:
                    bucket.append(entity)
                    member_paths[entity] = source
                    state.global_.add(link_text)

        groups = await self._build_groups(link_map, LINKS_CATEGORY, member_paths)
        return sort_properties_links(groups, self.settings.sort_order)

    async def get_links_list_of_files_with_tags(
        self, active_path: str, cache: FileMetadata | None, state: DiscoveryState
    ) -> list[PropertiesLinks]:
        """Group documents under every tag they share with the active document.

        Groups follow the order in which tags first appear in the active
        document.
        """
        active_tags = self._tags(cache)
        if not active_tags:
            return []

        active_tag_set = set(active_tags)
        dedup = self.settings.enable_duplicate_removal
        tag_map: dict[str, list[FileEntity]] = {}
        member_paths: dict[FileEntity, str] = {}

        for path in self.store.list_documents("markdown"):
            if path == active_path or self._is_excluded(path):
                continue
            file_cache = self.index.get_file_cache(path)
            if file_cache is None:
                continue

            link_text = file_path_to_link_text(path)
            if dedup and state.seen(link_text):
                continue

            entity = FileEntity(source_path=active_path, link_text=link_text)
            accepted = False
            for tag in self._tags(file_cache):
                if tag not in active_tag_set:
                    continue
                bucket = tag_map.setdefault(tag, [])
                if entity not in bucket:
                    bucket.append(entity)
                    accepted = True

            # Marked after all tags so the document can sit in every shared
            # tag group, but in no later category.
            if accepted:
                member_paths[entity] = path
                state.global_.add(link_text)

        groups = await self._build_groups(tag_map, TAGS_CATEGORY, member_paths)
        return sort_by_first_occurrence(groups, active_tags)

    async def get_links_list_of_files_with_frontmatter_keys(
        self, active_path: str, cache: FileMetadata | None, state: DiscoveryState
    ) -> list[PropertiesLinks]:
        """Group documents sharing a configured frontmatter value.

        Values are hierarchical: "x/y" and "x/y/z" meet at "x/y". Each active
        value is compared from its deepest level up, and the candidate lands
        under the first prefix that matches.
        """
        active_frontmatter = cache.frontmatter if cache is not None else None
        if not active_frontmatter:
            return []

        dedup = self.settings.enable_duplicate_removal
        frontmatter_map: dict[str, dict[str, list[FileEntity]]] = {}
        member_paths: dict[FileEntity, str] = {}
        markdown_files = [
            path
            for path in self.store.list_documents("markdown")
            if path != active_path and not self._is_excluded(path)
        ]

        for key in dict.fromkeys(self.settings.frontmatter_keys):
            active_values = _frontmatter_values(active_frontmatter.get(key))
            if not active_values:
                continue

            for path in markdown_files:
                file_cache = self.index.get_file_cache(path)
                if file_cache is None or not file_cache.frontmatter or key not in file_cache.frontmatter:
                    continue
                values = _frontmatter_values(file_cache.frontmatter[key])
                if values is None:
                    continue

                link_text = file_path_to_link_text(path)
                entity = FileEntity(source_path=active_path, link_text=link_text)

                for active_value in active_values:
                    levels = active_value.split(HIERARCHY_SEPARATOR)
                    for depth in range(len(levels), 0, -1):
                        active_prefix = HIERARCHY_SEPARATOR.join(levels[:depth])
                        for value in values:
                            prefix = HIERARCHY_SEPARATOR.join(value.split(HIERARCHY_SEPARATOR)[:depth])
                            if prefix != active_prefix:
                                continue
                            if dedup and state.seen(link_text):
                                continue

                            bucket = frontmatter_map.setdefault(key, {}).setdefault(prefix, [])
                            if entity not in bucket:
                                bucket.append(entity)
                                member_paths[entity] = path
                            state.global_.add(link_text)

        groups: list[PropertiesLinks] = []
        for key, value_map in frontmatter_map.items():
            groups.extend(await self._build_groups(value_map, key, member_paths))
        return sort_properties_links(groups, self.settings.sort_order)
