"""Ranking of discovered documents and property groups."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

from .config import HIERARCHY_SEPARATOR, SortOrder
from .models import PropertiesLinks

log = logging.getLogger(__name__)

T = TypeVar("T")

StatFn = Callable[[str], float]


async def _lookup_mtimes(keys: Sequence[str], stat: StatFn) -> list[float | None]:
    """Stat every key concurrently. Failed lookups come back as None."""

    async def lookup(key: str) -> float | None:
        try:
            return await asyncio.to_thread(stat, key)
        except OSError as e:
            log.debug("Cannot stat %s, ranking it last: %s", key, e)
            return None

    return list(await asyncio.gather(*(lookup(key) for key in keys)))


async def sort_entities(
    entities: Sequence[T],
    key_fn: Callable[[T], str],
    order: SortOrder,
    stat: StatFn,
) -> list[T]:
    """Order entities by path or by modification time.

    Path orders compare key_fn(entity) as text. Modification-time orders stat
    key_fn(entity) for every entity first and only sort once every lookup
    has finished; ties fall back to the path. An entity whose stat fails is
    kept and ranked after all entities with a timestamp.

    Args:
        entities: Items to rank.
        key_fn: Maps an item to the document path used for ranking.
        order: Ranking strategy.
        stat: Returns the modification time of a path, raises OSError on failure.

    Returns:
        A new list with the same items.
    """
    order = SortOrder(order)
    if order is SortOrder.PATH_ASC:
        return sorted(entities, key=key_fn)
    if order is SortOrder.PATH_DESC:
        return sorted(entities, key=key_fn, reverse=True)

    keys = [key_fn(entity) for entity in entities]
    mtimes = await _lookup_mtimes(keys, stat)

    stamped = [(mtime, key, entity) for entity, key, mtime in zip(entities, keys, mtimes) if mtime is not None]
    unstamped = [(key, entity) for entity, key, mtime in zip(entities, keys, mtimes) if mtime is None]

    if order is SortOrder.MTIME_ASC:
        stamped.sort(key=lambda item: (item[0], item[1]))
    else:
        stamped.sort(key=lambda item: (-item[0], item[1]))
    unstamped.sort(key=lambda item: item[0])

    return [entity for _, _, entity in stamped] + [entity for _, entity in unstamped]


async def sort_files(paths: Sequence[str], order: SortOrder, stat: StatFn) -> list[str]:
    """Rank bare document paths."""
    return await sort_entities(paths, lambda path: path, order, stat)


def _hierarchy_key(value: str) -> tuple[str, ...]:
    return tuple(value.split(HIERARCHY_SEPARATOR))


def sort_properties_links(groups: Sequence[PropertiesLinks], order: SortOrder) -> list[PropertiesLinks]:
    """Order groups by their hierarchical property value.

    Values are compared level by level so "a" sorts right before "a/b" and
    "a/b" before "a-c". Only path-desc reverses; time-based orders have no
    meaning for a group and sort ascending.
    """
    reverse = SortOrder(order) is SortOrder.PATH_DESC
    return sorted(groups, key=lambda group: _hierarchy_key(group.property), reverse=reverse)


def sort_by_first_occurrence(groups: Sequence[PropertiesLinks], values: Sequence[str]) -> list[PropertiesLinks]:
    """Order groups by where their property first appears in values.

    Properties missing from values go last, keeping their relative order.
    """
    positions: dict[str, int] = {}
    for value in values:
        positions.setdefault(value, len(positions))
    missing = len(positions)
    return sorted(groups, key=lambda group: positions.get(group.property, missing))
