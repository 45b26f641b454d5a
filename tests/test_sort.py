"""Tests for ranking documents and property groups."""

import pytest

from twohop.config import SortOrder
from twohop.models import FileEntity, PropertiesLinks
from twohop.sort import sort_by_first_occurrence, sort_entities, sort_files, sort_properties_links


MTIMES = {"a.md": 30.0, "b.md": 10.0, "c.md": 20.0, "d.md": 20.0}


def fake_stat(path: str) -> float:
    if path not in MTIMES:
        raise FileNotFoundError(path)
    return MTIMES[path]


def _group(prop: str) -> PropertiesLinks:
    return PropertiesLinks(property=prop, key="tags", links=[FileEntity(source_path="x.md", link_text="x")])


# ─────────────────────────────────────────────────────────────────────────────
# Documents
# ─────────────────────────────────────────────────────────────────────────────


class TestSortFiles:
    @pytest.mark.asyncio
    async def test_path_ascending(self):
        assert await sort_files(["c.md", "a.md", "b.md"], SortOrder.PATH_ASC, fake_stat) == [
            "a.md",
            "b.md",
            "c.md",
        ]

    @pytest.mark.asyncio
    async def test_path_descending(self):
        assert await sort_files(["a.md", "c.md", "b.md"], SortOrder.PATH_DESC, fake_stat) == [
            "c.md",
            "b.md",
            "a.md",
        ]

    @pytest.mark.asyncio
    async def test_mtime_ascending(self):
        assert await sort_files(["a.md", "b.md", "c.md"], SortOrder.MTIME_ASC, fake_stat) == [
            "b.md",
            "c.md",
            "a.md",
        ]

    @pytest.mark.asyncio
    async def test_mtime_descending(self):
        assert await sort_files(["b.md", "a.md", "c.md"], SortOrder.MTIME_DESC, fake_stat) == [
            "a.md",
            "c.md",
            "b.md",
        ]

    @pytest.mark.asyncio
    async def test_equal_mtimes_fall_back_to_path(self):
        assert await sort_files(["d.md", "c.md"], SortOrder.MTIME_DESC, fake_stat) == ["c.md", "d.md"]

    @pytest.mark.asyncio
    async def test_failed_stat_ranked_last(self):
        """Documents that cannot be stat'ed are kept, after the rest, by path."""
        ranked = await sort_files(["z.md", "a.md", "y.md", "b.md"], SortOrder.MTIME_DESC, fake_stat)
        assert ranked == ["a.md", "b.md", "y.md", "z.md"]

    @pytest.mark.asyncio
    async def test_accepts_string_order(self):
        assert await sort_files(["b.md", "a.md"], "path-asc", fake_stat) == ["a.md", "b.md"]

    @pytest.mark.asyncio
    async def test_path_order_never_stats(self):
        def exploding_stat(path: str) -> float:
            raise AssertionError("stat should not be called")

        assert await sort_files(["b.md", "a.md"], SortOrder.PATH_ASC, exploding_stat) == ["a.md", "b.md"]


class TestSortEntities:
    @pytest.mark.asyncio
    async def test_ranks_by_key_function(self):
        entities = [
            FileEntity(source_path="active.md", link_text="b"),
            FileEntity(source_path="active.md", link_text="a"),
        ]
        ranked = await sort_entities(
            entities, lambda entity: f"{entity.link_text}.md", SortOrder.MTIME_ASC, fake_stat
        )
        assert [entity.link_text for entity in ranked] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await sort_entities([], lambda entity: entity, SortOrder.MTIME_ASC, fake_stat) == []


# ─────────────────────────────────────────────────────────────────────────────
# Groups
# ─────────────────────────────────────────────────────────────────────────────


class TestSortPropertiesLinks:
    def test_hierarchical_ascending(self):
        groups = [_group("a-c"), _group("a/b"), _group("b"), _group("a")]
        ranked = sort_properties_links(groups, SortOrder.PATH_ASC)
        assert [group.property for group in ranked] == ["a", "a/b", "a-c", "b"]

    def test_hierarchical_descending(self):
        groups = [_group("a"), _group("b"), _group("a/b")]
        ranked = sort_properties_links(groups, SortOrder.PATH_DESC)
        assert [group.property for group in ranked] == ["b", "a/b", "a"]

    @pytest.mark.parametrize("order", [SortOrder.MTIME_ASC, SortOrder.MTIME_DESC])
    def test_time_orders_sort_ascending(self, order):
        groups = [_group("b"), _group("a")]
        assert [group.property for group in sort_properties_links(groups, order)] == ["a", "b"]


class TestSortByFirstOccurrence:
    def test_follows_value_order(self):
        groups = [_group("z"), _group("a"), _group("m")]
        ranked = sort_by_first_occurrence(groups, ["m", "z", "m", "a"])
        assert [group.property for group in ranked] == ["m", "z", "a"]

    def test_unknown_properties_go_last(self):
        groups = [_group("unknown"), _group("a")]
        ranked = sort_by_first_occurrence(groups, ["a"])
        assert [group.property for group in ranked] == ["a", "unknown"]
