"""Tests for the metadata index: link resolution and link maps."""

from pathlib import Path

import pytest

from twohop.index import VaultMetadataIndex
from twohop.models import FileMetadata, LinkCache
from twohop.vault import FileSystemVault

from conftest import write_note


FILES = [
    "notes/alpha.md",
    "notes/sub/beta.md",
    "other/beta.md",
    "Gamma.md",
    "img.png",
    "board.canvas",
    "root.md",
]


@pytest.fixture
def index() -> VaultMetadataIndex:
    return VaultMetadataIndex(FILES, {})


# ─────────────────────────────────────────────────────────────────────────────
# Link resolution
# ─────────────────────────────────────────────────────────────────────────────


class TestResolveLinkTarget:
    @pytest.mark.parametrize(
        ("link", "context", "expected"),
        [
            ("notes/alpha", "root.md", "notes/alpha.md"),
            ("notes/alpha.md", "root.md", "notes/alpha.md"),
            ("alpha", "notes/x.md", "notes/alpha.md"),
            ("alpha", "root.md", "notes/alpha.md"),
            ("gamma", "root.md", "Gamma.md"),
            ("img.png", "root.md", "img.png"),
            ("board.canvas", "notes/alpha.md", "board.canvas"),
            ("sub/beta", "root.md", "notes/sub/beta.md"),
            ("nothing", "root.md", None),
        ],
    )
    def test_resolution(self, index, link, context, expected):
        assert index.resolve_link_target(link, context) == expected

    def test_same_folder_wins(self, index):
        assert index.resolve_link_target("beta", "other/x.md") == "other/beta.md"
        assert index.resolve_link_target("beta", "notes/sub/y.md") == "notes/sub/beta.md"

    def test_shallowest_match_otherwise(self, index):
        assert index.resolve_link_target("beta", "notes/x.md") == "other/beta.md"

    def test_relative_links(self, index):
        assert index.resolve_link_target("./beta", "notes/sub/y.md") == "notes/sub/beta.md"
        assert index.resolve_link_target("../alpha", "notes/sub/y.md") == "notes/alpha.md"
        assert index.resolve_link_target("./alpha", "root.md") is None

    def test_relative_link_outside_vault(self, index):
        assert index.resolve_link_target("../../../alpha", "notes/sub/y.md") is None

    def test_empty_target_is_context_document(self, index):
        assert index.resolve_link_target("", "Gamma.md") == "Gamma.md"
        assert index.resolve_link_target("", "missing.md") is None


# ─────────────────────────────────────────────────────────────────────────────
# Link maps
# ─────────────────────────────────────────────────────────────────────────────


class TestLinkMaps:
    def test_counts_and_subreferences(self):
        caches = {
            "a.md": FileMetadata(
                links=[LinkCache(link="b"), LinkCache(link="b#Heading"), LinkCache(link="ghost#^block")],
                embeds=[LinkCache(link="pic.png")],
            ),
            "b.md": FileMetadata(),
        }
        index = VaultMetadataIndex(["a.md", "b.md", "pic.png"], caches)

        assert index.resolved_links["a.md"] == {"b.md": 2, "pic.png": 1}
        assert index.unresolved_links["a.md"] == {"ghost": 1}
        assert index.resolved_links["b.md"] == {}

    def test_files_include_cached_documents(self):
        index = VaultMetadataIndex([], {"only.md": FileMetadata()})
        assert index.files == ["only.md"]
        assert index.get_file_cache("only.md") == FileMetadata()
        assert index.get_file_cache("absent.md") is None


class TestBuild:
    def test_build_from_vault(self, tmp_vault: Path):
        write_note(tmp_vault, "a.md", "[[b]] [[ghost]] #topic")
        write_note(tmp_vault, "b.md", "", {"tags": ["x"]})
        (tmp_vault / "pic.png").write_bytes(b"\x89PNG")

        index = VaultMetadataIndex.build(FileSystemVault(tmp_vault))

        assert index.files == ["a.md", "b.md", "pic.png"]
        assert index.resolved_links["a.md"] == {"b.md": 1}
        assert index.unresolved_links["a.md"] == {"ghost": 1}
        assert index.get_file_cache("b.md").frontmatter == {"tags": ["x"]}
        assert index.get_file_cache("pic.png") is None

    def test_unreadable_document_skipped(self, tmp_vault: Path):
        write_note(tmp_vault, "good.md", "[[bad]]")
        (tmp_vault / "bad.md").write_bytes(b"\xff\xfe\xfa not utf-8")

        index = VaultMetadataIndex.build(FileSystemVault(tmp_vault))

        assert index.get_file_cache("bad.md") is None
        assert "bad.md" in index.files
        assert index.resolved_links["good.md"] == {"bad.md": 1}
