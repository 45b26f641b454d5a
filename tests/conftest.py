"""Shared test fixtures for the twohop test suite.

Design:
- tmp_vault: Creates an isolated vault in a temp directory
- make_finder: Builds a discovery engine over a vault snapshot
- runner / cli_invoke: CliRunner with proper isolation
- Async tests use pytest-asyncio markers
"""

import json
import logging
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from twohop.cli import cli
from twohop.config import Settings
from twohop.index import VaultMetadataIndex
from twohop.links import TwoHopLinkFinder
from twohop.vault import FileSystemVault


# ─────────────────────────────────────────────────────────────────────────────
# Markers
# ─────────────────────────────────────────────────────────────────────────────


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions (for test code, not fixtures)
# ─────────────────────────────────────────────────────────────────────────────


def write_note(
    vault_root: Path,
    path: str,
    body: str = "",
    frontmatter: dict[str, Any] | None = None,
    mtime: float | None = None,
) -> Path:
    """Create a markdown note, optionally with frontmatter and a fixed mtime.

    Usage in tests:
        from conftest import write_note
        write_note(tmp_vault, "notes/a.md", "See [[b]]", {"tags": ["x"]})
    """
    note_path = vault_root / path
    note_path.parent.mkdir(parents=True, exist_ok=True)

    text = body
    if frontmatter:
        text = f"---\n{yaml.safe_dump(frontmatter, sort_keys=False)}---\n\n{body}"
    note_path.write_text(text, encoding="utf-8")

    if mtime is not None:
        os.utime(note_path, (mtime, mtime))
    return note_path


def write_canvas(vault_root: Path, path: str, files: list[str] | None = None, raw: str | None = None) -> Path:
    """Create a canvas board holding one file node per entry of files."""
    canvas_path = vault_root / path
    canvas_path.parent.mkdir(parents=True, exist_ok=True)

    if raw is None:
        nodes = [
            {"id": f"node-{i}", "type": "file", "file": file, "x": 0, "y": i * 100}
            for i, file in enumerate(files or [])
        ]
        nodes.append({"id": "text-node", "type": "text", "text": "a note"})
        raw = json.dumps({"nodes": nodes, "edges": []})
    canvas_path.write_text(raw, encoding="utf-8")
    return canvas_path


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def reset_package_logging() -> Generator[None, None, None]:
    """Drop handlers configure_logging() attached during a test.

    CliRunner swaps sys.stderr, so a handler left behind would write to a
    closed stream in later tests.
    """
    logger = logging.getLogger("twohop")
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def tmp_vault(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Create an isolated vault directory.

    Sets TWOHOP_VAULT_ROOT to the vault and clears TWOHOP_CONFIG.

    Usage:
        def test_something(tmp_vault):
            (tmp_vault / "a.md").write_text("[[b]]")
    """
    vault_root = tmp_path / "vault"
    vault_root.mkdir()
    (vault_root / ".obsidian").mkdir()

    monkeypatch.setenv("TWOHOP_VAULT_ROOT", str(vault_root))
    monkeypatch.delenv("TWOHOP_CONFIG", raising=False)

    yield vault_root


@pytest.fixture
def make_finder(tmp_vault: Path) -> Callable[..., TwoHopLinkFinder]:
    """Build a finder over the current state of tmp_vault.

    Usage:
        finder = make_finder(sort_order="path-desc")
    """

    def _make(**settings: Any) -> TwoHopLinkFinder:
        store = FileSystemVault(tmp_vault)
        return TwoHopLinkFinder(VaultMetadataIndex.build(store), store, Settings(**settings))

    return _make


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def cli_invoke(runner: CliRunner, tmp_vault: Path):
    """Helper for invoking the CLI against tmp_vault.

    Usage:
        def test_list(cli_invoke):
            result = cli_invoke(["list"])
            assert result.exit_code == 0
    """

    def _invoke(args: list[str], catch_exceptions: bool = False):
        return runner.invoke(
            cli,
            args,
            catch_exceptions=catch_exceptions,
            env={"TWOHOP_VAULT_ROOT": str(tmp_vault)},
        )

    return _invoke
