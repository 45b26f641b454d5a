"""Document store: reading, listing and creating vault documents."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Literal, Protocol

from .config import CANVAS_EXTENSION, MARKDOWN_EXTENSION

log = logging.getLogger(__name__)

DocumentKind = Literal["markdown", "canvas", "all"]


class DocumentStore(Protocol):
    """What the discovery engine needs from the place documents live.

    Paths are vault-relative POSIX strings with their extension.
    """

    def read(self, path: str) -> str: ...

    def create(self, path: str, initial_text: str = "") -> str: ...

    def stat(self, path: str) -> float: ...

    def list_documents(self, kind: DocumentKind = "markdown") -> list[str]: ...

    def exists(self, path: str) -> str | None: ...


def _matches_kind(path: Path, kind: DocumentKind) -> bool:
    if kind == "markdown":
        return path.suffix == MARKDOWN_EXTENSION
    if kind == "canvas":
        return path.suffix == CANVAS_EXTENSION
    return True


class FileSystemVault:
    """A vault backed by a directory on disk.

    Hidden entries (".obsidian", ".git", ".trash", dotfiles) are not
    documents.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def __repr__(self) -> str:
        return f"FileSystemVault({str(self.root)!r})"

    def _resolve(self, path: str) -> Path:
        """Map a vault-relative path to disk, refusing anything outside the vault."""
        relative = PurePosixPath(path.replace("\\", "/").lstrip("/"))
        if any(part == ".." for part in relative.parts):
            raise ValueError(f"Invalid path (escapes vault): {path}")
        return self.root / relative

    def relative(self, file_path: Path) -> str:
        return file_path.resolve().relative_to(self.root).as_posix()

    def read(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    def create(self, path: str, initial_text: str = "") -> str:
        """Create a new document. Never overwrites.

        Raises:
            FileExistsError: If a document already exists at path.
            ValueError: If path escapes the vault.
        """
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("x", encoding="utf-8") as handle:
            handle.write(initial_text)
        log.info("Created %s", path)
        return self.relative(target)

    def stat(self, path: str) -> float:
        return self._resolve(path).stat().st_mtime

    def list_documents(self, kind: DocumentKind = "markdown") -> list[str]:
        """List documents of a kind, sorted by path."""
        if not self.root.is_dir():
            return []

        documents = []
        for file_path in self.root.rglob("*"):
            rel = file_path.relative_to(self.root)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if file_path.is_file() and _matches_kind(file_path, kind):
                documents.append(rel.as_posix())
        return sorted(documents)

    def exists(self, path: str) -> str | None:
        """Return the normalized vault path if the document exists."""
        try:
            target = self._resolve(path)
        except ValueError:
            return None
        if target.is_file():
            return target.relative_to(self.root).as_posix()
        return None
