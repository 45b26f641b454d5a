"""Configuration management for twohop.

This module contains the settings model, vault discovery and all
configurable constants. Magic numbers are documented here rather than
scattered throughout the codebase.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


# =============================================================================
# Files and Environment
# =============================================================================

# Per-vault settings file, also used as a vault marker during discovery
CONFIG_FILENAME = ".twohop.yaml"

# Obsidian keeps its own state in this folder; it marks a vault root too
VAULT_MARKER_DIR = ".obsidian"

# Maximum directory traversal depth when walking up to find a vault root.
# Prevents infinite loops on circular symlinks or unusual filesystems.
MAX_VAULT_SEARCH_DEPTH = 50


# =============================================================================
# Documents
# =============================================================================

MARKDOWN_EXTENSION = ".md"
CANVAS_EXTENSION = ".canvas"

# Separator for hierarchical tags and frontmatter values ("a/b/c")
HIERARCHY_SEPARATOR = "/"

# Everything after this character in a link target points inside a document
# ("note#Heading", "note#^block-id")
SUBREFERENCE_SEPARATOR = "#"


# =============================================================================
# Discovery
# =============================================================================

# Minimum number of *other* documents that must reference the same missing
# note before it is auto-created (when create_files_for_multi_linked is on).
DEFAULT_BACKLINK_THRESHOLD = 1


class SortOrder(str, Enum):
    """Ordering strategies for discovered documents."""

    PATH_ASC = "path-asc"
    PATH_DESC = "path-desc"
    MTIME_ASC = "mtime-asc"
    MTIME_DESC = "mtime-desc"


class Settings(BaseModel):
    """User-facing discovery options.

    Option names follow the snake_case convention; the camelCase names used
    by the Obsidian plugin settings are accepted as aliases.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    exclude_paths: list[str] = Field(default_factory=list, alias="excludePaths")
    exclude_tags: list[str] = Field(default_factory=list, alias="excludeTags")
    frontmatter_keys: list[str] = Field(default_factory=list, alias="frontmatterKeys")
    sort_order: SortOrder = Field(default=SortOrder.PATH_ASC, alias="sortOrder")
    enable_duplicate_removal: bool = Field(default=True, alias="enableDuplicateRemoval")
    create_files_for_multi_linked: bool = Field(
        default=False, alias="createFilesForMultiLinked"
    )
    backlink_threshold: int = Field(
        default=DEFAULT_BACKLINK_THRESHOLD, ge=1, alias="backlinkThreshold"
    )


def _discover_vault_root(start_dir: Path | None = None, max_depth: int = MAX_VAULT_SEARCH_DEPTH) -> Path | None:
    """Walk up from start_dir looking for a vault marker.

    Args:
        start_dir: Directory to start from (defaults to cwd)
        max_depth: Maximum directories to traverse up

    Returns:
        The first directory holding CONFIG_FILENAME or VAULT_MARKER_DIR.
    """
    current = Path(start_dir or os.getcwd()).resolve()

    for _ in range(max_depth):
        if (current / CONFIG_FILENAME).is_file() or (current / VAULT_MARKER_DIR).is_dir():
            return current

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    return None


def get_vault_root() -> Path:
    """Get the vault root directory.

    Discovery order:
    1. TWOHOP_VAULT_ROOT environment variable (explicit override)
    2. Walk up from cwd looking for .twohop.yaml or an .obsidian/ folder
    3. Error with helpful message

    Raises:
        ConfigurationError: If no vault can be found.
    """
    root = os.environ.get("TWOHOP_VAULT_ROOT")
    if root:
        path = Path(root)
        if not path.is_dir():
            raise ConfigurationError(f"TWOHOP_VAULT_ROOT is not a directory: {root}")
        return path

    discovered = _discover_vault_root()
    if discovered:
        return discovered

    raise ConfigurationError(
        "No vault found. Options:\n"
        "  1. Run twohop from inside an Obsidian vault (a folder with .obsidian/)\n"
        f"  2. Create a {CONFIG_FILENAME} at the root of your notes folder\n"
        "  3. Set TWOHOP_VAULT_ROOT or pass --vault"
    )


def get_config_path(vault_root: Path) -> Path:
    """Get the settings file path: TWOHOP_CONFIG or <vault>/.twohop.yaml."""
    override = os.environ.get("TWOHOP_CONFIG")
    if override:
        return Path(override)
    return vault_root / CONFIG_FILENAME


def load_settings(vault_root: Path) -> Settings:
    """Load settings for a vault.

    A missing settings file means defaults.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid YAML,
            or holds invalid values.
    """
    config_path = get_config_path(vault_root)
    if not config_path.exists():
        return Settings()

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping of options")

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")
        raise ConfigurationError(f"Invalid settings in {config_path}:\n" + "\n".join(errors)) from e
