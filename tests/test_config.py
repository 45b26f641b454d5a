"""Tests for settings loading and vault discovery."""

from pathlib import Path

import pytest

from twohop.config import (
    ConfigurationError,
    Settings,
    SortOrder,
    _discover_vault_root,
    get_config_path,
    get_vault_root,
    load_settings,
)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.exclude_paths == []
        assert settings.exclude_tags == []
        assert settings.frontmatter_keys == []
        assert settings.sort_order is SortOrder.PATH_ASC
        assert settings.enable_duplicate_removal is True
        assert settings.create_files_for_multi_linked is False
        assert settings.backlink_threshold == 1

    def test_camel_case_aliases(self):
        settings = Settings.model_validate(
            {
                "excludePaths": ["archive/"],
                "excludeTags": ["draft"],
                "frontmatterKeys": ["area"],
                "sortOrder": "mtime-desc",
                "enableDuplicateRemoval": False,
                "createFilesForMultiLinked": True,
            }
        )
        assert settings.exclude_paths == ["archive/"]
        assert settings.exclude_tags == ["draft"]
        assert settings.frontmatter_keys == ["area"]
        assert settings.sort_order is SortOrder.MTIME_DESC
        assert settings.enable_duplicate_removal is False
        assert settings.create_files_for_multi_linked is True

    def test_snake_case_names(self):
        assert Settings(sort_order="path-desc").sort_order is SortOrder.PATH_DESC


class TestLoadSettings:
    def test_missing_file_means_defaults(self, tmp_vault: Path):
        assert load_settings(tmp_vault) == Settings()

    def test_yaml_file(self, tmp_vault: Path):
        (tmp_vault / ".twohop.yaml").write_text(
            "exclude_paths:\n  - templates/\nsort_order: mtime-asc\nunknown_option: 1\n"
        )
        settings = load_settings(tmp_vault)
        assert settings.exclude_paths == ["templates/"]
        assert settings.sort_order is SortOrder.MTIME_ASC

    def test_empty_file_means_defaults(self, tmp_vault: Path):
        (tmp_vault / ".twohop.yaml").write_text("")
        assert load_settings(tmp_vault) == Settings()

    def test_config_env_override(self, tmp_vault: Path, tmp_path: Path, monkeypatch):
        custom = tmp_path / "custom.yaml"
        custom.write_text("frontmatterKeys: [area]\n")
        monkeypatch.setenv("TWOHOP_CONFIG", str(custom))

        assert get_config_path(tmp_vault) == custom
        assert load_settings(tmp_vault).frontmatter_keys == ["area"]

    def test_invalid_yaml(self, tmp_vault: Path):
        (tmp_vault / ".twohop.yaml").write_text("exclude_paths: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_settings(tmp_vault)

    def test_not_a_mapping(self, tmp_vault: Path):
        (tmp_vault / ".twohop.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(tmp_vault)

    def test_invalid_sort_order(self, tmp_vault: Path):
        (tmp_vault / ".twohop.yaml").write_text("sort_order: random\n")
        with pytest.raises(ConfigurationError, match="Invalid settings"):
            load_settings(tmp_vault)

    def test_threshold_must_be_positive(self, tmp_vault: Path):
        (tmp_vault / ".twohop.yaml").write_text("backlink_threshold: 0\n")
        with pytest.raises(ConfigurationError, match="Invalid settings"):
            load_settings(tmp_vault)


class TestVaultDiscovery:
    def test_env_var(self, tmp_vault: Path):
        assert get_vault_root() == tmp_vault

    def test_env_var_not_a_directory(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("TWOHOP_VAULT_ROOT", str(tmp_path / "missing"))
        with pytest.raises(ConfigurationError, match="not a directory"):
            get_vault_root()

    def test_walks_up_to_obsidian_folder(self, tmp_vault: Path, monkeypatch):
        nested = tmp_vault / "notes" / "deep"
        nested.mkdir(parents=True)
        monkeypatch.delenv("TWOHOP_VAULT_ROOT")
        monkeypatch.chdir(nested)

        assert get_vault_root() == tmp_vault.resolve()

    def test_settings_file_marks_vault(self, tmp_path: Path):
        root = tmp_path / "plain"
        (root / "sub").mkdir(parents=True)
        (root / ".twohop.yaml").write_text("{}\n")

        assert _discover_vault_root(root / "sub") == root.resolve()

    def test_no_marker(self, tmp_path: Path):
        bare = tmp_path / "bare"
        bare.mkdir()
        assert _discover_vault_root(bare, max_depth=1) is None
