"""Tests for workflow_common.settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_common.errors import SettingsError
from workflow_common.settings import CONFIG_ENV_VAR, CatalogSettings, load_settings


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "config"
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    return path


class TestConfigFile:
    def test_missing_file_uses_defaults(self, config_file: Path) -> None:
        assert not config_file.exists()
        assert load_settings().search_limit == 100

    def test_comments_and_case_insensitive_keys(self, config_file: Path, tmp_path: Path) -> None:
        config_file.write_text(f"# comment\n\nWORKFLOW_DIR = {tmp_path / 'wf'}\nlog_level=debug\n")
        settings = load_settings()
        assert settings.workflow_dir == tmp_path / "wf"
        assert settings.log_level == "DEBUG"

    def test_quoted_values_are_unquoted(self, config_file: Path, tmp_path: Path) -> None:
        config_file.write_text(f'workflow_dir="{tmp_path / "quoted dir"}"\n')
        assert load_settings().workflow_dir == tmp_path / "quoted dir"

    def test_export_prefix_is_accepted(self, config_file: Path, tmp_path: Path) -> None:
        config_file.write_text(f"export workflow_dir={tmp_path / 'exported'}\n")
        settings = load_settings()
        assert settings.workflow_dir == tmp_path / "exported"
        assert settings.index_dir == tmp_path / "exported" / "index"

    def test_unknown_key_is_rejected(self, config_file: Path) -> None:
        config_file.write_text("colour=blue\n")
        with pytest.raises(SettingsError, match="Configuration validation failed"):
            load_settings()


class TestCatalogSettings:
    def test_defaults_derive_directories(self, tmp_path: Path) -> None:
        settings = CatalogSettings(workflow_dir=tmp_path)
        assert settings.store_dir == tmp_path / ".store"
        assert settings.index_dir == tmp_path / "index"
        assert settings.log_level == "WARNING"
        assert settings.search_limit == 100

    def test_default_workflow_dir_is_expanded(self) -> None:
        settings = CatalogSettings()
        assert settings.workflow_dir == Path("~/.workflows").expanduser()

    def test_environment_overrides_config_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config = tmp_path / "config"
        config.write_text(f"workflow_dir={tmp_path / 'from-file'}\nsearch_limit=5\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config))
        monkeypatch.setenv("WORKFLOW_SEARCH_LIMIT", "7")

        settings = load_settings()

        assert settings.workflow_dir == tmp_path / "from-file"
        assert settings.search_limit == 7

    def test_overrides_win(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WORKFLOW_LOG_LEVEL", "error")
        settings = load_settings(workflow_dir=tmp_path, log_level="debug")
        assert settings.workflow_dir == tmp_path
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [{"log_level": "chatty"}, {"search_limit": 0}, {"unknown_field": 1}],
    )
    def test_invalid_values_raise_settings_error(self, overrides: dict[str, object]) -> None:
        with pytest.raises(SettingsError, match="Configuration validation failed"):
            load_settings(**overrides)
