"""Unit tests for teamwork.engine.config — teamwork.yaml loading and validation."""

import pytest
from pydantic import ValidationError

from teamwork.engine.config import (
    DocumentsConfig,
    LoggingConfig,
    StorageConfig,
    TeamworkConfig,
    get_config,
    get_environment,
    load_config,
)
from teamwork.engine.errors import TeamworkConfigError


class TestConfigModels:

    def test_defaults(self):
        cfg = TeamworkConfig()
        assert cfg.team_name == "Teamwork"
        assert cfg.environment == "dev"
        assert cfg.storage.url.startswith("sqlite:")
        assert cfg.storage.quota_bytes == 5 * 1024 * 1024
        assert cfg.documents.max_upload_bytes == 300 * 1024
        assert cfg.quotes.enabled is True
        assert cfg.logging.level == "INFO"

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            TeamworkConfig(environment="qa")

    def test_storage_url_scheme(self):
        assert StorageConfig(url="redis://localhost:6379/1").url == "redis://localhost:6379/1"
        with pytest.raises(ValidationError):
            StorageConfig(url="postgresql://x")

    def test_log_level_uppercased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_upload_limit_positive(self):
        with pytest.raises(ValidationError):
            DocumentsConfig(max_upload_kib=0)


class TestLoadConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "nope.yaml"))
        assert cfg == TeamworkConfig()

    def test_load_project_file(self, project_root):
        cfg = load_config(str(project_root / "teamwork.yaml"))
        assert cfg.team_name == "Test Team"
        assert cfg.quotes.enabled is False
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.async_queue.flush_interval_ms == 10

    def test_flat_layout(self, tmp_path):
        path = tmp_path / "teamwork.yaml"
        path.write_text("team_name: Flat\nenvironment: staging\n", encoding="utf-8")
        cfg = load_config(str(path))
        assert cfg.team_name == "Flat"
        assert cfg.environment == "staging"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "teamwork.yaml"
        path.write_text("team: [unclosed\n", encoding="utf-8")
        with pytest.raises(TeamworkConfigError):
            load_config(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "teamwork.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(TeamworkConfigError):
            load_config(str(path))

    def test_validation_errors_attached(self, tmp_path):
        path = tmp_path / "teamwork.yaml"
        path.write_text("storage:\n  quota_bytes: -1\n", encoding="utf-8")
        with pytest.raises(TeamworkConfigError) as exc:
            load_config(str(path))
        assert exc.value.context["validation_errors"]

    def test_get_config_discovers_from_cwd(self, project_root, monkeypatch):
        monkeypatch.chdir(project_root)
        assert get_config().team_name == "Test Team"
        assert get_environment() == "dev"

    def test_get_config_is_cached(self, project_root, monkeypatch):
        monkeypatch.chdir(project_root)
        assert get_config() is get_config()
