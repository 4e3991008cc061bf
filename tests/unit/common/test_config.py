"""Tests for YAML loading and application settings."""

import pytest
import yaml

from accessgate.common.config import load_config
from accessgate.core.config import DEFAULT_DIRECTORY_PATH, Settings


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_mapping(self, tmp_path):
        """Test loading a plain YAML mapping."""
        path = tmp_path / "directory.yaml"
        path.write_text("users:\n  - id: u1\n    role: Intern\n")
        config = load_config(str(path))
        assert config["users"][0]["id"] == "u1"

    def test_empty_file(self, tmp_path):
        """Test an empty file loads as an empty mapping."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("users: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_config(str(path))

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(TypeError):
            load_config(str(path))

    def test_env_vars_expanded(self, tmp_path, monkeypatch):
        """Test environment variables in string values are expanded."""
        monkeypatch.setenv("ACCESSGATE_DOMAIN", "example.org")
        path = tmp_path / "env.yaml"
        path.write_text("users:\n  - email: ops@${ACCESSGATE_DOMAIN}\n")
        config = load_config(str(path))
        assert config["users"][0]["email"] == "ops@example.org"


class TestSettings:
    """Tests for pydantic settings."""

    def test_defaults(self):
        settings = Settings()
        assert settings.store_backend == "memory"
        assert settings.fallback_approver_id == "admin-001"
        assert settings.max_message_length == 120
        assert settings.directory_path == DEFAULT_DIRECTORY_PATH

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MAX_MESSAGE_LENGTH", "80")
        monkeypatch.setenv("ESCALATION_SCHEDULER", "disabled")
        settings = Settings()
        assert settings.max_message_length == 80
        assert settings.escalation_scheduler == "disabled"

    def test_celery_urls_fall_back_to_redis(self):
        settings = Settings(redis_url="redis://cache:6379/1")
        assert settings.celery_broker == "redis://cache:6379/1"
        assert settings.celery_backend == "redis://cache:6379/1"

    def test_cors_origins_list(self):
        settings = Settings(cors_origins="http://a.test, http://b.test,")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
