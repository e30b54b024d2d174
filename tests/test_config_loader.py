"""
Unit tests for configuration loading.

Tests multi-layer config merging, the shared ``global`` section,
environment variable overrides and caching.
"""

import json
import os

import pytest
from pydantic import ValidationError

from taskmaster.core.config import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    load_config,
)
from taskmaster.core.config.env import load_layered_env
from taskmaster.core.config.loader import (
    apply_env_overrides,
    apply_global_section,
    deep_merge,
    get_default_config,
    load_json_file,
)
from taskmaster.core.config.models import StorageConfig, TaskMasterConfig


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


class TestHelpers:
    def test_deep_merge(self):
        result = deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 20}, "c": [1]})
        assert result == {"a": 1, "b": {"x": 10, "y": 20}, "c": [1]}

    def test_load_json_file_invalid(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text("{broken")
        assert load_json_file(path) is None
        assert "Failed to parse config" in caplog.text

    def test_load_json_file_non_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1]")
        assert load_json_file(path) is None

    def test_global_section(self):
        result = apply_global_section({"global": {"defaultTag": "dev", "logLevel": "warn"}})
        assert result["tags"] == {"default_tag": "dev"}
        assert result["logging"] == {"level": "WARNING"}

    def test_explicit_values_beat_global_section(self):
        result = apply_global_section(
            {"global": {"defaultTag": "dev"}, "tags": {"default_tag": "main"}}
        )
        assert result["tags"]["default_tag"] == "main"

    def test_paths(self, tmp_path):
        assert get_user_config_path() == tmp_path / "xdg" / "taskmaster" / "config.json"
        assert get_project_config_path(tmp_path) == tmp_path / ".taskmaster" / "config.json"

    def test_legacy_project_config(self, tmp_path):
        (tmp_path / ".taskmasterconfig").write_text("{}")
        assert get_project_config_path(tmp_path) == tmp_path / ".taskmasterconfig"


class TestEnvOverrides:
    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("TASKMASTER_LOCK_STALE_MS", "2500")
        monkeypatch.setenv("TASKMASTER_LOCK_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("TASKMASTER_DEFAULT_TAG", "dev")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        result = apply_env_overrides(get_default_config())

        assert result["storage"]["lock_stale_ms"] == 2500
        assert result["storage"]["lock_max_attempts"] == 5
        assert result["storage"]["create_backups"] is True
        assert result["tags"]["default_tag"] == "dev"
        assert result["logging"]["level"] == "DEBUG"

    def test_invalid_values_are_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("TASKMASTER_LOCK_STALE_MS", "soon")
        monkeypatch.setenv("TASKMASTER_LOCK_MAX_ATTEMPTS", "0")
        monkeypatch.setenv("TASKMASTER_LOG_LEVEL", "loud")

        result = apply_env_overrides(get_default_config())

        assert result == get_default_config()
        assert "Invalid TASKMASTER_LOCK_STALE_MS" in caplog.text

    def test_taskmaster_log_level_wins(self, monkeypatch):
        monkeypatch.setenv("TASKMASTER_LOG_LEVEL", "error")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert apply_env_overrides({})["logging"]["level"] == "ERROR"


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, tmp_path):
        config = load_config(tmp_path)
        assert config.storage == StorageConfig()
        assert config.tags.default_tag == "master"
        assert config.logging.level == "WARNING"

    def test_layers(self, tmp_path, monkeypatch):
        _write(get_user_config_path(), {"storage": {"lock_stale_ms": 1000, "lock_max_attempts": 7}})
        _write(
            tmp_path / ".taskmaster" / "config.json",
            {
                "global": {"defaultTag": "dev", "projectName": "x"},
                "models": {"main": {"provider": "anthropic"}},
                "storage": {"lock_stale_ms": 2000},
            },
        )
        monkeypatch.setenv("TASKMASTER_LOCK_MAX_ATTEMPTS", "9")

        config = load_config(tmp_path)

        assert config.storage.lock_stale_ms == 2000
        assert config.storage.lock_max_attempts == 9
        assert config.tags.default_tag == "dev"

    def test_cache(self, tmp_path):
        first = load_config(tmp_path)
        _write(tmp_path / ".taskmaster" / "config.json", {"tags": {"default_tag": "dev"}})

        assert load_config(tmp_path) is first
        assert load_config(tmp_path, use_cache=False).tags.default_tag == "dev"
        clear_cache()
        assert load_config(tmp_path).tags.default_tag == "dev"

    def test_invalid_values_raise(self, tmp_path):
        _write(tmp_path / ".taskmaster" / "config.json", {"storage": {"lock_max_attempts": 0}})
        with pytest.raises(ValidationError):
            load_config(tmp_path)

    def test_invalid_default_tag(self):
        with pytest.raises(ValidationError):
            TaskMasterConfig(tags={"default_tag": "has space"})

    def test_lock_options(self):
        options = StorageConfig(lock_stale_ms=5).lock_options
        assert options == {
            "stale_ms": 5,
            "max_attempts": 40,
            "retry_delay_ms": 20,
            "max_delay_ms": 500,
        }


class TestLayeredEnv:
    def test_precedence(self, tmp_path, monkeypatch):
        user_env = tmp_path / "user.env"
        user_env.write_text("TM_TEST_A=user\nTM_TEST_B=user\nTM_TEST_C=user\n")
        project_env = tmp_path / "project.env"
        project_env.write_text("TM_TEST_B=project\nTM_TEST_C=project\n")
        for name in ("TM_TEST_A", "TM_TEST_B"):
            # Registers the variable with monkeypatch so teardown removes it again
            monkeypatch.setenv(name, "placeholder")
            monkeypatch.delenv(name)
        monkeypatch.setenv("TM_TEST_C", "os")

        loaded = load_layered_env(
            project_dir=tmp_path,
            user_env_paths=[user_env],
            project_env_paths=[project_env],
        )

        assert os.environ["TM_TEST_A"] == "user"
        assert os.environ["TM_TEST_B"] == "project"
        assert os.environ["TM_TEST_C"] == "os"
        assert loaded == {"TM_TEST_A", "TM_TEST_B"}
