"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- _deep_merge() function
- load_config() precedence and error mapping
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from blastradius.config.loader import GLOBAL_CONFIG_PATH, _deep_merge, _load_yaml, load_config
from blastradius.config.models import IngestionConfig, LoggingConfig
from blastradius.core.errors import ConfigError, ErrorCode


def _write_repo_config(root: Path, text: str) -> None:
    config_dir = root / ".blastradius"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "config.yaml").write_text(text)


@pytest.fixture
def no_global(tmp_path: Path) -> Iterator[None]:
    with patch("blastradius.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"):
        yield


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("ingestion:\n  max_workers: 8\n")

        assert _load_yaml(yaml_file) == {"ingestion": {"max_workers": 8}}

    @pytest.mark.parametrize("text", ["", "null\n"])
    def test_returns_empty_for_empty_document(self, tmp_path: Path, text: str) -> None:
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text(text)

        assert _load_yaml(yaml_file) == {}

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("logging:\n  level:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)

        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_non_mapping_top_level(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)

        assert "mapping" in exc_info.value.details["reason"]


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_nested_merge(self) -> None:
        base = {"ingestion": {"max_workers": 4, "service_marker": "services"}}
        override = {"ingestion": {"max_workers": 8}}

        assert _deep_merge(base, override) == {
            "ingestion": {"max_workers": 8, "service_marker": "services"}
        }

    def test_override_replaces_non_dict(self) -> None:
        base: dict[str, Any] = {"a": {"nested": 1}}
        override: dict[str, Any] = {"a": "simple"}

        assert _deep_merge(base, override) == {"a": "simple"}

    def test_does_not_mutate_base(self) -> None:
        base = {"a": 1}

        _deep_merge(base, {"b": 2})

        assert base == {"a": 1}


@pytest.mark.usefixtures("no_global")
class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)

        assert config.logging.level == "INFO"
        assert config.ingestion.max_workers == 4
        assert config.ingestion.worker_timeout_sec is None
        assert config.interchange.verify_on_import is True

    def test_loads_repo_config(self, tmp_path: Path) -> None:
        _write_repo_config(tmp_path, "ingestion:\n  max_workers: 2\n  exclude_dirs: [vendor]\n")

        config = load_config(tmp_path)

        assert config.ingestion.max_workers == 2
        assert config.ingestion.exclude_dirs == ["vendor"]
        assert config.ingestion.file_patterns == ["*.go"]

    def test_repo_config_overrides_global(self, tmp_path: Path) -> None:
        global_file = tmp_path / "global.yaml"
        global_file.write_text("logging:\n  level: DEBUG\ningestion:\n  max_workers: 16\n")
        _write_repo_config(tmp_path, "ingestion:\n  max_workers: 2\n")

        with patch("blastradius.config.loader.GLOBAL_CONFIG_PATH", global_file):
            config = load_config(tmp_path)

        assert config.logging.level == "DEBUG"
        assert config.ingestion.max_workers == 2

    def test_env_vars_override_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_repo_config(tmp_path, "logging:\n  level: INFO\n")
        monkeypatch.setenv("BLASTRADIUS__LOGGING__LEVEL", "WARNING")
        monkeypatch.setenv("BLASTRADIUS__INGESTION__WORKER_TIMEOUT_SEC", "30")

        config = load_config(tmp_path)

        assert config.logging.level == "WARNING"
        assert config.ingestion.worker_timeout_sec == 30.0

    def test_kwargs_override_all(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BLASTRADIUS__LOGGING__LEVEL", "WARNING")

        config = load_config(
            tmp_path,
            logging=LoggingConfig(level="ERROR"),
            ingestion=IngestionConfig(max_workers=1),
        )

        assert config.logging.level == "ERROR"
        assert config.ingestion.max_workers == 1

    @pytest.mark.parametrize(
        ("text", "field"),
        [
            ("ingestion:\n  max_workers: 0\n", "ingestion.max_workers"),
            ("ingestion:\n  poll_interval_sec: -1\n", "ingestion.poll_interval_sec"),
            ("logging:\n  level: LOUD\n", "logging.level"),
        ],
    )
    def test_invalid_value(self, tmp_path: Path, text: str, field: str) -> None:
        _write_repo_config(tmp_path, text)

        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert exc_info.value.details["field"] == field

    def test_repo_parse_error(self, tmp_path: Path) -> None:
        _write_repo_config(tmp_path, "ingestion: [unclosed\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)

        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR


class TestGlobalConfigPath:
    def test_is_in_user_config(self) -> None:
        assert isinstance(GLOBAL_CONFIG_PATH, Path)
        assert GLOBAL_CONFIG_PATH.parts[-2:] == ("blastradius", "config.yaml")
