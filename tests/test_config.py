"""Tests for configuration loading."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from perfcollector.config import CollectorConfig, config_from_dict, load_config
from perfcollector.errors import ConfigError


class TestDefaults:
    def test_defaults(self) -> None:
        config = CollectorConfig()
        assert config.max_commits_per_run == 3
        assert config.retry_failure_policy == "isolate"
        assert config.test_exclude == "servo"
        assert config.placeholder_date == datetime(2000, 1, 1, tzinfo=UTC)


class TestLoadConfig:
    def test_missing_default_file_gives_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        assert load_config() == CollectorConfig()

    def test_reads_default_file_from_cwd(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "perf-collector.yaml").write_text("iterations: 5\n")
        assert load_config().iterations == 5

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="config file not found"):
            load_config(tmp_path / "nope.yaml")

    def test_full_file(self, tmp_path: Path) -> None:
        cf = tmp_path / "collector.yaml"
        cf.write_text(
            "triple: aarch64-unknown-linux-gnu\n"
            "benchmark_dir: /srv/benchmarks\n"
            "artifact_components: [rustc, cargo]\n"
            "max_commits_per_run: 10\n"
            "retry_failure_policy: abort\n"
            "placeholder_date: 2001-02-03T04:05:06\n"
        )
        config = load_config(cf)
        assert config.triple == "aarch64-unknown-linux-gnu"
        assert config.benchmark_dir == Path("/srv/benchmarks")
        assert config.artifact_components == ("rustc", "cargo")
        assert config.max_commits_per_run == 10
        assert config.retry_failure_policy == "abort"
        assert config.placeholder_date == datetime(2001, 2, 3, 4, 5, 6, tzinfo=UTC)

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        cf = tmp_path / "collector.yaml"
        cf.write_text("")
        assert load_config(cf) == CollectorConfig()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        cf = tmp_path / "collector.yaml"
        cf.write_text("triple: [unclosed\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(cf)

    def test_non_mapping(self, tmp_path: Path) -> None:
        cf = tmp_path / "collector.yaml"
        cf.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(cf)


class TestValidation:
    def test_unknown_keys(self) -> None:
        with pytest.raises(ConfigError, match="unknown configuration keys: colour, speed"):
            config_from_dict({"speed": 1, "colour": "red"})

    @pytest.mark.parametrize("value", [0, -1, "3", True])
    def test_rejects_bad_counts(self, value: object) -> None:
        with pytest.raises(ConfigError, match="max_commits_per_run must be a positive integer"):
            config_from_dict({"max_commits_per_run": value})

    def test_rejects_unknown_policy(self) -> None:
        with pytest.raises(ConfigError, match="retry_failure_policy must be one of"):
            config_from_dict({"retry_failure_policy": "ignore"})

    def test_rejects_bad_components(self) -> None:
        with pytest.raises(ConfigError, match="artifact_components"):
            config_from_dict({"artifact_components": "rustc"})
