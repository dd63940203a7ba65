from __future__ import annotations

from pathlib import Path

import pytest

from tracebox.config import ConfigError, TracerConfig, load_config


def test_defaults_match_fixed_limits() -> None:
    config = TracerConfig()

    assert config.timeout_ms == 5000
    assert config.event_limit == 500
    assert config.ceiling_ms == 6000
    assert config.log_file == "log.txt"
    assert config.instrument is True
    assert config.validate_events is False


def test_from_mapping_accepts_camel_case_keys() -> None:
    config = TracerConfig.from_mapping({"timeoutMs": 100, "event_limit": 7, "logFile": None})

    assert config.timeout_ms == 100
    assert config.event_limit == 7
    assert config.log_file is None


def test_from_mapping_none_gives_defaults() -> None:
    assert TracerConfig.from_mapping(None) == TracerConfig()


@pytest.mark.parametrize(
    "data",
    [
        {"timeout_ms": 0},
        {"event_limit": "500"},
        {"ceiling_ms": True},
        {"memory_limit_mb": -1},
        {"fetch_timeout_s": 0},
        {"instrument": "yes"},
        {"unknown": 1},
    ],
)
def test_invalid_values_raise_config_error(data: dict) -> None:
    with pytest.raises(ConfigError):
        TracerConfig.from_mapping(data)


def test_non_mapping_is_rejected() -> None:
    with pytest.raises(ConfigError):
        TracerConfig.from_mapping(["timeout_ms"])  # type: ignore[arg-type]


def test_merged_ignores_missing_overrides() -> None:
    config = TracerConfig()

    assert config.merged(log_file=None, validate_events=True).validate_events is True
    assert config.merged(log_file=None).log_file == "log.txt"


def test_load_config_reads_yaml(tmp_path: Path) -> None:
    path = tmp_path / "tracer.yaml"
    path.write_text("timeout_ms: 250\neventLimit: 20\nlog_file: null\n", encoding="utf-8")

    config = load_config(path)

    assert (config.timeout_ms, config.event_limit, config.log_file) == (250, 20, None)


def test_load_config_reports_bad_yaml(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("timeout_ms: [unterminated\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(path)


def test_load_config_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")
