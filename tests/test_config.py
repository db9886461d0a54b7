import logging

import pytest

from citation_renderer.config import (
    DEFAULT_DATA_PATH,
    DEFAULT_OUTPUT_FORMAT,
    ENV_PREFIX,
    configure_logging,
    load_settings,
)


def test_defaults_without_environment(monkeypatch):
    for name in ("STYLE", "DATA", "OUTPUT_FORMAT", "NEAR_NOTE_DISTANCE", "LOG_LEVEL"):
        monkeypatch.delenv(ENV_PREFIX + name, raising=False)
    settings = load_settings(dotenv=False)
    assert settings.data_path == DEFAULT_DATA_PATH
    assert settings.output_format == DEFAULT_OUTPUT_FORMAT
    assert settings.near_note_distance is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv(ENV_PREFIX + "STYLE", "styles/chicago.csl")
    monkeypatch.setenv(ENV_PREFIX + "OUTPUT_FORMAT", "HTML")
    monkeypatch.setenv(ENV_PREFIX + "NEAR_NOTE_DISTANCE", "3")
    monkeypatch.setenv(ENV_PREFIX + "LOG_LEVEL", "debug")
    settings = load_settings(dotenv=False)
    assert settings.style_path == "styles/chicago.csl"
    assert settings.output_format == "html"
    assert settings.near_note_distance == 3
    assert settings.log_level == "DEBUG"


def test_unknown_output_format_is_rejected(monkeypatch):
    monkeypatch.setenv(ENV_PREFIX + "OUTPUT_FORMAT", "rtf")
    with pytest.raises(ValueError):
        load_settings(dotenv=False)


def test_configure_logging_sets_package_level(monkeypatch):
    monkeypatch.setenv(ENV_PREFIX + "LOG_LEVEL", "WARNING")
    configure_logging(load_settings(dotenv=False))
    assert logging.getLogger("citation_renderer").level == logging.WARNING
    logging.getLogger("citation_renderer").setLevel(logging.NOTSET)
