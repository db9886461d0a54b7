"""Configuration settings for the citation renderer."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# === Input defaults ===
DEFAULT_STYLE_PATH = "csl/style.csl"
DEFAULT_DATA_PATH = "data/examples.json"

# === Rendering defaults ===
DEFAULT_LOCALE = "en-US"
DEFAULT_OUTPUT_FORMAT = "text"
DEFAULT_NEAR_NOTE_DISTANCE = 5

# === API Configuration ===
API_HOST = "0.0.0.0"
API_PORT = 8000
API_TITLE = "Citation Renderer"
API_DESCRIPTION = "Render citations and bibliographies from CSL styles and CSL-JSON data"

# === Logging Configuration ===
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ENV_PREFIX = "CITATION_RENDERER_"


@dataclass(frozen=True)
class Settings:
    style_path: str = DEFAULT_STYLE_PATH
    data_path: str = DEFAULT_DATA_PATH
    locale: str = DEFAULT_LOCALE
    output_format: str = DEFAULT_OUTPUT_FORMAT
    log_level: str = LOG_LEVEL
    near_note_distance: Optional[int] = None


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(ENV_PREFIX + name)
    if value is None or not value.strip():
        return default
    return value.strip()


def load_settings(dotenv: bool = True) -> Settings:
    """Load settings from the environment, reading a ``.env`` file first."""
    if dotenv:
        load_dotenv()

    distance = _env("NEAR_NOTE_DISTANCE")
    output_format = (_env("OUTPUT_FORMAT", DEFAULT_OUTPUT_FORMAT) or DEFAULT_OUTPUT_FORMAT).lower()
    if output_format not in {"text", "html"}:
        raise ValueError(f"Unsupported output format: {output_format}")

    return Settings(
        style_path=_env("STYLE", DEFAULT_STYLE_PATH) or DEFAULT_STYLE_PATH,
        data_path=_env("DATA", DEFAULT_DATA_PATH) or DEFAULT_DATA_PATH,
        locale=_env("LOCALE", DEFAULT_LOCALE) or DEFAULT_LOCALE,
        output_format=output_format,
        log_level=(_env("LOG_LEVEL", LOG_LEVEL) or LOG_LEVEL).upper(),
        near_note_distance=int(distance) if distance is not None else None,
    )


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the configured log level and format to the root logger."""
    level_name = settings.log_level if settings else LOG_LEVEL
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("citation_renderer").setLevel(level)
