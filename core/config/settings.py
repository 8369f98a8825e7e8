"""Session settings loaded from YAML with environment overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class QuokkaSettings(BaseModel):
    """Tunable knobs for one coding session."""

    model_config = ConfigDict(extra="forbid")

    snapshot_path: Path = Path("temp_codebook.csv")
    scroll_threshold: int = Field(default=600, ge=0)
    highlight_color: str = "powderblue"
    font_size_px: int = Field(default=20, gt=0)
    default_column_name: str = "Notes"
    default_bucket_count: int = Field(default=2, ge=2)


_ENV_OVERRIDES = {
    "QUOKKA_SNAPSHOT_PATH": "snapshot_path",
    "QUOKKA_SCROLL_THRESHOLD": "scroll_threshold",
}


def load_settings(path: Path | None = None) -> QuokkaSettings:
    """Load and validate session settings from YAML."""

    settings_path = path or Path(__file__).with_name("settings.yaml")

    try:
        raw = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Settings file not found: {settings_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in settings file: {settings_path}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file must contain a mapping: {settings_path}")

    merged = _apply_env_overrides(dict(raw))

    try:
        return QuokkaSettings.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings schema: {settings_path}") from exc


def _apply_env_overrides(raw: dict[object, object]) -> dict[object, object]:
    for env_name, key in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None or not value.strip():
            continue
        raw[key] = value.strip()
    return raw
