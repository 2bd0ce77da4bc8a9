"""
Editor configuration.

Settings come from an optional YAML file (``editor:`` section) and are then
overridden by ``KTGRAPH_*`` environment variables, which may be supplied
through a ``.env`` file.

Example config.yaml:

    editor:
      max_history: 200
      coalesce_drags: true
      skip_unsupported: false
      log_level: INFO
"""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "KTGRAPH_"


class EditorConfig(BaseModel):
    """Settings for one GraphEditor."""

    max_history: Optional[int] = Field(None, ge=1)  # None = unlimited
    coalesce_drags: bool = True
    skip_unsupported: bool = False
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return value


def _env_overrides() -> dict:
    overrides = {}
    for name in EditorConfig.model_fields:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is None:
            continue
        # "none"/"" clears optional settings like max_history
        overrides[name] = None if raw.strip().lower() in ("", "none") else raw
    return overrides


def load_config(
    path: Optional[Union[str, Path]] = None,
    env_file: Optional[Union[str, Path]] = None,
) -> EditorConfig:
    """
    Load editor settings.

    Args:
        path: YAML file; missing sections fall back to defaults
        env_file: .env file to load before reading KTGRAPH_* variables

    Returns:
        Validated EditorConfig
    """
    if env_file is not None:
        load_dotenv(env_file)

    data: dict = {}
    if path is not None:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        data = dict(loaded.get("editor") or {})

    data.update(_env_overrides())
    return EditorConfig.model_validate(data)
