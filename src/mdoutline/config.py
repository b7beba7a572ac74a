"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError


CONFIG_FILE = "config.yaml"


class Settings(BaseModel):
    app_name:       str = "mdoutline"
    db_url:         str = "sqlite:///mdoutline.db"
    max_versions:   int = Field(default=10, ge=0, description="Max stored versions per file; 0 disables pruning")
    record_history: bool = Field(default=True, description="Snapshot files in the database before writing")
    heading_link_prefix: str = Field(default="#heading", min_length=1, description="Link targets starting with this are heading links")
    toc_start:      str = Field(default="<!-- toc -->",  min_length=1, description="Marker opening the table of contents")
    toc_end:        str = Field(default="<!-- /toc -->", min_length=1, description="Marker closing the table of contents")
    parser_config:  str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    log_level:      str = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR)$", description="Default logging level")


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDOUTLINE_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e

    for name in Settings.model_fields:
        if val := os.getenv(f"MDOUTLINE_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid settings: {e}") from e
