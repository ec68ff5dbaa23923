"""
Configuration loader for pointsledger.

What it does:
- Reads static settings from `config/config.yaml` (missing file means defaults).
- Applies environment overrides named `POINTS_LEDGER_<FIELD>`, e.g.
  `POINTS_LEDGER_OWNER`, `POINTS_LEDGER_STORE`, `POINTS_LEDGER_DB_PATH`.
- Validates the result with Pydantic models.

Where it is used:
- Called by `pointsledger.main` to build the store and the Ledger.

Key outputs:
- `Settings` with the owner identity, store backend, audit and event-stream
  options, and the metrics port.
"""

import os
import yaml
from typing import Literal, Optional
from pydantic import BaseModel, field_validator
import pathlib

ENV_PREFIX = "POINTS_LEDGER"


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    owner: str
    store: Literal["memory", "sqlite"] = "memory"
    db_path: str = "data/ledger.sqlite"
    audit_path: Optional[str] = None
    events_stream: str = "pointsledger.events"
    events_dlq: str = "pointsledger.dlq"
    prometheus_port: int = 0
    log_level: str = "INFO"

    @field_validator("owner")
    @classmethod
    def not_empty(cls, v, info):
        if not v or not str(v).strip():
            raise ValueError(f"Missing required identity: {info.field_name}")
        return str(v).strip()

    @field_validator("log_level")
    @classmethod
    def upper_level(cls, v):
        return str(v).upper()


def _env_overrides() -> dict:
    out = {}
    for field in Settings.model_fields:
        val = os.getenv(f"{ENV_PREFIX}_{field.upper()}")
        if val is not None and val != "":
            out[field] = val
    return out


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Load YAML config, apply env-var overrides, and return Settings.

    The owner has no default: it must come from the YAML `owner` key or
    `POINTS_LEDGER_OWNER`.
    """
    config = {}
    p = pathlib.Path(path)
    if p.exists():
        with open(p, "r") as f:
            config = yaml.safe_load(f) or {}
    config.update(_env_overrides())
    if not config.get("owner"):
        raise ValueError(
            f"Missing required owner identity. Set `owner` in {path} or env var {ENV_PREFIX}_OWNER"
        )
    return Settings(**config)
