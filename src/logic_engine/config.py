# logic_engine/config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["warning", "error", "info"]
RequiredField = Literal["behavior", "examples", "invariants"]

CONFIG_ENV_VAR = "PRAXIS_CONFIG"

_CONFIG = ConfigDict(extra="forbid")


class LogConfig(BaseModel):
    model_config = _CONFIG

    level: str = "INFO"
    fmt: str = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}"
    dir: Optional[str] = None
    rotation: str = "1 day"
    retention: str = "30 days"


class ComplianceConfig(BaseModel):
    """Registration-time contract compliance settings."""

    model_config = _CONFIG

    enabled: bool = True
    required_fields: list[RequiredField] = Field(
        default_factory=lambda: ["behavior", "examples", "invariants"]
    )
    missing_severity: Severity = "warning"


class ValidationConfig(BaseModel):
    """Defaults for build-time `validate_contracts` runs."""

    model_config = _CONFIG

    missing_severity: Optional[Severity] = None
    incomplete_severity: Severity = "warning"
    required_fields: list[RequiredField] = Field(default_factory=lambda: ["behavior", "examples"])


class LedgerConfig(BaseModel):
    model_config = _CONFIG

    root_dir: str = "."
    author: str = "system"


class AppConfig(BaseModel):
    model_config = _CONFIG

    log: LogConfig = Field(default_factory=LogConfig)
    compliance: ComplianceConfig = Field(default_factory=ComplianceConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)

    @classmethod
    def load(cls, path: Union[str, Path, None] = None) -> AppConfig:
        """
        Load YAML configuration.
        - explicit `path` wins, then $PRAXIS_CONFIG
        - with neither, built-in defaults are returned
        """
        if path is None:
            path = os.getenv(CONFIG_ENV_VAR) or None
        if path is None:
            return cls()

        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {p}")

        with p.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Expected a mapping at the top of {p}, got {type(raw).__name__}")
        return cls.model_validate(raw)
