"""Configuration loading: TOML file, environment variables and explicit overrides.

Priority (highest first):
- explicit overrides passed to load_config()
- environment variables (TRACELINK_*)
- config file (tracelink.toml)
- defaults
"""

from __future__ import annotations

import copy
import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from tracelink.errors import ConfigError

CONFIG_FILE_NAME = "tracelink.toml"
ENV_PREFIX = "TRACELINK_"


class DistributedTracingConfig(BaseModel):
    enabled: bool = True
    trusted_account_key: Optional[str] = None
    account_id: Optional[str] = None
    primary_application_id: Optional[str] = None
    pad_trace_id: bool = False
    exclude_newrelic_header: bool = False
    span_events_enabled: bool = True
    transaction_events_enabled: bool = True
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)


class LoggingConfig(BaseModel):
    debug: bool = False


class TracelinkConfig(BaseModel):
    distributed_tracing: DistributedTracingConfig = Field(
        default_factory=DistributedTracingConfig
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# env var suffix -> (section, key, type)
_ENV_VARS = {
    "ENABLED": ("distributed_tracing", "enabled", bool),
    "TRUSTED_ACCOUNT_KEY": ("distributed_tracing", "trusted_account_key", str),
    "ACCOUNT_ID": ("distributed_tracing", "account_id", str),
    "PRIMARY_APPLICATION_ID": ("distributed_tracing", "primary_application_id", str),
    "PAD_TRACE_ID": ("distributed_tracing", "pad_trace_id", bool),
    "EXCLUDE_NEWRELIC_HEADER": ("distributed_tracing", "exclude_newrelic_header", bool),
    "SPAN_EVENTS_ENABLED": ("distributed_tracing", "span_events_enabled", bool),
    "TRANSACTION_EVENTS_ENABLED": (
        "distributed_tracing",
        "transaction_events_enabled",
        bool,
    ),
    "SAMPLE_RATE": ("distributed_tracing", "sample_rate", float),
    "DEBUG": ("logging", "debug", bool),
}

_TRUE_VALUES = ("1", "true", "yes", "on")


def _convert(raw: str, kind: type) -> Any:
    if kind is bool:
        return raw.strip().lower() in _TRUE_VALUES
    if kind is float:
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigError(f"Invalid number in environment: {raw!r}") from exc
    return raw


def find_config_file() -> Optional[str]:
    """Return the first tracelink.toml found in the cwd or the home directory."""
    candidates = [
        Path.cwd() / CONFIG_FILE_NAME,
        Path.home() / ".tracelink" / CONFIG_FILE_NAME,
    ]
    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)
    return None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Load a TOML config file.

    Returns an empty dict when the file does not exist.
    Raises ConfigError when the file is not valid TOML.
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}", details={"error": str(exc)}) from exc


def load_config_from_env(flat: bool = False) -> Dict[str, Any]:
    """
    Read TRACELINK_* environment variables.

    Returns a nested dict ({"section": {"key": value}}), or a flat dict
    ({"key": value}) when flat=True. Unset variables are omitted.
    """
    result: Dict[str, Any] = {}
    for suffix, (section, key, kind) in _ENV_VARS.items():
        raw = os.getenv(ENV_PREFIX + suffix)
        if raw is None:
            continue
        value = _convert(raw, kind)
        if flat:
            result[key] = value
        else:
            result.setdefault(section, {})[key] = value
    return result


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config_with_priority(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Merge file, env and explicit overrides into one nested dict."""
    path = config_file or find_config_file()
    merged: Dict[str, Any] = load_toml_config(path) if path else {}
    merged = _deep_merge(merged, load_config_from_env())
    if overrides:
        merged = _deep_merge(merged, overrides)
    return merged


def load_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> TracelinkConfig:
    """
    Build a validated TracelinkConfig.

    Raises ConfigError when the merged values fail validation.
    """
    merged = load_config_with_priority(config_file=config_file, overrides=overrides)
    try:
        return TracelinkConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError("Invalid configuration", details={"error": str(exc)}) from exc


def validate_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Tuple[bool, str, Optional[TracelinkConfig]]:
    """Return (is_valid, message, config) instead of raising."""
    try:
        config = load_config(config_file=config_file, overrides=overrides)
    except ConfigError as exc:
        return False, str(exc), None
    return True, "ok", config


def configure_logging(config: TracelinkConfig) -> None:
    """Switch the tracelink logger to DEBUG when debug logging is enabled."""
    if config.logging.debug:
        logging.getLogger("tracelink").setLevel(logging.DEBUG)
