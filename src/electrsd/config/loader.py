#
# src/electrsd/config/loader.py
#
"""
Loads electrsd configuration from a TOML file, applying environment overrides.

File layout:

    [global]
    log_level = "DEBUG"

    [electrs]
    version = "electrs_0_9_11"
    http_enabled = true
    args = ["-vv"]
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from electrsd.config.models import ElectrsConf, ElectrsdConfig, GlobalConfig
from electrsd.exceptions import ConfigError, ElectrsdError

log = structlog.get_logger("config.loader")

_TRUTHY = {"1", "true", "yes", "on"}

# env var -> (section field, parser)
ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "ELECTRSD_VERSION": ("version", str),
    "ELECTRSD_NETWORK": ("network", str),
    "ELECTRSD_LEGACY": ("legacy", lambda v: v.strip().lower() in _TRUTHY),
    "ELECTRSD_VIEW_STDERR": ("view_stderr", lambda v: v.strip().lower() in _TRUTHY),
    "ELECTRSD_HTTP_ENABLED": ("http_enabled", lambda v: v.strip().lower() in _TRUTHY),
}

_ELECTRS_FIELDS = {
    "args",
    "view_stderr",
    "http_enabled",
    "network",
    "tmpdir",
    "staticdir",
    "version",
    "legacy",
    "env",
    "host",
    "attempts",
    "readiness_attempts",
    "readiness_interval",
    "termination_grace",
}


def _apply_env_overrides(
    section: dict[str, Any], environ: Mapping[str, str]
) -> dict[str, Any]:
    merged = dict(section)
    for env_var, (key, parse) in ENV_OVERRIDES.items():
        raw = environ.get(env_var)
        if raw is None:
            continue
        merged[key] = parse(raw)
        log.debug("Applied environment override", env_var=env_var, field=key)
    return merged


def build_conf(
    section: Mapping[str, Any], environ: Mapping[str, str] | None = None
) -> ElectrsConf:
    """Builds an ElectrsConf from a mapping, rejecting unknown keys."""
    environ = os.environ if environ is None else environ
    unknown = set(section) - _ELECTRS_FIELDS
    if unknown:
        raise ConfigError(f"Unknown [electrs] option(s): {sorted(unknown)}")
    merged = _apply_env_overrides(dict(section), environ)
    try:
        return ElectrsConf(**merged)
    except ElectrsdError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid [electrs] section: {e}", details=e) from e


def load_config(
    config_path: Path, environ: Mapping[str, str] | None = None
) -> ElectrsdConfig:
    """Reads and validates `config_path`."""
    load_log = log.bind(config_path=str(config_path))
    load_log.debug("Loading configuration file")
    try:
        with open(config_path, "rb") as fh:
            raw = tomllib.load(fh)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: '{config_path}'", details=e) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in '{config_path}': {e}", details=e) from e

    global_section = raw.get("global", {})
    try:
        global_config = GlobalConfig(**global_section)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid [global] section: {e}", details=e) from e

    electrs_conf = build_conf(raw.get("electrs", {}), environ)
    load_log.info("Configuration loaded", version=electrs_conf.version, network=electrs_conf.network)
    return ElectrsdConfig(electrs=electrs_conf, global_config=global_config)


# 🔼⚙️
