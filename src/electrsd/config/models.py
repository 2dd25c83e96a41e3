#
# src/electrsd/config/models.py
#
"""
Attrs-based data models for electrsd configuration.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from attrs import define, field

from electrsd.versions import ElectrsVersion


# --- Validators ---
def _validate_log_level(inst: Any, attr: Any, value: str) -> None:
    """Validator for standard logging level names."""
    valid = logging._nameToLevel.keys()
    if value.upper() not in valid:
        raise ValueError(f"Invalid log_level '{value}'. Must be one of {list(valid)}.")


def _validate_positive_int(inst: Any, attr: Any, value: int) -> None:
    """Validator ensures integer is positive."""
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be positive integer, got {value}")


def _validate_positive_float(inst: Any, attr: Any, value: float) -> None:
    if not isinstance(value, int | float) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be a positive number, got {value}")


def _optional_path(value: Any) -> Path | None:
    return None if value is None else Path(value)


def _optional_version(value: Any) -> ElectrsVersion | None:
    return None if value is None else ElectrsVersion.parse(value)


def _optional_args(value: Any) -> tuple[str, ...] | None:
    return None if value is None else tuple(str(v) for v in value)


def _read_only_env(value: Mapping[str, str]) -> Mapping[str, str]:
    if not isinstance(value, Mapping):
        raise TypeError(f"Field 'env' must be a table of strings, got {value!r}")
    return MappingProxyType({str(k): str(v) for k, v in value.items()})


@define(frozen=True, slots=True)
class ElectrsConf:
    """
    Options for one electrs instance. The defaults suit most regtest tests.

    `args` are extra electrs arguments; when left as None the selected
    version's default verbosity arguments are used. Flags that electrsd
    manages itself (db dir, cookie, daemon addresses, listen addresses)
    cannot appear in `args`.

    Working directory selection:
      - tmpdir and staticdir both set: rejected with ConfigError.
      - tmpdir set: a temporary directory is created inside it.
      - staticdir set: that directory is created and kept after teardown.
      - neither: a temporary directory under `TEMPDIR_ROOT` or the OS temp root.
    """

    args: tuple[str, ...] | None = field(default=None, converter=_optional_args)
    view_stderr: bool = field(default=False)
    http_enabled: bool = field(default=False)
    network: str = field(default="regtest")
    tmpdir: Path | None = field(default=None, converter=_optional_path)
    staticdir: Path | None = field(default=None, converter=_optional_path)
    version: ElectrsVersion | None = field(default=None, converter=_optional_version)
    legacy: bool = field(default=False)
    env: Mapping[str, str] = field(factory=dict, converter=_read_only_env, hash=False)
    host: str = field(default="127.0.0.1")

    # Spawn is attempted once unless the caller opts into retries; each retry
    # gets freshly allocated ports.
    attempts: int = field(default=1, validator=_validate_positive_int)
    readiness_attempts: int = field(default=120, validator=_validate_positive_int)
    readiness_interval: float = field(default=0.5, validator=_validate_positive_float)
    termination_grace: float = field(default=5.0, validator=_validate_positive_float)


@define(frozen=True, slots=True)
class GlobalConfig:
    """Global settings shared by the electrsd command line."""

    log_level: str = field(default="INFO", validator=_validate_log_level)

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())


@define(frozen=True, slots=True)
class ElectrsdConfig:
    """Root configuration object loaded from a config file."""

    electrs: ElectrsConf = field(factory=ElectrsConf)
    global_config: GlobalConfig = field(factory=GlobalConfig, metadata={"toml_name": "global"})


# 🔼⚙️
