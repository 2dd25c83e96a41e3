#
# src/electrsd/resolver.py
#
"""
Locates the electrs executable.
"""

import os
import shutil
import sys
from collections.abc import Sequence
from pathlib import Path

import structlog

from electrsd.download import downloaded_exe_path
from electrsd.exceptions import ConfigError, NotFoundError

log = structlog.get_logger("resolver")

EXE_ENV_VARS = ("ELECTRS_EXEC", "ELECTRS_EXE")
DEFAULT_EXE_NAME = "electrs"


def is_executable(path: Path) -> bool:
    if not path.is_file():
        return False
    if sys.platform == "win32":
        return True
    return os.access(path, os.X_OK)


def _validated(path: Path, source: str) -> Path:
    if not is_executable(path):
        raise NotFoundError(f"electrs executable from {source} is missing or not executable: '{path}'")
    log.debug("Resolved electrs executable", path=str(path), source=source)
    return path


def resolve(
    explicit_path: str | os.PathLike | None = None,
    env_var_names: Sequence[str] = EXE_ENV_VARS,
    default_name: str = DEFAULT_EXE_NAME,
    downloaded: Path | None = None,
) -> Path:
    """
    Returns a validated executable path, first match wins:

    1. `explicit_path`, when given (no fallthrough if it is invalid)
    2. one of the `env_var_names` environment variables (setting more than
       one is a ConfigError)
    3. `downloaded`, a path produced by the download collaborator
    4. `default_name` looked up on PATH
    """
    if explicit_path is not None:
        return _validated(Path(explicit_path), "explicit path")

    set_vars = [name for name in env_var_names if os.environ.get(name)]
    if len(set_vars) > 1:
        raise ConfigError(f"Only one of {list(env_var_names)} may be set, found {set_vars}")
    if set_vars:
        return _validated(Path(os.environ[set_vars[0]]), f"${set_vars[0]}")

    if downloaded is not None and is_executable(downloaded):
        log.debug("Resolved electrs executable", path=str(downloaded), source="download")
        return downloaded

    found = shutil.which(default_name)
    if found:
        return _validated(Path(found), "PATH")

    raise NotFoundError(
        f"No '{default_name}' executable found. Set {' or '.join(env_var_names)}, "
        f"download a release, or put it on PATH."
    )


def exe_path() -> Path:
    """Resolves the executable from the environment, a downloaded release, or PATH."""
    return resolve(downloaded=downloaded_exe_path())


# 🔼⚙️
