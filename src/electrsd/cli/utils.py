# src/electrsd/cli/utils.py

"""
Logging options shared by every electrsd command.

The options may be given on the group or on a subcommand; either way they end
up in `ctx.obj`, and the most specific one wins. Precedence for the level is
command line (or `ELECTRSD_LOG_LEVEL`), then `[global] log_level` from the
config file, then the command's default.
"""

import logging

import click
import structlog

from electrsd.config import GlobalConfig
from electrsd.telemetry.logger import setup_logging as core_setup_logging

log = structlog.get_logger("cli.utils")

LOG_LEVEL_CHOICES = click.Choice(list(logging._nameToLevel.keys()), case_sensitive=False)

DEFAULT_LOG_LEVEL = "WARNING"


def _store_in_context(key: str):
    def callback(ctx: click.Context, param: click.Parameter, value):
        # unset options never override values from an outer command
        if value:
            ctx.ensure_object(dict)[key] = value
        return value

    return callback


def logging_options(f):
    """Decorator adding --log-level, --log-file and --json-logs to a command."""
    f = click.option(
        "-l",
        "--log-level",
        type=LOG_LEVEL_CHOICES,
        default=None,
        envvar="ELECTRSD_LOG_LEVEL",
        expose_value=False,
        callback=_store_in_context("LOG_LEVEL"),
        help="Set the logging level (overrides [global] log_level).",
    )(f)
    f = click.option(
        "--log-file",
        type=click.Path(dir_okay=False, writable=True, resolve_path=True),
        default=None,
        envvar="ELECTRSD_LOG_FILE",
        expose_value=False,
        callback=_store_in_context("LOG_FILE"),
        help="Also write logs to this file, as JSON lines.",
    )(f)
    f = click.option(
        "--json-logs",
        is_flag=True,
        default=None,
        envvar="ELECTRSD_JSON_LOGS",
        expose_value=False,
        callback=_store_in_context("JSON_LOGS"),
        help="Write console logs (stderr) as JSON.",
    )(f)
    return f


def resolve_log_level(ctx: click.Context, global_config: GlobalConfig | None = None) -> str:
    level = (ctx.obj or {}).get("LOG_LEVEL")
    if level is None and global_config is not None:
        level = global_config.log_level
    return (level or DEFAULT_LOG_LEVEL).upper()


def setup_logging_from_context(ctx: click.Context, global_config: GlobalConfig | None = None) -> None:
    """Configures logging from the collected options and, if loaded, the config file."""
    obj = ctx.obj or {}
    level_name = resolve_log_level(ctx, global_config)
    log_file = obj.get("LOG_FILE")
    json_logs = bool(obj.get("JSON_LOGS", False))

    core_setup_logging(level=logging.getLevelName(level_name), json_logs=json_logs, log_file=log_file)
    log.debug("CLI logging initialized", level=level_name, file=log_file or "console", json=json_logs)

# ⚙️🛠️
