# src/electrsd/cli/config_cmds.py

from pathlib import Path

import click
import structlog
from rich.pretty import pretty_repr

from electrsd.cli.utils import logging_options, resolve_log_level, setup_logging_from_context
from electrsd.config import load_config
from electrsd.exceptions import ConfigError
from electrsd.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.config")


@click.group(name="config")
def config_cli():
    """Commands for inspecting and validating configuration."""
    pass


@config_cli.command(name="show")
@click.option(
    "-c",
    "--config-path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path),
    default=Path("electrsd.toml"),
    show_default=True,
    envvar="ELECTRSD_CONF",
    help="Path to the electrsd configuration file (env var ELECTRSD_CONF).",
    show_envvar=True,
)
@logging_options
@click.pass_context
def show_config(ctx: click.Context, config_path: Path):
    """Load, validate, and display the configuration."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        setup_logging_from_context(ctx)
        log.error("Failed to load or validate configuration", error=str(e))
        click.echo(f"Error: Configuration problem in '{config_path}':\n{e}", err=True)
        ctx.exit(1)

    setup_logging_from_context(ctx, config.global_config)
    log.info(
        "Configuration loaded",
        config_path=str(config_path),
        log_level=resolve_log_level(ctx, config.global_config),
    )
    click.echo(pretty_repr(config, expand_all=True))

# 🔼⚙️
