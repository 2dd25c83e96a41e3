# src/electrsd/cli/main.py

"""
Main CLI entry point for electrsd using Click.
Handles global options like logging level.
"""

from importlib.metadata import PackageNotFoundError, version

import click
import structlog

from electrsd.cli.config_cmds import config_cli
from electrsd.cli.exe_cmds import download_cli, exe_path_cli, versions_cli
from electrsd.cli.run_cmds import run_cli
from electrsd.cli.utils import logging_options, setup_logging_from_context
from electrsd.telemetry import StructLogger

try:
    __version__ = version("electrsd")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

log: StructLogger = structlog.get_logger("cli.main")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", package_name="electrsd")
@logging_options
@click.pass_context
def cli(ctx: click.Context):
    """
    Electrsd: run a regtest electrs process for integration testing.

    Finds or downloads the electrs executable and launches it against an
    already running bitcoind node.
    """
    ctx.ensure_object(dict)
    setup_logging_from_context(ctx)
    log.debug("Main CLI group initialized", options=dict(ctx.obj))


cli.add_command(config_cli)
cli.add_command(download_cli)
cli.add_command(exe_path_cli)
cli.add_command(run_cli)
cli.add_command(versions_cli)

if __name__ == "__main__":
    cli()

# 🖥️⚙️
