# src/electrsd/cli/run_cmds.py

import time
from pathlib import Path

import attrs
import click
import structlog

from electrsd.cli.utils import logging_options, setup_logging_from_context
from electrsd.config import ElectrsdConfig, load_config
from electrsd.exceptions import ElectrsdError
from electrsd.harness import ElectrsD
from electrsd.node import BitcoindNode
from electrsd.telemetry import StructLogger
from electrsd.versions import ElectrsVersion

log: StructLogger = structlog.get_logger("cli.run")

POLL_INTERVAL = 1.0  # seconds


def _load_config(config_path: Path | None) -> ElectrsdConfig:
    if config_path is None:
        return ElectrsdConfig()
    return load_config(config_path)


@click.command(name="run")
@click.option("--rpc-addr", required=True, help="bitcoind RPC address, host:port.")
@click.option(
    "--cookie-file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="bitcoind .cookie file.",
)
@click.option("--p2p-addr", default=None, help="bitcoind P2P address, host:port.")
@click.option(
    "--exe",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="electrs executable (default: ELECTRS_EXEC, downloaded release, PATH).",
)
@click.option(
    "--electrs-version",
    type=click.Choice([v.feature_name for v in ElectrsVersion], case_sensitive=False),
    default=None,
    help="electrs release the executable belongs to.",
)
@click.option("--http/--no-http", "http_enabled", default=None, help="Expose the esplora HTTP API.")
@click.option(
    "-c",
    "--config-path",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    default=None,
    envvar="ELECTRSD_CONF",
    help="Path to the electrsd configuration file (env var ELECTRSD_CONF).",
)
@logging_options
@click.pass_context
def run_cli(
    ctx: click.Context,
    rpc_addr: str,
    cookie_file: Path,
    p2p_addr: str | None,
    exe: Path | None,
    electrs_version: str | None,
    http_enabled: bool | None,
    config_path: Path | None,
):
    """Launch electrs against a running bitcoind and keep it up until CTRL-C."""
    try:
        config = _load_config(config_path)
    except ElectrsdError as e:
        setup_logging_from_context(ctx)
        log.error("Failed to load configuration", error=str(e))
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    setup_logging_from_context(ctx, config.global_config)

    node = BitcoindNode(rpc_socket=rpc_addr, cookie_file=cookie_file, p2p_socket=p2p_addr)
    try:
        conf = config.electrs
        overrides = {}
        if electrs_version is not None:
            overrides["version"] = electrs_version
        if http_enabled is not None:
            overrides["http_enabled"] = http_enabled
        conf = attrs.evolve(conf, **overrides)
        electrsd = ElectrsD(exe, node, conf)
    except ElectrsdError as e:
        log.error("Failed to launch electrs", stage=e.stage, error=str(e))
        click.echo(f"Error: {e}", err=True)
        node.close()
        ctx.exit(1)

    click.echo(f"electrum: {electrsd.electrum_url}")
    if electrsd.esplora_url:
        click.echo(f"esplora: {electrsd.esplora_url}")
    click.echo(f"workdir: {electrsd.workdir}")

    exit_code = 0
    try:
        while electrsd.is_running:
            time.sleep(POLL_INTERVAL)
        log.error("electrs exited on its own", returncode=electrsd.process.returncode)
        exit_code = 1
    except KeyboardInterrupt:
        log.warning("Shutdown initiated by KeyboardInterrupt (CTRL-C).")
    finally:
        electrsd.kill()
        node.close()
    ctx.exit(exit_code)

# 🔼⚙️
