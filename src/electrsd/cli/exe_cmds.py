# src/electrsd/cli/exe_cmds.py

"""
Commands dealing with the electrs executable itself.
"""

from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from electrsd.download import download, exe_destination
from electrsd.exceptions import ElectrsdError
from electrsd.resolver import exe_path
from electrsd.telemetry import StructLogger
from electrsd.versions import DEFAULT_VERSION, ElectrsVersion

log: StructLogger = structlog.get_logger("cli.exe")

VERSION_CHOICES = click.Choice([v.feature_name for v in ElectrsVersion], case_sensitive=False)


@click.command(name="versions")
def versions_cli():
    """List supported electrs versions and their command-line style."""
    table = Table(title="Supported electrs versions")
    table.add_column("Version")
    table.add_column("Release tag")
    table.add_column("Block source")
    table.add_column("Cookie")
    table.add_column("Downloaded")
    for version in ElectrsVersion:
        flags = version.flags
        name = version.feature_name + (" (default)" if version is DEFAULT_VERSION else "")
        try:
            cached = "yes" if exe_destination(version).exists() else "no"
        except ElectrsdError:
            cached = "n/a"
        table.add_row(
            name,
            version.value,
            "--jsonrpc-import" if flags.jsonrpc_import else "--daemon-p2p-addr",
            "--cookie" if flags.inline_cookie else "--cookie-file",
            cached,
        )
    Console().print(table)


@click.command(name="exe-path")
@click.pass_context
def exe_path_cli(ctx: click.Context):
    """Print the electrs executable electrsd would launch."""
    try:
        path = exe_path()
    except ElectrsdError as e:
        log.error("Executable resolution failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo(str(path))


@click.command(name="download")
@click.argument("version", type=VERSION_CHOICES)
@click.option(
    "--endpoint",
    default=None,
    envvar="ELECTRSD_DOWNLOAD_ENDPOINT",
    help="Base URL hosting the release archives.",
)
@click.option(
    "--sha256-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    envvar="ELECTRSD_SHA256_FILE",
    help="Checksum manifest in sha256sum format.",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    envvar="ELECTRSD_CACHE_DIR",
    help="Where downloaded executables are kept.",
)
@click.pass_context
def download_cli(
    ctx: click.Context,
    version: str,
    endpoint: str | None,
    sha256_file: Path | None,
    cache_dir: Path | None,
):
    """Download and verify an electrs release, then print its path."""
    try:
        path = download(
            ElectrsVersion.parse(version),
            endpoint=endpoint,
            root=cache_dir,
            sha256_file=sha256_file,
        )
    except ElectrsdError as e:
        log.error("Download failed", version=version, error=str(e))
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    click.echo(str(path))

# 🔼⚙️
