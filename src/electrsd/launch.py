#
# src/electrsd/launch.py
#
"""
Turns options, allocated resources and node information into a LaunchSpec.

Everything here is pure: the only I/O needed (reading the node cookie in
legacy mode) happens in `NodeInfo.from_handle`, before any process exists.
"""

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

import structlog
from attrs import define, field

from electrsd.config.models import ElectrsConf
from electrsd.exceptions import ConfigError
from electrsd.node import NodeHandle, read_cookie
from electrsd.resources import AllocatedResources
from electrsd.versions import ElectrsVersion, FlagSet, resolve_flags

log = structlog.get_logger("launch")

# Flags electrsd sets itself; user args may not contain them.
RESERVED_FLAGS = frozenset(
    {
        "--db-dir",
        "--network",
        "--cookie",
        "--cookie-file",
        "--daemon-rpc-addr",
        "--daemon-p2p-addr",
        "--jsonrpc-import",
        "--electrum-rpc-addr",
        "--monitoring-addr",
        "--http-addr",
    }
)


@define(frozen=True, slots=True)
class NodeInfo:
    """The slice of node state the launch builder needs."""

    rpc_socket: str | None
    p2p_socket: str | None = None
    cookie_file: Path | None = None
    cookie: str | None = None

    @classmethod
    def from_handle(cls, node: NodeHandle, inline_cookie: bool = False) -> "NodeInfo":
        cookie = None
        if inline_cookie and node.cookie_file is not None:
            cookie = read_cookie(node.cookie_file)
        return cls(
            rpc_socket=node.rpc_socket,
            p2p_socket=node.p2p_socket,
            cookie_file=node.cookie_file,
            cookie=cookie,
        )


@define(frozen=True, slots=True)
class LaunchSpec:
    """Everything needed to start one electrs process. Never mutated after build."""

    executable: Path
    argv: tuple[str, ...]
    cwd: Path
    electrum_url: str
    monitoring_url: str
    esplora_url: str | None
    version: ElectrsVersion | None
    legacy: bool
    view_stderr: bool
    flags: FlagSet
    env: Mapping[str, str] = field(
        factory=dict, converter=lambda m: MappingProxyType(dict(m)), hash=False
    )

    @property
    def command(self) -> list[str]:
        return [str(self.executable), *self.argv]


def _check_user_args(args: tuple[str, ...]) -> None:
    for arg in args:
        name = arg.split("=", 1)[0]
        if name in RESERVED_FLAGS:
            raise ConfigError(f"Argument '{name}' is managed by electrsd and cannot be passed in args")


def validate(node: NodeInfo, conf: ElectrsConf) -> FlagSet:
    """Checks `conf` against `node`; returns the flag set the build will use."""
    if conf.tmpdir is not None and conf.staticdir is not None:
        raise ConfigError("tmpdir and staticdir cannot both be specified")
    if not conf.network:
        raise ConfigError("network must not be empty")
    if not node.rpc_socket:
        raise ConfigError("Node RPC address is required")

    flags = resolve_flags(conf.version, conf.legacy)
    if flags.inline_cookie:
        if not node.cookie:
            raise ConfigError("Legacy mode needs the node cookie value")
    elif node.cookie_file is None:
        raise ConfigError("Node cookie file is required")
    if not flags.jsonrpc_import and not node.p2p_socket:
        version = conf.version.feature_name if conf.version else "the default electrs version"
        raise ConfigError(f"{version} requires a node with its P2P port open")

    if conf.args is not None:
        _check_user_args(conf.args)
    return flags


def build(
    executable: Path,
    node: NodeInfo,
    allocated: AllocatedResources,
    conf: ElectrsConf,
) -> LaunchSpec:
    """Maps options and resources to the electrs command line, deterministically."""
    flags = validate(node, conf)

    args: list[str] = list(flags.default_args if conf.args is None else conf.args)
    args += ["--db-dir", str(allocated.data_dir.path)]
    args += ["--network", conf.network]

    if flags.inline_cookie:
        args += ["--cookie", node.cookie]
    else:
        args += ["--cookie-file", str(node.cookie_file)]

    args += ["--daemon-rpc-addr", node.rpc_socket]

    if flags.jsonrpc_import:
        args.append("--jsonrpc-import")
    else:
        args += ["--daemon-p2p-addr", node.p2p_socket]

    electrum_url = f"{conf.host}:{allocated.electrum_port}"
    args += ["--electrum-rpc-addr", electrum_url]

    # electrs has no flag to disable monitoring, so it gets a port too
    monitoring_url = f"{conf.host}:{allocated.monitoring_port}"
    args += ["--monitoring-addr", monitoring_url]

    esplora_url = None
    if allocated.http_port is not None:
        esplora_url = f"{conf.host}:{allocated.http_port}"
        args += ["--http-addr", esplora_url]

    spec = LaunchSpec(
        executable=executable,
        argv=tuple(args),
        cwd=allocated.data_dir.path,
        electrum_url=electrum_url,
        monitoring_url=monitoring_url,
        esplora_url=esplora_url,
        version=conf.version,
        legacy=conf.legacy,
        view_stderr=conf.view_stderr,
        flags=flags,
        env=conf.env,
    )
    # the inline cookie is a credential
    log.debug("Built launch spec", argv=[a if a != node.cookie else "***" for a in spec.argv])
    return spec


# 🔼⚙️
