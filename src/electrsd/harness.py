#
# src/electrsd/harness.py
#
"""
The electrs test harness: a ready electrs process bound to a bitcoind node.

Typical use:

    node = BitcoindNode(rpc_socket="127.0.0.1:18443", cookie_file=cookie, p2p_socket="127.0.0.1:18444")
    with ElectrsD(None, node) as electrsd:
        header = electrsd.client.block_headers_subscribe()

Construction either returns a harness whose client already answered a height
request, or raises after releasing everything it acquired.
"""

import os
import time
import warnings
import weakref
from pathlib import Path

import structlog

from electrsd.config.models import ElectrsConf
from electrsd.electrum import ElectrumClient, ElectrumError, first_output_script
from electrsd.exceptions import ConfigError, ElectrsdError, ProcessExitedError, TeardownWarning
from electrsd.launch import LaunchSpec, NodeInfo, build, validate
from electrsd.node import NodeHandle, leave_initial_block_download
from electrsd.readiness import wait_ready
from electrsd.resolver import exe_path, resolve
from electrsd.resources import AllocatedResources, allocate
from electrsd.supervisor import SupervisedProcess, spawn
from electrsd.versions import resolve_flags

log = structlog.get_logger("harness")

WAIT_ATTEMPTS = 600
WAIT_INTERVAL = 0.1  # seconds


def _warn_teardown(message: str, **context) -> None:
    log.warning(message, emoji_key="teardown", **context)
    warnings.warn(f"{message}: {context}", TeardownWarning, stacklevel=3)


def _teardown(process: SupervisedProcess, resources: AllocatedResources, grace: float) -> None:
    try:
        process.terminate(grace)
    except OSError as e:
        _warn_teardown("Failed to terminate electrs", pid=process.pid, error=str(e))

    if process.poll() is None:
        # the child may still be writing into the directory
        _warn_teardown("electrs still running, keeping its directory", pid=process.pid)
        return

    for error in resources.release():
        _warn_teardown("Failed to remove electrs directory", path=str(resources.data_dir.path), error=str(error))
    log.debug("Teardown complete", pid=process.pid, returncode=process.returncode, emoji_key="teardown")


class LifecycleGuard:
    """
    Binds a process to its resources; teardown runs exactly once.

    Teardown fires on `close()`, on garbage collection of the guard, or at
    interpreter exit, whichever comes first. It terminates the process before
    removing the directory and never raises.
    """

    def __init__(self, process: SupervisedProcess, resources: AllocatedResources, grace: float):
        self.process = process
        self.resources = resources
        self._finalizer = weakref.finalize(self, _teardown, process, resources, grace)

    @property
    def alive(self) -> bool:
        return self._finalizer.alive

    def close(self) -> None:
        self._finalizer()


class ElectrsD:
    """A running, ready electrs process connected to `node`."""

    def __init__(
        self,
        exe: str | os.PathLike | None,
        node: NodeHandle,
        conf: ElectrsConf | None = None,
    ):
        """
        Launches electrs and blocks until it serves Electrum requests.

        Args:
            exe: Path of the electrs executable; None resolves it from
                `ELECTRS_EXEC`/`ELECTRS_EXE`, a downloaded release or PATH.
            node: The already running bitcoind to index. It must outlive
                this harness.
            conf: Launch options; defaults to `ElectrsConf()`.

        Raises:
            ConfigError, NotFoundError, NodeError, ResourceError, SpawnError,
            ProcessExitedError, ReadinessTimeoutError.
        """
        conf = conf or ElectrsConf()
        self.conf = conf
        self.node = node

        flags = resolve_flags(conf.version, conf.legacy)
        node_info = NodeInfo.from_handle(node, inline_cookie=flags.inline_cookie)
        validate(node_info, conf)
        executable = exe_path() if exe is None else resolve(exe)

        leave_initial_block_download(node)

        remaining = conf.attempts
        while True:
            remaining -= 1
            try:
                guard, spec, client = _launch(executable, node_info, conf)
                break
            except ProcessExitedError as e:
                if remaining <= 0:
                    raise
                log.warning(
                    "electrs exited early, retrying with fresh ports",
                    returncode=e.returncode,
                    attempts_remaining=remaining,
                )

        self._guard = guard
        self.spec: LaunchSpec = spec
        self.client: ElectrumClient = client
        self._log = log.bind(pid=guard.process.pid, electrum_url=spec.electrum_url)

    @classmethod
    def with_conf(cls, exe: str | os.PathLike | None, node: NodeHandle, conf: ElectrsConf) -> "ElectrsD":
        return cls(exe, node, conf)

    def __enter__(self) -> "ElectrsD":
        return self

    def __exit__(self, *exc_info) -> None:
        self.kill()

    def __repr__(self) -> str:
        return f"<ElectrsD pid={self.pid} electrum_url={self.electrum_url!r} running={self.is_running}>"

    # --- Accessors ---
    @property
    def electrum_url(self) -> str:
        return self.spec.electrum_url

    @property
    def esplora_url(self) -> str | None:
        return self.spec.esplora_url

    @property
    def monitoring_url(self) -> str:
        return self.spec.monitoring_url

    @property
    def pid(self) -> int:
        return self._guard.process.pid

    @property
    def workdir(self) -> Path:
        return self._guard.resources.data_dir.path

    @property
    def process(self) -> SupervisedProcess:
        return self._guard.process

    @property
    def is_running(self) -> bool:
        return self._guard.process.is_running

    # --- Lifecycle ---
    def kill(self) -> None:
        """Terminates electrs and removes its temporary directory. Safe to call repeatedly."""
        self._guard.close()
        self.client.close()

    shutdown = kill
    close = kill

    def trigger(self) -> None:
        """Asks electrs to sync immediately, e.g. right after mining a block."""
        self._guard.process.trigger()

    # --- Sync helpers ---
    def wait_height(self, height: int) -> bool:
        """
        Waits up to a minute for electrs to index block `height`.

        Returns False when the height never shows up. Connection failures
        raise OSError; after a request times out the client is closed.
        """
        if not self.spec.flags.supports_wait_height:
            raise ConfigError("wait_height is not supported by this electrs version")
        for _ in range(WAIT_ATTEMPTS):
            try:
                self.client.block_header_raw(height)
                return True
            except ElectrumError:
                time.sleep(WAIT_INTERVAL)
        self._log.warning("Gave up waiting for height", height=height)
        return False

    def wait_tx(self, txid: str) -> bool:
        """
        Waits up to a minute for electrs to index `txid`.

        Having the raw transaction is not enough: the script history of its
        first output must list it too, since the index is updated atomically.
        Connection failures raise OSError, as in `wait_height`.
        """
        for _ in range(WAIT_ATTEMPTS):
            try:
                raw_tx = self.client.transaction_get(txid)
            except ElectrumError:
                time.sleep(WAIT_INTERVAL)
                continue
            script = first_output_script(raw_tx)
            if script is None:
                return True
            history = self.client.script_get_history(script)
            if any(entry.get("tx_hash") == txid for entry in history):
                return True
            time.sleep(WAIT_INTERVAL)
        self._log.warning("Gave up waiting for transaction", txid=txid)
        return False


def _launch(
    executable: Path, node_info: NodeInfo, conf: ElectrsConf
) -> tuple[LifecycleGuard, LaunchSpec, ElectrumClient]:
    """One launch attempt. On failure, everything acquired here is released."""
    allocated = allocate(conf)
    guard: LifecycleGuard | None = None
    try:
        spec = build(executable, node_info, allocated, conf)
        process = spawn(spec)
        guard = LifecycleGuard(process, allocated, conf.termination_grace)
        client = wait_ready(
            spec.electrum_url,
            process,
            attempts=conf.readiness_attempts,
            interval=conf.readiness_interval,
        )
    except BaseException as e:
        if guard is not None:
            guard.close()
        else:
            allocated.release()
        if isinstance(e, ElectrsdError):
            log.error("electrs launch failed", stage=e.stage, error=str(e))
        raise
    return guard, spec, client


# 🔼⚙️
