#
# src/electrsd/resources.py
#
"""
Allocation of the working directory and listening ports for one electrs instance.

Free ports are found by binding a throwaway socket to port 0 and closing it
right away, so another process can still grab the number before electrs binds
it. Within this interpreter, handed-out ports are recorded in a claim registry
until released, so concurrently built harnesses never share a port.
"""

import contextlib
import os
import shutil
import socket
import tempfile
import threading
from pathlib import Path

import structlog
from attrs import define, field

from electrsd.config.models import ElectrsConf
from electrsd.exceptions import ResourceError

log = structlog.get_logger("resources")

TEMPDIR_ROOT_ENV = "TEMPDIR_ROOT"
TEMPDIR_PREFIX = "electrsd-"
MAX_PORT_TRIES = 32

_claimed_ports: set[int] = set()
_claim_lock = threading.Lock()


def allocate_free_port(host: str = "127.0.0.1") -> int:
    """Asks the OS for an ephemeral port not already claimed in this process."""
    for _ in range(MAX_PORT_TRIES):
        try:
            with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
                s.bind((host, 0))
                port = int(s.getsockname()[1])
        except OSError as e:
            raise ResourceError(f"Could not bind a probe socket on {host}", details=e) from e
        with _claim_lock:
            if port not in _claimed_ports:
                _claimed_ports.add(port)
                log.debug("Claimed free port", port=port)
                return port
    raise ResourceError(f"No unclaimed port found after {MAX_PORT_TRIES} tries")


def release_port(port: int) -> None:
    with _claim_lock:
        _claimed_ports.discard(port)


def claimed_ports() -> frozenset[int]:
    with _claim_lock:
        return frozenset(_claimed_ports)


def allocate_temp_dir(root: Path | None = None) -> Path:
    """
    Creates a uniquely named directory.

    The parent is `root` if given, else the `TEMPDIR_ROOT` environment
    variable, else the system temp root.
    """
    if root is None and os.environ.get(TEMPDIR_ROOT_ENV):
        root = Path(os.environ[TEMPDIR_ROOT_ENV])
    try:
        if root is not None:
            root.mkdir(parents=True, exist_ok=True)
        path = Path(tempfile.mkdtemp(prefix=TEMPDIR_PREFIX, dir=root))
    except OSError as e:
        raise ResourceError(f"Could not create temporary directory under '{root or tempfile.gettempdir()}'", details=e) from e
    log.debug("Created temporary directory", path=str(path))
    return path


@define(frozen=True, slots=True)
class DataDir:
    """Working directory of an electrs instance; only temporary ones are removed."""

    path: Path
    temporary: bool = True


@define(slots=True)
class AllocatedResources:
    """Directory and ports owned by exactly one harness."""

    data_dir: DataDir
    electrum_port: int
    monitoring_port: int
    http_port: int | None = None
    _released: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(factory=threading.Lock, init=False, repr=False)

    @property
    def ports(self) -> tuple[int, ...]:
        ports = (self.electrum_port, self.monitoring_port)
        return ports if self.http_port is None else (*ports, self.http_port)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> list[OSError]:
        """
        Returns the ports and removes a temporary directory, once.

        Deletion errors are returned rather than raised; a second call is a
        no-op that returns an empty list.
        """
        with self._lock:
            if self._released:
                return []
            self._released = True

        for port in self.ports:
            release_port(port)

        errors: list[OSError] = []
        if self.data_dir.temporary:

            def _onexc(func, path, exc):
                if isinstance(exc, FileNotFoundError):
                    return
                errors.append(exc if isinstance(exc, OSError) else OSError(str(exc)))

            shutil.rmtree(self.data_dir.path, onexc=_onexc)
        log.debug(
            "Released resources",
            path=str(self.data_dir.path),
            removed=self.data_dir.temporary and not errors,
            ports=self.ports,
        )
        return errors


def _make_data_dir(conf: ElectrsConf) -> DataDir:
    if conf.staticdir is not None:
        try:
            conf.staticdir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResourceError(f"Could not create static directory '{conf.staticdir}'", details=e) from e
        return DataDir(conf.staticdir, temporary=False)
    return DataDir(allocate_temp_dir(conf.tmpdir), temporary=True)


def allocate(conf: ElectrsConf) -> AllocatedResources:
    """Reserves the data directory and every port `conf` needs, or nothing at all."""
    data_dir = _make_data_dir(conf)
    ports: list[int] = []
    try:
        needed = 3 if conf.http_enabled else 2
        for _ in range(needed):
            ports.append(allocate_free_port(conf.host))
    except ResourceError:
        for port in ports:
            release_port(port)
        if data_dir.temporary:
            shutil.rmtree(data_dir.path, ignore_errors=True)
        raise

    return AllocatedResources(
        data_dir=data_dir,
        electrum_port=ports[0],
        monitoring_port=ports[1],
        http_port=ports[2] if conf.http_enabled else None,
    )


# 🔼⚙️
