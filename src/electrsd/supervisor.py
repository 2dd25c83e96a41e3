#
# src/electrsd/supervisor.py
#
"""
Spawns and terminates the electrs child process.
"""

import os
import signal
import subprocess
import sys
import threading

import structlog

from electrsd.exceptions import SpawnError
from electrsd.launch import LaunchSpec

log = structlog.get_logger("supervisor")

DEFAULT_GRACE = 5.0  # seconds
KILL_WAIT = 5.0  # seconds


class SupervisedProcess:
    """
    Sole owner of one electrs process handle.

    The process moves from running to terminated once. Exit on its own is
    noticed lazily through `poll()`.
    """

    def __init__(self, popen: subprocess.Popen, spec: LaunchSpec):
        self._popen = popen
        self.spec = spec
        self._terminated = False
        self._lock = threading.Lock()
        self._log = log.bind(pid=popen.pid, electrum_url=spec.electrum_url)

    @property
    def pid(self) -> int:
        return self._popen.pid

    @property
    def returncode(self) -> int | None:
        return self._popen.returncode

    def poll(self) -> int | None:
        return self._popen.poll()

    @property
    def is_running(self) -> bool:
        return self.poll() is None

    def trigger(self) -> None:
        """Sends SIGUSR1 so electrs syncs now instead of waiting for its poll interval."""
        if sys.platform == "win32" or not self.is_running:
            return
        try:
            os.kill(self.pid, signal.SIGUSR1)
        except ProcessLookupError:
            self._log.debug("Process vanished before trigger")

    def terminate(self, grace: float = DEFAULT_GRACE) -> int | None:
        """
        Stops the process and returns its exit status.

        Sends SIGINT (electrs shuts down cleanly on it), waits up to `grace`
        seconds, then kills. Calling it again, or after the process exited on
        its own, does nothing.
        """
        with self._lock:
            if self._terminated:
                return self._popen.returncode
            self._terminated = True

        if self._popen.poll() is not None:
            self._log.debug("Process already exited", returncode=self._popen.returncode)
            return self._popen.returncode

        self._log.debug("Terminating electrs", grace=grace, emoji_key="teardown")
        try:
            if sys.platform == "win32":
                self._popen.terminate()
            else:
                self._popen.send_signal(signal.SIGINT)
        except ProcessLookupError:
            pass

        try:
            return self._popen.wait(timeout=grace)
        except subprocess.TimeoutExpired:
            self._log.warning("electrs ignored termination signal, killing", grace=grace)

        self._popen.kill()
        try:
            return self._popen.wait(timeout=KILL_WAIT)
        except subprocess.TimeoutExpired:
            self._log.error("electrs still alive after SIGKILL", wait=KILL_WAIT)
            return None


def spawn(spec: LaunchSpec) -> SupervisedProcess:
    """Starts electrs as described by `spec`."""
    env = {**os.environ, **spec.env}
    output = None if spec.view_stderr else subprocess.DEVNULL
    try:
        popen = subprocess.Popen(
            spec.command,
            cwd=spec.cwd,
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=output,
            stderr=output,
        )
    except OSError as e:
        log.error("Failed to spawn electrs", executable=str(spec.executable), error=str(e))
        raise SpawnError(f"Error while executing '{spec.executable}'", details=e) from e

    log.info("Spawned electrs", pid=popen.pid, electrum_url=spec.electrum_url, emoji_key="spawn")
    return SupervisedProcess(popen, spec)


# 🔼⚙️
