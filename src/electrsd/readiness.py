#
# src/electrsd/readiness.py
#
"""
Polls a freshly spawned electrs until its Electrum endpoint reports a height.
"""

import time
from collections.abc import Callable
from typing import Any

import structlog

from electrsd.electrum import DEFAULT_TIMEOUT, ElectrumClient, ElectrumError, connect
from electrsd.exceptions import ProcessExitedError, ReadinessTimeoutError
from electrsd.supervisor import SupervisedProcess

log = structlog.get_logger("readiness")

DEFAULT_ATTEMPTS = 120
DEFAULT_INTERVAL = 0.5  # seconds
CONNECT_TIMEOUT = 2.0  # seconds


def is_height_response(response: Any) -> bool:
    height = response.get("height") if isinstance(response, dict) else None
    return isinstance(height, int) and not isinstance(height, bool) and height >= 0


def _probe(address: str, connect_fn: Callable[..., ElectrumClient]) -> ElectrumClient | None:
    client = connect_fn(address, timeout=CONNECT_TIMEOUT)
    try:
        response = client.block_headers_subscribe()
    except BaseException:
        client.close()
        raise
    if is_height_response(response):
        return client
    client.close()
    log.debug("Malformed height response", response=response)
    return None


def _fail_if_exited(process: SupervisedProcess, probe_log: Any, last_error: Exception | None) -> None:
    returncode = process.poll()
    if returncode is not None:
        probe_log.error("electrs exited before becoming ready", returncode=returncode)
        raise ProcessExitedError(returncode, details=last_error)


def wait_ready(
    address: str,
    process: SupervisedProcess,
    attempts: int = DEFAULT_ATTEMPTS,
    interval: float = DEFAULT_INTERVAL,
    connect_fn: Callable[..., ElectrumClient] = connect,
) -> ElectrumClient:
    """
    Returns a connected client once electrs answers a synced-height request.

    Raises:
        ProcessExitedError: the process died first; noticed within one interval.
        ReadinessTimeoutError: `attempts` probes failed while it stayed alive.
            The caller owns teardown of the still-running process.
    """
    probe_log = log.bind(address=address, pid=process.pid)
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        _fail_if_exited(process, probe_log, last_error)

        try:
            client = _probe(address, connect_fn)
        except (OSError, ValueError, ElectrumError) as e:
            last_error = e
            probe_log.debug("electrs not ready yet", attempt=attempt, error=str(e))
        else:
            if client is not None:
                # probes use a short timeout, callers get the regular one
                client.settimeout(DEFAULT_TIMEOUT)
                probe_log.info("electrs is ready", attempt=attempt, emoji_key="ready")
                return client

        if attempt < attempts:
            time.sleep(interval)

    # the process may have died during the last probe
    _fail_if_exited(process, probe_log, last_error)

    raise ReadinessTimeoutError(
        f"electrs at {address} not ready after {attempts} attempts ({attempts * interval:.1f}s)",
        details=last_error,
    )


# 🔼⚙️
