# src/electrsd/exceptions.py

"""
Exception hierarchy for electrsd.

Every error raised while building a harness names the stage that failed, so a
test author can tell "no binary" from "binary crashed" from "binary too slow".
"""


class ElectrsdError(Exception):
    """Base class for all electrsd errors."""

    stage: str = "general"

    def __init__(self, message: str, details: Exception | None = None):
        self.details = details
        super().__init__(f"[{self.stage}] {message}")
        if details is not None:
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class ConfigError(ElectrsdError):
    """Invalid or incomplete launch options, detected before anything is spawned."""

    stage = "config"


class NotFoundError(ElectrsdError):
    """No usable electrs executable could be resolved."""

    stage = "resolve"


class ResourceError(ElectrsdError):
    """Temporary directory or port allocation failed."""

    stage = "resources"


class SpawnError(ElectrsdError):
    """The OS could not create the electrs process."""

    stage = "spawn"


class ProcessExitedError(ElectrsdError):
    """The electrs process died before it became ready."""

    stage = "readiness"

    def __init__(self, returncode: int, details: Exception | None = None):
        self.returncode = returncode
        super().__init__(f"electrs exited early with status {returncode}", details)


class ReadinessTimeoutError(ElectrsdError, TimeoutError):
    """electrs was still alive but never answered within the attempt budget."""

    stage = "readiness"


class DownloadError(ElectrsdError):
    """Fetching, verifying or extracting a release archive failed."""

    stage = "download"


class NodeError(ElectrsdError):
    """The companion bitcoind node could not be queried."""

    stage = "node"


class TeardownWarning(RuntimeWarning):
    """Non-fatal cleanup failure. Logged and warned, never raised."""


# 🔼⚙️
