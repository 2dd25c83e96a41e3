#
# src/electrsd/__init__.py
#
"""
electrsd: run a regtest electrs process for integration tests.
"""

from .config import ElectrsConf
from .download import downloaded_exe_path
from .electrum import ElectrumClient, ElectrumError
from .exceptions import (
    ConfigError,
    DownloadError,
    ElectrsdError,
    NodeError,
    NotFoundError,
    ProcessExitedError,
    ReadinessTimeoutError,
    ResourceError,
    SpawnError,
    TeardownWarning,
)
from .harness import ElectrsD, LifecycleGuard
from .node import BitcoindNode, NodeHandle
from .resolver import exe_path
from .versions import ElectrsVersion

__all__ = [
    "BitcoindNode",
    "ConfigError",
    "DownloadError",
    "ElectrsConf",
    "ElectrsD",
    "ElectrsVersion",
    "ElectrsdError",
    "ElectrumClient",
    "ElectrumError",
    "LifecycleGuard",
    "NodeError",
    "NodeHandle",
    "NotFoundError",
    "ProcessExitedError",
    "ReadinessTimeoutError",
    "ResourceError",
    "SpawnError",
    "TeardownWarning",
    "downloaded_exe_path",
    "exe_path",
]

# 🔼⚙️
