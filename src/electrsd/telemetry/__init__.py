#
# src/electrsd/telemetry/__init__.py
#
"""
Logging setup for electrsd.
"""
from .logger import StructLogger, setup_logging

__all__ = ["StructLogger", "setup_logging"]

# 🔼⚙️
