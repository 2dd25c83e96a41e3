#
# config/__init__.py
#
"""
Configuration handling sub-package for electrsd.

Exports the loading function and core configuration models.
"""

from .loader import build_conf, load_config
from .models import ElectrsConf, ElectrsdConfig, GlobalConfig

__all__ = [
    "ElectrsConf",
    "ElectrsdConfig",
    "GlobalConfig",
    "build_conf",
    "load_config",
]

# 🔼⚙️
