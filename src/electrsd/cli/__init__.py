# src/electrsd/cli/__init__.py
