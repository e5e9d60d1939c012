"""tonaudit — deterministic static analysis and auto-patching for TON contracts."""

__version__ = "0.1.0"
