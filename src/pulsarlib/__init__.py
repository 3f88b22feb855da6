"""Core library for Pulsar Navigator.

Contains configuration loading, the admin API client and shared utilities used
by the CLI and the TUI.
"""

__all__ = [
    "auth",
    "clients",
    "config",
    "errors",
]
