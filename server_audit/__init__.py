"""Read-only audit of a remote Linux host over SSH."""

__version__ = "0.1.0"
