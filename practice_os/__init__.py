"""Practice OS - appointment scheduling engine for practice management."""

__version__ = "0.1.0"
