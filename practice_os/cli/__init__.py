"""Command-line interface for Practice OS."""
