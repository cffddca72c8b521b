"""Main entry point for Practice OS."""

import logging
import sys

from practice_os.config import get_settings


def setup_logging():
    """Configure logging based on settings."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def main():
    """Main entry point - runs CLI."""
    setup_logging()

    from practice_os.cli.commands import app

    app()


if __name__ == "__main__":
    main()
