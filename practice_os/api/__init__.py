"""HTTP adapter for the scheduling engine."""

from practice_os.api.app import create_app

__all__ = ["create_app"]
