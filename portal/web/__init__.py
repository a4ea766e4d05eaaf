"""Web interface for the portal."""

from .server import create_app

__all__ = ["create_app"]
