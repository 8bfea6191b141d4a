"""HTTP request boundary for the relay service."""

from .app import create_app

__all__ = ["create_app"]
