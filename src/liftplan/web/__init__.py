"""Web API for liftplan."""

from .app import create_app

__all__ = ["create_app"]
