"""HTTP API package for geo batch placement."""

from .app import create_app
from .routes import placement_api

__all__ = ['create_app', 'placement_api']
