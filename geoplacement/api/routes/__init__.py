"""API routes package."""
from .placement import placement_api

__all__ = ['placement_api']
