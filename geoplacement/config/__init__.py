"""Configuration package for geo batch placement."""
from .base_config import (
    API_HOST,
    API_PORT,
    DEBUG,
    ADMIN_IDENTITY,
    STATE_DB_PATH,
    LOG_LEVEL,
)
from .placement_config import PlacementConfig, CreditPolicy

__all__ = [
    'API_HOST',
    'API_PORT',
    'DEBUG',
    'ADMIN_IDENTITY',
    'STATE_DB_PATH',
    'LOG_LEVEL',
    'PlacementConfig',
    'CreditPolicy',
]
