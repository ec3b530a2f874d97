"""Utility modules for the placement API."""

from .errors import (
    AccessError,
    AccessDenied,
    MissingIdentity,
    InvalidRequest,
    format_error_response,
    handle_placement_errors,
    status_for,
)

from .auth import (
    IDENTITY_HEADER,
    caller_identity,
    require_admin,
    require_node_owner,
)

__all__ = [
    # Error handling
    'AccessError',
    'AccessDenied',
    'MissingIdentity',
    'InvalidRequest',
    'format_error_response',
    'handle_placement_errors',
    'status_for',

    # Identity checks
    'IDENTITY_HEADER',
    'caller_identity',
    'require_admin',
    'require_node_owner',
]
