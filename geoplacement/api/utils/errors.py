"""Error handling utilities for the placement API."""

import logging
from functools import wraps
from flask import jsonify

from ...storage.errors import (
    PlacementError,
    ValidationError,
    StateConflictError,
    NotFoundError,
    ResourceExhaustionError,
)

logger = logging.getLogger(__name__)


class AccessError(PlacementError):
    """Base class for transport-level authorization errors."""
    status_code = 403


class MissingIdentity(AccessError):
    """Request carries no caller identity."""
    status_code = 401

    def __init__(self):
        super().__init__("Caller identity header is required", "MissingIdentity")


class AccessDenied(AccessError):
    """Caller may not perform the operation."""
    def __init__(self, identity, operation):
        super().__init__(f"{identity} is not allowed to {operation}", "AccessDenied")


class InvalidRequest(ValidationError):
    """Malformed request body or parameters."""
    def __init__(self, message):
        super().__init__(message, "InvalidRequest")


STATUS_CODES = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (StateConflictError, 409),
    (ResourceExhaustionError, 503),
)


def status_for(error: PlacementError) -> int:
    if isinstance(error, AccessError):
        return error.status_code
    for error_type, status in STATUS_CODES:
        if isinstance(error, error_type):
            return status
    return 500


def format_error_response(code, message, status):
    return jsonify({'error': {'code': code, 'message': message}}), status


def handle_placement_errors(f):
    """Decorator to turn placement errors into JSON error responses."""
    @wraps(f)
    def wrapped(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except PlacementError as e:
            status = status_for(e)
            logger.warning(f"Rejected {f.__name__}: {e.code}: {e.message}")
            return format_error_response(e.code, e.message, status)
        except Exception as e:
            logger.error(f"Unexpected error in {f.__name__}: {str(e)}")
            return format_error_response('InternalError', "Internal server error", 500)
    return wrapped
