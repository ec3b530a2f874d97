"""Caller identity checks performed before any core operation runs."""

from flask import current_app, request

from .errors import AccessDenied, MissingIdentity

IDENTITY_HEADER = 'X-Caller-Identity'


def caller_identity() -> str:
    identity = request.headers.get(IDENTITY_HEADER, '').strip()
    if not identity:
        raise MissingIdentity()
    return identity


def is_admin(identity: str) -> bool:
    return identity == current_app.config['ADMIN_IDENTITY']


def require_admin(operation: str) -> str:
    identity = caller_identity()
    if not is_admin(identity):
        raise AccessDenied(identity, operation)
    return identity


def require_node_owner(node_id: str, operation: str, allow_admin: bool = False) -> str:
    """Only the node's own identity (and optionally the admin) may proceed."""
    identity = caller_identity()
    if identity != node_id and not (allow_admin and is_admin(identity)):
        raise AccessDenied(identity, operation)
    return identity
