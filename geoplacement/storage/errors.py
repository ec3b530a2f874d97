"""Error taxonomy for placement operations.

Every failure is synchronous and named. The four categories map to how a
caller should react:

- ``ValidationError``: bad input, fix the request and resend.
- ``StateConflictError``: the call conflicts with existing state.
- ``NotFoundError``: the addressed node or batch does not exist or is inactive.
- ``ResourceExhaustionError``: no eligible storage nodes were available.

Nothing is ever partially applied when one of these is raised.
"""


class PlacementError(Exception):
    """Base class for placement errors."""
    def __init__(self, message, code='InternalError'):
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(PlacementError):
    """Request parameters are invalid."""
    def __init__(self, message, code='ValidationError'):
        super().__init__(message, code)


class StateConflictError(PlacementError):
    """Request conflicts with current state."""
    def __init__(self, message, code='StateConflict'):
        super().__init__(message, code)


class NotFoundError(PlacementError):
    """Addressed entity does not exist or is inactive."""
    def __init__(self, message, code='NotFound'):
        super().__init__(message, code)


class ResourceExhaustionError(PlacementError):
    """No resources are available to satisfy the request."""
    def __init__(self, message, code='ResourceExhausted'):
        super().__init__(message, code)


class InvalidLocation(ValidationError):
    def __init__(self, latitude, longitude):
        super().__init__(
            f"Location out of bounds: latitude={latitude!r}, longitude={longitude!r}",
            "InvalidLocation",
        )


class InvalidCapacity(ValidationError):
    def __init__(self, capacity):
        super().__init__(f"Capacity must be a positive integer: {capacity!r}", "InvalidCapacity")


class CapacityInvariantViolated(ValidationError):
    def __init__(self, used_capacity, total_capacity):
        super().__init__(
            f"Used capacity {used_capacity!r} exceeds total capacity {total_capacity!r}",
            "CapacityInvariantViolated",
        )


class InvalidCreditScore(ValidationError):
    def __init__(self, score):
        super().__init__(f"Credit score must be a non-negative integer: {score!r}", "InvalidCreditScore")


class InvalidTTL(ValidationError):
    def __init__(self, ttl):
        super().__init__(f"TTL must be a positive integer: {ttl!r}", "InvalidTTL")


class EmptyBatch(ValidationError):
    def __init__(self, message="Batch contains no identifiers"):
        super().__init__(message, "EmptyBatch")


class BatchTooLarge(ValidationError):
    def __init__(self, size, limit):
        super().__init__(f"Batch of {size} identifiers exceeds the limit of {limit}", "BatchTooLarge")


class InvalidBatchId(ValidationError):
    def __init__(self, batch_id):
        super().__init__(f"Invalid batch identifier: {batch_id!r}", "InvalidBatchId")


class InvalidLimit(ValidationError):
    def __init__(self, limit):
        super().__init__(f"Limit must be a non-negative integer: {limit!r}", "InvalidLimit")


class AlreadyRegistered(StateConflictError):
    def __init__(self, node_id):
        super().__init__(f"Node {node_id} is already registered and active", "AlreadyRegistered")


class BatchAlreadyExists(StateConflictError):
    def __init__(self, batch_id):
        super().__init__(f"Batch {batch_id} already exists", "BatchAlreadyExists")
        self.batch_id = batch_id


class InvalidTransition(StateConflictError):
    def __init__(self, batch_id, current, requested):
        super().__init__(
            f"Batch {batch_id} cannot move from {current.value} to {requested.value}",
            "InvalidTransition",
        )


class NodeNotActive(NotFoundError):
    def __init__(self, node_id):
        super().__init__(f"Node {node_id} is not registered or not active", "NotActive")


class BatchNotFound(NotFoundError):
    def __init__(self, batch_id):
        super().__init__(f"Batch {batch_id} does not exist", "BatchNotFound")


class NoAvailableNodes(ResourceExhaustionError):
    def __init__(self):
        super().__init__("No eligible storage nodes available", "NoAvailableNodes")
