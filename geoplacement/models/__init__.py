"""Models package for geo batch placement."""
from .base import (
    DEGREE_SCALE,
    Location,
    StorageNode,
    NodeSnapshot,
)

from .batch import (
    BatchStatus,
    BatchRecord,
    StoreResult,
    BatchQueryResult,
    DataBatch,
    TimeRange,
)

__all__ = [
    'DEGREE_SCALE',
    'Location',
    'StorageNode',
    'NodeSnapshot',
    'BatchStatus',
    'BatchRecord',
    'StoreResult',
    'BatchQueryResult',
    'DataBatch',
    'TimeRange',
]
