"""Batch-related models for geo batch placement."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple

from .base import Location, NodeSnapshot


class BatchStatus(Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    ARCHIVED = "archived"


# Forward-only lifecycle ordering
STATUS_RANK = {
    BatchStatus.ACTIVE: 0,
    BatchStatus.EXPIRED: 1,
    BatchStatus.ARCHIVED: 2,
}


@dataclass
class BatchRecord:
    """Placement record for one content-addressed batch"""
    batch_id: str
    timestamp: int
    ttl: int
    status: BatchStatus
    assigned_nodes: Tuple[str, ...]
    location: Location

    @property
    def expires_at(self) -> int:
        return self.timestamp + self.ttl

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_id': self.batch_id,
            'timestamp': self.timestamp,
            'ttl': self.ttl,
            'status': self.status.value,
            'assigned_nodes': list(self.assigned_nodes),
            'location': self.location.to_dict(),
        }


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a batch submission"""
    batch_ids: Tuple[str, ...]
    node_ids: Tuple[str, ...]
    nodes: Tuple[NodeSnapshot, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_ids': list(self.batch_ids),
            'node_ids': list(self.node_ids),
            'nodes': [node.to_dict() for node in self.nodes],
        }


@dataclass(frozen=True)
class BatchQueryResult:
    """Lookup result for one batch identifier; never an error"""
    batch_id: str
    nodes: Tuple[str, ...] = ()
    node_addresses: Tuple[str, ...] = ()
    is_valid: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_id': self.batch_id,
            'nodes': list(self.nodes),
            'node_addresses': list(self.node_addresses),
            'is_valid': self.is_valid,
        }


@dataclass(frozen=True)
class DataBatch:
    """Sensor data batch recorded against one or more devices"""
    batch_id: str
    content_root: str
    external_hash: str
    timestamp: int
    device_ids: Tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_id': self.batch_id,
            'content_root': self.content_root,
            'external_hash': self.external_hash,
            'timestamp': self.timestamp,
            'device_ids': list(self.device_ids),
        }


@dataclass
class TimeRange:
    start_time: int
    end_time: int

    def to_dict(self) -> Dict[str, int]:
        return {'start_time': self.start_time, 'end_time': self.end_time}

