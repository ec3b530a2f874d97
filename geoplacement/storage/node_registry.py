"""Registry of storage nodes keyed by the identity that registered them."""
import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional

from ..config.placement_config import CreditPolicy
from ..models.base import Location, StorageNode, is_int
from .errors import (
    AlreadyRegistered,
    CapacityInvariantViolated,
    InvalidCapacity,
    InvalidCreditScore,
    InvalidLocation,
    NodeNotActive,
    ValidationError,
)
from .events import EventDispatcher, NodeRegistered, NodeUpdated

logger = logging.getLogger(__name__)


def _check_location(location) -> Location:
    if not isinstance(location, Location):
        raise InvalidLocation(
            getattr(location, 'latitude', None),
            getattr(location, 'longitude', None),
        )
    return location


class NodeRegistry:
    """Thread-safe mapping of node identity to node record.

    Nodes are never deleted; deactivation is the only removal. Every read
    returns a copy so callers can never mutate registry state directly.
    """

    def __init__(
        self,
        credit_policy: Optional[CreditPolicy] = None,
        events: Optional[EventDispatcher] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.credit_policy = credit_policy or CreditPolicy()
        self.events = events or EventDispatcher()
        self._clock = clock
        self._nodes: Dict[str, StorageNode] = {}
        self._lock = threading.RLock()

    def _now(self) -> int:
        return int(self._clock())

    def _active(self, node_id: str) -> StorageNode:
        node = self._nodes.get(node_id)
        if node is None or not node.is_active:
            raise NodeNotActive(node_id)
        return node

    def register(self, node_id: str, address: str, location: Location, capacity: int) -> str:
        """Register the caller's node.

        Args:
            node_id: Caller identity; becomes the node identifier
            address: Network address the node serves from
            location: Node location
            capacity: Total capacity, must be positive

        Returns:
            str: The node identifier

        Raises:
            AlreadyRegistered: If the identity already holds an active node
            InvalidLocation: If the location is missing or out of bounds
            InvalidCapacity: If capacity is not a positive integer
        """
        if not isinstance(node_id, str) or not node_id:
            raise ValidationError(f"Invalid node identity: {node_id!r}", "InvalidNodeId")
        if not isinstance(address, str):
            raise ValidationError(f"Invalid node address: {address!r}", "InvalidAddress")
        location = _check_location(location)
        if not is_int(capacity) or capacity <= 0:
            raise InvalidCapacity(capacity)

        with self._lock:
            existing = self._nodes.get(node_id)
            if existing is not None and existing.is_active:
                raise AlreadyRegistered(node_id)
            node = StorageNode(
                node_id=node_id,
                address=address,
                credit_score=self.credit_policy.minimum_credit_score,
                capacity=capacity,
                used_capacity=0,
                is_active=True,
                last_update_time=self._now(),
                location=location,
            )
            event = NodeRegistered(node=replace(node))
            self.events.journal(event)
            self._nodes[node_id] = node

        logger.info(f"Registered node {node_id} at {address} with capacity {capacity}")
        self.events.notify(event)
        return node_id

    def _commit(self, node: StorageNode, change: str) -> NodeUpdated:
        """Journal an updated copy of an active node, then swap it in."""
        node.last_update_time = self._now()
        event = NodeUpdated(node=replace(node), change=change)
        self.events.journal(event)
        self._nodes[node.node_id] = node
        return event

    def update_capacity(self, node_id: str, used_capacity: int, total_capacity: int) -> StorageNode:
        """Replace a node's used and total capacity."""
        with self._lock:
            node = self._active(node_id)
            if not is_int(total_capacity) or total_capacity <= 0:
                raise InvalidCapacity(total_capacity)
            if not is_int(used_capacity) or used_capacity < 0:
                raise InvalidCapacity(used_capacity)
            if used_capacity > total_capacity:
                raise CapacityInvariantViolated(used_capacity, total_capacity)
            event = self._commit(
                replace(node, used_capacity=used_capacity, capacity=total_capacity),
                "capacity",
            )

        self.events.notify(event)
        return replace(event.node)

    def update_location(self, node_id: str, location: Location) -> StorageNode:
        with self._lock:
            node = self._active(node_id)
            event = self._commit(replace(node, location=_check_location(location)), "location")

        self.events.notify(event)
        return replace(event.node)

    def update_credit_score(self, node_id: str, score: int) -> StorageNode:
        """Administrative credit score override."""
        with self._lock:
            node = self._active(node_id)
            if not is_int(score) or score < 0:
                raise InvalidCreditScore(score)
            event = self._commit(replace(node, credit_score=score), "credit_score")

        logger.info(f"Credit score of node {node_id} set to {score}")
        self.events.notify(event)
        return replace(event.node)

    def deactivate(self, node_id: str) -> StorageNode:
        with self._lock:
            node = self._active(node_id)
            event = self._commit(replace(node, is_active=False), "deactivated")

        logger.info(f"Deactivated node {node_id}")
        self.events.notify(event)
        return replace(event.node)

    def get(self, node_id: str) -> Optional[StorageNode]:
        with self._lock:
            node = self._nodes.get(node_id)
            return replace(node) if node is not None else None

    def active_nodes(self) -> List[StorageNode]:
        """Consistent snapshot of active nodes in registration order."""
        with self._lock:
            return [replace(node) for node in self._nodes.values() if node.is_active]

    def all_nodes(self) -> List[StorageNode]:
        with self._lock:
            return [replace(node) for node in self._nodes.values()]

    def restore(self, nodes: Iterable[StorageNode]) -> None:
        """Load persisted node records, replacing current state."""
        with self._lock:
            self._nodes = {node.node_id: replace(node) for node in nodes}

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)
