"""Batch placement records and their lifecycle."""
import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from ..models.base import Location, NodeSnapshot, is_int
from ..models.batch import (
    STATUS_RANK,
    BatchQueryResult,
    BatchRecord,
    BatchStatus,
    StoreResult,
)
from .errors import (
    BatchAlreadyExists,
    BatchNotFound,
    BatchTooLarge,
    EmptyBatch,
    InvalidBatchId,
    InvalidLocation,
    InvalidTTL,
    InvalidTransition,
    NoAvailableNodes,
    ValidationError,
)
from .events import BatchStatusChanged, BatchStored, EventDispatcher
from .node_registry import NodeRegistry
from .selector import NodeSelector

logger = logging.getLogger(__name__)


def parse_status(status: Union[BatchStatus, str]) -> BatchStatus:
    if isinstance(status, BatchStatus):
        return status
    try:
        return BatchStatus(str(status).lower())
    except ValueError:
        raise ValidationError(f"Unknown batch status: {status!r}", "InvalidStatus")


class BatchStore:
    """Write-once store of batch records with node assignments.

    A submission is all-or-nothing: either every identifier in it gets a
    record or none does. Node selection runs once per submission and every
    identifier in it shares the resulting node set.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        selector: NodeSelector,
        events: Optional[EventDispatcher] = None,
        clock: Callable[[], float] = time.time,
        replica_count: int = 3,
        max_batch_size: int = 50,
    ):
        self.registry = registry
        self.selector = selector
        self.events = events or registry.events
        self._clock = clock
        self.replica_count = replica_count
        self.max_batch_size = max_batch_size
        self._batches: Dict[str, BatchRecord] = {}
        self._lock = threading.RLock()

    def _validate_submission(self, batch_ids, ttl, location) -> List[str]:
        if isinstance(batch_ids, (str, bytes)):
            raise InvalidBatchId(batch_ids)
        batch_ids = list(batch_ids)
        if not batch_ids:
            raise EmptyBatch()
        if len(batch_ids) > self.max_batch_size:
            raise BatchTooLarge(len(batch_ids), self.max_batch_size)
        if not is_int(ttl) or ttl <= 0:
            raise InvalidTTL(ttl)
        if not isinstance(location, Location):
            raise InvalidLocation(
                getattr(location, 'latitude', None),
                getattr(location, 'longitude', None),
            )
        for batch_id in batch_ids:
            if not isinstance(batch_id, str) or not batch_id:
                raise InvalidBatchId(batch_id)
        return batch_ids

    def store_batch(self, batch_ids: Sequence[str], ttl: int, location: Location) -> StoreResult:
        """Record a submission of batches and assign them storage nodes.

        Args:
            batch_ids: Identifiers derived from content roots (1 to max_batch_size)
            ttl: Informational time-to-live in seconds, must be positive
            location: Target location used for node selection

        Returns:
            StoreResult: Selected node ids plus a snapshot of each selected node

        Raises:
            EmptyBatch, BatchTooLarge, InvalidTTL, InvalidLocation: On bad input
            BatchAlreadyExists: If any identifier already has a record
            NoAvailableNodes: If no node is eligible
        """
        batch_ids = self._validate_submission(batch_ids, ttl, location)

        with self._lock:
            seen = set()
            for batch_id in batch_ids:
                if batch_id in self._batches or batch_id in seen:
                    raise BatchAlreadyExists(batch_id)
                seen.add(batch_id)

            candidates = self.registry.active_nodes()
            node_ids = tuple(self.selector.select_nodes(location, candidates, self.replica_count))
            if not node_ids:
                raise NoAvailableNodes()

            timestamp = int(self._clock())
            records = tuple(
                BatchRecord(
                    batch_id=batch_id,
                    timestamp=timestamp,
                    ttl=ttl,
                    status=BatchStatus.ACTIVE,
                    assigned_nodes=node_ids,
                    location=location,
                )
                for batch_id in batch_ids
            )
            event = BatchStored(records=tuple(replace(record) for record in records), node_ids=node_ids)
            self.events.journal(event)
            for record in records:
                self._batches[record.batch_id] = record

        by_id = {node.node_id: node for node in candidates}
        result = StoreResult(
            batch_ids=tuple(batch_ids),
            node_ids=node_ids,
            nodes=tuple(NodeSnapshot.of(by_id[node_id]) for node_id in node_ids),
        )
        logger.info(f"Stored {len(batch_ids)} batches on nodes {list(node_ids)}")
        self.events.notify(event)
        return result

    def query_batches(self, batch_ids: Iterable[str]) -> List[BatchQueryResult]:
        """Look up node assignments; unknown or inactive batches come back invalid."""
        results = []
        with self._lock:
            records = [
                (batch_id, self._batches.get(batch_id) if isinstance(batch_id, str) else None)
                for batch_id in batch_ids
            ]
        for batch_id, record in records:
            if record is None or record.status != BatchStatus.ACTIVE:
                results.append(BatchQueryResult(batch_id=batch_id))
                continue
            addresses = []
            for node_id in record.assigned_nodes:
                node = self.registry.get(node_id)
                addresses.append(node.address if node is not None else "")
            results.append(BatchQueryResult(
                batch_id=batch_id,
                nodes=record.assigned_nodes,
                node_addresses=tuple(addresses),
                is_valid=True,
            ))
        return results

    def update_status(self, batch_id: str, status: Union[BatchStatus, str]) -> BatchRecord:
        """Move a batch forward in its lifecycle.

        Active may move to Expired or Archived, Expired may move to Archived.
        Nothing ever moves back to Active.
        """
        status = parse_status(status)
        with self._lock:
            record = self._batches.get(batch_id)
            if record is None:
                raise BatchNotFound(batch_id)
            previous = record.status
            if status == BatchStatus.ACTIVE or STATUS_RANK[status] <= STATUS_RANK[previous]:
                raise InvalidTransition(batch_id, previous, status)
            event = BatchStatusChanged(batch_id=batch_id, previous=previous, status=status)
            self.events.journal(event)
            record.status = status
            snapshot = replace(record)

        logger.info(f"Batch {batch_id} moved from {previous.value} to {status.value}")
        self.events.notify(event)
        return snapshot

    def expire_overdue(self, now: Optional[int] = None) -> List[str]:
        """Expire every active batch whose TTL has elapsed.

        Batches are journaled and expired one at a time; if the journal fails
        part way, the batches before the failure stay expired.
        """
        if now is None:
            now = int(self._clock())
        events = []
        try:
            with self._lock:
                overdue = [
                    record for record in self._batches.values()
                    if record.status == BatchStatus.ACTIVE and record.expires_at <= now
                ]
                for record in overdue:
                    event = BatchStatusChanged(
                        batch_id=record.batch_id,
                        previous=BatchStatus.ACTIVE,
                        status=BatchStatus.EXPIRED,
                    )
                    self.events.journal(event)
                    record.status = BatchStatus.EXPIRED
                    events.append(event)
        finally:
            for event in events:
                self.events.notify(event)

        if events:
            logger.info(f"Expired {len(events)} overdue batches")
        return [event.batch_id for event in events]

    def get_batch(self, batch_id: str) -> Optional[BatchRecord]:
        with self._lock:
            record = self._batches.get(batch_id)
            return replace(record) if record is not None else None

    def all_batches(self) -> List[BatchRecord]:
        with self._lock:
            return [replace(record) for record in self._batches.values()]

    def restore(self, records: Iterable[BatchRecord]) -> None:
        with self._lock:
            self._batches = {record.batch_id: replace(record) for record in records}

    def __len__(self) -> int:
        with self._lock:
            return len(self._batches)

    def __contains__(self, batch_id: str) -> bool:
        with self._lock:
            return batch_id in self._batches
