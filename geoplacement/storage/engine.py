"""Placement engine: the single entry point over registry, selection and batches."""
import logging
import threading
import time
from typing import Callable, Iterable, List, Optional, Sequence

from ..config import base_config
from ..config.placement_config import CreditPolicy, PlacementConfig
from ..models.base import Location, StorageNode
from ..models.batch import (
    BatchQueryResult,
    BatchRecord,
    BatchStatus,
    DataBatch,
    StoreResult,
    TimeRange,
)
from ..monitoring.metrics import MetricsCollector
from .batch_store import BatchStore
from .device_index import DeviceIndex
from .events import EventDispatcher, MinimumCreditScoreChanged
from .node_registry import NodeRegistry
from .selector import NodeSelector, ScoredNode
from .state_store import StateStore

logger = logging.getLogger(__name__)


class PlacementEngine:
    """Registry + placement engine.

    Mutations run one at a time under a single lock, so the event journal
    and observers see them in commit order. Reads go straight to the
    components, which guard their own state.
    """

    def __init__(
        self,
        config: Optional[PlacementConfig] = None,
        state_store: Optional[StateStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or PlacementConfig()
        self.state_store = state_store
        self.credit_policy = CreditPolicy(self.config.min_credit_score)
        self.events = EventDispatcher(journal=state_store.apply if state_store else None)
        self.metrics = MetricsCollector()

        self.registry = NodeRegistry(self.credit_policy, self.events, clock)
        self.selector = NodeSelector(self.credit_policy, self.config.max_valid_distance)
        self.batches = BatchStore(
            self.registry,
            self.selector,
            self.events,
            clock,
            replica_count=self.config.replica_count,
            max_batch_size=self.config.max_batch_size,
        )
        self.devices = DeviceIndex(self.events, clock, self.config.recent_window_size)
        self._lock = threading.RLock()

        if state_store is not None:
            self._load_state()

    @classmethod
    def from_env(cls) -> 'PlacementEngine':
        config = PlacementConfig.from_env()
        state_store = None
        if base_config.STATE_DB_PATH:
            state_store = StateStore(base_config.STATE_DB_PATH, config.recent_window_size)
        return cls(config=config, state_store=state_store)

    def _load_state(self):
        persisted = self.state_store.load_minimum_credit_score()
        if persisted is not None:
            if persisted != self.config.min_credit_score:
                logger.warning(
                    f"Minimum credit score {persisted} from {self.state_store.db_path} "
                    f"overrides MIN_CREDIT_SCORE={self.config.min_credit_score}"
                )
            self.credit_policy.set_minimum_credit_score(persisted)
        self.registry.restore(self.state_store.load_nodes())
        self.batches.restore(self.state_store.load_batches())
        data_batches, device_batches, time_ranges, window = self.state_store.load_device_state()
        self.devices.restore(data_batches, device_batches, time_ranges, window)
        self._refresh_node_gauges()
        logger.info(
            f"Loaded {len(self.registry)} nodes and {len(self.batches)} batches "
            f"from {self.state_store.db_path}"
        )

    def _refresh_node_gauges(self):
        self.metrics.set_node_counts(len(self.registry.active_nodes()), len(self.registry))

    def subscribe(self, callback: Callable[[object], None], name: Optional[str] = None) -> str:
        return self.events.subscribe(callback, name)

    # Node registry

    def register_node(self, node_id: str, address: str, location: Location, capacity: int) -> str:
        with self.metrics.track_operation('register_node'), self._lock:
            node_id = self.registry.register(node_id, address, location, capacity)
            self._refresh_node_gauges()
            return node_id

    def update_node_capacity(self, node_id: str, used_capacity: int, total_capacity: int) -> StorageNode:
        with self.metrics.track_operation('update_capacity'), self._lock:
            return self.registry.update_capacity(node_id, used_capacity, total_capacity)

    def update_node_location(self, node_id: str, location: Location) -> StorageNode:
        with self.metrics.track_operation('update_location'), self._lock:
            return self.registry.update_location(node_id, location)

    def update_node_credit_score(self, node_id: str, score: int) -> StorageNode:
        with self.metrics.track_operation('update_credit_score'), self._lock:
            return self.registry.update_credit_score(node_id, score)

    def deactivate_node(self, node_id: str) -> StorageNode:
        with self.metrics.track_operation('deactivate_node'), self._lock:
            node = self.registry.deactivate(node_id)
            self._refresh_node_gauges()
            return node

    def set_minimum_credit_score(self, score: int) -> int:
        """Applies to eligibility checks and registrations from now on."""
        with self.metrics.track_operation('set_minimum_credit_score'), self._lock:
            score = self.credit_policy.check(score)
            event = MinimumCreditScoreChanged(previous=self.credit_policy.minimum_credit_score, score=score)
            self.events.journal(event)
            self.credit_policy.set_minimum_credit_score(score)
            logger.info(f"Minimum credit score changed from {event.previous} to {score}")
        self.events.notify(event)
        return event.previous

    @property
    def minimum_credit_score(self) -> int:
        return self.credit_policy.minimum_credit_score

    def get_node(self, node_id: str) -> Optional[StorageNode]:
        return self.registry.get(node_id)

    def list_nodes(self, active_only: bool = False) -> List[StorageNode]:
        return self.registry.active_nodes() if active_only else self.registry.all_nodes()

    # Selection

    def select_nodes(self, location: Location, k: Optional[int] = None) -> List[str]:
        """Preview a placement without recording anything."""
        k = self.config.replica_count if k is None else k
        return self.selector.select_nodes(location, self.registry.active_nodes(), k)

    def rank_nodes(self, location: Location, k: Optional[int] = None) -> List[ScoredNode]:
        k = self.config.replica_count if k is None else k
        return self.selector.rank(location, self.registry.active_nodes(), k)

    # Batches

    def store_batch(self, batch_ids: Sequence[str], ttl: int, location: Location) -> StoreResult:
        with self.metrics.track_operation('store_batch'), self._lock:
            result = self.batches.store_batch(batch_ids, ttl, location)
            self.metrics.record_batches_stored(len(result.batch_ids), len(result.node_ids))
            return result

    def query_batches(self, batch_ids: Iterable[str]) -> List[BatchQueryResult]:
        with self.metrics.track_operation('query_batches'):
            return self.batches.query_batches(batch_ids)

    def update_batch_status(self, batch_id: str, status: BatchStatus) -> BatchRecord:
        with self.metrics.track_operation('update_status'), self._lock:
            return self.batches.update_status(batch_id, status)

    def expire_overdue_batches(self, now: Optional[int] = None) -> List[str]:
        with self.metrics.track_operation('expire_overdue'), self._lock:
            return self.batches.expire_overdue(now)

    def get_batch(self, batch_id: str) -> Optional[BatchRecord]:
        return self.batches.get_batch(batch_id)

    # Device data

    def store_data(self, content_root: str, external_hash: str, device_ids: Iterable[int]) -> DataBatch:
        with self.metrics.track_operation('store_data'), self._lock:
            batch = self.devices.store_data(content_root, external_hash, device_ids)
            self.metrics.record_data_batch()
            return batch

    def query_device_recent_batches(self, device_id: int, limit: int) -> List[DataBatch]:
        return self.devices.query_device_recent_batches(device_id, limit)

    def get_recent_batches(self, limit: int) -> List[DataBatch]:
        return self.devices.get_recent_batches(limit)

    def get_device_time_range(self, device_id: int) -> Optional[TimeRange]:
        return self.devices.get_device_time_range(device_id)
