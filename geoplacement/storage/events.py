"""Notification events for external observers (indexers, dashboards)."""
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ..models.base import StorageNode
from ..models.batch import BatchRecord, BatchStatus, DataBatch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeRegistered:
    node: StorageNode


@dataclass(frozen=True)
class NodeUpdated:
    node: StorageNode
    change: str  # capacity, location, credit_score or deactivated


@dataclass(frozen=True)
class BatchStored:
    records: Tuple[BatchRecord, ...]
    node_ids: Tuple[str, ...]


@dataclass(frozen=True)
class BatchStatusChanged:
    batch_id: str
    previous: BatchStatus
    status: BatchStatus


@dataclass(frozen=True)
class DataStored:
    batch: DataBatch


@dataclass(frozen=True)
class MinimumCreditScoreChanged:
    previous: int
    score: int


class EventDispatcher:
    """Journals state changes and delivers them to subscribers.

    A change goes through two steps. ``journal`` runs while the component
    still holds its lock and before it touches in-memory state; if it raises,
    the component applies nothing and the error reaches the caller. ``notify``
    runs after the change is live.

    Subscribers run synchronously in subscription order. A subscriber that
    raises is logged and skipped, and the others still receive the event.
    """

    def __init__(self, journal: Optional[Callable[[object], None]] = None):
        self._journal = journal
        self._subscribers: Dict[str, Callable[[object], None]] = {}
        self._lock = threading.Lock()
        self._next_token = 0

    def subscribe(self, callback: Callable[[object], None], name: Optional[str] = None) -> str:
        """Register a callback and return its subscription token."""
        with self._lock:
            token = name or f"subscriber-{self._next_token}"
            self._next_token += 1
            self._subscribers[token] = callback
            return token

    def unsubscribe(self, token: str) -> bool:
        with self._lock:
            return self._subscribers.pop(token, None) is not None

    def journal(self, event: object) -> None:
        """Durably record a change that is about to be applied."""
        if self._journal is not None:
            self._journal(event)

    def notify(self, event: object) -> None:
        with self._lock:
            subscribers = list(self._subscribers.items())
        for token, callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Subscriber {token} failed on {type(event).__name__}: {e}")
