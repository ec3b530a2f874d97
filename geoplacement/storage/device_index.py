"""Per-device batch index and the global recent-batches window."""
import hashlib
import itertools
import logging
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.base import is_int
from ..models.batch import DataBatch, TimeRange
from .errors import EmptyBatch, InvalidLimit, ValidationError
from .events import DataStored, EventDispatcher

logger = logging.getLogger(__name__)


def _check_limit(limit: int) -> int:
    if not is_int(limit) or limit < 0:
        raise InvalidLimit(limit)
    return limit


class RecentBatchWindow:
    """Fixed-capacity circular buffer of batch identifiers.

    Writes go to the slot under the cursor and advance it; once full, the
    oldest entry is overwritten.
    """

    def __init__(self, capacity: int = 1000):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._slots: List[Optional[str]] = [None] * capacity
        self._cursor = 0
        self._count = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    def push(self, batch_id: str) -> int:
        """Write an identifier and return the slot it landed in."""
        slot = self._cursor
        self._slots[slot] = batch_id
        self._cursor = (slot + 1) % self.capacity
        self._count = min(self._count + 1, self.capacity)
        return slot

    def recent(self, limit: int) -> List[str]:
        """Up to ``limit`` identifiers, most recent first."""
        count = min(limit, self._count)
        return [
            self._slots[(self._cursor - 1 - offset) % self.capacity]
            for offset in range(count)
        ]

    def slots(self) -> List[Optional[str]]:
        return list(self._slots)

    def restore(self, slots: Sequence[Optional[str]], cursor: int) -> None:
        if len(slots) != self.capacity or not 0 <= cursor < self.capacity:
            raise ValueError("Persisted window does not match capacity")
        self._slots = list(slots)
        self._cursor = cursor
        self._count = sum(1 for slot in self._slots if slot is not None)

    def __len__(self) -> int:
        return self._count


class DeviceIndex:
    """Records sensor data batches against the devices that produced them."""

    def __init__(
        self,
        events: Optional[EventDispatcher] = None,
        clock: Callable[[], float] = time.time,
        window_size: int = 1000,
    ):
        self.events = events or EventDispatcher()
        self._clock = clock
        self._window = RecentBatchWindow(window_size)
        self._data_batches: Dict[str, DataBatch] = {}
        self._device_batches: Dict[int, List[str]] = {}
        self._time_ranges: Dict[int, TimeRange] = {}
        self._sequence = itertools.count()
        self._lock = threading.RLock()

    @property
    def window(self) -> RecentBatchWindow:
        return self._window

    @staticmethod
    def derive_batch_id(content_root: str, timestamp: int, sequence: int) -> str:
        digest = hashlib.sha256(f"{content_root}|{timestamp}|{sequence}".encode()).hexdigest()
        return f"0x{digest}"

    def store_data(self, content_root: str, external_hash: str, device_ids: Iterable[int]) -> DataBatch:
        """Record a data batch for one or more devices.

        Args:
            content_root: Root hash of the batch contents
            external_hash: Reference to the content in external storage
            device_ids: Devices the data came from; duplicates are collapsed

        Returns:
            DataBatch: The stored batch with its derived identifier
        """
        if not isinstance(content_root, str) or not content_root:
            raise ValidationError(f"Invalid content root: {content_root!r}", "InvalidContentRoot")
        if not isinstance(external_hash, str):
            raise ValidationError(f"Invalid external hash: {external_hash!r}", "InvalidExternalHash")
        devices = list(dict.fromkeys(device_ids))
        if not devices:
            raise EmptyBatch("Data batch has no device identifiers")
        for device_id in devices:
            if not is_int(device_id) or device_id < 0:
                raise ValidationError(f"Invalid device id: {device_id!r}", "InvalidDeviceId")

        with self._lock:
            timestamp = int(self._clock())
            batch_id = self.derive_batch_id(content_root, timestamp, next(self._sequence))
            batch = DataBatch(
                batch_id=batch_id,
                content_root=content_root,
                external_hash=external_hash,
                timestamp=timestamp,
                device_ids=tuple(devices),
            )
            event = DataStored(batch=batch)
            self.events.journal(event)
            self._data_batches[batch_id] = batch
            for device_id in devices:
                self._device_batches.setdefault(device_id, []).append(batch_id)
                time_range = self._time_ranges.get(device_id)
                if time_range is None:
                    self._time_ranges[device_id] = TimeRange(start_time=timestamp, end_time=timestamp)
                else:
                    time_range.end_time = timestamp
            self._window.push(batch_id)

        logger.info(f"Stored data batch {batch_id} for devices {devices}")
        self.events.notify(event)
        return batch

    def query_device_recent_batches(self, device_id: int, limit: int) -> List[DataBatch]:
        """Up to ``limit`` batches of one device, most recent first."""
        limit = _check_limit(limit)
        with self._lock:
            batch_ids = self._device_batches.get(device_id, [])
            recent = batch_ids[::-1][:limit]
            return [self._data_batches[batch_id] for batch_id in recent]

    def get_recent_batches(self, limit: int) -> List[DataBatch]:
        """Up to ``limit`` batches from the global window, most recent first."""
        limit = _check_limit(limit)
        with self._lock:
            return [self._data_batches[batch_id] for batch_id in self._window.recent(limit)]

    def get_device_time_range(self, device_id: int) -> Optional[TimeRange]:
        with self._lock:
            time_range = self._time_ranges.get(device_id)
            return TimeRange(time_range.start_time, time_range.end_time) if time_range else None

    def get_data_batch(self, batch_id: str) -> Optional[DataBatch]:
        with self._lock:
            return self._data_batches.get(batch_id)

    def device_count(self, device_id: int) -> int:
        with self._lock:
            return len(self._device_batches.get(device_id, []))

    def restore(
        self,
        data_batches: Iterable[DataBatch],
        device_batches: Dict[int, List[str]],
        time_ranges: Dict[int, TimeRange],
        window: Tuple[Sequence[Optional[str]], int],
    ) -> None:
        """Load persisted state, replacing current state."""
        with self._lock:
            self._data_batches = {batch.batch_id: batch for batch in data_batches}
            self._device_batches = {device: list(ids) for device, ids in device_batches.items()}
            self._time_ranges = dict(time_ranges)
            slots, cursor = window
            self._window.restore(slots, cursor)
            self._sequence = itertools.count(len(self._data_batches))
