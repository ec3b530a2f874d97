"""Unit tests for the device batch index and recent window."""

import pytest

from geoplacement.storage.device_index import DeviceIndex, RecentBatchWindow
from geoplacement.storage.errors import EmptyBatch, InvalidLimit, ValidationError
from geoplacement.storage.events import DataStored


@pytest.fixture
def index(dispatcher, clock):
    return DeviceIndex(dispatcher, clock, window_size=1000)


class TestRecentBatchWindow:
    def test_most_recent_first(self):
        window = RecentBatchWindow(4)
        for batch_id in ['a', 'b', 'c']:
            window.push(batch_id)
        assert window.recent(10) == ['c', 'b', 'a']
        assert window.recent(2) == ['c', 'b']
        assert len(window) == 3

    def test_wraps_and_overwrites_oldest(self):
        window = RecentBatchWindow(3)
        slots = [window.push(batch_id) for batch_id in ['a', 'b', 'c', 'd']]
        assert slots == [0, 1, 2, 0]
        assert window.cursor == 1
        assert window.recent(5) == ['d', 'c', 'b']

    def test_restore(self):
        window = RecentBatchWindow(3)
        window.restore(['d', 'b', 'c'], 1)
        assert window.recent(3) == ['d', 'c', 'b']

    def test_restore_rejects_mismatched_capacity(self):
        with pytest.raises(ValueError):
            RecentBatchWindow(3).restore(['a', None], 0)


class TestStoreData:
    def test_records_batch(self, index, clock, recorder):
        batch = index.store_data('0xroot', 'QmHash', [1, 2])
        assert batch.batch_id.startswith('0x')
        assert len(batch.batch_id) == 66
        assert batch.timestamp == clock.now
        assert batch.device_ids == (1, 2)
        assert index.get_data_batch(batch.batch_id) == batch
        assert recorder.of_type(DataStored)[0].batch == batch

    def test_same_content_same_second_gets_distinct_ids(self, index):
        first = index.store_data('0xroot', 'QmHash', [1])
        second = index.store_data('0xroot', 'QmHash', [1])
        assert first.batch_id != second.batch_id

    def test_derived_id_is_deterministic(self):
        assert DeviceIndex.derive_batch_id('0xroot', 5, 0) == DeviceIndex.derive_batch_id('0xroot', 5, 0)
        assert DeviceIndex.derive_batch_id('0xroot', 5, 0) != DeviceIndex.derive_batch_id('0xroot', 5, 1)

    def test_duplicate_devices_collapsed(self, index):
        batch = index.store_data('0xroot', 'QmHash', [3, 1, 3])
        assert batch.device_ids == (3, 1)
        assert index.device_count(3) == 1

    def test_empty_devices(self, index):
        with pytest.raises(EmptyBatch):
            index.store_data('0xroot', 'QmHash', [])

    @pytest.mark.parametrize('device_ids', [[-1], ['1'], [True]])
    def test_invalid_device_ids(self, index, device_ids):
        with pytest.raises(ValidationError):
            index.store_data('0xroot', 'QmHash', device_ids)
        assert len(index.window) == 0

    def test_empty_content_root(self, index):
        with pytest.raises(ValidationError):
            index.store_data('', 'QmHash', [1])


class TestQueries:
    def test_device_recent_batches(self, index, clock):
        ids = []
        for i in range(3):
            ids.append(index.store_data(f"0xroot{i}", 'QmHash', [1]).batch_id)
            clock.advance(1)
        index.store_data('0xother', 'QmHash', [2])
        batches = index.query_device_recent_batches(1, 2)
        assert [b.batch_id for b in batches] == [ids[2], ids[1]]

    def test_device_query_limits(self, index):
        index.store_data('0xroot', 'QmHash', [1])
        assert index.query_device_recent_batches(1, 0) == []
        assert len(index.query_device_recent_batches(1, 50)) == 1
        assert index.query_device_recent_batches(99, 5) == []
        with pytest.raises(InvalidLimit):
            index.query_device_recent_batches(1, -1)

    def test_recent_window_keeps_last_thousand(self, index):
        ids = [index.store_data(f"0xroot{i}", 'QmHash', [i % 7]).batch_id for i in range(1001)]
        recent = index.get_recent_batches(2000)
        assert len(recent) == 1000
        assert recent[0].batch_id == ids[-1]
        assert recent[-1].batch_id == ids[1]
        assert ids[0] not in {b.batch_id for b in recent}

    def test_time_range(self, index, clock):
        assert index.get_device_time_range(4) is None
        start = clock.now
        index.store_data('0xa', 'QmHash', [4])
        clock.advance(30)
        index.store_data('0xb', 'QmHash', [4, 5])
        time_range = index.get_device_time_range(4)
        assert (time_range.start_time, time_range.end_time) == (start, start + 30)
        other = index.get_device_time_range(5)
        assert other.start_time == other.end_time == start + 30

    def test_restore_continues_window(self, clock):
        first = DeviceIndex(clock=clock, window_size=3)
        stored = [first.store_data(f"0x{i}", 'QmHash', [1]) for i in range(2)]
        second = DeviceIndex(clock=clock, window_size=3)
        second.restore(
            stored,
            {1: [b.batch_id for b in stored]},
            {1: first.get_device_time_range(1)},
            (first.window.slots(), first.window.cursor),
        )
        latest = second.store_data('0x9', 'QmHash', [1])
        assert [b.batch_id for b in second.get_recent_batches(3)] == [
            latest.batch_id, stored[1].batch_id, stored[0].batch_id
        ]
        assert second.device_count(1) == 3
