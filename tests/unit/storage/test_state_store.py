"""Unit tests for durable placement state."""
import unittest
import tempfile
import os
import shutil
import sqlite3

from geoplacement.config.placement_config import PlacementConfig
from geoplacement.models.base import Location
from geoplacement.models.batch import BatchStatus
from geoplacement.storage.engine import PlacementEngine
from geoplacement.storage.errors import NoAvailableNodes
from geoplacement.storage.state_store import StateStore


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestStateStore(unittest.TestCase):
    """Test cases for state persistence across restarts."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "placement.db")
        self.config = PlacementConfig(min_credit_score=10, recent_window_size=3)
        self.clock = FixedClock(1_700_000_000)

    def tearDown(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir)

    def _engine(self):
        return PlacementEngine(
            config=self.config,
            state_store=StateStore(self.db_path, self.config.recent_window_size),
            clock=self.clock,
        )

    def test_nodes_survive_restart(self):
        engine = self._engine()
        engine.register_node('node-b', 'b.example:9000', Location(1_000_000, 0), 100)
        engine.register_node('node-a', 'a.example:9000', Location(0, 0), 200)
        engine.update_node_capacity('node-a', 50, 200)
        engine.update_node_credit_score('node-b', 80)
        engine.deactivate_node('node-b')

        restarted = self._engine()
        self.assertEqual([n.node_id for n in restarted.list_nodes()], ['node-b', 'node-a'])
        node_a = restarted.get_node('node-a')
        self.assertEqual(node_a.used_capacity, 50)
        self.assertEqual(node_a.credit_score, 10)
        node_b = restarted.get_node('node-b')
        self.assertFalse(node_b.is_active)
        self.assertEqual(node_b.credit_score, 80)
        self.assertEqual(node_b.location, Location(1_000_000, 0))

    def test_batches_survive_restart(self):
        engine = self._engine()
        engine.register_node('node-a', 'a.example:9000', Location(0, 0), 100)
        engine.store_batch(['0xa', '0xb'], 60, Location(0, 0))
        engine.update_batch_status('0xb', BatchStatus.ARCHIVED)

        restarted = self._engine()
        results = restarted.query_batches(['0xa', '0xb'])
        self.assertTrue(results[0].is_valid)
        self.assertEqual(results[0].nodes, ('node-a',))
        self.assertEqual(results[0].node_addresses, ('a.example:9000',))
        self.assertFalse(results[1].is_valid)
        self.assertEqual(restarted.get_batch('0xb').status, BatchStatus.ARCHIVED)

    def test_device_state_survives_restart(self):
        engine = self._engine()
        stored = []
        for i in range(4):
            stored.append(engine.store_data(f"0xroot{i}", f"Qm{i}", [7, i]))
            self.clock.now += 10

        restarted = self._engine()
        recent = restarted.get_recent_batches(10)
        self.assertEqual(
            [b.batch_id for b in recent],
            [stored[3].batch_id, stored[2].batch_id, stored[1].batch_id],
        )
        device = restarted.query_device_recent_batches(7, 10)
        self.assertEqual(len(device), 4)
        self.assertEqual(device[0], stored[3])
        time_range = restarted.get_device_time_range(7)
        self.assertEqual(time_range.start_time, stored[0].timestamp)
        self.assertEqual(time_range.end_time, stored[3].timestamp)

        newest = restarted.store_data('0xnew', 'QmNew', [7])
        self.assertEqual(restarted.get_recent_batches(1)[0], newest)
        self.assertEqual(self._engine().get_recent_batches(1)[0], newest)

    def test_failed_write_is_not_applied(self):
        engine = self._engine()
        engine.register_node('node-a', 'a.example:9000', Location(0, 0), 100)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DROP TABLE batches")

        with self.assertRaises(sqlite3.OperationalError):
            engine.store_batch(['0xa'], 60, Location(0, 0))
        self.assertFalse(engine.query_batches(['0xa'])[0].is_valid)

        StateStore(self.db_path, self.config.recent_window_size)
        engine.store_batch(['0xa'], 60, Location(0, 0))
        self.assertTrue(self._engine().query_batches(['0xa'])[0].is_valid)

    def test_minimum_credit_score_survives_restart(self):
        engine = self._engine()
        engine.set_minimum_credit_score(40)
        restarted = self._engine()
        self.assertEqual(restarted.minimum_credit_score, 40)
        restarted.register_node('node-a', 'a.example:9000', Location(0, 0), 100)
        self.assertEqual(restarted.get_node('node-a').credit_score, 40)

    def test_minimum_credit_score_defaults_to_config(self):
        self.assertIsNone(StateStore(self.db_path, 3).load_minimum_credit_score())
        self.assertEqual(self._engine().minimum_credit_score, 10)

    def test_window_size_mismatch(self):
        StateStore(self.db_path, 3)
        with self.assertRaises(ValueError):
            StateStore(self.db_path, 5)

    def test_rejected_operation_writes_nothing(self):
        engine = self._engine()
        with self.assertRaises(NoAvailableNodes):
            engine.store_batch(['0xa'], 60, Location(0, 0))
        self.assertEqual(StateStore(self.db_path, 3).load_batches(), [])


if __name__ == '__main__':
    unittest.main()
