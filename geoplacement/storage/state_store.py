"""Durable SQLite journal of placement state."""
import json
import logging
import sqlite3
from typing import Dict, List, Optional, Sequence, Tuple

from ..models.base import Location, StorageNode
from ..models.batch import BatchRecord, BatchStatus, DataBatch, TimeRange
from .events import (
    BatchStatusChanged,
    BatchStored,
    DataStored,
    MinimumCreditScoreChanged,
    NodeRegistered,
    NodeUpdated,
)

logger = logging.getLogger(__name__)


class StateStore:
    """Persists nodes, batches, device indexes and the recent window.

    Used as the event journal of a placement engine: every committed event
    is written in its own transaction, and ``load_*`` rebuilds state after a
    restart.
    """

    def __init__(self, db_path: str, window_size: int = 1000):
        """Initialize the state store.

        Args:
            db_path: Path to the SQLite database file
            window_size: Capacity of the recent batches ring
        """
        self.db_path = db_path
        self.window_size = window_size
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self):
        """Initialize the database schema."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.executescript("""
                    CREATE TABLE IF NOT EXISTS nodes (
                        node_id TEXT PRIMARY KEY,
                        address TEXT NOT NULL,
                        credit_score INTEGER NOT NULL,
                        capacity INTEGER NOT NULL,
                        used_capacity INTEGER NOT NULL,
                        is_active INTEGER NOT NULL,
                        last_update_time INTEGER NOT NULL,
                        latitude INTEGER NOT NULL,
                        longitude INTEGER NOT NULL
                    );
                    CREATE TABLE IF NOT EXISTS batches (
                        batch_id TEXT PRIMARY KEY,
                        timestamp INTEGER NOT NULL,
                        ttl INTEGER NOT NULL,
                        status TEXT NOT NULL,
                        assigned_nodes TEXT NOT NULL,
                        latitude INTEGER NOT NULL,
                        longitude INTEGER NOT NULL
                    );
                    CREATE TABLE IF NOT EXISTS data_batches (
                        batch_id TEXT PRIMARY KEY,
                        content_root TEXT NOT NULL,
                        external_hash TEXT NOT NULL,
                        timestamp INTEGER NOT NULL,
                        device_ids TEXT NOT NULL
                    );
                    CREATE TABLE IF NOT EXISTS device_batches (
                        device_id INTEGER NOT NULL,
                        position INTEGER NOT NULL,
                        batch_id TEXT NOT NULL,
                        PRIMARY KEY (device_id, position)
                    );
                    CREATE TABLE IF NOT EXISTS device_time_ranges (
                        device_id INTEGER PRIMARY KEY,
                        start_time INTEGER NOT NULL,
                        end_time INTEGER NOT NULL
                    );
                    CREATE TABLE IF NOT EXISTS recent_batches (
                        slot INTEGER PRIMARY KEY,
                        batch_id TEXT NOT NULL
                    );
                    CREATE TABLE IF NOT EXISTS recent_cursor (
                        id INTEGER PRIMARY KEY CHECK (id = 0),
                        cursor INTEGER NOT NULL,
                        capacity INTEGER NOT NULL
                    );
                    CREATE TABLE IF NOT EXISTS settings (
                        id INTEGER PRIMARY KEY CHECK (id = 0),
                        minimum_credit_score INTEGER
                    );
                """)
                cursor.execute(
                    "INSERT OR IGNORE INTO recent_cursor (id, cursor, capacity) VALUES (0, 0, ?)",
                    (self.window_size,),
                )
                row = cursor.execute("SELECT capacity FROM recent_cursor WHERE id = 0").fetchone()
                if row[0] != self.window_size:
                    raise ValueError(
                        f"State at {self.db_path} uses a window of {row[0]}, not {self.window_size}"
                    )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize state database: {e}")
            raise

    def apply(self, event: object) -> None:
        """Journal one committed event."""
        try:
            with self._connect() as conn:
                if isinstance(event, (NodeRegistered, NodeUpdated)):
                    self._save_node(conn, event.node)
                elif isinstance(event, BatchStored):
                    for record in event.records:
                        self._save_batch(conn, record)
                elif isinstance(event, BatchStatusChanged):
                    conn.execute(
                        "UPDATE batches SET status = ? WHERE batch_id = ?",
                        (event.status.value, event.batch_id),
                    )
                elif isinstance(event, DataStored):
                    self._save_data_batch(conn, event.batch)
                elif isinstance(event, MinimumCreditScoreChanged):
                    conn.execute("""
                        INSERT INTO settings (id, minimum_credit_score) VALUES (0, ?)
                        ON CONFLICT(id) DO UPDATE SET minimum_credit_score = excluded.minimum_credit_score
                    """, (event.score,))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to journal {type(event).__name__}: {e}")
            raise

    def _save_node(self, conn: sqlite3.Connection, node: StorageNode):
        conn.execute("""
            INSERT INTO nodes (
                node_id, address, credit_score, capacity, used_capacity,
                is_active, last_update_time, latitude, longitude
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(node_id) DO UPDATE SET
                address = excluded.address,
                credit_score = excluded.credit_score,
                capacity = excluded.capacity,
                used_capacity = excluded.used_capacity,
                is_active = excluded.is_active,
                last_update_time = excluded.last_update_time,
                latitude = excluded.latitude,
                longitude = excluded.longitude
        """, (
            node.node_id,
            node.address,
            node.credit_score,
            node.capacity,
            node.used_capacity,
            int(node.is_active),
            node.last_update_time,
            node.location.latitude,
            node.location.longitude,
        ))

    def _save_batch(self, conn: sqlite3.Connection, record: BatchRecord):
        conn.execute("""
            INSERT INTO batches (
                batch_id, timestamp, ttl, status, assigned_nodes, latitude, longitude
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            record.batch_id,
            record.timestamp,
            record.ttl,
            record.status.value,
            json.dumps(list(record.assigned_nodes)),
            record.location.latitude,
            record.location.longitude,
        ))

    def _save_data_batch(self, conn: sqlite3.Connection, batch: DataBatch):
        conn.execute("""
            INSERT INTO data_batches (
                batch_id, content_root, external_hash, timestamp, device_ids
            ) VALUES (?, ?, ?, ?, ?)
        """, (
            batch.batch_id,
            batch.content_root,
            batch.external_hash,
            batch.timestamp,
            json.dumps(list(batch.device_ids)),
        ))
        for device_id in batch.device_ids:
            conn.execute("""
                INSERT INTO device_batches (device_id, position, batch_id)
                SELECT ?, COALESCE(MAX(position) + 1, 0), ?
                FROM device_batches WHERE device_id = ?
            """, (device_id, batch.batch_id, device_id))
            conn.execute("""
                INSERT INTO device_time_ranges (device_id, start_time, end_time)
                VALUES (?, ?, ?)
                ON CONFLICT(device_id) DO UPDATE SET end_time = excluded.end_time
            """, (device_id, batch.timestamp, batch.timestamp))

        (cursor,) = conn.execute("SELECT cursor FROM recent_cursor WHERE id = 0").fetchone()
        conn.execute(
            "INSERT OR REPLACE INTO recent_batches (slot, batch_id) VALUES (?, ?)",
            (cursor, batch.batch_id),
        )
        conn.execute(
            "UPDATE recent_cursor SET cursor = ? WHERE id = 0",
            ((cursor + 1) % self.window_size,),
        )

    def load_nodes(self) -> List[StorageNode]:
        """Nodes in their original registration order."""
        with self._connect() as conn:
            rows = conn.execute("""
                SELECT node_id, address, credit_score, capacity, used_capacity,
                       is_active, last_update_time, latitude, longitude
                FROM nodes ORDER BY rowid
            """).fetchall()
        return [
            StorageNode(
                node_id=row[0],
                address=row[1],
                credit_score=row[2],
                capacity=row[3],
                used_capacity=row[4],
                is_active=bool(row[5]),
                last_update_time=row[6],
                location=Location(latitude=row[7], longitude=row[8]),
            )
            for row in rows
        ]

    def load_batches(self) -> List[BatchRecord]:
        with self._connect() as conn:
            rows = conn.execute("""
                SELECT batch_id, timestamp, ttl, status, assigned_nodes, latitude, longitude
                FROM batches ORDER BY rowid
            """).fetchall()
        return [
            BatchRecord(
                batch_id=row[0],
                timestamp=row[1],
                ttl=row[2],
                status=BatchStatus(row[3]),
                assigned_nodes=tuple(json.loads(row[4])),
                location=Location(latitude=row[5], longitude=row[6]),
            )
            for row in rows
        ]

    def load_device_state(self) -> Tuple[
        List[DataBatch],
        Dict[int, List[str]],
        Dict[int, TimeRange],
        Tuple[Sequence[Optional[str]], int],
    ]:
        """Data batches, per-device lists, time ranges and the recent window."""
        with self._connect() as conn:
            batch_rows = conn.execute("""
                SELECT batch_id, content_root, external_hash, timestamp, device_ids
                FROM data_batches ORDER BY rowid
            """).fetchall()
            device_rows = conn.execute(
                "SELECT device_id, batch_id FROM device_batches ORDER BY device_id, position"
            ).fetchall()
            range_rows = conn.execute(
                "SELECT device_id, start_time, end_time FROM device_time_ranges"
            ).fetchall()
            slot_rows = conn.execute("SELECT slot, batch_id FROM recent_batches").fetchall()
            (cursor,) = conn.execute("SELECT cursor FROM recent_cursor WHERE id = 0").fetchone()

        data_batches = [
            DataBatch(
                batch_id=row[0],
                content_root=row[1],
                external_hash=row[2],
                timestamp=row[3],
                device_ids=tuple(json.loads(row[4])),
            )
            for row in batch_rows
        ]
        device_batches: Dict[int, List[str]] = {}
        for device_id, batch_id in device_rows:
            device_batches.setdefault(device_id, []).append(batch_id)
        time_ranges = {row[0]: TimeRange(start_time=row[1], end_time=row[2]) for row in range_rows}
        slots: List[Optional[str]] = [None] * self.window_size
        for slot, batch_id in slot_rows:
            slots[slot] = batch_id
        return data_batches, device_batches, time_ranges, (slots, cursor)

    def load_minimum_credit_score(self) -> Optional[int]:
        """Last minimum credit score set at runtime, or None if never changed."""
        with self._connect() as conn:
            row = conn.execute("SELECT minimum_credit_score FROM settings WHERE id = 0").fetchone()
        return row[0] if row else None
