#!/usr/bin/env python3
"""
Operator tool for inspecting placement state.
Reads the SQLite state written by the placement API.
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from tabulate import tabulate

from ..config.base_config import STATE_DB_PATH
from ..config.placement_config import PlacementConfig
from ..models.base import DEGREE_SCALE
from ..storage.engine import PlacementEngine
from ..storage.state_store import StateStore


def setup_logging(verbose: bool = False):
    """Configure logging with consistent format."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Geo batch placement tools')
    parser.add_argument('--db', default=STATE_DB_PATH,
                        help='Path to the placement state database')
    parser.add_argument('--format', choices=['table', 'json'], default='table',
                        help='Output format')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    nodes_parser = subparsers.add_parser('nodes', help='List registered nodes')
    nodes_parser.add_argument('--active', action='store_true', help='Only list active nodes')

    batch_parser = subparsers.add_parser('batch', help='Show batch placements')
    batch_parser.add_argument('batch_ids', nargs='+', help='Batch identifiers')

    recent_parser = subparsers.add_parser('recent', help='Show most recent data batches')
    recent_parser.add_argument('--limit', type=int, default=10, help='Number of batches')

    device_parser = subparsers.add_parser('device', help='Show data batches of a device')
    device_parser.add_argument('device_id', type=int, help='Device identifier')
    device_parser.add_argument('--limit', type=int, default=10, help='Number of batches')

    expire_parser = subparsers.add_parser(
        'expire',
        help='Expire batches whose TTL has elapsed',
        description=(
            'Runs the sweep against the database directly. A running API server '
            'does not reload state and keeps serving these batches as active '
            'until restarted; use POST /batches/expire to sweep a live server.'
        ),
    )
    expire_parser.add_argument('--now', type=int, default=None,
                               help='Reference Unix time (defaults to current time)')

    args = parser.parse_args(argv)
    if not args.command:
        parser.error('a command is required')
    if not args.db:
        parser.error('--db or STATE_DB_PATH is required')
    return args


def _degrees(value: int) -> str:
    return f"{value / DEGREE_SCALE:.6f}"


def _time(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _output(rows, headers, fmt):
    if fmt == 'json':
        print(json.dumps([dict(zip(headers, row)) for row in rows], indent=2))
    else:
        print(tabulate(rows, headers=headers, tablefmt='grid'))


def show_nodes(engine: PlacementEngine, args):
    rows = [
        [
            node.node_id,
            node.address,
            node.credit_score,
            f"{node.used_capacity}/{node.capacity}",
            _degrees(node.location.latitude),
            _degrees(node.location.longitude),
            'yes' if node.is_active else 'no',
            _time(node.last_update_time),
        ]
        for node in engine.list_nodes(active_only=args.active)
    ]
    headers = ['Node', 'Address', 'Credit', 'Used/Capacity', 'Latitude', 'Longitude', 'Active', 'Updated']
    _output(rows, headers, args.format)


def show_batches(engine: PlacementEngine, args):
    rows = []
    for batch_id in args.batch_ids:
        record = engine.get_batch(batch_id)
        if record is None:
            rows.append([batch_id, 'missing', '', '', ''])
            continue
        rows.append([
            batch_id,
            record.status.value,
            ', '.join(record.assigned_nodes),
            _time(record.timestamp),
            _time(record.expires_at),
        ])
    _output(rows, ['Batch', 'Status', 'Nodes', 'Stored', 'Expires'], args.format)


def _data_rows(batches):
    return [
        [
            batch.batch_id,
            batch.content_root,
            batch.external_hash,
            ', '.join(str(device) for device in batch.device_ids),
            _time(batch.timestamp),
        ]
        for batch in batches
    ]


def show_recent(engine: PlacementEngine, args):
    rows = _data_rows(engine.get_recent_batches(args.limit))
    _output(rows, ['Batch', 'Content root', 'External hash', 'Devices', 'Stored'], args.format)


def show_device(engine: PlacementEngine, args):
    rows = _data_rows(engine.query_device_recent_batches(args.device_id, args.limit))
    _output(rows, ['Batch', 'Content root', 'External hash', 'Devices', 'Stored'], args.format)


def expire_batches(engine: PlacementEngine, args):
    expired = engine.expire_overdue_batches(args.now)
    _output([[batch_id] for batch_id in expired], ['Expired batch'], args.format)


COMMANDS = {
    'nodes': show_nodes,
    'batch': show_batches,
    'recent': show_recent,
    'device': show_device,
    'expire': expire_batches,
}


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose)
    config = PlacementConfig.from_env()
    engine = PlacementEngine(
        config=config,
        state_store=StateStore(args.db, config.recent_window_size),
    )
    COMMANDS[args.command](engine, args)
    return 0


if __name__ == '__main__':
    sys.exit(main())
