"""Tests for the placement admin command line tool."""

import json
import os

import pytest

from geoplacement.models.base import Location
from geoplacement.scripts.placement_admin import main
from geoplacement.storage.engine import PlacementEngine
from geoplacement.storage.state_store import StateStore


@pytest.fixture
def db_path(tmp_path, clock):
    path = os.path.join(str(tmp_path), 'placement.db')
    engine = PlacementEngine(state_store=StateStore(path), clock=clock)
    engine.register_node('node-a', 'a.example:9000', Location(1_500_000, -2_000_000), 100)
    engine.register_node('node-b', 'b.example:9000', Location(0, 0), 100)
    engine.deactivate_node('node-b')
    engine.store_batch(['0xa'], 60, Location(0, 0))
    engine.store_data('0xroot', 'QmHash', [3])
    return path


def run_json(capsys, *argv):
    assert main(list(argv)) == 0
    return json.loads(capsys.readouterr().out)


def test_list_nodes(capsys, db_path):
    rows = run_json(capsys, '--db', db_path, '--format', 'json', 'nodes')
    assert [row['Node'] for row in rows] == ['node-a', 'node-b']
    assert rows[0]['Latitude'] == '1.500000'
    assert rows[1]['Active'] == 'no'


def test_list_active_nodes(capsys, db_path):
    rows = run_json(capsys, '--db', db_path, '--format', 'json', 'nodes', '--active')
    assert [row['Node'] for row in rows] == ['node-a']


def test_show_batches(capsys, db_path):
    rows = run_json(capsys, '--db', db_path, '--format', 'json', 'batch', '0xa', '0xmissing')
    assert rows[0]['Status'] == 'active'
    assert rows[0]['Nodes'] == 'node-a'
    assert rows[1]['Status'] == 'missing'


def test_device_and_recent(capsys, db_path):
    device_rows = run_json(capsys, '--db', db_path, '--format', 'json', 'device', '3')
    recent_rows = run_json(capsys, '--db', db_path, '--format', 'json', 'recent')
    assert device_rows == recent_rows
    assert device_rows[0]['Content root'] == '0xroot'


def test_expire(capsys, db_path, clock):
    rows = run_json(capsys, '--db', db_path, '--format', 'json', 'expire', '--now', str(clock.now + 60))
    assert rows == [{'Expired batch': '0xa'}]
    rows = run_json(capsys, '--db', db_path, '--format', 'json', 'batch', '0xa')
    assert rows[0]['Status'] == 'expired'


def test_table_output(capsys, db_path):
    assert main(['--db', db_path, 'nodes']) == 0
    assert 'node-a' in capsys.readouterr().out


def test_command_required(db_path):
    with pytest.raises(SystemExit):
        main(['--db', db_path])
