"""Placement API routes."""

from flask import Blueprint, current_app, jsonify, request
import logging

from ...models.base import Location, is_int
from ...storage.engine import PlacementEngine
from ..utils.auth import caller_identity, require_admin, require_node_owner
from ..utils.errors import InvalidRequest, format_error_response, handle_placement_errors

logger = logging.getLogger(__name__)

# Create Blueprint for placement routes
placement_api = Blueprint('placement_api', __name__)

DEFAULT_LIMIT = 10


def _engine() -> PlacementEngine:
    return current_app.extensions['placement_engine']


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return data


def _field(data: dict, name: str):
    if name not in data:
        raise InvalidRequest(f"Missing field: {name}")
    return data[name]


def _limit_arg() -> int:
    raw = request.args.get('limit', str(DEFAULT_LIMIT))
    try:
        return int(raw)
    except ValueError:
        raise InvalidRequest(f"limit must be an integer: {raw!r}")


@placement_api.route('/nodes', methods=['POST'])
@handle_placement_errors
def register_node():
    """Register the caller's storage node."""
    identity = caller_identity()
    data = _json_body()
    node_id = _engine().register_node(
        node_id=identity,
        address=_field(data, 'address'),
        location=Location.from_dict(_field(data, 'location')),
        capacity=_field(data, 'capacity'),
    )
    return jsonify(_engine().get_node(node_id).to_dict()), 201


@placement_api.route('/nodes/<node_id>', methods=['GET'])
@handle_placement_errors
def get_node(node_id: str):
    node = _engine().get_node(node_id)
    if node is None:
        return format_error_response('NotFound', f"Unknown node {node_id}", 404)
    return jsonify(node.to_dict()), 200


@placement_api.route('/nodes/<node_id>/capacity', methods=['PUT'])
@handle_placement_errors
def update_capacity(node_id: str):
    require_node_owner(node_id, 'update capacity')
    data = _json_body()
    node = _engine().update_node_capacity(
        node_id,
        used_capacity=_field(data, 'used_capacity'),
        total_capacity=_field(data, 'total_capacity'),
    )
    return jsonify(node.to_dict()), 200


@placement_api.route('/nodes/<node_id>/location', methods=['PUT'])
@handle_placement_errors
def update_location(node_id: str):
    require_node_owner(node_id, 'update location')
    node = _engine().update_node_location(node_id, Location.from_dict(_json_body()))
    return jsonify(node.to_dict()), 200


@placement_api.route('/nodes/<node_id>/credit-score', methods=['PUT'])
@handle_placement_errors
def update_credit_score(node_id: str):
    require_admin('update credit scores')
    node = _engine().update_node_credit_score(node_id, _field(_json_body(), 'credit_score'))
    return jsonify(node.to_dict()), 200


@placement_api.route('/nodes/<node_id>/deactivate', methods=['POST'])
@handle_placement_errors
def deactivate_node(node_id: str):
    require_node_owner(node_id, 'deactivate node', allow_admin=True)
    node = _engine().deactivate_node(node_id)
    return jsonify(node.to_dict()), 200


@placement_api.route('/config/minimum-credit-score', methods=['PUT'])
@handle_placement_errors
def set_minimum_credit_score():
    require_admin('set the minimum credit score')
    score = _field(_json_body(), 'minimum_credit_score')
    previous = _engine().set_minimum_credit_score(score)
    return jsonify({'minimum_credit_score': score, 'previous': previous}), 200


@placement_api.route('/batches', methods=['POST'])
@handle_placement_errors
def store_batch():
    """Record a submission of batches and assign storage nodes."""
    require_admin('store batches')
    data = _json_body()
    batch_ids = _field(data, 'batch_ids')
    if not isinstance(batch_ids, list):
        raise InvalidRequest("batch_ids must be a list")
    result = _engine().store_batch(
        batch_ids,
        ttl=_field(data, 'ttl'),
        location=Location.from_dict(_field(data, 'location')),
    )
    return jsonify(result.to_dict()), 201


@placement_api.route('/batches/query', methods=['POST'])
@handle_placement_errors
def query_batches():
    batch_ids = _field(_json_body(), 'batch_ids')
    if not isinstance(batch_ids, list):
        raise InvalidRequest("batch_ids must be a list")
    results = _engine().query_batches(batch_ids)
    return jsonify({'results': [result.to_dict() for result in results]}), 200


@placement_api.route('/batches/<batch_id>/status', methods=['PUT'])
@handle_placement_errors
def update_status(batch_id: str):
    require_admin('update batch status')
    record = _engine().update_batch_status(batch_id, _field(_json_body(), 'status'))
    return jsonify(record.to_dict()), 200


@placement_api.route('/batches/expire', methods=['POST'])
@handle_placement_errors
def expire_batches():
    """Expire every active batch whose TTL has elapsed."""
    require_admin('expire batches')
    data = request.get_json(silent=True) or {}
    now = data.get('now')
    if now is not None and not is_int(now):
        raise InvalidRequest("now must be an integer Unix time")
    expired = _engine().expire_overdue_batches(now)
    return jsonify({'expired': expired}), 200


@placement_api.route('/batches/recent', methods=['GET'])
@handle_placement_errors
def recent_batches():
    batches = _engine().get_recent_batches(_limit_arg())
    return jsonify({'batches': [batch.to_dict() for batch in batches]}), 200


@placement_api.route('/data', methods=['POST'])
@handle_placement_errors
def store_data():
    """Record a sensor data batch for a set of devices."""
    caller_identity()
    data = _json_body()
    device_ids = _field(data, 'device_ids')
    if not isinstance(device_ids, list):
        raise InvalidRequest("device_ids must be a list")
    batch = _engine().store_data(
        content_root=_field(data, 'content_root'),
        external_hash=_field(data, 'external_hash'),
        device_ids=device_ids,
    )
    return jsonify(batch.to_dict()), 201


@placement_api.route('/devices/<int:device_id>/batches', methods=['GET'])
@handle_placement_errors
def device_batches(device_id: int):
    batches = _engine().query_device_recent_batches(device_id, _limit_arg())
    return jsonify({'device_id': device_id, 'batches': [batch.to_dict() for batch in batches]}), 200


@placement_api.route('/devices/<int:device_id>/time-range', methods=['GET'])
@handle_placement_errors
def device_time_range(device_id: int):
    time_range = _engine().get_device_time_range(device_id)
    if time_range is None:
        return jsonify({'device_id': device_id, 'time_range': None}), 200
    return jsonify({'device_id': device_id, 'time_range': time_range.to_dict()}), 200
