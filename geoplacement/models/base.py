"""Base models for geo batch placement."""
from dataclasses import dataclass, asdict
from typing import Any, Dict

from ..storage.errors import InvalidLocation

# Coordinates are fixed-point integers in micro-degrees
DEGREE_SCALE = 1_000_000
MAX_LATITUDE = 90 * DEGREE_SCALE
MAX_LONGITUDE = 180 * DEGREE_SCALE


def is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Location:
    """Fixed-point latitude/longitude pair, validated on construction"""
    latitude: int
    longitude: int

    def __post_init__(self):
        if not (
            is_int(self.latitude)
            and is_int(self.longitude)
            and -MAX_LATITUDE <= self.latitude <= MAX_LATITUDE
            and -MAX_LONGITUDE <= self.longitude <= MAX_LONGITUDE
        ):
            raise InvalidLocation(self.latitude, self.longitude)

    @classmethod
    def from_degrees(cls, latitude: float, longitude: float) -> 'Location':
        """Build a location from floating point degrees."""
        return cls(
            latitude=int(round(latitude * DEGREE_SCALE)),
            longitude=int(round(longitude * DEGREE_SCALE)),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Location':
        try:
            return cls(latitude=data['latitude'], longitude=data['longitude'])
        except (KeyError, TypeError):
            raise InvalidLocation(
                data.get('latitude') if isinstance(data, dict) else None,
                data.get('longitude') if isinstance(data, dict) else None,
            )

    def to_dict(self) -> Dict[str, int]:
        return {'latitude': self.latitude, 'longitude': self.longitude}


@dataclass
class StorageNode:
    """A participant advertising capacity, location and credit"""
    node_id: str
    address: str
    credit_score: int
    capacity: int
    used_capacity: int
    is_active: bool
    last_update_time: int
    location: Location

    @property
    def free_capacity(self) -> int:
        return self.capacity - self.used_capacity

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['location'] = self.location.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageNode':
        return cls(
            node_id=data['node_id'],
            address=data['address'],
            credit_score=data['credit_score'],
            capacity=data['capacity'],
            used_capacity=data['used_capacity'],
            is_active=bool(data['is_active']),
            last_update_time=data['last_update_time'],
            location=Location.from_dict(data['location']),
        )


@dataclass(frozen=True)
class NodeSnapshot:
    """Point-in-time view of a node returned alongside a placement"""
    node_id: str
    address: str
    credit_score: int
    capacity: int
    used_capacity: int
    location: Location

    @classmethod
    def of(cls, node: StorageNode) -> 'NodeSnapshot':
        return cls(
            node_id=node.node_id,
            address=node.address,
            credit_score=node.credit_score,
            capacity=node.capacity,
            used_capacity=node.used_capacity,
            location=node.location,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['location'] = self.location.to_dict()
        return data
