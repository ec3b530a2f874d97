"""Common test fixtures for API integration tests."""

import pytest

from geoplacement.api.app import create_app
from geoplacement.config.placement_config import PlacementConfig
from geoplacement.storage.engine import PlacementEngine


@pytest.fixture
def engine(clock):
    return PlacementEngine(config=PlacementConfig(min_credit_score=10), clock=clock)


@pytest.fixture
def app(engine):
    app = create_app(engine=engine, admin_identity='root-admin')
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def as_caller(identity):
    return {'X-Caller-Identity': identity}


@pytest.fixture
def admin_headers():
    return as_caller('root-admin')


@pytest.fixture
def register(client):
    def _register(node_id, latitude=0, longitude=0, capacity=100):
        return client.post(
            '/nodes',
            json={
                'address': f"{node_id}.example:9000",
                'location': {'latitude': latitude, 'longitude': longitude},
                'capacity': capacity,
            },
            headers=as_caller(node_id),
        )
    return _register
