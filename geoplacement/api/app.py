"""Main application entry point."""

import logging
from typing import Optional

from flask import Flask, Response
from flask_cors import CORS
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..config.base_config import (
    API_HOST,
    API_PORT,
    DEBUG,
    ADMIN_IDENTITY,
    LOG_LEVEL,
)
from ..storage.engine import PlacementEngine
from .routes.placement import placement_api

logger = logging.getLogger(__name__)


def create_app(engine: Optional[PlacementEngine] = None, admin_identity: Optional[str] = None) -> Flask:
    """Build the Flask application around a placement engine.

    Args:
        engine: Engine to serve; built from the environment when omitted
        admin_identity: Identity allowed to call administrative routes
    """
    app = Flask(__name__)
    CORS(app)

    app.config['ADMIN_IDENTITY'] = admin_identity or ADMIN_IDENTITY
    app.extensions['placement_engine'] = engine or PlacementEngine.from_env()

    # Register blueprints
    app.register_blueprint(placement_api)

    @app.route('/health')
    def health_check():
        """Health check endpoint."""
        active = len(app.extensions['placement_engine'].list_nodes(active_only=True))
        return {'status': 'healthy', 'active_nodes': active}

    @app.route('/metrics')
    def metrics():
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    return app


def main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    app = create_app()
    logger.info(f"Serving placement API on {API_HOST}:{API_PORT}")
    app.run(host=API_HOST, port=API_PORT, debug=DEBUG)


if __name__ == '__main__':
    main()
