import os
from flask import Flask, jsonify

from shared.pubsub import PubSubClient
from .config import load_config
from .context import ServiceContext
from .logging_config import configure_logging
from .orchestrator import MatchOrchestrator
from .reporting import OutcomeReporter
from .supervisor import FlowSupervisor


def create_app(
    config_name: str = None,
    context: ServiceContext = None,
    supervisor: FlowSupervisor = None
) -> Flask:
    """Application factory for the matchmaking bridge.

    The service context is built here unless one is passed in; acquiring
    the PlayFab credential is left to the caller (see run.py) so building
    the app never talks to a backend.
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_mapping(load_config(config_name))

    configure_logging(app.config)

    if context is None:
        pubsub = PubSubClient(app.config['REDIS_URL']) if app.config['USE_REDIS'] else None
        context = ServiceContext.from_settings(app.config, reporter=OutcomeReporter(pubsub))

    if supervisor is None:
        supervisor = FlowSupervisor(
            max_workers=app.config['MAX_CONCURRENT_FLOWS'],
            max_watchers=app.config['MAX_TICKET_WATCHERS'],
            shutdown_timeout=app.config['SHUTDOWN_TIMEOUT']
        )

    # Store services on app for access in routes
    app.bridge_context = context
    app.orchestrator = MatchOrchestrator(context)
    app.supervisor = supervisor

    register_api_routes(app)

    from .routes import matchmaking
    app.register_blueprint(matchmaking.bp)

    return app


def register_api_routes(app: Flask):
    """Register service API routes."""

    @app.route('/api/v1/health', methods=['GET'])
    def api_health():
        """Health check endpoint."""
        return jsonify({
            'status': 'shutting_down' if app.supervisor.closed else 'ok',
            'env': os.getenv('FLASK_ENV', 'development'),
            'flows_in_flight': app.supervisor.in_flight()
        })
