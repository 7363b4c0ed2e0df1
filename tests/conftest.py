"""
Pytest configuration and fixtures for matchbridge tests.
"""
import json
import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from matchbridge.app import create_app
from matchbridge.config import load_config
from matchbridge.context import ServiceContext
from matchbridge.gameye_client import HostingResponse
from matchbridge.models import GameyeMatchRecord, MatchmakingTicket, TicketStatus
from matchbridge.reporting import OutcomeReporter
from matchbridge.supervisor import FlowSupervisor


@pytest.fixture
def settings():
    """Testing settings as a plain dict."""
    return load_config('testing')


@pytest.fixture
def playfab(mocker):
    """Mock PlayFab client with a fixed entity token."""
    mock = mocker.MagicMock()
    mock.title_id = 'TEST'
    mock.get_entity_token.return_value = 'entity-token-1'
    return mock


@pytest.fixture
def gameye(mocker):
    """Mock Gameye client."""
    return mocker.MagicMock()


@pytest.fixture
def reporter(mocker):
    """Mock outcome reporter."""
    return mocker.MagicMock(spec=OutcomeReporter)


@pytest.fixture
def context(settings, playfab, gameye, reporter):
    """Service context wired to mock backends."""
    return ServiceContext(settings, playfab, gameye, reporter=reporter)


@pytest.fixture
def supervisor():
    """Flow supervisor, shut down after the test."""
    sup = FlowSupervisor(max_workers=4, shutdown_timeout=5)
    yield sup
    sup.shutdown(timeout=5)


@pytest.fixture
def app(context, supervisor):
    """Create application for testing."""
    return create_app('testing', context=context, supervisor=supervisor)


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_response():
    """Factory for Gameye responses."""
    def _make(status_code: int, body=None) -> HostingResponse:
        if body is None:
            raw = b''
        elif isinstance(body, (bytes, str)):
            raw = body.encode() if isinstance(body, str) else body
        else:
            raw = json.dumps(body).encode()
        return HostingResponse(status_code=status_code, body=raw)
    return _make


@pytest.fixture
def make_ticket():
    """Factory for matchmaking tickets."""
    def _make(status: TicketStatus, match_id: str = None, ticket_id: str = 'ticket-1') -> MatchmakingTicket:
        return MatchmakingTicket(id=ticket_id, queue='ranked', status=status, match_id=match_id)
    return _make


@pytest.fixture
def make_record():
    """Factory for Gameye match records."""
    def _make(match_id: str, location: str = 'china-east', host: str = '10.0.0.1', port: int = 7777):
        return GameyeMatchRecord(
            id=match_id,
            image='game-image',
            location=location,
            host=host,
            created=1600000000000,
            game_port=port
        )
    return _make


@pytest.fixture
def match_payload():
    """Factory for PlayFab GetMatch data."""
    def _make(match_id: str = 'match-1', regions=None, members=None):
        return {
            'MatchId': match_id,
            'Members': members if members is not None else [
                {
                    'Entity': {'Id': 'PLAYER1', 'Type': 'title_player_account'},
                    'TeamId': 'red',
                    'Attributes': {'DataObject': {'Latency': [{'region': 'ChinaEast2', 'latency': 70}]}},
                },
                {
                    'Entity': {'Id': 'PLAYER2', 'Type': 'title_player_account'},
                },
            ],
            'RegionPreferences': regions if regions is not None else [],
        }
    return _make
