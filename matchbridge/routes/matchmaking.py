import logging
from typing import Optional

from flask import Blueprint, request, jsonify, current_app

from shared.events import ticket_created_event
from matchbridge.errors import BridgeError
from matchbridge.models import MatchFoundSignal
from matchbridge.supervisor import SupervisorClosed

logger = logging.getLogger(__name__)

bp = Blueprint('matchmaking', __name__)


def _bad_request():
    return jsonify({'Status': 'BadRequest'}), 400


def _shutting_down():
    return jsonify({'Status': 'ShuttingDown'}), 503


def _give_up_after_seconds(value) -> Optional[int]:
    """Whole positive seconds from the request, the configured default when absent, None when invalid."""
    if value is None:
        return current_app.config['GIVE_UP_AFTER_SECONDS']
    if isinstance(value, str) and value.strip().isdecimal():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


@bp.route('/CreateSinglePlayerTicket', methods=['POST'])
def create_single_player_ticket():
    """Create a server matchmaking ticket for one player.

    With ``Watch`` set, the ticket is also polled in the background and its
    match provisioned once matched.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get('QueueName') or not data.get('TitleAccountId'):
        return _bad_request()

    queue_name = data['QueueName']
    title_account_id = data['TitleAccountId']
    give_up_after = _give_up_after_seconds(data.get('GiveUpAfterSeconds'))
    if give_up_after is None:
        return _bad_request()

    ctx = current_app.bridge_context
    try:
        ticket_id = ctx.call_playfab(
            lambda token: ctx.playfab.create_server_ticket(
                token,
                title_account_id,
                queue_name,
                data_object=data.get('DataObject'),
                give_up_after_seconds=give_up_after
            )
        )
    except BridgeError as e:
        logger.error(f"CreateServerMatchmakingTicket Error: {e}")
        return jsonify({'Status': 'Error', 'Message': str(e)}), 502

    logger.info(f"CreateServerMatchmakingTicket OK, ticket id: {ticket_id}")
    ctx.reporter.announce(ticket_created_event(ticket_id, queue_name))

    if data.get('Watch'):
        try:
            current_app.supervisor.submit(
                f"ticket:{ticket_id}",
                current_app.orchestrator.handle_ticket,
                ticket_id,
                queue_name,
                watch=True
            )
        except SupervisorClosed:
            return _shutting_down()

    return jsonify({'Status': 'OK', 'TicketId': ticket_id})


@bp.route('/matchfound', methods=['POST'])
def match_found():
    """Acknowledge a match-found notification and provision in the background."""
    signal = MatchFoundSignal.from_payload(request.get_json(silent=True))
    if signal is None:
        return _bad_request()

    try:
        current_app.supervisor.submit(
            f"match:{signal.match_id}",
            current_app.orchestrator.handle_match_found,
            signal
        )
    except SupervisorClosed:
        return _shutting_down()

    return jsonify({'Status': 'OK', 'MatchInfo': signal.to_dict()})
