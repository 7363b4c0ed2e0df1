"""
PlayFab REST client for server-side matchmaking calls.

Only the calls the bridge needs are wrapped. Every call except
GetEntityToken takes the title entity token explicitly so the owner of the
credential (the service context) decides when to refresh it.
"""
import json
import logging
from typing import Any, Optional

import requests

from .errors import TransportError, MalformedResponseError, BackendError, CredentialExpiredError
from .models import MatchmakingTicket

logger = logging.getLogger(__name__)

# PlayFab error names signalling an expired or revoked entity token
EXPIRED_CREDENTIAL_ERRORS = {'NotAuthenticated', 'EntityTokenExpired', 'EntityTokenInvalid', 'EntityTokenRevoked'}


class PlayFabClient:
    SERVICE = 'playfab'

    def __init__(
        self,
        title_id: str,
        secret_key: str,
        base_url: str = None,
        timeout: float = 10,
        session: requests.Session = None
    ):
        self.title_id = title_id
        self.secret_key = secret_key
        self.base_url = (base_url or f'https://{title_id}.playfabapi.com').rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, operation: str, path: str, payload: dict, headers: dict) -> Any:
        url = f'{self.base_url}/{path}'
        logger.debug(f"PlayFab {operation} request: {json.dumps(payload)}")
        try:
            resp = self.session.request(
                'POST', url,
                json=payload,
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(self.SERVICE, operation, str(e)) from e

        logger.debug(f"PlayFab {operation} response {resp.status_code}: {resp.text}")

        try:
            envelope = resp.json()
        except ValueError as e:
            if resp.status_code == 401:
                raise CredentialExpiredError(self.SERVICE, operation, 401, 'unauthorized') from e
            raise MalformedResponseError(self.SERVICE, operation, f'body is not JSON ({e})') from e

        if not isinstance(envelope, dict):
            raise MalformedResponseError(self.SERVICE, operation, 'body is not a JSON object')

        if resp.status_code != 200:
            error = envelope.get('error') or ''
            message = envelope.get('errorMessage') or resp.reason or error
            if resp.status_code == 401 or error in EXPIRED_CREDENTIAL_ERRORS:
                raise CredentialExpiredError(self.SERVICE, operation, resp.status_code, message)
            raise BackendError(self.SERVICE, operation, resp.status_code, message)

        data = envelope.get('data')
        if not isinstance(data, dict):
            raise MalformedResponseError(self.SERVICE, operation, "missing 'data' object")
        return data

    def _entity_headers(self, entity_token: str) -> dict:
        return {'X-EntityToken': entity_token}

    def get_entity_token(self) -> str:
        """Acquire a title-level entity token using the developer secret key."""
        data = self._post(
            'GetEntityToken',
            'Authentication/GetEntityToken',
            {},
            {'X-SecretKey': self.secret_key}
        )
        entity = data.get('Entity') or {}
        if not entity.get('Id'):
            raise MalformedResponseError(self.SERVICE, 'GetEntityToken', 'entityId should be defined')
        if not entity.get('Type'):
            raise MalformedResponseError(self.SERVICE, 'GetEntityToken', 'entityType should be defined')
        token = data.get('EntityToken')
        if not token:
            raise MalformedResponseError(self.SERVICE, 'GetEntityToken', 'EntityToken should be defined')
        return token

    def create_server_ticket(
        self,
        entity_token: str,
        title_account_id: str,
        queue_name: str,
        data_object: Optional[Any] = None,
        give_up_after_seconds: int = 300
    ) -> str:
        payload = {
            'Members': [
                {
                    'Attributes': {'DataObject': data_object},
                    'Entity': {'Id': title_account_id, 'Type': 'title_player_account'},
                }
            ],
            'GiveUpAfterSeconds': give_up_after_seconds,
            'QueueName': queue_name,
        }
        data = self._post(
            'CreateServerMatchmakingTicket',
            'Match/CreateServerMatchmakingTicket',
            payload,
            self._entity_headers(entity_token)
        )
        ticket_id = data.get('TicketId')
        if not ticket_id:
            raise MalformedResponseError(self.SERVICE, 'CreateServerMatchmakingTicket', 'missing TicketId')
        return ticket_id

    def get_ticket(self, entity_token: str, ticket_id: str, queue_name: str) -> MatchmakingTicket:
        data = self._post(
            'GetMatchmakingTicket',
            'Match/GetMatchmakingTicket',
            {'TicketId': ticket_id, 'QueueName': queue_name, 'EscapeObject': False},
            self._entity_headers(entity_token)
        )
        return MatchmakingTicket.from_playfab(data, queue_name)

    def get_match(
        self,
        entity_token: str,
        match_id: str,
        queue_name: str,
        return_member_attributes: bool = True
    ) -> dict:
        return self._post(
            'GetMatch',
            'Match/GetMatch',
            {
                'MatchId': match_id,
                'QueueName': queue_name,
                'EscapeObject': False,
                'ReturnMemberAttributes': return_member_attributes,
            },
            self._entity_headers(entity_token)
        )
