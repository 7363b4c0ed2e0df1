"""
Gameye REST client.

start_match hands back the raw response because its status code drives
the provisioning protocol; query_matches parses the listing.
"""
import json
import logging
from dataclasses import dataclass
from typing import List

import requests

from .errors import TransportError, MalformedResponseError, BackendError
from .models import GameyeMatchRecord, HostingStatus

logger = logging.getLogger(__name__)


@dataclass
class HostingResponse:
    status_code: int
    body: bytes
    reason: str = ''

    @property
    def status(self) -> HostingStatus:
        return HostingStatus.from_status_code(self.status_code)


class GameyeClient:
    SERVICE = 'gameye'

    def __init__(
        self,
        base_url: str,
        token: str,
        query_timeout: float = 10,
        session: requests.Session = None
    ):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.query_timeout = query_timeout
        self.session = session or requests.Session()

    def _request(self, operation: str, method: str, path: str, data: str = None, timeout: float = None) -> HostingResponse:
        headers = {
            'Authorization': f'Bearer {self.token}',
            'Content-Type': 'application/json',
        }
        try:
            resp = self.session.request(
                method,
                f'{self.base_url}/{path}',
                data=data.encode('utf-8') if data is not None else None,
                headers=headers,
                timeout=timeout
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(self.SERVICE, operation, str(e)) from e

        logger.debug(f"Gameye {path} response status: {resp.status_code} {resp.reason}, headers: {dict(resp.headers)}")
        logger.debug(f"Gameye {path} response body: {resp.text}")
        return HostingResponse(status_code=resp.status_code, body=resp.content, reason=resp.reason or '')

    def start_match(self, body: str, timeout: float) -> HostingResponse:
        return self._request('start-match', 'POST', 'command/start-match', data=body, timeout=timeout)

    def query_matches(self) -> List[GameyeMatchRecord]:
        resp = self._request('query-match', 'GET', 'query/match', timeout=self.query_timeout)
        if resp.status_code != 200:
            raise BackendError(self.SERVICE, 'query-match', resp.status_code, resp.reason)
        return parse_match_listing(resp)


def parse_match_record(resp: HostingResponse) -> GameyeMatchRecord:
    """Parse a start-match success body."""
    try:
        return GameyeMatchRecord.from_dict(json.loads(resp.body))
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise MalformedResponseError('gameye', 'start-match', repr(e)) from e


def parse_match_listing(resp: HostingResponse) -> List[GameyeMatchRecord]:
    try:
        listing = json.loads(resp.body)
        return [GameyeMatchRecord.from_dict(m) for m in listing.get('match') or []]
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise MalformedResponseError('gameye', 'query-match', repr(e)) from e
