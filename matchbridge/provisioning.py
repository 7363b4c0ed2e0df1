"""
Gameye start-match protocol.

Gameye's start-match is not transactional: under allocation pressure a
conflict (409) or an unavailable (503) response is routine. Both are
resolved through the match query rather than surfaced as errors:

- 200: parse the allocation from the body.
- 409: the match key was already accepted; never resend, query instead.
- 503: resend once with the same timeout; if that does not return 200,
  query.
- anything else: query before giving up.
"""
import logging
import threading

from .errors import MalformedResponseError, TransportError
from .gameye_client import HostingResponse, parse_match_record
from .match_query import MatchQueryFallback
from .models import HostingStatus, ProvisioningOutcome, ProvisioningRequest

logger = logging.getLogger(__name__)


class ProvisioningDriver:
    def __init__(
        self,
        gameye,
        fallback: MatchQueryFallback,
        timeout: float = 50,
        recover_unparseable: bool = False
    ):
        self.gameye = gameye
        self.fallback = fallback
        self.timeout = timeout
        self.recover_unparseable = recover_unparseable

    def provision(
        self,
        request: ProvisioningRequest,
        timeout: float = None,
        cancel_event: threading.Event = None
    ) -> ProvisioningOutcome:
        """Drive one provisioning attempt to a terminal outcome.

        A transport error on the first start-match call propagates; every
        other path ends in an outcome.
        """
        timeout = self.timeout if timeout is None else timeout
        match_key = request.match_key
        body = request.to_wire()
        logger.info(f"Gameye startmatch post body: {body}")

        resp = self.gameye.start_match(body, timeout)
        status = resp.status

        if status == HostingStatus.SUCCESS:
            return self._allocation_from(resp, match_key, cancel_event)

        if status == HostingStatus.CONFLICT:
            logger.info(f"Conflict, the matchid {match_key} already be requested")
            return self._recover(match_key, HostingStatus.CONFLICT, resp.status_code, cancel_event)

        if status == HostingStatus.UNAVAILABLE:
            logger.warning(f"Gameye unavailable for {match_key}, re-sending start-match")
            try:
                retry = self.gameye.start_match(body, timeout)
            except TransportError as e:
                logger.warning(f"Start-match retry for {match_key} failed: {e}")
                return self._recover(match_key, HostingStatus.UNAVAILABLE, resp.status_code, cancel_event)

            if retry.status == HostingStatus.SUCCESS:
                return self._allocation_from(retry, match_key, cancel_event)
            logger.warning(f"Start-match retry for {match_key} returned {retry.status_code}")
            return self._recover(match_key, HostingStatus.UNAVAILABLE, retry.status_code, cancel_event)

        logger.warning(f"Start-match for {match_key} returned {resp.status_code}, querying matches")
        return self._recover(match_key, HostingStatus.FAILURE, resp.status_code, cancel_event)

    def _allocation_from(self, resp: HostingResponse, match_key: str, cancel_event) -> ProvisioningOutcome:
        try:
            record = parse_match_record(resp)
        except MalformedResponseError as e:
            if not self.recover_unparseable:
                logger.error(f"Resolve Gameye start match api response error: {e.reason}")
                return ProvisioningOutcome.failed(f"allocation for {match_key} could not be confirmed: {e.reason}")
            logger.warning(f"Unparseable start-match body for {match_key}, querying matches")
            return self._recover(match_key, HostingStatus.SUCCESS, resp.status_code, cancel_event)

        logger.info(
            f"Gameye Server Info - location: {record.location}, host: {record.host}, game port: {record.game_port}"
        )
        return ProvisioningOutcome.allocated(record)

    def _recover(self, match_key: str, recovered_from: HostingStatus, status_code: int, cancel_event) -> ProvisioningOutcome:
        record = self.fallback.find(match_key, cancel_event)
        if record is not None:
            return ProvisioningOutcome.allocated(record, recovered_from=recovered_from)

        if recovered_from == HostingStatus.FAILURE:
            return ProvisioningOutcome.failed(f"start-match returned {status_code}; no allocation found")
        return ProvisioningOutcome.unavailable(
            reason=f"no Gameye server for {match_key} after {self.fallback.max_attempts} queries",
            recovered_from=recovered_from
        )
