import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from shared.state_machine import FlowStateMachine
from .errors import BridgeError, FlowCancelled, MatchAlreadyClaimed
from .match_query import MatchQueryFallback
from .match_resolver import MatchResolver
from .models import (
    MatchFoundSignal,
    ProvisioningOutcome,
    ProvisioningRequest,
    StageTiming,
    TicketStatus,
)
from .provisioning import ProvisioningDriver
from .ticket_poller import TicketPoller

logger = logging.getLogger(__name__)


class FlowRecord:
    """Per-flow bookkeeping: stage machine, stage timings and report keys."""

    def __init__(self, match_id: str = None, ticket_id: str = None):
        self.match_id = match_id
        self.ticket_id = ticket_id
        self.claimed = False
        self.machine = FlowStateMachine()
        self.stages: List[StageTiming] = []

    @property
    def key(self) -> str:
        return self.match_id or self.ticket_id

    @contextmanager
    def stage(self, name: str):
        started_at = time.time()
        start = time.monotonic()
        try:
            yield
        finally:
            duration_ms = round((time.monotonic() - start) * 1000, 3)
            self.stages.append(StageTiming(stage=name, started_at=started_at, duration_ms=duration_ms))


class MatchClaims:
    """
    Per-match registry shared by every flow of one orchestrator.

    A flow claims its match id before resolving it. The claim is held while
    the flow runs and for ``ttl`` seconds after it reports, so webhook and
    ticket-watch flows that reach the same match provision and report it
    once.
    """

    def __init__(self, ttl: float = 3600):
        self.ttl = ttl
        # match id -> expiry on the monotonic clock; None while in flight
        self._claims: Dict[str, Optional[float]] = {}
        self._lock = threading.Lock()

    def _purge(self, now: float):
        expired = [m for m, until in self._claims.items() if until is not None and until <= now]
        for match_id in expired:
            del self._claims[match_id]

    def claim(self, match_id: str) -> bool:
        with self._lock:
            self._purge(time.monotonic())
            if match_id in self._claims:
                return False
            self._claims[match_id] = None
            return True

    def release(self, match_id: str):
        with self._lock:
            if self.ttl > 0:
                self._claims[match_id] = time.monotonic() + self.ttl
            else:
                self._claims.pop(match_id, None)

    def is_claimed(self, match_id: str) -> bool:
        with self._lock:
            self._purge(time.monotonic())
            return match_id in self._claims


def _raise_if_cancelled(cancel_event, flow: FlowRecord):
    if cancel_event is not None and cancel_event.is_set():
        raise FlowCancelled(flow.key)


class MatchOrchestrator:
    """
    Runs one flow per trigger: resolve -> map -> provision -> report.

    Retries live only in the provisioning driver. A fatal error in any
    stage ends the flow with a failed outcome. Each match is reported
    exactly once: a flow whose match is already claimed by another flow
    ends without provisioning or reporting and returns None.
    """

    def __init__(
        self,
        context,
        poller: TicketPoller = None,
        resolver: MatchResolver = None,
        driver: ProvisioningDriver = None,
        claims: MatchClaims = None
    ):
        settings = context.settings
        self.context = context
        self.claims = claims or MatchClaims(ttl=settings.get('MATCH_CLAIM_TTL', 3600))
        self.poller = poller or TicketPoller(
            context,
            interval=settings['TICKET_POLL_INTERVAL'],
            max_attempts=settings['TICKET_POLL_MAX_ATTEMPTS']
        )
        self.resolver = resolver or MatchResolver(context)
        self.driver = driver or ProvisioningDriver(
            context.gameye,
            MatchQueryFallback(
                context.gameye,
                interval=settings['MATCH_QUERY_INTERVAL'],
                max_attempts=settings['MATCH_QUERY_MAX_ATTEMPTS']
            ),
            timeout=settings['START_MATCH_TIMEOUT'],
            recover_unparseable=settings.get('RECOVER_UNPARSEABLE_ALLOCATION', False)
        )

    def handle_match_found(
        self,
        signal: MatchFoundSignal,
        cancel_event: threading.Event = None
    ) -> Optional[ProvisioningOutcome]:
        flow = FlowRecord(match_id=signal.match_id)
        logger.info(f"Match found: {signal.match_id} in queue {signal.queue_name}")
        return self._run(flow, lambda: self._provision_match(flow, signal, cancel_event))

    def handle_ticket(
        self,
        ticket_id: str,
        queue_name: str,
        cancel_event: threading.Event = None
    ) -> Optional[ProvisioningOutcome]:
        """Watch a ticket and provision its match once it is matched."""
        flow = FlowRecord(ticket_id=ticket_id)
        return self._run(flow, lambda: self._watch_ticket(flow, ticket_id, queue_name, cancel_event))

    def _watch_ticket(self, flow: FlowRecord, ticket_id: str, queue_name: str, cancel_event) -> ProvisioningOutcome:
        flow.machine.transition('poll')
        with flow.stage('poll'):
            result = self.poller.poll(ticket_id, queue_name, cancel_event=cancel_event)

        if result.timed_out:
            return ProvisioningOutcome.timeout(f"ticket {ticket_id} not matched after {result.attempts} polls")
        if result.status == TicketStatus.TIMED_OUT:
            return ProvisioningOutcome.timeout(f"ticket {ticket_id} timed out in matchmaking")
        if not result.matched or not result.match_id:
            # Canceled, or matched without a MatchId
            return ProvisioningOutcome.failed(f"ticket {ticket_id} ended as {result.status.value}")

        flow.match_id = result.match_id
        signal = MatchFoundSignal(match_id=result.match_id, queue_name=queue_name)
        return self._provision_match(flow, signal, cancel_event)

    def _provision_match(self, flow: FlowRecord, signal: MatchFoundSignal, cancel_event) -> ProvisioningOutcome:
        settings = self.context.settings

        _raise_if_cancelled(cancel_event, flow)
        if not self.claims.claim(signal.match_id):
            raise MatchAlreadyClaimed(signal.match_id)
        flow.claimed = True

        flow.machine.transition('resolve')
        with flow.stage('resolve'):
            match = self.resolver.resolve(signal.match_id, signal.queue_name)

        with flow.stage('map'):
            mapper = self.context.region_mapper
            locations = mapper.map(match.region_preferences)
            dropped = [r for r in match.region_preferences if not mapper.supports(r)]
            if dropped:
                logger.info(f"Regions without a Gameye location for {match.match_id}: {dropped}")
            request = ProvisioningRequest.for_match(
                match,
                locations,
                game_key=settings['GAMEYE_GAME_KEY'],
                template_key=settings['GAMEYE_TEMPLATE_KEY'],
                matchmaking_type=settings.get('MATCHMAKING_TYPE', 4)
            )

        _raise_if_cancelled(cancel_event, flow)
        flow.machine.transition('provision')
        with flow.stage('provision'):
            return self.driver.provision(request, cancel_event=cancel_event)

    def _run(self, flow: FlowRecord, body: Callable[[], ProvisioningOutcome]) -> Optional[ProvisioningOutcome]:
        unexpected: Optional[Exception] = None
        try:
            outcome = body()
        except MatchAlreadyClaimed:
            logger.info(f"Flow {flow.key} stopped: match {flow.match_id} is handled by another flow")
            flow.machine.transition('finish')
            return None
        except FlowCancelled:
            logger.warning(f"Flow {flow.key} cancelled during {flow.machine.state.value}")
            outcome = ProvisioningOutcome.failed("cancelled")
        except BridgeError as e:
            logger.error(f"Flow {flow.key} failed during {flow.machine.state.value}: {e}")
            outcome = ProvisioningOutcome.failed(str(e))
        except Exception as e:
            logger.exception(f"Unexpected error in flow {flow.key}")
            outcome = ProvisioningOutcome.failed(f"unexpected error: {e}")
            unexpected = e

        flow.machine.transition('finish')
        flow.machine.transition('report')
        try:
            self.context.reporter.report(flow.match_id, outcome, flow.stages, ticket_id=flow.ticket_id)
        finally:
            if flow.claimed:
                self.claims.release(flow.match_id)

        if unexpected is not None:
            raise unexpected
        return outcome
