import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .errors import FlowCancelled
from .models import TicketStatus

logger = logging.getLogger(__name__)


@dataclass
class TicketPollResult:
    status: TicketStatus
    attempts: int
    match_id: Optional[str] = None
    timed_out: bool = False

    @property
    def matched(self) -> bool:
        return self.status == TicketStatus.MATCHED and not self.timed_out


class TicketPoller:
    """Polls a matchmaking ticket on a fixed interval until it resolves.

    Each attempt waits ``interval`` seconds first, like a ticker, so the
    poll rate never exceeds one per interval. Transport errors are not
    retried here.
    """

    def __init__(self, context, interval: float = 6, max_attempts: int = 50):
        self.context = context
        self.interval = interval
        self.max_attempts = max_attempts

    def poll(
        self,
        ticket_id: str,
        queue: str,
        interval: float = None,
        max_attempts: int = None,
        cancel_event: threading.Event = None
    ) -> TicketPollResult:
        interval = self.interval if interval is None else interval
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        cancel_event = cancel_event or threading.Event()

        status = TicketStatus.CREATED
        for attempt in range(1, max_attempts + 1):
            if cancel_event.wait(interval):
                raise FlowCancelled(ticket_id)

            ticket = self.context.call_playfab(
                lambda token: self.context.playfab.get_ticket(token, ticket_id, queue)
            )
            status = ticket.status
            logger.info(f"Ticket {ticket_id} status after poll {attempt}: {status.value}")

            if status.is_terminal:
                if status == TicketStatus.MATCHED:
                    logger.info(f"Ticket {ticket_id} matched, MatchId: {ticket.match_id}")
                return TicketPollResult(status=status, attempts=attempt, match_id=ticket.match_id)

        logger.warning(f"Ticket {ticket_id} still {status.value} after {max_attempts} polls")
        return TicketPollResult(status=status, attempts=max_attempts, timed_out=True)
