import logging
import threading
from typing import Optional

from .errors import BridgeError, FlowCancelled
from .models import GameyeMatchRecord

logger = logging.getLogger(__name__)


class MatchQueryFallback:
    """Recovers an allocation by scanning Gameye's match listing.

    Used after a start-match response that does not confirm an allocation.
    A failed or unparseable listing counts as a miss for that attempt.
    """

    def __init__(self, gameye, interval: float = 3, max_attempts: int = 10):
        self.gameye = gameye
        self.interval = interval
        self.max_attempts = max_attempts

    def find(self, match_key: str, cancel_event: threading.Event = None) -> Optional[GameyeMatchRecord]:
        cancel_event = cancel_event or threading.Event()

        for attempt in range(1, self.max_attempts + 1):
            if cancel_event.wait(self.interval):
                raise FlowCancelled(match_key)

            try:
                records = self.gameye.query_matches()
            except BridgeError as e:
                logger.warning(f"Gameye match query {attempt}/{self.max_attempts} for {match_key} failed: {e}")
                continue

            for record in records:
                if record.id == match_key:
                    logger.info(f"Found Gameye server for MatchId {match_key} on query {attempt}")
                    return record

        logger.warning(f"Not Found Gameye server for MatchId {match_key} in {self.max_attempts} queries")
        return None
