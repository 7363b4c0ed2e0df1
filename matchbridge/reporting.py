import json
import logging
from typing import List, Optional

import redis

from shared.events import Event, provisioning_outcome_event
from shared.pubsub import PubSubClient
from .models import ProvisioningOutcome, StageTiming

logger = logging.getLogger(__name__)


class OutcomeReporter:
    """
    Publishes the terminal outcome of each flow.

    The record is always logged. With a PubSubClient it is also published
    on the outcome channel and stored under provisioning:<match_id>, or
    provisioning:ticket:<ticket_id> for a ticket that never matched. A Redis
    failure is logged and does not turn a finished flow into a failed one.
    """

    def __init__(self, pubsub: Optional[PubSubClient] = None):
        self.pubsub = pubsub
        if pubsub is None:
            logger.info("OutcomeReporter running without Redis (log only)")

    def report(
        self,
        match_id: str,
        outcome: ProvisioningOutcome,
        stages: List[StageTiming],
        ticket_id: str = None
    ) -> Event:
        event = provisioning_outcome_event(
            match_id,
            outcome.to_dict(),
            [s.to_dict() for s in stages]
        )
        if ticket_id:
            event.data["ticket_id"] = ticket_id

        logger.info(f"Provisioning outcome: {json.dumps(event.to_dict())}")

        if self.pubsub is not None:
            try:
                self.pubsub.publish_outcome(event)
                self.pubsub.store_outcome(match_id or f"ticket:{ticket_id}", event)
            except redis.exceptions.RedisError as e:
                logger.error(f"Failed to publish outcome for {match_id or ticket_id}: {e}")
        return event

    def announce(self, event: Event):
        logger.info(f"Announcement: {event.to_json()}")
        if self.pubsub is not None:
            try:
                self.pubsub.publish_announcement(event)
            except redis.exceptions.RedisError as e:
                logger.error(f"Failed to publish announcement {event.type.value}: {e}")
