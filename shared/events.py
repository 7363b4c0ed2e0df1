from enum import Enum
from dataclasses import dataclass
from datetime import datetime
import json


class EventType(str, Enum):
    # Announcements
    TICKET_CREATED = "ticket.created"

    # Terminal provisioning outcomes
    SERVER_ALLOCATED = "provisioning.allocated"
    SERVER_UNAVAILABLE = "provisioning.unavailable"
    PROVISIONING_FAILED = "provisioning.failed"
    MATCHMAKING_TIMEOUT = "provisioning.timeout"


@dataclass
class Event:
    type: EventType
    match_id: str
    timestamp: str = None
    data: dict = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow().isoformat() + "Z"
        if self.data is None:
            self.data = {}

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "match_id": self.match_id,
            "timestamp": self.timestamp,
            "data": self.data
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


OUTCOME_EVENT_TYPES = {
    "allocated": EventType.SERVER_ALLOCATED,
    "unavailable": EventType.SERVER_UNAVAILABLE,
    "failed": EventType.PROVISIONING_FAILED,
    "timeout": EventType.MATCHMAKING_TIMEOUT,
}


def provisioning_outcome_event(match_id: str, outcome: dict, stages: list) -> Event:
    return Event(
        type=OUTCOME_EVENT_TYPES[outcome["kind"]],
        match_id=match_id,
        data={
            "outcome": outcome,
            "stages": stages
        }
    )


def ticket_created_event(ticket_id: str, queue_name: str) -> Event:
    return Event(
        type=EventType.TICKET_CREATED,
        match_id="",
        data={
            "ticket_id": ticket_id,
            "queue_name": queue_name
        }
    )
