import json
import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import MalformedResponseError

_WHITESPACE = re.compile(r'\s+')


class TicketStatus(str, Enum):
    CREATED = "Created"
    WAITING_FOR_PLAYERS = "WaitingForPlayers"
    WAITING_FOR_MATCH = "WaitingForMatch"
    WAITING_FOR_SERVER = "WaitingForServer"
    MATCHED = "Matched"
    CANCELED = "Canceled"
    TIMED_OUT = "TimedOut"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_TICKET_STATUSES


TERMINAL_TICKET_STATUSES = frozenset({
    TicketStatus.MATCHED,
    TicketStatus.CANCELED,
    TicketStatus.TIMED_OUT,
})


class HostingStatus(str, Enum):
    """Classification of a start-match HTTP response."""
    SUCCESS = "success"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"
    FAILURE = "failure"

    @classmethod
    def from_status_code(cls, status_code: int) -> "HostingStatus":
        if status_code == 200:
            return cls.SUCCESS
        if status_code == 409:
            return cls.CONFLICT
        if status_code == 503:
            return cls.UNAVAILABLE
        return cls.FAILURE


class OutcomeKind(str, Enum):
    ALLOCATED = "allocated"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass
class MatchFoundSignal:
    match_id: str
    queue_name: str

    @classmethod
    def from_payload(cls, data: dict) -> Optional["MatchFoundSignal"]:
        """Build a signal from a webhook body; None when a field is missing."""
        if not isinstance(data, dict):
            return None
        match_id = data.get('MatchId')
        queue_name = data.get('QueueName')
        if not match_id or not queue_name:
            return None
        return cls(match_id=str(match_id), queue_name=str(queue_name))

    def to_dict(self) -> dict:
        return {"MatchId": self.match_id, "QueueName": self.queue_name}


@dataclass
class MatchmakingTicket:
    id: str
    queue: str
    status: TicketStatus
    match_id: Optional[str] = None
    cancellation_reason: Optional[str] = None

    @classmethod
    def from_playfab(cls, data: dict, queue: str) -> "MatchmakingTicket":
        try:
            status = TicketStatus(data['Status'])
            return cls(
                id=data['TicketId'],
                queue=data.get('QueueName', queue),
                status=status,
                match_id=data.get('MatchId'),
                cancellation_reason=data.get('CancellationReasonString'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError('playfab', 'GetMatchmakingTicket', repr(e))


@dataclass(frozen=True)
class PlayerRef:
    entity_id: str
    entity_type: str
    team_id: Optional[str] = None
    attributes: Optional[Any] = None

    @classmethod
    def from_playfab(cls, data: dict) -> "PlayerRef":
        entity = data['Entity']
        attributes = data.get('Attributes') or {}
        return cls(
            entity_id=entity['Id'],
            entity_type=entity.get('Type', 'title_player_account'),
            team_id=data.get('TeamId'),
            attributes=attributes.get('DataObject'),
        )


@dataclass(frozen=True)
class Match:
    match_id: str
    queue_name: str
    members: tuple = ()
    region_preferences: tuple = ()

    @classmethod
    def from_playfab(cls, data: dict, queue_name: str) -> "Match":
        try:
            return cls(
                match_id=data['MatchId'],
                queue_name=queue_name,
                members=tuple(PlayerRef.from_playfab(m) for m in data.get('Members') or []),
                region_preferences=tuple(data.get('RegionPreferences') or []),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedResponseError('playfab', 'GetMatch', repr(e))


@dataclass(frozen=True)
class ProvisioningRequest:
    match_key: str
    game_key: str
    location_keys: tuple
    template_key: str
    config: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_match(
        cls,
        match: Match,
        location_keys: List[str],
        game_key: str,
        template_key: str,
        matchmaking_type: int = 4
    ) -> "ProvisioningRequest":
        return cls(
            match_key=match.match_id,
            game_key=game_key,
            location_keys=tuple(location_keys),
            template_key=template_key,
            config={
                "MatchmakingType": matchmaking_type,
                "MatchId": match.match_id,
                "QueueName": match.queue_name,
            },
        )

    def to_dict(self) -> dict:
        return {
            "matchKey": self.match_key,
            "gameKey": self.game_key,
            "locationKeys": list(self.location_keys),
            "templateKey": self.template_key,
            "config": dict(self.config),
        }

    def to_wire(self) -> str:
        """Serialize for Gameye start-match.

        Gameye rejects bodies carrying any whitespace, so after compact
        encoding every remaining whitespace character is stripped as well,
        including any inside values.
        """
        body = json.dumps(self.to_dict(), separators=(',', ':'))
        return _WHITESPACE.sub('', body)


@dataclass
class GameyeMatchRecord:
    id: str
    image: str = ''
    location: str = ''
    host: str = ''
    created: int = 0
    game_port: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "GameyeMatchRecord":
        port = data.get('port') or {}
        return cls(
            id=data.get('id') or '',
            image=data.get('image', ''),
            location=data.get('location', ''),
            host=data.get('host', ''),
            created=int(data.get('created') or 0),
            game_port=int(port.get('game') or 0),
        )


@dataclass
class ProvisioningOutcome:
    kind: OutcomeKind
    location: Optional[str] = None
    host: Optional[str] = None
    game_port: Optional[int] = None
    created: Optional[int] = None
    reason: Optional[str] = None
    recovered_from: Optional[HostingStatus] = None

    @classmethod
    def allocated(cls, record: GameyeMatchRecord, recovered_from: HostingStatus = None) -> "ProvisioningOutcome":
        return cls(
            kind=OutcomeKind.ALLOCATED,
            location=record.location,
            host=record.host,
            game_port=record.game_port,
            created=record.created,
            recovered_from=recovered_from,
        )

    @classmethod
    def unavailable(cls, reason: str = None, recovered_from: HostingStatus = None) -> "ProvisioningOutcome":
        return cls(kind=OutcomeKind.UNAVAILABLE, reason=reason, recovered_from=recovered_from)

    @classmethod
    def failed(cls, reason: str) -> "ProvisioningOutcome":
        return cls(kind=OutcomeKind.FAILED, reason=reason)

    @classmethod
    def timeout(cls, reason: str) -> "ProvisioningOutcome":
        return cls(kind=OutcomeKind.TIMEOUT, reason=reason)

    @property
    def is_allocated(self) -> bool:
        return self.kind == OutcomeKind.ALLOCATED

    def to_dict(self) -> dict:
        data = {"kind": self.kind.value}
        for key in ('location', 'host', 'game_port', 'created', 'reason'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.recovered_from is not None:
            data["recovered_from"] = self.recovered_from.value
        return data


@dataclass
class StageTiming:
    stage: str
    started_at: float
    duration_ms: float

    def to_dict(self) -> dict:
        return asdict(self)
