"""
Unit tests for data models.
Tests: ProvisioningRequest wire format, HostingStatus, ProvisioningOutcome,
       MatchFoundSignal, MatchmakingTicket and Match parsing, GameyeMatchRecord
"""
import json
import pytest
from matchbridge.errors import MalformedResponseError
from matchbridge.models import (
    GameyeMatchRecord,
    HostingStatus,
    Match,
    MatchFoundSignal,
    MatchmakingTicket,
    OutcomeKind,
    ProvisioningOutcome,
    ProvisioningRequest,
    TicketStatus,
)
from matchbridge.region_mapper import map_regions


class TestProvisioningRequest:
    """Tests for ProvisioningRequest construction and serialization."""

    @pytest.fixture
    def match(self):
        return Match(
            match_id='match-1',
            queue_name='ranked',
            region_preferences=('ChinaEast2', 'ChinaNorth2'),
        )

    @pytest.fixture
    def request_(self, match):
        return ProvisioningRequest.for_match(
            match,
            map_regions(match.region_preferences),
            game_key='my-game',
            template_key='default'
        )

    def test_location_keys_from_regions(self, request_):
        """China regions should become china-east/china-north."""
        assert list(request_.location_keys) == ["china-east", "china-north"]

    def test_wire_has_no_whitespace(self, request_):
        """Serialized body should contain no whitespace characters."""
        body = request_.to_wire()
        assert not any(ch.isspace() for ch in body)

    def test_wire_fields(self, request_):
        """Serialized body should carry the Gameye start-match fields."""
        data = json.loads(request_.to_wire())
        assert data == {
            "matchKey": "match-1",
            "gameKey": "my-game",
            "locationKeys": ["china-east", "china-north"],
            "templateKey": "default",
            "config": {"MatchmakingType": 4, "MatchId": "match-1", "QueueName": "ranked"},
        }

    def test_matchmaking_type_is_numeric(self, request_):
        """The match-type tag should be encoded as a JSON number."""
        assert '"MatchmakingType":4' in request_.to_wire()

    def test_custom_matchmaking_type(self, match):
        """matchmaking_type should be configurable."""
        req = ProvisioningRequest.for_match(match, [], 'g', 't', matchmaking_type=7)
        assert req.config["MatchmakingType"] == 7

    def test_empty_locations(self, match):
        """No mapped region should serialize as an empty array."""
        req = ProvisioningRequest.for_match(match, [], 'g', 't')
        assert '"locationKeys":[]' in req.to_wire()

    def test_whitespace_inside_values_stripped(self):
        """Whitespace inside values is stripped too."""
        match = Match(match_id='m 1', queue_name='casual queue')
        req = ProvisioningRequest.for_match(match, [], 'g', 't')
        data = json.loads(req.to_wire())
        assert data["config"]["QueueName"] == "casualqueue"

    def test_immutable(self, request_):
        """Requests should be frozen."""
        with pytest.raises(AttributeError):
            request_.match_key = 'other'


class TestHostingStatus:
    """Tests for HTTP status classification."""

    @pytest.mark.parametrize("code,expected", [
        (200, HostingStatus.SUCCESS),
        (409, HostingStatus.CONFLICT),
        (503, HostingStatus.UNAVAILABLE),
        (500, HostingStatus.FAILURE),
        (404, HostingStatus.FAILURE),
        (201, HostingStatus.FAILURE),
    ])
    def test_from_status_code(self, code, expected):
        """Only 200/409/503 are distinguished; everything else is failure."""
        assert HostingStatus.from_status_code(code) == expected


class TestProvisioningOutcome:
    """Tests for ProvisioningOutcome constructors and to_dict."""

    def test_allocated(self):
        """allocated should copy location, host, port and created."""
        record = GameyeMatchRecord(id='m', location='eu-west', host='h1', created=5, game_port=7777)
        outcome = ProvisioningOutcome.allocated(record)
        assert outcome.kind == OutcomeKind.ALLOCATED
        assert outcome.is_allocated
        assert outcome.to_dict() == {
            "kind": "allocated", "location": "eu-west", "host": "h1", "game_port": 7777, "created": 5
        }

    def test_allocated_recovered(self):
        """recovered_from should be serialized by value."""
        record = GameyeMatchRecord(id='m', location='eu-west', host='h1', created=5, game_port=7777)
        outcome = ProvisioningOutcome.allocated(record, recovered_from=HostingStatus.CONFLICT)
        assert outcome.to_dict()["recovered_from"] == "conflict"

    def test_failed(self):
        """failed should carry a reason."""
        outcome = ProvisioningOutcome.failed("boom")
        assert outcome.to_dict() == {"kind": "failed", "reason": "boom"}
        assert not outcome.is_allocated

    def test_unavailable_and_timeout(self):
        """unavailable and timeout are distinct kinds."""
        assert ProvisioningOutcome.unavailable().kind == OutcomeKind.UNAVAILABLE
        assert ProvisioningOutcome.timeout("late").kind == OutcomeKind.TIMEOUT


class TestMatchFoundSignal:
    """Tests for webhook payload parsing."""

    def test_valid_payload(self):
        """MatchId and QueueName should be read."""
        signal = MatchFoundSignal.from_payload({"MatchId": "m1", "QueueName": "q"})
        assert signal == MatchFoundSignal(match_id="m1", queue_name="q")
        assert signal.to_dict() == {"MatchId": "m1", "QueueName": "q"}

    @pytest.mark.parametrize("payload", [
        None,
        [],
        {},
        {"MatchId": "m1"},
        {"QueueName": "q"},
        {"MatchId": "", "QueueName": "q"},
    ])
    def test_invalid_payload(self, payload):
        """Missing or empty fields should give None."""
        assert MatchFoundSignal.from_payload(payload) is None


class TestPlayFabParsing:
    """Tests for ticket and match parsing."""

    def test_ticket_matched(self):
        """A matched ticket should expose its MatchId."""
        ticket = MatchmakingTicket.from_playfab(
            {"TicketId": "t1", "Status": "Matched", "MatchId": "m1", "QueueName": "q"}, "q"
        )
        assert ticket.status == TicketStatus.MATCHED
        assert ticket.match_id == "m1"
        assert ticket.status.is_terminal

    def test_ticket_waiting_not_terminal(self):
        """WaitingForMatch is not terminal."""
        ticket = MatchmakingTicket.from_playfab({"TicketId": "t1", "Status": "WaitingForMatch"}, "q")
        assert ticket.queue == "q"
        assert not ticket.status.is_terminal

    @pytest.mark.parametrize("status", ["Exploded", "Failed"])
    def test_ticket_unknown_status(self, status):
        """A status PlayFab does not define should be a malformed response."""
        with pytest.raises(MalformedResponseError):
            MatchmakingTicket.from_playfab({"TicketId": "t1", "Status": status}, "q")

    def test_match_parsing(self, match_payload):
        """Members and region preferences should be parsed in order."""
        match = Match.from_playfab(match_payload(regions=["ChinaEast2", "WestEurope"]), "ranked")
        assert match.match_id == "match-1"
        assert [m.entity_id for m in match.members] == ["PLAYER1", "PLAYER2"]
        assert match.members[0].team_id == "red"
        assert match.members[0].attributes == {'Latency': [{'region': 'ChinaEast2', 'latency': 70}]}
        assert match.region_preferences == ("ChinaEast2", "WestEurope")

    def test_match_missing_id(self):
        """A match without MatchId should be malformed."""
        with pytest.raises(MalformedResponseError):
            Match.from_playfab({"Members": []}, "ranked")

    def test_match_bad_member(self):
        """A member without Entity should be malformed."""
        with pytest.raises(MalformedResponseError):
            Match.from_playfab({"MatchId": "m", "Members": [{"TeamId": "x"}]}, "ranked")


class TestGameyeMatchRecord:
    """Tests for Gameye record parsing."""

    def test_from_dict(self):
        """Port should be read from port.game."""
        record = GameyeMatchRecord.from_dict({
            "id": "m1", "image": "img", "location": "eu-west",
            "host": "h1", "created": 1234, "port": {"game": 7777}
        })
        assert record == GameyeMatchRecord(
            id="m1", image="img", location="eu-west", host="h1", created=1234, game_port=7777
        )

    def test_missing_optional_fields(self):
        """Missing fields should default."""
        record = GameyeMatchRecord.from_dict({"location": "eu-west"})
        assert record.id == ''
        assert record.game_port == 0
