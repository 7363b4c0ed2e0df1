"""
Unit tests for MatchQueryFallback.
"""
import threading
import pytest
from matchbridge.errors import BackendError, FlowCancelled, MalformedResponseError, TransportError
from matchbridge.match_query import MatchQueryFallback


class TestFind:
    """Tests for find."""

    def test_found_on_first_query(self, gameye, make_record):
        """A matching record should end polling immediately."""
        gameye.query_matches.return_value = [make_record('other'), make_record('match-1')]

        record = MatchQueryFallback(gameye, interval=0, max_attempts=10).find('match-1')

        assert record.id == 'match-1'
        assert gameye.query_matches.call_count == 1

    def test_found_after_misses(self, gameye, make_record):
        """Polling should continue until the record appears."""
        gameye.query_matches.side_effect = [[], [make_record('other')], [make_record('match-1')]]

        record = MatchQueryFallback(gameye, interval=0, max_attempts=10).find('match-1')

        assert record.id == 'match-1'
        assert gameye.query_matches.call_count == 3

    def test_budget_exhausted(self, gameye, make_record):
        """No match within the budget should return None after max_attempts queries."""
        gameye.query_matches.return_value = [make_record('other')]

        record = MatchQueryFallback(gameye, interval=0, max_attempts=4).find('match-1')

        assert record is None
        assert gameye.query_matches.call_count == 4

    @pytest.mark.parametrize("error", [
        TransportError('gameye', 'query-match', 'timeout'),
        BackendError('gameye', 'query-match', 500, 'Internal Server Error'),
        MalformedResponseError('gameye', 'query-match', 'bad json'),
    ])
    def test_failed_query_counts_as_miss(self, gameye, make_record, error):
        """A failed listing should be skipped, not fatal."""
        gameye.query_matches.side_effect = [error, [make_record('match-1')]]

        record = MatchQueryFallback(gameye, interval=0, max_attempts=3).find('match-1')

        assert record.id == 'match-1'
        assert gameye.query_matches.call_count == 2

    def test_cancelled(self, gameye):
        """A set cancel event should stop querying."""
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(FlowCancelled):
            MatchQueryFallback(gameye, interval=0, max_attempts=3).find('match-1', cancel_event=cancel)

        gameye.query_matches.assert_not_called()
