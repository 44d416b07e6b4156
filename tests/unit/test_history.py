"""
Unit тесты для MatchHistoryRecorder.
"""

import asyncio
from datetime import datetime

import pytest

from factories import FakeStore, tie_project, tie_user
from synapse.matching.aggregator import MatchAggregator
from synapse.matching.history import MatchHistoryRecorder, parse_action
from synapse.matching.models import HistoryAction, MatchHistoryEntry


@pytest.fixture
def match():
    return MatchAggregator().calculate(tie_user(), tie_project())


@pytest.mark.unit
class TestHistoryEntry:
    """Формирование записи истории."""

    def test_action_timestamp(self, match):
        now = datetime(2024, 5, 1, 12, 0, 0)

        entry = MatchHistoryEntry.from_match(match, HistoryAction.APPLIED, now=now)

        assert entry.score == match.total_score
        assert entry.match_type is match.match_type
        assert entry.created_at == now
        assert entry.action_at == now

    def test_no_action_no_timestamp(self, match):
        entry = MatchHistoryEntry.from_match(match)

        assert entry.action is HistoryAction.NONE
        assert entry.action_at is None

    def test_details_copied(self, match):
        entry = MatchHistoryEntry.from_match(match)

        assert entry.score_details == match.score_details
        assert entry.score_details is not match.score_details

    def test_record_shape(self, match):
        now = datetime(2024, 5, 1, 12, 0, 0)

        record = MatchHistoryEntry.from_match(match, HistoryAction.VIEWED, now=now).to_record()

        assert record['action'] == 'viewed'
        assert record['matchType'] == 'skill_based'
        assert record['createdAt'] == '2024-05-01T12:00:00'
        assert record['actionAt'] == '2024-05-01T12:00:00'


@pytest.mark.unit
class TestParseAction:

    @pytest.mark.parametrize('value,expected', [
        (HistoryAction.INVESTED, HistoryAction.INVESTED),
        ('applied', HistoryAction.APPLIED),
        (' Dismissed ', HistoryAction.DISMISSED),
        (None, HistoryAction.NONE),
        ('liked', HistoryAction.NONE),
    ])
    def test_parse(self, value, expected):
        assert parse_action(value) is expected


@pytest.mark.unit
class TestRecorder:
    """Тесты записи истории."""

    def test_record_success(self, match):
        store = FakeStore()
        recorder = MatchHistoryRecorder(store)

        assert asyncio.run(recorder.record(match, 'viewed')) is True
        assert len(store.history) == 1
        assert store.history[0].action is HistoryAction.VIEWED
        assert recorder.stats == {'recorded': 1, 'failed': 0}

    def test_record_failure_is_swallowed(self, match):
        recorder = MatchHistoryRecorder(FakeStore(fail_history=True))

        assert asyncio.run(recorder.record(match, 'viewed')) is False
        assert recorder.stats == {'recorded': 0, 'failed': 1}

    def test_unknown_action_recorded_as_none(self, match):
        store = FakeStore()

        asyncio.run(MatchHistoryRecorder(store).record(match, 'bookmarked'))

        assert store.history[0].action is HistoryAction.NONE
        assert store.history[0].action_at is None

    def test_background_and_drain(self, match):
        store = FakeStore()
        recorder = MatchHistoryRecorder(store)

        async def scenario():
            recorder.record_in_background(match, HistoryAction.VIEWED)
            recorder.record_in_background(match, HistoryAction.APPLIED)
            assert recorder.pending_count == 2
            await recorder.drain(timeout=1.0)

        asyncio.run(scenario())

        assert [entry.action for entry in store.history] == [HistoryAction.VIEWED, HistoryAction.APPLIED]
        assert recorder.pending_count == 0

    def test_background_failure_never_raises(self, match):
        recorder = MatchHistoryRecorder(FakeStore(fail_history=True))

        async def scenario():
            task = recorder.record_in_background(match)
            await recorder.drain()
            return task.result()

        assert asyncio.run(scenario()) is False
        assert recorder.stats['failed'] == 1

    def test_drain_without_pending(self):
        recorder = MatchHistoryRecorder(FakeStore())

        asyncio.run(recorder.drain())

        assert recorder.pending_count == 0
