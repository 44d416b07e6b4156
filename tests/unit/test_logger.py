"""
Unit тесты для логирования и retry.
"""

import asyncio
import json
import logging

import pytest
from sqlalchemy.exc import OperationalError

from synapse.logger import (
    HumanReadableFormatter,
    MatchLogAdapter,
    StructuredFormatter,
    record_context,
    setup_logging,
)
from synapse.retry import RetryPolicy, is_transient_error, retry_transient


def make_record(**extra):
    record = logging.LogRecord(
        name='synapse.service', level=logging.INFO, pathname=__file__, lineno=10,
        msg='Score %s', args=(72,), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestFormatters:

    def test_json_output(self):
        data = json.loads(StructuredFormatter().format(make_record(user_id=1, project_id=2)))

        assert data['level'] == 'INFO'
        assert data['logger'] == 'synapse.service'
        assert data['message'] == 'Score 72'
        assert data['context'] == {'user_id': 1, 'project_id': 2}

    def test_json_without_context(self):
        data = json.loads(StructuredFormatter().format(make_record()))

        assert 'context' not in data

    def test_human_output(self):
        line = HumanReadableFormatter().format(make_record(user_id=1))

        assert 'INFO' in line
        assert line.endswith('synapse.service: Score 72 [user_id=1]')

    def test_record_context_ignores_standard_fields(self):
        record = make_record(project_id=7)
        record.getMessage()

        assert record_context(record) == {'project_id': 7}


@pytest.mark.unit
class TestMatchLogAdapter:

    def test_adds_context(self):
        adapter = MatchLogAdapter(logging.getLogger('test'), {'user_id': 5})

        msg, kwargs = adapter.process('hello', {})

        assert msg == 'hello'
        assert kwargs['extra'] == {'user_id': 5}

    def test_call_extra_wins(self):
        adapter = MatchLogAdapter(logging.getLogger('test'), {'user_id': 5, 'project_id': 1})

        _, kwargs = adapter.process('hello', {'extra': {'project_id': 2}})

        assert kwargs['extra'] == {'user_id': 5, 'project_id': 2}


@pytest.mark.unit
class TestSetupLogging:

    def test_handlers_and_levels(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level

        try:
            setup_logging(level='debug', use_json=True, log_file=tmp_path / 'synapse.log')

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 2
            assert all(isinstance(h.formatter, StructuredFormatter) for h in root.handlers)
            assert logging.getLogger('sqlalchemy.engine').level == logging.WARNING
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_unknown_level_falls_back_to_info(self):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level

        try:
            setup_logging(level='chatty', use_json=False, log_file='')

            assert root.level == logging.INFO
            assert isinstance(root.handlers[0].formatter, HumanReadableFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


@pytest.mark.unit
class TestRetry:

    def test_delays(self):
        policy = RetryPolicy(attempts=4, initial_delay=1.0, backoff_factor=3.0, max_delay=5.0)

        assert list(policy.delays()) == [1.0, 3.0, 5.0]

    def test_transient_errors(self):
        assert is_transient_error(OperationalError('SELECT 1', {}, Exception('locked')))
        assert is_transient_error(ConnectionError('reset'))
        assert not is_transient_error(ValueError('bug'))

    def test_retries_then_succeeds(self):
        calls = []

        @retry_transient(RetryPolicy(attempts=3, initial_delay=0))
        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("temporary")
            return 'ok'

        assert asyncio.run(flaky()) == 'ok'
        assert len(calls) == 3

    def test_gives_up(self):
        calls = []

        @retry_transient(RetryPolicy(attempts=2, initial_delay=0))
        async def broken():
            calls.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            asyncio.run(broken())
        assert len(calls) == 2

    def test_other_errors_not_retried(self):
        calls = []

        @retry_transient(RetryPolicy(attempts=3, initial_delay=0))
        async def bad():
            calls.append(1)
            raise ValueError("bug")

        with pytest.raises(ValueError):
            asyncio.run(bad())
        assert len(calls) == 1
