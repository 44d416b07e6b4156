"""
Unit тесты для CLI парсера.
"""

import pytest

from main import build_parser, run_recommend, run_score


@pytest.mark.unit
class TestParser:

    def test_recommend(self):
        args = build_parser().parse_args(['recommend', '42', '--limit', '5', '--min-score', '60'])

        assert args.user_id == 42
        assert args.limit == 5
        assert args.min_score == 60
        assert args.deadline is None
        assert args.handler is run_recommend

    def test_score_defaults(self):
        args = build_parser().parse_args(['score', '42', '7'])

        assert (args.user_id, args.project_id) == (42, 7)
        assert args.action == 'viewed'
        assert args.no_history is False
        assert args.handler is run_score

    def test_invalid_action(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['score', '1', '2', '--action', 'liked'])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
