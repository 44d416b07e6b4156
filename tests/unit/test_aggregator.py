"""
Unit тесты для MatchAggregator.

Тестируем:
- Взвешенную сумму под-оценок
- Match type по роли
- Пороги рекомендаций
- Детализацию score_details
- Валидацию весов
"""

import pytest

from factories import make_project, make_user, tie_project, tie_user
from synapse.matching.aggregator import (
    DEFAULT_WEIGHTS,
    LIMITED_MATCH,
    MatchAggregator,
    ScoreWeights,
    combine_scores,
    match_type_for_role,
    recommendation_for,
    round_score,
)
from synapse.matching.models import MatchType, UserRole


@pytest.mark.unit
class TestCombineScores:
    """Тесты взвешенной суммы."""

    def test_default_weights(self):
        # 80*0.40 + 60*0.25 + 90*0.15 + 70*0.15 + 60*0.05 = 74
        assert combine_scores(80, 60, 90, 70, 60) == 74
        # 100*0.40 + 90*0.05 = 44.5 → 45
        assert combine_scores(100, 0, 0, 0, 90) == 45

    def test_all_max(self):
        assert combine_scores(100, 100, 100, 100, 100) == 100

    def test_all_zero(self):
        assert combine_scores(0, 0, 0, 0, 0) == 0

    def test_heavy_weights_clamped(self):
        weights = ScoreWeights(skill=1, investment=1, stage=1, interest=1, engagement=1)

        assert combine_scores(100, 100, 100, 100, 100, weights) == 100

    def test_round_half_up(self):
        assert round_score(71.5) == 72
        assert round_score(72.5) == 73
        assert round_score(0.49) == 0


@pytest.mark.unit
class TestMatchType:
    """Match type зависит только от роли."""

    @pytest.mark.parametrize('role,expected', [
        (UserRole.FREELANCER, MatchType.SKILL_BASED),
        (UserRole.INVESTOR, MatchType.INVESTMENT_BASED),
        (UserRole.FOUNDER, MatchType.STAGE_BASED),
        (UserRole.COLLABORATOR, MatchType.STAGE_BASED),
        (None, MatchType.INTEREST_BASED),
    ])
    def test_role_mapping(self, role, expected):
        assert match_type_for_role(role) is expected


@pytest.mark.unit
class TestRecommendation:
    """Пороги текстовой рекомендации."""

    @pytest.mark.parametrize('score,prefix', [
        (100, 'Excellent'),
        (80, 'Excellent'),
        (79, 'Good'),
        (60, 'Good'),
        (59, 'Fair'),
        (40, 'Fair'),
    ])
    def test_tiers(self, score, prefix):
        assert recommendation_for(score).startswith(prefix)

    def test_limited(self):
        assert recommendation_for(39) == LIMITED_MATCH
        assert recommendation_for(0) == LIMITED_MATCH


@pytest.mark.unit
class TestMatchAggregator:
    """Тесты полного расчета MatchScore."""

    def test_total_is_weighted_sum_of_sub_scores(self):
        match = MatchAggregator().calculate(tie_user(), tie_project())

        assert match.skill_score == 95
        assert match.investment_score == 0
        assert match.stage_score == 100
        assert match.interest_score == 95
        assert match.engagement_score == 92
        assert match.total_score == 72

        expected = combine_scores(
            match.skill_score,
            match.investment_score,
            match.stage_score,
            match.interest_score,
            match.engagement_score,
        )
        assert match.total_score == expected

    def test_identity_and_recommendation(self):
        match = MatchAggregator().calculate(tie_user(), tie_project(id=555))

        assert match.user_id == 1
        assert match.project_id == 555
        assert match.match_type is MatchType.SKILL_BASED
        assert match.recommendation == "Good match - consider this opportunity"

    def test_deterministic(self):
        aggregator = MatchAggregator()
        user, project = tie_user(), tie_project()

        assert aggregator.calculate(user, project) == aggregator.calculate(user, project)

    def test_founder_gets_zero_investment(self):
        user = make_user(role=UserRole.FOUNDER, earnings=10_000_000)
        project = make_project(seeking_investment=True, total_investment_needed=100_000)

        match = MatchAggregator().calculate(user, project)

        assert match.investment_score == 0
        assert match.score_details['investment.notInvestor'] == 0
        assert match.match_type is MatchType.STAGE_BASED

    def test_details_are_namespaced(self):
        match = MatchAggregator().calculate(tie_user(), tie_project())
        details = match.score_details

        assert details['skill.skill_1'] == 85
        assert details['skill.coverage'] == 100
        assert details['stage.collaborationBonus'] == 10
        assert details['interest.userTypeBonus'] == 15
        assert details['engagement.activity'] == 40
        assert details['skillScore'] == 95
        assert details['totalScore'] == 72
        # 'final' каждого калькулятора не перезаписывается
        assert details['skill.final'] == 95
        assert details['interest.final'] == 95

    def test_scores_in_range(self):
        match = MatchAggregator().calculate(make_user(role=None, level=0), make_project(stage=None))

        for value in (
            match.total_score,
            match.skill_score,
            match.investment_score,
            match.stage_score,
            match.interest_score,
            match.engagement_score,
        ):
            assert 0 <= value <= 100

    def test_custom_weights(self):
        weights = ScoreWeights(skill=1.0, investment=0, stage=0, interest=0, engagement=0)

        match = MatchAggregator(weights=weights).calculate(tie_user(), tie_project())

        assert match.total_score == 95

    def test_to_dict_is_camel_case(self):
        data = MatchAggregator().calculate(tie_user(), tie_project()).to_dict()

        assert data['totalScore'] == 72
        assert data['matchType'] == 'skill_based'
        assert data['scoreDetails']['skillScore'] == 95


@pytest.mark.unit
class TestScoreWeights:
    """Валидация весов."""

    def test_defaults(self):
        assert DEFAULT_WEIGHTS.skill == 0.40
        assert DEFAULT_WEIGHTS.investment == 0.25
        assert DEFAULT_WEIGHTS.stage == 0.15
        assert DEFAULT_WEIGHTS.interest == 0.15
        assert DEFAULT_WEIGHTS.engagement == 0.05

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            ScoreWeights(skill=-0.1)

    def test_from_dict_partial(self):
        weights = ScoreWeights.from_dict({'skill': 0.5, 'bogus': 1})

        assert weights.skill == 0.5
        assert weights.investment == 0.25

    def test_from_dict_empty(self):
        assert ScoreWeights.from_dict(None) == DEFAULT_WEIGHTS
