"""
Match Aggregator.

Объединяет пять под-оценок через веса в итоговый score 0-100,
выбирает match type по роли пользователя и формирует рекомендацию.
"""

import logging
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from synapse.matching.calculators import (
    DEFAULT_FUNDING_CAPACITY_MULTIPLIER,
    calculate_engagement_score,
    calculate_interest_score,
    calculate_investment_score,
    calculate_skill_score,
    calculate_stage_score,
    clamp_score,
)
from synapse.matching.models import (
    DimensionResult,
    MatchScore,
    MatchType,
    ProjectProfile,
    UserProfile,
    UserRole,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreWeights:
    """Веса измерений в итоговом score."""
    skill: float = 0.40
    investment: float = 0.25
    stage: float = 0.15
    interest: float = 0.15
    engagement: float = 0.05

    def __post_init__(self):
        for name, value in asdict(self).items():
            if value is None or value < 0:
                raise ValueError(f"Weight '{name}' must be non-negative, got {value!r}")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ScoreWeights':
        """Создание из секции конфига matching.weights (недостающие = default)."""
        if not data:
            return cls()
        defaults = asdict(cls())
        unknown = set(data) - set(defaults)
        if unknown:
            logger.warning(f"⚠️ Неизвестные веса в конфиге игнорируются: {sorted(unknown)}")
        values = {key: float(data.get(key, default)) for key, default in defaults.items()}
        return cls(**values)


DEFAULT_WEIGHTS = ScoreWeights()


# Пороги рекомендаций (проверяются сверху вниз)
RECOMMENDATION_TIERS = [
    (80, "Excellent match - highly recommended"),
    (60, "Good match - consider this opportunity"),
    (40, "Fair match - could be worth exploring"),
]
LIMITED_MATCH = "Limited match - may require additional consideration"


def round_score(value: float) -> int:
    """Округление до целого (half-up), как в API платформы."""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def recommendation_for(total_score: float) -> str:
    for threshold, message in RECOMMENDATION_TIERS:
        if total_score >= threshold:
            return message
    return LIMITED_MATCH


def match_type_for_role(role: Optional[UserRole]) -> MatchType:
    """Match type определяется ролью, а не значениями score."""
    if role is UserRole.FREELANCER:
        return MatchType.SKILL_BASED
    if role is UserRole.INVESTOR:
        return MatchType.INVESTMENT_BASED
    if role is UserRole.FOUNDER or role is UserRole.COLLABORATOR:
        return MatchType.STAGE_BASED
    return MatchType.INTEREST_BASED


def combine_scores(
    skill: float,
    investment: float,
    stage: float,
    interest: float,
    engagement: float,
    weights: ScoreWeights = DEFAULT_WEIGHTS
) -> int:
    """Взвешенная сумма под-оценок, округленная и нормализованная в 0-100."""
    total = (
        skill * weights.skill
        + investment * weights.investment
        + stage * weights.stage
        + interest * weights.interest
        + engagement * weights.engagement
    )
    return int(clamp_score(round_score(total)))


class MatchAggregator:
    """
    Агрегатор match score.

    Чистая функция над снимками пользователя и проекта: без побочных
    эффектов и скрытого состояния.
    """

    def __init__(
        self,
        weights: Optional[ScoreWeights] = None,
        capacity_multiplier: float = DEFAULT_FUNDING_CAPACITY_MULTIPLIER
    ):
        self.weights = weights or DEFAULT_WEIGHTS
        self.capacity_multiplier = capacity_multiplier

    def calculate(self, user: UserProfile, project: ProjectProfile) -> MatchScore:
        """
        Расчет match score пользователя и проекта.

        Args:
            user: Снимок пользователя (с навыками)
            project: Снимок проекта (с требованиями к команде)

        Returns:
            MatchScore
        """
        results: Dict[str, DimensionResult] = {
            'skill': calculate_skill_score(user.skills, project.team_requirements),
            'investment': calculate_investment_score(user, project, self.capacity_multiplier),
            'stage': calculate_stage_score(user, project),
            'interest': calculate_interest_score(user, project),
            'engagement': calculate_engagement_score(user),
        }

        # Ключи деталей с префиксом калькулятора, чтобы избежать коллизий ('final' и т.п.)
        score_details: Dict[str, float] = {}
        for dimension, result in results.items():
            for key, value in result.details.items():
                score_details[f'{dimension}.{key}'] = value

        sub_scores = {
            dimension: round_score(clamp_score(result.score))
            for dimension, result in results.items()
        }

        # Итог считается от округленных под-оценок, которые несет MatchScore
        total_score = combine_scores(
            sub_scores['skill'],
            sub_scores['investment'],
            sub_scores['stage'],
            sub_scores['interest'],
            sub_scores['engagement'],
            self.weights,
        )

        for dimension, value in sub_scores.items():
            score_details[f'{dimension}Score'] = value
        score_details['totalScore'] = total_score

        match = MatchScore(
            user_id=user.id,
            project_id=project.id,
            total_score=total_score,
            skill_score=sub_scores['skill'],
            investment_score=sub_scores['investment'],
            stage_score=sub_scores['stage'],
            interest_score=sub_scores['interest'],
            engagement_score=sub_scores['engagement'],
            score_details=score_details,
            match_type=match_type_for_role(user.role),
            recommendation=recommendation_for(total_score),
        )

        logger.debug(
            f"   🎯 user={user.id} project={project.id} score={total_score}/100 ({match.match_type.value})"
        )
        return match
