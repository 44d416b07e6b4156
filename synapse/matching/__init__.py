"""
Matching & Recommendation Engine.

Скоринг совместимости пользователя и проекта (0-100):
- Skill (40%), Investment (25%), Stage (15%), Interest (15%), Engagement (5%)
- Match type по роли пользователя и уровень рекомендации по итоговому score
- Пакетный поиск топ-N проектов и append-only история матчинга

Enable via: config/features.yaml → synapse.enabled: true
"""

from .aggregator import MatchAggregator, ScoreWeights, match_type_for_role, recommendation_for
from .history import MatchHistoryRecorder
from .models import (
    HistoryAction,
    MatchHistoryEntry,
    MatchScore,
    MatchType,
    ProjectProfile,
    ProjectStage,
    Proficiency,
    TeamRequirement,
    UserProfile,
    UserRole,
    UserSkill,
)
from .recommender import (
    ActiveOpenProjectsPolicy,
    ActiveSeekingTeamPolicy,
    CandidatePolicy,
    RecommendationFinder,
    get_candidate_policy,
)

__all__ = [
    'MatchAggregator',
    'ScoreWeights',
    'match_type_for_role',
    'recommendation_for',
    'MatchHistoryRecorder',
    'RecommendationFinder',
    'CandidatePolicy',
    'ActiveSeekingTeamPolicy',
    'ActiveOpenProjectsPolicy',
    'get_candidate_policy',
    'HistoryAction',
    'MatchHistoryEntry',
    'MatchScore',
    'MatchType',
    'ProjectProfile',
    'ProjectStage',
    'Proficiency',
    'TeamRequirement',
    'UserProfile',
    'UserRole',
    'UserSkill',
]
