"""
Synapse Matching Service - главный модуль координации.

Объединяет хранилище, Match Aggregator, Recommendation Finder и
Match History Recorder в две операции:

- calculate_score(user_id, project_id) → MatchScore | None
- find_top_matches(user_id, limit, min_score) → List[MatchScore]
"""

import logging
from typing import List, Optional, Union

from synapse.config import FeatureConfig, feature_config
from synapse.logger import MatchLogAdapter
from synapse.matching.aggregator import MatchAggregator, ScoreWeights
from synapse.matching.calculators import DEFAULT_FUNDING_CAPACITY_MULTIPLIER
from synapse.matching.history import MatchHistoryRecorder
from synapse.matching.models import HistoryAction, MatchScore
from synapse.matching.recommender import (
    DEFAULT_CANDIDATE_LIMIT,
    DEFAULT_LIMIT,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MIN_SCORE,
    RecommendationFinder,
    get_candidate_policy,
)

logger = logging.getLogger(__name__)


class MatchingService:
    """
    Сервис матчинга.

    Workflow:
    1. Хранилище отдает снимки пользователя и проектов
    2. MatchAggregator считает score по пяти измерениям
    3. RecommendationFinder фильтрует и ранжирует кандидатов
    4. MatchHistoryRecorder в фоне пишет историю (ошибки только логируются)
    """

    def __init__(
        self,
        store,
        aggregator: Optional[MatchAggregator] = None,
        finder: Optional[RecommendationFinder] = None,
        recorder: Optional[MatchHistoryRecorder] = None,
        history_enabled: bool = True,
        default_deadline: Optional[float] = None
    ):
        """
        Args:
            store: Хранилище (SynapseDB или совместимый объект)
            aggregator: MatchAggregator (по умолчанию - веса по умолчанию)
            finder: RecommendationFinder (по умолчанию строится над store)
            recorder: MatchHistoryRecorder (по умолчанию пишет в store)
            history_enabled: Записывать ли историю
            default_deadline: Дедлайн пакетного скоринга в секундах
        """
        self.store = store
        self.aggregator = aggregator or MatchAggregator()
        self.finder = finder or RecommendationFinder(store, self.aggregator)
        self.recorder = recorder or MatchHistoryRecorder(store)
        self.history_enabled = history_enabled
        self.default_deadline = default_deadline

        self.stats = {
            'scores_calculated': 0,
            'recommendations_served': 0,
            'not_found': 0,
        }

    @classmethod
    def from_config(cls, store, config: Optional[FeatureConfig] = None) -> 'MatchingService':
        """Сборка сервиса по config/features.yaml."""
        config = config or feature_config

        if not config.is_synapse_enabled:
            logger.error("❌ Synapse отключен в config/features.yaml")
            raise RuntimeError("Synapse matching engine disabled in features config")

        matching = config.get_matching_config()
        weights = ScoreWeights.from_dict(matching.get('weights'))
        multiplier = float(matching.get('funding_capacity_multiplier', DEFAULT_FUNDING_CAPACITY_MULTIPLIER))
        aggregator = MatchAggregator(weights=weights, capacity_multiplier=multiplier)

        max_concurrency = int(config.get_limit('max_concurrency', DEFAULT_MAX_CONCURRENCY))
        if not config.is_component_enabled('concurrent_scoring'):
            max_concurrency = 1

        finder = RecommendationFinder(
            store,
            aggregator,
            candidate_policy=get_candidate_policy(matching.get('candidate_policy')),
            candidate_limit=int(config.get_limit('candidate_limit', DEFAULT_CANDIDATE_LIMIT)),
            max_concurrency=max_concurrency,
        )

        deadline = config.get_limit('scoring_deadline_sec')

        logger.info(
            f"✅ MatchingService: weights={weights}, policy={finder.candidate_policy.name}, "
            f"concurrency={max_concurrency}"
        )

        return cls(
            store,
            aggregator=aggregator,
            finder=finder,
            history_enabled=config.is_component_enabled('history_recording'),
            default_deadline=float(deadline) if deadline is not None else None,
        )

    async def calculate_score(
        self,
        user_id: int,
        project_id: int,
        record_action: Union[HistoryAction, str, None] = HistoryAction.VIEWED
    ) -> Optional[MatchScore]:
        """
        Match score пользователя и проекта.

        Args:
            user_id: ID пользователя
            project_id: ID проекта
            record_action: Действие для истории (None - не записывать)

        Returns:
            MatchScore или None если пользователь/проект не найден
        """
        log = MatchLogAdapter(logger, {'user_id': user_id, 'project_id': project_id})

        user = await self.store.get_user_profile(user_id)
        if user is None:
            self.stats['not_found'] += 1
            log.info(f"ℹ️  Пользователь {user_id} не найден - матч недоступен")
            return None

        project = await self.store.get_project_profile(project_id)
        if project is None:
            self.stats['not_found'] += 1
            log.info(f"ℹ️  Проект {project_id} не найден - матч недоступен")
            return None

        match = self.aggregator.calculate(user, project)
        self.stats['scores_calculated'] += 1
        log.info(f"🎯 Score {match.total_score}/100 ({match.match_type.value}): {match.recommendation}")

        if record_action is not None:
            self.record_action(match, record_action)

        return match

    async def find_top_matches(
        self,
        user_id: int,
        limit: int = DEFAULT_LIMIT,
        min_score: float = DEFAULT_MIN_SCORE,
        deadline: Optional[float] = None
    ) -> List[MatchScore]:
        """
        Рекомендации проектов для пользователя (без записи истории).

        Args:
            user_id: ID пользователя
            limit: Максимум результатов (1-50)
            min_score: Минимальный score (0-100)
            deadline: Таймаут скоринга в секундах (по умолчанию из конфига)
        """
        matches = await self.finder.find_top_matches(
            user_id,
            limit=limit,
            min_score=min_score,
            deadline=deadline if deadline is not None else self.default_deadline,
        )
        self.stats['recommendations_served'] += len(matches)
        return matches

    def record_action(
        self,
        match: MatchScore,
        action: Union[HistoryAction, str, None] = HistoryAction.NONE
    ):
        """
        Фоновая запись матча в историю.

        Returns:
            asyncio.Task записи или None если история отключена
        """
        if not self.history_enabled:
            return None
        return self.recorder.record_in_background(match, action)

    async def close(self):
        """Дождаться фоновых записей истории."""
        await self.recorder.drain()
        logger.info(
            f"📊 Статистика: рассчитано {self.stats['scores_calculated']}, "
            f"рекомендаций {self.stats['recommendations_served']}, "
            f"история: {self.recorder.stats['recorded']} ok / {self.recorder.stats['failed']} ошибок"
        )
