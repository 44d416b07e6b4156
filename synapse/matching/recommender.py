"""
Recommendation Finder.

Пакетный скоринг открытых проектов для одного пользователя:
кандидаты → MatchAggregator → фильтр по min_score → сортировка → топ-N.
"""

import asyncio
import logging
from typing import Any, List, Optional, Protocol, Sequence

from sqlalchemy import or_

from synapse.matching.aggregator import MatchAggregator
from synapse.matching.models import MatchScore, ProjectProfile, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 50
DEFAULT_MIN_SCORE = 40
DEFAULT_CANDIDATE_LIMIT = 100
DEFAULT_MAX_CONCURRENCY = 10


# ============================================
# CANDIDATE POLICIES
# ============================================

class CandidatePolicy:
    """
    Политика отбора проектов-кандидатов.

    conditions() отдает SQL условия для хранилища на SQLAlchemy,
    accepts() - та же проверка над снимком проекта. RecommendationFinder
    повторно применяет accepts() к тому, что вернуло хранилище, поэтому
    хранилищу без SQL (in-memory, кэш) достаточно accepts().
    """

    name = 'base'

    def conditions(self, model) -> list:
        raise NotImplementedError

    def accepts(self, project: ProjectProfile) -> bool:
        raise NotImplementedError


class ActiveSeekingTeamPolicy(CandidatePolicy):
    """Активные проекты, которые ищут команду (политика продукта по умолчанию)."""

    name = 'active_seeking_team'

    def conditions(self, model) -> list:
        return [model.status == 'active', model.seeking_team.is_(True)]

    def accepts(self, project: ProjectProfile) -> bool:
        return project.status == 'active' and project.seeking_team


class ActiveOpenProjectsPolicy(CandidatePolicy):
    """
    Активные проекты с любым открытым флагом: команда, инвестиции
    или коллаборация. Включает проекты, которые ищут только инвестиции.
    """

    name = 'active_open'

    def conditions(self, model) -> list:
        return [
            model.status == 'active',
            or_(
                model.seeking_team.is_(True),
                model.seeking_investment.is_(True),
                model.open_for_collaboration.is_(True),
            ),
        ]

    def accepts(self, project: ProjectProfile) -> bool:
        return project.status == 'active' and (
            project.seeking_team or project.seeking_investment or project.open_for_collaboration
        )


CANDIDATE_POLICIES = {
    ActiveSeekingTeamPolicy.name: ActiveSeekingTeamPolicy,
    ActiveOpenProjectsPolicy.name: ActiveOpenProjectsPolicy,
}


def get_candidate_policy(name: Optional[str]) -> CandidatePolicy:
    """Политика по имени из конфига; неизвестное имя → политика по умолчанию."""
    policy_cls = CANDIDATE_POLICIES.get(name or ActiveSeekingTeamPolicy.name)
    if policy_cls is None:
        logger.warning(f"⚠️ Неизвестная политика кандидатов '{name}', используется {ActiveSeekingTeamPolicy.name}")
        policy_cls = ActiveSeekingTeamPolicy
    return policy_cls()


class ProfileStore(Protocol):
    """Источник снимков пользователей и проектов."""

    async def get_user_profile(self, user_id: int) -> Optional[UserProfile]:
        ...

    async def get_candidate_projects(
        self, policy: CandidatePolicy, limit: int
    ) -> List[ProjectProfile]:
        ...


# ============================================
# INPUT SANITIZING
# ============================================

def sanitize_limit(limit: Any) -> int:
    """limit в диапазоне 1-50; мусор → значение по умолчанию."""
    if isinstance(limit, bool) or not isinstance(limit, (int, float)):
        return DEFAULT_LIMIT
    return int(min(MAX_LIMIT, max(1, limit)))


def sanitize_min_score(min_score: Any) -> float:
    """Отрицательный порог → 0. Порог выше 100 сохраняется (результат будет пустым)."""
    if isinstance(min_score, bool) or not isinstance(min_score, (int, float)):
        return DEFAULT_MIN_SCORE
    return max(0, min_score)


def rank_matches(matches: Sequence[MatchScore], min_score: float, limit: int) -> List[MatchScore]:
    """Фильтр по порогу, стабильная сортировка по убыванию total_score, топ-N."""
    eligible = [match for match in matches if match.total_score >= min_score]
    eligible.sort(key=lambda match: match.total_score, reverse=True)
    return eligible[:limit]


# ============================================
# FINDER
# ============================================

class RecommendationFinder:
    """
    Поиск лучших проектов для пользователя.

    Никогда не падает из-за отсутствующих данных - только возвращает
    меньше результатов. Ошибки чтения из хранилища пробрасываются.
    """

    def __init__(
        self,
        store: ProfileStore,
        aggregator: Optional[MatchAggregator] = None,
        candidate_policy: Optional[CandidatePolicy] = None,
        candidate_limit: int = DEFAULT_CANDIDATE_LIMIT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    ):
        self.store = store
        self.aggregator = aggregator or MatchAggregator()
        self.candidate_policy = candidate_policy or ActiveSeekingTeamPolicy()
        self.candidate_limit = max(1, candidate_limit)
        self.max_concurrency = max(1, max_concurrency)

    async def find_top_matches(
        self,
        user_id: int,
        limit: int = DEFAULT_LIMIT,
        min_score: float = DEFAULT_MIN_SCORE,
        deadline: Optional[float] = None
    ) -> List[MatchScore]:
        """
        Топ-N рекомендаций для пользователя.

        Args:
            user_id: ID пользователя
            limit: Максимум результатов (1-50)
            min_score: Минимальный total_score
            deadline: Таймаут пакетного скоринга в секундах; по истечении
                возвращаются уже посчитанные результаты

        Returns:
            Список MatchScore, отсортированный по убыванию score
        """
        limit = sanitize_limit(limit)
        min_score = sanitize_min_score(min_score)

        user = await self.store.get_user_profile(user_id)
        if user is None:
            logger.debug(f"   ℹ️  Пользователь {user_id} не найден")
            return []

        projects = await self.store.get_candidate_projects(self.candidate_policy, self.candidate_limit)
        candidates = [
            project for project in projects
            if project.owner_id != user_id and self.candidate_policy.accepts(project)
        ]
        if len(candidates) < len(projects):
            logger.debug(f"   ℹ️  Отфильтровано {len(projects) - len(candidates)} проектов (владелец/политика)")

        if not candidates:
            logger.debug(f"   ℹ️  Нет кандидатов для пользователя {user_id}")
            return []

        logger.info(
            f"🔄 Скоринг {len(candidates)} проектов для пользователя {user_id} "
            f"(политика: {self.candidate_policy.name})"
        )

        matches = await self.score_candidates(user, candidates, deadline)
        top = rank_matches(matches, min_score, limit)

        if top:
            logger.info(f"   ✅ Рекомендаций: {len(top)} (лучший score: {top[0].total_score})")
        else:
            logger.info(f"   ℹ️  Нет проектов с score >= {min_score}")

        return top

    async def score_project(self, user: UserProfile, project: ProjectProfile) -> MatchScore:
        """Скоринг одного кандидата."""
        # Отдаем управление, чтобы дедлайн мог прервать пакет
        await asyncio.sleep(0)
        return self.aggregator.calculate(user, project)

    async def score_candidates(
        self,
        user: UserProfile,
        candidates: Sequence[ProjectProfile],
        deadline: Optional[float] = None
    ) -> List[MatchScore]:
        """
        Параллельный скоринг кандидатов (не более max_concurrency одновременно).

        Результаты возвращаются в порядке кандидатов, независимо от порядка
        завершения задач.
        """
        if not candidates:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def score_one(project: ProjectProfile) -> MatchScore:
            async with semaphore:
                return await self.score_project(user, project)

        tasks = [asyncio.create_task(score_one(project)) for project in candidates]

        try:
            done, pending = await asyncio.wait(tasks, timeout=deadline)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if pending:
            logger.warning(
                f"⚠️ Дедлайн {deadline}s истек: посчитано {len(done)}/{len(tasks)} проектов"
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        matches = []
        for project, task in zip(candidates, tasks):
            if task not in done:
                continue
            error = task.exception()
            if error is not None:
                logger.error(f"❌ Ошибка скоринга проекта {project.id}: {error}", exc_info=error)
                continue
            matches.append(task.result())

        return matches
