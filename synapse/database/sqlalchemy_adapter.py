"""
SQLAlchemy adapter для synapse/database.

Обертка над unified database.py: читает снимки пользователей и проектов
для matching engine и дописывает историю матчинга.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Any, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

# Импортируем из unified database
from database import (
    User as UserModel,
    Project as ProjectModel,
    MatchingHistory as MatchingHistoryModel,
    DatabaseSession,
    init_database,
)
from synapse.matching.models import (
    MatchHistoryEntry,
    ProjectProfile,
    ProjectStage,
    Proficiency,
    TeamRequirement,
    UserProfile,
    UserRole,
    UserSkill,
)
from synapse.retry import db_retry

logger = logging.getLogger(__name__)


def serialize_for_json(obj: Any) -> Any:
    """Рекурсивная сериализация для JSON."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return float(obj)
    elif isinstance(obj, dict):
        return {k: serialize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [serialize_for_json(item) for item in obj]
    return obj


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _user_to_profile(user: UserModel) -> UserProfile:
    role = UserRole.parse(user.user_type)
    if role is None:
        logger.warning(f"⚠️ Неизвестная роль пользователя {user.id}: {user.user_type!r}")

    skills = tuple(
        UserSkill(
            skill_id=skill.skill_id,
            proficiency=Proficiency.parse(skill.proficiency),
            years_of_experience=skill.years_of_experience or 0,
            hourly_rate=_to_float(skill.hourly_rate),
        )
        for skill in sorted(user.skills, key=lambda s: s.id)
    )

    return UserProfile(
        id=user.id,
        role=role,
        level=user.level or 0,
        engagement_score=user.score or 0,
        earnings=_to_float(user.earnings) or 0,
        projects_created=user.projects_created or 0,
        collaborations=user.collaborations or 0,
        investments=user.investments or 0,
        interests=tuple(user.interests or ()),
        skills=skills,
    )


def _project_to_profile(project: ProjectModel) -> ProjectProfile:
    requirements = tuple(
        TeamRequirement(
            skill_id=req.skill_id,
            min_proficiency=Proficiency.parse(req.min_proficiency),
            min_years_experience=req.min_years_experience or 0,
            count=req.count or 0,
            filled=req.filled or 0,
        )
        for req in sorted(project.team_requirements, key=lambda r: r.id)
    )

    return ProjectProfile(
        id=project.id,
        owner_id=project.owner_id,
        stage=ProjectStage.parse(project.stage),
        status=project.status,
        seeking_team=bool(project.seeking_team),
        seeking_investment=bool(project.seeking_investment),
        open_for_collaboration=bool(project.open_for_collaboration),
        tags=tuple(project.tags or ()),
        team_requirements=requirements,
        total_investment_needed=_to_float(project.total_investment_needed),
    )


class SynapseDB:
    """
    SQLAlchemy adapter для matching engine.

    Чтение - только снимки (UserProfile / ProjectProfile),
    запись - только append в matching_history.
    """

    async def init_db(self, database_url: Optional[str] = None):
        """Инициализация engine и таблиц."""
        await init_database(database_url=database_url)

    # ============================================
    # USERS & PROJECTS (read-only)
    # ============================================

    @db_retry
    async def get_user_profile(self, user_id: int) -> Optional[UserProfile]:
        """Снимок пользователя вместе с навыками."""
        async with DatabaseSession() as session:
            result = await session.execute(
                select(UserModel)
                .options(selectinload(UserModel.skills))
                .where(UserModel.id == user_id)
            )
            user = result.scalar_one_or_none()

            if not user:
                return None

            return _user_to_profile(user)

    @db_retry
    async def get_project_profile(self, project_id: int) -> Optional[ProjectProfile]:
        """Снимок проекта вместе с требованиями к команде."""
        async with DatabaseSession() as session:
            result = await session.execute(
                select(ProjectModel)
                .options(selectinload(ProjectModel.team_requirements))
                .where(ProjectModel.id == project_id)
            )
            project = result.scalar_one_or_none()

            if not project:
                return None

            return _project_to_profile(project)

    @db_retry
    async def get_candidate_projects(self, policy, limit: int = 100) -> List[ProjectProfile]:
        """
        Проекты-кандидаты для рекомендаций.

        Args:
            policy: CandidatePolicy (SQL условия отбора)
            limit: Максимум проектов
        """
        async with DatabaseSession() as session:
            result = await session.execute(
                select(ProjectModel)
                .options(selectinload(ProjectModel.team_requirements))
                .where(*policy.conditions(ProjectModel))
                .order_by(ProjectModel.id)
                .limit(limit)
            )
            projects = result.scalars().all()

            return [_project_to_profile(project) for project in projects]

    # ============================================
    # MATCHING HISTORY (append-only)
    # ============================================

    async def save_matching_history(self, entry: MatchHistoryEntry) -> int:
        """Добавление записи в историю матчинга."""
        async with DatabaseSession() as session:
            record = MatchingHistoryModel(
                user_id=entry.user_id,
                project_id=entry.project_id,
                match_type=entry.match_type.value,
                score=entry.score,
                score_details=serialize_for_json(entry.score_details),
                action=entry.action.value,
                created_at=entry.created_at,
                action_at=entry.action_at,
            )
            session.add(record)
            await session.flush()

            logger.debug(f"   💾 Saved matching history id={record.id}")
            return record.id

    async def get_matching_history(self, user_id: int, limit: int = 50) -> List[Dict[str, Any]]:
        """История матчинга пользователя (новые записи первыми)."""
        async with DatabaseSession() as session:
            result = await session.execute(
                select(MatchingHistoryModel)
                .where(MatchingHistoryModel.user_id == user_id)
                .order_by(MatchingHistoryModel.created_at.desc(), MatchingHistoryModel.id.desc())
                .limit(limit)
            )
            records = result.scalars().all()

            return [
                {
                    'id': r.id,
                    'userId': r.user_id,
                    'projectId': r.project_id,
                    'matchType': r.match_type,
                    'score': r.score,
                    'scoreDetails': r.score_details,
                    'action': r.action,
                    'createdAt': r.created_at.isoformat() if r.created_at else None,
                    'actionAt': r.action_at.isoformat() if r.action_at else None,
                }
                for r in records
            ]

    async def get_action_stats(self, user_id: int) -> Dict[str, int]:
        """Количество записей истории по действиям (viewed, applied, ...)."""
        async with DatabaseSession() as session:
            result = await session.execute(
                select(MatchingHistoryModel.action, func.count(MatchingHistoryModel.id))
                .where(MatchingHistoryModel.user_id == user_id)
                .group_by(MatchingHistoryModel.action)
            )
            return {action: count for action, count in result.all()}


# Глобальный singleton
_synapse_db_instance = None


async def get_synapse_db() -> SynapseDB:
    """Получение singleton instance базы matching engine."""
    global _synapse_db_instance

    if _synapse_db_instance is None:
        _synapse_db_instance = SynapseDB()
        await _synapse_db_instance.init_db()

    return _synapse_db_instance


__all__ = ['SynapseDB', 'get_synapse_db', 'serialize_for_json']
