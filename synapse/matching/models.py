"""
Domain models for the matching engine.

Неизменяемые снимки пользователя и проекта, которые движок только читает,
и результат матчинга (MatchScore), который передается в историю.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# ============= ENUMS =============

class UserRole(str, Enum):
    """Роль пользователя на платформе."""
    FOUNDER = "founder"
    FREELANCER = "freelancer"
    INVESTOR = "investor"
    COLLABORATOR = "collaborator"

    @classmethod
    def parse(cls, value: Any) -> Optional['UserRole']:
        """Неизвестная роль → None (обрабатывается как "любая другая")."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class Proficiency(str, Enum):
    """Уровень владения навыком: beginner < intermediate < advanced < expert."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return _PROFICIENCY_RANKS[self]

    @classmethod
    def parse(cls, value: Any) -> Optional['Proficiency']:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None

    def __lt__(self, other):
        if not isinstance(other, Proficiency):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Proficiency):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Proficiency):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Proficiency):
            return NotImplemented
        return self.rank >= other.rank


_PROFICIENCY_RANKS = {
    Proficiency.BEGINNER: 1,
    Proficiency.INTERMEDIATE: 2,
    Proficiency.ADVANCED: 3,
    Proficiency.EXPERT: 4,
}


def proficiency_rank(value: Optional[Proficiency]) -> int:
    """Ранг уровня владения; неизвестный уровень = 0."""
    return value.rank if value is not None else 0


class ProjectStage(str, Enum):
    """Стадия жизненного цикла проекта."""
    IDEA = "idea"
    PROTOTYPE = "prototype"
    RUNNING = "running"
    SCALING = "scaling"

    @property
    def rank(self) -> int:
        return _STAGE_RANKS[self]

    @classmethod
    def parse(cls, value: Any) -> Optional['ProjectStage']:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


_STAGE_RANKS = {
    ProjectStage.IDEA: 1,
    ProjectStage.PROTOTYPE: 2,
    ProjectStage.RUNNING: 3,
    ProjectStage.SCALING: 4,
}


def stage_rank(stage: Optional[ProjectStage]) -> int:
    """Порядковый номер стадии (1-4); неизвестная стадия считается idea."""
    return stage.rank if stage is not None else 1


class MatchType(str, Enum):
    """Какое измерение определяет обоснование матча."""
    SKILL_BASED = "skill_based"
    INVESTMENT_BASED = "investment_based"
    STAGE_BASED = "stage_based"
    INTEREST_BASED = "interest_based"


class HistoryAction(str, Enum):
    """Действие пользователя, вызвавшее запись в историю."""
    VIEWED = "viewed"
    APPLIED = "applied"
    INVESTED = "invested"
    DISMISSED = "dismissed"
    NONE = "none"


# ============= SNAPSHOTS =============

@dataclass(frozen=True)
class UserSkill:
    """Навык пользователя."""
    skill_id: int
    proficiency: Optional[Proficiency]
    years_of_experience: float = 0
    hourly_rate: Optional[float] = None


@dataclass(frozen=True)
class TeamRequirement:
    """Требование проекта к навыку участника команды."""
    skill_id: int
    min_proficiency: Optional[Proficiency]
    min_years_experience: float = 0
    count: int = 1
    filled: int = 0

    @property
    def open_positions(self) -> int:
        return max(0, self.count - self.filled)


@dataclass(frozen=True)
class UserProfile:
    """Read-only снимок пользователя."""
    id: int
    role: Optional[UserRole]
    level: int = 1
    engagement_score: float = 0
    earnings: float = 0
    projects_created: int = 0
    collaborations: int = 0
    investments: int = 0
    interests: Tuple[str, ...] = ()
    skills: Tuple[UserSkill, ...] = ()


@dataclass(frozen=True)
class ProjectProfile:
    """Read-only снимок проекта."""
    id: int
    owner_id: int
    stage: Optional[ProjectStage]
    status: str = "active"
    seeking_team: bool = False
    seeking_investment: bool = False
    open_for_collaboration: bool = False
    tags: Tuple[str, ...] = ()
    team_requirements: Tuple[TeamRequirement, ...] = ()
    total_investment_needed: Optional[float] = None


# ============= RESULTS =============

@dataclass(frozen=True)
class DimensionResult:
    """Сырой результат одного калькулятора (до округления)."""
    score: float
    details: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class MatchScore:
    """Итоговый результат матчинга пользователя и проекта."""
    user_id: int
    project_id: int
    total_score: int
    skill_score: int
    investment_score: int
    stage_score: int
    interest_score: int
    engagement_score: int
    score_details: Dict[str, float]
    match_type: MatchType
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        """Транспортное представление (camelCase, как в API)."""
        return {
            'userId': self.user_id,
            'projectId': self.project_id,
            'totalScore': self.total_score,
            'skillScore': self.skill_score,
            'investmentScore': self.investment_score,
            'stageScore': self.stage_score,
            'interestScore': self.interest_score,
            'engagementScore': self.engagement_score,
            'scoreDetails': dict(self.score_details),
            'matchType': self.match_type.value,
            'recommendation': self.recommendation,
        }


@dataclass(frozen=True)
class MatchHistoryEntry:
    """Запись истории матчинга."""
    user_id: int
    project_id: int
    match_type: MatchType
    score: int
    score_details: Dict[str, float]
    action: HistoryAction
    created_at: datetime
    action_at: Optional[datetime] = None

    @classmethod
    def from_match(
        cls,
        match: MatchScore,
        action: HistoryAction = HistoryAction.NONE,
        now: Optional[datetime] = None
    ) -> 'MatchHistoryEntry':
        now = now or datetime.utcnow()
        return cls(
            user_id=match.user_id,
            project_id=match.project_id,
            match_type=match.match_type,
            score=match.total_score,
            score_details=dict(match.score_details),
            action=action,
            created_at=now,
            action_at=now if action != HistoryAction.NONE else None,
        )

    def to_record(self) -> Dict[str, Any]:
        """Форма записи для хранилища."""
        return {
            'userId': self.user_id,
            'projectId': self.project_id,
            'matchType': self.match_type.value,
            'score': self.score,
            'scoreDetails': dict(self.score_details),
            'action': self.action.value,
            'createdAt': self.created_at.isoformat(),
            'actionAt': self.action_at.isoformat() if self.action_at else None,
        }
