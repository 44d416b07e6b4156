"""
Score dimension calculators.

Пять независимых калькуляторов, каждый возвращает под-оценку 0-100
и детализацию по факторам:

- Skill (40%)       - навыки пользователя vs требования проекта к команде
- Investment (25%)  - для инвесторов: возможность финансирования и стадия
- Stage (15%)       - уровень пользователя vs стадия проекта
- Interest (15%)    - пересечение интересов и тегов, соответствие роли
- Engagement (5%)   - активность пользователя на платформе
"""

import logging
import math
from typing import Dict, Iterable, Optional

from synapse.matching.models import (
    DimensionResult,
    ProjectProfile,
    TeamRequirement,
    UserProfile,
    UserRole,
    UserSkill,
    proficiency_rank,
    stage_rank,
)

logger = logging.getLogger(__name__)

MAX_SCORE = 100
MIN_SCORE = 0

DEFAULT_FUNDING_CAPACITY_MULTIPLIER = 2.0


def clamp_score(value: float) -> float:
    """Нормализация score в диапазон 0-100."""
    return min(MAX_SCORE, max(MIN_SCORE, value))


def _normalize_tags(tags: Optional[Iterable[str]]) -> set:
    return {str(tag).strip().lower() for tag in (tags or ()) if str(tag).strip()}


# ============================================
# SKILL MATCHING (40%)
# ============================================

def _requirement_score(skill: UserSkill, requirement: TeamRequirement) -> float:
    """Оценка одного требования: proficiency (до 60) + опыт (до 40)."""
    user_prof = proficiency_rank(skill.proficiency)
    req_prof = proficiency_rank(requirement.min_proficiency)

    if user_prof >= req_prof:
        # Бонус за превышение требований
        score = 30 + (user_prof - req_prof) * 10
    else:
        score = max(0, 20 - (req_prof - user_prof) * 10)

    years = skill.years_of_experience or 0
    min_years = requirement.min_years_experience or 0
    if years >= min_years:
        score += 30 + min(10, (years - min_years) / 2)
    else:
        score += max(0, 15 - (min_years - years) * 5)

    return score


def calculate_skill_score(
    user_skills: Iterable[UserSkill],
    requirements: Iterable[TeamRequirement]
) -> DimensionResult:
    """
    Skill score по требованиям проекта к команде.

    Args:
        user_skills: Навыки пользователя
        requirements: Требования проекта

    Returns:
        DimensionResult с деталями skill_<id>, coverage, final
    """
    skills_by_id: Dict[int, UserSkill] = {}
    for skill in user_skills or ():
        skills_by_id.setdefault(skill.skill_id, skill)

    if not skills_by_id:
        return DimensionResult(score=0, details={})

    requirements = list(requirements or ())
    if not requirements:
        # Отсутствие требований - не штраф
        return DimensionResult(score=50, details={'noRequirements': 50})

    details: Dict[str, float] = {}
    total = 0.0
    matched = 0

    for requirement in requirements:
        skill = skills_by_id.get(requirement.skill_id)
        if skill is None:
            continue

        skill_score = _requirement_score(skill, requirement)
        total += skill_score
        matched += 1
        details[f'skill_{requirement.skill_id}'] = skill_score

    avg_score = total / matched if matched else 0

    # Бонус за покрытие требований
    coverage = matched / len(requirements) * 100
    if coverage > 70:
        coverage_bonus = 10
    elif coverage > 40:
        coverage_bonus = 5
    else:
        coverage_bonus = 0

    final = clamp_score(avg_score + coverage_bonus)
    details['coverage'] = coverage
    details['final'] = final

    logger.debug(f"   🧩 Skill: {matched}/{len(requirements)} требований, score {final:.1f}")
    return DimensionResult(score=final, details=details)


# ============================================
# INVESTMENT MATCHING (25%)
# ============================================

def calculate_investment_score(
    user: UserProfile,
    project: ProjectProfile,
    capacity_multiplier: float = DEFAULT_FUNDING_CAPACITY_MULTIPLIER
) -> DimensionResult:
    """
    Investment score: имеет смысл только для инвестора и проекта,
    который ищет инвестиции. Иначе 0 с пояснением в деталях.

    Args:
        user: Пользователь
        project: Проект
        capacity_multiplier: Во сколько раз заработок пользователя
            превышает его инвестиционную емкость
    """
    if user.role is not UserRole.INVESTOR:
        return DimensionResult(score=0, details={'notInvestor': 0})

    if not project.seeking_investment:
        return DimensionResult(score=0, details={'notSeeking': 0})

    details: Dict[str, float] = {}
    score = 50

    needed = project.total_investment_needed
    if needed and needed > 0:
        capacity = (user.earnings or 0) * capacity_multiplier

        if capacity >= needed:
            funding_bonus = 30  # Может профинансировать полностью
        elif capacity >= needed * 0.5:
            funding_bonus = 20
        elif capacity >= needed * 0.2:
            funding_bonus = 10
        else:
            funding_bonus = 0

        score += funding_bonus
        details['fundingCapacity'] = funding_bonus

    # Предпочтение по стадии кодируется тегом интереса stage_<stage>
    stage_preference = 0
    if project.stage is not None:
        if f'stage_{project.stage.value}' in _normalize_tags(user.interests):
            stage_preference = 10
    score += stage_preference
    details['stagePreference'] = stage_preference

    if user.investments > 0:
        experience_bonus = min(10, user.investments)
        score += experience_bonus
        details['experience'] = experience_bonus

    final = clamp_score(score)
    details['final'] = final
    return DimensionResult(score=final, details=details)


# ============================================
# STAGE MATCHING (15%)
# ============================================

def calculate_stage_score(user: UserProfile, project: ProjectProfile) -> DimensionResult:
    """Соответствие уровня пользователя стадии проекта."""
    details: Dict[str, float] = {}

    user_level = math.ceil((user.level or 0) / 2)
    project_level = stage_rank(project.stage)
    difference = user_level - project_level

    score = 50

    if difference == 0:
        stage_match = 40
    elif abs(difference) == 1:
        stage_match = 25
    elif difference > 0:
        # Пользователь опытнее, чем требует стадия
        stage_match = 15
    else:
        stage_match = max(5, 20 - abs(difference) * 5)

    score += stage_match
    details['stageMatch'] = stage_match

    if user.collaborations > 0:
        collaboration_bonus = min(10, user.collaborations)
        score += collaboration_bonus
        details['collaborationBonus'] = collaboration_bonus

    final = clamp_score(score)
    details['final'] = final
    return DimensionResult(score=final, details=details)


# ============================================
# INTEREST MATCHING (15%)
# ============================================

def _role_alignment_bonus(role: Optional[UserRole], project: ProjectProfile) -> int:
    if role is UserRole.FOUNDER:
        aligned = project.open_for_collaboration
    elif role is UserRole.FREELANCER:
        aligned = project.seeking_team
    elif role is UserRole.INVESTOR:
        aligned = project.seeking_investment
    elif role is UserRole.COLLABORATOR:
        aligned = project.open_for_collaboration
    else:
        aligned = False
    return 15 if aligned else 0


def calculate_interest_score(user: UserProfile, project: ProjectProfile) -> DimensionResult:
    """Пересечение интересов пользователя и тегов проекта + бонус за роль."""
    details: Dict[str, float] = {}
    score = 30.0

    project_tags = _normalize_tags(project.tags)
    user_interests = _normalize_tags(user.interests)

    if project_tags and user_interests:
        matched_tags = len(project_tags & user_interests)
        tag_score = matched_tags / max(len(project_tags), len(user_interests)) * 50
        score += tag_score
        details['tagMatching'] = tag_score

    bonus = _role_alignment_bonus(user.role, project)
    score += bonus
    details['userTypeBonus'] = bonus

    final = clamp_score(score)
    details['final'] = final
    return DimensionResult(score=final, details=details)


# ============================================
# ENGAGEMENT MATCHING (5%)
# ============================================

def calculate_engagement_score(user: UserProfile) -> DimensionResult:
    """Активность пользователя (не зависит от проекта)."""
    details: Dict[str, float] = {}
    score = 50

    total_activity = max(0, user.projects_created + user.collaborations + user.investments)
    activity_bonus = min(40, total_activity * 5)
    score += activity_bonus
    details['activity'] = activity_bonus

    level_bonus = min(10, ((user.level or 0) - 1) * 2)
    score += level_bonus
    details['level'] = level_bonus

    final = clamp_score(score)
    details['final'] = final
    return DimensionResult(score=final, details=details)
