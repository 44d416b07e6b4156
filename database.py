"""
Core database module с SQLAlchemy для PostgreSQL.

Unified database layer для matching engine: пользователи, навыки, проекты,
требования к команде и история матчинга.
"""

import os
import logging
from typing import Optional
from datetime import datetime

from sqlalchemy import (
    Column, Integer, SmallInteger, String, Boolean, Numeric,
    DateTime, Text, JSON, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.pool import NullPool

from synapse.config import Settings

logger = logging.getLogger(__name__)

# Base для всех моделей
Base = declarative_base()

# Глобальные переменные для engine и session factory
_engine = None
_async_session_factory = None


# ============================================
# МОДЕЛИ БД
# ============================================

class User(Base):
    """Модель пользователя маркетплейса."""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, autoincrement=True)
    open_id = Column(String(64), unique=True, nullable=False)
    name = Column(Text, nullable=True)
    user_type = Column(String(50), default='founder', nullable=False)  # founder, freelancer, investor, collaborator

    # Геймификация
    level = Column(Integer, default=1, nullable=False)
    score = Column(Integer, default=0, nullable=False)

    # Статистика
    projects_created = Column(Integer, default=0, nullable=False)
    collaborations = Column(Integer, default=0, nullable=False)
    investments = Column(Integer, default=0, nullable=False)
    earnings = Column(Numeric(15, 2), default=0, nullable=False)

    interests = Column(JSON, default=list)  # List[str]

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    skills = relationship("UserSkill", back_populates="user", cascade="all, delete-orphan")


class Skill(Base):
    """Справочник навыков."""
    __tablename__ = 'skills'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    category = Column(String(50), nullable=False, index=True)  # dev, design, marketing, sales, finance, ...
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class UserSkill(Base):
    """Навык пользователя с уровнем владения."""
    __tablename__ = 'user_skills'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey('skills.id', ondelete='CASCADE'), nullable=False, index=True)
    proficiency = Column(String(20), default='intermediate', nullable=False)  # beginner, intermediate, advanced, expert
    years_of_experience = Column(Integer, default=0, nullable=False)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="skills")

    __table_args__ = (
        UniqueConstraint('user_id', 'skill_id', name='uq_user_skills_user_skill'),
    )


class Project(Base):
    """Модель стартап-проекта."""
    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    stage = Column(String(20), default='idea', nullable=False, index=True)  # idea, prototype, running, scaling
    status = Column(String(20), default='active', nullable=False, index=True)  # draft, active, paused, completed, archived

    total_investment_needed = Column(Numeric(15, 2), nullable=True)

    # Флаги для матчинга
    seeking_investment = Column(Boolean, default=False, nullable=False, index=True)
    seeking_team = Column(Boolean, default=False, nullable=False, index=True)
    open_for_collaboration = Column(Boolean, default=False, nullable=False)

    tags = Column(JSON, default=list)  # List[str]

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    team_requirements = relationship(
        "ProjectTeamRequirement", back_populates="project", cascade="all, delete-orphan"
    )


class ProjectTeamRequirement(Base):
    """Требование проекта к навыку участника команды."""
    __tablename__ = 'project_team_requirements'

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey('skills.id', ondelete='CASCADE'), nullable=False, index=True)
    role = Column(String(100), nullable=False)
    count = Column(Integer, default=1, nullable=False)
    min_proficiency = Column(String(20), default='intermediate', nullable=False)
    min_years_experience = Column(Integer, default=0, nullable=False)
    filled = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project = relationship("Project", back_populates="team_requirements")


class MatchingHistory(Base):
    """История рассчитанных матчей (append-only)."""
    __tablename__ = 'matching_history'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    project_id = Column(Integer, nullable=False, index=True)
    match_type = Column(String(30), nullable=False)  # skill_based, investment_based, stage_based, interest_based
    score = Column(SmallInteger, nullable=False)  # 0-100
    score_details = Column(JSON, nullable=False)  # Dict[str, float]
    action = Column(String(20), default='none', nullable=False)  # viewed, applied, invested, dismissed, none
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    action_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index('ix_matching_history_score', 'score'),
    )


# ============================================
# ENGINE & SESSIONS
# ============================================

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///synapse.db"

# Схемы, которые отдают хостинги, → async драйвер
_ASYNC_DRIVERS = {
    'postgres://': 'postgresql+asyncpg://',
    'postgresql://': 'postgresql+asyncpg://',
    'sqlite://': 'sqlite+aiosqlite://',
}


def get_database_url(raw_url: Optional[str] = None) -> str:
    """
    URL базы с async драйвером.

    Args:
        raw_url: Явный URL (по умолчанию DATABASE_URL из окружения)

    Returns:
        postgresql+asyncpg://... или sqlite+aiosqlite://...;
        без DATABASE_URL - локальная SQLite
    """
    db_url = raw_url or Settings.DATABASE_URL or os.getenv('DATABASE_URL')

    if not db_url:
        logger.warning("DATABASE_URL не задан, используется SQLite fallback")
        return SQLITE_FALLBACK_URL

    for prefix, async_prefix in _ASYNC_DRIVERS.items():
        if db_url.startswith(prefix):
            return async_prefix + db_url[len(prefix):]

    return db_url


async def init_database(echo: bool = False, database_url: Optional[str] = None):
    """
    Инициализация database engine и создание таблиц.

    Args:
        echo: Включить SQL логирование
        database_url: Явный URL (по умолчанию берется из DATABASE_URL)
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.info("Database уже инициализирована")
        return

    database_url = get_database_url(database_url)
    is_sqlite = 'sqlite' in database_url

    logger.info(f"Инициализация database: {database_url.split('@')[-1] if '@' in database_url else 'SQLite'}")

    # SQLite не поддерживает pooling
    if is_sqlite:
        engine_kwargs = {'poolclass': NullPool}
    else:
        engine_kwargs = {'pool_pre_ping': True, 'pool_size': 20, 'max_overflow': 40}

    _engine = create_async_engine(database_url, echo=echo, **engine_kwargs)
    logger.debug("   ✅ Engine создан")

    _async_session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    # Создаем таблицы (если их нет)
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.debug("   ✅ Таблицы созданы/проверены")

    logger.info("✅ Database инициализирована")


async def get_session() -> AsyncSession:
    """
    Получение database session.

    Returns:
        AsyncSession instance
    """
    if _async_session_factory is None:
        await init_database()

    return _async_session_factory()


async def close_database():
    """Закрытие database connections."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        logger.info("✅ Database connections закрыты")
        _engine = None
        _async_session_factory = None


# ============================================
# CONTEXT MANAGER
# ============================================

class DatabaseSession:
    """Context manager для database sessions."""

    def __init__(self):
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self) -> AsyncSession:
        self.session = await get_session()
        return self.session

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            if exc_type is not None:
                await self.session.rollback()
            else:
                await self.session.commit()
            await self.session.close()


# ============================================
# ЭКСПОРТ
# ============================================

__all__ = [
    'Base',
    'User',
    'Skill',
    'UserSkill',
    'Project',
    'ProjectTeamRequirement',
    'MatchingHistory',
    'get_database_url',
    'init_database',
    'get_session',
    'close_database',
    'DatabaseSession'
]
