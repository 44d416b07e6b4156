"""
Synapse - Matching & Recommendation Engine

Enable via config/features.yaml:
    synapse:
      enabled: true
      components:
        history_recording: true
        concurrent_scoring: true

Components:
- matching/   - калькуляторы, агрегатор, поиск рекомендаций, история
- database/   - SQLAlchemy adapter (снимки пользователей/проектов, история)
- service.py  - MatchingService: calculate_score / find_top_matches
- config.py   - feature flags, веса и лимиты
- retry.py    - retry с exponential backoff для чтения из БД

Quick Start:
    from synapse.database import get_synapse_db
    from synapse.service import MatchingService
    import asyncio

    async def main():
        db = await get_synapse_db()
        service = MatchingService.from_config(db)
        matches = await service.find_top_matches(user_id=42, limit=5)
        await service.close()

    asyncio.run(main())
"""

from synapse.config import is_synapse_enabled

# Version info
__version__ = '0.1.0'
__author__ = 'Synapse Team'

__all__ = ['is_synapse_enabled', '__version__']
