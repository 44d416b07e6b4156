"""
Database adapter for the Synapse matching engine.

Example usage:
    from synapse.database import get_synapse_db

    db = await get_synapse_db()

    user = await db.get_user_profile(42)
    project = await db.get_project_profile(7)
"""

# Используем SQLAlchemy adapter (PostgreSQL / SQLite fallback)
from .sqlalchemy_adapter import SynapseDB, get_synapse_db, serialize_for_json

__all__ = [
    'SynapseDB',
    'get_synapse_db',
    'serialize_for_json',
]
