"""Storage module for DaggerGM persistence.

Provides SQLite-based storage for:
- The Content Store (canonical entities and their embeddings)
- Adventures (versioned aggregate records)
"""

from daggergm.storage.database import AdventureMutator, Database, get_database

__all__ = [
    "AdventureMutator",
    "Database",
    "get_database",
]
