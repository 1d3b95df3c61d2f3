"""SQLite persistence layer for DaggerGM.

Provides persistent storage for:
- The Content Store (canonical Daggerheart entities with embeddings)
- Adventures (one JSON payload per aggregate plus a version column)

Adventure writes go through ``update_adventure``, which performs the whole
read-modify-write inside a single ``BEGIN IMMEDIATE`` transaction. SQLite
takes the write lock at ``BEGIN``, so two concurrent writers are
serialized and the second one always sees the first one's commit.

Storage location: settings.storage.database_path (data/daggergm.db)
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable, Iterable
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from daggergm.core.config import get_settings
from daggergm.core.exceptions import NotFoundError, PersistenceError
from daggergm.core.logging import get_logger
from daggergm.models.adventure import Adventure, utc_now
from daggergm.models.content import ContentEntity
from daggergm.models.enums import ContentCategory

logger = get_logger(__name__)

AdventureMutator = Callable[[Adventure], Adventure]

_CONTENT_COLUMNS = "id, category, name, tier, attributes_json, searchable_text, embedding_json"


def _entity_from_row(row: sqlite3.Row) -> ContentEntity:
    """Create a ContentEntity from a content_entities row."""
    embedding = json.loads(row["embedding_json"]) if row["embedding_json"] else []
    return ContentEntity(
        id=row["id"],
        category=ContentCategory(row["category"]),
        name=row["name"],
        tier=row["tier"],
        attributes=json.loads(row["attributes_json"]),
        searchable_text=row["searchable_text"],
        embedding=tuple(embedding),
    )


# =============================================================================
# Database Class
# =============================================================================


class Database:
    """SQLite database for DaggerGM persistence.

    Manages storage of:
    - Content entities (read-mostly, seeded once)
    - Adventures (versioned aggregate records)
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path | None = None, *, timeout: float = 30.0) -> None:
        """Initialize database.

        Args:
            db_path: Path to database file. If None, uses the configured path.
            timeout: Seconds to wait for a competing writer's lock.
        """
        if db_path is None:
            self.db_path = get_settings().storage.database_path
        else:
            self.db_path = Path(db_path)
        self.timeout = timeout

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

        logger.info("Database initialized", path=str(self.db_path))

    def _connect(self, isolation_level: str | None = "") -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.timeout,
                isolation_level=isolation_level,
            )
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Cannot open database: {exc}",
                details={"path": str(self.db_path)},
            ) from exc
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(f"Database operation failed: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def _immediate_transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run a block inside ``BEGIN IMMEDIATE`` ... ``COMMIT``.

        The write lock is held from the first statement, so the block's
        reads cannot be invalidated by another writer before commit.
        """
        conn = self._connect(isolation_level=None)
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as exc:
            raise PersistenceError(f"Adventure transaction failed: {exc}") from exc
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS content_entities (
                    id TEXT PRIMARY KEY,
                    category TEXT NOT NULL,
                    name TEXT NOT NULL,
                    tier INTEGER,
                    attributes_json TEXT NOT NULL DEFAULT '{}',
                    searchable_text TEXT NOT NULL DEFAULT '',
                    embedding_json TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE (category, name)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS adventures (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_content_category_tier
                ON content_entities(category, tier)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_adventures_owner
                ON adventures(owner_id, updated_at DESC)
            """)

            cursor.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )

    # =========================================================================
    # Content Operations
    # =========================================================================

    def insert_content_entities(self, entities: Iterable[ContentEntity]) -> int:
        """Insert content entities, skipping names that already exist.

        Existing rows are never overwritten.

        Args:
            entities: Entities to insert.

        Returns:
            Number of rows actually inserted.
        """
        now = utc_now().isoformat()
        inserted = 0
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for entity in entities:
                cursor.execute(
                    f"""
                    INSERT OR IGNORE INTO content_entities ({_CONTENT_COLUMNS}, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entity.id,
                        str(entity.category),
                        entity.name,
                        entity.tier,
                        json.dumps(entity.attributes, default=str),
                        entity.searchable_text,
                        json.dumps(list(entity.embedding)) if entity.embedding else None,
                        now,
                    ),
                )
                inserted += cursor.rowcount
        logger.info("Content entities inserted", inserted=inserted)
        return inserted

    def set_content_embeddings(self, embeddings: dict[str, list[float]]) -> int:
        """Store embeddings for rows that do not have one yet.

        Args:
            embeddings: Mapping of entity id to embedding vector.

        Returns:
            Number of rows updated.
        """
        updated = 0
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for entity_id, vector in embeddings.items():
                cursor.execute(
                    """
                    UPDATE content_entities SET embedding_json = ?
                    WHERE id = ? AND embedding_json IS NULL
                    """,
                    (json.dumps(list(vector)), entity_id),
                )
                updated += cursor.rowcount
        return updated

    def get_content_entity(self, entity_id: str) -> ContentEntity | None:
        """Get a content entity by id."""
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT {_CONTENT_COLUMNS} FROM content_entities WHERE id = ?",
                (entity_id,),
            ).fetchone()
        return _entity_from_row(row) if row else None

    def get_content_entity_by_name(
        self,
        category: ContentCategory,
        name: str,
    ) -> ContentEntity | None:
        """Get a content entity by its unique (category, name) pair."""
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT {_CONTENT_COLUMNS} FROM content_entities WHERE category = ? AND name = ?",
                (str(category), name),
            ).fetchone()
        return _entity_from_row(row) if row else None

    def list_content_entities(
        self,
        category: ContentCategory,
        *,
        max_tier: int | None = None,
    ) -> list[ContentEntity]:
        """List entities of a category ordered by name.

        Args:
            category: Category to list.
            max_tier: If given, only rows with ``tier <= max_tier``.
        """
        query = f"SELECT {_CONTENT_COLUMNS} FROM content_entities WHERE category = ?"
        params: list[Any] = [str(category)]
        if max_tier is not None:
            query += " AND tier IS NOT NULL AND tier <= ?"
            params.append(max_tier)
        query += " ORDER BY name ASC"
        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_entity_from_row(row) for row in rows]

    def list_content_missing_embeddings(self) -> list[ContentEntity]:
        """List entities that have no embedding yet."""
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT {_CONTENT_COLUMNS} FROM content_entities "
                "WHERE embedding_json IS NULL ORDER BY category, name"
            ).fetchall()
        return [_entity_from_row(row) for row in rows]

    def count_content(self, category: ContentCategory | None = None) -> int:
        """Count content entities, optionally within one category."""
        with self._get_connection() as conn:
            if category is None:
                row = conn.execute("SELECT COUNT(*) FROM content_entities").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM content_entities WHERE category = ?",
                    (str(category),),
                ).fetchone()
        return int(row[0])

    # =========================================================================
    # Adventure Operations
    # =========================================================================

    def create_adventure(self, adventure: Adventure) -> Adventure:
        """Persist a new adventure.

        Returns:
            The stored adventure with ``version`` set to 1.
        """
        stored = adventure.evolve(version=1, updated_at=utc_now())
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO adventures (id, owner_id, payload_json, version, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    stored.id,
                    stored.owner_id,
                    stored.model_dump_json(),
                    stored.version,
                    stored.created_at.isoformat(),
                    stored.updated_at.isoformat(),
                ),
            )
        logger.info("Adventure created", adventure_id=stored.id, scenes=len(stored.scenes))
        return stored

    def get_adventure(self, adventure_id: str) -> Adventure:
        """Load an adventure.

        Raises:
            NotFoundError: If no adventure has this id.
        """
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT payload_json FROM adventures WHERE id = ?",
                (adventure_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError(
                f"Adventure {adventure_id} not found",
                resource="adventure",
                resource_id=adventure_id,
            )
        return Adventure.model_validate_json(row["payload_json"])

    def list_adventures(self, owner_id: str) -> list[Adventure]:
        """List an owner's adventures, most recently updated first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT payload_json FROM adventures WHERE owner_id = ? ORDER BY updated_at DESC",
                (owner_id,),
            ).fetchall()
        return [Adventure.model_validate_json(row["payload_json"]) for row in rows]

    def update_adventure(self, adventure_id: str, mutator: AdventureMutator) -> Adventure:
        """Atomically read, modify and write an adventure.

        ``mutator`` receives the current stored adventure and returns the
        new one. It runs while the write lock is held; if it raises, the
        transaction is rolled back and nothing changes.

        Args:
            adventure_id: Adventure to update.
            mutator: Pure function from current to new adventure.

        Returns:
            The stored adventure with ``version`` incremented.

        Raises:
            NotFoundError: If no adventure has this id.
            PersistenceError: If the database cannot be written.
        """
        with self._immediate_transaction() as conn:
            row = conn.execute(
                "SELECT payload_json, version FROM adventures WHERE id = ?",
                (adventure_id,),
            ).fetchone()
            if row is None:
                raise NotFoundError(
                    f"Adventure {adventure_id} not found",
                    resource="adventure",
                    resource_id=adventure_id,
                )
            current = Adventure.model_validate_json(row["payload_json"])
            changed = mutator(current)
            if changed.id != current.id or changed.owner_id != current.owner_id:
                raise PersistenceError(
                    "Adventure identity cannot change during an update",
                    details={"adventure_id": adventure_id},
                )
            stored = changed.evolve(version=row["version"] + 1, updated_at=utc_now())
            conn.execute(
                """
                UPDATE adventures SET payload_json = ?, version = ?, updated_at = ?
                WHERE id = ? AND version = ?
                """,
                (
                    stored.model_dump_json(),
                    stored.version,
                    stored.updated_at.isoformat(),
                    adventure_id,
                    row["version"],
                ),
            )
        logger.debug("Adventure updated", adventure_id=adventure_id, version=stored.version)
        return stored

    def delete_adventure(self, adventure_id: str) -> bool:
        """Delete an adventure.

        Returns:
            True if deleted, False if not found.
        """
        with self._get_connection() as conn:
            deleted = conn.execute(
                "DELETE FROM adventures WHERE id = ?",
                (adventure_id,),
            ).rowcount > 0
        if deleted:
            logger.info("Adventure deleted", adventure_id=adventure_id)
        return deleted

    def get_adventure_version(self, adventure_id: str) -> int | None:
        """Current persisted version of an adventure, or None if absent."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT version FROM adventures WHERE id = ?",
                (adventure_id,),
            ).fetchone()
        return int(row["version"]) if row else None


# =============================================================================
# Singleton Access
# =============================================================================

_database_instance: Database | None = None


def get_database() -> Database:
    """Get the global database instance.

    Returns:
        Database singleton.
    """
    global _database_instance

    if _database_instance is None:
        _database_instance = Database()

    return _database_instance


__all__ = [
    "AdventureMutator",
    "Database",
    "get_database",
]
