"""Tests for the SQLite persistence layer."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from daggergm.core.exceptions import NotFoundError, PersistenceError, ValidationError
from daggergm.models import Adventure, ContentCategory, ContentEntity
from daggergm.storage.database import Database


def _entity(name: str, category: ContentCategory = ContentCategory.ADVERSARY, tier: int | None = 1) -> ContentEntity:
    return ContentEntity(category=category, name=name, tier=tier, searchable_text=name)


class TestSchema:
    """Tests for database initialization."""

    def test_creates_file(self, tmp_path: Path) -> None:
        """Test the database file and parent directory are created."""
        path = tmp_path / "nested" / "daggergm.db"

        Database(path)

        assert path.exists()

    def test_reopen_is_idempotent(self, tmp_path: Path) -> None:
        """Test re-initializing an existing database keeps its rows."""
        path = tmp_path / "daggergm.db"
        Database(path).insert_content_entities([_entity("Dire Wolf")])

        assert Database(path).count_content() == 1

    def test_default_path_from_settings(self, tmp_path: Path) -> None:
        """Test the configured path is used when none is given."""
        database = Database()

        assert database.db_path == tmp_path / "settings" / "daggergm.db"


class TestContentOperations:
    """Tests for content entity storage."""

    def test_insert_skips_existing_names(self, database: Database) -> None:
        """Test (category, name) is unique and never overwritten."""
        assert database.insert_content_entities([_entity("Dire Wolf")]) == 1
        assert database.insert_content_entities([_entity("Dire Wolf", tier=2)]) == 0

        stored = database.get_content_entity_by_name(ContentCategory.ADVERSARY, "Dire Wolf")
        assert stored is not None
        assert stored.tier == 1

    def test_same_name_in_other_category(self, database: Database) -> None:
        """Test names are unique per category only."""
        inserted = database.insert_content_entities(
            [
                _entity("Longbow", ContentCategory.WEAPON),
                _entity("Longbow", ContentCategory.ITEM, tier=None),
            ]
        )

        assert inserted == 2

    def test_get_by_id_round_trip(self, database: Database) -> None:
        """Test attributes survive storage."""
        entity = ContentEntity(
            category=ContentCategory.CLASS,
            name="Ranger",
            attributes={"starting_hp": 6, "features": ["Ranger's Focus"]},
        )
        database.insert_content_entities([entity])

        stored = database.get_content_entity(entity.id)

        assert stored == entity
        assert database.get_content_entity("missing") is None

    def test_list_filters_tier(self, database: Database) -> None:
        """Test max_tier filtering and name ordering."""
        database.insert_content_entities(
            [_entity("Zombie", tier=1), _entity("Wyrm", tier=3), _entity("Acolyte", tier=2)]
        )

        names = [e.name for e in database.list_content_entities(ContentCategory.ADVERSARY, max_tier=2)]

        assert names == ["Acolyte", "Zombie"]

    def test_embeddings_written_once(self, database: Database) -> None:
        """Test only rows without an embedding are updated."""
        entity = _entity("Dire Wolf")
        database.insert_content_entities([entity])
        assert [e.id for e in database.list_content_missing_embeddings()] == [entity.id]

        assert database.set_content_embeddings({entity.id: [0.1, 0.2]}) == 1
        assert database.set_content_embeddings({entity.id: [0.9, 0.9]}) == 0

        stored = database.get_content_entity(entity.id)
        assert stored is not None
        assert stored.embedding == (0.1, 0.2)
        assert database.list_content_missing_embeddings() == []

    def test_count_by_category(self, database: Database) -> None:
        """Test counting content."""
        database.insert_content_entities(
            [_entity("Dire Wolf"), _entity("Ranger", ContentCategory.CLASS, tier=None)]
        )

        assert database.count_content() == 2
        assert database.count_content(ContentCategory.CLASS) == 1


class TestAdventureOperations:
    """Tests for adventure storage."""

    def test_create_and_get(
        self,
        database: Database,
        make_adventure: Callable[..., Adventure],
    ) -> None:
        """Test a created adventure is stored with version 1."""
        stored = database.create_adventure(make_adventure())

        loaded = database.get_adventure(stored.id)

        assert loaded == stored
        assert loaded.version == 1

    def test_get_missing(self, database: Database) -> None:
        """Test unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            database.get_adventure("missing")

    def test_list_by_owner(
        self,
        database: Database,
        make_adventure: Callable[..., Adventure],
    ) -> None:
        """Test adventures are listed per owner."""
        database.create_adventure(make_adventure(owner_id="user-1"))
        database.create_adventure(make_adventure(owner_id="user-2"))

        assert len(database.list_adventures("user-1")) == 1
        assert database.list_adventures("nobody") == []

    def test_update_bumps_version(self, database: Database, stored_adventure: Adventure) -> None:
        """Test the mutator result is persisted with a new version."""
        updated = database.update_adventure(
            stored_adventure.id,
            lambda current: current.evolve(title="Renamed"),
        )

        assert updated.version == 2
        assert updated.updated_at >= stored_adventure.updated_at
        assert database.get_adventure(stored_adventure.id).title == "Renamed"
        assert database.get_adventure_version(stored_adventure.id) == 2

    def test_update_rolls_back_on_error(
        self,
        database: Database,
        stored_adventure: Adventure,
    ) -> None:
        """Test a raising mutator leaves the record untouched."""

        def mutate(current: Adventure) -> Adventure:
            raise ValidationError("Rejected")

        with pytest.raises(ValidationError):
            database.update_adventure(stored_adventure.id, mutate)

        assert database.get_adventure(stored_adventure.id) == stored_adventure

    def test_update_cannot_change_owner(
        self,
        database: Database,
        stored_adventure: Adventure,
    ) -> None:
        """Test identity fields are protected."""
        with pytest.raises(PersistenceError):
            database.update_adventure(
                stored_adventure.id,
                lambda current: current.evolve(owner_id="someone-else"),
            )

    def test_update_missing(self, database: Database) -> None:
        """Test updating an unknown adventure."""
        with pytest.raises(NotFoundError):
            database.update_adventure("missing", lambda current: current)

    def test_delete(self, database: Database, stored_adventure: Adventure) -> None:
        """Test deletion."""
        assert database.delete_adventure(stored_adventure.id) is True
        assert database.delete_adventure(stored_adventure.id) is False
        assert database.get_adventure_version(stored_adventure.id) is None
