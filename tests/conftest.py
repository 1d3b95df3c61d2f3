"""Pytest configuration and shared fixtures.

This module provides common fixtures for the DaggerGM test suite:
a temporary database, a seeded Content Store, and deterministic fakes for
the embedding provider and the LLM client so that no test talks to a
real provider.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pytest

from daggergm.content.embeddings import EmbeddingProvider
from daggergm.content.retrieval import RetrievalService
from daggergm.content.seeder import ContentSeeder, build_searchable_text
from daggergm.content.store import ContentStore
from daggergm.core.config import GenerationSettings, RetrievalSettings
from daggergm.generation.expansion import SceneExpansionEngine
from daggergm.generation.llm import LLMClient
from daggergm.generation.scaffold import ScaffoldGenerator
from daggergm.models.adventure import Adventure, Scene
from daggergm.models.enums import ContentCategory, SceneType
from daggergm.storage.database import Database
from daggergm.workflow.actions import AdventureActions
from daggergm.workflow.budget import RegenerationBudget


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


# =============================================================================
# Fakes
# =============================================================================

KEYWORDS = (
    "forest",
    "blight",
    "wolf",
    "thorn",
    "bandit",
    "river",
    "fire",
    "shadow",
    "ancient",
    "cave",
    "noble",
    "healing",
    "bow",
    "sword",
    "armor",
    "map",
)


class FakeEmbeddingProvider(EmbeddingProvider):
    """Keyword-bag embeddings: one dimension per keyword plus a bias term."""

    def __init__(self) -> None:
        self.model = "fake-embedding"
        self.dimension = len(KEYWORDS) + 1
        self.calls: list[list[str]] = []
        self.fail_with: Exception | None = None

    def vector(self, text: str) -> list[float]:
        lowered = text.lower()
        return [float(lowered.count(keyword)) for keyword in KEYWORDS] + [0.1]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail_with is not None:
            raise self.fail_with
        return [self.vector(text) for text in texts]


class FakeLLMClient(LLMClient):
    """Scripted LLM: returns queued responses (or raises queued errors) in order."""

    def __init__(self) -> None:
        self.model = "fake-model"
        self.responses: list[dict[str, Any] | Exception] = []
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: dict[str, Any] | Exception) -> None:
        self.responses.extend(responses)

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
    ) -> dict[str, Any]:
        self.calls.append(
            {"system": system_prompt, "user": user_prompt, "temperature": temperature}
        )
        # Yield to the event loop so concurrent callers interleave here.
        await asyncio.sleep(0)
        if not self.responses:
            raise AssertionError("Unexpected LLM call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


# =============================================================================
# Content Fixtures
# =============================================================================

SEED_RECORDS: dict[str, list[dict[str, Any]]] = {
    "adversary": [
        {
            "name": "Dire Wolf",
            "tier": 1,
            "type": "Skulk",
            "description": "A massive wolf hunting through the blight-stricken forest.",
            "motives_tactics": "Circle, pounce, hunt in packs",
            "hp": 4,
        },
        {
            "name": "Bramble Sentinel",
            "tier": 1,
            "type": "Standard",
            "description": "A forest guardian woven from thorn and vine.",
            "hp": 5,
        },
        {
            "name": "Bandit Raider",
            "tier": 1,
            "type": "Minion",
            "description": "A bandit who ambushes travellers on the river road.",
            "hp": 1,
        },
        {
            "name": "Blight Treant",
            "tier": 2,
            "type": "Bruiser",
            "description": "An ancient treant of the forest twisted by blight.",
            "hp": 8,
        },
        {
            "name": "Shadow Wyrm",
            "tier": 3,
            "type": "Solo",
            "description": "An ancient shadow dragon coiled in a cave.",
            "hp": 12,
        },
    ],
    "environment": [
        {
            "name": "Blighted Grove",
            "tier": 1,
            "type": "Exploration",
            "description": "A forest clearing rotting with blight and thorn.",
            "impulses": "Spread the rot",
        },
        {
            "name": "River Crossing",
            "tier": 1,
            "type": "Traversal",
            "description": "A swollen river watched by bandit scouts.",
        },
        {
            "name": "Burning Keep",
            "tier": 2,
            "type": "Event",
            "description": "A noble's keep consumed by fire.",
        },
    ],
    "class": [
        {
            "name": "Ranger",
            "description": "Bow-wielding tracker of the forest.",
            "starting_hp": 6,
            "starting_evasion": 12,
        },
        {
            "name": "Guardian",
            "description": "Armor-clad protector with sword and shield.",
            "starting_hp": 7,
            "starting_evasion": 9,
        },
        {"name": "Bard", "description": "Performer and keeper of ancient songs."},
    ],
    "ancestry": [
        {"name": "Elf", "description": "Long-lived folk of the forest."},
        {"name": "Human", "description": "Adaptable and ambitious."},
        {"name": "Faerie", "description": "Winged folk of thorn and blossom."},
    ],
    "community": [
        {"name": "Wildborne", "description": "Raised deep in the forest."},
        {"name": "Highborne", "description": "Raised among the noble houses."},
    ],
    "weapon": [
        {"name": "Shortbow", "tier": 1, "description": "A light bow.", "damage": "d6"},
        {"name": "Broadsword", "tier": 1, "description": "A reliable sword.", "damage": "d8"},
        {"name": "Flamebrand", "tier": 3, "description": "A sword wreathed in fire.", "damage": "d12"},
    ],
    "armor": [
        {"name": "Leather Armor", "tier": 1, "description": "Supple armor.", "base_score": 3},
        {"name": "Plate Armor", "tier": 2, "description": "Heavy armor.", "base_score": 5},
    ],
    "item": [
        {"name": "Ancient Map", "description": "A map of forgotten forest paths."},
    ],
    "consumable": [
        {"name": "Minor Health Potion", "description": "A healing draught.", "effect": "Clear 1d4 HP"},
    ],
}


@pytest.fixture(autouse=True)
def reset_settings_cache(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Reset the settings cache and keep the default database under tmp_path."""
    from daggergm.core.config import clear_settings_cache

    monkeypatch.setenv("DAGGERGM_DATABASE_PATH", str(tmp_path / "settings" / "daggergm.db"))
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def keep_logging_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Stop AdventureActions.create from reconfiguring global logging."""
    monkeypatch.setattr("daggergm.workflow.actions.configure_logging", lambda **kwargs: None)


@pytest.fixture
def database(tmp_path: Path) -> Database:
    """Create an empty database in a temporary directory."""
    return Database(tmp_path / "test.db")


@pytest.fixture
def store(database: Database) -> ContentStore:
    """Create an empty Content Store."""
    return ContentStore(database)


@pytest.fixture
def embeddings() -> FakeEmbeddingProvider:
    """Create a deterministic embedding provider."""
    return FakeEmbeddingProvider()


@pytest.fixture
def seed_records() -> dict[str, list[dict[str, Any]]]:
    """Provide raw content records for seeding.

    Returns:
        A fresh copy of the records, keyed by category name.
    """
    return {category: [dict(record) for record in records] for category, records in SEED_RECORDS.items()}


@pytest.fixture
def seeded_store(
    store: ContentStore,
    embeddings: FakeEmbeddingProvider,
    seed_records: dict[str, list[dict[str, Any]]],
) -> ContentStore:
    """Create a Content Store holding every seed record with embeddings.

    Args:
        store: Empty Content Store.
        embeddings: Provider used to compute the stored vectors.
        seed_records: Raw records.

    Returns:
        The populated store.
    """
    seeder = ContentSeeder(store, embeddings, batch_size=10)
    entities = []
    for category_name, records in seed_records.items():
        category = ContentCategory(category_name)
        for record in records:
            vector = embeddings.vector(build_searchable_text(record))
            entities.append(seeder.build_entity(category, {**record, "embedding": vector}))
    store.add_entities(entities)
    return store


@pytest.fixture
def retrieval(seeded_store: ContentStore, embeddings: FakeEmbeddingProvider) -> RetrievalService:
    """Create a RetrievalService over the seeded store."""
    return RetrievalService(seeded_store, embeddings, RetrievalSettings())


# =============================================================================
# Generation Fixtures
# =============================================================================


@pytest.fixture
def llm() -> FakeLLMClient:
    """Create a scripted LLM client with an empty queue."""
    return FakeLLMClient()


@pytest.fixture
def budget() -> RegenerationBudget:
    return RegenerationBudget()


@pytest.fixture
def generation_settings() -> GenerationSettings:
    return GenerationSettings()


@pytest.fixture
def scaffold_generator(
    database: Database,
    llm: FakeLLMClient,
    budget: RegenerationBudget,
    generation_settings: GenerationSettings,
) -> ScaffoldGenerator:
    return ScaffoldGenerator(database, llm, budget=budget, settings=generation_settings)


@pytest.fixture
def expansion_engine(
    database: Database,
    retrieval: RetrievalService,
    llm: FakeLLMClient,
    budget: RegenerationBudget,
    generation_settings: GenerationSettings,
) -> SceneExpansionEngine:
    return SceneExpansionEngine(
        database,
        retrieval,
        llm,
        budget=budget,
        settings=generation_settings,
    )


@pytest.fixture
def actions(
    database: Database,
    scaffold_generator: ScaffoldGenerator,
    expansion_engine: SceneExpansionEngine,
    budget: RegenerationBudget,
) -> AdventureActions:
    """Create the server actions wired to the fakes."""
    return AdventureActions(database, scaffold_generator, expansion_engine, budget=budget)


# =============================================================================
# Adventure Fixtures
# =============================================================================

SCENE_TYPES = (
    SceneType.EXPLORATION,
    SceneType.COMBAT,
    SceneType.SOCIAL,
    SceneType.PUZZLE,
    SceneType.COMBAT,
)


@pytest.fixture
def make_adventure() -> Callable[..., Adventure]:
    """Factory for unsaved adventures.

    Returns:
        A function accepting ``scene_count`` and any Adventure field override.
    """

    def _make(scene_count: int = 3, **overrides: Any) -> Adventure:
        scenes = tuple(
            Scene(
                title=f"Scene {index + 1}",
                type=SCENE_TYPES[index],
                description=f"The party pushes deeper into the blighted forest ({index + 1}).",
                order_index=index,
            )
            for index in range(scene_count)
        )
        fields: dict[str, Any] = {
            "owner_id": "user-1",
            "title": "The Withering Grove",
            "frame": "witherwild",
            "focus": "A blight spreading through the forest",
            "party_size": 4,
            "party_level": 1,
            "scenes": scenes,
        }
        fields.update(overrides)
        return Adventure(**fields)

    return _make


@pytest.fixture
def stored_adventure(database: Database, make_adventure: Callable[..., Adventure]) -> Adventure:
    """A three-scene adventure owned by ``user-1``, persisted."""
    return database.create_adventure(make_adventure())


@pytest.fixture
def scaffold_payload() -> Callable[..., dict[str, Any]]:
    """Factory for raw scaffold LLM output."""

    def _payload(scene_count: int = 3, title: str = "The Withering Grove") -> dict[str, Any]:
        return {
            "title": title,
            "description": "A blight creeps through the old forest.",
            "scenes": [
                {
                    "title": f"Outline {index + 1}",
                    "type": str(SCENE_TYPES[index]),
                    "description": f"Outline description {index + 1}",
                    "estimated_time": "30-45 minutes",
                }
                for index in range(scene_count)
            ],
        }

    return _payload


@pytest.fixture
def expansion_payload() -> Callable[..., dict[str, Any]]:
    """Factory for raw expansion LLM output naming tier-1 seed content."""

    def _payload(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "descriptions": [
                "The grove reeks of rot.",
                "Thorned vines creep across the path.",
                "A wolf howls somewhere in the fog.",
            ],
            "narration": "You step into the blighted grove.",
            "npcs": [
                {
                    "name": "Mira Thornwell",
                    "class_name": "Ranger",
                    "ancestry_name": "Elf",
                    "community_name": "Wildborne",
                    "weapon_name": "Shortbow",
                    "armor_name": "Leather Armor",
                    "personality": "Wary but kind",
                    "role": "ally",
                    "description": "A scout who lost her village to the blight.",
                }
            ],
            "adversaries": [
                {"name": "Dire Wolf", "quantity": 2, "custom_tactics": "Flank the party"}
            ],
            "environment": {"name": "Blighted Grove", "custom_description": "Fog hangs low."},
            "loot": [{"name": "Minor Health Potion", "item_type": "consumable", "quantity": 2}],
        }
        payload.update(overrides)
        return payload

    return _payload
