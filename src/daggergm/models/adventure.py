"""Pydantic V2 schemas for adventures, scenes and scene expansions.

The Adventure is the aggregate root. Scenes are held in an immutable tuple
and addressed by a stable id; every change produces a new Adventure via
copy-on-write helpers (``with_scene``, ``with_scenes``, ``evolve``) so a
snapshot read before an LLM call is never modified in place.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from daggergm.core.constants import (
    EXPANSION_REGENERATION_LIMIT,
    MAX_DESCRIPTIONS,
    MAX_FOCUS_LENGTH,
    MAX_PARTY_LEVEL,
    MAX_PARTY_SIZE,
    MAX_SCENES,
    MAX_TIER,
    MIN_DESCRIPTIONS,
    MIN_PARTY_LEVEL,
    MIN_PARTY_SIZE,
    MIN_SCENES,
    MIN_TIER,
    SCAFFOLD_REGENERATION_LIMIT,
)
from daggergm.core.exceptions import NotFoundError
from daggergm.models.content import tier_ceiling
from daggergm.models.enums import (
    Difficulty,
    LootType,
    NPCRole,
    SceneState,
    SceneType,
    Stakes,
)


def new_id() -> str:
    """Generate a fresh entity id."""
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(UTC)


def _clean_descriptions(value: tuple[str, ...]) -> tuple[str, ...]:
    cleaned = tuple(text.strip() for text in value)
    if any(not text for text in cleaned):
        raise ValueError("descriptions must be non-empty strings")
    return cleaned


class DomainModel(BaseModel):
    """Base class for the immutable adventure aggregate."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    def evolve(self, **changes: Any) -> Any:
        """Return a validated copy with ``changes`` applied.

        Unlike ``model_copy(update=...)`` the result is re-validated, so
        field constraints hold on every copy.
        """
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(changes)
        return type(self).model_validate(data)


# =============================================================================
# Content References
# =============================================================================


class ContentReference(DomainModel):
    """Resolved reference to a Content Store row with its cached name."""

    content_entity_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)


class EquipmentReference(ContentReference):
    """Weapon or armor reference carried by an NPC."""

    tier: Annotated[int, Field(ge=MIN_TIER, le=MAX_TIER)]


# =============================================================================
# Expansion Components
# =============================================================================


class NPC(DomainModel):
    """A generated non-player character.

    Class, ancestry and community are resolved Content Store references.
    Level, hp, stress and evasion are derived from the party level and the
    resolved class, never taken from the model output.

    Attributes:
        id: Fresh identifier assigned at expansion time.
        name: Character name.
        character_class: Resolved class reference.
        ancestry: Resolved ancestry reference.
        community: Resolved community reference.
        level: NPC level (matches the party level).
        hp: Hit points.
        stress: Stress slots.
        evasion: Evasion score.
        weapon: Optional resolved weapon.
        armor: Optional resolved armor.
        personality: Short personality sketch.
        role: Narrative role in the scene.
        description: Physical and narrative description.
    """

    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1, max_length=200)
    character_class: ContentReference
    ancestry: ContentReference
    community: ContentReference
    level: Annotated[int, Field(ge=MIN_PARTY_LEVEL, le=MAX_PARTY_LEVEL)]
    hp: Annotated[int, Field(ge=1)]
    stress: Annotated[int, Field(ge=0)]
    evasion: Annotated[int, Field(ge=0)]
    weapon: EquipmentReference | None = None
    armor: EquipmentReference | None = None
    personality: str = Field(default="", max_length=1000)
    role: NPCRole = NPCRole.NEUTRAL
    description: str = Field(default="", max_length=2000)


class AdversaryCustomizations(DomainModel):
    """Scene-specific tweaks layered over a canonical adversary."""

    name_override: str | None = None
    hp_modifier: int = 0
    stress_modifier: int = 0
    custom_tactics: str | None = None
    custom_description: str | None = None


class SceneAdversary(DomainModel):
    """An adversary instance placed in a scene.

    ``tier`` is copied from the Content Store row at resolution time.
    """

    id: str = Field(default_factory=new_id)
    content_entity_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    tier: Annotated[int, Field(ge=MIN_TIER, le=MAX_TIER)]
    quantity: Annotated[int, Field(ge=1, le=20)] = 1
    customizations: AdversaryCustomizations = Field(default_factory=AdversaryCustomizations)


class SceneEnvironment(DomainModel):
    """The environment a scene takes place in."""

    content_entity_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    custom_description: str | None = None


class LootItem(DomainModel):
    """A reward placed in a scene.

    Weapons and armor carry a tier; items and consumables are untiered.
    """

    content_entity_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    item_type: LootType
    quantity: Annotated[int, Field(ge=1, le=99)] = 1
    tier: Annotated[int, Field(ge=MIN_TIER, le=MAX_TIER)] | None = None


class SceneExpansion(DomainModel):
    """Generated detail for one scene.

    Attributes:
        descriptions: 3-5 read-aloud/GM description passages.
        narration: Optional narration text.
        npcs: Generated NPCs.
        adversaries: Adversary instances.
        environment: Optional environment.
        loot: Rewards.
        confirmed: Whether the GM has approved this expansion.
        confirmed_at: When it was approved (present iff confirmed).
        generated_at: When it was generated.
    """

    descriptions: tuple[str, ...] = Field(
        min_length=MIN_DESCRIPTIONS,
        max_length=MAX_DESCRIPTIONS,
    )
    narration: str | None = None
    npcs: tuple[NPC, ...] = ()
    adversaries: tuple[SceneAdversary, ...] = ()
    environment: SceneEnvironment | None = None
    loot: tuple[LootItem, ...] = ()
    confirmed: bool = False
    confirmed_at: datetime | None = None
    generated_at: datetime = Field(default_factory=utc_now)

    @field_validator("descriptions", mode="after")
    @classmethod
    def validate_descriptions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _clean_descriptions(value)

    @model_validator(mode="after")
    def validate_confirmation(self) -> "SceneExpansion":
        """``confirmed_at`` is present exactly when ``confirmed`` is set."""
        if self.confirmed != (self.confirmed_at is not None):
            raise ValueError("confirmed_at must be set if and only if confirmed is true")
        return self

    def content_entity_ids(self) -> list[tuple[str, str]]:
        """List every (category, content_entity_id) pair this expansion cites."""
        refs: list[tuple[str, str]] = []
        for npc in self.npcs:
            refs.append(("class", npc.character_class.content_entity_id))
            refs.append(("ancestry", npc.ancestry.content_entity_id))
            refs.append(("community", npc.community.content_entity_id))
            if npc.weapon is not None:
                refs.append(("weapon", npc.weapon.content_entity_id))
            if npc.armor is not None:
                refs.append(("armor", npc.armor.content_entity_id))
        refs.extend(("adversary", adv.content_entity_id) for adv in self.adversaries)
        if self.environment is not None:
            refs.append(("environment", self.environment.content_entity_id))
        refs.extend((str(item.item_type), item.content_entity_id) for item in self.loot)
        return refs


# =============================================================================
# Scenes
# =============================================================================


class Scene(DomainModel):
    """An ordered unit of an adventure.

    Attributes:
        id: Stable identifier, preserved across regeneration.
        title: Scene title.
        type: Scene type (combat, exploration, social, puzzle).
        description: Outline description from the scaffold.
        estimated_time: Optional play-time estimate (e.g. "30-45 minutes").
        order_index: Zero-based position in the adventure.
        locked: Locked scenes are excluded from scaffold regeneration.
        expansion: Generated detail, if the scene has been expanded.
    """

    id: str = Field(default_factory=new_id)
    title: str = Field(min_length=1, max_length=200)
    type: SceneType
    description: str = Field(default="", max_length=5000)
    estimated_time: str | None = Field(default=None, max_length=100)
    order_index: Annotated[int, Field(ge=0)]
    locked: bool = False
    expansion: SceneExpansion | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def state(self) -> SceneState:
        """Derived confirmation state."""
        if self.expansion is None:
            return SceneState.NOT_EXPANDED
        if self.expansion.confirmed:
            return SceneState.CONFIRMED
        return SceneState.EXPANDED


# =============================================================================
# Adventure
# =============================================================================


class AdventureParams(BaseModel):
    """Caller input for scaffold generation.

    Attributes:
        frame: Campaign frame key (e.g. 'witherwild', 'custom').
        custom_frame_description: Setting text used with the custom frame.
        focus: Short adventure focus/hook.
        party_size: Number of player characters.
        party_level: Party level.
        difficulty: Difficulty relative to the party.
        stakes: What is at risk.
        scene_count: Requested number of scenes (defaults from settings).
        title: Optional title; generated when omitted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    frame: str = Field(default="default", min_length=1, max_length=100)
    custom_frame_description: str | None = Field(default=None, max_length=2000)
    focus: str = Field(min_length=1, max_length=MAX_FOCUS_LENGTH)
    party_size: Annotated[int, Field(ge=MIN_PARTY_SIZE, le=MAX_PARTY_SIZE)] = 4
    party_level: Annotated[int, Field(ge=MIN_PARTY_LEVEL, le=MAX_PARTY_LEVEL)] = 1
    difficulty: Difficulty = Difficulty.STANDARD
    stakes: Stakes = Stakes.PERSONAL
    scene_count: Annotated[int, Field(ge=MIN_SCENES, le=MAX_SCENES)] | None = None
    title: str | None = Field(default=None, max_length=200)

    @field_validator("focus", mode="after")
    @classmethod
    def strip_focus(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("focus must not be blank")
        return value


class Adventure(DomainModel):
    """The adventure aggregate root.

    Attributes:
        id: Adventure identifier.
        owner_id: Id of the owning user.
        title: Adventure title.
        description: Adventure summary from the scaffold.
        frame: Campaign frame key.
        custom_frame_description: Setting text for custom frames.
        focus: Adventure focus.
        party_size: Number of player characters.
        party_level: Party level.
        difficulty: Difficulty relative to the party.
        stakes: What is at risk.
        scenes: Ordered scenes (3-5).
        scaffold_regens_used: Scaffold regenerations consumed.
        expansion_regens_used: Expansion regenerations consumed.
        version: Persistence version, bumped on every write.
        created_at: Creation time.
        updated_at: Last modification time.
    """

    id: str = Field(default_factory=new_id)
    owner_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    frame: str = Field(min_length=1, max_length=100)
    custom_frame_description: str | None = None
    focus: str = Field(min_length=1, max_length=MAX_FOCUS_LENGTH)
    party_size: Annotated[int, Field(ge=MIN_PARTY_SIZE, le=MAX_PARTY_SIZE)]
    party_level: Annotated[int, Field(ge=MIN_PARTY_LEVEL, le=MAX_PARTY_LEVEL)]
    difficulty: Difficulty = Difficulty.STANDARD
    stakes: Stakes = Stakes.PERSONAL
    scenes: tuple[Scene, ...] = Field(min_length=MIN_SCENES, max_length=MAX_SCENES)
    scaffold_regens_used: Annotated[int, Field(ge=0, le=SCAFFOLD_REGENERATION_LIMIT)] = 0
    expansion_regens_used: Annotated[int, Field(ge=0, le=EXPANSION_REGENERATION_LIMIT)] = 0
    version: Annotated[int, Field(ge=0)] = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def validate_scene_order(self) -> "Adventure":
        """Scene ids are unique and ``order_index`` matches tuple position."""
        ids = [scene.id for scene in self.scenes]
        if len(set(ids)) != len(ids):
            raise ValueError("scene ids must be unique")
        for position, scene in enumerate(self.scenes):
            if scene.order_index != position:
                raise ValueError(
                    f"scene {scene.id} has order_index {scene.order_index}, expected {position}"
                )
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def tier_ceiling(self) -> int:
        """Highest content tier allowed for this party."""
        return tier_ceiling(self.party_level)

    def get_scene(self, scene_id: str) -> Scene:
        """Look up a scene by id.

        Raises:
            NotFoundError: If the scene is not part of this adventure.
        """
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        raise NotFoundError(
            f"Scene {scene_id} not found in adventure {self.id}",
            resource="scene",
            resource_id=scene_id,
        )

    def with_scene(self, scene: Scene) -> "Adventure":
        """Return a copy with the scene of the same id replaced."""
        self.get_scene(scene.id)
        scenes = tuple(scene if s.id == scene.id else s for s in self.scenes)
        return self.evolve(scenes=scenes)

    def with_scenes(self, scenes: tuple[Scene, ...] | list[Scene]) -> "Adventure":
        """Return a copy with every given scene replaced by id."""
        by_id = {scene.id: scene for scene in scenes}
        for scene_id in by_id:
            self.get_scene(scene_id)
        return self.evolve(scenes=tuple(by_id.get(s.id, s) for s in self.scenes))


class ExpansionEdit(BaseModel):
    """A manual GM edit to an unconfirmed expansion.

    Fields left as None are unchanged.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    descriptions: tuple[str, ...] | None = Field(
        default=None,
        min_length=MIN_DESCRIPTIONS,
        max_length=MAX_DESCRIPTIONS,
    )
    narration: str | None = None
    environment_description: str | None = None

    @field_validator("descriptions", mode="after")
    @classmethod
    def validate_descriptions(cls, value: tuple[str, ...] | None) -> tuple[str, ...] | None:
        if value is None:
            return None
        return _clean_descriptions(value)

    @property
    def is_empty(self) -> bool:
        return (
            self.descriptions is None
            and self.narration is None
            and self.environment_description is None
        )


__all__ = [
    "new_id",
    "utc_now",
    "DomainModel",
    "ContentReference",
    "EquipmentReference",
    "NPC",
    "AdversaryCustomizations",
    "SceneAdversary",
    "SceneEnvironment",
    "LootItem",
    "SceneExpansion",
    "Scene",
    "AdventureParams",
    "Adventure",
    "ExpansionEdit",
]
