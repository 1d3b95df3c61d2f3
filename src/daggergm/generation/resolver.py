"""Validation and resolution of raw expansion output.

The model returns names; the resolver turns them into Content Store
references. A name resolves only if it exactly matches one of the
candidates offered in the prompt for that category. Anything else rejects
the whole expansion: references are never dropped or guessed.

Tiers are checked against the stored entity, so a candidate list that was
built for one party level cannot leak over-tier content into another.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from daggergm.content.retrieval import CandidateSet
from daggergm.content.store import ContentStore
from daggergm.core.constants import MAX_DESCRIPTIONS, MIN_DESCRIPTIONS, NPC_BASE_STRESS
from daggergm.core.exceptions import (
    ReferenceResolutionError,
    TierViolationError,
    ValidationError,
)
from daggergm.core.logging import get_logger
from daggergm.models.adventure import (
    NPC,
    AdversaryCustomizations,
    ContentReference,
    EquipmentReference,
    LootItem,
    SceneAdversary,
    SceneEnvironment,
    SceneExpansion,
    new_id,
)
from daggergm.models.content import ContentEntity
from daggergm.models.enums import ContentCategory, LootType, NPCRole

logger = get_logger(__name__)

DEFAULT_CLASS_HP = 6
DEFAULT_CLASS_EVASION = 10


def parse_descriptions(data: dict[str, Any]) -> tuple[str, ...]:
    """Extract and validate the required ``descriptions`` list.

    Raises:
        ValidationError: If missing, not a list, the wrong length, or
            containing empty entries.
    """
    raw = data.get("descriptions")
    if not isinstance(raw, list):
        raise ValidationError(
            "Expansion must include a descriptions list",
            field_name="descriptions",
            invalid_value=type(raw).__name__,
        )
    if not MIN_DESCRIPTIONS <= len(raw) <= MAX_DESCRIPTIONS:
        raise ValidationError(
            f"Expansion must include {MIN_DESCRIPTIONS}-{MAX_DESCRIPTIONS} descriptions",
            field_name="descriptions",
            invalid_value=len(raw),
        )
    descriptions = []
    for item in raw:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(
                "Descriptions must be non-empty strings",
                field_name="descriptions",
            )
        descriptions.append(item.strip())
    return tuple(descriptions)


def parse_narration(data: dict[str, Any]) -> str | None:
    raw = data.get("narration")
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError("Narration must be a string", field_name="narration")
    return raw.strip() or None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _list_field(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    raw = data.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise ValidationError(
            f"'{key}' must be a list of objects",
            field_name=key,
        )
    return raw


def _parse_role(value: Any) -> NPCRole:
    if value is None:
        return NPCRole.NEUTRAL
    normalized = str(value).strip().lower().replace(" ", "_").replace("-", "_")
    try:
        return NPCRole(normalized)
    except ValueError as exc:
        raise ValidationError(
            f"Unknown NPC role: {value}",
            field_name="role",
            invalid_value=value,
        ) from exc


def _parse_loot_type(value: Any) -> LootType:
    try:
        return LootType(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationError(
            f"Unknown loot type: {value}",
            field_name="item_type",
            invalid_value=value,
        ) from exc


class ReferenceResolver:
    """Turns raw model output into a validated SceneExpansion."""

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    def resolve_name(
        self,
        category: ContentCategory,
        name: Any,
        candidates: CandidateSet,
        tier_ceiling: int,
    ) -> ContentEntity:
        """Resolve one name against the candidates of a category.

        Raises:
            ValidationError: If the name is missing or blank.
            ReferenceResolutionError: If the name is not a candidate.
            TierViolationError: If the stored tier exceeds ``tier_ceiling``.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(
                f"Missing {category} name",
                field_name=f"{category}_name",
                invalid_value=name,
            )
        hit = candidates.find(category, name)
        if hit is None:
            raise ReferenceResolutionError(
                f"'{name}' is not one of the offered {category} candidates",
                category=str(category),
                reference=name,
                candidates=candidates.names(category),
            )

        entity = self.store.get(hit.id)
        if entity is None or entity.category != category:
            raise ReferenceResolutionError(
                f"'{name}' no longer exists in the Content Store",
                category=str(category),
                reference=name,
            )
        if entity.category.is_tiered and entity.tier is not None and entity.tier > tier_ceiling:
            raise TierViolationError(
                f"{category} '{entity.name}' is tier {entity.tier}, above the party's tier {tier_ceiling}",
                entity_name=entity.name,
                tier=entity.tier,
                tier_ceiling=tier_ceiling,
            )
        return entity

    def resolve_expansion(
        self,
        data: dict[str, Any],
        candidates: CandidateSet,
        *,
        party_level: int,
        tier_ceiling: int,
    ) -> SceneExpansion:
        """Validate raw expansion output and resolve every reference.

        Args:
            data: Parsed JSON from the model.
            candidates: The candidate set offered in the prompt.
            party_level: Level given to generated NPCs.
            tier_ceiling: Highest tier allowed for this party.

        Returns:
            An unconfirmed SceneExpansion with fresh NPC and adversary ids.

        Raises:
            ValidationError: Malformed output (includes TierViolationError).
            ReferenceResolutionError: A name outside the candidate set.
        """
        descriptions = parse_descriptions(data)
        narration = parse_narration(data)

        npcs = [
            self._resolve_npc(raw, candidates, party_level, tier_ceiling)
            for raw in _list_field(data, "npcs")
        ]
        adversaries = [
            self._resolve_adversary(raw, candidates, tier_ceiling)
            for raw in _list_field(data, "adversaries")
        ]
        environment = self._resolve_environment(data.get("environment"), candidates, tier_ceiling)
        loot = [
            self._resolve_loot(raw, candidates, tier_ceiling)
            for raw in _list_field(data, "loot")
        ]

        try:
            expansion = SceneExpansion(
                descriptions=descriptions,
                narration=narration,
                npcs=tuple(npcs),
                adversaries=tuple(adversaries),
                environment=environment,
                loot=tuple(loot),
            )
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid expansion: {exc.errors()[0]['msg']}",
                field_name="expansion",
            ) from exc

        logger.debug(
            "Expansion resolved",
            npcs=len(npcs),
            adversaries=len(adversaries),
            environment=environment is not None,
            loot=len(loot),
        )
        return expansion

    # =========================================================================
    # Components
    # =========================================================================

    def _resolve_npc(
        self,
        raw: dict[str, Any],
        candidates: CandidateSet,
        party_level: int,
        tier_ceiling: int,
    ) -> NPC:
        character_class = self.resolve_name(
            ContentCategory.CLASS, raw.get("class_name"), candidates, tier_ceiling
        )
        ancestry = self.resolve_name(
            ContentCategory.ANCESTRY, raw.get("ancestry_name"), candidates, tier_ceiling
        )
        community = self.resolve_name(
            ContentCategory.COMMUNITY, raw.get("community_name"), candidates, tier_ceiling
        )
        weapon = armor = None
        if _optional_text(raw.get("weapon_name")):
            weapon = self.resolve_name(
                ContentCategory.WEAPON, raw["weapon_name"], candidates, tier_ceiling
            )
        if _optional_text(raw.get("armor_name")):
            armor = self.resolve_name(
                ContentCategory.ARMOR, raw["armor_name"], candidates, tier_ceiling
            )

        starting_hp = int(character_class.attributes.get("starting_hp", DEFAULT_CLASS_HP))
        evasion = int(character_class.attributes.get("starting_evasion", DEFAULT_CLASS_EVASION))

        try:
            return NPC(
                id=new_id(),
                name=_optional_text(raw.get("name")) or "",
                character_class=_reference(character_class),
                ancestry=_reference(ancestry),
                community=_reference(community),
                level=party_level,
                hp=starting_hp + party_level - 1,
                stress=NPC_BASE_STRESS,
                evasion=evasion,
                weapon=_equipment(weapon) if weapon else None,
                armor=_equipment(armor) if armor else None,
                personality=str(raw.get("personality") or ""),
                role=_parse_role(raw.get("role")),
                description=str(raw.get("description") or ""),
            )
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid NPC: {exc.errors()[0]['msg']}",
                field_name="npcs",
                invalid_value=raw.get("name"),
            ) from exc

    def _resolve_adversary(
        self,
        raw: dict[str, Any],
        candidates: CandidateSet,
        tier_ceiling: int,
    ) -> SceneAdversary:
        entity = self.resolve_name(
            ContentCategory.ADVERSARY, raw.get("name"), candidates, tier_ceiling
        )
        try:
            return SceneAdversary(
                id=new_id(),
                content_entity_id=entity.id,
                display_name=entity.name,
                tier=entity.tier,
                quantity=raw.get("quantity") or 1,
                customizations=AdversaryCustomizations(
                    name_override=_optional_text(raw.get("name_override")),
                    hp_modifier=raw.get("hp_modifier") or 0,
                    stress_modifier=raw.get("stress_modifier") or 0,
                    custom_tactics=_optional_text(raw.get("custom_tactics")),
                    custom_description=_optional_text(raw.get("custom_description")),
                ),
            )
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid adversary: {exc.errors()[0]['msg']}",
                field_name="adversaries",
                invalid_value=entity.name,
            ) from exc

    def _resolve_environment(
        self,
        raw: Any,
        candidates: CandidateSet,
        tier_ceiling: int,
    ) -> SceneEnvironment | None:
        if raw is None:
            return None
        if isinstance(raw, str):
            raw = {"name": raw}
        if not isinstance(raw, dict):
            raise ValidationError("'environment' must be an object", field_name="environment")
        entity = self.resolve_name(
            ContentCategory.ENVIRONMENT, raw.get("name"), candidates, tier_ceiling
        )
        return SceneEnvironment(
            content_entity_id=entity.id,
            display_name=entity.name,
            custom_description=_optional_text(raw.get("custom_description")),
        )

    def _resolve_loot(
        self,
        raw: dict[str, Any],
        candidates: CandidateSet,
        tier_ceiling: int,
    ) -> LootItem:
        item_type = _parse_loot_type(raw.get("item_type"))
        entity = self.resolve_name(item_type.category, raw.get("name"), candidates, tier_ceiling)
        try:
            return LootItem(
                content_entity_id=entity.id,
                display_name=entity.name,
                item_type=item_type,
                quantity=raw.get("quantity") or 1,
                tier=entity.tier,
            )
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid loot: {exc.errors()[0]['msg']}",
                field_name="loot",
                invalid_value=entity.name,
            ) from exc


def _reference(entity: ContentEntity) -> ContentReference:
    return ContentReference(content_entity_id=entity.id, display_name=entity.name)


def _equipment(entity: ContentEntity) -> EquipmentReference:
    return EquipmentReference(
        content_entity_id=entity.id,
        display_name=entity.name,
        tier=entity.tier,
    )


__all__ = [
    "ReferenceResolver",
    "parse_descriptions",
    "parse_narration",
]
