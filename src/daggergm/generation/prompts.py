"""Prompt templates and builders for adventure generation.

Each campaign frame supplies a scaffold system prompt and one system prompt
per scene type. Unknown frames fall back to the default frame. User prompts
end with the exact JSON shape the model must return.
"""

from __future__ import annotations

import json
from typing import Any

from daggergm.content.retrieval import CandidateSet
from daggergm.core.config import GenerationSettings
from daggergm.models.adventure import Adventure, AdventureParams, Scene, SceneExpansion
from daggergm.models.enums import ContentCategory, LootType, NPCRole, SceneType

# =============================================================================
# Frame Prompts
# =============================================================================

FRAME_PROMPTS: dict[str, dict[str, str]] = {
    "witherwild": {
        "scaffold": (
            "You are a seasoned Daggerheart GM building adventures set in the Witherwild.\n\n"
            "The Witherwild is a land where an old corruption creeps through forest and field, "
            "fey strike bargains that are never quite fair, and ruined cities sink back into "
            "the wood. Every adventure should:\n"
            "- include at least one encounter shaped by the corruption\n"
            "- use the frame's own threats: thorned tangles, dryads, blighted beasts\n"
            "- put hazards of the living wilderness in the party's way\n"
            "- return to the struggle between the growing wild and the rot inside it\n"
            "- favor vivid, natural imagery"
        ),
        "combat": (
            "Build Witherwild fights around corrupted creatures with strange abilities, "
            "hazards such as creeping brambles or spore clouds, high ground in trees and "
            "cliffs, weather that changes the fight, and chances to turn the forest against "
            "the enemy."
        ),
        "exploration": (
            "Witherwild exploration shows both faces of the land: ruins swallowed by hungry "
            "growth, fey crossings with unpredictable effects, hidden groves holding old "
            "magic, and clear signs of the spreading blight."
        ),
        "social": (
            "Witherwild NPCs carry the frame's themes: druids and rangers holding back the "
            "corruption, fey with alien morals and binding deals, survivors of lost villages, "
            "tainted souls who might still be saved, and spirits pursuing their own ends."
        ),
        "puzzle": (
            "Witherwild puzzles draw on seasonal cycles and growth patterns, fey riddles, "
            "cleansing tainted ground, and old druidic mechanisms that shift as they grow."
        ),
    },
    "default": {
        "scaffold": (
            "You are a seasoned Daggerheart GM building one-session adventures.\n\n"
            "A good adventure tells a complete story in a single sitting, mixes combat with "
            "exploration and roleplay, gives the players real choices, introduces "
            "memorable people and places, and rises to a strong climax."
        ),
        "combat": (
            "Build fights that test the party without crushing it: use terrain and the "
            "environment, give every character a moment, mix enemy roles and tactics, and "
            "make the win condition clear."
        ),
        "exploration": (
            "Build exploration that rewards curiosity, tells its story through the "
            "surroundings, allows more than one route, hides secrets worth finding, and "
            "steadily raises the tension."
        ),
        "social": (
            "Build social scenes around NPCs with clear wants, several ways to succeed "
            "without violence, room for different characters to contribute, and "
            "consequences that move the story forward."
        ),
        "puzzle": (
            "Build puzzles with more than one solution, that never stall the session on a "
            "failed roll, that belong to the story and setting, and that fit the party's "
            "abilities."
        ),
    },
    "custom": {
        "scaffold": (
            "You are building an adventure for a GM's own Daggerheart setting.\n\n"
            "Honor the setting details the GM provides, keep the world internally "
            "consistent, hold a single tone throughout, weave the custom elements in "
            "naturally, and stay within Daggerheart's rules."
        ),
        "combat": "Build fights that suit the custom setting while following Daggerheart's rules.",
        "exploration": "Build exploration that shows off what makes this custom world different.",
        "social": "NPCs should live out the culture and values of the custom setting.",
        "puzzle": "Puzzles should follow the logic and magic of the custom setting.",
    },
}

JSON_ONLY = "Respond with a single JSON object and nothing else."


def frame_prompt(frame: str, kind: str) -> str:
    """Look up a frame prompt, falling back to the default frame and then to its scaffold prompt."""
    prompts = FRAME_PROMPTS.get(frame.lower(), FRAME_PROMPTS["default"])
    return prompts.get(kind, prompts["scaffold"])


def temperature_for(scene_type: SceneType, settings: GenerationSettings) -> float:
    """Sampling temperature for expanding a scene of the given type."""
    if scene_type == SceneType.COMBAT:
        return settings.combat_temperature
    if scene_type == SceneType.SOCIAL:
        return settings.social_temperature
    return settings.description_temperature


def _party_line(adventure: Adventure | AdventureParams) -> str:
    return (
        f"Party: {adventure.party_size} characters at level {adventure.party_level}\n"
        f"Difficulty: {adventure.difficulty}, Stakes: {adventure.stakes}"
    )


def _scene_line(scene: Scene) -> str:
    return f"- [{scene.order_index + 1}] {scene.title} ({scene.type}): {scene.description}"


# =============================================================================
# Scaffold
# =============================================================================

SCAFFOLD_SHAPE = {
    "title": "adventure title",
    "description": "one-paragraph adventure summary",
    "scenes": [
        {
            "title": "scene title",
            "type": "combat|exploration|social|puzzle",
            "description": "what happens in this scene",
            "estimated_time": "e.g. 30-45 minutes",
        }
    ],
}

SCENE_SHAPE = {
    "title": "scene title",
    "type": "combat|exploration|social|puzzle",
    "description": "what happens in this scene",
    "estimated_time": "e.g. 30-45 minutes",
}


def build_scaffold_prompts(params: AdventureParams, scene_count: int) -> tuple[str, str]:
    """System and user prompts for a new adventure scaffold."""
    custom = ""
    if params.custom_frame_description:
        custom = f"\nCustom frame: {params.custom_frame_description}"
    user = (
        "Create a Daggerheart adventure.\n"
        f"Frame: {params.frame}{custom}\n"
        f"Focus: {params.focus}\n"
        f"{_party_line(params)}\n\n"
        f"Write a title, a short description and exactly {scene_count} scenes in play order. "
        "Scenes should vary in type and build toward a climax.\n"
        f"JSON: {json.dumps(SCAFFOLD_SHAPE)}\n{JSON_ONLY}"
    )
    return frame_prompt(params.frame, "scaffold"), user


def build_scene_regeneration_prompts(
    adventure: Adventure,
    targets: list[Scene],
    locked: list[Scene],
) -> tuple[str, str]:
    """System and user prompts to rewrite one or more scene outlines.

    Locked scenes are given as fixed context the new outlines must fit.
    """
    custom = ""
    if adventure.custom_frame_description:
        custom = f"\nCustom frame: {adventure.custom_frame_description}"
    locked_block = "\n".join(_scene_line(scene) for scene in locked) or "- none"
    target_block = "\n".join(_scene_line(scene) for scene in targets)
    shape: dict[str, Any]
    if len(targets) == 1:
        shape = SCENE_SHAPE
        ask = "Write a NEW version of this scene."
    else:
        shape = {"scenes": [SCENE_SHAPE]}
        ask = f"Write NEW versions of these {len(targets)} scenes, in the same order."
    user = (
        f"Adventure: {adventure.title}\n"
        f"Frame: {adventure.frame}{custom}\n"
        f"Focus: {adventure.focus}\n"
        f"{_party_line(adventure)}\n\n"
        f"Locked scenes (keep continuity with these, do not rewrite them):\n{locked_block}\n\n"
        f"Scenes to regenerate:\n{target_block}\n\n"
        f"{ask} Keep each scene's type unless the story clearly needs another, "
        "differ noticeably from the current version, and fit the locked scenes.\n"
        f"JSON: {json.dumps(shape)}\n{JSON_ONLY}"
    )
    return frame_prompt(adventure.frame, "scaffold"), user


# =============================================================================
# Expansion
# =============================================================================

EXPANSION_CATEGORIES: tuple[ContentCategory, ...] = (
    ContentCategory.ADVERSARY,
    ContentCategory.ENVIRONMENT,
    ContentCategory.CLASS,
    ContentCategory.ANCESTRY,
    ContentCategory.COMMUNITY,
    ContentCategory.WEAPON,
    ContentCategory.ARMOR,
    ContentCategory.ITEM,
    ContentCategory.CONSUMABLE,
)

EXPANSION_SHAPE = {
    "descriptions": ["3 to 5 read-aloud or GM description passages"],
    "narration": "optional narration",
    "npcs": [
        {
            "name": "NPC name",
            "class_name": "one of the class candidates",
            "ancestry_name": "one of the ancestry candidates",
            "community_name": "one of the community candidates",
            "weapon_name": "optional, one of the weapon candidates",
            "armor_name": "optional, one of the armor candidates",
            "personality": "short personality sketch",
            "role": "|".join(role.value for role in NPCRole),
            "description": "appearance and motives",
        }
    ],
    "adversaries": [
        {
            "name": "one of the adversary candidates",
            "quantity": 1,
            "name_override": "optional",
            "hp_modifier": 0,
            "stress_modifier": 0,
            "custom_tactics": "optional",
            "custom_description": "optional",
        }
    ],
    "environment": {"name": "one of the environment candidates", "custom_description": "optional"},
    "loot": [
        {
            "name": "one of the weapon, armor, item or consumable candidates",
            "item_type": "|".join(loot.value for loot in LootType),
            "quantity": 1,
        }
    ],
}


def _candidate_block(candidates: CandidateSet) -> str:
    lines = []
    for category in EXPANSION_CATEGORIES:
        names = candidates.names(category)
        lines.append(f"{category}: {', '.join(names) if names else '(none available)'}")
    return "\n".join(lines)


def build_retrieval_query(adventure: Adventure, scene: Scene) -> str:
    """Free text used to retrieve candidate content for a scene."""
    return f"{scene.title}. {scene.description} {scene.type} scene. {adventure.focus}".strip()


def build_expansion_prompts(
    adventure: Adventure,
    scene: Scene,
    candidates: CandidateSet,
) -> tuple[str, str]:
    """System and user prompts to expand one scene.

    The model may only reference the candidate names listed in the prompt.
    """
    neighbours = []
    if scene.order_index > 0:
        neighbours.append(f"Previous scene: {adventure.scenes[scene.order_index - 1].title}")
    if scene.order_index + 1 < len(adventure.scenes):
        neighbours.append(f"Next scene: {adventure.scenes[scene.order_index + 1].title}")
    neighbour_block = "\n".join(neighbours)

    system = (
        f"{frame_prompt(adventure.frame, str(scene.type))}\n\n"
        "You reference Daggerheart rules content only by the exact names you are given. "
        "Never invent adversaries, environments, classes, ancestries, communities or items."
    )
    user = (
        f"Expand scene: {scene.title} ({scene.type})\n"
        f"Outline: {scene.description}\n"
        f"Frame: {adventure.frame}, Focus: {adventure.focus}\n"
        f"{_party_line(adventure)}\n"
        f"{neighbour_block}\n\n"
        "Candidate content (use exact names from these lists only):\n"
        f"{_candidate_block(candidates)}\n\n"
        "descriptions is required (3 to 5 passages). narration, npcs, adversaries, "
        "environment and loot are optional; omit what the scene does not need.\n"
        f"JSON: {json.dumps(EXPANSION_SHAPE)}\n{JSON_ONLY}"
    )
    return system, user


# =============================================================================
# Refinement
# =============================================================================

REFINEMENT_SHAPE = {
    "descriptions": ["3 to 5 rewritten passages"],
    "narration": "rewritten narration, or null to keep none",
}


def build_refinement_prompts(
    adventure: Adventure,
    scene: Scene,
    expansion: SceneExpansion,
    instruction: str,
) -> tuple[str, str]:
    """System and user prompts to rewrite an expansion's prose."""
    system = "You are a seasoned Daggerheart GM helping to polish adventure content."
    current = {
        "descriptions": list(expansion.descriptions),
        "narration": expansion.narration,
    }
    user = (
        f"Scene: {scene.title} ({scene.type}) in '{adventure.title}'\n"
        f"Frame: {adventure.frame}, Focus: {adventure.focus}\n\n"
        f"Current content: {json.dumps(current)}\n\n"
        f"GM instruction: {instruction}\n\n"
        "Rewrite the descriptions and narration following the instruction. "
        "Keep the same adversaries, NPCs, environment and loot.\n"
        f"JSON: {json.dumps(REFINEMENT_SHAPE)}\n{JSON_ONLY}"
    )
    return system, user


__all__ = [
    "FRAME_PROMPTS",
    "EXPANSION_CATEGORIES",
    "frame_prompt",
    "temperature_for",
    "build_scaffold_prompts",
    "build_scene_regeneration_prompts",
    "build_retrieval_query",
    "build_expansion_prompts",
    "build_refinement_prompts",
]
