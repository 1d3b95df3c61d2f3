"""LLM-backed generation: scaffolds, scene expansions and refinements."""

from daggergm.generation.expansion import SceneExpansionEngine
from daggergm.generation.llm import LLMClient, OpenAILLMClient, parse_json_object
from daggergm.generation.resolver import ReferenceResolver
from daggergm.generation.scaffold import ScaffoldDraft, ScaffoldGenerator, SceneOutline

__all__ = [
    "LLMClient",
    "OpenAILLMClient",
    "parse_json_object",
    "ReferenceResolver",
    "ScaffoldGenerator",
    "ScaffoldDraft",
    "SceneOutline",
    "SceneExpansionEngine",
]
