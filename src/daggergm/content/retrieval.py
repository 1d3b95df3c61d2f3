"""Semantic retrieval over the Content Store.

Given free text (a scene outline plus the adventure focus) and a party
level, returns the canonical entities of a category that best match,
restricted to tiers the party can face.

Example:
    >>> service = RetrievalService(store, provider)
    >>> hits = await service.retrieve(ContentCategory.ADVERSARY, "rotting forest", party_level=2)
    >>> [hit.name for hit in hits]
    ['Blighted Treant', 'Dire Wolf', ...]
"""

from __future__ import annotations

from dataclasses import dataclass, field

from daggergm.content.embeddings import EmbeddingProvider
from daggergm.content.store import ContentStore
from daggergm.core.config import RetrievalSettings, get_settings
from daggergm.core.logging import get_logger
from daggergm.models.content import SearchHit, tier_ceiling
from daggergm.models.enums import ContentCategory

logger = get_logger(__name__)


@dataclass
class CandidateSet:
    """Retrieved candidates for one expansion, keyed by category.

    The prompt offers exactly these names to the model, and the resolver
    accepts exactly these names back.
    """

    hits: dict[ContentCategory, list[SearchHit]] = field(default_factory=dict)

    def names(self, category: ContentCategory) -> list[str]:
        return [hit.name for hit in self.hits.get(category, [])]

    def find(self, category: ContentCategory, name: str) -> SearchHit | None:
        """Exact-match a name against the candidates of a category."""
        for hit in self.hits.get(category, []):
            if hit.name == name:
                return hit
        return None

    def __len__(self) -> int:
        return sum(len(hits) for hits in self.hits.values())


class RetrievalService:
    """Embeds query text and searches the Content Store."""

    def __init__(
        self,
        store: ContentStore,
        embeddings: EmbeddingProvider,
        settings: RetrievalSettings | None = None,
    ) -> None:
        self.store = store
        self.embeddings = embeddings
        self.settings = settings or get_settings().retrieval

    def limit_for(self, category: ContentCategory) -> int:
        """Default candidate count for a category."""
        if category == ContentCategory.ADVERSARY:
            return self.settings.adversary_limit
        if category == ContentCategory.ENVIRONMENT:
            return self.settings.environment_limit
        if category in (ContentCategory.CLASS, ContentCategory.ANCESTRY, ContentCategory.COMMUNITY):
            return self.settings.npc_reference_limit
        return self.settings.loot_limit

    async def retrieve(
        self,
        category: ContentCategory,
        query_text: str,
        party_level: int,
        limit: int | None = None,
    ) -> list[SearchHit]:
        """Retrieve the most relevant entities of one category.

        Args:
            category: Category to search.
            query_text: Free text describing what is needed.
            party_level: Party level; bounds the tier of tiered categories.
            limit: Maximum hits (defaults per category from settings).

        Returns:
            Ranked hits, every tiered hit within the party's tier ceiling.

        Raises:
            EmbeddingError: If the query cannot be embedded.
        """
        query_embedding = await self.embeddings.embed_text(query_text)
        return self._search(category, query_embedding, party_level, limit)

    async def retrieve_many(
        self,
        categories: list[ContentCategory],
        query_text: str,
        party_level: int,
    ) -> CandidateSet:
        """Retrieve candidates for several categories with one query embedding."""
        query_embedding = await self.embeddings.embed_text(query_text)
        candidates = CandidateSet()
        for category in categories:
            candidates.hits[category] = self._search(category, query_embedding, party_level, None)
        logger.info(
            "Candidates retrieved",
            party_level=party_level,
            **{str(category): len(hits) for category, hits in candidates.hits.items()},
        )
        return candidates

    def _search(
        self,
        category: ContentCategory,
        query_embedding: list[float],
        party_level: int,
        limit: int | None,
    ) -> list[SearchHit]:
        return self.store.search(
            category,
            query_embedding,
            tier_ceiling=tier_ceiling(party_level),
            limit=limit if limit is not None else self.limit_for(category),
        )


__all__ = [
    "CandidateSet",
    "RetrievalService",
]
