"""Content Store: canonical Daggerheart entities with vector search.

Rows live in the ``content_entities`` SQLite table. Similarity search
loads the (tier-filtered) rows of one category and ranks them by cosine
similarity with numpy. Categories hold at most a few hundred rows, so an
exact scan is used instead of an approximate index.
"""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np
import numpy.typing as npt

from daggergm.core.exceptions import ContentStoreError
from daggergm.core.logging import get_logger
from daggergm.models.content import ContentEntity, SearchHit
from daggergm.models.enums import ContentCategory
from daggergm.storage.database import Database

logger = get_logger(__name__)


def cosine_similarities(
    query: list[float] | tuple[float, ...],
    vectors: list[tuple[float, ...]],
) -> npt.NDArray[np.float64]:
    """Cosine similarity of ``query`` against each row of ``vectors``.

    Zero-length vectors get a similarity of 0.
    """
    try:
        matrix = np.asarray(vectors, dtype=np.float64)
    except ValueError as exc:
        raise ContentStoreError(
            "Stored embeddings have inconsistent dimensions",
            details={"rows": len(vectors)},
        ) from exc
    query_vec = np.asarray(query, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[1] != query_vec.shape[0]:
        raise ContentStoreError(
            "Query embedding dimension does not match stored embeddings",
            details={"query_dimension": int(query_vec.shape[0]), "stored_shape": matrix.shape},
        )
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vec)
    dots = matrix @ query_vec
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)


class ContentStore:
    """Read-mostly access to canonical content.

    The generation engine only reads from the store; rows are written by
    the seeding process.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    # =========================================================================
    # Writes (seeding only)
    # =========================================================================

    def add_entities(self, entities: Iterable[ContentEntity]) -> int:
        """Insert entities, skipping (category, name) pairs already present."""
        return self.database.insert_content_entities(entities)

    def set_embeddings(self, embeddings: dict[str, list[float]]) -> int:
        """Fill in embeddings for rows that have none."""
        return self.database.set_content_embeddings(embeddings)

    # =========================================================================
    # Lookups
    # =========================================================================

    def get(self, entity_id: str) -> ContentEntity | None:
        return self.database.get_content_entity(entity_id)

    def get_by_name(self, category: ContentCategory, name: str) -> ContentEntity | None:
        return self.database.get_content_entity_by_name(category, name)

    def list_category(
        self,
        category: ContentCategory,
        *,
        max_tier: int | None = None,
    ) -> list[ContentEntity]:
        return self.database.list_content_entities(category, max_tier=max_tier)

    def missing_embeddings(self) -> list[ContentEntity]:
        return self.database.list_content_missing_embeddings()

    def exists(self, category: ContentCategory, entity_id: str) -> bool:
        """Whether ``entity_id`` is a row of ``category``."""
        entity = self.get(entity_id)
        return entity is not None and entity.category == category

    def count(self, category: ContentCategory | None = None) -> int:
        return self.database.count_content(category)

    # =========================================================================
    # Search
    # =========================================================================

    def search(
        self,
        category: ContentCategory,
        query_embedding: list[float],
        *,
        tier_ceiling: int | None = None,
        limit: int = 5,
    ) -> list[SearchHit]:
        """Rank a category's entities by similarity to a query embedding.

        Args:
            category: Category to search.
            query_embedding: Embedded query text.
            tier_ceiling: For tiered categories, only rows with
                ``tier <= tier_ceiling``. Ignored for untiered categories.
            limit: Maximum number of hits.

        Returns:
            Hits ordered by similarity descending, then name ascending.
            Rows without an embedding, or with one whose
            dimension differs from the query, are not searchable.
        """
        if limit < 1:
            return []

        max_tier = tier_ceiling if category.is_tiered else None
        embedded = [
            entity
            for entity in self.list_category(category, max_tier=max_tier)
            if entity.embedding
        ]
        candidates = [e for e in embedded if len(e.embedding) == len(query_embedding)]
        if len(candidates) < len(embedded):
            logger.warning(
                "Skipping content with mismatched embedding",
                category=str(category),
                skipped=len(embedded) - len(candidates),
                expected_dimension=len(query_embedding),
            )
        if not candidates:
            logger.debug("No searchable content", category=str(category), max_tier=max_tier)
            return []

        scores = cosine_similarities(query_embedding, [entity.embedding for entity in candidates])
        ranked = sorted(
            zip(candidates, scores.tolist(), strict=True),
            key=lambda pair: (-pair[1], pair[0].name),
        )

        hits = [
            SearchHit(entity=entity, similarity=float(score), rank=rank)
            for rank, (entity, score) in enumerate(ranked[:limit], start=1)
        ]
        logger.debug(
            "Content search complete",
            category=str(category),
            candidates=len(candidates),
            returned=len(hits),
        )
        return hits


__all__ = [
    "ContentStore",
    "cosine_similarities",
]
