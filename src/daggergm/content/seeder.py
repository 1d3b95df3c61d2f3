"""One-time loading of canonical content into the Content Store.

Raw records (for example parsed from the SRD markdown into JSON) are
validated, given a ``searchable_text`` summary, inserted and then
embedded. Seeding is idempotent: names already present are skipped and
only rows without an embedding are sent to the embedding model.

Example:
    >>> seeder = ContentSeeder(store, provider)
    >>> report = await seeder.seed(ContentSeeder.load_json("data/srd.json"))
    >>> report.inserted, report.embedded
    (312, 312)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from daggergm.content.embeddings import EmbeddingProvider
from daggergm.content.store import ContentStore
from daggergm.core.config import get_settings
from daggergm.core.exceptions import ContentStoreError, ValidationError
from daggergm.core.logging import get_logger
from daggergm.models.content import ContentEntity
from daggergm.models.enums import ContentCategory

logger = get_logger(__name__)

# Record keys folded into searchable_text after name and description.
_SEARCHABLE_KEYS = ("type", "motives_tactics", "impulses", "feature", "features", "effect")
# Record keys stored as columns rather than attributes.
_COLUMN_KEYS = {"id", "name", "tier", "searchable_text", "embedding"}


def _flatten_text(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        return [" ".join(str(v) for v in value.values() if v)]
    if isinstance(value, list | tuple):
        parts: list[str] = []
        for item in value:
            parts.extend(_flatten_text(item))
        return parts
    return [str(value)]


def build_searchable_text(record: dict[str, Any]) -> str:
    """Summarize a raw record as the text to embed.

    Name and description first, then motives, features and effects.
    """
    parts = [str(record.get("name", "")), str(record.get("description", "") or "")]
    for key in _SEARCHABLE_KEYS:
        parts.extend(_flatten_text(record.get(key)))
    return " ".join(part.strip() for part in parts if part and part.strip())


@dataclass
class SeedReport:
    """Outcome of a seeding run."""

    inserted: int = 0
    skipped: int = 0
    embedded: int = 0


class ContentSeeder:
    """Loads raw content records into the Content Store."""

    def __init__(
        self,
        store: ContentStore,
        embeddings: EmbeddingProvider,
        *,
        batch_size: int | None = None,
    ) -> None:
        self.store = store
        self.embeddings = embeddings
        self.batch_size = batch_size or get_settings().retrieval.embedding_batch_size

    @staticmethod
    def load_json(path: str | Path) -> dict[str, list[dict[str, Any]]]:
        """Read ``{"adversary": [...], "weapon": [...], ...}`` from a JSON file."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ContentStoreError(
                f"Cannot read content file: {exc}",
                details={"path": str(path)},
            ) from exc
        if not isinstance(data, dict):
            raise ValidationError(
                "Content file must map categories to record lists",
                field_name="root",
            )
        return data

    def build_entity(self, category: ContentCategory, record: dict[str, Any]) -> ContentEntity:
        """Validate one raw record and convert it to a ContentEntity.

        Raises:
            ValidationError: If the record is malformed (missing name,
                missing tier for a tiered category, an embedding of
                the wrong dimension).
        """
        attributes = {k: v for k, v in record.items() if k not in _COLUMN_KEYS}
        payload: dict[str, Any] = {
            "category": category,
            "name": str(record.get("name", "")).strip(),
            "tier": record.get("tier") if category.is_tiered else None,
            "attributes": attributes,
            "searchable_text": record.get("searchable_text") or build_searchable_text(record),
            "embedding": tuple(record.get("embedding") or ()),
        }
        embedding = payload["embedding"]
        if embedding and len(embedding) != self.embeddings.dimension:
            raise ValidationError(
                f"Embedding has dimension {len(embedding)}, expected {self.embeddings.dimension}",
                field_name="embedding",
                invalid_value=record.get("name"),
            )
        if record.get("id"):
            payload["id"] = str(record["id"])
        try:
            return ContentEntity.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid {category} record: {exc.errors()[0]['msg']}",
                field_name=str(category),
                invalid_value=record.get("name"),
            ) from exc

    async def seed(self, records: dict[str, list[dict[str, Any]]]) -> SeedReport:
        """Insert every record, then embed rows that lack an embedding.

        Args:
            records: Raw records keyed by category name.

        Returns:
            Counts of inserted, skipped and embedded rows.
        """
        report = SeedReport()
        for category_name, category_records in records.items():
            try:
                category = ContentCategory(category_name)
            except ValueError as exc:
                raise ValidationError(
                    f"Unknown content category: {category_name}",
                    field_name="category",
                    invalid_value=category_name,
                ) from exc

            entities = [self.build_entity(category, record) for record in category_records]
            inserted = self.store.add_entities(entities)
            report.inserted += inserted
            report.skipped += len(entities) - inserted
            logger.info(
                "Seeded category",
                category=str(category),
                inserted=inserted,
                skipped=len(entities) - inserted,
            )

        report.embedded = await self.embed_missing()
        return report

    async def embed_missing(self) -> int:
        """Embed every stored row that has no embedding yet.

        Returns:
            Number of rows embedded.
        """
        pending = self.store.missing_embeddings()
        if not pending:
            logger.info("All content already embedded")
            return 0

        embedded = 0
        for start in range(0, len(pending), self.batch_size):
            batch = pending[start : start + self.batch_size]
            texts = [
                entity.searchable_text or f"{entity.name} {entity.description}".strip()
                for entity in batch
            ]
            vectors = await self.embeddings.embed_texts(texts)
            embedded += self.store.set_embeddings(
                {entity.id: vector for entity, vector in zip(batch, vectors, strict=True)}
            )
            logger.debug("Embedded batch", start=start, size=len(batch))

        logger.info("Content embeddings generated", embedded=embedded)
        return embedded


__all__ = [
    "ContentSeeder",
    "SeedReport",
    "build_searchable_text",
]
