"""Content Store, embeddings, seeding and semantic retrieval."""

from daggergm.content.embeddings import EmbeddingProvider, OpenAIEmbeddingProvider
from daggergm.content.retrieval import CandidateSet, RetrievalService
from daggergm.content.seeder import ContentSeeder, SeedReport, build_searchable_text
from daggergm.content.store import ContentStore, cosine_similarities

__all__ = [
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "ContentStore",
    "cosine_similarities",
    "RetrievalService",
    "CandidateSet",
    "ContentSeeder",
    "SeedReport",
    "build_searchable_text",
]
