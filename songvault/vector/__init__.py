"""Embedding providers and similarity ranking."""

from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    GoogleGenerativeEmbedding,
    EmbeddingClient,
)
from .similarity import cosine_similarity, rank
from .types import RankedResult

__all__ = [
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'GoogleGenerativeEmbedding',
    'EmbeddingClient',
    'cosine_similarity',
    'rank',
    'RankedResult'
]
