"""
Embedding providers and the dimension-checked embedding client.

Providers turn text into a vector. EmbeddingClient wraps one provider for the
whole process and enforces that every vector it hands out has the same
dimension.
"""

from abc import ABC, abstractmethod
import hashlib
import threading
from typing import List, Optional

import numpy as np
import requests

from ..core.config import GOOGLE_EMBED_URL
from ..core.errors import EmbeddingError
from ..util.logging import logger


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> Optional[int]:
        """Get the dimension of the embedding vectors, if known without a call."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for offline use and tests.

    Expands a SHA-256 digest stream (digest of text + block counter) into
    `dimension` values in [-1, 1]. Identical text always gives the identical
    vector, with no model download.
    """

    def __init__(self, dimension: int = 384):
        if dimension < 1:
            raise ValueError("dimension must be >= 1")
        self.dimension = dimension

    def embed_text(self, text: str) -> List[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = []
        block = 0
        encoded = text.encode("utf-8")
        while len(vector) < self.dimension:
            digest = hashlib.sha256(encoded + block.to_bytes(4, "big")).digest()
            for i in range(0, len(digest), 4):
                value = int.from_bytes(digest[i:i + 4], "big")
                # Map to [-1, 1] for cosine similarity
                vector.append((value / (2**32 - 1)) * 2 - 1)
            block += 1

        return vector[:self.dimension]

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models."""

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class GoogleGenerativeEmbedding(IEmbeddingProvider):
    """Google Generative Language embedding model (embedContent REST call)."""

    def __init__(self, api_key: Optional[str], model_name: str = "embedding-001",
                 timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout
        self.session = session or requests.Session()

    def embed_text(self, text: str) -> List[float]:
        if not self.api_key:
            raise EmbeddingError("GOOGLE_API_KEY is not configured")

        model = self.model_name if self.model_name.startswith("models/") else f"models/{self.model_name}"
        url = GOOGLE_EMBED_URL.format(model=model.split("/", 1)[1])
        body = {"model": model, "content": {"parts": [{"text": text}]}}

        try:
            response = self.session.post(
                url,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise EmbeddingError(f"embedding request failed: {e}") from e

        if not response.ok:
            raise EmbeddingError(f"embedding service returned HTTP {response.status_code}")

        try:
            values = response.json()["embedding"]["values"]
        except (ValueError, KeyError, TypeError) as e:
            raise EmbeddingError("embedding response has no embedding.values") from e

        return values

    def get_dimension(self) -> Optional[int]:
        # Known only after the first call.
        return None


class EmbeddingClient:
    """
    Process-wide embedding client.

    Converts provider failures into EmbeddingError and pins the embedding
    dimension D: either configured up front, or fixed by the first successful
    call. Any later vector of a different length is rejected.
    """

    def __init__(self, provider: IEmbeddingProvider, dimension: Optional[int] = None):
        self.provider = provider
        self._dimension = dimension if dimension is not None else provider.get_dimension()
        self._lock = threading.Lock()

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def pin_dimension(self, dimension: int) -> None:
        """Fix D from an external source of truth (e.g. already stored records)."""
        with self._lock:
            if self._dimension is None:
                self._dimension = dimension
            elif self._dimension != dimension:
                raise EmbeddingError(
                    f"embedding dimension {self._dimension} does not match stored dimension {dimension}"
                )

    def embed(self, text: str) -> List[float]:
        try:
            raw = self.provider.embed_text(text)
        except EmbeddingError:
            raise
        except Exception as e:
            logger.warning(f"Embedding provider {self.provider.__class__.__name__} failed: {e}")
            raise EmbeddingError(f"embedding failed: {e}") from e

        try:
            vector = np.asarray(raw, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise EmbeddingError(f"embedding is not numeric: {e}") from e

        if vector.ndim != 1 or vector.size == 0:
            raise EmbeddingError(f"embedding has invalid shape {vector.shape}")
        if not np.all(np.isfinite(vector)):
            raise EmbeddingError("embedding contains non-finite values")

        with self._lock:
            if self._dimension is None:
                self._dimension = int(vector.size)
                logger.info(f"Embedding dimension fixed at {self._dimension}")
            elif vector.size != self._dimension:
                raise EmbeddingError(
                    f"embedding dimension {vector.size} does not match expected dimension {self._dimension}"
                )

        return vector.tolist()
