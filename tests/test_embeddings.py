"""Tests for embedding providers and the dimension-checked embedding client."""

from unittest.mock import MagicMock

import pytest
import requests

from songvault.core.errors import EmbeddingError
from songvault.vector.embeddings import (
    DeterministicHashEmbedding,
    EmbeddingClient,
    GoogleGenerativeEmbedding,
    IEmbeddingProvider,
)


def test_embedding_interface():
    """The hash provider implements the provider interface."""
    embedder = DeterministicHashEmbedding(dimension=384)

    assert isinstance(embedder, IEmbeddingProvider)
    assert embedder.get_dimension() == 384


def test_deterministic_embedding():
    """The same input always produces the same output."""
    embedder = DeterministicHashEmbedding(dimension=384)

    vector1 = embedder.embed_text("Hello, world!")
    vector2 = embedder.embed_text("Hello, world!")

    assert vector1 == vector2
    assert len(vector1) == 384


def test_different_inputs_produce_different_vectors():
    embedder = DeterministicHashEmbedding(dimension=64)
    assert embedder.embed_text("Hello, world!") != embedder.embed_text("Goodbye, world!")


def test_consistent_output_across_instances():
    text = "This is a test string"
    assert DeterministicHashEmbedding(32).embed_text(text) == DeterministicHashEmbedding(32).embed_text(text)


@pytest.mark.parametrize("dimension", [1, 7, 64, 512])
def test_embedding_dimensions_and_range(dimension):
    vector = DeterministicHashEmbedding(dimension=dimension).embed_text("test")
    assert len(vector) == dimension
    assert all(-1.0 <= v <= 1.0 for v in vector)


def test_embedding_edge_cases():
    embedder = DeterministicHashEmbedding(dimension=384)

    assert len(embedder.embed_text("")) == 384
    assert len(embedder.embed_text("A" * 1000)) == 384
    assert len(embedder.embed_text("Hello\n\t\rWorld!@#$%^&*() ♪")) == 384


class TestEmbeddingClient:
    def test_dimension_taken_from_provider(self):
        client = EmbeddingClient(DeterministicHashEmbedding(dimension=12))
        assert client.dimension == 12
        assert len(client.embed("song")) == 12

    def test_dimension_fixed_by_first_call(self):
        provider = MagicMock()
        provider.get_dimension.return_value = None
        provider.embed_text.side_effect = [[0.1, 0.2, 0.3], [0.4, 0.5, 0.6], [0.1, 0.2]]

        client = EmbeddingClient(provider)
        assert client.dimension is None

        assert client.embed("first") == [0.1, 0.2, 0.3]
        assert client.dimension == 3
        assert client.embed("second") == [0.4, 0.5, 0.6]

        with pytest.raises(EmbeddingError):
            client.embed("drifted")

    def test_configured_dimension_overrides_provider(self):
        client = EmbeddingClient(DeterministicHashEmbedding(dimension=8), dimension=16)
        with pytest.raises(EmbeddingError) as exc_info:
            client.embed("song")
        assert exc_info.value.stage == "embed"

    def test_provider_failure_becomes_embedding_error(self):
        provider = MagicMock()
        provider.get_dimension.return_value = None
        provider.embed_text.side_effect = RuntimeError("model crashed")

        with pytest.raises(EmbeddingError, match="model crashed"):
            EmbeddingClient(provider).embed("song")

    @pytest.mark.parametrize("bad", [[], [[0.1, 0.2]], [float("nan"), 1.0], ["a", "b"]])
    def test_invalid_vectors_rejected(self, bad):
        provider = MagicMock()
        provider.get_dimension.return_value = None
        provider.embed_text.return_value = bad

        with pytest.raises(EmbeddingError):
            EmbeddingClient(provider).embed("song")

    def test_pin_dimension(self):
        provider = MagicMock()
        provider.get_dimension.return_value = None
        client = EmbeddingClient(provider)

        client.pin_dimension(4)
        assert client.dimension == 4
        client.pin_dimension(4)

        with pytest.raises(EmbeddingError):
            client.pin_dimension(5)


class TestGoogleGenerativeEmbedding:
    def _session(self, status_code=200, body=None):
        response = MagicMock()
        response.ok = 200 <= status_code < 300
        response.status_code = status_code
        response.json.return_value = body
        session = MagicMock()
        session.post.return_value = response
        return session

    def test_embed_content_request(self):
        session = self._session(body={"embedding": {"values": [0.1, 0.2, 0.3]}})
        provider = GoogleGenerativeEmbedding(api_key="key", session=session, timeout=5)

        assert provider.embed_text("upbeat song") == [0.1, 0.2, 0.3]

        args, kwargs = session.post.call_args
        assert args[0].endswith("/models/embedding-001:embedContent")
        assert kwargs["params"] == {"key": "key"}
        assert kwargs["json"]["content"]["parts"][0]["text"] == "upbeat song"
        assert kwargs["timeout"] == 5

    def test_http_error(self):
        provider = GoogleGenerativeEmbedding(api_key="key", session=self._session(status_code=429))
        with pytest.raises(EmbeddingError, match="429"):
            provider.embed_text("song")

    def test_malformed_body(self):
        provider = GoogleGenerativeEmbedding(api_key="key", session=self._session(body={"error": "x"}))
        with pytest.raises(EmbeddingError):
            provider.embed_text("song")

    def test_network_error(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("down")
        provider = GoogleGenerativeEmbedding(api_key="key", session=session)
        with pytest.raises(EmbeddingError):
            provider.embed_text("song")

    def test_missing_api_key(self):
        session = MagicMock()
        provider = GoogleGenerativeEmbedding(api_key=None, session=session)
        with pytest.raises(EmbeddingError):
            provider.embed_text("song")
        session.post.assert_not_called()
