"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations may wrap OpenAI ``text-embedding-3-small``, an
OpenAI-compatible gateway, or a local ONNX model via fastembed.  The
adapter pattern keeps embedding providers interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (shelfmind/providers/embedding/):
#   OpenAIEmbeddingProvider     - OpenAI / OpenAI-compatible embeddings API
#   FastEmbedEmbeddingProvider  - local ONNX model, no API key required
class IEmbeddingProvider(ABC):
    """Contract for the external embedding capability.

    Providers are thin: they translate backend failures into the
    shelfmind embedding error taxonomy and nothing more.  Retries,
    timeouts, normalization, and batch limits live in
    :class:`~shelfmind.services.embedding_client.EmbeddingClient`.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        shelfmind.utils.errors.EmbeddingUnavailable
            If the backend is unreachable or returns a server error.
        shelfmind.utils.errors.EmbeddingRateLimited
            If the backend throttles the request.
        shelfmind.utils.errors.EmbeddingInvalidInput
            If a text exceeds the backend's input-length limit.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality ``D`` of the embedding vectors.

        Must remain constant for the lifetime of the provider instance.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and usable.

        Implementations should check credentials or installed packages
        without generating an actual embedding.
        """
