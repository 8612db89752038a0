"""Embedding provider implementations.

Two implementations of IEmbeddingProvider (in typical priority order):
    1. OpenAIEmbeddingProvider    - OpenAI or any OpenAI-compatible endpoint.
       Used whenever OPENAI_API_KEY is set.
    2. FastEmbedEmbeddingProvider - local ONNX model, no key required.

FastEmbed is imported lazily inside its provider so the package imports
cleanly even where the ONNX runtime is not installed.
"""

from shelfmind.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from shelfmind.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["FastEmbedEmbeddingProvider", "OpenAIEmbeddingProvider"]
