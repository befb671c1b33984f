"""
Embedding generation for the knowledge base.

- **EmbeddingProvider**: abstract base class for providers
- **ApiEmbeddingProvider**: OpenAI-compatible HTTP provider requesting reduced
  output dimensionality
- **EmbeddingManager**: coordinator used by ingestion and retrieval; enforces
  the configured vector size
"""

from .manager import EmbeddingManager

__all__ = ["EmbeddingManager"]
