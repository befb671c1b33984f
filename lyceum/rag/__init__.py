"""Knowledge retrieval: chunking, embeddings, tenant routing and vector storage."""

from .database import KnowledgeBase
from .embeddings.manager import EmbeddingManager
from .routing import ClusterManager

__all__ = ["KnowledgeBase", "EmbeddingManager", "ClusterManager"]
