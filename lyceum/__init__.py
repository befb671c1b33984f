"""
Lyceum - multi-tenant knowledge retrieval for educational assistants.

This package provides:
- Chunking and batched embedding of uploaded documents
- Tenant-aware routing across one or several Qdrant endpoints
- Hybrid vector and keyword retrieval across collections
- Document listing and deletion over chunk-level storage
- An HTTP API and MCP tools for chat agents
"""

__version__ = "0.1.0"

from .core.server import KnowledgeServer
from .config.settings import Settings

__all__ = ["KnowledgeServer", "Settings"]
