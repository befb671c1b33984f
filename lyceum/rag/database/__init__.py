"""
Knowledge base storage on Qdrant.

- **Provisioning**: collections with the right vector size and payload indexes
- **Ingestion**: chunking, batched embedding and upserts with compensation on failure
- **Search**: per-collection vector search ranked across a scope
- **Documents**: logical documents grouped from scanned chunks
- **Deletion**: filtered delete with a scan-and-delete fallback
- **Collections**: listing and idempotent removal

KnowledgeBase coordinates the handlers and owns the cluster router and the
embedding manager.
"""

from .core import KnowledgeBase

__all__ = ["KnowledgeBase"]
