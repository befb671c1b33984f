"""MCP tool surface for the knowledge base."""

from .knowledge_tools import KnowledgeTools

__all__ = ["KnowledgeTools"]
