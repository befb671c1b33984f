"""Knowledge base MCP tools."""

from typing import Annotated, List, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from ..config.logging import LoggerMixin
from ..core.service import KnowledgeService
from ..models.knowledge import SearchRequest, SearchStrategy


class KnowledgeTools(LoggerMixin):
    """Read-only knowledge tools for chat agents.

    Every call acts as ``principal_id`` for access checks.
    """

    def __init__(self, mcp: FastMCP, service: KnowledgeService, principal_id: Optional[str] = None):
        self.mcp = mcp
        self.service = service
        self.principal_id = principal_id
        self._register_tools()

    def _register_tools(self) -> None:
        """Register knowledge tools with FastMCP server."""

        @self.mcp.tool()
        async def knowledge_search(
            query: Annotated[str, Field(description="Free-text question or keywords")],
            collections: Annotated[List[str], Field(
                description="Collection names as returned by knowledge_list_collections"
            )],
            tenant_id: Annotated[Optional[str], Field(description="School whose knowledge is searched")] = None,
            limit: Annotated[Optional[int], Field(description="Maximum passages to return", ge=1, le=100)] = None,
            strategy: Annotated[Optional[SearchStrategy], Field(
                description="hybrid (vector + keyword), semantic (vector only) or exact"
            )] = None,
        ) -> List[dict]:
            """Find the passages most relevant to a query.

            Returns:
                Passages ordered by relevance, each with text, metadata and score
            """
            request = SearchRequest(
                query=query,
                collections=collections,
                limit=limit,
                tenant_id=tenant_id,
                strategy=strategy,
            )
            results = await self.service.search(self.principal_id, request)

            self.logger.info("Knowledge searched", results=len(results), tenant_id=tenant_id)
            return [result.model_dump() for result in results]

        @self.mcp.tool()
        async def knowledge_list_documents(
            collection: Annotated[str, Field(description="Collection name")],
            tenant_id: Annotated[Optional[str], Field(description="School that owns the collection")] = None,
            limit: Annotated[int, Field(description="Documents per page", ge=1, le=1000)] = 50,
            offset: Annotated[int, Field(description="Documents to skip", ge=0)] = 0,
        ) -> dict:
            """List the documents stored in a collection, newest first."""
            response = await self.service.list_documents(
                self.principal_id, collection, tenant_id, limit, offset
            )
            return response.model_dump()

        @self.mcp.tool()
        async def knowledge_list_collections(
            tenant_id: Annotated[Optional[str], Field(description="School whose collections are listed")] = None,
        ) -> List[str]:
            """List the collections visible to a school."""
            return await self.service.list_collections(self.principal_id, tenant_id)
