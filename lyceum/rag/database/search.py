"""Retrieval across the collections of a search scope."""

from typing import List, Optional

from ...config.settings import Settings
from ...core.exceptions import ConfigurationError
from ...models.knowledge import KnowledgeSearchResult, SearchStrategy
from ...utils.validation import validate_limit
from ..embeddings import EmbeddingManager
from ..filters import TEXT_FIELD, tenant_filter
from ..routing import ClusterManager, CollectionRef


class SearchOperations:
    """Embeds a query once and ranks chunks from every collection in scope.

    The store cannot query several collections at once, so each collection
    is searched for ``limit`` hits and the pooled hits are ranked here.
    Collections that are missing or fail are logged and skipped.
    """

    def __init__(self, router: ClusterManager, embedding_manager: EmbeddingManager, settings: Settings, logger):
        self.router = router
        self.embedding_manager = embedding_manager
        self.settings = settings
        self.logger = logger

    async def search(
        self,
        query: str,
        collections: List[str],
        limit: Optional[int] = None,
        tenant_id: Optional[str] = None,
        strategy: Optional[SearchStrategy] = None,
    ) -> List[KnowledgeSearchResult]:
        """Search a scope of collections and return at most ``limit`` ranked results."""
        limit = limit or self.settings.SEARCH_DEFAULT_LIMIT
        validate_limit(limit)
        strategy = SearchStrategy(strategy or self.settings.SEARCH_DEFAULT_STRATEGY)

        if not query.strip() or not collections:
            return []

        try:
            query_vector = await self.embedding_manager.embed_text(query)
        except ConfigurationError:
            raise
        except Exception as e:
            self.logger.error("Failed to embed search query", error=str(e))
            return []

        pool: List[KnowledgeSearchResult] = []
        for entry in collections:
            ref = self._resolve(entry, tenant_id)
            if ref is not None:
                pool.extend(
                    await self._search_collection(ref, query, query_vector, limit, tenant_id, strategy)
                )

        # sorted() is stable, so equal scores keep collection order
        ranked = sorted(pool, key=lambda result: result.score, reverse=True)[:limit]
        self.logger.info(
            "Knowledge search completed",
            collections=len(collections),
            candidates=len(pool),
            results=len(ranked),
            strategy=strategy.value,
        )
        return ranked

    def _resolve(self, entry: str, tenant_id: Optional[str]) -> Optional[CollectionRef]:
        try:
            return self.router.resolve_reference(entry, tenant_id)
        except ConfigurationError:
            raise
        except Exception as e:
            self.logger.warning("Skipping unresolvable collection", collection=entry, error=str(e))
            return None

    async def _search_collection(
        self,
        ref: CollectionRef,
        query: str,
        query_vector: List[float],
        limit: int,
        tenant_id: Optional[str],
        strategy: SearchStrategy,
    ) -> List[KnowledgeSearchResult]:
        # Every collection is filtered on the caller's tenant, whoever owns it.
        expression = tenant_filter(tenant_id)
        if strategy.uses_text_match:
            expression = expression.containing(TEXT_FIELD, query)

        client = self.router.client_for_collection(ref.physical_name, ref.tenant_id or tenant_id)
        try:
            response = await client.query_points(
                collection_name=ref.physical_name,
                query=query_vector,
                limit=limit,
                query_filter=expression.to_qdrant(),
                with_payload=True,
            )
        except Exception as e:
            self.logger.warning(
                "Collection search failed",
                collection=ref.physical_name,
                error=str(e),
            )
            return []

        results = []
        for point in response.points:
            payload = point.payload or {}
            results.append(
                KnowledgeSearchResult(
                    text=payload.get("text") or "",
                    metadata=payload.get("metadata") or {},
                    score=point.score,
                )
            )
        return results
