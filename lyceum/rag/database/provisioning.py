"""Collection provisioning for the knowledge base."""

from qdrant_client import AsyncQdrantClient, models

from ...config.settings import Settings
from ...core.exceptions import VectorStoreError
from ...utils.async_utils import retry_with_backoff
from ..filters import COLLECTION_FIELD, SCHOOL_ID_FIELD, TEXT_FIELD

PAYLOAD_INDEXES = (
    (TEXT_FIELD, models.PayloadSchemaType.TEXT),
    (COLLECTION_FIELD, models.PayloadSchemaType.KEYWORD),
    (SCHOOL_ID_FIELD, models.PayloadSchemaType.KEYWORD),
)


class CollectionProvisioner:
    """Creates physical collections with the vector size and indexes writes rely on."""

    def __init__(self, settings: Settings, logger):
        self.settings = settings
        self.logger = logger

    async def ensure_collection(self, client: AsyncQdrantClient, collection_name: str) -> bool:
        """Make sure a collection exists; returns True when it had to be created.

        Safe to call redundantly and concurrently: a create that loses a race
        is retried and then finds the collection present.
        """
        try:
            return await retry_with_backoff(
                lambda: self._ensure(client, collection_name),
                max_retries=self.settings.PROVISION_MAX_RETRIES,
                base_delay=self.settings.PROVISION_RETRY_BASE_DELAY,
            )
        except Exception as e:
            self.logger.error("Failed to ensure collection", collection=collection_name, error=str(e))
            raise VectorStoreError(
                f"Failed to ensure collection {collection_name}: {e}",
                collection_name,
                "ensure_collection",
            ) from e

    async def _ensure(self, client: AsyncQdrantClient, collection_name: str) -> bool:
        if await client.collection_exists(collection_name):
            return False

        await client.create_collection(
            collection_name=collection_name,
            vectors_config=models.VectorParams(
                size=self.settings.EMBEDDING_DIMENSIONS,
                distance=models.Distance.COSINE,
            ),
        )
        self.logger.info(
            "Created collection",
            collection=collection_name,
            dimensions=self.settings.EMBEDDING_DIMENSIONS,
        )

        for field_name, schema in PAYLOAD_INDEXES:
            await client.create_payload_index(
                collection_name=collection_name,
                field_name=field_name,
                field_schema=schema,
                wait=True,
            )
            self.logger.info("Created payload index", collection=collection_name, field=field_name)

        return True
