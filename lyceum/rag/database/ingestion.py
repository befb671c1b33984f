"""Ingestion pipeline: chunk, embed and upsert a document in batches."""

import inspect
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from qdrant_client import AsyncQdrantClient, models

from ...config.settings import Settings
from ...core.exceptions import ConfigurationError, IngestionError, LyceumError
from ...models.knowledge import DocumentMetadata, IngestionResult
from ..chunking import ChunkingOptions, chunk_text
from ..embeddings import EmbeddingManager
from ..filters import document_filter
from .provisioning import CollectionProvisioner

ProgressCallback = Callable[[int], Any]


class IngestionOperations:
    """Turns document text into stored chunks.

    Every run stamps its chunks with a fresh ``ingestionId``. When a batch
    fails, the chunks already written by that run are removed again before
    the error is raised, so a failed upload never leaves a truncated
    document behind. Earlier uploads of the same file are not touched.
    """

    def __init__(
        self,
        provisioner: CollectionProvisioner,
        embedding_manager: EmbeddingManager,
        settings: Settings,
        logger,
    ):
        self.provisioner = provisioner
        self.embedding_manager = embedding_manager
        self.settings = settings
        self.logger = logger

    def chunking_options(self, metadata: DocumentMetadata) -> ChunkingOptions:
        """Chunking options for a document; PDF-derived text keeps its paragraphs."""
        return ChunkingOptions(
            max_chunk_size=self.settings.CHUNK_MAX_SIZE,
            overlap=self.settings.CHUNK_OVERLAP,
            min_chunk_size=self.settings.CHUNK_MIN_SIZE,
            preserve_paragraphs=metadata.is_binary,
        )

    async def ingest(
        self,
        client: AsyncQdrantClient,
        content: str,
        metadata: DocumentMetadata,
        collection_name: str,
        batch_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> IngestionResult:
        """Store a document as embedded chunks in a physical collection."""
        batch_size = batch_size or self.settings.INGEST_BATCH_SIZE
        file_name = metadata.file_name
        ingestion_id = str(uuid4())

        try:
            await self.provisioner.ensure_collection(client, collection_name)
        except LyceumError as e:
            raise IngestionError(
                f"Failed to prepare collection for {file_name}: {e.message}",
                file_name,
                collection_name,
            ) from e

        options = self.chunking_options(metadata)
        options.validate()
        chunks = [chunk for chunk in chunk_text(content, options) if chunk]
        total = len(chunks)

        if not chunks:
            self.logger.warning(
                "Document produced no chunks",
                file_name=file_name,
                collection=collection_name,
                content_length=len(content),
            )
            await _report(on_progress, 100)
            return IngestionResult(
                file_name=file_name,
                collection=collection_name,
                ingestion_id=ingestion_id,
                total_chunks=0,
                batches=0,
            )

        base_payload = metadata.to_payload()
        batches = 0
        try:
            for start in range(0, total, batch_size):
                batch = chunks[start:start + batch_size]
                vectors = await self.embedding_manager.embed_texts(batch)

                points = [
                    models.PointStruct(
                        id=str(uuid4()),
                        vector=vector,
                        payload=self._chunk_payload(
                            text, base_payload, start + offset, total, ingestion_id
                        ),
                    )
                    for offset, (text, vector) in enumerate(zip(batch, vectors))
                ]
                await client.upsert(collection_name=collection_name, points=points, wait=True)
                batches += 1

                done = start + len(batch)
                self.logger.debug(
                    "Ingested batch",
                    file_name=file_name,
                    collection=collection_name,
                    batch=batches,
                    chunks=done,
                    total_chunks=total,
                )
                await _report(on_progress, round(done / total * 100))

        except Exception as e:
            compensated = await self._compensate(client, collection_name, metadata, ingestion_id)
            self.logger.error(
                "Failed to ingest document",
                file_name=file_name,
                collection=collection_name,
                batches_written=batches,
                compensated=compensated,
                error=str(e),
            )
            if isinstance(e, ConfigurationError):
                raise
            raise IngestionError(
                f"Failed to ingest {file_name}: {e}",
                file_name,
                collection_name,
                compensated=compensated,
            ) from e

        self.logger.info(
            "Document ingested",
            file_name=file_name,
            collection=collection_name,
            total_chunks=total,
            batches=batches,
        )
        return IngestionResult(
            file_name=file_name,
            collection=collection_name,
            ingestion_id=ingestion_id,
            total_chunks=total,
            batches=batches,
        )

    @staticmethod
    def _chunk_payload(
        text: str,
        base_payload: Dict[str, Any],
        index: int,
        total: int,
        ingestion_id: str,
    ) -> Dict[str, Any]:
        return {
            "text": text,
            "metadata": {
                **base_payload,
                "chunkIndex": index,
                "totalChunks": total,
                "ingestionId": ingestion_id,
            },
        }

    async def _compensate(
        self,
        client: AsyncQdrantClient,
        collection_name: str,
        metadata: DocumentMetadata,
        ingestion_id: str,
    ) -> bool:
        """Remove the chunks written by one ingestion run."""
        expression = document_filter(metadata.file_name, metadata.school_id, ingestion_id)
        try:
            await client.delete(
                collection_name=collection_name,
                points_selector=models.FilterSelector(filter=expression.to_qdrant()),
                wait=True,
            )
        except Exception as e:
            self.logger.error(
                "Failed to remove chunks of failed ingestion",
                file_name=metadata.file_name,
                collection=collection_name,
                ingestion_id=ingestion_id,
                error=str(e),
            )
            return False

        self.logger.info(
            "Removed chunks of failed ingestion",
            file_name=metadata.file_name,
            collection=collection_name,
            ingestion_id=ingestion_id,
        )
        return True


async def _report(on_progress: Optional[ProgressCallback], percent: int) -> None:
    if on_progress is None:
        return
    result = on_progress(percent)
    if inspect.isawaitable(result):
        await result
