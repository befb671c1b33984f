"""Test utilities and fakes for Lyceum tests."""

import copy
import hashlib
import math
import re
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

from qdrant_client import models

from lyceum.config.settings import ClusterEndpoint, Settings
from lyceum.models.knowledge import DocumentMetadata
from lyceum.rag.embeddings.base import EmbeddingProvider
from lyceum.rag.routing import ClusterManager

_WORD = re.compile(r"\w+", re.UNICODE)


def _lookup(payload: Dict[str, Any], key: str) -> Any:
    current: Any = payload
    for part in key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _condition_matches(condition: models.FieldCondition, payload: Dict[str, Any]) -> bool:
    value = _lookup(payload, condition.key)
    if isinstance(condition.match, models.MatchValue):
        return value == condition.match.value
    if isinstance(condition.match, models.MatchText):
        if not isinstance(value, str):
            return False
        words = {word.lower() for word in _WORD.findall(value)}
        return all(word.lower() in words for word in _WORD.findall(condition.match.text))
    raise NotImplementedError(f"Unsupported match: {condition.match!r}")


def filter_matches(query_filter: Optional[models.Filter], payload: Dict[str, Any]) -> bool:
    """Evaluate a Qdrant filter the way the server would for must/should field conditions."""
    if query_filter is None:
        return True
    must = query_filter.must or []
    should = query_filter.should or []
    if not all(_condition_matches(condition, payload) for condition in must):
        return False
    if should and not any(_condition_matches(condition, payload) for condition in should):
        return False
    return True


class FakeQdrantClient:
    """In-memory stand-in for ``AsyncQdrantClient``.

    Implements the calls the knowledge base makes. Failures can be injected
    per method through ``fail`` (method name -> exception), and
    ``fail_upsert_after`` makes upserts fail once that many have succeeded.
    """

    def __init__(self, name: str = "default"):
        self.name = name
        self.collections: Dict[str, Dict[str, Tuple[List[float], Dict[str, Any]]]] = {}
        self.vector_sizes: Dict[str, int] = {}
        self.indexes: Dict[str, Dict[str, Any]] = {}
        self.fail: Dict[str, Exception] = {}
        self.fail_upsert_after: Optional[int] = None
        self.calls: List[str] = []
        self.closed = False
        self._upserts = 0

    def _record(self, method: str) -> None:
        self.calls.append(method)
        if method in self.fail:
            raise self.fail[method]

    def _points(self, collection_name: str) -> Dict[str, Tuple[List[float], Dict[str, Any]]]:
        if collection_name not in self.collections:
            raise ValueError(f"Collection {collection_name} not found")
        return self.collections[collection_name]

    async def collection_exists(self, collection_name: str) -> bool:
        self._record("collection_exists")
        return collection_name in self.collections

    async def create_collection(self, collection_name: str, vectors_config: models.VectorParams, **kwargs) -> bool:
        self._record("create_collection")
        if collection_name in self.collections:
            raise ValueError(f"Collection {collection_name} already exists")
        self.collections[collection_name] = {}
        self.vector_sizes[collection_name] = vectors_config.size
        self.indexes[collection_name] = {}
        return True

    async def create_payload_index(self, collection_name: str, field_name: str, field_schema=None, **kwargs):
        self._record("create_payload_index")
        self._points(collection_name)
        self.indexes[collection_name][field_name] = field_schema

    async def upsert(self, collection_name: str, points: List[models.PointStruct], wait: bool = True, **kwargs):
        self._record("upsert")
        if self.fail_upsert_after is not None and self._upserts >= self.fail_upsert_after:
            raise ConnectionError("upsert failed")
        stored = self._points(collection_name)
        size = self.vector_sizes[collection_name]
        for point in points:
            if len(point.vector) != size:
                raise ValueError(f"Wrong vector size: expected {size}, got {len(point.vector)}")
            stored[str(point.id)] = (list(point.vector), copy.deepcopy(point.payload or {}))
        self._upserts += 1

    async def query_points(
        self,
        collection_name: str,
        query: List[float],
        limit: int = 10,
        query_filter: Optional[models.Filter] = None,
        with_payload: bool = True,
        **kwargs,
    ):
        self._record("query_points")
        scored = []
        for point_id, (vector, payload) in self._points(collection_name).items():
            if not filter_matches(query_filter, payload):
                continue
            scored.append(SimpleNamespace(id=point_id, score=cosine(query, vector), payload=copy.deepcopy(payload)))
        scored.sort(key=lambda point: point.score, reverse=True)
        return SimpleNamespace(points=scored[:limit])

    async def scroll(
        self,
        collection_name: str,
        scroll_filter: Optional[models.Filter] = None,
        limit: int = 10,
        offset: Optional[int] = None,
        with_payload: bool = True,
        with_vectors: bool = False,
        **kwargs,
    ):
        self._record("scroll")
        matching = [
            SimpleNamespace(id=point_id, payload=copy.deepcopy(payload))
            for point_id, (_, payload) in self._points(collection_name).items()
            if filter_matches(scroll_filter, payload)
        ]
        start = offset or 0
        page = matching[start:start + limit]
        next_offset = start + limit if start + limit < len(matching) else None
        return page, next_offset

    async def delete(self, collection_name: str, points_selector, wait: bool = True, **kwargs):
        self._record("delete")
        stored = self._points(collection_name)
        if isinstance(points_selector, models.FilterSelector):
            self._record("delete_by_filter")
            doomed = [
                point_id for point_id, (_, payload) in stored.items()
                if filter_matches(points_selector.filter, payload)
            ]
        elif isinstance(points_selector, models.PointIdsList):
            self._record("delete_by_ids")
            doomed = [str(point_id) for point_id in points_selector.points]
        else:
            raise NotImplementedError(f"Unsupported selector: {points_selector!r}")
        for point_id in doomed:
            stored.pop(point_id, None)

    async def delete_collection(self, collection_name: str, **kwargs) -> bool:
        self._record("delete_collection")
        existed = self.collections.pop(collection_name, None) is not None
        self.vector_sizes.pop(collection_name, None)
        self.indexes.pop(collection_name, None)
        return existed

    async def get_collections(self):
        self._record("get_collections")
        return SimpleNamespace(collections=[SimpleNamespace(name=name) for name in self.collections])

    async def close(self) -> None:
        self.closed = True

    def payloads(self, collection_name: str) -> List[Dict[str, Any]]:
        """Stored payloads of a collection, in insertion order."""
        return [payload for _, payload in self.collections.get(collection_name, {}).values()]


def cosine(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


def hashed_embedding(text: str, dimensions: int) -> List[float]:
    """Deterministic bag-of-words vector; texts sharing words point the same way."""
    vector = [0.0] * dimensions
    for word in _WORD.findall(text.lower()):
        digest = hashlib.md5(word.encode("utf-8")).digest()
        vector[int.from_bytes(digest[:4], "big") % dimensions] += 1.0
    if not any(vector):
        vector[0] = 1.0
    return vector


class FakeEmbeddingProvider(EmbeddingProvider):
    """Embedding provider producing hashed bag-of-words vectors.

    ``dimensions`` overrides the vector size to simulate a misconfigured
    model; ``fail`` makes every call raise.
    """

    def __init__(self, settings: Settings, dimensions: Optional[int] = None, fail: Optional[Exception] = None):
        super().__init__(settings)
        self.dimensions = dimensions or settings.EMBEDDING_DIMENSIONS
        self.fail = fail
        self.batches: List[List[str]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def initialize(self) -> None:
        self._initialized = True

    async def close(self) -> None:
        self._initialized = False

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        self._ensure_initialized()
        if self.fail is not None:
            raise self.fail
        self.batches.append(list(texts))
        return [hashed_embedding(text, self.dimensions) for text in texts]


def make_router(settings: Settings, clients: Optional[Dict[str, FakeQdrantClient]] = None) -> ClusterManager:
    """Cluster manager whose clients are fakes, created per cluster name."""
    clients = clients if clients is not None else {}

    def factory(endpoint: ClusterEndpoint, _settings: Settings) -> FakeQdrantClient:
        for name, configured in _settings.cluster_endpoints().items():
            if configured.url == endpoint.url:
                return clients.setdefault(name, FakeQdrantClient(name))
        return FakeQdrantClient(endpoint.url or "unnamed")

    return ClusterManager(settings, client_factory=factory)


def make_metadata(file_name: str = "handbook.txt", tenant_id: str = "school-a", **overrides) -> DocumentMetadata:
    """Document metadata as an upload would stamp it."""
    fields = {
        "file_name": file_name,
        "collection": "curriculum",
        "uploaded_by": "teacher@example.com",
        "school_id": tenant_id,
        "file_type": "text/plain",
        "file_size": "1024",
    }
    fields.update(overrides)
    return DocumentMetadata(**fields)


def sentence_text(sentences: int, words: int = 12, topic: str = "lesson") -> str:
    """Text of numbered sentences, each roughly ``words`` words long."""
    return " ".join(
        f"{topic.capitalize()} sentence {i} " + " ".join(f"{topic}{i}w{j}" for j in range(words)) + "."
        for i in range(sentences)
    )


def hundred_char_sentences(count: int = 50) -> str:
    """``count`` sentences of exactly 100 characters each, trailing space included."""
    return "".join(
        (f"Sentence {i:02d} " + " ".join(["lesson"] * 20))[:98] + ". "
        for i in range(count)
    )
