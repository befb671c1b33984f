"""Tenant to vector-store routing and physical collection naming.

A logical collection of a tenant is stored in a physical Qdrant collection
named ``{tenant}_{collection}`` in single-endpoint deployments and
``{cluster}_{tenant}_{collection}`` in multi-endpoint deployments. Tenant
ids never contain ``_``, so the first separator after the optional cluster
prefix splits tenant from collection and names can be parsed back. Cluster
names follow the same rule.
"""

import re
import threading
from typing import Callable, Dict, List, NamedTuple, Optional

from qdrant_client import AsyncQdrantClient

from ..config.logging import LoggerMixin
from ..config.settings import ClusterEndpoint, Settings
from ..core.exceptions import ConfigurationError
from ..utils.validation import validate_collection_name, validate_identifier, validate_tenant_id

ClientFactory = Callable[[ClusterEndpoint, Settings], AsyncQdrantClient]

_QUALIFIED_NAME = re.compile(r"^(?P<collection>.+)\s+\((?P<tenant>[^()]+)\)$")


class CollectionRef(NamedTuple):
    """A physical collection together with the tenant that owns it."""

    tenant_id: str
    collection: str
    physical_name: str


def default_client_factory(endpoint: ClusterEndpoint, settings: Settings) -> AsyncQdrantClient:
    """Create an async Qdrant client for an endpoint."""
    return AsyncQdrantClient(
        url=endpoint.url,
        api_key=endpoint.api_key or None,
        timeout=settings.QDRANT_TIMEOUT_SECONDS,
    )


class ClusterManager(LoggerMixin):
    """Resolves tenants to Qdrant clients and physical collection names.

    Clients are built once from settings. Lookups are plain dictionary reads;
    ``add_cluster`` replaces the mapping under a lock, so readers always see
    a complete map.
    """

    def __init__(self, settings: Settings, client_factory: Optional[ClientFactory] = None):
        self.settings = settings
        self._client_factory = client_factory or default_client_factory
        self._lock = threading.Lock()
        self._clusters: Dict[str, AsyncQdrantClient] = {}

        for name, endpoint in settings.cluster_endpoints().items():
            if not endpoint.url:
                # Unconfigured clusters stay unresolvable; using one is fatal.
                self.logger.warning("Cluster has no URL configured", cluster=name)
                continue
            self._clusters[name] = self._client_factory(endpoint, settings)
            self.logger.info("Initialized Qdrant cluster", cluster=name, url=endpoint.url)

    @property
    def cluster_names(self) -> List[str]:
        return sorted(self._clusters)

    def cluster_for_tenant(self, tenant_id: Optional[str]) -> str:
        """Get the cluster name serving a tenant."""
        if not tenant_id:
            return self.settings.DEFAULT_CLUSTER
        return self.settings.SCHOOL_CLUSTER_MAPPING.get(tenant_id, self.settings.DEFAULT_CLUSTER)

    def uses_dedicated_cluster(self, tenant_id: str) -> bool:
        """Check whether a tenant is served by a non-default cluster."""
        return self.cluster_for_tenant(tenant_id) != self.settings.DEFAULT_CLUSTER

    def get_client(self, tenant_id: Optional[str] = None) -> AsyncQdrantClient:
        """Get the client for a tenant's endpoint."""
        cluster = self.cluster_for_tenant(tenant_id) if self.settings.is_multi_cluster else self.settings.DEFAULT_CLUSTER
        return self.get_cluster(cluster)

    def get_cluster(self, cluster: str) -> AsyncQdrantClient:
        """Get the client for a named cluster."""
        client = self._clusters.get(cluster)
        if client is None:
            raise ConfigurationError(
                f"No Qdrant cluster available for cluster: {cluster}", "QDRANT_CLUSTERS"
            )
        return client

    def client_for_collection(
        self, physical_name: str, tenant_id: Optional[str] = None
    ) -> AsyncQdrantClient:
        """Get the client holding a physical collection.

        In multi-endpoint deployments the cluster prefix of the name wins
        over the tenant mapping.
        """
        if self.settings.is_multi_cluster:
            cluster, separator, _ = physical_name.partition("_")
            if separator and cluster in self._clusters:
                return self._clusters[cluster]
        return self.get_client(tenant_id)

    def all_clients(self) -> List[AsyncQdrantClient]:
        """Every configured client, in cluster name order."""
        clusters = self._clusters
        return [clusters[name] for name in sorted(clusters)]

    def add_cluster(self, name: str, endpoint: ClusterEndpoint) -> None:
        """Register an additional cluster at runtime."""
        if not endpoint.url:
            raise ConfigurationError(f"Cluster {name} has no URL", "QDRANT_CLUSTERS")

        client = self._client_factory(endpoint, self.settings)
        with self._lock:
            clusters = dict(self._clusters)
            clusters[name] = client
            self._clusters = clusters
        self.logger.info("Registered Qdrant cluster", cluster=name, url=endpoint.url)

    async def close(self) -> None:
        """Close every client connection."""
        with self._lock:
            clients = list(self._clusters.values())
        for client in clients:
            await client.close()

    def physical_name(
        self,
        tenant_id: str,
        collection: str,
        cluster_override: Optional[str] = None,
    ) -> str:
        """Build the physical collection name of a tenant's logical collection."""
        validate_tenant_id(tenant_id)
        validate_collection_name(collection)

        if not self.settings.is_multi_cluster:
            return f"{tenant_id}_{collection}"
        cluster = cluster_override or self.cluster_for_tenant(tenant_id)
        validate_identifier(cluster, "cluster")
        return f"{cluster}_{tenant_id}_{collection}"

    def parse_physical_name(self, physical_name: str) -> Optional[CollectionRef]:
        """Split a physical name back into tenant and collection.

        Returns ``None`` for names that do not follow the naming scheme.
        """
        remainder = physical_name
        if self.settings.is_multi_cluster:
            cluster, _, remainder = remainder.partition("_")
            if not cluster:
                return None

        tenant_id, separator, collection = remainder.partition("_")
        if not separator or not tenant_id or not collection:
            return None
        return CollectionRef(tenant_id, collection, physical_name)

    def resolve_reference(self, entry: str, tenant_id: Optional[str] = None) -> CollectionRef:
        """Resolve a collection entry from a search scope.

        Entries are either plain logical names, scoped to ``tenant_id``, or
        admin display names of the form ``"<collection> (<tenant>)"``.
        Without a tenant, a plain entry is taken as a physical name.
        """
        match = _QUALIFIED_NAME.match(entry.strip())
        if match:
            owner = match.group("tenant").strip()
            collection = re.sub(r"\s+", "_", match.group("collection").strip())
            return CollectionRef(owner, collection, self.physical_name(owner, collection))

        if tenant_id:
            return CollectionRef(tenant_id, entry, self.physical_name(tenant_id, entry))

        parsed = self.parse_physical_name(entry)
        if parsed is not None:
            return parsed
        return CollectionRef("", entry, entry)

    def display_names(
        self,
        physical_names: List[str],
        tenant_id: Optional[str] = None,
        is_admin: bool = False,
    ) -> List[str]:
        """Convert physical names into the names a tenant sees.

        Shared-tenant collections and the tenant's own collections appear
        bare; with admin visibility every other tenant's collection appears
        as ``"<collection> (<tenant>)"``. Everything else is hidden.
        """
        shared = self.settings.SHARED_TENANT_ID
        seen = set()
        visible: List[str] = []
        for name in physical_names:
            ref = self.parse_physical_name(name)
            if ref is None:
                continue
            if ref.tenant_id == shared or (tenant_id and ref.tenant_id == tenant_id):
                display = ref.collection
            elif is_admin:
                display = f"{ref.collection} ({ref.tenant_id})"
            else:
                continue
            if display not in seen:
                seen.add(display)
                visible.append(display)

        return sorted(visible, key=lambda name: (_QUALIFIED_NAME.match(name) is not None, name))
