"""Configuration settings for Lyceum."""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClusterEndpoint(BaseModel):
    """Connection details for one Qdrant cluster."""

    url: Optional[str] = Field(default=None, description="Cluster base URL")
    api_key: Optional[str] = Field(default=None, description="Cluster API key")
    region: Optional[str] = Field(default=None, description="Deployment region")
    description: Optional[str] = Field(default=None, description="Human readable description")


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    SERVER_HOST: str = Field(default="localhost", description="Server host")
    SERVER_PORT: int = Field(default=8000, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_DIR: Path = Field(default=Path("./logs"), description="Directory for log files")

    # Vector Store Topology
    QDRANT_DEPLOYMENT_MODE: Literal["single", "multi"] = Field(
        default="single", description="Deployment mode: 'single' or 'multi' endpoint"
    )
    QDRANT_URL: Optional[str] = Field(
        default=None, description="URL of the default Qdrant cluster"
    )
    QDRANT_API_KEY: Optional[str] = Field(
        default=None, description="API key of the default Qdrant cluster"
    )
    QDRANT_CLUSTERS: Dict[str, ClusterEndpoint] = Field(
        default_factory=dict,
        description="Additional clusters for multi-endpoint deployments (JSON)",
    )
    SCHOOL_CLUSTER_MAPPING: Dict[str, str] = Field(
        default_factory=dict, description="Tenant id to cluster name mapping (JSON)"
    )
    DEFAULT_CLUSTER: str = Field(default="default", description="Fallback cluster name")
    QDRANT_TIMEOUT_SECONDS: int = Field(default=30, description="Qdrant request timeout")

    # Embedding Configuration
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="Embedding model name"
    )
    EMBEDDING_API_BASE: Optional[str] = Field(
        default="https://api.openai.com",
        description="Embedding API base URL (OpenAI-compatible)",
    )
    EMBEDDING_API_KEY: Optional[str] = Field(
        default=None, description="Embedding API key"
    )
    EMBEDDING_DIMENSIONS: int = Field(
        default=512, ge=1, description="Vector size requested from the model and used for collections"
    )
    EMBEDDING_TIMEOUT_SECONDS: int = Field(
        default=30, description="Embedding request timeout"
    )

    # Chunking Configuration
    CHUNK_MAX_SIZE: int = Field(default=2000, ge=1, description="Maximum chunk length")
    CHUNK_OVERLAP: int = Field(default=200, ge=0, description="Characters carried into the next chunk")
    CHUNK_MIN_SIZE: int = Field(default=100, ge=1, description="Minimum chunk length")

    # Ingestion and Scan Configuration
    INGEST_BATCH_SIZE: int = Field(default=20, ge=1, description="Chunks embedded and upserted per batch")
    SCROLL_LIMIT: int = Field(default=10000, ge=1, description="Hard cap on chunks scanned for listings")
    SCROLL_PAGE_SIZE: int = Field(default=1000, ge=1, description="Page size for full scans")
    DELETE_BATCH_SIZE: int = Field(default=100, ge=1, description="Point ids per delete request")
    PREVIEW_LENGTH: int = Field(default=200, ge=0, description="Document preview length")

    # Retrieval Configuration
    SEARCH_DEFAULT_LIMIT: int = Field(default=5, ge=1, description="Default number of search results")
    SEARCH_DEFAULT_STRATEGY: Literal["hybrid", "semantic", "exact"] = Field(
        default="hybrid", description="Default search strategy"
    )

    # Provisioning Retry
    PROVISION_MAX_RETRIES: int = Field(default=3, ge=0, description="Retries for collection provisioning")
    PROVISION_RETRY_BASE_DELAY: float = Field(
        default=0.5, ge=0, description="Initial backoff delay in seconds"
    )

    # Tenancy
    SHARED_TENANT_ID: Optional[str] = Field(
        default=None, description="Tenant whose collections are readable by every tenant"
    )
    ADMIN_PRINCIPALS: List[str] = Field(
        default_factory=list, description="Principals with access to every tenant (JSON list)"
    )
    TENANT_GRANTS: Dict[str, List[str]] = Field(
        default_factory=dict, description="Principal to tenant ids grants (JSON)"
    )

    # MCP Configuration
    MCP_SERVER_NAME: str = Field(default="lyceum", description="MCP server name")
    MCP_SERVER_VERSION: str = Field(default="0.1.0", description="MCP server version")
    MCP_ENABLED: bool = Field(default=True, description="Mount the MCP tool surface at /mcp")
    MCP_PRINCIPAL_ID: Optional[str] = Field(
        default=None, description="Principal the MCP tools act as for access checks"
    )

    @property
    def is_multi_cluster(self) -> bool:
        """Whether several Qdrant endpoints are in use."""
        return self.QDRANT_DEPLOYMENT_MODE == "multi"

    def cluster_endpoints(self) -> Dict[str, ClusterEndpoint]:
        """Get the cluster endpoints for the configured deployment mode."""
        endpoints = {
            self.DEFAULT_CLUSTER: ClusterEndpoint(
                url=self.QDRANT_URL,
                api_key=self.QDRANT_API_KEY,
                description="Default cluster for all schools",
            )
        }
        if self.is_multi_cluster:
            for name, endpoint in self.QDRANT_CLUSTERS.items():
                endpoints[name] = endpoint
        return endpoints

    def create_directories(self) -> None:
        """Create necessary directories."""
        self.LOG_DIR.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return self.model_dump()

    def __repr__(self) -> str:
        """String representation of settings."""
        return (
            f"Settings(host={self.SERVER_HOST}, port={self.SERVER_PORT}, "
            f"mode={self.QDRANT_DEPLOYMENT_MODE}, debug={self.DEBUG})"
        )
