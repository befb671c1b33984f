"""HTTP server for the Lyceum knowledge base."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Header, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mcp.server.fastmcp import FastMCP

from ..config.logging import LoggerMixin, setup_logging
from ..config.settings import Settings
from ..mcp.knowledge_tools import KnowledgeTools
from ..models.knowledge import SearchRequest, UploadRequest
from ..rag.database import KnowledgeBase
from .access import SettingsAccessChecker, TenantAccessChecker
from .exceptions import AccessDeniedError, ConfigurationError, LyceumError, ValidationError
from .service import KnowledgeService

PRINCIPAL_HEADER = "X-Principal-Id"


def status_for(exc: LyceumError) -> int:
    """HTTP status for a Lyceum error."""
    if isinstance(exc, AccessDeniedError):
        return 403
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, ConfigurationError):
        return 500
    return 502


class KnowledgeServer(LoggerMixin):
    """Knowledge API server with an optional MCP tool surface."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        knowledge_base: Optional[KnowledgeBase] = None,
        access: Optional[TenantAccessChecker] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.settings.create_directories()

        setup_logging(self.settings)
        self.logger.info("Initializing Lyceum server", version=self.settings.MCP_SERVER_VERSION)

        self.knowledge_base = knowledge_base or KnowledgeBase(self.settings)
        self.access = access or SettingsAccessChecker(self.settings)
        self.service = KnowledgeService(self.settings, self.knowledge_base, self.access)

        self.mcp: Optional[FastMCP] = None
        self.app: Optional[FastAPI] = None
        self._running = False

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncGenerator[None, None]:
        """FastAPI lifespan context manager."""
        try:
            await self._startup()
            yield
        finally:
            await self._shutdown()

    async def _startup(self) -> None:
        self.logger.info("Starting Lyceum server components")
        try:
            await self.knowledge_base.initialize()
            self._running = True
            self.logger.info("All server components started successfully")
        except Exception as e:
            self.logger.error("Failed to start server components", error=str(e))
            raise

    async def _shutdown(self) -> None:
        self.logger.info("Shutting down Lyceum server")
        self._running = False
        await self.knowledge_base.close()
        self.logger.info("Server shutdown complete")

    def create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""
        app = FastAPI(
            title="Lyceum",
            description="Multi-tenant knowledge retrieval for educational assistants",
            version=self.settings.MCP_SERVER_VERSION,
            lifespan=self.lifespan,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @app.exception_handler(LyceumError)
        async def lyceum_exception_handler(request, exc: LyceumError):
            status = status_for(exc)
            if status >= 500:
                self.logger.error("Request failed", path=request.url.path, error=str(exc))
            return JSONResponse(status_code=status, content=exc.to_dict())

        @app.exception_handler(Exception)
        async def general_exception_handler(request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(status_code=500, content={"error": "Internal server error"})

        @app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {
                "status": "healthy" if self._running else "starting",
                "version": self.settings.MCP_SERVER_VERSION,
                "mode": self.settings.QDRANT_DEPLOYMENT_MODE,
                "components": {
                    "knowledge_base": self._running,
                    "mcp": self.mcp is not None,
                },
            }

        @app.get("/knowledge/collections")
        async def list_collections(
            tenant_id: Optional[str] = None,
            principal_id: Optional[str] = Header(default=None, alias=PRINCIPAL_HEADER),
        ):
            collections = await self.service.list_collections(principal_id, tenant_id)
            return {"collections": collections}

        @app.get("/knowledge/documents")
        async def list_documents(
            collection: str,
            tenant_id: Optional[str] = None,
            limit: int = Query(default=50, ge=1, le=1000),
            offset: int = Query(default=0, ge=0),
            principal_id: Optional[str] = Header(default=None, alias=PRINCIPAL_HEADER),
        ):
            response = await self.service.list_documents(principal_id, collection, tenant_id, limit, offset)
            return response.model_dump()

        @app.get("/knowledge/documents/count")
        async def count_documents(
            collection: str,
            tenant_id: Optional[str] = None,
            principal_id: Optional[str] = Header(default=None, alias=PRINCIPAL_HEADER),
        ):
            count = await self.service.count_documents(principal_id, collection, tenant_id)
            return count.model_dump(mode="json")

        @app.post("/knowledge/documents")
        async def upload_document(
            request: UploadRequest,
            principal_id: Optional[str] = Header(default=None, alias=PRINCIPAL_HEADER),
        ):
            result = await self.service.upload(principal_id, request)
            return result.model_dump()

        @app.delete("/knowledge/documents")
        async def delete_document(
            collection: str,
            file_name: str,
            tenant_id: Optional[str] = None,
            principal_id: Optional[str] = Header(default=None, alias=PRINCIPAL_HEADER),
        ):
            deleted = await self.service.delete_document(principal_id, collection, file_name, tenant_id)
            return {"success": deleted, "file_name": file_name}

        @app.delete("/knowledge/collections")
        async def delete_collection(
            collection: str,
            tenant_id: Optional[str] = None,
            principal_id: Optional[str] = Header(default=None, alias=PRINCIPAL_HEADER),
        ):
            deleted = await self.service.delete_collection(principal_id, collection, tenant_id)
            return {"success": deleted, "collection": collection}

        @app.post("/knowledge/search")
        async def search(
            request: SearchRequest,
            principal_id: Optional[str] = Header(default=None, alias=PRINCIPAL_HEADER),
        ):
            results = await self.service.search(principal_id, request)
            return {"results": [result.model_dump() for result in results]}

        if self.settings.MCP_ENABLED:
            self.mcp = FastMCP(self.settings.MCP_SERVER_NAME)
            KnowledgeTools(self.mcp, self.service, self.settings.MCP_PRINCIPAL_ID)
            app.mount("/mcp", self.mcp.sse_app())

        self.app = app
        return app

    async def start(self) -> None:
        """Start the server using uvicorn."""
        app = self.create_app()

        config = uvicorn.Config(
            app,
            host=self.settings.SERVER_HOST,
            port=self.settings.SERVER_PORT,
            log_level=self.settings.LOG_LEVEL.lower(),
            access_log=self.settings.DEBUG,
        )

        server = uvicorn.Server(config)
        await server.serve()

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self._running
