"""Command-line interface for Lyceum."""

import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from .config.logging import setup_logging
from .config.settings import Settings
from .core.exceptions import LyceumError
from .core.server import KnowledgeServer
from .models.knowledge import DocumentMetadata, SearchStrategy
from .rag.database import KnowledgeBase

T = TypeVar("T")

app = typer.Typer(
    name="lyceum",
    help="Lyceum - multi-tenant knowledge retrieval for educational assistants",
    add_completion=False,
)
console = Console()

ENV_TEMPLATE = """# Lyceum Configuration
SERVER_HOST=localhost
SERVER_PORT=8000
DEBUG=false
LOG_LEVEL=INFO
LOG_DIR=./logs

# Qdrant (single or multi)
QDRANT_DEPLOYMENT_MODE=single
QDRANT_URL=http://localhost:6333
QDRANT_API_KEY=
# QDRANT_CLUSTERS={"eu": {"url": "https://eu.example.com:6333", "api_key": ""}}
# SCHOOL_CLUSTER_MAPPING={"school-a": "eu"}

# Embeddings
EMBEDDING_API_BASE=https://api.openai.com
EMBEDDING_API_KEY=
EMBEDDING_MODEL=text-embedding-3-small
EMBEDDING_DIMENSIONS=512

# Tenancy
# SHARED_TENANT_ID=network
# ADMIN_PRINCIPALS=["admin@example.com"]
# TENANT_GRANTS={"teacher@example.com": ["school-a"]}
"""


def _run(operation: Callable[[KnowledgeBase], Awaitable[T]]) -> T:
    """Run an operation against an initialized knowledge base, then close it."""
    settings = Settings()
    setup_logging(settings)

    async def runner() -> T:
        knowledge_base = KnowledgeBase(settings)
        await knowledge_base.initialize()
        try:
            return await operation(knowledge_base)
        finally:
            await knowledge_base.close()

    try:
        return asyncio.run(runner())
    except LyceumError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@app.command("server")
def run_server(
    host: str = typer.Option("localhost", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode"),
) -> None:
    """Start the Lyceum server."""
    try:
        settings = Settings(SERVER_HOST=host, SERVER_PORT=port)
        if debug:
            settings.DEBUG = True
            settings.LOG_LEVEL = "DEBUG"

        console.print(f"[green]Starting Lyceum server on {host}:{port}[/green]")

        server = KnowledgeServer(settings)
        asyncio.run(server.start())

    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped by user[/yellow]")
    except Exception as e:
        console.print(f"[red]Error starting server: {e}[/red]")
        sys.exit(1)


@app.command("init")
def init_project(
    directory: Path = typer.Argument(Path("."), help="Directory to initialize"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing files"),
) -> None:
    """Write a .env template for a new deployment."""
    directory = directory.resolve()
    directory.mkdir(parents=True, exist_ok=True)

    config_file = directory / ".env"
    if config_file.exists() and not force:
        console.print(f"[yellow]Configuration file already exists: {config_file}[/yellow]")
        console.print("Use --force to overwrite")
        return

    config_file.write_text(ENV_TEMPLATE)
    console.print(f"[green]Initialized Lyceum project in {directory}[/green]")
    console.print(f"Configuration file: {config_file}")


@app.command("version")
def show_version() -> None:
    """Show version information."""
    from . import __version__
    console.print(f"Lyceum version {__version__}")


@app.command("ingest")
def ingest_file(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text file to ingest"),
    tenant: str = typer.Option(..., "--tenant", "-t", help="Owning school"),
    collection: str = typer.Option(..., "--collection", "-c", help="Logical collection"),
    uploaded_by: str = typer.Option("cli", "--uploaded-by", help="Recorded uploader"),
    file_type: Optional[str] = typer.Option(None, "--file-type", help="MIME type (guessed if omitted)"),
) -> None:
    """Chunk, embed and store a text file."""
    content = file.read_text(encoding="utf-8", errors="replace")
    metadata = DocumentMetadata(
        file_name=file.name,
        collection=collection,
        uploaded_by=uploaded_by,
        school_id=tenant,
        file_type=file_type or mimetypes.guess_type(file.name)[0] or "text/plain",
        file_size=str(file.stat().st_size),
    )

    async def operation(knowledge_base: KnowledgeBase):
        physical = knowledge_base.physical_name(tenant, collection)
        return await knowledge_base.ingest(
            content,
            metadata,
            physical,
            on_progress=lambda percent: console.print(f"  {percent}%"),
        )

    result = _run(operation)
    console.print(
        f"[green]Ingested {result.file_name} into {result.collection}: "
        f"{result.total_chunks} chunks in {result.batches} batches[/green]"
    )


@app.command("search")
def search(
    query: str = typer.Argument(..., help="Search query"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help="School scope"),
    collections: List[str] = typer.Option(..., "--collection", "-c", help="Collection to search (repeatable)"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum results"),
    strategy: Optional[SearchStrategy] = typer.Option(None, "--strategy", "-s", help="Search strategy"),
) -> None:
    """Search collections and print ranked passages."""
    results = _run(lambda kb: kb.search(query, collections, limit, tenant, strategy))

    if not results:
        console.print("[yellow]No results[/yellow]")
        return

    table = Table(title=f"Results for {query!r}")
    table.add_column("Score", justify="right")
    table.add_column("Document")
    table.add_column("Passage")
    for result in results:
        table.add_row(
            f"{result.score:.3f}",
            str(result.metadata.get("fileName", "")),
            result.text[:120].replace("\n", " "),
        )
    console.print(table)


@app.command("documents")
def list_documents(
    tenant: str = typer.Option(..., "--tenant", "-t", help="Owning school"),
    collection: str = typer.Option(..., "--collection", "-c", help="Logical collection"),
    limit: int = typer.Option(50, "--limit", "-n", help="Documents per page"),
    offset: int = typer.Option(0, "--offset", help="Documents to skip"),
) -> None:
    """List the documents of a collection."""

    async def operation(knowledge_base: KnowledgeBase):
        physical = knowledge_base.physical_name(tenant, collection)
        return await knowledge_base.list_documents(physical, tenant, limit, offset)

    response = _run(operation)

    table = Table(title=f"{collection} ({response.total_documents} documents)")
    table.add_column("File")
    table.add_column("Chunks", justify="right")
    table.add_column("Uploaded")
    table.add_column("By")
    for document in response.documents:
        table.add_row(
            document.file_name,
            f"{document.chunk_count}/{document.total_chunks}",
            document.uploaded_at or "",
            document.uploaded_by or "",
        )
    console.print(table)
    if response.next_offset is not None:
        console.print(f"More documents: --offset {response.next_offset}")


@app.command("delete")
def delete_document(
    file_name: str = typer.Argument(..., help="Document to delete"),
    tenant: str = typer.Option(..., "--tenant", "-t", help="Owning school"),
    collection: str = typer.Option(..., "--collection", "-c", help="Logical collection"),
) -> None:
    """Delete every chunk of a document."""

    async def operation(knowledge_base: KnowledgeBase):
        physical = knowledge_base.physical_name(tenant, collection)
        return await knowledge_base.delete_document(physical, file_name, tenant)

    _run(operation)
    console.print(f"[green]Deleted {file_name}[/green]")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
