"""CLI commands for shadowindex.

Single entry point: index a directory in the background, query the index, show
indexing status, and reset the store.
"""

import asyncio
import os

# Local LiteLLM cost map: avoid a remote fetch on first litellm import.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from shadowindex import __logo__, __version__
from shadowindex.cli.shared.logging_utils import configure_cli_logging
from shadowindex.config.access import get_config
from shadowindex.config.loader import get_config_path
from shadowindex.config.schema import Config
from shadowindex.ingest.loader import iter_documents
from shadowindex.ingest.models import IndexingStatus
from shadowindex.services.knowledge import KnowledgeService
from shadowindex.services.retrieval.embedding_provider import get_embedding_provider
from shadowindex.storage import get_document_store
from shadowindex.utils.exceptions import ShadowIndexError

app = typer.Typer(
    name="shadowindex",
    help=f"{__logo__} shadowindex - background document indexing and vector search",
    no_args_is_help=True,
)

console = Console()

_STATUS_STYLE = {
    IndexingStatus.PENDING: "dim",
    IndexingStatus.INDEXING: "yellow",
    IndexingStatus.COMPLETED: "green",
    IndexingStatus.FAILED: "red",
}


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} shadowindex v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
):
    """shadowindex - background document indexing and vector search."""
    pass


def _load_config(config_path: Path | None) -> Config:
    try:
        return get_config(config_path=config_path)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e


def _make_service(config: Config) -> KnowledgeService:
    provider = get_embedding_provider(config)
    if provider is None:
        console.print("[red]Error: no embedding model configured.[/red]")
        console.print(f"Set embedding.model in {get_config_path()} or SHADOWINDEX_EMBEDDING__MODEL")
        raise typer.Exit(1)
    try:
        store = get_document_store(config)
    except ShadowIndexError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    return KnowledgeService(config, provider, store)


def _load_store(service: KnowledgeService, *, resume: bool) -> None:
    try:
        service.load(resume=resume)
    except ShadowIndexError as e:
        console.print(f"[red]Could not load documents from {service.store.name}: {e}[/red]")
        raise typer.Exit(1) from e


# ============================================================================
# Index
# ============================================================================


@app.command()
def index(
    path: Path = typer.Argument(..., exists=True, help="File or directory to ingest"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file (default ~/.shadowindex/config.json)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to stderr as well as the log file"),
):
    """Ingest files and index them in the background until every document settles."""
    log_path = configure_cli_logging("index", verbose=verbose)
    config = _load_config(config_path)
    service = _make_service(config)

    def on_event(event) -> None:
        if event.kind != "status":
            return
        doc = service.find_document(event.document_id)
        name = (doc.path or doc.name) if doc else event.document_id
        style = _STATUS_STYLE.get(event.status, "")
        console.print(f"  [{style}]{event.status.value:<10}[/{style}] {name}")

    async def run() -> dict[str, int]:
        async with service:
            service.indexer.subscribe(on_event)
            _load_store(service, resume=True)
            docs = list(iter_documents(path))
            skipped = [d for d in docs if not d.is_ready]
            for d in skipped:
                console.print(f"  [red]unreadable[/red] {d.path or d.name}")
            queued = service.add_documents(docs)
            console.print(
                f"{__logo__} {len(docs)} files, {queued} queued "
                f"(max {service.indexer.max_concurrent} at a time)"
            )
            await service.wait_until_indexed()
            return service.indexing_summary()

    try:
        summary = asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted; unfinished documents resume on the next run.[/yellow]")
        raise typer.Exit(130)
    console.print(
        f"[green]✓[/green] {summary['indexed']} indexed, {summary['failed']} failed, "
        f"{summary['chunks']} chunks stored"
    )
    console.print(f"[dim]Log: {log_path}[/dim]")
    if summary["failed"]:
        raise typer.Exit(1)


# ============================================================================
# Search
# ============================================================================


@app.command()
def search(
    query: str = typer.Argument(..., help="Natural-language query"),
    top_k: int = typer.Option(None, "--top-k", "-k", help="Number of chunks to return (default retrieval.top_k)"),
    module: list[str] = typer.Option(None, "--module", "-m", help="Restrict to these modules (repeatable)"),
    context: bool = typer.Option(False, "--context", help="Print the prompt context block instead of a table"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to stderr as well as the log file"),
):
    """Return the chunks most similar to QUERY among indexed documents."""
    configure_cli_logging("search", verbose=verbose)
    config = _load_config(config_path)
    service = _make_service(config)
    _load_store(service, resume=False)
    if module:
        for doc in service.documents:
            doc.is_selected = doc.module_name in module

    try:
        results = asyncio.run(service.search(query, top_k=top_k))
    except ShadowIndexError as e:
        logger.warning(f"Search failed: {e}")
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    if not results:
        console.print("No matching chunks. Run [cyan]shadowindex index <path>[/cyan] first.")
        return
    if context:
        console.print(service.build_context(results), markup=False, highlight=False)
        return

    table = Table(title=f"Top {len(results)} for '{query}'")
    table.add_column("Score", justify="right", style="cyan")
    table.add_column("File")
    table.add_column("Range", justify="right", style="dim")
    table.add_column("Content")
    for r in results:
        doc = service.find_document(r.document_id)
        snippet = " ".join(r.content.split())
        table.add_row(
            f"{r.score:.3f}",
            (doc.path or doc.name) if doc else r.document_id,
            f"{r.start_index}-{r.end_index}",
            snippet[:80] + "..." if len(snippet) > 80 else snippet,
        )
    console.print(table)


# ============================================================================
# Status / Reset
# ============================================================================


@app.command()
def status(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """Show configuration and per-document indexing status."""
    configure_cli_logging("status")
    config = _load_config(config_path)
    path = config_path or get_config_path()
    console.print(f"{__logo__} shadowindex Status\n")
    console.print(f"Config: {path} {'[green]✓[/green]' if path.exists() else '[dim]defaults[/dim]'}")
    console.print(f"Embedding: {config.embedding.provider}/{config.embedding.model}")
    if config.store.backend == "rest":
        console.print(f"Store: rest {config.store.rest_url or '[dim]not set[/dim]'}")
    else:
        console.print(f"Store: sqlite {config.sqlite_path}")

    try:
        snapshot = get_document_store(config).fetch_all()
    except ShadowIndexError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    chunk_counts: dict[str, int] = {}
    for chunk in snapshot.embeddings:
        chunk_counts[chunk.document_id] = chunk_counts.get(chunk.document_id, 0) + 1
    if not snapshot.documents:
        console.print("\nNo documents indexed.")
        return

    table = Table(title="Documents")
    table.add_column("File", style="cyan")
    table.add_column("Module")
    table.add_column("Indexing")
    table.add_column("Chunks", justify="right")
    for doc in snapshot.documents:
        state = doc.indexing_status
        style = _STATUS_STYLE.get(state, "") if state else "dim"
        label = state.value if state else "-"
        table.add_row(
            doc.path or doc.name,
            doc.module_name,
            f"[{style}]{label}[/{style}]" if style else label,
            str(chunk_counts.get(doc.id, 0)),
        )
    console.print(table)


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """Delete every document and chunk from the configured store."""
    configure_cli_logging("reset")
    config = _load_config(config_path)
    if not yes and not typer.confirm(f"Delete all documents from the {config.store.backend} store?"):
        raise typer.Exit()
    try:
        get_document_store(config).delete_all()
    except ShadowIndexError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    console.print("[green]✓[/green] Store cleared")


if __name__ == "__main__":
    app()
