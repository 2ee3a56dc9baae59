# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Command line entry point: python -m refer / refer

add and reindex take an exclusive lock on <store>.lock, so they never run
against the same store at the same time.
"""
import json
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

import typer
from filelock import FileLock, Timeout
from rich.console import Console
from rich.table import Table

from .config import Config
from .core import Refer
from .errors import ReferError
from .fetcher import expand_paths
from .models import SearchResult

console = Console(soft_wrap=True)
app = typer.Typer(help="Semantic search over local files and web pages", no_args_is_help=True)


def build_refer(config: Config) -> Refer:
    return Refer(config)


@contextmanager
def _store_lock(config: Config):
    lock = FileLock(str(Path(config.store_path)) + ".lock")
    try:
        lock.acquire(timeout=0)
    except Timeout:
        console.print(
            f"Error: another add or reindex is already running on {config.store_path}"
        )
        raise typer.Exit(1)
    try:
        yield
    finally:
        lock.release()


@contextmanager
def _session(ctx: typer.Context):
    refer = None
    try:
        refer = build_refer(ctx.obj)
        yield refer
    except ReferError as e:
        console.print(f"Error: {e}", markup=False)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("Interrupted")
        raise typer.Exit(130)
    finally:
        if refer is not None:
            refer.close()


@app.callback()
def main(
    ctx: typer.Context,
    store: Optional[str] = typer.Option(
        None, "--store", "-s", help="Store directory", envvar="REFER_STORE_PATH",
    ),
):
    config = Config.load()
    if store:
        config.store_path = store
    ctx.obj = config


@app.command()
def add(
    ctx: typer.Context,
    paths: List[str] = typer.Argument(..., help="Files, directories or URLs"),
    recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="Walk directories"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Parallel embedding requests"),
):
    """Add files, directories or web pages to the store."""
    candidates: list[str] = []
    seen: set[str] = set()
    for target in paths:
        for p in expand_paths(target, recursive=recursive):
            if p not in seen:
                seen.add(p)
                candidates.append(p)

    with _store_lock(ctx.obj), _session(ctx) as refer:
        errors = refer.add_documents(candidates, max_workers=workers)

    if errors:
        for err in errors:
            console.print(str(err), markup=False)
        console.print(f"{len(errors)} of {len(candidates)} paths failed")
        raise typer.Exit(1)


def _print_names(results: list[SearchResult]):
    for r in results:
        console.print(f"{r.document.id}: {r.document.path} ({r.distance:.4f})", markup=False)


def _print_llm(results: list[SearchResult]):
    for r in results:
        console.print(
            f"File: {r.document.path}\nTitle: {r.document.title}\n\n{r.document.content}\n---",
            markup=False,
        )


@app.command()
def search(
    ctx: typer.Context,
    queries: List[str] = typer.Argument(..., help="One or more queries"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Results per query"),
    threshold: Optional[float] = typer.Option(None, "--threshold", "-t", help="Maximum distance"),
    rerank: bool = typer.Option(False, "--rerank", help="Rerank results against the first query"),
    fmt: str = typer.Option("names", "--format", "-f", help="names, llm or json"),
):
    """Search the store."""
    if fmt not in ("names", "llm", "json"):
        console.print(f"Error: unknown format: {fmt}")
        raise typer.Exit(2)

    with _session(ctx) as refer:
        results = refer.search(queries, limit=limit, threshold=threshold, rerank=rerank)

    if not results:
        console.print("No results found.")
        return
    if fmt == "json":
        typer.echo(json.dumps(
            [{**r.document.to_dict(), "distance": r.distance} for r in results], indent=2,
        ))
    elif fmt == "llm":
        _print_llm(results)
    else:
        _print_names(results)


@app.command()
def show(
    ctx: typer.Context,
    doc_id: Optional[str] = typer.Argument(None, help="Document ID to show in full"),
):
    """List documents, or show one document."""
    with _session(ctx) as refer:
        docs = refer.show(doc_id)

    if doc_id is not None:
        if not docs:
            console.print(f"Error: no document found with ID {doc_id}")
            raise typer.Exit(1)
        doc = docs[0]
        console.print(
            f"ID: {doc.id}\nPath: {doc.path}\nTitle: {doc.title}\n"
            f"Remote: {doc.is_remote}\n\n{doc.content}",
            markup=False,
        )
        return

    if not docs:
        console.print("No documents.")
        return
    table = Table()
    table.add_column("ID", no_wrap=True, min_width=16)
    table.add_column("Path", overflow="fold")
    table.add_column("Title", overflow="fold")
    for doc in docs:
        table.add_row(doc.id, doc.path, doc.title)
    console.print(table)


@app.command()
def stats(ctx: typer.Context):
    """Show store statistics."""
    with _session(ctx) as refer:
        data = refer.stats()
    for key, value in data.items():
        console.print(f"{key}: {value}", markup=False)


@app.command()
def reindex(ctx: typer.Context):
    """Re-embed documents; full rebuild if the embedding model changed."""
    with _store_lock(ctx.obj), _session(ctx) as refer:
        result = refer.reindex()
    console.print(
        f"Reindexed {result.original_count} documents "
        f"({result.changed_count} re-embedded, {len(result.dropped)} dropped)"
    )


@app.command()
def remove(
    ctx: typer.Context,
    doc_id: str = typer.Argument(..., help="Document ID to remove"),
):
    """Remove a document from the store."""
    with _session(ctx) as refer:
        refer.remove(doc_id)
    console.print(f"Removed document {doc_id}")


@app.command("config")
def show_config(ctx: typer.Context):
    """Print the resolved configuration (secrets masked)."""
    typer.echo(json.dumps(ctx.obj.to_safe_dict(), indent=2))


if __name__ == "__main__":
    app()
