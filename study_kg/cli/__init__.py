"""
Command-Line Interface

CLI commands for StudyKG operations.

Commands:
    study-kg build  - Build a knowledge graph from a text file
    study-kg chunk  - Show how a text file would be chunked
    study-kg stats  - Display statistics of a saved graph
    study-kg map    - Print the knowledge map of a saved graph as JSON

Usage:
    # Build a graph (writes lecture.kg.json)
    study-kg build lecture.txt --source-type pdf --pages 12

    # Build without any model calls
    study-kg build lecture.txt --no-llm

    # Inspect the result
    study-kg stats lecture.kg.json
    study-kg map lecture.kg.json --max-nodes 80
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, get_args

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

__all__ = ["main", "app"]

app = typer.Typer(
    name="study-kg",
    help="Turn study material into structured chunks and a knowledge graph",
    no_args_is_help=True,
)
console = Console()

_STAGES = ("chunking", "structuring", "extraction", "deduplication", "assembly")


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show pipeline logs"),
) -> None:
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_graph(path: Path):
    """Load a graph saved by ``build`` (or a bare graph JSON)."""
    from study_kg.types import KnowledgeGraph

    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and "graph" in data:
        data = data["graph"]
    return KnowledgeGraph.model_validate(data)


@app.command()
def build(
    path: Path = typer.Argument(..., help="Text file with extracted document text", exists=True, dir_okay=False),
    source_type: str = typer.Option("text", "--source-type", "-s", help="pdf, youtube, text, docx, image, audio or url"),
    pages: Optional[int] = typer.Option(None, "--pages", "-p", help="Total page count, if known"),
    duration: Optional[str] = typer.Option(None, "--duration", help="Media running time (m:ss or h:mm:ss)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output JSON (default: <file>.kg.json)"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", help="Chunk size in estimated tokens"),
    no_llm: bool = typer.Option(False, "--no-llm", help="Rule-based graph only, no model calls"),
) -> None:
    """Build a knowledge graph from a text file."""
    from study_kg.config import KGConfig
    from study_kg.types import BuildResult, DocumentSource, SourceType

    allowed = get_args(SourceType)
    if source_type not in allowed:
        raise typer.BadParameter(
            f"{source_type!r} is not one of: {', '.join(allowed)}", param_hint="'--source-type'"
        )

    text = path.read_text(encoding="utf-8")
    source = DocumentSource(
        source_type=source_type,
        file_name=path.name,
        total_pages=pages,
        duration=duration,
    )
    config = KGConfig()
    if max_tokens:
        config = config.with_overrides(max_tokens_per_chunk=max_tokens)
    target = output or path.with_suffix(".kg.json")

    if no_llm:
        from study_kg.ingestion.assembly import build_rule_based_graph
        from study_kg.ingestion.chunking import chunk_text
        from study_kg.ingestion.structuring import rule_based_chunk

        raw = chunk_text(
            text,
            max_tokens_per_chunk=config.max_tokens_per_chunk,
            overlap_tokens=config.overlap_tokens,
            source=source,
        )
        chunks = [rule_based_chunk(r) for r in raw]
        result = BuildResult(
            graph=build_rule_based_graph(chunks, source.file_name),
            chunks=chunks,
            used_fallback=True,
        )
    else:
        from study_kg.ingestion.pipeline import KnowledgeGraphPipeline

        pipeline = KnowledgeGraphPipeline.from_config(config)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(f"Building {path.name}...", total=len(_STAGES))

            def on_progress(stage: str, fraction: float) -> None:
                if fraction >= 1.0:
                    progress.update(task, description=f"{stage} done", advance=1)
                else:
                    progress.update(task, description=f"{stage}...")

            result = asyncio.run(pipeline.run(text, source, on_progress=on_progress))

    target.write_text(
        json.dumps(result.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )

    mode = result.config.processing_mode.value if result.config else "rule-based"
    console.print()
    console.print(Panel(
        f"[green]Built knowledge graph for {path.name}[/]\n\n"
        f"  Mode: {mode}\n"
        f"  Chunks: {len(result.chunks)}\n"
        f"  Entities: {len(result.graph.entities)}\n"
        f"  Relations: {len(result.graph.relations)}\n"
        f"  Failed batches: {len(result.failed_batches)}\n"
        f"  Duration: {result.duration_seconds:.1f}s\n"
        f"  Output: {target}",
        title="Build Complete",
        border_style="yellow" if result.used_fallback else "green",
    ))

    if result.errors:
        console.print("[yellow]Warnings:[/]")
        for error in result.errors:
            console.print(f"  - {error}")

    if result.cost is not None:
        total = result.cost.breakdown
        console.print(
            f"\n[dim]{total.total_calls} calls ({total.failed_calls} failed), "
            f"{total.total_tokens} tokens, ~${total.total_estimated_cost_usd:.4f}[/]"
        )


@app.command()
def chunk(
    path: Path = typer.Argument(..., help="Text file to chunk", exists=True, dir_okay=False),
    max_tokens: int = typer.Option(1200, "--max-tokens", help="Chunk size in estimated tokens"),
    overlap: int = typer.Option(150, "--overlap", help="Overlap in estimated tokens"),
    clean: bool = typer.Option(False, "--clean", help="Drop page-number and TOC lines first"),
) -> None:
    """Show how a text file would be chunked."""
    from study_kg.api.convenience import chunk_document
    from study_kg.utils.token_count import estimate_tokens

    chunks = chunk_document(
        path.read_text(encoding="utf-8"),
        max_tokens_per_chunk=max_tokens,
        overlap_tokens=overlap,
        source_name=path.name,
        clean=clean,
    )

    table = Table(title=f"Chunks: {path.name}")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Tokens", justify="right", style="green")
    table.add_column("Overlap", justify="right", style="dim")
    table.add_column("Preview")

    for c in chunks:
        preview = c.content[:70].replace("\n", " ")
        table.add_row(
            str(c.order),
            str(estimate_tokens(c.content)),
            str(c.metadata.get("overlap_chars", 0)),
            preview + ("..." if len(c.content) > 70 else ""),
        )

    console.print(table)


@app.command()
def stats(
    path: Path = typer.Argument(..., help="Graph JSON written by 'build'", exists=True, dir_okay=False),
) -> None:
    """Display statistics of a saved graph."""
    from study_kg.query import get_stats

    graph = _load_graph(path)
    graph_stats = get_stats(graph)

    table = Table(title=f"Knowledge Graph: {graph.metadata.source_name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")

    table.add_row("Entities", str(graph_stats.total_entities))
    table.add_row("Relations", str(graph_stats.total_relations))
    table.add_row("Average confidence", f"{graph_stats.average_confidence:.2f}")
    for entity_type, count in sorted(graph_stats.entities_by_type.items()):
        table.add_row(f"  type: {entity_type}", str(count))
    for category, count in sorted(graph_stats.entities_by_category.items()):
        table.add_row(f"  category: {category}", str(count))

    console.print(table)


@app.command(name="map")
def knowledge_map(
    path: Path = typer.Argument(..., help="Graph JSON written by 'build'", exists=True, dir_okay=False),
    max_nodes: int = typer.Option(50, "--max-nodes", help="Node limit"),
    show_all: bool = typer.Option(False, "--all", help="Larger per-category caps (needs --max-nodes > 100)"),
) -> None:
    """Print the knowledge map of a saved graph as JSON."""
    from study_kg.query import generate_knowledge_map

    result = generate_knowledge_map(_load_graph(path), max_nodes=max_nodes, show_all_entities=show_all)
    console.print_json(result.model_dump_json(by_alias=True))


def main() -> None:
    """Entry point for the CLI."""
    app()
