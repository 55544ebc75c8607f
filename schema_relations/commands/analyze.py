"""Analysis commands - infer relationships from a DuckDB database or a catalog file."""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from ..analysis import RelationshipConfig, RelationshipCoordinator, RelationshipGraph, RelationshipSet
from ..config import settings
from ..database import DistinctValueSampler, DuckDBIntrospector, InMemoryValueSampler, SchemaCatalog
from ..errors import ConfigurationError, RelationshipError

console = Console()


@contextmanager
def open_catalog(
    duckdb_path: Optional[str],
    catalog_file: Optional[str],
    schema: str = "main",
    sampling: bool = True,
) -> Iterator[Tuple[SchemaCatalog, Optional[DistinctValueSampler]]]:
    """Yield a catalog and an optional sampler from exactly one source.

    A catalog file is the JSON form of SchemaCatalog.to_dict(), optionally
    with a "sample_values" object of {table: {column: [values]}}.
    """
    if bool(duckdb_path) == bool(catalog_file):
        raise ConfigurationError("Specify exactly one of --duckdb or --catalog")

    if duckdb_path:
        with DuckDBIntrospector(database_path=duckdb_path) as introspector:
            catalog = introspector.introspect_catalog(schema)
            yield catalog, introspector if sampling else None
        return

    path = Path(catalog_file)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        catalog = SchemaCatalog.from_dict(data)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Catalog file not found: {path}") from e
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid catalog file {path}: {e}") from e

    sampler = None
    if sampling and data.get("sample_values"):
        sampler = InMemoryValueSampler.from_dict(data["sample_values"])
    yield catalog, sampler


def build_config(config_path: Optional[str], sample_limit: Optional[int]) -> RelationshipConfig:
    """Load the relationship configuration, falling back to environment settings."""
    path = config_path or settings.relationships_config_path
    if path:
        config = RelationshipConfig.load(path)
    else:
        config = RelationshipConfig(
            morph_sampling_policy=settings.morph_sampling_policy,
            sample_limit=settings.sample_limit,
        )
    if sample_limit is not None:
        config = config.model_copy(update={"sample_limit": sample_limit})
    return config


def print_relationship_set(relationships: RelationshipSet) -> None:
    """Display one table's relationships."""
    if not relationships.relationships:
        console.print(f"[yellow]{relationships.table}: no relationships found[/yellow]")
    else:
        table = Table(title=f"Relationships of {relationships.table}")
        table.add_column("Method", style="cyan")
        table.add_column("Kind", style="green")
        table.add_column("Related")
        table.add_column("Keys")
        table.add_column("Conf.", justify="right")
        table.add_column("Notes", style="dim")

        for rel in relationships.relationships:
            notes = []
            if rel.is_custom:
                notes.append("custom")
            if rel.secondary:
                notes.append("secondary")
            if rel.is_self_referencing:
                notes.append("self")
            if rel.pivot:
                notes.append(f"via {rel.pivot.table}")
            if rel.morph:
                notes.append(f"morph {rel.morph.name}")
            if rel.cascade_delete:
                notes.append("cascade")
            related = rel.related_table or ", ".join(rel.target_tables) or "*"
            table.add_row(
                rel.method,
                rel.kind.value,
                related,
                ", ".join(rel.foreign_key),
                f"{rel.confidence:.1f}",
                ", ".join(notes),
            )
        console.print(table)

    complex_info = relationships.complex
    for cycle in complex_info.cycles:
        console.print(f"  [magenta]Cycle:[/magenta] {' -> '.join(cycle.path)}")
    for ref in complex_info.self_references:
        console.print(f"  [magenta]Self-reference:[/magenta] {ref.column} -> {ref.referenced_column}")
    for usage in complex_info.polymorphic_multi_type:
        console.print(f"  [magenta]Polymorphic {usage.morph_name}:[/magenta] {', '.join(usage.distinct_types)}")
    for warning in relationships.warnings:
        console.print(f"  [yellow]{warning.code.value}:[/yellow] {warning.message}")


def analyze(
    table: Optional[str] = typer.Argument(None, help="Table to analyze (default: every table)"),
    duckdb_path: Optional[str] = typer.Option(None, "--duckdb", help="Path to a DuckDB database file"),
    catalog_file: Optional[str] = typer.Option(None, "--catalog", "-c", help="Path to a JSON schema catalog"),
    schema: str = typer.Option("main", "--schema", "-s", help="Schema to introspect (DuckDB only)"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Relationship configuration JSON file"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table or json"),
    sample_limit: Optional[int] = typer.Option(None, "--sample-limit", min=1, help="Distinct values read per polymorphic type column"),
    no_sampling: bool = typer.Option(False, "--no-sampling", help="Never read data; structural analysis only"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Tables analyzed concurrently"),
):
    """Infer relationships for one table or the whole schema."""
    if output_format not in ("table", "json"):
        console.print(f"[red]Unknown format: {output_format} (use 'table' or 'json')[/red]")
        raise typer.Exit(1)

    try:
        config = build_config(config_path, sample_limit)
        with open_catalog(duckdb_path, catalog_file, schema, sampling=not no_sampling) as (catalog, sampler):
            coordinator = RelationshipCoordinator(catalog, config=config, sampler=sampler)

            if table:
                relationships = coordinator.analyze(table)
                if output_format == "json":
                    typer.echo(relationships.to_json())
                else:
                    print_relationship_set(relationships)
                return

            result = coordinator.analyze_all(max_workers=workers or settings.max_workers)
    except RelationshipError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    except ImportError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if output_format == "json":
        typer.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    else:
        for name in catalog.table_names:
            if name in result.results:
                print_relationship_set(result.results[name])
        for name, error in result.errors.items():
            console.print(f"[red]{name}: {error.message}[/red]")
        console.print(f"\n[bold]{result.summary()}[/bold]")

    if result.errors:
        raise typer.Exit(1)


def _canonical(path: Tuple[str, ...]) -> Tuple[str, ...]:
    """Rotate a closed cycle path so equal cycles found from different starts compare equal."""
    members = list(path[:-1])
    start = members.index(min(members))
    rotated = members[start:] + members[:start]
    return tuple(rotated + [rotated[0]])


def cycles(
    duckdb_path: Optional[str] = typer.Option(None, "--duckdb", help="Path to a DuckDB database file"),
    catalog_file: Optional[str] = typer.Option(None, "--catalog", "-c", help="Path to a JSON schema catalog"),
    schema: str = typer.Option("main", "--schema", "-s", help="Schema to introspect (DuckDB only)"),
):
    """List foreign key cycles and self-referencing tables."""
    try:
        with open_catalog(duckdb_path, catalog_file, schema, sampling=False) as (catalog, _):
            graph = RelationshipGraph.from_catalog(catalog)
    except RelationshipError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    except ImportError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    found: List[Tuple[str, ...]] = []
    for name in graph.nodes:
        for cycle in graph.find_cycles(name):
            path = _canonical(cycle.path)
            if path not in found:
                found.append(path)

    if not found and not graph.self_loops:
        console.print("[green]No foreign key cycles found[/green]")
        return

    if found:
        table = Table(title="Foreign Key Cycles")
        table.add_column("#", justify="right")
        table.add_column("Path", style="cyan")
        for index, path in enumerate(found, 1):
            table.add_row(str(index), " -> ".join(path))
        console.print(table)

    for name in graph.self_loops:
        console.print(f"[magenta]Self-referencing:[/magenta] {name}")
