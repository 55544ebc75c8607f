"""schema-relations CLI - Main entry point."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from .commands import analyze
from .config import settings

app = typer.Typer(
    name="schema-relations",
    help="Infer relationships between the tables of a relational schema",
    add_completion=False,
)

app.command("analyze")(analyze.analyze)
app.command("cycles")(analyze.cycles)

console = Console()


def setup_logging(level: str) -> None:
    """Send library logging to stderr through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.command()
def config():
    """Show current configuration."""
    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Relationships config: {settings.relationships_config_path or 'Not set'}")
    console.print(f"  Sample limit: {settings.sample_limit}")
    console.print(f"  Morph sampling policy: {settings.morph_sampling_policy}")
    console.print(f"  Max workers: {settings.max_workers}")
    console.print(f"  Log level: {settings.log_level}")


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)"),
):
    """
    schema-relations - Infer table relationships from foreign keys, pivot tables and polymorphic columns.

    Examples:

        schema-relations analyze users --duckdb shop.duckdb

        schema-relations analyze --catalog catalog.json --format json

        schema-relations cycles --duckdb shop.duckdb
    """
    setup_logging(log_level)


if __name__ == "__main__":
    app()
