"""CLI application for durable-update."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from durable_update.errors import DurableUpdateError, ExitCode
from durable_update.logs import DEFAULT_LOG_LEVEL, LOG_LEVELS, configure_logging, validate_log_level
from durable_update.manifest import DEFAULT_MANIFEST
from durable_update.models import RunResult, TaskOutcome
from durable_update.pipeline import durable_update
from durable_update.resolve_node import DEFAULT_REGISTRY, NpmRegistryGateway

console = Console()
logger = logging.getLogger("durable_update.cli")

OUTCOME_STYLES = {
    TaskOutcome.ACCEPTED: "green",
    TaskOutcome.REJECTED: "red",
    TaskOutcome.PENDING: "dim",
}


def format_summary(result: RunResult) -> Table:
    """Tabulate task outcomes of a finished run."""
    table = Table(title="Dependency updates")
    table.add_column("Type")
    table.add_column("Dependency")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Outcome")

    for task in result.tasks:
        table.add_row(
            task.category,
            task.package_name,
            task.original_version or "-",
            task.target_version,
            f"[{OUTCOME_STYLES[task.outcome]}]{task.outcome.value}[/]",
        )
    return table


app = typer.Typer(
    name="durable-update",
    help="durable-update - Update project dependencies and lock down versions",
    add_completion=False,
)


@app.command()
def update(
    manifest: str = typer.Option(
        DEFAULT_MANIFEST, "--manifest", "-m", help="Manifest file (default: './package.json')"
    ),
    loglevel: str = typer.Option(
        DEFAULT_LOG_LEVEL,
        "--loglevel",
        "-l",
        help=f"One of {', '.join(LOG_LEVELS)}, in increasing level of verbosity",
    ),
    registry: str = typer.Option(DEFAULT_REGISTRY, "--registry", help="npm registry URL"),
) -> None:
    """Update project dependencies one tested change at a time."""
    configure_logging(validate_log_level(loglevel))

    manifest_path = Path(manifest)
    if not manifest_path.is_file():
        console.print(f"Error: File {manifest} not found", style="red")
        raise typer.Exit(ExitCode.FAILURE)

    try:
        result = asyncio.run(
            durable_update(manifest_path, gateway=NpmRegistryGateway(registry=registry))
        )
    except DurableUpdateError as e:
        logger.error("durable update failed: %s", e)
        raise typer.Exit(e.exit_code)
    except Exception as e:
        logger.error("durable update failed: %s", e)
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(ExitCode.FAILURE)

    if not result.tasks:
        console.print("No updates available")
        return

    console.print(format_summary(result))
    if result.commit.message and not result.commit.committed:
        console.print("Warning: updates were applied but not committed", style="yellow")


if __name__ == "__main__":
    app()
