"""
End-to-end walkthrough of the exporter against a simulated database.

This script:
1. Loads and validates the exporter config
2. Resolves each query against the configured databases
3. Runs the schedulers for a few seconds with random query results
4. Prints the exported gauges

Run with: uv run python demo.py [conf/exporter.yaml] [seconds]
"""

import asyncio
import sys

from prometheus_client.parser import text_string_to_metric_families
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sql_exporter.adapters.simulated import SimulatedDbClient
from sql_exporter.config import ExporterConfig, load_config
from sql_exporter.errors import ConfigError
from sql_exporter.services.exporter import Exporter
from sql_exporter.services.registry import MetricRegistry
from sql_exporter.services.resolver import resolve_all

console = Console()


def show_resolved_queries(config: ExporterConfig) -> None:
    table = Table(title="Resolved queries")
    table.add_column("Query", style="cyan")
    table.add_column("Target", style="magenta")
    table.add_column("Interval", justify="right")
    table.add_column("Columns")

    for query in resolve_all(config.db.databases, config.queries):
        table.add_row(
            query.name,
            query.target,
            f"{query.interval_secs}s",
            ", ".join(query.value_columns) or "-",
        )
    console.print(table)


def show_metrics(exposition: str) -> None:
    table = Table(title="Exported gauges")
    table.add_column("Metric", style="cyan")
    table.add_column("db", style="magenta")
    table.add_column("Value", justify="right", style="green")

    for family in text_string_to_metric_families(exposition):
        for sample in family.samples:
            table.add_row(sample.name, sample.labels.get("db", ""), f"{sample.value:g}")
    console.print(table)


async def run_demo(config_path: str, seconds: float) -> int:
    console.print(Panel("Loading configuration", style="blue"))
    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Configuration failed:[/red] {e}")
        return 1

    show_resolved_queries(config)

    console.print(Panel(f"Running schedulers for {seconds:g}s", style="blue"))
    client = SimulatedDbClient(failure_rate=0.1)
    exporter = Exporter(
        config,
        client,
        registry=MetricRegistry(include_process_metrics=False),
        initial_delay_seconds=0.05,
    )
    async with exporter.running():
        await asyncio.sleep(seconds)
        exposition = exporter.get_metrics()

    show_metrics(exposition)
    return 0


if __name__ == "__main__":
    path = sys.argv[1] if len(sys.argv) > 1 else "conf/exporter.yaml"
    duration = float(sys.argv[2]) if len(sys.argv) > 2 else 3.0
    sys.exit(asyncio.run(run_demo(path, duration)))
