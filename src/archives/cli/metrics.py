"""Metric CLI commands."""

from typing import Annotated

import typer
from rich.table import Table
from whenever import Instant

from archives.models import Aggregation, TimeRange

from ._client import DEFAULT_API_URL, ApiUrl, OutputFormat, console, print_json, request

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_names(
    api_url: ApiUrl = DEFAULT_API_URL,
) -> None:
    """List metric names present in the store."""
    data = request("GET", f"{api_url}/v1/metrics/names")
    if not data["names"]:
        console.print("[yellow]No metrics found[/yellow]")
        return
    for name in data["names"]:
        console.print(f"  [cyan]{name}[/cyan]")


@app.command()
def query(
    metric_name: Annotated[str, typer.Argument(help="Metric to aggregate")],
    hours: Annotated[int, typer.Option("--hours", "-h", help="Hours to look back")] = 1,
    aggregation: Annotated[
        Aggregation, typer.Option("--aggregation", "-a", help="Aggregation function")
    ] = Aggregation.AVG,
    interval: Annotated[int, typer.Option("--interval", "-i", help="Bucket width in seconds")] = 60,
    api_url: ApiUrl = DEFAULT_API_URL,
    output: OutputFormat = "table",
) -> None:
    """Aggregate a metric into time buckets."""
    start, end = TimeRange.last(hours=hours, now=Instant.now()).iso()
    data = request(
        "POST",
        f"{api_url}/v1/metrics/query",
        {
            "metric_name": metric_name,
            "start": start,
            "end": end,
            "aggregation": aggregation.value,
            "interval_seconds": interval,
        },
    )
    if output == "json":
        print_json(data)
        return

    table = Table(title=f"{data['aggregation']}({data['metric_name']}) / {interval}s")
    table.add_column("Bucket", style="cyan")
    table.add_column("Value", justify="right")
    for point in data["data"]:
        table.add_row(point["bucket_timestamp"], f"{point['aggregated_value']:.4g}")
    console.print(table)
