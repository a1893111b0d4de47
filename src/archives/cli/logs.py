"""Log CLI commands: search, tail and error summary."""

from typing import Annotated

import typer
from rich.table import Table
from whenever import Instant

from archives.models import TimeRange

from ._client import (
    DEFAULT_API_URL,
    ApiUrl,
    OutputFormat,
    console,
    drop_none,
    print_json,
    request,
)

app = typer.Typer(no_args_is_help=True)

_SEVERITY_STYLES = {
    "TRACE": "dim",
    "DEBUG": "blue",
    "INFO": "green",
    "WARN": "yellow",
    "ERROR": "red",
    "FATAL": "bold red",
}

MinSeverity = Annotated[
    str | None, typer.Option("--min-severity", "-s", help="Minimum severity (TRACE..FATAL)")
]
ServiceName = Annotated[str | None, typer.Option("--service", help="Filter by service name")]


def _render_logs(logs: list[dict], title: str) -> None:
    if not logs:
        console.print("[yellow]No logs found[/yellow]")
        return
    table = Table(title=title)
    table.add_column("Timestamp", style="cyan", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Service", style="magenta")
    table.add_column("Body")
    for log in logs:
        severity = log["severity"]
        style = _SEVERITY_STYLES.get(severity, "")
        table.add_row(
            log["timestamp"],
            f"[{style}]{severity}[/{style}]" if style else severity,
            log.get("service_name") or "-",
            log["body"],
        )
    console.print(table)


@app.command()
def search(
    query: Annotated[str | None, typer.Argument(help="Text to search for")] = None,
    hours: Annotated[int, typer.Option("--hours", "-h", help="Hours to look back")] = 1,
    min_severity: MinSeverity = None,
    service: ServiceName = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum results")] = 50,
    api_url: ApiUrl = DEFAULT_API_URL,
    output: OutputFormat = "table",
) -> None:
    """Search logs over the last N hours."""
    start, end = TimeRange.last(hours=hours, now=Instant.now()).iso()
    data = request(
        "POST",
        f"{api_url}/v1/logs/search",
        drop_none(
            {
                "start": start,
                "end": end,
                "query": query,
                "min_severity": min_severity,
                "service": service,
                "limit": limit,
            }
        ),
    )
    if output == "json":
        print_json(data)
        return
    _render_logs(data["logs"], f"{data['count']} logs in the last {hours}h")


@app.command()
def tail(
    count: Annotated[int, typer.Option("--count", "-n", help="Number of recent logs")] = 20,
    min_severity: MinSeverity = None,
    service: ServiceName = None,
    api_url: ApiUrl = DEFAULT_API_URL,
    output: OutputFormat = "table",
) -> None:
    """Show the most recent logs, newest first."""
    data = request(
        "POST",
        f"{api_url}/v1/logs/tail",
        drop_none({"count": count, "min_severity": min_severity, "service": service}),
    )
    if output == "json":
        print_json(data)
        return
    _render_logs(data["logs"], "Recent logs")


@app.command()
def errors(
    hours: Annotated[int, typer.Option("--hours", "-h", help="Hours to analyze")] = 24,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Top N patterns")] = 10,
    api_url: ApiUrl = DEFAULT_API_URL,
    output: OutputFormat = "table",
) -> None:
    """Summarize the most frequent error patterns."""
    data = request("POST", f"{api_url}/v1/errors/summary", {"hours": hours, "limit": limit})
    if output == "json":
        print_json(data)
        return

    console.print(
        f"[bold]{data['total_errors']}[/bold] errors in the last {data['time_range_hours']}h"
    )
    if not data["top_patterns"]:
        return
    table = Table()
    table.add_column("Count", justify="right", style="red")
    table.add_column("Pattern")
    for pattern in data["top_patterns"]:
        table.add_row(str(pattern["count"]), pattern["pattern"])
    console.print(table)
