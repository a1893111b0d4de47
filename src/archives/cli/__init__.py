"""Archives CLI."""

import logging

import typer
from rich.panel import Panel
from rich.table import Table

from archives.cli._client import (
    DEFAULT_API_URL,
    DEFAULT_MCP_URL,
    ApiUrl,
    McpUrl,
    OutputFormat,
    console,
    print_json,
    request,
)
from archives.cli.logs import app as logs_app
from archives.cli.metrics import app as metrics_app
from archives.models import load_config

app = typer.Typer(
    name="archives",
    help="Archives - search logs and query metrics in ClickHouse",
    no_args_is_help=True,
)

app.add_typer(logs_app, name="logs", help="Log search, tail and error summary")
app.add_typer(metrics_app, name="metrics", help="Metric names and aggregation")


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.callback()
def main() -> None:
    """Archives CLI."""
    pass


@app.command()
def status(
    api_url: ApiUrl = DEFAULT_API_URL,
    output: OutputFormat = "table",
) -> None:
    """Show store connectivity, storage usage and retention."""
    health = request("GET", f"{api_url}/health")
    data = request("GET", f"{api_url}/v1/status")
    if output == "json":
        print_json({"health": health, "status": data})
        return

    connected = "[green]connected[/green]" if health["store_connected"] else "[red]down[/red]"
    console.print(Panel.fit(f"Archives {data['version']}  store: {connected}", style="bold blue"))
    storage = data["storage"]
    retention = data["retention"]
    table = Table()
    table.add_column("Signal")
    table.add_column("Rows", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Retention", justify="right")
    table.add_row(
        "logs",
        f"{storage['log_count']:,}",
        storage["log_bytes_human"],
        f"{retention['log_retention_days']}d",
    )
    table.add_row(
        "metrics",
        f"{storage['metric_count']:,}",
        storage["metric_bytes_human"],
        f"{retention['metrics_retention_days']}d",
    )
    console.print(table)


@app.command()
def tools(
    mcp_url: McpUrl = DEFAULT_MCP_URL,
) -> None:
    """List the tools served by the MCP surface."""
    for tool in request("GET", f"{mcp_url}/tools"):
        console.print(f"[bold cyan]{tool['name']}[/bold cyan]  {tool['description']}")
        for name, spec in tool["parameters"].items():
            marker = "*" if spec["required"] else " "
            default = "" if spec["default"] is None else f" = {spec['default']}"
            console.print(f"    {marker} {name}: {spec['type']}{default}")


@app.command("serve-api")
def serve_api() -> None:
    """Run the HTTP surface."""
    import uvicorn

    from archives.api import create_app

    _configure_logging()
    config = load_config()
    uvicorn.run(create_app(config), host=config.api.host, port=config.api.port)


@app.command("serve-mcp")
def serve_mcp() -> None:
    """Run the MCP tool surface."""
    import uvicorn

    from archives.mcp import create_app

    _configure_logging()
    config = load_config()
    if not config.mcp.enabled:
        console.print("[yellow]MCP surface disabled (ARCHIVES_MCP__ENABLED=false)[/yellow]")
        raise typer.Exit(1)
    uvicorn.run(create_app(config), host=config.mcp.host, port=config.mcp.port)


if __name__ == "__main__":
    app()
