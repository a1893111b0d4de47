"""HTTP helpers shared by the CLI commands."""

import json
import os
from typing import Annotated, Any

import httpx
import typer
from rich.console import Console

console = Console()

DEFAULT_API_URL = os.environ.get("ARCHIVES_API_URL", "http://localhost:8080")
DEFAULT_MCP_URL = os.environ.get("ARCHIVES_MCP_URL", "http://localhost:8081")


def request(method: str, url: str, payload: dict[str, Any] | None = None) -> Any:
    """Call a surface and return the decoded body, exiting 1 on failure."""
    try:
        response = httpx.request(method, url, json=payload, timeout=60.0)
    except httpx.HTTPError as e:
        console.print(f"[red]Error:[/red] cannot reach {url}: {e}")
        raise typer.Exit(1) from None

    if response.is_error:
        try:
            message = response.json().get("error", response.text)
        except ValueError:
            message = response.text
        console.print(f"[red]Error ({response.status_code}):[/red] {message}")
        raise typer.Exit(1)
    return response.json()


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data))


def drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


ApiUrl = Annotated[str, typer.Option("--api-url", help="Archives API base URL")]
McpUrl = Annotated[str, typer.Option("--mcp-url", help="Archives MCP base URL")]
OutputFormat = Annotated[str, typer.Option("--format", "-f", help="Output format: table or json")]
