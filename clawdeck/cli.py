import asyncio
import json
import logging
import os
from typing import List, Optional

import typer
import uvicorn

from clawdeck.client.base import DEFAULT_TIMEOUT_SECONDS
from clawdeck.client.errors import ClientError
from clawdeck.controller import gateway_call, run_cli, run_cli_json, transport_status

app = typer.Typer()

PANEL_HOST = "127.0.0.1"
PANEL_PORT = 3000


def _configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("CLAWDECK_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _fail(exc: Exception) -> None:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option(PANEL_HOST, help="Interface to bind."),
    port: int = typer.Option(PANEL_PORT, help="Port to listen on."),
):
    """Run the panel API server."""
    uvicorn.run("clawdeck.server.app:app", host=host, port=port)


@app.command()
def transport():
    """Show the resolved controller transport (probing the Gateway in auto mode)."""
    _configure_logging()
    _echo_json(asyncio.run(transport_status(probe=True)))


@app.command()
def call(
    method: str,
    params: Optional[str] = typer.Option(None, help="JSON object passed as RPC params."),
    timeout: float = typer.Option(DEFAULT_TIMEOUT_SECONDS, help="Timeout in seconds."),
):
    """Call a Gateway RPC method and print the JSON result."""
    _configure_logging()
    parsed_params = None
    if params is not None:
        try:
            parsed_params = json.loads(params)
        except ValueError as exc:
            _fail(exc)
        if not isinstance(parsed_params, dict):
            _fail(ValueError("--params must be a JSON object"))
    try:
        result = asyncio.run(gateway_call(method, parsed_params, timeout))
    except ClientError as exc:
        _fail(exc)
    _echo_json(result)


@app.command("exec", context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def exec_command(
    args: List[str] = typer.Argument(..., help="Controller arguments."),
    as_json: bool = typer.Option(False, "--as-json", help="Request and pretty-print JSON output."),
    timeout: float = typer.Option(DEFAULT_TIMEOUT_SECONDS, help="Timeout in seconds."),
):
    """Run a controller command through the unified client."""
    _configure_logging()
    try:
        if as_json:
            _echo_json(asyncio.run(run_cli_json(list(args), timeout)))
        else:
            typer.echo(asyncio.run(run_cli(list(args), timeout)), nl=False)
    except ClientError as exc:
        _fail(exc)


if __name__ == "__main__":
    app()
