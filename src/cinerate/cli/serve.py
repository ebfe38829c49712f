"""CLI command for running the API server.

Usage:
    cinerate serve
    cinerate serve --port 3002 --host 0.0.0.0
    cinerate serve --reload --log-level debug
"""

from __future__ import annotations

import typer

from cinerate.config import settings

app = typer.Typer(help="Run the review service API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(
        settings.host,
        "--host",
        "-h",
        help="Host to bind to",
    ),
    port: int = typer.Option(
        settings.port,
        "--port",
        "-p",
        help="Port to listen on",
    ),
    reload: bool = typer.Option(
        False,
        "--reload",
        "-r",
        help="Enable auto-reload for development",
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
    access_log: bool = typer.Option(
        True,
        "--access-log/--no-access-log",
        help="Enable/disable access logging",
    ),
) -> None:
    """Run the review service API server.

    Starts uvicorn with the FastAPI application factory. On SIGINT/SIGTERM
    uvicorn runs the application shutdown, which closes the cache connection.
    """
    import uvicorn

    typer.echo("Starting review service...")
    typer.echo(f"  Host: {host}")
    typer.echo(f"  Port: {port}")
    typer.echo(f"  Redis: {settings.redis_url}")
    typer.echo(f"  Cache TTL: {settings.cache_ttl}s")
    typer.echo(f"  Log level: {log_level}")
    if reload:
        typer.echo("  Reload: enabled")
    typer.echo()

    uvicorn.run(
        app="cinerate.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
        access_log=access_log,
        timeout_graceful_shutdown=int(settings.shutdown_timeout),
    )
