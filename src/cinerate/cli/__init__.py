"""CLI commands for the review service.

Provides command-line interface using Typer:
- cinerate serve: Run the API server

Usage:
    cinerate --help
    cinerate serve --port 3002
"""

import typer

from cinerate.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="cinerate",
    help="CineRate review service",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")


@app.callback()
def callback() -> None:
    """CineRate review service."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
