"""CELINE client reconciler CLI - Main entrypoint.

Usage:
    celine-reconciler client plan clients/svc-forecast.yaml
    celine-reconciler client apply clients/svc-forecast.yaml --dry-run
"""

from __future__ import annotations

import typer

from celine.reconciler.cli.commands import client_app

app = typer.Typer(
    name="celine-reconciler",
    help="CELINE Keycloak client reconciliation tools",
    add_completion=True,
)

app.add_typer(client_app, name="client")


def create_app() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    create_app()
