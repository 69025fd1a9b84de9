"""Client reconciliation CLI commands.

Commands:
    celine-reconciler client plan <client.yaml>
    celine-reconciler client apply <client.yaml>
    celine-reconciler client status <client_id>
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from celine.reconciler.audit import ActionAuditLogger, configure_audit_logging
from celine.reconciler.config import settings as app_settings
from celine.reconciler.engine import reconcile
from celine.reconciler.keycloak import (
    ActionExecutor,
    ApplyResult,
    KeycloakAdminClient,
    KeycloakAuthError,
    KeycloakError,
    KeycloakSettings,
    KeycloakUnavailableError,
    SecretStore,
)
from celine.reconciler.logs import configure_logging
from celine.reconciler.models import ClientDefinition, ReconciliationResult

logger = logging.getLogger(__name__)

client_app = typer.Typer(
    name="client",
    help="Keycloak client reconciliation commands",
    add_completion=False,
)

BaseUrlOption = Annotated[
    Optional[str],
    typer.Option("--base-url", "-u", help="Keycloak base URL"),
]
RealmOption = Annotated[
    Optional[str],
    typer.Option("--realm", "-r", help="Target realm"),
]
TokenOption = Annotated[
    Optional[str],
    typer.Option("--token", help="Admin API bearer token"),
]
SecretsFileOption = Annotated[
    Optional[Path],
    typer.Option("--secrets-file", "-s", help="Client secrets file"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable verbose output"),
]


def _build_settings(
    base_url: str | None,
    realm: str | None,
    token: str | None,
    secrets_file: Path | None,
) -> KeycloakSettings:
    """Build settings from environment and CLI overrides."""
    return KeycloakSettings().with_overrides(
        base_url=base_url,
        realm=realm,
        access_token=token,
        secrets_file=secrets_file,
    )


def _load_definition(path: Path) -> ClientDefinition:
    try:
        return ClientDefinition.from_yaml(path)
    except Exception as e:
        typer.secho(f"Error loading definition: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def _run(coro, verbose: bool):
    """Run a coroutine, turning failures into CLI errors."""
    try:
        return asyncio.run(coro)
    except KeycloakAuthError as e:
        typer.secho(f"Authentication failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except KeycloakUnavailableError as e:
        typer.secho(f"Keycloak not available: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except KeycloakError as e:
        typer.secho(f"Keycloak error: {e}", fg=typer.colors.RED, err=True)
        if verbose:
            logger.exception("Keycloak error")
        raise typer.Exit(1)
    except Exception as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        if verbose:
            logger.exception("Unexpected error")
        raise typer.Exit(1)


async def _async_plan(
    settings: KeycloakSettings,
    definition: ClientDefinition,
) -> ReconciliationResult:
    """Fetch the observed state and compute the actions."""
    async with KeycloakAdminClient(settings) as client:
        await client.ping()
        typer.echo("Fetching current state...")
        observed = await client.fetch_observed_state(
            definition.client_id, SecretStore(settings.secrets_file)
        )
        typer.echo(
            f"Found client={'yes' if observed.client_exists else 'no'} "
            f"secret={'yes' if observed.secret_exists else 'no'} roles={len(observed.roles)}"
        )
        return reconcile(observed, definition)


@client_app.command("plan")
def plan(
    definition_path: Path = typer.Argument(
        help="Path to the client definition YAML file",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    base_url: BaseUrlOption = None,
    realm: RealmOption = None,
    token: TokenOption = None,
    secrets_file: SecretsFileOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show the actions that would converge Keycloak to the definition.

    Example:
        celine-reconciler client plan clients/svc-forecast.yaml
    """
    configure_logging(verbose)

    definition = _load_definition(definition_path)
    settings = _build_settings(base_url, realm or definition.realm, token, secrets_file)

    typer.echo(f"Planning client {definition.client_id}: {settings.base_url} realm={settings.realm}")
    result = _run(_async_plan(settings, definition), verbose)

    typer.echo("\n" + result.summary())


async def _async_apply(
    settings: KeycloakSettings,
    definition: ClientDefinition,
    dry_run: bool,
) -> ApplyResult:
    """Plan and execute against Keycloak."""
    secrets = SecretStore(settings.secrets_file)
    async with KeycloakAdminClient(settings) as client:
        await client.ping()
        typer.echo("Fetching current state...")
        observed = await client.fetch_observed_state(definition.client_id, secrets)
        result = reconcile(observed, definition)

        typer.echo("\n" + result.summary())

        if dry_run:
            typer.secho("\n[DRY RUN] No changes applied", fg=typer.colors.YELLOW)
        else:
            typer.echo("\nApplying changes...")

        executor = ActionExecutor(
            client,
            secrets,
            audit=ActionAuditLogger(enabled=app_settings.audit_enabled),
            dry_run=dry_run,
        )
        return await executor.execute(result)


@client_app.command("apply")
def apply(
    definition_path: Path = typer.Argument(
        help="Path to the client definition YAML file",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    base_url: BaseUrlOption = None,
    realm: RealmOption = None,
    token: TokenOption = None,
    secrets_file: SecretsFileOption = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run", "-n", help="Show what would be done without making changes"
        ),
    ] = False,
    verbose: VerboseOption = False,
) -> None:
    """Reconcile a Keycloak client and its roles with the definition.

    Running it repeatedly converges to the same state.

    Example:
        celine-reconciler client apply clients/svc-forecast.yaml --dry-run
    """
    configure_logging(verbose)
    configure_audit_logging(
        log_level=app_settings.log_level,
        json_format=app_settings.audit_json,
        service_name=app_settings.service_name,
    )

    definition = _load_definition(definition_path)
    settings = _build_settings(base_url, realm or definition.realm, token, secrets_file)

    typer.echo(f"Reconciling client {definition.client_id}: {settings.base_url} realm={settings.realm}")
    outcome = _run(_async_apply(settings, definition, dry_run), verbose)

    typer.echo("\n" + outcome.summary())

    if not outcome.success:
        raise typer.Exit(1)


async def _async_status(settings: KeycloakSettings, client_id: str) -> None:
    """Show the observed state of one client."""
    async with KeycloakAdminClient(settings) as client:
        await client.ping()
        observed = await client.fetch_observed_state(client_id, SecretStore(settings.secrets_file))

    if observed.client is None:
        typer.echo(f"Client {client_id} does not exist")
    else:
        typer.echo(f"Client {client_id} (uuid={observed.client_uuid})")
    typer.echo(f"Secret stored: {'yes' if observed.secret_exists else 'no'}")

    typer.echo(f"\nRoles ({len(observed.roles)}):")
    for role in sorted(observed.roles, key=lambda r: r.name):
        typer.echo(f"  - {role.name} [{role.id}]" + (f": {role.description}" if role.description else ""))


@client_app.command("status")
def status(
    client_id: str = typer.Argument(help="Client ID to inspect"),
    base_url: BaseUrlOption = None,
    realm: RealmOption = None,
    token: TokenOption = None,
    secrets_file: SecretsFileOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show the current Keycloak state of a client and its roles.

    Example:
        celine-reconciler client status svc-forecast
    """
    configure_logging(verbose)

    settings = _build_settings(base_url, realm, token, secrets_file)
    typer.echo(f"Keycloak: {settings.base_url} realm={settings.realm}")

    _run(_async_status(settings, client_id), verbose)
