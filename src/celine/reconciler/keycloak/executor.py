"""Execution of reconciliation actions against Keycloak.

The availability check runs first and aborts the run when it fails. Every
other action is attempted independently: a failure is recorded and the
remaining actions still run, so a later pass can retry just what failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from celine.reconciler.audit import ActionAuditLogger
from celine.reconciler.keycloak.client import (
    KeycloakAdminClient,
    KeycloakConflictError,
    KeycloakError,
    KeycloakNotFoundError,
)
from celine.reconciler.keycloak.secrets import SecretStore
from celine.reconciler.models import Action, ActionKind, ReconciliationResult

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Result of executing a reconciliation result."""

    applied: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def success(self) -> bool:
        """Check if execution completed without errors."""
        return not self.aborted and len(self.errors) == 0

    def summary(self) -> str:
        """Get a human-readable summary of the result."""
        lines = []

        if self.aborted:
            lines.append("Aborted before applying changes")

        if self.applied:
            lines.append(f"Applied {len(self.applied)} actions:")
            for msg in self.applied:
                lines.append(f"  ✓ {msg}")

        if self.errors:
            lines.append(f"Errors: {len(self.errors)}")
            for err in self.errors:
                lines.append(f"  ! {err}")

        if not lines:
            lines.append("No changes applied")

        return "\n".join(lines)


class ActionExecutor:
    """Executes actions through the Keycloak admin client."""

    def __init__(
        self,
        client: KeycloakAdminClient,
        secrets: SecretStore,
        audit: ActionAuditLogger | None = None,
        dry_run: bool = False,
    ):
        self._client = client
        self._secrets = secrets
        self._audit = audit or ActionAuditLogger(enabled=False)
        self._dry_run = dry_run
        # client_id -> UUID
        self._client_uuids: dict[str, str] = {}
        self._handlers: dict[ActionKind, Callable[[Action], Awaitable[None]]] = {
            ActionKind.CREATE_CLIENT: self._create_client,
            ActionKind.UPDATE_CLIENT: self._update_client,
            ActionKind.DELETE_CLIENT: self._delete_client,
            ActionKind.CREATE_SECRET: self._store_secret,
            ActionKind.UPDATE_SECRET: self._store_secret,
            ActionKind.CREATE_ROLE: self._create_role,
            ActionKind.UPDATE_ROLE: self._update_role,
            ActionKind.DELETE_ROLE: self._delete_role,
        }

    async def execute(self, result: ReconciliationResult) -> ApplyResult:
        """Execute all actions of a reconciliation result, in order."""
        outcome = ApplyResult()

        for action in result:
            if action.kind is ActionKind.PING:
                try:
                    await self._client.ping()
                except KeycloakError as e:
                    outcome.aborted = True
                    outcome.errors.append(f"Keycloak not available: {e}")
                    self._audit.log_failed(action, str(e))
                    logger.error("Aborting, Keycloak not available: %s", e)
                    return outcome
                continue

            if self._dry_run:
                logger.info("[DRY RUN] Would %s", action.msg)
                outcome.applied.append(action.msg)
                self._audit.log_applied(action, dry_run=True)
                continue

            try:
                await self._handlers[action.kind](action)
            except Exception as e:
                outcome.errors.append(f"Failed to {action.msg}: {e}")
                self._audit.log_failed(action, str(e))
                continue

            outcome.applied.append(action.msg)
            self._audit.log_applied(action)

        return outcome

    async def _client_uuid(self, client_id: str) -> str:
        if client_id not in self._client_uuids:
            existing = await self._client.get_client_by_client_id(client_id)
            if existing is None:
                raise KeycloakNotFoundError(f"Client not found: {client_id}", status_code=404)
            self._client_uuids[client_id] = existing["id"]
        return self._client_uuids[client_id]

    # -------------------------------------------------------------------------
    # Client
    # -------------------------------------------------------------------------

    async def _create_client(self, action: Action) -> None:
        try:
            client_uuid = await self._client.create_client(action.client)
        except KeycloakConflictError:
            logger.warning("Client already exists (race condition?): %s", action.client_id)
            client_uuid = await self._client_uuid(action.client_id)
        self._client_uuids[action.client_id] = client_uuid

    async def _update_client(self, action: Action) -> None:
        client_uuid = await self._client_uuid(action.client_id)
        await self._client.update_client(client_uuid, action.client)

    async def _delete_client(self, action: Action) -> None:
        try:
            client_uuid = await self._client_uuid(action.client_id)
            await self._client.delete_client(client_uuid)
        except KeycloakNotFoundError:
            logger.info("Client already gone: %s", action.client_id)
        self._client_uuids.pop(action.client_id, None)
        self._secrets.remove(action.client_id)

    async def _store_secret(self, action: Action) -> None:
        client_uuid = await self._client_uuid(action.client_id)
        secret = await self._client.get_client_secret(client_uuid)
        if not secret:
            raise KeycloakError(f"Keycloak returned no secret for {action.client_id}")
        self._secrets.save(action.realm, action.client_id, secret)

    # -------------------------------------------------------------------------
    # Roles
    # -------------------------------------------------------------------------

    async def _create_role(self, action: Action) -> None:
        client_uuid = await self._client_uuid(action.client_id)
        try:
            await self._client.create_client_role(client_uuid, action.role)
        except KeycloakConflictError:
            logger.warning("Role already exists (race condition?): %s", action.role.name)

    async def _update_role(self, action: Action) -> None:
        client_uuid = await self._client_uuid(action.client_id)
        await self._client.update_client_role(client_uuid, action.role, action.previous)

    async def _delete_role(self, action: Action) -> None:
        client_uuid = await self._client_uuid(action.client_id)
        try:
            await self._client.delete_client_role(client_uuid, action.role)
        except KeycloakNotFoundError:
            pass  # Already gone
