"""Keycloak transport: admin API client, secrets file, and action execution."""

from celine.reconciler.keycloak.client import (
    KeycloakAdminClient,
    KeycloakAuthError,
    KeycloakConflictError,
    KeycloakError,
    KeycloakNotFoundError,
    KeycloakUnavailableError,
)
from celine.reconciler.keycloak.executor import ActionExecutor, ApplyResult
from celine.reconciler.keycloak.secrets import SecretStore
from celine.reconciler.keycloak.settings import KeycloakSettings

__all__ = [
    "ActionExecutor",
    "ApplyResult",
    "KeycloakAdminClient",
    "KeycloakAuthError",
    "KeycloakConflictError",
    "KeycloakError",
    "KeycloakNotFoundError",
    "KeycloakSettings",
    "KeycloakUnavailableError",
    "SecretStore",
]
