"""Keycloak Admin API client.

Wraps the Keycloak Admin REST API for managing:
- Clients
- Client secrets
- Client roles
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from celine.reconciler.keycloak.settings import KeycloakSettings
from celine.reconciler.models import ClientSpec, ObservedState, Role

if TYPE_CHECKING:
    from celine.reconciler.keycloak.secrets import SecretStore

logger = logging.getLogger(__name__)


class KeycloakError(Exception):
    """Base exception for Keycloak API errors."""

    def __init__(
        self, message: str, status_code: int | None = None, response: dict | None = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class KeycloakAuthError(KeycloakError):
    """Token missing, expired, or lacking permissions."""

    pass


class KeycloakNotFoundError(KeycloakError):
    """Resource not found."""

    pass


class KeycloakConflictError(KeycloakError):
    """Resource already exists."""

    pass


class KeycloakUnavailableError(KeycloakError):
    """Keycloak cannot be reached."""

    pass


class KeycloakAdminClient:
    """Async client for Keycloak Admin REST API."""

    def __init__(
        self,
        settings: KeycloakSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "KeycloakAdminClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            timeout=self._settings.timeout, transport=self._transport
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def settings(self) -> KeycloakSettings:
        """Get settings."""
        return self._settings

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._settings.access_token:
            headers["Authorization"] = f"Bearer {self._settings.access_token}"
        return headers

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    async def _get(self, path: str) -> Any:
        """Make GET request to admin API."""
        url = f"{self._settings.admin_url}{path}"
        response = await self._client.get(url, headers=self._headers())
        return self._handle_response(response)

    async def _post(self, path: str, json: list | dict | None = None) -> Any:
        """Make POST request to admin API."""
        url = f"{self._settings.admin_url}{path}"
        response = await self._client.post(url, headers=self._headers(), json=json)
        return self._handle_response(response, expected_status=[200, 201, 204])

    async def _put(self, path: str, json: dict | None = None) -> Any:
        """Make PUT request to admin API."""
        url = f"{self._settings.admin_url}{path}"
        response = await self._client.put(url, headers=self._headers(), json=json)
        return self._handle_response(response, expected_status=[200, 204])

    async def _delete(self, path: str) -> Any:
        """Make DELETE request to admin API."""
        url = f"{self._settings.admin_url}{path}"
        response = await self._client.delete(url, headers=self._headers())
        return self._handle_response(response, expected_status=[200, 204])

    def _handle_response(
        self,
        response: httpx.Response,
        expected_status: list[int] | None = None,
    ) -> Any:
        """Handle API response."""
        expected = expected_status or [200]

        if response.status_code == 404:
            raise KeycloakNotFoundError(
                f"Resource not found: {response.request.url}",
                status_code=404,
            )

        if response.status_code == 409:
            raise KeycloakConflictError(
                f"Resource already exists: {response.text}",
                status_code=409,
            )

        if response.status_code in (401, 403):
            raise KeycloakAuthError(
                "Access token missing, expired or lacking permissions",
                status_code=response.status_code,
            )

        if response.status_code not in expected:
            raise KeycloakError(
                f"Unexpected response {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None

        return response.json()

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    async def ping(self) -> None:
        """Check that Keycloak serves the target realm."""
        try:
            response = await self._client.get(self._settings.realm_url)
        except httpx.HTTPError as e:
            raise KeycloakUnavailableError(
                f"Keycloak unreachable at {self._settings.base_url}: {e}"
            ) from e

        if response.status_code != 200:
            raise KeycloakUnavailableError(
                f"Keycloak realm {self._settings.realm} not available "
                f"(status {response.status_code})",
                status_code=response.status_code,
            )
        logger.debug("Keycloak available: %s", self._settings.realm_url)

    # -------------------------------------------------------------------------
    # Clients
    # -------------------------------------------------------------------------

    async def get_client(self, client_uuid: str) -> dict[str, Any]:
        """Get a client by UUID."""
        return await self._get(f"/clients/{client_uuid}")

    async def get_client_by_client_id(self, client_id: str) -> dict[str, Any] | None:
        """Get a client by clientId."""
        clients = await self._get(f"/clients?clientId={quote(client_id, safe='')}")
        if clients:
            return clients[0]
        return None

    async def create_client(self, spec: ClientSpec) -> str:
        """Create a new client with client credentials grant.

        Returns the client UUID.
        """
        payload = {
            "clientId": spec.client_id,
            "name": spec.name or spec.client_id,
            "description": spec.description,
            "enabled": True,
            "protocol": "openid-connect",
            # Client credentials flow settings
            "publicClient": False,
            "serviceAccountsEnabled": spec.service_account_enabled,
            "standardFlowEnabled": False,
            "implicitFlowEnabled": False,
            "directAccessGrantsEnabled": False,
            # Authentication
            "clientAuthenticatorType": "client-secret",
        }

        if spec.secret:
            payload["secret"] = spec.secret

        logger.debug("Creating client: %s", spec.client_id)
        await self._post("/clients", json=payload)

        # Fetch the created client
        client = await self.get_client_by_client_id(spec.client_id)
        if not client:
            raise KeycloakError(f"Failed to retrieve created client: {spec.client_id}")

        logger.info("Created client: %s (uuid=%s)", spec.client_id, client["id"])
        return client["id"]

    async def update_client(self, client_uuid: str, spec: ClientSpec) -> None:
        """Update an existing client."""
        # Get current client to preserve settings
        current = await self.get_client(client_uuid)

        payload = {
            **current,
            "clientId": spec.client_id,
            "name": spec.name or spec.client_id,
            "description": spec.description,
            "serviceAccountsEnabled": spec.service_account_enabled,
        }
        if spec.secret:
            payload["secret"] = spec.secret

        logger.debug("Updating client: %s", spec.client_id)
        await self._put(f"/clients/{client_uuid}", json=payload)
        logger.info("Updated client: %s", spec.client_id)

    async def delete_client(self, client_uuid: str) -> None:
        """Delete a client (Keycloak deletes its roles along with it)."""
        logger.debug("Deleting client: %s", client_uuid)
        await self._delete(f"/clients/{client_uuid}")
        logger.info("Deleted client: %s", client_uuid)

    async def get_client_secret(self, client_uuid: str) -> str:
        """Get the client secret."""
        result = await self._get(f"/clients/{client_uuid}/client-secret")
        return (result or {}).get("value", "")

    # -------------------------------------------------------------------------
    # Client Roles
    # -------------------------------------------------------------------------

    async def list_client_roles(self, client_uuid: str) -> list[Role]:
        """List the roles of a client."""
        roles = await self._get(f"/clients/{client_uuid}/roles?briefRepresentation=false")
        return [Role.from_representation(r) for r in roles or []]

    async def create_client_role(self, client_uuid: str, role: Role) -> None:
        """Create a client role."""
        logger.debug("Creating client role %s on client %s", role.name, client_uuid)
        payload = role.to_representation()
        # Keycloak assigns the id
        payload.pop("id", None)
        await self._post(f"/clients/{client_uuid}/roles", json=payload)
        logger.info("Created client role: %s", role.name)

    async def update_client_role(self, client_uuid: str, role: Role, previous: Role) -> None:
        """Update a client role, addressed by the name it currently has."""
        logger.debug(
            "Updating client role %s -> %s on client %s", previous.name, role.name, client_uuid
        )
        payload = role.to_representation()
        if previous.id:
            payload["id"] = previous.id
        await self._put(f"/clients/{client_uuid}/roles/{quote(previous.name, safe='')}", json=payload)
        logger.info("Updated client role: %s", role.name)

    async def delete_client_role(self, client_uuid: str, role: Role) -> None:
        """Delete a client role."""
        logger.debug("Deleting client role %s on client %s", role.name, client_uuid)
        await self._delete(f"/clients/{client_uuid}/roles/{quote(role.name, safe='')}")
        logger.info("Deleted client role: %s", role.name)

    # -------------------------------------------------------------------------
    # State Fetching
    # -------------------------------------------------------------------------

    async def fetch_observed_state(self, client_id: str, secrets: SecretStore) -> ObservedState:
        """Fetch the current state of one client and its roles."""
        state = ObservedState(realm=self._settings.realm)

        client = await self.get_client_by_client_id(client_id)
        if client is None:
            logger.info("Client not found in Keycloak: %s", client_id)
        else:
            state.client = client
            state.roles = await self.list_client_roles(client["id"])

        state.secret = secrets.load(client_id)
        return state
