"""Observed state of a client in Keycloak."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .core import Role


@dataclass
class ObservedState:
    """Snapshot of what currently exists for one client.

    Built fresh on every pass; never cached across passes.
    """

    realm: str
    client: dict[str, Any] | None = None  # Keycloak ClientRepresentation, None if absent
    secret: str | None = None  # stored client secret, None if absent
    roles: list[Role] = field(default_factory=list)

    @property
    def client_exists(self) -> bool:
        return self.client is not None

    @property
    def secret_exists(self) -> bool:
        return self.secret is not None

    @property
    def client_uuid(self) -> str | None:
        """Keycloak internal id of the client, if it exists."""
        if self.client is None:
            return None
        return self.client.get("id")
