"""Pydantic models for the desired definition of a Keycloak client.

Example YAML structure:
    realm: celine
    deletion_requested: false

    client:
      client_id: svc-forecast
      name: Forecast Service
      description: Weather and energy forecasting
      secret: ${SVC_FORECAST_SECRET:-}  # optional, supports env vars

    roles:
      - name: forecast.reader
      - id: 6f1c2a8e-0d4b-4a43-9d1e-8c1f0f9a7b21   # known Keycloak id, enables renames
        name: forecast.writer
        description: Write forecasts
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Pattern for ${VAR} and ${VAR:-default} interpolation
_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(:-([^}]*))?\}")


def _resolve_env_str(s: str) -> str:
    """Resolve environment variable placeholders in a string."""
    def repl(m: re.Match[str]) -> str:
        val = os.getenv(m.group(1))
        if val is None or val == "":
            return m.group(3) if m.group(3) is not None else ""
        return val

    # Resolve repeatedly until stable (handles nested defaults)
    prev = None
    cur = s
    for _ in range(5):
        if cur == prev:
            break
        prev = cur
        cur = _ENV_PATTERN.sub(repl, cur)
    return cur


def _resolve_env(value: Any) -> Any:
    """Recursively resolve environment variables in a data structure."""
    if isinstance(value, str):
        return _resolve_env_str(value)
    if isinstance(value, list):
        return [_resolve_env(v) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    return value


class Role(BaseModel):
    """A client role, either desired (from YAML) or observed (from Keycloak).

    Observed roles always carry the id assigned by Keycloak. Desired roles
    may leave it empty, in which case they are matched by name.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default="", description="Keycloak role id (empty if unknown)")
    name: str = Field(..., min_length=1, description="Role name, unique per client")
    description: str = Field(default="", description="Human-readable description")
    composite: bool = Field(default=False, description="Whether the role is composite")
    attributes: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("id", "description", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("attributes", mode="before")
    @classmethod
    def none_as_no_attributes(cls, v: Any) -> Any:
        return v or {}

    @classmethod
    def from_representation(cls, data: dict[str, Any]) -> "Role":
        """Build a role from a Keycloak RoleRepresentation payload."""
        return cls.model_validate(data)

    def to_representation(self) -> dict[str, Any]:
        """Payload for the Keycloak Admin API (id omitted when unknown)."""
        payload: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "composite": self.composite,
            "clientRole": True,
            "attributes": {k: list(v) for k, v in self.attributes.items()},
        }
        if self.id:
            payload["id"] = self.id
        return payload


class ClientSpec(BaseModel):
    """Desired settings of the Keycloak client itself."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1, description="Client ID (unique identifier)")
    name: str = Field(default="", validate_default=True, description="Display name")
    description: str = Field(default="", description="Description")
    secret: str | None = Field(
        default=None,
        description="Client secret (if not provided, Keycloak generates one)",
    )
    service_account_enabled: bool = Field(
        default=True,
        description="Enable service account (client credentials flow)",
    )

    @field_validator("secret", mode="before")
    @classmethod
    def empty_secret_as_none(cls, v: Any) -> Any:
        return v or None

    @field_validator("name", mode="before")
    @classmethod
    def default_name_from_client_id(cls, v: str, info) -> str:
        """Use client_id as default name if not provided."""
        if not v and info.data.get("client_id"):
            return info.data["client_id"]
        return v or ""


class ClientDefinition(BaseModel):
    """Desired state of one client: the client, its roles, and its lifecycle."""

    realm: str = Field(default="celine", description="Realm the client belongs to")
    client: ClientSpec
    roles: list[Role] = Field(default_factory=list)
    deletion_requested: bool = Field(
        default=False,
        description="Remove the client (and, by cascade, its roles)",
    )

    @model_validator(mode="after")
    def check_unique_roles(self) -> "ClientDefinition":
        names = [r.name for r in self.roles]
        dup_names = sorted({n for n in names if names.count(n) > 1})
        if dup_names:
            raise ValueError(f"Duplicate role names: {', '.join(dup_names)}")

        ids = [r.id for r in self.roles if r.id]
        dup_ids = sorted({i for i in ids if ids.count(i) > 1})
        if dup_ids:
            raise ValueError(f"Duplicate role ids: {', '.join(dup_ids)}")
        return self

    @property
    def client_id(self) -> str:
        return self.client.client_id

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ClientDefinition":
        """Load a client definition from a YAML file with env var interpolation."""
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Definition file not found: {path}")

        raw = yaml.safe_load(p.read_text())
        if not isinstance(raw, dict):
            raise ValueError(f"Definition file must be a YAML mapping: {path}")

        return cls.model_validate(_resolve_env(raw))
