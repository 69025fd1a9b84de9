"""Keycloak connection settings.

Settings can be provided via:
1. Environment variables (CELINE_KEYCLOAK_*)
2. CLI arguments (--base-url, --realm, --token, ...)
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default secrets file path
DEFAULT_SECRETS_FILE = Path(".client.secrets.yaml")


class KeycloakSettings(BaseSettings):
    """Keycloak connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="CELINE_KEYCLOAK_",
        extra="ignore",
    )

    # Connection
    base_url: str = Field(
        default="http://localhost:8080",
        description="Keycloak base URL",
    )
    realm: str = Field(
        default="celine",
        description="Target realm name",
    )
    timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds",
    )

    # Pre-issued admin API bearer token; obtaining it is up to the caller
    access_token: str | None = Field(
        default=None,
        description="Bearer token for the Admin REST API",
    )

    secrets_file: Path = Field(
        default=DEFAULT_SECRETS_FILE,
        description="YAML file holding client secrets",
    )

    @property
    def realm_url(self) -> str:
        """Get the realm-specific URL."""
        return f"{self.base_url.rstrip('/')}/realms/{self.realm}"

    @property
    def admin_url(self) -> str:
        """Get the admin API URL for the realm."""
        return f"{self.base_url.rstrip('/')}/admin/realms/{self.realm}"

    def with_overrides(
        self,
        *,
        base_url: str | None = None,
        realm: str | None = None,
        access_token: str | None = None,
        secrets_file: Path | None = None,
    ) -> "KeycloakSettings":
        """Create a new settings instance with CLI overrides applied."""
        return KeycloakSettings(
            base_url=base_url or self.base_url,
            realm=realm or self.realm,
            timeout=self.timeout,
            access_token=access_token or self.access_token,
            secrets_file=secrets_file or self.secrets_file,
        )
