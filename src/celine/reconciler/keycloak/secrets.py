"""Client secrets file.

The secrets file is the stored copy of each client's secret, read by the
services that authenticate as that client:

    # WARNING: This file contains sensitive credentials. DO NOT COMMIT.
    generated_at: '2026-01-01T00:00:00+00:00'
    realm: celine
    clients:
      svc-forecast:
        client_id: svc-forecast
        secret: s3cr3t
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_HEADER = "# WARNING: This file contains sensitive credentials. DO NOT COMMIT.\n"


class SecretStore:
    """Reads and writes client secrets in a YAML file."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = yaml.safe_load(self._path.read_text()) or {}
        except yaml.YAMLError as e:
            logger.warning("Ignoring unreadable secrets file %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, client_id: str) -> str | None:
        """Return the stored secret of a client, None if there is none."""
        clients = self._read().get("clients", {})
        if not isinstance(clients, dict):
            return None

        client_data = clients.get(client_id, {})
        if isinstance(client_data, dict):
            secret = client_data.get("secret")
            if secret:
                logger.debug("Loaded secret for %s from %s", client_id, self._path)
                return str(secret)
        return None

    def save(self, realm: str, client_id: str, secret: str) -> None:
        """Write or refresh the secret of a client, preserving other entries."""
        data = self._read()

        # Ensure structure
        if not isinstance(data.get("clients"), dict):
            data["clients"] = {}

        data["generated_at"] = datetime.now(timezone.utc).isoformat()
        data["realm"] = realm
        data["clients"][client_id] = {
            "client_id": client_id,
            "secret": secret,
        }

        self._write(data)
        logger.info("Stored secret for %s in %s", client_id, self._path)

    def remove(self, client_id: str) -> bool:
        """Drop the secret of a client. Returns True if an entry was removed."""
        data = self._read()
        clients = data.get("clients")
        if not isinstance(clients, dict) or client_id not in clients:
            return False

        del clients[client_id]
        self._write(data)
        logger.info("Removed secret for %s from %s", client_id, self._path)
        return True

    def _write(self, data: dict[str, Any]) -> None:
        content = _HEADER + yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
        self._path.write_text(content)
