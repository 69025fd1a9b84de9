"""Pytest configuration and fixtures."""

import json
from urllib.parse import unquote

import httpx
import pytest

from celine.reconciler.keycloak.settings import KeycloakSettings
from celine.reconciler.models import ClientDefinition, ClientSpec, ObservedState, Role

ADMIN = "/admin/realms/celine"


class FakeKeycloak:
    """Minimal in-memory Admin API for one realm, used as an httpx.MockTransport handler."""

    def __init__(self):
        self.clients: dict[str, dict] = {}
        self.roles: dict[str, list[dict]] = {}
        self.requests: list[httpx.Request] = []
        self._next_id = 0

    def _id(self) -> str:
        self._next_id += 1
        return f"id-{self._next_id}"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = unquote(request.url.path)
        method = request.method

        if path == "/realms/celine":
            return httpx.Response(200, json={"realm": "celine"})

        if request.headers.get("Authorization") != "Bearer token-123":
            return httpx.Response(401)

        if not path.startswith(ADMIN):
            return httpx.Response(404)
        parts = path[len(ADMIN):].strip("/").split("/")

        if parts == ["clients"] and method == "GET":
            wanted = request.url.params.get("clientId")
            return httpx.Response(200, json=[c for c in self.clients.values() if c["clientId"] == wanted])

        if parts == ["clients"] and method == "POST":
            body = json.loads(request.content)
            if any(c["clientId"] == body["clientId"] for c in self.clients.values()):
                return httpx.Response(409, json={"errorMessage": "exists"})
            uuid = self._id()
            self.clients[uuid] = {**body, "id": uuid, "secret": body.get("secret", "generated")}
            self.roles[uuid] = []
            return httpx.Response(201)

        uuid = parts[1]
        if uuid not in self.clients:
            return httpx.Response(404)

        if len(parts) == 2:
            if method == "GET":
                return httpx.Response(200, json=self.clients[uuid])
            if method == "PUT":
                self.clients[uuid] = json.loads(request.content)
                return httpx.Response(204)
            if method == "DELETE":
                del self.clients[uuid]
                del self.roles[uuid]
                return httpx.Response(204)

        if parts[2] == "client-secret":
            return httpx.Response(200, json={"type": "secret", "value": self.clients[uuid]["secret"]})

        if parts[2] == "roles":
            roles = self.roles[uuid]
            if len(parts) == 3 and method == "GET":
                return httpx.Response(200, json=roles)
            if len(parts) == 3 and method == "POST":
                body = json.loads(request.content)
                if any(r["name"] == body["name"] for r in roles):
                    return httpx.Response(409)
                roles.append({**body, "id": self._id()})
                return httpx.Response(201)
            name = parts[3]
            existing = next((r for r in roles if r["name"] == name), None)
            if existing is None:
                return httpx.Response(404)
            if method == "PUT":
                existing.update(json.loads(request.content))
                return httpx.Response(204)
            if method == "DELETE":
                roles.remove(existing)
                return httpx.Response(204)

        return httpx.Response(405)


@pytest.fixture
def fake_keycloak() -> FakeKeycloak:
    return FakeKeycloak()


def _make_definition(*roles: Role, deletion_requested: bool = False) -> ClientDefinition:
    return ClientDefinition(
        realm="celine",
        client=ClientSpec(client_id="svc-forecast", name="Forecast Service"),
        roles=list(roles),
        deletion_requested=deletion_requested,
    )


def _make_observed(*roles: Role, client: bool = True, secret: bool = True) -> ObservedState:
    return ObservedState(
        realm="celine",
        client={"id": "client-uuid", "clientId": "svc-forecast"} if client else None,
        secret="s3cr3t" if secret else None,
        roles=list(roles),
    )


@pytest.fixture
def make_definition():
    """Factory for desired client definitions."""
    return _make_definition


@pytest.fixture
def make_observed():
    """Factory for observed client states."""
    return _make_observed


@pytest.fixture
def keycloak_settings(tmp_path) -> KeycloakSettings:
    """Settings pointing at a fake Keycloak."""
    return KeycloakSettings(
        base_url="http://keycloak.test",
        realm="celine",
        timeout=5.0,
        access_token="token-123",
        secrets_file=tmp_path / ".client.secrets.yaml",
    )


@pytest.fixture
def sample_definition_yaml() -> str:
    """Sample client definition."""
    return """
realm: celine
client:
  client_id: svc-forecast
  name: Forecast Service
  description: Weather and energy forecasting
  secret: ${SVC_FORECAST_SECRET:-}
roles:
  - name: forecast.reader
    description: Read forecasts
  - id: role-2
    name: forecast.writer
"""
