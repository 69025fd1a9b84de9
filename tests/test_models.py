from pathlib import Path

import pytest
from pydantic import ValidationError

from celine.reconciler.models import (
    Action,
    ActionKind,
    ClientDefinition,
    ClientSpec,
    ObservedState,
    ReconciliationResult,
    Role,
)


def test_definition_from_yaml_resolves_env(tmp_path: Path, monkeypatch, sample_definition_yaml):
    monkeypatch.setenv("SVC_FORECAST_SECRET", "from-env")
    path = tmp_path / "client.yaml"
    path.write_text(sample_definition_yaml)

    definition = ClientDefinition.from_yaml(path)

    assert definition.realm == "celine"
    assert definition.client_id == "svc-forecast"
    assert definition.client.secret == "from-env"
    assert definition.deletion_requested is False
    assert [(r.id, r.name) for r in definition.roles] == [("", "forecast.reader"), ("role-2", "forecast.writer")]
    assert definition.roles[0].description == "Read forecasts"


def test_definition_env_default_empty_means_no_secret(tmp_path: Path, monkeypatch, sample_definition_yaml):
    monkeypatch.delenv("SVC_FORECAST_SECRET", raising=False)
    path = tmp_path / "client.yaml"
    path.write_text(sample_definition_yaml)

    assert ClientDefinition.from_yaml(path).client.secret is None


def test_definition_from_yaml_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        ClientDefinition.from_yaml(tmp_path / "missing.yaml")

    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        ClientDefinition.from_yaml(path)


def test_definition_rejects_duplicate_role_names():
    with pytest.raises(ValidationError) as e:
        ClientDefinition(
            client=ClientSpec(client_id="c"),
            roles=[Role(name="a"), Role(id="1", name="a")],
        )
    assert "Duplicate role names: a" in str(e.value)


def test_definition_rejects_duplicate_role_ids():
    with pytest.raises(ValidationError) as e:
        ClientDefinition(
            client=ClientSpec(client_id="c"),
            roles=[Role(id="1", name="a"), Role(id="1", name="b")],
        )
    assert "Duplicate role ids: 1" in str(e.value)


def test_client_name_defaults_to_client_id():
    assert ClientSpec(client_id="svc").name == "svc"
    assert ClientSpec(client_id="svc", name="Service").name == "Service"


def test_role_requires_name():
    with pytest.raises(ValidationError):
        Role(name="")


def test_role_from_keycloak_representation():
    role = Role.from_representation(
        {
            "id": "abc",
            "name": "reader",
            "description": None,
            "composite": False,
            "clientRole": True,
            "containerId": "client-uuid",
            "attributes": None,
        }
    )
    assert role == Role(id="abc", name="reader")


def test_role_to_representation_omits_unknown_id():
    assert "id" not in Role(name="reader").to_representation()
    payload = Role(id="abc", name="reader", attributes={"k": ["v"]}).to_representation()
    assert payload["id"] == "abc"
    assert payload["clientRole"] is True
    assert payload["attributes"] == {"k": ["v"]}


def test_action_owns_role_copies():
    role = Role(name="a", attributes={"k": ["v"]})
    action = Action(kind=ActionKind.CREATE_ROLE, msg="create", role=role)

    role.attributes["k"].append("w")

    assert action.role.attributes == {"k": ["v"]}
    with pytest.raises(ValidationError):
        action.msg = "changed"


def test_action_target_and_sort_key():
    client_action = Action(kind=ActionKind.UPDATE_CLIENT, client_id="svc")
    role_action = Action(kind=ActionKind.DELETE_ROLE, client_id="svc", role=Role(id="1", name="r"))

    assert client_action.target == "svc"
    assert role_action.target == "r"
    assert role_action.sort_key == ("delete_role", "r")
    assert str(client_action) == "update_client svc"


def test_result_summary_and_changes():
    ping = Action(kind=ActionKind.PING, msg="check if keycloak is available")
    create = Action(kind=ActionKind.CREATE_ROLE, msg="create client role celine/svc/r", role=Role(name="r"))

    only_ping = ReconciliationResult(actions=(ping,))
    assert only_ping.has_changes is False
    assert "No changes needed" in only_ping.summary()

    result = ReconciliationResult(actions=(ping, create))
    assert result.has_changes is True
    assert len(result) == 2
    assert "  + create client role celine/svc/r" in result.summary()
    assert result.canonical()[0].kind is ActionKind.CREATE_ROLE


def test_observed_state_properties():
    state = ObservedState(realm="celine", client={"id": "uuid-1"}, secret=None)
    assert state.client_exists is True
    assert state.secret_exists is False
    assert state.client_uuid == "uuid-1"
    assert ObservedState(realm="celine").client_uuid is None
