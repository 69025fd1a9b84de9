"""Actions emitted by the reconciler.

An action is an immutable record of one intended operation against Keycloak.
All kinds share a single record type tagged by ``ActionKind``; the executor
dispatches on the tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .core import ClientSpec, Role


class ActionKind(str, Enum):
    """Kind of operation an action performs."""

    PING = "ping"
    CREATE_CLIENT = "create_client"
    UPDATE_CLIENT = "update_client"
    DELETE_CLIENT = "delete_client"
    CREATE_SECRET = "create_secret"
    UPDATE_SECRET = "update_secret"
    CREATE_ROLE = "create_role"
    UPDATE_ROLE = "update_role"
    DELETE_ROLE = "delete_role"


ROLE_KINDS = frozenset({ActionKind.CREATE_ROLE, ActionKind.UPDATE_ROLE, ActionKind.DELETE_ROLE})

_SYMBOLS = {
    ActionKind.PING: "?",
    ActionKind.CREATE_CLIENT: "+",
    ActionKind.UPDATE_CLIENT: "~",
    ActionKind.DELETE_CLIENT: "-",
    ActionKind.CREATE_SECRET: "+",
    ActionKind.UPDATE_SECRET: "~",
    ActionKind.CREATE_ROLE: "+",
    ActionKind.UPDATE_ROLE: "~",
    ActionKind.DELETE_ROLE: "-",
}


class Action(BaseModel):
    """A single intended operation.

    Attributes:
        kind:      What to do.
        msg:       Human-readable description.
        realm:     Realm of the client, for context.
        client_id: Client the action belongs to.
        client:    Desired client settings (client and secret actions).
        role:      Role to create, update to, or delete (role actions).
        previous:  Role as it was before an update (UPDATE_ROLE only).
    """

    model_config = ConfigDict(frozen=True)

    kind: ActionKind
    msg: str = Field(default="")
    realm: str = Field(default="")
    client_id: str = Field(default="")
    client: ClientSpec | None = None
    role: Role | None = None
    previous: Role | None = None

    @field_validator("role", "previous", mode="after")
    @classmethod
    def own_role_copy(cls, v: Role | None) -> Role | None:
        # Detach from the collections the role came from
        return v.model_copy(deep=True) if v is not None else None

    @property
    def target(self) -> str:
        """Name of the object the action acts on."""
        if self.role is not None:
            return self.role.name
        return self.client_id

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.kind.value, self.target)

    @property
    def is_mutating(self) -> bool:
        return self.kind is not ActionKind.PING

    def __str__(self) -> str:
        return self.msg or f"{self.kind.value} {self.target}"


@dataclass(frozen=True)
class ReconciliationResult:
    """Ordered actions that converge Keycloak to the desired state.

    The ping action, when present, comes first. The remaining actions act on
    disjoint keys and carry no ordering constraint among themselves.
    """

    actions: tuple[Action, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def has_changes(self) -> bool:
        """Check if any action would change Keycloak."""
        return any(a.is_mutating for a in self.actions)

    def of_kind(self, *kinds: ActionKind) -> list[Action]:
        """Actions of the given kinds, in result order."""
        return [a for a in self.actions if a.kind in kinds]

    @property
    def role_actions(self) -> list[Action]:
        return [a for a in self.actions if a.kind in ROLE_KINDS]

    def canonical(self) -> list[Action]:
        """Actions in a canonical (kind, target) order, for comparisons."""
        return sorted(self.actions, key=lambda a: a.sort_key)

    def summary(self) -> str:
        """Get a human-readable summary of the result."""
        lines = []
        for action in self.actions:
            lines.append(f"  {_SYMBOLS[action.kind]} {action}")

        if not self.has_changes:
            lines.append("No changes needed - Keycloak is in sync")

        return "\n".join(lines)
