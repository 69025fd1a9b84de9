"""Domain models for client reconciliation."""

from .actions import ROLE_KINDS, Action, ActionKind, ReconciliationResult
from .core import ClientDefinition, ClientSpec, Role
from .state import ObservedState

__all__ = [
    "Action",
    "ActionKind",
    "ClientDefinition",
    "ClientSpec",
    "ObservedState",
    "ROLE_KINDS",
    "ReconciliationResult",
    "Role",
]
