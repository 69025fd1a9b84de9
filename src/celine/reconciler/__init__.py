"""Declarative reconciliation of a Keycloak client and its roles."""

from celine.reconciler.engine import ClientReconciler, partition, reconcile, role_matches
from celine.reconciler.models import (
    Action,
    ActionKind,
    ClientDefinition,
    ClientSpec,
    ObservedState,
    ReconciliationResult,
    Role,
)

__all__ = [
    "Action",
    "ActionKind",
    "ClientDefinition",
    "ClientReconciler",
    "ClientSpec",
    "ObservedState",
    "ReconciliationResult",
    "Role",
    "partition",
    "reconcile",
    "role_matches",
]
