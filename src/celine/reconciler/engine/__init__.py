"""Reconciliation engine package."""

from .matcher import has_matching_role, partition, role_matches
from .reconciler import ClientReconciler, reconcile

__all__ = [
    "ClientReconciler",
    "has_matching_role",
    "partition",
    "reconcile",
    "role_matches",
]
