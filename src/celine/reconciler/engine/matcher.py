"""Role matching.

Two roles are the same entity when both carry an id and the ids are equal,
regardless of name; this is what lets a rename be detected. When either id
is empty the names decide.
"""

from __future__ import annotations

from typing import Sequence

from celine.reconciler.models import Role


def role_matches(a: Role, b: Role) -> bool:
    """Check if two roles represent the same logical role."""
    if a.id and b.id:
        return a.id == b.id
    return a.name == b.name


def has_matching_role(roles: Sequence[Role], role: Role) -> bool:
    """Check if any role in ``roles`` matches ``role``."""
    return any(role_matches(candidate, role) for candidate in roles)


def partition(source: Sequence[Role], other: Sequence[Role]) -> tuple[list[Role], list[Role]]:
    """Split ``source`` into roles without and with a match in ``other``.

    Returned roles always come from ``source``, in source order.

    Returns:
        Tuple of (unmatched, matched)
    """
    unmatched: list[Role] = []
    matched: list[Role] = []
    for role in source:
        if has_matching_role(other, role):
            matched.append(role)
        else:
            unmatched.append(role)
    return unmatched, matched
