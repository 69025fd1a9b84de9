"""Reconciler for a Keycloak client and its roles.

Compares the desired client definition (YAML) with the observed state
(Keycloak) and emits the actions that converge the latter to the former.
Pure: no I/O, inputs are never mutated.

Role classification
-------------------
1. Observed roles matching no desired role are deleted. A desired role that
   reuses a name without sharing the id does not save the observed role.
2. Matched desired roles carrying an id are updates, renames included.
   The old names of renamed roles are collected.
3. Matched desired roles without an id are creations when their name was
   vacated by a rename in step 2, updates otherwise.
4. Desired roles matching no observed role are created.

Step 2 completes the set of vacated names before step 3 reads it, so the
outcome does not depend on role order.
"""

from __future__ import annotations

import logging
from typing import Sequence

from celine.reconciler.engine.matcher import partition
from celine.reconciler.models import (
    Action,
    ActionKind,
    ClientDefinition,
    ObservedState,
    ReconciliationResult,
    Role,
)

logger = logging.getLogger(__name__)


class ClientReconciler:
    """Computes the actions for one client definition."""

    def reconcile(
        self,
        observed: ObservedState,
        desired: ClientDefinition,
    ) -> ReconciliationResult:
        """Compute the reconciliation result.

        Args:
            observed: Current state from Keycloak
            desired: Desired client definition

        Returns:
            ReconciliationResult, ping first
        """
        realm = observed.realm or desired.realm
        actions: list[Action] = [self._ping()]

        if desired.deletion_requested:
            # Keycloak removes the roles along with the client
            actions.append(self._delete_client(realm, desired))
            return ReconciliationResult(actions=tuple(actions))

        if observed.client is None:
            actions.append(self._client_action(ActionKind.CREATE_CLIENT, "create client", realm, desired))
        else:
            actions.append(self._client_action(ActionKind.UPDATE_CLIENT, "update client", realm, desired))

        if observed.secret is None:
            actions.append(
                self._client_action(ActionKind.CREATE_SECRET, "create client secret", realm, desired)
            )
        else:
            actions.append(
                self._client_action(ActionKind.UPDATE_SECRET, "update client secret", realm, desired)
            )

        actions.extend(
            self.reconcile_roles(desired.roles, observed.roles, realm=realm, client_id=desired.client_id)
        )

        logger.debug(
            "Reconciled client %s/%s: %d actions", realm, desired.client_id, len(actions)
        )
        return ReconciliationResult(actions=tuple(actions))

    def reconcile_roles(
        self,
        desired_roles: Sequence[Role],
        observed_roles: Sequence[Role],
        realm: str = "",
        client_id: str = "",
    ) -> list[Action]:
        """Compute the role actions for one client."""
        actions: list[Action] = []

        # Deletions
        roles_deleted, _ = partition(observed_roles, desired_roles)
        for role in roles_deleted:
            actions.append(self._role_action(ActionKind.DELETE_ROLE, "delete", realm, client_id, role))

        existing_by_id = {role.id: role for role in observed_roles if role.id}
        existing_by_name = {role.name: role for role in observed_roles}
        _, roles_matching = partition(desired_roles, observed_roles)

        # Updates of roles known by id, renames included
        renamed_old_names: set[str] = set()
        for role in roles_matching:
            if not role.id:
                continue
            # An observed role without id can only have matched by name
            previous = existing_by_id.get(role.id) or existing_by_name[role.name]
            actions.append(
                self._role_action(ActionKind.UPDATE_ROLE, "update", realm, client_id, role, previous)
            )
            if role.name != previous.name:
                renamed_old_names.add(previous.name)

        # Name matches are re-creations when a rename vacated the name
        for role in roles_matching:
            if role.id:
                continue
            if role.name in renamed_old_names:
                actions.append(self._role_action(ActionKind.CREATE_ROLE, "create", realm, client_id, role))
            else:
                actions.append(
                    self._role_action(ActionKind.UPDATE_ROLE, "update", realm, client_id, role, role)
                )

        # Creations
        roles_new, _ = partition(desired_roles, observed_roles)
        for role in roles_new:
            actions.append(self._role_action(ActionKind.CREATE_ROLE, "create", realm, client_id, role))

        return actions

    # -------------------------------------------------------------------------
    # Action builders
    # -------------------------------------------------------------------------

    def _ping(self) -> Action:
        return Action(kind=ActionKind.PING, msg="check if keycloak is available")

    def _delete_client(self, realm: str, desired: ClientDefinition) -> Action:
        return Action(
            kind=ActionKind.DELETE_CLIENT,
            msg=f"removing client {realm}/{desired.client_id}",
            realm=realm,
            client_id=desired.client_id,
            client=desired.client,
        )

    def _client_action(
        self, kind: ActionKind, verb: str, realm: str, desired: ClientDefinition
    ) -> Action:
        return Action(
            kind=kind,
            msg=f"{verb} {realm}/{desired.client_id}",
            realm=realm,
            client_id=desired.client_id,
            client=desired.client,
        )

    def _role_action(
        self,
        kind: ActionKind,
        verb: str,
        realm: str,
        client_id: str,
        role: Role,
        previous: Role | None = None,
    ) -> Action:
        # Updates are addressed by the name the role has in Keycloak
        name = previous.name if previous is not None else role.name
        return Action(
            kind=kind,
            msg=f"{verb} client role {realm}/{client_id}/{name}",
            realm=realm,
            client_id=client_id,
            role=role,
            previous=previous,
        )


def reconcile(observed: ObservedState, desired: ClientDefinition) -> ReconciliationResult:
    """Compute the actions converging ``observed`` to ``desired``."""
    return ClientReconciler().reconcile(observed, desired)
