"""Group and project membership reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Sequence

from gluebuddy.executor import Change, Mutation
from gluebuddy.models import AccessLevel, ChangeKind, Member
from gluebuddy.reconcilers.base import Reconciler
from gluebuddy.render import format_block
from gluebuddy.state import Identity, Snapshot


class AccessPolicy(Enum):
    """How an observed access level is compared against the target level."""

    EXACT = "exact"
    MAX = "max"


def violates_exact(current: AccessLevel, target: AccessLevel) -> bool:
    return current != target


def violates_ceiling(current: AccessLevel, ceiling: AccessLevel) -> bool:
    """Only levels above the ceiling are corrected; anything at or below is left alone."""
    return current > ceiling


POLICY_CHECKS = {
    AccessPolicy.EXACT: violates_exact,
    AccessPolicy.MAX: violates_ceiling,
}


@dataclass(frozen=True)
class MembershipUnit:
    """A group or project whose direct members are reconciled."""

    kind: str  # "group" or "project"
    ref: int | str
    path: str


def format_member_access(namespace: str, username: str, access_level: AccessLevel) -> str:
    return format_block(
        "gitlab_member_access",
        [("namespace", namespace), ("username", username), ("access_level", access_level)],
    )


class MembershipReconciler(Reconciler):
    def reconcile(
        self,
        unit: MembershipUnit,
        observed: Sequence[Member],
        desired: Sequence[Identity],
        target: AccessLevel,
        policy: AccessPolicy = AccessPolicy.EXACT,
        add_missing: bool = True,
    ) -> list[Change]:
        """
        Compute adds, access changes and removals between ``observed`` members and the ``desired`` role set.

        Members on the exclusion list are never touched. Desired identities
        without a GitLab id cannot be added and are skipped.
        """
        changes: list[Change] = []
        observed_ids = {member.id for member in observed}
        roster = Snapshot(desired)

        if add_missing:
            for identity in desired:
                if self.config.is_excluded(identity.username):
                    continue
                if identity.platform_id is None:
                    self.logger.debug(f"Skip adding {identity.username} to GitLab {unit.kind}: no GitLab user found")
                    continue
                if identity.platform_id not in observed_ids:
                    changes.append(self._add(unit, identity, target))

        check = POLICY_CHECKS[policy]
        for member in observed:
            if self.config.is_excluded(member.username):
                continue

            identity = self._resolve(roster, member)
            if identity is None:
                changes.append(self._remove(unit, member))
            elif check(member.access_level, target):
                changes.append(self._edit(unit, identity, member, target))
            else:
                self.logger.debug(
                    f"User {identity.username} has access_level {member.access_level.as_str()} "
                    f"matching {policy.value} access_level {target.as_str()} in {unit.kind} {unit.path}"
                )

        return changes

    @staticmethod
    def _resolve(roster: Snapshot, member: Member) -> Identity | None:
        identity = roster.identity_from_platform_id(member.id)
        if identity is None:
            # Identities without a GitLab id can still be recognised by username
            identity = roster.identity(member.username)
            if identity is not None and identity.platform_id is not None:
                return None
        return identity

    def _add(self, unit: MembershipUnit, identity: Identity, target: AccessLevel) -> Change:
        self.logger.debug(f"Adding user {identity.username} to GitLab {unit.kind} '{unit.path}'")
        return Change(
            kind=ChangeKind.ADD,
            unit=unit.path,
            entity=f"gitlab_member_access {identity.username}",
            before="",
            after=format_member_access(unit.path, identity.username, target),
            mutations=[
                Mutation(
                    f"add {identity.username} as {target.as_str()}",
                    partial(self.client.add_member, unit.kind, unit.ref, identity.platform_id, target),
                )
            ],
        )

    def _remove(self, unit: MembershipUnit, member: Member) -> Change:
        self.logger.debug(f"User {member.username} must not be in {unit.kind} {unit.path}")
        return Change(
            kind=ChangeKind.DESTROY,
            unit=unit.path,
            entity=f"gitlab_member_access {member.username}",
            before=format_member_access(unit.path, member.username, member.access_level),
            after="",
            mutations=[
                Mutation(f"remove {member.username}", partial(self.client.remove_member, unit.kind, unit.ref, member.id))
            ],
        )

    def _edit(self, unit: MembershipUnit, identity: Identity, member: Member, target: AccessLevel) -> Change:
        self.logger.debug(
            f"User {identity.username} should have access_level {target.as_str()} "
            f"instead of {member.access_level.as_str()} in {unit.kind} {unit.path}"
        )
        return Change(
            kind=ChangeKind.CHANGE,
            unit=unit.path,
            entity=f"gitlab_member_access {identity.username}",
            before=format_member_access(unit.path, identity.username, member.access_level),
            after=format_member_access(unit.path, identity.username, target),
            mutations=[
                Mutation(
                    f"set {identity.username} to {target.as_str()}",
                    partial(self.client.edit_member, unit.kind, unit.ref, member.id, target),
                )
            ],
        )
