"""Protected tag and protected branch reconciliation."""

from __future__ import annotations

from functools import partial
from typing import Sequence

from gluebuddy.executor import Change, Mutation
from gluebuddy.models import AccessLevel, ChangeKind, Project, ProtectedAccess, ProtectedBranch, ProtectedTag
from gluebuddy.reconcilers.base import Reconciler
from gluebuddy.render import format_block


def is_single_level(entries: Sequence[ProtectedAccess], target: AccessLevel) -> bool:
    """A rule complies only when it permits exactly one entry and that entry is the target level."""
    return len(entries) == 1 and entries[0].access_level == target


def _levels(entries: Sequence[ProtectedAccess]) -> list[str]:
    return [e.access_level.as_str() if e.access_level is not None else e.description or "custom" for e in entries]


def format_protected_tag(namespace: str, name: str, create_levels: list[str]) -> str:
    return format_block(
        "gitlab_project_protected_tag",
        [("namespace", namespace), ("name", name), ("create_access_level", create_levels)],
    )


def format_protected_branch(namespace: str, name: str, push_levels: list[str], merge_levels: list[str]) -> str:
    return format_block(
        "gitlab_project_protected_branch",
        [
            ("namespace", namespace),
            ("name", name),
            ("push_access_level", push_levels),
            ("merge_access_level", merge_levels),
        ],
    )


class ProtectionReconciler(Reconciler):
    """
    Enforces single-level protection rules.

    GitLab offers no partial update for protection rules, so a diverging rule
    is replaced by an unprotect followed by a protect. The two calls are not
    atomic.
    """

    def reconcile_tag(
        self, project: Project, name: str, current: ProtectedTag | None, target: AccessLevel
    ) -> Change | None:
        path = project.path_with_namespace
        self.logger.debug(f"protecting tag {name} for project {project.name_with_namespace}")

        desired = format_protected_tag(path, name, [target.as_str()])
        protect = Mutation(
            f"protect tag {name}",
            partial(self.client.protect_tag, project.id, name, target),
        )

        if current is None:
            return Change(ChangeKind.ADD, path, f"gitlab_project_protected_tag {name}", "", desired, [protect])

        if is_single_level(current.create_access_levels, target):
            return None

        unprotect = Mutation(f"unprotect tag {name}", partial(self.client.unprotect_tag, project.id, name))
        return Change(
            ChangeKind.CHANGE,
            path,
            f"gitlab_project_protected_tag {name}",
            format_protected_tag(path, current.name, _levels(current.create_access_levels)),
            desired,
            [unprotect, protect],
        )

    def reconcile_branch(
        self, project: Project, name: str, current: ProtectedBranch | None, target: AccessLevel
    ) -> Change | None:
        path = project.path_with_namespace
        self.logger.debug(f"protecting branch {name} for project {project.name_with_namespace}")

        desired = format_protected_branch(path, name, [target.as_str()], [target.as_str()])
        protect = Mutation(
            f"protect branch {name}",
            partial(self.client.protect_branch, project.id, name, target, target),
        )

        if current is None:
            return Change(ChangeKind.ADD, path, f"gitlab_project_protected_branch {name}", "", desired, [protect])

        if is_single_level(current.push_access_levels, target) and is_single_level(current.merge_access_levels, target):
            return None

        unprotect = Mutation(f"unprotect branch {name}", partial(self.client.unprotect_branch, project.id, name))
        return Change(
            ChangeKind.CHANGE,
            path,
            f"gitlab_project_protected_branch {name}",
            format_protected_branch(
                path, current.name, _levels(current.push_access_levels), _levels(current.merge_access_levels)
            ),
            desired,
            [unprotect, protect],
        )
