"""
GitLab component: enforces the Arch Linux access policy over the group hierarchy.

- every group below the root: no member above developer, only staff,
  no access requests
- every project: only staff and external contributors, no member above
  developer, profile settings, protected tags (and the main branch on
  packaging projects)
- team groups: exactly the members of the matching directory role
- the infrastructure project: no direct members
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable

from gluebuddy.models import (
    ALL_TAGS_WILDCARD,
    GROUP_BUG_WRANGLERS,
    GROUP_DEVOPS,
    GROUP_ROOT,
    GROUP_STAFF,
    MAIN_BRANCH,
    PROJECT_INFRASTRUCTURE,
    AccessLevel,
    PackageMaintainerRole,
    Project,
)
from gluebuddy.reconcilers import (
    AccessPolicy,
    GroupSettingsReconciler,
    MembershipReconciler,
    MembershipUnit,
    ProjectSettingsReconciler,
    ProtectionReconciler,
)
from gluebuddy.reconcilers.settings import is_packaging_project
from gluebuddy.state import Role, RoleLike
from gluebuddy.walker import walk

if TYPE_CHECKING:
    from gluebuddy.client import GitLabClient
    from gluebuddy.config import Config
    from gluebuddy.executor import Change, Executor
    from gluebuddy.state import Snapshot

DEFAULT_ARCH_LINUX_GROUP_ACCESS_LEVEL = AccessLevel.MINIMAL
DEFAULT_STAFF_GROUP_ACCESS_LEVEL = AccessLevel.REPORTER
DEFAULT_PACKAGE_MAINTAINER_ACCESS_LEVEL = AccessLevel.DEVELOPER
DEVOPS_INFRASTRUCTURE_ACCESS_LEVEL = AccessLevel.DEVELOPER
MAX_ACCESS_LEVEL = AccessLevel.DEVELOPER
PROTECTED_ACCESS_LEVEL = AccessLevel.DEVELOPER

# ---------------------------------------------------------------------------
# Component Registry
# ---------------------------------------------------------------------------

_component_registry: dict[str, type[Component]] = {}


def register_component(name: str):
    """Decorator to register a component class under a CLI module name."""

    def decorator(cls):
        _component_registry[name] = cls
        cls.component_name = name
        return cls

    return decorator


def get_component_registry() -> dict[str, type[Component]]:
    return _component_registry


class Component(ABC):
    """A remote system whose state is reconciled against the snapshot."""

    component_name: str = ""

    def __init__(self, client: GitLabClient, config: Config, snapshot: Snapshot, executor: Executor):
        self.client = client
        self.config = config
        self.snapshot = snapshot
        self.executor = executor
        self.logger = logging.getLogger("gluebuddy")

    @abstractmethod
    def run(self) -> None: ...

    def _execute_unit(self, label: str, changes: Iterable[Change | None]) -> None:
        with self.executor.unit(label) as summary:
            for change in changes:
                if change is not None:
                    self.executor.execute(change, summary)


@register_component("gitlab")
class GitLabGlue(Component):
    def __init__(self, client: GitLabClient, config: Config, snapshot: Snapshot, executor: Executor):
        super().__init__(client, config, snapshot, executor)
        self.members = MembershipReconciler(client, config)
        self.protection = ProtectionReconciler(client, config)
        self.project_settings = ProjectSettingsReconciler(client, config)
        self.group_settings = GroupSettingsReconciler(client, config)

    def run(self) -> None:
        self.update_archlinux_group_recursively()
        self.update_group_members(
            GROUP_ROOT, "GitLab 'Arch Linux' group members", (Role.STAFF,), DEFAULT_ARCH_LINUX_GROUP_ACCESS_LEVEL
        )
        self.update_group_members(
            GROUP_STAFF, "GitLab 'Arch Linux/Teams/Staff' group members", (Role.STAFF,), DEFAULT_STAFF_GROUP_ACCESS_LEVEL
        )
        self.update_group_members(
            GROUP_DEVOPS,
            "GitLab 'Arch Linux/Teams/DevOps' group members",
            (Role.DEVOPS,),
            DEVOPS_INFRASTRUCTURE_ACCESS_LEVEL,
        )
        for tier in PackageMaintainerRole:
            self.update_group_members(
                tier.group_path,
                f"GitLab 'Arch Linux/Teams/Package Maintainer Team/{tier.label}' group members",
                (tier,),
                DEFAULT_PACKAGE_MAINTAINER_ACCESS_LEVEL,
            )
        self.update_group_members(
            GROUP_BUG_WRANGLERS,
            "GitLab 'Arch Linux/Teams/Bug Wranglers' group members",
            (Role.BUG_WRANGLER,),
            DEFAULT_STAFF_GROUP_ACCESS_LEVEL,
        )
        self.update_infrastructure_project_members()

    def update_archlinux_group_recursively(self) -> None:
        staff = self.snapshot.role_set(Role.STAFF)

        for node in walk(self.client, GROUP_ROOT):
            group = node.group
            unit = MembershipUnit("group", group.id, group.full_path)
            self._execute_unit(
                f"GitLab '{group.full_name}' group members",
                self.members.reconcile(
                    unit, node.members, staff, MAX_ACCESS_LEVEL, policy=AccessPolicy.MAX, add_missing=False
                ),
            )
            self._execute_unit(f"GitLab '{group.full_path}' group settings", [self.group_settings.reconcile(group)])

            for project in sorted(node.projects, key=lambda p: p.path_with_namespace):
                self.update_project(project)

    def update_project(self, project: Project) -> None:
        name = project.name_with_namespace

        self._execute_unit(f"GitLab '{name}' project settings", [self.project_settings.reconcile(project)])

        unit = MembershipUnit("project", project.id, project.path_with_namespace)
        self._execute_unit(
            f"GitLab '{name}' project members",
            self.members.reconcile(
                unit,
                self.client.list_project_members(project.id),
                self.snapshot.role_set(Role.STAFF, Role.EXTERNAL_CONTRIBUTOR),
                MAX_ACCESS_LEVEL,
                policy=AccessPolicy.MAX,
                add_missing=False,
            ),
        )

        current_tag = self.client.get_protected_tag(project.id, ALL_TAGS_WILDCARD)
        self._execute_unit(
            f"GitLab '{name}' protected tags",
            [self.protection.reconcile_tag(project, ALL_TAGS_WILDCARD, current_tag, PROTECTED_ACCESS_LEVEL)],
        )

        if is_packaging_project(project.path_with_namespace):
            current_branch = self.client.get_protected_branch(project.id, MAIN_BRANCH)
            self._execute_unit(
                f"GitLab '{name}' protected branches",
                [self.protection.reconcile_branch(project, MAIN_BRANCH, current_branch, PROTECTED_ACCESS_LEVEL)],
            )

    def update_group_members(
        self, group_path: str, label: str, roles: tuple[RoleLike, ...], access_level: AccessLevel
    ) -> None:
        unit = MembershipUnit("group", group_path, group_path)
        self._execute_unit(
            label,
            self.members.reconcile(
                unit, self.client.list_group_members(group_path), self.snapshot.role_set(*roles), access_level
            ),
        )

    def update_infrastructure_project_members(self) -> None:
        """Nobody holds a direct membership on the infrastructure project; access comes from the devops group."""
        unit = MembershipUnit("project", PROJECT_INFRASTRUCTURE, PROJECT_INFRASTRUCTURE)
        self._execute_unit(
            "GitLab 'Arch Linux/Infrastructure' project members",
            self.members.reconcile(
                unit, self.client.list_project_members(PROJECT_INFRASTRUCTURE), (), AccessLevel.NO_ACCESS
            ),
        )
