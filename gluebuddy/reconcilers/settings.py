"""Project and group settings reconciliation."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from functools import partial
from types import MappingProxyType
from typing import Any, Mapping

from gluebuddy.executor import Change, Mutation
from gluebuddy.models import (
    GROUP_PACKAGES,
    MAIN_BRANCH,
    SRCINFO_PATH,
    ChangeKind,
    FeatureAccessLevel,
    FeatureAccessLevelPublic,
    Group,
    MergeMethod,
    Project,
    ProjectSettings,
)
from gluebuddy.reconcilers.base import Reconciler
from gluebuddy.render import format_block
from gluebuddy.srcinfo import project_description


@dataclass(frozen=True)
class SettingsProfile:
    """A named set of managed project fields and their target values."""

    name: str
    fields: Mapping[str, Any]
    description_from_srcinfo: bool = False


GENERIC_PROFILE = SettingsProfile(
    name="generic",
    fields=MappingProxyType(
        {
            "request_access_enabled": False,
            "only_allow_merge_if_all_discussions_are_resolved": True,
            "snippets_access_level": FeatureAccessLevel.DISABLED,
        }
    ),
)

PACKAGING_PROFILE = SettingsProfile(
    name="packaging",
    fields=MappingProxyType(
        {
            "request_access_enabled": False,
            "issues_access_level": FeatureAccessLevel.ENABLED,
            "merge_requests_access_level": FeatureAccessLevel.ENABLED,
            "merge_method": MergeMethod.FAST_FORWARD,
            "only_allow_merge_if_all_discussions_are_resolved": True,
            "builds_access_level": FeatureAccessLevel.DISABLED,
            "container_registry_access_level": FeatureAccessLevel.DISABLED,
            "packages_enabled": False,
            "snippets_access_level": FeatureAccessLevel.DISABLED,
            "lfs_enabled": False,
            "service_desk_enabled": False,
            "pages_access_level": FeatureAccessLevelPublic.DISABLED,
            "requirements_access_level": FeatureAccessLevel.DISABLED,
            "releases_access_level": FeatureAccessLevel.DISABLED,
            "environments_access_level": FeatureAccessLevel.DISABLED,
            "feature_flags_access_level": FeatureAccessLevel.DISABLED,
            "infrastructure_access_level": FeatureAccessLevel.DISABLED,
            "monitor_access_level": FeatureAccessLevel.DISABLED,
        }
    ),
    description_from_srcinfo=True,
)

GROUP_SETTINGS = MappingProxyType({"request_access_enabled": False})


def is_packaging_project(path_with_namespace: str, packaging_prefix: str = GROUP_PACKAGES) -> bool:
    return path_with_namespace.startswith(f"{packaging_prefix}/")


def select_profile(project: Project) -> SettingsProfile:
    # TODO: other namespace branches may need their own profile; only packaging is special-cased today
    if is_packaging_project(project.path_with_namespace):
        return PACKAGING_PROFILE
    return GENERIC_PROFILE


def format_project_settings(namespace: str, settings: ProjectSettings) -> str:
    return format_block(
        "gitlab_project_setting",
        [("namespace", namespace)] + [(f.name, getattr(settings, f.name)) for f in dataclasses.fields(settings)],
    )


def format_group_settings(namespace: str, request_access_enabled: bool) -> str:
    return format_block(
        "gitlab_group_setting",
        [("namespace", namespace), ("request_access_enabled", request_access_enabled)],
    )


class ProjectSettingsReconciler(Reconciler):
    def expected_description(self, project: Project) -> str:
        """Description derived from the project's .SRCINFO, or empty when there is none."""
        ref = project.default_branch or MAIN_BRANCH
        srcinfo = self.client.get_file(project.id, SRCINFO_PATH, ref)
        if srcinfo is None:
            self.logger.debug(f"No {SRCINFO_PATH} on {ref} for {project.path_with_namespace}")
            return ""
        return project_description(srcinfo)

    def reconcile(self, project: Project, profile: SettingsProfile | None = None) -> Change | None:
        """
        Compare every tracked field against the profile and return a single update when any differs.

        The update always carries the profile's full field vector.
        """
        profile = profile or select_profile(project)
        target_fields = dict(profile.fields)
        if profile.description_from_srcinfo:
            target_fields["description"] = self.expected_description(project)

        current = project.settings
        target = dataclasses.replace(current, **target_fields)
        if target == current:
            return None

        self.logger.debug(f"edit project settings for {project.name_with_namespace} ({profile.name} profile)")
        return Change(
            kind=ChangeKind.CHANGE,
            unit=project.path_with_namespace,
            entity="gitlab_project_setting",
            before=format_project_settings(project.path_with_namespace, current),
            after=format_project_settings(project.path_with_namespace, target),
            mutations=[
                Mutation(
                    f"edit {profile.name} project settings",
                    partial(self.client.edit_project, project.id, target_fields),
                )
            ],
        )


class GroupSettingsReconciler(Reconciler):
    def reconcile(self, group: Group) -> Change | None:
        expected = GROUP_SETTINGS["request_access_enabled"]
        if group.request_access_enabled == expected:
            return None

        self.logger.debug(f"edit group settings for {group.full_path}")
        return Change(
            kind=ChangeKind.CHANGE,
            unit=group.full_path,
            entity="gitlab_group_setting",
            before=format_group_settings(group.full_path, group.request_access_enabled),
            after=format_group_settings(group.full_path, expected),
            mutations=[
                Mutation("edit group settings", partial(self.client.edit_group, group.id, dict(GROUP_SETTINGS)))
            ],
        )
