"""Mapping between domain values and the GitLab REST API representation."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, TypeVar

from gluebuddy.errors import RemoteShapeError
from gluebuddy.models import (
    AccessLevel,
    FeatureAccessLevel,
    FeatureAccessLevelPublic,
    Group,
    GroupBranchProtection,
    Member,
    MergeMethod,
    Project,
    ProjectSettings,
    ProtectedAccess,
    ProtectedBranch,
    ProtectedTag,
    RemoteUser,
)

T = TypeVar("T")

MERGE_METHOD_WIRE = {
    MergeMethod.MERGE: "merge",
    MergeMethod.REBASE_MERGE: "rebase_merge",
    MergeMethod.FAST_FORWARD: "ff",
}

BRANCH_PROTECTION_WIRE = {
    GroupBranchProtection.NONE: 0,
    GroupBranchProtection.PARTIAL: 1,
    GroupBranchProtection.FULL: 2,
    GroupBranchProtection.PROTECT_AFTER_INITIAL_PUSH: 3,
    GroupBranchProtection.FULL_AFTER_INITIAL_PUSH: 4,
}


def to_wire(value: Any) -> Any:
    """Convert a domain value into the form the API expects."""
    if isinstance(value, AccessLevel):
        return int(value)
    if isinstance(value, MergeMethod):
        return MERGE_METHOD_WIRE[value]
    if isinstance(value, GroupBranchProtection):
        return BRANCH_PROTECTION_WIRE[value]
    if isinstance(value, Enum):
        return value.value
    return value


def merge_method_from_wire(raw: str) -> MergeMethod:
    for method, wire in MERGE_METHOD_WIRE.items():
        if wire == raw:
            return method
    raise ValueError(f"unknown merge method {raw!r}")


def branch_protection_from_wire(raw: int | None) -> GroupBranchProtection | None:
    """Map the group default branch protection; values this client does not know map to None."""
    for protection, wire in BRANCH_PROTECTION_WIRE.items():
        if wire == raw:
            return protection
    return None


def access_level_from_int(raw: int) -> AccessLevel:
    """Map a numeric access level, treating unknown values as no access."""
    try:
        return AccessLevel(raw)
    except ValueError:
        return AccessLevel.NO_ACCESS


def settings_to_wire(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: to_wire(value) for key, value in fields.items()}


# ---------------------------------------------------------------------------
# Record parsers
# ---------------------------------------------------------------------------


def _parse(kind: str, payload: Any, build: Callable[[Any], T]) -> T:
    try:
        return build(payload)
    except (KeyError, TypeError, ValueError) as e:
        raise RemoteShapeError(kind, f"{type(e).__name__}: {e}") from e


def parse_group(payload: dict) -> Group:
    return _parse(
        "group",
        payload,
        lambda g: Group(
            id=int(g["id"]),
            name=g["name"],
            full_name=g["full_name"],
            path=g["path"],
            full_path=g["full_path"],
            request_access_enabled=bool(g["request_access_enabled"]),
            default_branch_protection=branch_protection_from_wire(g.get("default_branch_protection")),
        ),
    )


def _parse_project_settings(p: dict) -> ProjectSettings:
    return ProjectSettings(
        description=p.get("description") or "",
        request_access_enabled=bool(p["request_access_enabled"]),
        issues_access_level=FeatureAccessLevel(p["issues_access_level"]),
        merge_requests_access_level=FeatureAccessLevel(p["merge_requests_access_level"]),
        merge_method=merge_method_from_wire(p["merge_method"]),
        only_allow_merge_if_all_discussions_are_resolved=bool(p["only_allow_merge_if_all_discussions_are_resolved"]),
        builds_access_level=FeatureAccessLevel(p["builds_access_level"]),
        container_registry_access_level=FeatureAccessLevel(p["container_registry_access_level"]),
        packages_enabled=bool(p["packages_enabled"]),
        snippets_access_level=FeatureAccessLevel(p["snippets_access_level"]),
        lfs_enabled=bool(p["lfs_enabled"]),
        service_desk_enabled=bool(p["service_desk_enabled"]),
        pages_access_level=FeatureAccessLevelPublic(p["pages_access_level"]),
        requirements_access_level=FeatureAccessLevel(p["requirements_access_level"]),
        releases_access_level=FeatureAccessLevel(p["releases_access_level"]),
        environments_access_level=FeatureAccessLevel(p["environments_access_level"]),
        feature_flags_access_level=FeatureAccessLevel(p["feature_flags_access_level"]),
        infrastructure_access_level=FeatureAccessLevel(p["infrastructure_access_level"]),
        monitor_access_level=FeatureAccessLevel(p["monitor_access_level"]),
    )


def parse_project(payload: dict) -> Project:
    return _parse(
        "project",
        payload,
        lambda p: Project(
            id=int(p["id"]),
            name=p["name"],
            name_with_namespace=p["name_with_namespace"],
            path=p["path"],
            path_with_namespace=p["path_with_namespace"],
            default_branch=p.get("default_branch"),
            settings=_parse_project_settings(p),
        ),
    )


def parse_member(payload: dict) -> Member:
    return _parse(
        "member",
        payload,
        lambda m: Member(
            id=int(m["id"]),
            username=m["username"],
            name=m.get("name", ""),
            access_level=access_level_from_int(int(m["access_level"])),
        ),
    )


def parse_user(payload: dict) -> RemoteUser:
    return _parse(
        "user",
        payload,
        lambda u: RemoteUser(id=int(u["id"]), username=u["username"], name=u.get("name", "")),
    )


def _parse_protected_access(entry: dict) -> ProtectedAccess:
    raw = entry["access_level"]
    return ProtectedAccess(
        access_level=None if raw is None else access_level_from_int(int(raw)),
        description=entry.get("access_level_description") or "",
    )


def parse_protected_tag(payload: dict) -> ProtectedTag:
    return _parse(
        "protected tag",
        payload,
        lambda t: ProtectedTag(
            name=t["name"],
            create_access_levels=tuple(_parse_protected_access(e) for e in t["create_access_levels"]),
        ),
    )


def parse_protected_branch(payload: dict) -> ProtectedBranch:
    return _parse(
        "protected branch",
        payload,
        lambda b: ProtectedBranch(
            name=b["name"],
            push_access_levels=tuple(_parse_protected_access(e) for e in b["push_access_levels"]),
            merge_access_levels=tuple(_parse_protected_access(e) for e in b["merge_access_levels"]),
        ),
    )
