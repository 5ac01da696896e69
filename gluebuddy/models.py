"""Data models and constants for gluebuddy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_GITLAB_URL = "https://gitlab.archlinux.org"
API_V4 = "/api/v4"
PER_PAGE = 100

# Retry configuration
DEFAULT_MAX_RETRIES = 3
RETRY_BACKOFF_FACTOR = 0.5  # seconds
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Identity correlation
DEFAULT_MAX_WORKERS = 8
EXTERNAL_PROVIDER = "saml"

# Accounts that are never touched by membership reconciliation
GITLAB_OWNER = "archceo"
GITLAB_BOT = "archbot"

GROUP_ROOT = "archlinux"
GROUP_PACKAGES = "archlinux/packaging/packages"
GROUP_STAFF = "archlinux/teams/staff"
GROUP_DEVOPS = "archlinux/teams/devops"
GROUP_BUG_WRANGLERS = "archlinux/teams/bug-wranglers"
GROUP_PACKAGE_MAINTAINER_TEAM = "archlinux/teams/package-maintainer-team"
PROJECT_INFRASTRUCTURE = "archlinux/infrastructure"

MAIN_BRANCH = "main"
ALL_TAGS_WILDCARD = "*"

SRCINFO_PATH = ".SRCINFO"
MAX_DESCRIPTION_LENGTH = 2000
MAX_LISTED_PACKAGES = 16

SEPARATOR_WIDTH = 72


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AccessLevel(IntEnum):
    """Membership and protection access levels, ordered by privilege."""

    NO_ACCESS = 0
    MINIMAL = 5
    GUEST = 10
    REPORTER = 20
    DEVELOPER = 30
    MAINTAINER = 40
    OWNER = 50
    ADMIN = 60

    def as_str(self) -> str:
        return self.name.lower()


class FeatureAccessLevel(Enum):
    DISABLED = "disabled"
    PRIVATE = "private"
    ENABLED = "enabled"


class FeatureAccessLevelPublic(Enum):
    """Feature access level for features that may also be exposed publicly (pages)."""

    DISABLED = "disabled"
    PRIVATE = "private"
    ENABLED = "enabled"
    PUBLIC = "public"


class MergeMethod(Enum):
    MERGE = "merge"
    REBASE_MERGE = "rebase_merge"
    FAST_FORWARD = "fast_forward"


class GroupBranchProtection(Enum):
    NONE = "none"
    PARTIAL = "partial"
    FULL = "full"
    PROTECT_AFTER_INITIAL_PUSH = "protect_after_initial_push"
    FULL_AFTER_INITIAL_PUSH = "full_after_initial_push"


class PackageMaintainerRole(Enum):
    """Package maintainer tiers, highest first."""

    CORE = "core"
    JUNIOR_CORE = "junior-core"
    REGULAR = "regular"
    JUNIOR = "junior"

    @property
    def label(self) -> str:
        return PACKAGE_MAINTAINER_LABELS[self]

    @property
    def group_path(self) -> str:
        return f"{GROUP_PACKAGE_MAINTAINER_TEAM}/{PACKAGE_MAINTAINER_PATHS[self]}"


PACKAGE_MAINTAINER_LABELS = {
    PackageMaintainerRole.CORE: "Core Package Maintainers",
    PackageMaintainerRole.JUNIOR_CORE: "Junior Core Package Maintainers",
    PackageMaintainerRole.REGULAR: "Package Maintainers",
    PackageMaintainerRole.JUNIOR: "Junior Package Maintainers",
}

PACKAGE_MAINTAINER_PATHS = {
    PackageMaintainerRole.CORE: "core-package-maintainers",
    PackageMaintainerRole.JUNIOR_CORE: "junior-core-package-maintainers",
    PackageMaintainerRole.REGULAR: "package-maintainers",
    PackageMaintainerRole.JUNIOR: "junior-package-maintainers",
}


class Mode(Enum):
    PLAN = "plan"
    APPLY = "apply"


class ChangeKind(Enum):
    ADD = "add"
    CHANGE = "change"
    DESTROY = "destroy"


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Group:
    """A namespace node in the remote hierarchy."""

    id: int
    name: str
    full_name: str
    path: str
    full_path: str
    request_access_enabled: bool
    default_branch_protection: GroupBranchProtection | None


@dataclass(frozen=True)
class ProjectSettings:
    """The tracked attribute vector of a project."""

    description: str
    request_access_enabled: bool
    issues_access_level: FeatureAccessLevel
    merge_requests_access_level: FeatureAccessLevel
    merge_method: MergeMethod
    only_allow_merge_if_all_discussions_are_resolved: bool
    builds_access_level: FeatureAccessLevel
    container_registry_access_level: FeatureAccessLevel
    packages_enabled: bool
    snippets_access_level: FeatureAccessLevel
    lfs_enabled: bool
    service_desk_enabled: bool
    pages_access_level: FeatureAccessLevelPublic
    requirements_access_level: FeatureAccessLevel
    releases_access_level: FeatureAccessLevel
    environments_access_level: FeatureAccessLevel
    feature_flags_access_level: FeatureAccessLevel
    infrastructure_access_level: FeatureAccessLevel
    monitor_access_level: FeatureAccessLevel


@dataclass(frozen=True)
class Project:
    id: int
    name: str
    name_with_namespace: str
    path: str
    path_with_namespace: str
    default_branch: str | None
    settings: ProjectSettings


@dataclass(frozen=True)
class Member:
    """A direct member of a group or project."""

    id: int
    username: str
    name: str
    access_level: AccessLevel


@dataclass(frozen=True)
class RemoteUser:
    id: int
    username: str
    name: str


@dataclass(frozen=True)
class ProtectedAccess:
    """One entry of a protection rule; user or group entries carry no access level."""

    access_level: AccessLevel | None
    description: str = ""


@dataclass(frozen=True)
class ProtectedTag:
    name: str
    create_access_levels: tuple[ProtectedAccess, ...]


@dataclass(frozen=True)
class ProtectedBranch:
    name: str
    push_access_levels: tuple[ProtectedAccess, ...]
    merge_access_levels: tuple[ProtectedAccess, ...]


@dataclass
class OperationResult:
    """Result of a single corrective operation passing through the executor."""

    unit: str
    kind: str  # "add", "change", "destroy"
    entity: str
    action: str  # "planned", "applied", "error"
    detail: str = ""
    dry_run: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        d = {
            "unit": self.unit,
            "kind": self.kind,
            "entity": self.entity,
            "action": self.action,
            "detail": self.detail,
        }
        if self.dry_run:
            d["dry_run"] = True
        if self.errors:
            d["errors"] = list(self.errors)
        return d
