"""Shared test fixtures for gluebuddy tests."""

import sys
from pathlib import Path
from typing import Any

import pytest
import requests

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from gluebuddy.client import GitLabClient
from gluebuddy.config import Config
from gluebuddy.models import AccessLevel, Member, ProtectedAccess, ProtectedBranch, ProtectedTag
from gluebuddy.state import Identity, Snapshot
from gluebuddy.wire import parse_group, parse_member, parse_project

# Constants for use in tests - pytest makes conftest.py fixtures available,
# but these constants need to be imported directly from tests
MOCK_GITLAB_URL = "https://gitlab.example.com"
MOCK_API_URL = f"{MOCK_GITLAB_URL}/api/v4"
MOCK_KEYCLOAK_URL = "https://accounts.example.com"

STAFF = "/Arch Linux Staff"
DEVOPS = "/Arch Linux Staff/DevOps"
CORE_PM = "/Arch Linux Staff/Package Maintainer Team/Core Package Maintainers"
BUG_WRANGLERS = "/Arch Linux Staff/Bug Wranglers"
EXTERNAL = "/External Contributors"


def make_project_payload(**overrides) -> dict[str, Any]:
    """Project API payload that satisfies the packaging profile apart from its description."""
    payload = {
        "id": 123,
        "name": "pacman",
        "name_with_namespace": "Arch Linux / Packaging / Packages / pacman",
        "path": "pacman",
        "path_with_namespace": "archlinux/packaging/packages/pacman",
        "default_branch": "main",
        "description": "",
        "request_access_enabled": False,
        "issues_access_level": "enabled",
        "merge_requests_access_level": "enabled",
        "merge_method": "ff",
        "only_allow_merge_if_all_discussions_are_resolved": True,
        "builds_access_level": "disabled",
        "container_registry_access_level": "disabled",
        "packages_enabled": False,
        "snippets_access_level": "disabled",
        "lfs_enabled": False,
        "service_desk_enabled": False,
        "pages_access_level": "disabled",
        "requirements_access_level": "disabled",
        "releases_access_level": "disabled",
        "environments_access_level": "disabled",
        "feature_flags_access_level": "disabled",
        "infrastructure_access_level": "disabled",
        "monitor_access_level": "disabled",
    }
    payload.update(overrides)
    return payload


def make_group_payload(id: int, full_path: str, **overrides) -> dict[str, Any]:
    name = full_path.rsplit("/", 1)[-1]
    payload = {
        "id": id,
        "name": name,
        "full_name": full_path.replace("/", " / "),
        "path": name,
        "full_path": full_path,
        "request_access_enabled": False,
        "default_branch_protection": 2,
    }
    payload.update(overrides)
    return payload


def make_member_payload(id: int, username: str, access_level: int) -> dict[str, Any]:
    return {"id": id, "username": username, "name": username.capitalize(), "access_level": access_level}


PACMAN_SRCINFO = "pkgbase = pacman\n\tpkgdesc = A library-based package manager\n\npkgname = pacman\n"
PACMAN_DESCRIPTION = "A library-based package manager\n\npackages: pacman"


class FakeGitLab:
    """
    In-memory GitLab serving the reads a reconciliation pass makes and recording every write.

    Starts out converged with the ``snapshot`` fixture; tests add drift by editing ``members``
    or the protection rules. Writes named in ``fail_on`` raise like a rejected API call.
    """

    def __init__(self):
        root = parse_group(make_group_payload(1, "archlinux"))
        packages = parse_group(make_group_payload(2, "archlinux/packaging/packages"))
        self.groups = {"archlinux": root}
        self.subgroups = {1: [packages], 2: []}
        self.projects = {1: [], 2: [parse_project(make_project_payload(description=PACMAN_DESCRIPTION))]}
        self.files = {(123, ".SRCINFO"): PACMAN_SRCINFO}
        developer = (ProtectedAccess(AccessLevel.DEVELOPER, "Developers + Maintainers"),)
        self.protected_tags = {(123, "*"): ProtectedTag("*", developer)}
        self.protected_branches = {(123, "main"): ProtectedBranch("main", developer, developer)}

        minimal = [member(1, "anthraxx", 5), member(2, "svenstaro", 5), member(4, "wrangler", 5)]
        self.members: dict[int | str, list[Member]] = {
            1: minimal,
            "archlinux": minimal,
            "archlinux/teams/staff": [member(1, "anthraxx", 20), member(2, "svenstaro", 20), member(4, "wrangler", 20)],
            "archlinux/teams/devops": [member(1, "anthraxx", 30)],
            "archlinux/teams/package-maintainer-team/core-package-maintainers": [member(2, "svenstaro", 30)],
            "archlinux/teams/bug-wranglers": [member(4, "wrangler", 20)],
            "archlinux/infrastructure": [member(900, "archbot", 50)],
        }
        self.fail_on: set[str] = set()
        self.writes: list[tuple] = []

    # reads

    def get_group(self, ref):
        return self.groups[ref]

    def list_subgroups(self, group_id):
        return list(self.subgroups[group_id])

    def list_group_projects(self, group_id):
        return list(self.projects[group_id])

    def list_group_members(self, ref):
        return list(self.members.get(ref, []))

    def list_project_members(self, ref):
        return list(self.members.get(ref, []))

    def get_file(self, project, file_path, ref):
        return self.files.get((project, file_path))

    def get_protected_tag(self, project, name):
        return self.protected_tags.get((project, name))

    def get_protected_branch(self, project, name):
        return self.protected_branches.get((project, name))

    # writes

    def _write(self, name, *args):
        self.writes.append((name, *args))
        if name in self.fail_on:
            raise requests.HTTPError(f"403 Forbidden: {name}")

    def add_member(self, *args):
        self._write("add_member", *args)

    def edit_member(self, *args):
        self._write("edit_member", *args)

    def remove_member(self, *args):
        self._write("remove_member", *args)

    def edit_project(self, *args):
        self._write("edit_project", *args)

    def edit_group(self, *args):
        self._write("edit_group", *args)

    def protect_tag(self, *args):
        self._write("protect_tag", *args)

    def unprotect_tag(self, *args):
        self._write("unprotect_tag", *args)

    def protect_branch(self, *args):
        self._write("protect_branch", *args)

    def unprotect_branch(self, *args):
        self._write("unprotect_branch", *args)


def member(id: int, username: str, access_level: int) -> Member:
    return parse_member(make_member_payload(id, username, access_level))


@pytest.fixture
def fake_gitlab() -> FakeGitLab:
    return FakeGitLab()


@pytest.fixture
def config() -> Config:
    return Config(
        gitlab_token="test-token",
        keycloak_url=MOCK_KEYCLOAK_URL,
        keycloak_realm="archlinux",
        keycloak_username="gluebuddy",
        keycloak_password="secret",
        gitlab_url=MOCK_GITLAB_URL,
        bot_users=("renovate",),
        max_retries=0,
    )


@pytest.fixture
def mock_client() -> GitLabClient:
    """GitLabClient pointing at mock server."""
    return GitLabClient(MOCK_GITLAB_URL, "test-token", max_retries=0)


@pytest.fixture
def snapshot() -> Snapshot:
    """Directory state: two staff (one unlinked), a devops, a core package maintainer and an external contributor."""
    return Snapshot(
        [
            Identity("anthraxx", frozenset({STAFF, DEVOPS}), platform_id=1),
            Identity("svenstaro", frozenset({STAFF, CORE_PM}), platform_id=2),
            Identity("alice", frozenset({STAFF}), platform_id=None),
            Identity("wrangler", frozenset({STAFF, BUG_WRANGLERS}), platform_id=4),
            Identity("contributor", frozenset({EXTERNAL}), platform_id=5),
        ]
    )


@pytest.fixture
def packaging_project():
    return parse_project(make_project_payload())


@pytest.fixture
def generic_project():
    return parse_project(
        make_project_payload(
            id=200,
            name="infrastructure",
            name_with_namespace="Arch Linux / infrastructure",
            path="infrastructure",
            path_with_namespace="archlinux/infrastructure",
            description="Arch Linux infrastructure",
        )
    )
