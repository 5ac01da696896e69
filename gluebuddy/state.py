"""
Desired state: directory identities, their roles, and the frozen run snapshot.

The snapshot is produced once by ``gather`` and only read afterwards, so the
reconciliation phase needs no locking.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping, Protocol

from gluebuddy.errors import AmbiguousIdentityError
from gluebuddy.models import PackageMaintainerRole

if TYPE_CHECKING:
    from gluebuddy.client import GitLabClient
    from gluebuddy.config import Config

logger = logging.getLogger("gluebuddy")

STAFF_PATH = "/Arch Linux Staff"
DEVOPS_PATH = f"{STAFF_PATH}/DevOps"
BUG_WRANGLERS_PATH = f"{STAFF_PATH}/Bug Wranglers"
PACKAGE_MAINTAINER_TEAM_PATH = f"{STAFF_PATH}/Package Maintainer Team"
EXTERNAL_CONTRIBUTORS_PATH = "/External Contributors"


class Role(Enum):
    STAFF = "staff"
    DEVOPS = "devops"
    BUG_WRANGLER = "bug-wrangler"
    EXTERNAL_CONTRIBUTOR = "external-contributor"


RoleLike = Role | PackageMaintainerRole


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(f"{prefix}/")


def roles_from_groups(groups: Iterable[str]) -> frozenset[RoleLike]:
    """Derive every role held from a set of directory group paths."""
    roles: set[RoleLike] = set()
    for path in groups:
        if _under(path, STAFF_PATH):
            roles.add(Role.STAFF)
        if _under(path, DEVOPS_PATH):
            roles.add(Role.DEVOPS)
        if _under(path, BUG_WRANGLERS_PATH):
            roles.add(Role.BUG_WRANGLER)
        if _under(path, EXTERNAL_CONTRIBUTORS_PATH):
            roles.add(Role.EXTERNAL_CONTRIBUTOR)
        for tier in PackageMaintainerRole:
            if _under(path, f"{PACKAGE_MAINTAINER_TEAM_PATH}/{tier.label}"):
                roles.add(tier)
    return frozenset(roles)


@dataclass(frozen=True)
class Identity:
    """A directory user, optionally correlated to a GitLab user id."""

    username: str
    groups: frozenset[str] = frozenset()
    platform_id: int | None = None
    roles: frozenset[RoleLike] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "roles", roles_from_groups(self.groups))

    def has_role(self, role: RoleLike) -> bool:
        return role in self.roles


class Snapshot:
    """Immutable view over all identities gathered for one run."""

    def __init__(self, identities: Iterable[Identity]):
        by_username = {identity.username: identity for identity in identities}
        self._identities = MappingProxyType(dict(sorted(by_username.items())))
        self._by_platform_id = MappingProxyType(
            {i.platform_id: i for i in self._identities.values() if i.platform_id is not None}
        )

    def __len__(self) -> int:
        return len(self._identities)

    @property
    def identities(self) -> Mapping[str, Identity]:
        return self._identities

    def identity(self, username: str) -> Identity | None:
        return self._identities.get(username)

    def role_set(self, *roles: RoleLike) -> tuple[Identity, ...]:
        """Identities holding any of the given roles, ordered by username."""
        return tuple(i for i in self._identities.values() if any(i.has_role(r) for r in roles))

    def identity_from_platform_id(self, platform_id: int, *roles: RoleLike) -> Identity | None:
        """Resolve a GitLab user id back to an identity, optionally requiring one of ``roles``."""
        identity = self._by_platform_id.get(platform_id)
        if identity is None:
            return None
        if roles and not any(identity.has_role(r) for r in roles):
            return None
        return identity


class DirectoryAdapter(Protocol):
    def list_identities_with_groups(self) -> dict[str, set[str]]: ...


def resolve_platform_id(client: GitLabClient, username: str, provider: str) -> int | None:
    """Look up the GitLab user linked to a directory username via the external provider."""
    users = client.find_users_by_external_uid(username, provider=provider)
    if not users:
        logger.warning(f"Failed to query GitLab user for {username}")
        return None
    if len(users) > 1:
        raise AmbiguousIdentityError(username, len(users))

    user = users[0]
    logger.debug(f"Successfully retrieved user {user.username} to GitLab id {user.id}")
    if user.username != username:
        logger.error(f"Username mismatch between keycloak and GitLab: {username} vs {user.username}")
    return user.id


def gather(directory: DirectoryAdapter, client: GitLabClient, config: Config) -> Snapshot:
    """Collect directory memberships and correlate every identity with GitLab, then freeze."""
    logger.info("Gathering Keycloak state")
    memberships = directory.list_identities_with_groups()

    logger.info("Gathering GitLab state")
    with ThreadPoolExecutor(max_workers=max(1, config.max_workers)) as pool:
        futures = {
            username: pool.submit(resolve_platform_id, client, username, config.external_provider)
            for username in sorted(memberships)
        }

    identities = [
        Identity(username=username, groups=frozenset(memberships[username]), platform_id=future.result())
        for username, future in futures.items()
    ]
    snapshot = Snapshot(identities)
    resolved = sum(1 for i in identities if i.platform_id is not None)
    logger.info(f"Gathered {len(snapshot)} identities, {resolved} linked to GitLab")
    return snapshot
