"""Explicit work-list traversal of the GitLab group hierarchy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

from gluebuddy.models import Group, Member, Project

if TYPE_CHECKING:
    from gluebuddy.client import GitLabClient


@dataclass(frozen=True)
class VisitedNode:
    group: Group
    members: list[Member]
    subgroups: list[Group]
    projects: list[Project]


def walk(client: GitLabClient, root_path: str) -> Iterator[VisitedNode]:
    """
    Yield every group below and including ``root_path`` with its freshly fetched state.

    Groups are visited depth-first in path order. Each group is visited once
    as long as the hierarchy is a tree; a group shared by two parents would be
    visited (and reconciled) twice, which is redundant but harmless.
    """
    logger = logging.getLogger("gluebuddy")

    to_visit = [client.get_group(root_path)]
    while to_visit:
        group = to_visit.pop()
        logger.debug(f"Visiting group {group.full_path}")

        subgroups = client.list_subgroups(group.id)
        # Reversed so that the stack pops siblings in ascending path order
        to_visit.extend(sorted(subgroups, key=lambda g: g.full_path, reverse=True))

        yield VisitedNode(
            group=group,
            members=client.list_group_members(group.id),
            subgroups=subgroups,
            projects=client.list_group_projects(group.id),
        )
