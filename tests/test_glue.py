"""Tests for the GitLab component's full reconciliation pass."""

import io
from collections import Counter

import pytest

from conftest import FakeGitLab, member
from gluebuddy.executor import Executor
from gluebuddy.glue import GitLabGlue, get_component_registry
from gluebuddy.models import AccessLevel, Mode, ProtectedAccess, ProtectedTag

PACMAN = "Arch Linux / Packaging / Packages / pacman"

UNIT_ORDER = [
    "GitLab 'archlinux' group members",
    "GitLab 'archlinux' group settings",
    "GitLab 'archlinux / packaging / packages' group members",
    "GitLab 'archlinux/packaging/packages' group settings",
    f"GitLab '{PACMAN}' project settings",
    f"GitLab '{PACMAN}' project members",
    f"GitLab '{PACMAN}' protected tags",
    f"GitLab '{PACMAN}' protected branches",
    "GitLab 'Arch Linux' group members",
    "GitLab 'Arch Linux/Teams/Staff' group members",
    "GitLab 'Arch Linux/Teams/DevOps' group members",
    "GitLab 'Arch Linux/Teams/Package Maintainer Team/Core Package Maintainers' group members",
    "GitLab 'Arch Linux/Teams/Package Maintainer Team/Junior Core Package Maintainers' group members",
    "GitLab 'Arch Linux/Teams/Package Maintainer Team/Package Maintainers' group members",
    "GitLab 'Arch Linux/Teams/Package Maintainer Team/Junior Package Maintainers' group members",
    "GitLab 'Arch Linux/Teams/Bug Wranglers' group members",
    "GitLab 'Arch Linux/Infrastructure' project members",
]


def run(fake: FakeGitLab, config, snapshot, mode: Mode) -> tuple[Executor, str]:
    out = io.StringIO()
    executor = Executor(mode, out=out)
    GitLabGlue(client=fake, config=config, snapshot=snapshot, executor=executor).run()
    return executor, out.getvalue()


def unit_names(output: str) -> list[str]:
    names = []
    for line in output.splitlines():
        if line.startswith("No changes. "):
            names.append(line[len("No changes. ") : -len(" is up-to-date.")])
        elif line.endswith(" has changed!"):
            names.append(line[: -len(" has changed!")])
    return names


def test_registered():
    assert get_component_registry()["gitlab"] is GitLabGlue


class TestConverged:
    """A converged hierarchy produces no operations."""

    def test_no_operations(self, fake_gitlab, config, snapshot):
        executor, output = run(fake_gitlab, config, snapshot, Mode.APPLY)

        assert executor.results == []
        assert fake_gitlab.writes == []
        assert "has changed!" not in output

    def test_unit_order(self, fake_gitlab, config, snapshot):
        _, output = run(fake_gitlab, config, snapshot, Mode.PLAN)
        assert unit_names(output) == UNIT_ORDER

    def test_apply_twice_is_idempotent(self, fake_gitlab, config, snapshot):
        first, _ = run(fake_gitlab, config, snapshot, Mode.APPLY)
        second, _ = run(fake_gitlab, config, snapshot, Mode.APPLY)
        assert first.results == second.results == []


class TestDrift:
    """Drift in the hierarchy yields the matching corrective operations."""

    def test_outsider_removed_from_root(self, fake_gitlab, config, snapshot):
        fake_gitlab.members[1].append(member(66, "mallory", 30))

        executor, output = run(fake_gitlab, config, snapshot, Mode.PLAN)

        destroyed = [(r.unit, r.entity) for r in executor.results if r.kind == "destroy"]
        # Once from the hierarchy walk, once from the exact root group pass
        assert destroyed == [
            ("archlinux", "gitlab_member_access mallory"),
            ("archlinux", "gitlab_member_access mallory"),
        ]
        assert fake_gitlab.writes == []
        assert "GitLab 'Arch Linux' group members has changed!\nPlan: 0 to add, 0 to change, 1 to destroy." in output

    def test_maintainer_capped_on_project(self, fake_gitlab, config, snapshot):
        fake_gitlab.members[123] = [member(2, "svenstaro", 40), member(5, "contributor", 30)]

        run(fake_gitlab, config, snapshot, Mode.APPLY)

        assert fake_gitlab.writes == [("edit_member", "project", 123, 2, AccessLevel.DEVELOPER)]

    def test_staff_missing_from_team(self, fake_gitlab, config, snapshot):
        fake_gitlab.members["archlinux/teams/staff"] = [member(1, "anthraxx", 20)]

        run(fake_gitlab, config, snapshot, Mode.APPLY)

        assert fake_gitlab.writes == [
            ("add_member", "group", "archlinux/teams/staff", 2, AccessLevel.REPORTER),
            ("add_member", "group", "archlinux/teams/staff", 4, AccessLevel.REPORTER),
        ]

    def test_tag_rule_replaced(self, fake_gitlab, config, snapshot):
        fake_gitlab.protected_tags[(123, "*")] = ProtectedTag(
            "*", (ProtectedAccess(AccessLevel.DEVELOPER), ProtectedAccess(AccessLevel.MAINTAINER))
        )

        run(fake_gitlab, config, snapshot, Mode.APPLY)

        assert fake_gitlab.writes == [
            ("unprotect_tag", 123, "*"),
            ("protect_tag", 123, "*", AccessLevel.DEVELOPER),
        ]

    def test_missing_branch_rule_added(self, fake_gitlab, config, snapshot):
        del fake_gitlab.protected_branches[(123, "main")]

        run(fake_gitlab, config, snapshot, Mode.APPLY)

        assert fake_gitlab.writes == [
            ("protect_branch", 123, "main", AccessLevel.DEVELOPER, AccessLevel.DEVELOPER),
        ]

    def test_infrastructure_members_removed(self, fake_gitlab, config, snapshot):
        fake_gitlab.members["archlinux/infrastructure"].append(member(1, "anthraxx", 40))

        run(fake_gitlab, config, snapshot, Mode.APPLY)

        assert fake_gitlab.writes == [("remove_member", "project", "archlinux/infrastructure", 1)]

    def test_unlinked_staff_not_added_to_root(self, fake_gitlab, config, snapshot):
        """alice has no GitLab account, so the root group pass has nothing to add."""
        _, output = run(fake_gitlab, config, snapshot, Mode.PLAN)
        assert "No changes. GitLab 'Arch Linux' group members is up-to-date." in output



def drift(fake: FakeGitLab) -> FakeGitLab:
    fake.members[1].append(member(66, "mallory", 30))
    fake.members[123] = [member(2, "svenstaro", 40), member(5, "contributor", 30)]
    fake.members["archlinux/teams/staff"] = [member(1, "anthraxx", 20)]
    fake.protected_tags[(123, "*")] = ProtectedTag(
        "*", (ProtectedAccess(AccessLevel.DEVELOPER), ProtectedAccess(AccessLevel.MAINTAINER))
    )
    return fake


class TestPlanMatchesApply:
    """Applying performs exactly the operations a plan of the same state lists."""

    def test_same_operations(self, config, snapshot):
        planned, _ = run(drift(FakeGitLab()), config, snapshot, Mode.PLAN)
        applied_fake = drift(FakeGitLab())
        applied, _ = run(applied_fake, config, snapshot, Mode.APPLY)

        def operations(executor):
            return {(r.unit, r.kind, r.entity) for r in executor.results}

        assert operations(planned) == operations(applied)
        assert len(planned.results) == len(applied.results) == 6
        assert [r.action for r in applied.results] == ["applied"] * 6
        assert Counter(applied_fake.writes) == Counter(
            [
                ("remove_member", "group", 1, 66),
                ("remove_member", "group", "archlinux", 66),
                ("edit_member", "project", 123, 2, AccessLevel.DEVELOPER),
                ("unprotect_tag", 123, "*"),
                ("protect_tag", 123, "*", AccessLevel.DEVELOPER),
                ("add_member", "group", "archlinux/teams/staff", 2, AccessLevel.REPORTER),
                ("add_member", "group", "archlinux/teams/staff", 4, AccessLevel.REPORTER),
            ]
        )


class TestFailureTolerance:
    """A rejected write is reported and the pass continues."""

    def test_pass_continues_after_failure(self, fake_gitlab, config, snapshot):
        fake_gitlab.members["archlinux/teams/devops"] = []
        fake_gitlab.members["archlinux/infrastructure"].append(member(1, "anthraxx", 40))
        fake_gitlab.fail_on.add("add_member")

        executor, _ = run(fake_gitlab, config, snapshot, Mode.APPLY)

        assert [r.action for r in executor.results] == ["error", "applied"]
        assert [w[0] for w in fake_gitlab.writes] == ["add_member", "remove_member"]

    def test_fatal_read_error_propagates(self, fake_gitlab, config, snapshot):
        del fake_gitlab.groups["archlinux"]

        with pytest.raises(KeyError):
            run(fake_gitlab, config, snapshot, Mode.PLAN)
