"""Tests for API payload parsing and value mapping."""

import pytest

from conftest import make_group_payload, make_member_payload, make_project_payload
from gluebuddy.errors import RemoteShapeError
from gluebuddy.models import (
    AccessLevel,
    FeatureAccessLevel,
    FeatureAccessLevelPublic,
    GroupBranchProtection,
    MergeMethod,
)
from gluebuddy.wire import (
    access_level_from_int,
    parse_group,
    parse_member,
    parse_project,
    parse_protected_tag,
    settings_to_wire,
    to_wire,
)


class TestToWire:
    """Tests for domain to API value conversion."""

    def test_access_level_is_numeric(self):
        assert to_wire(AccessLevel.MINIMAL) == 5

    def test_fast_forward_is_ff(self):
        assert to_wire(MergeMethod.FAST_FORWARD) == "ff"

    def test_branch_protection_is_numeric(self):
        assert to_wire(GroupBranchProtection.FULL_AFTER_INITIAL_PUSH) == 4

    def test_feature_levels_are_strings(self):
        assert to_wire(FeatureAccessLevelPublic.PUBLIC) == "public"

    def test_settings_to_wire(self):
        fields = {"snippets_access_level": FeatureAccessLevel.DISABLED, "request_access_enabled": False}
        assert settings_to_wire(fields) == {"snippets_access_level": "disabled", "request_access_enabled": False}


class TestAccessLevels:
    """Tests for numeric access level mapping."""

    def test_known_levels(self):
        assert access_level_from_int(40) is AccessLevel.MAINTAINER

    def test_unknown_level_is_no_access(self):
        assert access_level_from_int(15) is AccessLevel.NO_ACCESS

    def test_levels_are_ordered(self):
        ordered = sorted(AccessLevel)
        assert ordered[0] is AccessLevel.NO_ACCESS
        assert ordered[-1] is AccessLevel.ADMIN
        assert AccessLevel.MINIMAL < AccessLevel.GUEST < AccessLevel.REPORTER < AccessLevel.DEVELOPER


class TestParsers:
    """Tests for record parsers."""

    def test_group(self):
        group = parse_group(make_group_payload(1, "archlinux", default_branch_protection=0))
        assert group.full_path == "archlinux"
        assert group.default_branch_protection is GroupBranchProtection.NONE

    @pytest.mark.parametrize("raw", [9, None])
    def test_group_unknown_branch_protection(self, raw):
        """Newer or null protection values do not abort parsing."""
        group = parse_group(make_group_payload(1, "archlinux", default_branch_protection=raw))
        assert group.default_branch_protection is None

    def test_group_without_branch_protection(self):
        payload = make_group_payload(1, "archlinux")
        del payload["default_branch_protection"]
        assert parse_group(payload).default_branch_protection is None

    def test_project_null_description(self):
        project = parse_project(make_project_payload(description=None))
        assert project.settings.description == ""

    def test_project_missing_default_branch(self):
        payload = make_project_payload()
        del payload["default_branch"]
        assert parse_project(payload).default_branch is None

    def test_member(self):
        member = parse_member(make_member_payload(9, "felixonmars", 50))
        assert member.access_level is AccessLevel.OWNER

    def test_protected_tag_multiple_entries(self):
        tag = parse_protected_tag(
            {
                "name": "*",
                "create_access_levels": [
                    {"access_level": 40, "access_level_description": "Maintainers"},
                    {"access_level": 30, "access_level_description": "Developers + Maintainers"},
                ],
            }
        )
        assert [e.access_level for e in tag.create_access_levels] == [AccessLevel.MAINTAINER, AccessLevel.DEVELOPER]


class TestRemoteShapeErrors:
    """Malformed payloads surface as RemoteShapeError."""

    def test_unknown_feature_level(self):
        with pytest.raises(RemoteShapeError, match="Unexpected project payload"):
            parse_project(make_project_payload(snippets_access_level="sometimes"))

    def test_unknown_merge_method(self):
        with pytest.raises(RemoteShapeError):
            parse_project(make_project_payload(merge_method="squash"))

    def test_missing_field(self):
        payload = make_member_payload(1, "alice", 30)
        del payload["access_level"]
        with pytest.raises(RemoteShapeError, match="KeyError"):
            parse_member(payload)
