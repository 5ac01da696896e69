"""Keycloak directory adapter: which users hold which directory groups."""

from __future__ import annotations

import logging
from typing import Any

import requests

from gluebuddy.config import Config

ROOT_GROUPS = ("Arch Linux Staff", "External Contributors")
MEMBERS_PAGE_SIZE = 100


class KeycloakDirectory:
    """Reads group memberships from a Keycloak realm using client credentials."""

    def __init__(self, config: Config, session: requests.Session | None = None):
        self.url = config.keycloak_url.rstrip("/")
        self.realm = config.keycloak_realm
        self.client_id = config.keycloak_username
        self.client_secret = config.keycloak_password
        self.session = session or requests.Session()
        self.logger = logging.getLogger("gluebuddy")
        self._token: str | None = None

    @property
    def admin_url(self) -> str:
        return f"{self.url}/admin/realms/{self.realm}"

    def _acquire_token(self) -> str:
        self.logger.info(f"acquire API token for keycloak {self.url} using realm {self.realm}")
        resp = self.session.post(
            f"{self.url}/realms/{self.realm}/protocol/openid-connect/token",
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "client_credentials",
            },
        )
        resp.raise_for_status()
        return resp.json()["access_token"]

    def _get(self, endpoint: str, params: dict | None = None) -> Any:
        if self._token is None:
            self._token = self._acquire_token()
        resp = self.session.get(
            f"{self.admin_url}{endpoint}",
            params=params,
            headers={"Authorization": f"Bearer {self._token}"},
        )
        resp.raise_for_status()
        return resp.json()

    def _subgroups(self, group: dict) -> list[dict]:
        if group.get("subGroups"):
            return group["subGroups"]
        # Newer Keycloak releases only report a count in the group listing
        if group.get("subGroupCount"):
            return self._get(f"/groups/{group['id']}/children")
        return []

    def _group_members(self, group: dict) -> list[dict]:
        members: list[dict] = []
        first = 0
        while True:
            page = self._get(f"/groups/{group['id']}/members", params={"first": first, "max": MEMBERS_PAGE_SIZE})
            members.extend(page)
            if len(page) < MEMBERS_PAGE_SIZE:
                return members
            first += MEMBERS_PAGE_SIZE

    def list_identities_with_groups(self) -> dict[str, set[str]]:
        """Map each username to the set of directory group paths it belongs to."""
        groups = [g for g in self._get("/groups") if g["name"] in ROOT_GROUPS]

        # Root groups, their subgroups and one further level
        to_collect: list[dict] = []
        for group in groups:
            to_collect.append(group)
            for sub_group in self._subgroups(group):
                to_collect.append(sub_group)
                to_collect.extend(self._subgroups(sub_group))

        identities: dict[str, set[str]] = {}
        for group in to_collect:
            self.logger.info(f"collect members of group {group['name']} via {group['path']}")
            for user in self._group_members(group):
                self.logger.debug(f"group {group['name']} via {group['path']} user {user['username']}")
                identities.setdefault(user["username"], set()).add(group["path"])
        return identities
