"""GitLab API client with pagination and retry support."""

from __future__ import annotations

import base64
import logging
import time
import urllib.parse
from typing import Any

import requests

from gluebuddy.errors import RemoteShapeError
from gluebuddy.models import (
    API_V4,
    DEFAULT_MAX_RETRIES,
    EXTERNAL_PROVIDER,
    PER_PAGE,
    RETRY_BACKOFF_FACTOR,
    RETRYABLE_STATUS_CODES,
    AccessLevel,
    Group,
    Member,
    Project,
    ProtectedBranch,
    ProtectedTag,
    RemoteUser,
)
from gluebuddy.wire import (
    parse_group,
    parse_member,
    parse_project,
    parse_protected_branch,
    parse_protected_tag,
    parse_user,
    settings_to_wire,
    to_wire,
)

Ref = int | str


def encode(ref: Ref) -> str:
    """Encode a numeric id or full path for use in an API endpoint."""
    if isinstance(ref, int):
        return str(ref)
    return urllib.parse.quote(ref, safe="")


class GitLabClient:
    """
    Thin wrapper around GitLab REST API v4 with pagination support and retry logic.

    Only reads are retried on transient failures; every write is attempted once.
    """

    def __init__(self, base_url: str, token: str, max_retries: int = DEFAULT_MAX_RETRIES):
        self.base_url = base_url.rstrip("/")
        self.api_url = f"{self.base_url}{API_V4}"
        self.session = requests.Session()
        self.session.headers.update(
            {
                "PRIVATE-TOKEN": token,
                "Content-Type": "application/json",
            }
        )
        self.max_retries = max_retries
        self.logger = logging.getLogger("gluebuddy")

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Make an HTTP request, retrying reads on transient failures."""
        url = f"{self.api_url}{endpoint}"
        retries = self.max_retries if method.upper() == "GET" else 0
        last_exception: Exception | None = None

        for attempt in range(retries + 1):
            try:
                self.logger.debug(
                    f"{method.upper()} {url} {kwargs.get('params', '')} {kwargs.get('json', '')} "
                    f"(attempt {attempt + 1}/{retries + 1})"
                )
                resp = self.session.request(method, url, **kwargs)

                # Retry on rate limit or server errors
                if resp.status_code in RETRYABLE_STATUS_CODES and attempt < retries:
                    wait_time = self._calculate_backoff(resp, attempt)
                    self.logger.warning(f"Retryable error {resp.status_code}, waiting {wait_time:.1f}s before retry")
                    time.sleep(wait_time)
                    continue

                if resp.status_code >= 400 and resp.status_code != 404:
                    self.logger.error(f"API error {resp.status_code}: {resp.text[:500]}")
                resp.raise_for_status()
                return resp

            except requests.exceptions.ConnectionError as e:
                last_exception = e
                if attempt < retries:
                    wait_time = RETRY_BACKOFF_FACTOR * (2**attempt)
                    self.logger.warning(f"Connection error, retrying in {wait_time:.1f}s: {e}")
                    time.sleep(wait_time)
                    continue
                raise

        # Should not reach here, but safety net
        if last_exception:
            raise last_exception
        raise RuntimeError("Unexpected retry loop exit")

    def _calculate_backoff(self, resp: requests.Response, attempt: int) -> float:
        """Calculate backoff time, respecting Retry-After header for 429s."""
        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After")
            if retry_after:
                try:
                    return float(retry_after)
                except ValueError:
                    pass  # Fall through to exponential backoff
        return RETRY_BACKOFF_FACTOR * (2**attempt)

    def get(self, endpoint: str, params: dict | None = None) -> Any:
        return self._request("GET", endpoint, params=params).json()

    def get_optional(self, endpoint: str, params: dict | None = None) -> Any | None:
        """GET that maps a 404 to None."""
        try:
            return self.get(endpoint, params=params)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                return None
            raise

    def post(self, endpoint: str, data: dict | None = None) -> Any:
        return self._request("POST", endpoint, json=data).json()

    def put(self, endpoint: str, data: dict | None = None) -> Any:
        return self._request("PUT", endpoint, json=data).json()

    def delete(self, endpoint: str, params: dict | None = None) -> requests.Response:
        return self._request("DELETE", endpoint, params=params)

    def paginate(self, endpoint: str, params: dict | None = None) -> list[dict]:
        """Fetch all pages of a paginated endpoint."""
        params = dict(params or {})
        params.setdefault("per_page", PER_PAGE)
        page = 1
        results = []
        while True:
            params["page"] = page
            resp = self._request("GET", endpoint, params=params)
            data = resp.json()
            if not data:
                break
            results.extend(data)
            # Check if there are more pages
            total_pages = int(resp.headers.get("x-total-pages", page))
            if page >= total_pages:
                break
            page += 1
        return results

    # -- Groups --

    def get_group(self, group: Ref) -> Group:
        return parse_group(self.get(f"/groups/{encode(group)}"))

    def list_subgroups(self, group: Ref) -> list[Group]:
        subgroups = self.paginate(f"/groups/{encode(group)}/subgroups", params={"order_by": "path", "sort": "asc"})
        return [parse_group(g) for g in subgroups]

    def list_group_projects(self, group: Ref) -> list[Project]:
        projects = self.paginate(
            f"/groups/{encode(group)}/projects",
            params={"include_subgroups": False, "order_by": "path", "sort": "asc"},
        )
        return [parse_project(p) for p in projects]

    def edit_group(self, group: Ref, fields: dict[str, Any]) -> Any:
        return self.put(f"/groups/{encode(group)}", data=settings_to_wire(fields))

    # -- Memberships --

    def list_group_members(self, group: Ref) -> list[Member]:
        return [parse_member(m) for m in self.paginate(f"/groups/{encode(group)}/members")]

    def list_project_members(self, project: Ref) -> list[Member]:
        return [parse_member(m) for m in self.paginate(f"/projects/{encode(project)}/members")]

    def add_member(self, kind: str, unit: Ref, user_id: int, access_level: AccessLevel) -> Any:
        return self.post(
            f"/{kind}s/{encode(unit)}/members",
            data={"user_id": user_id, "access_level": to_wire(access_level)},
        )

    def edit_member(self, kind: str, unit: Ref, user_id: int, access_level: AccessLevel) -> Any:
        return self.put(f"/{kind}s/{encode(unit)}/members/{user_id}", data={"access_level": to_wire(access_level)})

    def remove_member(self, kind: str, unit: Ref, user_id: int) -> requests.Response:
        return self.delete(f"/{kind}s/{encode(unit)}/members/{user_id}")

    # -- Users --

    def find_users_by_external_uid(self, uid: str, provider: str = EXTERNAL_PROVIDER) -> list[RemoteUser]:
        users = self.get("/users", params={"extern_uid": uid, "provider": provider, "active": "true"})
        return [parse_user(u) for u in users]

    # -- Projects --

    def edit_project(self, project: Ref, fields: dict[str, Any]) -> Any:
        return self.put(f"/projects/{encode(project)}", data=settings_to_wire(fields))

    def get_file(self, project: Ref, file_path: str, ref: str) -> str | None:
        """Fetch and decode a repository file, or None when it does not exist."""
        payload = self.get_optional(
            f"/projects/{encode(project)}/repository/files/{encode(file_path)}", params={"ref": ref}
        )
        if payload is None:
            return None
        try:
            return base64.b64decode(payload["content"]).decode("utf-8")
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteShapeError("file", f"{file_path}: {e}") from e

    # -- Protection rules --

    def get_protected_tag(self, project: Ref, name: str) -> ProtectedTag | None:
        payload = self.get_optional(f"/projects/{encode(project)}/protected_tags/{encode(name)}")
        return None if payload is None else parse_protected_tag(payload)

    def protect_tag(self, project: Ref, name: str, create_access_level: AccessLevel) -> Any:
        return self.post(
            f"/projects/{encode(project)}/protected_tags",
            data={"name": name, "create_access_level": to_wire(create_access_level)},
        )

    def unprotect_tag(self, project: Ref, name: str) -> requests.Response:
        return self.delete(f"/projects/{encode(project)}/protected_tags/{encode(name)}")

    def get_protected_branch(self, project: Ref, name: str) -> ProtectedBranch | None:
        payload = self.get_optional(f"/projects/{encode(project)}/protected_branches/{encode(name)}")
        return None if payload is None else parse_protected_branch(payload)

    def protect_branch(
        self, project: Ref, name: str, push_access_level: AccessLevel, merge_access_level: AccessLevel
    ) -> Any:
        return self.post(
            f"/projects/{encode(project)}/protected_branches",
            data={
                "name": name,
                "push_access_level": to_wire(push_access_level),
                "merge_access_level": to_wire(merge_access_level),
            },
        )

    def unprotect_branch(self, project: Ref, name: str) -> requests.Response:
        return self.delete(f"/projects/{encode(project)}/protected_branches/{encode(name)}")
