"""Run configuration, built once from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

from gluebuddy.errors import ConfigError
from gluebuddy.models import (
    DEFAULT_GITLAB_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_WORKERS,
    EXTERNAL_PROVIDER,
    GITLAB_BOT,
    GITLAB_OWNER,
)

REQUIRED_VARIABLES = (
    "GLUEBUDDY_GITLAB_TOKEN",
    "GLUEBUDDY_KEYCLOAK_URL",
    "GLUEBUDDY_KEYCLOAK_REALM",
    "GLUEBUDDY_KEYCLOAK_USERNAME",
    "GLUEBUDDY_KEYCLOAK_PASSWORD",
)


@dataclass(frozen=True)
class Config:
    gitlab_token: str
    keycloak_url: str
    keycloak_realm: str
    keycloak_username: str
    keycloak_password: str
    gitlab_url: str = DEFAULT_GITLAB_URL
    bot_users: tuple[str, ...] = ()
    max_retries: int = DEFAULT_MAX_RETRIES
    max_workers: int = DEFAULT_MAX_WORKERS
    external_provider: str = EXTERNAL_PROVIDER
    excluded_users: frozenset[str] = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "excluded_users", frozenset({GITLAB_OWNER, GITLAB_BOT, *self.bot_users}))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, gitlab_url: str | None = None) -> Config:
        """
        Build the configuration from environment variables.

        All missing required variables are reported at once.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_VARIABLES if not env.get(name)]
        if missing:
            raise ConfigError(f"Missing env var(s): {', '.join(missing)}")

        bot_users = tuple(name.strip() for name in env.get("GLUEBUDDY_GITLAB_BOT_USERS", "").split(",") if name.strip())

        return cls(
            gitlab_token=env["GLUEBUDDY_GITLAB_TOKEN"],
            keycloak_url=env["GLUEBUDDY_KEYCLOAK_URL"].rstrip("/"),
            keycloak_realm=env["GLUEBUDDY_KEYCLOAK_REALM"],
            keycloak_username=env["GLUEBUDDY_KEYCLOAK_USERNAME"],
            keycloak_password=env["GLUEBUDDY_KEYCLOAK_PASSWORD"],
            gitlab_url=gitlab_url or env.get("GLUEBUDDY_GITLAB_URL") or DEFAULT_GITLAB_URL,
            bot_users=bot_users,
            max_retries=_int_setting(env, "GLUEBUDDY_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            max_workers=_int_setting(env, "GLUEBUDDY_MAX_WORKERS", DEFAULT_MAX_WORKERS),
        )

    def is_excluded(self, username: str) -> bool:
        """Owner, bot and configured service accounts are never reconciled."""
        return username in self.excluded_users


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value
