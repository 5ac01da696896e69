"""CLI entry point for gluebuddy."""

from __future__ import annotations

import argparse
import logging
import sys

import requests

from gluebuddy import __version__
from gluebuddy.client import GitLabClient
from gluebuddy.completions import SHELLS, completion_script
from gluebuddy.config import Config
from gluebuddy.errors import ConfigError, GlueBuddyError
from gluebuddy.executor import Executor
from gluebuddy.glue import get_component_registry
from gluebuddy.keycloak import KeycloakDirectory
from gluebuddy.logging_utils import setup_logging
from gluebuddy.models import Mode
from gluebuddy.state import gather

PROG = "gluebuddy"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Keeps Arch Linux GitLab memberships, protections and project settings "
        "in line with the Keycloak directory.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
    GLUEBUDDY_GITLAB_TOKEN       GitLab token (required)
    GLUEBUDDY_GITLAB_URL         GitLab instance URL (default: https://gitlab.archlinux.org)
    GLUEBUDDY_GITLAB_BOT_USERS   Comma separated accounts never touched
    GLUEBUDDY_KEYCLOAK_URL       Keycloak base URL (required)
    GLUEBUDDY_KEYCLOAK_REALM     Keycloak realm (required)
    GLUEBUDDY_KEYCLOAK_USERNAME  Keycloak client id (required)
    GLUEBUDDY_KEYCLOAK_PASSWORD  Keycloak client secret (required)

Examples:
    # Show what would change
    gluebuddy plan

    # Enforce the policy
    gluebuddy apply

    # Only the GitLab module, with debug logging
    gluebuddy -v gitlab plan
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--verbose", "-v", action="count", default=0, help="Verbose logging, specify twice for more"
    )
    parser.add_argument("--json", action="store_true", dest="json_output", help="Emit logs as JSON lines (to stderr)")
    parser.add_argument(
        "--gitlab-url",
        default=None,
        help="GitLab instance URL (default: from GLUEBUDDY_GITLAB_URL env or https://gitlab.archlinux.org)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")
    subparsers.add_parser("plan", help="Generate and show an execution plan")
    subparsers.add_parser("apply", help="Builds or changes infrastructure")

    for name in sorted(get_component_registry()):
        module = subparsers.add_parser(name, help=f"{name.capitalize()} module commands")
        actions = module.add_subparsers(dest="action", required=True)
        actions.add_parser("plan", help="Generate and show an execution plan")
        actions.add_parser("apply", help="Builds or changes infrastructure")

    completions = subparsers.add_parser("completions", help="Generate shell completions")
    completions.add_argument("shell", choices=SHELLS, help="Target shell")

    return parser


def log_error_chain(logger: logging.Logger, err: BaseException) -> None:
    logger.error(f"Error: {err}")
    cause = err.__cause__ or err.__context__
    while cause is not None:
        logger.error(f"Caused by: {cause}")
        cause = cause.__cause__ or cause.__context__


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "completions":
        print(completion_script(args.shell, PROG, sorted(get_component_registry())), end="")
        return 0

    logger = setup_logging(verbosity=args.verbose, json_mode=args.json_output)

    registry = get_component_registry()
    if args.command in registry:
        mode = Mode(args.action)
        components = [registry[args.command]]
    else:
        mode = Mode(args.command)
        components = [registry[name] for name in sorted(registry)]

    try:
        config = Config.from_env(gitlab_url=args.gitlab_url)
    except ConfigError as e:
        logger.error(f"Error: {e}")
        return 1

    if mode is Mode.PLAN:
        logger.info("PLAN MODE - no changes will be made")

    client = GitLabClient(base_url=config.gitlab_url, token=config.gitlab_token, max_retries=config.max_retries)
    executor = Executor(mode)

    try:
        snapshot = gather(KeycloakDirectory(config), client, config)
        for component_cls in components:
            component_cls(client=client, config=config, snapshot=snapshot, executor=executor).run()
    except (GlueBuddyError, requests.RequestException) as e:
        log_error_chain(logger, e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    # Summary
    total = len(executor.results)
    done = sum(1 for r in executor.results if r.action in ("applied", "planned"))
    errors = sum(1 for r in executor.results if r.action == "error")

    logger.info(
        f"Done: {total} operations, {done} {'planned' if mode is Mode.PLAN else 'applied'}, {errors} errors"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
