"""
gluebuddy: keeps the Arch Linux GitLab hierarchy in line with the Keycloak directory.

Runs one full reconciliation pass per invocation, either as a non-mutating
plan or as an apply that performs the corrective operations.

Environment:
    GLUEBUDDY_GITLAB_TOKEN - GitLab access token (required)
    GLUEBUDDY_KEYCLOAK_*   - Keycloak URL, realm and client credentials (required)
"""

__version__ = "0.5.0"

from gluebuddy.cli import main  # noqa: E402

__all__ = ["main", "__version__"]
