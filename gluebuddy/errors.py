"""gluebuddy exception classes."""


class GlueBuddyError(Exception):
    """Base exception for all fatal gluebuddy errors."""


class ConfigError(GlueBuddyError):
    """Raised when required configuration is missing or invalid."""


class AmbiguousIdentityError(GlueBuddyError):
    """Raised when one directory identity maps to more than one remote user."""

    def __init__(self, username: str, matches: int) -> None:
        self.username = username
        self.matches = matches
        super().__init__(f"Somehow got {matches} GitLab user results for {username}")


class RemoteShapeError(GlueBuddyError):
    """Raised when a remote response does not have the expected shape."""

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        super().__init__(f"Unexpected {kind} payload: {message}")
