"""Base class for reconcilers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gluebuddy.client import GitLabClient
    from gluebuddy.config import Config


class Reconciler:
    """
    Computes the corrective operations for one kind of remote state.

    Reconcilers only read; the returned operations carry the writes, which the
    executor performs (or not, when planning).
    """

    def __init__(self, client: GitLabClient, config: Config):
        self.client = client
        self.config = config
        self.logger = logging.getLogger("gluebuddy")
