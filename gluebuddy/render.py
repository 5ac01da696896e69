"""Plain-text rendering of entity blocks and line diffs."""

from __future__ import annotations

import sys
from difflib import SequenceMatcher
from enum import Enum
from typing import Any, Iterable, TextIO

from gluebuddy.models import SEPARATOR_WIDTH, AccessLevel


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, AccessLevel):
        return value.as_str()
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (list, tuple)):
        return ", ".join(format_value(v) for v in value)
    if value is None:
        return "none"
    return str(value)


def format_block(kind: str, fields: Iterable[tuple[str, Any]]) -> str:
    """
    Render an entity as a key=value block, e.g.::

        gitlab_member_access {
            namespace    = archlinux
            username     = alice
            access_level = minimal
        }
    """
    fields = list(fields)
    width = max((len(key) for key, _ in fields), default=0)
    lines = [f"{kind} {{"]
    lines.extend(f"\t{key.ljust(width)} = {format_value(value)}" for key, value in fields)
    lines.append("}")
    return "\n".join(lines)


def diff_lines(before: str, after: str) -> list[str]:
    """
    Line diff of two blocks without collapsing unchanged runs.

    Unchanged lines are prefixed with a space, removals with ``-``, additions with ``+``.
    """
    old = before.splitlines()
    new = after.splitlines()
    lines = []
    for tag, i1, i2, j1, j2 in SequenceMatcher(None, old, new, autojunk=False).get_opcodes():
        if tag == "equal":
            lines.extend(f" {line}" for line in old[i1:i2])
            continue
        if tag in ("replace", "delete"):
            lines.extend(f"-{line}" for line in old[i1:i2])
        if tag in ("replace", "insert"):
            lines.extend(f"+{line}" for line in new[j1:j2])
    return lines


def print_diff(before: str, after: str, file: TextIO | None = None) -> None:
    out = file or sys.stdout
    for line in diff_lines(before, after):
        print(line, file=out)


def format_separator() -> str:
    return "-" * SEPARATOR_WIDTH
