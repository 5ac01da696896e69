"""Plan/apply execution of corrective operations and per-unit change accounting."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, NamedTuple, TextIO

import requests

from gluebuddy.models import ChangeKind, Mode, OperationResult
from gluebuddy.render import format_separator, print_diff


class Mutation(NamedTuple):
    """One remote write; ``description`` names it in error output."""

    description: str
    call: Callable[[], Any]


@dataclass
class Change:
    """A corrective operation: the rendered before/after state and the writes that realise it."""

    kind: ChangeKind
    unit: str
    entity: str
    before: str
    after: str
    mutations: list[Mutation] = field(default_factory=list)


@dataclass
class PlanSummary:
    """Add/change/destroy tally for one reconciled unit."""

    name: str
    add: int = 0
    change: int = 0
    destroy: int = 0
    failed: int = 0

    def record(self, kind: ChangeKind) -> None:
        if kind is ChangeKind.ADD:
            self.add += 1
        elif kind is ChangeKind.CHANGE:
            self.change += 1
        else:
            self.destroy += 1

    def __str__(self) -> str:
        if self.add == 0 and self.change == 0 and self.destroy == 0 and self.failed == 0:
            return f"No changes. {self.name} is up-to-date."
        line = f"Plan: {self.add} to add, {self.change} to change, {self.destroy} to destroy."
        if self.failed:
            line += f" {self.failed} failed."
        return f"{self.name} has changed!\n{line}"


class Executor:
    """
    Routes every corrective operation through diff rendering and, in apply mode, the remote writes.

    The mode is fixed for the lifetime of the executor. Plan mode never calls a mutation.
    """

    def __init__(self, mode: Mode, out: TextIO | None = None):
        self.mode = mode
        self.out = out
        self.logger = logging.getLogger("gluebuddy")
        self.results: list[OperationResult] = []

    @property
    def dry_run(self) -> bool:
        return self.mode is Mode.PLAN

    @property
    def _out(self) -> TextIO:
        return self.out or sys.stdout

    @contextmanager
    def unit(self, name: str) -> Iterator[PlanSummary]:
        """Open a reconciled unit; its summary is printed when the block completes."""
        summary = PlanSummary(name)
        yield summary
        self.report(summary)

    def report(self, summary: PlanSummary) -> None:
        print(summary, file=self._out)
        print(format_separator(), file=self._out)

    def execute(self, change: Change, summary: PlanSummary) -> bool:
        """Render the change, perform it when applying, and count it if it succeeded."""
        print_diff(change.before, change.after, file=self._out)

        errors: list[str] = []
        if self.mode is Mode.APPLY:
            # Every write is attempted even if an earlier one failed
            for mutation in change.mutations:
                try:
                    mutation.call()
                except requests.RequestException as e:
                    self.logger.error(f"Failed to {mutation.description} for {change.unit}: {e}")
                    errors.append(f"{mutation.description}: {e}")

        if errors:
            summary.failed += 1
            self._record(change, "error", errors)
            return False

        summary.record(change.kind)
        self._record(change, "planned" if self.dry_run else "applied")
        return True

    def _record(self, change: Change, action: str, errors: list[str] | None = None) -> OperationResult:
        result = OperationResult(
            unit=change.unit,
            kind=change.kind.value,
            entity=change.entity,
            action=action,
            detail="; ".join(m.description for m in change.mutations),
            dry_run=self.dry_run,
            errors=errors or [],
        )
        self.results.append(result)

        icon = {"applied": "✓", "planned": "○", "error": "✗"}.get(action, "?")
        level = logging.ERROR if action == "error" else logging.INFO
        prefix = "[PLAN] " if result.dry_run else ""
        self.logger.log(
            level,
            f"{prefix}{icon} [{result.kind}] {result.unit}: {result.entity} → {action}",
            extra={"operation_result": result},
        )
        return result
