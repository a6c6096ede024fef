"""Run report: append-only record of what a release actually did.

Registry publishes are irreversible, so the report always lists every unit
of the run (published, failed, or skipped) and tells an operator exactly
how far a release got.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Literal

from pubseq.core.errors import ErrorCode
from pubseq.platform.files import atomic_write_text

__all__ = [
    "UnitStatus",
    "RunStatus",
    "UnitOutcome",
    "RunReport",
    "ReportError",
]

FailedPhase = Literal["build", "authenticate", "publish"]


class UnitStatus(StrEnum):
    PUBLISHED = "published"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunStatus(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.SUCCEEDED, RunStatus.FAILED, RunStatus.ABORTED)


_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.NOT_STARTED: frozenset({RunStatus.RUNNING}),
    RunStatus.RUNNING: frozenset({RunStatus.SUCCEEDED, RunStatus.FAILED, RunStatus.ABORTED}),
    RunStatus.SUCCEEDED: frozenset(),
    RunStatus.FAILED: frozenset(),
    RunStatus.ABORTED: frozenset(),
}


class ReportError(RuntimeError):
    """Misuse of the report (out-of-order record, invalid transition)."""


@dataclass(frozen=True, slots=True)
class UnitOutcome:
    index: int
    package: str
    version: str
    registry: str
    status: UnitStatus
    reason: str | None = None
    error_kind: str | None = None
    failed_phase: FailedPhase | None = None
    attempts: int = 0
    duration_seconds: float = 0.0
    dry_run: bool = False

    @property
    def label(self) -> str:
        return f"{self.package}@{self.version} -> {self.registry}"

    def describe(self) -> str:
        """Compact form, e.g. Failed(pkgB, VersionAlreadyExists)."""
        match self.status:
            case UnitStatus.PUBLISHED:
                return f"Published({self.package})"
            case UnitStatus.FAILED:
                return f"Failed({self.package}, {self.error_kind or self.reason})"
            case UnitStatus.SKIPPED:
                return f"Skipped({self.package})"

    def to_dict(self) -> dict[str, object]:
        return {
            "index": self.index,
            "package": self.package,
            "version": self.version,
            "registry": self.registry,
            "status": str(self.status),
            "reason": self.reason,
            "error_kind": self.error_kind,
            "failed_phase": self.failed_phase,
            "attempts": self.attempts,
            "duration_seconds": round(self.duration_seconds, 3),
            "dry_run": self.dry_run,
        }


@dataclass(frozen=True, slots=True)
class UnitNote:
    index: int
    message: str


class RunReport:
    """Outcomes in arrival order plus the run's state machine.

    Outcome indexes are plan positions. A resumed run starts at
    `first_index`, so its lines keep the numbering of the full plan.
    """

    def __init__(self, *, total: int, dry_run: bool = False, first_index: int = 0) -> None:
        self.total = total
        self.first_index = first_index
        self.dry_run = dry_run
        self._status = RunStatus.NOT_STARTED
        self._outcomes: list[UnitOutcome] = []
        self._notes: list[UnitNote] = []

    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def outcomes(self) -> tuple[UnitOutcome, ...]:
        return tuple(self._outcomes)

    @property
    def notes(self) -> tuple[UnitNote, ...]:
        return tuple(self._notes)

    def transition(self, new: RunStatus) -> None:
        if new not in _TRANSITIONS[self._status]:
            raise ReportError(f"invalid run transition: {self._status} -> {new}")
        self._status = new

    def record(self, outcome: UnitOutcome) -> None:
        if self._status != RunStatus.RUNNING:
            raise ReportError(f"cannot record outcomes while {self._status}")
        expected = self.first_index + len(self._outcomes)
        if outcome.index != expected:
            raise ReportError(
                f"outcome for unit {outcome.index} recorded out of order "
                f"(expected {expected})"
            )
        self._outcomes.append(outcome)

    def note(self, index: int, message: str) -> None:
        """Attach an informational note to an already recorded unit."""
        self._notes.append(UnitNote(index=index, message=message))

    # Queries

    def is_success(self) -> bool:
        return (
            len(self._outcomes) == self.total
            and all(o.status == UnitStatus.PUBLISHED for o in self._outcomes)
        )

    def outcome(self, index: int) -> UnitOutcome:
        """Recorded outcome for the unit at plan position index."""
        return self._outcomes[index - self.first_index]

    def count(self, status: UnitStatus) -> int:
        return sum(1 for o in self._outcomes if o.status == status)

    def first_failure(self) -> UnitOutcome | None:
        for o in self._outcomes:
            if o.status == UnitStatus.FAILED:
                return o
        return None

    def published(self) -> tuple[UnitOutcome, ...]:
        return tuple(o for o in self._outcomes if o.status == UnitStatus.PUBLISHED)

    def exit_code(self) -> ErrorCode:
        if self._status == RunStatus.ABORTED:
            return ErrorCode.ABORTED
        if self._status == RunStatus.SUCCEEDED and self.is_success():
            return ErrorCode.OK
        return ErrorCode.RELEASE_FAILED

    # Rendering

    def summary_lines(self) -> list[str]:
        """Human-readable per-unit summary. Pure: same state, same lines."""
        lines: list[str] = []
        plan_total = self.first_index + self.total
        width = len(str(plan_total))
        for o in self._outcomes:
            line = f"[{o.index + 1:>{width}}/{plan_total}] {o.status:<9} {o.label}"
            if o.reason:
                line += f": {o.reason}"
            lines.append(line)
            for n in self._notes:
                if n.index == o.index:
                    lines.append(f"{'':>{2 * width + 3}} note: {n.message}")

        counts = ", ".join(
            f"{self.count(s)} {s}"
            for s in (UnitStatus.PUBLISHED, UnitStatus.FAILED, UnitStatus.SKIPPED)
        )
        mode = " (dry run)" if self.dry_run else ""
        lines.append(f"status: {self._status}{mode} ({counts})")
        return lines

    def summary(self) -> str:
        return "\n".join(self.summary_lines())

    def to_dict(self) -> dict[str, object]:
        return {
            "status": str(self._status),
            "success": self.is_success(),
            "dry_run": self.dry_run,
            "total": self.total,
            "first_index": self.first_index,
            "units": [o.to_dict() for o in self._outcomes],
            "notes": [{"index": n.index, "message": n.message} for n in self._notes],
        }

    def write_json(self, path: Path) -> None:
        atomic_write_text(path, json.dumps(self.to_dict(), indent=2) + "\n")
