"""Error payload for plan loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

PlanErrorKind = Literal[
    "plan_missing",
    "invalid_plan",
    "unknown_registry",
    "unknown_kind",
    "invalid_version",
    "version_missing",
    "duplicate_unit",
    "unknown_package",
]


@dataclass(frozen=True, slots=True)
class PlanError:
    kind: PlanErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
