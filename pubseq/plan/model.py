from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal

FailurePolicy = Literal["stop", "continue"]

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 2.0
DEFAULT_CONFIRM_TIMEOUT_SECONDS = 5 * 60.0


@dataclass(frozen=True, slots=True)
class Package:
    name: str
    version: str
    path: Path  # source root (Cargo.toml / package.json lives here)

    @property
    def label(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True, slots=True)
class Registry:
    """A publish target declared in the plan's [registries] table."""

    id: str
    kind: str  # "cargo" | "npm"
    token_env: str | None
    endpoint: str | None = None
    # Optional pre-resolved path of the publishing CLI.
    tool: str | None = None
    # Extra arguments for the publishing CLI (e.g. ["--access", "public"]).
    publish_args: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BuildStep:
    tool: str  # "wasm-pack" | "command"
    args: tuple[str, ...] = ()
    # Relative to the package path; builders supply a default when None.
    artifact: str | None = None
    tool_path: str | None = None


@dataclass(frozen=True, slots=True)
class PublishUnit:
    package: Package
    registry: Registry
    build: BuildStep | None
    settle_seconds: float
    on_failure: FailurePolicy | None = None
    on_build_failure: FailurePolicy | None = None

    @property
    def label(self) -> str:
        return f"{self.package.label} -> {self.registry.id}"


@dataclass(frozen=True, slots=True)
class RunPolicy:
    settle_seconds: float = 0.0
    failure_policy: FailurePolicy = "stop"
    build_failure_policy: FailurePolicy = "stop"
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    confirm: bool = False
    confirm_timeout_seconds: float = DEFAULT_CONFIRM_TIMEOUT_SECONDS
    interruptible_settle: bool = False


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    """Ordered publish units. List order is the dependency order."""

    units: tuple[PublishUnit, ...]
    registries: tuple[Registry, ...]
    policy: RunPolicy = RunPolicy()
    source: Path | None = None
    # Position of units[0] in the full plan (non-zero for a resumed run).
    first_index: int = 0

    def __len__(self) -> int:
        return len(self.units)

    @property
    def full_length(self) -> int:
        return self.first_index + len(self.units)

    def publish_policy_for(self, unit: PublishUnit) -> FailurePolicy:
        return unit.on_failure or self.policy.failure_policy

    def build_policy_for(self, unit: PublishUnit) -> FailurePolicy:
        return unit.on_build_failure or self.policy.build_failure_policy

    def index_of(self, package_name: str) -> int | None:
        for i, unit in enumerate(self.units):
            if unit.package.name == package_name:
                return i
        return None

    def continue_on_failure(self) -> ReleasePlan:
        """Copy of the plan where no unit's failure halts the run."""
        units = tuple(
            replace(u, on_failure="continue", on_build_failure="continue") for u in self.units
        )
        policy = replace(self.policy, failure_policy="continue", build_failure_policy="continue")
        return replace(self, units=units, policy=policy)
