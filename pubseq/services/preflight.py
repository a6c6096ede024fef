"""Preflight checks run before a release starts.

A release that dies on unit 3 because npm is not installed leaves units 1-2
published and the rest not. Checking tools, tokens and paths up front catches
most of those cases before anything irreversible happens.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path

from pubseq.builders import default_build_tools
from pubseq.builders.base import BuildTool
from pubseq.plan.model import Registry, ReleasePlan

Which = Callable[[str], str | None]

# Publishing CLI per registry kind.
_REGISTRY_TOOLS: dict[str, str] = {"cargo": "cargo", "npm": "npm"}


class CheckStatus(Enum):
    OK = auto()
    WARNING = auto()
    """Passed, but something may bite later (e.g. artifact not built yet)."""
    ERROR = auto()


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Result of a single check.

    Attributes:
        name: Short identifier for what was checked (e.g., "npm", "$NPM_TOKEN")
        status: Whether the check passed, warned, or failed
        message: Human-readable result message
        hint: Optional fix
    """

    name: str
    status: CheckStatus
    message: str
    hint: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status == CheckStatus.ERROR

    @classmethod
    def success(cls, name: str, message: str) -> CheckResult:
        return cls(name=name, status=CheckStatus.OK, message=message)

    @classmethod
    def warning(cls, name: str, message: str, hint: str | None = None) -> CheckResult:
        return cls(name=name, status=CheckStatus.WARNING, message=message, hint=hint)

    @classmethod
    def error(cls, name: str, message: str, hint: str | None = None) -> CheckResult:
        return cls(name=name, status=CheckStatus.ERROR, message=message, hint=hint)


@dataclass(frozen=True, slots=True)
class PreflightReport:
    tools: list[CheckResult]
    credentials: list[CheckResult]
    packages: list[CheckResult]

    def has_errors(self) -> bool:
        return any(r.is_error for r in (*self.tools, *self.credentials, *self.packages))


class PreflightService:
    def __init__(
        self,
        *,
        plan: ReleasePlan,
        environ: Mapping[str, str],
        which: Which | None = None,
        build_tools: Mapping[str, BuildTool] | None = None,
    ) -> None:
        self._plan = plan
        self._environ = environ
        self._which = which or shutil.which
        self._builders = build_tools if build_tools is not None else default_build_tools()

    def run(self, *, dry_run: bool = False) -> PreflightReport:
        return PreflightReport(
            tools=self.check_tools(),
            credentials=[] if dry_run else self.check_credentials(),
            packages=self.check_packages(),
        )

    def check_tools(self) -> list[CheckResult]:
        programs: dict[str, str] = {}
        for reg in self._plan.registries:
            if not any(u.registry.id == reg.id for u in self._plan.units):
                continue
            programs.setdefault(reg.tool or _REGISTRY_TOOLS.get(reg.kind, reg.kind), reg.kind)
        for unit in self._plan.units:
            step = unit.build
            if step is None:
                continue
            if step.tool_path is not None:
                programs.setdefault(step.tool_path, step.tool)
            elif step.tool == "command":
                programs.setdefault(step.args[0], step.tool)
            else:
                programs.setdefault(step.tool, step.tool)

        results: list[CheckResult] = []
        for program in programs:
            found = program if Path(program).is_file() else self._which(program)
            if found:
                results.append(CheckResult.success(program, found))
            else:
                results.append(
                    CheckResult.error(program, "not found", hint=self._install_hint(program))
                )
        return results

    def check_credentials(self) -> list[CheckResult]:
        results: list[CheckResult] = []
        used = {u.registry.id for u in self._plan.units}
        for reg in self._plan.registries:
            if reg.id not in used:
                continue
            results.append(self._check_token(reg))
        return results

    def check_packages(self) -> list[CheckResult]:
        results: list[CheckResult] = []
        for unit in self._plan.units:
            name = unit.package.label
            path = unit.package.path
            if not path.is_dir():
                results.append(CheckResult.error(name, f"path not found: {path}"))
                continue
            if unit.build is None:
                results.append(CheckResult.success(name, str(path)))
                continue

            tool = self._builders.get(unit.build.tool)
            artifact = tool.artifact_path(unit.package, unit.build) if tool else None
            if artifact is not None and not artifact.exists():
                results.append(
                    CheckResult.warning(
                        name,
                        f"{artifact} will be produced by {unit.build.tool}",
                    )
                )
            else:
                results.append(CheckResult.success(name, str(artifact or path)))
        return results

    def _check_token(self, reg: Registry) -> CheckResult:
        if reg.token_env is None:
            return CheckResult.error(
                reg.id,
                "no token_env configured",
                hint=f"Set token_env in [registries.{reg.id}]",
            )
        label = f"${reg.token_env}"
        if not self._environ.get(reg.token_env, "").strip():
            return CheckResult.error(label, "not set", hint=f"Export {reg.token_env}")
        # Never echo the token itself.
        return CheckResult.success(label, f"set (used by {reg.id})")

    def _install_hint(self, program: str) -> str | None:
        tool = self._builders.get(program)
        if tool is not None and tool.install_hint:
            return tool.install_hint
        if program == "cargo":
            return "Install Rust: https://rustup.rs/"
        if program == "npm":
            return "Install Node.js: https://nodejs.org/"
        return None
