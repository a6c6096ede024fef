"""Base definitions for pre-publish build tools.

A build tool turns a package's sources into the directory that gets
published (for example `ywasm` -> `ywasm/pkg`). The orchestrator treats it as
a black box returning an artifact path or a BuildError.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from pubseq.builders.errors import BuildError, CompilationFailed, ToolchainMissing
from pubseq.core.result import Err, Ok, Result

if TYPE_CHECKING:
    from pubseq.plan.model import BuildStep, Package
    from pubseq.platform.process import ProcessError

__all__ = ["BuildTool"]


def _tail(text: str, lines: int = 30) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


class BuildTool(ABC):
    """Abstract base class for build tool kinds.

    Subclasses must define:
    - kind: tag matched against a build step's `tool`
    - build(): produce the artifact

    `default_artifact` is used when the step does not name one.
    """

    kind: str
    default_artifact: str | None = None
    install_hint: str = ""

    @abstractmethod
    def build(self, package: Package, step: BuildStep) -> Result[Path, BuildError]:
        """Build package and return the artifact path."""
        ...

    def artifact_path(self, package: Package, step: BuildStep) -> Path | None:
        rel = step.artifact or self.default_artifact
        if rel is None:
            return None
        p = Path(rel)
        return p if p.is_absolute() else package.path / p

    def resolve_tool(self, program: str, step: BuildStep) -> Result[str, ToolchainMissing]:
        """Locate the executable: step.tool_path when given, else PATH lookup."""
        if step.tool_path is not None:
            candidate = Path(step.tool_path).expanduser()
            if candidate.is_file():
                return Ok(str(candidate))
            return Err(ToolchainMissing(tool=program, hint=f"tool_path not found: {candidate}"))

        found = shutil.which(program)
        if found is None:
            hint = self.install_hint or f"Install {program}"
            return Err(ToolchainMissing(tool=program, hint=hint))
        return Ok(found)

    def _compile_failed(self, package: Package, error: ProcessError) -> BuildError:
        return CompilationFailed(
            package=package.name,
            returncode=error.returncode,
            details=_tail(error.output) or str(error),
        )
