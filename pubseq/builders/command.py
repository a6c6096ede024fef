from __future__ import annotations

from pathlib import Path

from pubseq.builders.base import BuildTool
from pubseq.builders.errors import ArtifactNotProduced, BuildError, ToolchainMissing
from pubseq.core.result import Err, Ok, Result
from pubseq.plan.model import BuildStep, Package
from pubseq.platform.process import run as run_process
from pubseq.timeouts import BUILD_TIMEOUT_SECONDS


class CommandTool(BuildTool):
    """Arbitrary command run in the package directory.

    `args` is the full command line; `tool_path` replaces its program. The
    plan must name the artifact since nothing about it can be inferred.
    """

    kind = "command"

    def build(self, package: Package, step: BuildStep) -> Result[Path, BuildError]:
        if not step.args:
            return Err(ToolchainMissing(tool=self.kind, hint="build.args must name the command"))
        program, *rest = step.args
        tool = self.resolve_tool(program, step)
        if isinstance(tool, Err):
            return tool

        result = run_process(
            [tool.value, *rest],
            cwd=package.path,
            timeout=BUILD_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(self._compile_failed(package, result.error))

        artifact = self.artifact_path(package, step)
        if artifact is None or not artifact.exists():
            return Err(
                ArtifactNotProduced(
                    package=package.name,
                    path=artifact or package.path,
                    reason="missing" if artifact else "no artifact configured",
                )
            )
        return Ok(artifact)
