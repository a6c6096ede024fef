from __future__ import annotations

from pathlib import Path

from pubseq.builders.base import BuildTool
from pubseq.builders.errors import ArtifactNotProduced, BuildError
from pubseq.core.result import Err, Ok, Result
from pubseq.plan.model import BuildStep, Package
from pubseq.platform.process import run as run_process
from pubseq.timeouts import BUILD_TIMEOUT_SECONDS


class WasmPackTool(BuildTool):
    """`wasm-pack build --release <args> <crate>`; publishes the generated pkg/ dir."""

    kind = "wasm-pack"
    default_artifact = "pkg"
    install_hint = "Install wasm-pack: npm install -g wasm-pack"

    def build(self, package: Package, step: BuildStep) -> Result[Path, BuildError]:
        tool = self.resolve_tool("wasm-pack", step)
        if isinstance(tool, Err):
            return tool

        cmd = [tool.value, "build", "--release", *step.args, str(package.path)]
        result = run_process(cmd, cwd=package.path.parent, timeout=BUILD_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(self._compile_failed(package, result.error))

        artifact = self.artifact_path(package, step)
        assert artifact is not None  # default_artifact is set
        if not artifact.is_dir():
            return Err(ArtifactNotProduced(package=package.name, path=artifact))
        if not (artifact / "package.json").is_file():
            return Err(
                ArtifactNotProduced(
                    package=package.name,
                    path=artifact,
                    reason="no package.json in output",
                )
            )
        return Ok(artifact)
