from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ToolchainMissing:
    tool: str
    hint: str


@dataclass(frozen=True, slots=True)
class CompilationFailed:
    package: str
    returncode: int
    details: str


@dataclass(frozen=True, slots=True)
class ArtifactNotProduced:
    package: str
    path: Path
    reason: str = "missing"


BuildError = ToolchainMissing | CompilationFailed | ArtifactNotProduced
