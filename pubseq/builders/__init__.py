"""Build tools and the kind table."""

from __future__ import annotations

from pubseq.builders.base import BuildTool
from pubseq.builders.command import CommandTool
from pubseq.builders.errors import (
    ArtifactNotProduced,
    BuildError,
    CompilationFailed,
    ToolchainMissing,
)
from pubseq.builders.wasm_pack import WasmPackTool

__all__ = [
    "BuildTool",
    "CommandTool",
    "WasmPackTool",
    "ArtifactNotProduced",
    "BuildError",
    "CompilationFailed",
    "ToolchainMissing",
    "BUILD_TOOLS",
    "default_build_tools",
    "get_build_tool",
]

BUILD_TOOLS: tuple[str, ...] = (WasmPackTool.kind, CommandTool.kind)


def default_build_tools() -> dict[str, BuildTool]:
    tools: tuple[BuildTool, ...] = (WasmPackTool(), CommandTool())
    return {t.kind: t for t in tools}


def get_build_tool(kind: str) -> BuildTool | None:
    return default_build_tools().get(kind)
