from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pubseq.cli.commands._helpers import exit_on_error
from pubseq.core.errors import ErrorCode
from pubseq.output.console import ConsoleProtocol, RichConsole
from pubseq.plan.model import ReleasePlan
from pubseq.plan.plan_file import default_plan_path, load_plan


@dataclass(frozen=True, slots=True)
class CLIContext:
    console: ConsoleProtocol
    environ: Mapping[str, str]

    def load_plan(self, path: Path | None) -> ReleasePlan:
        """Load the plan at path (or the default location), exiting on error."""
        plan_path = path if path is not None else default_plan_path(self.environ)
        result = load_plan(plan_path)
        return exit_on_error(result, self, ErrorCode.USER_ERROR)


def build_context() -> CLIContext:
    return CLIContext(console=RichConsole(), environ=os.environ)
