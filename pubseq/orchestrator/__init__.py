"""Orchestration core: sequencing, settle waits, failure policy, run report."""

from .cancel import CancelToken, sigint_cancels
from .orchestrator import Orchestrator, RunOptions
from .report import RunReport, RunStatus, UnitOutcome, UnitStatus

__all__ = [
    "CancelToken",
    "sigint_cancels",
    "Orchestrator",
    "RunOptions",
    "RunReport",
    "RunStatus",
    "UnitOutcome",
    "UnitStatus",
]
