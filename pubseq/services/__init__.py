"""Services used by CLI commands."""

from .preflight import CheckResult, CheckStatus, PreflightReport, PreflightService

__all__ = [
    "CheckResult",
    "CheckStatus",
    "PreflightReport",
    "PreflightService",
]
