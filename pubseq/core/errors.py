"""Process exit codes.

The exit status is the only signal the invoking environment (CI job, shell)
gets about a release, so these values must stay stable.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Every unit published
    - 1: User error (invalid plan file, bad arguments)
    - 2: Environment error (missing tools or tokens during preflight)
    - 3: Release failed (at least one unit recorded as failed)
    - 130: Release aborted by an operator interrupt
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_FAILED = 3
    ABORTED = 130

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
