"""Subprocess execution with Result-based error handling.

Every external tool (cargo, npm, wasm-pack, custom build commands) is invoked
through `run`, which captures output and returns a structured error instead of
raising. Children run in their own session, so a terminal SIGINT is
handled by pubseq alone.

Usage:
    result = run(["cargo", "publish", "--dry-run"], cwd=Path("lib0"))
    match result:
        case Ok(stdout):
            ...
        case Err(error):
            print(error.output)
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from pubseq.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code of the process (-1 when it never ran or timed out).
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Combined stderr and stdout, stripped, for error classification."""
        parts = [p.strip() for p in (self.stderr, self.stdout) if p.strip()]
        return "\n".join(parts)

    @property
    def timed_out(self) -> bool:
        return self.returncode == -1 and "timed out" in self.stderr

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return stdout or error.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Full environment for the child (uses current env if None).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            # A terminal Ctrl-C must not reach the child (see orchestrator.cancel).
            start_new_session=True,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=e.stdout if isinstance(e.stdout, str) else "",
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout="",
                stderr=str(e),
            )
        )

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)
