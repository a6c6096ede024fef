"""Waiting for a published version to propagate before the next unit starts.

The fixed settle delay is always honored as a minimum. When confirmation is
enabled and the registry kind can look versions up, the settler also polls
until the version is resolvable (or a timeout passes), so a slow index does
not let a dependent unit start too early.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from pubseq.core.result import Err
from pubseq.orchestrator.cancel import CancelToken
from pubseq.output.console import ConsoleProtocol, Style
from pubseq.plan.model import PublishUnit, RunPolicy
from pubseq.registries.base import RegistryClient
from pubseq.timeouts import (
    CONFIRM_POLL_INITIAL_SECONDS,
    CONFIRM_POLL_MAX_SECONDS,
    SETTLE_SLICE_SECONDS,
)

Sleep = Callable[[float], None]
Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class SettleResult:
    waited_seconds: float
    # None when confirmation was not attempted.
    confirmed: bool | None = None
    note: str | None = None


class Settler:
    def __init__(
        self,
        *,
        policy: RunPolicy,
        console: ConsoleProtocol,
        cancel: CancelToken,
        sleep: Sleep,
        clock: Clock,
    ) -> None:
        self._policy = policy
        self._console = console
        self._cancel = cancel
        self._sleep = sleep
        self._clock = clock

    def settle(
        self,
        unit: PublishUnit,
        client: RegistryClient,
        *,
        completed_at: float,
    ) -> SettleResult:
        """Block until unit's settle requirements are met.

        completed_at is the clock reading when the unit's outcome was recorded.
        """
        confirmed: bool | None = None
        note: str | None = None

        if self._policy.confirm and client.supports_confirmation:
            confirmed, note = self._poll(unit, client, completed_at)

        remaining = completed_at + unit.settle_seconds - self._clock()
        if remaining > 0:
            self._console.print(
                f"settle: waiting {remaining:.1f}s for {unit.registry.id} to propagate",
                Style.DIM,
            )
            self._wait(remaining)

        return SettleResult(
            waited_seconds=self._clock() - completed_at,
            confirmed=confirmed,
            note=note,
        )

    def _wait(self, seconds: float) -> None:
        if not self._policy.interruptible_settle:
            self._sleep(seconds)
            return

        deadline = self._clock() + seconds
        while not self._cancel.cancelled:
            left = deadline - self._clock()
            if left <= 0:
                return
            self._sleep(min(left, SETTLE_SLICE_SECONDS))

    def _poll(
        self,
        unit: PublishUnit,
        client: RegistryClient,
        completed_at: float,
    ) -> tuple[bool, str | None]:
        timeout = self._policy.confirm_timeout_seconds
        delay = CONFIRM_POLL_INITIAL_SECONDS
        last_error: str | None = None
        label = unit.package.label

        while True:
            result = client.is_resolvable(unit.package, unit.registry)
            if isinstance(result, Err):
                last_error = str(result.error)
            elif result.value:
                self._console.print(f"confirm: {label} visible on {unit.registry.id}", Style.DIM)
                return True, None

            elapsed = self._clock() - completed_at
            if elapsed >= timeout:
                note = f"not visible on {unit.registry.id} after {timeout:.0f}s"
                if last_error:
                    note += f" (last lookup error: {last_error})"
                self._console.warning(f"{label}: {note}")
                return False, note
            if self._policy.interruptible_settle and self._cancel.cancelled:
                return False, "confirmation interrupted by stop request"

            self._sleep(min(delay, timeout - elapsed))
            delay = min(delay * 2, CONFIRM_POLL_MAX_SECONDS)
