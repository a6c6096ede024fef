"""Sequential release orchestrator.

Walks a ReleasePlan strictly in order. For each unit: build (if any),
authenticate, publish (retrying transient network failures), record the
outcome, then settle before the next unit may start. The list order of the
plan is the only dependency mechanism, so nothing is ever reordered or run
in parallel.

Usage:
    orchestrator = Orchestrator(plan=plan, console=RichConsole())
    report = orchestrator.run()
    raise SystemExit(int(report.exit_code()))
"""

from __future__ import annotations

import os
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from pubseq.builders import default_build_tools
from pubseq.builders.base import BuildTool
from pubseq.core.result import Err, Ok, Result
from pubseq.orchestrator.cancel import CancelToken
from pubseq.orchestrator.report import (
    FailedPhase,
    RunReport,
    RunStatus,
    UnitOutcome,
    UnitStatus,
)
from pubseq.orchestrator.settle import Clock, Settler, Sleep
from pubseq.output.console import ConsoleProtocol, Style
from pubseq.output.errors import (
    describe_build_error,
    describe_registry_error,
    error_details,
    error_hint,
    error_kind,
)
from pubseq.plan.model import PublishUnit, ReleasePlan
from pubseq.registries import default_registry_clients
from pubseq.registries.base import Ack, Credential, RegistryClient
from pubseq.registries.errors import PackageRejected, RegistryError, is_retryable
from pubseq.timeouts import RETRY_BACKOFF_MAX_SECONDS

__all__ = ["Orchestrator", "RunOptions"]


@dataclass(frozen=True, slots=True)
class RunOptions:
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class _PublishAttempt:
    result: Result[Ack, RegistryError]
    attempts: int


class Orchestrator:
    """Runs one release plan once.

    Collaborators are injectable so tests can substitute fake registries,
    build tools, environment, clock and sleep.
    """

    def __init__(
        self,
        *,
        plan: ReleasePlan,
        console: ConsoleProtocol,
        options: RunOptions = RunOptions(),
        registry_clients: Mapping[str, RegistryClient] | None = None,
        build_tools: Mapping[str, BuildTool] | None = None,
        environ: Mapping[str, str] | None = None,
        cancel: CancelToken | None = None,
        sleep: Sleep = time.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._plan = plan
        self._console = console
        self._options = options
        self._clients = (
            registry_clients if registry_clients is not None else default_registry_clients()
        )
        self._builders = build_tools if build_tools is not None else default_build_tools()
        self._environ = environ if environ is not None else os.environ
        self._cancel = cancel or CancelToken()
        self._sleep = sleep
        self._clock = clock
        self._settler = Settler(
            policy=plan.policy,
            console=console,
            cancel=self._cancel,
            sleep=sleep,
            clock=clock,
        )
        self._report = RunReport(
            total=len(plan.units),
            dry_run=options.dry_run,
            first_index=plan.first_index,
        )

    @property
    def report(self) -> RunReport:
        return self._report

    @property
    def status(self) -> RunStatus:
        return self._report.status

    def run(self) -> RunReport:
        """Process every unit in plan order and return the finished report."""
        report = self._report
        report.transition(RunStatus.RUNNING)

        units = self._plan.units
        halted_reason: str | None = None
        any_failed = False

        for i, unit in enumerate(units):
            index = self._plan.first_index + i
            if halted_reason is None and self._cancel.cancelled:
                halted_reason = f"not attempted: run aborted ({self._cancel.reason})"
                self._console.warning(
                    f"stop requested ({self._cancel.reason}): "
                    f"skipping {len(units) - i} remaining unit(s)"
                )

            if halted_reason is not None:
                report.record(self._skipped(index, unit, halted_reason))
                continue

            outcome = self._run_unit(index, unit)
            report.record(outcome)
            completed_at = self._clock()

            if outcome.status == UnitStatus.FAILED:
                any_failed = True
                policy = (
                    self._plan.build_policy_for(unit)
                    if outcome.failed_phase == "build"
                    else self._plan.publish_policy_for(unit)
                )
                if policy == "stop":
                    halted_reason = f"not attempted: run halted after {unit.package.name} failed"
                else:
                    self._console.warning(f"{unit.package.name} failed; continuing per policy")
                continue

            is_last = i == len(units) - 1
            if is_last or self._options.dry_run or self._cancel.cancelled:
                continue

            client = self._clients[unit.registry.kind]
            settled = self._settler.settle(unit, client, completed_at=completed_at)
            if settled.note:
                report.note(index, settled.note)

        # A stop request that left units unattempted wins over unit failures.
        if self._cancel.cancelled and report.count(UnitStatus.SKIPPED):
            final = RunStatus.ABORTED
        elif any_failed:
            final = RunStatus.FAILED
        else:
            final = RunStatus.SUCCEEDED
        report.transition(final)
        return report

    # Unit execution

    def _run_unit(self, index: int, unit: PublishUnit) -> UnitOutcome:
        started = self._clock()
        self._console.header(f"[{index + 1}/{self._plan.full_length}] {unit.label}")

        client = self._clients.get(unit.registry.kind)
        if client is None:
            error = PackageRejected(
                package=unit.package.name,
                registry=unit.registry.id,
                details=f"no client for registry kind {unit.registry.kind!r}",
            )
            return self._registry_failure(index, unit, error, "publish", 0, started)

        artifact = unit.package.path
        if unit.build is not None:
            built = self._build(index, unit)
            if isinstance(built, Err):
                return replace(built.error, duration_seconds=self._clock() - started)
            artifact = built.value

        credential: Credential | None = None
        if not self._options.dry_run:
            auth = client.authenticate(unit.registry, self._environ)
            if isinstance(auth, Err):
                return self._registry_failure(index, unit, auth.error, "authenticate", 0, started)
            credential = auth.value

        attempt = self._publish_with_retry(client, artifact, unit, credential)
        if isinstance(attempt.result, Err):
            return self._registry_failure(
                index, unit, attempt.result.error, "publish", attempt.attempts, started
            )

        suffix = " (dry run)" if self._options.dry_run else ""
        self._console.success(f"published {unit.package.label} to {unit.registry.id}{suffix}")
        return UnitOutcome(
            index=index,
            package=unit.package.name,
            version=unit.package.version,
            registry=unit.registry.id,
            status=UnitStatus.PUBLISHED,
            attempts=attempt.attempts,
            duration_seconds=self._clock() - started,
            dry_run=self._options.dry_run,
        )

    def _build(self, index: int, unit: PublishUnit) -> Result[Path, UnitOutcome]:
        assert unit.build is not None
        tool = self._builders.get(unit.build.tool)
        self._console.print(f"build: {unit.build.tool} {unit.package.path}", Style.DIM)
        if tool is None:
            reason = f"no build tool for kind {unit.build.tool!r}"
            self._console.error(reason)
            return Err(self._failed(index, unit, reason, "ToolchainMissing", "build"))

        result = tool.build(unit.package, unit.build)
        if isinstance(result, Ok):
            self._console.print(f"artifact: {result.value}", Style.DIM)
            return result

        error = result.error
        reason = describe_build_error(error)
        self._report_error(reason, error_hint(error), error_details(error))
        return Err(self._failed(index, unit, reason, error_kind(error), "build"))

    def _publish_with_retry(
        self,
        client: RegistryClient,
        artifact: Path,
        unit: PublishUnit,
        credential: Credential | None,
    ) -> _PublishAttempt:
        max_attempts = max(1, self._plan.policy.retry_attempts)
        backoff = self._plan.policy.retry_backoff_seconds
        dry = " --dry-run" if self._options.dry_run else ""

        attempt = 0
        while True:
            attempt += 1
            self._console.print(
                f"publish: {unit.registry.kind} {artifact}{dry} "
                f"(attempt {attempt}/{max_attempts})",
                Style.DIM,
            )
            result = client.publish(
                artifact,
                unit.package,
                unit.registry,
                credential,
                dry_run=self._options.dry_run,
            )
            if isinstance(result, Ok):
                return _PublishAttempt(result=result, attempts=attempt)

            error = result.error
            if not is_retryable(error) or attempt >= max_attempts:
                return _PublishAttempt(result=result, attempts=attempt)

            delay = min(backoff * (2 ** (attempt - 1)), RETRY_BACKOFF_MAX_SECONDS)
            self._console.warning(f"{describe_registry_error(error)}; retrying in {delay:.1f}s")
            self._sleep(delay)

    # Outcome construction

    def _report_error(self, reason: str, hint: str | None, details: str | None) -> None:
        self._console.error(reason)
        if details and details != reason:
            for line in details.splitlines():
                self._console.print(f"  {line}", Style.DIM)
        if hint:
            self._console.print(f"hint: {hint}", Style.DIM)

    def _registry_failure(
        self,
        index: int,
        unit: PublishUnit,
        error: RegistryError,
        phase: FailedPhase,
        attempts: int,
        started: float,
    ) -> UnitOutcome:
        reason = describe_registry_error(error)
        self._report_error(reason, error_hint(error), error_details(error))
        outcome = self._failed(index, unit, reason, error_kind(error), phase, attempts)
        return replace(outcome, duration_seconds=self._clock() - started)

    def _failed(
        self,
        index: int,
        unit: PublishUnit,
        reason: str,
        kind: str,
        phase: FailedPhase,
        attempts: int = 0,
    ) -> UnitOutcome:
        return UnitOutcome(
            index=index,
            package=unit.package.name,
            version=unit.package.version,
            registry=unit.registry.id,
            status=UnitStatus.FAILED,
            reason=reason,
            error_kind=kind,
            failed_phase=phase,
            attempts=attempts,
            dry_run=self._options.dry_run,
        )

    def _skipped(self, index: int, unit: PublishUnit, reason: str) -> UnitOutcome:
        return UnitOutcome(
            index=index,
            package=unit.package.name,
            version=unit.package.version,
            registry=unit.registry.id,
            status=UnitStatus.SKIPPED,
            reason=reason,
            dry_run=self._options.dry_run,
        )
