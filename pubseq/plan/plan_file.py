"""Load a release plan from TOML.

The plan file is the whole configuration surface of a run: the registry
table, the ordered units and the run policy. Everything is validated here so
the orchestrator only ever sees a well-formed, immutable ReleasePlan.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Collection, Mapping
from pathlib import Path

from pubseq.builders import BUILD_TOOLS
from pubseq.core.result import Err, Ok, Result
from pubseq.core.structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_float,
    get_int,
    get_list,
    get_str,
    get_str_list,
    get_table,
)
from pubseq.plan.errors import PlanError
from pubseq.plan.manifest import read_manifest_version
from pubseq.plan.model import (
    BuildStep,
    FailurePolicy,
    Package,
    PublishUnit,
    Registry,
    ReleasePlan,
    RunPolicy,
)
from pubseq.plan.semver import is_valid_version
from pubseq.registries import REGISTRY_KINDS

DEFAULT_PLAN_FILE = "release.toml"
PLAN_ENV_VAR = "PUBSEQ_PLAN"

_POLICIES: tuple[FailurePolicy, ...] = ("stop", "continue")


def default_plan_path(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    return Path(env.get(PLAN_ENV_VAR) or DEFAULT_PLAN_FILE)


def _invalid(message: str, hint: str | None = None) -> Err[PlanError]:
    return Err(PlanError(kind="invalid_plan", message=message, hint=hint))


def _parse_toml(path: Path) -> Result[StrDict, PlanError]:
    try:
        content = path.read_bytes()
    except FileNotFoundError:
        return Err(
            PlanError(
                kind="plan_missing",
                message=f"plan file not found: {path}",
                hint=f"Create {DEFAULT_PLAN_FILE} or set {PLAN_ENV_VAR}",
            )
        )
    except OSError as e:
        return Err(PlanError(kind="plan_missing", message=f"cannot read plan file: {e}"))

    try:
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except tomllib.TOMLDecodeError as e:
        return _invalid(f"invalid TOML syntax: {e}", hint=str(path))
    except UnicodeDecodeError as e:
        return _invalid(f"plan file is not UTF-8: {e}", hint=str(path))

    data = as_str_dict(data_obj)
    if data is None:
        return _invalid("plan root must be a TOML table", hint=str(path))
    return Ok(data)


def _policy_value(table: StrDict, key: str, where: str) -> Result[FailurePolicy | None, PlanError]:
    if key not in table:
        return Ok(None)
    value = get_str(table, key)
    for policy in _POLICIES:
        if value == policy:
            return Ok(policy)
    return _invalid(f"{where}: {key} must be one of {', '.join(_POLICIES)}", hint=repr(value))


def _non_negative(table: StrDict, key: str, where: str, default: float) -> Result[float, PlanError]:
    if key not in table:
        return Ok(default)
    value = get_float(table, key)
    if value is None or value < 0:
        return _invalid(f"{where}: {key} must be a number >= 0")
    return Ok(value)


def _parse_policy(data: StrDict) -> Result[RunPolicy, PlanError]:
    release = get_table(data, "release") or {}
    where = "[release]"
    defaults = RunPolicy()

    settle = _non_negative(release, "settle_seconds", where, defaults.settle_seconds)
    if isinstance(settle, Err):
        return settle
    backoff = _non_negative(
        release, "retry_backoff_seconds", where, defaults.retry_backoff_seconds
    )
    if isinstance(backoff, Err):
        return backoff
    confirm_timeout = _non_negative(
        release, "confirm_timeout_seconds", where, defaults.confirm_timeout_seconds
    )
    if isinstance(confirm_timeout, Err):
        return confirm_timeout

    failure = _policy_value(release, "failure_policy", where)
    if isinstance(failure, Err):
        return failure
    build_failure = _policy_value(release, "build_failure_policy", where)
    if isinstance(build_failure, Err):
        return build_failure

    attempts = defaults.retry_attempts
    if "retry_attempts" in release:
        value = get_int(release, "retry_attempts")
        if value is None or value < 1:
            return _invalid(f"{where}: retry_attempts must be an integer >= 1")
        attempts = value

    for key in ("confirm", "interruptible_settle"):
        if key in release and get_bool(release, key) is None:
            return _invalid(f"{where}: {key} must be true or false")

    failure_policy = failure.value or defaults.failure_policy
    return Ok(
        RunPolicy(
            settle_seconds=settle.value,
            failure_policy=failure_policy,
            # Build failures follow failure_policy unless configured separately.
            build_failure_policy=build_failure.value or failure_policy,
            retry_attempts=attempts,
            retry_backoff_seconds=backoff.value,
            confirm=bool(get_bool(release, "confirm")),
            confirm_timeout_seconds=confirm_timeout.value,
            interruptible_settle=bool(get_bool(release, "interruptible_settle")),
        )
    )


def _parse_registries(
    data: StrDict,
    known_kinds: Collection[str],
) -> Result[dict[str, Registry], PlanError]:
    table = get_table(data, "registries")
    if not table:
        return _invalid("plan has no [registries.<id>] tables")

    out: dict[str, Registry] = {}
    for reg_id, raw in table.items():
        where = f"[registries.{reg_id}]"
        d = as_str_dict(raw)
        if d is None:
            return _invalid(f"{where} must be a table")

        kind = get_str(d, "kind")
        if kind is None or kind not in known_kinds:
            return Err(
                PlanError(
                    kind="unknown_kind",
                    message=f"{where}: unknown registry kind {kind!r}",
                    hint=f"Supported: {', '.join(known_kinds)}",
                )
            )

        publish_args: list[str] = []
        if "publish_args" in d:
            args = get_str_list(d, "publish_args")
            if args is None:
                return _invalid(f"{where}: publish_args must be a list of strings")
            publish_args = args

        out[reg_id] = Registry(
            id=reg_id,
            kind=kind,
            token_env=get_str(d, "token_env"),
            endpoint=get_str(d, "endpoint"),
            tool=get_str(d, "tool"),
            publish_args=tuple(publish_args),
        )
    return Ok(out)


def _parse_build(
    raw: object,
    where: str,
    known_tools: Collection[str],
    base_dir: Path,
) -> Result[BuildStep | None, PlanError]:
    if raw is None:
        return Ok(None)
    d = as_str_dict(raw)
    if d is None:
        return _invalid(f"{where}.build must be a table")

    tool = get_str(d, "tool")
    if tool is None or tool not in known_tools:
        return Err(
            PlanError(
                kind="unknown_kind",
                message=f"{where}: unknown build tool {tool!r}",
                hint=f"Supported: {', '.join(known_tools)}",
            )
        )

    args: list[str] = []
    if "args" in d:
        parsed = get_str_list(d, "args")
        if parsed is None:
            return _invalid(f"{where}.build: args must be a list of strings")
        args = parsed

    artifact = get_str(d, "artifact")
    if tool == "command" and (not args or artifact is None):
        return _invalid(
            f"{where}.build: tool = \"command\" needs args (the command) and artifact",
        )

    tool_path = get_str(d, "tool_path")
    if tool_path is not None:
        resolved = Path(tool_path).expanduser()
        if not resolved.is_absolute():
            resolved = base_dir / resolved
        tool_path = str(resolved)

    return Ok(
        BuildStep(
            tool=tool,
            args=tuple(args),
            artifact=artifact,
            tool_path=tool_path,
        )
    )


def _parse_unit(
    index: int,
    raw: object,
    *,
    base_dir: Path,
    registries: Mapping[str, Registry],
    policy: RunPolicy,
    known_tools: Collection[str],
) -> Result[PublishUnit, PlanError]:
    where = f"units[{index}]"
    d = as_str_dict(raw)
    if d is None:
        return _invalid(f"{where} must be a table")

    name = get_str(d, "package")
    if name is None:
        return _invalid(f"{where}: missing package")
    where = f"{where} ({name})"

    reg_id = get_str(d, "registry")
    registry = registries.get(reg_id or "")
    if registry is None:
        return Err(
            PlanError(
                kind="unknown_registry",
                message=f"{where}: unknown registry {reg_id!r}",
                hint=f"Declared: {', '.join(registries)}",
            )
        )

    rel = get_str(d, "path") or name
    path = Path(rel).expanduser()
    if not path.is_absolute():
        path = base_dir / path

    version = get_str(d, "version")
    if version is None:
        read = read_manifest_version(path)
        if isinstance(read, Err):
            return read
        version = read.value
    if not is_valid_version(version):
        return Err(
            PlanError(
                kind="invalid_version",
                message=f"{where}: invalid version {version!r}",
                hint="Expected a SemVer version such as 1.2.3 or 1.2.3-beta.1",
            )
        )

    settle = _non_negative(d, "settle_seconds", where, policy.settle_seconds)
    if isinstance(settle, Err):
        return settle
    on_failure = _policy_value(d, "on_failure", where)
    if isinstance(on_failure, Err):
        return on_failure
    on_build_failure = _policy_value(d, "on_build_failure", where)
    if isinstance(on_build_failure, Err):
        return on_build_failure

    build = _parse_build(d.get("build"), where, known_tools, base_dir)
    if isinstance(build, Err):
        return build

    return Ok(
        PublishUnit(
            package=Package(name=name, version=version, path=path),
            registry=registry,
            build=build.value,
            settle_seconds=settle.value,
            on_failure=on_failure.value,
            on_build_failure=on_build_failure.value,
        )
    )


def parse_plan(
    data: StrDict,
    *,
    base_dir: Path,
    source: Path | None = None,
    registry_kinds: Collection[str] = REGISTRY_KINDS,
    build_tools: Collection[str] = BUILD_TOOLS,
) -> Result[ReleasePlan, PlanError]:
    """Validate parsed TOML data into a ReleasePlan. Relative paths use base_dir."""
    policy = _parse_policy(data)
    if isinstance(policy, Err):
        return policy

    registries = _parse_registries(data, registry_kinds)
    if isinstance(registries, Err):
        return registries

    raw_units = get_list(data, "units")
    if not raw_units:
        return _invalid("plan has no [[units]]")

    units: list[PublishUnit] = []
    seen: set[tuple[str, str]] = set()
    for i, raw in enumerate(raw_units):
        unit = _parse_unit(
            i,
            raw,
            base_dir=base_dir,
            registries=registries.value,
            policy=policy.value,
            known_tools=build_tools,
        )
        if isinstance(unit, Err):
            return unit

        key = (unit.value.package.name, unit.value.registry.id)
        if key in seen:
            return Err(
                PlanError(
                    kind="duplicate_unit",
                    message=f"{unit.value.package.name} is published to "
                    f"{unit.value.registry.id} more than once",
                )
            )
        seen.add(key)
        units.append(unit.value)

    return Ok(
        ReleasePlan(
            units=tuple(units),
            registries=tuple(registries.value.values()),
            policy=policy.value,
            source=source,
        )
    )


def load_plan(path: Path) -> Result[ReleasePlan, PlanError]:
    """Load and validate a plan file.

    Args:
        path: Path to the TOML plan.

    Returns:
        Ok(ReleasePlan) on success, Err(PlanError) on failure.
    """
    data = _parse_toml(path)
    if isinstance(data, Err):
        return data
    resolved = path.expanduser().resolve()
    return parse_plan(data.value, base_dir=resolved.parent, source=resolved)


def start_from(plan: ReleasePlan, package_name: str) -> Result[ReleasePlan, PlanError]:
    """Plan suffix beginning at package_name, for resuming a partial release."""
    index = plan.index_of(package_name)
    if index is None:
        return Err(
            PlanError(
                kind="unknown_package",
                message=f"no unit publishes {package_name!r}",
                hint=f"Units: {', '.join(u.package.name for u in plan.units)}",
            )
        )
    return Ok(
        ReleasePlan(
            units=plan.units[index:],
            registries=plan.registries,
            policy=plan.policy,
            source=plan.source,
            first_index=plan.first_index + index,
        )
    )
