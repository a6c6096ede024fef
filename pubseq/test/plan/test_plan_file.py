from __future__ import annotations

from pathlib import Path

import pytest

from pubseq.core.result import Err, Ok
from pubseq.plan.plan_file import (
    DEFAULT_PLAN_FILE,
    PLAN_ENV_VAR,
    default_plan_path,
    load_plan,
    start_from,
)

YRS_PLAN = """
[release]
failure_policy = "stop"

[registries.crates-io]
kind = "cargo"
token_env = "CARGO_REGISTRY_TOKEN"

[registries.npm]
kind = "npm"
token_env = "NPM_TOKEN"
publish_args = ["--access", "public"]

[[units]]
package = "lib0"
registry = "crates-io"
version = "0.17.0"

[[units]]
package = "yrs"
registry = "crates-io"
version = "0.17.0"
settle_seconds = 10

[[units]]
package = "ywasm"
registry = "npm"
version = "0.17.0"
settle_seconds = 20
on_failure = "continue"

[units.build]
tool = "wasm-pack"
args = ["--target", "nodejs"]
"""


def _write_plan(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "release.toml"
    path.write_text(content, encoding="utf-8")
    return path


def _load_err(tmp_path: Path, content: str) -> str:
    result = load_plan(_write_plan(tmp_path, content))
    assert isinstance(result, Err)
    return result.error.kind


def test_load_full_plan(tmp_path: Path) -> None:
    result = load_plan(_write_plan(tmp_path, YRS_PLAN))

    assert isinstance(result, Ok)
    plan = result.value
    assert [u.package.name for u in plan.units] == ["lib0", "yrs", "ywasm"]
    assert plan.source == (tmp_path / "release.toml").resolve()

    lib0, yrs, ywasm = plan.units
    assert lib0.package.path == tmp_path.resolve() / "lib0"
    assert lib0.settle_seconds == 0
    assert yrs.settle_seconds == 10
    assert ywasm.registry.kind == "npm"
    assert ywasm.registry.publish_args == ("--access", "public")
    assert ywasm.build is not None
    assert ywasm.build.tool == "wasm-pack"
    assert ywasm.build.args == ("--target", "nodejs")
    assert plan.publish_policy_for(ywasm) == "continue"
    assert plan.publish_policy_for(yrs) == "stop"


def test_release_defaults(tmp_path: Path) -> None:
    content = YRS_PLAN.replace('[release]\nfailure_policy = "stop"\n', "")
    result = load_plan(_write_plan(tmp_path, content))

    assert isinstance(result, Ok)
    policy = result.value.policy
    assert policy.failure_policy == "stop"
    assert policy.build_failure_policy == "stop"
    assert policy.retry_attempts == 3
    assert policy.confirm is False


def test_build_failure_policy_follows_failure_policy(tmp_path: Path) -> None:
    content = YRS_PLAN.replace('failure_policy = "stop"', 'failure_policy = "continue"')
    result = load_plan(_write_plan(tmp_path, content))

    assert isinstance(result, Ok)
    assert result.value.policy.build_failure_policy == "continue"


def test_release_settle_default_applies_to_units(tmp_path: Path) -> None:
    content = YRS_PLAN.replace("[release]\n", "[release]\nsettle_seconds = 5\n")
    result = load_plan(_write_plan(tmp_path, content))

    assert isinstance(result, Ok)
    assert [u.settle_seconds for u in result.value.units] == [5, 10, 20]


def test_version_read_from_manifest(tmp_path: Path) -> None:
    (tmp_path / "lib0").mkdir()
    (tmp_path / "lib0" / "Cargo.toml").write_text(
        '[package]\nname = "lib0"\nversion = "0.17.2"\n', encoding="utf-8"
    )
    content = """
[registries.crates-io]
kind = "cargo"
token_env = "T"

[[units]]
package = "lib0"
registry = "crates-io"
"""
    result = load_plan(_write_plan(tmp_path, content))

    assert isinstance(result, Ok)
    assert result.value.units[0].package.version == "0.17.2"


def test_missing_file(tmp_path: Path) -> None:
    result = load_plan(tmp_path / "nope.toml")

    assert isinstance(result, Err)
    assert result.error.kind == "plan_missing"
    assert result.error.hint is not None


def test_invalid_toml(tmp_path: Path) -> None:
    assert _load_err(tmp_path, "[release\n") == "invalid_plan"


def test_unknown_registry_kind(tmp_path: Path) -> None:
    content = YRS_PLAN.replace('kind = "npm"', 'kind = "pypi"')
    assert _load_err(tmp_path, content) == "unknown_kind"


def test_unknown_build_tool(tmp_path: Path) -> None:
    content = YRS_PLAN.replace('tool = "wasm-pack"', 'tool = "make"')
    assert _load_err(tmp_path, content) == "unknown_kind"


def test_unit_references_undeclared_registry(tmp_path: Path) -> None:
    content = YRS_PLAN.replace('registry = "npm"', 'registry = "jsr"')
    assert _load_err(tmp_path, content) == "unknown_registry"


def test_invalid_version(tmp_path: Path) -> None:
    content = YRS_PLAN.replace('version = "0.17.0"\nsettle_seconds = 10', 'version = "v0.17"')
    assert _load_err(tmp_path, content) == "invalid_version"


def test_duplicate_unit(tmp_path: Path) -> None:
    content = YRS_PLAN + '\n[[units]]\npackage = "lib0"\nregistry = "crates-io"\n'
    content += 'version = "0.17.0"\n'
    assert _load_err(tmp_path, content) == "duplicate_unit"


def test_same_package_to_two_registries_is_allowed(tmp_path: Path) -> None:
    content = YRS_PLAN + '\n[[units]]\npackage = "lib0"\nregistry = "npm"\n'
    content += 'version = "0.17.0"\n'
    assert isinstance(load_plan(_write_plan(tmp_path, content)), Ok)


def test_no_units(tmp_path: Path) -> None:
    content = '[registries.crates-io]\nkind = "cargo"\ntoken_env = "T"\n'
    assert _load_err(tmp_path, content) == "invalid_plan"


def test_no_registries(tmp_path: Path) -> None:
    content = '[[units]]\npackage = "a"\nregistry = "r"\nversion = "1.0.0"\n'
    assert _load_err(tmp_path, content) == "invalid_plan"


@pytest.mark.parametrize(
    "line",
    [
        "settle_seconds = -1",
        'failure_policy = "retry"',
        "retry_attempts = 0",
        "retry_attempts = true",
        'confirm = "yes"',
    ],
)
def test_invalid_release_settings(tmp_path: Path, line: str) -> None:
    content = YRS_PLAN.replace('[release]\nfailure_policy = "stop"\n', f"[release]\n{line}\n")
    assert _load_err(tmp_path, content) == "invalid_plan"


def test_command_build_requires_args_and_artifact(tmp_path: Path) -> None:
    content = YRS_PLAN.replace(
        'tool = "wasm-pack"\nargs = ["--target", "nodejs"]',
        'tool = "command"\nargs = ["make", "dist"]',
    )
    assert _load_err(tmp_path, content) == "invalid_plan"


def test_default_plan_path() -> None:
    assert default_plan_path({}) == Path(DEFAULT_PLAN_FILE)
    assert default_plan_path({PLAN_ENV_VAR: "ci/release.toml"}) == Path("ci/release.toml")


class TestStartFrom:
    def test_slices_plan(self, tmp_path: Path) -> None:
        plan = load_plan(_write_plan(tmp_path, YRS_PLAN)).unwrap()
        assert plan is not None

        result = start_from(plan, "yrs")

        assert isinstance(result, Ok)
        assert [u.package.name for u in result.value.units] == ["yrs", "ywasm"]
        assert result.value.policy == plan.policy
        assert result.value.first_index == 1
        assert result.value.full_length == 3

    def test_nested_resume_keeps_plan_positions(self, tmp_path: Path) -> None:
        plan = load_plan(_write_plan(tmp_path, YRS_PLAN)).unwrap()
        assert plan is not None

        first = start_from(plan, "yrs").unwrap()
        assert first is not None
        resumed = start_from(first, "ywasm").unwrap()

        assert resumed is not None
        assert resumed.first_index == 2
        assert resumed.full_length == 3

    def test_unknown_package(self, tmp_path: Path) -> None:
        plan = load_plan(_write_plan(tmp_path, YRS_PLAN)).unwrap()
        assert plan is not None

        result = start_from(plan, "yffi")

        assert isinstance(result, Err)
        assert result.error.kind == "unknown_package"
        assert "lib0" in (result.error.hint or "")


def test_relative_tool_path_resolves_against_plan_dir(tmp_path: Path) -> None:
    content = YRS_PLAN.replace(
        'args = ["--target", "nodejs"]',
        'args = ["--target", "nodejs"]\ntool_path = "bin/wasm-pack"',
    )
    plan_dir = tmp_path / "release"
    plan_dir.mkdir()

    result = load_plan(_write_plan(plan_dir, content))

    assert isinstance(result, Ok)
    step = result.value.units[2].build
    assert step is not None
    assert step.tool_path == str(plan_dir.resolve() / "bin" / "wasm-pack")


def test_absolute_tool_path_is_kept(tmp_path: Path) -> None:
    exe = tmp_path / "tools" / "wasm-pack"
    content = YRS_PLAN.replace(
        'args = ["--target", "nodejs"]',
        f'args = ["--target", "nodejs"]\ntool_path = "{exe.as_posix()}"',
    )

    result = load_plan(_write_plan(tmp_path, content))

    assert isinstance(result, Ok)
    step = result.value.units[2].build
    assert step is not None
    assert Path(step.tool_path or "") == exe
