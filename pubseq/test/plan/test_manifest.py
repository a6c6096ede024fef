from __future__ import annotations

from pathlib import Path

from pubseq.core.result import Err, Ok
from pubseq.plan.manifest import read_manifest_version


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_cargo_version(tmp_path: Path) -> None:
    _write(tmp_path / "lib0" / "Cargo.toml", '[package]\nname = "lib0"\nversion = "0.17.0"\n')

    assert read_manifest_version(tmp_path / "lib0") == Ok("0.17.0")


def test_cargo_workspace_inherited_version(tmp_path: Path) -> None:
    _write(
        tmp_path / "Cargo.toml",
        '[workspace]\nmembers = ["yrs"]\n\n[workspace.package]\nversion = "0.18.1"\n',
    )
    _write(
        tmp_path / "yrs" / "Cargo.toml",
        '[package]\nname = "yrs"\nversion.workspace = true\n',
    )

    assert read_manifest_version(tmp_path / "yrs") == Ok("0.18.1")


def test_cargo_virtual_manifest_is_rejected(tmp_path: Path) -> None:
    _write(tmp_path / "Cargo.toml", '[workspace]\nmembers = ["a"]\n')

    result = read_manifest_version(tmp_path)
    assert isinstance(result, Err)
    assert result.error.kind == "version_missing"
    assert result.error.hint is not None


def test_cargo_invalid_toml(tmp_path: Path) -> None:
    _write(tmp_path / "Cargo.toml", "[package\n")

    result = read_manifest_version(tmp_path)
    assert isinstance(result, Err)
    assert result.error.kind == "invalid_plan"


def test_package_json_version(tmp_path: Path) -> None:
    _write(tmp_path / "package.json", '{"name": "ywasm", "version": "0.17.0"}')

    assert read_manifest_version(tmp_path) == Ok("0.17.0")


def test_cargo_wins_over_package_json(tmp_path: Path) -> None:
    _write(tmp_path / "Cargo.toml", '[package]\nname = "ywasm"\nversion = "1.0.0"\n')
    _write(tmp_path / "package.json", '{"version": "2.0.0"}')

    assert read_manifest_version(tmp_path) == Ok("1.0.0")


def test_package_json_without_version(tmp_path: Path) -> None:
    _write(tmp_path / "package.json", '{"name": "x"}')

    result = read_manifest_version(tmp_path)
    assert isinstance(result, Err)
    assert result.error.kind == "version_missing"


def test_no_manifest(tmp_path: Path) -> None:
    result = read_manifest_version(tmp_path)
    assert isinstance(result, Err)
    assert "no manifest found" in result.error.message
