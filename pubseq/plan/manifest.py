"""Read the declared version of a package from its manifest.

Versions are owned by the manifests; a plan only repeats them when it wants
to pin one explicitly.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path

from pubseq.core.result import Err, Ok, Result
from pubseq.core.structured import StrDict, as_str_dict, get_bool, get_str, get_table
from pubseq.plan.errors import PlanError

CARGO_MANIFEST = "Cargo.toml"
NPM_MANIFEST = "package.json"


def _load_toml(path: Path) -> Result[StrDict, PlanError]:
    try:
        data_obj: object = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(PlanError(kind="version_missing", message=f"cannot read {path}: {e}"))
    except tomllib.TOMLDecodeError as e:
        return Err(PlanError(kind="invalid_plan", message=f"invalid TOML in {path}: {e}"))
    data = as_str_dict(data_obj)
    if data is None:
        return Err(PlanError(kind="invalid_plan", message=f"unexpected TOML root in {path}"))
    return Ok(data)


def _workspace_version(start: Path) -> str | None:
    for parent in start.parents:
        candidate = parent / CARGO_MANIFEST
        if not candidate.is_file():
            continue
        loaded = _load_toml(candidate)
        if isinstance(loaded, Err):
            return None
        workspace = get_table(loaded.value, "workspace")
        if workspace is None:
            continue
        pkg = get_table(workspace, "package") or {}
        return get_str(pkg, "version")
    return None


def _cargo_version(manifest: Path) -> Result[str, PlanError]:
    loaded = _load_toml(manifest)
    if isinstance(loaded, Err):
        return loaded

    package = get_table(loaded.value, "package")
    if package is None:
        return Err(
            PlanError(
                kind="version_missing",
                message=f"{manifest} has no [package] table",
                hint="Virtual workspace manifests cannot be published; point path at a member.",
            )
        )

    version = get_str(package, "version")
    if version is not None:
        return Ok(version)

    # version.workspace = true
    inherited = get_table(package, "version")
    if inherited is not None and get_bool(inherited, "workspace"):
        ws_version = _workspace_version(manifest.parent)
        if ws_version is not None:
            return Ok(ws_version)

    return Err(PlanError(kind="version_missing", message=f"no version in {manifest}"))


def _npm_version(manifest: Path) -> Result[str, PlanError]:
    try:
        obj: object = json.loads(manifest.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(PlanError(kind="version_missing", message=f"cannot read {manifest}: {e}"))
    except json.JSONDecodeError as e:
        return Err(PlanError(kind="invalid_plan", message=f"invalid JSON in {manifest}: {e}"))

    data = as_str_dict(obj) or {}
    version = get_str(data, "version")
    if version is None:
        return Err(PlanError(kind="version_missing", message=f"no version in {manifest}"))
    return Ok(version)


def read_manifest_version(package_dir: Path) -> Result[str, PlanError]:
    """Return the version declared by Cargo.toml, else package.json, in package_dir."""
    cargo = package_dir / CARGO_MANIFEST
    if cargo.is_file():
        return _cargo_version(cargo)

    npm = package_dir / NPM_MANIFEST
    if npm.is_file():
        return _npm_version(npm)

    return Err(
        PlanError(
            kind="version_missing",
            message=f"no manifest found in {package_dir}",
            hint=f"Add version = \"...\" to the unit or provide {CARGO_MANIFEST}/{NPM_MANIFEST}.",
        )
    )
