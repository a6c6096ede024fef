"""crates.io (and other cargo registries) via `cargo publish`."""

from __future__ import annotations

import json
import os
import shutil
from pathlib import Path

from pubseq.core.result import Err, Ok, Result
from pubseq.core.structured import as_str_dict, get_str
from pubseq.plan.model import Package, Registry
from pubseq.platform.http import HttpClient, HttpError, RealHttpClient
from pubseq.platform.process import run as run_process
from pubseq.registries.base import Ack, Credential, OutputMarkers, RegistryClient, classify_failure
from pubseq.registries.errors import RegistryError
from pubseq.timeouts import PUBLISH_TIMEOUT_SECONDS, REGISTRY_HTTP_TIMEOUT_SECONDS

CRATES_IO_INDEX = "https://index.crates.io"

_MARKERS = OutputMarkers(
    already_exists=(
        "is already uploaded",
        "already exists on crates.io index",
    ),
    rejected=(
        # Verification build failures, whatever the compiler output quotes.
        "failed to verify package tarball",
        "could not compile",
        "error[e",
        "you don't seem to be an owner",
        "is not an owner",
        "crate name has already been claimed",
    ),
    auth=(
        "status 401",
        "401 unauthorized",
        "status 403",
        "403 forbidden",
        "authentication failed",
        "no token found",
        "please provide a non-empty token",
        "invalid token",
    ),
)


def sparse_index_path(name: str) -> str:
    """Path of a crate's file in the sparse index (cargo's prefix layout)."""
    n = name.lower()
    if len(n) == 1:
        return f"1/{n}"
    if len(n) == 2:
        return f"2/{n}"
    if len(n) == 3:
        return f"3/{n[0]}/{n}"
    return f"{n[0:2]}/{n[2:4]}/{n}"


def _index_url(registry: Registry) -> str:
    if registry.endpoint is None:
        return CRATES_IO_INDEX
    return registry.endpoint.removeprefix("sparse+").rstrip("/")


class CargoClient(RegistryClient):
    kind = "cargo"
    supports_confirmation = True

    def __init__(self, http: HttpClient | None = None) -> None:
        self._http = http or RealHttpClient(timeout=REGISTRY_HTTP_TIMEOUT_SECONDS)

    def publish(
        self,
        artifact: Path,
        package: Package,
        registry: Registry,
        credential: Credential | None,
        *,
        dry_run: bool = False,
    ) -> Result[Ack, RegistryError]:
        tool = registry.tool or "cargo"
        if shutil.which(tool) is None:
            return Err(self._missing_tool(tool, package, registry))

        cmd = [tool, "publish"]
        env = dict(os.environ)
        if registry.endpoint is not None:
            cmd.extend(["--index", registry.endpoint])
        if dry_run:
            cmd.append("--dry-run")
        elif credential is not None:
            if registry.endpoint is None:
                # Keep the token off the command line for crates.io.
                env["CARGO_REGISTRY_TOKEN"] = credential.token
            else:
                cmd.extend(["--token", credential.token])
        cmd.extend(registry.publish_args)

        result = run_process(cmd, cwd=artifact, env=env, timeout=PUBLISH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                classify_failure(
                    result.error,
                    package=package,
                    registry=registry,
                    markers=_MARKERS,
                    credential=credential,
                )
            )

        return Ok(
            Ack(
                package=package.name,
                version=package.version,
                registry=registry.id,
                dry_run=dry_run,
            )
        )

    def is_resolvable(self, package: Package, registry: Registry) -> Result[bool, HttpError]:
        url = f"{_index_url(registry)}/{sparse_index_path(package.name)}"
        result = self._http.get_text(url)
        if isinstance(result, Err):
            if result.error.not_found:
                return Ok(False)
            return result

        # One JSON object per published version.
        for line in result.value.splitlines():
            if not line.strip():
                continue
            try:
                entry = as_str_dict(json.loads(line))
            except json.JSONDecodeError:
                continue
            if entry is not None and get_str(entry, "vers") == package.version:
                return Ok(True)
        return Ok(False)
