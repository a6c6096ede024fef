"""npm registries via `npm publish`.

The token reaches npm the same way actions/setup-node wires it: a userconfig
npmrc that references ${NODE_AUTH_TOKEN}, with the variable set only in the
child environment.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from urllib.parse import quote, urlsplit

from pubseq.core.result import Err, Ok, Result
from pubseq.core.structured import as_str_dict, get_table
from pubseq.plan.model import Package, Registry
from pubseq.plan.semver import parse_version
from pubseq.platform.http import HttpClient, HttpError, RealHttpClient
from pubseq.platform.process import run as run_process
from pubseq.registries.base import (
    TRANSIENT_MARKERS,
    Ack,
    Credential,
    OutputMarkers,
    RegistryClient,
    classify_failure,
)
from pubseq.registries.errors import RegistryError
from pubseq.timeouts import PUBLISH_TIMEOUT_SECONDS, REGISTRY_HTTP_TIMEOUT_SECONDS

NPM_DEFAULT_REGISTRY = "https://registry.npmjs.org"
PRERELEASE_FALLBACK_TAG = "next"

_MARKERS = OutputMarkers(
    already_exists=(
        "epublishconflict",
        "cannot publish over the previously published versions",
        "you cannot publish over",
    ),
    rejected=(
        "do not have permission to publish",
        "package name too similar",
        "invalid package name",
    ),
    auth=(
        "e401",
        "eneedauth",
        "unable to authenticate",
        "e403",
        "code e403",
    ),
    transient=TRANSIENT_MARKERS
    + (
        "etimedout",
        "econnreset",
        "econnrefused",
        "eai_again",
        "socket hang up",
        "e429",
        "e500",
        "e502",
        "e503",
        "e504",
    ),
)


def _endpoint(registry: Registry) -> str:
    return (registry.endpoint or NPM_DEFAULT_REGISTRY).rstrip("/")


def npmrc_content(endpoint: str) -> str:
    """Userconfig pointing npm at endpoint with a token taken from the environment."""
    parts = urlsplit(endpoint)
    scope = f"//{parts.netloc}{parts.path.rstrip('/')}/"
    return f"registry={endpoint}/\n{scope}:_authToken=${{NODE_AUTH_TOKEN}}\n"


def dist_tag_for(version: str) -> str | None:
    """npm refuses to tag a prerelease as `latest`; pick a tag from its channel."""
    parsed = parse_version(version)
    if parsed is None or not parsed.is_prerelease:
        return None
    return parsed.channel or PRERELEASE_FALLBACK_TAG


class NpmClient(RegistryClient):
    kind = "npm"
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
        tool = registry.tool or "npm"
        if shutil.which(tool) is None:
            return Err(self._missing_tool(tool, package, registry))

        endpoint = _endpoint(registry)
        env = dict(os.environ)
        if credential is not None:
            env["NODE_AUTH_TOKEN"] = credential.token

        with tempfile.TemporaryDirectory(prefix="pubseq-npm-") as tmp:
            npmrc = Path(tmp) / ".npmrc"
            npmrc.write_text(npmrc_content(endpoint), encoding="utf-8")

            cmd = [tool, "publish", "--userconfig", str(npmrc), "--registry", f"{endpoint}/"]
            tag = dist_tag_for(package.version)
            if tag is not None:
                cmd.extend(["--tag", tag])
            if dry_run:
                cmd.append("--dry-run")
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
        # Scoped names are fetched as @scope%2Fname.
        url = f"{_endpoint(registry)}/{quote(package.name, safe='@')}"
        result = self._http.get_json(url)
        if isinstance(result, Err):
            if result.error.not_found:
                return Ok(False)
            return result

        versions = get_table(as_str_dict(result.value) or {}, "versions") or {}
        return Ok(package.version in versions)
