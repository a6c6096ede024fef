"""Base definitions for registry clients.

This module defines the capability set every registry kind implements:
- authenticate: resolve the opaque token for a registry
- publish: push one built artifact
- is_resolvable: report whether a published version is visible to consumers
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from pubseq.core.result import Err, Ok, Result
from pubseq.registries.errors import (
    AuthenticationFailed,
    PackageRejected,
    RegistryError,
    TransientNetworkError,
    VersionAlreadyExists,
)

if TYPE_CHECKING:
    from pubseq.plan.model import Package, Registry
    from pubseq.platform.http import HttpError
    from pubseq.platform.process import ProcessError

__all__ = [
    "Ack",
    "Credential",
    "OutputMarkers",
    "RegistryClient",
    "classify_failure",
    "TRANSIENT_MARKERS",
]

MASK = "***"

# Phrases from network layers (curl, libc, HTTP status lines). Bare words such
# as "timeout" are avoided: compiler output quotes source identifiers.
TRANSIENT_MARKERS: tuple[str, ...] = (
    "operation timed out",
    "connection timed out",
    "timeout was reached",
    "spurious network error",
    "connection reset",
    "connection refused",
    "temporarily unavailable",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
    "tls handshake timeout",
    "network is unreachable",
    "could not resolve host",
    "http 429",
    "http 500",
    "http 502",
    "http 503",
    "http 504",
    "status 429",
    "status 500",
    "status 502",
    "status 503",
    "status 504",
)


@dataclass(frozen=True, slots=True)
class Credential:
    """Opaque registry token. Never parsed, never printed."""

    registry: str
    token: str = field(repr=False)

    def mask(self, text: str) -> str:
        if not self.token:
            return text
        return text.replace(self.token, MASK)


@dataclass(frozen=True, slots=True)
class Ack:
    package: str
    version: str
    registry: str
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class OutputMarkers:
    """Lower-case substrings of tool output, checked in field order."""

    already_exists: tuple[str, ...]
    rejected: tuple[str, ...]
    auth: tuple[str, ...]
    transient: tuple[str, ...] = TRANSIENT_MARKERS


def _tail(text: str, lines: int = 20) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


def classify_failure(
    error: ProcessError,
    *,
    package: Package,
    registry: Registry,
    markers: OutputMarkers,
    credential: Credential | None,
) -> RegistryError:
    """Map a failed publish command to the registry error taxonomy."""
    output = error.output
    if credential is not None:
        output = credential.mask(output)
    text = output.lower()
    details = _tail(output) or str(error)

    if any(m in text for m in markers.already_exists):
        return VersionAlreadyExists(
            package=package.name,
            version=package.version,
            registry=registry.id,
        )
    if any(m in text for m in markers.rejected):
        return PackageRejected(package=package.name, registry=registry.id, details=details)
    if any(m in text for m in markers.auth):
        return AuthenticationFailed(
            registry=registry.id,
            details=details,
            hint=f"Check the token in ${registry.token_env}" if registry.token_env else None,
        )
    if error.timed_out or any(m in text for m in markers.transient):
        return TransientNetworkError(registry=registry.id, details=details)
    return PackageRejected(package=package.name, registry=registry.id, details=details)


class RegistryClient(ABC):
    """Abstract base class for registry kinds.

    Subclasses must define:
    - kind: tag matched against a registry's `kind` in the plan
    - publish(): push an artifact

    `authenticate` reads the token from the environment variable named by the
    registry's `token_env`. Kinds that can look a version up override
    `is_resolvable` and set `supports_confirmation`.
    """

    kind: str
    supports_confirmation: bool = False

    def authenticate(
        self,
        registry: Registry,
        environ: Mapping[str, str],
    ) -> Result[Credential, AuthenticationFailed]:
        if registry.token_env is None:
            return Err(
                AuthenticationFailed(
                    registry=registry.id,
                    details="no token_env configured",
                    hint=f"Set token_env in [registries.{registry.id}]",
                )
            )
        token = environ.get(registry.token_env, "").strip()
        if not token:
            return Err(
                AuthenticationFailed(
                    registry=registry.id,
                    details=f"${registry.token_env} is not set",
                    hint=f"Export {registry.token_env} before running the release",
                )
            )
        return Ok(Credential(registry=registry.id, token=token))

    @abstractmethod
    def publish(
        self,
        artifact: Path,
        package: Package,
        registry: Registry,
        credential: Credential | None,
        *,
        dry_run: bool = False,
    ) -> Result[Ack, RegistryError]:
        """Publish the artifact directory as package@version.

        credential is None only in dry-run mode. Implementations never retry.
        """
        ...

    def is_resolvable(self, package: Package, registry: Registry) -> Result[bool, HttpError]:
        """Whether consumers can already resolve package@version."""
        return Ok(False)

    def _missing_tool(self, tool: str, package: Package, registry: Registry) -> PackageRejected:
        return PackageRejected(
            package=package.name,
            registry=registry.id,
            details=f"{tool}: not found",
            hint=f"Install {tool} or set tool = \"/path/to/{tool}\" in [registries.{registry.id}]",
        )
