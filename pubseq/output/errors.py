"""Error presentation utilities.

One place that turns build and registry error payloads into the short
reason strings used by the console and the run report.
"""

from __future__ import annotations

from pubseq.builders.errors import (
    ArtifactNotProduced,
    BuildError,
    CompilationFailed,
    ToolchainMissing,
)
from pubseq.registries.errors import (
    AuthenticationFailed,
    PackageRejected,
    RegistryError,
    TransientNetworkError,
    VersionAlreadyExists,
)

__all__ = [
    "describe_build_error",
    "describe_registry_error",
    "error_details",
    "error_hint",
    "error_kind",
]


def error_kind(error: BuildError | RegistryError) -> str:
    """Stable taxonomy name, e.g. "VersionAlreadyExists"."""
    return type(error).__name__


def describe_build_error(error: BuildError) -> str:
    match error:
        case ToolchainMissing(tool=tool):
            return f"{tool}: missing"
        case CompilationFailed(package=package, returncode=rc):
            return f"build of {package} failed (exit {rc})"
        case ArtifactNotProduced(path=path, reason=reason):
            return f"artifact not produced: {path} ({reason})"


def describe_registry_error(error: RegistryError) -> str:
    match error:
        case AuthenticationFailed(registry=registry, details=details):
            return f"authentication failed for {registry}: {details}"
        case VersionAlreadyExists(package=package, version=version, registry=registry):
            return f"{package}@{version} already exists on {registry}"
        case PackageRejected(package=package, registry=registry, details=details):
            first = details.strip().splitlines()[0] if details.strip() else "rejected"
            return f"{registry} rejected {package}: {first}"
        case TransientNetworkError(registry=registry, details=details):
            first = details.strip().splitlines()[-1] if details.strip() else "network error"
            return f"network error talking to {registry}: {first}"


def error_hint(error: BuildError | RegistryError) -> str | None:
    match error:
        case ToolchainMissing(hint=hint):
            return hint
        case AuthenticationFailed(hint=hint) | PackageRejected(hint=hint):
            return hint
        case VersionAlreadyExists():
            return "Bump the version in the manifest, or resume from the next unit with --start-at"
        case _:
            return None


def error_details(error: BuildError | RegistryError) -> str | None:
    """Multi-line tool output worth showing dimmed under the error line."""
    match error:
        case CompilationFailed(details=details):
            return details or None
        case PackageRejected(details=details) | TransientNetworkError(details=details):
            return details or None
        case AuthenticationFailed(details=details):
            return details or None
        case _:
            return None
