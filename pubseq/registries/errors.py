from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AuthenticationFailed:
    registry: str
    details: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class VersionAlreadyExists:
    package: str
    version: str
    registry: str


@dataclass(frozen=True, slots=True)
class PackageRejected:
    package: str
    registry: str
    details: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class TransientNetworkError:
    registry: str
    details: str


RegistryError = (
    AuthenticationFailed
    | VersionAlreadyExists
    | PackageRejected
    | TransientNetworkError
)


def is_retryable(error: RegistryError) -> bool:
    """Only network hiccups are worth another attempt; everything else is terminal."""
    return isinstance(error, TransientNetworkError)
