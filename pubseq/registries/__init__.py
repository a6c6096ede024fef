"""Registry clients and the kind table.

Usage:
    from pubseq.registries import get_registry_client

    client = get_registry_client("cargo")
    if client:
        client.publish(artifact, package, registry, credential)

New registry kinds are added by subclassing RegistryClient and listing an
instance in `default_registry_clients`; the orchestrator never changes.
"""

from __future__ import annotations

from pubseq.platform.http import HttpClient
from pubseq.registries.base import Ack, Credential, RegistryClient
from pubseq.registries.cargo import CargoClient
from pubseq.registries.errors import (
    AuthenticationFailed,
    PackageRejected,
    RegistryError,
    TransientNetworkError,
    VersionAlreadyExists,
    is_retryable,
)
from pubseq.registries.npm import NpmClient

__all__ = [
    "Ack",
    "Credential",
    "RegistryClient",
    "CargoClient",
    "NpmClient",
    "AuthenticationFailed",
    "PackageRejected",
    "RegistryError",
    "TransientNetworkError",
    "VersionAlreadyExists",
    "is_retryable",
    "REGISTRY_KINDS",
    "default_registry_clients",
    "get_registry_client",
]

REGISTRY_KINDS: tuple[str, ...] = (CargoClient.kind, NpmClient.kind)


def default_registry_clients(http: HttpClient | None = None) -> dict[str, RegistryClient]:
    """One client per kind, sharing a single HTTP client for lookups."""
    clients: tuple[RegistryClient, ...] = (CargoClient(http), NpmClient(http))
    return {c.kind: c for c in clients}


def get_registry_client(kind: str, http: HttpClient | None = None) -> RegistryClient | None:
    return default_registry_clients(http).get(kind)
