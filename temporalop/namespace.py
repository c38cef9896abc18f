"""Requests sent to a Temporal cluster to manage its namespaces."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import timedelta

from .archival import ArchivalSpec, archival_uri
from .cluster import TemporalCluster


class ArchivalState(enum.IntEnum):
    UNSPECIFIED = 0
    DISABLED = 1
    ENABLED = 2


@dataclass
class NamespaceArchivalSpec:
    history: ArchivalSpec | None = None
    visibility: ArchivalSpec | None = None


@dataclass
class TemporalNamespace:
    name: str
    description: str = ""
    owner_email: str = ""
    data: dict[str, str] = field(default_factory=dict)
    security_token: str = ""
    archival: NamespaceArchivalSpec | None = None
    retention_period: timedelta | None = None
    is_global_namespace: bool = False
    clusters: list[str] = field(default_factory=list)
    active_cluster_name: str = ""


@dataclass
class RegisterNamespaceRequest:
    namespace: str
    description: str = ""
    owner_email: str = ""
    data: dict[str, str] = field(default_factory=dict)
    security_token: str = ""
    history_archival_state: ArchivalState = ArchivalState.UNSPECIFIED
    history_archival_uri: str = ""
    visibility_archival_state: ArchivalState = ArchivalState.UNSPECIFIED
    visibility_archival_uri: str = ""
    workflow_execution_retention_period: timedelta | None = None
    is_global_namespace: bool = False
    clusters: list[str] = field(default_factory=list)
    active_cluster_name: str = ""


@dataclass
class UpdateNamespaceRequest:
    namespace: str
    description: str = ""
    owner_email: str = ""
    data: dict[str, str] = field(default_factory=dict)
    history_archival_state: ArchivalState = ArchivalState.UNSPECIFIED
    history_archival_uri: str = ""
    visibility_archival_state: ArchivalState = ArchivalState.UNSPECIFIED
    visibility_archival_uri: str = ""
    workflow_execution_retention_ttl: timedelta | None = None
    promote_namespace: bool = False
    clusters: list[str] = field(default_factory=list)
    active_cluster_name: str = ""


@dataclass
class DeleteNamespaceRequest:
    namespace: str


def _archival_overrides(
    cluster: TemporalCluster, namespace: TemporalNamespace
) -> dict[str, object]:
    """Namespace-level archival settings, honoured only if the cluster archives."""
    archival = cluster.spec.archival
    if archival is None or not archival.is_enabled() or namespace.archival is None:
        return {}
    overrides: dict[str, object] = {}
    for kind in ("history", "visibility"):
        spec = getattr(namespace.archival, kind)
        if spec is None:
            continue
        overrides[f"{kind}_archival_state"] = (
            ArchivalState.ENABLED if spec.enabled else ArchivalState.DISABLED
        )
        overrides[f"{kind}_archival_uri"] = archival_uri(archival.provider, spec)
    return overrides


def register_namespace_request(
    cluster: TemporalCluster, namespace: TemporalNamespace
) -> RegisterNamespaceRequest:
    request = RegisterNamespaceRequest(
        namespace=namespace.name,
        description=namespace.description,
        owner_email=namespace.owner_email,
        data=dict(namespace.data),
        security_token=namespace.security_token,
        workflow_execution_retention_period=namespace.retention_period,
        **_archival_overrides(cluster, namespace),
    )
    if namespace.is_global_namespace:
        request.is_global_namespace = True
        request.clusters = list(namespace.clusters)
        request.active_cluster_name = namespace.active_cluster_name
    return request


def update_namespace_request(
    cluster: TemporalCluster, namespace: TemporalNamespace
) -> UpdateNamespaceRequest:
    request = UpdateNamespaceRequest(
        namespace=namespace.name,
        description=namespace.description,
        owner_email=namespace.owner_email,
        data=dict(namespace.data),
        workflow_execution_retention_ttl=namespace.retention_period,
        **_archival_overrides(cluster, namespace),
    )
    if namespace.is_global_namespace:
        request.promote_namespace = True
        request.clusters = list(namespace.clusters)
        request.active_cluster_name = namespace.active_cluster_name
    return request


def delete_namespace_request(namespace: TemporalNamespace) -> DeleteNamespaceRequest:
    return DeleteNamespaceRequest(namespace=namespace.name)