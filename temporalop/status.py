"""Readiness of a TemporalCluster computed from its deployments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .cluster import ServiceStatus, TemporalCluster

_SERVICES = ("frontend", "history", "matching", "worker", "internal-frontend")
_VERSION_LABEL = "app.kubernetes.io/version"


@dataclass
class Deployment:
    """The parts of an apps/v1 Deployment that matter for readiness."""

    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    api_version: str = "apps/v1"
    kind: str = "Deployment"
    generation: int = 0
    spec_replicas: int | None = None
    observed_generation: int = 0
    replicas: int = 0
    updated_replicas: int = 0
    ready_replicas: int = 0
    available_replicas: int = 0
    conditions: dict[str, str] = field(default_factory=dict)

    def is_ready(self) -> bool:
        """True once the rollout has been observed and every replica is available."""
        if self.observed_generation < self.generation:
            return False
        desired = 1 if self.spec_replicas is None else self.spec_replicas
        if min(self.updated_replicas, self.ready_replicas, self.available_replicas) < desired:
            return False
        if self.replicas > self.updated_replicas:
            return False
        return not any(self.conditions.get(kind) == "False" for kind in ("Available", "Progressing"))


def _desired_version(cluster: TemporalCluster) -> str:
    version = cluster.spec.version
    return "" if version is None else str(version)


def observed_version_matches_desired_version(cluster: TemporalCluster) -> bool:
    """True if every service reports the cluster's desired version."""
    statuses = cluster.services_status
    desired = _desired_version(cluster)
    return bool(statuses) and all(s.version == desired for s in statuses)


def is_cluster_ready(cluster: TemporalCluster) -> bool:
    """True if every service is ready and runs the desired version."""
    statuses = cluster.services_status
    desired = _desired_version(cluster)
    return bool(statuses) and all(s.ready and s.version == desired for s in statuses)


def _is_deployment(obj: Any) -> bool:
    return getattr(obj, "api_version", None) == "apps/v1" and getattr(obj, "kind", None) == "Deployment"


def reconciled_objects_to_service_statuses(
    cluster: TemporalCluster, objects: Iterable[Any]
) -> list[ServiceStatus]:
    """Statuses of the cluster's service deployments among the given objects."""
    result = []
    for obj in objects:
        if not _is_deployment(obj) or obj.namespace != cluster.namespace:
            continue
        for service in _SERVICES:
            if obj.name != cluster.child_resource_name(service):
                continue
            result.append(
                ServiceStatus(
                    name=service,
                    version=obj.labels.get(_VERSION_LABEL, "0.0.0"),
                    ready=obj.is_ready(),
                )
            )
    return result