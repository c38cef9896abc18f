"""The TemporalCluster resource and the specs it is made of."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar

from .archival import ClusterArchivalSpec
from .dynamicconfig import DynamicConfigSpec
from .version import Version

CERT_MANAGER_MTLS_PROVIDER = "cert-manager"
POSTGRES12_PLUGIN = "postgres12"
MYSQL8_PLUGIN = "mysql8"


@dataclass
class PrometheusSpec:
    listen_address: str = ""
    listen_port: int | None = None


@dataclass
class MetricsSpec:
    enabled: bool = False
    prometheus: PrometheusSpec | None = None
    per_unit_histogram_boundaries: dict[str, list[str]] | None = None

    def is_enabled(self) -> bool:
        return self.enabled


@dataclass
class MTLSSpec:
    provider: str = ""
    internode_enabled: bool = False
    frontend_enabled: bool = False


@dataclass
class ElasticsearchSpec:
    version: str = ""
    url: str = ""
    username: str = ""


@dataclass
class SQLSpec:
    plugin_name: str = ""
    database_name: str = ""
    connect_addr: str = ""
    user: str = ""


@dataclass
class CassandraSpec:
    hosts: list[str] = field(default_factory=list)
    port: int = 0
    keyspace: str = ""
    user: str = ""


class DatastoreKind(enum.Enum):
    CASSANDRA = "cassandra"
    SQL = "sql"
    ELASTICSEARCH = "elasticsearch"
    UNKNOWN = "unknown"


@dataclass
class DatastoreSpec:
    name: str = ""
    sql: SQLSpec | None = None
    elasticsearch: ElasticsearchSpec | None = None
    cassandra: CassandraSpec | None = None

    def kind(self) -> DatastoreKind:
        if self.cassandra is not None:
            return DatastoreKind.CASSANDRA
        if self.sql is not None:
            return DatastoreKind.SQL
        if self.elasticsearch is not None:
            return DatastoreKind.ELASTICSEARCH
        return DatastoreKind.UNKNOWN


@dataclass
class PersistenceSpec:
    default_store: DatastoreSpec | None = None
    visibility_store: DatastoreSpec | None = None
    advanced_visibility_store: DatastoreSpec | None = None
    secondary_visibility_store: DatastoreSpec | None = None

    def datastores(self) -> dict[str, DatastoreSpec]:
        """The configured stores, keyed by their field name in the spec."""
        stores = {
            "defaultStore": self.default_store,
            "visibilityStore": self.visibility_store,
            "advancedVisibilityStore": self.advanced_visibility_store,
            "secondaryVisibilityStore": self.secondary_visibility_store,
        }
        return {name: store for name, store in stores.items() if store is not None}


@dataclass
class ServiceSpec:
    enabled: bool = False
    replicas: int | None = None

    def is_enabled(self) -> bool:
        return self.enabled


@dataclass
class ServicesSpec:
    frontend: ServiceSpec | None = None
    history: ServiceSpec | None = None
    matching: ServiceSpec | None = None
    worker: ServiceSpec | None = None
    internal_frontend: ServiceSpec | None = None


@dataclass
class ServiceStatus:
    name: str
    version: str = ""
    ready: bool = False


@dataclass
class TemporalClusterSpec:
    version: Version | None = None
    num_history_shards: int = 0
    metrics: MetricsSpec | None = None
    mtls: MTLSSpec | None = None
    persistence: PersistenceSpec = field(default_factory=PersistenceSpec)
    services: ServicesSpec | None = None
    dynamic_config: DynamicConfigSpec | None = None
    archival: ClusterArchivalSpec | None = None


@dataclass
class TemporalCluster:
    KIND: ClassVar[str] = "TemporalCluster"
    GROUP: ClassVar[str] = "temporal.io"

    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    spec: TemporalClusterSpec = field(default_factory=TemporalClusterSpec)
    services_status: list[ServiceStatus] = field(default_factory=list)

    def child_resource_name(self, resource: str) -> str:
        return f"{self.name}-{resource}"

    def mtls_with_cert_manager_enabled(self) -> bool:
        mtls = self.spec.mtls
        if mtls is None:
            return False
        return mtls.provider == CERT_MANAGER_MTLS_PROVIDER and (
            mtls.internode_enabled or mtls.frontend_enabled
        )