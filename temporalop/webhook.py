"""Defaulting and validation of TemporalCluster resources."""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from .archival import ArchivalProviderKind
from .cluster import (
    CERT_MANAGER_MTLS_PROVIDER,
    MYSQL8_PLUGIN,
    POSTGRES12_PLUGIN,
    DatastoreKind,
    TemporalCluster,
)
from .version import (
    FORBIDDEN_BROKEN_RELEASES,
    SUPPORTED_VERSIONS_RANGE,
    V1_18_0,
    V1_20_0,
    V1_21_0,
)

# Names accepted by the server for task queue types and history task types,
# in enum order, without the "Unspecified" zero value.
TASK_QUEUE_TYPES = ("Workflow", "Activity")
HISTORY_TASK_TYPES = (
    "ReplicationHistory",
    "ReplicationSyncActivity",
    "TransferWorkflowTask",
    "TransferActivityTask",
    "TransferCloseExecution",
    "TransferCancelExecution",
    "TransferStartChildExecution",
    "TransferSignalExecution",
    "TransferResetWorkflow",
    "WorkflowTaskTimeout",
    "ActivityTimeout",
    "UserTimer",
    "WorkflowRunTimeout",
    "DeleteHistoryEvent",
    "ActivityRetryTimer",
    "WorkflowBackoffTimer",
    "VisibilityStartExecution",
    "VisibilityUpsertExecution",
    "VisibilityCloseExecution",
    "VisibilityDeleteExecution",
    "TransferDeleteExecution",
    "ReplicationSyncWorkflowState",
    "ArchivalArchiveExecution",
)
_UNSPECIFIED = "Unspecified"

_INT_RE = re.compile(r"[+-]?[0-9]+\Z")


def _quote(value: Any) -> str:
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _path(*parts: str) -> str:
    return ".".join(parts)


@dataclass
class AvailableAPIs:
    """Optional APIs found in the Kubernetes cluster."""

    istio: bool = False
    cert_manager: bool = False
    prometheus_operator: bool = False


class FieldErrorType(enum.Enum):
    INVALID = "Invalid value"
    FORBIDDEN = "Forbidden"
    NOT_SUPPORTED = "Unsupported value"


@dataclass(frozen=True)
class FieldError:
    """A problem with one field of a resource."""

    path: str
    type: FieldErrorType
    detail: str = ""
    value: Any = None
    supported: tuple[str, ...] = ()

    @classmethod
    def invalid(cls, path: str, value: Any, detail: str) -> FieldError:
        return cls(path, FieldErrorType.INVALID, detail, value)

    @classmethod
    def forbidden(cls, path: str, detail: str) -> FieldError:
        return cls(path, FieldErrorType.FORBIDDEN, detail)

    @classmethod
    def not_supported(cls, path: str, value: Any, supported: Iterable[str]) -> FieldError:
        return cls(path, FieldErrorType.NOT_SUPPORTED, "", value, tuple(supported))

    def __str__(self) -> str:
        if self.type is FieldErrorType.FORBIDDEN:
            body = "Forbidden"
            if self.detail:
                body += f": {self.detail}"
        elif self.type is FieldErrorType.INVALID:
            body = f"Invalid value: {_quote(self.value)}"
            if self.detail:
                body += f": {self.detail}"
        else:
            body = f"Unsupported value: {_quote(self.value)}"
            if self.supported:
                body += ": supported values: " + ", ".join(_quote(s) for s in self.supported)
        return f"{self.path}: {body}"


class InvalidObjectError(ValueError):
    """Raised when a resource fails validation."""

    def __init__(
        self,
        kind: str,
        name: str,
        errors: Iterable[FieldError],
        warnings: Iterable[str] = (),
    ) -> None:
        unique: list[FieldError] = []
        seen: set[str] = set()
        for error in errors:
            text = str(error)
            if text not in seen:
                seen.add(text)
                unique.append(error)
        self.kind = kind
        self.name = name
        self.errors = unique
        self.warnings = list(warnings)
        message = f"{kind} {_quote(name)} is invalid"
        if len(unique) == 1:
            message += f": {unique[0]}"
        elif unique:
            message += ": [" + ", ".join(str(e) for e in unique) + "]"
        super().__init__(message)


def _split_host_port(hostport: str) -> tuple[str, str]:
    def fail(why: str) -> ValueError:
        return ValueError(f"address {hostport}: {why}")

    i = hostport.rfind(":")
    if i < 0:
        raise fail("missing port in address")
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise fail("missing ']' in address")
        if end + 1 == len(hostport):
            raise fail("missing port in address")
        if end + 1 != i:
            if hostport[end + 1] == ":":
                raise fail("too many colons in address")
            raise fail("missing port in address")
        host = hostport[1:end]
        j, k = 1, end + 1
    else:
        host = hostport[:i]
        if ":" in host:
            raise fail("too many colons in address")
        j, k = 0, 0
    if "[" in hostport[j:]:
        raise fail("unexpected '[' in address")
    if "]" in hostport[k:]:
        raise fail("unexpected ']' in address")
    return host, hostport[i + 1 :]


def _parse_int32(text: str) -> int:
    if not _INT_RE.match(text):
        raise ValueError(f"strconv.ParseInt: parsing {_quote(text)}: invalid syntax")
    number = int(text)
    if not -(2**31) <= number < 2**31:
        raise ValueError(f"strconv.ParseInt: parsing {_quote(text)}: value out of range")
    return number


def _is_float(text: str) -> bool:
    if not text or text != text.strip() or "_" in text:
        return False
    try:
        float(text)
        return True
    except ValueError:
        pass
    lowered = text.lower()
    if "0x" in lowered and "p" in lowered:
        try:
            float.fromhex(text)
            return True
        except ValueError:
            return False
    return False


def _as_cluster(obj: Any) -> TemporalCluster:
    if not isinstance(obj, TemporalCluster):
        raise TypeError(f"expected an TemporalCluster but got a {type(obj).__name__}")
    return obj


def _kind(cluster: TemporalCluster) -> str:
    return f"{cluster.KIND}.{cluster.GROUP}"


@dataclass
class TemporalClusterWebhook:
    """Sets defaults on and validates TemporalCluster resources."""

    available_apis: AvailableAPIs = field(default_factory=AvailableAPIs)

    def default(self, cluster: TemporalCluster) -> None:
        """Fill in fields derived from deprecated ones, in place."""
        cluster = _as_cluster(cluster)
        metrics = cluster.spec.metrics
        if metrics is None or not metrics.is_enabled() or metrics.prometheus is None:
            return
        prometheus = metrics.prometheus
        if prometheus.listen_address and prometheus.listen_port is None:
            try:
                _, port = _split_host_port(prometheus.listen_address)
            except ValueError as exc:
                raise ValueError(
                    f"can't parse prometheus spec.metrics.prometheus.listenAddress: {exc}"
                ) from exc
            try:
                port_number = _parse_int32(port)
            except ValueError as exc:
                raise ValueError(
                    f"can't parse prometheus spec.metrics.prometheus.listenAddress port: {exc}"
                ) from exc
            prometheus.listen_address = ""
            prometheus.listen_port = port_number

    def _validate(self, cluster: TemporalCluster) -> tuple[list[str], list[FieldError]]:
        warnings: list[str] = []
        errors: list[FieldError] = []
        spec = cluster.spec
        version = spec.version
        apis = self.available_apis or AvailableAPIs()

        if cluster.mtls_with_cert_manager_enabled() and not apis.cert_manager:
            errors.append(
                FieldError.invalid(
                    _path("spec", "mTLS", "provider"),
                    spec.mtls.provider if spec.mtls else CERT_MANAGER_MTLS_PROVIDER,
                    "Can't use cert-manager as mTLS provider as it's not available in the cluster",
                )
            )

        supported = version is not None
        if supported:
            try:
                version.validate()
            except ValueError:
                supported = False
        if not supported:
            errors.append(
                FieldError.forbidden(
                    _path("spec", "version"),
                    f"Unsupported temporal version (supported: {SUPPORTED_VERSIONS_RANGE})",
                )
            )

        persistence = spec.persistence
        advanced = persistence.advanced_visibility_store

        if (
            version is not None
            and version.greater_or_equal(V1_18_0)
            and advanced is not None
            and advanced.elasticsearch is not None
            and advanced.elasticsearch.version == "v6"
        ):
            errors.append(
                FieldError.forbidden(
                    _path("spec", "persistence", "advancedVisibilityStore", "elasticsearch", "version"),
                    "temporal cluster version >= 1.18.0 doesn't support ElasticSearch v6",
                )
            )

        if spec.dynamic_config is not None:
            errors.extend(self._validate_dynamic_config(spec.dynamic_config.values))

        archival = spec.archival
        if archival is not None and archival.is_enabled():
            provider = archival.provider
            kind = provider.kind() if provider is not None else ArchivalProviderKind.UNKNOWN
            if kind is ArchivalProviderKind.UNKNOWN:
                errors.append(
                    FieldError.forbidden(
                        _path("spec", "archival", "provider"),
                        "Please provide an archival provider or disable cluster archival",
                    )
                )
            if kind is ArchivalProviderKind.S3:
                s3 = provider.s3
                if s3.role_name is None and s3.credentials is None:
                    errors.append(
                        FieldError.forbidden(
                            _path("spec", "archival", "provider", "s3"),
                            "Please provide s3 role name if using EKS or s3 credentials for s3 provider "
                            "(spec.archival.provider.s3.roleName or spec.archival.provider.s3.credentials)",
                        )
                    )

        if version is not None:
            for broken in FORBIDDEN_BROKEN_RELEASES:
                if version == broken:
                    errors.append(
                        FieldError.forbidden(
                            _path("spec", "version"),
                            f"version {version} is marked as broken by the operator, "
                            f"please upgrade to {version.inc_patch()} (if allowed)",
                        )
                    )

            if not version.greater_or_equal(V1_20_0):
                services = spec.services
                internal = services.internal_frontend if services is not None else None
                if internal is not None and internal.is_enabled():
                    errors.append(
                        FieldError.forbidden(
                            _path("spec", "services", "internalFrontend", "enabled"),
                            "temporal cluster version < 1.20.0 doesn't support internal frontend",
                        )
                    )
                new_plugins = (POSTGRES12_PLUGIN, MYSQL8_PLUGIN)
                for name, store in persistence.datastores().items():
                    if store.sql is not None and store.sql.plugin_name in new_plugins:
                        errors.append(
                            FieldError.forbidden(
                                _path("spec", "persistence", name, "sql", "pluginName"),
                                "temporal cluster version < 1.20.0 doesn't support "
                                f"{store.sql.plugin_name} plugin name",
                            )
                        )

            if not version.greater_or_equal(V1_21_0):
                if persistence.secondary_visibility_store is not None:
                    errors.append(
                        FieldError.forbidden(
                            _path("spec", "persistence", "secondaryVisibilityStore"),
                            "temporal cluster version < 1.21.0 doesn't support secondary visibility store",
                        )
                    )
            else:
                if advanced is not None:
                    warnings.append(
                        "Starting from temporal >= 1.21 standard visibility becomes advanced visibility. "
                        "Advanced visibility configuration is now moved to standard visibility. "
                        "Please only use visibility datastore configuration. Advanced visibility store "
                        "usage will be forbidden by the operator for clusters >= 1.23."
                    )
                    if advanced.kind() is not DatastoreKind.ELASTICSEARCH:
                        errors.append(
                            FieldError.forbidden(
                                _path("spec", "persistence", "advancedVisibilityStore"),
                                "Temporal cluster version >= 1.21.0 only supports Elasticsearch as an "
                                "advanced visibility store, use standard visibility store instead.",
                            )
                        )
                visibility = persistence.visibility_store
                if visibility is not None and visibility.cassandra is not None:
                    warnings.append(
                        "Support for Cassandra as a Visibility database is deprecated beginning "
                        "with Temporal Server v1.21."
                    )

        metrics = spec.metrics
        if metrics is not None and metrics.is_enabled() and metrics.per_unit_histogram_boundaries is not None:
            for values in metrics.per_unit_histogram_boundaries.values():
                for text in values:
                    if not _is_float(text):
                        errors.append(
                            FieldError.forbidden(
                                _path("spec", "metrics", "perUnitHistogramBoundaries"),
                                f"can't parse this strings value to float64: {text} ",
                            )
                        )

        return warnings, errors

    @staticmethod
    def _validate_dynamic_config(values: dict) -> list[FieldError]:
        errors = []
        for key, constrained_values in values.items():
            for position, constrained in enumerate(constrained_values):
                c = constrained.constraints
                base = ("spec", "dynamicConfig", "values", key, f"[{position}]", "constraints")
                if c.task_queue_type and c.task_queue_type not in (_UNSPECIFIED, *TASK_QUEUE_TYPES):
                    errors.append(
                        FieldError.not_supported(
                            _path(*base, "taskQueueType"), c.task_queue_type, TASK_QUEUE_TYPES
                        )
                    )
                if c.task_type and c.task_type not in (_UNSPECIFIED, *HISTORY_TASK_TYPES):
                    errors.append(
                        FieldError.not_supported(
                            _path(*base, ".taskType"), c.task_type, HISTORY_TASK_TYPES
                        )
                    )
        return errors

    def validate_create(self, cluster: TemporalCluster) -> list[str]:
        """Validate a new cluster; return warnings or raise InvalidObjectError."""
        cluster = _as_cluster(cluster)
        warnings, errors = self._validate(cluster)
        if errors:
            raise InvalidObjectError(_kind(cluster), cluster.name, errors, warnings)
        return warnings

    def validate_update(self, old: TemporalCluster, new: TemporalCluster) -> list[str]:
        """Validate an update, allowing only sequential upgrades and fixed shard counts."""
        old = _as_cluster(old)
        new = _as_cluster(new)
        warnings, errors = self._validate(new)

        if old.spec.version is None:
            raise ValueError("can't compute version upgrade constraint: cluster has no version")
        constraint = old.spec.version.upgrade_constraint()
        if new.spec.version is None or not constraint.check(new.spec.version):
            errors.append(
                FieldError.forbidden(
                    _path("spec", "version"),
                    "Unauthorized version upgrade. Only sequential version upgrades are allowed "
                    "(from v1.n.x to v1.n+1.x)",
                )
            )

        if new.spec.num_history_shards != old.spec.num_history_shards:
            errors.append(
                FieldError.forbidden(
                    _path("spec", "numHistoryShards"),
                    "Number of history shards is immutable",
                )
            )

        if errors:
            raise InvalidObjectError(_kind(new), new.name, errors, warnings)
        return warnings

    def validate_delete(self, cluster: TemporalCluster) -> list[str]:
        """Deletion is always allowed."""
        return []