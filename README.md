# temporalop

Helpers for describing Temporal clusters that run on Kubernetes. The package
checks a cluster description, fills in derived fields and turns parts of it
into the configuration and requests the Temporal server expects. It uses only
the standard library.

## Modules

- `temporalop.version`: semantic versions (`parse_version`, `version_from_json`,
  `Version`) and version constraints (`parse_constraint`, `Constraint`, with
  `check`). `Version.validate` raises `ValueError` outside the supported range
  `>= 1.14.0 < 1.23.0`; `Version.upgrade_constraint` allows only upgrades from
  v1.n.x to v1.n+1.x.
- `temporalop.cluster`: the `TemporalCluster` resource and its specs
  (`TemporalClusterSpec`, `MetricsSpec`, `PrometheusSpec`, `MTLSSpec`,
  `PersistenceSpec`, `DatastoreSpec`, `ServicesSpec`, `ServiceStatus`, ...).
- `temporalop.webhook`: `TemporalClusterWebhook`. `default` turns the deprecated
  `prometheus.listen_address` into `listen_port`; `validate_create` and
  `validate_update` return a list of warnings or raise `InvalidObjectError`,
  which holds the `FieldError`s found. `validate_update` also refuses
  non-sequential upgrades and changes to `num_history_shards`.
- `temporalop.dynamicconfig`: `dynamic_config_to_yaml` turns a
  `DynamicConfigSpec` into the dynamic configuration file layout (JSON numbers
  come back as floats).
- `temporalop.archival`: archival providers, `archival_uri`,
  `filestore_archiver_config` and `s3_archiver_config`.
- `temporalop.authorization`: `to_temporal_authorization`.
- `temporalop.logconfig`: `new_log_config` and `SDKLogAdapter`, which passes
  log calls to a standard `logging.Logger`.
- `temporalop.status`: `observed_version_matches_desired_version`,
  `is_cluster_ready` and `reconciled_objects_to_service_statuses`, which reads
  service readiness from `Deployment` objects.
- `temporalop.namespace`: `register_namespace_request`,
  `update_namespace_request` and `delete_namespace_request` built from a
  `TemporalNamespace`.
- `temporalop.overrides`: `apply_deployment_overrides`,
  `apply_pod_template_spec_overrides`, `apply_service_overrides` and
  `patch_pod_spec`. Kubernetes objects are plain dictionaries in their JSON
  shape; pod specs are merged by container name and the like.

## Installation

```
pip install .
```

## Example

```python
from temporalop.cluster import TemporalCluster, TemporalClusterSpec
from temporalop.version import parse_version
from temporalop.webhook import AvailableAPIs, InvalidObjectError, TemporalClusterWebhook

webhook = TemporalClusterWebhook(available_apis=AvailableAPIs(cert_manager=True))

old = TemporalCluster(name="prod", spec=TemporalClusterSpec(version=parse_version("1.18.4")))
new = TemporalCluster(name="prod", spec=TemporalClusterSpec(version=parse_version("1.20.0")))

try:
    webhook.validate_update(old, new)
except InvalidObjectError as exc:
    print(exc)
```

The upgrade from 1.18 to 1.20 skips a minor version, so the update is refused:

```
TemporalCluster.temporal.io "prod" is invalid: spec.version: Forbidden: Unauthorized version upgrade. Only sequential version upgrades are allowed (from v1.n.x to v1.n+1.x)
```

## What it does not do

The package works on in-memory descriptions only. It does not talk to a
Kubernetes API server or to a Temporal cluster, runs no controller, admission
server or reconcile loop, and has no command-line program. Sending the
namespace requests it builds, or storing the objects it patches, is left to the
caller.

## Running the tests

```
pip install .[test]
pytest
```