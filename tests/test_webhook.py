import pytest

from temporalop.archival import ArchivalProvider, ClusterArchivalSpec, S3Archiver
from temporalop.cluster import (
    CassandraSpec,
    DatastoreSpec,
    ElasticsearchSpec,
    MetricsSpec,
    MTLSSpec,
    PersistenceSpec,
    PrometheusSpec,
    ServiceSpec,
    ServicesSpec,
    SQLSpec,
    TemporalCluster,
    TemporalClusterSpec,
)
from temporalop.dynamicconfig import ConstrainedValue, Constraints, DynamicConfigSpec
from temporalop.version import parse_version
from temporalop.webhook import (
    AvailableAPIs,
    FieldError,
    FieldErrorType,
    InvalidObjectError,
    TemporalClusterWebhook,
)

PREFIX = 'TemporalCluster.temporal.io "fake" is invalid: '


def make_cluster(version=None, **spec):
    v = parse_version(version) if version is not None else None
    return TemporalCluster(name="fake", spec=TemporalClusterSpec(version=v, **spec))


def test_default_leaves_plain_cluster_unchanged():
    cluster = make_cluster()
    TemporalClusterWebhook().default(cluster)
    assert cluster == make_cluster()


def test_default_converts_prometheus_listen_address():
    cluster = make_cluster(
        metrics=MetricsSpec(enabled=True, prometheus=PrometheusSpec(listen_address="localhost:8080"))
    )
    TemporalClusterWebhook().default(cluster)
    assert cluster.spec.metrics.prometheus == PrometheusSpec(listen_address="", listen_port=8080)


def test_default_bad_port():
    cluster = make_cluster(
        metrics=MetricsSpec(enabled=True, prometheus=PrometheusSpec(listen_address="localhost:abc"))
    )
    with pytest.raises(ValueError) as exc:
        TemporalClusterWebhook().default(cluster)
    assert str(exc.value) == (
        "can't parse prometheus spec.metrics.prometheus.listenAddress port: "
        'strconv.ParseInt: parsing "abc": invalid syntax'
    )


def test_default_missing_port():
    cluster = make_cluster(
        metrics=MetricsSpec(enabled=True, prometheus=PrometheusSpec(listen_address="localhost"))
    )
    with pytest.raises(ValueError) as exc:
        TemporalClusterWebhook().default(cluster)
    assert str(exc.value) == (
        "can't parse prometheus spec.metrics.prometheus.listenAddress: "
        "address localhost: missing port in address"
    )


def test_default_ipv6_listen_address():
    cluster = make_cluster(
        metrics=MetricsSpec(enabled=True, prometheus=PrometheusSpec(listen_address="[::1]:9090"))
    )
    TemporalClusterWebhook().default(cluster)
    assert cluster.spec.metrics.prometheus.listen_port == 9090


def test_default_keeps_existing_port():
    cluster = make_cluster(
        metrics=MetricsSpec(
            enabled=True, prometheus=PrometheusSpec(listen_address="localhost:1", listen_port=2)
        )
    )
    TemporalClusterWebhook().default(cluster)
    assert cluster.spec.metrics.prometheus == PrometheusSpec(listen_address="localhost:1", listen_port=2)


def test_default_rejects_other_objects():
    with pytest.raises(TypeError, match="expected an TemporalCluster but got a str"):
        TemporalClusterWebhook().default("nope")


def test_validate_create_basic():
    wh = TemporalClusterWebhook(AvailableAPIs(istio=True, cert_manager=True, prometheus_operator=True))
    assert wh.validate_create(make_cluster("1.18.4")) == []


def test_validate_create_unsupported_version():
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(make_cluster("4560.18.4"))
    assert PREFIX + "spec.version: Forbidden: Unsupported temporal version" in str(exc.value)


def test_validate_create_broken_version():
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(make_cluster("1.21.0"))
    assert (
        PREFIX + "spec.version: Forbidden: version 1.21.0 is marked as broken by the operator, "
        "please upgrade to 1.21.1 (if allowed)"
    ) in str(exc.value)


def test_validate_create_cert_manager_missing():
    cluster = make_cluster(
        "1.18.4",
        mtls=MTLSSpec(provider="cert-manager", internode_enabled=True, frontend_enabled=True),
    )
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook(AvailableAPIs()).validate_create(cluster)
    assert (
        PREFIX + 'spec.mTLS.provider: Invalid value: "cert-manager": '
        "Can't use cert-manager as mTLS provider as it's not available in the cluster"
    ) in str(exc.value)


def test_validate_create_old_elasticsearch():
    cluster = make_cluster(
        "1.18.4",
        persistence=PersistenceSpec(
            advanced_visibility_store=DatastoreSpec(elasticsearch=ElasticsearchSpec(version="v6"))
        ),
    )
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(cluster)
    assert (
        PREFIX + "spec.persistence.advancedVisibilityStore.elasticsearch.version: Forbidden: "
        "temporal cluster version >= 1.18.0 doesn't support ElasticSearch v6"
    ) in str(exc.value)


def test_internal_frontend_needs_1_20():
    cluster = make_cluster("1.19.0", services=ServicesSpec(internal_frontend=ServiceSpec(enabled=True)))
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(cluster)
    assert str(exc.value) == (
        PREFIX + "spec.services.internalFrontend.enabled: Forbidden: "
        "temporal cluster version < 1.20.0 doesn't support internal frontend"
    )


def test_several_errors_are_listed():
    cluster = make_cluster(
        "1.19.0",
        persistence=PersistenceSpec(
            default_store=DatastoreSpec(sql=SQLSpec(plugin_name="postgres12")),
            secondary_visibility_store=DatastoreSpec(sql=SQLSpec(plugin_name="mysql")),
        ),
    )
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(cluster)
    assert str(exc.value) == (
        PREFIX + "[spec.persistence.defaultStore.sql.pluginName: Forbidden: temporal cluster version "
        "< 1.20.0 doesn't support postgres12 plugin name, spec.persistence.secondaryVisibilityStore: "
        "Forbidden: temporal cluster version < 1.21.0 doesn't support secondary visibility store]"
    )
    assert len(exc.value.errors) == 2


def test_visibility_warnings_from_1_21():
    cluster = make_cluster(
        "1.22.0",
        persistence=PersistenceSpec(
            visibility_store=DatastoreSpec(cassandra=CassandraSpec(hosts=["db"])),
            advanced_visibility_store=DatastoreSpec(elasticsearch=ElasticsearchSpec(version="v7")),
        ),
    )
    warnings = TemporalClusterWebhook().validate_create(cluster)
    assert len(warnings) == 2
    assert warnings[0].startswith("Starting from temporal >= 1.21")
    assert warnings[1].startswith("Support for Cassandra")


def test_advanced_visibility_must_be_elasticsearch_from_1_21():
    cluster = make_cluster(
        "1.22.0",
        persistence=PersistenceSpec(advanced_visibility_store=DatastoreSpec(sql=SQLSpec(plugin_name="mysql"))),
    )
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(cluster)
    assert exc.value.errors[0].path == "spec.persistence.advancedVisibilityStore"
    assert len(exc.value.warnings) == 1


def test_dynamic_config_task_queue_type():
    spec = DynamicConfigSpec(
        values={"k": [ConstrainedValue(value="5", constraints=Constraints(task_queue_type="Bogus"))]}
    )
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(make_cluster("1.18.4", dynamic_config=spec))
    message = str(exc.value)
    assert 'spec.dynamicConfig.values.k.[0].constraints.taskQueueType: Unsupported value: "Bogus"' in message
    assert '"Workflow", "Activity"' in message


def test_dynamic_config_valid_constraints():
    spec = DynamicConfigSpec(
        values={
            "k": [
                ConstrainedValue(
                    value="5",
                    constraints=Constraints(task_queue_type="Workflow", task_type="ActivityRetryTimer"),
                )
            ]
        }
    )
    assert TemporalClusterWebhook().validate_create(make_cluster("1.18.4", dynamic_config=spec)) == []


def test_dynamic_config_task_type():
    spec = DynamicConfigSpec(
        values={"k": [ConstrainedValue(value="5", constraints=Constraints(task_type="Nope"))]}
    )
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(make_cluster("1.18.4", dynamic_config=spec))
    assert exc.value.errors[0].path == "spec.dynamicConfig.values.k.[0].constraints..taskType"
    assert exc.value.errors[0].type is FieldErrorType.NOT_SUPPORTED


def test_archival_without_provider():
    cluster = make_cluster("1.18.4", archival=ClusterArchivalSpec(enabled=True))
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(cluster)
    assert [e.path for e in exc.value.errors] == ["spec.archival.provider"]


def test_archival_s3_without_credentials():
    archival = ClusterArchivalSpec(enabled=True, provider=ArchivalProvider(s3=S3Archiver(region="eu")))
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(make_cluster("1.18.4", archival=archival))
    assert [e.path for e in exc.value.errors] == ["spec.archival.provider.s3"]


def test_archival_s3_with_role():
    archival = ClusterArchivalSpec(
        enabled=True, provider=ArchivalProvider(s3=S3Archiver(region="eu", role_name="role"))
    )
    assert TemporalClusterWebhook().validate_create(make_cluster("1.18.4", archival=archival)) == []


def test_histogram_boundaries_must_be_floats():
    metrics = MetricsSpec(enabled=True, per_unit_histogram_boundaries={"ms": ["1", "2.5", "abc"]})
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_create(make_cluster("1.18.4", metrics=metrics))
    assert "can't parse this strings value to float64: abc " in str(exc.value)
    assert len(exc.value.errors) == 1


def test_validate_update_allowed():
    old = make_cluster("1.18.4", num_history_shards=512)
    new = make_cluster("1.19.0", num_history_shards=512)
    assert TemporalClusterWebhook().validate_update(old, new) == []


UPGRADE_ERROR = (
    PREFIX + "spec.version: Forbidden: Unauthorized version upgrade. Only sequential version "
    "upgrades are allowed (from v1.n.x to v1.n+1.x)"
)


@pytest.mark.parametrize("old_version,new_version", [("1.19.0", "1.18.4"), ("1.17.0", "1.19.4")])
def test_validate_update_forbidden_versions(old_version, new_version):
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_update(make_cluster(old_version), make_cluster(new_version))
    assert str(exc.value) == UPGRADE_ERROR


def test_validate_update_immutable_shards():
    old = make_cluster("1.19.4", num_history_shards=256)
    new = make_cluster("1.19.4", num_history_shards=512)
    with pytest.raises(InvalidObjectError) as exc:
        TemporalClusterWebhook().validate_update(old, new)
    assert str(exc.value) == (
        PREFIX + "spec.numHistoryShards: Forbidden: Number of history shards is immutable"
    )


def test_validate_delete_allows_everything():
    assert TemporalClusterWebhook().validate_delete(make_cluster("1.0.0")) == []


def test_field_error_formatting():
    error = FieldError.not_supported("a.b", "x", ["y", "z"])
    assert str(error) == 'a.b: Unsupported value: "x": supported values: "y", "z"'


def test_invalid_object_error_deduplicates():
    error = FieldError.forbidden("spec", "nope")
    exc = InvalidObjectError("Kind.group", "n", [error, error])
    assert str(exc) == 'Kind.group "n" is invalid: spec: Forbidden: nope'