import pytest

from logforward.collector import (
    DEFAULT_TOLERATIONS,
    CollectorFactory,
    ProxyConfig,
    ResourceNames,
)
from logforward.core.constants import DEFAULT_FLUENTD_IMAGE
from logforward.core.exceptions import SpecValidationError
from logforward.core.models import (
    CollectorType,
    ConfigMap,
    ConfigMapOrSecretKey,
    KeyToPath,
    OutputTLSSpec,
    ResourceRequirements,
    Secret,
    TaintEffect,
    Toleration,
    VolumeSourceType,
)

IMAGES = {
    CollectorType.VECTOR: "example.com/vector:test",
    CollectorType.FLUENTD: "example.com/fluentd:test",
}


def build(
    spec,
    collector_type=CollectorType.VECTOR,
    secrets=None,
    trust_bundle=None,
    proxy=None,
    schema_version="",
):
    factory = CollectorFactory(collector_type, image=IMAGES[collector_type])
    return factory.build(
        trust_bundle,
        spec,
        secrets or {},
        "cluster-1",
        schema_version,
        proxy or ProxyConfig(),
    )


def test_collector_container(es_spec):
    pod = build(es_spec)
    collector = pod.collector

    assert collector.name == "collector"
    assert collector.image == "example.com/vector:test"
    assert collector.env_var("NODE_NAME").field_ref.field_path == "spec.nodeName"
    assert collector.env_var("POD_IP").field_ref.field_path == "status.podIP"
    assert collector.env_var("OPENSHIFT_CLUSTER_ID").value == "cluster-1"
    assert collector.env_var("LOG_SCHEMA_VERSION") is None
    assert pod.service_account_name == "logcollector"
    assert pod.priority_class_name == "system-node-critical"


def test_security_context(es_spec):
    context = build(es_spec).collector.security_context

    assert context.read_only_root_filesystem
    assert not context.allow_privilege_escalation
    assert context.se_linux_type == "spc_t"
    assert "CHOWN" in context.capabilities.drop
    assert "NET_BIND_SERVICE" in context.capabilities.drop
    assert len(context.capabilities.drop) == 9


def test_schema_version_env(es_spec):
    pod = build(es_spec, schema_version="viaq")
    assert pod.collector.env_var("LOG_SCHEMA_VERSION").value == "viaq"


@pytest.mark.parametrize(
    "collector_type,config_dir,data_dir",
    [
        (CollectorType.VECTOR, "/etc/vector", "/var/lib/vector"),
        (CollectorType.FLUENTD, "/etc/fluent/configs.d/user", "/var/lib/fluentd"),
    ],
)
def test_base_volumes(es_spec, collector_type, config_dir, data_dir):
    pod = build(es_spec, collector_type)

    assert pod.volume("config").source == "collector-config"
    assert pod.collector.volume_mount("config").mount_path == config_dir
    assert pod.collector.volume_mount("config").read_only
    assert pod.volume("varlog").type == VolumeSourceType.HOST_PATH
    assert pod.volume("datadir").source == data_dir
    assert not pod.collector.volume_mount("datadir").read_only


def test_resource_names_follow_forwarder(es_spec):
    factory = CollectorFactory(
        CollectorType.VECTOR, names=ResourceNames.for_forwarder("instance")
    )
    pod = factory.build(None, es_spec, {}, "", "", ProxyConfig())
    assert pod.volume("config").source == "instance-config"


def test_default_scheduling(es_spec):
    pod = build(es_spec)
    assert pod.tolerations == DEFAULT_TOLERATIONS
    assert pod.node_selector == {"kubernetes.io/os": "linux"}


def test_user_scheduling_is_merged_with_defaults(builder):
    extra = Toleration(key="dedicated", value="logging", effect=TaintEffect.NO_EXECUTE)
    builder.with_collector(
        tolerations=[extra],
        node_selector={"node-role.kubernetes.io/infra": "", "kubernetes.io/os": "linux"},
    )
    builder.add_output("es", url="https://es:9200")
    builder.add_pipeline("p", inputs=["application"], outputs=["es"])
    pod = build(builder.build())

    assert pod.tolerations == DEFAULT_TOLERATIONS + (extra,)
    assert pod.node_selector == {
        "kubernetes.io/os": "linux",
        "node-role.kubernetes.io/infra": "",
    }


def test_default_resources(es_spec):
    assert build(es_spec, CollectorType.VECTOR).collector.resources == ResourceRequirements()
    fluentd = build(es_spec, CollectorType.FLUENTD).collector.resources
    assert fluentd.limits == {"memory": "736Mi"}
    assert fluentd.requests == {"memory": "736Mi", "cpu": "100m"}


@pytest.mark.parametrize("collector_type", [CollectorType.VECTOR, CollectorType.FLUENTD])
def test_explicit_resources_replace_defaults(builder, collector_type):
    requirements = ResourceRequirements(
        limits={"memory": "120Gi"}, requests={"memory": "100Gi", "cpu": "500m"}
    )
    builder.with_collector(resources=requirements)
    builder.add_output("es", url="https://es:9200")
    builder.add_pipeline("p", inputs=["application"], outputs=["es"])
    pod = build(builder.build(), collector_type)
    assert pod.collector.resources == requirements


def test_output_secrets_are_mounted(builder):
    builder.add_output(
        "es",
        url="https://es:9200",
        secret="es-secret",
        tls=OutputTLSSpec(ca=ConfigMapOrSecretKey(key="ca.crt", config_map_name="es-ca")),
    )
    builder.add_output("dead", url="https://es2:9200", secret="dead-secret")
    builder.add_pipeline("p", inputs=["application"], outputs=["es"])
    pod = build(builder.build())

    assert pod.volume("secret-es-secret").type == VolumeSourceType.SECRET
    assert (
        pod.collector.volume_mount("secret-es-secret").mount_path
        == "/var/run/ocp-collector/secrets/es-secret"
    )
    assert pod.volume("cm-es-ca").type == VolumeSourceType.CONFIG_MAP
    assert (
        pod.collector.volume_mount("cm-es-ca").mount_path
        == "/var/run/ocp-collector/config/es-ca"
    )
    assert pod.volume("secret-dead-secret") is None


def test_proxy_env(es_spec):
    proxy = ProxyConfig(http_proxy="http://proxy:3128", no_proxy="10.0.0.0/8")
    collector = build(es_spec, proxy=proxy).collector

    assert collector.env_var("HTTP_PROXY").value == "http://proxy:3128"
    assert collector.env_var("http_proxy").value == "http://proxy:3128"
    assert collector.env_var("NO_PROXY").value == "elasticsearch,10.0.0.0/8"
    assert collector.env_var("no_proxy").value == "elasticsearch,10.0.0.0/8"
    assert collector.env_var("HTTPS_PROXY") is None


def test_no_proxy_env_without_proxy(es_spec):
    collector = build(es_spec).collector
    assert collector.env_var("HTTP_PROXY") is None
    assert collector.env_var("NO_PROXY") is None


def test_trust_bundle_is_mounted(es_spec):
    bundle = ConfigMap(
        name="collector-trusted-ca-bundle", data={"ca-bundle.crt": "-----BEGIN"}
    )
    pod = build(es_spec, trust_bundle=bundle)

    volume = pod.volume("collector-trusted-ca-bundle")
    assert volume.type == VolumeSourceType.CONFIG_MAP
    assert volume.items == (KeyToPath(key="ca-bundle.crt", path="tls-ca-bundle.pem"),)
    mount = pod.collector.volume_mount("collector-trusted-ca-bundle")
    assert mount.mount_path == "/etc/pki/ca-trust/extracted/pem/"
    assert mount.read_only


def test_trust_bundle_without_key_has_no_items(es_spec):
    bundle = ConfigMap(name="collector-trusted-ca-bundle")
    pod = build(es_spec, trust_bundle=bundle)
    assert pod.volume("collector-trusted-ca-bundle").items == ()


def test_no_trust_bundle(es_spec):
    assert build(es_spec).volume("collector-trusted-ca-bundle") is None


def test_sts_env_for_vector(vector_cw_spec, federated_secret, role_arn):
    pod = build(vector_cw_spec, secrets={"cw": federated_secret})
    collector = pod.collector

    assert collector.env_var("AWS_REGION").value == "us-east-77"
    assert collector.env_var("AWS_ROLE_ARN").value == role_arn
    assert collector.env_var("AWS_ROLE_SESSION_NAME").value == "cluster-logging"
    assert (
        collector.env_var("AWS_WEB_IDENTITY_TOKEN_FILE").value
        == "/var/run/ocp-collector/serviceaccount/token"
    )

    token = pod.volume("bound-sa-token")
    assert token.type == VolumeSourceType.PROJECTED_TOKEN
    assert token.audience == "openshift"
    assert token.expiration_seconds == 3600
    assert token.path == "token"
    assert (
        collector.volume_mount("bound-sa-token").mount_path
        == "/var/run/ocp-collector/serviceaccount"
    )


def test_no_sts_env_for_fluentd(fluentd_cw_spec, federated_secret):
    pod = build(fluentd_cw_spec, CollectorType.FLUENTD, secrets={"cw": federated_secret})

    assert pod.collector.env_var("AWS_ROLE_ARN") is None
    assert pod.collector.env_var("AWS_REGION") is None
    # fluentd still needs the token its config points at
    assert pod.volume("bound-sa-token") is not None


def test_no_sts_env_for_static_keys(vector_cw_spec, key_secret):
    pod = build(vector_cw_spec, secrets={"cw": key_secret})
    assert pod.collector.env_var("AWS_ROLE_ARN") is None
    assert pod.volume("bound-sa-token") is None


def test_build_is_deterministic(vector_cw_spec, role_secret):
    bundle = ConfigMap(name="collector-trusted-ca-bundle", data={"ca-bundle.crt": "x"})
    proxy = ProxyConfig(https_proxy="https://proxy:3128")
    first = build(vector_cw_spec, secrets={"cw": role_secret}, trust_bundle=bundle, proxy=proxy)
    second = build(vector_cw_spec, secrets={"cw": role_secret}, trust_bundle=bundle, proxy=proxy)
    assert first == second


def test_invalid_spec_is_rejected(builder):
    builder.add_pipeline("p", inputs=["application"], outputs=["nope"])
    with pytest.raises(SpecValidationError):
        build(builder.build())


def test_undecodable_role_is_ignored(vector_cw_spec):
    secret = Secret(name="cw-secret", data={"credentials": b"\xff\xfe[default]"})
    pod = build(vector_cw_spec, secrets={"cw": secret})

    assert pod.collector.env_var("AWS_ROLE_ARN") is None
    assert pod.volume("bound-sa-token") is None
    assert pod.volume("secret-cw-secret") is not None


def test_secret_and_config_map_with_same_name(builder):
    builder.add_output(
        "es",
        url="https://es:9200",
        secret="es-tls",
        tls=OutputTLSSpec(ca=ConfigMapOrSecretKey(key="ca.crt", config_map_name="es-tls")),
    )
    builder.add_pipeline("p", inputs=["application"], outputs=["es"])
    pod = build(builder.build())

    secret = pod.volume("secret-es-tls")
    config_map = pod.volume("cm-es-tls")
    assert (secret.type, secret.source) == (VolumeSourceType.SECRET, "es-tls")
    assert (config_map.type, config_map.source) == (VolumeSourceType.CONFIG_MAP, "es-tls")
    assert (
        pod.collector.volume_mount("cm-es-tls").mount_path
        == "/var/run/ocp-collector/config/es-tls"
    )


@pytest.mark.parametrize(
    "secret_name", ["config", "varlog", "datadir", "collector-trusted-ca-bundle"]
)
def test_secret_names_do_not_clash_with_collector_volumes(builder, secret_name):
    builder.add_output("es", url="https://es:9200", secret=secret_name)
    builder.add_pipeline("p", inputs=["application"], outputs=["es"])
    bundle = ConfigMap(name="collector-trusted-ca-bundle", data={"ca-bundle.crt": "x"})
    pod = build(builder.build(), trust_bundle=bundle)

    volume_names = [v.name for v in pod.volumes]
    mount_names = [m.name for m in pod.collector.volume_mounts]
    assert len(volume_names) == len(set(volume_names))
    assert sorted(volume_names) == sorted(mount_names)
    assert pod.volume(f"secret-{secret_name}").source == secret_name


def test_factory_defaults_ignore_process_settings(es_spec):
    pod = CollectorFactory(CollectorType.FLUENTD).build(None, es_spec, {}, "", "")

    assert pod.collector.image == DEFAULT_FLUENTD_IMAGE
    assert pod.collector.env_var("HTTP_PROXY") is None
    assert pod.collector.env_var("NO_PROXY") is None
