import posixpath
from collections.abc import Callable, Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from logforward.core.constants import (
    AWS_REGION_ENV,
    AWS_ROLE_ARN_ENV,
    AWS_ROLE_SESSION_NAME,
    AWS_ROLE_SESSION_NAME_ENV,
    AWS_WEB_IDENTITY_TOKEN_AUDIENCE,
    AWS_WEB_IDENTITY_TOKEN_EXPIRATION,
    AWS_WEB_IDENTITY_TOKEN_FILE,
    AWS_WEB_IDENTITY_TOKEN_FILE_ENV,
    AWS_WEB_IDENTITY_TOKEN_MOUNT,
    AWS_WEB_IDENTITY_TOKEN_VOLUME,
    COLLECTOR_CONFIG_DIR,
    COLLECTOR_CONTAINER_NAME,
    COLLECTOR_PRIORITY_CLASS,
    COLLECTOR_SECRETS_DIR,
    COLLECTOR_SELINUX_TYPE,
    NO_PROXY_EXCLUDED_HOST,
    PROXY_HTTP,
    PROXY_HTTPS,
    PROXY_NO,
    REQUIRED_DROP_CAPABILITIES,
    TRUSTED_CA_BUNDLE_KEY,
    TRUSTED_CA_BUNDLE_MOUNT_DIR,
    TRUSTED_CA_BUNDLE_MOUNT_FILE,
)
from logforward.core.logger import get_logger
from logforward.core.models import (
    CLOUD_CREDENTIAL_OUTPUTS,
    Capabilities,
    CollectorType,
    ConfigMap,
    Container,
    CredentialShape,
    EnvVar,
    FieldRef,
    ForwarderSpec,
    KeyToPath,
    OutputSpec,
    PodDescriptor,
    Secret,
    SecurityContext,
    Volume,
    VolumeMount,
    VolumeSourceType,
)
from logforward.core.pipeline import ForwarderGraph
from logforward.generator.compiler import output_secrets
from logforward.generator.resolver import credential_shape, role_arn
from logforward.generator.strategies import CollectorStrategy, get_strategy
from logforward.generator.validation import validate_spec

from .defaults import ProxyConfig, ResourceNames, WorkloadDefaults

logger = get_logger()

COLLECTOR_SECURITY_CONTEXT = SecurityContext(
    capabilities=Capabilities(drop=REQUIRED_DROP_CAPABILITIES),
    se_linux_type=COLLECTOR_SELINUX_TYPE,
    read_only_root_filesystem=True,
    allow_privilege_escalation=False,
    seccomp_profile="RuntimeDefault",
)

HOST_LOG_DIR = "/var/log"


class BuildContext(BaseModel):
    """Everything an enrichment pass may read. Passes never modify it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    spec: ForwarderSpec
    graph: ForwarderGraph
    strategy: CollectorStrategy
    defaults: WorkloadDefaults
    names: ResourceNames
    secrets: Mapping[str, Secret]
    trust_bundle: ConfigMap | None
    proxy: ProxyConfig
    cluster_id: str
    schema_version: str
    image: str


EnrichmentPass = Callable[[PodDescriptor, BuildContext], PodDescriptor]


def _with_collector(pod: PodDescriptor, **changes) -> PodDescriptor:
    collector = pod.collector.model_copy(update=changes)
    return pod.model_copy(update={"containers": (collector,) + pod.containers[1:]})


def _add_env(pod: PodDescriptor, *env: EnvVar) -> PodDescriptor:
    return _with_collector(pod, env=pod.collector.env + env)


def _add_volume(
    pod: PodDescriptor, volume: Volume, mount: VolumeMount
) -> PodDescriptor:
    pod = _with_collector(pod, volume_mounts=pod.collector.volume_mounts + (mount,))
    return pod.model_copy(update={"volumes": pod.volumes + (volume,)})


VOLUME_PREFIXES = MappingProxyType(
    {
        VolumeSourceType.SECRET: "secret",
        VolumeSourceType.CONFIG_MAP: "cm",
    }
)


def _referenced_volumes(ctx: BuildContext) -> list[Volume]:
    """Secret and config map volumes for every compiled output, in output order.

    Volume names carry the source type, so a secret and a config map may share
    a name and neither clashes with the fixed collector volumes.
    """
    volumes: dict[tuple[VolumeSourceType, str], Volume] = {}

    def add(name: str | None, type: VolumeSourceType):
        if name and (type, name) not in volumes:
            volumes[type, name] = Volume(
                name=f"{VOLUME_PREFIXES[type]}-{name}", type=type, source=name
            )

    for output in ctx.graph.referenced_outputs():
        if output.secret:
            add(output.secret.name, VolumeSourceType.SECRET)
        if output.tls:
            for ref in (output.tls.ca, output.tls.certificate):
                if ref:
                    add(ref.secret_name, VolumeSourceType.SECRET)
                    add(ref.config_map_name, VolumeSourceType.CONFIG_MAP)
            if output.tls.key:
                add(output.tls.key.secret_name, VolumeSourceType.SECRET)
    return list(volumes.values())


def base_container(pod: PodDescriptor, ctx: BuildContext) -> PodDescriptor:
    strategy = ctx.strategy
    env = [
        EnvVar(name="NODE_NAME", field_ref=FieldRef(field_path="spec.nodeName")),
        EnvVar(name="POD_IP", field_ref=FieldRef(field_path="status.podIP")),
    ]
    if ctx.cluster_id:
        env.append(EnvVar(name="OPENSHIFT_CLUSTER_ID", value=ctx.cluster_id))
    if ctx.schema_version:
        env.append(EnvVar(name="LOG_SCHEMA_VERSION", value=ctx.schema_version))

    pod = pod.model_copy(
        update={
            "containers": (
                Container(
                    name=COLLECTOR_CONTAINER_NAME,
                    image=ctx.image,
                    env=tuple(env),
                    security_context=COLLECTOR_SECURITY_CONTEXT,
                ),
            ),
            "service_account_name": ctx.names.service_account,
            "priority_class_name": COLLECTOR_PRIORITY_CLASS,
        }
    )

    pod = _add_volume(
        pod,
        Volume(
            name="config",
            type=VolumeSourceType.CONFIG_MAP,
            source=ctx.names.config_map,
        ),
        VolumeMount(name="config", mount_path=strategy.config_dir, read_only=True),
    )
    pod = _add_volume(
        pod,
        Volume(name="varlog", type=VolumeSourceType.HOST_PATH, source=HOST_LOG_DIR),
        VolumeMount(name="varlog", mount_path=HOST_LOG_DIR, read_only=True),
    )
    pod = _add_volume(
        pod,
        Volume(
            name="datadir", type=VolumeSourceType.HOST_PATH, source=strategy.data_dir
        ),
        VolumeMount(name="datadir", mount_path=strategy.data_dir),
    )

    for volume in _referenced_volumes(ctx):
        root = (
            COLLECTOR_SECRETS_DIR
            if volume.type == VolumeSourceType.SECRET
            else COLLECTOR_CONFIG_DIR
        )
        pod = _add_volume(
            pod,
            volume,
            VolumeMount(
                name=volume.name,
                mount_path=posixpath.join(root, volume.source),
                read_only=True,
            ),
        )
    return pod


def resources(pod: PodDescriptor, ctx: BuildContext) -> PodDescriptor:
    requirements = ctx.spec.collector.resources
    if requirements is None:
        requirements = ctx.strategy.default_resources()
    return _with_collector(pod, resources=requirements)


def scheduling(pod: PodDescriptor, ctx: BuildContext) -> PodDescriptor:
    node_selector = dict(ctx.defaults.node_selector)
    node_selector.update(ctx.spec.collector.node_selector)
    return pod.model_copy(
        update={
            "tolerations": ctx.defaults.tolerations
            + tuple(ctx.spec.collector.tolerations),
            "node_selector": node_selector,
        }
    )


def proxy_env(pod: PodDescriptor, ctx: BuildContext) -> PodDescriptor:
    if ctx.proxy.is_set():
        values = {
            PROXY_HTTP: ctx.proxy.http_proxy,
            PROXY_HTTPS: ctx.proxy.https_proxy,
            PROXY_NO: ",".join(
                v for v in (NO_PROXY_EXCLUDED_HOST, ctx.proxy.no_proxy) if v
            ),
        }
        env = [EnvVar(name=name, value=value) for name, value in values.items() if value]
        # some clients only honour the lower-case names
        env += [EnvVar(name=e.name.lower(), value=e.value) for e in list(env)]
        pod = _add_env(pod, *env)

    bundle = ctx.trust_bundle
    if bundle is None:
        return pod
    items = ()
    if bundle.data.get(TRUSTED_CA_BUNDLE_KEY):
        items = (KeyToPath(key=TRUSTED_CA_BUNDLE_KEY, path=TRUSTED_CA_BUNDLE_MOUNT_FILE),)
    else:
        logger.debug(f"Trust bundle {bundle.name} has no {TRUSTED_CA_BUNDLE_KEY} key")
    return _add_volume(
        pod,
        Volume(
            name=bundle.name,
            type=VolumeSourceType.CONFIG_MAP,
            source=bundle.name,
            items=items,
        ),
        VolumeMount(
            name=bundle.name, mount_path=TRUSTED_CA_BUNDLE_MOUNT_DIR, read_only=True
        ),
    )


def federated_output(ctx: BuildContext) -> tuple[OutputSpec, str] | None:
    """First compiled cloud output whose secret carries a role, with its ARN."""
    for output in ctx.graph.referenced_outputs():
        if output.type not in CLOUD_CREDENTIAL_OUTPUTS:
            continue
        secret = ctx.secrets.get(output.name)
        if credential_shape(secret) == CredentialShape.NONE:
            continue
        arn = role_arn(secret)
        if arn:
            return output, arn
    return None


def web_identity_token(pod: PodDescriptor, ctx: BuildContext) -> PodDescriptor:
    if federated_output(ctx) is None:
        return pod
    return _add_volume(
        pod,
        Volume(
            name=AWS_WEB_IDENTITY_TOKEN_VOLUME,
            type=VolumeSourceType.PROJECTED_TOKEN,
            audience=AWS_WEB_IDENTITY_TOKEN_AUDIENCE,
            expiration_seconds=AWS_WEB_IDENTITY_TOKEN_EXPIRATION,
            path=AWS_WEB_IDENTITY_TOKEN_FILE,
        ),
        VolumeMount(
            name=AWS_WEB_IDENTITY_TOKEN_VOLUME,
            mount_path=AWS_WEB_IDENTITY_TOKEN_MOUNT,
            read_only=True,
        ),
    )


def sts_credentials(pod: PodDescriptor, ctx: BuildContext) -> PodDescriptor:
    if not ctx.strategy.inject_sts_env:
        return pod
    found = federated_output(ctx)
    if found is None:
        return pod
    output, arn = found
    logger.debug(f"Injecting federated credentials for output {output.name}")
    return _add_env(
        pod,
        EnvVar(name=AWS_REGION_ENV, value=output.region),
        EnvVar(name=AWS_ROLE_ARN_ENV, value=arn),
        EnvVar(name=AWS_ROLE_SESSION_NAME_ENV, value=AWS_ROLE_SESSION_NAME),
        EnvVar(
            name=AWS_WEB_IDENTITY_TOKEN_FILE_ENV,
            value=posixpath.join(
                AWS_WEB_IDENTITY_TOKEN_MOUNT, AWS_WEB_IDENTITY_TOKEN_FILE
            ),
        ),
    )


# Order matters: resources replace type defaults before scheduling defaults are
# applied, and credentials come last.
ENRICHMENT_PASSES: tuple[EnrichmentPass, ...] = (
    base_container,
    resources,
    scheduling,
    proxy_env,
    web_identity_token,
    sts_credentials,
)


class CollectorFactory:
    def __init__(
        self,
        collector_type: CollectorType,
        names: ResourceNames | None = None,
        defaults: WorkloadDefaults | None = None,
        image: str | None = None,
    ):
        self.collector_type = CollectorType(collector_type)
        self.strategy = get_strategy(self.collector_type)
        self.names = names or ResourceNames()
        self.defaults = defaults or WorkloadDefaults()
        self.image = image or self.strategy.default_image

    def build(
        self,
        trust_bundle: ConfigMap | None,
        spec: ForwarderSpec,
        secrets: Mapping[str, Secret],
        cluster_id: str,
        schema_version: str,
        proxy: ProxyConfig | None = None,
    ) -> PodDescriptor:
        """Builds the collector pod for a forwarder spec.

        Args:
            trust_bundle: Cluster trust bundle config map, if one exists.
            spec: Forwarder spec the collector runs.
            secrets: Output secrets keyed by output name.
            cluster_id: Cluster identifier stamped on every record.
            schema_version: Data model version exposed to the collector.
            proxy: Cluster proxy. No proxy env is set when not given.

        Returns:
            A new PodDescriptor. Equal inputs give equal descriptors.
        """
        ctx = BuildContext(
            spec=spec,
            graph=validate_spec(spec, collector_type=self.collector_type),
            strategy=self.strategy,
            defaults=self.defaults,
            names=self.names,
            secrets=output_secrets(spec, secrets),
            trust_bundle=trust_bundle,
            proxy=proxy or ProxyConfig(),
            cluster_id=cluster_id,
            schema_version=schema_version,
            image=self.image,
        )
        pod = PodDescriptor()
        for enrichment in ENRICHMENT_PASSES:
            pod = enrichment(pod, ctx)
        logger.debug(
            f"Built {self.collector_type} pod with {len(pod.volumes)} volumes and "
            f"{len(pod.collector.env)} env vars"
        )
        return pod
