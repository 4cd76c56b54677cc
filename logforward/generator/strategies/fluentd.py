from collections.abc import Mapping

from logforward.core.config import Settings
from logforward.core.constants import (
    AUDIT_LOG_PATHS,
    AWS_ACCESS_KEY_ID_KEY,
    AWS_ROLE_SESSION_NAME,
    AWS_SECRET_ACCESS_KEY_KEY,
    BASIC_AUTH_PASSWORD_KEY,
    BASIC_AUTH_USERNAME_KEY,
    DEFAULT_FLUENTD_IMAGE,
    FLUENTD_DEFAULT_CPU_REQUEST,
    FLUENTD_DEFAULT_MEMORY,
)
from logforward.core.models import (
    CloudwatchGroupBy,
    CloudwatchSpec,
    CollectorType,
    ElasticsearchSpec,
    FilterSpec,
    HttpSpec,
    InputSpec,
    InputType,
    OutputSpec,
    OutputType,
    PipelineSpec,
    ResourceRequirements,
    S3Spec,
    Secret,
    SecretKeyRef,
    SyslogSpec,
)
from logforward.generator.elements import (
    TLS,
    AWSKeyFiles,
    BasicAuth,
    CloudwatchSink,
    Document,
    Element,
    ElasticsearchSink,
    Filter,
    HttpSink,
    Pipeline,
    S3Sink,
    Source,
    SyslogSink,
    WebIdentity,
)
from logforward.generator.resolver import secret_path, secret_text
from logforward.generator.tls import TLSPolicy, build_tls

from .base import (
    ALL_POD_LOGS,
    APPLICATION_EXCLUDES,
    INFRA_POD_LOGS,
    WEB_IDENTITY_TOKEN_PATH,
    CollectorStrategy,
    application_paths,
    parse_endpoint,
    sanitize,
)

# ruby placeholders, resolved per record by record_transformer
GROUP_BY_FIELDS = {
    CloudwatchGroupBy.LOG_TYPE: "${record['log_type']}",
    CloudwatchGroupBy.NAMESPACE_NAME: "${record.dig('kubernetes', 'namespace_name')}",
    CloudwatchGroupBy.NAMESPACE_UUID: "${record.dig('kubernetes', 'namespace_id')}",
}
DEFAULT_INDEX = "${log_type}-write"
STREAM_NAME = "${tag}"

# record_transformer evaluates plain values as ruby %Q[] strings
RUBY_TEXT_ESCAPES = str.maketrans(
    {"\\": "\\\\", "#": "\\#", "$": "\\$", "[": "\\[", "]": "\\]"}
)

# cluster TLS profile names -> openssl names understood by the fluentd plugins
TLS_VERSIONS = {
    "VersionTLS10": "TLSv1",
    "VersionTLS11": "TLSv1_1",
    "VersionTLS12": "TLSv1_2",
    "VersionTLS13": "TLSv1_3",
}

TLS_FAMILIES = {
    OutputType.ELASTICSEARCH: "elasticsearch",
    OutputType.HTTP: "http",
    OutputType.SYSLOG: "syslog",
    OutputType.CLOUDWATCH: "aws",
    OutputType.S3: "aws",
}


class FluentdStrategy(CollectorStrategy):
    collector_type = CollectorType.FLUENTD
    template_suffix = "conf"
    default_image = DEFAULT_FLUENTD_IMAGE
    inject_sts_env = False
    config_dir = "/etc/fluent/configs.d/user"
    config_file = "fluent.conf"
    data_dir = "/var/lib/fluentd"

    def image(self, settings: Settings) -> str:
        return settings.FLUENTD_IMAGE

    def default_resources(self) -> ResourceRequirements:
        return ResourceRequirements(
            limits={"memory": FLUENTD_DEFAULT_MEMORY},
            requests={
                "memory": FLUENTD_DEFAULT_MEMORY,
                "cpu": FLUENTD_DEFAULT_CPU_REQUEST,
            },
        )

    def component_id(self, kind: str, name: str) -> str:
        return f"{kind}_{sanitize(name)}".upper()

    def buffer_path(self, component_id: str) -> str:
        return f"{self.data_dir}/buffer/{component_id.lower()}"

    def document(self, children: tuple[Element, ...]) -> Document:
        return Document(
            name="fluentd",
            template=self.template("document"),
            header="Generated by logforward. Do not edit.",
            children=children,
        )

    def source(self, input: InputSpec, pipelines: list[PipelineSpec]) -> Source:
        exclude_paths: tuple[str, ...] = ()
        if input.type == InputType.APPLICATION:
            paths = application_paths(input) or (ALL_POD_LOGS,)
            exclude_paths = APPLICATION_EXCLUDES
        elif input.type == InputType.INFRASTRUCTURE:
            paths = INFRA_POD_LOGS
        else:
            paths = AUDIT_LOG_PATHS
        component_id = self.input_id(input)
        return Source(
            name=input.name,
            template=self.template(f"source_{input.type.value}"),
            input_type=input.type,
            component_id=component_id,
            routes=tuple(self.pipeline_id(p) for p in pipelines),
            paths=paths,
            exclude_paths=exclude_paths,
            pos_file=f"{self.data_dir}/pos/{component_id.lower()}.pos",
        )

    def pipeline(
        self,
        pipeline: PipelineSpec,
        inputs: list[InputSpec],
        filters: list[FilterSpec],
        outputs: list[OutputSpec],
    ) -> Pipeline:
        return Pipeline(
            name=pipeline.name,
            template=self.template("pipeline"),
            component_id=self.pipeline_id(pipeline),
            routes=tuple(self.output_id(o) for o in outputs),
            labels=pipeline.labels,
            children=self.filters(pipeline, filters),
        )

    def filters(
        self, pipeline: PipelineSpec, filters: list[FilterSpec]
    ) -> tuple[Filter, ...]:
        return tuple(
            Filter(
                name=f"{pipeline.name}_{filter.name}",
                template=self.template("filter"),
                component_id=self.filter_id(pipeline, filter),
                filter_type=filter.type,
            )
            for filter in filters
        )

    def pipeline_terminal_id(
        self, pipeline: PipelineSpec, filters: list[FilterSpec]
    ) -> str:
        # filters run inside the pipeline label
        return self.pipeline_id(pipeline)

    def tls(
        self,
        output: OutputSpec,
        secrets: Mapping[str, Secret],
        policy: TLSPolicy,
    ) -> Element:
        conf = build_tls(self.output_id(output), output.tls, output.url, policy, secrets)
        if conf.min_tls_version:
            conf = conf.model_copy(
                update={
                    "min_tls_version": TLS_VERSIONS.get(
                        conf.min_tls_version, conf.min_tls_version
                    )
                }
            )
        return TLS(
            name=f"{output.name}_tls",
            template=self.template(f"tls_{TLS_FAMILIES[output.type]}"),
            conf=conf,
        )

    def elasticsearch(self, output, component_id, inputs, children) -> ElasticsearchSink:
        spec = output.elasticsearch or ElasticsearchSpec()
        scheme, host, port = parse_endpoint(output.url)
        return ElasticsearchSink(
            name=output.name,
            template=self.template("sink_elasticsearch"),
            component_id=component_id,
            inputs=inputs,
            endpoint=output.url,
            host=host,
            port=port,
            scheme=scheme,
            index=spec.index or DEFAULT_INDEX,
            api_version=spec.version,
            buffer_path=self.buffer_path(component_id),
            buffer_keys=("log_type",),
            children=children,
        )

    def cloudwatch(self, output, component_id, inputs, children) -> CloudwatchSink:
        spec = output.cloudwatch or CloudwatchSpec()
        group = GROUP_BY_FIELDS[spec.group_by]
        prefix = spec.group_prefix.translate(RUBY_TEXT_ESCAPES)
        return CloudwatchSink(
            name=output.name,
            template=self.template("sink_cloudwatch"),
            component_id=component_id,
            inputs=inputs,
            endpoint=output.url or "",
            region=spec.region,
            group_name=f"{prefix}.{group}" if prefix else group,
            stream_name=STREAM_NAME,
            buffer_path=self.buffer_path(component_id),
            children=children,
        )

    def s3(self, output, component_id, inputs, children) -> S3Sink:
        spec = output.s3 or S3Spec()
        return S3Sink(
            name=output.name,
            template=self.template("sink_s3"),
            component_id=component_id,
            inputs=inputs,
            endpoint=output.url or "",
            bucket=spec.bucket,
            region=spec.region,
            key_prefix=spec.key_prefix,
            buffer_path=self.buffer_path(component_id),
            children=children,
        )

    def syslog(self, output, component_id, inputs, children) -> SyslogSink:
        spec = output.syslog or SyslogSpec()
        scheme, host, port = parse_endpoint(output.url)
        return SyslogSink(
            name=output.name,
            template=self.template("sink_syslog"),
            component_id=component_id,
            inputs=inputs,
            endpoint=output.url,
            mode="udp" if scheme == "udp" else "tcp",
            host=host,
            port=port,
            rfc=spec.rfc,
            facility=spec.facility,
            severity=spec.severity,
            app_name=spec.app_name,
            buffer_path=self.buffer_path(component_id),
            children=children,
        )

    def http(self, output, component_id, inputs, children) -> HttpSink:
        spec = output.http or HttpSpec()
        return HttpSink(
            name=output.name,
            template=self.template("sink_http"),
            component_id=component_id,
            inputs=inputs,
            endpoint=output.url,
            method=spec.method,
            headers=spec.headers,
            timeout=spec.timeout,
            buffer_path=self.buffer_path(component_id),
            children=children,
        )

    def web_identity(self, output: OutputSpec, arn: str) -> WebIdentity:
        return WebIdentity(
            name=f"{output.name}_web_identity",
            template=self.template("web_identity"),
            role_arn=arn,
            token_path=WEB_IDENTITY_TOKEN_PATH,
            session_name=AWS_ROLE_SESSION_NAME,
        )

    def aws_keys(self, output, component_id, secret) -> AWSKeyFiles:
        # fluentd reads the keys from the mounted secret at startup
        return AWSKeyFiles(
            name=f"{output.name}_auth",
            template=self.template("aws_key_files"),
            access_key_id_path=secret_path(
                SecretKeyRef(secret_name=secret.name, key=AWS_ACCESS_KEY_ID_KEY)
            ),
            secret_access_key_path=secret_path(
                SecretKeyRef(secret_name=secret.name, key=AWS_SECRET_ACCESS_KEY_KEY)
            ),
        )

    def basic_auth(self, output, component_id, secret) -> BasicAuth:
        family = "http" if output.type == OutputType.HTTP else "elasticsearch"
        return BasicAuth(
            name=f"{output.name}_auth",
            template=self.template(f"auth_{family}"),
            component_id=component_id,
            username=secret_text(secret, BASIC_AUTH_USERNAME_KEY),
            password=secret_text(secret, BASIC_AUTH_PASSWORD_KEY),
        )
