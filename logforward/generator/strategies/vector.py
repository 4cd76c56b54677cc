from collections.abc import Mapping

from logforward.core.config import Settings
from logforward.core.constants import (
    AUDIT_LOG_PATHS,
    AWS_ACCESS_KEY_ID_KEY,
    AWS_SECRET_ACCESS_KEY_KEY,
    BASIC_AUTH_PASSWORD_KEY,
    BASIC_AUTH_USERNAME_KEY,
    DEFAULT_VECTOR_IMAGE,
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
    SyslogSpec,
)
from logforward.generator.elements import (
    TLS,
    AWSKeyValues,
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
)
from logforward.generator.resolver import secret_text
from logforward.generator.tls import TLSPolicy, build_tls

from .base import (
    APPLICATION_EXCLUDES,
    INFRA_POD_LOGS,
    CollectorStrategy,
    application_paths,
    parse_endpoint,
    sanitize,
)

# vector template syntax, resolved per event by the collector
GROUP_BY_FIELDS = {
    CloudwatchGroupBy.LOG_TYPE: "{{ log_type }}",
    CloudwatchGroupBy.NAMESPACE_NAME: "{{ kubernetes.namespace_name }}",
    CloudwatchGroupBy.NAMESPACE_UUID: "{{ kubernetes.namespace_id }}",
}
DEFAULT_INDEX = "{{ log_type }}-write"
STREAM_NAME = "{{ hostname }}"


class VectorStrategy(CollectorStrategy):
    collector_type = CollectorType.VECTOR
    template_suffix = "toml"
    default_image = DEFAULT_VECTOR_IMAGE
    inject_sts_env = True
    config_dir = "/etc/vector"
    config_file = "vector.toml"
    data_dir = "/var/lib/vector"

    def image(self, settings: Settings) -> str:
        return settings.VECTOR_IMAGE

    def default_resources(self) -> ResourceRequirements:
        return ResourceRequirements()

    def component_id(self, kind: str, name: str) -> str:
        return f"{kind}_{sanitize(name)}"

    def document(self, children: tuple[Element, ...]) -> Document:
        return Document(
            name="vector",
            template=self.template("document"),
            header="Generated by logforward. Do not edit.",
            data_dir=self.data_dir,
            children=children,
        )

    def source(self, input: InputSpec, pipelines: list[PipelineSpec]) -> Source:
        paths: tuple[str, ...] = ()
        exclude_paths: tuple[str, ...] = ()
        if input.type == InputType.APPLICATION:
            paths = application_paths(input)
            exclude_paths = APPLICATION_EXCLUDES
        elif input.type == InputType.INFRASTRUCTURE:
            paths = INFRA_POD_LOGS
        else:
            paths = AUDIT_LOG_PATHS
        return Source(
            name=input.name,
            template=self.template(f"source_{input.type.value}"),
            input_type=input.type,
            component_id=self.input_id(input),
            paths=paths,
            exclude_paths=exclude_paths,
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
            inputs=tuple(self.input_id(i) for i in inputs),
            labels=pipeline.labels,
            children=self.filters(pipeline, filters),
        )

    def filters(
        self, pipeline: PipelineSpec, filters: list[FilterSpec]
    ) -> tuple[Filter, ...]:
        # each filter consumes the previous one, starting from the pipeline
        elements = []
        upstream = self.pipeline_id(pipeline)
        for filter in filters:
            component_id = self.filter_id(pipeline, filter)
            elements.append(
                Filter(
                    name=f"{pipeline.name}_{filter.name}",
                    template=self.template("filter"),
                    component_id=component_id,
                    filter_type=filter.type,
                    inputs=(upstream,),
                )
            )
            upstream = component_id
        return tuple(elements)

    def tls(
        self,
        output: OutputSpec,
        secrets: Mapping[str, Secret],
        policy: TLSPolicy,
    ) -> Element:
        conf = build_tls(
            self.output_id(output),
            output.tls,
            output.url,
            policy,
            secrets,
            include_enabled=output.type == OutputType.SYSLOG,
        )
        return TLS(name=f"{output.name}_tls", template=self.template("tls"), conf=conf)

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
            children=children,
        )

    def cloudwatch(self, output, component_id, inputs, children) -> CloudwatchSink:
        spec = output.cloudwatch or CloudwatchSpec()
        group = GROUP_BY_FIELDS[spec.group_by]
        return CloudwatchSink(
            name=output.name,
            template=self.template("sink_cloudwatch"),
            component_id=component_id,
            inputs=inputs,
            endpoint=output.url or "",
            region=spec.region,
            group_name=f"{spec.group_prefix}.{group}" if spec.group_prefix else group,
            stream_name=STREAM_NAME,
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
            children=children,
        )

    def aws_keys(self, output, component_id, secret) -> AWSKeyValues:
        return AWSKeyValues(
            name=f"{output.name}_auth",
            template=self.template("aws_keys"),
            component_id=component_id,
            access_key_id=secret_text(secret, AWS_ACCESS_KEY_ID_KEY),
            secret_access_key=secret_text(secret, AWS_SECRET_ACCESS_KEY_KEY),
        )

    def basic_auth(self, output, component_id, secret) -> BasicAuth:
        return BasicAuth(
            name=f"{output.name}_auth",
            template=self.template("auth_basic"),
            component_id=component_id,
            username=secret_text(secret, BASIC_AUTH_USERNAME_KEY),
            password=secret_text(secret, BASIC_AUTH_PASSWORD_KEY),
        )
