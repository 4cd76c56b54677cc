import abc
import re
from collections.abc import Callable, Mapping
from typing import ClassVar
from urllib.parse import urlparse

from logforward.core.config import Settings
from logforward.core.constants import (
    AWS_ACCESS_KEY_ID_KEY,
    AWS_SECRET_ACCESS_KEY_KEY,
    AWS_WEB_IDENTITY_TOKEN_FILE,
    AWS_WEB_IDENTITY_TOKEN_MOUNT,
    BASIC_AUTH_PASSWORD_KEY,
    BASIC_AUTH_USERNAME_KEY,
    INFRA_NAMESPACE_GLOBS,
)
from logforward.core.exceptions import BuildError
from logforward.core.logger import get_logger
from logforward.core.models import (
    CLOUD_CREDENTIAL_OUTPUTS,
    CollectorType,
    CredentialShape,
    FilterSpec,
    InputSpec,
    OutputSpec,
    OutputType,
    PipelineSpec,
    ResourceRequirements,
    Secret,
)
from logforward.generator.elements import (
    Document,
    Element,
    Filter,
    Pipeline,
    Sink,
    Source,
)
from logforward.generator.resolver import (
    credential_shape,
    has_keys,
    role_arn,
)
from logforward.generator.tls import TLSPolicy

logger = get_logger()

DEFAULT_PORTS = {"http": 80, "https": 443, "tcp": 514, "udp": 514, "tls": 6514}

POD_LOG_GLOB = "/var/log/pods/{namespace}_*/*/*.log"
ALL_POD_LOGS = POD_LOG_GLOB.format(namespace="*")
INFRA_POD_LOGS = tuple(POD_LOG_GLOB.format(namespace=ns) for ns in INFRA_NAMESPACE_GLOBS)
APPLICATION_EXCLUDES = INFRA_POD_LOGS + (
    "/var/log/pods/*/*/*.gz",
    "/var/log/pods/*/*/*.tmp",
)

WEB_IDENTITY_TOKEN_PATH = f"{AWS_WEB_IDENTITY_TOKEN_MOUNT}/{AWS_WEB_IDENTITY_TOKEN_FILE}"

BASIC_AUTH_OUTPUTS = frozenset({OutputType.ELASTICSEARCH, OutputType.HTTP})

SinkBuilder = Callable[[OutputSpec, str, tuple[str, ...], tuple[Element, ...]], Sink]


def parse_endpoint(url: str) -> tuple[str, str, int]:
    """Returns (scheme, host, port) of an output URL, filling in well-known ports."""
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    return scheme, parsed.hostname or "", parsed.port or DEFAULT_PORTS.get(scheme, 0)


def application_paths(input: InputSpec) -> tuple[str, ...]:
    return tuple(POD_LOG_GLOB.format(namespace=ns) for ns in input.namespaces)


class CollectorStrategy(abc.ABC):
    """Everything that differs between collector types.

    A strategy turns spec objects into configuration elements and carries the
    type's workload settings. Strategies hold no state, so one instance per
    type is shared by every compile.
    """

    collector_type: ClassVar[CollectorType]
    template_suffix: ClassVar[str]
    default_image: ClassVar[str]
    # whether federated cloud credentials reach the collector through
    # environment variables (True) or through its config file (False)
    inject_sts_env: ClassVar[bool]
    config_dir: ClassVar[str]
    config_file: ClassVar[str]
    data_dir: ClassVar[str]

    def template(self, name: str) -> str:
        return f"{self.collector_type.value}/{name}.{self.template_suffix}.j2"

    @abc.abstractmethod
    def image(self, settings: Settings) -> str: ...

    @abc.abstractmethod
    def default_resources(self) -> ResourceRequirements: ...

    # component naming

    @abc.abstractmethod
    def component_id(self, kind: str, name: str) -> str: ...

    def input_id(self, input: InputSpec) -> str:
        return self.component_id("input", input.name)

    def pipeline_id(self, pipeline: PipelineSpec) -> str:
        return self.component_id("pipeline", pipeline.name)

    def filter_id(self, pipeline: PipelineSpec, filter: FilterSpec) -> str:
        return self.component_id("filter", f"{pipeline.name}_{filter.name}")

    def output_id(self, output: OutputSpec) -> str:
        return self.component_id("output", output.name)

    def pipeline_terminal_id(
        self, pipeline: PipelineSpec, filters: list[FilterSpec]
    ) -> str:
        """Component id whose events leave the pipeline."""
        if filters:
            return self.filter_id(pipeline, filters[-1])
        return self.pipeline_id(pipeline)

    # elements

    @abc.abstractmethod
    def document(self, children: tuple[Element, ...]) -> Document: ...

    @abc.abstractmethod
    def source(self, input: InputSpec, pipelines: list[PipelineSpec]) -> Source: ...

    @abc.abstractmethod
    def pipeline(
        self,
        pipeline: PipelineSpec,
        inputs: list[InputSpec],
        filters: list[FilterSpec],
        outputs: list[OutputSpec],
    ) -> Pipeline: ...

    @abc.abstractmethod
    def filters(
        self, pipeline: PipelineSpec, filters: list[FilterSpec]
    ) -> tuple[Filter, ...]: ...

    @abc.abstractmethod
    def tls(
        self,
        output: OutputSpec,
        secrets: Mapping[str, Secret],
        policy: TLSPolicy,
    ) -> Element: ...

    @abc.abstractmethod
    def elasticsearch(self, output, component_id, inputs, children) -> Sink: ...

    @abc.abstractmethod
    def cloudwatch(self, output, component_id, inputs, children) -> Sink: ...

    @abc.abstractmethod
    def s3(self, output, component_id, inputs, children) -> Sink: ...

    @abc.abstractmethod
    def syslog(self, output, component_id, inputs, children) -> Sink: ...

    @abc.abstractmethod
    def http(self, output, component_id, inputs, children) -> Sink: ...

    def sink_builders(self) -> Mapping[OutputType, SinkBuilder]:
        return {
            OutputType.ELASTICSEARCH: self.elasticsearch,
            OutputType.CLOUDWATCH: self.cloudwatch,
            OutputType.S3: self.s3,
            OutputType.SYSLOG: self.syslog,
            OutputType.HTTP: self.http,
        }

    def sink(
        self,
        output: OutputSpec,
        pipelines: list[tuple[PipelineSpec, list[FilterSpec]]],
        secret: Secret | None,
        secrets: Mapping[str, Secret],
        policy: TLSPolicy,
    ) -> Sink:
        builder = self.sink_builders().get(output.type)
        if builder is None:
            raise BuildError(
                f"{self.collector_type} collector has no sink for output type {output.type}"
            )
        inputs = tuple(self.pipeline_terminal_id(p, f) for p, f in pipelines)
        children = (self.tls(output, secrets, policy),) + self.credentials(
            output, secret
        )
        return builder(output, self.output_id(output), inputs, children)

    # credentials

    def credentials(
        self, output: OutputSpec, secret: Secret | None
    ) -> tuple[Element, ...]:
        component_id = self.output_id(output)
        if output.type in CLOUD_CREDENTIAL_OUTPUTS:
            arn = role_arn(secret)
            if credential_shape(secret) != CredentialShape.NONE and arn:
                if self.inject_sts_env:
                    logger.debug(
                        f"Output {output.name} uses federated credentials from the environment"
                    )
                    return ()
                return (self.web_identity(output, arn),)
            if has_keys(secret, AWS_ACCESS_KEY_ID_KEY, AWS_SECRET_ACCESS_KEY_KEY):
                return (self.aws_keys(output, component_id, secret),)
            return ()
        if output.type in BASIC_AUTH_OUTPUTS and has_keys(
            secret, BASIC_AUTH_USERNAME_KEY, BASIC_AUTH_PASSWORD_KEY
        ):
            return (self.basic_auth(output, component_id, secret),)
        return ()

    def web_identity(self, output: OutputSpec, arn: str) -> Element:
        raise BuildError(
            f"{self.collector_type} collector does not declare federated credentials in its config"
        )

    @abc.abstractmethod
    def aws_keys(
        self, output: OutputSpec, component_id: str, secret: Secret
    ) -> Element: ...

    @abc.abstractmethod
    def basic_auth(
        self, output: OutputSpec, component_id: str, secret: Secret
    ) -> Element: ...


def sanitize(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_]", "_", name)
