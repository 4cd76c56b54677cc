from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .base import CollectorType, FilterType, InputType, OutputType
from .pod import ResourceRequirements, Toleration


class SpecModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class SecretKeyRef(SpecModel):
    secret_name: str
    key: str


class ConfigMapOrSecretKey(SpecModel):
    key: str
    secret_name: str | None = None
    config_map_name: str | None = None

    @model_validator(mode="after")
    def check_single_source(self) -> "ConfigMapOrSecretKey":
        if self.secret_name and self.config_map_name:
            raise ValueError("Only one of secret_name or config_map_name may be set")
        return self


class OutputTLSSpec(SpecModel):
    ca: ConfigMapOrSecretKey | None = None
    certificate: ConfigMapOrSecretKey | None = None
    key: SecretKeyRef | None = None
    key_passphrase: SecretKeyRef | None = None
    insecure_skip_verify: bool = False


class OutputSecretSpec(SpecModel):
    name: str


class ElasticsearchSpec(SpecModel):
    index: str = ""
    version: int = 8


class CloudwatchGroupBy(str, Enum):
    LOG_TYPE = "logType"
    NAMESPACE_NAME = "namespaceName"
    NAMESPACE_UUID = "namespaceUUID"


class CloudwatchSpec(SpecModel):
    region: str = ""
    group_by: CloudwatchGroupBy = CloudwatchGroupBy.LOG_TYPE
    group_prefix: str = ""


class S3Spec(SpecModel):
    bucket: str = ""
    region: str = ""
    key_prefix: str = ""


class SyslogRFC(str, Enum):
    RFC3164 = "RFC3164"
    RFC5424 = "RFC5424"


class SyslogSpec(SpecModel):
    rfc: SyslogRFC = SyslogRFC.RFC5424
    facility: str = "user"
    severity: str = "informational"
    app_name: str = ""


class HttpSpec(SpecModel):
    method: str = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: int | None = None


class OutputSpec(SpecModel):
    name: str
    type: OutputType
    url: str | None = None
    tls: OutputTLSSpec | None = None
    secret: OutputSecretSpec | None = None

    elasticsearch: ElasticsearchSpec | None = None
    cloudwatch: CloudwatchSpec | None = None
    s3: S3Spec | None = None
    syslog: SyslogSpec | None = None
    http: HttpSpec | None = None

    @property
    def region(self) -> str:
        if self.cloudwatch:
            return self.cloudwatch.region
        if self.s3:
            return self.s3.region
        return ""


class InputSpec(SpecModel):
    name: str
    type: InputType
    namespaces: list[str] = Field(default_factory=list)


class FilterSpec(SpecModel):
    name: str
    type: FilterType


class PipelineSpec(SpecModel):
    name: str
    input_refs: list[str] = Field(default_factory=list)
    output_refs: list[str] = Field(default_factory=list)
    filter_refs: list[str] = Field(default_factory=list)
    labels: dict[str, str] = Field(default_factory=dict)


class CollectorSpec(SpecModel):
    type: CollectorType = CollectorType.VECTOR
    resources: ResourceRequirements | None = None
    tolerations: list[Toleration] = Field(default_factory=list)
    node_selector: dict[str, str] = Field(default_factory=dict)


class ForwarderSpec(SpecModel):
    inputs: list[InputSpec] = Field(default_factory=list)
    outputs: list[OutputSpec] = Field(default_factory=list)
    filters: list[FilterSpec] = Field(default_factory=list)
    pipelines: list[PipelineSpec] = Field(default_factory=list)
    collector: CollectorSpec = CollectorSpec()

    def output(self, name: str) -> OutputSpec | None:
        return next((o for o in self.outputs if o.name == name), None)

    def filter(self, name: str) -> FilterSpec | None:
        return next((f for f in self.filters if f.name == name), None)

    def input(self, name: str) -> InputSpec | None:
        """Declared input by name; reserved names resolve to an implicit input
        of the same type."""
        declared = next((i for i in self.inputs if i.name == name), None)
        if declared is not None:
            return declared
        try:
            return InputSpec(name=name, type=InputType(name))
        except ValueError:
            return None
