import pytest

from logforward.collector import ProxyConfig
from logforward.core.models import (
    CloudwatchSpec,
    CollectorSpec,
    CollectorType,
    FilterSpec,
    FilterType,
    ForwarderSpec,
    InputSpec,
    InputType,
    OutputSecretSpec,
    OutputSpec,
    OutputType,
    PipelineSpec,
    Secret,
)

ROLE_ARN = "arn:aws:iam::123456789012:role/my-role-to-assume"


class ForwarderSpecBuilder:
    """Builder for creating test forwarder specs."""

    def __init__(self, collector_type: CollectorType = CollectorType.VECTOR) -> None:
        self.inputs: list[InputSpec] = []
        self.outputs: list[OutputSpec] = []
        self.filters: list[FilterSpec] = []
        self.pipelines: list[PipelineSpec] = []
        self.collector = CollectorSpec(type=collector_type)

    def add_input(
        self,
        name: str,
        type: InputType = InputType.APPLICATION,
        namespaces: list[str] | None = None,
    ) -> InputSpec:
        input = InputSpec(name=name, type=type, namespaces=namespaces or [])
        self.inputs.append(input)
        return input

    def add_output(
        self,
        name: str,
        type: OutputType = OutputType.ELASTICSEARCH,
        url: str | None = None,
        secret: str | None = None,
        **kwargs,
    ) -> OutputSpec:
        output = OutputSpec(
            name=name,
            type=type,
            url=url,
            secret=OutputSecretSpec(name=secret) if secret else None,
            **kwargs,
        )
        self.outputs.append(output)
        return output

    def add_filter(
        self, name: str, type: FilterType = FilterType.JSON_PARSE
    ) -> FilterSpec:
        filter = FilterSpec(name=name, type=type)
        self.filters.append(filter)
        return filter

    def add_pipeline(
        self,
        name: str,
        inputs: list[str],
        outputs: list[str],
        filters: list[str] | None = None,
        labels: dict[str, str] | None = None,
    ) -> PipelineSpec:
        pipeline = PipelineSpec(
            name=name,
            input_refs=inputs,
            output_refs=outputs,
            filter_refs=filters or [],
            labels=labels or {},
        )
        self.pipelines.append(pipeline)
        return pipeline

    def with_collector(self, **kwargs) -> "ForwarderSpecBuilder":
        self.collector = self.collector.model_copy(update=kwargs)
        return self

    def build(self) -> ForwarderSpec:
        return ForwarderSpec(
            inputs=self.inputs,
            outputs=self.outputs,
            filters=self.filters,
            pipelines=self.pipelines,
            collector=self.collector,
        )


@pytest.fixture
def builder() -> ForwarderSpecBuilder:
    return ForwarderSpecBuilder()


@pytest.fixture
def es_spec() -> ForwarderSpec:
    """One application input shipped to a TLS elasticsearch."""
    b = ForwarderSpecBuilder()
    b.add_input("my-app", namespaces=["ns1"])
    b.add_output("es-out", url="https://es.example.com:9200")
    b.add_pipeline("p1", inputs=["my-app"], outputs=["es-out"])
    return b.build()


def _cloudwatch_spec(collector_type: CollectorType) -> ForwarderSpec:
    b = ForwarderSpecBuilder(collector_type)
    b.add_output(
        "cw",
        type=OutputType.CLOUDWATCH,
        secret="cw-secret",
        cloudwatch=CloudwatchSpec(region="us-east-77"),
    )
    b.add_pipeline("to-cw", inputs=["application"], outputs=["cw"])
    return b.build()


@pytest.fixture
def vector_cw_spec() -> ForwarderSpec:
    return _cloudwatch_spec(CollectorType.VECTOR)


@pytest.fixture
def fluentd_cw_spec() -> ForwarderSpec:
    return _cloudwatch_spec(CollectorType.FLUENTD)


@pytest.fixture
def role_arn() -> str:
    return ROLE_ARN


@pytest.fixture
def role_secret() -> Secret:
    return Secret(name="cw-secret", data={"role_arn": f"{ROLE_ARN}\n".encode()})


@pytest.fixture
def credentials_secret() -> Secret:
    """Role ARN bundled in an AWS shared credentials file."""
    credentials = (
        "[default]\n"
        f"role_arn = {ROLE_ARN}\n"
        "web_identity_token_file = /var/run/secrets/openshift/serviceaccount/token\n"
    )
    return Secret(name="cw-secret", data={"credentials": credentials.encode()})


@pytest.fixture(params=["role_secret", "credentials_secret"])
def federated_secret(request) -> Secret:
    """Both secret shapes that carry a role to assume."""
    return request.getfixturevalue(request.param)


@pytest.fixture
def key_secret() -> Secret:
    return Secret(
        name="cw-secret",
        data={
            "aws_access_key_id": b"AKIAEXAMPLE",
            "aws_secret_access_key": b"s3cr3t",
        },
    )


@pytest.fixture
def no_proxy() -> ProxyConfig:
    return ProxyConfig()
