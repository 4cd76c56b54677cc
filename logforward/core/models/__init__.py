from .base import (
    CLOUD_CREDENTIAL_OUTPUTS,
    CollectorType,
    CredentialShape,
    FilterType,
    InputType,
    OutputType,
)
from .forwarder import (
    CloudwatchGroupBy,
    CloudwatchSpec,
    CollectorSpec,
    ConfigMapOrSecretKey,
    ElasticsearchSpec,
    FilterSpec,
    ForwarderSpec,
    HttpSpec,
    InputSpec,
    OutputSecretSpec,
    OutputSpec,
    OutputTLSSpec,
    PipelineSpec,
    S3Spec,
    SecretKeyRef,
    SyslogRFC,
    SyslogSpec,
)
from .pod import (
    Capabilities,
    Container,
    EnvVar,
    FieldRef,
    KeyToPath,
    PodDescriptor,
    ResourceRequirements,
    SecurityContext,
    TaintEffect,
    Toleration,
    TolerationOperator,
    Volume,
    VolumeMount,
    VolumeSourceType,
)
from .resources import ConfigMap, Secret
from .status import (
    ClusterLogForwarder,
    Condition,
    ConditionReason,
    ConditionStatus,
    ConditionType,
    ForwarderStatus,
)
