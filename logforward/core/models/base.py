from enum import Enum


class CollectorType(str, Enum):
    FLUENTD = "fluentd"
    VECTOR = "vector"

    def __str__(self):
        return self.value


class InputType(str, Enum):
    APPLICATION = "application"
    INFRASTRUCTURE = "infrastructure"
    AUDIT = "audit"


class OutputType(str, Enum):
    ELASTICSEARCH = "elasticsearch"
    CLOUDWATCH = "cloudwatch"
    S3 = "s3"
    SYSLOG = "syslog"
    HTTP = "http"

    def __str__(self):
        return self.value


# Outputs that authenticate against the cloud provider rather than with
# basic auth, and so may carry federated (role) credentials.
CLOUD_CREDENTIAL_OUTPUTS = frozenset({OutputType.CLOUDWATCH, OutputType.S3})


class FilterType(str, Enum):
    JSON_PARSE = "json"
    DETECT_EXCEPTIONS = "detectMultilineException"


class CredentialShape(str, Enum):
    BUNDLED = "bundled"
    ROLE_ONLY = "role_only"
    NONE = "none"
