"""
Well-known names and paths shared by the config compiler and the workload factory.

The compiler writes file paths into the collector config, and the factory mounts
volumes at those same paths. Both sides must read them from here.
"""

DEFAULT_FLUENTD_IMAGE = "quay.io/openshift-logging/fluentd:1.16.2"
DEFAULT_VECTOR_IMAGE = "quay.io/openshift-logging/vector:v0.34.1"

COLLECTOR_CONTAINER_NAME = "collector"
COLLECTOR_SERVICE_ACCOUNT = "logcollector"
COLLECTOR_PRIORITY_CLASS = "system-node-critical"

# Mount roots for secrets and config maps referenced by outputs.
# A reference (name, key) resolves to <root>/<name>/<key>.
COLLECTOR_SECRETS_DIR = "/var/run/ocp-collector/secrets"
COLLECTOR_CONFIG_DIR = "/var/run/ocp-collector/config"

# Cluster trust bundle
TRUSTED_CA_BUNDLE_NAME = "collector-trusted-ca-bundle"
TRUSTED_CA_BUNDLE_MOUNT_DIR = "/etc/pki/ca-trust/extracted/pem/"
TRUSTED_CA_BUNDLE_KEY = "ca-bundle.crt"
TRUSTED_CA_BUNDLE_MOUNT_FILE = "tls-ca-bundle.pem"

# Proxy
PROXY_HTTP = "HTTP_PROXY"
PROXY_HTTPS = "HTTPS_PROXY"
PROXY_NO = "NO_PROXY"
NO_PROXY_EXCLUDED_HOST = "elasticsearch"

# Cloud (AWS) credentials
AWS_REGION_ENV = "AWS_REGION"
AWS_ROLE_ARN_ENV = "AWS_ROLE_ARN"
AWS_ROLE_SESSION_NAME_ENV = "AWS_ROLE_SESSION_NAME"
AWS_WEB_IDENTITY_TOKEN_FILE_ENV = "AWS_WEB_IDENTITY_TOKEN_FILE"
AWS_ROLE_SESSION_NAME = "cluster-logging"
AWS_WEB_IDENTITY_TOKEN_MOUNT = "/var/run/ocp-collector/serviceaccount"
AWS_WEB_IDENTITY_TOKEN_FILE = "token"
AWS_WEB_IDENTITY_TOKEN_VOLUME = "bound-sa-token"
AWS_WEB_IDENTITY_TOKEN_AUDIENCE = "openshift"
AWS_WEB_IDENTITY_TOKEN_EXPIRATION = 3600

# Secret keys, in the order the credential shape is checked
AWS_CREDENTIALS_KEY = "credentials"
AWS_ROLE_ARN_KEY = "role_arn"
CREDENTIAL_SHAPE_KEYS = (AWS_CREDENTIALS_KEY, AWS_ROLE_ARN_KEY)

AWS_ACCESS_KEY_ID_KEY = "aws_access_key_id"
AWS_SECRET_ACCESS_KEY_KEY = "aws_secret_access_key"
BASIC_AUTH_USERNAME_KEY = "username"
BASIC_AUTH_PASSWORD_KEY = "password"

# Scheduling
OS_NODE_LABEL = "kubernetes.io/os"
LINUX_VALUE = "linux"
MASTER_NODE_TAINT = "node-role.kubernetes.io/master"
DISK_PRESSURE_TAINT = "node.kubernetes.io/disk-pressure"

# Fluentd runs without limits unless told otherwise; vector ships none at all
FLUENTD_DEFAULT_MEMORY = "736Mi"
FLUENTD_DEFAULT_CPU_REQUEST = "100m"

# Capabilities dropped from the collector container
REQUIRED_DROP_CAPABILITIES = (
    "CHOWN",
    "DAC_OVERRIDE",
    "FSETID",
    "FOWNER",
    "SETGID",
    "SETUID",
    "SETPCAP",
    "NET_BIND_SERVICE",
    "KILL",
)
COLLECTOR_SELINUX_TYPE = "spc_t"

# Reserved input names, in the order they are emitted when implicitly used
INPUT_APPLICATION = "application"
INPUT_INFRASTRUCTURE = "infrastructure"
INPUT_AUDIT = "audit"
RESERVED_INPUT_NAMES = (INPUT_APPLICATION, INPUT_INFRASTRUCTURE, INPUT_AUDIT)

INFRA_NAMESPACE_GLOBS = ("openshift*", "kube*", "default")

AUDIT_LOG_PATHS = (
    "/var/log/audit/audit.log",
    "/var/log/kube-apiserver/audit.log",
    "/var/log/openshift-apiserver/audit.log",
    "/var/log/oauth-apiserver/audit.log",
)
