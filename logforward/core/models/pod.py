from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class FieldRef(FrozenModel):
    field_path: str
    api_version: str = "v1"


class EnvVar(FrozenModel):
    name: str
    value: str | None = None
    field_ref: FieldRef | None = None


class VolumeMount(FrozenModel):
    name: str
    mount_path: str
    read_only: bool = False


class KeyToPath(FrozenModel):
    key: str
    path: str


class VolumeSourceType(str, Enum):
    CONFIG_MAP = "configMap"
    SECRET = "secret"
    HOST_PATH = "hostPath"
    PROJECTED_TOKEN = "serviceAccountToken"


class Volume(FrozenModel):
    name: str
    type: VolumeSourceType
    # config map / secret name, or host path
    source: str = ""
    items: tuple[KeyToPath, ...] = ()
    # projected service account token only
    audience: str | None = None
    expiration_seconds: int | None = None
    path: str | None = None


class ResourceRequirements(FrozenModel):
    limits: dict[str, str] = Field(default_factory=dict)
    requests: dict[str, str] = Field(default_factory=dict)


class TolerationOperator(str, Enum):
    EXISTS = "Exists"
    EQUAL = "Equal"


class TaintEffect(str, Enum):
    NO_SCHEDULE = "NoSchedule"
    PREFER_NO_SCHEDULE = "PreferNoSchedule"
    NO_EXECUTE = "NoExecute"


class Toleration(FrozenModel):
    key: str = ""
    operator: TolerationOperator = TolerationOperator.EQUAL
    value: str = ""
    effect: TaintEffect | None = None
    toleration_seconds: int | None = None


class Capabilities(FrozenModel):
    drop: tuple[str, ...] = ()
    add: tuple[str, ...] = ()


class SecurityContext(FrozenModel):
    capabilities: Capabilities = Capabilities()
    se_linux_type: str | None = None
    read_only_root_filesystem: bool = False
    allow_privilege_escalation: bool = True
    seccomp_profile: str | None = None


class Container(FrozenModel):
    name: str
    image: str
    env: tuple[EnvVar, ...] = ()
    volume_mounts: tuple[VolumeMount, ...] = ()
    resources: ResourceRequirements = ResourceRequirements()
    security_context: SecurityContext = SecurityContext()

    def env_var(self, name: str) -> EnvVar | None:
        return next((e for e in self.env if e.name == name), None)

    def volume_mount(self, name: str) -> VolumeMount | None:
        return next((m for m in self.volume_mounts if m.name == name), None)


class PodDescriptor(FrozenModel):
    containers: tuple[Container, ...] = ()
    volumes: tuple[Volume, ...] = ()
    tolerations: tuple[Toleration, ...] = ()
    node_selector: dict[str, str] = Field(default_factory=dict)
    service_account_name: str = ""
    priority_class_name: str = ""

    @property
    def collector(self) -> Container:
        return self.containers[0]

    def volume(self, name: str) -> Volume | None:
        return next((v for v in self.volumes if v.name == name), None)
