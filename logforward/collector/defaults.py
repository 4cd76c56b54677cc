from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from logforward.core.config import Settings
from logforward.core.constants import (
    COLLECTOR_SERVICE_ACCOUNT,
    DISK_PRESSURE_TAINT,
    LINUX_VALUE,
    MASTER_NODE_TAINT,
    OS_NODE_LABEL,
)
from logforward.core.models import TaintEffect, Toleration, TolerationOperator

DEFAULT_TOLERATIONS = (
    Toleration(
        key=MASTER_NODE_TAINT,
        operator=TolerationOperator.EXISTS,
        effect=TaintEffect.NO_SCHEDULE,
    ),
    Toleration(
        key=DISK_PRESSURE_TAINT,
        operator=TolerationOperator.EXISTS,
        effect=TaintEffect.NO_SCHEDULE,
    ),
)

DEFAULT_NODE_SELECTOR = MappingProxyType({OS_NODE_LABEL: LINUX_VALUE})


class WorkloadDefaults(BaseModel):
    """Scheduling defaults every collector pod starts from."""

    model_config = ConfigDict(frozen=True)

    tolerations: tuple[Toleration, ...] = DEFAULT_TOLERATIONS
    node_selector: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_NODE_SELECTOR)
    )


class ResourceNames(BaseModel):
    model_config = ConfigDict(frozen=True)

    config_map: str = "collector-config"
    service_account: str = COLLECTOR_SERVICE_ACCOUNT

    @classmethod
    def for_forwarder(cls, name: str) -> "ResourceNames":
        return cls(config_map=f"{name}-config")


class ProxyConfig(BaseModel):
    """Cluster-wide proxy environment."""

    model_config = ConfigDict(frozen=True)

    http_proxy: str = ""
    https_proxy: str = ""
    no_proxy: str = ""

    def is_set(self) -> bool:
        return bool(self.http_proxy or self.https_proxy or self.no_proxy)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProxyConfig":
        return cls(
            http_proxy=settings.HTTP_PROXY,
            https_proxy=settings.HTTPS_PROXY,
            no_proxy=settings.NO_PROXY,
        )
