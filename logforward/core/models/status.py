from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .forwarder import ForwarderSpec


class ConditionType(str, Enum):
    READY = "Ready"
    DEAD_END = "CollectorDeadEnd"


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionReason(str, Enum):
    INVALID = "Invalid"
    READY = "Ready"
    EMPTY = ""


class Condition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ConditionType
    status: ConditionStatus
    reason: ConditionReason = ConditionReason.EMPTY
    message: str = ""
    last_transition_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def is_true(self) -> bool:
        return self.status == ConditionStatus.TRUE


class ForwarderStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    conditions: tuple[Condition, ...] = ()

    def condition(self, type: ConditionType) -> Condition | None:
        return next((c for c in self.conditions if c.type == type), None)


class ClusterLogForwarder(BaseModel):
    """The custom resource a reconcile pass operates on."""

    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str
    spec: ForwarderSpec = ForwarderSpec()
    status: ForwarderStatus = ForwarderStatus()
    resource_version: str = ""
