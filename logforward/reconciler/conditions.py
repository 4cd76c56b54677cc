from collections.abc import Iterable

from logforward.core.models import (
    Condition,
    ConditionReason,
    ConditionStatus,
    ConditionType,
)

RECONCILE_ERROR_PREFIX = "error reconciling clusterlogforwarder instance"


def apply_condition(
    conditions: Iterable[Condition], new: Condition
) -> tuple[tuple[Condition, ...], bool]:
    """Sets a condition, replacing any existing condition of the same type.

    Returns the new conditions and whether the condition was newly asserted:
    its type was absent, or its status flipped. When the status is unchanged
    the existing transition time is kept.
    """
    conditions = tuple(conditions)
    existing = next((c for c in conditions if c.type == new.type), None)
    if existing is None:
        return conditions + (new,), True

    newly_asserted = existing.status != new.status
    if not newly_asserted:
        new = new.model_copy(
            update={"last_transition_time": existing.last_transition_time}
        )
    return tuple(new if c.type == new.type else c for c in conditions), newly_asserted


def cond_ready() -> Condition:
    return Condition(
        type=ConditionType.READY,
        status=ConditionStatus.TRUE,
        reason=ConditionReason.READY,
    )


def cond_invalid(message: str) -> Condition:
    return Condition(
        type=ConditionType.READY,
        status=ConditionStatus.FALSE,
        reason=ConditionReason.INVALID,
        message=message,
    )


def cond_dead_end(error: Exception | str) -> Condition:
    return Condition(
        type=ConditionType.DEAD_END,
        status=ConditionStatus.TRUE,
        reason=ConditionReason.INVALID,
        message=f"{RECONCILE_ERROR_PREFIX}: {error}",
    )


def cond_dead_end_cleared() -> Condition:
    return Condition(type=ConditionType.DEAD_END, status=ConditionStatus.FALSE)
