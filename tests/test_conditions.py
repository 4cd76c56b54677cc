from datetime import datetime, timezone

from logforward.core.models import (
    Condition,
    ConditionReason,
    ConditionStatus,
    ConditionType,
)
from logforward.reconciler import (
    apply_condition,
    cond_dead_end,
    cond_dead_end_cleared,
    cond_invalid,
    cond_ready,
)

EARLIER = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_new_condition_is_appended():
    conditions, newly = apply_condition((), cond_ready())

    assert newly
    assert len(conditions) == 1
    assert conditions[0].type == ConditionType.READY
    assert conditions[0].is_true()


def test_same_status_keeps_transition_time():
    existing = cond_ready().model_copy(update={"last_transition_time": EARLIER})
    conditions, newly = apply_condition((existing,), cond_ready())

    assert not newly
    assert conditions[0].last_transition_time == EARLIER


def test_status_flip_is_newly_asserted():
    invalid = cond_invalid("validation failed: x")
    conditions, newly = apply_condition((invalid,), cond_ready())

    assert newly
    assert len(conditions) == 1
    assert conditions[0].reason == ConditionReason.READY


def test_other_conditions_are_untouched():
    dead_end = cond_dead_end_cleared()
    conditions, _ = apply_condition((dead_end,), cond_invalid("bad"))
    conditions, _ = apply_condition(conditions, cond_invalid("still bad"))

    assert [c.type for c in conditions] == [ConditionType.DEAD_END, ConditionType.READY]
    assert conditions[0] == dead_end
    assert conditions[1].message == "still bad"


def test_input_is_not_modified():
    before = (cond_dead_end_cleared(),)
    apply_condition(before, cond_dead_end("boom"))
    assert before[0].status == ConditionStatus.FALSE


def test_condition_constructors():
    invalid = cond_invalid("validation failed: nope")
    assert invalid.status == ConditionStatus.FALSE
    assert invalid.reason == ConditionReason.INVALID

    dead_end = cond_dead_end(ValueError("no sink"))
    assert dead_end.type == ConditionType.DEAD_END
    assert dead_end.is_true()
    assert dead_end.message == (
        "error reconciling clusterlogforwarder instance: no sink"
    )

    cleared = cond_dead_end_cleared()
    assert cleared == Condition(
        type=ConditionType.DEAD_END,
        status=ConditionStatus.FALSE,
        last_transition_time=cleared.last_transition_time,
    )
