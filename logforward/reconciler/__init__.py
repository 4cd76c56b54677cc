from .conditions import (
    apply_condition,
    cond_dead_end,
    cond_dead_end_cleared,
    cond_invalid,
    cond_ready,
)
from .machine import ReconcileState, ReconcileStateMachine
from .reconciler import (
    ClusterClient,
    CollectorArtifacts,
    EventRecorder,
    EventType,
    ForwarderReconciler,
    ReconcileResult,
)
