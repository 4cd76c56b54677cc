from enum import Enum

from transitions.extensions.asyncio import AsyncMachine

from logforward.core.logger import get_logger

logger = get_logger()


class ReconcileState(str, Enum):
    FETCHING = "fetching"
    VALIDATING = "validating"
    BUILDING = "building"
    STATUSING = "statusing"
    DONE = "done"


class ReconcileStateMachine(AsyncMachine):
    FETCHING = ReconcileState.FETCHING
    VALIDATING = ReconcileState.VALIDATING
    BUILDING = ReconcileState.BUILDING
    STATUSING = ReconcileState.STATUSING
    DONE = ReconcileState.DONE

    # transition definitions: (trigger, [source_states], dest_state)
    TRANSITIONS = [
        ("fetched", [FETCHING], VALIDATING),
        # the forwarder was deleted, before or during the pass
        ("gone", [FETCHING, STATUSING], DONE),
        ("valid", [VALIDATING], BUILDING),
        ("invalid", [VALIDATING], STATUSING),
        ("built", [BUILDING], STATUSING),
        ("dead_end", [BUILDING], STATUSING),
        # status write lost an optimistic-lock race, write again
        ("conflict", [STATUSING], "="),
        ("published", [STATUSING], DONE),
    ]

    def __init__(self, namespace: str, name: str, **kwargs):
        # Machine owns `name`, so the forwarder is tracked by key
        self.key = f"{namespace}/{name}"
        self.conflicts = 0

        states = [
            self.FETCHING,
            self.VALIDATING,
            self.BUILDING,
            self.STATUSING,
            {"name": self.DONE, "final": True},
        ]

        transitions = [
            {
                "trigger": trigger,
                "source": source,
                "dest": dest,
                "after": "record_conflict" if dest == "=" else "log_transition",
            }
            for trigger, sources, dest in self.TRANSITIONS
            for source in sources
        ]

        super().__init__(
            model=self,
            states=states,
            transitions=transitions,
            initial=self.FETCHING,
            auto_transitions=False,
            **kwargs,
        )

    @property
    def current_state(self) -> ReconcileState:
        return self.state

    async def log_transition(self):
        logger.debug(f"Forwarder {self.key} -> {self.state.value}")

    async def record_conflict(self):
        self.conflicts += 1
        logger.warning(
            f"Status update conflict for forwarder {self.key} "
            f"(attempt {self.conflicts})"
        )
