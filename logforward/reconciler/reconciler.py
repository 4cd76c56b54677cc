from enum import Enum
from typing import Protocol

import anyio
import stamina
from pydantic import BaseModel, ConfigDict
from stamina.instrumentation import set_on_retry_hooks

from logforward.collector import CollectorFactory, ProxyConfig, ResourceNames
from logforward.core.config import Settings, cfg
from logforward.core.constants import TRUSTED_CA_BUNDLE_NAME
from logforward.core.exceptions import (
    BuildError,
    ConflictError,
    NotFoundError,
    SpecValidationError,
)
from logforward.core.logger import get_logger
from logforward.core.models import (
    ClusterLogForwarder,
    Condition,
    ConfigMap,
    ForwarderStatus,
    OutputSpec,
    PodDescriptor,
    Secret,
)
from logforward.generator import (
    TLSPolicy,
    compile_config,
    get_strategy,
    validate_spec,
)

from .conditions import (
    apply_condition,
    cond_dead_end,
    cond_dead_end_cleared,
    cond_invalid,
    cond_ready,
)
from .machine import ReconcileState, ReconcileStateMachine

logger = get_logger()


def log_hook(details: stamina.instrumentation.RetryDetails) -> None:
    logger.warning(f"Retry details: {details}")


set_on_retry_hooks([log_hook])


class EventType(str, Enum):
    NORMAL = "Normal"
    WARNING = "Warning"


EVENT_REASON_INVALID = "Invalid"
EVENT_REASON_READY = "Ready"
READY_MESSAGE = "ClusterLogForwarder is valid"


class CollectorArtifacts(BaseModel):
    model_config = ConfigDict(frozen=True)

    config_map_name: str
    config_file: str
    config: str
    pod: PodDescriptor


class ReconcileResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: ReconcileState
    requeue_after: float | None = None


class ClusterClient(Protocol):
    async def get_forwarder(self, namespace: str, name: str) -> ClusterLogForwarder: ...

    async def get_secret(self, namespace: str, name: str) -> Secret: ...

    async def get_config_map(self, namespace: str, name: str) -> ConfigMap: ...

    async def apply_collector(
        self, forwarder: ClusterLogForwarder, artifacts: CollectorArtifacts
    ) -> None: ...

    async def update_status(self, forwarder: ClusterLogForwarder) -> None: ...


class EventRecorder(Protocol):
    def event(
        self,
        forwarder: ClusterLogForwarder,
        event_type: EventType,
        reason: str,
        message: str,
    ) -> None: ...


class ForwarderReconciler:
    """Drives one forwarder through fetch, validate, build and status.

    Build failures end up in the forwarder's conditions, not in the caller's
    lap. Errors from the cluster client other than not-found and conflict
    propagate, so the caller can requeue.
    """

    def __init__(
        self,
        client: ClusterClient,
        recorder: EventRecorder,
        cluster_id: str = "",
        schema_version: str = "",
        settings: Settings = cfg,
    ):
        self.client = client
        self.recorder = recorder
        self.cluster_id = cluster_id
        self.schema_version = schema_version
        self.settings = settings

    async def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        sm = ReconcileStateMachine(namespace, name)

        try:
            forwarder = await self.client.get_forwarder(namespace, name)
        except NotFoundError:
            logger.debug(f"Forwarder {namespace}/{name} not found, nothing to do")
            await sm.gone()
            return ReconcileResult(state=sm.current_state)
        await sm.fetched()
        logger.info(f"Reconciling forwarder {namespace}/{name}")

        conditions = forwarder.status.conditions
        try:
            validate_spec(forwarder.spec)
        except SpecValidationError as e:
            await sm.invalid()
            conditions, _ = apply_condition(conditions, cond_invalid(str(e)))
            self.recorder.event(forwarder, EventType.WARNING, EVENT_REASON_INVALID, str(e))
            return await self._publish(sm, forwarder, conditions)
        await sm.valid()

        try:
            artifacts = await self._build(forwarder)
        except BuildError as e:
            logger.error(f"Unable to build collector for {namespace}/{name}: {e}")
            await sm.dead_end()
            conditions, _ = apply_condition(conditions, cond_dead_end(e))
            return await self._publish(sm, forwarder, conditions)

        await self.client.apply_collector(forwarder, artifacts)
        await sm.built()
        conditions, _ = apply_condition(conditions, cond_dead_end_cleared())
        conditions, newly_ready = apply_condition(conditions, cond_ready())
        if newly_ready:
            self.recorder.event(
                forwarder, EventType.NORMAL, EVENT_REASON_READY, READY_MESSAGE
            )
        return await self._publish(sm, forwarder, conditions)

    async def _fetch_secrets(self, forwarder: ClusterLogForwarder) -> dict[str, Secret]:
        secrets: dict[str, Secret] = {}

        async def fetch(output: OutputSpec):
            try:
                secrets[output.name] = await self.client.get_secret(
                    forwarder.namespace, output.secret.name
                )
            except NotFoundError:
                logger.warning(
                    f"Secret {output.secret.name} for output {output.name} not found"
                )

        async with anyio.create_task_group() as tg:
            for output in forwarder.spec.outputs:
                if output.secret:
                    tg.start_soon(fetch, output)
        return secrets

    async def _fetch_trust_bundle(self, namespace: str) -> ConfigMap | None:
        try:
            return await self.client.get_config_map(namespace, TRUSTED_CA_BUNDLE_NAME)
        except NotFoundError:
            return None

    async def _build(self, forwarder: ClusterLogForwarder) -> CollectorArtifacts:
        secrets = await self._fetch_secrets(forwarder)
        trust_bundle = await self._fetch_trust_bundle(forwarder.namespace)
        collector_type = forwarder.spec.collector.type
        names = ResourceNames.for_forwarder(forwarder.name)
        factory = CollectorFactory(
            collector_type,
            names=names,
            image=get_strategy(collector_type).image(self.settings),
        )

        config = compile_config(
            forwarder.spec,
            collector_type,
            secrets,
            TLSPolicy.from_settings(self.settings),
        )
        pod = factory.build(
            trust_bundle,
            forwarder.spec,
            secrets,
            self.cluster_id,
            self.schema_version,
            ProxyConfig.from_settings(self.settings),
        )
        return CollectorArtifacts(
            config_map_name=names.config_map,
            config_file=factory.strategy.config_file,
            config=config,
            pod=pod,
        )

    async def _publish(
        self,
        sm: ReconcileStateMachine,
        forwarder: ClusterLogForwarder,
        conditions: tuple[Condition, ...],
    ) -> ReconcileResult:
        status = ForwarderStatus(conditions=conditions)
        delay = self.settings.STATUS_CONFLICT_RETRY_DELAY
        try:
            async for attempt in stamina.retry_context(
                on=ConflictError,
                attempts=self.settings.STATUS_CONFLICT_RETRY_ATTEMPTS,
                timeout=None,
                wait_initial=delay,
                wait_max=delay,
                wait_jitter=0.0,
                wait_exp_base=1.0,
            ):
                with attempt:
                    if attempt.num > 1:
                        await sm.conflict()
                        forwarder = await self.client.get_forwarder(
                            forwarder.namespace, forwarder.name
                        )
                    await self.client.update_status(
                        forwarder.model_copy(update={"status": status})
                    )
        except ConflictError:
            logger.warning(
                f"Status of {forwarder.namespace}/{forwarder.name} still conflicts, "
                f"requeueing in {delay}s"
            )
            return ReconcileResult(state=sm.current_state, requeue_after=delay)
        except NotFoundError:
            await sm.gone()
            return ReconcileResult(state=sm.current_state)

        await sm.published()
        return ReconcileResult(state=sm.current_state)
