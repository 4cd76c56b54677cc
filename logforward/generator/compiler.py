from collections.abc import Mapping

from logforward.core.logger import get_logger
from logforward.core.models import CollectorType, ForwarderSpec, Secret
from logforward.core.pipeline import ForwarderGraph, pipeline_filters

from .elements import Document, Element, render
from .strategies import get_strategy
from .tls import TLSPolicy
from .validation import validate_spec

logger = get_logger()


def output_secrets(
    spec: ForwarderSpec, secrets: Mapping[str, Secret]
) -> Mapping[str, Secret]:
    """Secrets keyed by output name, for outputs that name a secret that was found."""
    return {
        output.name: secrets[output.name]
        for output in spec.outputs
        if output.secret and output.name in secrets
    }


def build_document(
    spec: ForwarderSpec,
    collector_type: CollectorType,
    secrets: Mapping[str, Secret] | None = None,
    policy: TLSPolicy | None = None,
    graph: ForwarderGraph | None = None,
) -> Document:
    """Builds the element tree for the collector config of a forwarder spec.

    Only inputs, filters and outputs reachable through a pipeline are compiled.
    Inputs come in declaration order (reserved inputs after declared ones),
    then pipelines and outputs in declaration order.

    Args:
        spec: Forwarder spec to compile.
        collector_type: Collector the config is written for.
        secrets: Output secrets keyed by output name. Missing secrets are skipped.
        policy: Cluster TLS profile applied to every secure output.
        graph: Pre-validated graph for the spec, if the caller already has one.

    Returns:
        The root Document element.
    """
    graph = validate_spec(spec, graph, collector_type)
    secrets = output_secrets(spec, secrets or {})
    policy = policy or TLSPolicy()
    strategy = get_strategy(collector_type)

    children: list[Element] = []
    for input in graph.referenced_inputs():
        children.append(strategy.source(input, graph.pipelines_for_input(input.name)))

    for pipeline in graph.pipelines():
        children.append(
            strategy.pipeline(
                pipeline,
                graph.inputs_for_pipeline(pipeline.name),
                pipeline_filters(spec, pipeline),
                graph.outputs_for_pipeline(pipeline.name),
            )
        )

    for output in graph.referenced_outputs():
        feeding = [
            (p, pipeline_filters(spec, p))
            for p in graph.pipelines_for_output(output.name)
        ]
        children.append(
            strategy.sink(output, feeding, secrets.get(output.name), secrets, policy)
        )

    logger.debug(
        f"Compiled {len(children)} {collector_type} elements "
        f"from {len(spec.pipelines)} pipelines"
    )
    return strategy.document(tuple(children))


def compile_config(
    spec: ForwarderSpec,
    collector_type: CollectorType,
    secrets: Mapping[str, Secret] | None = None,
    policy: TLSPolicy | None = None,
) -> str:
    document = build_document(spec, collector_type, secrets, policy)
    return render(document) + "\n"
