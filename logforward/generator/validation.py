from collections import Counter, defaultdict
from urllib.parse import urlparse

from logforward.core.exceptions import SpecValidationError
from logforward.core.logger import get_logger
from logforward.core.models import CollectorType, ForwarderSpec, OutputSpec, OutputType
from logforward.core.pipeline import ForwarderGraph, pipeline_filters

from .strategies import get_strategy

logger = get_logger()

URL_REQUIRED = frozenset({OutputType.ELASTICSEARCH, OutputType.SYSLOG, OutputType.HTTP})
SYSLOG_SCHEMES = frozenset({"tcp", "udp", "tls"})


def _duplicates(kind: str, names: list[str]) -> list[str]:
    return [
        f"{kind} name {name!r} is declared {count} times"
        for name, count in Counter(names).items()
        if count > 1
    ]


def _url_problems(output: OutputSpec, prefix: str) -> list[str]:
    try:
        parsed = urlparse(output.url)
        # out of range and non-numeric ports only surface on access
        parsed.port
    except ValueError as e:
        return [f"{prefix} has an invalid URL {output.url!r}: {e}"]
    if not parsed.scheme or not parsed.hostname:
        return [f"{prefix} has an invalid URL {output.url!r}"]
    if output.type == OutputType.SYSLOG and parsed.scheme not in SYSLOG_SCHEMES:
        return [f"{prefix} URL scheme must be one of {sorted(SYSLOG_SCHEMES)}"]
    return []


def _output_problems(output: OutputSpec) -> list[str]:
    problems = []
    prefix = f"output {output.name!r}"
    if output.url:
        problems += _url_problems(output, prefix)
    elif output.type in URL_REQUIRED:
        problems.append(f"{prefix} of type {output.type} requires a URL")

    if output.type == OutputType.CLOUDWATCH:
        if output.cloudwatch is None or not output.cloudwatch.region:
            problems.append(f"{prefix} of type cloudwatch requires a region")
    if output.type == OutputType.S3:
        if output.s3 is None or not output.s3.bucket:
            problems.append(f"{prefix} of type s3 requires a bucket")
        if output.s3 is None or not output.s3.region:
            problems.append(f"{prefix} of type s3 requires a region")
    return problems


def _collision_problems(
    spec: ForwarderSpec, graph: ForwarderGraph, collector_type: CollectorType
) -> list[str]:
    """Distinct components that the collector would know under one id."""
    strategy = get_strategy(collector_type)
    owners: dict[str, list[str]] = defaultdict(list)

    def claim(component_id: str, owner: str):
        if owner not in owners[component_id]:
            owners[component_id].append(owner)

    for input in graph.referenced_inputs():
        claim(strategy.input_id(input), f"input {input.name!r}")
    for pipeline in graph.pipelines():
        claim(strategy.pipeline_id(pipeline), f"pipeline {pipeline.name!r}")
        for filter in pipeline_filters(spec, pipeline):
            claim(
                strategy.filter_id(pipeline, filter),
                f"filter {filter.name!r} of pipeline {pipeline.name!r}",
            )
    for output in graph.referenced_outputs():
        claim(strategy.output_id(output), f"output {output.name!r}")

    return [
        f"{' and '.join(names)} share the {collector_type} component id {component_id!r}"
        for component_id, names in owners.items()
        if len(names) > 1
    ]


def validate_spec(
    spec: ForwarderSpec,
    graph: ForwarderGraph | None = None,
    collector_type: CollectorType | None = None,
) -> ForwarderGraph:
    """Checks a forwarder spec and returns its graph.

    Component ids are checked for the given collector type, which defaults to
    the one the spec asks for.

    Raises SpecValidationError listing every problem found.
    """
    graph = graph or ForwarderGraph.from_spec(spec)
    collector_type = CollectorType(collector_type or spec.collector.type)
    problems: list[str] = []
    problems += _duplicates("input", [i.name for i in spec.inputs])
    problems += _duplicates("output", [o.name for o in spec.outputs])
    problems += _duplicates("filter", [f.name for f in spec.filters])
    problems += _duplicates("pipeline", [p.name for p in spec.pipelines])
    problems += _collision_problems(spec, graph, collector_type)

    for pipeline in spec.pipelines:
        if not pipeline.input_refs:
            problems.append(f"pipeline {pipeline.name!r} has no inputs")
        if not pipeline.output_refs:
            problems.append(f"pipeline {pipeline.name!r} has no outputs")
    problems += graph.unresolved

    for output in spec.outputs:
        problems += _output_problems(output)

    if problems:
        logger.warning(f"Forwarder spec failed validation: {problems}")
        raise SpecValidationError(problems)
    return graph
