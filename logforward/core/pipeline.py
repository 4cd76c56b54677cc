from enum import Enum

import networkx as nx

from .constants import RESERVED_INPUT_NAMES
from .logger import get_logger
from .models.forwarder import (
    FilterSpec,
    ForwarderSpec,
    InputSpec,
    OutputSpec,
    PipelineSpec,
)

logger = get_logger()


class ForwarderNodeType(str, Enum):
    INPUT = "input"
    PIPELINE = "pipeline"
    OUTPUT = "output"


NodeKey = tuple[ForwarderNodeType, str]


class ForwarderGraph(nx.DiGraph):
    """Directed graph of input -> pipeline -> output built from a ForwarderSpec.

    Every node carries its spec and a sort key. Declared inputs sort in
    declaration order, and reserved inputs that are used without being declared
    sort after them in reserved order. Pipelines and outputs sort in
    declaration order. All accessors return nodes sorted by that key, so
    everything downstream of the graph is deterministic.

    References that do not resolve are collected in `unresolved` rather than
    added as edges.
    """

    def __init__(self, **attr):
        super().__init__(**attr)
        self.unresolved: list[str] = []

    @classmethod
    def from_spec(cls, spec: ForwarderSpec) -> "ForwarderGraph":
        graph = cls()
        declared_inputs = len(spec.inputs)
        for i, input in enumerate(spec.inputs):
            graph.add_node(
                (ForwarderNodeType.INPUT, input.name), spec=input, order=i
            )
        for i, output in enumerate(spec.outputs):
            graph.add_node(
                (ForwarderNodeType.OUTPUT, output.name), spec=output, order=i
            )

        declared_filters = {f.name for f in spec.filters}

        for i, pipeline in enumerate(spec.pipelines):
            pipeline_node = (ForwarderNodeType.PIPELINE, pipeline.name)
            graph.add_node(pipeline_node, spec=pipeline, order=i)

            for ref in pipeline.input_refs:
                input_node = (ForwarderNodeType.INPUT, ref)
                if input_node not in graph:
                    if ref not in RESERVED_INPUT_NAMES:
                        graph.unresolved.append(
                            f"pipeline {pipeline.name!r} references undeclared input {ref!r}"
                        )
                        continue
                    graph.add_node(
                        input_node,
                        spec=spec.input(ref),
                        order=declared_inputs + RESERVED_INPUT_NAMES.index(ref),
                    )
                graph.add_edge(input_node, pipeline_node)

            for ref in pipeline.output_refs:
                output_node = (ForwarderNodeType.OUTPUT, ref)
                if output_node not in graph:
                    graph.unresolved.append(
                        f"pipeline {pipeline.name!r} references undeclared output {ref!r}"
                    )
                    continue
                graph.add_edge(pipeline_node, output_node)

            for ref in pipeline.filter_refs:
                if ref not in declared_filters:
                    graph.unresolved.append(
                        f"pipeline {pipeline.name!r} references undeclared filter {ref!r}"
                    )

        logger.debug(
            f"Forwarder graph has {graph.number_of_nodes()} nodes and "
            f"{graph.number_of_edges()} edges"
        )
        return graph

    def _sorted(self, nodes) -> list[NodeKey]:
        return sorted(nodes, key=lambda n: self.nodes[n]["order"])

    def _of_type(self, node_type: ForwarderNodeType) -> list[NodeKey]:
        return self._sorted(n for n in self.nodes if n[0] == node_type)

    def referenced_inputs(self) -> list[InputSpec]:
        return [
            self.nodes[n]["spec"]
            for n in self._of_type(ForwarderNodeType.INPUT)
            if self.out_degree(n) > 0
        ]

    def referenced_outputs(self) -> list[OutputSpec]:
        """Outputs fed by at least one pipeline; the rest are dead."""
        return [
            self.nodes[n]["spec"]
            for n in self._of_type(ForwarderNodeType.OUTPUT)
            if self.in_degree(n) > 0
        ]

    def pipelines(self) -> list[PipelineSpec]:
        return [self.nodes[n]["spec"] for n in self._of_type(ForwarderNodeType.PIPELINE)]

    def pipelines_for_input(self, name: str) -> list[PipelineSpec]:
        node = (ForwarderNodeType.INPUT, name)
        return [self.nodes[n]["spec"] for n in self._sorted(self.successors(node))]

    def pipelines_for_output(self, name: str) -> list[PipelineSpec]:
        node = (ForwarderNodeType.OUTPUT, name)
        return [self.nodes[n]["spec"] for n in self._sorted(self.predecessors(node))]

    def inputs_for_pipeline(self, name: str) -> list[InputSpec]:
        node = (ForwarderNodeType.PIPELINE, name)
        return [self.nodes[n]["spec"] for n in self._sorted(self.predecessors(node))]

    def outputs_for_pipeline(self, name: str) -> list[OutputSpec]:
        node = (ForwarderNodeType.PIPELINE, name)
        return [self.nodes[n]["spec"] for n in self._sorted(self.successors(node))]


def pipeline_filters(spec: ForwarderSpec, pipeline: PipelineSpec) -> list[FilterSpec]:
    """Filters of a pipeline in the order the pipeline lists them."""
    return [f for f in (spec.filter(ref) for ref in pipeline.filter_refs) if f]
