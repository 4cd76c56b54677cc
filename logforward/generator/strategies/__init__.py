from collections.abc import Mapping
from types import MappingProxyType

from logforward.core.models import CollectorType

from .base import CollectorStrategy
from .fluentd import FluentdStrategy
from .vector import VectorStrategy

STRATEGIES: Mapping[CollectorType, CollectorStrategy] = MappingProxyType(
    {
        CollectorType.FLUENTD: FluentdStrategy(),
        CollectorType.VECTOR: VectorStrategy(),
    }
)


def get_strategy(collector_type: CollectorType) -> CollectorStrategy:
    return STRATEGIES[CollectorType(collector_type)]
