from .defaults import (
    DEFAULT_NODE_SELECTOR,
    DEFAULT_TOLERATIONS,
    ProxyConfig,
    ResourceNames,
    WorkloadDefaults,
)
from .factory import ENRICHMENT_PASSES, CollectorFactory
