from .compiler import build_document, compile_config
from .elements import Element, render
from .strategies import STRATEGIES, CollectorStrategy, get_strategy
from .tls import TLSConfig, TLSPolicy, build_tls
from .validation import validate_spec
