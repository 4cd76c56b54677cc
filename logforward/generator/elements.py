import json
from typing import Union

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError
from pydantic import BaseModel, ConfigDict

from logforward.core.exceptions import BuildError
from logforward.core.models import FilterType, InputType, SyslogRFC

from .tls import TLSConfig


def _quote(value) -> str:
    return json.dumps(str(value))


# fluentd evaluates "#{...}" in double-quoted values as ruby
FLUENTD_ESCAPES = str.maketrans(
    {"\\": "\\\\", '"': '\\"', "#": "\\#", "\n": "\\n", "\r": "\\r", "\t": "\\t"}
)


def _fluentd_quote(value) -> str:
    return '"' + str(value).translate(FLUENTD_ESCAPES) + '"'


def _ruby_quote(value) -> str:
    """Ruby string literal for code fluentd evaluates. It never interpolates."""
    return json.dumps(str(value), ensure_ascii=False).replace("#", "\\x23")


def _toml_array(values) -> str:
    return "[" + ", ".join(_quote(v) for v in values) + "]"


def _toml_inline_table(mapping) -> str:
    return "{" + ", ".join(f"{_quote(k)} = {_quote(v)}" for k, v in mapping.items()) + "}"


jinja_env = Environment(
    loader=PackageLoader("logforward.generator", "templates"),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    autoescape=False,
)
jinja_env.filters["quote"] = _quote
jinja_env.filters["fluentd_quote"] = _fluentd_quote
jinja_env.filters["ruby_quote"] = _ruby_quote
jinja_env.filters["toml_array"] = _toml_array
jinja_env.filters["toml_inline_table"] = _toml_inline_table


class Element(BaseModel):
    """A named fragment of collector configuration.

    `template` is the path of the jinja2 fragment under templates/. Children
    render first, and their non-empty text is handed to the fragment as
    `children`.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    template: str
    children: tuple["Element", ...] = ()


class Document(Element):
    header: str = ""
    data_dir: str = ""


class Source(Element):
    input_type: InputType
    component_id: str
    # fluentd: labels of the pipelines the source routes to
    routes: tuple[str, ...] = ()
    paths: tuple[str, ...] = ()
    exclude_paths: tuple[str, ...] = ()
    pos_file: str = ""


class Pipeline(Element):
    component_id: str
    inputs: tuple[str, ...] = ()
    routes: tuple[str, ...] = ()
    labels: dict[str, str] = {}


class Filter(Element):
    component_id: str
    filter_type: FilterType
    inputs: tuple[str, ...] = ()


class Sink(Element):
    component_id: str
    inputs: tuple[str, ...] = ()
    endpoint: str = ""
    buffer_path: str = ""
    buffer_keys: tuple[str, ...] = ()


class ElasticsearchSink(Sink):
    host: str
    port: int
    scheme: str
    index: str
    api_version: int = 8


class CloudwatchSink(Sink):
    region: str
    group_name: str
    stream_name: str


class S3Sink(Sink):
    bucket: str
    region: str
    key_prefix: str = ""


class SyslogSink(Sink):
    mode: str
    host: str
    port: int
    rfc: SyslogRFC
    facility: str
    severity: str
    app_name: str = ""


class HttpSink(Sink):
    method: str = "post"
    headers: dict[str, str] = {}
    timeout: int | None = None


class TLS(Element):
    conf: TLSConfig


class BasicAuth(Element):
    component_id: str
    username: str
    password: str


class AWSKeyValues(Element):
    component_id: str
    access_key_id: str
    secret_access_key: str


class AWSKeyFiles(Element):
    access_key_id_path: str
    secret_access_key_path: str


class WebIdentity(Element):
    role_arn: str
    token_path: str
    session_name: str


AnyElement = Union[
    Document,
    Source,
    Pipeline,
    Filter,
    ElasticsearchSink,
    CloudwatchSink,
    S3Sink,
    SyslogSink,
    HttpSink,
    TLS,
    BasicAuth,
    AWSKeyValues,
    AWSKeyFiles,
    WebIdentity,
]


def render(element: Element) -> str:
    """Renders an element tree to configuration text.

    Identical trees always render to identical text. Template failures
    surface as BuildError.
    """
    children = [text for text in (render(child) for child in element.children) if text]
    context = {
        field: getattr(element, field)
        for field in type(element).model_fields
        if field not in ("template", "children")
    }
    try:
        template = jinja_env.get_template(element.template)
        text = template.render(children=children, **context)
    except TemplateError as e:
        raise BuildError(
            f"Unable to render {element.name!r} from {element.template}: {e}"
        ) from e
    return text.strip("\n")
