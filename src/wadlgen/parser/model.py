"""Document model for parsed WADL descriptions.

The parser converts a WADL XML tree into these models. Every model is
frozen: the tree is built once and later passes (resolution, type
unification, code generation) keep their results in separate tables.

Cross references are kept as ``Reference`` values holding an absolute
href; they are never replaced by the definition they point at, so cyclic
resource types are plain back-edges in the graph.
"""

import re
from enum import Enum
from urllib.parse import urldefrag

from pydantic import BaseModel, ConfigDict

WADL_NS = "http://wadl.dev.java.net/2009/02"
WADL_MIME_TYPE = "application/vnd.sun.wadl+xml"
DEFAULT_QUERY_TYPE = "application/x-www-form-urlencoded"

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


class ParamStyle(str, Enum):
    PLAIN = "plain"
    QUERY = "query"
    MATRIX = "matrix"
    HEADER = "header"
    TEMPLATE = "template"


class RefKind(str, Enum):
    RESOURCE_TYPE = "resource_type"
    REPRESENTATION = "representation"
    PARAM = "param"
    METHOD = "method"


class Reference(_Node):
    """An unresolved href to a definition, in this or another document."""

    kind: RefKind
    href: str  # absolute, resolved against the referencing document's base URI
    source: str = ""  # element path of the referencing element

    @property
    def document(self) -> str:
        return urldefrag(self.href).url

    @property
    def fragment(self) -> str:
        return urldefrag(self.href).fragment

    # source is diagnostic only and does not take part in equality
    def __eq__(self, other):
        if not isinstance(other, Reference):
            return NotImplemented
        return (self.kind, self.href) == (other.kind, other.href)

    def __hash__(self):
        return hash((self.kind, self.href))


class Doc(_Node):
    """Documentation attached to an element.

    ``content`` is the inner XML of the ``doc`` element; ``xmlns`` is the
    namespace of rich-text markup (usually XHTML) when there is any.
    """

    title: str | None = None
    lang: str | None = None
    content: str = ""
    xmlns: str | None = None


class Option(_Node):
    value: str
    media_type: str | None = None
    docs: list[Doc] = []


class Link(_Node):
    resource_type: Reference | None = None
    rel: str | None = None
    rev: str | None = None
    docs: list[Doc] = []


class Param(_Node):
    name: str
    style: ParamStyle
    id: str | None = None
    type: str = "xs:string"
    default: str | None = None
    fixed: str | None = None
    path: str | None = None
    required: bool = False
    repeating: bool = False
    options: list[Option] = []
    links: list[Link] = []
    docs: list[Doc] = []


class ParamRef(_Node):
    """``<param href="..."/>``; with an ``id`` it is a top-level alias."""

    ref: Reference
    id: str | None = None


class Representation(_Node):
    id: str | None = None
    media_type: str | None = None
    element: str | None = None
    profile: str | None = None
    params: list[Param | ParamRef] = []
    docs: list[Doc] = []


class RepresentationRef(_Node):
    ref: Reference
    id: str | None = None


class Request(_Node):
    params: list[Param | ParamRef] = []
    representations: list[Representation | RepresentationRef] = []
    docs: list[Doc] = []


class Response(_Node):
    status: list[int] = []  # empty: any successful status
    params: list[Param | ParamRef] = []
    representations: list[Representation | RepresentationRef] = []
    docs: list[Doc] = []


class Method(_Node):
    name: str  # HTTP verb
    id: str | None = None
    request: Request | None = None
    responses: list[Response] = []
    docs: list[Doc] = []


class MethodRef(_Node):
    ref: Reference


class Resource(_Node):
    id: str | None = None
    path: str | None = None
    types: list[Reference] = []
    query_type: str = DEFAULT_QUERY_TYPE
    params: list[Param | ParamRef] = []
    methods: list[Method | MethodRef] = []
    resources: list["Resource"] = []
    docs: list[Doc] = []

    @property
    def placeholders(self) -> list[str]:
        """Names of the ``{name}`` placeholders in the path template."""
        return _PLACEHOLDER.findall(self.path or "")


class ResourceType(_Node):
    id: str
    query_type: str = DEFAULT_QUERY_TYPE
    params: list[Param | ParamRef] = []
    methods: list[Method | MethodRef] = []
    resources: list[Resource] = []
    docs: list[Doc] = []


class Resources(_Node):
    base: str | None = None
    resources: list[Resource] = []


class Application(_Node):
    """Root of a parsed WADL document."""

    base_uri: str = ""
    docs: list[Doc] = []
    grammars: list[str] = []
    resources: list[Resources] = []
    resource_types: dict[str, ResourceType] = {}
    representations: dict[str, Representation | RepresentationRef] = {}
    params: dict[str, Param | ParamRef] = {}
    methods: dict[str, Method] = {}

    def iter_resources(self):
        """Yield every resource of every resources group, depth first."""
        stack = [r for group in reversed(self.resources) for r in reversed(group.resources)]
        while stack:
            resource = stack.pop()
            yield resource
            stack.extend(reversed(resource.resources))
