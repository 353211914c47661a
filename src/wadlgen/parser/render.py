"""Render a document model back to WADL XML.

The output is pretty-printed and lossless over the model: parsing it
again with the same base URI yields an equal ``Application``.
Documentation content is written verbatim, since it is already an
XML fragment.
"""

from contextlib import contextmanager
from xml.sax.saxutils import quoteattr

from wadlgen.parser.model import (
    DEFAULT_QUERY_TYPE,
    WADL_NS,
    Application,
    Doc,
    Link,
    Method,
    MethodRef,
    Option,
    Param,
    ParamRef,
    Reference,
    Representation,
    RepresentationRef,
    Request,
    Resource,
    ResourceType,
    Response,
)

INDENT = "  "


def _attrs(pairs: list[tuple[str, str | None]]) -> str:
    return "".join(f" {name}={quoteattr(value)}" for name, value in pairs if value is not None)


def _flag(value: bool) -> str | None:
    return "true" if value else None


class _Writer:
    def __init__(self, base_uri: str):
        self.base_uri = base_uri
        self.lines: list[str] = []
        self.depth = 0

    @contextmanager
    def element(self, tag: str, pairs: list[tuple[str, str | None]] = ()):
        start = len(self.lines)
        self.lines.append(f"{INDENT * self.depth}<{tag}{_attrs(list(pairs))}>")
        self.depth += 1
        yield
        self.depth -= 1
        if len(self.lines) == start + 1:
            self.lines[start] = self.lines[start][:-1] + "/>"
        else:
            self.lines.append(f"{INDENT * self.depth}</{tag}>")

    def href(self, ref: Reference) -> str:
        if ref.document == self.base_uri:
            return f"#{ref.fragment}"
        return ref.href

    # -- nodes ----------------------------------------------------------------

    def docs(self, docs: list[Doc]) -> None:
        for doc in docs:
            pairs = [("xmlns", doc.xmlns), ("title", doc.title), ("xml:lang", doc.lang)]
            self.lines.append(f"{INDENT * self.depth}<doc{_attrs(pairs)}>{doc.content}</doc>")

    def param(self, param: Param | ParamRef) -> None:
        if isinstance(param, ParamRef):
            with self.element("param", [("id", param.id), ("href", self.href(param.ref))]):
                pass
            return
        pairs = [
            ("name", param.name),
            ("style", param.style.value),
            ("id", param.id),
            ("type", param.type),
            ("default", param.default),
            ("fixed", param.fixed),
            ("path", param.path),
            ("required", _flag(param.required)),
            ("repeating", _flag(param.repeating)),
        ]
        with self.element("param", pairs):
            self.docs(param.docs)
            for option in param.options:
                self.option(option)
            for link in param.links:
                self.link(link)

    def option(self, option: Option) -> None:
        with self.element("option", [("value", option.value), ("mediaType", option.media_type)]):
            self.docs(option.docs)

    def link(self, link: Link) -> None:
        target = self.href(link.resource_type) if link.resource_type else None
        with self.element("link", [("resource_type", target), ("rel", link.rel), ("rev", link.rev)]):
            self.docs(link.docs)

    def representation(self, rep: Representation | RepresentationRef) -> None:
        if isinstance(rep, RepresentationRef):
            with self.element("representation", [("id", rep.id), ("href", self.href(rep.ref))]):
                pass
            return
        pairs = [
            ("id", rep.id),
            ("mediaType", rep.media_type),
            ("element", rep.element),
            ("profile", rep.profile),
        ]
        with self.element("representation", pairs):
            self.docs(rep.docs)
            for param in rep.params:
                self.param(param)

    def method(self, method: Method | MethodRef) -> None:
        if isinstance(method, MethodRef):
            with self.element("method", [("href", self.href(method.ref))]):
                pass
            return
        with self.element("method", [("name", method.name), ("id", method.id)]):
            self.docs(method.docs)
            if method.request is not None:
                self.request(method.request)
            for response in method.responses:
                self.response(response)

    def request(self, request: Request) -> None:
        with self.element("request"):
            self.docs(request.docs)
            for param in request.params:
                self.param(param)
            for rep in request.representations:
                self.representation(rep)

    def response(self, response: Response) -> None:
        status = " ".join(str(code) for code in response.status) or None
        with self.element("response", [("status", status)]):
            self.docs(response.docs)
            for param in response.params:
                self.param(param)
            for rep in response.representations:
                self.representation(rep)

    def container_body(self, node: Resource | ResourceType) -> None:
        self.docs(node.docs)
        for param in node.params:
            self.param(param)
        for method in node.methods:
            self.method(method)
        for child in node.resources:
            self.resource(child)

    def resource(self, resource: Resource) -> None:
        types = " ".join(self.href(ref) for ref in resource.types) or None
        pairs = [
            ("id", resource.id),
            ("path", resource.path),
            ("type", types),
            ("queryType", resource.query_type if resource.query_type != DEFAULT_QUERY_TYPE else None),
        ]
        with self.element("resource", pairs):
            self.container_body(resource)

    def resource_type(self, rt: ResourceType) -> None:
        query_type = rt.query_type if rt.query_type != DEFAULT_QUERY_TYPE else None
        with self.element("resource_type", [("id", rt.id), ("queryType", query_type)]):
            self.container_body(rt)

    def application(self, app: Application) -> None:
        with self.element("application", [("xmlns", WADL_NS)]):
            self.docs(app.docs)
            if app.grammars:
                with self.element("grammars"):
                    for href in app.grammars:
                        with self.element("include", [("href", href)]):
                            pass
            for rt in app.resource_types.values():
                self.resource_type(rt)
            for rep in app.representations.values():
                self.representation(rep)
            for param in app.params.values():
                self.param(param)
            for method in app.methods.values():
                self.method(method)
            for group in app.resources:
                with self.element("resources", [("base", group.base)]):
                    for resource in group.resources:
                        self.resource(resource)


def render(app: Application) -> str:
    """Render ``app`` as a pretty-printed WADL document."""
    writer = _Writer(app.base_uri)
    writer.application(app)
    return '<?xml version="1.0" encoding="utf-8"?>\n' + "\n".join(writer.lines) + "\n"
