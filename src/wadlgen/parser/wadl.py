"""WADL document parser.

Converts an ``xml.etree.ElementTree`` tree into the document model in
``wadlgen.parser.model``. The parser is purely structural: hrefs are
joined with the document's base URI and kept as unresolved references,
and it never reads files or talks to the network on its own (see
``parse_file`` for the one convenience wrapper that does).
"""

import copy
import logging
import xml.etree.ElementTree as ET
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import urljoin
from xml.sax.saxutils import escape

from wadlgen.config import ParserOptions
from wadlgen.errors import DuplicateId, MalformedDocument, MissingAttribute
from wadlgen.parser.index import ReferenceIndex
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
    ParamStyle,
    Reference,
    RefKind,
    Representation,
    RepresentationRef,
    Request,
    Resource,
    Resources,
    ResourceType,
    Response,
)

logger = logging.getLogger(__name__)

XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"

# Children each WADL element may contain; anything else from the WADL
# vocabulary in the wrong place is a nesting error.
_CHILDREN: dict[str, set[str]] = {
    "application": {"doc", "grammars", "resources", "resource_type", "method", "representation", "param"},
    "grammars": {"doc", "include"},
    "include": {"doc"},
    "resources": {"doc", "resource"},
    "resource": {"doc", "param", "method", "resource"},
    "resource_type": {"doc", "param", "method", "resource"},
    "method": {"doc", "request", "response"},
    "request": {"doc", "param", "representation"},
    "response": {"doc", "param", "representation"},
    "representation": {"doc", "param"},
    "param": {"doc", "option", "link"},
    "option": {"doc"},
    "link": {"doc"},
}
_VOCABULARY = set(_CHILDREN)

# Param styles customary for each location
_STYLES: dict[str, set[ParamStyle]] = {
    "application": set(ParamStyle),
    "resource": {ParamStyle.TEMPLATE, ParamStyle.MATRIX, ParamStyle.QUERY, ParamStyle.HEADER},
    "resource_type": {ParamStyle.QUERY, ParamStyle.HEADER},
    "request": {ParamStyle.TEMPLATE, ParamStyle.QUERY, ParamStyle.HEADER},
    "response": {ParamStyle.HEADER},
    "representation": {ParamStyle.PLAIN, ParamStyle.QUERY},
}


def split_tag(tag: str) -> tuple[str | None, str]:
    """Split ``{ns}local`` into ``(ns, local)``."""
    if tag.startswith("{"):
        ns, _, local = tag[1:].partition("}")
        return ns, local
    return None, tag


def _is_wadl(ns: str | None) -> bool:
    return ns is None or ns == WADL_NS


# Namespace prefixes used when doc markup is serialized into Doc.content
ET.register_namespace("html", "http://www.w3.org/1999/xhtml")
ET.register_namespace("xs", "http://www.w3.org/2001/XMLSchema")
ET.register_namespace("wadl", WADL_NS)


class _Parser:
    def __init__(self, base_uri: str, options: ParserOptions):
        self.base_uri = base_uri
        self.strict = options.strict
        self.path: list[str] = []

    @contextmanager
    def enter(self, label: str):
        self.path.append(label)
        try:
            yield
        finally:
            self.path.pop()

    def fail(self, message: str) -> MalformedDocument:
        return MalformedDocument(message, tuple(self.path))

    # -- element helpers ------------------------------------------------------

    def children(self, element: ET.Element, parent: str) -> list[tuple[str, ET.Element]]:
        """Return (local name, element) for the WADL children of ``element``."""
        result = []
        allowed = _CHILDREN[parent]
        for child in element:
            if not isinstance(child.tag, str):
                continue
            ns, local = split_tag(child.tag)
            if local == "doc" and "doc" in allowed:
                # doc may carry a default namespace for its rich text
                result.append((local, child))
            elif not _is_wadl(ns):
                logger.debug("Skipping extension element %s in <%s>", child.tag, parent)
            elif local in allowed:
                result.append((local, child))
            elif local in _VOCABULARY:
                raise self.fail(f"<{local}> is not allowed inside <{parent}>")
            elif self.strict:
                raise self.fail(f"unrecognized element <{local}>")
            else:
                logger.debug("Ignoring unrecognized element <%s> in <%s>", local, parent)
        return result

    def required(self, element: ET.Element, tag: str, attribute: str) -> str:
        value = element.get(attribute)
        if value is None:
            raise MissingAttribute(tag, attribute, tuple(self.path))
        return value

    def boolean(self, element: ET.Element, attribute: str) -> bool:
        value = element.get(attribute)
        if value is None:
            return False
        if value in ("true", "1"):
            return True
        if value in ("false", "0"):
            return False
        raise self.fail(f"invalid boolean {value!r} for attribute {attribute!r}")

    def reference(self, kind: RefKind, href: str) -> Reference:
        return Reference(kind=kind, href=urljoin(self.base_uri, href), source="/".join(self.path))

    def check_unique_params(self, params: list[Param | ParamRef]) -> None:
        seen: set[str] = set()
        for param in params:
            if not isinstance(param, Param):
                continue
            if param.name in seen:
                with self.enter(f"param[{param.name}]"):
                    raise DuplicateId(param.name, "param name", tuple(self.path))
            seen.add(param.name)

    # -- documentation --------------------------------------------------------

    def docs(self, items: list[tuple[str, ET.Element]]) -> list[Doc]:
        return [self.doc(child) for local, child in items if local == "doc"]

    def doc(self, element: ET.Element) -> Doc:
        ns, _ = split_tag(element.tag)
        xmlns = None if _is_wadl(ns) else ns
        parts = [escape(element.text or "")]
        for child in element:
            if not isinstance(child.tag, str):
                continue
            child_ns, _ = split_tag(child.tag)
            if xmlns is None and not _is_wadl(child_ns):
                xmlns = child_ns
            parts.append(ET.tostring(_strip_wadl_namespace(child), encoding="unicode"))
        return Doc(
            title=element.get("title"),
            lang=element.get(XML_LANG),
            content="".join(parts),
            xmlns=xmlns,
        )

    # -- params ---------------------------------------------------------------

    def params(self, items: list[tuple[str, ET.Element]], location: str) -> list[Param | ParamRef]:
        params = [self.param(child, location) for local, child in items if local == "param"]
        self.check_unique_params(params)
        return params

    def param(self, element: ET.Element, location: str) -> Param | ParamRef:
        name = element.get("name")
        with self.enter(f"param[{name or element.get('id') or element.get('href', '')}]"):
            href = element.get("href")
            if location == "application":
                self.required(element, "param", "id")
            if href is not None:
                ident = element.get("id") if location == "application" else None
                return ParamRef(ref=self.reference(RefKind.PARAM, href), id=ident)
            name = self.required(element, "param", "name")
            style = self.style(element, location)
            items = self.children(element, "param")
            options = [self.option(child) for local, child in items if local == "option"]
            values = [option.value for option in options]
            for value in values:
                if values.count(value) > 1:
                    raise DuplicateId(value, "option value", tuple(self.path))
            return Param(
                name=name,
                style=style,
                id=element.get("id"),
                type=element.get("type", "xs:string"),
                default=element.get("default"),
                fixed=element.get("fixed"),
                path=element.get("path"),
                required=self.boolean(element, "required"),
                repeating=self.boolean(element, "repeating"),
                options=options,
                links=[self.link(child) for local, child in items if local == "link"],
                docs=self.docs(items),
            )

    def style(self, element: ET.Element, location: str) -> ParamStyle:
        value = element.get("style")
        if value is None:
            return ParamStyle.PLAIN if location == "representation" else ParamStyle.QUERY
        try:
            style = ParamStyle(value)
        except ValueError:
            raise self.fail(f"unknown param style {value!r}") from None
        if style not in _STYLES[location]:
            if self.strict:
                raise self.fail(f"param style {value!r} is not allowed in <{location}>")
            logger.warning("Param style %r is unusual in <%s> (at %s)", value, location, "/".join(self.path))
        return style

    def option(self, element: ET.Element) -> Option:
        value = self.required(element, "option", "value")
        with self.enter(f"option[{value}]"):
            return Option(
                value=value,
                media_type=element.get("mediaType"),
                docs=self.docs(self.children(element, "option")),
            )

    def link(self, element: ET.Element) -> Link:
        with self.enter("link"):
            target = element.get("resource_type")
            return Link(
                resource_type=self.reference(RefKind.RESOURCE_TYPE, target) if target else None,
                rel=element.get("rel"),
                rev=element.get("rev"),
                docs=self.docs(self.children(element, "link")),
            )

    # -- representations ------------------------------------------------------

    def representations(
        self, items: list[tuple[str, ET.Element]], location: str
    ) -> list[Representation | RepresentationRef]:
        return [self.representation(child, location) for local, child in items if local == "representation"]

    def representation(self, element: ET.Element, location: str) -> Representation | RepresentationRef:
        label = element.get("id") or element.get("href") or element.get("mediaType") or ""
        with self.enter(f"representation[{label}]"):
            if location == "application":
                self.required(element, "representation", "id")
            href = element.get("href")
            if href is not None:
                ident = element.get("id") if location == "application" else None
                return RepresentationRef(ref=self.reference(RefKind.REPRESENTATION, href), id=ident)
            items = self.children(element, "representation")
            return Representation(
                id=element.get("id"),
                media_type=element.get("mediaType"),
                element=element.get("element"),
                profile=element.get("profile"),
                params=self.params(items, "representation"),
                docs=self.docs(items),
            )

    # -- methods --------------------------------------------------------------

    def methods(self, items: list[tuple[str, ET.Element]]) -> list[Method | MethodRef]:
        methods = [self.method(child) for local, child in items if local == "method"]
        seen: set[str] = set()
        for method in methods:
            if isinstance(method, Method) and method.id:
                if method.id in seen:
                    with self.enter(f"method[{method.id}]"):
                        raise DuplicateId(method.id, "method id", tuple(self.path))
                seen.add(method.id)
        return methods

    def method(self, element: ET.Element, top_level: bool = False) -> Method | MethodRef:
        label = element.get("id") or element.get("name") or element.get("href") or ""
        with self.enter(f"method[{label}]"):
            href = element.get("href")
            if href is not None and not top_level:
                return MethodRef(ref=self.reference(RefKind.METHOD, href))
            if top_level:
                self.required(element, "method", "id")
            name = self.required(element, "method", "name")
            items = self.children(element, "method")
            requests = [child for local, child in items if local == "request"]
            if len(requests) > 1:
                raise self.fail("a method can have at most one <request>")
            return Method(
                name=name,
                id=element.get("id"),
                request=self.request(requests[0]) if requests else None,
                responses=[self.response(child) for local, child in items if local == "response"],
                docs=self.docs(items),
            )

    def request(self, element: ET.Element) -> Request:
        with self.enter("request"):
            items = self.children(element, "request")
            return Request(
                params=self.params(items, "request"),
                representations=self.representations(items, "request"),
                docs=self.docs(items),
            )

    def response(self, element: ET.Element) -> Response:
        status = element.get("status", "")
        with self.enter(f"response[{status}]" if status else "response"):
            try:
                codes = [int(code) for code in status.split()]
            except ValueError:
                raise self.fail(f"invalid status {status!r}") from None
            items = self.children(element, "response")
            return Response(
                status=codes,
                params=self.params(items, "response"),
                representations=self.representations(items, "response"),
                docs=self.docs(items),
            )

    # -- resources ------------------------------------------------------------

    def resource(self, element: ET.Element, inherited: set[str]) -> Resource:
        path = element.get("path")
        with self.enter(f"resource[{element.get('id') or path or ''}]"):
            items = self.children(element, "resource")
            params = self.params(items, "resource")
            methods = self.methods(items)
            declared = inherited | _template_names(params)
            types = [
                self.reference(RefKind.RESOURCE_TYPE, href)
                for href in element.get("type", "").split()
            ]
            resource = Resource(
                id=element.get("id"),
                path=path,
                types=types,
                query_type=element.get("queryType", DEFAULT_QUERY_TYPE),
                params=params,
                methods=methods,
                resources=[self.resource(child, declared) for local, child in items if local == "resource"],
                docs=self.docs(items),
            )
            self.check_placeholders(resource, declared)
            return resource

    def check_placeholders(self, resource: Resource, declared: set[str]) -> None:
        scopes: list[list[Param | ParamRef]] = [resource.params]
        for method in resource.methods:
            if isinstance(method, MethodRef):
                return  # params of referenced methods are only known after resolution
            if method.request is not None:
                scopes.append(method.request.params)
        names = set(declared)
        for params in scopes:
            if any(isinstance(p, ParamRef) for p in params):
                return
            names |= _template_names(params)
        for placeholder in resource.placeholders:
            if placeholder not in names:
                raise self.fail(f"path placeholder {{{placeholder}}} has no template param")

    def resource_type(self, element: ET.Element) -> ResourceType:
        ident = self.required(element, "resource_type", "id")
        with self.enter(f"resource_type[{ident}]"):
            items = self.children(element, "resource_type")
            params = self.params(items, "resource_type")
            declared = _template_names(params)
            return ResourceType(
                id=ident,
                query_type=element.get("queryType", DEFAULT_QUERY_TYPE),
                params=params,
                methods=self.methods(items),
                resources=[self.resource(child, declared) for local, child in items if local == "resource"],
                docs=self.docs(items),
            )

    def resources(self, element: ET.Element) -> Resources:
        with self.enter("resources"):
            items = self.children(element, "resources")
            return Resources(
                base=element.get("base"),
                resources=[self.resource(child, set()) for local, child in items if local == "resource"],
            )

    def grammars(self, element: ET.Element) -> list[str]:
        with self.enter("grammars"):
            return [
                self.required(child, "include", "href")
                for local, child in self.children(element, "grammars")
                if local == "include"
            ]

    # -- application ----------------------------------------------------------

    def application(self, root: ET.Element) -> Application:
        ns, local = split_tag(root.tag)
        if local != "application" or not _is_wadl(ns):
            raise MalformedDocument(f"root element must be <application>, got <{local}>")
        with self.enter("application"):
            items = self.children(root, "application")
            resource_types: dict[str, ResourceType] = {}
            representations: dict[str, Representation | RepresentationRef] = {}
            params: dict[str, Param | ParamRef] = {}
            methods: dict[str, Method] = {}
            grammars: list[str] = []
            resources: list[Resources] = []
            for local, child in items:
                if local == "resource_type":
                    rt = self.resource_type(child)
                    _put(resource_types, rt.id, rt, "resource_type", self.path)
                elif local == "representation":
                    rep = self.representation(child, "application")
                    _put(representations, rep.id, rep, "representation", self.path)
                elif local == "param":
                    param = self.param(child, "application")
                    _put(params, param.id, param, "param", self.path)
                elif local == "method":
                    method = self.method(child, top_level=True)
                    _put(methods, method.id, method, "method", self.path)
                elif local == "grammars":
                    grammars.extend(self.grammars(child))
                elif local == "resources":
                    resources.append(self.resources(child))
            return Application(
                base_uri=self.base_uri,
                docs=self.docs(items),
                grammars=grammars,
                resources=resources,
                resource_types=resource_types,
                representations=representations,
                params=params,
                methods=methods,
            )


def _put(mapping: dict, key: str, value, scope: str, path: list[str]) -> None:
    if key in mapping:
        raise DuplicateId(key, f"{scope} id", tuple(path) + (f"{scope}[{key}]",))
    mapping[key] = value


def _template_names(params: list[Param | ParamRef]) -> set[str]:
    return {p.name for p in params if isinstance(p, Param) and p.style == ParamStyle.TEMPLATE}


def _strip_wadl_namespace(element: ET.Element) -> ET.Element:
    """Copy of ``element`` with WADL-namespaced markup moved to no namespace."""
    element = copy.deepcopy(element)
    for node in element.iter():
        if isinstance(node.tag, str):
            ns, local = split_tag(node.tag)
            if ns == WADL_NS:
                node.tag = local
    return element


def parse(root: ET.Element, base_uri: str = "", options: ParserOptions | None = None) -> Application:
    """Parse a WADL element tree into an Application.

    Raises a ``ParseError`` subclass on the first structural problem.
    """
    app = _Parser(base_uri, options or ParserOptions()).application(root)
    # document-wide id uniqueness
    ReferenceIndex.build(app)
    return app


def parse_string(text: str | bytes, base_uri: str = "", options: ParserOptions | None = None) -> Application:
    """Parse WADL XML text."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedDocument(f"invalid XML: {e}") from e
    return parse(root, base_uri, options)


def parse_file(path: Path, options: ParserOptions | None = None) -> Application:
    """Parse a WADL file; its URI becomes the document's base URI."""
    return parse_string(path.read_bytes(), path.resolve().as_uri(), options)
