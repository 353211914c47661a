"""Build the Jinja2 template context for a generated client module.

The context holds ready-made code fragments (signatures, expressions and
method bodies); ``templates/client.py.j2`` only lays them out.
"""

import logging
from typing import Any, NamedTuple

from wadlgen.config import GenerationConfig
from wadlgen.errors import UnsupportedTypeMapping
from wadlgen.generator.docs import docs_to_text
from wadlgen.generator.naming import NamingScope, identifier
from wadlgen.generator.types import literal, map_type
from wadlgen.generator.unify import CanonicalType, EnumType, TypeTable
from wadlgen.generator.walk import (
    Container,
    iter_resource_containers,
    iter_type_containers,
    method_label,
    methods,
    path_segments,
)
from wadlgen.parser.model import Doc, Method, Param, ParamStyle, Representation, Resource
from wadlgen.parser.resolve import ResolvedApplication
from wadlgen.runtime import is_json, is_xml

logger = logging.getLogger(__name__)


def py_str(value: str) -> str:
    """String literal, double-quoted where possible."""
    text = repr(value)
    if text.startswith("'") and '"' not in value:
        return '"' + text[1:-1].replace("\\'", "'") + '"'
    return text


def docstring(text: str) -> str | None:
    """Triple-quoted docstring literal for ``text``; continuation lines unindented."""
    text = text.strip()
    if not text:
        return None
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text = text[:-1] + '\\"'
    if "\n" in text:
        return f'"""{text}\n"""'
    return f'"""{text}"""'


def _essence(media_type: str | None) -> str:
    return (media_type or "").split(";")[0].strip().lower()


def raw_annotation(media_type: str | None) -> str:
    """Annotation for a body without declared fields."""
    if media_type is None or is_json(media_type):
        return "Any"
    if media_type.startswith("text/") or is_xml(media_type):
        return "str"
    return "bytes"


class _Arg(NamedTuple):
    name: str
    annotation: str
    default: str | None
    required: bool
    doc: str

    @property
    def source(self) -> str:
        if self.required:
            return f"{self.name}: {self.annotation}"
        return f"{self.name}: {self.annotation} = {self.default}"


class ContextBuilder:
    def __init__(self, resolved: ResolvedApplication, table: TypeTable, config: GenerationConfig):
        self.resolved = resolved
        self.table = table
        self.config = config
        self.scope = table.scope.copy()
        self.class_names: dict[int, str] = {}
        self.qualified: dict[str, str] = {}
        self.children: dict[int, list[Container]] = {}
        self.is_async = config.http_mode == "async"

    # -- helpers --------------------------------------------------------------

    def doc(self, docs: list[Doc]) -> str | None:
        if not self.config.include_doc_comments:
            return None
        return docstring(docs_to_text(docs, self.config.strip_code_examples))

    def name(self, text: str) -> str:
        return identifier(text, self.config.naming_style)

    def new_scope(self, label: str) -> NamingScope:
        return NamingScope(label, self.config.escape_reserved_words)

    def value_type(self, param: Param, source: str) -> str:
        enum = self.table.enum_for(param)
        if enum is not None:
            return enum.name
        return map_type(param.type, source, self.config.type_overrides)

    def literal(self, param: Param, value: str, base: str, source: str) -> str:
        enum = self.table.enum_for(param)
        if enum is None:
            return literal(value, base, param.type, source)
        for member, option in enum.members:
            if option == value:
                return f"{enum.name}.{member}"
        raise UnsupportedTypeMapping(param.type, source, f"{value!r} is not one of the options")

    def type_ref(self, canonical: CanonicalType) -> str:
        return self.qualified.get(canonical.signature, canonical.name)

    def body_annotation(self, rep: Representation) -> str:
        canonical = self.table.type_for(rep)
        if canonical is not None:
            return self.type_ref(canonical)
        return raw_annotation(rep.media_type)

    def preferred(self, reps: list[Representation]) -> list[Representation]:
        order = [_essence(m) for m in self.config.media_type_preference]

        def rank(item: tuple[int, Representation]) -> tuple[int, int]:
            index, rep = item
            essence = _essence(rep.media_type)
            if rep.media_type is None:
                return len(order) + 1, index
            return (order.index(essence) if essence in order else len(order)), index

        return [rep for _, rep in sorted(enumerate(reps), key=rank)]

    def scope_params(self, container: Container) -> list[Param]:
        """Params of the container and its ancestors, nearest first."""
        params = []
        current: Container | None = container
        while current is not None:
            params.extend(self.resolved.param(p) for p in current.node.params)
            current = current.parent
        return params

    def template_decls(self, container: Container) -> dict[str, Param]:
        decls: dict[str, Param] = {}
        for param in self.scope_params(container):
            if param.style == ParamStyle.TEMPLATE:
                decls.setdefault(param.name, param)
        return decls

    def pending(self, container: Container) -> list[str]:
        """Placeholders left in the URL of ``container`` after its accessor ran."""
        if not isinstance(container.node, Resource):
            return []
        inherited = self.pending(container.parent) if container.parent is not None else []
        decls = self.template_decls(container)
        own = [p for p in container.node.placeholders if p not in decls and p not in inherited]
        return inherited + own

    # -- enums and models -----------------------------------------------------

    def enum(self, enum: EnumType) -> dict[str, Any]:
        return {"name": enum.name, "members": enum.members}

    def model(self, canonical: CanonicalType) -> dict[str, Any]:
        scope = self.new_scope(f"model {canonical.name}")
        scope.reserve("model_config", "pydantic configuration")
        lines = []
        follows = []
        for param in canonical.fields:
            source = f"param {param.name!r} of {canonical.name}"
            name = scope.claim(self.name(param.name), source)
            base = self.value_type(param, source)
            lines.append(self.field_line(param, name, base, source))
            for link in param.links:
                if link.resource_type is None:
                    continue
                target = self.class_names[id(self.resolved.resource_type(link.resource_type))]
                follows.append(self.follow(scope, name, param, target))
        docs = next((rep.docs for rep in canonical.members if rep.docs), [])
        return {
            "name": canonical.name,
            "doc": self.doc(docs),
            "fields": lines,
            "follows": follows,
        }

    def field_line(self, param: Param, name: str, base: str, source: str) -> str:
        alias = f"alias={py_str(param.name)}" if name != param.name else None
        value = param.default if param.default is not None else param.fixed
        if param.repeating:
            annotation = f"list[{base}]"
            if param.required:
                default = f"Field({alias})" if alias else None
            else:
                default = f"Field(default_factory=list, {alias})" if alias else "Field(default_factory=list)"
        else:
            default = self.literal(param, value, base, source) if value is not None else None
            if param.required and default is None:
                annotation = base
            elif default is None:
                annotation, default = f"{base} | None", "None"
            else:
                annotation = base
            if alias:
                default = f"Field({default}, {alias})" if default is not None else f"Field({alias})"
        line = f"{name}: {annotation}"
        return f"{line} = {default}" if default is not None else line

    def follow(self, scope: NamingScope, field: str, param: Param, target: str) -> dict[str, str]:
        name = scope.claim(self.name(f"follow_{field}"), f"link helper for {field!r}")
        transport = "AsyncTransport" if self.is_async else "Transport"
        if param.repeating:
            returns = f"list[{target}]"
            body = f"return [{target}(transport, url) for url in self.{field}]"
        elif param.required:
            returns = target
            body = f"return {target}(transport, self.{field})"
        else:
            returns = f"{target} | None"
            body = f"return None if self.{field} is None else {target}(transport, self.{field})"
        return {"signature": f"{name}(self, transport: {transport})", "returns": returns, "body": body}

    # -- resource classes -----------------------------------------------------

    def accessor_names(self, children: list[Container]) -> list[str]:
        """Accessor names for sibling resources.

        Siblings that share their literal path words (``widgets`` and
        ``widgets/{id}``) are told apart by their placeholders:
        ``widgets`` and ``widgets_by_id``.
        """
        words = [path_segments(child.node) for child in children]
        bases = [self.name(" ".join(w) or "root") for w in words]
        names = []
        for child, segments, base in zip(children, words, bases):
            resource = child.node
            if bases.count(base) > 1 and resource.placeholders and not resource.id and segments[:1] != ["by"]:
                base = self.name(" ".join(segments + ["by"] + resource.placeholders))
            names.append(base)
        return names

    def accessor(self, scope: NamingScope, child: Container, base_expr: str, name: str) -> dict[str, Any]:
        resource = child.node
        label = resource.id or resource.path or ""
        source = f"resource {label!r}"
        if name in scope.reserved:
            name = scope.claim(name, source)
        else:
            name = scope.claim_unique(name, source)
        decls = self.template_decls(child)
        arg_scope = self.new_scope(f"accessor {name}")
        args = []
        values = []
        for placeholder in resource.placeholders:
            if placeholder not in decls:
                continue
            param = decls[placeholder]
            source = f"template param {placeholder!r} of resource {label!r}"
            arg = arg_scope.claim(self.name(placeholder), source)
            args.append(f"{arg}: {self.value_type(param, source)}")
            values.append(f"{py_str(placeholder)}: {arg}")
        target = self.class_names[id(resource)]
        url = f"join_url({base_expr}, {py_str(resource.path or '')}"
        url += f", {{{', '.join(values)}}})" if values else ")"
        return {
            "signature": f"{name}({', '.join(['self'] + args)})",
            "target": target,
            "url": url,
            "doc": self.doc(resource.docs),
        }

    def resource_class(self, container: Container) -> dict[str, Any]:
        node = container.node
        name = self.class_names[id(node)]
        scope = self.new_scope(f"class {name}")
        bases: list[str] = []
        if isinstance(node, Resource):
            for ref in node.types:
                base = self.class_names[id(self.resolved.resource_type(ref))]
                if base not in bases:
                    bases.append(base)
        nested = [self.model(t) for t in self.table.nested_in(container)]
        operations = [self.operation(container, method, scope) for method in methods(self.resolved, container)]
        children = self.children.get(id(node), [])
        accessors = [
            self.accessor(scope, child, "self._url", accessor_name)
            for child, accessor_name in zip(children, self.accessor_names(children))
        ]
        doc = self.doc(node.docs)
        return {
            "name": name,
            "header": f"class {name}({', '.join(bases)}):" if bases else f"class {name}:",
            "inherits": bool(bases),
            "doc": doc,
            "nested": nested,
            "accessors": accessors,
            "methods": operations,
            "empty": bool(bases) and not (doc or nested or accessors or operations),
        }

    # -- operations -----------------------------------------------------------

    def operation(self, container: Container, method: Method, class_scope: NamingScope) -> dict[str, Any]:
        class_name = self.class_names[id(container.node)]
        label = method_label(method)
        name = class_scope.claim(self.name(label), f"method {label!r} of {class_name}")
        scope = self.new_scope(f"method {class_name}.{name}")
        args: list[_Arg] = []
        buckets: dict[ParamStyle, list[tuple[str, str]]] = {style: [] for style in ParamStyle}
        pending = self.pending(container)
        filled: set[str] = set()

        def add(param: Param, source: str, required: bool = False) -> None:
            style = ParamStyle.QUERY if param.style == ParamStyle.PLAIN else param.style
            if style == ParamStyle.TEMPLATE:
                # resource types fill whatever placeholders the using resource leaves open
                if (param.name not in pending and not container.is_type) or param.name in filled:
                    logger.debug("Template param %r of %s is not a pending placeholder", param.name, source)
                    return
                filled.add(param.name)
                required = True
            elif any(key == param.name for key, _ in buckets[style]):
                return
            base = self.value_type(param, source)
            if param.fixed is not None:
                buckets[style].append((param.name, self.literal(param, param.fixed, base, source)))
                return
            arg = self.argument(scope, param, base, source, required or param.required)
            args.append(arg)
            buckets[style].append((param.name, arg.name))

        request = method.request
        if request is not None:
            for item in request.params:
                param = self.resolved.param(item)
                add(param, f"param {param.name!r} of method {label!r}")
        for placeholder in pending:
            if placeholder not in filled:
                add(self.placeholder_decl(container, placeholder), f"placeholder {{{placeholder}}} of {class_name}")
        for item in container.node.params:
            param = self.resolved.param(item)
            if param.style != ParamStyle.TEMPLATE:
                add(param, f"param {param.name!r} of {class_name}")

        body_rep = None
        if request is not None and request.representations:
            body_rep = self.preferred([self.resolved.representation(r) for r in request.representations])[0]
            body_name = scope.claim("body", f"request body of method {label!r}")
            args.append(_Arg(body_name, self.body_annotation(body_rep), None, True, ""))

        lines = self.call_lines(method, buckets, body_rep, body_name if body_rep is not None else None)
        branches, returns = self.response_lines(method)
        return {
            "prefix": "async " if self.is_async else "",
            "signature": f"{name}({self.signature(args)})",
            "returns": returns,
            "doc": self.operation_doc(method, args),
            "body": lines + branches,
        }

    def placeholder_decl(self, container: Container, placeholder: str) -> Param:
        for method in methods(self.resolved, container):
            if method.request is None:
                continue
            for item in method.request.params:
                param = self.resolved.param(item)
                if param.style == ParamStyle.TEMPLATE and param.name == placeholder:
                    return param
        return Param(name=placeholder, style=ParamStyle.TEMPLATE, required=True)

    def argument(self, scope: NamingScope, param: Param, base: str, source: str, required: bool) -> _Arg:
        name = scope.claim(self.name(param.name), source)
        doc = docs_to_text(param.docs, self.config.strip_code_examples) if self.config.include_doc_comments else ""
        if param.repeating:
            annotation = f"list[{base}]"
            if required:
                return _Arg(name, annotation, None, True, doc)
            return _Arg(name, f"{annotation} | None", "None", False, doc)
        if required:
            return _Arg(name, base, None, True, doc)
        if param.default is not None:
            return _Arg(name, base, self.literal(param, param.default, base, source), False, doc)
        return _Arg(name, f"{base} | None", "None", False, doc)

    def signature(self, args: list[_Arg]) -> str:
        parts = ["self"]
        star = False
        for i, arg in enumerate(args):
            parts.append(arg.source)
            if not arg.required and not star and i < len(args) - 1:
                parts.append("*")
                star = True
        return ", ".join(parts)

    def operation_doc(self, method: Method, args: list[_Arg]) -> str | None:
        if not self.config.include_doc_comments:
            return None
        text = docs_to_text(method.docs, self.config.strip_code_examples)
        described = [f"{arg.name}: {' '.join(arg.doc.split())}" for arg in args if arg.doc]
        if described:
            text = (text + "\n\n" if text else "") + "Args:\n" + "\n".join("    " + d for d in described)
        return docstring(text)

    def call_lines(
        self,
        method: Method,
        buckets: dict[ParamStyle, list[tuple[str, str]]],
        body_rep: Representation | None,
        body_name: str | None,
    ) -> list[str]:
        def mapping(pairs: list[tuple[str, str]]) -> str:
            return "{" + ", ".join(f"{py_str(key)}: {value}" for key, value in pairs) + "}"

        url_args = ["self._url"]
        for style, keyword in ((ParamStyle.TEMPLATE, "template"), (ParamStyle.MATRIX, "matrix"), (ParamStyle.QUERY, "query")):
            if buckets[style]:
                url_args.append(f"{keyword}={mapping(buckets[style])}")
        header_args = []
        if buckets[ParamStyle.HEADER]:
            header_args.append(mapping(buckets[ParamStyle.HEADER]))
        accept = self.accept(method)
        if accept:
            header_args.append(f"accept=[{', '.join(py_str(m) for m in accept)}]")
        if body_rep is not None and body_rep.media_type:
            header_args.append(f"content_type={py_str(body_rep.media_type)}")

        lines = [f"_response = {'await ' if self.is_async else ''}self._transport.request("]
        lines.append(f"    {py_str(method.name.upper())},")
        lines.append(f"    build_url({', '.join(url_args)}),")
        if header_args:
            lines.append(f"    headers=build_headers({', '.join(header_args)}),")
        if body_rep is not None:
            media = py_str(body_rep.media_type) if body_rep.media_type else "None"
            lines.append(f"    body=encode_body({body_name}, {media}),")
        lines.append(")")
        return lines

    def accept(self, method: Method) -> list[str]:
        found: list[str] = []
        for response in method.responses:
            for item in response.representations:
                rep = self.resolved.representation(item)
                if rep.media_type and rep.media_type not in found:
                    found.append(rep.media_type)
        reps = [Representation(media_type=m) for m in found]
        return [rep.media_type for rep in self.preferred(reps)]

    def response_lines(self, method: Method) -> tuple[list[str], str]:
        lines: list[str] = []
        returns: list[str] = []
        if not method.responses:
            lines += ["if 200 <= _response.status < 300:", "    return None"]
            returns.append("None")
        for response in method.responses:
            if response.status:
                lines.append(f"if _response.status in {tuple(response.status)!r}:")
            else:
                lines.append("if 200 <= _response.status < 300:")
            error = bool(response.status) and all(code >= 400 for code in response.status)
            reps = self.preferred([self.resolved.representation(r) for r in response.representations])
            if not reps:
                lines.append("    raise ResponseError(_response)" if error else "    return None")
                if not error:
                    returns.append("None")
                continue
            unconditional = False
            for rep in reps:
                canonical = self.table.type_for(rep)
                decoded = f"decode_body(_response, {self.type_ref(canonical)})" if canonical else "decode_body(_response)"
                statement = f"raise ResponseError(_response, {decoded})" if error else f"return {decoded}"
                if not error:
                    returns.append(self.body_annotation(rep))
                if rep.media_type is None:
                    lines.append(f"    {statement}")
                    unconditional = True
                    break
                lines.append(f"    if media_type_matches(_response, {py_str(rep.media_type)}):")
                lines.append(f"        {statement}")
            if not unconditional:
                lines.append("    raise UnexpectedContentType(_response)")
        lines.append("raise UnexpectedStatus(_response)")
        distinct = list(dict.fromkeys(r for r in returns if r != "None"))
        if "None" in returns or not distinct:
            distinct.append("None")
        return lines, " | ".join(distinct)

    # -- module ---------------------------------------------------------------

    def client(self, roots: list[tuple[Container, str | None]]) -> dict[str, Any]:
        scope = self.new_scope(f"class {self.config.client_name}")
        accessors = []
        names = self.accessor_names([container for container, _ in roots])
        for (container, base), accessor_name in zip(roots, names):
            base_expr = f"self._base_url or {py_str(base or '')}"
            accessors.append(self.accessor(scope, container, f"({base_expr})", accessor_name))
        doc = self.doc(self.resolved.app.docs) or '"""Entry point for the described web application."""'
        return {"name": self.config.client_name, "doc": doc, "accessors": accessors}

    def build(self) -> dict[str, Any]:
        type_containers = list(iter_type_containers(self.resolved))
        resource_containers = list(iter_resource_containers(self.resolved))
        for container in type_containers + resource_containers:
            node = container.node
            if container.parent is not None:
                self.children.setdefault(id(container.parent.node), []).append(container)
            class_name = container.name + "Resource"
            if container.is_type:
                self.class_names[id(node)] = self.scope.claim(class_name, f"resource_type {node.id!r}")
            else:
                label = node.id or node.path or ""
                self.class_names[id(node)] = self.scope.claim_unique(class_name, f"resource {label!r}")
        for container in type_containers + resource_containers:
            for canonical in self.table.nested_in(container):
                self.qualified[canonical.signature] = f"{self.class_names[id(container.node)]}.{canonical.name}"

        roots = []
        for group in self.resolved.app.resources:
            for container in resource_containers:
                if container.parent is None and any(container.node is r for r in group.resources):
                    roots.append((container, group.base))

        # resource types never inherit and are the only bases, so they go first
        ordered = sorted(type_containers + resource_containers, key=lambda c: not c.is_type)
        module_doc = self.doc(self.resolved.app.docs) if self.resolved.app.docs else None
        return {
            "module_doc": module_doc or '"""Client for the described web application."""',
            "transport": "AsyncTransport" if self.is_async else "Transport",
            "enums": [self.enum(e) for e in self.table.enums],
            "models": [self.model(t) for t in self.table.module_types()],
            "classes": [self.resource_class(c) for c in ordered],
            "client": self.client(roots),
        }


def build_context(resolved: ResolvedApplication, table: TypeTable, config: GenerationConfig) -> dict[str, Any]:
    """Template context for ``templates/client.py.j2``."""
    return ContextBuilder(resolved, table, config).build()
