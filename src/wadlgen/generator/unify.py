"""Structural deduplication of representations into canonical types.

Two representations share a canonical type when their field signatures
are equal: the set of (name, type, required, repeating) tuples of their
params, where the type token also covers option values and link
targets. Docs and ids do not take part. The signature is content
addressed (SHA-1 over the sorted tuples), so grouping does not depend on
declaration order.

Canonical type names:

1. exactly one distinct declared id in the group: PascalCase of the id;
2. several ids: the sorted PascalCase ids joined with ``Or``;
3. no ids: the smallest name derived from a use site (owner path
   segments, method id or verb, then ``Request``/``Response``).

Names from rule 1 that collide raise NamingCollision; synthesized names
take a numeric suffix instead. Every set of options becomes an enum.
"""

import hashlib
import logging

from pydantic import BaseModel, ConfigDict

from wadlgen.config import GenerationConfig
from wadlgen.errors import NamingCollision
from wadlgen.generator.naming import NamingScope, constant, pascal
from wadlgen.generator.types import local_type_name
from wadlgen.generator.walk import Container, iter_containers, iter_usages, methods
from wadlgen.parser.model import Param, ParamRef, Representation
from wadlgen.parser.resolve import ResolvedApplication

logger = logging.getLogger(__name__)

# Module-level names used by the generated code itself
GENERATED_IMPORTS = (
    "annotations", "datetime", "enum", "Any", "BaseModel", "ConfigDict", "Field",
    "Transport", "AsyncTransport", "build_url", "join_url", "build_headers",
    "encode_body", "decode_body", "media_type_matches",
    "ResponseError", "UnexpectedContentType", "UnexpectedStatus",
)


class CanonicalType(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    signature: str
    fields: list[Param]  # resolved params of the first member, in declaration order
    members: list[Representation]
    sites: list[str]
    declared: bool
    owner: str | None = None  # site container name when nested in a resource class


class EnumType(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    values: list[str]
    members: list[tuple[str, str]]  # (member name, value)


class TypeTable:
    """Canonical types and enums for one resolved application."""

    def __init__(self, scope: NamingScope):
        self.scope = scope
        self.types: list[CanonicalType] = []
        self.enums: list[EnumType] = []
        self._by_rep: dict[int, CanonicalType] = {}
        self._enums: dict[tuple[str, tuple[str, ...]], EnumType] = {}
        self._nested: dict[int, list[CanonicalType]] = {}

    def type_for(self, rep: Representation) -> CanonicalType | None:
        return self._by_rep.get(id(rep))

    def enum_for(self, param: Param) -> EnumType | None:
        if not param.options:
            return None
        return self._enums.get(_enum_key(param))

    def nested_in(self, container: Container) -> list[CanonicalType]:
        return self._nested.get(id(container.node), [])

    def module_types(self) -> list[CanonicalType]:
        return [t for t in self.types if t.owner is None]

    @property
    def names(self) -> list[str]:
        return [t.name for t in self.types] + [e.name for e in self.enums]


def _enum_key(param: Param) -> tuple[str, tuple[str, ...]]:
    return param.name, tuple(o.value for o in param.options)


def field_signature(resolved: ResolvedApplication, params: list[Param | ParamRef]) -> str:
    fields = []
    for item in params:
        param = resolved.param(item)
        token = local_type_name(param.type)
        if param.options:
            token += "{" + "|".join(o.value for o in param.options) + "}"
        for link in param.links:
            if link.resource_type is not None:
                token += "->" + link.resource_type.href
        fields.append((param.name, token, param.required, param.repeating))
    return hashlib.sha1(repr(sorted(fields)).encode("utf-8")).hexdigest()


class _Group:
    def __init__(self, signature: str):
        self.signature = signature
        self.members: list[Representation] = []
        self.sites: list[str] = []
        self.methods: set[int] = set()
        self.containers: dict[int, Container] = {}

    @property
    def ids(self) -> list[str]:
        return sorted({m.id for m in self.members if m.id})


def _is_nested(group: _Group, config: GenerationConfig) -> bool:
    # anonymous and used by a single method
    return config.inline_anonymous_types and not group.ids and len(group.methods) == 1 and len(group.containers) == 1


def unify(resolved: ResolvedApplication, config: GenerationConfig | None = None) -> TypeTable:
    """Group representations into canonical types and collect enums."""
    config = config or GenerationConfig()
    scope = NamingScope("module", config.escape_reserved_words)
    for name in GENERATED_IMPORTS:
        scope.reserve(name, "generated imports")
    scope.reserve(config.client_name, "client class")
    table = TypeTable(scope)

    groups: dict[str, _Group] = {}
    signatures: dict[int, str] = {}

    def add(rep: Representation) -> _Group | None:
        if not rep.params:
            return None
        if id(rep) not in signatures:
            signature = signatures[id(rep)] = field_signature(resolved, rep.params)
            groups.setdefault(signature, _Group(signature)).members.append(rep)
        return groups[signatures[id(rep)]]

    for item in resolved.app.representations.values():
        add(resolved.representation(item))
    for usage in iter_usages(resolved):
        group = add(usage.representation)
        if group is not None:
            group.sites.append(usage.site)
            group.methods.add(id(usage.method))
            group.containers[id(usage.container.node)] = usage.container

    # declared names first so synthesized ones yield to them
    named: dict[str, str] = {}
    nested_scopes: dict[int, NamingScope] = {}
    for group in groups.values():
        if len(group.ids) == 1:
            named[group.signature] = scope.claim(pascal(group.ids[0]), f"representation {group.ids[0]!r}")
    for group in groups.values():
        if group.signature in named:
            continue
        if group.ids:
            base = "Or".join(pascal(i) for i in group.ids)
        else:
            base = min(group.sites, default="Representation")
        if _is_nested(group, config):
            (container,) = group.containers.values()
            if id(container.node) not in nested_scopes:
                nested_scopes[id(container.node)] = NamingScope(f"class {container.name}", config.escape_reserved_words)
            nested = nested_scopes[id(container.node)]
            named[group.signature] = nested.claim_unique(base, f"representations used by {base}")
        else:
            named[group.signature] = scope.claim_unique(base, f"representations used by {base}")

    for group in groups.values():
        first = group.members[0]
        owner = None
        if _is_nested(group, config):
            (container,) = group.containers.values()
            owner = container.name
        canonical = CanonicalType(
            name=named[group.signature],
            signature=group.signature,
            fields=[resolved.param(p) for p in first.params],
            members=group.members,
            sites=sorted(set(group.sites)),
            declared=len(group.ids) == 1,
            owner=owner,
        )
        table.types.append(canonical)
        for rep in group.members:
            table._by_rep[id(rep)] = canonical
        if owner is not None:
            table._nested.setdefault(id(container.node), []).append(canonical)
        if len(group.members) > 1:
            logger.debug("Unified %d representations into %s", len(group.members), canonical.name)

    _collect_enums(resolved, table)
    return table


def _collect_enums(resolved: ResolvedApplication, table: TypeTable) -> None:
    for canonical in table.types:
        for field in canonical.fields:
            _add_enum(table, field, canonical.name)
    for container in iter_containers(resolved):
        for item in container.node.params:
            _add_enum(table, resolved.param(item), container.name)
        for method in methods(resolved, container):
            scope = container.name + pascal(method.id or method.name)
            if method.request is not None:
                for item in method.request.params:
                    _add_enum(table, resolved.param(item), scope)
            for response in method.responses:
                for item in response.params:
                    _add_enum(table, resolved.param(item), scope)


def _add_enum(table: TypeTable, param: Param, scope_name: str) -> None:
    if not param.options:
        return
    key = _enum_key(param)
    if key in table._enums:
        return
    values = list(key[1])
    members: dict[str, str] = {}
    for value in values:
        member = constant(value)
        if member in members:
            raise NamingCollision(member, f"option {members[member]!r}", f"option {value!r} of param {param.name!r}")
        members[member] = value
    base = pascal(param.name) or "Value"
    source = f"options of param {param.name!r}"
    if base in table.scope:
        base = scope_name + base
    name = table.scope.claim_unique(base, source)
    enum = EnumType(name=name, values=values, members=[(m, v) for m, v in members.items()])
    table._enums[key] = enum
    table.enums.append(enum)
