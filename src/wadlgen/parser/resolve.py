"""Reference resolution over a parsed document and the documents it names.

``resolve`` never changes the model. It returns a ``ResolvedApplication``
holding a table from href to the definition it names, plus the documents
that were loaded to find them.
"""

import logging
from collections import deque
from collections.abc import Iterator
from typing import Any, NamedTuple

from pydantic import BaseModel

from wadlgen.config import ParserOptions
from wadlgen.errors import CyclicDefinitionMisuse, LoaderError, LoaderFailure, UnresolvedReference
from wadlgen.parser.index import ReferenceIndex
from wadlgen.parser.loader import DocumentLoader
from wadlgen.parser.model import (
    Application,
    Method,
    MethodRef,
    Param,
    ParamRef,
    Reference,
    RefKind,
    Representation,
    RepresentationRef,
    ResourceType,
)
from wadlgen.parser.wadl import parse

logger = logging.getLogger(__name__)


class Target(NamedTuple):
    document: Application
    node: Any
    kind: RefKind


def iter_references(node: Any) -> Iterator[Reference]:
    """Yield every Reference held in ``node``, in field order."""
    if isinstance(node, Reference):
        yield node
    elif isinstance(node, BaseModel):
        for name in type(node).model_fields:
            yield from iter_references(getattr(node, name))
    elif isinstance(node, (list, tuple)):
        for item in node:
            yield from iter_references(item)
    elif isinstance(node, dict):
        for item in node.values():
            yield from iter_references(item)


class ResolvedApplication:
    """A parsed application together with its resolution table."""

    def __init__(self, app: Application, targets: dict[str, Target], documents: dict[str, Application]):
        self.app = app
        self.targets = targets
        self.documents = documents

    def deref(self, ref: Reference) -> Target:
        target = self.targets.get(ref.href)
        if target is None:
            raise UnresolvedReference(ref.href, ref.source, "not part of this resolution")
        return target

    def _follow(self, ref: Reference, concrete: type, alias: type):
        chain = [ref.href]
        while True:
            node = self.deref(ref).node
            if isinstance(node, concrete):
                return node
            if not isinstance(node, alias):
                raise UnresolvedReference(ref.href, ref.source, f"expected a {concrete.__name__}")
            ref = node.ref
            if ref.href in chain:
                raise CyclicDefinitionMisuse(chain + [ref.href])
            chain.append(ref.href)

    def representation(self, item: Representation | RepresentationRef) -> Representation:
        if isinstance(item, Representation):
            return item
        return self._follow(item.ref, Representation, RepresentationRef)

    def param(self, item: Param | ParamRef) -> Param:
        if isinstance(item, Param):
            return item
        return self._follow(item.ref, Param, ParamRef)

    def method(self, item: Method | MethodRef) -> Method:
        if isinstance(item, Method):
            return item
        return self._follow(item.ref, Method, MethodRef)

    def resource_type(self, ref: Reference) -> ResourceType:
        node = self.deref(ref).node
        if not isinstance(node, ResourceType):
            raise UnresolvedReference(ref.href, ref.source, "expected a resource_type")
        return node

    def external_resource_types(self) -> list[ResourceType]:
        """Resource types that were loaded from other documents."""
        return [
            t.node
            for t in self.targets.values()
            if t.kind == RefKind.RESOURCE_TYPE and t.document is not self.app
        ]


class _Resolver:
    def __init__(self, app: Application, loader: DocumentLoader | None, options: ParserOptions | None = None):
        self.app = app
        self.loader = loader
        self.options = options
        self.documents: dict[str, Application] = {app.base_uri: app}
        self.indexes: dict[str, ReferenceIndex] = {app.base_uri: ReferenceIndex.build(app)}
        self.targets: dict[str, Target] = {}

    def run(self) -> ResolvedApplication:
        queue = deque(iter_references(self.app))
        while queue:
            ref = queue.popleft()
            known = self.targets.get(ref.href)
            if known is not None:
                self.check_kind(ref, known.kind)
                continue
            target = self.lookup(ref)
            self.targets[ref.href] = target
            queue.extend(iter_references(target.node))
        return ResolvedApplication(self.app, self.targets, self.documents)

    def lookup(self, ref: Reference) -> Target:
        uri = ref.document
        index = self.index_for(uri, ref)
        entry = index.get(ref.fragment)
        if entry is None:
            raise UnresolvedReference(ref.href, ref.source, f"no definition with id {ref.fragment!r}")
        self.check_kind(ref, entry.kind)
        return Target(self.documents[uri], entry.node, entry.kind)

    def check_kind(self, ref: Reference, kind: RefKind | None) -> None:
        if kind != ref.kind:
            found = kind.value if kind else "resource"
            raise UnresolvedReference(ref.href, ref.source, f"{ref.fragment!r} is a {found}, not a {ref.kind.value}")

    def index_for(self, uri: str, ref: Reference) -> ReferenceIndex:
        if uri in self.indexes:
            return self.indexes[uri]
        if self.loader is None:
            raise LoaderFailure(uri, ref.href, ref.source, LoaderError(uri, "no document loader configured"))
        logger.debug("Loading referenced document %s", uri)
        try:
            root = self.loader.load(uri)
        except LoaderError as e:
            raise LoaderFailure(uri, ref.href, ref.source, e) from e
        document = parse(root, uri, self.options)
        self.documents[uri] = document
        self.indexes[uri] = ReferenceIndex.build(document)
        return self.indexes[uri]


def resolve(
    app: Application,
    loader: DocumentLoader | None = None,
    options: ParserOptions | None = None,
) -> ResolvedApplication:
    """Resolve every reference reachable from ``app``.

    Documents other than ``app`` are fetched through ``loader`` at most
    once each and parsed with ``options``, so strict parsing applies to
    them as well. Raises UnresolvedReference (or its LoaderFailure subclass)
    on the first reference that cannot be resolved.
    """
    return _Resolver(app, loader, options).run()
