"""Id lookup over a single parsed document."""

from typing import Any, NamedTuple

from wadlgen.errors import DuplicateId
from wadlgen.parser.model import (
    Application,
    Method,
    RefKind,
    Representation,
    Request,
    Resource,
    Response,
    ResourceType,
)


class IndexEntry(NamedTuple):
    kind: RefKind | None  # None for resources, which are never href targets
    node: Any
    path: tuple[str, ...]


class ReferenceIndex:
    """Maps ids to the definitions that declare them in one document.

    Indexed: resource types, resources, top-level representations, params
    and methods, and representations declared inline with an id. Ids must be
    unique across all of these.
    """

    def __init__(self, document: str = ""):
        self.document = document
        self._entries: dict[str, IndexEntry] = {}

    @classmethod
    def build(cls, app: Application) -> "ReferenceIndex":
        index = cls(app.base_uri)
        root = ("application",)
        for rt_id, rt in app.resource_types.items():
            path = root + (f"resource_type[{rt_id}]",)
            index.add(rt_id, RefKind.RESOURCE_TYPE, rt, path)
            index._add_container(rt, path)
        for rep_id, rep in app.representations.items():
            index.add(rep_id, RefKind.REPRESENTATION, rep, root + (f"representation[{rep_id}]",))
        for param_id, param in app.params.items():
            index.add(param_id, RefKind.PARAM, param, root + (f"param[{param_id}]",))
        for method_id, method in app.methods.items():
            path = root + (f"method[{method_id}]",)
            index.add(method_id, RefKind.METHOD, method, path)
            index._add_method(method, path)
        for group in app.resources:
            for resource in group.resources:
                index._add_resource(resource, root + ("resources",))
        return index

    def add(self, identifier: str, kind: RefKind | None, node: Any, path: tuple[str, ...]) -> None:
        if identifier in self._entries:
            raise DuplicateId(identifier, "id", path)
        self._entries[identifier] = IndexEntry(kind, node, path)

    def get(self, identifier: str) -> IndexEntry | None:
        return self._entries.get(identifier)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _add_resource(self, resource: Resource, path: tuple[str, ...]) -> None:
        path = path + (f"resource[{resource.id or resource.path or ''}]",)
        if resource.id:
            self.add(resource.id, None, resource, path)
        self._add_container(resource, path)

    def _add_container(self, container: Resource | ResourceType, path: tuple[str, ...]) -> None:
        for method in container.methods:
            if isinstance(method, Method):
                self._add_method(method, path + (f"method[{method.id or method.name}]",))
        for child in container.resources:
            self._add_resource(child, path)

    def _add_method(self, method: Method, path: tuple[str, ...]) -> None:
        scopes: list[tuple[str, Request | Response]] = []
        if method.request is not None:
            scopes.append(("request", method.request))
        scopes.extend(("response", response) for response in method.responses)
        for label, scope in scopes:
            for rep in scope.representations:
                if isinstance(rep, Representation) and rep.id:
                    self.add(rep.id, RefKind.REPRESENTATION, rep, path + (label, f"representation[{rep.id}]"))
