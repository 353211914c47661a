"""Traversal of a resolved application for the generator passes."""

from collections.abc import Iterator
from typing import NamedTuple, Union

from wadlgen.generator.naming import pascal
from wadlgen.parser.model import Method, Representation, Resource, ResourceType
from wadlgen.parser.resolve import ResolvedApplication


class Container(NamedTuple):
    """A resource or resource type together with its naming context."""

    node: Union[Resource, ResourceType]
    segments: tuple[str, ...]
    parent: "Container | None"

    @property
    def is_type(self) -> bool:
        return isinstance(self.node, ResourceType)

    @property
    def name(self) -> str:
        return pascal(" ".join(self.segments)) or "Root"

    def chain(self) -> list[Resource]:
        """Resources from the outermost ancestor down to this one."""
        chain = []
        container: Container | None = self
        while container is not None:
            if isinstance(container.node, Resource):
                chain.append(container.node)
            container = container.parent
        return list(reversed(chain))


def path_segments(resource: Resource) -> list[str]:
    """Naming words for a resource: its id, else the literal path segments."""
    if resource.id:
        return [resource.id]
    literal = [s for s in (resource.path or "").split("/") if s and "{" not in s]
    if literal:
        return literal
    if resource.placeholders:
        return ["by"] + resource.placeholders
    return []


def _walk(node, segments: tuple[str, ...], parent: Container | None) -> Iterator[Container]:
    container = Container(node, segments, parent)
    yield container
    for child in node.resources:
        own = tuple(path_segments(child))
        yield from _walk(child, own if child.id else segments + own, container)


def iter_type_containers(resolved: ResolvedApplication) -> Iterator[Container]:
    """Resource types of the document and those loaded from other documents."""
    seen: set[int] = set()
    for rt in list(resolved.app.resource_types.values()) + resolved.external_resource_types():
        if id(rt) not in seen:
            seen.add(id(rt))
            yield from _walk(rt, (rt.id,), None)


def iter_resource_containers(resolved: ResolvedApplication) -> Iterator[Container]:
    for group in resolved.app.resources:
        for resource in group.resources:
            yield from _walk(resource, tuple(path_segments(resource)), None)


def iter_containers(resolved: ResolvedApplication) -> Iterator[Container]:
    yield from iter_type_containers(resolved)
    yield from iter_resource_containers(resolved)


def methods(resolved: ResolvedApplication, container: Container) -> list[Method]:
    return [resolved.method(m) for m in container.node.methods]


def method_label(method: Method) -> str:
    return method.id or method.name.lower()


def site_name(container: Container, method: Method, role: str) -> str:
    """Type name derived from where a representation is used."""
    return pascal(" ".join(container.segments + (method_label(method), role)))


class Usage(NamedTuple):
    representation: Representation
    container: Container
    method: Method
    role: str  # "Request" or "Response"

    @property
    def site(self) -> str:
        return site_name(self.container, self.method, self.role)


def iter_usages(resolved: ResolvedApplication) -> Iterator[Usage]:
    """Every representation used by a method request or response, in document order."""
    for container in iter_containers(resolved):
        for method in methods(resolved, container):
            if method.request is not None:
                for item in method.request.representations:
                    yield Usage(resolved.representation(item), container, method, "Request")
            for response in method.responses:
                for item in response.representations:
                    yield Usage(resolved.representation(item), container, method, "Response")
