"""Exception taxonomy for parsing, resolution and code generation.

Parse and resolution errors carry the element path of the offending
element so that a failure can be located in the source document.
"""


class WadlError(Exception):
    """Base class for every error raised by wadlgen."""


def _format_path(path: tuple[str, ...]) -> str:
    return "/".join(path)


class ParseError(WadlError):
    """A document could not be turned into a valid model."""

    def __init__(self, message: str, path: tuple[str, ...] = ()):
        self.message = message
        self.path = tuple(path)
        if self.path:
            message = f"{message} (at {_format_path(self.path)})"
        super().__init__(message)


class MalformedDocument(ParseError):
    """Invalid XML, unexpected nesting or an invalid attribute value."""


class MissingAttribute(ParseError):
    def __init__(self, element: str, attribute: str, path: tuple[str, ...] = ()):
        self.element = element
        self.attribute = attribute
        super().__init__(f"<{element}> is missing required attribute {attribute!r}", path)


class DuplicateId(ParseError):
    def __init__(self, identifier: str, scope: str, path: tuple[str, ...] = ()):
        self.identifier = identifier
        self.scope = scope
        super().__init__(f"duplicate {scope} {identifier!r}", path)


class UnresolvedReference(WadlError):
    """An href does not point at a definition in the visible document set."""

    def __init__(self, href: str, source: str, reason: str = "not found"):
        self.href = href
        self.source = source
        self.reason = reason
        _, _, self.identifier = href.partition("#")
        super().__init__(f"unresolved reference {href!r} from {source}: {reason}")


class LoaderFailure(UnresolvedReference):
    """The document loader could not provide a referenced document."""

    def __init__(self, uri: str, href: str, source: str, cause: Exception | None = None):
        self.uri = uri
        self.cause = cause
        reason = f"could not load {uri!r}"
        if cause is not None:
            reason = f"{reason}: {cause}"
        super().__init__(href, source, reason)


class LoaderError(WadlError):
    """Raised by document loaders when a document cannot be fetched or read."""

    def __init__(self, uri: str, message: str):
        self.uri = uri
        super().__init__(f"{uri}: {message}")


class GenerationError(WadlError):
    """Code generation failed; the document model is left untouched."""


class CyclicDefinitionMisuse(GenerationError):
    def __init__(self, chain: list[str]):
        self.chain = list(chain)
        super().__init__("cyclic definition where a concrete type is required: " + " -> ".join(self.chain))


class NamingCollision(GenerationError):
    def __init__(self, name: str, first: str, second: str):
        self.name = name
        self.first = first
        self.second = second
        super().__init__(f"name {name!r} produced by both {first} and {second}")


class UnsupportedTypeMapping(GenerationError):
    def __init__(self, type_name: str, source: str, detail: str = ""):
        self.type_name = type_name
        self.source = source
        message = f"cannot map type {type_name!r} of {source} to a Python type"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
