"""Identifier normalization for generated code.

Names from the document (ids, param names, path segments) are split into
words and re-joined in the requested style. ``NamingScope`` tracks the
names claimed in one Python namespace and reports collisions.
"""

import keyword
import re

from wadlgen.errors import NamingCollision

RESERVED = frozenset(keyword.kwlist) | {"self"}


def split_words(text: str) -> list[str]:
    """Split ``text`` on separators and camelCase boundaries."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", text)
    s2 = re.sub(r"([a-z\d])([A-Z])", r"\1 \2", s1)
    return re.findall(r"[A-Za-z0-9]+", s2)


def _lead(name: str, prefix: str) -> str:
    if name and name[0].isdigit():
        return prefix + name
    return name


def snake(text: str) -> str:
    """``getWidget`` -> ``get_widget``."""
    return _lead("_".join(w.lower() for w in split_words(text)), "n")


def camel(text: str) -> str:
    """``get_widget`` -> ``getWidget``."""
    words = split_words(text)
    if not words:
        return ""
    return _lead(words[0].lower() + "".join(w.capitalize() for w in words[1:]), "n")


def pascal(text: str) -> str:
    """``get-widget`` -> ``GetWidget``."""
    return _lead("".join(w.capitalize() for w in split_words(text)), "N")


def constant(text: str) -> str:
    """Enum member name: ``in-progress`` -> ``IN_PROGRESS``."""
    name = "_".join(w.upper() for w in split_words(text))
    return _lead(name, "_") or "EMPTY"


def identifier(text: str, style: str) -> str:
    """Normalize ``text`` to a variable name in ``style`` (snake or camel)."""
    return camel(text) if style == "camel" else snake(text)


class NamingScope:
    """Names claimed in one Python namespace, each with the source that produced it."""

    def __init__(self, label: str, escape_reserved: bool = False, reserved: frozenset[str] = RESERVED):
        self.label = label
        self.escape_reserved = escape_reserved
        self.reserved = reserved
        self._names: dict[str, str] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def copy(self) -> "NamingScope":
        scope = NamingScope(self.label, self.escape_reserved, self.reserved)
        scope._names = dict(self._names)
        return scope

    def reserve(self, name: str, source: str) -> None:
        """Claim ``name`` for something outside the document (imports, helpers)."""
        self._names[name] = source

    def claim(self, name: str, source: str) -> str:
        """Claim ``name`` for ``source`` and return the name actually used."""
        if not name:
            raise NamingCollision(name, source, f"{self.label} (empty identifier)")
        if name in self.reserved:
            if not self.escape_reserved:
                raise NamingCollision(name, source, "a reserved word")
            name = name + "_"
        if name in self._names:
            raise NamingCollision(name, self._names[name], source)
        self._names[name] = source
        return name

    def claim_unique(self, name: str, source: str) -> str:
        """Like ``claim``, but append a numeric suffix instead of failing."""
        if name in self.reserved:
            name = name + "_"
        candidate, n = name, 2
        while candidate in self._names:
            candidate = f"{name}{n}"
            n += 1
        self._names[candidate] = source
        return candidate
