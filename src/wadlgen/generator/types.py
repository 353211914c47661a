"""Mapping of declared XML Schema types to Python annotations."""

import base64
import datetime

from wadlgen.errors import UnsupportedTypeMapping

_STR = {
    "string", "normalizedString", "token", "anyURI", "QName", "NCName", "Name",
    "NMTOKEN", "ID", "IDREF", "language",
}
_INT = {
    "int", "integer", "long", "short", "byte",
    "nonNegativeInteger", "positiveInteger", "negativeInteger", "nonPositiveInteger",
    "unsignedInt", "unsignedLong", "unsignedShort", "unsignedByte",
}
_PRIMITIVES: dict[str, str] = {
    **{name: "str" for name in _STR},
    **{name: "int" for name in _INT},
    "float": "float",
    "double": "float",
    "decimal": "float",
    "boolean": "bool",
    "date": "datetime.date",
    "dateTime": "datetime.datetime",
    "time": "datetime.time",
    "duration": "datetime.timedelta",
    "base64Binary": "bytes",
    "hexBinary": "bytes",
    "binary": "bytes",
    "anyType": "Any",
    "anySimpleType": "Any",
}


def local_type_name(type_name: str) -> str:
    """Drop the namespace prefix: ``xs:int`` -> ``int``."""
    return type_name.rpartition(":")[2]


def map_type(type_name: str, source: str, overrides: dict[str, str] | None = None) -> str:
    """Return the Python annotation for a declared value type."""
    overrides = overrides or {}
    if type_name in overrides:
        return overrides[type_name]
    local = local_type_name(type_name)
    if local in overrides:
        return overrides[local]
    try:
        return _PRIMITIVES[local]
    except KeyError:
        raise UnsupportedTypeMapping(type_name, source) from None


def literal(value: str, annotation: str, type_name: str, source: str) -> str:
    """Python source for a default or fixed value of the given annotation."""
    try:
        if annotation == "int":
            return repr(int(value))
        if annotation == "float":
            return repr(float(value))
        if annotation == "bool":
            if value not in ("true", "false", "1", "0"):
                raise ValueError(value)
            return repr(value in ("true", "1"))
        if annotation == "bytes":
            if local_type_name(type_name) == "base64Binary":
                return repr(base64.b64decode(value, validate=True))
            return repr(value.encode())
        if annotation == "datetime.date":
            datetime.date.fromisoformat(value)
            return f"datetime.date.fromisoformat({value!r})"
        if annotation == "datetime.datetime":
            datetime.datetime.fromisoformat(value)
            return f"datetime.datetime.fromisoformat({value!r})"
        if annotation == "datetime.time":
            datetime.time.fromisoformat(value)
            return f"datetime.time.fromisoformat({value!r})"
    except ValueError as e:
        raise UnsupportedTypeMapping(type_name, source, f"invalid value {value!r}") from e
    return repr(value)
