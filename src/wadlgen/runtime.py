"""Runtime support imported by generated clients.

Generated code never talks to the network itself: every call goes
through a transport object passed in by the caller. ``HttpxTransport``
and ``AsyncHttpxTransport`` adapt httpx clients to that contract; tests
and embedding applications can pass any object with the same
``request`` method.
"""

import datetime
import enum
import json
import logging
import re
import types
import typing
import xml.etree.ElementTree as ET
from typing import Any, Protocol
from urllib.parse import parse_qs, quote, urlencode

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"


class HttpResponse(BaseModel):
    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> str | None:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None

    @property
    def media_type(self) -> str | None:
        return self.header("content-type")

    @property
    def text(self) -> str:
        match = re.search(r"charset=([\w-]+)", self.media_type or "")
        return self.body.decode(match.group(1) if match else "utf-8", errors="replace")


class Transport(Protocol):
    def request(
        self, method: str, url: str, headers: dict[str, str] | None = None, body: bytes | None = None
    ) -> HttpResponse: ...


class AsyncTransport(Protocol):
    async def request(
        self, method: str, url: str, headers: dict[str, str] | None = None, body: bytes | None = None
    ) -> HttpResponse: ...


# -- errors -------------------------------------------------------------------


class ClientError(Exception):
    """Base class for errors raised by generated clients."""


class TransportFailure(ClientError):
    def __init__(self, method: str, url: str, cause: Exception):
        self.method = method
        self.url = url
        self.cause = cause
        super().__init__(f"{method} {url} failed: {cause}")


class UnexpectedStatus(ClientError):
    def __init__(self, response: HttpResponse):
        self.response = response
        super().__init__(f"unexpected status {response.status}")


class UnexpectedContentType(ClientError):
    def __init__(self, response: HttpResponse):
        self.response = response
        super().__init__(f"unexpected content type {response.media_type!r} for status {response.status}")


class ResponseError(ClientError):
    """The service answered with a declared error status."""

    def __init__(self, response: HttpResponse, detail: Any = None):
        self.response = response
        self.detail = detail
        super().__init__(f"error response {response.status}")


# -- transports ---------------------------------------------------------------


def _to_response(response: httpx.Response) -> HttpResponse:
    return HttpResponse(status=response.status_code, headers=dict(response.headers), body=response.content)


class HttpxTransport:
    """Blocking transport backed by ``httpx.Client``."""

    def __init__(self, client: httpx.Client | None = None, **client_options):
        self._client = client or httpx.Client(**client_options)

    def request(self, method, url, headers=None, body=None) -> HttpResponse:
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, headers=headers, content=body)
        except httpx.HTTPError as e:
            raise TransportFailure(method, url, e) from e
        return _to_response(response)

    def close(self) -> None:
        self._client.close()


class AsyncHttpxTransport:
    """Asynchronous transport backed by ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient | None = None, **client_options):
        self._client = client or httpx.AsyncClient(**client_options)

    async def request(self, method, url, headers=None, body=None) -> HttpResponse:
        logger.debug("%s %s", method, url)
        try:
            response = await self._client.request(method, url, headers=headers, content=body)
        except httpx.HTTPError as e:
            raise TransportFailure(method, url, e) from e
        return _to_response(response)

    async def aclose(self) -> None:
        await self._client.aclose()


# -- request encoding ---------------------------------------------------------


def to_text(value: Any) -> str:
    """Wire form of a parameter value."""
    if isinstance(value, enum.Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _fill(template: str, values: dict[str, Any]) -> str:
    def substitute(match: re.Match) -> str:
        value = values.get(match.group(1))
        if value is None:
            return match.group(0)
        return quote(to_text(value), safe="")

    return _PLACEHOLDER.sub(substitute, template)


def join_url(base: str, path: str | None, values: dict[str, Any] | None = None) -> str:
    """Append a resource path to ``base``, filling the placeholders given."""
    path = _fill(path or "", values or {})
    if not path:
        return base
    return base.rstrip("/") + "/" + path.lstrip("/")


def build_url(
    url: str,
    template: dict[str, Any] | None = None,
    matrix: dict[str, Any] | None = None,
    query: dict[str, Any] | None = None,
) -> str:
    """Fill remaining placeholders and append matrix and query params.

    ``None`` values are omitted; lists repeat the param. A boolean matrix
    param is written as ``;name`` when true and omitted when false.
    """
    url = _fill(url, template or {})
    for name, value in (matrix or {}).items():
        for item in value if isinstance(value, (list, tuple)) else [value]:
            if item is None or item is False:
                continue
            if item is True:
                url += f";{quote(name)}"
            else:
                url += f";{quote(name)}={quote(to_text(item), safe='')}"
    pairs = []
    for name, value in (query or {}).items():
        for item in value if isinstance(value, (list, tuple)) else [value]:
            if item is not None:
                pairs.append((name, to_text(item)))
    if pairs:
        url += ("&" if "?" in url else "?") + urlencode(pairs)
    return url


def build_headers(
    values: dict[str, Any] | None = None, accept: list[str] | None = None, content_type: str | None = None
) -> dict[str, str]:
    headers = {}
    for name, value in (values or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            headers[name] = ", ".join(to_text(v) for v in value)
        else:
            headers[name] = to_text(value)
    if accept:
        headers["Accept"] = ", ".join(accept)
    if content_type:
        headers["Content-Type"] = content_type
    return headers


def _essence(media_type: str) -> str:
    return media_type.split(";")[0].strip().lower()


def is_json(media_type: str) -> bool:
    essence = _essence(media_type)
    return essence == "application/json" or essence.endswith("+json")


def is_xml(media_type: str) -> bool:
    essence = _essence(media_type)
    return essence.endswith("/xml") or essence.endswith("+xml")


def encode_body(body: Any, media_type: str | None = None) -> bytes | None:
    """Serialize a request body for ``media_type``."""
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, BaseModel):
        if media_type and _essence(media_type) == FORM_MEDIA_TYPE:
            data = body.model_dump(by_alias=True, exclude_none=True)
            return urlencode(
                [(k, to_text(item)) for k, v in data.items() for item in (v if isinstance(v, list) else [v])]
            ).encode("ascii")
        if media_type and is_xml(media_type):
            return _model_to_xml(body)
        return body.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    return json.dumps(body, default=to_text).encode("utf-8")


def _model_to_xml(model: BaseModel) -> bytes:
    root = ET.Element(type(model).__name__)
    for name, value in model.model_dump(by_alias=True, exclude_none=True).items():
        for item in value if isinstance(value, list) else [value]:
            ET.SubElement(root, name).text = to_text(item)
    return ET.tostring(root, encoding="utf-8")


# -- response decoding --------------------------------------------------------


def media_type_matches(response: HttpResponse, media_type: str | None) -> bool:
    """Whether the response content type matches a declared media type.

    A response without a content type matches anything.
    """
    if media_type is None or not response.media_type:
        return True
    expected = _essence(media_type)
    actual = _essence(response.media_type)
    if expected == "*/*" or expected == actual:
        return True
    if expected.endswith("/*"):
        return actual.startswith(expected[:-1])
    return False


def _is_list(annotation: Any) -> bool:
    if typing.get_origin(annotation) is list:
        return True
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        return any(typing.get_origin(arg) is list for arg in typing.get_args(annotation))
    return False


def _collapse(values: dict[str, list[str]], model: type[BaseModel]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for name, field in model.model_fields.items():
        key = field.alias or name
        if key in values:
            data[key] = values[key] if _is_list(field.annotation) else values[key][0]
    return data


def _xml_values(body: bytes) -> dict[str, list[str]]:
    root = ET.fromstring(body)
    values: dict[str, list[str]] = {}
    for name, value in root.attrib.items():
        values.setdefault(name.rpartition("}")[2], []).append(value)
    for child in root:
        if isinstance(child.tag, str):
            values.setdefault(child.tag.rpartition("}")[2], []).append(child.text or "")
    return values


def decode_body(response: HttpResponse, model: type[BaseModel] | None = None) -> Any:
    """Decode a response body, into ``model`` when one is given.

    Without a model, JSON is parsed, text and XML are returned as str and
    anything else as bytes.
    """
    media_type = response.media_type or ""
    if model is None:
        if is_json(media_type):
            return json.loads(response.body) if response.body else None
        if media_type.startswith("text/") or is_xml(media_type):
            return response.text
        return response.body
    if is_xml(media_type):
        return model.model_validate(_collapse(_xml_values(response.body), model))
    if _essence(media_type) == FORM_MEDIA_TYPE:
        return model.model_validate(_collapse(parse_qs(response.text), model))
    return model.model_validate_json(response.body)
