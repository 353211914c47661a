"""Document loaders used to fetch documents referenced across files.

A loader turns a URI into a parsed XML tree. The resolver only calls a
loader when a cross-document reference is dereferenced, and caches the
result for the rest of the pass.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Protocol
from urllib.parse import urldefrag, urlparse
from urllib.request import url2pathname

import httpx

from wadlgen.errors import LoaderError
from wadlgen.parser.model import WADL_MIME_TYPE

logger = logging.getLogger(__name__)


class DocumentLoader(Protocol):
    def load(self, uri: str) -> ET.Element:
        """Return the root element of the document at ``uri``.

        Raises LoaderError if the document cannot be fetched or is not XML.
        """
        ...


def _parse_xml(uri: str, data: str | bytes) -> ET.Element:
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise LoaderError(uri, f"invalid XML: {e}") from e


class FileLoader:
    """Loads documents from local paths and ``file:`` URIs."""

    def load(self, uri: str) -> ET.Element:
        uri = urldefrag(uri).url
        parsed = urlparse(uri)
        if parsed.scheme == "file":
            path = Path(url2pathname(parsed.path))
        elif parsed.scheme == "":
            path = Path(uri)
        else:
            raise LoaderError(uri, f"unsupported scheme {parsed.scheme!r}")
        logger.debug("Reading %s", path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise LoaderError(uri, str(e)) from e
        return _parse_xml(uri, data)


class HttpLoader:
    """Fetches documents over HTTP(S) with httpx."""

    def __init__(self, client: httpx.Client | None = None, timeout: float = 30.0):
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        """Close the HTTP client if this loader created it."""
        if self._owns_client:
            self._client.close()

    def load(self, uri: str) -> ET.Element:
        uri = urldefrag(uri).url
        logger.debug("Fetching %s", uri)
        try:
            response = self._client.get(uri, headers={"Accept": f"{WADL_MIME_TYPE}, application/xml;q=0.9"})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise LoaderError(uri, str(e)) from e
        return _parse_xml(uri, response.content)


class DefaultLoader:
    """Dispatches on the URI scheme to a file or HTTP loader.

    The HTTP loader is created on first use. Use as a context manager (or
    call ``close``) to release it; a loader passed in is left open.
    """

    def __init__(self, file_loader: FileLoader | None = None, http_loader: HttpLoader | None = None):
        self._file = file_loader or FileLoader()
        self._http = http_loader
        self._owns_http = False

    def load(self, uri: str) -> ET.Element:
        scheme = urlparse(uri).scheme
        if scheme in ("http", "https"):
            if self._http is None:
                self._http = HttpLoader()
                self._owns_http = True
            return self._http.load(uri)
        return self._file.load(uri)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()
            self._http = None
            self._owns_http = False

    def __enter__(self) -> "DefaultLoader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class MappingLoader:
    """Serves documents from an in-memory mapping of URI to XML text."""

    def __init__(self, documents: dict[str, str | bytes]):
        self.documents = dict(documents)
        self.calls: list[str] = []

    def load(self, uri: str) -> ET.Element:
        uri = urldefrag(uri).url
        self.calls.append(uri)
        if uri not in self.documents:
            raise LoaderError(uri, "no such document")
        return _parse_xml(uri, self.documents[uri])
