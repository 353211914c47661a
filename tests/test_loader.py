from unittest.mock import patch

import httpx
import pytest

from conftest import FIXTURES
from wadlgen.errors import LoaderError
from wadlgen.parser.loader import DefaultLoader, FileLoader, HttpLoader, MappingLoader

WADL = b'<application xmlns="http://wadl.dev.java.net/2009/02"/>'


def _http_loader(handler) -> HttpLoader:
    return HttpLoader(client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestFileLoader:
    def test_file_uri(self):
        root = FileLoader().load((FIXTURES / "shared.wadl").resolve().as_uri())
        assert root.tag == "{http://wadl.dev.java.net/2009/02}application"

    def test_plain_path_and_fragment(self):
        root = FileLoader().load(str(FIXTURES / "shared.wadl") + "#Widget")
        assert root.tag.endswith("application")

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoaderError):
            FileLoader().load((tmp_path / "missing.wadl").as_uri())

    def test_invalid_xml(self, tmp_path):
        path = tmp_path / "broken.wadl"
        path.write_text("<application")
        with pytest.raises(LoaderError, match="invalid XML"):
            FileLoader().load(str(path))

    def test_rejects_other_schemes(self):
        with pytest.raises(LoaderError, match="unsupported scheme"):
            FileLoader().load("ftp://example.com/a.wadl")


class TestHttpLoader:
    def test_fetches_document(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=WADL)

        root = _http_loader(handler).load("http://example.com/api.wadl#frag")
        assert root.tag.endswith("application")
        assert str(seen[0].url) == "http://example.com/api.wadl"
        assert "application/vnd.sun.wadl+xml" in seen[0].headers["Accept"]

    def test_http_error_status(self):
        loader = _http_loader(lambda request: httpx.Response(404))
        with pytest.raises(LoaderError) as exc:
            loader.load("http://example.com/missing.wadl")
        assert exc.value.uri == "http://example.com/missing.wadl"

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LoaderError, match="refused"):
            _http_loader(handler).load("http://example.com/api.wadl")

    def test_close_releases_own_client(self):
        loader = HttpLoader()
        loader.close()
        assert loader._client.is_closed

    def test_close_leaves_passed_client_open(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=WADL)))
        HttpLoader(client=client).close()
        assert not client.is_closed
        client.close()


class TestDefaultLoader:
    def test_dispatches_http_to_http_loader(self):
        http = _http_loader(lambda request: httpx.Response(200, content=WADL))
        root = DefaultLoader(http_loader=http).load("https://example.com/api.wadl")
        assert root.tag.endswith("application")

    def test_dispatches_files_to_file_loader(self):
        root = DefaultLoader().load((FIXTURES / "main.wadl").resolve().as_uri())
        assert root.tag.endswith("application")

    @patch("wadlgen.parser.loader.HttpLoader")
    def test_context_manager_closes_created_http_loader(self, MockHttp):
        MockHttp.return_value.load.return_value = "root"
        with DefaultLoader() as loader:
            assert loader.load("http://example.com/api.wadl") == "root"
        MockHttp.return_value.close.assert_called_once()

    def test_close_without_http_use(self):
        with DefaultLoader() as loader:
            loader.load((FIXTURES / "main.wadl").resolve().as_uri())
        assert loader._http is None

    def test_passed_http_loader_is_left_open(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=WADL)))
        with DefaultLoader(http_loader=HttpLoader(client=client)) as loader:
            loader.load("http://example.com/api.wadl")
        assert not client.is_closed
        client.close()


class TestMappingLoader:
    def test_records_calls(self):
        loader = MappingLoader({"mem://a.wadl": WADL})
        loader.load("mem://a.wadl#x")
        assert loader.calls == ["mem://a.wadl"]

    def test_unknown_document(self):
        with pytest.raises(LoaderError, match="no such document"):
            MappingLoader({}).load("mem://b.wadl")
