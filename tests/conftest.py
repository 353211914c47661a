import itertools
import json
import sys
import types
from pathlib import Path

import pytest

from wadlgen.runtime import HttpResponse

FIXTURES = Path(__file__).parent / "fixtures"

_module_ids = itertools.count()


def json_response(data, status: int = 200, media_type: str = "application/json") -> HttpResponse:
    return HttpResponse(status=status, headers={"Content-Type": media_type}, body=json.dumps(data).encode())


class FakeTransport:
    """Records requests and replays canned responses."""

    def __init__(self, *responses: HttpResponse):
        self.responses = list(responses)
        self.requests: list[tuple[str, str, dict, bytes | None]] = []

    def request(self, method, url, headers=None, body=None):
        self.requests.append((method, url, headers or {}, body))
        return self.responses.pop(0)


class FakeAsyncTransport(FakeTransport):
    async def request(self, method, url, headers=None, body=None):
        return FakeTransport.request(self, method, url, headers, body)


@pytest.fixture
def load_generated(monkeypatch):
    """Execute generated client source as a fresh module."""

    def load(source: str) -> types.ModuleType:
        name = f"wadlgen_generated_{next(_module_ids)}"
        module = types.ModuleType(name)
        monkeypatch.setitem(sys.modules, name, module)
        exec(compile(source, f"<{name}>", "exec"), module.__dict__)
        return module

    return load
