"""Pytest fixtures for bunkr_uploader tests."""
import json
import re
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from bunkr_uploader.services.api_client import BunkrAPIClient

UPLOAD_URL = "https://upload.test/upload"
API_URL = "https://dash.test"
TOKEN = "test-token"


def multipart_field(request: httpx.Request, name: str) -> Optional[str]:
    """Extract a text field from a multipart request body."""
    pattern = rb'name="' + re.escape(name.encode()) + rb'"\r\n\r\n(.*?)\r\n'
    match = re.search(pattern, request.content, re.DOTALL)
    return match.group(1).decode() if match else None


def multipart_filename(request: httpx.Request) -> Optional[str]:
    match = re.search(rb'name="files\[\]"; filename="([^"]*)"', request.content)
    return match.group(1).decode() if match else None


def file_response(url: str = "https://cdn.test/file.bin", name: str = "file.bin") -> Tuple[int, Dict]:
    return 200, {"success": True, "files": [{"name": name, "url": url}]}


class FakeBunkr:
    """
    In-memory stand-in for the dashboard and upload node.

    Records every request; responses can be tuned per test.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.upload_response: Tuple[int, object] = file_response()
        self.finish_response: Tuple[int, object] = file_response()
        self.chunk_status: Dict[int, int] = {}
        self.chunk_errors: Dict[int, Exception] = {}
        self.albums = [{"id": 7, "name": "Holidays"}, {"id": 9, "name": "Work"}]

    @staticmethod
    def _respond(status: int, body) -> httpx.Response:
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=str(body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "dash.test":
            return self._dashboard(request, path)

        if path.endswith("/finishchunks"):
            return self._respond(*self.finish_response)

        index = multipart_field(request, "dzchunkindex")
        if index is not None:
            index = int(index)
            if index in self.chunk_errors:
                raise self.chunk_errors[index]
            return self._respond(self.chunk_status.get(index, 200), {"success": True})

        return self._respond(*self.upload_response)

    def _dashboard(self, request: httpx.Request, path: str) -> httpx.Response:
        if path == "/api/node":
            return self._respond(200, {"success": True, "url": UPLOAD_URL})
        if path == "/api/albums" and request.method == "GET":
            return self._respond(200, {"success": True, "albums": self.albums})
        if path == "/api/albums" and request.method == "POST":
            return self._respond(200, {"success": True, "id": 42})
        if path == "/api/tokens/verify":
            payload = json.loads(request.content)
            ok = payload.get("token") == TOKEN
            return self._respond(200 if ok else 401, {"success": ok})
        return self._respond(404, {"success": False})

    @property
    def chunk_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if multipart_field(r, "dzchunkindex") is not None]

    @property
    def finish_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/finishchunks")]

    @property
    def simple_requests(self) -> List[httpx.Request]:
        return [
            r for r in self.upload_requests
            if not r.url.path.endswith("/finishchunks")
            and multipart_field(r, "dzchunkindex") is None
        ]

    @property
    def upload_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == "upload.test"]


@pytest.fixture
def fake_bunkr():
    return FakeBunkr()


@pytest.fixture
def api_client(fake_bunkr):
    return BunkrAPIClient(TOKEN, api_url=API_URL, transport=httpx.MockTransport(fake_bunkr.handler))


def make_file(path, size: int):
    """Create a file of `size` bytes with a repeating pattern."""
    pattern = bytes(range(256))
    with open(path, "wb") as f:
        remaining = size
        while remaining > 0:
            block = pattern * max(1, min(remaining, 1 << 20) // 256 + 1)
            block = block[:min(remaining, 1 << 20)]
            f.write(block)
            remaining -= len(block)
    return path


def make_sparse_file(path, size: int):
    """Create a file reporting `size` bytes without writing them."""
    with open(path, "wb") as f:
        f.truncate(size)
    return path
