"""Shared fixtures: a storage service on a tmp dir and an sdk client routed into it."""

import pytest
import requests
from fastapi.testclient import TestClient
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from photo_file_sdk.photo_api import PhotoApi
from photo_file_server.main import app
from photo_file_server.photo.api import get_storage
from photo_file_server.photo.storage import PhotoStorage

ENDPOINT = 'http://testserver'


class AppAdapter(BaseAdapter):
    """requests transport adapter that hands requests to a FastAPI TestClient.

    Streaming bodies are read in chunks, so upload progress callbacks fire
    several times per request like they do over a socket.
    """

    def __init__(self, client: TestClient, chunk_size: int = 64 * 1024):
        super().__init__()
        self.client = client
        self.chunk_size = chunk_size

    def send(self, request, **kwargs):
        body = request.body
        if hasattr(body, 'read'):
            chunks = []
            while chunk := body.read(self.chunk_size):
                chunks.append(chunk)
            body = b''.join(chunks)
        elif isinstance(body, str):
            body = body.encode('utf-8')

        resp = self.client.request(request.method, request.url, content=body, headers=dict(request.headers))

        response = requests.Response()
        response.status_code = resp.status_code
        response.headers = CaseInsensitiveDict(resp.headers)
        response._content = resp.content
        response.reason = resp.reason_phrase
        response.encoding = 'utf-8'
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / 'backup_images'
    root.mkdir()
    return root


@pytest.fixture
def storage(storage_root):
    return PhotoStorage(storage_root)


@pytest.fixture
def client(storage):
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def api(client):
    session = requests.Session()
    session.mount(ENDPOINT, AppAdapter(client))
    return PhotoApi(ENDPOINT, session=session)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class BrokenAdapter(BaseAdapter):
    def send(self, request, **kwargs):
        raise requests.ConnectionError('connection refused')

    def close(self):
        pass


@pytest.fixture
def broken_api():
    session = requests.Session()
    session.mount(ENDPOINT, BrokenAdapter())
    return PhotoApi(ENDPOINT, session=session)


class CannedAdapter(BaseAdapter):
    def __init__(self, status_code: int, body: bytes, content_type: str):
        super().__init__()
        self.status_code = status_code
        self.body = body
        self.content_type = content_type

    def send(self, request, **kwargs):
        if hasattr(request.body, 'read'):
            request.body.read()
        response = requests.Response()
        response.status_code = self.status_code
        response.headers = CaseInsensitiveDict({'Content-Type': self.content_type})
        response._content = self.body
        response.encoding = 'utf-8'
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


def canned_api(status_code: int, body: bytes, content_type: str = 'application/json') -> PhotoApi:
    session = requests.Session()
    session.mount(ENDPOINT, CannedAdapter(status_code, body, content_type))
    return PhotoApi(ENDPOINT, session=session)


@pytest.fixture
def portal_api():
    return canned_api(200, b'<html>captive portal</html>', 'text/html')


@pytest.fixture
def make_canned_api():
    return canned_api
