"""
Shared fixtures: stub HTTP session, stub frame stream and JPEG helpers.

Nothing in the suite touches the network; every request goes through
FakeSession, which records calls so tests can assert on them.
"""
import io
from datetime import datetime, timedelta, timezone

import pytest
import requests
from PIL import Image

from shared.schemas import Snapshot


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, json_body=None, content=b"", text=None):
        self.status_code = status_code
        self._json = json_body
        self.content = content
        self.text = text if text is not None else ("" if json_body is None else str(json_body))

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """
    Records every request and answers from a route table.

    A route value may be a FakeResponse, an exception instance (raised), or a
    callable(url, kwargs) returning either.
    """

    def __init__(self):
        self.calls = []
        self._routes = []

    def route(self, method, path, response):
        self._routes.insert(0, (method.upper(), path, response))
        return self

    def get(self, url, **kwargs):
        return self._dispatch("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._dispatch("POST", url, kwargs)

    def calls_to(self, path):
        return [call for call in self.calls if call[1].endswith(path)]

    def _dispatch(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        for route_method, path, response in self._routes:
            if route_method == method and url.endswith(path):
                if callable(response) and not isinstance(response, FakeResponse):
                    response = response(url, kwargs)
                if isinstance(response, Exception):
                    raise response
                return response
        raise requests.exceptions.ConnectionError(f"No route for {method} {url}")


class FakeStream:
    """Stand-in for device.stream.FrameStream driven by the test."""

    def __init__(self, url, on_frame, on_closed=None, **kwargs):
        self.url = url
        self.on_frame = on_frame
        self.on_closed = on_closed
        self.opened = False
        self.closed = False
        self.sent = []

    def start(self):
        self.opened = True

    def is_open(self):
        return self.opened and not self.closed

    def request_frame(self):
        if not self.is_open():
            return False
        self.sent.append("capture")
        return True

    def close(self, timeout=5.0):
        self.closed = True

    def push(self, data):
        self.on_frame(data)

    def drop(self, error=None):
        self.opened = False
        if self.on_closed is not None:
            self.on_closed(error or ConnectionResetError("stream reset"))


def make_jpeg(width=320, height=240, color=(40, 80, 120)):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="JPEG")
    return buffer.getvalue()


T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def snapshot_at(offset_ms, data=b"\xff\xd8frame\xff\xd9"):
    return Snapshot(image_bytes=data, captured_at=T0 + timedelta(milliseconds=offset_ms))


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def streams():
    """List collecting every FakeStream created by stream_factory."""
    return []


@pytest.fixture
def stream_factory(streams):
    def factory(url, on_frame, on_closed=None, **kwargs):
        stream = FakeStream(url, on_frame, on_closed, **kwargs)
        streams.append(stream)
        return stream

    return factory


@pytest.fixture
def reachable_session(fake_session):
    """Session for a healthy camera answering /status and /capture."""
    fake_session.route("GET", "/status", FakeResponse(200, {"status": "ok", "ok": True}))
    fake_session.route("GET", "/capture", FakeResponse(200, content=make_jpeg(640, 480)))
    fake_session.route("POST", "/command", lambda url, kw: FakeResponse(
        200, {"ok": True, "command": kw["data"]["command"]}
    ))
    return fake_session
