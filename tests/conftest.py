import io
import logging
import zipfile

import pytest
import requests


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("offlinebuilder")
    logger.addHandler(handler)
    previous_level = logger.level
    logger.setLevel(logging.DEBUG)

    yield log_stream  # Yield the stream to the test function

    # Cleanup after the test
    logger.removeHandler(handler)
    logger.setLevel(previous_level)
    log_stream.close()


# corpus fixtures


@pytest.fixture
def corpus(tmp_path):
    """Empty definition corpus directory plus a helper to add files to it.

    Usage:
        corpus.write("Windows/a.yaml", "name: A")
    """

    class Corpus:
        root = tmp_path / "corpus"

        def write(self, relative, text, encoding="utf-8"):
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(text, bytes):
                path.write_bytes(text)
            else:
                path.write_text(text, encoding=encoding)
            return path

    Corpus.root.mkdir()
    return Corpus()


def zip_bytes(members):
    """In-memory zip archive with the given {name: content} members."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_zip():
    return zip_bytes


# network fixtures


class FakeResponse:
    """Minimal stand-in for a streamed requests.Response."""

    def __init__(self, content=b"", status_code=200):
        self.content = content
        self.status_code = status_code

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]


@pytest.fixture
def fake_web(monkeypatch):
    """Route requests.get to an in-memory table of URLs.

    A route value may be bytes (the body), an int (an HTTP error status), an
    exception instance (raised), or a list of those (one per call). Unknown
    URLs raise ConnectionError. Every requested URL is recorded in ``calls``.
    """

    class FakeWeb:
        def __init__(self):
            self.routes = {}
            self.calls = []
            self.headers = []

        def get(self, url, stream=False, timeout=None, headers=None):
            self.calls.append(url)
            self.headers.append(headers or {})
            route = self.routes.get(url)
            if isinstance(route, list):
                route = route.pop(0) if len(route) > 1 else route[0]
            if route is None:
                raise requests.ConnectionError(f"no route to {url}")
            if isinstance(route, Exception):
                raise route
            if isinstance(route, int):
                return FakeResponse(b"", status_code=route)
            return FakeResponse(route)

    web = FakeWeb()
    monkeypatch.setattr("offlinebuilder.io.fetch.requests.get", web.get)
    return web
