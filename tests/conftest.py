"""
Shared fixtures: a fake clock, a fake LegiScan endpoint served through
httpx.MockTransport, and clients wired to both.
"""
import io
import json
import zipfile

import httpx
import pytest

from legisync.api.cached import CachedLegiscanClient
from legisync.api.client import LegiscanClient
from legisync.api.models import DatasetDescriptor
from legisync.cache.store import FileCacheStore

API_KEY = "SEKRIT-0123456789"

PREFIX = "CA/2023-2024_Regular_Session"

DATASET = DatasetDescriptor(
    state_id=5,
    session_id=2041,
    year_start=2023,
    year_end=2024,
    session_name="2023-2024 Regular Session",
    access_key="abc",
)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLegiscan:
    """
    Routes requests by ``op``. A response may be a dict (served as JSON),
    bytes, an httpx.Response, or a callable taking the query params and
    returning one of those.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        self.calls.append(params)
        item = self.responses.get(params.get("op"))
        if callable(item) and not isinstance(item, httpx.Response):
            item = item(params)
        if item is None:
            return httpx.Response(404, text="not found")
        if isinstance(item, httpx.Response):
            return item
        if isinstance(item, bytes):
            return httpx.Response(200, content=item)
        return httpx.Response(200, json=item)

    def ops(self, op: str | None = None) -> list[dict]:
        return [c for c in self.calls if op is None or c.get("op") == op]


def ok(**fields) -> dict:
    return {"status": "OK", **fields}


def make_archive(people=(), bills=(), votes=(), extra=None) -> bytes:
    """A dataset ZIP laid out the way LegiScan ships them."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for person in people:
            zf.writestr(f"{PREFIX}/people/{person['people_id']}.json", json.dumps({"person": person}))
        for bill in bills:
            zf.writestr(f"{PREFIX}/bill/{bill['bill_id']}.json", json.dumps({"bill": bill}))
        for vote in votes:
            zf.writestr(f"{PREFIX}/vote/{vote['roll_call_id']}.json", json.dumps({"roll_call": vote}))
        for name, content in (extra or {}).items():
            zf.writestr(f"{PREFIX}/{name}", content)
    return buf.getvalue()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock):
    return FileCacheStore(tmp_path / "cache", clock=clock)


@pytest.fixture
def legiscan():
    return FakeLegiscan()


@pytest.fixture
def http_client(legiscan):
    client = httpx.Client(transport=httpx.MockTransport(legiscan))
    yield client
    client.close()


@pytest.fixture
def api(http_client):
    return LegiscanClient(API_KEY, http_client=http_client)


@pytest.fixture
def cached(api, store):
    return CachedLegiscanClient(api, store, ttl=14400)
