"""
Tests for the plain LegiScan client against a mocked transport.
"""
import httpx
import pytest

from legisync.api import client as client_module
from legisync.api.client import LegiscanClient
from legisync.errors import ConfigurationError, ProtocolError, TransportError
from tests.conftest import API_KEY, ok


def test_missing_api_key():
    with pytest.raises(ConfigurationError):
        LegiscanClient("")


def test_build_url_and_redaction(api):
    url = api.build_url("getBill", {"id": 42})
    assert url == f"https://api.legiscan.com/?key={API_KEY}&op=getBill&id=42"
    redacted = api.redacted_url("getBill", {"id": 42})
    assert API_KEY not in redacted
    assert "key=%2A%2A%2A" in redacted


def test_request_sends_key_op_and_params(api, legiscan):
    legiscan.responses["getBill"] = ok(bill={"bill_id": 42, "change_hash": "h"})
    envelope = api.request("getBill", {"id": 42, "unused": None})
    assert envelope["bill"]["bill_id"] == 42
    assert legiscan.calls == [{"key": API_KEY, "op": "getBill", "id": "42"}]


def test_request_normalizes_envelope(api, legiscan):
    legiscan.responses["getMasterListRaw"] = ok(masterlist={
        "session": {"session_id": 2041},
        "1": {"bill_id": 2, "change_hash": "b"},
        "0": {"bill_id": 1, "change_hash": "a"},
    })
    envelope = api.request("getMasterListRaw", {"id": 2041})
    assert [row["bill_id"] for row in envelope["masterlist"]] == [1, 2]
    assert envelope["masterlist_session"] == {"session_id": 2041}


def test_http_error_status_raises_transport_error(api, legiscan):
    legiscan.responses["getBill"] = httpx.Response(503, text="Service Unavailable")
    with pytest.raises(TransportError) as exc:
        api.request("getBill", {"id": 1})
    assert exc.value.status_code == 503
    assert exc.value.body == "Service Unavailable"


def test_network_failure_raises_transport_error(api, legiscan):
    def refuse(params):
        raise httpx.ConnectError("connection refused")

    legiscan.responses["getBill"] = refuse
    with pytest.raises(TransportError):
        api.request("getBill", {"id": 1})


def test_timeout_message_does_not_leak_key(api, legiscan):
    def slow(params):
        raise httpx.ReadTimeout("timed out")

    legiscan.responses["getBill"] = slow
    with pytest.raises(TransportError) as exc:
        api.request("getBill", {"id": 1})
    assert API_KEY not in str(exc.value)


def test_alert_raises_protocol_error(api, legiscan):
    legiscan.responses["getBill"] = {"status": "ERROR", "alert": {"message": "Unknown bill id"}}
    with pytest.raises(ProtocolError) as exc:
        api.request("getBill", {"id": 1})
    assert "Unknown bill id" in str(exc.value)


def test_non_json_body_raises_protocol_error(api, legiscan):
    legiscan.responses["getBill"] = httpx.Response(200, text="<html>maintenance</html>")
    with pytest.raises(ProtocolError):
        api.request("getBill", {"id": 1})


def test_non_object_body_raises_protocol_error(api, legiscan):
    legiscan.responses["getBill"] = httpx.Response(200, json=[1, 2, 3])
    with pytest.raises(ProtocolError):
        api.request("getBill", {"id": 1})


def test_request_raw_returns_bytes(api, legiscan):
    legiscan.responses["getDatasetRaw"] = b"PK\x03\x04zip"
    assert api.request_raw("getDatasetRaw", {"id": 1, "access_key": "k"}) == b"PK\x03\x04zip"


def test_search(api, legiscan):
    legiscan.responses["getSearch"] = ok(searchresult={
        "summary": {"count": 1, "page": "1 of 1"},
        "0": {"bill_id": 9, "relevance": 100},
    })
    result = api.search("tax", state="CA")
    assert result["summary"]["count"] == 1
    assert result["results"] == [{"bill_id": 9, "relevance": 100}]
    assert legiscan.calls[0]["query"] == "tax"
    assert "year" not in legiscan.calls[0]


def test_does_not_close_borrowed_client(http_client):
    with LegiscanClient(API_KEY, http_client=http_client):
        pass
    assert not http_client.is_closed


class _FakeTime:
    """Stands in for the time module: sleeping advances the monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_time(monkeypatch):
    fake = _FakeTime()
    monkeypatch.setattr(client_module, "time", fake)
    return fake


def test_no_throttle_by_default(api, legiscan, fake_time):
    legiscan.responses["getBill"] = ok(bill={"bill_id": 1})
    for _ in range(5):
        api.request("getBill", {"id": 1})
    assert fake_time.sleeps == []


def test_min_delay_between_requests(http_client, legiscan, fake_time):
    legiscan.responses["getBill"] = ok(bill={"bill_id": 1})
    client = LegiscanClient(API_KEY, http_client=http_client, min_delay_seconds=1.0)
    client.request("getBill", {"id": 1})
    client.request("getBill", {"id": 1})
    assert fake_time.sleeps == [1.0]

    fake_time.now += 5
    client.request("getBill", {"id": 1})
    assert fake_time.sleeps == [1.0]


def test_rate_limit_waits_for_window(http_client, legiscan, fake_time):
    legiscan.responses["getBill"] = ok(bill={"bill_id": 1})
    client = LegiscanClient(API_KEY, http_client=http_client, rate_limit_per_minute=2)
    client.request("getBill", {"id": 1})
    fake_time.now += 10
    client.request("getBill", {"id": 1})
    assert fake_time.sleeps == []

    client.request("getBill", {"id": 1})
    # the first request leaves the window 60s after it was made
    assert fake_time.sleeps == [50.0]
    assert len(legiscan.ops("getBill")) == 3
