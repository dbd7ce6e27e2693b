"""
Tests for the legisync command line.
"""
import json

import httpx
import pytest

from legisync import cli
from legisync.config import Settings
from legisync.dependencies import build_client
from legisync.errors import ConfigurationError
from tests.conftest import make_archive, ok


@pytest.fixture
def overrides_seen(monkeypatch, tmp_path, http_client):
    """Point the CLI at the fake endpoint and record the overrides it passes."""
    seen = []

    def fake_build_client(**overrides):
        seen.append(overrides)
        cfg = Settings(_env_file=None, api_key="k", cache_dir=str(tmp_path / "cache"))
        return build_client(cfg, http_client=http_client, **overrides)

    monkeypatch.setattr(cli, "build_client", fake_build_client)
    return seen


def test_bill_prints_json(overrides_seen, legiscan, capsys):
    legiscan.responses["getBill"] = ok(bill={"bill_id": 7, "change_hash": "h"})
    assert cli.main(["bill", "7"]) == 0
    assert json.loads(capsys.readouterr().out) == {"bill_id": 7, "change_hash": "h"}
    assert overrides_seen == [{}]


def test_second_run_uses_cache(overrides_seen, legiscan, capsys):
    legiscan.responses["getPerson"] = ok(person={"people_id": 3})
    cli.main(["person", "3"])
    cli.main(["person", "3"])
    assert len(legiscan.ops("getPerson")) == 1


def test_no_cache_and_ttl_flags(overrides_seen, legiscan, capsys):
    legiscan.responses["getRollCall"] = ok(roll_call={"roll_call_id": 1})
    cli.main(["--no-cache", "--ttl", "60", "rollcall", "1"])
    assert overrides_seen == [{"cache_enabled": False, "cache_ttl": 60}]


def test_masterlist(overrides_seen, legiscan, capsys):
    legiscan.responses["getMasterListRaw"] = ok(masterlist={"0": {"bill_id": 1, "change_hash": "a"}})
    assert cli.main(["masterlist", "--session", "2041"]) == 0
    rows = json.loads(capsys.readouterr().out)
    assert rows[0]["bill_id"] == 1
    assert rows[0]["change_hash"] == "a"


def test_update(overrides_seen, legiscan, capsys):
    legiscan.responses["getDatasetList"] = ok(datasetlist=[
        {"state_id": 5, "session_id": 2041, "year_end": 2024, "session_name": "2023-2024", "access_key": "abc"},
    ])
    legiscan.responses["getDatasetRaw"] = make_archive(bills=[{"bill_id": 1, "change_hash": "a"}])
    legiscan.responses["getMasterListRaw"] = ok(masterlist={"0": {"bill_id": 1, "change_hash": "a"}})
    assert cli.main(["update", "CA", "2024"]) == 0
    assert json.loads(capsys.readouterr().out) == {"session_id": 2041, "people": 0, "bills": 1, "votes": 0}
    assert legiscan.ops("getBill") == []


def test_archive_written_to_file(overrides_seen, legiscan, tmp_path, capsys):
    legiscan.responses["getDatasetList"] = ok(datasetlist=[
        {"state_id": 5, "session_id": 2041, "access_key": "abc"},
    ])
    legiscan.responses["getDatasetRaw"] = b"zipbytes"
    out = tmp_path / "ca.zip"
    assert cli.main(["archive", "CA", "2024", "-o", str(out)]) == 0
    assert out.read_bytes() == b"zipbytes"


def test_api_error_exits_1(overrides_seen, legiscan, capsys):
    legiscan.responses["getBill"] = httpx.Response(500, text="boom")
    assert cli.main(["bill", "7"]) == 1
    assert "error: HTTP 500" in capsys.readouterr().err


def test_configuration_error_exits_1(monkeypatch, capsys):
    def broken(**overrides):
        raise ConfigurationError("A LegiScan API key is required (set LEGISCAN_API_KEY)")

    monkeypatch.setattr(cli, "build_client", broken)
    assert cli.main(["bill", "7"]) == 1
    assert "API key is required" in capsys.readouterr().err


def test_unwritable_archive_path_exits_1(overrides_seen, legiscan, tmp_path, capsys):
    legiscan.responses["getDatasetList"] = ok(datasetlist=[
        {"state_id": 5, "session_id": 2041, "access_key": "abc"},
    ])
    legiscan.responses["getDatasetRaw"] = b"PKzipbytes"
    out = tmp_path / "missing" / "ca.zip"
    assert cli.main(["archive", "CA", "2024", "-o", str(out)]) == 1
    assert "error:" in capsys.readouterr().err
    assert not out.exists()
