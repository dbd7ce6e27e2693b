"""
Caching wrapper around LegiscanClient.

Every fetch goes through the same path: derive the cache key, serve a fresh
entry if there is one, otherwise call the API and store the envelope. Static
operations (bill text, amendments, supplements, roll calls) are stored with
ttl 0 and never expire; everything else uses the configured TTL. Failed
requests are never cached.
"""
import logging
from pathlib import Path

from pydantic import ValidationError

from legisync.api.client import LegiscanClient
from legisync.api.models import BillSummary, DatasetDescriptor
from legisync.cache.dataset import DatasetContents, DatasetLoader
from legisync.cache.keys import derive_key, ttl_for
from legisync.cache.store import CacheStore
from legisync.cache.sync import BillSynchronizer
from legisync.errors import LegiscanError, ProtocolError

log = logging.getLogger("legisync.api")

DEFAULT_TTL = 14400  # 4h


def _parse_rows(model, rows: list, operation: str) -> list:
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as e:
        raise ProtocolError(f"LegiScan {operation} returned a malformed row: {e}") from e


class CachedLegiscanClient:
    def __init__(
        self,
        client: LegiscanClient,
        store: CacheStore,
        ttl: int = DEFAULT_TTL,
        extract_root: str | Path | None = None,
    ):
        self.client = client
        self.store = store
        self.ttl = ttl
        self.extract_root = Path(extract_root) if extract_root else None

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "CachedLegiscanClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Core read-through paths

    def cache_key(self, operation: str, params: dict | None = None) -> str:
        return derive_key(operation, params)

    def ttl_for(self, operation: str) -> int:
        return ttl_for(operation, self.ttl)

    def _get_or_request(self, operation: str, params: dict) -> dict:
        key = derive_key(operation, params)
        cached = self.store.get_or_expire(key)
        if isinstance(cached, dict):
            log.debug("Pulling %s from cache", key)
            return cached

        log.info("Fetching %s from LegiScan", key)
        envelope = self.client.request(operation, params)
        self.store.put(key, envelope, self.ttl_for(operation))
        return envelope

    def _get_or_request_raw(self, operation: str, params: dict) -> bytes:
        key = derive_key(operation, params)
        cached = self.store.get_bytes_or_expire(key)
        if cached is not None:
            log.debug("Pulling %s from cache (%d bytes)", key, len(cached))
            return cached

        log.info("Fetching %s from LegiScan", key)
        data = self.client.request_raw(operation, params)
        self.store.put_bytes(key, data, self.ttl_for(operation))
        return data

    # ------------------------------------------------------------------
    # Single records

    def fetch_bill(self, bill_id: int) -> dict:
        return self._get_or_request("getBill", {"id": bill_id}).get("bill") or {}

    def fetch_bill_text(self, doc_id: int) -> dict:
        return self._get_or_request("getBillText", {"id": doc_id}).get("text") or {}

    def fetch_person(self, people_id: int) -> dict:
        return self._get_or_request("getPerson", {"id": people_id}).get("person") or {}

    def fetch_roll_call(self, roll_call_id: int) -> dict:
        return self._get_or_request("getRollCall", {"id": roll_call_id}).get("roll_call") or {}

    def fetch_amendment(self, amendment_id: int) -> dict:
        return self._get_or_request("getAmendment", {"id": amendment_id}).get("amendment") or {}

    def fetch_supplement(self, supplement_id: int) -> dict:
        return self._get_or_request("getSupplement", {"id": supplement_id}).get("supplement") or {}

    # ------------------------------------------------------------------
    # Lists

    def fetch_masterlist(
        self, session_id: int | None = None, state: str | None = None, raw: bool = True
    ) -> list[BillSummary]:
        """Bill summaries with change hashes, for a session id or a state's current session."""
        if session_id is None and not state:
            raise ValueError("fetch_masterlist needs a session_id or a state")
        operation = "getMasterListRaw" if raw else "getMasterList"
        params = {"id": session_id} if session_id is not None else {"state": state}
        envelope = self._get_or_request(operation, params)
        return _parse_rows(BillSummary, envelope.get("masterlist", []), operation)

    def fetch_session_list(self, state: str) -> list[dict]:
        return self._get_or_request("getSessionList", {"state": state}).get("sessions", [])

    def fetch_dataset_list(self, state: str | None = None, year: int | None = None) -> list[DatasetDescriptor]:
        envelope = self._get_or_request("getDatasetList", {"state": state, "year": year})
        return _parse_rows(DatasetDescriptor, envelope.get("datasetlist", []), "getDatasetList")

    def fetch_session_people(self, session_id: int) -> list[dict]:
        return self._get_or_request("getSessionPeople", {"id": session_id}).get("sessionpeople", [])

    def fetch_sponsored_list(self, people_id: int) -> list[dict]:
        return self._get_or_request("getSponsoredList", {"id": people_id}).get("sponsoredbills", [])

    def fetch_monitor_list(self, record: str = "current", raw: bool = False) -> list[dict]:
        operation = "getMonitorListRaw" if raw else "getMonitorList"
        return self._get_or_request(operation, {"record": record}).get("monitorlist", [])

    def search(
        self,
        query: str,
        state: str | None = None,
        session_id: int | None = None,
        year: int | None = None,
        page: int | None = None,
    ) -> dict:
        """Full-text search. Never cached: results are paged and interactive."""
        return self.client.search(query, state=state, session_id=session_id, year=year, page=page)

    # ------------------------------------------------------------------
    # Datasets

    def fetch_dataset_archive(self, session_id: int, access_key: str, format: str = "json") -> bytes:
        """The ZIP archive for a session dataset, as raw bytes."""
        return self._get_or_request_raw(
            "getDatasetRaw", {"id": session_id, "access_key": access_key, "format": format}
        )

    def find_dataset(self, state: str, year: int, special: bool = False) -> DatasetDescriptor:
        for dataset in self.fetch_dataset_list(state, year):
            if bool(dataset.special) == special:
                return dataset
        kind = "special" if special else "regular"
        raise LegiscanError(f"No {kind} dataset found for {state} {year}")

    def load_dataset(self, descriptor: DatasetDescriptor) -> DatasetContents:
        """Bulk-load a session archive into the cache. See DatasetLoader."""
        return DatasetLoader(self, extract_root=self.extract_root).load(descriptor)

    def sync_bills(self, session_id: int, max_workers: int = 1) -> list[dict]:
        """Re-fetch the bills whose masterlist change hash differs from the cached one."""
        return BillSynchronizer(self).sync(session_id, max_workers=max_workers)

    def update_dataset(self, descriptor: DatasetDescriptor, max_workers: int = 1) -> DatasetContents:
        """Bulk load a dataset, then bring its bills current from the masterlist."""
        contents = self.load_dataset(descriptor)
        for bill in self.sync_bills(descriptor.session_id, max_workers=max_workers):
            if bill.get("bill_id") is not None:
                contents.bills[int(bill["bill_id"])] = bill
        return contents
