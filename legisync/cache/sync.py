"""
Masterlist-driven bill refresh.

The masterlist is refreshed hourly and carries a change hash per bill; full
bills are expensive and count against the API quota. Comparing the two lets
us fetch only the bills that changed. A bill whose hash still matches but
whose cache entry has expired gets its TTL renewed in place, since the
masterlist just confirmed it is current.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

log = logging.getLogger("legisync.sync")


def _cached_change_hash(value) -> str | None:
    if not isinstance(value, dict):
        return None
    bill = value.get("bill")
    if not isinstance(bill, dict):
        return None
    change_hash = bill.get("change_hash")
    return change_hash if isinstance(change_hash, str) else None


class BillSynchronizer:
    def __init__(self, client):
        self.client = client
        self.store = client.store

    def _refetch(self, bill_id: int) -> dict:
        self.store.remove(self.client.cache_key("getBill", {"id": bill_id}))
        return self.client.fetch_bill(bill_id)

    def sync(self, session_id: int, max_workers: int = 1) -> list[dict]:
        """
        Fetch every bill in the session whose change hash differs from the
        cached copy (or that is not cached). Returns the fetched bills in
        masterlist order.

        max_workers > 1 fetches the changed bills concurrently. Each bill only
        touches its own cache key.
        """
        log.info("Updating bills from LegiScan for session %d", session_id)
        summaries = self.client.fetch_masterlist(session_id)

        dirty: list[int] = []
        refreshed = 0
        now = self.store.clock()
        for summary in summaries:
            key = self.client.cache_key("getBill", {"id": summary.bill_id})
            entry = self.store.peek(key)
            if entry is None or _cached_change_hash(entry.value) != summary.change_hash:
                dirty.append(summary.bill_id)
            elif entry.is_expired(now):
                self.store.put(key, entry.value, self.client.ttl_for("getBill"))
                refreshed += 1

        log.info(
            "Session %d: %d bills in masterlist, %d to fetch, %d TTLs refreshed",
            session_id, len(summaries), len(dirty), refreshed,
        )

        if max_workers <= 1 or len(dirty) <= 1:
            return [self._refetch(bill_id) for bill_id in dirty]

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self._refetch, dirty))
