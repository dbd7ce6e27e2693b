import json
import logging
import threading
import time
from collections import deque
from urllib.parse import urlencode

import httpx

from legisync.api.envelope import check_alert, normalize
from legisync.errors import ConfigurationError, ProtocolError, TransportError

log = logging.getLogger("legisync.api")

DEFAULT_BASE_URL = "https://api.legiscan.com/"
DEFAULT_TIMEOUT = 30.0


class LegiscanClient:
    """Plain LegiScan API client: one GET per call, no caching, no retries."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
        contact_email: str = "",
        min_delay_seconds: float = 0.0,
        rate_limit_per_minute: int = 0,
    ):
        if not api_key:
            raise ConfigurationError("A LegiScan API key is required (set LEGISCAN_API_KEY)")
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.min_delay_seconds = min_delay_seconds
        self.rate_limit_per_minute = rate_limit_per_minute
        self._owns_client = http_client is None
        self._client = http_client or self._make_client(contact_email)
        self._request_timestamps: deque[float] = deque()
        self._last_request_time: float = 0.0
        self._throttle_lock = threading.Lock()

    def _make_client(self, contact_email: str) -> httpx.Client:
        agent = f"legisync/1.0 ({contact_email})" if contact_email else "legisync/1.0"
        return httpx.Client(
            headers={"Accept": "application/json", "User-Agent": agent},
            timeout=self.timeout,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "LegiscanClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # URLs

    def _query(self, operation: str, params: dict | None) -> dict:
        query = {"key": self.api_key, "op": operation}
        for name, value in (params or {}).items():
            if value is not None:
                query[name] = value
        return query

    def build_url(self, operation: str, params: dict | None = None) -> str:
        return f"{self.base_url}?{urlencode(self._query(operation, params))}"

    def redacted_url(self, operation: str, params: dict | None = None) -> str:
        """The request URL with the API key masked, for logs and error messages."""
        query = self._query(operation, params)
        query["key"] = "***"
        return f"{self.base_url}?{urlencode(query)}"

    # ------------------------------------------------------------------
    # Throttling (off unless configured)

    def _throttle(self) -> None:
        """Enforce a minimum delay between requests and an optional per-minute cap."""
        if self.min_delay_seconds <= 0 and self.rate_limit_per_minute <= 0:
            return
        with self._throttle_lock:
            now = time.monotonic()

            since_last = now - self._last_request_time
            if since_last < self.min_delay_seconds:
                time.sleep(self.min_delay_seconds - since_last)
                now = time.monotonic()

            if self.rate_limit_per_minute > 0:
                # Sliding window: evict old timestamps
                while self._request_timestamps and now - self._request_timestamps[0] > 60:
                    self._request_timestamps.popleft()
                if len(self._request_timestamps) >= self.rate_limit_per_minute:
                    sleep_for = self._request_timestamps[0] + 60 - now
                    if sleep_for > 0:
                        time.sleep(sleep_for)
                    now = time.monotonic()
                    while self._request_timestamps and now - self._request_timestamps[0] > 60:
                        self._request_timestamps.popleft()
                self._request_timestamps.append(now)

            self._last_request_time = now

    # ------------------------------------------------------------------
    # Requests

    def _get(self, operation: str, params: dict | None) -> httpx.Response:
        self._throttle()
        safe_url = self.redacted_url(operation, params)
        log.debug("GET %s", safe_url)
        try:
            response = self._client.get(
                self.base_url, params=self._query(operation, params), timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Timed out calling LegiScan {operation}: {safe_url}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to call LegiScan {operation}: {e}") from e

        if not response.is_success:
            body = response.text
            raise TransportError(
                f"HTTP {response.status_code} from LegiScan {operation}: {body[:200]}",
                status_code=response.status_code,
                body=body,
            )
        return response

    def request(self, operation: str, params: dict | None = None) -> dict:
        """Fetch an operation and return its normalized envelope."""
        response = self._get(operation, params)
        try:
            envelope = response.json()
        except ValueError as e:
            raise ProtocolError(f"LegiScan {operation} returned a body that is not JSON") from e
        if not isinstance(envelope, dict):
            raise ProtocolError(f"LegiScan {operation} returned {type(envelope).__name__}, expected an object")
        check_alert(envelope)
        return normalize(envelope)

    def request_raw(self, operation: str, params: dict | None = None) -> bytes:
        """Fetch an operation whose body is binary (getDatasetRaw)."""
        data = self._get(operation, params).content
        # an error reply still comes back as HTTP 200 with a JSON envelope
        if not data.startswith(b"PK"):
            try:
                envelope = json.loads(data)
            except ValueError:
                envelope = None
            if isinstance(envelope, dict):
                check_alert(envelope)
        return data

    # ------------------------------------------------------------------
    # Uncached operations

    def search(
        self,
        query: str,
        state: str | None = None,
        session_id: int | None = None,
        year: int | None = None,
        page: int | None = None,
    ) -> dict:
        """Full-text search. Returns {"summary": {...}, "results": [...]}."""
        params = {"query": query, "state": state, "id": session_id, "year": year, "page": page}
        return self.request("getSearch", params).get("searchresult") or {"summary": {}, "results": []}

