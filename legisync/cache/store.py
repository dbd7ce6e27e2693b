"""
File-backed cache store.

One JSON file per cache key under a root directory. The key's ``/``
separators become directories, so ``getbill/100`` lives at
``<root>/getbill/100.json``. Every file holds::

    {"written_at": <epoch seconds>, "cached_at": <iso>, "ttl": <seconds>, "value": ...}

A ttl of 0 means the entry never expires. Raw bytes (dataset archives) are
kept in a ``.bin`` sibling of the JSON entry, which then only records the size.

Caching is best-effort: a broken or unreadable entry is logged and reported
as a miss, and failed writes are logged and dropped.
"""
import json
import logging
import os
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

from legisync.errors import CacheIOError

log = logging.getLogger("legisync.cache")

_UNSAFE_SEGMENT_CHARS = re.compile(r"[^A-Za-z0-9_%\-]")


@dataclass
class CacheEntry:
    value: Any
    written_at: float
    ttl: int

    def expires_at(self) -> float | None:
        if self.ttl <= 0:
            return None
        return self.written_at + self.ttl

    def is_expired(self, now: float | None = None) -> bool:
        expires_at = self.expires_at()
        if expires_at is None:
            return False
        if now is None:
            now = time.time()
        return now >= expires_at


class CacheStore(Protocol):
    clock: Callable[[], float]

    def peek(self, key: str) -> CacheEntry | None: ...

    def get_or_expire(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any, ttl: int) -> None: ...

    def remove(self, key: str) -> None: ...

    def exists_valid(self, key: str) -> bool: ...

    def put_bytes(self, key: str, data: bytes, ttl: int) -> None: ...

    def get_bytes_or_expire(self, key: str) -> bytes | None: ...


class FileCacheStore:
    def __init__(self, root: str | Path, clock: Callable[[], float] = time.time):
        self.root = Path(root)
        self.clock = clock

    def __repr__(self) -> str:
        return f"FileCacheStore({str(self.root)!r})"

    def path_for(self, key: str) -> Path:
        segments = [_UNSAFE_SEGMENT_CHARS.sub("_", s) or "_" for s in key.split("/")]
        segments[-1] = segments[-1] + ".json"
        return self.root.joinpath(*segments)

    def _raw_path(self, key: str) -> Path:
        return self.path_for(key).with_suffix(".bin")

    # ------------------------------------------------------------------
    # Reads

    def _read(self, key: str) -> CacheEntry | None:
        path = self.path_for(key)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            raise CacheIOError(f"Could not read cache entry {key!r}: {e}", key=key) from e
        try:
            return CacheEntry(
                value=raw["value"],
                written_at=float(raw["written_at"]),
                ttl=int(raw["ttl"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CacheIOError(f"Malformed cache entry {key!r}: {e}", key=key) from e

    def peek(self, key: str) -> CacheEntry | None:
        """Return the entry even if expired. No side effects."""
        try:
            return self._read(key)
        except CacheIOError as e:
            log.warning("%s; treating as a miss", e)
            return None

    def get_or_expire(self, key: str) -> Any | None:
        """Return the value if present and fresh; evict it if it has expired."""
        entry = self.peek(key)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            log.debug("Cache entry %s expired, evicting", key)
            self.remove(key)
            return None
        return entry.value

    def exists_valid(self, key: str) -> bool:
        entry = self.peek(key)
        return entry is not None and not entry.is_expired(self.clock())

    def get_bytes_or_expire(self, key: str) -> bytes | None:
        meta = self.get_or_expire(key)
        if not isinstance(meta, dict) or "size" not in meta:
            return None
        raw_path = self._raw_path(key)
        try:
            data = raw_path.read_bytes()
        except OSError as e:
            log.warning("Could not read raw cache entry %r: %s; treating as a miss", key, e)
            return None
        if len(data) != meta["size"]:
            log.warning(
                "Raw cache entry %r is %d bytes, expected %d; treating as a miss",
                key, len(data), meta["size"],
            )
            return None
        return data

    # ------------------------------------------------------------------
    # Writes

    def put(self, key: str, value: Any, ttl: int) -> None:
        now = self.clock()
        payload = {
            "written_at": now,
            "cached_at": datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
            "ttl": ttl,
            "value": value,
        }
        try:
            text = json.dumps(payload, ensure_ascii=False, indent=2)
            _write_atomic(self.path_for(key), text.encode("utf-8"))
        except (OSError, TypeError, ValueError) as e:
            log.warning("%s; entry not cached", CacheIOError(f"Could not write cache entry {key!r}: {e}", key=key))

    def put_bytes(self, key: str, data: bytes, ttl: int) -> None:
        raw_path = self._raw_path(key)
        try:
            _write_atomic(raw_path, data)
        except OSError as e:
            log.warning("Could not write raw cache entry %r: %s; entry not cached", key, e)
            return
        self.put(key, {"raw": raw_path.name, "size": len(data)}, ttl)

    def remove(self, key: str) -> None:
        for path in (self.path_for(key), self._raw_path(key)):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                log.warning("Could not delete cache file %s: %s", path, e)


class NoOpCacheStore:
    """Store used when caching is disabled: every read misses, writes are dropped."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    def __repr__(self) -> str:
        return "NoOpCacheStore()"

    def peek(self, key: str) -> CacheEntry | None:
        return None

    def get_or_expire(self, key: str) -> Any | None:
        return None

    def exists_valid(self, key: str) -> bool:
        return False

    def get_bytes_or_expire(self, key: str) -> bytes | None:
        return None

    def put(self, key: str, value: Any, ttl: int) -> None:
        pass

    def put_bytes(self, key: str, data: bytes, ttl: int) -> None:
        pass

    def remove(self, key: str) -> None:
        pass


def _write_atomic(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
    try:
        tmp.write_bytes(data)
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
