"""
Cache key derivation and cache policy for LegiScan operations.

A key looks like ``getdatasetlist/ca/2024`` or ``getbill/1234567``: the
operation, then ``state`` and ``year`` when present, then every other
parameter value ordered by parameter name. Each component is lower-cased and
percent-escaped, so a key is also a safe relative path.
"""
import enum
from urllib.parse import quote

# Never part of a key: the API secret.
SECRET_PARAM = "key"

PREFERRED_ORDER = ("state", "year")

# Operations whose payload never changes once issued for a given id.
STATIC_OPERATIONS = frozenset({"getbilltext", "getamendment", "getsupplement", "getrollcall"})


class CachePolicy(enum.Enum):
    STATIC = "static"
    REFRESHABLE = "refreshable"


def _component(value) -> str:
    text = quote(str(value).strip().lower(), safe="")
    # quote() leaves "." alone; escape it so no component reads as "." or ".."
    return text.replace(".", "%2e").lower()


def derive_key(operation: str, params: dict | None = None) -> str:
    """Return the canonical cache key for an operation and its parameters."""
    remaining = {
        name: value
        for name, value in (params or {}).items()
        if name != SECRET_PARAM and name != "op" and value is not None
    }
    parts = [_component(operation)]
    for name in PREFERRED_ORDER:
        if name in remaining:
            parts.append(_component(remaining.pop(name)))
    for name in sorted(remaining):
        parts.append(_component(remaining[name]))
    return "/".join(parts)


def classify(operation: str) -> CachePolicy:
    if operation.lower() in STATIC_OPERATIONS:
        return CachePolicy.STATIC
    return CachePolicy.REFRESHABLE


def is_static(operation: str) -> bool:
    return classify(operation) is CachePolicy.STATIC


def ttl_for(operation: str, refreshable_ttl: int) -> int:
    """TTL to store an operation's result with: 0 (never expires) for static operations."""
    return 0 if is_static(operation) else refreshable_ttl
