"""
Decoding of LegiScan response envelopes.

The API is loose about shapes: ``committee`` is an object or a list, the
masterlist and monitor list are objects keyed by "0", "1", ... next to a
``session`` entry, and search results mix a ``summary`` with numbered rows.
``normalize`` rewrites all of these into lists once, at the boundary, so the
rest of the package (and the cache) only ever sees the normalized form.
"""
from legisync.api.models import Alert
from legisync.errors import ProtocolError


def check_alert(envelope: dict) -> None:
    """Raise ProtocolError if the envelope reports an application-level failure."""
    alert = envelope.get("alert")
    status = str(envelope.get("status") or "").upper()
    if not alert and status in ("OK", ""):
        return
    if isinstance(alert, dict):
        parsed = Alert.model_validate(alert)
    else:
        parsed = Alert(message=str(alert or ""))
    message = parsed.message or f"LegiScan returned status {status or 'ERROR'}"
    raise ProtocolError(f"LegiScan API error: {message}", alert_type=parsed.type)


def as_list(value) -> list:
    """Object-or-array field → list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _numbered_rows(value, skip: tuple[str, ...] = ()) -> list:
    """A map keyed by numeric strings → its dict values in key order."""
    if isinstance(value, list):
        return value
    if not isinstance(value, dict):
        return []

    def order(k: str):
        return (0, int(k)) if k.isdigit() else (1, k)

    return [value[k] for k in sorted(value, key=order) if k not in skip and isinstance(value[k], dict)]


def normalize(envelope: dict) -> dict:
    """Return a copy of ``envelope`` with every variant field in its list form."""
    out = dict(envelope)

    # getRollCall answers "roll_call"; some older payloads spell it "rollcall"
    if "rollcall" in out and "roll_call" not in out:
        out["roll_call"] = out.pop("rollcall")

    if isinstance(out.get("bill"), dict):
        bill = dict(out["bill"])
        if "committee" in bill:
            bill["committee"] = [c for c in as_list(bill["committee"]) if c]
        out["bill"] = bill

    for field in ("masterlist", "monitorlist"):
        raw = out.get(field)
        if isinstance(raw, dict) and isinstance(raw.get("session"), dict):
            out[f"{field}_session"] = raw["session"]
        if field in out:
            out[field] = _numbered_rows(raw, skip=("session",))

    for field in ("sessions", "datasetlist"):
        if field in out:
            out[field] = as_list(out[field])

    people = out.get("sessionpeople")
    if isinstance(people, dict):
        out["sessionpeople"] = as_list(people.get("people"))

    sponsored = out.get("sponsoredbills")
    if isinstance(sponsored, dict):
        out["sponsoredbills"] = as_list(sponsored.get("bills"))

    search = out.get("searchresult")
    if isinstance(search, dict) and "results" not in search:
        out["searchresult"] = {
            "summary": search.get("summary") or {},
            "results": _numbered_rows(search, skip=("summary",)),
        }

    return out
