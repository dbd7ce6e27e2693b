"""
Typed views over the few LegiScan payloads the cache layer reasons about.

Full bill, person and roll-call records stay plain dicts; only their id and
``change_hash`` matter here.
"""
from pydantic import BaseModel, ConfigDict


class Alert(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str | None = None
    message: str = ""


class BillSummary(BaseModel):
    """One masterlist row: enough to tell whether the cached bill is current."""

    model_config = ConfigDict(extra="allow")

    bill_id: int
    change_hash: str = ""
    number: str | None = None
    url: str | None = None
    status: int | str | None = None
    status_date: str | None = None
    last_action: str | None = None
    last_action_date: str | None = None
    title: str | None = None
    description: str | None = None


class DatasetDescriptor(BaseModel):
    """One getDatasetList row. ``access_key`` is required to download the archive."""

    model_config = ConfigDict(extra="allow")

    state_id: int
    session_id: int
    special: int = 0
    year_start: int = 0
    year_end: int = 0
    session_name: str = ""
    session_title: str = ""
    dataset_hash: str = ""
    dataset_date: str | None = None
    dataset_size: int = 0
    access_key: str
