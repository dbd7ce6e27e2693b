"""
Bulk loading of LegiScan session datasets into the cache.

A dataset archive is a ZIP holding one JSON file per person, bill and roll
call, under ``people/``, ``bill/`` and ``vote/`` directories at some depth.
Each file has the same envelope shape as the matching per-object API call
(``{"person": {...}}``, ``{"bill": {...}}``, ``{"roll_call": {...}}``), so
it is cached under the same key that getPerson / getBill / getRollCall would
use.

People and roll calls from the archive always replace what is cached. Bills
never do: archives are rebuilt weekly, and LegiScan publishes no last-modified
date for a bill, only a change hash. A bill already in the cache may have been
fetched after the archive was built, so the cached copy wins. The masterlist
sync (legisync.cache.sync) is what brings bills current afterwards.
"""
import json
import logging
import os
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from legisync.api.envelope import normalize
from legisync.api.models import DatasetDescriptor
from legisync.errors import ArchiveError

log = logging.getLogger("legisync.dataset")


@dataclass
class DatasetContents:
    people: dict[int, dict] = field(default_factory=dict)
    bills: dict[int, dict] = field(default_factory=dict)
    votes: dict[int, dict] = field(default_factory=dict)


class DatasetLoader:
    """
    Loads one dataset archive into the cache of a CachedLegiscanClient.

    extract_root: where archives are expanded, as
    ``<extract_root>/<state_id>/<year_end>/<session_id>``. When None the
    archive is expanded into a temporary directory that is removed afterwards.
    """

    def __init__(self, client, extract_root: str | Path | None = None):
        self.client = client
        self.store = client.store
        self.extract_root = Path(extract_root) if extract_root else None

    def load(self, dataset: DatasetDescriptor) -> DatasetContents:
        log.info("Loading dataset %s (session %d) from LegiScan", dataset.session_name, dataset.session_id)
        data = self.client.fetch_dataset_archive(dataset.session_id, dataset.access_key)

        fd, tmp_name = tempfile.mkstemp(prefix="dataset-", suffix=".zip")
        tmp_zip = Path(tmp_name)
        try:
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
            except OSError as e:
                raise ArchiveError(f"Could not write dataset archive: {e}", path=str(tmp_zip)) from e

            if self.extract_root is not None:
                target = self.extract_root / str(dataset.state_id) / str(dataset.year_end) / str(dataset.session_id)
                contents = self._load_archive(tmp_zip, target)
            else:
                with tempfile.TemporaryDirectory(prefix="dataset-") as tmp_dir:
                    contents = self._load_archive(tmp_zip, Path(tmp_dir))
        finally:
            tmp_zip.unlink(missing_ok=True)

        log.info(
            "Bulk load complete for dataset %s into %r: %d people, %d bills, %d votes",
            dataset.session_name, self.store,
            len(contents.people), len(contents.bills), len(contents.votes),
        )
        return contents

    def _load_archive(self, zip_path: Path, target: Path) -> DatasetContents:
        try:
            with zipfile.ZipFile(zip_path) as zf:
                zf.extractall(target)
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveError(f"Could not expand dataset archive: {e}", path=str(zip_path)) from e

        contents = DatasetContents()

        for path in _json_files(find_subtree(target, "people")):
            people_id, envelope = _read_record(path, "person", "people_id")
            self.store.put(self.client.cache_key("getPerson", {"id": people_id}), envelope, self.client.ttl_for("getPerson"))
            contents.people[people_id] = envelope["person"]

        for path in _json_files(find_subtree(target, "bill")):
            bill_id, envelope = _read_record(path, "bill", "bill_id")
            key = self.client.cache_key("getBill", {"id": bill_id})
            cached = self.store.peek(key)
            cached_bill = cached.value.get("bill") if cached is not None and isinstance(cached.value, dict) else None
            if isinstance(cached_bill, dict):
                contents.bills[bill_id] = cached_bill
            else:
                self.store.put(key, envelope, self.client.ttl_for("getBill"))
                contents.bills[bill_id] = envelope["bill"]

        for path in _json_files(find_subtree(target, "vote")):
            roll_call_id, envelope = _read_record(path, "roll_call", "roll_call_id")
            self.store.put(self.client.cache_key("getRollCall", {"id": roll_call_id}), envelope, self.client.ttl_for("getRollCall"))
            contents.votes[roll_call_id] = envelope["roll_call"]

        return contents


def find_subtree(root: Path, name: str) -> Path | None:
    """First directory called ``name`` below ``root``, at any depth."""
    for dirpath, dirnames, _ in os.walk(root):
        dirnames.sort()
        if name in dirnames:
            return Path(dirpath) / name
    return None


def _json_files(directory: Path | None) -> list[Path]:
    if directory is None:
        return []
    return sorted(p for p in directory.rglob("*") if p.is_file() and p.suffix.lower() == ".json")


def _read_record(path: Path, field_name: str, id_field: str) -> tuple[int, dict]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ArchiveError(f"Encountered problem while processing file [{path}]: {e}", path=str(path)) from e
    if not isinstance(raw, dict):
        raise ArchiveError(f"Encountered problem while processing file [{path}]: not a JSON object", path=str(path))

    envelope = normalize(raw)
    record = envelope.get(field_name)
    if not isinstance(record, dict):
        raise ArchiveError(f"Encountered problem while processing file [{path}]: no '{field_name}' record", path=str(path))
    try:
        return int(record[id_field]), envelope
    except (KeyError, TypeError, ValueError) as e:
        raise ArchiveError(f"Encountered problem while processing file [{path}]: bad {id_field}", path=str(path)) from e
