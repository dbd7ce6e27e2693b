"""
Command-line front end.

    legisync bill 1234567
    legisync masterlist --session 2041
    legisync update CA 2024 --workers 4

Every command prints JSON to stdout. Settings come from LEGISCAN_* env vars
or .env (see legisync.config); --no-cache and --ttl override them per run.
"""
import argparse
import json
import logging
import sys

from legisync.api.cached import CachedLegiscanClient
from legisync.cache.dataset import DatasetContents
from legisync.dependencies import build_client
from legisync.errors import LegiscanError


def _dump(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _contents_summary(contents: DatasetContents) -> dict:
    return {
        "people": len(contents.people),
        "bills": len(contents.bills),
        "votes": len(contents.votes),
    }


def _single(fetch_name: str):
    def run(client: CachedLegiscanClient, args) -> None:
        _dump(getattr(client, fetch_name)(args.id))
    return run


def _masterlist(client: CachedLegiscanClient, args) -> None:
    summaries = client.fetch_masterlist(session_id=args.session, state=args.state, raw=not args.full)
    _dump([s.model_dump() for s in summaries])


def _sessions(client: CachedLegiscanClient, args) -> None:
    _dump(client.fetch_session_list(args.state))


def _datasets(client: CachedLegiscanClient, args) -> None:
    _dump([d.model_dump() for d in client.fetch_dataset_list(args.state, args.year)])


def _session_people(client: CachedLegiscanClient, args) -> None:
    _dump(client.fetch_session_people(args.session))


def _sponsored(client: CachedLegiscanClient, args) -> None:
    _dump(client.fetch_sponsored_list(args.id))


def _monitor(client: CachedLegiscanClient, args) -> None:
    _dump(client.fetch_monitor_list(args.record, raw=args.raw))


def _search(client: CachedLegiscanClient, args) -> None:
    _dump(client.search(args.query, state=args.state, session_id=args.session, year=args.year, page=args.page))


def _archive(client: CachedLegiscanClient, args) -> None:
    dataset = client.find_dataset(args.state, args.year, special=args.special)
    data = client.fetch_dataset_archive(dataset.session_id, dataset.access_key)
    with open(args.output, "wb") as f:
        f.write(data)
    _dump({"session_id": dataset.session_id, "path": args.output, "bytes": len(data)})


def _load(client: CachedLegiscanClient, args) -> None:
    dataset = client.find_dataset(args.state, args.year, special=args.special)
    _dump({"session_id": dataset.session_id, **_contents_summary(client.load_dataset(dataset))})


def _sync(client: CachedLegiscanClient, args) -> None:
    bills = client.sync_bills(args.session, max_workers=args.workers)
    _dump({"session_id": args.session, "fetched": [b.get("bill_id") for b in bills]})


def _update(client: CachedLegiscanClient, args) -> None:
    dataset = client.find_dataset(args.state, args.year, special=args.special)
    contents = client.update_dataset(dataset, max_workers=args.workers)
    _dump({"session_id": dataset.session_id, **_contents_summary(contents)})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="legisync", description="Cached LegiScan API client")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the local cache")
    parser.add_argument("--ttl", type=int, default=None, help="TTL in seconds for refreshable operations")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, fetch_name, help_text in (
        ("bill", "fetch_bill", "getBill"),
        ("text", "fetch_bill_text", "getBillText"),
        ("person", "fetch_person", "getPerson"),
        ("rollcall", "fetch_roll_call", "getRollCall"),
        ("amendment", "fetch_amendment", "getAmendment"),
        ("supplement", "fetch_supplement", "getSupplement"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("id", type=int)
        p.set_defaults(func=_single(fetch_name))

    p = sub.add_parser("masterlist", help="Bill summaries with change hashes")
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument("--session", type=int)
    target.add_argument("--state")
    p.add_argument("--full", action="store_true", help="Use getMasterList instead of getMasterListRaw")
    p.set_defaults(func=_masterlist)

    p = sub.add_parser("sessions", help="getSessionList")
    p.add_argument("state")
    p.set_defaults(func=_sessions)

    p = sub.add_parser("datasets", help="getDatasetList")
    p.add_argument("--state")
    p.add_argument("--year", type=int)
    p.set_defaults(func=_datasets)

    p = sub.add_parser("session-people", help="getSessionPeople")
    p.add_argument("session", type=int)
    p.set_defaults(func=_session_people)

    p = sub.add_parser("sponsored", help="getSponsoredList")
    p.add_argument("id", type=int, help="people_id")
    p.set_defaults(func=_sponsored)

    p = sub.add_parser("monitor", help="getMonitorList")
    p.add_argument("--record", default="current")
    p.add_argument("--raw", action="store_true")
    p.set_defaults(func=_monitor)

    p = sub.add_parser("search", help="getSearch (never cached)")
    p.add_argument("query")
    p.add_argument("--state")
    p.add_argument("--session", type=int)
    p.add_argument("--year", type=int)
    p.add_argument("--page", type=int)
    p.set_defaults(func=_search)

    for name, func, help_text in (
        ("archive", _archive, "Download a session dataset ZIP"),
        ("load", _load, "Bulk load a session dataset into the cache"),
        ("update", _update, "Bulk load a dataset, then sync its bills"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("state")
        p.add_argument("year", type=int)
        p.add_argument("--special", action="store_true", help="Special session dataset")
        if name == "archive":
            p.add_argument("-o", "--output", required=True)
        if name == "update":
            p.add_argument("--workers", type=int, default=1)
        p.set_defaults(func=func)

    p = sub.add_parser("sync", help="Re-fetch bills whose change hash moved")
    p.add_argument("session", type=int)
    p.add_argument("--workers", type=int, default=1)
    p.set_defaults(func=_sync)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    overrides = {}
    if args.no_cache:
        overrides["cache_enabled"] = False
    if args.ttl is not None:
        overrides["cache_ttl"] = args.ttl

    try:
        with build_client(**overrides) as client:
            args.func(client, args)
    except (LegiscanError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
