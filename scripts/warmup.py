"""
Standalone cache warmup script.

Run this once (or overnight) to bulk-load the session datasets for one or
more states and bring their bills current from the masterlist, so later
lookups are served from the local cache.

Usage:
    python scripts/warmup.py CA NY --year 2024

Options:
    --year 2024          Only datasets covering this year (default: all listed)
    --special            Include special-session datasets
    --limit 3            Only warm N datasets (for testing)
    --workers 4          Fetch changed bills concurrently
    --skip-sync          Bulk load only; do not check the masterlist
"""
import argparse
import logging
import sys
import time
from pathlib import Path

# Ensure project root is on sys.path when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

from legisync.api.cached import CachedLegiscanClient
from legisync.api.models import DatasetDescriptor
from legisync.config import settings
from legisync.dependencies import build_client
from legisync.errors import LegiscanError


def warmup_dataset(
    client: CachedLegiscanClient,
    dataset: DatasetDescriptor,
    workers: int,
    skip_sync: bool,
) -> bool:
    """
    Bulk load one dataset and optionally sync its bills.
    Returns True on success, False on failure.
    """
    try:
        if skip_sync:
            contents = client.load_dataset(dataset)
        else:
            contents = client.update_dataset(dataset, max_workers=workers)
    except LegiscanError as e:
        print(f"  FAILED: {dataset.session_name}: {e}", flush=True)
        return False
    print(
        f"  {len(contents.people)} people, {len(contents.bills)} bills, {len(contents.votes)} votes",
        flush=True,
    )
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Pre-warm the LegiScan cache from session datasets")
    parser.add_argument("states", nargs="+", help="State abbreviations (e.g. CA NY US)")
    parser.add_argument("--year", type=int, default=None, help="Only datasets covering this year")
    parser.add_argument("--special", action="store_true", help="Include special-session datasets")
    parser.add_argument("--limit", type=int, default=None, help="Only warm N datasets")
    parser.add_argument("--workers", type=int, default=1, help="Concurrent bill fetches during sync")
    parser.add_argument("--skip-sync", action="store_true", help="Bulk load only")
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    print(f"legisync cache warmup: {', '.join(args.states)}" + (f" for {args.year}" if args.year else ""))
    print(f"Cache: {settings.cache_dir if settings.cache_enabled else 'disabled'}, TTL {settings.cache_ttl}s")
    print()

    try:
        client = build_client()
    except LegiscanError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    start_time = time.monotonic()
    succeeded = 0
    failed = 0
    with client:
        try:
            # Step 1: Collect datasets for every state
            datasets: list[DatasetDescriptor] = []
            for state in args.states:
                print(f"Fetching dataset list for {state}...", flush=True)
                try:
                    found = client.fetch_dataset_list(state, args.year)
                except LegiscanError as e:
                    print(f"  FAILED: {state}: {e}", flush=True)
                    continue
                if not args.special:
                    found = [d for d in found if not d.special]
                print(f"  Found {len(found)} datasets", flush=True)
                datasets.extend(found)

            if args.limit:
                datasets = datasets[:args.limit]

            # Step 2: Load (and sync) each dataset
            print(f"\nWarming {len(datasets)} datasets...\n", flush=True)
            for i, dataset in enumerate(datasets):
                elapsed = time.monotonic() - start_time
                eta_str = ""
                if i > 0 and elapsed > 0:
                    eta_m = int((len(datasets) - i) * (elapsed / i) / 60)
                    eta_str = f" (ETA ~{eta_m}m)"
                print(
                    f"[{i + 1}/{len(datasets)}] {dataset.session_name} (session {dataset.session_id}){eta_str}",
                    flush=True,
                )
                if warmup_dataset(client, dataset, args.workers, args.skip_sync):
                    succeeded += 1
                else:
                    failed += 1
        except KeyboardInterrupt:
            print("\n\nInterrupted. Datasets loaded so far stay cached.")

    elapsed_total = time.monotonic() - start_time
    print(f"\nDone in {elapsed_total / 60:.1f} minutes: {succeeded} succeeded, {failed} failed.")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
