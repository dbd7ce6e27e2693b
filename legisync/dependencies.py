"""
Wiring: build a CachedLegiscanClient from Settings.
The CLI and scripts/warmup.py get their client here.
"""
from pathlib import Path

import httpx

from legisync.api.cached import CachedLegiscanClient
from legisync.api.client import LegiscanClient
from legisync.cache.store import CacheStore, FileCacheStore, NoOpCacheStore
from legisync.config import Settings, settings as default_settings
from legisync.errors import ConfigurationError


def _prepare_dir(path: str, what: str) -> Path:
    directory = Path(path).expanduser()
    if directory.exists() and not directory.is_dir():
        raise ConfigurationError(f"{what} {directory} exists and is not a directory")
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Could not create {what} {directory}: {e}") from e
    return directory


def build_store(cfg: Settings) -> CacheStore:
    if not cfg.cache_enabled:
        return NoOpCacheStore()
    return FileCacheStore(_prepare_dir(cfg.cache_dir, "cache directory"))


def build_client(
    settings: Settings | None = None,
    http_client: httpx.Client | None = None,
    **overrides,
) -> CachedLegiscanClient:
    """
    Build the caching client from settings. ``overrides`` replace individual
    settings fields, e.g. ``build_client(api_key="...", cache_ttl=600)``.
    """
    cfg = settings or default_settings
    if overrides:
        cfg = cfg.model_copy(update=overrides)

    if not cfg.api_key:
        raise ConfigurationError("A LegiScan API key is required (set LEGISCAN_API_KEY)")
    if cfg.cache_ttl < 0:
        raise ConfigurationError(f"cache_ttl must be >= 0 seconds, got {cfg.cache_ttl}")

    store = build_store(cfg)
    extract_root = _prepare_dir(cfg.dataset_dir, "dataset directory") if cfg.dataset_dir else None

    client = LegiscanClient(
        cfg.api_key,
        base_url=cfg.base_url,
        timeout=cfg.request_timeout,
        http_client=http_client,
        contact_email=cfg.contact_email,
        min_delay_seconds=cfg.min_delay_seconds,
        rate_limit_per_minute=cfg.rate_limit_per_minute,
    )
    return CachedLegiscanClient(client, store, ttl=cfg.cache_ttl, extract_root=extract_root)
