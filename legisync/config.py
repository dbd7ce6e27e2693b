from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_cache_dir() -> str:
    return str(Path.home() / "appdata" / "legisync" / "legiscan")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LEGISCAN_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_key: str = ""
    base_url: str = "https://api.legiscan.com/"
    contact_email: str = "legisync@example.com"

    cache_dir: str = _default_cache_dir()
    cache_enabled: bool = True
    dataset_dir: str | None = None     # unset: archives expand into a temp dir

    # TTLs in seconds
    cache_ttl: int = 14400             # 4h for refreshable operations; static ones never expire

    request_timeout: float = 30.0
    rate_limit_per_minute: int = 0     # 0 disables the sliding window
    min_delay_seconds: float = 0.0


settings = Settings()
