from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Subtitle extraction settings.

    Every field can be overridden via environment variables (prefixed with
    ``RO_SUBS_``, e.g. ``RO_SUBS_FETCH_TIMEOUT=15``) or a ``.env`` file.

    Cache:
        cache_ttl: seconds a resolved subtitle stays cached; unset means
            process lifetime.
        cache_max_size: upper bound on cached subtitles.
        single_flight: share one upstream fetch between concurrent requests
            for the same key.
    """

    model_config = SettingsConfigDict(
        env_prefix="RO_SUBS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = "https://titrari.ro/get.php"
    fetch_timeout: float = 20.0
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )
    referer: str = "https://titrari.ro/"
    accept_language: str = "ro-RO,ro;q=0.9,en;q=0.8"

    cache_ttl: Optional[float] = 24 * 60 * 60
    cache_max_size: Optional[int] = 1024
    single_flight: bool = True

    log_level: str = "INFO"
    json_logs: bool = False


settings = Settings()
