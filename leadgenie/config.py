from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Listing marketplace (public pages) ---
    LISTING_BASE_URL: str = "https://www.redfin.com"
    LISTING_USER_AGENT: str = DEFAULT_USER_AGENT
    LISTING_HTTP_TIMEOUT_S: float = 20.0
    LISTING_HTTP_SLEEP_S: float = 0.25  # be polite
    LISTING_VERIFY_SSL: bool = True

    # Optional: if you have a custom CA bundle path (rare on Windows corp setups)
    LISTING_CA_BUNDLE: str | None = None

    # --- Bulk export tuning ---
    EXPORT_PAGE_SIZE: int = 350
    EXPORT_REDUCED_PAGE_SIZE: int = 100
    EXPORT_MIN_BYTES: int = 100

    # --- Acquisition pipeline ---
    ACQ_MAX_RETRIES: int = 3
    ACQ_RETRY_BASE_DELAY_S: float = 2.0
    ACQ_DEADLINE_S: float | None = None
    ACQ_HTML_FALLBACK_ENABLED: bool = True
    ACQ_MOCK_FALLBACK_ENABLED: bool = True
    ACQ_STRICT_CITY_MATCH: bool = True

    # Snapshot bad payloads for debugging (data/listing_snapshots/)
    ACQ_SNAPSHOTS_ENABLED: bool = False
    ACQ_SNAPSHOTS_DIR: str = "data/listing_snapshots"


settings = Settings()


@dataclass(frozen=True)
class AcquisitionConfig:
    """
    Immutable per-call view of the settings.

    Built once at the entry point and handed to every component, so a running
    acquisition never re-reads the environment.
    """

    base_url: str = "https://www.redfin.com"
    user_agent: str = DEFAULT_USER_AGENT
    http_timeout_s: float = 20.0
    http_sleep_s: float = 0.25
    verify_ssl: bool = True
    ca_bundle: str | None = None

    export_page_size: int = 350
    export_reduced_page_size: int = 100
    export_min_bytes: int = 100

    max_retries: int = 3
    retry_base_delay_s: float = 2.0
    deadline_s: float | None = None
    html_fallback_enabled: bool = True
    mock_fallback_enabled: bool = True
    strict_city_match: bool = True

    snapshots_enabled: bool = False
    snapshots_dir: str = "data/listing_snapshots"

    @classmethod
    def from_settings(cls, s: Settings | None = None) -> "AcquisitionConfig":
        s = s or settings
        return cls(
            base_url=s.LISTING_BASE_URL.rstrip("/"),
            user_agent=s.LISTING_USER_AGENT,
            http_timeout_s=float(s.LISTING_HTTP_TIMEOUT_S),
            http_sleep_s=float(s.LISTING_HTTP_SLEEP_S),
            verify_ssl=bool(s.LISTING_VERIFY_SSL),
            ca_bundle=s.LISTING_CA_BUNDLE,
            export_page_size=int(s.EXPORT_PAGE_SIZE),
            export_reduced_page_size=int(s.EXPORT_REDUCED_PAGE_SIZE),
            export_min_bytes=int(s.EXPORT_MIN_BYTES),
            max_retries=int(s.ACQ_MAX_RETRIES),
            retry_base_delay_s=float(s.ACQ_RETRY_BASE_DELAY_S),
            deadline_s=s.ACQ_DEADLINE_S,
            html_fallback_enabled=bool(s.ACQ_HTML_FALLBACK_ENABLED),
            mock_fallback_enabled=bool(s.ACQ_MOCK_FALLBACK_ENABLED),
            strict_city_match=bool(s.ACQ_STRICT_CITY_MATCH),
            snapshots_enabled=bool(s.ACQ_SNAPSHOTS_ENABLED),
            snapshots_dir=s.ACQ_SNAPSHOTS_DIR,
        )

    def with_overrides(self, **overrides: Any) -> "AcquisitionConfig":
        """Per-call overrides; `None` values are ignored."""
        clean = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **clean) if clean else self
