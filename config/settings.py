from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from models.credentials import Credentials
from utils.errors import ConfigError


DEFAULT_DIRECTORY_URL = (
    "https://searchfunder.com/directory?roles_arr=searcher"
    "&city=New%20York%20City,%20NY,%20USA&lat=40.7127753&lng=-74.0059728"
    "&regions_arr=United%20States"
)


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    searchfunder_email: str | None
    searchfunder_password: str | None

    directory_url: str
    login_url: str

    # Persistence
    checkpoint_path: str
    output_dir: str
    sink: str  # csv | sqlite
    db_path: str

    # Page driver
    page_driver: str
    headless: bool
    user_agent: str
    container_selector: str
    item_selector: str
    container_timeout_ms: int

    # Loop pacing
    render_wait_seconds: float
    jitter_base_seconds: float
    jitter_spread_seconds: float

    # Convergence / resume
    max_stall_count: int
    resume_max_scrolls: int
    resume_items_per_scroll: int
    fingerprint_history_limit: int
    max_sink_failures: int

    log_level: str
    log_file: str | None
    run_env: str

    # Batch trace
    batch_trace: bool = False
    batch_log_path: str = "logs/batches.jsonl"

    def credentials(self) -> Credentials:
        if not self.searchfunder_email or not self.searchfunder_password:
            raise ConfigError(
                "SEARCHFUNDER_EMAIL and SEARCHFUNDER_PASSWORD must be set (environment or .env file)"
            )
        return Credentials(email=self.searchfunder_email, password=self.searchfunder_password)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    return Settings(
        searchfunder_email=os.getenv("SEARCHFUNDER_EMAIL"),
        searchfunder_password=os.getenv("SEARCHFUNDER_PASSWORD"),
        directory_url=os.getenv("DIRECTORY_URL", DEFAULT_DIRECTORY_URL),
        login_url=os.getenv("LOGIN_URL", "https://searchfunder.com/login"),
        checkpoint_path=os.getenv("CHECKPOINT_PATH", "scraper_checkpoint.json"),
        output_dir=os.getenv("OUTPUT_DIR", "."),
        sink=os.getenv("SINK", "csv").lower(),
        db_path=os.getenv("DB_PATH", "harvest.db"),
        page_driver=os.getenv("PAGE_DRIVER", "searchfunder"),
        headless=_as_bool(os.getenv("HEADLESS"), default=False),
        user_agent=os.getenv(
            "USER_AGENT",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
        ),
        container_selector=os.getenv("CONTAINER_SELECTOR", "#directory-results"),
        item_selector=os.getenv("ITEM_SELECTOR", "#directory-results > div > div"),
        container_timeout_ms=int(os.getenv("CONTAINER_TIMEOUT_MS", "30000")),
        render_wait_seconds=float(os.getenv("RENDER_WAIT_SECONDS", "2.0")),
        jitter_base_seconds=float(os.getenv("JITTER_BASE_SECONDS", "1.0")),
        jitter_spread_seconds=float(os.getenv("JITTER_SPREAD_SECONDS", "0.5")),
        max_stall_count=int(os.getenv("MAX_STALL_COUNT", "5")),
        resume_max_scrolls=int(os.getenv("RESUME_MAX_SCROLLS", "30")),
        resume_items_per_scroll=int(os.getenv("RESUME_ITEMS_PER_SCROLL", "10")),
        fingerprint_history_limit=int(os.getenv("FINGERPRINT_HISTORY_LIMIT", "1000")),
        max_sink_failures=int(os.getenv("MAX_SINK_FAILURES", "3")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE") or None,
        run_env=os.getenv("RUN_ENV", "local"),
        batch_trace=_as_bool(os.getenv("BATCH_TRACE")),
        batch_log_path=os.getenv("BATCH_LOG_PATH", "logs/batches.jsonl"),
    )
