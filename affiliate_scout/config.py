from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()


def env_int(name: str, default: int, *, min_value: int | None = None, max_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if min_value is not None:
        value = max(min_value, value)
    if max_value is not None:
        value = min(max_value, value)
    return value


def env_str(name: str, default: str = "") -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip() or default


def env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


LOGIN_URL = env_str("LOGIN_URL", "https://accesstrade.co.id/publisher/login")
LISTING_URL = env_str("TTS_URL", "https://db.accesstrade.co.id/tiktok-shop")
LOGIN_PATH_MARKER = "/publisher/login"
STORAGE_FILE = Path(env_str("STORAGE_FILE", "storage/accesstrade.json"))
OUTPUT_FILE = Path(env_str("OUTPUT_FILE", "data/outputs/latest.json"))
HEADLESS = os.getenv("PLAYWRIGHT_HEADLESS", "1") != "0"

NAV_TIMEOUT_MS = env_int("NAV_TIMEOUT_MS", 45000, min_value=10000, max_value=120000)
SELECTOR_TIMEOUT_MS = env_int("SELECTOR_TIMEOUT_MS", 20000, min_value=2000, max_value=60000)
GRID_TIMEOUT_MS = env_int("GRID_TIMEOUT_MS", 30000, min_value=2000, max_value=60000)
SUBMIT_TIMEOUT_MS = env_int("SUBMIT_TIMEOUT_MS", 6000, min_value=500, max_value=60000)
POLL_INTERVAL_MS = env_int("POLL_INTERVAL_MS", 250, min_value=50, max_value=2000)
STABILIZE_QUIET_MS = env_int("STABILIZE_QUIET_MS", 800, min_value=100, max_value=10000)
STABILIZE_MAX_MS = env_int("STABILIZE_MAX_MS", 8000, min_value=500, max_value=60000)
PANEL_OPEN_TIMEOUT_MS = env_int("PANEL_OPEN_TIMEOUT_MS", 10000, min_value=1000, max_value=60000)
PANEL_CLOSE_TIMEOUT_MS = env_int("PANEL_CLOSE_TIMEOUT_MS", 5000, min_value=500, max_value=30000)
LINK_POLL_ATTEMPTS = env_int("LINK_POLL_ATTEMPTS", 8, min_value=1, max_value=50)
LINK_POLL_MS = env_int("LINK_POLL_MS", 400, min_value=50, max_value=5000)
LINK_POLL_MAX_MS = env_int("LINK_POLL_MAX_MS", 2000, min_value=100, max_value=10000)
EXTRACTION_WORKERS = env_int("EXTRACTION_WORKERS", 3, min_value=1, max_value=5)
SCAN_LIMIT = env_int("SCAN_LIMIT", 20, min_value=1, max_value=200)
RATE_LIMIT_PER_MINUTE = env_int("RATE_LIMIT_PER_MINUTE", 20, min_value=0, max_value=120)
BLOCKED_RESOURCE_TYPES = env_list("BLOCKED_RESOURCE_TYPES", ("media", "font"))
RATING_FILTER = env_str("RATING_FILTER", "2")


@dataclass(frozen=True)
class MatchThresholds:
    model_score_min: int = 3
    strict_pair_match: int = 2
    strict_pair_ratio: float = 0.4
    strict_single_match: int = 1
    strict_single_ratio: float = 0.6
    soft_match: int = 1
    soft_ratio: float = 0.3
    price_near: float = 0.05
    price_close: float = 0.10
    fuzzy_floor: float = 2.0
    fuzzy_min_ratio: float = 0.75


@dataclass(frozen=True)
class Settings:
    email: str = ""
    password: str = ""
    login_url: str = LOGIN_URL
    listing_url: str = LISTING_URL
    login_path_marker: str = LOGIN_PATH_MARKER
    storage_file: Path = STORAGE_FILE
    output_file: Optional[Path] = OUTPUT_FILE
    headless: bool = HEADLESS
    nav_timeout_ms: int = NAV_TIMEOUT_MS
    selector_timeout_ms: int = SELECTOR_TIMEOUT_MS
    grid_timeout_ms: int = GRID_TIMEOUT_MS
    submit_timeout_ms: int = SUBMIT_TIMEOUT_MS
    poll_interval_ms: int = POLL_INTERVAL_MS
    stabilize_quiet_ms: int = STABILIZE_QUIET_MS
    stabilize_max_ms: int = STABILIZE_MAX_MS
    panel_open_timeout_ms: int = PANEL_OPEN_TIMEOUT_MS
    panel_close_timeout_ms: int = PANEL_CLOSE_TIMEOUT_MS
    link_poll_attempts: int = LINK_POLL_ATTEMPTS
    link_poll_ms: int = LINK_POLL_MS
    link_poll_max_ms: int = LINK_POLL_MAX_MS
    extraction_workers: int = EXTRACTION_WORKERS
    scan_limit: int = SCAN_LIMIT
    merge_cap: int = 20
    merge_min: int = 4
    top_n: int = 5
    min_rows: int = 1
    rating_filter: str = RATING_FILTER
    relaxed_rating_filter: str = ""
    blocked_resource_types: Tuple[str, ...] = BLOCKED_RESOURCE_TYPES
    rate_limit_per_minute: int = RATE_LIMIT_PER_MINUTE
    thresholds: MatchThresholds = field(default_factory=MatchThresholds)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            email=env_str("ACCESSTRADE_EMAIL"),
            password=env_str("ACCESSTRADE_PASSWORD"),
        )

    def require_credentials(self) -> None:
        if not self.email or not self.password:
            raise ConfigurationError("ACCESSTRADE_EMAIL / ACCESSTRADE_PASSWORD are not set.")
