"""Staging review console configuration management.

Loads configuration from environment variables with sensible defaults.
Defaults point at a local record store and scraper service.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class StoreConfig:
    """Record store API connection."""

    base_url: str = "http://localhost:8080/api/admin"
    timeout_seconds: float = 30.0


@dataclass
class ScraperConfig:
    """Scraper service API connection."""

    base_url: str = "http://localhost:8081/api"
    timeout_seconds: float = 30.0


@dataclass
class ReviewConfig:
    """Reviewer identity and the notes attached to each action."""

    reviewer: str = "admin"
    approve_notes: str = "Approved via UI"
    reject_notes: str = "Rejected via UI"
    bulk_approve_notes: str = "Bulk approved via UI"
    confirm_deletes: bool = True


@dataclass
class AppConfig:
    """Root application configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    scraper: ScraperConfig = field(default_factory=ScraperConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    log_level: str = "INFO"
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Optional (with defaults):
        - STORE_API_URL, STORE_TIMEOUT_SECONDS
        - SCRAPER_API_URL, SCRAPER_TIMEOUT_SECONDS
        - REVIEWER_NAME, CONFIRM_DELETES
        - LOG_LEVEL, JSON_LOGS

        Raises:
            ValueError: If a URL or timeout is malformed
        """
        store = StoreConfig(
            base_url=_parse_url(
                "STORE_API_URL",
                os.getenv("STORE_API_URL", "http://localhost:8080/api/admin"),
            ),
            timeout_seconds=_parse_timeout(
                "STORE_TIMEOUT_SECONDS", os.getenv("STORE_TIMEOUT_SECONDS", "30")
            ),
        )
        scraper = ScraperConfig(
            base_url=_parse_url(
                "SCRAPER_API_URL",
                os.getenv("SCRAPER_API_URL", "http://localhost:8081/api"),
            ),
            timeout_seconds=_parse_timeout(
                "SCRAPER_TIMEOUT_SECONDS", os.getenv("SCRAPER_TIMEOUT_SECONDS", "30")
            ),
        )

        return cls(
            store=store,
            scraper=scraper,
            review=ReviewConfig(
                reviewer=os.getenv("REVIEWER_NAME", "admin"),
                confirm_deletes=os.getenv("CONFIRM_DELETES", "true").lower() == "true",
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            json_logs=os.getenv("JSON_LOGS", "false").lower() == "true",
        )


def _parse_url(name: str, value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{name} must be an http(s) URL, got {value!r}")
    return value.rstrip("/")


def _parse_timeout(name: str, value: str) -> float:
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc
    if timeout <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return timeout


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next call re-reads the environment."""
    global _config
    _config = None
