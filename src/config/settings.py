# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings. Heuristic
lists (handle stoplist, bullet keywords, avatar hints) live here as
comma-separated strings so they can be retuned without code changes.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from flowcapture.extraction.config import ExtractorConfig


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


_DEFAULT_LAUNCH_ARGS = (
    "--disable-blink-features=AutomationControlled,"
    "--disable-dev-shm-usage,"
    "--no-sandbox,"
    "--disable-setuid-sandbox,"
    "--disable-gpu,"
    "--disable-extensions,"
    "--disable-background-networking,"
    "--disable-background-timer-throttling,"
    "--disable-renderer-backgrounding,"
    "--disable-backgrounding-occluded-windows"
)

_DEFAULT_BULLET_KEYWORDS = (
    "mentions,detected,visited,people,screenshot,region,profile,times,"
    "yesterday,shared,stories,messages,followers"
)


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Target flow ===
    target_url: str = "https://oseguidorsecreto.com/pv-en"

    # === Browser ===
    browser_headless: bool = True
    browser_launch_args: str = _DEFAULT_LAUNCH_ARGS
    navigation_timeout_ms: int = 20_000

    # === Stage timing ===
    stage_timeout_overrides: dict[str, int] = {}
    locator_poll_interval_ms: int = 100
    results_poll_interval_ms: int = 100
    results_max_wait_ms: int = 60_000
    results_card_selector: str = "div[role='group']"
    capture_full_report: bool = True

    # === Snapshot store ===
    store_backend: Literal["memory", "redis"] = "memory"
    store_redis_url: str = ""
    store_key_prefix: str = "flowcapture:"
    snapshot_ttl_seconds: int = 600
    recent_max_age_minutes: int = 60
    snapshot_reference_template: str = "/api/snapshots/{snapshot_id}/{stage}"

    # === Extraction heuristics ===
    avatar_class_hints: str = "rounded-full"
    avatar_min_length: int = 200
    avatar_scan_min_length: int = 500
    handle_stoplist: str = "Hello,Is,Continue,No"
    handle_stoplist_ignore_case: bool = False
    bullet_keywords: str = _DEFAULT_BULLET_KEYWORDS
    bullet_min_length: int = 20
    bullet_max_length: int = 200

    # === Debug ===
    debug_capture_dir: Path | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("snapshot_ttl_seconds", "recent_max_age_minutes")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.store_backend == "redis" and not self.store_redis_url:
            errors.append("STORE_BACKEND=redis requires STORE_REDIS_URL")

        if self.results_poll_interval_ms <= 0:
            errors.append("RESULTS_POLL_INTERVAL_MS must be > 0")
        elif self.results_poll_interval_ms >= self.results_max_wait_ms:
            errors.append("RESULTS_POLL_INTERVAL_MS must be < RESULTS_MAX_WAIT_MS")

        if self.locator_poll_interval_ms <= 0:
            errors.append("LOCATOR_POLL_INTERVAL_MS must be > 0")

        if self.bullet_min_length > self.bullet_max_length:
            errors.append("BULLET_MIN_LENGTH must be <= BULLET_MAX_LENGTH")

        if self.avatar_min_length > self.avatar_scan_min_length:
            errors.append("AVATAR_MIN_LENGTH must be <= AVATAR_SCAN_MIN_LENGTH")

        if "{snapshot_id}" not in self.snapshot_reference_template:
            errors.append("SNAPSHOT_REFERENCE_TEMPLATE must contain {snapshot_id}")

        bad_timeouts = [k for k, v in self.stage_timeout_overrides.items() if v <= 0]
        if bad_timeouts:
            errors.append(
                f"STAGE_TIMEOUT_OVERRIDES must be > 0 (got {', '.join(bad_timeouts)})"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def browser_launch_args_list(self) -> list[str]:
        """Parse comma-separated Chromium launch flags."""
        return [a.strip() for a in self.browser_launch_args.split(",") if a.strip()]

    @property
    def avatar_class_hints_list(self) -> list[str]:
        return [h.strip() for h in self.avatar_class_hints.split(",") if h.strip()]

    @property
    def handle_stoplist_list(self) -> list[str]:
        return [w.strip() for w in self.handle_stoplist.split(",") if w.strip()]

    @property
    def bullet_keywords_list(self) -> list[str]:
        return [k.strip() for k in self.bullet_keywords.split(",") if k.strip()]

    def extractor_config(self) -> ExtractorConfig:
        """Build the extractor configuration from the heuristic settings."""
        from flowcapture.extraction.config import ExtractorConfig

        return ExtractorConfig(
            avatar_class_hints=self.avatar_class_hints_list,
            avatar_min_length=self.avatar_min_length,
            avatar_scan_min_length=self.avatar_scan_min_length,
            handle_stoplist=self.handle_stoplist_list,
            handle_stoplist_ignore_case=self.handle_stoplist_ignore_case,
            bullet_keywords=self.bullet_keywords_list,
            bullet_min_length=self.bullet_min_length,
            bullet_max_length=self.bullet_max_length,
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or one-off runs).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
