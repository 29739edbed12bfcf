"""Pydantic configuration models with validation."""

from __future__ import annotations

import re
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
BrowserEngine = Literal["chromium", "firefox", "webkit"]

_FIREFOX_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:132.0) "
    "Gecko/20100101 Firefox/132.0"
)


class VidfastConfig(BaseModel):
    """Embed target (YAML section: vidfast.*)."""

    base_url: str = Field(
        default="https://vidfast.pro",
        description="Base URL of the embed site.",
    )
    default_server: str = Field(
        default="Vfast",
        description="Server label used when a request does not name one.",
    )
    autoplay: bool = Field(
        default=True,
        description="Append autoPlay=true to embed URLs.",
    )

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("vidfast.base_url must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("default_server")
    @classmethod
    def _validate_server(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("vidfast.default_server must not be empty")
        return v


class BrowserConfig(BaseModel):
    """Browser session fingerprint (YAML section: browser.*)."""

    engine: BrowserEngine = Field(
        default="firefox",
        description="Playwright browser engine.",
    )
    headless: bool = Field(default=True, description="Run the browser headless.")
    stealth: bool = Field(
        default=False,
        description="Apply playwright-stealth evasions to each session context.",
    )
    user_agent: str = Field(
        default=_FIREFOX_USER_AGENT,
        description="User-Agent of every session context.",
    )
    locale: str = Field(default="en-US", description="Locale of every context.")
    viewport_width: int = Field(default=1920, description="Viewport width (px).")
    viewport_height: int = Field(default=1080, description="Viewport height (px).")

    @field_validator("viewport_width", "viewport_height")
    @classmethod
    def _validate_viewport(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("viewport dimensions must be > 0")
        return v


class ExtractionConfig(BaseModel):
    """Extraction session timing and targeting (YAML section: extraction.*).

    Every wait of a session is bounded by one of these values.
    """

    navigation_timeout_ms: int = Field(
        default=60_000,
        description="Timeout for loading the embed page markup.",
    )
    overlay_timeout_ms: int = Field(
        default=120_000,
        description="Max wait for the loading overlay to disappear (non-fatal).",
    )
    trigger_timeout_ms: int = Field(
        default=30_000,
        description="Max wait for the play control to become visible.",
    )
    final_grace_ms: int = Field(
        default=10_000,
        description="Grace period for late manifest responses after clicking.",
    )
    settle_delay_ms: int = Field(
        default=2_000,
        description="Pause after the overlay is gone.",
    )
    mouse_pause_ms: int = Field(
        default=800,
        description="Pause between synthetic pointer movements.",
    )
    click_attempts: int = Field(
        default=3,
        description="Max clicks on the play control.",
    )
    pre_click_delay_ms: int = Field(default=500, description="Pause before a click.")
    post_click_delay_ms: int = Field(
        default=2_500,
        description="Pause after a click before popups are closed.",
    )
    popup_settle_ms: int = Field(
        default=1_500,
        description="Pause after popups were closed.",
    )
    overlay_text: str = Field(
        default="FETCHING",
        description="Visible text of the loading overlay.",
    )
    trigger_selector: str = Field(
        default="div.MuiBox-root button",
        description="Locator of the play control (first match is clicked).",
    )
    manifest_pattern: str = Field(
        default=r"\.m3u8",
        description="Regex a response URL must match to count as manifest.",
    )
    exclude_pattern: str = Field(
        default="ads",
        description="Regex of response URLs to ignore (ad manifests). Empty = none.",
    )

    @field_validator(
        "navigation_timeout_ms",
        "overlay_timeout_ms",
        "trigger_timeout_ms",
        "click_attempts",
    )
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator(
        "final_grace_ms",
        "settle_delay_ms",
        "mouse_pause_ms",
        "pre_click_delay_ms",
        "post_click_delay_ms",
        "popup_settle_ms",
    )
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("manifest_pattern", "exclude_pattern")
    @classmethod
    def _validate_regex(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid regex {v!r}: {e}") from e
        return v

    @field_validator("manifest_pattern", "trigger_selector")
    @classmethod
    def _validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (server/vidfast/browser/extraction/
      cache/resolve/logging).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow
      strict precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="manifestarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Server (YAML section: server.*)
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("host", AliasPath("server", "host")),
        description="Bind host.",
    )
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("port", AliasPath("server", "port")),
        description="Bind port.",
    )

    vidfast: VidfastConfig = Field(default_factory=VidfastConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)

    # Cache (YAML section: cache.*)
    cache_ttl_seconds: int = Field(
        default=3600,
        validation_alias=AliasChoices(
            "cache_ttl_seconds",
            AliasPath("cache", "ttl_seconds"),
        ),
        description="How long a discovered manifest URL stays valid.",
    )
    cache_max_entries: int = Field(
        default=0,
        validation_alias=AliasChoices(
            "cache_max_entries",
            AliasPath("cache", "max_entries"),
        ),
        description="LRU capacity of the manifest cache. 0 = unbounded.",
    )

    # Resolution (YAML section: resolve.*)
    coalesce_inflight: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "coalesce_inflight",
            AliasPath("resolve", "coalesce_inflight"),
        ),
        description="Share one running extraction between identical requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    @field_validator("port")
    @classmethod
    def _validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("cache_ttl_seconds")
    @classmethod
    def _validate_cache_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache_ttl_seconds must be > 0")
        return v

    @field_validator("cache_max_entries")
    @classmethod
    def _validate_cache_max_entries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cache_max_entries must be >= 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "server": {"host": self.host, "port": self.port},
            "vidfast": self.vidfast.model_dump(),
            "browser": self.browser.model_dump(),
            "extraction": self.extraction.model_dump(),
            "cache": {
                "ttl_seconds": self.cache_ttl_seconds,
                "max_entries": self.cache_max_entries,
            },
            "resolve": {"coalesce_inflight": self.coalesce_inflight},
            "logging": {"level": self.log_level, "format": self.log_format},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read MANIFESTARR_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - MANIFESTARR_PORT
    - MANIFESTARR_BROWSER_ENGINE
    - MANIFESTARR_BROWSER_HEADLESS
    - MANIFESTARR_CACHE_TTL_SECONDS
    - MANIFESTARR_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="MANIFESTARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    host: Optional[str] = None
    port: Optional[int] = None

    vidfast_base_url: Optional[str] = None
    vidfast_default_server: Optional[str] = None

    browser_engine: Optional[BrowserEngine] = None
    browser_headless: Optional[bool] = None
    browser_stealth: Optional[bool] = None
    browser_user_agent: Optional[str] = None
    browser_locale: Optional[str] = None

    extraction_navigation_timeout_ms: Optional[int] = None
    extraction_overlay_timeout_ms: Optional[int] = None
    extraction_trigger_timeout_ms: Optional[int] = None
    extraction_trigger_selector: Optional[str] = None

    cache_ttl_seconds: Optional[int] = None
    cache_max_entries: Optional[int] = None

    coalesce_inflight: Optional[bool] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
