"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- RenderConfig: Renderer backend and navigation settings
- BatchConfig: Batch size, enrichment concurrency and timeouts
- DedupConfig: Deduplication settings
- OutputConfig: Output file settings
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container

Per-site selector definitions are not part of this file; they live in the
sources file loaded by feed_harvest.sources.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
import os
from typing import Any

import yaml

from .core.errors import ConfigError


@dataclass
class RenderConfig:
    """Configuration for page rendering.

    Attributes:
        backend: "httpx" for static pages, "playwright" for JS rendering,
                 "crawl4ai" for a remote Crawl4AI API service
        retries: Retry attempts for transport errors (httpx and crawl4ai only)
        user_agent: User-Agent header / browser user agent
        trust_env: Whether to respect system proxy settings
        headless: Run the Playwright browser headless
        block_resources: Resource types Playwright aborts (e.g. image, font)
        crawl4ai_api_url: Base URL of the Crawl4AI API (or CRAWL4AI_API_URL env)
        crawl4ai_api_username: Basic auth user for the API (or CRAWL4AI_API_USERNAME env)
        crawl4ai_api_password: Basic auth password (or CRAWL4AI_API_PASSWORD env)
    """

    backend: str = "playwright"
    retries: int = 1
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    trust_env: bool = True
    headless: bool = True
    block_resources: list[str] = field(default_factory=lambda: ["image", "font", "media"])
    crawl4ai_api_url: str | None = None
    crawl4ai_api_username: str | None = None
    crawl4ai_api_password: str | None = None


@dataclass
class BatchConfig:
    """Configuration for one pipeline run's batch.

    Attributes:
        batch_size: Maximum records kept after deduplication
        concurrency: Maximum detail pages visited at once (1 = sequential)
        navigation_timeout_seconds: Timeout for each navigation
        empty_retries: Extra listing renders when no items are found
        retry_wait_multiplier: Factor applied to the readiness wait per retry
    """

    batch_size: int = 10
    concurrency: int = 1
    navigation_timeout_seconds: float = 30.0
    empty_retries: int = 0
    retry_wait_multiplier: float = 2.0


@dataclass
class DedupConfig:
    """Configuration for record deduplication.

    Attributes:
        title_similarity_threshold: Fuzzy title threshold (0-100), None to disable
    """

    title_similarity_threshold: int | None = None


@dataclass
class OutputConfig:
    """Configuration for output generation.

    Attributes:
        summary_file: Name of the JSONL run summary inside the output directory
        write_failed: Whether to write an (empty) record file for failed runs
    """

    summary_file: str = "runs.jsonl"
    write_failed: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the main log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    filename: str = "harvest.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        release: Langfuse release identifier (optional)
        max_text_chars: Maximum characters for span payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    render: RenderConfig = field(default_factory=RenderConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


_SECTIONS: dict[str, type] = {
    "render": RenderConfig,
    "batch": BatchConfig,
    "dedup": DedupConfig,
    "output": OutputConfig,
    "logging": LoggingConfig,
    "langfuse": LangfuseConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    cfg = _merge_config(AppConfig(), raw)
    validate_batch(cfg.batch)
    check_number("retries", cfg.render.retries, integer=True)
    if cfg.dedup.title_similarity_threshold is not None:
        check_number("title_similarity_threshold", cfg.dedup.title_similarity_threshold)
    return cfg


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if not isinstance(value, dict):
            raise ConfigError(f"Config section '{key}' must be a mapping")
        _check_keys(_SECTIONS[key], value, key)
        data[key].update(value)
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(**{name: cls(**data[name]) for name, cls in _SECTIONS.items()})


def _check_keys(cls: type, values: dict[str, Any], section: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {', '.join(unknown)}")


def resolve_batch(base: BatchConfig, overrides: dict[str, Any] | None) -> BatchConfig:
    """Apply per-source overrides on top of the global batch settings."""
    if not overrides:
        return base
    _check_keys(BatchConfig, overrides, "batch")
    merged = replace(base, **overrides)
    validate_batch(merged)
    return merged


def validate_batch(batch: BatchConfig) -> None:
    for name in ("batch_size", "concurrency", "empty_retries"):
        check_number(name, getattr(batch, name), integer=True)
    for name in ("navigation_timeout_seconds", "retry_wait_multiplier"):
        check_number(name, getattr(batch, name))
    if batch.batch_size < 1:
        raise ConfigError("batch_size must be at least 1")
    if batch.concurrency < 1:
        raise ConfigError("concurrency must be at least 1")
    if batch.navigation_timeout_seconds <= 0:
        raise ConfigError("navigation_timeout_seconds must be positive")
    if batch.empty_retries < 0:
        raise ConfigError("empty_retries cannot be negative")
    if batch.retry_wait_multiplier < 1:
        raise ConfigError("retry_wait_multiplier must be at least 1")


def check_number(name: str, value: Any, integer: bool = False) -> None:
    """Raise ConfigError unless value is a number (an int when integer is set).

    YAML booleans are rejected even though bool subclasses int.
    """
    allowed = (int,) if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, allowed):
        kind = "an integer" if integer else "a number"
        raise ConfigError(f"{name} must be {kind}, got {value!r}")


def get_crawl4ai_api_url(cfg: RenderConfig) -> str | None:
    """Get Crawl4AI API URL from config or the CRAWL4AI_API_URL env var."""
    if cfg.crawl4ai_api_url:
        return cfg.crawl4ai_api_url
    return os.getenv("CRAWL4AI_API_URL")


def get_crawl4ai_api_auth(cfg: RenderConfig) -> tuple[str, str] | None:
    """Get Crawl4AI API Basic Auth credentials from config or environment variables.

    Returns (username, password) tuple if both are configured, None otherwise.
    """
    username = cfg.crawl4ai_api_username or os.getenv("CRAWL4AI_API_USERNAME")
    password = cfg.crawl4ai_api_password or os.getenv("CRAWL4AI_API_PASSWORD")
    if username and password:
        return username, password
    return None
