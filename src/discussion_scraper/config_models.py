"""
Pydantic models for YAML configuration validation.
Provides schema validation with clear error messages for pipeline configurations.
"""

from __future__ import annotations

import os
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from discussion_scraper.core.errors import ConfigError
from discussion_scraper.core.models import (
    BrowserSettings,
    DedupeScope,
    PipelineSettings,
    ProxySettings,
    RetrySettings,
)


class PipelineConfig(BaseModel):
    """Configuration for the two-phase scraping pipeline."""
    adapter: str = Field("quora", description="Adapter key to use")
    keywords: List[str] = Field(..., description="Search queries for the discovery phase")
    output_dir: str = Field("output", description="Directory for CSV output files")
    max_search_results: int = Field(4, ge=1, le=100, description="Results requested per search page")
    search_concurrency: int = Field(2, ge=1, le=64, description="Concurrent discovery jobs")
    answer_concurrency: int = Field(2, ge=1, le=64, description="Concurrent answer extraction jobs")
    storage_queue_limit: int = Field(50, ge=1, description="Buffered records before a sink flushes")
    dedupe_scope: DedupeScope = Field(DedupeScope.PER_SINK, description="per_sink or global duplicate detection")
    preload_existing: bool = Field(False, description="Seed duplicate detection from existing output files")

    @field_validator('keywords')
    @classmethod
    def validate_keywords(cls, v):
        cleaned = [k.strip() for k in v if k and k.strip()]
        if not cleaned:
            raise ValueError('keywords cannot be empty')
        return cleaned


class RetryConfig(BaseModel):
    """Retry behaviour for every job."""
    max_attempts: int = Field(3, ge=1, le=20, description="Attempts per job")
    delay_ms: int = Field(2000, ge=0, le=600000, description="Delay between attempts in milliseconds")
    backoff_factor: float = Field(1.0, ge=1.0, le=10.0, description="Delay multiplier per attempt (1.0 = fixed)")
    jitter_ms: int = Field(0, ge=0, le=60000, description="Random extra delay in milliseconds")
    attempt_timeout_s: Optional[float] = Field(120.0, gt=0, description="Deadline per attempt; null disables")


class ProxyConfig(BaseModel):
    """Configuration for the ScrapeOps proxy."""
    enabled: bool = Field(True, description="Route navigation through the proxy")
    api_key: Optional[str] = Field(None, description="ScrapeOps API key")
    api_key_env: str = Field("SCRAPEOPS_API_KEY", description="Environment variable holding the API key")
    country: str = Field("us", min_length=2, max_length=2, description="Proxy country code")
    wait_ms: int = Field(5000, ge=0, le=60000, description="Render wait requested from the proxy")

    def resolved_api_key(self, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
        env = os.environ if environ is None else environ
        return self.api_key or env.get(self.api_key_env) or None


class BrowserConfig(BaseModel):
    """Browser launch options."""
    headless: bool = Field(True, description="Run the browser headless")
    viewport: Dict[str, int] = Field(default_factory=lambda: {"width": 1366, "height": 768})
    timeout_s: int = Field(60, ge=1, le=600, description="Navigation and selector timeout in seconds")


class ScheduleConfig(BaseModel):
    """Configuration for scheduled execution."""
    enabled: bool = Field(False, description="Whether scheduling is enabled")
    interval_hours: int = Field(24, ge=1, le=168, description="Interval between runs in hours")


class ScraperConfig(BaseModel):
    """Root configuration model for pipeline runs."""
    pipeline: PipelineConfig
    retry: RetryConfig = Field(default_factory=RetryConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    log_file: Optional[str] = Field("quora-scraper.log", description="Log file used when no logging.yaml exists")


def load_and_validate_config(config_path: str) -> ScraperConfig:
    """
    Load and validate a scraper configuration from YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated ScraperConfig object

    Raises:
        ValueError: If configuration is invalid or YAML is malformed
        FileNotFoundError: If config file doesn't exist
    """
    import yaml

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")

    try:
        return ScraperConfig(**(raw_config or {}))
    except ValidationError as e:
        # Format validation errors nicely
        error_messages = []
        for error in e.errors():
            field_path = '.'.join(str(loc) for loc in error['loc'])
            error_messages.append(f"  {field_path}: {error['msg']}")

        raise ValueError(
            f"Configuration validation failed for {config_path}:\n" +
            '\n'.join(error_messages)
        ) from e


def config_to_settings(config: ScraperConfig, environ: Optional[Mapping[str, str]] = None) -> PipelineSettings:
    """
    Convert validated config to the settings object used by the pipeline.

    Raises:
        ConfigError: If the proxy is enabled but no API key can be found
    """
    api_key = config.proxy.resolved_api_key(environ)
    if config.proxy.enabled and not api_key:
        raise ConfigError(
            f"proxy.enabled is true but no API key was given in proxy.api_key "
            f"or ${config.proxy.api_key_env}"
        )

    p = config.pipeline
    return PipelineSettings(
        adapter=p.adapter,
        keywords=list(p.keywords),
        output_dir=p.output_dir,
        max_search_results=p.max_search_results,
        search_concurrency=p.search_concurrency,
        answer_concurrency=p.answer_concurrency,
        storage_queue_limit=p.storage_queue_limit,
        dedupe_scope=p.dedupe_scope,
        preload_existing=p.preload_existing,
        retry=RetrySettings(**config.retry.model_dump()),
        proxy=ProxySettings(
            enabled=config.proxy.enabled,
            api_key=api_key,
            country=config.proxy.country,
            wait_ms=config.proxy.wait_ms,
        ),
        browser=BrowserSettings(
            headless=config.browser.headless,
            viewport_width=int(config.browser.viewport.get("width", 1366)),
            viewport_height=int(config.browser.viewport.get("height", 768)),
            timeout_s=config.browser.timeout_s,
        ),
    )
