"""
Configuration module using Pydantic Settings.

Provides validated, type-safe configuration for the price inquiry engine
from environment variables (or a local .env file). Durations are seconds.

Defaults mirror the tuned production constants:
- 8s per-attempt request deadline, 2 attempts, 0.5s base backoff
- 45s raw-response cache, 3min resolved-result cache, 500 entries each
- 20ms batch debounce window, 5 concurrent upstream requests
"""

import logging
import sys

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Logging Setup (must happen before Settings to capture validation errors) ---
logging.basicConfig(
    format="%(asctime)s [%(levelname)-8s] %(message)s",
    stream=sys.stderr,
    level=logging.INFO,
    force=True,
)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.KeyValueRenderer(
            key_order=["timestamp", "level", "event"]
        ),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class Settings(BaseSettings):
    """
    Configuration for the price inquiry engine.

    Every field maps to one environment variable (see validation_alias).
    Fail-fast: out-of-range values raise a ValidationError at startup.
    """

    # --- Upstream Request Policy ---
    request_timeout: float = Field(
        default=8.0,
        gt=0,
        validation_alias="REQUEST_TIMEOUT",
        description="Per-attempt upstream deadline in seconds",
    )
    retry_count: int = Field(
        default=2,
        ge=1,
        validation_alias="RETRY_COUNT",
        description="Total attempts per upstream request (including the first)",
    )
    retry_delay: float = Field(
        default=0.5,
        ge=0,
        validation_alias="RETRY_DELAY",
        description="Base backoff in seconds; doubles after every failed attempt",
    )
    max_concurrent_requests: int = Field(
        default=5,
        ge=1,
        validation_alias="MAX_CONCURRENT_REQUESTS",
        description="Maximum simultaneous outbound requests",
    )

    # --- Caching ---
    cache_ttl: float = Field(
        default=45.0,
        gt=0,
        validation_alias="CACHE_TTL",
        description="TTL for raw upstream responses in seconds",
    )
    batch_cache_ttl: float = Field(
        default=180.0,
        gt=0,
        validation_alias="BATCH_CACHE_TTL",
        description="TTL for resolved query results in seconds",
    )
    max_cache_size: int = Field(
        default=500,
        ge=1,
        validation_alias="MAX_CACHE_SIZE",
        description="Capacity of each in-memory cache",
    )
    cache_cleanup_interval: float = Field(
        default=120.0,
        gt=0,
        validation_alias="CACHE_CLEANUP_INTERVAL",
        description="Seconds between background sweeps of expired cache entries",
    )

    # --- Batching ---
    batch_delay: float = Field(
        default=0.02,
        ge=0,
        validation_alias="BATCH_DELAY",
        description="Debounce window for coalescing identical queries (seconds)",
    )

    # --- Value Validation ---
    price_range_min: float = Field(
        default=0.01,
        ge=0,
        validation_alias="PRICE_RANGE_MIN",
        description="Lowest plausible net value accepted from scraped pages",
    )
    price_range_max: float = Field(
        default=10000.0,
        gt=0,
        validation_alias="PRICE_RANGE_MAX",
        description="Highest plausible net value accepted from scraped pages",
    )

    # --- Upstream Endpoints ---
    fund_url_template: str = Field(
        default="https://fund.eastmoney.com/{code}.html",
        validation_alias="FUND_URL_TEMPLATE",
        description="Fund detail page; {code} is the 6-digit fund code",
    )
    stock_url_template: str = Field(
        default="https://qt.gtimg.cn/q=s_{symbol}",
        validation_alias="STOCK_URL_TEMPLATE",
        description="Simplified quote endpoint; {symbol} is the prefixed ticker",
    )
    stock_encoding: str = Field(
        default="gbk",
        validation_alias="STOCK_ENCODING",
        description="Character set of the quote endpoint payload",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        validation_alias="USER_AGENT",
        description="User-Agent header sent upstream",
    )
    stock_referer: str = Field(
        default="https://finance.qq.com/",
        validation_alias="STOCK_REFERER",
        description="Referer header required by the quote endpoint",
    )

    # --- Logging ---
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    # --- Environment ---
    environment: str = Field(
        default="dev",
        validation_alias="ENVIRONMENT",
        description="Environment (dev, prod, test)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=False,
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def setup_environment(self) -> "Settings":
        """Validate cross-field constraints and apply the configured log level."""
        if self.price_range_min >= self.price_range_max:
            raise ValueError(
                f"PRICE_RANGE_MIN ({self.price_range_min}) must be below "
                f"PRICE_RANGE_MAX ({self.price_range_max})"
            )

        log_level_value = getattr(logging, self.log_level.upper(), logging.INFO)
        logging.getLogger().setLevel(log_level_value)
        for name in logging.root.manager.loggerDict:
            logging.getLogger(name).setLevel(log_level_value)

        return self

    def fund_url(self, code: str) -> str:
        return self.fund_url_template.format(code=code)

    def stock_url(self, symbol: str) -> str:
        return self.stock_url_template.format(symbol=symbol)


# --- Module-level Singleton Instance ---
# Instantiated at import time, triggers validation
config = Settings()
