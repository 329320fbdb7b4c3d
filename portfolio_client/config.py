"""Configuration for the analysis service client."""

import os
from dataclasses import dataclass, field
from enum import Enum

import httpx

# Environment variable names
ENV_API_URL = "PORTFOLIO_API_URL"
ENV_API_STRATEGY = "PORTFOLIO_API_STRATEGY"
ENV_API_TIMEOUT = "PORTFOLIO_API_TIMEOUT"
ENV_LOG_LEVEL = "PORTFOLIO_LOG_LEVEL"

# Defaults
DEFAULT_API_URL = "http://localhost:8080/api/portfolio"
DEFAULT_READ_TIMEOUT = 60.0  # analysis fetches price history for every ticker
DEFAULT_LOG_LEVEL = "INFO"


class StrategyName(str, Enum):
    """Request strategies supported by the analysis service."""

    CONSOLIDATED = "consolidated"
    LEGACY = "legacy"


def get_api_url() -> str:
    """Get the analysis service base URL from environment."""
    return os.environ.get(ENV_API_URL, DEFAULT_API_URL).rstrip("/")


def get_strategy_name() -> StrategyName:
    """Get the configured request strategy.

    Raises:
        ValueError: if PORTFOLIO_API_STRATEGY names an unknown strategy
    """
    value = os.environ.get(ENV_API_STRATEGY, "").strip().lower()
    if not value:
        return StrategyName.CONSOLIDATED
    try:
        return StrategyName(value)
    except ValueError:
        valid = ", ".join(s.value for s in StrategyName)
        raise ValueError(
            f"Invalid {ENV_API_STRATEGY} '{value}'. Must be one of: {valid}"
        ) from None


def get_read_timeout() -> float:
    """Get the read timeout in seconds (default: 60)."""
    timeout_str = os.environ.get(ENV_API_TIMEOUT, "")
    return float(timeout_str) if timeout_str else DEFAULT_READ_TIMEOUT


def get_log_level() -> str:
    """Get the CLI log level name."""
    return os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()


def build_timeout(read_timeout: float) -> httpx.Timeout:
    """Timeout settings for analysis calls."""
    return httpx.Timeout(
        connect=10.0,
        read=read_timeout,
        write=10.0,
        pool=10.0,
    )


@dataclass
class ClientConfig:
    """Settings shared by every request strategy.

    Attributes:
        base_url: Analysis service base URL (endpoints are relative to it)
        strategy: Which request strategy to use for every run
        timeout: httpx timeout applied to each call
    """

    base_url: str = DEFAULT_API_URL
    strategy: StrategyName = StrategyName.CONSOLIDATED
    timeout: httpx.Timeout = field(
        default_factory=lambda: build_timeout(DEFAULT_READ_TIMEOUT)
    )

    def __post_init__(self) -> None:
        """Accept a plain string for the strategy."""
        if isinstance(self.strategy, str):
            self.strategy = StrategyName(self.strategy.lower())
        self.base_url = self.base_url.rstrip("/")

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build the configuration from PORTFOLIO_* environment variables."""
        return cls(
            base_url=get_api_url(),
            strategy=get_strategy_name(),
            timeout=build_timeout(get_read_timeout()),
        )
