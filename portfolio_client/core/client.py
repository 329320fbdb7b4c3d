"""Shared HTTP client helpers for analysis service calls."""

import logging
from typing import Any

import httpx

from portfolio_client.config import ClientConfig
from portfolio_client.exceptions import ServiceError, classify_failure

logger = logging.getLogger(__name__)


def get_client(config: ClientConfig | None = None) -> httpx.AsyncClient:
    """Create an async HTTP client with the configured base URL and timeouts."""
    config = config or ClientConfig.from_env()
    return httpx.AsyncClient(base_url=config.base_url, timeout=config.timeout)


def _error_message(response: httpx.Response) -> str | None:
    """``message`` field of an error body, or None if absent/unparsable."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    message = data.get("message")
    return message if isinstance(message, str) and message else None


async def post_analysis(client: httpx.AsyncClient, path: str, payload: dict) -> Any:
    """POST a JSON body to ``path`` and return the decoded JSON.

    Raises:
        DateRangeMismatch: if the error message names a latest start date
        ServiceError: for any other non-2xx response, an undecodable body or
            a failed request (httpx's own message is kept)
    """
    try:
        response = await client.post(path, json=payload)
    except httpx.RequestError as e:
        logger.error(f"Transport failure calling {path}: {e}")
        raise ServiceError(str(e) or type(e).__name__) from e

    if not response.is_success:
        fallback = f"HTTP {response.status_code}: {response.reason_phrase}"
        error = classify_failure(
            _error_message(response), fallback, status_code=response.status_code
        )
        logger.error(f"{path} failed: {error.message}")
        raise error

    try:
        return response.json()
    except ValueError as e:
        raise ServiceError(
            f"Invalid JSON from {path}", status_code=response.status_code
        ) from e


async def check_health(client: httpx.AsyncClient) -> bool:
    """Return True when GET /health answers with a 2xx status."""
    try:
        response = await client.get("/health")
    except httpx.RequestError as e:
        logger.warning(f"Health check failed: {e}")
        return False
    return response.is_success
