"""
API key and endpoint resolution.

Resolution order for every setting:
1. Explicit value
2. Environment variable
3. Built-in default (none for the API key)
"""

from __future__ import annotations

import os
from contextlib import suppress

API_KEY_ENV = "ANTHROPIC_API_KEY"
BASE_URL_ENV = "ANTHROPIC_BASE_URL"
API_VERSION_ENV = "ANTHROPIC_API_VERSION"
TIMEOUT_ENV = "AI_HTTP_TIMEOUT_SECS"

DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_TIMEOUT = 120.0


def resolve_api_key(explicit_key: str | None = None) -> str | None:
    """Resolve the API key.

    Args:
        explicit_key: Explicitly provided API key

    Returns:
        Resolved API key or None if not found
    """
    if explicit_key:
        return explicit_key
    return os.getenv(API_KEY_ENV) or None


def resolve_base_url(explicit_url: str | None = None) -> str:
    """Resolve the API base URL, without a trailing slash."""
    url = explicit_url or os.getenv(BASE_URL_ENV) or DEFAULT_BASE_URL
    return url.rstrip("/")


def resolve_api_version(explicit_version: str | None = None) -> str:
    """Resolve the ``anthropic-version`` header value."""
    return explicit_version or os.getenv(API_VERSION_ENV) or DEFAULT_API_VERSION


def resolve_timeout(explicit_timeout: float | None = None) -> float:
    """Resolve the request timeout in seconds."""
    if explicit_timeout is not None:
        return explicit_timeout
    env_timeout = os.getenv(TIMEOUT_ENV)
    if env_timeout:
        with suppress(ValueError):
            return float(env_timeout)
    return DEFAULT_TIMEOUT


def get_auth_headers(api_key: str, api_version: str) -> dict[str, str]:
    """Build authentication headers for a request."""
    return {
        "x-api-key": api_key,
        "anthropic-version": api_version,
    }
