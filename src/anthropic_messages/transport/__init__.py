"""
Transport layer - HTTP client for API communication.

Provides httpx-based transport with:
- Async streaming support
- Timeout management
- API key and endpoint resolution
"""

from anthropic_messages.transport.auth import (
    resolve_api_key,
    resolve_api_version,
    resolve_base_url,
    resolve_timeout,
)
from anthropic_messages.transport.http import HttpTransport

__all__ = [
    "HttpTransport",
    "resolve_api_key",
    "resolve_api_version",
    "resolve_base_url",
    "resolve_timeout",
]
