"""Explore error taxonomy.

InvalidInput is the only kind that reaches the HTTP caller (as a 400).
ProviderError kinds are isolated per provider and recovered by the dispatcher.
"""

from typing import Any


class ExploreError(Exception):
    """Base class for all Explore errors."""


class InvalidInput(ExploreError):
    """Malformed query or category. Surfaced to the caller as 400."""


class InvalidCategory(InvalidInput):
    def __init__(self, category: Any):
        self.category = category
        super().__init__(f"Unknown media category: {category!r}")


class QueryTooShort(InvalidInput):
    def __init__(self, text: str, minimum: int):
        self.text = text
        self.minimum = minimum
        super().__init__(f"Query must be at least {minimum} characters")


class ProviderIneligible(ExploreError):
    """Provider lacks required configuration (e.g. missing API key)."""
    def __init__(self, source: str, reason: str = "not configured"):
        self.source = source
        self.reason = reason
        super().__init__(f"Provider '{source}' is ineligible: {reason}")


class ProviderError(ExploreError):
    """A single provider call failed. Never fatal to the aggregate search."""

    kind = "provider_error"

    def __init__(self, source: str, message: str = ""):
        self.source = source
        self.message = message or self.kind
        super().__init__(f"{source}: {self.kind}: {self.message}")


class Unauthorized(ProviderError):
    """Missing or rejected credential. Permanent until reconfigured."""
    kind = "unauthorized"


class RateLimited(ProviderError):
    """Upstream 429 or local token bucket exhausted. Not retried in-request."""
    kind = "rate_limited"


class ProviderTimeout(ProviderError):
    kind = "timeout"


class MalformedResponse(ProviderError):
    """Payload could not be decoded into the provider's expected envelope."""
    kind = "malformed_response"


class NetworkError(ProviderError):
    kind = "network_error"
