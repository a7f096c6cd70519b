"""
================================================================================
KARS - Base Search Provider
================================================================================
Abstract base class for all external catalog search providers.

Providers translate a generic (text, category) query into one request
against their catalog and hand back the provider-native records:
  - AniList (GraphQL)
  - TMDB (REST, API key)
  - MangaDex (REST)
  - Open Library (REST)

Every failure is raised as one ProviderError kind so the dispatcher can
isolate it. Nothing is retried inside a request.
================================================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import time
import logging
import threading

import httpx

from ..config import DEFAULT_PROVIDER_LIMIT, DEFAULT_USER_AGENT, MAX_PROVIDER_LIMIT
from ..errors import (
    MalformedResponse,
    NetworkError,
    ProviderIneligible,
    ProviderTimeout,
    RateLimited,
    Unauthorized,
)
from ..models import MediaCategory, NormalizedResult, ProviderInfo, RawRecord, Source
from .. import normalizer
from ..router import categories_for


logger = logging.getLogger(__name__)


class TokenBucket:
    """
    Process-wide token bucket for one provider.

    Shared by every request thread, so all state changes happen under a
    threading lock. An empty bucket fails fast instead of sleeping: waiting
    would only eat into the fan-out deadline.

    Provider budgets (requests/minute):
      - AniList: 90
      - TMDB: 240 (conservative, ~40 per 10s)
      - MangaDex: 120 (their load balancer allows 5/sec)
      - Open Library: 60 (conservative)
    """

    def __init__(self, requests_per_minute: int, capacity: Optional[int] = None):
        self.requests_per_minute = requests_per_minute
        self.refill_rate = requests_per_minute / 60.0  # Tokens per second
        self.capacity = capacity or max(1, requests_per_minute // 6)
        self._tokens = float(self.capacity)
        self._updated = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self, now: float):
        elapsed = now - self._updated
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
            self._updated = now

    def try_acquire(self) -> bool:
        """Take one token if available."""
        with self._lock:
            self._refill(time.monotonic())
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    @property
    def available(self) -> float:
        with self._lock:
            self._refill(time.monotonic())
            return self._tokens


class BaseSearchProvider(ABC):
    """
    Abstract base class for search providers.

    All providers must implement:
      - translate_category(): Category in the provider's own vocabulary
      - _search(): One request, returning provider-native records

    The base class handles:
      - Eligibility (required API key, rejected credentials)
      - Rate limiting (token bucket)
      - Transport errors and HTTP status classification
      - Normalization through the shared normalizer
    """

    # Provider identification
    id: Source
    name: str = "Base Provider"

    # API configuration
    base_url: str = ""
    requires_api_key: bool = False

    # Rate limiting (requests per minute)
    rate_limit: int = 60

    # Per-request timeout (seconds). The dispatcher deadline usually wins.
    timeout: float = 10.0

    # First page only: this is the documented bound per provider
    page_size: int = DEFAULT_PROVIDER_LIMIT

    user_agent: str = DEFAULT_USER_AGENT

    def __init__(
        self,
        api_key: Optional[str] = None,
        page_size: Optional[int] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rate_limiter: Optional[TokenBucket] = None,
    ):
        """
        Args:
            api_key: Credential for providers that require one
            page_size: Records requested from the first page (1-50)
            user_agent: Overrides the default User-Agent header
            transport: httpx transport (tests pass httpx.MockTransport)
            rate_limiter: Shared bucket; one is created per provider otherwise
        """
        self.api_key = (api_key or "").strip() or None
        if page_size is not None:
            self.page_size = max(1, min(int(page_size), MAX_PROVIDER_LIMIT))
        if user_agent:
            self.user_agent = user_agent
        self.rate_limiter = rate_limiter or TokenBucket(self.rate_limit)
        self._transport = transport
        self._credential_rejected = False

    # =========================================================================
    # ELIGIBILITY
    # =========================================================================

    @property
    def is_eligible(self) -> bool:
        if self.requires_api_key and not self.api_key:
            return False
        return not self._credential_rejected

    def configure(self, api_key: Optional[str]):
        """Replace the credential and clear a previous rejection."""
        self.api_key = (api_key or "").strip() or None
        self._credential_rejected = False
        logger.info(f"{self.id.value}: credential reconfigured")

    def ensure_eligible(self):
        if self.requires_api_key and not self.api_key:
            raise ProviderIneligible(self.id.value, "missing API key")
        if self._credential_rejected:
            raise ProviderIneligible(self.id.value, "credential rejected")

    # =========================================================================
    # HTTP
    # =========================================================================

    def _headers(self) -> Dict[str, str]:
        return {
            'User-Agent': self.user_agent,
            'Accept': 'application/json',
        }

    def _client(self) -> httpx.AsyncClient:
        """
        New HTTP client for one search call.

        Used as an async context manager, so a call abandoned at the fan-out
        deadline still closes its connections.
        """
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs
    ) -> Any:
        """
        Make one rate-limited request and decode its JSON body.

        Raises:
            RateLimited: Local budget exhausted or upstream 429
            Unauthorized: Upstream 401/403
            ProviderTimeout: Transport timeout
            NetworkError: Other transport failures or unexpected status
            MalformedResponse: Body is not JSON
        """
        if not self.rate_limiter.try_acquire():
            raise RateLimited(self.id.value, "local request budget exhausted")

        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderTimeout(self.id.value, str(e) or "request timed out") from e
        except httpx.RequestError as e:
            raise NetworkError(self.id.value, f"{e.__class__.__name__}: {e}") from e

        self._check_status(response)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(self.id.value, f"invalid JSON: {e}") from e

    def _check_status(self, response: httpx.Response):
        status = response.status_code
        if status < 400:
            return
        if status in (401, 403):
            if self.requires_api_key:
                # Stays rejected until configure() is called
                self._credential_rejected = True
                logger.warning(f"{self.id.value}: credential rejected (HTTP {status}), disabling")
            raise Unauthorized(self.id.value, f"HTTP {status}")
        if status == 429:
            raise RateLimited(self.id.value, "HTTP 429")
        raise NetworkError(self.id.value, f"HTTP {status}")

    def _records(self, payload: Any, *path: str) -> List[RawRecord]:
        """
        Walk `path` into a decoded payload and return its record list.

        Non-dict entries are dropped. A missing key or a non-list leaf means
        the envelope changed shape, which is a MalformedResponse.
        """
        node = payload
        for key in path:
            if not isinstance(node, dict) or key not in node:
                raise MalformedResponse(self.id.value, f"missing '{key}' in response")
            node = node[key]
        if not isinstance(node, list):
            raise MalformedResponse(self.id.value, f"'{'.'.join(path)}' is not a list")
        return [record for record in node if isinstance(record, dict)]

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(self, text: str, category) -> List[RawRecord]:
        """
        Search the provider's catalog (first page only).

        Args:
            text: Search text
            category: MediaCategory (or its string value)

        Returns:
            Provider-native records

        Raises:
            ProviderIneligible: Provider lacks required configuration
            ProviderError: Any of its kinds
        """
        self.ensure_eligible()
        category = MediaCategory.parse(category)

        start = time.monotonic()
        async with self._client() as client:
            records = await self._search(client, text, category)

        logger.debug(
            f"{self.id.value}: {len(records)} records for '{text}' ({category.value}) "
            f"in {int((time.monotonic() - start) * 1000)}ms"
        )
        return records

    def normalize(self, record: RawRecord) -> NormalizedResult:
        return normalizer.normalize(record, self.id)

    # =========================================================================
    # ABSTRACT METHODS (must be implemented by providers)
    # =========================================================================

    @abstractmethod
    def translate_category(self, category: MediaCategory) -> Any:
        """Map a MediaCategory onto the provider's own vocabulary."""

    @abstractmethod
    async def _search(
        self,
        client: httpx.AsyncClient,
        text: str,
        category: MediaCategory
    ) -> List[RawRecord]:
        """Perform the provider request and return decoded records."""

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    @property
    def categories(self) -> List[MediaCategory]:
        return categories_for(self.id)

    def describe(self) -> ProviderInfo:
        return ProviderInfo(
            id=self.id.value,
            name=self.name,
            base_url=self.base_url,
            categories=[category.value for category in self.categories],
            requires_api_key=self.requires_api_key,
            eligible=self.is_eligible,
            rate_limit=self.rate_limit,
        )

    def __repr__(self):
        return f"<{self.__class__.__name__}(id='{self.id.value}', rate_limit={self.rate_limit}/min)>"
