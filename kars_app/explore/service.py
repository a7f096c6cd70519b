"""
================================================================================
KARS - Explore Service
================================================================================
Central manager for cross-provider search.

Orchestrates one Explore search:
  - Router picks the eligible providers for the category
  - Dispatcher runs them in parallel under a shared deadline
  - Successful records are normalized
  - Aggregator dedups, ranks and truncates

Provider failures never fail the search: zero eligible or zero successful
providers is a valid, empty result.

Usage:
    service = get_explore_service()
    query = ExploreQuery.parse("naruto", "anime")
    results = service.search_sync(query)
================================================================================
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from .aggregator import aggregate
from .config import ExploreSettings
from .dispatcher import FanOutDispatcher
from .models import ExploreQuery, NormalizedResult, ProviderInfo, ProviderOutcome, Source
from .normalizer import usable
from .router import PROVIDER_ORDER, providers_for
from .providers.base import BaseSearchProvider
from .providers.anilist import AniListProvider
from .providers.tmdb import TmdbProvider
from .providers.mangadex import MangaDexProvider
from .providers.openlibrary import OpenLibraryProvider

logger = logging.getLogger(__name__)


def run_async(coro):
    """
    Run a coroutine to completion on a fresh event loop.

    Unlike asyncio.run(), closing the loop does not join the default
    executor: a thread stuck in a DNS lookup for a provider that was
    cancelled at the deadline must not hold up the response.
    """
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        try:
            leftover = asyncio.all_tasks(loop)
            for task in leftover:
                task.cancel()
            if leftover:
                loop.run_until_complete(asyncio.gather(*leftover, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            # close() shuts the executor down with wait=False
            loop.close()


@dataclass
class ExploreReport:
    """Ranked results plus the per-provider outcomes that produced them."""
    query: ExploreQuery
    results: List[NormalizedResult] = field(default_factory=list)
    outcomes: List[ProviderOutcome] = field(default_factory=list)
    skipped_records: int = 0
    duration_ms: int = 0


def build_providers(settings: ExploreSettings) -> Dict[Source, BaseSearchProvider]:
    """Create the default provider registry from settings."""
    common = {
        'page_size': settings.provider_limit,
        'user_agent': settings.user_agent,
    }
    providers: List[BaseSearchProvider] = [
        AniListProvider(**common),
        TmdbProvider(api_key=settings.tmdb_api_key, **common),
        MangaDexProvider(**common),
        OpenLibraryProvider(**common),
    ]
    registry = {provider.id: provider for provider in providers}

    if not registry[Source.TMDB].is_eligible:
        logger.info("TMDB_API_KEY not set: movie and series search disabled")
    return registry


class ExploreService:
    """
    Cross-provider search aggregation.

    Handles:
      - Provider registry
      - Routing, fan-out, normalization, aggregation
      - Per-search summary logging
    """

    def __init__(
        self,
        settings: Optional[ExploreSettings] = None,
        providers: Optional[Union[Dict[Source, BaseSearchProvider], Iterable[BaseSearchProvider]]] = None
    ):
        self.settings = settings or ExploreSettings.from_env()
        if providers is None:
            self.providers = build_providers(self.settings)
        elif isinstance(providers, dict):
            self.providers = dict(providers)
        else:
            self.providers = {provider.id: provider for provider in providers}
        self.dispatcher = FanOutDispatcher(timeout=self.settings.timeout)

    # =========================================================================
    # SEARCH OPERATIONS
    # =========================================================================

    async def run(self, query: ExploreQuery) -> ExploreReport:
        """Run one search and keep the per-provider outcomes."""
        start = time.monotonic()
        report = ExploreReport(query=query)

        selected = providers_for(query.category, self.providers)
        if not selected:
            logger.info(f"No eligible providers for {query.category.value}")
            return report

        report.outcomes = await self.dispatcher.dispatch(query, selected)

        normalized: List[NormalizedResult] = []
        for outcome in report.outcomes:
            if not outcome.ok:
                continue
            provider = self.providers[outcome.source]
            for record in outcome.results or []:
                if not usable(record, outcome.source):
                    report.skipped_records += 1
                    continue
                normalized.append(provider.normalize(record))

        report.results = aggregate(normalized, self.settings.max_results)
        report.duration_ms = int((time.monotonic() - start) * 1000)

        succeeded = sum(1 for outcome in report.outcomes if outcome.ok)
        logger.info(
            f"Explore '{query.text}' ({query.category.value}): "
            f"{succeeded}/{len(report.outcomes)} providers ok, "
            f"{len(normalized)} records -> {len(report.results)} results "
            f"in {report.duration_ms}ms"
        )
        return report

    async def search(self, query: ExploreQuery) -> List[NormalizedResult]:
        """
        Search every eligible provider and return the ranked results.

        Args:
            query: Validated ExploreQuery

        Returns:
            Deduplicated, ranked, bounded list (possibly empty)
        """
        report = await self.run(query)
        return report.results

    def search_sync(self, query: ExploreQuery) -> List[NormalizedResult]:
        """
        Run search() on a private event loop.

        Flask routes are sync, but providers are async.
        This helper bridges the gap.
        """
        return run_async(self.search(query))

    def run_sync(self, query: ExploreQuery) -> ExploreReport:
        return run_async(self.run(query))

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def get_provider(self, source) -> Optional[BaseSearchProvider]:
        return self.providers.get(Source(source))

    def describe_providers(self) -> List[ProviderInfo]:
        return [
            self.providers[source].describe()
            for source in PROVIDER_ORDER
            if source in self.providers
        ]


# =============================================================================
# GLOBAL SINGLETON
# =============================================================================

_service: Optional[ExploreService] = None
_service_lock = threading.Lock()


def get_explore_service() -> ExploreService:
    """Get or create the global ExploreService instance."""
    global _service
    with _service_lock:
        if _service is None:
            _service = ExploreService()
        return _service


def reset_explore_service():
    """Drop the global instance (settings are re-read on next use)."""
    global _service
    with _service_lock:
        _service = None
