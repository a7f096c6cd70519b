"""
================================================================================
KARS - Explore Package
================================================================================
One query across several external media catalogs, one ranked list.

Components:
  - router.py - Category -> eligible providers
  - providers/ - AniList, TMDB, MangaDex, Open Library adapters
  - dispatcher.py - Parallel fan-out with a shared deadline
  - normalizer.py - Provider records -> NormalizedResult (score scales)
  - aggregator.py - Dedup, rank, truncate
  - service.py - Wires the above together
================================================================================
"""

from .errors import InvalidInput, ProviderError
from .models import ExploreQuery, MediaCategory, NormalizedResult, Source
from .service import ExploreService, get_explore_service, reset_explore_service

__all__ = [
    'ExploreQuery',
    'ExploreService',
    'InvalidInput',
    'MediaCategory',
    'NormalizedResult',
    'ProviderError',
    'Source',
    'get_explore_service',
    'reset_explore_service',
]
