"""
================================================================================
KARS - MangaDex Provider
================================================================================
MangaDex API v5 search.

MANGADEX API RULES:
  - User-Agent MUST identify your app (no browser spoofing)
  - 5 requests/second at their load balancer; we stay well below
  - Continued requests after 429 = temporary IP ban (403), so a 429 is
    reported, never retried

Ratings are not part of /manga; they come from /statistics/manga in one
batch call. That enrichment is best-effort: if it fails the search still
succeeds and the scores are simply absent.
================================================================================
"""

from typing import Any, Dict, List
import logging

import httpx

from .base import BaseSearchProvider
from ..errors import ProviderError
from ..models import MediaCategory, RawRecord, Source

logger = logging.getLogger(__name__)


class MangaDexProvider(BaseSearchProvider):
    """MangaDex manga search with batch rating statistics."""

    id = Source.MANGADEX
    name = "MangaDex"
    base_url = "https://api.mangadex.org"
    rate_limit = 120

    CONTENT_RATINGS = ["safe", "suggestive"]

    def translate_category(self, category: MediaCategory) -> str:
        if category != MediaCategory.MANGA:
            raise ValueError(f"MangaDex does not serve {category.value}")
        return 'manga'

    async def _search(
        self,
        client: httpx.AsyncClient,
        text: str,
        category: MediaCategory
    ) -> List[RawRecord]:
        resource = self.translate_category(category)
        response = await self._request(
            client,
            "GET",
            f"{self.base_url}/{resource}",
            params={
                "title": text,
                "limit": self.page_size,
                "includes[]": ["cover_art", "author"],
                "order[relevance]": "desc",
                "contentRating[]": self.CONTENT_RATINGS,
            }
        )

        records = self._records(response, 'data')
        ids = [record['id'] for record in records if isinstance(record.get('id'), str)]
        statistics = await self._fetch_statistics(client, ids)
        for record in records:
            stats = statistics.get(record.get('id'))
            if isinstance(stats, dict):
                record['statistics'] = stats
        return records

    async def _fetch_statistics(
        self,
        client: httpx.AsyncClient,
        ids: List[str]
    ) -> Dict[str, Any]:
        """Batch-fetch rating statistics keyed by manga id. Empty on failure."""
        if not ids:
            return {}
        try:
            response = await self._request(
                client,
                "GET",
                f"{self.base_url}/statistics/manga",
                params={"manga[]": ids}
            )
        except ProviderError as e:
            logger.info(f"{self.id.value}: statistics unavailable ({e.kind}), scores omitted")
            return {}

        statistics = response.get('statistics') if isinstance(response, dict) else None
        return statistics if isinstance(statistics, dict) else {}
