"""
================================================================================
KARS - TMDB Provider
================================================================================
REST client for The Movie Database API v3.

TMDB Features:
  - Movies and TV series
  - Requires an API read access token (TMDB_API_KEY), sent as Bearer auth
  - Without a key the provider reports itself ineligible and is skipped

API Docs: https://developer.themoviedb.org/reference/search-movie
================================================================================
"""

from typing import Dict, List
import logging

import httpx

from .base import BaseSearchProvider
from ..models import MediaCategory, RawRecord, Source

logger = logging.getLogger(__name__)


class TmdbProvider(BaseSearchProvider):
    """TMDB search for movies (/search/movie) and series (/search/tv)."""

    id = Source.TMDB
    name = "TMDB"
    base_url = "https://api.themoviedb.org/3"
    requires_api_key = True
    rate_limit = 240

    CATEGORY_MAP: Dict[MediaCategory, str] = {
        MediaCategory.MOVIE: 'movie',
        MediaCategory.SERIES: 'tv',
    }

    def translate_category(self, category: MediaCategory) -> str:
        if category not in self.CATEGORY_MAP:
            raise ValueError(f"TMDB does not serve {category.value}")
        return self.CATEGORY_MAP[category]

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.api_key:
            headers['Authorization'] = f"Bearer {self.api_key}"
        return headers

    async def _search(
        self,
        client: httpx.AsyncClient,
        text: str,
        category: MediaCategory
    ) -> List[RawRecord]:
        kind = self.translate_category(category)
        response = await self._request(
            client,
            "GET",
            f"{self.base_url}/search/{kind}",
            params={
                "query": text,
                "include_adult": "false",
                "language": "en-US",
                "page": 1,
            }
        )

        records = self._records(response, 'results')[:self.page_size]
        # Tag with TMDB's own media_type vocabulary, as /search/multi does
        for record in records:
            record.setdefault('media_type', kind)
        return records
