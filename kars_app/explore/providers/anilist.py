"""
================================================================================
KARS - AniList Provider
================================================================================
GraphQL client for AniList API.

AniList Features:
  - Anime, manga and light novels in one graph
  - GraphQL = fetch exactly what we need (efficient)
  - 90 requests/min rate limit
  - No authentication required for search

API Docs: https://anilist.gitbook.io/anilist-apiv2-docs/
GraphiQL: https://anilist.co/graphiql
================================================================================
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

import httpx

from .base import BaseSearchProvider
from ..errors import MalformedResponse, RateLimited
from ..models import MediaCategory, RawRecord, Source

logger = logging.getLogger(__name__)


class AniListProvider(BaseSearchProvider):
    """
    AniList GraphQL API provider.

    Serves anime, manga and light novels. Light novels are manga-typed media
    with the NOVEL format.
    """

    id = Source.ANILIST
    name = "AniList"
    base_url = "https://graphql.anilist.co"
    rate_limit = 90  # 90 requests per minute

    SEARCH_QUERY = """
    query ($search: String, $type: MediaType, $format: MediaFormat, $perPage: Int) {
      Page(page: 1, perPage: $perPage) {
        media(search: $search, type: $type, format: $format, sort: SEARCH_MATCH) {
          id
          type
          title {
            romaji
            english
          }
          episodes
          chapters
          meanScore
          coverImage {
            large
          }
          format
          countryOfOrigin
        }
      }
    }
    """

    CATEGORY_MAP: Dict[MediaCategory, Tuple[str, Optional[str]]] = {
        MediaCategory.ANIME: ('ANIME', None),
        MediaCategory.MANGA: ('MANGA', None),
        MediaCategory.LIGHT_NOVEL: ('MANGA', 'NOVEL'),
    }

    def translate_category(self, category: MediaCategory) -> Tuple[str, Optional[str]]:
        """(MediaType, MediaFormat filter) for a category."""
        if category not in self.CATEGORY_MAP:
            raise ValueError(f"AniList does not serve {category.value}")
        return self.CATEGORY_MAP[category]

    def build_payload(self, text: str, category: MediaCategory) -> Dict[str, Any]:
        media_type, media_format = self.translate_category(category)
        variables: Dict[str, Any] = {
            "search": text,
            "type": media_type,
            "perPage": self.page_size,
        }
        if media_format:
            variables["format"] = media_format
        return {"query": self.SEARCH_QUERY, "variables": variables}

    async def _search(
        self,
        client: httpx.AsyncClient,
        text: str,
        category: MediaCategory
    ) -> List[RawRecord]:
        response = await self._request(
            client,
            "POST",
            self.base_url,
            json=self.build_payload(text, category)
        )

        if isinstance(response, dict) and response.get('errors') and not response.get('data'):
            self._raise_graphql_errors(response['errors'])

        return self._records(response, 'data', 'Page', 'media')

    def _raise_graphql_errors(self, errors: Any):
        if not isinstance(errors, list):
            raise MalformedResponse(self.id.value, "unexpected 'errors' payload")

        messages = []
        for error in errors:
            if not isinstance(error, dict):
                continue
            if error.get('status') == 429:
                raise RateLimited(self.id.value, "GraphQL status 429")
            messages.append(str(error.get('message', 'unknown error')))

        raise MalformedResponse(self.id.value, ", ".join(messages) or "GraphQL error")
