"""
================================================================================
KARS - Open Library Provider
================================================================================
Open Library search API (books, and light novels by subject).

No authentication. Only the fields we normalize are requested, which keeps
responses small.

API Docs: https://openlibrary.org/dev/docs/api/search
================================================================================
"""

from typing import List
import logging

import httpx

from .base import BaseSearchProvider
from ..models import MediaCategory, RawRecord, Source

logger = logging.getLogger(__name__)


class OpenLibraryProvider(BaseSearchProvider):
    """Open Library /search.json provider."""

    id = Source.OPENLIBRARY
    name = "Open Library"
    base_url = "https://openlibrary.org"
    rate_limit = 60

    FIELDS = ",".join([
        "key",
        "title",
        "author_name",
        "first_publish_year",
        "cover_i",
        "number_of_pages_median",
        "ratings_average",
    ])

    LIGHT_NOVEL_SUBJECT = 'subject:"light novels"'

    def translate_category(self, category: MediaCategory) -> str:
        """Extra query clause for the category ('' for plain books)."""
        if category == MediaCategory.BOOK:
            return ""
        if category == MediaCategory.LIGHT_NOVEL:
            return self.LIGHT_NOVEL_SUBJECT
        raise ValueError(f"Open Library does not serve {category.value}")

    def build_query(self, text: str, category: MediaCategory) -> str:
        clause = self.translate_category(category)
        return f"{text} {clause}" if clause else text

    async def _search(
        self,
        client: httpx.AsyncClient,
        text: str,
        category: MediaCategory
    ) -> List[RawRecord]:
        response = await self._request(
            client,
            "GET",
            f"{self.base_url}/search.json",
            params={
                "q": self.build_query(text, category),
                "fields": self.FIELDS,
                "limit": self.page_size,
            }
        )
        return self._records(response, 'docs')
