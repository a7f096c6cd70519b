import asyncio
import os
from typing import Any, Callable, List, Optional

import httpx
import pytest

# Keep tests quiet: no debug event file
os.environ.setdefault("DEBUG_LOGGING", "false")

from kars_app import create_app
from kars_app.explore.config import ExploreSettings
from kars_app.explore.models import MediaCategory, Source
from kars_app.explore.providers.base import BaseSearchProvider, TokenBucket
from kars_app.explore.service import ExploreService


class FakeProvider(BaseSearchProvider):
    """In-memory provider: canned records, optional delay or error."""

    name = "Fake"
    base_url = "memory://fake"

    def __init__(
        self,
        source: Source,
        records: Optional[List[dict]] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ):
        super().__init__(rate_limiter=TokenBucket(6000))
        self.id = source
        self.records = records or []
        self.delay = delay
        self.error = error
        self.calls = []

    def translate_category(self, category: MediaCategory) -> str:
        return category.value

    async def _search(self, client, text, category):
        self.calls.append((text, category))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [dict(record) for record in self.records]


def anilist_record(media_id: int, title: str, score: Optional[int], **extra: Any) -> dict:
    record = {
        "id": media_id,
        "type": "ANIME",
        "title": {"romaji": title, "english": title},
        "episodes": 12,
        "chapters": None,
        "meanScore": score,
        "coverImage": {"large": f"https://img.anili.st/{media_id}.jpg"},
        "format": "TV",
        "countryOfOrigin": "JP",
    }
    record.update(extra)
    return record


def mock_transport(handler: Callable[[httpx.Request], httpx.Response], calls: Optional[list] = None):
    """httpx.MockTransport that also records every request it sees."""
    def _handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return handler(request)
    return httpx.MockTransport(_handler)


@pytest.fixture
def settings():
    return ExploreSettings(tmdb_api_key="test-key", timeout=1.0, max_results=60, provider_limit=20)


@pytest.fixture
def make_client():
    """Build a Flask test client around an ExploreService with given providers."""
    def _make(providers, settings: Optional[ExploreSettings] = None):
        service = ExploreService(settings or ExploreSettings(timeout=1.0), providers=providers)
        app = create_app({
            "TESTING": True,
            "DISABLE_RATE_LIMITING": True,
            "EXPLORE_SERVICE": service,
        })
        return app.test_client()
    return _make
