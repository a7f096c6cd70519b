import asyncio
import time

from kars_app.explore.config import (
    DEFAULT_MAX_RESULTS,
    DEFAULT_PROVIDER_LIMIT,
    DEFAULT_TIMEOUT,
    ExploreSettings,
)
from kars_app.explore.errors import RateLimited
from kars_app.explore.models import ExploreQuery, Source
from kars_app.explore.service import (
    ExploreService,
    build_providers,
    get_explore_service,
    reset_explore_service,
)

from conftest import FakeProvider, anilist_record


ENV_NAMES = (
    "TMDB_API_KEY",
    "EXPLORE_TIMEOUT",
    "EXPLORE_MAX_RESULTS",
    "EXPLORE_PROVIDER_LIMIT",
    "EXPLORE_USER_AGENT",
)


def clear_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    clear_env(monkeypatch)
    settings = ExploreSettings.from_env()
    assert settings.tmdb_api_key is None
    assert settings.timeout == DEFAULT_TIMEOUT
    assert settings.max_results == DEFAULT_MAX_RESULTS
    assert settings.provider_limit == DEFAULT_PROVIDER_LIMIT


def test_values_from_environment(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv("TMDB_API_KEY", "  token  ")
    monkeypatch.setenv("EXPLORE_TIMEOUT", "2.5")
    monkeypatch.setenv("EXPLORE_MAX_RESULTS", "25")
    monkeypatch.setenv("EXPLORE_PROVIDER_LIMIT", "500")
    monkeypatch.setenv("EXPLORE_USER_AGENT", "kars-test/1.0")

    settings = ExploreSettings.from_env()

    assert settings.tmdb_api_key == "token"
    assert settings.timeout == 2.5
    assert settings.max_results == 25
    assert settings.provider_limit == 50
    assert settings.user_agent == "kars-test/1.0"


def test_invalid_numbers_fall_back_to_defaults(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv("EXPLORE_TIMEOUT", "soon")
    monkeypatch.setenv("EXPLORE_MAX_RESULTS", "-4")
    monkeypatch.setenv("TMDB_API_KEY", "   ")

    settings = ExploreSettings.from_env()

    assert settings.timeout == DEFAULT_TIMEOUT
    assert settings.max_results == DEFAULT_MAX_RESULTS
    assert settings.tmdb_api_key is None


def test_build_providers_respects_tmdb_key():
    registry = build_providers(ExploreSettings(provider_limit=7))
    assert set(registry) == set(Source)
    assert not registry[Source.TMDB].is_eligible
    assert registry[Source.ANILIST].page_size == 7

    registry = build_providers(ExploreSettings(tmdb_api_key="key"))
    assert registry[Source.TMDB].is_eligible


def test_service_report_tracks_outcomes_and_skipped_records(settings):
    anilist = FakeProvider(Source.ANILIST, error=RateLimited("anilist"))
    openlibrary = FakeProvider(Source.OPENLIBRARY, records=[
        {"key": "/works/OL1W", "title": "Overlord"},
        {"key": "/works/OL2W", "title": "  "},
    ])
    service = ExploreService(settings, providers=[anilist, openlibrary])

    report = asyncio.run(service.run(ExploreQuery.parse("overlord", "light_novel")))

    assert [outcome.to_dict()["error"] for outcome in report.outcomes] == ["rate_limited", None]
    assert report.outcomes[1].source == Source.OPENLIBRARY
    assert report.skipped_records == 1
    assert [result.title for result in report.results] == ["Overlord"]


def test_search_sync_returns_ranked_results(settings):
    anilist = FakeProvider(Source.ANILIST, records=[anilist_record(1, "B", 70), anilist_record(2, "A", 80)])
    service = ExploreService(settings, providers={Source.ANILIST: anilist})

    results = service.search_sync(ExploreQuery.parse("ab", "anime"))

    assert [result.title for result in results] == ["A", "B"]
    assert service.get_provider("anilist") is anilist
    assert service.get_provider(Source.TMDB) is None


def test_display_line():
    anilist = FakeProvider(Source.ANILIST, records=[anilist_record(20, "Naruto", 79, episodes=220)])
    service = ExploreService(ExploreSettings(timeout=1.0), providers=[anilist])

    result = service.search_sync(ExploreQuery.parse("naruto", "anime"))[0]

    assert result.display_line(1) == "  1. Naruto [220 ep] ★ 7.9 - TV"


def test_global_service_is_shared_until_reset(monkeypatch):
    clear_env(monkeypatch)
    reset_explore_service()
    try:
        first = get_explore_service()
        assert get_explore_service() is first
        reset_explore_service()
        assert get_explore_service() is not first
    finally:
        reset_explore_service()


class BlockingLookupProvider(FakeProvider):
    """Stalls in a worker thread, like a DNS lookup that never answers."""

    async def _search(self, client, text, category):
        self.calls.append((text, category))
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, time.sleep, 2)
        return []


def test_search_sync_returns_at_the_deadline_despite_stuck_threads():
    stuck = BlockingLookupProvider(Source.ANILIST)
    service = ExploreService(ExploreSettings(timeout=0.2), providers=[stuck])

    start = time.monotonic()
    results = service.search_sync(ExploreQuery.parse("naruto", "anime"))
    elapsed = time.monotonic() - start

    assert results == []
    assert stuck.calls
    assert elapsed < 1.0


def test_oversized_numbers_do_not_fail_the_search(settings):
    huge = 10 ** 400
    anilist = FakeProvider(Source.ANILIST, records=[
        anilist_record(1, "Overflow", huge, episodes=huge),
        anilist_record(2, "Fine", 80),
    ])
    service = ExploreService(settings, providers=[anilist])

    results = service.search_sync(ExploreQuery.parse("overflow", "anime"))

    assert [(result.title, result.global_score) for result in results] == [("Fine", 8.0), ("Overflow", None)]
