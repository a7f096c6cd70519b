import pytest

from kars_app.explore.errors import NetworkError, ProviderTimeout, RateLimited
from kars_app.explore.models import Source

from conftest import FakeProvider, anilist_record


def all_providers(*overrides):
    providers = {source: FakeProvider(source) for source in Source}
    providers.update({provider.id: provider for provider in overrides})
    return providers


# =============================================================================
# Input validation
# =============================================================================

@pytest.mark.parametrize("query_string", [
    "q=a&type=anime",
    "q=%20%20x%20&type=anime",
    "type=anime",
    "q=naruto",
    "q=naruto&type=",
    "q=naruto&type=podcast",
])
def test_bad_input_is_400(make_client, query_string):
    providers = all_providers()
    client = make_client(providers)

    resp = client.get(f"/api/explore?{query_string}")

    assert resp.status_code == 400
    data = resp.get_json()
    assert data["code"] == "invalid_request"
    assert data["error"]
    assert all(not provider.calls for provider in providers.values())


# =============================================================================
# Search
# =============================================================================

def test_anime_search_ranks_anilist_results(make_client):
    anilist = FakeProvider(Source.ANILIST, records=[
        anilist_record(2, "Boruto", 60),
        anilist_record(1, "Naruto", 90),
    ])
    providers = all_providers(anilist)
    client = make_client(providers)

    resp = client.get("/api/explore?q=naruto&type=anime")

    assert resp.status_code == 200
    data = resp.get_json()
    assert [item["title"] for item in data] == ["Naruto", "Boruto"]
    assert [item["global_score"] for item in data] == [9.0, 6.0]
    assert data[0] == {
        "title": "Naruto",
        "media_type": "anime",
        "global_score": 9.0,
        "external_id": "1",
        "poster_url": "https://img.anili.st/1.jpg",
        "source": "anilist",
        "total_episodes": 12,
        "format_label": "TV",
    }
    assert anilist.calls[0][0] == "naruto"
    for source in (Source.TMDB, Source.MANGADEX, Source.OPENLIBRARY):
        assert providers[source].calls == []


def test_category_is_case_insensitive(make_client):
    anilist = FakeProvider(Source.ANILIST, records=[anilist_record(1, "Naruto", 90)])
    client = make_client({Source.ANILIST: anilist})

    resp = client.get("/api/explore?q=naruto&type=ANIME")

    assert resp.status_code == 200
    assert len(resp.get_json()) == 1


def test_manga_merges_both_providers(make_client):
    mangadex = FakeProvider(Source.MANGADEX, records=[{
        "id": "uuid-1",
        "attributes": {"title": {"en": "Berserk"}, "originalLanguage": "ja"},
        "statistics": {"rating": {"bayesian": 9.2}},
    }])
    anilist = FakeProvider(Source.ANILIST, records=[
        anilist_record(30002, "Berserk", 94, type="MANGA", format="MANGA", chapters=380),
    ])
    client = make_client({Source.ANILIST: anilist, Source.MANGADEX: mangadex})

    data = client.get("/api/explore?q=berserk&type=manga").get_json()

    assert [(item["source"], item["global_score"]) for item in data] == [
        ("anilist", 9.4),
        ("mangadex", 9.2),
    ]


def test_failing_providers_still_return_200(make_client):
    anilist = FakeProvider(Source.ANILIST, error=RateLimited("anilist", "HTTP 429"))
    openlibrary = FakeProvider(Source.OPENLIBRARY, records=[
        {"key": "/works/OL1W", "title": "Overlord", "ratings_average": 4.0},
        {"key": "/works/OL2W"},
    ])
    client = make_client({Source.ANILIST: anilist, Source.OPENLIBRARY: openlibrary})

    resp = client.get("/api/explore?q=overlord&type=light_novel")

    assert resp.status_code == 200
    data = resp.get_json()
    assert [item["title"] for item in data] == ["Overlord"]
    assert data[0]["global_score"] == 8.0
    assert data[0]["external_id"] == "OL1W"


def test_three_of_four_failing_providers(make_client):
    providers = {
        Source.ANILIST: FakeProvider(Source.ANILIST, error=NetworkError("anilist", "HTTP 500")),
        Source.MANGADEX: FakeProvider(Source.MANGADEX, error=ProviderTimeout("mangadex")),
        Source.TMDB: FakeProvider(Source.TMDB, error=RateLimited("tmdb")),
        Source.OPENLIBRARY: FakeProvider(Source.OPENLIBRARY, records=[{"key": "/works/OL9W", "title": "Dune"}]),
    }
    client = make_client(providers)

    for category in ("anime", "manga", "movie"):
        resp = client.get(f"/api/explore?q=dune&type={category}")
        assert resp.status_code == 200
        assert resp.get_json() == []

    resp = client.get("/api/explore?q=dune&type=book")
    assert [item["title"] for item in resp.get_json()] == ["Dune"]


def test_all_providers_hanging_returns_empty_list(make_client, settings):
    settings.timeout = 0.2
    anilist = FakeProvider(Source.ANILIST, delay=30)
    mangadex = FakeProvider(Source.MANGADEX, delay=30)
    client = make_client({Source.ANILIST: anilist, Source.MANGADEX: mangadex}, settings)

    resp = client.get("/api/explore?q=naruto&type=manga")

    assert resp.status_code == 200
    assert resp.get_json() == []


def test_category_without_eligible_provider_is_empty(make_client):
    client = make_client({Source.ANILIST: FakeProvider(Source.ANILIST)})

    resp = client.get("/api/explore?q=dune&type=movie")

    assert resp.status_code == 200
    assert resp.get_json() == []


def test_results_are_capped(make_client, settings):
    settings.max_results = 5
    records = [anilist_record(i, f"Show {i}", 50 + i) for i in range(1, 21)]
    client = make_client({Source.ANILIST: FakeProvider(Source.ANILIST, records=records)}, settings)

    data = client.get("/api/explore?q=show&type=anime").get_json()

    assert len(data) == 5
    assert data[0]["title"] == "Show 20"


# =============================================================================
# Providers and health
# =============================================================================

def test_providers_endpoint(make_client):
    client = make_client(all_providers())

    resp = client.get("/api/explore/providers")

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["count"] == 4
    assert [info["id"] for info in data["providers"]] == ["anilist", "tmdb", "mangadex", "openlibrary"]
    assert all(info["eligible"] for info in data["providers"])


def test_health(make_client):
    resp = make_client({}).get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
