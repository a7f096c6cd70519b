"""
KARS Explore Providers

One adapter per external catalog:
- AniListProvider: anime, manga, light novels (GraphQL)
- TmdbProvider: movies and series (REST, API key)
- MangaDexProvider: manga (REST)
- OpenLibraryProvider: books and light novels (REST)
"""

from .base import BaseSearchProvider, TokenBucket
from .anilist import AniListProvider
from .tmdb import TmdbProvider
from .mangadex import MangaDexProvider
from .openlibrary import OpenLibraryProvider

__all__ = [
    'BaseSearchProvider',
    'TokenBucket',
    'AniListProvider',
    'TmdbProvider',
    'MangaDexProvider',
    'OpenLibraryProvider',
]
