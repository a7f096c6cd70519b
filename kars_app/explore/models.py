"""
================================================================================
KARS - Explore Models
================================================================================
Value types shared by the Explore pipeline:

  query -> router -> dispatcher -> normalizer -> aggregator -> ranked list

Only NormalizedResult crosses component boundaries after ingestion. Provider
records (RawRecord) stay inside the adapter that produced them until the
normalizer converts them.
================================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum

from .errors import InvalidCategory, QueryTooShort, ProviderError


MIN_QUERY_LENGTH = 2

# Provider-native decoded JSON record
RawRecord = Dict[str, Any]


# =============================================================================
# ENUMS
# =============================================================================

class MediaCategory(str, Enum):
    """Media kind requested by the user."""
    ANIME = "anime"
    MOVIE = "movie"
    SERIES = "series"
    MANGA = "manga"
    BOOK = "book"
    LIGHT_NOVEL = "light_novel"

    @classmethod
    def parse(cls, value) -> "MediaCategory":
        """Coerce a string (or category) into a MediaCategory, never defaulting."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidCategory(value)


class Source(str, Enum):
    """External catalogs the Explore pipeline can query."""
    ANILIST = "anilist"
    TMDB = "tmdb"
    MANGADEX = "mangadex"
    OPENLIBRARY = "openlibrary"


class MediaType(str, Enum):
    """Kind of a normalized result, as the library understands it."""
    ANIME = "anime"
    MOVIE = "movie"
    SERIES = "series"
    MANGA = "manga"
    MANHWA = "manhwa"
    WEBTOON = "webtoon"
    BOOK = "book"
    LIGHT_NOVEL = "light_novel"


# =============================================================================
# DATA MODELS
# =============================================================================

@dataclass(frozen=True)
class ExploreQuery:
    """One user search. Built per request and discarded with the response."""
    text: str
    category: MediaCategory

    @classmethod
    def parse(cls, text: Optional[str], category) -> "ExploreQuery":
        """
        Validate raw input into a query.

        Raises:
            QueryTooShort: text has fewer than 2 characters after stripping
            InvalidCategory: category is not one of MediaCategory
        """
        cleaned = (text or "").strip()
        if len(cleaned) < MIN_QUERY_LENGTH:
            raise QueryTooShort(cleaned, MIN_QUERY_LENGTH)
        return cls(text=cleaned, category=MediaCategory.parse(category))


@dataclass(frozen=True)
class NormalizedResult:
    """
    Provider-independent search result.

    global_score is always on a 0-10 scale, or None when the provider had no
    usable score. external_id is None when the provider record had no id.
    """
    title: str
    media_type: MediaType
    source: Source
    format_label: str
    global_score: Optional[float] = None
    external_id: Optional[str] = None
    poster_url: Optional[str] = None
    total_episodes: Optional[int] = None

    @property
    def dedup_key(self):
        if self.external_id is None:
            return None
        return (self.source, self.external_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'media_type': self.media_type.value,
            'global_score': self.global_score,
            'external_id': self.external_id,
            'poster_url': self.poster_url,
            'source': self.source.value,
            'total_episodes': self.total_episodes,
            'format_label': self.format_label,
        }

    def display_line(self, index: int) -> str:
        """Single terminal line: `1. Title [24 ep] ★ 8.5 - TV`."""
        count = ""
        if self.total_episodes is not None:
            unit = "ep" if self.media_type in (MediaType.ANIME, MediaType.SERIES) else "ch"
            if self.media_type == MediaType.BOOK:
                unit = "p"
            count = f" [{self.total_episodes} {unit}]"
        score = f" ★ {self.global_score:.1f}" if self.global_score is not None else ""
        return f"  {index}. {self.title}{count}{score} - {self.format_label}"


@dataclass
class ProviderOutcome:
    """Result of one provider call during a fan-out: records or an error."""
    source: Source
    results: Optional[List[RawRecord]] = None
    error: Optional[ProviderError] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source.value,
            'ok': self.ok,
            'count': len(self.results or []),
            'error': self.error.kind if self.error else None,
            'elapsed_ms': self.elapsed_ms,
        }


@dataclass
class ProviderInfo:
    """Provider description for the providers endpoint."""
    id: str
    name: str
    base_url: str
    categories: List[str] = field(default_factory=list)
    requires_api_key: bool = False
    eligible: bool = True
    rate_limit: int = 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'base_url': self.base_url,
            'categories': list(self.categories),
            'requires_api_key': self.requires_api_key,
            'eligible': self.eligible,
            'rate_limit': self.rate_limit,
        }
