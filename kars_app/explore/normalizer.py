"""
================================================================================
KARS - Schema Normalizer
================================================================================
Maps provider-native records into NormalizedResult.

Score scales live here and only here:

  AniList      meanScore                    0-100   -> / 10
  TMDB         vote_average                 0-10    -> pass through (0 = no votes)
  MangaDex     statistics.rating.bayesian   0-10    -> pass through (0 = unrated)
  Open Library ratings_average              1-5     -> x 2

Missing fields become None. Nothing here invents values that look like real
data: a missing score is None, never 0.
================================================================================
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .models import MediaType, NormalizedResult, RawRecord, Source


TARGET_SCALE = 10.0

TMDB_POSTER_BASE = "https://image.tmdb.org/t/p/w500"
MANGADEX_COVER_BASE = "https://uploads.mangadex.org/covers"
OPENLIBRARY_COVER_BASE = "https://covers.openlibrary.org/b/id"

UNKNOWN_TITLE = "Unknown"


# =============================================================================
# SCORE SCALES
# =============================================================================

@dataclass(frozen=True)
class ScoreScale:
    """Native score range of a provider."""
    scale_max: float
    zero_is_absent: bool = False  # Provider reports 0 when nobody has rated


SCORE_SCALES: Dict[Source, ScoreScale] = {
    Source.ANILIST: ScoreScale(scale_max=100.0),
    Source.TMDB: ScoreScale(scale_max=10.0, zero_is_absent=True),
    Source.MANGADEX: ScoreScale(scale_max=10.0, zero_is_absent=True),
    Source.OPENLIBRARY: ScoreScale(scale_max=5.0),
}


def convert_score(value: Any, source: Source) -> Optional[float]:
    """
    Convert a provider-native score to the 0-10 scale.

    Non-numeric values (including booleans and NaN) map to None. A 0-10
    provider's score passes through unchanged apart from clamping.
    """
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        # JSON integers are unbounded
        return None
    if math.isnan(value) or math.isinf(value):
        return None

    scale = SCORE_SCALES[Source(source)]
    if scale.zero_is_absent and value == 0:
        return None

    if scale.scale_max == TARGET_SCALE:
        score = value
    else:
        score = value / (scale.scale_max / TARGET_SCALE)
    return min(max(score, 0.0), TARGET_SCALE)


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _count(value: Any) -> Optional[int]:
    """Non-negative integer count, or None. Accepts numeric strings ("112.5")."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number) or number < 0:
        return None
    return int(number)


def _identifier(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        text = str(value).strip()
        return text or None
    return None


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _year(date: Any) -> str:
    text = _text(date)
    if text and len(text) >= 4 and text[:4].isdigit():
        return text[:4]
    return "?"


# =============================================================================
# ANILIST
# =============================================================================

ANILIST_ANIME_FORMATS = {
    'TV': "TV",
    'TV_SHORT': "TV Short",
    'OVA': "OVA",
    'ONA': "ONA",
    'SPECIAL': "Special",
    'MUSIC': "Music",
    'MOVIE': "Movie",
}


def normalize_anilist(record: RawRecord) -> NormalizedResult:
    title_obj = _dict(record.get('title'))
    title = _text(title_obj.get('english')) or _text(title_obj.get('romaji')) or UNKNOWN_TITLE

    media_format = _text(record.get('format'))
    media_kind = _text(record.get('type'))
    if media_kind is None:
        media_kind = 'ANIME' if media_format in ANILIST_ANIME_FORMATS else 'MANGA'

    if media_kind == 'ANIME':
        if media_format == 'MOVIE':
            media_type = MediaType.MOVIE
        else:
            media_type = MediaType.ANIME
        format_label = ANILIST_ANIME_FORMATS.get(media_format, media_format or "Anime")
        total = _count(record.get('episodes'))
    else:
        country = _text(record.get('countryOfOrigin')) or 'JP'
        if media_format == 'NOVEL':
            media_type, format_label = MediaType.LIGHT_NOVEL, "Light Novel"
        elif country == 'KR':
            media_type, format_label = MediaType.MANHWA, "Manhwa"
        elif country in ('CN', 'TW'):
            media_type, format_label = MediaType.MANGA, "Manhua"
        elif media_format == 'ONE_SHOT':
            media_type, format_label = MediaType.MANGA, "One Shot"
        else:
            media_type, format_label = MediaType.MANGA, "Manga"
        total = _count(record.get('chapters'))

    return NormalizedResult(
        title=title,
        media_type=media_type,
        source=Source.ANILIST,
        format_label=format_label,
        global_score=convert_score(record.get('meanScore'), Source.ANILIST),
        external_id=_identifier(record.get('id')),
        poster_url=_text(_dict(record.get('coverImage')).get('large')),
        total_episodes=total,
    )


# =============================================================================
# TMDB
# =============================================================================

def normalize_tmdb(record: RawRecord) -> NormalizedResult:
    poster_path = _text(record.get('poster_path'))

    if record.get('media_type') == 'tv':
        title = _text(record.get('name')) or _text(record.get('original_name')) or UNKNOWN_TITLE
        media_type = MediaType.SERIES
        format_label = f"TV Series ({_year(record.get('first_air_date'))})"
    else:
        title = _text(record.get('title')) or _text(record.get('original_title')) or UNKNOWN_TITLE
        media_type = MediaType.MOVIE
        format_label = f"Movie ({_year(record.get('release_date'))})"

    return NormalizedResult(
        title=title,
        media_type=media_type,
        source=Source.TMDB,
        format_label=format_label,
        global_score=convert_score(record.get('vote_average'), Source.TMDB),
        external_id=_identifier(record.get('id')),
        poster_url=f"{TMDB_POSTER_BASE}{poster_path}" if poster_path else None,
        total_episodes=None,
    )


# =============================================================================
# MANGADEX
# =============================================================================

def _mangadex_title(title_obj: Dict[str, Any]) -> str:
    # English, then romanized Japanese, then Japanese, then whatever exists
    for lang in ('en', 'ja-ro', 'ja'):
        title = _text(title_obj.get(lang))
        if title:
            return title
    for value in title_obj.values():
        title = _text(value)
        if title:
            return title
    return UNKNOWN_TITLE


def _mangadex_relationship(record: RawRecord, rel_type: str) -> Dict[str, Any]:
    relationships = record.get('relationships')
    if not isinstance(relationships, list):
        return {}
    for rel in relationships:
        if isinstance(rel, dict) and rel.get('type') == rel_type:
            return _dict(rel.get('attributes'))
    return {}


def _mangadex_has_tag(attributes: Dict[str, Any], name: str) -> bool:
    tags = attributes.get('tags')
    if not isinstance(tags, list):
        return False
    for tag in tags:
        tag_name = _text(_dict(_dict(_dict(tag).get('attributes')).get('name')).get('en'))
        if tag_name and tag_name.lower() == name.lower():
            return True
    return False


def normalize_mangadex(record: RawRecord) -> NormalizedResult:
    attributes = _dict(record.get('attributes'))
    manga_id = _identifier(record.get('id'))

    language = _text(attributes.get('originalLanguage')) or 'ja'
    if language == 'ko':
        if _mangadex_has_tag(attributes, "Long Strip"):
            media_type, kind_label = MediaType.WEBTOON, "Webtoon"
        else:
            media_type, kind_label = MediaType.MANHWA, "Manhwa"
    elif language in ('zh', 'zh-hk'):
        media_type, kind_label = MediaType.MANGA, "Manhua"
    else:
        media_type, kind_label = MediaType.MANGA, "Manga"

    author = _text(_mangadex_relationship(record, 'author').get('name')) or "Unknown"
    year = _count(attributes.get('year'))
    status = _text(attributes.get('status')) or "unknown"
    format_label = f"{kind_label} · {author} ({year if year is not None else '?'}, {status})"

    poster_url = None
    cover_file = _text(_mangadex_relationship(record, 'cover_art').get('fileName'))
    if cover_file and manga_id:
        poster_url = f"{MANGADEX_COVER_BASE}/{manga_id}/{cover_file}.256.jpg"

    rating = _dict(_dict(record.get('statistics')).get('rating'))

    return NormalizedResult(
        title=_mangadex_title(_dict(attributes.get('title'))),
        media_type=media_type,
        source=Source.MANGADEX,
        format_label=format_label,
        global_score=convert_score(rating.get('bayesian'), Source.MANGADEX),
        external_id=manga_id,
        poster_url=poster_url,
        total_episodes=_count(attributes.get('lastChapter')),
    )


# =============================================================================
# OPEN LIBRARY
# =============================================================================

def _openlibrary_work_id(key: Any) -> Optional[str]:
    # "/works/OL27448W" -> "OL27448W"
    text = _text(key)
    if not text:
        return None
    return text.rstrip('/').rsplit('/', 1)[-1] or None


def normalize_openlibrary(record: RawRecord) -> NormalizedResult:
    authors = record.get('author_name')
    author = None
    if isinstance(authors, list) and authors:
        author = _text(authors[0])
    year = _count(record.get('first_publish_year'))
    cover_id = _count(record.get('cover_i'))

    return NormalizedResult(
        title=_text(record.get('title')) or UNKNOWN_TITLE,
        media_type=MediaType.BOOK,
        source=Source.OPENLIBRARY,
        format_label=f"{author or 'Unknown'} ({year if year is not None else '?'})",
        global_score=convert_score(record.get('ratings_average'), Source.OPENLIBRARY),
        external_id=_openlibrary_work_id(record.get('key')),
        poster_url=f"{OPENLIBRARY_COVER_BASE}/{cover_id}-M.jpg" if cover_id else None,
        total_episodes=_count(record.get('number_of_pages_median')),
    )


# =============================================================================
# DISPATCH
# =============================================================================

NORMALIZERS: Dict[Source, Callable[[RawRecord], NormalizedResult]] = {
    Source.ANILIST: normalize_anilist,
    Source.TMDB: normalize_tmdb,
    Source.MANGADEX: normalize_mangadex,
    Source.OPENLIBRARY: normalize_openlibrary,
}


def usable(record: Any, source: Source) -> bool:
    """Whether a raw record can be normalized at all."""
    if not isinstance(record, dict):
        return False
    if Source(source) == Source.OPENLIBRARY:
        # Untitled docs are catalog noise, not candidates
        return _text(record.get('title')) is not None
    return True


def normalize(record: RawRecord, source: Source) -> NormalizedResult:
    """Convert one provider-native record into a NormalizedResult."""
    return NORMALIZERS[Source(source)](record)
