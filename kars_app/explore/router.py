"""Query router: which providers may serve a media category."""

import logging
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Mapping, Sequence

from .models import MediaCategory, Source

if TYPE_CHECKING:
    from .providers.base import BaseSearchProvider

logger = logging.getLogger(__name__)


ROUTING_TABLE: Dict[MediaCategory, FrozenSet[Source]] = {
    MediaCategory.ANIME: frozenset({Source.ANILIST}),
    MediaCategory.MOVIE: frozenset({Source.TMDB}),
    MediaCategory.SERIES: frozenset({Source.TMDB}),
    MediaCategory.MANGA: frozenset({Source.MANGADEX, Source.ANILIST}),
    MediaCategory.BOOK: frozenset({Source.OPENLIBRARY}),
    MediaCategory.LIGHT_NOVEL: frozenset({Source.OPENLIBRARY, Source.ANILIST}),
}

# Fixed provider iteration order. Dispatch outcomes, and therefore dedup
# tie-breaks, follow this order rather than network arrival order.
PROVIDER_ORDER: Sequence[Source] = (
    Source.ANILIST,
    Source.TMDB,
    Source.MANGADEX,
    Source.OPENLIBRARY,
)


def route(category) -> FrozenSet[Source]:
    """
    Get the providers eligible to serve a category.

    Raises:
        InvalidCategory: category is not a known MediaCategory
    """
    return ROUTING_TABLE[MediaCategory.parse(category)]


def categories_for(source: Source) -> List[MediaCategory]:
    """Categories a provider serves, in MediaCategory declaration order."""
    return [category for category in MediaCategory if source in ROUTING_TABLE[category]]


def providers_for(category, registry: Mapping[Source, "BaseSearchProvider"]) -> list:
    """
    Resolve the routed providers to instances, in PROVIDER_ORDER.

    Providers missing from the registry or reporting themselves ineligible
    are skipped silently.
    """
    eligible = route(category)
    selected = []
    for source in PROVIDER_ORDER:
        if source not in eligible:
            continue
        provider = registry.get(source)
        if provider is None:
            continue
        if not provider.is_eligible:
            logger.debug(f"Skipping ineligible provider {source.value}")
            continue
        selected.append(provider)
    return selected
