"""
================================================================================
KARS - Explore API Routes
================================================================================
Flask blueprint for cross-provider search.

ENDPOINTS:
  GET  /api/explore?q=<text>&type=<category>  - Ranked results from all
                                               eligible providers
  GET  /api/explore/providers                 - Provider list and eligibility

Provider failures never surface here: a search that no provider could
answer is a 200 with an empty array. Only malformed input is a 400.
================================================================================
"""

from typing import Optional

from flask import Blueprint, current_app, jsonify, request

from ..explore.service import ExploreService, get_explore_service
from ..log import log
from ..rate_limit import limit_light, limit_search
from .validators import validate_explore_params


explore_bp = Blueprint('explore_api', __name__, url_prefix='/api/explore')


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error(message: str, detail: Optional[str] = None, code: str = 'invalid_request', status: int = 400):
    payload = {'error': message, 'code': code}
    if detail:
        payload['detail'] = detail
    return jsonify(payload), status


def _service() -> ExploreService:
    """Service injected by create_app(), else the process-wide one."""
    service = current_app.extensions.get('kars_explore')
    if service is None:
        service = get_explore_service()
        current_app.extensions['kars_explore'] = service
    return service


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@explore_bp.route('', methods=['GET'])
@limit_search
def explore():
    """
    Search external catalogs.

    Query:
        q     - search text, at least 2 characters
        type  - anime | movie | series | manga | book | light_novel

    Returns:
        [
            {
                "title": "Naruto",
                "media_type": "anime",
                "global_score": 7.9,
                "external_id": "20",
                "poster_url": "https://...",
                "source": "anilist",
                "total_episodes": 220,
                "format_label": "TV"
            },
            ...
        ]
    """
    query, error = validate_explore_params(request.args.get('q'), request.args.get('type'))
    if error:
        return _error(error)

    try:
        results = _service().search_sync(query)
    except Exception as e:
        current_app.logger.exception("Explore search failed")
        log(f"❌ Explore search failed for '{query.text}': {e}")
        return _error('Search failed', code='internal_error', status=500)

    return jsonify([result.to_dict() for result in results])


@explore_bp.route('/providers', methods=['GET'])
@limit_light
def providers():
    """
    List Explore providers.

    Returns:
        {
            "providers": [
                {
                    "id": "anilist",
                    "name": "AniList",
                    "base_url": "https://graphql.anilist.co",
                    "categories": ["anime", "manga", "light_novel"],
                    "requires_api_key": false,
                    "eligible": true,
                    "rate_limit": 90
                },
                ...
            ],
            "count": 4
        }
    """
    infos = [info.to_dict() for info in _service().describe_providers()]
    return jsonify({'providers': infos, 'count': len(infos)})
