"""
Rate limiting configuration for the KARS API.

Uses Flask-Limiter to protect API endpoints from abuse.

Rate Limit Tiers:
- Search: /api/explore (fans out to external catalogs)
- Light: /api/explore/providers, /api/health (cheap reads)
"""

import os
from flask import jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize limiter (will be attached to app in create_app)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    storage_uri=os.environ.get("RATELIMIT_STORAGE_URI", "memory://"),
    strategy="fixed-window",
    headers_enabled=True,  # Add X-RateLimit-* headers to responses
)


# ==============================================================================
# RATE LIMIT TIERS
# ==============================================================================

# Explore searches hit up to four upstream catalogs each
SEARCH_LIMIT = "60 per minute"

# Light operations - fast reads
LIGHT_LIMIT = "120 per minute"


# ==============================================================================
# RATE LIMIT DECORATORS
# ==============================================================================

def limit_search(f):
    """Apply the search rate limit to fan-out endpoints."""
    return limiter.limit(SEARCH_LIMIT)(f)


def limit_light(f):
    """Apply light rate limit to cheap operations."""
    return limiter.limit(LIGHT_LIMIT)(f)


# ==============================================================================
# ERROR HANDLER
# ==============================================================================

def rate_limit_exceeded_handler(e):
    """JSON body for rate limit exceeded errors (every endpoint is an API)."""
    retry_after = getattr(e, 'retry_after', None) or 60
    response = jsonify({
        "error": "Rate limit exceeded",
        "code": "rate_limited",
        "message": str(e.description),
        "retry_after": retry_after
    })
    response.status_code = 429
    response.headers['Retry-After'] = str(retry_after)
    return response


# ==============================================================================
# INITIALIZATION
# ==============================================================================

def init_rate_limiting(app):
    """
    Initialize rate limiting for a Flask app.

    Call this in create_app() after app configuration.
    """
    if app.config.get('DISABLE_RATE_LIMITING'):
        app.config['RATELIMIT_ENABLED'] = False

    limiter.init_app(app)

    # Register custom error handler
    app.errorhandler(429)(rate_limit_exceeded_handler)

    return limiter
