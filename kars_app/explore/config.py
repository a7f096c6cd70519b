"""
Explore configuration.

Values come from the environment (populated from .env by load_dotenv() in the
application package). Invalid numbers fall back to defaults with a warning.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_RESULTS = 60
DEFAULT_PROVIDER_LIMIT = 20
MAX_PROVIDER_LIMIT = 50
DEFAULT_USER_AGENT = "kars-archive/0.1 (+https://github.com/kars)"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using {default}")
        return default
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using {default}")
        return default
    return value


@dataclass
class ExploreSettings:
    """Configuration for the Explore pipeline."""
    tmdb_api_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT            # Shared fan-out deadline (seconds)
    max_results: int = DEFAULT_MAX_RESULTS      # Aggregated response bound
    provider_limit: int = DEFAULT_PROVIDER_LIMIT  # First-page size per provider
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self):
        if self.tmdb_api_key is not None:
            self.tmdb_api_key = self.tmdb_api_key.strip() or None
        self.provider_limit = max(1, min(self.provider_limit, MAX_PROVIDER_LIMIT))

    @classmethod
    def from_env(cls) -> "ExploreSettings":
        return cls(
            tmdb_api_key=os.environ.get('TMDB_API_KEY'),
            timeout=_env_float('EXPLORE_TIMEOUT', DEFAULT_TIMEOUT),
            max_results=_env_int('EXPLORE_MAX_RESULTS', DEFAULT_MAX_RESULTS),
            provider_limit=_env_int('EXPLORE_PROVIDER_LIMIT', DEFAULT_PROVIDER_LIMIT),
            user_agent=os.environ.get('EXPLORE_USER_AGENT', DEFAULT_USER_AGENT),
        )
