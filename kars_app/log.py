"""
Logging for the KARS app.

  kars / kars_app.*   -> instance/kars.log (rotating) + stdout
  kars.debug          -> debugging/debug.log, one JSON event per line
                         (off when DEBUG_LOGGING is false)

Every record written inside a Flask request is tagged with that request's id.
"""

import os
import sys
import json
import logging
from logging.handlers import RotatingFileHandler
from typing import Any, Dict

from flask import g, has_request_context

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOG_DIR = os.environ.get('KARS_LOG_DIR', os.path.join(BASE_DIR, 'instance'))
LOG_FILE = os.path.join(LOG_DIR, 'kars.log')
DEBUG_LOG_FILE = os.path.join(BASE_DIR, 'debugging', 'debug.log')

DEBUG_LOGGING = os.environ.get('DEBUG_LOGGING', 'true').lower() in ('1', 'true', 'yes', 'on')

logger = logging.getLogger("kars")
debug_logger = logging.getLogger("kars.debug")


class RequestIdFilter(logging.Filter):
    """Adds `request_tag` ("[<id>] " or "") to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = getattr(g, 'request_id', None) if has_request_context() else None
        record.request_tag = f"[{request_id}] " if request_id else ""
        return True


def _rotating(path: str, fmt: str, backups: int) -> RotatingFileHandler:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=backups)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _attached(target: logging.Logger, path: str) -> bool:
    return any(getattr(h, 'baseFilename', None) == path for h in target.handlers)


def setup_logging() -> None:
    """Attach handlers once; safe to call again (tests build many apps)."""
    if not _attached(logger, LOG_FILE):
        request_ids = RequestIdFilter()
        file_handler = _rotating(
            LOG_FILE, '%(asctime)s - %(name)s - %(levelname)s - %(request_tag)s%(message)s', 5
        )
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(logging.Formatter('%(request_tag)s%(message)s'))
        for handler in (file_handler, stream_handler):
            handler.addFilter(request_ids)

        # Component loggers live under the package name and share the handlers
        for target in (logger, logging.getLogger("kars_app")):
            target.setLevel(logging.INFO)
            target.addHandler(file_handler)
            target.addHandler(stream_handler)

    debug_logger.setLevel(logging.INFO)
    debug_logger.propagate = False
    if not DEBUG_LOGGING:
        debug_logger.disabled = True
    elif not _attached(debug_logger, DEBUG_LOG_FILE):
        debug_logger.addHandler(_rotating(DEBUG_LOG_FILE, '%(message)s', 10))


setup_logging()


def log(msg: str) -> None:
    logger.info(msg)


def debug_log_event(event: Dict[str, Any]) -> None:
    """Write one structured debug event (dropped when debug logging is off)."""
    if debug_logger.disabled:
        return
    try:
        debug_logger.info(json.dumps(event, ensure_ascii=True, separators=(',', ':')))
    except (TypeError, ValueError) as exc:
        logger.warning(f"Debug log failure: {exc}")
