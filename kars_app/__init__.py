# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import os
import time
import uuid
from typing import Any, Dict, Optional

from flask import Flask, g, request


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() in ('true', '1', 'yes')


def create_app(test_config: Optional[Dict[str, Any]] = None):
    """
    Create and configure an instance of the Flask application.

    Args:
        test_config: Config overrides. An `EXPLORE_SERVICE` entry replaces
            the process-wide ExploreService (tests inject fake providers).
    """
    app = Flask(__name__, instance_relative_config=True)

    # =============================================================================
    # CONFIGURATION
    # =============================================================================
    app.config.from_mapping(
        JSON_SORT_KEYS=False,
        HOST=os.environ.get('FLASK_HOST', '127.0.0.1'),
        PORT=int(os.environ.get('FLASK_PORT', '5000')),
        DEBUG=_env_flag('FLASK_DEBUG'),
        DISABLE_RATE_LIMITING=_env_flag('DISABLE_RATE_LIMITING'),
    )
    if test_config:
        app.config.update(test_config)

    # Ensure instance folder exists
    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    # =============================================================================
    # LOGGING and RATE LIMITING
    # =============================================================================
    from .log import log, debug_log_event
    from .rate_limit import init_rate_limiting

    init_rate_limiting(app)

    @app.before_request
    def assign_request_id():
        g.request_id = uuid.uuid4().hex[:12]
        g.request_start = time.time()

    @app.after_request
    def debug_request_log(response):
        duration_ms = None
        start_time = getattr(g, 'request_start', None)
        if start_time:
            duration_ms = int((time.time() - start_time) * 1000)
        debug_log_event({
            'event': 'request',
            'request_id': getattr(g, 'request_id', None),
            'method': request.method,
            'path': request.path,
            'query': request.query_string.decode('utf-8', errors='ignore'),
            'status': response.status_code,
            'duration_ms': duration_ms,
            'remote_addr': request.remote_addr,
        })
        return response

    @app.teardown_request
    def debug_exception_log(error=None):
        if not error:
            return
        debug_log_event({
            'event': 'exception',
            'request_id': getattr(g, 'request_id', None),
            'error_type': error.__class__.__name__,
            'error': str(error)
        })

    # =============================================================================
    # EXPLORE SERVICE
    # =============================================================================
    service = app.config.pop('EXPLORE_SERVICE', None)
    if service is None:
        from .explore.service import get_explore_service
        service = get_explore_service()
    app.extensions['kars_explore'] = service

    # =============================================================================
    # BLUEPRINTS & ROUTES
    # =============================================================================
    from .routes.main_api import main_bp
    from .routes.explore_api import explore_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(explore_bp)

    if not app.config.get('TESTING'):
        print("=" * 60)
        print("  KARS - Media Archive System (Explore API)")
        print("=" * 60)
        print("\n🔎 Explore providers:")
        for info in service.describe_providers():
            status = "✅" if info.eligible else "❌"
            print(f"   {status} {info.name} ({info.id}): {', '.join(info.categories)}")
        print(f"\n🌐 Server: http://{app.config['HOST']}:{app.config['PORT']}")
        if app.config['DEBUG']:
            print("⚠️  Debug mode is ON - do not use in production!")
        print("=" * 60)

    log(f"App ready with {len(service.providers)} Explore providers")
    return app

# App instance should be created by the caller (run.py or WSGI entrypoint)
