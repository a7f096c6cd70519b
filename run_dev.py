#!/usr/bin/env python3
"""
KARS Development Server
Runs Flask on port 3001 with debug on and rate limiting off
"""
import os

os.environ.setdefault('DISABLE_RATE_LIMITING', 'true')

from kars_app import create_app

if __name__ == '__main__':
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=int(os.environ.get('FLASK_PORT', '3001')),
        debug=True,
        use_reloader=False
    )
