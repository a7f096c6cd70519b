from flask import Blueprint, jsonify

from ..rate_limit import limit_light

main_bp = Blueprint('main_api', __name__)


@main_bp.route('/api/health')
@limit_light
def health():
    """Liveness probe."""
    return jsonify({'status': 'ok'})
