"""Main blueprint with API info and health check endpoints."""
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storefront.database import get_session

main_bp = Blueprint('main', __name__)


def _health_body(status, checks):
    return {
        'status': status,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'uptime': round(time.time() - current_app.config['STARTED_AT'], 3),
        'environment': current_app.config.get('ENV'),
        'version': current_app.config.get('APP_VERSION'),
        'checks': checks,
    }


def _check_database():
    try:
        session = get_session()
        row = session.execute(text("SELECT 1 as health_check")).fetchone()
        return 'healthy' if row and row[0] == 1 else 'unhealthy'
    except SQLAlchemyError as e:
        current_app.logger.error(f"Database health check failed: {e}")
        return 'unhealthy'


@main_bp.route('/')
def index():
    """API information."""
    return jsonify({
        'name': 'Storefront API',
        'version': current_app.config.get('APP_VERSION'),
        'environment': current_app.config.get('ENV'),
        'endpoints': ['/health', '/auth', '/products', '/cart', '/orders', '/metrics'],
    })


@main_bp.route('/health')
def health():
    """Basic health check, no dependencies touched."""
    return jsonify(_health_body('ok', {'api': 'healthy'})), 200


@main_bp.route('/health/ready')
def readiness():
    """
    Readiness check that validates the database connection.

    Returns:
        200: Ready (DB connected)
        503: Not ready
    """
    checks = {'database': _check_database(), 'api': 'healthy'}
    ready = all(status == 'healthy' for status in checks.values())
    return jsonify(_health_body('ok' if ready else 'error', checks)), 200 if ready else 503


@main_bp.route('/health/live')
def liveness():
    """Liveness probe: the process is up and serving."""
    return jsonify(_health_body('ok', {'process': 'alive'})), 200
