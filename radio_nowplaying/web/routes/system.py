"""
System routes for Radio Now Playing

Provides:
- GET /health - Liveness check
- GET /api/system/status - Cache, scheduler and database status (admin)
"""

import logging
from datetime import datetime
from flask import Blueprint, jsonify, current_app

from radio_nowplaying.auth import requires_auth
from radio_nowplaying.settings import get_openai_api_key
from radio_nowplaying.web.routes import get_db, get_dispatcher, get_settings

logger = logging.getLogger(__name__)

system_bp = Blueprint('system', __name__)


@system_bp.route('/health')
def health():
    return jsonify({
        'status': 'ok',
        'timestamp': datetime.now().isoformat(),
        'version': current_app.config.get('VERSION'),
    })


@system_bp.route('/api/system/status')
@requires_auth
def api_system_status():
    """Runtime status

    Returns JSON:
        {
            "uptime_seconds": 123,
            "database": "radio_nowplaying.db",
            "scheduler_running": false,
            "cache": {"size": 3, "hits": 10, ...},
            "audio_detection_configured": true
        }
    """
    db = get_db()
    dispatcher = get_dispatcher()
    scheduler = current_app.config.get('scheduler')
    start_time = current_app.config.get('start_time')

    cache_stats = None
    if dispatcher is not None and hasattr(dispatcher.cache, 'get_stats'):
        cache_stats = dispatcher.cache.get_stats()

    return jsonify({
        'version': current_app.config.get('VERSION'),
        'uptime_seconds': int((datetime.now() - start_time).total_seconds()) if start_time else None,
        'database': db.db_path if db else None,
        'scheduler_running': scheduler.is_running() if scheduler else False,
        'cache': cache_stats,
        'audio_detection_configured': get_openai_api_key(get_settings()) is not None,
    })
