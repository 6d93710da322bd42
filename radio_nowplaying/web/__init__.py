"""
Flask web package for Radio Now Playing

JSON API only (no templates):
- /api/now-playing: current track per station (polled by the player UI)
- /api/test-ad-detection, /api/detect-ad, /api/force-ad-detection: ad tools
- /api/radio-stations, /api/ad-detections: station list and ad history
- /health: liveness check

Key Principle: Single integrated app - Flask + APScheduler + Database in one process.
Each request is served on its own thread; the dispatcher, cache and database
are shared through app.config.
"""

import logging
from datetime import datetime
from flask import Flask

from radio_nowplaying import get_version

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['VERSION'] = get_version()
app.config['JSON_SORT_KEYS'] = False

from radio_nowplaying.auth import is_auth_enabled

# Global variables
db = None
settings = None
scheduler = None
dispatcher = None


@app.after_request
def add_cors_headers(response):
    """Allow the player UI to poll from another origin"""
    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
    response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
    return response


def init_app(database=None, station_dispatcher=None, background_scheduler=None, app_settings=None):
    """Initialize the app with its collaborators

    Args:
        database: NowPlayingDatabase instance (connected here if needed)
        station_dispatcher: StationDispatcher (built from settings if None)
        background_scheduler: NowPlayingScheduler instance (optional)
        app_settings: Settings dict (loaded from file if None)
    """
    global db, scheduler, settings, dispatcher

    if app_settings is None:
        from radio_nowplaying.settings import load_settings
        app_settings = load_settings()

    if database is not None and database.conn is None:
        database.connect()
        logger.info(f"Database connected: {database.db_path}")

    if station_dispatcher is None:
        from radio_nowplaying.dispatcher import StationDispatcher
        station_dispatcher = StationDispatcher.from_settings(app_settings, db=database)

    db = database
    scheduler = background_scheduler
    settings = app_settings
    dispatcher = station_dispatcher

    # Store in Flask app config for access across requests
    app.config['db'] = database
    app.config['scheduler'] = background_scheduler
    app.config['settings'] = app_settings
    app.config['dispatcher'] = station_dispatcher
    app.config['start_time'] = datetime.now()

    logger.info(f"App initialized - db: {db is not None}, scheduler: {scheduler is not None}, "
                f"auth: {is_auth_enabled()}")


def run_app(host='0.0.0.0', port=5000, debug=False):
    """Run Flask application

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 5000)
        debug: Enable debug mode (default: False)
    """
    logger.info(f"Starting Radio Now Playing API on {host}:{port}")

    try:
        app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
    finally:
        logger.info("Flask app shutting down...")
        cleanup()


def cleanup():
    """Cleanup resources before shutdown"""
    global scheduler, db

    try:
        if scheduler and scheduler.scheduler:
            scheduler.shutdown(wait=True)
    except Exception as e:
        logger.error(f"Error shutting down scheduler: {e}")

    try:
        if db:
            logger.info("Closing database...")
            db.close()
            logger.info("Database closed")
    except Exception as e:
        logger.error(f"Error closing database: {e}")


# Import and register blueprints
from radio_nowplaying.web.routes import now_playing, ad_detection, stations, system

app.register_blueprint(now_playing.now_playing_bp)
app.register_blueprint(ad_detection.ad_detection_bp)
app.register_blueprint(stations.stations_bp)
app.register_blueprint(system.system_bp)

logger.debug("All blueprints registered")
