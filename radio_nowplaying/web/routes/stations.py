"""
Stations routes for Radio Now Playing

Provides the list of stations the player can tune to.
"""

import logging
from flask import Blueprint, jsonify

from radio_nowplaying.stations import DEFAULT_STATIONS
from radio_nowplaying.web.routes import get_dispatcher

logger = logging.getLogger(__name__)

stations_bp = Blueprint('stations', __name__)


@stations_bp.route('/api/radio-stations')
def api_radio_stations():
    """Active stations (built-in list if the database is unavailable)"""
    dispatcher = get_dispatcher()

    try:
        stations = dispatcher.registry.all_stations() if dispatcher else list(DEFAULT_STATIONS)
    except Exception as e:
        logger.error(f"Error loading stations: {e}", exc_info=True)
        stations = list(DEFAULT_STATIONS)

    return jsonify([station.to_dict() for station in stations if station.is_active])
