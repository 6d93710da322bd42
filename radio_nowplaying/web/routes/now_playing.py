"""
Now playing routes for Radio Now Playing

Provides:
- GET /api/now-playing?station=<id> - Current track for a station (always 200
  on upstream failure; station info is served instead)
- POST /api/now-playing - Manual update of the current track (admin)
"""

import logging
from flask import Blueprint, jsonify, request

from radio_nowplaying.auth import requires_auth
from radio_nowplaying.models import TrackMetadata
from radio_nowplaying.web.routes import get_dispatcher, get_json_body, string_fields

logger = logging.getLogger(__name__)

now_playing_bp = Blueprint('now_playing', __name__)


@now_playing_bp.route('/api/now-playing', methods=['GET'])
def api_now_playing():
    """Current track for a station

    Query params:
        station: Station id (optional, unknown ids use the default station)

    Returns JSON:
        {
            "title": "HUMBLE.",
            "artist": "Kendrick Lamar",
            "album": null,
            "artwork": "https://...",
            "isAd": false,
            "stationId": "kbfb-955",
            "stationName": "95.5 The Beat",
            "timestamp": "2026-01-01T12:00:00",
            ...
        }
    """
    station_id = request.args.get('station')

    try:
        result = get_dispatcher().poll(station_id)
        return jsonify(result.to_dict())
    except Exception as e:
        logger.error(f"Error fetching now playing for {station_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to fetch now playing data'}), 500


@now_playing_bp.route('/api/now-playing', methods=['POST'])
@requires_auth
def api_update_now_playing():
    """Manually set the current track

    Request JSON:
        {
            "title": "Song",          (required)
            "artist": "Artist",       (required)
            "album": "Album",
            "artwork": "https://...",
            "duration": 180,
            "isAd": false,
            "station": "hot97"
        }
    """
    data = get_json_body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    try:
        title, artist, station_id = string_fields(data, 'title', 'artist', 'station')
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    if not title or not artist:
        return jsonify({'error': 'title and artist are required'}), 400

    try:
        track = TrackMetadata.from_dict({**data, 'title': title, 'artist': artist})
    except (TypeError, ValueError) as e:
        return jsonify({'error': f'Invalid track data: {e}'}), 400

    try:
        result = get_dispatcher().update_manual(track, station_id=station_id or None)
        return jsonify(result.to_dict())
    except Exception as e:
        logger.error(f"Error updating now playing: {e}", exc_info=True)
        return jsonify({'error': 'Failed to update now playing data'}), 500
