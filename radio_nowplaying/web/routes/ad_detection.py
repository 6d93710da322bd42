"""
Ad detection routes for Radio Now Playing

Provides:
- POST /api/test-ad-detection - Metadata classifier (Tier 1 + 2) on title/artist
- POST /api/detect-ad - Audio + LLM classifier (Tier 3) on a live stream (admin)
- POST /api/force-ad-detection - Write a branded ad record (admin)
- GET /api/ad-detections - Recent positive verdicts
"""

import logging
from flask import Blueprint, jsonify, request

from radio_nowplaying.auth import requires_auth
from radio_nowplaying.ad_detection import classify_metadata, keyword_scan
from radio_nowplaying.settings import get_openai_api_key
from radio_nowplaying.web.routes import get_db, get_dispatcher, get_settings, get_json_body, string_fields

logger = logging.getLogger(__name__)

ad_detection_bp = Blueprint('ad_detection', __name__)

MAX_HISTORY_LIMIT = 500


@ad_detection_bp.route('/api/test-ad-detection', methods=['POST'])
def api_test_ad_detection():
    """Run the metadata classifier without touching any station

    Request JSON:
        {"title": "Capital One Commercial", "artist": "Advertisement", "description": "..."}

    Returns JSON:
        {"input": {...}, "result": {"isAd": true, "confidence": 0.85, ...}, "keywordMatches": [...]}
    """
    data = get_json_body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    try:
        title, artist, description = string_fields(data, 'title', 'artist', 'description')
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    description = description or None

    if not title and not artist:
        return jsonify({'error': 'title or artist is required'}), 400

    try:
        verdict = classify_metadata(title, artist, description)
        keywords = keyword_scan(title, artist, description)
        return jsonify({
            'input': {'title': title, 'artist': artist, 'description': description},
            'result': verdict.to_dict(),
            'keywordMatches': list(keywords.matches),
        })
    except Exception as e:
        logger.error(f"Error testing ad detection: {e}", exc_info=True)
        return jsonify({'error': 'Failed to test ad detection'}), 500


@ad_detection_bp.route('/api/detect-ad', methods=['POST'])
@requires_auth
def api_detect_ad():
    """Sample a live stream and classify it with speech-to-text + LLM

    Request JSON:
        {"streamUrl": "https://...", "station": "hot97"}   (both optional)

    Returns JSON:
        verdict fields + "transcription", plus "nowPlaying" when the
        verdict was applied to a station
    """
    settings = get_settings()
    if not get_openai_api_key(settings):
        return jsonify({'error': 'OpenAI API key not configured'}), 400

    data = get_json_body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    try:
        station_id, stream_url = string_fields(data, 'station', 'streamUrl')
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        deep_result, applied = get_dispatcher().detect_ad_on_stream(
            station_id=station_id or None,
            stream_url=stream_url or None,
            settings=settings,
        )
        response = deep_result.to_dict()
        response['nowPlaying'] = applied.to_dict() if applied else None
        return jsonify(response)
    except Exception as e:
        logger.error(f"Error running audio ad detection: {e}", exc_info=True)
        return jsonify({'error': 'Failed to run ad detection'}), 500


@ad_detection_bp.route('/api/force-ad-detection', methods=['POST'])
@requires_auth
def api_force_ad_detection():
    """Store a branded ad record for a station (demo/manual override)

    Request JSON:
        {"brand": "Capital One", "station": "kbfb-955"}   (both optional)
    """
    data = get_json_body()
    if data is None:
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    try:
        brand, station_id = string_fields(data, 'brand', 'station')
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        result = get_dispatcher().force_ad(brand=brand or None, station_id=station_id or None)
        logger.info(f"Forced ad detection: {result.track.title}")
        return jsonify({
            'success': True,
            'message': f"Ad detection forced: {result.track.title}",
            'nowPlaying': result.to_dict(),
        })
    except Exception as e:
        logger.error(f"Error forcing ad detection: {e}", exc_info=True)
        return jsonify({'error': 'Failed to force ad detection'}), 500


@ad_detection_bp.route('/api/ad-detections', methods=['GET'])
def api_ad_detections():
    """Recent positive ad verdicts

    Query params:
        limit: Maximum rows (default 50)
        station: Station id filter (optional)
        days: Window for the per-brand counts (default 7)
    """
    limit = request.args.get('limit', 50, type=int)
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))
    days = request.args.get('days', 7, type=int)
    station_id = request.args.get('station')

    db = get_db()
    if not db:
        return jsonify({'detections': [], 'count': 0, 'brands': []})

    try:
        detections = db.get_recent_ad_detections(limit=limit, station_id=station_id)
        return jsonify({
            'detections': detections,
            'count': len(detections),
            'brands': db.get_ad_brand_counts(days=days),
        })
    except Exception as e:
        logger.error(f"Error loading ad detections: {e}", exc_info=True)
        return jsonify({'error': 'Failed to load ad detections'}), 500
