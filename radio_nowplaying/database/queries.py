"""
Database query functions for Radio Now Playing

This module contains all SELECT queries. Rows are returned as plain dicts.
"""

import logging

logger = logging.getLogger(__name__)

STATION_COLUMNS = ['id', 'name', 'description', 'api_type', 'api_url', 'stream_url',
                   'frequency', 'location', 'genre', 'website', 'logo', 'is_active', 'sort_order']

NOW_PLAYING_COLUMNS = ['record_key', 'station_id', 'title', 'artist', 'album', 'artwork',
                       'duration', 'is_ad', 'is_live', 'ad_confidence', 'ad_reason', 'updated_at']

AD_DETECTION_COLUMNS = ['id', 'station_id', 'title', 'artist', 'brand', 'category',
                        'confidence', 'reason', 'tier', 'transcription', 'rules_version', 'detected_at']


# ==================== STATION QUERIES ====================

def get_all_stations(cursor, active_only=False):
    """Get all stations ordered for display

    Args:
        cursor: SQLite cursor object
        active_only: Only return stations with is_active = 1

    Returns:
        List of station dicts
    """
    where = "WHERE is_active = 1" if active_only else ""
    cursor.execute(f"""
        SELECT {', '.join(STATION_COLUMNS)}
        FROM stations
        {where}
        ORDER BY sort_order, name
    """)
    return [dict(zip(STATION_COLUMNS, row)) for row in cursor.fetchall()]


def get_station_by_id(cursor, station_id):
    """Get station information by ID

    Returns:
        Station dict or None if not found
    """
    cursor.execute(f"""
        SELECT {', '.join(STATION_COLUMNS)}
        FROM stations
        WHERE id = ?
    """, (station_id,))

    row = cursor.fetchone()
    if not row:
        return None
    return dict(zip(STATION_COLUMNS, row))


# ==================== NOW PLAYING QUERIES ====================

def get_now_playing(cursor, record_key):
    """Get the stored current track for a record key

    Returns:
        now_playing dict or None
    """
    cursor.execute(f"""
        SELECT {', '.join(NOW_PLAYING_COLUMNS)}
        FROM now_playing
        WHERE record_key = ?
    """, (record_key,))

    row = cursor.fetchone()
    if not row:
        return None

    record = dict(zip(NOW_PLAYING_COLUMNS, row))
    record['is_ad'] = bool(record['is_ad'])
    record['is_live'] = bool(record['is_live'])
    return record


# ==================== AD DETECTION QUERIES ====================

def get_recent_ad_detections(cursor, limit=50, station_id=None):
    """Get the most recent positive ad verdicts

    Args:
        cursor: SQLite cursor object
        limit: Maximum rows
        station_id: Filter by station (optional)

    Returns:
        List of ad_detection dicts, newest first
    """
    params = []
    where = ""
    if station_id:
        where = "WHERE station_id = ?"
        params.append(station_id)
    params.append(limit)

    cursor.execute(f"""
        SELECT {', '.join(AD_DETECTION_COLUMNS)}
        FROM ad_detections
        {where}
        ORDER BY detected_at DESC, id DESC
        LIMIT ?
    """, params)
    return [dict(zip(AD_DETECTION_COLUMNS, row)) for row in cursor.fetchall()]


def count_ad_detections_by_brand(cursor, days=7):
    """Count ad detections per brand over the last N days

    Returns:
        List of (brand, count) tuples, most frequent first
    """
    cursor.execute("""
        SELECT COALESCE(brand, 'Unknown') AS brand_name, COUNT(*) AS detections
        FROM ad_detections
        WHERE detected_at >= datetime('now', ?)
        GROUP BY brand_name
        ORDER BY detections DESC
    """, (f'-{int(days)} days',))
    return cursor.fetchall()
