"""
Database CRUD operations for Radio Now Playing

This module contains all INSERT/UPDATE/DELETE operations that modify the database.

CRUD Categories:
- Station CRUD: update_station_api_type
- Now playing: upsert_now_playing
- Ad history: add_ad_detection, delete_ad_detections_older_than
"""

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


# ==================== STATION CRUD ====================

def update_station_api_type(cursor, conn, station_id, api_type):
    """Set the adapter type used for a station

    Returns:
        True if a station row was updated
    """
    cursor.execute("UPDATE stations SET api_type = ? WHERE id = ?", (api_type, station_id))
    conn.commit()
    return cursor.rowcount > 0


# ==================== NOW PLAYING CRUD ====================

def upsert_now_playing(cursor, conn, record_key, station_id, track, ad_confidence=None, ad_reason=None):
    """Insert or replace the current track for a record key

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
        record_key: station_id, or '__current__' in single-record mode
        station_id: Station the track came from (may be None)
        track: TrackMetadata
        ad_confidence: Verdict confidence (optional)
        ad_reason: Verdict reason (optional)

    Returns:
        updated_at timestamp string
    """
    updated_at = datetime.now().strftime('%Y-%m-%d %H:%M:%S')

    cursor.execute("""
        INSERT INTO now_playing (record_key, station_id, title, artist, album, artwork, duration,
                                 is_ad, is_live, ad_confidence, ad_reason, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(record_key) DO UPDATE SET
            station_id = excluded.station_id,
            title = excluded.title,
            artist = excluded.artist,
            album = excluded.album,
            artwork = excluded.artwork,
            duration = excluded.duration,
            is_ad = excluded.is_ad,
            is_live = excluded.is_live,
            ad_confidence = excluded.ad_confidence,
            ad_reason = excluded.ad_reason,
            updated_at = excluded.updated_at
    """, (record_key, station_id, track.title, track.artist, track.album, track.artwork,
          track.duration, int(track.is_ad), int(track.is_live), ad_confidence, ad_reason,
          updated_at))

    conn.commit()
    return updated_at


# ==================== AD DETECTION CRUD ====================

def add_ad_detection(cursor, conn, station_id, title, artist, verdict, transcription=None, rules_version=None):
    """Record a positive ad verdict

    Returns:
        New row id
    """
    cursor.execute("""
        INSERT INTO ad_detections (station_id, title, artist, brand, category, confidence,
                                   reason, tier, transcription, rules_version)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (station_id, title, artist, verdict.brand, verdict.category, verdict.confidence,
          verdict.reason, verdict.tier, transcription, rules_version))

    conn.commit()
    return cursor.lastrowid


def delete_ad_detections_older_than(cursor, conn, days=30):
    """Prune the ad detection history

    Returns:
        Number of rows deleted
    """
    cursor.execute("DELETE FROM ad_detections WHERE detected_at < datetime('now', ?)",
                   (f'-{int(days)} days',))
    deleted = cursor.rowcount
    conn.commit()
    if deleted:
        logger.info(f"Deleted {deleted} ad detections older than {days} days")
    return deleted
