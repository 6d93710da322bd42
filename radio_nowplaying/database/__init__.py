"""
Database package for Radio Now Playing

This package provides the persistence sink for the now-playing pipeline:
- schema.py: Table definitions, schema versioning, station seeding
- queries.py: SELECT query functions
- crud.py: INSERT/UPDATE/DELETE operations

The NowPlayingDatabase class (below) provides a unified interface to all
database operations.

Schema Version: 2
"""

import sqlite3
import logging
import threading

from radio_nowplaying.models import TrackMetadata
from radio_nowplaying.stations import DEFAULT_STATIONS
from radio_nowplaying.ad_rules import RULES_VERSION

from .schema import initialize_schema, SCHEMA_VERSION
from . import queries
from . import crud

logger = logging.getLogger(__name__)

# Record key of the single shared "current track" row
CURRENT_RECORD_KEY = '__current__'


def record_key_for(station_id):
    """now_playing row key: the station id, or the shared current row"""
    return station_id or CURRENT_RECORD_KEY


class NowPlayingDatabase:
    """SQLite persistence sink

    Tables:
    - stations: Station descriptors
    - now_playing: Current track per station (upsert, last writer wins)
    - ad_detections: Positive ad verdict history
    - schema_version: Schema version tracking
    """

    SCHEMA_VERSION = SCHEMA_VERSION

    def __init__(self, db_path):
        self.db_path = db_path
        self.conn = None
        self.cursor = None
        self._write_lock = threading.Lock()

    def connect(self):
        """Connect to database and create schema if needed"""
        # Allow connection to be used across threads (required for Flask multi-threading)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.cursor = self.conn.cursor()
        initialize_schema(self.cursor, self.conn, DEFAULT_STATIONS)
        logger.debug(f"Connected to database {self.db_path}")

    def get_cursor(self):
        """Get a new cursor for the current request

        This creates a fresh cursor for each request to avoid 'Recursive use of cursors' errors
        when multiple Flask requests use the database simultaneously.
        """
        return self.conn.cursor()

    # ==================== STATION METHODS ====================

    def get_all_stations(self, active_only=False):
        cursor = self.conn.cursor()
        try:
            return queries.get_all_stations(cursor, active_only=active_only)
        finally:
            cursor.close()

    def get_station(self, station_id):
        """Get station by ID"""
        cursor = self.conn.cursor()
        try:
            return queries.get_station_by_id(cursor, station_id)
        finally:
            cursor.close()

    def update_station_api_type(self, station_id, api_type):
        """Store the detected API type for a station"""
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                return crud.update_station_api_type(cursor, self.conn, station_id, api_type)
            finally:
                cursor.close()

    # ==================== NOW PLAYING METHODS ====================

    def get_now_playing_record(self, station_id=None):
        """Get the stored now_playing row (with confidence/reason/updated_at)

        Args:
            station_id: Station id, or None for the shared current record

        Returns:
            Row dict or None
        """
        cursor = self.conn.cursor()
        try:
            return queries.get_now_playing(cursor, record_key_for(station_id))
        finally:
            cursor.close()

    def get_current_track(self, station_id=None):
        """Get the stored current track

        Returns:
            TrackMetadata or None
        """
        record = self.get_now_playing_record(station_id)
        if not record:
            return None
        return TrackMetadata.from_dict(record)

    def update_now_playing(self, track, station_id=None, verdict=None, source_station_id=None):
        """Upsert the current track

        Args:
            track: TrackMetadata to store
            station_id: Record key station, or None for the shared current record
            verdict: AdVerdict for the track (optional)
            source_station_id: Station the track came from, when it differs
                from the record key (single-record mode)

        Returns:
            The stored TrackMetadata
        """
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                crud.upsert_now_playing(
                    cursor, self.conn,
                    record_key_for(station_id),
                    source_station_id or station_id,
                    track,
                    ad_confidence=verdict.confidence if verdict else None,
                    ad_reason=verdict.reason if verdict else None,
                )
            finally:
                cursor.close()
        return track

    # ==================== AD DETECTION METHODS ====================

    def record_ad_detection(self, station_id, title, artist, verdict, transcription=None):
        """Add a positive verdict to the ad detection history

        Returns:
            New row id
        """
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                return crud.add_ad_detection(cursor, self.conn, station_id, title, artist, verdict,
                                             transcription=transcription, rules_version=RULES_VERSION)
            finally:
                cursor.close()

    def get_recent_ad_detections(self, limit=50, station_id=None):
        cursor = self.conn.cursor()
        try:
            return queries.get_recent_ad_detections(cursor, limit=limit, station_id=station_id)
        finally:
            cursor.close()

    def get_ad_brand_counts(self, days=7):
        """Ad detections per brand over the last N days"""
        cursor = self.conn.cursor()
        try:
            return [{'brand': brand, 'count': count}
                    for brand, count in queries.count_ad_detections_by_brand(cursor, days=days)]
        finally:
            cursor.close()

    def delete_old_ad_detections(self, days=30):
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                return crud.delete_ad_detections_older_than(cursor, self.conn, days=days)
            finally:
                cursor.close()

    # ==================== CONNECTION MANAGEMENT ====================

    def close(self):
        """Close database connection"""
        if self.conn:
            self.conn.close()
            self.conn = None


__all__ = ['NowPlayingDatabase', 'CURRENT_RECORD_KEY', 'record_key_for']
