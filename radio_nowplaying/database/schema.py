"""
Database schema definitions for Radio Now Playing

Tables:
- stations: Station descriptors (API type, URLs, display info)
- now_playing: Current track record, one row per station (or one shared
  '__current__' row in single-record mode)
- ad_detections: History of positive ad verdicts
- schema_version: Schema version tracking

Schema Version: 2
"""

import logging

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2


def create_tables(cursor):
    """Create all tables and indexes

    Args:
        cursor: SQLite cursor object
    """
    # 1. stations table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS stations (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            api_type TEXT NOT NULL DEFAULT 'auto',
            api_url TEXT,
            stream_url TEXT NOT NULL,
            frequency TEXT,
            location TEXT,
            genre TEXT,
            website TEXT,
            logo TEXT,
            is_active BOOLEAN DEFAULT 1,
            sort_order INTEGER DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_stations_active ON stations(is_active)")

    # 2. now_playing table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS now_playing (
            record_key TEXT PRIMARY KEY,
            station_id TEXT,
            title TEXT NOT NULL,
            artist TEXT NOT NULL,
            album TEXT,
            artwork TEXT,
            duration INTEGER,
            is_ad BOOLEAN DEFAULT 0,
            is_live BOOLEAN DEFAULT 1,
            ad_confidence REAL,
            ad_reason TEXT,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # 3. ad_detections table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS ad_detections (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            station_id TEXT,
            title TEXT,
            artist TEXT,
            brand TEXT,
            category TEXT,
            confidence REAL,
            reason TEXT,
            tier TEXT,
            transcription TEXT,
            rules_version INTEGER,
            detected_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_ad_detections_detected ON ad_detections(detected_at DESC)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_ad_detections_station ON ad_detections(station_id)")

    # 4. schema_version table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)


def populate_stations(cursor, stations):
    """Insert the built-in stations (existing rows are left alone)

    Args:
        cursor: SQLite cursor object
        stations: Iterable of StationDescriptor
    """
    for station in stations:
        cursor.execute("""
            INSERT OR IGNORE INTO stations (id, name, description, api_type, api_url, stream_url,
                                            frequency, location, genre, website, logo, is_active, sort_order)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (station.station_id, station.name, station.description, station.api_type,
              station.api_url, station.stream_url, station.frequency, station.location,
              station.genre, station.website, station.logo, int(station.is_active),
              station.sort_order))


def initialize_schema(cursor, conn, stations):
    """Create the schema on a fresh database and seed the stations

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
        stations: Built-in stations to seed
    """
    create_tables(cursor)

    cursor.execute("SELECT MAX(version) FROM schema_version")
    row = cursor.fetchone()
    current_version = row[0] if row and row[0] is not None else 0

    if current_version == 0:
        populate_stations(cursor, stations)
        logger.info(f"Created database schema v{SCHEMA_VERSION}")
    elif current_version < SCHEMA_VERSION:
        logger.info(f"Upgrading database schema v{current_version} -> v{SCHEMA_VERSION}")
        # v2 added ad_detections.transcription and rules_version
        cursor.execute("PRAGMA table_info(ad_detections)")
        columns = {col[1] for col in cursor.fetchall()}
        if 'transcription' not in columns:
            cursor.execute("ALTER TABLE ad_detections ADD COLUMN transcription TEXT")
        if 'rules_version' not in columns:
            cursor.execute("ALTER TABLE ad_detections ADD COLUMN rules_version INTEGER")

    if current_version < SCHEMA_VERSION:
        cursor.execute("INSERT OR REPLACE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))

    conn.commit()
