"""
Database operation tests

Tests schema creation and station seeding, now_playing upserts (per-station
and the shared current record), and the ad detection history.
"""

import sqlite3

import pytest

from radio_nowplaying.database import NowPlayingDatabase, CURRENT_RECORD_KEY, crud, queries
from radio_nowplaying.database.schema import SCHEMA_VERSION
from radio_nowplaying.ad_rules import RULES_VERSION
from radio_nowplaying.models import AdVerdict, API_AUTO, API_SOMAFM
from radio_nowplaying.stations import DEFAULT_STATIONS
from tests.conftest import make_track


@pytest.mark.unit
class TestSchema:
    """Test schema creation and seeding"""

    def test_default_stations_seeded(self, test_db):
        stations = test_db.get_all_stations()
        assert [s['id'] for s in stations] == [s.station_id for s in DEFAULT_STATIONS]

    def test_schema_version_recorded(self, test_db):
        cursor = test_db.get_cursor()
        cursor.execute("SELECT MAX(version) FROM schema_version")
        assert cursor.fetchone()[0] == SCHEMA_VERSION

    def test_reconnect_does_not_reseed(self, test_db_path):
        db = NowPlayingDatabase(test_db_path)
        db.connect()
        cursor = db.get_cursor()
        cursor.execute("DELETE FROM stations WHERE id = 'hot97'")
        db.conn.commit()
        db.close()

        db.connect()
        assert db.get_station('hot97') is None
        db.close()

    def test_upgrade_from_v1_adds_columns(self, test_db_path):
        conn = sqlite3.connect(test_db_path)
        conn.execute("CREATE TABLE ad_detections (id INTEGER PRIMARY KEY AUTOINCREMENT, station_id TEXT, "
                     "title TEXT, artist TEXT, brand TEXT, category TEXT, confidence REAL, reason TEXT, "
                     "tier TEXT, detected_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)")
        conn.execute("CREATE TABLE schema_version (version INTEGER PRIMARY KEY, "
                     "applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)")
        conn.execute("INSERT INTO schema_version (version) VALUES (1)")
        conn.commit()
        conn.close()

        db = NowPlayingDatabase(test_db_path)
        db.connect()
        cursor = db.get_cursor()
        cursor.execute("PRAGMA table_info(ad_detections)")
        columns = {col[1] for col in cursor.fetchall()}
        db.close()

        assert {'transcription', 'rules_version'} <= columns


@pytest.mark.unit
class TestStations:
    """Test station reads and api type updates"""

    def test_get_station(self, test_db):
        station = test_db.get_station('somafm-metal')
        assert station['name'] == 'SomaFM Metal'
        assert station['api_type'] == API_SOMAFM

    def test_active_only(self, test_db):
        cursor = test_db.get_cursor()
        cursor.execute("UPDATE stations SET is_active = 0 WHERE id = 'power106'")
        test_db.conn.commit()

        ids = [s['id'] for s in test_db.get_all_stations(active_only=True)]
        assert 'power106' not in ids
        assert len(test_db.get_all_stations()) == len(DEFAULT_STATIONS)

    def test_update_station_api_type(self, test_db):
        assert test_db.update_station_api_type('hot97', API_AUTO) is True
        assert test_db.get_station('hot97')['api_type'] == API_AUTO
        assert test_db.update_station_api_type('missing', API_AUTO) is False


@pytest.mark.unit
class TestNowPlaying:
    """Test the now_playing upsert"""

    def test_keyed_records_are_independent(self, test_db):
        test_db.update_now_playing(make_track('Song A', 'Artist A'), station_id='hot97')
        test_db.update_now_playing(make_track('Song B', 'Artist B'), station_id='power106')

        assert test_db.get_current_track('hot97').title == 'Song A'
        assert test_db.get_current_track('power106').title == 'Song B'
        assert test_db.get_current_track() is None

    def test_upsert_replaces(self, test_db):
        test_db.update_now_playing(make_track('Song A', 'Artist A'), station_id='hot97')
        test_db.update_now_playing(make_track('Song B', 'Artist B', artwork='https://x/1.jpg'), station_id='hot97')

        track = test_db.get_current_track('hot97')
        assert (track.title, track.artwork) == ('Song B', 'https://x/1.jpg')

        cursor = test_db.get_cursor()
        cursor.execute("SELECT COUNT(*) FROM now_playing")
        assert cursor.fetchone()[0] == 1

    def test_shared_current_record(self, test_db):
        test_db.update_now_playing(make_track('Song A', 'Artist A'), source_station_id='hot97')
        test_db.update_now_playing(make_track('Song B', 'Artist B'), source_station_id='kbfb-955')

        record = test_db.get_now_playing_record()
        assert record['record_key'] == CURRENT_RECORD_KEY
        assert record['station_id'] == 'kbfb-955'
        assert record['title'] == 'Song B'

    def test_verdict_fields_stored(self, test_db):
        verdict = AdVerdict(is_ad=True, confidence=0.85, reason="Commercial indicator: 'commercial'")
        test_db.update_now_playing(make_track('Nike Commercial', 'Hot 97', is_ad=True),
                                   station_id='hot97', verdict=verdict)

        record = test_db.get_now_playing_record('hot97')
        assert record['is_ad'] is True
        assert record['ad_confidence'] == 0.85
        assert record['ad_reason'] == "Commercial indicator: 'commercial'"
        assert record['updated_at']


@pytest.mark.unit
class TestAdDetections:
    """Test the ad detection history"""

    def test_record_and_read(self, test_db):
        verdict = AdVerdict(is_ad=True, confidence=0.85, category='financial', brand='Capital One',
                            reason='Known advertiser: Capital One', tier='pattern')
        row_id = test_db.record_ad_detection('hot97', 'Capital One Commercial', 'Hot 97', verdict)

        rows = test_db.get_recent_ad_detections()
        assert rows[0]['id'] == row_id
        assert rows[0]['brand'] == 'Capital One'
        assert rows[0]['rules_version'] == RULES_VERSION
        assert rows[0]['transcription'] is None

    def test_filter_by_station_and_limit(self, test_db):
        verdict = AdVerdict(is_ad=True, confidence=0.5, tier='keyword')
        for i in range(5):
            test_db.record_ad_detection('hot97', f'Ad {i}', 'Hot 97', verdict)
        test_db.record_ad_detection('power106', 'Ad', 'Power 106', verdict)

        assert len(test_db.get_recent_ad_detections(limit=3)) == 3
        rows = test_db.get_recent_ad_detections(station_id='power106')
        assert [r['station_id'] for r in rows] == ['power106']
        assert test_db.get_recent_ad_detections(limit=1)[0]['station_id'] == 'power106'

    def test_brand_counts(self, test_db):
        geico = AdVerdict(is_ad=True, confidence=0.85, brand='GEICO')
        test_db.record_ad_detection('hot97', 'GEICO Commercial', 'Hot 97', geico)
        test_db.record_ad_detection('hot97', 'GEICO Commercial', 'Hot 97', geico)
        test_db.record_ad_detection('hot97', 'Advertisement', 'Hot 97', AdVerdict(is_ad=True))

        counts = test_db.get_ad_brand_counts(days=7)
        assert counts[0] == {'brand': 'GEICO', 'count': 2}
        assert {'brand': 'Unknown', 'count': 1} in counts

    def test_delete_old(self, test_db):
        verdict = AdVerdict(is_ad=True, confidence=0.5)
        test_db.record_ad_detection('hot97', 'Old Ad', 'Hot 97', verdict)
        test_db.record_ad_detection('hot97', 'New Ad', 'Hot 97', verdict)
        cursor = test_db.get_cursor()
        cursor.execute("UPDATE ad_detections SET detected_at = datetime('now', '-40 days') WHERE title = 'Old Ad'")
        test_db.conn.commit()

        assert test_db.delete_old_ad_detections(days=30) == 1
        assert [r['title'] for r in test_db.get_recent_ad_detections()] == ['New Ad']

    def test_crud_functions_take_cursor(self, test_db):
        cursor = test_db.get_cursor()
        crud.add_ad_detection(cursor, test_db.conn, 'hot97', 'Ad', 'Hot 97', AdVerdict(is_ad=True), rules_version=1)
        assert queries.get_recent_ad_detections(cursor, limit=1)[0]['rules_version'] == 1
