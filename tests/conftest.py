"""
Pytest configuration and fixtures for Radio Now Playing tests

Provides test database, scripted upstream adapters, dispatcher, Flask app
and HTTP client fixtures.
"""

import pytest
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from radio_nowplaying import auth
from radio_nowplaying.cache import TTLCache
from radio_nowplaying.database import NowPlayingDatabase
from radio_nowplaying.dispatcher import StationDispatcher
from radio_nowplaying.models import (
    TrackMetadata, StationDescriptor, Miss,
    API_TRITON, API_STREAMTHEWORLD, API_SOMAFM, API_CUSTOM, API_AUTO
)
from radio_nowplaying.settings import DEFAULT_SETTINGS
from radio_nowplaying.stations import StationRegistry
from radio_nowplaying.web import app as web_app, init_app


class FakeClock:
    """Manually advanced clock for TTL tests"""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeAdapter:
    """Adapter stand-in that returns a scripted result and records calls

    result may be a TrackMetadata, a Miss, an exception instance (raised),
    or a callable(station) returning one of those.
    """

    def __init__(self, api_type, result=None):
        self.api_type = api_type
        self.result = result if result is not None else Miss(f"{api_type} not scripted")
        self.calls = []

    def fetch(self, station, timeout=None):
        self.calls.append(station.station_id)
        result = self.result(station) if callable(self.result) else self.result
        if isinstance(result, Exception):
            raise result
        return result

    def __repr__(self):
        return f"FakeAdapter({self.api_type})"


class RecordingLookup:
    """Artwork/logo lookup stand-in that records its arguments"""

    def __init__(self, value=None):
        self.value = value
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)
        if callable(self.value):
            return self.value(*args)
        return self.value


def make_track(title='HUMBLE.', artist='Kendrick Lamar', **kwargs):
    return TrackMetadata(title=title, artist=artist, **kwargs)


def make_station(station_id='test-station', api_type=API_TRITON, **kwargs):
    defaults = {
        'name': 'Test FM',
        'stream_url': 'https://streams.example.com/TESTFMAAC.aac',
        'api_url': 'https://api.example.com/nowplaying',
        'description': 'Test Hits',
    }
    defaults.update(kwargs)
    return StationDescriptor(station_id=station_id, api_type=api_type, **defaults)


def insert_station(db, station):
    """Add a station row to a test database"""
    cursor = db.get_cursor()
    cursor.execute("""
        INSERT INTO stations (id, name, description, api_type, api_url, stream_url, logo, is_active, sort_order)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (station.station_id, station.name, station.description, station.api_type, station.api_url,
          station.stream_url, station.logo, int(station.is_active), station.sort_order))
    db.conn.commit()
    cursor.close()


@pytest.fixture
def test_db_path(tmp_path):
    """Provide a temporary database file path"""
    return str(tmp_path / 'test_nowplaying.db')


@pytest.fixture
def test_db(test_db_path):
    """Provide a connected NowPlayingDatabase with the schema and built-in stations"""
    db = NowPlayingDatabase(test_db_path)
    db.connect()
    yield db
    db.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=30, clock=clock)


@pytest.fixture
def adapters():
    """One scripted adapter per API type (all miss until scripted)"""
    return {
        API_TRITON: FakeAdapter(API_TRITON),
        API_STREAMTHEWORLD: FakeAdapter(API_STREAMTHEWORLD),
        API_SOMAFM: FakeAdapter(API_SOMAFM),
        API_CUSTOM: FakeAdapter(API_CUSTOM),
    }


@pytest.fixture
def artwork_lookup():
    return RecordingLookup('https://is1-ssl.mzstatic.com/image/cover/600x600bb.jpg')


@pytest.fixture
def logo_lookup():
    return RecordingLookup(lambda company: f"https://logo.example.com/{company.lower().replace(' ', '')}.com")


@pytest.fixture
def registry(test_db):
    return StationRegistry(db=test_db)


@pytest.fixture
def dispatcher(registry, cache, test_db, adapters, artwork_lookup, logo_lookup):
    """StationDispatcher wired to the test database and scripted adapters"""
    return StationDispatcher(
        registry=registry,
        cache=cache,
        sink=test_db,
        adapters=adapters,
        artwork_lookup=artwork_lookup,
        logo_lookup=logo_lookup,
    )


@pytest.fixture
def auto_station(test_db):
    """An 'auto' station stored in the test database"""
    station = make_station('auto-fm', api_type=API_AUTO, name='Auto FM', sort_order=10)
    insert_station(test_db, station)
    return station


@pytest.fixture
def auth_file(tmp_path, monkeypatch):
    """Point the auth module at a temporary (initially absent) auth file"""
    path = str(tmp_path / 'auth.json')
    monkeypatch.setattr(auth, 'AUTH_FILE', path)
    auth.throttle.clear()
    yield path
    auth.throttle.clear()


@pytest.fixture
def test_settings():
    import copy
    settings = copy.deepcopy(DEFAULT_SETTINGS)
    settings['logging']['file'] = None
    return settings


@pytest.fixture
def test_app(test_db, dispatcher, test_settings, auth_file, monkeypatch):
    """Provide the Flask app wired to the test database and dispatcher"""
    monkeypatch.delenv('OPENAI_API_KEY', raising=False)

    web_app.config['TESTING'] = True
    init_app(database=test_db, station_dispatcher=dispatcher,
             background_scheduler=None, app_settings=test_settings)

    yield web_app


@pytest.fixture
def test_client(test_app):
    """Provide a Flask test client for making HTTP requests"""
    return test_app.test_client()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
