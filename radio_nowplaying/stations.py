"""
Station registry for Radio Now Playing

Resolves station ids to StationDescriptors. Descriptors come from the
database `stations` table; if the database is unavailable the built-in
DEFAULT_STATIONS are used instead.

Unknown ids resolve to the default station rather than failing.
"""

import logging
import threading
from dataclasses import replace

from radio_nowplaying.models import (
    StationDescriptor, API_TRITON, API_STREAMTHEWORLD, API_SOMAFM, API_AUTO
)

logger = logging.getLogger(__name__)

DEFAULT_STATION_ID = 'kbfb-955'

DEFAULT_STATIONS = [
    StationDescriptor(
        station_id='kbfb-955',
        name='95.5 The Beat',
        description='Dallas Hip Hop & R&B',
        api_type=API_TRITON,
        api_url='https://np.tritondigital.com/public/nowplaying?mountName=KBFBFMAAC&numberToFetch=1&eventType=track',
        stream_url='https://playerservices.streamtheworld.com/api/livestream-redirect/KBFBFMAAC.aac',
        frequency='95.5 FM',
        location='Dallas, TX',
        genre='Hip Hop',
        website='https://www.theBeatDFW.com',
        sort_order=1,
    ),
    StationDescriptor(
        station_id='hot97',
        name='Hot 97',
        description="New York's Hip Hop & R&B",
        api_type=API_STREAMTHEWORLD,
        api_url='https://playerservices.streamtheworld.com/api/livestream?version=1.9&mount=WQHTFMAAC&lang=en',
        stream_url='https://playerservices.streamtheworld.com/api/livestream-redirect/WQHTAAC.aac',
        frequency='97.1 FM',
        location='New York, NY',
        genre='Hip Hop',
        website='https://www.hot97.com',
        sort_order=2,
    ),
    StationDescriptor(
        station_id='power106',
        name='Power 106',
        description='Los Angeles Hip Hop & R&B',
        api_type=API_STREAMTHEWORLD,
        api_url='https://playerservices.streamtheworld.com/api/livestream?version=1.9&mount=KPWRFMAAC&lang=en',
        stream_url='https://playerservices.streamtheworld.com/api/livestream-redirect/KPWRAAC.aac',
        frequency='105.9 FM',
        location='Los Angeles, CA',
        genre='Hip Hop',
        website='https://www.power106.com',
        sort_order=3,
    ),
    StationDescriptor(
        station_id='somafm-metal',
        name='SomaFM Metal',
        description='Heavy Metal & Hard Rock',
        api_type=API_SOMAFM,
        api_url='https://api.somafm.com/songs/metal.json',
        stream_url='https://ice1.somafm.com/metal-128-mp3',
        frequency='Online',
        location='San Francisco, CA',
        genre='Metal',
        website='https://somafm.com/metal',
        sort_order=4,
    ),
]

# Legacy ids still used by older clients
STATION_ALIASES = {
    'beat-955': 'kbfb-955',
    'hot-97': 'hot97',
    'power-106': 'power106',
}

# Fallback record "album" when the upstream gives no track data
FALLBACK_ALBUM = 'Live Stream'


def descriptor_from_row(row):
    """Build a StationDescriptor from a stations-table dict"""
    return StationDescriptor(
        station_id=row['id'],
        name=row['name'],
        api_type=row.get('api_type') or API_AUTO,
        stream_url=row.get('stream_url') or '',
        api_url=row.get('api_url'),
        description=row.get('description'),
        frequency=row.get('frequency'),
        location=row.get('location'),
        genre=row.get('genre'),
        website=row.get('website'),
        logo=row.get('logo'),
        is_active=bool(row.get('is_active', 1)),
        sort_order=row.get('sort_order') or 0,
    )


class StationRegistry:
    """Station lookup with in-process api_type overrides

    Args:
        db: NowPlayingDatabase (optional)
        default_station_id: Station used for unknown/missing ids
        persist_detected: Also write auto-detected API types to the database
    """

    def __init__(self, db=None, default_station_id=DEFAULT_STATION_ID, persist_detected=False):
        self.db = db
        self.default_station_id = default_station_id
        self.persist_detected = persist_detected
        self._api_type_overrides = {}
        self._lock = threading.Lock()

    def _load_from_db(self):
        if not self.db or self.db.conn is None:
            return None
        try:
            rows = self.db.get_all_stations(active_only=True)
        except Exception as e:
            logger.error(f"Error loading stations from database: {e}")
            logger.warning("Falling back to built-in station list")
            return None
        return [descriptor_from_row(row) for row in rows]

    def _apply_override(self, station):
        with self._lock:
            api_type = self._api_type_overrides.get(station.station_id)
        if api_type and station.api_type == API_AUTO:
            return replace(station, api_type=api_type)
        return station

    def all_stations(self):
        """Active stations, database first, built-ins as fallback"""
        stations = self._load_from_db()
        if not stations:
            stations = list(DEFAULT_STATIONS)
        return [self._apply_override(s) for s in sorted(stations, key=lambda s: (s.sort_order, s.name))]

    def get(self, station_id):
        """Look up a station by id (aliases honoured)

        Returns:
            StationDescriptor or None
        """
        if not station_id:
            return None
        station_id = STATION_ALIASES.get(station_id, station_id)

        for station in self.all_stations():
            if station.station_id == station_id:
                return station

        # An inactive or removed station may still be a built-in
        for station in DEFAULT_STATIONS:
            if station.station_id == station_id:
                return self._apply_override(station)
        return None

    def resolve(self, station_id):
        """Look up a station, substituting the default station for unknown ids

        Returns:
            StationDescriptor (never None)
        """
        station = self.get(station_id)
        if station:
            return station

        if station_id:
            logger.info(f"Unknown station '{station_id}', using default station {self.default_station_id}")

        station = self.get(self.default_station_id)
        if station:
            return station
        return DEFAULT_STATIONS[0]

    def remember_api_type(self, station_id, api_type):
        """Record the adapter that worked for an 'auto' station

        Kept for the life of the process (and written to the database when
        persist_detected is set). Concurrent first polls may both write; the last one wins.
        """
        with self._lock:
            self._api_type_overrides[station_id] = api_type
        logger.info(f"Auto-detected API type '{api_type}' for station {station_id}")

        if self.persist_detected and self.db and self.db.conn is not None:
            try:
                self.db.update_station_api_type(station_id, api_type)
            except Exception as e:
                logger.warning(f"Could not save detected API type for {station_id}: {e}")

    def detected_api_type(self, station_id):
        with self._lock:
            return self._api_type_overrides.get(station_id)
