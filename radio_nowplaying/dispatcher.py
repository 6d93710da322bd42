"""
Station dispatcher for Radio Now Playing

Produces the "now playing" record for one station per call:

    awaiting-fetch -> fetched -> classifying -> branding | enriching -> persisted
          \\
           -> fallback (adapter miss: static station identity, no classification)

Policy:
- Adapter failures of any kind are a Miss; the caller always gets a record
- Tier 1 + Tier 2 classification runs on every poll; Tier 3 (audio + LLM)
  only through detect_ad_on_stream()
- Unchanged upstream snapshots are served from the TTL cache (no
  classification, artwork lookup or database write)
- Persistence failures are logged and the in-memory record is returned
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from radio_nowplaying.models import TrackMetadata, AdVerdict, Miss, NO_AD, API_AUTO, ADVERTISEMENT_ARTWORK
from radio_nowplaying.adapters import AUTO_PROBE_ORDER, DEFAULT_TIMEOUT, build_adapter_registry
from radio_nowplaying.ad_detection import (
    classify_metadata, apply_branding, is_branded, TIER_MANUAL, COMMERCIAL_ALBUM
)
from radio_nowplaying.cache import TTLCache, make_cache_key
from radio_nowplaying.stations import StationRegistry, FALLBACK_ALBUM

logger = logging.getLogger(__name__)

# Poll states
STATE_AWAITING_FETCH = 'awaiting-fetch'
STATE_FETCHED = 'fetched'
STATE_ENRICHING = 'enriching'
STATE_CLASSIFYING = 'classifying'
STATE_BRANDING = 'branding'
STATE_PERSISTED = 'persisted'
STATE_FALLBACK = 'fallback'

DEFAULT_FORCED_BRAND = 'Capital One'
FORCED_AD_DURATION = 30


@dataclass
class PollResult:
    """One dispatcher outcome, ready to serialize for the API"""
    station: object
    track: TrackMetadata
    verdict: AdVerdict = NO_AD
    state: str = STATE_AWAITING_FETCH
    cached: bool = False
    persisted: bool = False
    source: str = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_fallback(self):
        return self.state == STATE_FALLBACK

    def to_dict(self):
        data = self.track.to_dict()
        data.update({
            'stationId': self.station.station_id,
            'stationName': self.station.name,
            'timestamp': self.timestamp.isoformat(),
            'adConfidence': self.verdict.confidence if self.verdict.is_ad else None,
            'adReason': self.verdict.reason if self.verdict.is_ad else None,
            'adCategory': self.verdict.category if self.verdict.is_ad else None,
            'adBrand': self.verdict.brand if self.verdict.is_ad else None,
            'source': self.source,
            'state': self.state,
        })
        return data


def build_fallback_track(station):
    """Static station identity shown when no live track data is available"""
    return TrackMetadata(
        title=station.name,
        artist=station.tagline,
        album=FALLBACK_ALBUM,
        artwork=station.logo,
        duration=None,
        is_ad=False,
        is_live=True,
    )


class StationDispatcher:
    """Per-process dispatcher context

    Args:
        registry: StationRegistry
        cache: TTLCache (or anything with get(key)/put(key, entry)/new_entry())
        sink: NowPlayingDatabase or None
        adapters: dict api_type -> Adapter
        artwork_lookup: callable(artist, title) -> URL or None
        logo_lookup: callable(company_name) -> URL or None
        key_by_station: Persist one record per station (False: one shared record)
        timeout: Adapter timeout in seconds
    """

    def __init__(self, registry=None, cache=None, sink=None, adapters=None,
                 artwork_lookup=None, logo_lookup=None, key_by_station=True,
                 timeout=DEFAULT_TIMEOUT):
        self.registry = registry or StationRegistry()
        self.cache = cache if cache is not None else TTLCache()
        self.sink = sink
        self.adapters = adapters if adapters is not None else build_adapter_registry()
        self.artwork_lookup = artwork_lookup
        self.logo_lookup = logo_lookup
        self.key_by_station = key_by_station
        self.timeout = timeout
        # station_id -> cache key of its most recent live snapshot
        self._latest_keys = {}

    @classmethod
    def from_settings(cls, settings, db=None):
        """Build a dispatcher wired to the configured collaborators"""
        from radio_nowplaying.artwork import ArtworkLookup, LogoLookup

        np_settings = (settings or {}).get('now_playing', {})
        registry = StationRegistry(
            db=db,
            default_station_id=np_settings.get('default_station', 'kbfb-955'),
            persist_detected=np_settings.get('persist_detected_api_type', False),
        )
        return cls(
            registry=registry,
            cache=TTLCache(ttl_seconds=np_settings.get('cache_ttl_seconds', 30)),
            sink=db,
            artwork_lookup=ArtworkLookup(settings),
            logo_lookup=LogoLookup(settings),
            key_by_station=np_settings.get('key_by_station', True),
            timeout=np_settings.get('metadata_timeout_seconds', DEFAULT_TIMEOUT),
        )

    # ==================== FETCH ====================

    def _call_adapter(self, adapter, station):
        try:
            return adapter.fetch(station, timeout=self.timeout)
        except Exception as e:
            logger.error(f"Adapter {adapter!r} failed for {station.station_id}: {e}", exc_info=True)
            return Miss(f"{adapter.api_type} adapter error: {e}")

    def fetch(self, station):
        """Run the adapter(s) for a station

        Returns:
            (TrackMetadata or Miss, api_type that produced it or None)
        """
        if station.api_type == API_AUTO:
            for api_type in AUTO_PROBE_ORDER:
                adapter = self.adapters.get(api_type)
                if adapter is None:
                    continue
                result = self._call_adapter(adapter, station)
                if result:
                    self.registry.remember_api_type(station.station_id, api_type)
                    return result, api_type
            return Miss(f"no adapter returned data for auto station {station.station_id}"), None

        adapter = self.adapters.get(station.api_type)
        if adapter is None:
            logger.warning(f"No adapter for API type '{station.api_type}' (station {station.station_id})")
            return Miss(f"unsupported API type {station.api_type}"), None

        return self._call_adapter(adapter, station), station.api_type

    # ==================== CLASSIFY / FINALIZE ====================

    def classify(self, track):
        """Tier 1 + Tier 2 classification of a live snapshot"""
        return classify_metadata(track.title, track.artist)

    def enrich(self, track):
        """Backfill artwork for a music track (best-effort)"""
        if track.artwork or not self.artwork_lookup:
            return track
        try:
            artwork = self.artwork_lookup(track.artist, track.title)
        except Exception as e:
            logger.warning(f"Artwork lookup failed for {track.artist} - {track.title}: {e}")
            return track
        return track.with_changes(artwork=artwork) if artwork else track

    def brand(self, track, station, verdict):
        try:
            return apply_branding(track, station.name, verdict, logo_lookup=self.logo_lookup)
        except Exception as e:
            logger.warning(f"Logo lookup failed while branding ad on {station.station_id}: {e}")
            return apply_branding(track, station.name, verdict, logo_lookup=None)

    def finalize(self, raw, station, verdict):
        """Apply the branding rule (ads) or artwork enrichment (music)

        Returns:
            (final TrackMetadata, state)
        """
        if verdict.is_ad:
            return self.brand(raw, station, verdict), STATE_BRANDING
        return self.enrich(raw.with_changes(is_ad=False)), STATE_ENRICHING

    # ==================== PERSIST ====================

    def persist(self, station, track, verdict=None, record_detection=False, transcription=None):
        """Write the record to the sink; failures are logged, never raised

        Returns:
            True if the write succeeded
        """
        if self.sink is None:
            return False

        record_station = station.station_id if self.key_by_station else None
        try:
            self.sink.update_now_playing(track, station_id=record_station, verdict=verdict,
                                         source_station_id=station.station_id)
            if record_detection and verdict is not None and verdict.is_ad:
                self.sink.record_ad_detection(station.station_id, track.title, track.artist,
                                              verdict, transcription=transcription)
        except Exception as e:
            logger.error(f"Error saving now playing for {station.station_id}: {e}", exc_info=True)
            return False
        return True

    # ==================== POLL ====================

    def poll(self, station_id=None):
        """Produce the current record for a station

        Args:
            station_id: Station id (unknown/missing -> default station)

        Returns:
            PollResult (never raises for upstream or persistence failures)
        """
        station = self.registry.resolve(station_id)
        logger.debug(f"[{station.station_id}] {STATE_AWAITING_FETCH}")

        raw, api_type = self.fetch(station)

        if not raw:
            logger.info(f"[{station.station_id}] No live metadata ({raw.reason}), serving station info")
            track = build_fallback_track(station)
            result = PollResult(station=station, track=track, verdict=NO_AD, state=STATE_FALLBACK)
            result.persisted = self.persist(station, track)
            return result

        logger.debug(f"[{station.station_id}] {STATE_FETCHED} via {api_type}: {raw.artist} - {raw.title}")

        key = make_cache_key(station.station_id, raw.title, raw.artist)
        self._latest_keys[station.station_id] = key

        entry = self.cache.get(key)
        if entry is not None:
            return PollResult(station=station, track=entry.track, verdict=entry.verdict,
                              state=STATE_PERSISTED, cached=True, source=api_type)

        logger.debug(f"[{station.station_id}] {STATE_CLASSIFYING}")
        verdict = self.classify(raw)
        if verdict.is_ad:
            logger.info(f"[{station.station_id}] Ad detected: {raw.title} / {raw.artist} "
                        f"({verdict.reason}, confidence {verdict.confidence})")

        track, state = self.finalize(raw, station, verdict)
        logger.debug(f"[{station.station_id}] {state}")

        self.cache.put(key, self.cache.new_entry(raw, track, verdict))

        persisted = self.persist(station, track, verdict, record_detection=verdict.is_ad)
        return PollResult(station=station, track=track, verdict=verdict,
                          state=STATE_PERSISTED if persisted else state,
                          persisted=persisted, source=api_type)

    def poll_all(self):
        """Poll every active station

        Returns:
            List of PollResult
        """
        results = []
        for station in self.registry.all_stations():
            if not station.is_active:
                continue
            results.append(self.poll(station.station_id))
        return results

    # ==================== TIER 3 / MANUAL ====================

    def apply_deep_verdict(self, station_id, deep_result):
        """Let an audio/LLM verdict supersede the metadata verdict for a station

        Inconclusive results (errors) change nothing. The latest live
        snapshot for the station is re-finalized with the new verdict.

        Returns:
            PollResult, or None if nothing was updated
        """
        if deep_result.error:
            return None

        station = self.registry.resolve(station_id)
        key = self._latest_keys.get(station.station_id)
        entry = self.cache.get(key) if key is not None else None

        if entry is None:
            # No recent live snapshot: poll first so there is something to relabel
            polled = self.poll(station.station_id)
            if polled.is_fallback:
                return None
            key = self._latest_keys.get(station.station_id)
            entry = self.cache.get(key) if key is not None else None
            if entry is None:
                return None

        verdict = deep_result.verdict
        track, state = self.finalize(entry.raw, station, verdict)
        self.cache.put(key, self.cache.new_entry(entry.raw, track, verdict))

        persisted = self.persist(station, track, verdict, record_detection=verdict.is_ad,
                                 transcription=deep_result.transcription)
        logger.info(f"[{station.station_id}] Audio verdict applied: isAd={verdict.is_ad} "
                    f"confidence={verdict.confidence:.2f}")
        return PollResult(station=station, track=track, verdict=verdict,
                          state=STATE_PERSISTED if persisted else state, persisted=persisted)

    def detect_ad_on_stream(self, station_id=None, stream_url=None, settings=None):
        """Run Tier 3 for a station (or an explicit stream URL)

        Returns:
            (DeepDetectionResult, PollResult or None)
        """
        from radio_nowplaying.deep_detection import detect_ad_from_stream

        station = self.registry.resolve(station_id) if (station_id or not stream_url) else None
        url = stream_url or station.stream_url

        deep_result = detect_ad_from_stream(url, settings=settings)

        applied = None
        if station is not None:
            applied = self.apply_deep_verdict(station.station_id, deep_result)
        return deep_result, applied

    def force_ad(self, brand=None, station_id=None):
        """Write a branded ad record without classification (manual override)

        Returns:
            PollResult
        """
        brand = (brand or '').strip() or DEFAULT_FORCED_BRAND
        station = self.registry.resolve(station_id)

        artwork = None
        if self.logo_lookup:
            try:
                artwork = self.logo_lookup(brand)
            except Exception as e:
                logger.warning(f"Logo lookup failed for forced ad '{brand}': {e}")

        track = TrackMetadata(
            title=f"{brand} Commercial",
            artist='Advertisement',
            album=COMMERCIAL_ALBUM,
            artwork=artwork or ADVERTISEMENT_ARTWORK,
            duration=FORCED_AD_DURATION,
            is_ad=True,
            is_live=True,
        )
        verdict = AdVerdict(
            is_ad=True,
            confidence=1.0,
            category='manual',
            brand=brand,
            reason=f"Manually detected {brand} advertisement",
            tier=TIER_MANUAL,
        )

        logger.info(f"[{station.station_id}] Forced ad record: {track.title}")
        persisted = self.persist(station, track, verdict, record_detection=True)
        return PollResult(station=station, track=track, verdict=verdict,
                          state=STATE_PERSISTED if persisted else STATE_BRANDING,
                          persisted=persisted, source='manual')

    def update_manual(self, track, station_id=None):
        """Store a track supplied by an operator

        Ads are branded the same way as polled ads.

        Returns:
            PollResult
        """
        station = self.registry.resolve(station_id)
        verdict = NO_AD
        if track.is_ad or is_branded(track):
            verdict = AdVerdict(is_ad=True, confidence=1.0, category='manual',
                                reason='Marked as advertisement by operator', tier=TIER_MANUAL)
            track = self.brand(track, station, verdict)

        persisted = self.persist(station, track, verdict)
        return PollResult(station=station, track=track, verdict=verdict,
                          state=STATE_PERSISTED if persisted else STATE_FETCHED,
                          persisted=persisted, source='manual')
