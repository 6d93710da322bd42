"""
Upstream adapters for Radio Now Playing

One adapter per station API family. Every adapter makes a single request
with a hard timeout (no retries) and normalizes the response into a
TrackMetadata. Anything that goes wrong (network error, timeout, non-2xx,
unexpected body) comes back as a Miss with the reason; adapters never raise
for an unavailable source.

Wire formats:
- triton: XML with CDATA-wrapped <property name="cue_title"> fields
  (a JSON variant with tracks[]/nowplaying[] is also accepted)
- streamtheworld: JSON results.livestream[0].cue, or a JS payload with a
  `nowplaying = {...}` assignment. XML bodies are a miss.
- somafm: JSON songs[], first entry is current
- custom: generic JSON, several field-name aliases tried
"""

import json
import re
import time
import logging
import requests

from radio_nowplaying.models import (
    TrackMetadata, Miss,
    API_TRITON, API_STREAMTHEWORLD, API_SOMAFM, API_CUSTOM
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3
BODY_CHUNK_SIZE = 8192

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/xml, */*",
}

TRITON_NOWPLAYING_URL = "https://np.tritondigital.com/public/nowplaying"
STREAMTHEWORLD_LIVESTREAM_URL = "https://playerservices.streamtheworld.com/api/livestream"
SOMAFM_SONGS_URL = "https://somafm.com/songs/{channel}.json"

TRITON_PROPERTY_PATTERN = r'<property name="{name}"><!\[CDATA\[(.*?)\]\]>'
STREAMTHEWORLD_JS_PATTERN = re.compile(r'nowplaying.*?=.*?({.*?})', re.DOTALL)

CUSTOM_TITLE_FIELDS = ('title', 'song', 'track', 'nowPlaying.title')
CUSTOM_ARTIST_FIELDS = ('artist', 'performer', 'nowPlaying.artist')
CUSTOM_ALBUM_FIELDS = ('album', 'nowPlaying.album')
CUSTOM_ARTWORK_FIELDS = ('artwork', 'image', 'cover', 'nowPlaying.artwork')


def get_with_deadline(url, timeout, clock=time.monotonic, **kwargs):
    """GET a URL with the timeout applied to the whole call, body included

    requests' own timeout only bounds each socket read, so the body is
    streamed and checked against a deadline.

    Returns:
        Response with its content already loaded

    Raises:
        requests.exceptions.Timeout: If the body is not complete by the deadline
        requests.exceptions.RequestException: Any other request failure
    """
    deadline = clock() + timeout
    response = requests.get(url, timeout=timeout, stream=True, **kwargs)
    try:
        response.raise_for_status()
        chunks = []
        for chunk in response.iter_content(chunk_size=BODY_CHUNK_SIZE):
            chunks.append(chunk)
            if clock() >= deadline:
                raise requests.exceptions.Timeout(f"response from {url} not complete after {timeout}s")
        response._content = b''.join(chunks)
    finally:
        response.close()
    return response


def _clean(value):
    if value is None:
        return ''
    return str(value).strip()


def build_track(station, title, artist, album=None, artwork=None, duration=None):
    """Build a TrackMetadata from raw upstream fields

    Returns a Miss when the title is empty. An empty artist is replaced by
    the station name so the record is always displayable.
    """
    title = _clean(title)
    artist = _clean(artist)

    if not title:
        return Miss("no title in upstream response")

    if not artist:
        artist = station.name

    try:
        duration = int(float(duration)) if duration not in (None, '') else None
    except (TypeError, ValueError, OverflowError):
        duration = None

    return TrackMetadata(
        title=title,
        artist=artist,
        album=_clean(album) or None,
        artwork=_clean(artwork) or None,
        duration=duration,
        is_ad=False,
        is_live=True,
    )


def _mount_from_stream_url(stream_url, suffix):
    """Derive a Triton/StreamTheWorld mount name from a stream URL

    e.g. .../livestream-redirect/KBFBFMAAC.aac -> KBFBFMAAC
    """
    if not stream_url:
        return None
    name = stream_url.rstrip('/').rsplit('/', 1)[-1]
    name = name.split('?', 1)[0].rsplit('.', 1)[0]
    if not name:
        return None
    if suffix and not name.upper().endswith(suffix):
        name = name + suffix
    return name


# ==================== PARSERS ====================

def parse_triton_xml(text):
    """Extract (title, artist) from a Triton now-playing XML body

    Returns:
        (title, artist) tuple; title is None when no cue_title is present
    """
    title_match = re.search(TRITON_PROPERTY_PATTERN.format(name='cue_title'), text, re.DOTALL)
    artist_match = re.search(TRITON_PROPERTY_PATTERN.format(name='track_artist_name'), text, re.DOTALL)

    title = title_match.group(1) if title_match else None
    artist = artist_match.group(1) if artist_match else None
    return title, artist


def parse_triton_json(data):
    """Extract (title, artist) from the JSON flavor of the Triton API"""
    if not isinstance(data, dict):
        return None, None
    entries = data.get('tracks') or data.get('nowplaying') or []
    if not entries or not isinstance(entries, list):
        return None, None
    entry = entries[0]
    if not isinstance(entry, dict):
        return None, None
    title = entry.get('cue_title') or entry.get('title')
    artist = entry.get('track_artist_name') or entry.get('artist')
    return title, artist


def parse_streamtheworld_json(data):
    """Extract the cue dict from a StreamTheWorld livestream JSON body"""
    try:
        cue = data['results']['livestream'][0]['cue']
    except (KeyError, IndexError, TypeError):
        return None
    return cue if isinstance(cue, dict) else None


def parse_streamtheworld_js(text):
    """Extract the cue dict from a JS payload containing `nowplaying = {...}`"""
    match = STREAMTHEWORLD_JS_PATTERN.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group(1))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def lookup_field(data, names):
    """Return the first non-empty value among several field aliases

    Dotted names ("nowPlaying.title") walk nested dicts.
    """
    for name in names:
        value = data
        for part in name.split('.'):
            if not isinstance(value, dict):
                value = None
                break
            value = value.get(part)
        if value not in (None, '') and not isinstance(value, (dict, list)):
            return value
    return None


# ==================== ADAPTERS ====================

class Adapter:
    """Base class for upstream adapters

    Subclasses set api_type and implement parse(station, response).
    """

    api_type = None

    def __init__(self, clock=time.monotonic):
        self.clock = clock

    def get_url(self, station):
        return station.api_url

    def fetch(self, station, timeout=DEFAULT_TIMEOUT):
        """Fetch and normalize the current track for a station

        Args:
            station: StationDescriptor
            timeout: Hard request timeout in seconds

        Returns:
            TrackMetadata, or Miss(reason)
        """
        url = self.get_url(station)
        if not url:
            return Miss(f"no {self.api_type} API URL for station {station.station_id}")

        try:
            response = get_with_deadline(url, timeout, clock=self.clock, headers=HEADERS)
        except requests.exceptions.Timeout:
            logger.info(f"{self.api_type} API timed out for {station.station_id} after {timeout}s")
            return Miss(f"{self.api_type} request timed out")
        except requests.exceptions.RequestException as e:
            logger.info(f"{self.api_type} API request failed for {station.station_id}: {e}")
            return Miss(f"{self.api_type} request failed: {e}")

        try:
            result = self.parse(station, response)
        except (ValueError, KeyError, TypeError, IndexError) as e:
            logger.info(f"{self.api_type} API returned an unparseable body for {station.station_id}: {e}")
            return Miss(f"{self.api_type} response could not be parsed")

        if not result:
            logger.debug(f"{self.api_type} miss for {station.station_id}: {result.reason}")
        return result

    def parse(self, station, response):
        raise NotImplementedError

    def __repr__(self):
        return f"{self.__class__.__name__}()"


class TritonAdapter(Adapter):
    """Triton Digital now-playing API (XML, occasionally JSON)"""

    api_type = API_TRITON

    def get_url(self, station):
        if station.api_url:
            return station.api_url
        mount = _mount_from_stream_url(station.stream_url, 'AAC')
        if not mount:
            return None
        return f"{TRITON_NOWPLAYING_URL}?mountName={mount}&numberToFetch=1&eventType=track"

    def parse(self, station, response):
        text = response.text or ''
        stripped = text.lstrip()

        if stripped.startswith('{'):
            title, artist = parse_triton_json(response.json())
        elif stripped.startswith('<'):
            title, artist = parse_triton_xml(text)
        else:
            return Miss("triton returned a non-XML body")

        if not title:
            return Miss("triton response has no cue_title")
        return build_track(station, title, artist)


class StreamTheWorldAdapter(Adapter):
    """StreamTheWorld livestream API (JSON, or a scraped JS payload)"""

    api_type = API_STREAMTHEWORLD

    def get_url(self, station):
        if station.api_url:
            return station.api_url
        mount = _mount_from_stream_url(station.stream_url, 'AAC')
        if not mount:
            return None
        return f"{STREAMTHEWORLD_LIVESTREAM_URL}?version=1.9&mount={mount}&lang=en"

    def parse(self, station, response):
        content_type = response.headers.get('content-type', '').lower()
        text = response.text or ''

        if 'application/json' in content_type:
            cue = parse_streamtheworld_json(response.json())
        elif text.lstrip().startswith('<'):
            logger.info(f"StreamTheWorld returned XML instead of JSON for {station.station_id}")
            return Miss("streamtheworld returned XML instead of JSON")
        else:
            cue = parse_streamtheworld_js(text)

        if not cue:
            return Miss("streamtheworld response has no cue")

        return build_track(
            station,
            cue.get('title'),
            cue.get('artist'),
            album=cue.get('album'),
            artwork=cue.get('artwork') or cue.get('image'),
            duration=cue.get('duration'),
        )


class SomaFMAdapter(Adapter):
    """SomaFM songs API (JSON array of recent songs, newest first)"""

    api_type = API_SOMAFM

    def get_url(self, station):
        if station.api_url:
            return station.api_url
        channel = station.station_id
        if channel.startswith('somafm-'):
            channel = channel[len('somafm-'):]
        return SOMAFM_SONGS_URL.format(channel=channel)

    def parse(self, station, response):
        data = response.json()
        songs = data.get('songs') if isinstance(data, dict) else None
        if not songs or not isinstance(songs, list):
            return Miss("somafm returned no songs")

        song = songs[0]
        if not isinstance(song, dict):
            return Miss("somafm song entry is not an object")

        return build_track(
            station,
            song.get('title'),
            song.get('artist'),
            album=song.get('album'),
            artwork=song.get('albumart'),
        )


class CustomAdapter(Adapter):
    """Generic JSON endpoint, tries common field-name aliases"""

    api_type = API_CUSTOM

    def parse(self, station, response):
        data = response.json()
        if isinstance(data, list):
            data = data[0] if data else {}
        if not isinstance(data, dict):
            return Miss("custom API returned a non-object body")

        title = lookup_field(data, CUSTOM_TITLE_FIELDS)
        if not title:
            return Miss("custom API response has no recognizable title field")

        return build_track(
            station,
            title,
            lookup_field(data, CUSTOM_ARTIST_FIELDS),
            album=lookup_field(data, CUSTOM_ALBUM_FIELDS),
            artwork=lookup_field(data, CUSTOM_ARTWORK_FIELDS),
            duration=data.get('duration'),
        )


# Probe order for stations configured as 'auto'
AUTO_PROBE_ORDER = (API_TRITON, API_STREAMTHEWORLD, API_CUSTOM, API_SOMAFM)


def build_adapter_registry():
    """Create the api_type -> Adapter lookup table"""
    return {
        API_TRITON: TritonAdapter(),
        API_STREAMTHEWORLD: StreamTheWorldAdapter(),
        API_SOMAFM: SomaFMAdapter(),
        API_CUSTOM: CustomAdapter(),
    }
