"""
Data model for Radio Now Playing

- TrackMetadata: what is currently airing (immutable, one per poll)
- StationDescriptor: static per-station configuration
- AdVerdict: classifier output for one metadata snapshot
- Miss: a failed upstream fetch (falsy, carries the reason)
"""

from dataclasses import dataclass, field, replace
from typing import Optional

# Upstream API families
API_TRITON = 'triton'
API_STREAMTHEWORLD = 'streamtheworld'
API_SOMAFM = 'somafm'
API_CUSTOM = 'custom'
API_AUTO = 'auto'

API_TYPES = (API_TRITON, API_STREAMTHEWORLD, API_SOMAFM, API_CUSTOM, API_AUTO)

# Sentinel artwork value for ads without a brand logo
ADVERTISEMENT_ARTWORK = 'advertisement'


@dataclass(frozen=True)
class TrackMetadata:
    """Normalized "now playing" track

    title/artist are never empty once an adapter or the dispatcher has built
    the record (adapters substitute the station name).
    """
    title: str
    artist: str
    album: Optional[str] = None
    artwork: Optional[str] = None
    duration: Optional[int] = None
    is_ad: bool = False
    is_live: bool = True

    def with_changes(self, **changes):
        """Return a new TrackMetadata with the given fields replaced"""
        return replace(self, **changes)

    def to_dict(self):
        return {
            'title': self.title,
            'artist': self.artist,
            'album': self.album,
            'artwork': self.artwork,
            'duration': self.duration,
            'isAd': self.is_ad,
            'isLive': self.is_live,
        }

    @classmethod
    def from_dict(cls, data):
        """Build from a camelCase or snake_case dict (API bodies, database rows)"""
        duration = data.get('duration')
        return cls(
            title=data['title'],
            artist=data['artist'],
            album=data.get('album'),
            artwork=data.get('artwork'),
            duration=int(duration) if duration is not None else None,
            is_ad=bool(data.get('isAd', data.get('is_ad', False))),
            is_live=bool(data.get('isLive', data.get('is_live', True))),
        )


@dataclass(frozen=True)
class StationDescriptor:
    """Static station configuration

    api_type selects the upstream adapter; 'auto' probes adapters in order.
    description is the station tagline shown when no track data is available.
    """
    station_id: str
    name: str
    api_type: str
    stream_url: str
    api_url: Optional[str] = None
    description: Optional[str] = None
    frequency: Optional[str] = None
    location: Optional[str] = None
    genre: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0

    @property
    def display_name(self):
        return self.name

    @property
    def tagline(self):
        """Static "artist" line for the fallback record (never empty)"""
        return self.description or self.genre or self.location or self.name

    def to_dict(self):
        return {
            'stationId': self.station_id,
            'name': self.name,
            'description': self.description,
            'apiType': self.api_type,
            'apiUrl': self.api_url,
            'streamUrl': self.stream_url,
            'frequency': self.frequency,
            'location': self.location,
            'genre': self.genre,
            'website': self.website,
            'logo': self.logo,
            'isActive': self.is_active,
            'sortOrder': self.sort_order,
        }


@dataclass(frozen=True)
class AdVerdict:
    """Ad classifier output

    confidence reflects the tier that produced it: keyword scan ~0.5,
    metadata patterns ~0.85, audio + LLM whatever the model said (clamped).
    """
    is_ad: bool
    confidence: float = 0.0
    category: Optional[str] = None
    brand: Optional[str] = None
    reason: Optional[str] = None
    tier: Optional[str] = None
    matches: tuple = field(default=(), compare=False)

    def to_dict(self):
        return {
            'isAd': self.is_ad,
            'confidence': self.confidence,
            'category': self.category,
            'brand': self.brand,
            'reason': self.reason,
            'tier': self.tier,
        }


NO_AD = AdVerdict(is_ad=False, confidence=0.0)


class Miss:
    """Result of an upstream call that produced no usable data

    Falsy, so callers can write ``if result:`` for "got a track".
    """

    __slots__ = ('reason',)

    def __init__(self, reason):
        self.reason = reason

    def __bool__(self):
        return False

    def __eq__(self, other):
        return isinstance(other, Miss) and other.reason == self.reason

    def __hash__(self):
        return hash(('Miss', self.reason))

    def __repr__(self):
        return f"Miss({self.reason!r})"
