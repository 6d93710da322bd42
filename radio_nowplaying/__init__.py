"""
Radio Now Playing - Package Architecture

This package aggregates "now playing" metadata from third-party radio station
APIs, detects advertisement segments in that metadata, and serves a single
normalized track record per station.

Package Structure:
------------------
radio_nowplaying/
├── __init__.py           # Package initialization (this file)
├── models.py             # TrackMetadata, StationDescriptor, AdVerdict, Miss
├── settings.py           # JSON settings file with defaults
├── logging_setup.py      # Console + rotating file logging
├── adapters.py           # Upstream adapters (triton, streamtheworld, somafm, custom)
├── artwork.py            # iTunes artwork enricher
├── ad_rules.py           # Versioned classification rules table
├── ad_detection.py       # Tier 1 (keywords) + Tier 2 (patterns) + branding rule
├── deep_detection.py     # Tier 3 (stream sample -> transcription -> LLM)
├── cache.py              # Short-TTL result cache
├── stations.py           # Station registry (database + built-in defaults)
├── dispatcher.py         # Station dispatcher (fetch -> classify -> persist)
├── scheduler.py          # APScheduler wrapper for background refresh
├── auth.py               # HTTP Basic auth for admin endpoints
├── cli.py                # Command-line interface
├── database/             # SQLite persistence sink
├── integrations/         # Speech-to-text and LLM classifier clients
└── web/                  # Flask app + blueprints

Principles:
-----------
1. Upstream APIs are unreliable - a failed fetch is a value (Miss), not an error
2. The now-playing endpoint always answers with best-effort data
3. Cheap tiers run on every poll, the audio/LLM tier only on demand
4. Persistence failures never block the response

Data Flow:
---------
  Browser polls GET /api/now-playing?station=<id>
      │
      ▼
  StationDispatcher ──► Adapter (by api_type) ──► Miss? ──► static fallback
      │
      ├─► Tier 1 + Tier 2 classification
      ├─► ad: branding rule (brand title, logo)   music: iTunes artwork
      ├─► TTL cache (30s)
      └─► NowPlayingDatabase upsert

Usage:
------
# Serve the API (default)
python -m radio_nowplaying.cli

# Poll one station and print the record
python -m radio_nowplaying.cli --poll hot97

# Run the metadata classifier on a title/artist pair
python -m radio_nowplaying.cli --test-ad "Capital One Commercial" "Advertisement"

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Radio Now Playing Team"


def get_version():
    """Get the running version

    Returns:
        str: The version number
    """
    return __version__


from .models import TrackMetadata, StationDescriptor, AdVerdict, Miss

__all__ = [
    "TrackMetadata",
    "StationDescriptor",
    "AdVerdict",
    "Miss",
    "__version__",
]
