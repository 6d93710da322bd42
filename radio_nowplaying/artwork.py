"""
Artwork and logo lookups for Radio Now Playing

- fetch_artwork(): cover art from the iTunes Search API (music tracks)
- lookup_logo(): brand logo URL from the logo CDN (advertisements)

Both are best-effort: any failure returns None and the caller carries on
without an image.
"""

import re
import logging
import requests

from radio_nowplaying.ad_rules import LOGO_DOMAINS, LOGO_NOISE_PATTERN
from radio_nowplaying.adapters import get_with_deadline

logger = logging.getLogger(__name__)

ITUNES_SEARCH_URL = "https://itunes.apple.com/search"
ITUNES_THUMBNAIL_SIZE = '100x100bb'
DEFAULT_ARTWORK_SIZE = '600x600bb'
DEFAULT_TIMEOUT = 2

DEFAULT_LOGO_BASE_URL = 'https://logo.clearbit.com/'


def upgrade_artwork_url(url, size=DEFAULT_ARTWORK_SIZE):
    """Swap the iTunes thumbnail size token for a larger one"""
    if not url:
        return None
    return url.replace(ITUNES_THUMBNAIL_SIZE, size)


def fetch_artwork(artist, title, timeout=DEFAULT_TIMEOUT, size=DEFAULT_ARTWORK_SIZE):
    """Look up album artwork for a track on iTunes

    Args:
        artist: Artist name
        title: Song title
        timeout: Request timeout in seconds
        size: Size token substituted for the 100x100 thumbnail

    Returns:
        Artwork URL, or None if nothing was found or the lookup failed
    """
    if not artist or not title:
        return None

    params = {
        'term': f"{title} {artist}",
        'media': 'music',
        'entity': 'song',
        'limit': 1,
    }

    try:
        response = get_with_deadline(ITUNES_SEARCH_URL, timeout, params=params)
        results = response.json().get('results') or []
    except requests.exceptions.RequestException as e:
        logger.debug(f"iTunes artwork lookup failed for {artist} - {title}: {e}")
        return None
    except (ValueError, AttributeError) as e:
        logger.debug(f"iTunes returned an unexpected body for {artist} - {title}: {e}")
        return None

    if not results:
        logger.debug(f"No iTunes artwork for {artist} - {title}")
        return None

    artwork = upgrade_artwork_url(results[0].get('artworkUrl100'), size)
    if artwork:
        logger.debug(f"Found iTunes artwork for {artist} - {title}: {artwork}")
    return artwork


def clean_company_name(company_name):
    """Lower-case a company name and strip ad words ("Commercial", "promo"...)"""
    name = LOGO_NOISE_PATTERN.sub('', (company_name or '').lower())
    return re.sub(r'\s+', ' ', name).strip()


def guess_logo_domain(company_name):
    """Map a company name to a website domain

    Known brands use the rules table; anything else is guessed as the
    alphanumeric name + ".com".

    Returns:
        Domain string, or None when the name is too short to guess from
    """
    name = clean_company_name(company_name)
    if not name:
        return None

    if name in LOGO_DOMAINS:
        return LOGO_DOMAINS[name]

    compact = re.sub(r'[^a-z0-9]', '', name)
    if compact in LOGO_DOMAINS:
        return LOGO_DOMAINS[compact]

    domain = compact + '.com'
    if len(domain) > 4 and compact:
        return domain
    return None


def lookup_logo(company_name, base_url=DEFAULT_LOGO_BASE_URL, verify=False, timeout=DEFAULT_TIMEOUT):
    """Find a logo URL for an advertiser

    Args:
        company_name: Brand or company name
        base_url: Logo CDN prefix (domain is appended)
        verify: If True, confirm the CDN actually has the logo
        timeout: Timeout for the verification request

    Returns:
        Logo URL, or None
    """
    if not company_name or company_name.strip().lower() == 'advertisement':
        return None

    domain = guess_logo_domain(company_name)
    if not domain:
        return None

    url = f"{base_url.rstrip('/')}/{domain}"
    if not verify:
        return url

    try:
        response = requests.head(url, timeout=timeout, allow_redirects=True)
    except requests.exceptions.RequestException as e:
        logger.debug(f"Logo lookup failed for {company_name}: {e}")
        return None

    if response.status_code != 200:
        logger.debug(f"No logo for {company_name} at {url} (HTTP {response.status_code})")
        return None
    return url


class ArtworkLookup:
    """Settings-bound artwork enricher used by the dispatcher"""

    def __init__(self, settings=None):
        artwork_settings = (settings or {}).get('artwork', {})
        self.timeout = artwork_settings.get('timeout_seconds', DEFAULT_TIMEOUT)
        self.size = artwork_settings.get('size', DEFAULT_ARTWORK_SIZE)

    def __call__(self, artist, title):
        return fetch_artwork(artist, title, timeout=self.timeout, size=self.size)


class LogoLookup:
    """Settings-bound logo lookup used by the branding rule"""

    def __init__(self, settings=None):
        logo_settings = (settings or {}).get('logos', {})
        self.base_url = logo_settings.get('base_url', DEFAULT_LOGO_BASE_URL)
        self.verify = logo_settings.get('verify', False)
        self.timeout = logo_settings.get('timeout_seconds', DEFAULT_TIMEOUT)

    def __call__(self, company_name):
        return lookup_logo(company_name, base_url=self.base_url, verify=self.verify, timeout=self.timeout)
