"""
Metadata ad classification for Radio Now Playing

Tier 1 (keyword scan) and Tier 2 (structured pattern match) run on every
poll. Both read the same rules table (ad_rules). When Tier 2 fires its
verdict wins; Tier 1 alone only produces a low-confidence verdict.

Also holds the branding rule applied to tracks classified as ads.
"""

import logging

from radio_nowplaying.models import AdVerdict, ADVERTISEMENT_ARTWORK
from radio_nowplaying import ad_rules

logger = logging.getLogger(__name__)

TIER_KEYWORD = 'keyword'
TIER_PATTERN = 'pattern'
TIER_AUDIO = 'audio'
TIER_MANUAL = 'manual'

KEYWORD_CONFIDENCE = 0.5
PATTERN_CONFIDENCE = 0.85

COMMERCIAL_SUFFIX = ' Commercial'
GENERIC_AD_TITLE = 'Advertisement'
COMMERCIAL_ALBUM = 'Commercial Break'


def normalize_text(*parts):
    """Lower-case and join the non-empty metadata fields"""
    return ' '.join(str(p).strip() for p in parts if p).lower()


def _find_phrases(text, compiled_phrases):
    return [phrase for phrase, pattern in compiled_phrases if pattern.search(text)]


def detect_brand(text):
    """Find the first known brand mentioned in text

    Args:
        text: Lower-cased metadata text

    Returns:
        BrandRule or None
    """
    for rule, patterns in ad_rules.COMPILED_BRAND_RULES:
        if any(pattern.search(text) for pattern in patterns):
            return rule
    return None


def keyword_scan(title, artist, description=None):
    """Tier 1: count ad cue phrases in the metadata

    Brand names from the rules table count as cue phrases too.

    Returns:
        AdVerdict (positive when at least KEYWORD_THRESHOLD phrases match)
    """
    text = normalize_text(title, artist, description)
    matches = _find_phrases(text, ad_rules.COMPILED_AD_KEYWORDS)

    brand = detect_brand(text)
    if brand:
        matches.append(brand.name.lower())

    if len(matches) >= ad_rules.KEYWORD_THRESHOLD:
        return AdVerdict(
            is_ad=True,
            confidence=KEYWORD_CONFIDENCE,
            category=TIER_KEYWORD,
            brand=brand.name if brand else None,
            reason=f"Matched {len(matches)} ad keywords: {', '.join(matches)}",
            tier=TIER_KEYWORD,
            matches=tuple(matches),
        )

    return AdVerdict(is_ad=False, confidence=0.0, tier=TIER_KEYWORD, matches=tuple(matches))


def _check_category(category, text, title, artist):
    """Evaluate one Tier 2 category

    Returns:
        Reason string if the category fires, else None
    """
    if category == ad_rules.CATEGORY_COMMERCIAL:
        hits = _find_phrases(text, ad_rules.COMPILED_COMMERCIAL_INDICATORS)
        if hits:
            return f"Commercial indicator: '{hits[0]}'"
        for pattern in ad_rules.COMMERCIAL_MARKER_PATTERNS:
            if pattern.search(text):
                return "Commercial marker in metadata"

    elif category == ad_rules.CATEGORY_BRAND:
        brand = detect_brand(text)
        if brand:
            return f"Known advertiser: {brand.name}"

    elif category == ad_rules.CATEGORY_FINANCIAL:
        hits = _find_phrases(text, ad_rules.COMPILED_FINANCIAL_TERMS)
        if hits:
            return f"Financial services term: '{hits[0]}'"

    elif category == ad_rules.CATEGORY_CALL_TO_ACTION:
        lowered = (title or '').lower()
        if 'call' in lowered and 'now' in lowered:
            return "Call-to-action in title"

    elif category == ad_rules.CATEGORY_CORPORATE:
        match = ad_rules.CORPORATE_SUFFIX_PATTERN.search((artist or '').lower())
        if match:
            return f"Corporate suffix in artist: '{match.group(1)}'"

    elif category == ad_rules.CATEGORY_DURATION:
        match = ad_rules.DURATION_PATTERN.search(text)
        if match:
            return f"Spot duration: '{match.group(0)}'"

    return None


def match_patterns(title, artist, description=None):
    """Tier 2: ordered structured checks against the metadata

    The first category that fires supplies the reason. The reported
    category is the advertiser's category when a known brand is mentioned
    anywhere in the text, otherwise the category that fired.

    Returns:
        AdVerdict
    """
    text = normalize_text(title, artist, description)

    for category in ad_rules.TIER2_ORDER:
        reason = _check_category(category, text, title, artist)
        if reason is None:
            continue

        brand = detect_brand(text)
        return AdVerdict(
            is_ad=True,
            confidence=PATTERN_CONFIDENCE,
            category=brand.category if brand else category,
            brand=brand.name if brand else None,
            reason=reason,
            tier=TIER_PATTERN,
        )

    return AdVerdict(is_ad=False, confidence=0.0, tier=TIER_PATTERN)


def classify_metadata(title, artist, description=None):
    """Run Tier 1 and Tier 2 and pick the verdict to report

    Tier 2 is more specific, so a positive Tier 2 verdict is reported even
    when Tier 1 also fired.

    Args:
        title: Track title
        artist: Track artist
        description: Extra text (station tagline, cue text), optional

    Returns:
        AdVerdict
    """
    pattern_verdict = match_patterns(title, artist, description)
    if pattern_verdict.is_ad:
        logger.debug(f"Pattern match: {title} / {artist}: {pattern_verdict.reason}")
        return pattern_verdict

    keyword_verdict = keyword_scan(title, artist, description)
    if keyword_verdict.is_ad:
        logger.debug(f"Keyword match: {title} / {artist}: {keyword_verdict.reason}")
    return keyword_verdict


# ==================== BRANDING ====================

def extract_company_name(title, artist, use_field_fallback=True):
    """Guess the advertiser from ad metadata

    Tries "brought to you by X", "sponsored by X", "X commercial",
    "X advertisement", "X promo". Without a pattern match, falls back to the
    longer of title/artist.

    Returns:
        Company name, or "Advertisement"
    """
    title = (title or '').strip()
    artist = (artist or '').strip()
    text = f"{title} {artist}".strip()

    for pattern in ad_rules.COMPANY_NAME_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            name = match.group(1).strip()
            if name.lower().endswith(' in a'):
                name = name[:-len(' in a')].strip()
            if name and name.lower() not in ('a', 'an', 'the', 'in a'):
                return name

    if not use_field_fallback:
        return GENERIC_AD_TITLE

    if len(title) > len(artist) and 'in a commercial' not in title.lower():
        return title
    if len(artist) > len(title) and 'in a commercial' not in artist.lower():
        return artist

    return GENERIC_AD_TITLE


def is_branded(track):
    """True if the track already carries the commercial branding"""
    title = track.title or ''
    return title == GENERIC_AD_TITLE or title.endswith(COMMERCIAL_SUFFIX)


def branded_title(brand):
    if not brand or brand == GENERIC_AD_TITLE:
        return GENERIC_AD_TITLE
    return f"{brand}{COMMERCIAL_SUFFIX}"


def apply_branding(track, station_name, verdict=None, logo_lookup=None):
    """Rewrite a track classified as an advertisement

    title -> "<Brand> Commercial" (or "Advertisement"), artist -> station
    name, album -> "Commercial Break", artwork -> brand logo (or the
    "advertisement" sentinel). Already-branded tracks keep their title, so
    applying this twice changes nothing.

    Args:
        track: TrackMetadata
        station_name: Station display name
        verdict: AdVerdict that flagged the track (brand is used if present)
        logo_lookup: callable(company_name) -> URL or None

    Returns:
        New TrackMetadata
    """
    if is_branded(track):
        title = track.title
        if title.endswith(COMMERCIAL_SUFFIX):
            company = title[:-len(COMMERCIAL_SUFFIX)].strip()
        else:
            company = GENERIC_AD_TITLE
        artwork = track.artwork if track.is_ad else None
    else:
        company = verdict.brand if verdict and verdict.brand else None
        if not company:
            company = extract_company_name(track.title, track.artist, use_field_fallback=False)
        title = branded_title(company)
        artwork = None

    if not artwork and logo_lookup and company != GENERIC_AD_TITLE:
        artwork = logo_lookup(company)

    return track.with_changes(
        title=title,
        artist=station_name or track.artist,
        album=COMMERCIAL_ALBUM,
        artwork=artwork or ADVERTISEMENT_ARTWORK,
        is_ad=True,
    )
