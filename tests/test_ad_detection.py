"""
Metadata ad classification tests

Tests the keyword scan (Tier 1), the structured pattern match (Tier 2),
their precedence, and the branding rule.
"""

import pytest

from radio_nowplaying import ad_rules
from radio_nowplaying.ad_detection import (
    classify_metadata, keyword_scan, match_patterns, detect_brand,
    extract_company_name, apply_branding, is_branded,
    TIER_KEYWORD, TIER_PATTERN, KEYWORD_CONFIDENCE, PATTERN_CONFIDENCE,
    COMMERCIAL_ALBUM,
)
from radio_nowplaying.models import AdVerdict, TrackMetadata, ADVERTISEMENT_ARTWORK
from tests.conftest import RecordingLookup


@pytest.mark.unit
class TestClassifyMetadata:
    """Test the combined Tier 1 + Tier 2 classifier"""

    def test_capital_one_commercial(self):
        verdict = classify_metadata('Capital One Commercial', 'Advertisement')

        assert verdict.is_ad is True
        assert verdict.brand == 'Capital One'
        assert verdict.category == 'financial'
        assert verdict.tier == TIER_PATTERN

    def test_capital_one_commercial_also_fires_keyword_scan(self):
        verdict = keyword_scan('Capital One Commercial', 'Advertisement')

        assert verdict.is_ad is True
        assert 'capital one' in verdict.matches
        assert len(verdict.matches) >= ad_rules.KEYWORD_THRESHOLD

    def test_music_is_not_an_ad(self):
        verdict = classify_metadata('HUMBLE.', 'Kendrick Lamar')

        assert verdict.is_ad is False
        assert verdict.confidence == 0.0

    def test_pattern_tier_wins_over_keyword_tier(self):
        # "sale" + "discount" + brand hit Tier 1; the brand also hits Tier 2
        title, artist = 'Sale Discount Event', 'GEICO'
        assert keyword_scan(title, artist).is_ad

        verdict = classify_metadata(title, artist)

        assert verdict.tier == TIER_PATTERN
        assert verdict.confidence == PATTERN_CONFIDENCE
        assert verdict.reason == 'Known advertiser: GEICO'
        assert verdict.category == 'insurance'

    def test_keyword_only_verdict_is_low_confidence(self):
        verdict = classify_metadata('Huge sale and discount', 'Local Store')

        assert verdict.is_ad is True
        assert verdict.tier == TIER_KEYWORD
        assert verdict.confidence == KEYWORD_CONFIDENCE
        assert set(verdict.matches) == {'sale', 'discount', 'store'}

    def test_single_keyword_is_not_enough(self):
        assert classify_metadata('Summer Sale', 'DJ Mix').is_ad is False

    def test_keywords_match_on_word_boundaries(self):
        # "salem" must not count as "sale", "storefront" must not count as "store"
        verdict = keyword_scan("Salem's Lot", 'Storefront Band')
        assert verdict.matches == ()

    def test_description_is_considered(self):
        verdict = classify_metadata('Station Break', 'Hot 97', description='Brought to you by State Farm')
        assert verdict.is_ad is True
        assert verdict.brand == 'State Farm'


@pytest.mark.unit
class TestPatternCategories:
    """Test each Tier 2 category in isolation"""

    def test_commercial_marker(self):
        verdict = match_patterns('[AD] Local Business', 'KBFB')
        assert verdict.is_ad
        assert verdict.reason == 'Commercial marker in metadata'
        assert verdict.category == ad_rules.CATEGORY_COMMERCIAL

    def test_break_phrase(self):
        verdict = match_patterns("We'll Be Right Back", 'Hot 97')
        assert verdict.is_ad
        assert verdict.category == ad_rules.CATEGORY_COMMERCIAL

    @pytest.mark.parametrize('title', [
        'A Word From Our Sponsor',
        'Summer Promotion',
        'Back After This In Commercial Break',
    ])
    def test_sponsor_and_promotion_phrases(self, title):
        verdict = match_patterns(title, 'Hot 97')
        assert verdict.is_ad
        assert verdict.category == ad_rules.CATEGORY_COMMERCIAL

    def test_financial_term(self):
        verdict = match_patterns('Low APR Financing', 'Auto Dealer')
        assert verdict.is_ad
        assert verdict.category == ad_rules.CATEGORY_FINANCIAL
        assert verdict.brand is None

    def test_call_to_action_in_title(self):
        verdict = match_patterns('Call Today Now', 'Law Offices')
        assert verdict.category == ad_rules.CATEGORY_CALL_TO_ACTION

    def test_corporate_suffix_in_artist(self):
        verdict = match_patterns('Great Deals', 'Acme Corp.')
        assert verdict.category == ad_rules.CATEGORY_CORPORATE

    def test_corporate_suffix_in_title_is_ignored(self):
        assert match_patterns('Acme Inc', 'Real Band').is_ad is False

    def test_spot_duration(self):
        verdict = match_patterns('30 second spot', 'Traffic')
        assert verdict.category == ad_rules.CATEGORY_DURATION

    def test_first_category_supplies_reason(self):
        verdict = match_patterns('Toyota Commercial', 'Local Dealer')
        assert verdict.reason == "Commercial indicator: 'commercial'"
        assert verdict.category == 'automotive'
        assert verdict.brand == 'Toyota'

    def test_detect_brand_requires_whole_words(self):
        assert detect_brand('lyft rides') is not None
        assert detect_brand('uplyfting music') is None


@pytest.mark.unit
class TestCompanyName:
    """Test advertiser extraction from ad metadata"""

    def test_brought_to_you_by(self):
        assert extract_company_name('Brought to you by Toyota', '') == 'Toyota'

    def test_promo_suffix(self):
        assert extract_company_name("Wendy's promo", 'KBFB') == "Wendy's"

    def test_longer_field_fallback(self):
        assert extract_company_name('Local Furniture Outlet', 'KBFB') == 'Local Furniture Outlet'

    def test_generic_when_nothing_found(self):
        assert extract_company_name('Spot', 'Ads!') == 'Advertisement'
        assert extract_company_name('Local Furniture Outlet', 'KBFB', use_field_fallback=False) == 'Advertisement'


@pytest.mark.unit
class TestBranding:
    """Test the branding rule applied to ads"""

    def test_brand_from_verdict(self):
        logos = RecordingLookup('https://logo.example.com/geico.com')
        verdict = AdVerdict(is_ad=True, confidence=0.85, brand='GEICO')
        track = TrackMetadata(title='Save 15 Percent', artist='Spot 42')

        branded = apply_branding(track, 'Hot 97', verdict, logo_lookup=logos)

        assert branded.title == 'GEICO Commercial'
        assert branded.artist == 'Hot 97'
        assert branded.album == COMMERCIAL_ALBUM
        assert branded.artwork == 'https://logo.example.com/geico.com'
        assert branded.is_ad is True
        assert logos.calls == [('GEICO',)]

    def test_unknown_advertiser_gets_generic_title_and_sentinel_artwork(self):
        logos = RecordingLookup('https://logo.example.com/x.com')
        track = TrackMetadata(title='Big Sale Event', artist='Local Store')

        branded = apply_branding(track, 'Hot 97', AdVerdict(is_ad=True), logo_lookup=logos)

        assert branded.title == 'Advertisement'
        assert branded.artwork == ADVERTISEMENT_ARTWORK
        assert logos.calls == []

    def test_branding_is_idempotent(self):
        logos = RecordingLookup('https://logo.example.com/capitalone.com')
        track = TrackMetadata(title='Capital One Commercial', artist='Advertisement')
        verdict = classify_metadata(track.title, track.artist)

        once = apply_branding(track, 'Hot 97', verdict, logo_lookup=logos)
        twice = apply_branding(once, 'Hot 97', classify_metadata(once.title, once.artist), logo_lookup=logos)

        assert once.title == 'Capital One Commercial'
        assert twice == once
        assert 'Commercial Commercial' not in twice.title

    def test_generic_title_is_kept(self):
        track = TrackMetadata(title='Advertisement', artist='KBFB')
        assert is_branded(track)
        assert apply_branding(track, '95.5 The Beat').title == 'Advertisement'

    def test_missing_logo_uses_sentinel(self):
        branded = apply_branding(TrackMetadata(title='Nike Commercial', artist='X'), 'Hot 97',
                                 logo_lookup=RecordingLookup(None))
        assert branded.artwork == ADVERTISEMENT_ARTWORK
