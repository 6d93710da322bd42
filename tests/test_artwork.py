"""
Artwork and logo lookup tests

iTunes and the logo CDN are mocked; failures must come back as None.
"""

import pytest
import requests
from unittest.mock import Mock, patch

from radio_nowplaying.artwork import (
    fetch_artwork, upgrade_artwork_url, guess_logo_domain, clean_company_name,
    lookup_logo, ArtworkLookup, LogoLookup, ITUNES_SEARCH_URL,
)


def itunes_response(results):
    response = Mock()
    response.iter_content.return_value = [b'{}']
    response.raise_for_status.return_value = None
    response.json.return_value = {'resultCount': len(results), 'results': results}
    return response


@pytest.mark.unit
class TestFetchArtwork:
    """Test the iTunes artwork enricher"""

    def test_returns_upgraded_artwork(self):
        results = [{'artworkUrl100': 'https://is1-ssl.mzstatic.com/image/thumb/abc/100x100bb.jpg'}]
        with patch('requests.get') as mock_get:
            mock_get.return_value = itunes_response(results)
            artwork = fetch_artwork('Kendrick Lamar', 'HUMBLE.')

        assert artwork == 'https://is1-ssl.mzstatic.com/image/thumb/abc/600x600bb.jpg'
        args, kwargs = mock_get.call_args
        assert args[0] == ITUNES_SEARCH_URL
        assert kwargs['params']['term'] == 'HUMBLE. Kendrick Lamar'
        assert kwargs['params']['media'] == 'music'

    def test_no_results(self):
        with patch('requests.get') as mock_get:
            mock_get.return_value = itunes_response([])
            assert fetch_artwork('Nobody', 'Nothing') is None

    def test_request_failure_returns_none(self):
        with patch('requests.get', side_effect=requests.exceptions.ConnectionError()):
            assert fetch_artwork('Kendrick Lamar', 'HUMBLE.') is None

    def test_bad_json_returns_none(self):
        response = Mock()
        response.iter_content.return_value = [b'<html>']
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError('not json')
        with patch('requests.get', return_value=response):
            assert fetch_artwork('Kendrick Lamar', 'HUMBLE.') is None

    def test_missing_fields_skip_lookup(self):
        with patch('requests.get') as mock_get:
            assert fetch_artwork('', 'HUMBLE.') is None
            assert not mock_get.called

    def test_custom_size(self):
        assert upgrade_artwork_url('https://x/100x100bb.jpg', '1000x1000bb') == 'https://x/1000x1000bb.jpg'

    def test_settings_bound_lookup(self):
        lookup = ArtworkLookup({'artwork': {'timeout_seconds': 5, 'size': '300x300bb'}})
        with patch('radio_nowplaying.artwork.fetch_artwork', return_value='https://x/300x300bb.jpg') as mock_fetch:
            assert lookup('Artist', 'Title') == 'https://x/300x300bb.jpg'

        mock_fetch.assert_called_once_with('Artist', 'Title', timeout=5, size='300x300bb')


@pytest.mark.unit
class TestLogoLookup:
    """Test brand logo resolution"""

    def test_known_brand_domain(self):
        assert guess_logo_domain('Capital One') == 'capitalone.com'
        assert guess_logo_domain('Capital One Commercial') == 'capitalone.com'
        assert guess_logo_domain("McDonald's") == 'mcdonalds.com'

    def test_guessed_domain(self):
        assert guess_logo_domain("Joe's Pizza") == 'joespizza.com'

    def test_too_short_to_guess(self):
        assert guess_logo_domain('Ad') is None

    def test_clean_company_name(self):
        assert clean_company_name('Nike Promo') == 'nike'

    def test_lookup_builds_cdn_url(self):
        assert lookup_logo('GEICO', base_url='https://logo.clearbit.com/') == 'https://logo.clearbit.com/geico.com'

    def test_generic_advertisement_has_no_logo(self):
        assert lookup_logo('Advertisement') is None

    def test_verify_checks_cdn(self):
        with patch('requests.head') as mock_head:
            mock_head.return_value = Mock(status_code=404)
            assert lookup_logo('Unknown Brand', verify=True) is None

            mock_head.return_value = Mock(status_code=200)
            assert lookup_logo('GEICO', verify=True).endswith('/geico.com')

    def test_verify_failure_returns_none(self):
        with patch('requests.head', side_effect=requests.exceptions.Timeout()):
            assert lookup_logo('GEICO', verify=True) is None

    def test_settings_bound_lookup(self):
        lookup = LogoLookup({'logos': {'base_url': 'https://logos.example.com'}})
        assert lookup('Pepsi') == 'https://logos.example.com/pepsi.com'
