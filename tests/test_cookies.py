"""
Tests for raw Cookie header parsing.
"""
import pytest

from rails_cookies.cookies import cookie_value, parse_cookies


HEADER = 'encrypted_key=X; other_key=abc'


class TestParseCookies:
    """Tests for parse_cookies."""

    def test_simple_header(self):
        """Test each name maps to its value."""
        assert parse_cookies(HEADER) == {'encrypted_key': 'X', 'other_key': 'abc'}

    @pytest.mark.parametrize('header', [None, ''])
    def test_empty_header(self, header):
        """Test empty or missing headers give an empty dict."""
        assert parse_cookies(header) == {}

    def test_percent_decoding(self):
        """Test values are percent-decoded."""
        assert parse_cookies('k=YWJj%3D%3D--ff') == {'k': 'YWJj==--ff'}

    def test_plus_is_space(self):
        """Test '+' decodes to a space, as CGI.unescape does."""
        assert parse_cookies('k=a+b') == {'k': 'a b'}

    def test_first_occurrence_wins(self):
        """Test a repeated name keeps its first value."""
        assert parse_cookies('k=first; k=second') == {'k': 'first'}

    def test_first_ampersand_value(self):
        """Test only the first '&'-separated value is kept."""
        assert parse_cookies('k=one&two') == {'k': 'one'}

    def test_value_with_equals(self):
        """Test only the first '=' separates name and value."""
        assert parse_cookies('k=a=b') == {'k': 'a=b'}

    def test_pairs_without_value_skipped(self):
        """Test attributes without '=' are ignored."""
        assert parse_cookies('flag; k=v') == {'k': 'v'}

    def test_no_space_separator(self):
        """Test pairs separated by ';' without whitespace."""
        assert parse_cookies('a=1;b=2') == {'a': '1', 'b': '2'}

    def test_name_is_stripped(self):
        """Test surrounding whitespace is removed from names."""
        assert parse_cookies('a=1;  b=2') == {'a': '1', 'b': '2'}


class TestCookieValue:
    """Tests for cookie_value."""

    def test_lookup(self):
        """Test looking up present keys."""
        assert cookie_value(HEADER, 'encrypted_key') == 'X'
        assert cookie_value(HEADER, 'other_key') == 'abc'

    def test_missing_key(self):
        """Test a missing key returns None."""
        assert cookie_value(HEADER, 'missing') is None
        assert cookie_value(None, 'missing') is None
