"""
Tests for the Ruby Marshal codec.

Byte strings below are what ``Marshal.dump`` produces in Ruby.
"""
import base64
import math

import pytest

from rails_cookies import ruby_marshal
from rails_cookies.exceptions import DeserializeError
from rails_cookies.ruby_marshal import MarshalError


SIGNED_SAMPLE = base64.b64decode('BAhbB0kiC3NpZ25lZAY6BkVUVA==')


class TestLoads:
    """Tests for loading Ruby Marshal data."""

    def test_signed_sample(self):
        """Test the array written by Rails for ['signed', true]."""
        assert ruby_marshal.loads(SIGNED_SAMPLE) == ['signed', True]

    @pytest.mark.parametrize('data, expected', [
        (b'\x04\x080', None),
        (b'\x04\x08T', True),
        (b'\x04\x08F', False),
        (b'\x04\x08i\x00', 0),
        (b'\x04\x08i\x06', 1),
        (b'\x04\x08i\xfa', -1),
        (b'\x04\x08i\x7f', 122),
        (b'\x04\x08i\x01\x7b', 123),
        (b'\x04\x08i\x02\x2c\x01', 300),
        (b'\x04\x08i\xfe\xd4\xfe', -300),
        (b'\x04\x08l+\x09\x00\x00\x00\x00\x00\x00\x00\x40', 2 ** 62),
        (b'\x04\x08f\x081.5', 1.5),
        (b'\x04\x08:\x0bsigned', 'signed'),
        (b'\x04\x08"\x07\x00\xff', b'\x00\xff'),
        (b'\x04\x08I"\x06a\x06:\x06EF', 'a'),
        (b'\x04\x08I"\x06a\x06:\x0dencoding"\x0eShift_JIS', 'a'),
        (b'\x04\x08}\x00i\x06', {}),
    ])
    def test_values(self, data, expected):
        """Test scalar and container values."""
        assert ruby_marshal.loads(data) == expected

    def test_utf8_string(self):
        """Test a UTF-8 String becomes str."""
        data = b'\x04\x08I"\x07\xc3\xb1\x06:\x06ET'
        assert ruby_marshal.loads(data) == '\u00f1'

    def test_hash_with_symbol_links(self):
        """Test repeated symbols are read through symbol links."""
        data = b'\x04\x08{\x07:\x06ai\x06:\x06bI"\x06c\x06:\x06ET'
        assert ruby_marshal.loads(data) == {'a': 1, 'b': 'c'}
        data = b'\x04\x08[\x07I"\x06a\x06:\x06ETI"\x06b\x06;\x00T'
        assert ruby_marshal.loads(data) == ['a', 'b']

    def test_object_link(self):
        """Test '@' returns a previously loaded object."""
        data = b'\x04\x08[\x07"\x06a@\x06'
        assert ruby_marshal.loads(data) == [b'a', b'a']

    def test_special_floats(self):
        """Test nan and infinities."""
        assert math.isnan(ruby_marshal.loads(b'\x04\x08f\x08nan'))
        assert ruby_marshal.loads(b'\x04\x08f\x08inf') == math.inf
        assert ruby_marshal.loads(b'\x04\x08f\x09-inf') == -math.inf

    @pytest.mark.parametrize('data', [
        b'',
        b'\x04',
        b'\x04\x09T',
        b'\x03\x08T',
        b'\x04\x08[\x07',
        b'\x04\x08"\x0aab',
        b'\x04\x08o:\x09User\x00',
        b'\x04\x08@\x06',
        b'\x04\x08;\x00',
        b'["signed",true]',
    ])
    def test_malformed(self, data):
        """Test bad versions, truncation and unsupported types."""
        with pytest.raises(MarshalError):
            ruby_marshal.loads(data)

    def test_nested_arrays_within_limit(self):
        """Test Arrays nested below MAX_DEPTH still load."""
        depth = ruby_marshal.MAX_DEPTH - 1
        expected = None
        for _ in range(depth):
            expected = [expected]
        data = b'\x04\x08' + b'[\x06' * depth + b'0'
        assert ruby_marshal.loads(data) == expected

    @pytest.mark.parametrize('data', [
        b'\x04\x08' + b'[\x06' * 5000 + b'0',
        b'\x04\x08' + b'{\x06i\x06' * 5000 + b'0',
        b'\x04\x08' + b'I' * 5000 + b'0',
        b'\x04\x08' + b'[\x06' * (ruby_marshal.MAX_DEPTH + 1) + b'0',
    ])
    def test_deep_nesting(self, data):
        """Test deeply nested data is rejected instead of exhausting the stack."""
        with pytest.raises(MarshalError):
            ruby_marshal.loads(data)

    def test_wrapped_symbol(self):
        """Test a symbol behind many ivar wrappers is read without recursion."""
        data = b'\x04\x08I"\x06a\x06' + b'I' * 5000 + b':\x06E' + b'\x00' * 5000 + b'T'
        assert ruby_marshal.loads(data) == 'a'

    def test_marshal_error_is_deserialize_error(self):
        """Test MarshalError is reported as a serializer error."""
        assert issubclass(MarshalError, DeserializeError)


class TestDumps:
    """Tests for writing Ruby Marshal data."""

    def test_signed_sample(self):
        """Test ['signed', True] dumps exactly as Ruby does."""
        assert ruby_marshal.dumps(['signed', True]) == SIGNED_SAMPLE

    def test_string(self):
        """Test str is written as a UTF-8 String."""
        assert ruby_marshal.dumps('revealed') == b'\x04\x08I"\x0drevealed\x06:\x06ET'

    def test_symbol_reuse(self):
        """Test the encoding symbol is linked after first use."""
        assert ruby_marshal.dumps({'a': 1}) == b'\x04\x08{\x06I"\x06a\x06:\x06ETi\x06'
        assert ruby_marshal.dumps(['a', 'b']) == (
            b'\x04\x08[\x07I"\x06a\x06:\x06ETI"\x06b\x06;\x00T'
        )

    @pytest.mark.parametrize('value, expected', [
        (None, b'\x04\x080'),
        (0, b'\x04\x08i\x00'),
        (-1, b'\x04\x08i\xfa'),
        (300, b'\x04\x08i\x02\x2c\x01'),
        (-300, b'\x04\x08i\xfe\xd4\xfe'),
        (1.5, b'\x04\x08f\x081.5'),
        (1.0, b'\x04\x08f\x061'),
        (b'\x00\xff', b'\x04\x08"\x07\x00\xff'),
    ])
    def test_scalars(self, value, expected):
        """Test scalar encodings."""
        assert ruby_marshal.dumps(value) == expected

    @pytest.mark.parametrize('value', [
        [0, 1, -1, 122, 123, -123, -124, 255, 256, 65535, -65536],
        [2 ** 30 - 1, -(2 ** 30), 2 ** 30, 2 ** 62, -(2 ** 70)],
        {'user_id': 42, 'flash': None, 'tags': ['a', 'b'], 'ok': True},
        [1.25, -0.5, math.inf],
        'ñandú',
    ])
    def test_roundtrip(self, value):
        """Test dumped values load back unchanged."""
        assert ruby_marshal.loads(ruby_marshal.dumps(value)) == value

    def test_tuple_as_array(self):
        """Test tuples are written as Arrays."""
        assert ruby_marshal.loads(ruby_marshal.dumps((1, 2))) == [1, 2]

    def test_unsupported_type(self):
        """Test arbitrary objects cannot be dumped."""
        with pytest.raises(TypeError):
            ruby_marshal.dumps(object())
