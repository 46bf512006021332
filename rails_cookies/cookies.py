"""Cookie header parsing.

Reads a raw ``Cookie`` header (``HTTP_COOKIE``) the way Ruby's
``CGI::Cookie.parse`` does, so values are seen exactly as Rails sees them.
"""
import re
from typing import Optional
from urllib.parse import unquote_plus

_PAIR_SEPARATOR = re.compile(r";\s?")


def parse_cookies(header: Optional[str]) -> dict[str, str]:
    """Parse a ``Cookie`` header into a name-value dict.

    The first occurrence of a name wins, values are percent-decoded
    (``+`` is a space) and only the first ``&``-separated value is kept.
    Returns an empty dict for empty or missing headers.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in _PAIR_SEPARATOR.split(header):
        if "=" not in pair:
            continue
        name, _, value = pair.partition("=")
        name = name.strip()
        if name in cookies:
            continue
        values = value.split("&")
        cookies[name] = unquote_plus(values[0])
    return cookies


def cookie_value(header: Optional[str], key: str) -> Optional[str]:
    """First value for ``key`` in the raw header, or None."""
    return parse_cookies(header).get(key)
