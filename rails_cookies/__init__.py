"""Rails Cookies — Rails-compatible signed and encrypted cookies.

Reads and writes the cookie values produced by the Rails cookie jar
(``cookies.signed``, ``cookies.encrypted`` and the session cookie) from
a shared ``secret_key_base``, without running Rails.
"""

from .version import __version__
from .jar import CookieJar
from .config import CookieConfig, generate_secret_key_base
from .cookies import parse_cookies, cookie_value
from .serializers import (
    Serializer,
    JSONSerializer,
    MarshalSerializer,
)
from .exceptions import (
    CookieError,
    InvalidSignature,
    DecryptionError,
    DeserializeError,
    ConfigurationError,
)

__all__ = [
    "__version__",
    "CookieJar",
    "CookieConfig",
    "generate_secret_key_base",
    "parse_cookies",
    "cookie_value",
    "Serializer",
    "JSONSerializer",
    "MarshalSerializer",
    "CookieError",
    "InvalidSignature",
    "DecryptionError",
    "DeserializeError",
    "ConfigurationError",
]
