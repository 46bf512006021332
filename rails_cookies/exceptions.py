"""
Cookie Errors — exception hierarchy for signed and encrypted cookies.

``InvalidSignature`` is raised by every strict read exactly when the lenient
twin returns ``None``. ``DecryptionError`` subclasses it so that a failure
after a successful MAC check stays distinguishable without breaking that rule.
Serializer and configuration errors are never folded into ``InvalidSignature``.
"""


class CookieError(Exception):
    """Base class for all cookie errors."""


class InvalidSignature(CookieError):
    """Cookie value is malformed or its digest does not match."""


class DecryptionError(InvalidSignature):
    """Signature verified but the encrypted payload could not be decrypted."""


class DeserializeError(CookieError, ValueError):
    """Verified payload bytes could not be loaded by the serializer."""


class ConfigurationError(CookieError, ValueError):
    """Unsupported cipher/digest, wrong key length or invalid settings."""
