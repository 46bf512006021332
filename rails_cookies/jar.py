"""
CookieJar — Rails-compatible signed and encrypted cookies.

Provides the public API:
- ``serialize_and_sign(value)`` / ``verify_and_deserialize(value)`` — signed-only
  cookies (``cookies.signed[key]`` in Rails)
- ``encrypt(value)`` / ``decrypt(value)`` — encrypted cookies
  (``cookies.encrypted[key]``, and the session cookie)
- ``signed_cookie_key(header, key)`` / ``decrypt_cookie_key(header, key)`` —
  the same, reading the value straight from a raw ``Cookie`` header

Every read has a lenient form returning None and a ``*_strict`` form raising
InvalidSignature. Serializer errors propagate from both.

Security Note:
    Never log secrets or cookie values. The MAC is always checked before
    decryption or deserialization.
"""
import logging
from functools import cached_property
from typing import Any, Optional, Union

from pydantic import ValidationError

from .config import CookieConfig
from .cookies import cookie_value, parse_cookies
from .crypto import (
    decrypt_payload,
    derive_key,
    encrypt_payload,
    resolve_cipher,
    sign_and_encode,
    verify_and_decode,
)
from .exceptions import ConfigurationError, InvalidSignature
from .serializers import JSONSerializer, Serializer

logger = logging.getLogger("rails_cookies")

CookieValue = Union[str, bytes, None]


def _present(value: Any) -> Any:
    # a None payload is indistinguishable from a rejected cookie
    if value is None:
        raise InvalidSignature("Cookie payload is empty")
    return value


class CookieJar:
    """Reads and writes cookie values the way the Rails cookie jar does.

    Derived secrets are computed on first use and memoized for the lifetime
    of the jar. A jar can be shared between threads: derivation is
    deterministic, so a race only repeats work.
    """

    def __init__(
        self,
        secret_key_base: Union[str, bytes],
        serializer: Optional[Serializer] = None,
        **options: Any,
    ):
        try:
            config = CookieConfig(secret_key_base=secret_key_base, **options)
        except ValidationError as err:
            # report locations and messages only, inputs hold secret_key_base
            reasons = "; ".join(
                f"{'.'.join(str(loc) for loc in error['loc']) or 'config'}: {error['msg']}"
                for error in err.errors()
            )
            raise ConfigurationError(f"Invalid cookie configuration: {reasons}") from None
        self._config = config
        self._serializer = serializer or JSONSerializer()
        self._cipher = resolve_cipher(config.cipher)

    @classmethod
    def from_config(
        cls,
        config: CookieConfig,
        serializer: Optional[Serializer] = None,
    ) -> "CookieJar":
        """Build a jar from an already validated configuration."""
        return cls(serializer=serializer, **config.model_dump())

    def __repr__(self) -> str:
        return (
            f'<CookieJar cipher={self._config.cipher} '
            f'digest={self._config.digest} '
            f'serializer={type(self._serializer).__name__}>'
        )

    @property
    def config(self) -> CookieConfig:
        return self._config

    @property
    def serializer(self) -> Serializer:
        return self._serializer

    # ------------------------------------------------------------------
    # Derived secrets
    # ------------------------------------------------------------------

    def generate_key(self, salt: str) -> bytes:
        """Derive the full-length secret for a purpose salt."""
        return derive_key(
            self._config.secret_key_base,
            salt,
            self._config.iterations,
            self._config.key_size,
        )

    @cached_property
    def encrypted_secret(self) -> bytes:
        """Cipher key: derived secret truncated to the cipher key length."""
        return self.generate_key(self._config.encrypted_salt)[:self._cipher.key_length]

    @cached_property
    def encrypted_signed_secret(self) -> bytes:
        """MAC key for the outer envelope of encrypted values."""
        return self.generate_key(self._config.encrypted_signed_salt)

    @cached_property
    def signed_secret(self) -> bytes:
        """MAC key for signed-only values."""
        return self.generate_key(self._config.signed_salt)

    # ------------------------------------------------------------------
    # Cookie header helpers
    # ------------------------------------------------------------------

    def cookies(self, header: Optional[str]) -> dict[str, str]:
        """First value for each name in a raw ``Cookie`` header."""
        return parse_cookies(header)

    def cookie_value(self, header: Optional[str], key: str) -> Optional[str]:
        return cookie_value(header, key)

    # ------------------------------------------------------------------
    # Signer
    # ------------------------------------------------------------------

    def sign_and_encode(self, data: bytes, secret: bytes) -> str:
        """Sign raw bytes: ``<base64>--<hexdigest>``."""
        return sign_and_encode(data, secret, self._config.digest)

    def verify_and_decode(self, value: CookieValue, secret: bytes) -> Optional[bytes]:
        """Verify a signed message, returning its bytes or None if invalid."""
        try:
            return verify_and_decode(value, secret, self._config.digest)
        except InvalidSignature:
            return None

    # ------------------------------------------------------------------
    # Signed-only cookies
    # ------------------------------------------------------------------

    def serialize_and_sign(self, value: Any) -> str:
        """Serialize and sign ``value`` (``cookies.signed[key] = value``)."""
        return sign_and_encode(
            self._serializer.dump(value), self.signed_secret, self._config.digest,
        )

    def verify_and_deserialize_strict(self, value: CookieValue) -> Any:
        """Verify and deserialize a signed value.

        Raises:
            InvalidSignature: If the value is malformed or tampered with,
                or the payload loads as None.
            DeserializeError: If the verified payload cannot be loaded.
        """
        data = verify_and_decode(value, self.signed_secret, self._config.digest)
        return _present(self._serializer.load(data))

    def verify_and_deserialize(self, value: CookieValue) -> Any:
        """Verify and deserialize a signed value, returning None if invalid."""
        try:
            return self.verify_and_deserialize_strict(value)
        except InvalidSignature:
            return None

    def signed_cookie_key_strict(self, header: Optional[str], key: str) -> Any:
        """Load the signed-only cookie ``key`` from a raw ``Cookie`` header.

        Raises:
            InvalidSignature: If the cookie is missing or invalid.
        """
        return self.verify_and_deserialize_strict(cookie_value(header, key))

    def signed_cookie_key(self, header: Optional[str], key: str) -> Any:
        """Load the signed-only cookie ``key``, returning None if invalid."""
        return self.verify_and_deserialize(cookie_value(header, key))

    # ------------------------------------------------------------------
    # Encrypted cookies
    # ------------------------------------------------------------------

    def encrypt(self, value: Any) -> str:
        """Serialize, encrypt and sign ``value``.

        Format: ``base64(base64(ct)--base64(iv))--hexdigest``. The inner
        payload text is base64-encoded again by the signer; Rails expects
        this double encoding.
        """
        payload = encrypt_payload(
            self._serializer.dump(value), self.encrypted_secret, self._config.cipher,
        )
        return sign_and_encode(
            payload.encode("ascii"),
            self.encrypted_signed_secret,
            self._config.digest,
        )

    def decrypt_strict(self, value: CookieValue) -> Any:
        """Verify, decrypt and deserialize an encrypted value.

        Raises:
            InvalidSignature: If the value is malformed or tampered with,
                or the payload loads as None.
            DecryptionError: If the payload verified but cannot be decrypted.
            DeserializeError: If the decrypted payload cannot be loaded.
        """
        payload = verify_and_decode(
            value, self.encrypted_signed_secret, self._config.digest,
        )
        plaintext = decrypt_payload(payload, self.encrypted_secret, self._config.cipher)
        return _present(self._serializer.load(plaintext))

    def decrypt(self, value: CookieValue) -> Any:
        """Verify, decrypt and deserialize, returning None if invalid."""
        try:
            return self.decrypt_strict(value)
        except InvalidSignature as err:
            logger.debug("Encrypted cookie rejected: %s", type(err).__name__)
            return None

    def decrypt_cookie_key_strict(self, header: Optional[str], key: str) -> Any:
        """Decrypt the cookie ``key`` from a raw ``Cookie`` header.

        Raises:
            InvalidSignature: If the cookie is missing or invalid.
        """
        return self.decrypt_strict(cookie_value(header, key))

    def decrypt_cookie_key(self, header: Optional[str], key: str) -> Any:
        """Decrypt the cookie ``key``, returning None if invalid."""
        return self.decrypt(cookie_value(header, key))
