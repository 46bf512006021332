"""
Cookie Crypto Core — Key derivation, message signing and message encryption.

Implements the two layers used by the Rails cookie jar:
- Signer: base64(data) + "--" + hex(HMAC(base64(data)))
- Cipher: base64(AES-CBC(data)) + "--" + base64(iv), PKCS7 padded

Keys come from PBKDF2-HMAC-SHA1(secret_key_base, purpose salt).

Security Note:
    Never log secrets, derived keys, plaintext or cookie values.
    Only log the reason a value was rejected.
"""
import os
import re
import base64
import logging
from dataclasses import dataclass
from typing import Union

from cryptography.hazmat.primitives import constant_time, hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import ConfigurationError, DecryptionError, InvalidSignature

logger = logging.getLogger("rails_cookies")

SEPARATOR = "--"
DEFAULT_ITERATIONS = 1000
DEFAULT_KEY_SIZE = 64  # bytes
DEFAULT_CIPHER = "aes-256-cbc"
DEFAULT_DIGEST = "SHA1"

_CIPHER_PATTERN = re.compile(r"^aes-(128|192|256)-cbc$", re.IGNORECASE)

# OpenSSL digest names accepted by Rails (OpenSSL::Digest.const_get).
_DIGESTS = {
    "MD5": hashes.MD5,
    "SHA1": hashes.SHA1,
    "SHA224": hashes.SHA224,
    "SHA256": hashes.SHA256,
    "SHA384": hashes.SHA384,
    "SHA512": hashes.SHA512,
}


@dataclass(frozen=True)
class CipherSpec:
    """Resolved block cipher parameters."""

    name: str
    key_length: int  # bytes
    iv_length: int  # bytes
    block_size: int  # bits, as expected by PKCS7


def resolve_cipher(name: str) -> CipherSpec:
    """Map an OpenSSL cipher name (``aes-256-cbc``) to its parameters.

    Raises:
        ConfigurationError: If the cipher is not an AES-CBC variant.
    """
    match = _CIPHER_PATTERN.match(name or "")
    if not match:
        raise ConfigurationError(f"Unsupported cipher: {name}")
    bits = int(match.group(1))
    return CipherSpec(
        name=name.lower(),
        key_length=bits // 8,
        iv_length=algorithms.AES.block_size // 8,
        block_size=algorithms.AES.block_size,
    )


def resolve_digest(name: str) -> hashes.HashAlgorithm:
    """Return a hash instance for an OpenSSL digest name (``SHA1``).

    Raises:
        ConfigurationError: If the digest is not supported.
    """
    try:
        return _DIGESTS[(name or "").upper()]()
    except KeyError:
        raise ConfigurationError(f"Unsupported digest: {name}") from None


# ---------------------------------------------------------------------------
# Base64 helpers
# ---------------------------------------------------------------------------

def encode(data: bytes) -> str:
    """Standard alphabet, padded, no line wraps."""
    return base64.b64encode(data).decode("ascii")


def decode(data: Union[str, bytes]) -> bytes:
    """Strict base64 decoding.

    Raises:
        ValueError: On characters outside the alphabet or bad padding.
    """
    return base64.b64decode(data, validate=True)


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    secret: Union[str, bytes],
    salt: Union[str, bytes],
    iterations: int = DEFAULT_ITERATIONS,
    length: int = DEFAULT_KEY_SIZE,
) -> bytes:
    """Derive a purpose-scoped secret with PBKDF2-HMAC-SHA1.

    Args:
        secret: Master secret (``secret_key_base``), used as raw UTF-8 bytes.
        salt: Purpose salt (e.g. "signed cookie").
        iterations: PBKDF2 iteration count.
        length: Output length in bytes.

    Returns:
        Derived key bytes. Same inputs always give the same output.

    Raises:
        ValueError: If iterations or length are not positive.
    """
    if iterations < 1:
        raise ValueError(f"iterations must be positive, got {iterations}")
    if length < 1:
        raise ValueError(f"length must be positive, got {length}")
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    if isinstance(salt, str):
        salt = salt.encode("utf-8")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA1(),
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(secret)


# ---------------------------------------------------------------------------
# Message signer
# ---------------------------------------------------------------------------

def generate_digest(data: str, secret: bytes, digest: str = DEFAULT_DIGEST) -> str:
    """Lowercase hex HMAC of the base64 text ``data``."""
    mac = hmac.HMAC(secret, resolve_digest(digest))
    mac.update(data.encode("utf-8"))
    return mac.finalize().hex()


def sign_and_encode(data: bytes, secret: bytes, digest: str = DEFAULT_DIGEST) -> str:
    """Encode ``data`` and append its digest.

    Format: ``<base64(data)>--<hex digest of the base64 text>``
    """
    encoded = encode(data)
    return f"{encoded}{SEPARATOR}{generate_digest(encoded, secret, digest)}"


def _as_text(value: Union[str, bytes, None]) -> str:
    if value is None:
        raise InvalidSignature("Missing cookie value")
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidSignature("Cookie value is not valid UTF-8") from None
    elif isinstance(value, str):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidSignature("Cookie value is not valid UTF-8") from None
    else:
        raise TypeError(
            f"Cookie value must be str or bytes, not {type(value).__name__}"
        )
    if not value.strip():
        raise InvalidSignature("Empty cookie value")
    return value


def verify_and_decode(
    value: Union[str, bytes, None],
    secret: bytes,
    digest: str = DEFAULT_DIGEST,
) -> bytes:
    """Check the digest of a signed message and return the decoded data.

    Args:
        value: Signed message ``<base64-data>--<hex-digest>``.
        secret: MAC key.
        digest: OpenSSL digest name.

    Returns:
        The raw bytes that were signed.

    Raises:
        InvalidSignature: If the value is blank, not UTF-8, not exactly two
            non-empty segments, the digest differs or the data is not base64.
    """
    text = _as_text(value)
    parts = text.split(SEPARATOR)
    if len(parts) != 2 or not all(part.strip() for part in parts):
        logger.debug("Rejected signed value: expected 2 segments, got %d", len(parts))
        raise InvalidSignature("Malformed signed value")
    data, signature = parts
    expected = generate_digest(data, secret, digest)
    if not constant_time.bytes_eq(expected.encode("ascii"), signature.encode("utf-8")):
        logger.debug("Rejected signed value: digest mismatch")
        raise InvalidSignature("Signature mismatch")
    try:
        return decode(data)
    except ValueError as err:
        logger.debug("Rejected signed value: data is not base64")
        raise InvalidSignature("Malformed signed data") from err


# ---------------------------------------------------------------------------
# Message cipher
# ---------------------------------------------------------------------------

def _check_key(key: bytes, spec: CipherSpec) -> None:
    if len(key) != spec.key_length:
        raise ConfigurationError(
            f"{spec.name} requires a {spec.key_length}-byte key, got {len(key)}"
        )


def encrypt_payload(plaintext: bytes, key: bytes, cipher: str = DEFAULT_CIPHER) -> str:
    """Encrypt plaintext with a fresh random IV.

    Format: ``<base64(ciphertext)>--<base64(iv)>``

    Args:
        plaintext: Serialized value.
        key: Cipher key, exactly the cipher's key length.
        cipher: OpenSSL cipher name.

    Returns:
        EncryptedPayload text.
    """
    spec = resolve_cipher(cipher)
    _check_key(key, spec)
    iv = os.urandom(spec.iv_length)
    padder = padding.PKCS7(spec.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ct = encryptor.update(padded) + encryptor.finalize()
    return f"{encode(ct)}{SEPARATOR}{encode(iv)}"


def decrypt_payload(
    payload: Union[str, bytes],
    key: bytes,
    cipher: str = DEFAULT_CIPHER,
) -> bytes:
    """Decrypt an EncryptedPayload produced by :func:`encrypt_payload`.

    Raises:
        DecryptionError: On malformed framing, bad base64, wrong IV or
            ciphertext length, or invalid padding.
    """
    spec = resolve_cipher(cipher)
    _check_key(key, spec)
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("ascii")
        except UnicodeDecodeError:
            raise DecryptionError("Encrypted payload is not ASCII") from None
    parts = payload.split(SEPARATOR)
    if len(parts) != 2:
        logger.debug("Rejected encrypted payload: expected 2 segments, got %d", len(parts))
        raise DecryptionError("Malformed encrypted payload")
    try:
        ct, iv = decode(parts[0]), decode(parts[1])
    except ValueError as err:
        raise DecryptionError("Encrypted payload is not base64") from err
    if len(iv) != spec.iv_length:
        raise DecryptionError(
            f"IV must be {spec.iv_length} bytes, got {len(iv)}"
        )
    if not ct or len(ct) % spec.iv_length:
        raise DecryptionError("Ciphertext is not a whole number of blocks")
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ct) + decryptor.finalize()
    unpadder = padding.PKCS7(spec.block_size).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as err:
        logger.debug("Rejected encrypted payload: invalid padding")
        raise DecryptionError("Invalid padding") from err
