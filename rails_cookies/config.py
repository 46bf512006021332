"""
Cookie Configuration — validated cookie jar settings.

Mirrors the Rails defaults for the legacy cookie jar:
    secret_key_base          (required)
    encrypted cookie salt    "encrypted cookie"
    signed encrypted salt    "signed encrypted cookie"
    signed cookie salt       "signed cookie"
    PBKDF2 iterations/size   1000 / 64 bytes
    cipher / digest          aes-256-cbc / SHA1

Settings can be loaded from environment variables:
    SECRET_KEY_BASE = <secret_key_base of the Rails application>
    COOKIES_ENCRYPTED_SALT, COOKIES_ENCRYPTED_SIGNED_SALT, COOKIES_SIGNED_SALT
    COOKIES_KDF_ITERATIONS, COOKIES_KEY_SIZE, COOKIES_CIPHER, COOKIES_DIGEST

Security Note:
    Never log secret_key_base. Only log algorithm names and sizes.
"""
import os
import secrets
import logging
from typing import Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .crypto import (
    DEFAULT_CIPHER,
    DEFAULT_DIGEST,
    DEFAULT_ITERATIONS,
    DEFAULT_KEY_SIZE,
    resolve_cipher,
    resolve_digest,
)
from .exceptions import ConfigurationError

logger = logging.getLogger("rails_cookies")

_ENV_OPTIONS = {
    "encrypted_salt": "COOKIES_ENCRYPTED_SALT",
    "encrypted_signed_salt": "COOKIES_ENCRYPTED_SIGNED_SALT",
    "signed_salt": "COOKIES_SIGNED_SALT",
    "iterations": "COOKIES_KDF_ITERATIONS",
    "key_size": "COOKIES_KEY_SIZE",
    "cipher": "COOKIES_CIPHER",
    "digest": "COOKIES_DIGEST",
}


def generate_secret_key_base() -> str:
    """Generate a random secret_key_base (128 hex chars, like ``rails secret``).

    Returns:
        Hex-encoded 64-byte secret.
    """
    return secrets.token_hex(64)


class CookieConfig(BaseModel):
    """Validated cookie jar configuration."""

    secret_key_base: Union[str, bytes] = Field(repr=False)
    encrypted_salt: str = Field(default="encrypted cookie")
    encrypted_signed_salt: str = Field(default="signed encrypted cookie")
    signed_salt: str = Field(default="signed cookie")
    iterations: int = Field(default=DEFAULT_ITERATIONS, ge=1)
    key_size: int = Field(default=DEFAULT_KEY_SIZE, ge=1)
    cipher: str = Field(default=DEFAULT_CIPHER)
    digest: str = Field(default=DEFAULT_DIGEST)

    model_config = {"frozen": True}

    @field_validator("secret_key_base")
    @classmethod
    def validate_secret(cls, v: Union[str, bytes]) -> Union[str, bytes]:
        """Reject an empty secret_key_base."""
        if not v:
            raise ValueError("secret_key_base cannot be empty")
        return v

    @field_validator("cipher")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher is a supported AES-CBC variant."""
        return resolve_cipher(v).name

    @field_validator("digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        """Validate digest is a supported OpenSSL digest name."""
        resolve_digest(v)
        return v.upper()

    @model_validator(mode="after")
    def validate_key_size(self) -> "CookieConfig":
        """Derived keys must be long enough to hold a cipher key."""
        key_length = resolve_cipher(self.cipher).key_length
        if self.key_size < key_length:
            raise ValueError(
                f"key_size {self.key_size} is shorter than the "
                f"{key_length}-byte key required by {self.cipher}"
            )
        return self

    @classmethod
    def from_env(cls) -> "CookieConfig":
        """Create CookieConfig by loading values from environment.

        Returns:
            Populated CookieConfig instance.

        Raises:
            ConfigurationError: If SECRET_KEY_BASE is not set.
        """
        secret = os.environ.get("SECRET_KEY_BASE")
        if not secret:
            raise ConfigurationError(
                "SECRET_KEY_BASE environment variable is not set"
            )
        options = {
            field: os.environ[name]
            for field, name in _ENV_OPTIONS.items()
            if name in os.environ
        }
        logger.debug(
            "Loaded cookie settings from environment: %s", sorted(options)
        )
        return cls(secret_key_base=secret, **options)
