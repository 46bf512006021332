"""
Cookie payload serializers.

A serializer is anything with ``dump(value) -> bytes`` and
``load(data: bytes) -> value``; ``load`` raises DeserializeError on bytes it
cannot parse. Serializers only ever see payloads whose signature was verified.

The jsonpickle serializer for Python-only deployments lives in
:mod:`rails_cookies.pickling`.
"""
from typing import Any, Protocol, runtime_checkable

import orjson

from .exceptions import DeserializeError
from . import ruby_marshal


@runtime_checkable
class Serializer(Protocol):
    """Payload codec used by the cookie jar."""

    def dump(self, value: Any) -> bytes:
        ...

    def load(self, data: bytes) -> Any:
        ...


class JSONSerializer:
    """Rails ``:json`` cookie serializer (JSON.dump / JSON.parse).

    Integers are limited to the 64-bit range orjson supports, from
    ``-(2**63 - 1)`` to ``2**64 - 1``. ``dump`` raises TypeError on wider
    integers. ``load`` reads a wider integer written by Ruby as a float,
    losing precision, so store such values as strings.
    """

    def dump(self, value: Any) -> bytes:
        return orjson.dumps(value)

    def load(self, data: bytes) -> Any:
        try:
            return orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise DeserializeError(f"Invalid JSON payload: {err}") from err


class MarshalSerializer:
    """Rails ``:marshal`` cookie serializer.

    Non-portable: only the Ruby value subset handled by
    :mod:`rails_cookies.ruby_marshal` is supported.
    """

    def dump(self, value: Any) -> bytes:
        return ruby_marshal.dumps(value)

    def load(self, data: bytes) -> Any:
        return ruby_marshal.loads(data)
