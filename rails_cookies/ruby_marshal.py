"""
Ruby Marshal (format 4.8) reader and writer for session payloads.

Legacy Rails applications serialize cookie payloads with ``Marshal`` instead
of JSON. Only the value types that appear in such payloads are supported:
nil, true, false, Integer, Float, String, Symbol, Array and Hash.

Mapping:
    String with encoding ivar -> str
    String without encoding    -> bytes
    Symbol                     -> str
    Hash with default          -> dict (default dropped)

Security Note:
    Only load data whose signature has already been verified.
"""
import codecs
import math
from typing import Any

from .exceptions import DeserializeError

MAJOR_VERSION = 4
MINOR_VERSION = 8

# Fixnums outside this range are written as bignums ('l').
_FIXNUM_MIN = -(2 ** 30)
_FIXNUM_MAX = 2 ** 30 - 1

# Arrays and Hashes nested deeper than this are rejected.
MAX_DEPTH = 128


class MarshalError(DeserializeError):
    """Malformed or unsupported Marshal data."""


class _Loader:
    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0
        self.symbols: list[str] = []
        self.objects: list[Any] = []
        self.depth = 0

    def read(self, size: int) -> bytes:
        if size < 0 or self.pos + size > len(self.data):
            raise MarshalError("Marshal data too short")
        chunk = self.data[self.pos:self.pos + size]
        self.pos += size
        return chunk

    def read_byte(self) -> int:
        return self.read(1)[0]

    def read_long(self) -> int:
        c = self.read_byte()
        if c == 0:
            return 0
        if c > 127:
            c -= 256
        if 4 < c < 128:
            return c - 5
        if -129 < c < -4:
            return c + 5
        if c > 0:
            value = 0
            for i in range(c):
                value |= self.read_byte() << (8 * i)
            return value
        value = -1
        for i in range(-c):
            value &= ~(0xff << (8 * i))
            value |= self.read_byte() << (8 * i)
        return value

    def read_bytes(self) -> bytes:
        return self.read(self.read_long())

    def register(self, obj: Any) -> int:
        self.objects.append(obj)
        return len(self.objects) - 1

    def read_symbol_body(self) -> str:
        try:
            name = self.read_bytes().decode("utf-8")
        except UnicodeDecodeError as err:
            raise MarshalError("Symbol is not valid UTF-8") from err
        self.symbols.append(name)
        return name

    def read_symbol(self) -> str:
        code = chr(self.read_byte())
        # non-ASCII symbols carry their own encoding ivar
        wrapped = 0
        while code == "I":
            wrapped += 1
            code = chr(self.read_byte())
        if code == ":":
            name = self.read_symbol_body()
        elif code == ";":
            name = self.symbol_link()
        else:
            raise MarshalError(f"Expected symbol, got type code {code!r}")
        for _ in range(wrapped):
            self.read_ivars()
        return name

    def symbol_link(self) -> str:
        index = self.read_long()
        try:
            return self.symbols[index]
        except IndexError:
            raise MarshalError(f"Invalid symbol link {index}") from None

    def read_ivars(self) -> dict[str, Any]:
        ivars = {}
        for _ in range(self.read_long()):
            name = self.read_symbol()
            ivars[name] = self.load()
        return ivars

    def read_string_with_ivars(self) -> Any:
        raw = self.read_bytes()
        index = self.register(raw)
        ivars = self.read_ivars()
        if "E" in ivars:
            encoding = "utf-8" if ivars["E"] else "ascii"
        elif "encoding" in ivars:
            name = ivars["encoding"]
            encoding = name.decode("ascii") if isinstance(name, bytes) else name
        else:
            return raw
        try:
            codecs.lookup(encoding)
            value = raw.decode(encoding)
        except (LookupError, UnicodeDecodeError) as err:
            raise MarshalError(f"Cannot decode String as {encoding}") from err
        self.objects[index] = value
        return value

    def read_float(self) -> float:
        text = self.read_bytes().split(b"\0", 1)[0].decode("ascii", "replace")
        if text == "nan":
            value = math.nan
        elif text == "inf":
            value = math.inf
        elif text == "-inf":
            value = -math.inf
        else:
            try:
                value = float(text)
            except ValueError as err:
                raise MarshalError(f"Invalid Float {text!r}") from err
        self.register(value)
        return value

    def read_bignum(self) -> int:
        sign = chr(self.read_byte())
        raw = self.read(self.read_long() * 2)
        value = int.from_bytes(raw, "little")
        if sign == "-":
            value = -value
        self.register(value)
        return value

    def read_hash(self, with_default: bool) -> dict:
        result: dict = {}
        self.register(result)
        for _ in range(self.read_long()):
            key = self.load()
            value = self.load()
            try:
                result[key] = value
            except TypeError as err:
                raise MarshalError(f"Unhashable Hash key: {key!r}") from err
        if with_default:
            self.load()
        return result

    def load(self) -> Any:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise MarshalError(f"Marshal data nested deeper than {MAX_DEPTH} levels")
        try:
            return self.load_value()
        finally:
            self.depth -= 1

    def load_value(self) -> Any:
        code = chr(self.read_byte())
        if code == "0":
            return None
        if code == "T":
            return True
        if code == "F":
            return False
        if code == "i":
            return self.read_long()
        if code == "l":
            return self.read_bignum()
        if code == "f":
            return self.read_float()
        if code == '"':
            raw = self.read_bytes()
            self.register(raw)
            return raw
        if code == "I":
            if self.data[self.pos:self.pos + 1] == b'"':
                self.pos += 1
                return self.read_string_with_ivars()
            value = self.load()
            self.read_ivars()
            return value
        if code == ":":
            return self.read_symbol_body()
        if code == ";":
            return self.symbol_link()
        if code == "[":
            result: list = []
            self.register(result)
            for _ in range(self.read_long()):
                result.append(self.load())
            return result
        if code == "{":
            return self.read_hash(with_default=False)
        if code == "}":
            return self.read_hash(with_default=True)
        if code == "@":
            index = self.read_long()
            try:
                return self.objects[index]
            except IndexError:
                raise MarshalError(f"Invalid object link {index}") from None
        raise MarshalError(f"Unsupported Marshal type code {code!r}")


class _Dumper:
    def __init__(self):
        self.out = bytearray()
        self.symbols: dict[str, int] = {}

    def write_long(self, value: int) -> None:
        if value == 0:
            self.out.append(0)
        elif 0 < value < 123:
            self.out.append(value + 5)
        elif -124 < value < 0:
            self.out.append((value - 5) & 0xff)
        else:
            buf = bytearray()
            for i in range(1, 5):
                buf.append(value & 0xff)
                value >>= 8
                if value == 0:
                    self.out.append(i)
                    break
                if value == -1:
                    self.out.append(-i & 0xff)
                    break
            self.out.extend(buf)

    def write_bytes(self, data: bytes) -> None:
        self.write_long(len(data))
        self.out.extend(data)

    def write_symbol(self, name: str) -> None:
        if name in self.symbols:
            self.out.extend(b";")
            self.write_long(self.symbols[name])
            return
        self.symbols[name] = len(self.symbols)
        self.out.extend(b":")
        self.write_bytes(name.encode("utf-8"))

    def write_bignum(self, value: int) -> None:
        self.out.extend(b"l")
        self.out.extend(b"-" if value < 0 else b"+")
        magnitude = abs(value)
        size = (magnitude.bit_length() + 7) // 8
        size += size % 2
        self.write_long(size // 2)
        self.out.extend(magnitude.to_bytes(size, "little"))

    def write_float(self, value: float) -> None:
        if math.isnan(value):
            text = "nan"
        elif math.isinf(value):
            text = "inf" if value > 0 else "-inf"
        else:
            text = repr(value)
            if text.endswith(".0"):
                text = text[:-2]
        self.out.extend(b"f")
        self.write_bytes(text.encode("ascii"))

    def dump(self, value: Any) -> None:
        if value is None:
            self.out.extend(b"0")
        elif value is True:
            self.out.extend(b"T")
        elif value is False:
            self.out.extend(b"F")
        elif isinstance(value, int):
            if _FIXNUM_MIN <= value <= _FIXNUM_MAX:
                self.out.extend(b"i")
                self.write_long(value)
            else:
                self.write_bignum(value)
        elif isinstance(value, float):
            self.write_float(value)
        elif isinstance(value, str):
            self.out.extend(b'I"')
            self.write_bytes(value.encode("utf-8"))
            self.write_long(1)
            self.write_symbol("E")
            self.out.extend(b"T")
        elif isinstance(value, (bytes, bytearray)):
            self.out.extend(b'"')
            self.write_bytes(bytes(value))
        elif isinstance(value, (list, tuple)):
            self.out.extend(b"[")
            self.write_long(len(value))
            for item in value:
                self.dump(item)
        elif isinstance(value, dict):
            self.out.extend(b"{")
            self.write_long(len(value))
            for key, item in value.items():
                self.dump(key)
                self.dump(item)
        else:
            raise TypeError(
                f"Cannot marshal objects of type {type(value).__name__}"
            )


def dumps(value: Any) -> bytes:
    """Serialize a Python value as Ruby Marshal 4.8 bytes."""
    dumper = _Dumper()
    dumper.out.extend(bytes([MAJOR_VERSION, MINOR_VERSION]))
    dumper.dump(value)
    return bytes(dumper.out)


def loads(data: bytes) -> Any:
    """Load Ruby Marshal 4.8 bytes.

    Raises:
        MarshalError: On a version mismatch, truncated data, an
            unsupported type or excessive nesting.
    """
    loader = _Loader(data)
    major, minor = loader.read_byte(), loader.read_byte()
    if (major, minor) != (MAJOR_VERSION, MINOR_VERSION):
        raise MarshalError(f"Unsupported Marshal version {major}.{minor}")
    try:
        return loader.load()
    except RecursionError:
        raise MarshalError("Marshal data nested too deeply") from None
