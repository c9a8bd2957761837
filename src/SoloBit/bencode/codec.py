"""
bencode encoder and decoder.

values map to python types as follows:
    integer     -> int (signed 64-bit)
    byte string -> bytes
    list        -> list
    dictionary  -> dict with bytes keys
dictionaries are always encoded with their keys sorted by raw bytes, so the same
value always yields the same bytes no matter how it was built or decoded.
"""

from ..errors import MalformedEncoding

from typing import Any, Dict, List, Tuple, Union

Value = Union[int, bytes, List[Any], Dict[bytes, Any]]

INT_MIN = -2 ** 63
INT_MAX = 2 ** 63 - 1
MAX_DEPTH = 256

_DIGITS = b'0123456789'
_END = ord('e')


class _Decoder(object):
    """
    recursive descent parser over a bytes buffer
    """

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.index = 0
        self.depth = 0

    def decode(self) -> Value:
        if self.index >= len(self.data):
            raise MalformedEncoding('unexpected end of data', self.index)

        char = self.data[self.index]
        if char == ord('i'):
            return self._decode_int()
        elif char == ord('l'):
            return self._decode_list()
        elif char == ord('d'):
            return self._decode_dict()
        elif char in _DIGITS:
            return self._decode_bytes()
        raise MalformedEncoding(f'unexpected byte {bytes([char])!r}', self.index)

    def _decode_int(self) -> int:
        start = self.index
        end = self.data.find(b'e', start + 1)
        if end == -1:
            raise MalformedEncoding('integer is missing its terminator', start)

        digits = self.data[start + 1:end]
        body = digits[1:] if digits.startswith(b'-') else digits
        if not body or any(char not in _DIGITS for char in body):
            raise MalformedEncoding(f'invalid integer {digits!r}', start)
        if len(body) > 1 and body.startswith(b'0'):
            raise MalformedEncoding(f'integer with leading zeros {digits!r}', start)
        if digits == b'-0':
            raise MalformedEncoding('negative zero is not a valid integer', start)

        value = int(digits)
        if not INT_MIN <= value <= INT_MAX:
            raise MalformedEncoding(f'integer {value} does not fit in 64 bits', start)

        self.index = end + 1
        return value

    def _decode_bytes(self) -> bytes:
        start = self.index
        colon = self.data.find(b':', start)
        if colon == -1:
            raise MalformedEncoding('byte string length is missing its colon', start)

        digits = self.data[start:colon]
        if not digits or any(char not in _DIGITS for char in digits):
            raise MalformedEncoding(f'non-numeric byte string length {digits!r}', start)
        if len(digits) > 1 and digits.startswith(b'0'):
            raise MalformedEncoding(f'byte string length with leading zeros {digits!r}', start)

        begin = colon + 1
        end = begin + int(digits)
        if end > len(self.data):
            raise MalformedEncoding('byte string is truncated', start)

        self.index = end
        return self.data[begin:end]

    def _enter(self, position: int) -> None:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise MalformedEncoding(f'nesting deeper than {MAX_DEPTH} levels', position)

    def _at_end_marker(self, start: int, kind: str) -> bool:
        if self.index >= len(self.data):
            raise MalformedEncoding(f'{kind} is missing its terminator', start)
        return self.data[self.index] == _END

    def _decode_list(self) -> List[Value]:
        start = self.index
        self._enter(start)
        self.index += 1

        items = []
        while not self._at_end_marker(start, 'list'):
            items.append(self.decode())

        self.index += 1
        self.depth -= 1
        return items

    def _decode_dict(self) -> Dict[bytes, Value]:
        start = self.index
        self._enter(start)
        self.index += 1

        result = {}
        while not self._at_end_marker(start, 'dictionary'):
            key_position = self.index
            if self.data[self.index] not in _DIGITS:
                raise MalformedEncoding('dictionary keys must be byte strings', key_position)
            key = self._decode_bytes()
            if key in result:
                raise MalformedEncoding(f'duplicate dictionary key {key!r}', key_position)
            # unsorted keys are accepted, encode() puts them back in order
            result[key] = self.decode()

        self.index += 1
        self.depth -= 1
        return result


def _as_bytes(data: Any) -> bytes:
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if not isinstance(data, bytes):
        raise TypeError(f'can only decode bytes, not {type(data).__name__}')
    return data


def decode_prefix(data: bytes) -> Tuple[Value, int]:
    """
    decodes the first value of a buffer
    :param data: bencoded data, may be followed by anything
    :return: decoded value, number of bytes it took
    """
    decoder = _Decoder(_as_bytes(data))
    value = decoder.decode()
    return value, decoder.index


def decode(data: bytes) -> Value:
    """
    decodes a buffer holding exactly one bencoded value
    :param data: bencoded data
    :return: decoded value
    """
    value, consumed = decode_prefix(data)
    if consumed != len(data):
        raise MalformedEncoding('trailing data after value', consumed)
    return value


def _dict_key(key: Any) -> bytes:
    if isinstance(key, str):
        return key.encode('utf-8')
    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key)
    raise TypeError(f'dictionary keys must be bytes or str, not {type(key).__name__}')


def _encode_into(value: Any, chunks: List[bytes]) -> None:
    # bool is an int subclass but has no bencode form
    if isinstance(value, bool):
        raise TypeError('cannot bencode a bool')

    if isinstance(value, int):
        if not INT_MIN <= value <= INT_MAX:
            raise ValueError(f'integer {value} does not fit in 64 bits')
        chunks.append(b'i%de' % value)

    elif isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value)
        chunks.append(b'%d:' % len(value))
        chunks.append(value)

    elif isinstance(value, str):
        _encode_into(value.encode('utf-8'), chunks)

    elif isinstance(value, (list, tuple)):
        chunks.append(b'l')
        for item in value:
            _encode_into(item, chunks)
        chunks.append(b'e')

    elif isinstance(value, dict):
        items = {}
        for key, item in value.items():
            key = _dict_key(key)
            if key in items:
                raise ValueError(f'dictionary key {key!r} appears twice')
            items[key] = item

        chunks.append(b'd')
        for key in sorted(items):
            _encode_into(key, chunks)
            _encode_into(items[key], chunks)
        chunks.append(b'e')

    else:
        raise TypeError(f'cannot bencode {type(value).__name__}')


def encode(value: Any) -> bytes:
    """
    encodes a value, dictionary keys are emitted in sorted order
    :param value: int, bytes, str, list, tuple or dict
    :return: bencoded bytes
    """
    chunks: List[bytes] = []
    _encode_into(value, chunks)
    return b''.join(chunks)


def to_printable(value: Value) -> Any:
    """
    converts a decoded value to something json can dump.
    byte strings become text, or hex if they are not utf-8
    """
    if isinstance(value, bytes):
        try:
            return value.decode('utf-8')
        except UnicodeDecodeError:
            return value.hex()
    elif isinstance(value, list):
        return [to_printable(item) for item in value]
    elif isinstance(value, dict):
        return {to_printable(key): to_printable(item) for key, item in value.items()}
    return value
