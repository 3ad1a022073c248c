"""
Bencode encoding and decoding for BitTorrent protocol.

Decoding reads exactly one term from a byte source and rejects anything that
is not in canonical form: integers with leading zeros or ``-0``, string
lengths with leading zeros and, in strict mode, dictionaries whose keys are
not in ascending byte order.
"""
import logging
import re
from collections.abc import Mapping
from itertools import chain
from operator import itemgetter
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Tuple, Union

from . import config
from .errors import (
    BencodeDecodeError, BencodeEncodeError, DuplicateKey, InvalidInteger,
    InvalidKey, InvalidLength, NestingTooDeep, TrailingData, Truncated,
    UnexpectedEof, UnexpectedToken, UnsortedKeys,
)
from .stream import (
    PEEK, READ, AsyncReader, Parser, SyncReader, write_all, write_all_async,
)
from .value import INT64_MAX, INT64_MIN, BDict, Value

logger = logging.getLogger(__name__)

# Bencode tokens
STRING_SEPARATOR = b':'
INT_TOKEN = b'i'
LIST_TOKEN = b'l'
DICT_TOKEN = b'd'
END_TOKEN = b'e'
DIGITS = b'0123456789'

_CONTAINER_TOKENS = (INT_TOKEN, LIST_TOKEN, DICT_TOKEN)
_INTEGER_RE = re.compile(rb'-?(0|[1-9][0-9]*)')
_LENGTH_RE = re.compile(rb'0|[1-9][0-9]*')

MAX_INTEGER_WIDTH = len(str(INT64_MIN))
MAX_LENGTH_WIDTH = len(str(INT64_MAX))
READ_CHUNK = 64 * 1024

_EXHAUSTED = object()

Source = Union[bytes, bytearray, memoryview, BinaryIO, SyncReader]


class _Parser:
    """
    Recursive-descent grammar over PEEK/READ requests.

    Every method is a generator; the readers in :mod:`spate.stream` answer the
    requests it yields. ``position`` counts the bytes consumed so far.
    """

    def __init__(self, strict: bool, max_depth: int):
        self.strict = strict
        self.max_depth = max_depth
        self.position = 0

    def _peek(self) -> Parser:
        return (yield (PEEK, 1))

    def _read_byte(self) -> Parser:
        data = yield (READ, 1)
        self.position += len(data)
        return data

    def _read_exact(self, size: int) -> Parser:
        """Read ``size`` bytes, or fewer if the stream ends first."""
        chunks = []
        remaining = size
        while remaining:
            data = yield (READ, min(remaining, READ_CHUNK))
            if not data:
                break
            chunks.append(data)
            remaining -= len(data)
            self.position += len(data)
        return b''.join(chunks)

    def term(self, depth: int = 0) -> Parser:
        """Decode one value. ``depth`` is the nesting level it appears at."""
        start = self.position
        token = yield from self._peek()
        if not token:
            raise UnexpectedEof("Expected a value, got end of stream", start)
        if token in DIGITS:
            return (yield from self._string())
        if token == INT_TOKEN:
            return (yield from self._integer())
        if token == LIST_TOKEN:
            return (yield from self._list(depth + 1))
        if token == DICT_TOKEN:
            return (yield from self._dict(depth + 1))
        raise UnexpectedToken(f"Unexpected token {token!r}", start)

    def _enter(self, depth: int) -> None:
        if depth > self.max_depth:
            raise NestingTooDeep(
                f"Values are nested deeper than {self.max_depth} levels", self.position)

    def _string(self) -> Parser:
        """
        Format: <length>:<data>
        Example: 5:hello -> b'hello'
        """
        start = self.position
        digits = bytearray()
        while True:
            char = yield from self._read_byte()
            if not char:
                raise UnexpectedEof("Stream ended inside a string length", start)
            if char == STRING_SEPARATOR:
                break
            if char not in DIGITS or len(digits) >= MAX_LENGTH_WIDTH:
                raise InvalidLength(f"Invalid string length {bytes(digits + char)!r}", start)
            digits += char

        if not _LENGTH_RE.fullmatch(digits):
            raise InvalidLength(f"Invalid string length {bytes(digits)!r}", start)
        length = int(bytes(digits))
        if length > INT64_MAX:
            raise InvalidLength(f"String length {length} is out of range", start)

        data = yield from self._read_exact(length)
        if len(data) < length:
            raise Truncated(
                f"String declares {length} bytes but only {len(data)} are available", start)
        return data

    def _integer(self) -> Parser:
        """
        Format: i<number>e
        Example: i42e -> 42
        """
        start = self.position
        yield from self._read_byte()
        digits = bytearray()
        while True:
            char = yield from self._read_byte()
            if not char:
                raise UnexpectedEof("Stream ended inside an integer", start)
            if char == END_TOKEN:
                break
            if char not in b'-' + DIGITS or len(digits) >= MAX_INTEGER_WIDTH:
                raise InvalidInteger(f"Invalid integer {bytes(digits + char)!r}", start)
            digits += char

        # Leading zeros and negative zero have a second spelling, which
        # would break the one-encoding-per-value property.
        if not _INTEGER_RE.fullmatch(digits) or digits == b'-0':
            raise InvalidInteger(f"Invalid integer {bytes(digits)!r}", start)
        value = int(bytes(digits))
        if not INT64_MIN <= value <= INT64_MAX:
            raise InvalidInteger(f"Integer {value} does not fit in 64 bits", start)
        return value

    def _list(self, depth: int) -> Parser:
        """Format: l<item1><item2>...e"""
        self._enter(depth)
        start = self.position
        yield from self._read_byte()
        items: List[Value] = []
        while True:
            token = yield from self._peek()
            if token == END_TOKEN:
                break
            if not token:
                raise UnexpectedEof("Stream ended inside a list", start)
            items.append((yield from self.term(depth)))
        yield from self._read_byte()
        return items

    def _dict(self, depth: int) -> Parser:
        """Format: d<key1><value1>...e, keys are byte strings."""
        self._enter(depth)
        start = self.position
        yield from self._read_byte()
        data: Dict[bytes, Value] = {}
        previous: Optional[bytes] = None
        in_order = True
        while True:
            key_start = self.position
            token = yield from self._peek()
            if token == END_TOKEN:
                break
            if not token:
                raise UnexpectedEof("Stream ended inside a dictionary", start)
            if token in _CONTAINER_TOKENS:
                raise InvalidKey(f"Dictionary key must be a byte string, got {token!r}", key_start)

            key = yield from self.term(depth)
            if key in data:
                raise DuplicateKey(f"Duplicate dictionary key {key!r}", key_start)
            if previous is not None and key < previous:
                if self.strict:
                    raise UnsortedKeys(f"Key {key!r} is out of order after {previous!r}", key_start)
                in_order = False
            data[key] = yield from self.term(depth)
            previous = key
        yield from self._read_byte()

        if in_order:
            return BDict._from_sorted(data)
        logger.warning("Dictionary at byte %d has unsorted keys; re-sorting", start)
        return BDict(data)


def _make_parser(strict: Optional[bool], max_depth: Optional[int]) -> _Parser:
    if max_depth is None:
        max_depth = config.MAX_DEPTH
    elif not 0 <= max_depth <= config.MAX_DEPTH_CEILING:
        raise ValueError(
            f"max_depth must be between 0 and {config.MAX_DEPTH_CEILING}, got {max_depth}")
    return _Parser(config.STRICT_KEY_ORDER if strict is None else strict, max_depth)


def _too_deep(parser: _Parser) -> NestingTooDeep:
    return NestingTooDeep("Nesting exceeds the interpreter's recursion limit", parser.position)


def _decode_one(reader: SyncReader, strict: Optional[bool],
                max_depth: Optional[int]) -> Tuple[Value, int]:
    parser = _make_parser(strict, max_depth)
    try:
        value = reader.run(parser.term())
    except RecursionError:
        raise _too_deep(parser) from None
    logger.debug("Decoded %s from %d bytes", type(value).__name__, parser.position)
    return value, parser.position


def decode(source: Source, *, strict: Optional[bool] = None,
           max_depth: Optional[int] = None) -> Value:
    """
    Decode one bencoded value from a stream or bytes.

    Only the bytes of that value are consumed; anything after it stays in
    the stream.

    Args:
        source: Bytes, or a binary file-like object with ``read(n)``
        strict: Reject dictionaries with out-of-order keys (default from
            ``SPATE_STRICT_KEY_ORDER``). When False they are re-sorted.
        max_depth: Maximum nesting of lists and dictionaries (default from
            ``SPATE_MAX_DEPTH``), at most ``config.MAX_DEPTH_CEILING``

    Returns:
        The decoded value (bytes, int, list or BDict)

    Raises:
        BencodeDecodeError: The input is malformed
        OSError: Reading from the stream failed
        ValueError: ``max_depth`` is out of range
    """
    reader = source if isinstance(source, SyncReader) else SyncReader(source)
    return _decode_one(reader, strict, max_depth)[0]


def iter_decode(source: Source, *, strict: Optional[bool] = None,
                max_depth: Optional[int] = None) -> Iterator[Value]:
    """Decode back-to-back values until the stream ends cleanly."""
    reader = source if isinstance(source, SyncReader) else SyncReader(source)
    while reader.peek():
        yield _decode_one(reader, strict, max_depth)[0]


def bdecode(data: Union[bytes, bytearray, memoryview], *, strict: Optional[bool] = None,
            max_depth: Optional[int] = None) -> Value:
    """Decode a payload that must hold exactly one value."""
    reader = SyncReader(data)
    value, consumed = _decode_one(reader, strict, max_depth)
    if reader.peek():
        raise TrailingData("Unexpected data after the end of the value", consumed)
    return value


async def decode_async(reader: Any, *, strict: Optional[bool] = None,
                       max_depth: Optional[int] = None) -> Value:
    """
    Decode one value from an asyncio stream.

    Args:
        reader: An ``asyncio.StreamReader`` or any object with a coroutine
            ``read(n)``

    The stream is left positioned after the value, so peer-wire messages can
    be read by calling this repeatedly.
    """
    source = reader if isinstance(reader, AsyncReader) else AsyncReader(reader)
    parser = _make_parser(strict, max_depth)
    try:
        value = await source.run(parser.term())
    except RecursionError:
        raise _too_deep(parser) from None
    logger.debug("Decoded %s from %d bytes", type(value).__name__, parser.position)
    return value


def _mapping_items(obj: Mapping) -> List[Tuple[bytes, Any]]:
    if isinstance(obj, BDict):
        return list(obj.items())
    for key in obj:
        if not isinstance(key, bytes):
            raise BencodeEncodeError(
                f"Dictionary keys must be bytes, not {type(key).__name__}")
    return sorted(obj.items(), key=itemgetter(0))


def iter_encode(obj: Any) -> Iterator[bytes]:
    """
    Yield the canonical encoding of ``obj`` in chunks.

    Containers are walked with an explicit stack, so nesting depth is not
    bounded by the interpreter's recursion limit.

    Raises:
        BencodeEncodeError: ``obj`` is not a bencode value
    """
    stack = [iter((obj,))]
    while stack:
        item = next(stack[-1], _EXHAUSTED)
        if item is _EXHAUSTED:
            stack.pop()
            if stack:
                yield END_TOKEN
        elif isinstance(item, bool):
            raise BencodeEncodeError("Cannot encode bool; use 0 or 1")
        elif isinstance(item, int):
            if not INT64_MIN <= item <= INT64_MAX:
                raise BencodeEncodeError(f"Integer {item} does not fit in 64 bits")
            yield b'i%de' % item
        elif isinstance(item, (bytes, bytearray)):
            yield b'%d:' % len(item)
            yield bytes(item)
        elif isinstance(item, list):
            yield LIST_TOKEN
            stack.append(iter(item))
        elif isinstance(item, Mapping):
            yield DICT_TOKEN
            # keys and values alternate
            stack.append(chain.from_iterable(_mapping_items(item)))
        else:
            raise BencodeEncodeError(f"Unsupported type: {type(item).__name__}")


def encode(obj: Value, sink: BinaryIO) -> None:
    """
    Encode a value into a writable binary stream.

    The whole value is checked before the first write, so an unsupported
    object leaves the sink untouched. Write errors propagate unchanged.
    """
    write_all(sink, list(iter_encode(obj)))


async def encode_async(obj: Value, writer: Any) -> None:
    """Encode a value into an asyncio-style writer and drain it."""
    await write_all_async(writer, list(iter_encode(obj)))


def bencode(obj: Value) -> bytes:
    """Encode a value to bencode format."""
    return b''.join(iter_encode(obj))


def is_canonical(data: Union[bytes, bytearray, memoryview]) -> bool:
    """Return True if ``data`` is one value in its unique canonical encoding."""
    try:
        value = bdecode(data, strict=False)
    except BencodeDecodeError:
        return False
    return bencode(value) == bytes(data)
