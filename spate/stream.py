"""
Byte sources and sinks used by the codec.

The grammar in :mod:`spate.bencode` is written once, as a generator that asks
for input with two requests:

* ``(PEEK, 1)``: return the next byte without consuming it (``b''`` at end of
  stream);
* ``(READ, n)``: consume and return up to ``n`` bytes (``b''`` at end of
  stream).

:class:`SyncReader` answers those requests from a blocking binary stream and
:class:`AsyncReader` from anything with a coroutine ``read(n)``, such as
``asyncio.StreamReader``. Both keep at most one byte of lookahead, and a
successful decode always consumes it, so the underlying stream is left
positioned right after the decoded term.
"""
import inspect
import io
from typing import Any, BinaryIO, Generator, Iterable, Tuple, Union

PEEK = 'peek'
READ = 'read'

Request = Tuple[str, int]
Parser = Generator[Request, bytes, Any]


def _check_chunk(data: Any) -> bytes:
    if data is None:
        # Non-blocking raw streams return None when no data is ready.
        raise BlockingIOError("Stream has no data available")
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"Stream returned {type(data).__name__}, expected bytes; "
                        f"open it in binary mode")
    return bytes(data)


class SyncReader:
    """Serve parser requests from a blocking binary stream."""

    def __init__(self, stream: Union[bytes, bytearray, memoryview, BinaryIO]):
        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(bytes(stream))
        elif isinstance(stream, io.TextIOBase):
            raise TypeError("Expected a binary stream, got a text stream")
        elif not callable(getattr(stream, 'read', None)):
            raise TypeError(f"Cannot read bencode from {type(stream).__name__}")
        self._stream = stream
        self._lookahead = b''

    def peek(self) -> bytes:
        if not self._lookahead:
            self._lookahead = _check_chunk(self._stream.read(1))
        return self._lookahead

    def read(self, size: int) -> bytes:
        if self._lookahead:
            head, self._lookahead = self._lookahead, b''
            return head
        return _check_chunk(self._stream.read(size))

    def run(self, parser: Parser) -> Any:
        """Drive ``parser`` to completion and return its result."""
        data = None
        while True:
            try:
                op, size = parser.send(data)
            except StopIteration as stop:
                return stop.value
            data = self.peek() if op == PEEK else self.read(size)


class AsyncReader:
    """Serve parser requests from an object with ``async def read(n)``."""

    def __init__(self, reader: Any):
        if not callable(getattr(reader, 'read', None)):
            raise TypeError(f"Cannot read bencode from {type(reader).__name__}")
        self._reader = reader
        self._lookahead = b''

    async def peek(self) -> bytes:
        if not self._lookahead:
            self._lookahead = _check_chunk(await self._reader.read(1))
        return self._lookahead

    async def read(self, size: int) -> bytes:
        if self._lookahead:
            head, self._lookahead = self._lookahead, b''
            return head
        return _check_chunk(await self._reader.read(size))

    async def run(self, parser: Parser) -> Any:
        data = None
        while True:
            try:
                op, size = parser.send(data)
            except StopIteration as stop:
                return stop.value
            data = await (self.peek() if op == PEEK else self.read(size))


def write_all(sink: BinaryIO, chunks: Iterable[bytes]) -> None:
    for chunk in chunks:
        sink.write(chunk)


async def write_all_async(writer: Any, chunks: Iterable[bytes]) -> None:
    """
    Write chunks to an asyncio-style writer.

    ``writer.write()`` may be a plain method (``asyncio.StreamWriter``) or a
    coroutine (``aiofiles``). ``drain()`` is awaited once at the end when the
    writer provides it.
    """
    for chunk in chunks:
        result = writer.write(chunk)
        if inspect.isawaitable(result):
            await result
    drain = getattr(writer, 'drain', None)
    if drain is not None:
        await drain()
