"""
Exceptions raised by the bencode codec.

I/O failures of the underlying stream are never wrapped: an ``OSError`` raised
by ``read()`` or ``write()`` reaches the caller unchanged.
"""
from typing import Optional


class BencodeError(Exception):
    """Base class for all codec errors."""
    pass


class BencodeDecodeError(BencodeError, ValueError):
    """Exception raised for malformed bencoded input."""

    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.position = position

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (at byte {self.position})"


class UnexpectedEof(BencodeDecodeError):
    """The stream ended while a term was incomplete."""


class UnexpectedToken(BencodeDecodeError):
    """The lookahead byte does not start any term."""


class InvalidLength(BencodeDecodeError):
    """A byte-string length prefix is not a canonical non-negative number."""


class InvalidInteger(BencodeDecodeError):
    """An integer is malformed, non-canonical or outside the 64-bit range."""


class Truncated(BencodeDecodeError):
    """Fewer bytes are available than a byte-string length declares."""


class InvalidKey(BencodeDecodeError):
    """A dictionary key is not a byte string."""


class UnsortedKeys(BencodeDecodeError):
    """Dictionary keys are not in ascending byte order (strict mode)."""


class DuplicateKey(BencodeDecodeError):
    """A dictionary key appears more than once."""


class NestingTooDeep(BencodeDecodeError):
    """Lists and dictionaries are nested deeper than the configured limit."""


class TrailingData(BencodeDecodeError):
    """Bytes remain after a complete term in a single-term payload."""


class BencodeEncodeError(BencodeError, TypeError):
    """Exception raised when an object cannot be represented in bencode."""
    pass
