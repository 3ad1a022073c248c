"""
spate: a canonical Bencode codec and BitTorrent metainfo reader.
"""
from .bencode import (
    bdecode, bencode, decode, decode_async, encode, encode_async,
    is_canonical, iter_decode, iter_encode,
)
from .errors import (
    BencodeDecodeError, BencodeEncodeError, BencodeError, DuplicateKey,
    InvalidInteger, InvalidKey, InvalidLength, NestingTooDeep, TrailingData,
    Truncated, UnexpectedEof, UnexpectedToken, UnsortedKeys,
)
from .value import BDict, is_value, to_jsonable

__version__ = '0.1.0'

__all__ = [
    'bdecode', 'bencode', 'decode', 'decode_async', 'encode', 'encode_async',
    'is_canonical', 'iter_decode', 'iter_encode',
    'BDict', 'is_value', 'to_jsonable',
    'BencodeError', 'BencodeDecodeError', 'BencodeEncodeError',
    'UnexpectedEof', 'UnexpectedToken', 'InvalidLength', 'InvalidInteger',
    'Truncated', 'InvalidKey', 'UnsortedKeys', 'DuplicateKey',
    'NestingTooDeep', 'TrailingData',
]
