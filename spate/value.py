"""
In-memory representation of bencoded values.

A value is one of ``bytes``, ``int``, ``list`` or :class:`BDict`.
"""
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Iterator, List, Tuple, Union

INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1

Value = Union[bytes, int, List[Any], 'BDict']


def _check_key(key: Any) -> bytes:
    if isinstance(key, bytearray):
        return bytes(key)
    if not isinstance(key, bytes):
        raise TypeError(f"Dictionary keys must be bytes, not {type(key).__name__}")
    return key


class BDict(Mapping):
    """
    Immutable mapping from byte-string keys to values.

    Keys are unique and always iterated in ascending byte-wise order, which
    is the order bencode requires on the wire.
    """

    __slots__ = ('_items',)

    def __init__(self, items: Union[Mapping, Iterable[Tuple[bytes, Any]]] = ()):
        pairs = items.items() if isinstance(items, Mapping) else items
        data: Dict[bytes, Any] = {}
        for key, value in pairs:
            data[_check_key(key)] = value
        self._items = dict(sorted(data.items()))

    @classmethod
    def _from_sorted(cls, data: Dict[bytes, Any]) -> 'BDict':
        """Wrap a dict whose keys are already unique bytes in ascending order."""
        obj = cls.__new__(cls)
        obj._items = data
        return obj

    def __getitem__(self, key: bytes) -> Any:
        return self._items[key]

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __repr__(self) -> str:
        return f"BDict({self._items!r})"

    def replace(self, key: bytes, value: Any) -> 'BDict':
        """Return a copy with ``key`` set to ``value``."""
        data = dict(self._items)
        data[_check_key(key)] = value
        return BDict(data)

    def remove(self, key: bytes) -> 'BDict':
        """Return a copy without ``key``. Raises KeyError if it is absent."""
        data = dict(self._items)
        del data[key]
        return BDict._from_sorted(data)


def is_value(obj: Any) -> bool:
    """Check that ``obj`` is a well-formed value tree."""
    if isinstance(obj, bool):
        return False
    if isinstance(obj, int):
        return INT64_MIN <= obj <= INT64_MAX
    if isinstance(obj, (bytes, bytearray)):
        return True
    if isinstance(obj, list):
        return all(is_value(item) for item in obj)
    if isinstance(obj, Mapping):
        return all(isinstance(k, bytes) and is_value(v) for k, v in obj.items())
    return False


def to_jsonable(value: Value) -> Any:
    """
    Convert a value tree into data that ``json.dumps`` accepts.

    Byte strings become text when they are valid UTF-8 and ``{"hex": ...}``
    otherwise. Dictionary keys that are not UTF-8 are rendered as hex.
    """
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode('utf-8')
        except UnicodeDecodeError:
            return {'hex': bytes(value).hex()}
    if isinstance(value, list):
        return [to_jsonable(item) for item in value]
    if isinstance(value, Mapping):
        result = {}
        for key, item in value.items():
            try:
                name = bytes(key).decode('utf-8')
            except UnicodeDecodeError:
                name = bytes(key).hex()
            result[name] = to_jsonable(item)
        return result
    return value
