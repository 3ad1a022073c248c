"""
Module for handling .torrent files and their metadata.

The codec knows nothing about torrent keys; this module looks them up in a
decoded value tree (BEP 3, with the BEP 12 ``announce-list`` and BEP 19
``url-list`` extensions) and reports anything missing or malformed as a
:class:`MetainfoError`.
"""
import hashlib
import io
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type, Union

from .bencode import bdecode, bencode, decode
from .errors import BencodeDecodeError
from .value import BDict, Value

logger = logging.getLogger(__name__)

PIECE_HASH_LENGTH = 20


class MetainfoError(ValueError):
    """Exception raised for a missing or malformed metainfo field."""
    pass


@dataclass
class FileInfo:
    """Represents a file within a multi-file torrent."""
    path: List[str]
    length: int
    md5sum: Optional[str] = None


@dataclass
class TorrentInfo:
    """Represents the 'info' dictionary in a .torrent file."""
    name: str
    piece_length: int
    pieces: List[bytes]  # List of 20-byte SHA-1 hashes
    private: bool = False
    files: Optional[List[FileInfo]] = None  # For multi-file torrents
    length: Optional[int] = None  # For single-file torrents
    md5sum: Optional[str] = None  # For single-file torrents


_KIND_NAMES = {bytes: 'a byte string', int: 'an integer', list: 'a list', Mapping: 'a dictionary'}


def _field(container: Mapping, key: bytes, kind: Type, where: str,
           required: bool = True) -> Any:
    """Look up ``key`` and check its variant."""
    if key not in container:
        if required:
            raise MetainfoError(f"Missing '{key.decode()}' in {where}")
        return None
    value = container[key]
    if not isinstance(value, kind) or isinstance(value, bool):
        raise MetainfoError(f"'{key.decode()}' in {where} must be {_KIND_NAMES[kind]}")
    return value


def _text(value: bytes, what: str) -> str:
    try:
        return value.decode('utf-8')
    except UnicodeDecodeError as e:
        raise MetainfoError(f"{what} is not valid UTF-8") from e


def _text_field(container: Mapping, key: bytes, where: str,
                required: bool = True) -> Optional[str]:
    value = _field(container, key, bytes, where, required)
    return None if value is None else _text(value, f"'{key.decode()}' in {where}")


def _positive(value: int, what: str) -> int:
    if value <= 0:
        raise MetainfoError(f"{what} must be positive, got {value}")
    return value


def _non_negative(value: int, what: str) -> int:
    if value < 0:
        raise MetainfoError(f"{what} must not be negative, got {value}")
    return value


def find_info_bytes(data: bytes, *, max_depth: Optional[int] = None) -> Optional[bytes]:
    """
    Return the 'info' value of a metainfo file exactly as it appears in ``data``.

    The info hash is defined over these bytes, which differ from the
    re-encoded dictionary when the file was decoded leniently. Returns None
    when the top level is not a dictionary or has no 'info' key.
    """
    data = bytes(data)
    if data[:1] != b'd':
        return None
    stream = io.BytesIO(data)
    stream.seek(1)
    while data[stream.tell():stream.tell() + 1] not in (b'e', b''):
        key = decode(stream, strict=False, max_depth=max_depth)
        start = stream.tell()
        decode(stream, strict=False, max_depth=max_depth)
        if key == b'info':
            return data[start:stream.tell()]
    return None


class Torrent:
    """Represents a .torrent file and its metadata."""

    def __init__(self, value: Value, info_bytes: Optional[bytes] = None):
        """
        Initialize a Torrent object from a decoded metainfo value.

        Args:
            value: The decoded top-level dictionary
            info_bytes: The raw bytes of the 'info' value as read from the
                file. Without them the info hash is taken over the canonical
                encoding, which is only correct for canonical input.

        Raises:
            MetainfoError: A required field is missing or has the wrong type
        """
        if not isinstance(value, Mapping):
            raise MetainfoError("Metainfo must be a dictionary")
        self.raw = value
        self.announce: Optional[str] = None
        self.announce_list: List[List[str]] = []
        self.url_list: List[str] = []
        self.creation_date: Optional[int] = None
        self.comment: Optional[str] = None
        self.created_by: Optional[str] = None
        self.encoding: Optional[str] = None

        self._parse_common(value)

        info = _field(value, b'info', Mapping, 'metainfo')
        if info_bytes is None:
            info_bytes = bencode(info)
        self.info_hash: bytes = hashlib.sha1(info_bytes).digest()
        self.info: TorrentInfo = self._parse_info(info)

        logger.info("Loaded torrent %s (%s)", self.info.name, self.info_hash.hex())

    @classmethod
    def from_bytes(cls, data: bytes, *, strict: Optional[bool] = None) -> 'Torrent':
        """Decode and parse the contents of a .torrent file."""
        try:
            value = bdecode(data, strict=strict)
        except BencodeDecodeError as e:
            raise MetainfoError(f"Invalid .torrent file: {e}") from e
        return cls(value, find_info_bytes(data))

    @classmethod
    def from_file(cls, torrent_path: Union[str, os.PathLike], *,
                  strict: Optional[bool] = None) -> 'Torrent':
        """Load and parse a .torrent file from disk."""
        with open(torrent_path, 'rb') as f:
            data = f.read()
        return cls.from_bytes(data, strict=strict)

    def _parse_common(self, value: Mapping) -> None:
        """Parse the fields outside the 'info' dictionary."""
        where = 'metainfo'
        self.announce = _text_field(value, b'announce', where, required=False)

        # Handle announce-list (BEP-0012)
        tiers = _field(value, b'announce-list', list, where, required=False) or []
        for tier in tiers:
            if not isinstance(tier, list):
                raise MetainfoError("'announce-list' tiers must be lists")
            urls = []
            for url in tier:
                if not isinstance(url, bytes):
                    raise MetainfoError("'announce-list' entries must be byte strings")
                urls.append(_text(url, "'announce-list' entry"))
            if urls:
                self.announce_list.append(urls)

        # url-list (BEP-0019) is either a single URL or a list of them
        if b'url-list' in value:
            seeds = value[b'url-list']
            if isinstance(seeds, bytes):
                seeds = [seeds] if seeds else []
            if not isinstance(seeds, list) or not all(isinstance(s, bytes) for s in seeds):
                raise MetainfoError("'url-list' must be a byte string or a list of them")
            self.url_list = [_text(s, "'url-list' entry") for s in seeds]

        self.creation_date = _field(value, b'creation date', int, where, required=False)
        self.comment = _text_field(value, b'comment', where, required=False)
        self.created_by = _text_field(value, b'created by', where, required=False)
        self.encoding = _text_field(value, b'encoding', where, required=False)

    def _parse_info(self, info: Mapping) -> TorrentInfo:
        """Parse the 'info' dictionary from the .torrent file."""
        where = "'info'"
        name = _text_field(info, b'name', where)
        piece_length = _positive(_field(info, b'piece length', int, where), "'piece length'")

        pieces = _field(info, b'pieces', bytes, where)
        if len(pieces) % PIECE_HASH_LENGTH != 0:
            raise MetainfoError(
                f"'pieces' length {len(pieces)} is not a multiple of {PIECE_HASH_LENGTH}")
        hashes = [pieces[i:i + PIECE_HASH_LENGTH]
                  for i in range(0, len(pieces), PIECE_HASH_LENGTH)]

        private = _field(info, b'private', int, where, required=False) == 1

        # Handle single-file vs multi-file
        has_files = b'files' in info
        if has_files == (b'length' in info):
            raise MetainfoError("'info' must contain exactly one of 'length' and 'files'")

        if has_files:
            files = [self._parse_file(entry, index)
                     for index, entry in enumerate(_field(info, b'files', list, where))]
            return TorrentInfo(
                name=name,
                piece_length=piece_length,
                pieces=hashes,
                private=private,
                files=files,
            )

        return TorrentInfo(
            name=name,
            piece_length=piece_length,
            pieces=hashes,
            private=private,
            length=_non_negative(_field(info, b'length', int, where), "'length'"),
            md5sum=_text_field(info, b'md5sum', where, required=False),
        )

    @staticmethod
    def _parse_file(entry: Any, index: int) -> FileInfo:
        where = f"'files' entry {index}"
        if not isinstance(entry, Mapping):
            raise MetainfoError(f"{where} must be a dictionary")
        length = _non_negative(_field(entry, b'length', int, where), f"{where} length")
        parts = _field(entry, b'path', list, where)
        if not parts or not all(isinstance(p, bytes) for p in parts):
            raise MetainfoError(f"'path' in {where} must be a non-empty list of byte strings")
        return FileInfo(
            path=[_text(p, f"'path' in {where}") for p in parts],
            length=length,
            md5sum=_text_field(entry, b'md5sum', where, required=False),
        )

    def to_value(self) -> BDict:
        """
        Build a metainfo dictionary from the parsed fields.

        Keys this class does not model are not carried over, so the info hash
        of the result can differ from ``info_hash`` when the source had them.
        """
        info: Dict[bytes, Value] = {
            b'name': self.info.name.encode('utf-8'),
            b'piece length': self.info.piece_length,
            b'pieces': b''.join(self.info.pieces),
        }
        if self.info.private:
            info[b'private'] = 1
        if self.info.files is not None:
            info[b'files'] = [self._file_value(f) for f in self.info.files]
        else:
            info[b'length'] = self.info.length
            if self.info.md5sum is not None:
                info[b'md5sum'] = self.info.md5sum.encode('utf-8')

        meta: Dict[bytes, Value] = {b'info': BDict(info)}
        if self.announce is not None:
            meta[b'announce'] = self.announce.encode('utf-8')
        if self.announce_list:
            meta[b'announce-list'] = [[url.encode('utf-8') for url in tier]
                                      for tier in self.announce_list]
        if self.url_list:
            meta[b'url-list'] = [url.encode('utf-8') for url in self.url_list]
        if self.creation_date is not None:
            meta[b'creation date'] = self.creation_date
        for key, text in ((b'comment', self.comment), (b'created by', self.created_by),
                          (b'encoding', self.encoding)):
            if text is not None:
                meta[key] = text.encode('utf-8')
        return BDict(meta)

    @staticmethod
    def _file_value(f: FileInfo) -> BDict:
        entry: Dict[bytes, Value] = {
            b'length': f.length,
            b'path': [p.encode('utf-8') for p in f.path],
        }
        if f.md5sum is not None:
            entry[b'md5sum'] = f.md5sum.encode('utf-8')
        return BDict(entry)

    @property
    def trackers(self) -> List[str]:
        """All tracker URLs, announce-list tiers first."""
        urls = [url for tier in self.announce_list for url in tier]
        if self.announce is not None and self.announce not in urls:
            urls.append(self.announce)
        return urls

    def get_total_size(self) -> int:
        """Get the total size of all files in the torrent in bytes."""
        if self.info.files is not None:
            return sum(f.length for f in self.info.files)
        return self.info.length or 0

    def get_file_list(self) -> List[str]:
        """Get a list of all files in the torrent."""
        if self.info.files is not None:
            return [os.path.join(self.info.name, *f.path) for f in self.info.files]
        return [self.info.name]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe summary of the torrent."""
        return {
            'name': self.info.name,
            'info_hash': self.info_hash.hex(),
            'announce': self.announce,
            'announce_list': self.announce_list,
            'url_list': self.url_list,
            'creation_date': self.creation_date,
            'comment': self.comment,
            'created_by': self.created_by,
            'encoding': self.encoding,
            'piece_length': self.info.piece_length,
            'pieces': len(self.info.pieces),
            'private': self.info.private,
            'total_size': self.get_total_size(),
            'files': [
                {'path': '/'.join(f.path), 'length': f.length}
                for f in self.info.files
            ] if self.info.files is not None else [
                {'path': self.info.name, 'length': self.info.length}
            ],
        }

    def __str__(self) -> str:
        """String representation of the torrent."""
        return (f"Torrent: {self.info.name}\n"
                f"Info Hash: {self.info_hash.hex()}\n"
                f"Size: {self.get_total_size() / (1024*1024):.2f} MB\n"
                f"Files: {len(self.get_file_list())}\n"
                f"Pieces: {len(self.info.pieces)}")
