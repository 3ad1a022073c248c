import hashlib

import pytest

from spate import BDict, bencode

PIECES = hashlib.sha1(b'piece 0').digest() + hashlib.sha1(b'piece 1').digest()


def single_file_metainfo():
    info = BDict({
        b'name': b'ubuntu.iso',
        b'piece length': 262144,
        b'pieces': PIECES,
        b'length': 400000,
    })
    return BDict({
        b'announce': b'http://tracker.example.com/announce',
        b'creation date': 1700000000,
        b'comment': b'test torrent',
        b'info': info,
    })


def multi_file_metainfo():
    info = BDict({
        b'name': b'album',
        b'piece length': 16384,
        b'pieces': PIECES,
        b'private': 1,
        b'files': [
            BDict({b'length': 100, b'path': [b'cd1', b'track01.flac']}),
            BDict({b'length': 250, b'path': [b'cover.jpg'], b'md5sum': b'0' * 32}),
        ],
    })
    return BDict({
        b'announce-list': [[b'udp://a.example:80'], [b'http://b.example/announce']],
        b'created by': b'spate 0.1',
        b'info': info,
    })


@pytest.fixture
def torrent_bytes():
    return bencode(single_file_metainfo())


@pytest.fixture
def multi_torrent_bytes():
    return bencode(multi_file_metainfo())
