import json
from collections.abc import Mapping

import pytest

from spate import BDict, BencodeEncodeError, bencode, is_value, to_jsonable


def test_bdict_sorts_keys():
    value = BDict({b'spam': 1, b'cow': 2, b'\x00': 3})
    assert list(value) == [b'\x00', b'cow', b'spam']
    assert list(value.items()) == [(b'\x00', 3), (b'cow', 2), (b'spam', 1)]


def test_bdict_from_pairs_keeps_last_duplicate():
    value = BDict([(b'a', 1), (b'b', 2), (b'a', 3)])
    assert value == {b'a': 3, b'b': 2}
    assert len(value) == 2


def test_bdict_rejects_non_bytes_keys():
    with pytest.raises(TypeError):
        BDict({'text': 1})
    with pytest.raises(TypeError):
        BDict([(1, b'x')])


def test_bdict_is_immutable():
    value = BDict({b'a': 1})
    with pytest.raises(TypeError):
        value[b'b'] = 2
    with pytest.raises(TypeError):
        del value[b'a']


def test_bdict_replace_and_remove():
    value = BDict({b'b': 1})
    updated = value.replace(b'a', 2)
    assert list(updated) == [b'a', b'b']
    assert value == {b'b': 1}

    removed = updated.remove(b'b')
    assert removed == {b'a': 2}
    with pytest.raises(KeyError):
        removed.remove(b'missing')


def test_bdict_equality():
    assert BDict({b'a': [1, b'x']}) == {b'a': [1, b'x']}
    assert BDict({b'a': 1}) != BDict({b'a': 2})
    assert BDict() == BDict({})


@pytest.mark.parametrize('value', [
    b'spam', 0, -5, [], [b'a', [1, 2]], BDict({b'a': 1}), {b'a': [BDict()]},
])
def test_is_value(value):
    assert is_value(value)


@pytest.mark.parametrize('value', [
    'spam', True, 1.0, None, 2 ** 64, [b'a', 'b'], {'a': 1}, (1,),
])
def test_is_not_value(value):
    assert not is_value(value)


class PairMapping(Mapping):
    """A read-only mapping over a list of pairs, so keys need not be hashable."""

    def __init__(self, pairs):
        self._pairs = pairs

    def __getitem__(self, key):
        for k, v in self._pairs:
            if k == key:
                return v
        raise KeyError(key)

    def __iter__(self):
        return (k for k, _ in self._pairs)

    def __len__(self):
        return len(self._pairs)


def test_bytearray_key_is_not_a_value():
    value = PairMapping([(bytearray(b'a'), 1)])
    assert not is_value(value)
    with pytest.raises(BencodeEncodeError):
        bencode(value)


def test_custom_mapping_with_bytes_keys():
    value = PairMapping([(b'b', 2), (b'a', 1)])
    assert is_value(value)
    assert bencode(value) == b'd1:ai1e1:bi2ee'


def test_to_jsonable():
    value = BDict({
        b'name': b'caf\xc3\xa9',
        b'pieces': b'\xff\x00',
        b'list': [1, b'x'],
        b'\xfe': 0,
    })
    rendered = to_jsonable(value)
    assert rendered == {
        'name': 'café',
        'pieces': {'hex': 'ff00'},
        'list': [1, 'x'],
        'fe': 0,
    }
    json.dumps(rendered)
