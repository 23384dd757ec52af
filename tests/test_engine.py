import io
import random
import re

import pytest

from ctphash.engine import (
    TOTAL_SIZE_MAX,
    DigestFlags,
    FuzzyState,
    block_size,
    hash_buf,
    hash_file,
    hash_filename,
    hash_stream,
)
from ctphash.primitives import SPAMSUM_LENGTH

SIG_RE = re.compile(r"^(\d+):([A-Za-z0-9+/]*):([A-Za-z0-9+/]*)$")


def _data(n, seed=1):
    return random.Random(seed).randbytes(n)


def _text_data(n, seed=2):
    rng = random.Random(seed)
    words = [b"alpha", b"beta", b"gamma", b"delta", b"epsilon", b"zeta", b"eta"]
    out = bytearray()
    while len(out) < n:
        out += rng.choice(words) + b" "
    return bytes(out[:n])


def _parse(sig):
    m = SIG_RE.match(sig)
    assert m is not None, sig
    return int(m.group(1)), m.group(2), m.group(3)


def test_empty_input_digest():
    assert hash_buf(b"") == "3::"
    assert FuzzyState().digest() == "3::"


def test_block_size_values():
    assert block_size(0) == 3
    assert block_size(1) == 6
    assert TOTAL_SIZE_MAX == block_size(30) * 64


@pytest.mark.parametrize("size", [10, 100, 1000, 5000, 20000])
def test_signature_format(size):
    bs, first, second = _parse(hash_buf(_data(size)))
    assert bs % 3 == 0
    assert (bs // 3) & (bs // 3 - 1) == 0
    assert len(first) <= SPAMSUM_LENGTH
    assert len(second) <= SPAMSUM_LENGTH // 2


def test_short_input_uses_smallest_block_size():
    bs, _, _ = _parse(hash_buf(_data(150)))
    assert bs == 3


@pytest.mark.parametrize("size", [1000, 20000])
def test_block_size_not_above_initial_guess(size):
    bs, _, _ = _parse(hash_buf(_data(size)))
    assert bs * SPAMSUM_LENGTH // 2 < size or bs == 3
    assert bs <= max(3, 2 * size // SPAMSUM_LENGTH + 3)


def test_chunked_update_matches_single_update():
    data = _text_data(8000)
    whole = FuzzyState()
    whole.update(data)
    chunked = FuzzyState()
    for start in range(0, len(data), 333):
        chunked.update(data[start:start + 333])
    assert chunked.digest() == whole.digest()


def test_fixed_length_does_not_change_result():
    data = _data(12000, seed=7)
    state = FuzzyState()
    state.update(data)
    assert hash_buf(data) == state.digest()


def test_stream_file_and_buffer_agree(tmp_path):
    data = _text_data(9000)
    path = tmp_path / "sample.bin"
    path.write_bytes(data)
    expected = hash_buf(data)
    assert hash_stream(io.BytesIO(data)) == expected
    assert hash_file(io.BytesIO(data)) == expected
    assert hash_filename(path) == expected
    assert hash_filename(str(path)) == expected


def test_hash_stream_starts_at_current_position():
    data = _data(3000, seed=3)
    handle = io.BytesIO(data)
    handle.seek(1000)
    assert hash_stream(handle) == hash_buf(data[1000:])


def test_hash_file_restores_position_and_hashes_whole_file():
    data = _data(3000, seed=4)
    handle = io.BytesIO(data)
    handle.seek(1234)
    assert hash_file(handle) == hash_buf(data)
    assert handle.tell() == 1234


def test_hash_filename_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        hash_filename(tmp_path / "absent.bin")


def test_digest_does_not_change_state():
    state = FuzzyState()
    state.update(_text_data(4000))
    first = state.digest()
    assert state.digest() == first
    assert state.digest(DigestFlags.NOTRUNC) == state.digest(DigestFlags.NOTRUNC)


def test_copy_is_independent():
    data = _text_data(4000)
    state = FuzzyState()
    state.update(data)
    before = state.digest()
    clone = state.copy()
    assert clone.digest() == before
    clone.update(b"more data appended to the clone only" * 20)
    assert state.digest() == before
    assert clone.digest() == hash_buf(data + b"more data appended to the clone only" * 20)


def test_set_total_input_length_overflow():
    state = FuzzyState()
    with pytest.raises(OverflowError):
        state.set_total_input_length(TOTAL_SIZE_MAX + 1)


def test_set_total_input_length_conflict():
    state = FuzzyState()
    state.set_total_input_length(100)
    state.set_total_input_length(100)
    with pytest.raises(ValueError):
        state.set_total_input_length(101)


def test_digest_rejects_length_mismatch():
    state = FuzzyState()
    state.set_total_input_length(500)
    state.update(_data(400))
    with pytest.raises(ValueError):
        state.digest()
    state.update(_data(100))
    assert SIG_RE.match(state.digest())


def test_notrunc_second_part_not_shorter():
    state = FuzzyState()
    state.update(_text_data(20000, seed=9))
    bs_a, first_a, second_a = _parse(state.digest())
    bs_b, first_b, second_b = _parse(state.digest(DigestFlags.NOTRUNC))
    assert bs_a == bs_b
    assert first_a == first_b
    assert len(second_b) >= len(second_a)
    assert second_b[:len(second_a) - 1] == second_a[:-1]


@pytest.mark.parametrize("data", [bytes(6000), b"ab" * 4000, _text_data(6000)])
def test_elimseq_has_no_long_runs(data):
    state = FuzzyState()
    state.update(data)
    bs_plain, _, _ = _parse(state.digest())
    bs, first, second = _parse(state.digest(DigestFlags.ELIMSEQ))
    assert bs == bs_plain
    for part in (first, second):
        assert not re.search(r"(.)\1\1\1", part)


def test_similar_inputs_share_block_size():
    data = _text_data(10000, seed=5)
    changed = bytearray(data)
    changed[5000:5010] = b"XXXXXXXXXX"
    assert _parse(hash_buf(data))[0] == _parse(hash_buf(bytes(changed)))[0]


def test_update_accepts_memoryview():
    data = _data(2000, seed=6)
    state = FuzzyState()
    state.update(memoryview(data))
    assert state.digest() == hash_buf(data)