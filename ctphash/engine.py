"""Context-triggered piecewise hashing: the streaming digest engine."""

from __future__ import annotations

import copy as _copy
import io
import os
from dataclasses import dataclass, field
from enum import IntFlag
from typing import BinaryIO

from .primitives import (
    B64,
    HASH_INIT,
    MIN_BLOCKSIZE,
    SPAMSUM_LENGTH,
    RollingHash,
    sum_hash,
)

NUM_BLOCKHASHES = 31
FUZZY_MAX_RESULT = 2 * SPAMSUM_LENGTH + 20
_MASK32 = 0xFFFFFFFF
_READ_SIZE = 4096


def block_size(index: int) -> int:
    """Return the block size that belongs to block hash ``index``."""
    return MIN_BLOCKSIZE << index


TOTAL_SIZE_MAX = block_size(NUM_BLOCKHASHES - 1) * SPAMSUM_LENGTH


class DigestFlags(IntFlag):
    """Options for :meth:`FuzzyState.digest`."""

    NONE = 0
    ELIMSEQ = 0x1  # drop runs of more than three identical characters
    NOTRUNC = 0x2  # do not truncate the second part to half length


@dataclass
class _BlockHash:
    """Signature state for one implicit block size."""

    h: int = HASH_INIT
    halfh: int = HASH_INIT
    digest: list[str] = field(default_factory=list)
    tail: str = ""
    halfdigest: str = ""

    @property
    def dindex(self) -> int:
        return len(self.digest)


def _eliminate_runs(chars: list[str]) -> str:
    """Copy ``chars`` but skip any character that would make a run of four."""
    out: list[str] = []
    for ch in chars:
        if len(out) >= 3 and out[-1] == ch and out[-2] == ch and out[-3] == ch:
            continue
        out.append(ch)
    return "".join(out)


def _append_tail(part: str, ch: str, elimseq: bool) -> str:
    if elimseq and len(part) >= 3 and part[-3:] == ch * 3:
        return part
    return part + ch


class FuzzyState:
    """Incremental fuzzy hash state fed with :meth:`update`."""

    def __init__(self) -> None:
        self.total_size = 0
        self.fixed_size: int | None = None
        self._reduce_border = MIN_BLOCKSIZE * SPAMSUM_LENGTH
        self._bhstart = 0
        self._bhendlimit = NUM_BLOCKHASHES - 1
        self._rollmask = 0
        self._bh: list[_BlockHash] = [_BlockHash()]
        self._roll = RollingHash()
        self._lasth: int | None = None

    @property
    def _bhend(self) -> int:
        return len(self._bh)

    def copy(self) -> FuzzyState:
        """Return an independent copy of this state."""
        return _copy.deepcopy(self)

    def set_total_input_length(self, total_fixed_length: int) -> None:
        """Declare the total input size in advance to narrow the block sizes tried.

        Raises ``OverflowError`` if the size is too large and ``ValueError``
        if a different size was declared before.
        """
        if total_fixed_length < 0:
            raise ValueError("input length must not be negative")
        if total_fixed_length > TOTAL_SIZE_MAX:
            raise OverflowError("input length exceeds the supported maximum")
        if self.fixed_size is not None and self.fixed_size != total_fixed_length:
            raise ValueError("a different total input length was already set")
        self.fixed_size = total_fixed_length
        bi = 0
        while block_size(bi) * SPAMSUM_LENGTH < total_fixed_length:
            bi += 1
            if bi == NUM_BLOCKHASHES - 2:
                break
        self._bhendlimit = bi + 1

    def _try_fork_blockhash(self) -> None:
        last = self._bh[-1]
        if self._bhend <= self._bhendlimit:
            self._bh.append(_BlockHash(h=last.h, halfh=last.halfh))
        elif self._bhend == NUM_BLOCKHASHES and self._lasth is None:
            self._lasth = last.h

    def _try_reduce_blockhash(self) -> None:
        if self._bhend - self._bhstart < 2:
            return
        size = self.fixed_size if self.fixed_size is not None else self.total_size
        if self._reduce_border >= size:
            return
        if self._bh[self._bhstart + 1].dindex < SPAMSUM_LENGTH // 2:
            return
        self._bhstart += 1
        self._reduce_border *= 2
        self._rollmask = self._rollmask * 2 + 1

    def _step(self, c: int) -> None:
        self._roll.update(c)
        horg = (self._roll.sum() + 1) & _MASK32
        h = horg // MIN_BLOCKSIZE

        for bh in self._bh[self._bhstart:]:
            bh.h = sum_hash(c, bh.h)
            bh.halfh = sum_hash(c, bh.halfh)
        if self._lasth is not None:
            self._lasth = sum_hash(c, self._lasth)

        if not horg or h & self._rollmask or horg % MIN_BLOCKSIZE:
            return
        h >>= self._bhstart

        i = self._bhstart
        while True:
            bh = self._bh[i]
            if bh.dindex == 0:
                self._try_fork_blockhash()
            char = B64[bh.h]
            bh.halfdigest = B64[bh.halfh]
            if bh.dindex < SPAMSUM_LENGTH - 1:
                bh.digest.append(char)
                bh.tail = ""
                bh.h = HASH_INIT
                if bh.dindex < SPAMSUM_LENGTH // 2:
                    bh.halfh = HASH_INIT
                    bh.halfdigest = ""
            else:
                bh.tail = char
                self._try_reduce_blockhash()
            if h & 1:
                break
            h >>= 1
            i += 1
            if i >= self._bhend:
                break

    def update(self, data: bytes | bytearray | memoryview) -> None:
        """Feed more input bytes."""
        if not isinstance(data, (bytes, bytearray)):
            data = bytes(data)
        size = len(data)
        if size > TOTAL_SIZE_MAX or TOTAL_SIZE_MAX - size < self.total_size:
            self.total_size = TOTAL_SIZE_MAX + 1
        else:
            self.total_size += size
        for c in data:
            self._step(c)

    def digest(self, flags: DigestFlags | int = DigestFlags.NONE) -> str:
        """Return the signature of all input so far without changing the state.

        Raises ``OverflowError`` if too much input was fed and ``ValueError``
        if the declared total length does not match the input.
        """
        flags = DigestFlags(flags)
        elimseq = bool(flags & DigestFlags.ELIMSEQ)
        notrunc = bool(flags & DigestFlags.NOTRUNC)

        if self.total_size > TOTAL_SIZE_MAX:
            raise OverflowError("input exceeds the supported maximum length")
        if self.fixed_size is not None and self.fixed_size != self.total_size:
            raise ValueError("input length differs from the declared total length")

        h = self._roll.sum()
        bi = self._bhstart
        while block_size(bi) * SPAMSUM_LENGTH < self.total_size:
            bi += 1
        if bi >= self._bhend:
            bi = self._bhend - 1
        while bi > self._bhstart and self._bh[bi].dindex < SPAMSUM_LENGTH // 2:
            bi -= 1

        bh = self._bh[bi]
        first = _eliminate_runs(bh.digest) if elimseq else "".join(bh.digest)
        if h != 0:
            first = _append_tail(first, B64[bh.h], elimseq)
        elif bh.tail:
            first = _append_tail(first, bh.tail, elimseq)

        second = ""
        if bi < self._bhend - 1:
            nbh = self._bh[bi + 1]
            length = nbh.dindex
            if not notrunc and length > SPAMSUM_LENGTH // 2 - 1:
                length = SPAMSUM_LENGTH // 2 - 1
            chars = nbh.digest[:length]
            second = _eliminate_runs(chars) if elimseq else "".join(chars)
            if h != 0:
                value = nbh.h if notrunc else nbh.halfh
                second = _append_tail(second, B64[value], elimseq)
            else:
                ch = nbh.tail if notrunc else nbh.halfdigest
                if ch:
                    second = _append_tail(second, ch, elimseq)
        elif h != 0:
            if bi == 0:
                second = B64[bh.h]
            else:
                assert self._lasth is not None
                second = B64[self._lasth]

        return f"{block_size(bi)}:{first}:{second}"


def _update_from_stream(state: FuzzyState, handle: BinaryIO) -> None:
    for chunk in iter(lambda: handle.read(_READ_SIZE), b""):
        state.update(chunk)


def hash_buf(data: bytes | bytearray | memoryview) -> str:
    """Return the fuzzy hash of a buffer."""
    if not isinstance(data, (bytes, bytearray)):
        data = bytes(data)
    state = FuzzyState()
    state.set_total_input_length(len(data))
    state.update(data)
    return state.digest()


def hash_stream(handle: BinaryIO) -> str:
    """Return the fuzzy hash of a stream read from its current position to the end."""
    state = FuzzyState()
    _update_from_stream(state, handle)
    return state.digest()


def hash_file(handle: BinaryIO) -> str:
    """Return the fuzzy hash of a seekable file from its start.

    The file position is restored afterwards.
    """
    position = handle.tell()
    end = handle.seek(0, io.SEEK_END)
    handle.seek(0, io.SEEK_SET)
    state = FuzzyState()
    state.set_total_input_length(end)
    _update_from_stream(state, handle)
    result = state.digest()
    handle.seek(position, io.SEEK_SET)
    return result


def hash_filename(filename: str | os.PathLike) -> str:
    """Return the fuzzy hash of the file at ``filename``."""
    with open(filename, "rb") as handle:
        return hash_stream(handle)