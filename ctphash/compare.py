"""Similarity scoring between two fuzzy hash signatures."""

from __future__ import annotations

import re

from .edit_distance import edit_distn
from .primitives import MIN_BLOCKSIZE, ROLLING_WINDOW, SPAMSUM_LENGTH

ULONG_MAX = 2**64 - 1
_BLOCK_SIZE_RE = re.compile(r"\s*([+-]?)(\d+)")
# Block sizes at or above this need no small-input correction.
_NO_CAP_BLOCK_SIZE = (99 + ROLLING_WINDOW) // ROLLING_WINDOW * MIN_BLOCKSIZE


def eliminate_sequences(text: str) -> str:
    """Return ``text`` with every run of identical characters cut to three."""
    out: list[str] = []
    for ch in text:
        if len(out) >= 3 and out[-1] == ch and out[-2] == ch and out[-3] == ch:
            continue
        out.append(ch)
    return "".join(out)


def has_common_substring(s1: str, s2: str) -> bool:
    """Return True if both strings share a substring of ``ROLLING_WINDOW`` characters."""
    if len(s1) < ROLLING_WINDOW or len(s2) < ROLLING_WINDOW:
        return False
    windows = {
        s1[i:i + ROLLING_WINDOW] for i in range(len(s1) - ROLLING_WINDOW + 1)
    }
    return any(
        s2[j:j + ROLLING_WINDOW] in windows
        for j in range(len(s2) - ROLLING_WINDOW + 1)
    )


def score_strings(s1: str, s2: str, block_size: int) -> int:
    """Score two digest parts from 0 (no match) to 100 (excellent match)."""
    if len(s1) < ROLLING_WINDOW or len(s2) < ROLLING_WINDOW:
        return 0
    if not has_common_substring(s1, s2):
        return 0
    score = edit_distn(s1, s2)
    score = score * SPAMSUM_LENGTH // (len(s1) + len(s2))
    score = 100 * score // SPAMSUM_LENGTH
    score = 100 - score
    if block_size >= _NO_CAP_BLOCK_SIZE:
        return score
    cap = block_size // MIN_BLOCKSIZE * min(len(s1), len(s2))
    return min(score, cap)


def _parse_block_size(sig: str) -> int:
    match = _BLOCK_SIZE_RE.match(sig)
    if match is None:
        raise ValueError(f"signature has no block size: {sig!r}")
    sign, digits = match.groups()
    value = int(digits)
    if value > ULONG_MAX:
        return ULONG_MAX
    if sign == "-":
        return (-value) & ULONG_MAX
    return value


def _parse_parts(sig: str) -> tuple[str, str]:
    _, colon, rest = sig.partition(":")
    if not colon:
        raise ValueError(f"signature has no ':' after the block size: {sig!r}")
    first, sep, remainder = rest.partition(":")
    first = eliminate_sequences(first)
    if len(first) > SPAMSUM_LENGTH:
        raise ValueError("first digest part is too long")
    if not sep:
        raise ValueError(f"signature does not have two parts: {sig!r}")
    second = eliminate_sequences(remainder.split(",", 1)[0])
    if len(second) > SPAMSUM_LENGTH:
        raise ValueError("second digest part is too long")
    return first, second


def compare(sig1: str, sig2: str) -> int:
    """Return the match score (0-100) of two fuzzy hash signatures.

    Signatures whose block sizes cannot be compared score 0. Raises
    ``ValueError`` for a missing or malformed signature.
    """
    if sig1 is None or sig2 is None:
        raise ValueError("both signatures are required")
    sig1 = sig1.split("\0", 1)[0]
    sig2 = sig2.split("\0", 1)[0]

    block_size1 = _parse_block_size(sig1)
    block_size2 = _parse_block_size(sig2)

    if (
        block_size1 != block_size2
        and (block_size1 > ULONG_MAX // 2 or block_size1 * 2 != block_size2)
        and (block_size1 % 2 == 1 or block_size1 // 2 != block_size2)
    ):
        return 0

    s1b1, s1b2 = _parse_parts(sig1)
    s2b1, s2b2 = _parse_parts(sig2)

    if block_size1 == block_size2 and s1b1 == s2b1 and s1b2 == s2b2:
        return 100

    if block_size1 <= ULONG_MAX // 2:
        if block_size1 == block_size2:
            return max(
                score_strings(s1b1, s2b1, block_size1),
                score_strings(s1b2, s2b2, block_size1 * 2),
            )
        if block_size1 * 2 == block_size2:
            return score_strings(s2b1, s1b2, block_size2)
        return score_strings(s1b1, s2b2, block_size1)

    if block_size1 == block_size2:
        return score_strings(s1b1, s2b1, block_size1)
    if block_size1 % 2 == 0 and block_size1 // 2 == block_size2:
        return score_strings(s1b1, s2b2, block_size1)
    return 0