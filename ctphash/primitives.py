"""Rolling hash and partial FNV hash used by the piecewise fuzzy hash."""

ROLLING_WINDOW = 7
MIN_BLOCKSIZE = 3
SPAMSUM_LENGTH = 64
HASH_INIT = 0x27
B64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"

_FNV_PRIME = 0x01000193
_MASK32 = 0xFFFFFFFF

# Partial FNV hash restricted to six bits: row h, column c.
SUM_TABLE: tuple[tuple[int, ...], ...] = tuple(
    tuple(((h * _FNV_PRIME) ^ c) & 0x3F for c in range(64)) for h in range(64)
)


def sum_hash(c: int, h: int) -> int:
    """Fold byte ``c`` into the six-bit hash ``h``."""
    return SUM_TABLE[h][c & 0x3F]


class RollingHash:
    """Adler-style rolling hash over the last ``ROLLING_WINDOW`` bytes."""

    def __init__(self) -> None:
        self.window = [0] * ROLLING_WINDOW
        self.h1 = 0
        self.h2 = 0
        self.h3 = 0
        self.n = 0

    def update(self, c: int) -> None:
        """Push one byte into the window."""
        if not 0 <= c <= 0xFF:
            raise ValueError(f"byte value out of range: {c}")
        self.h2 = (self.h2 - self.h1 + ROLLING_WINDOW * c) & _MASK32
        self.h1 = (self.h1 + c - self.window[self.n]) & _MASK32
        self.window[self.n] = c
        self.n = (self.n + 1) % ROLLING_WINDOW
        self.h3 = ((self.h3 << 5) ^ c) & _MASK32

    def sum(self) -> int:
        """Return the current 32-bit hash value."""
        return (self.h1 + self.h2 + self.h3) & _MASK32