"""Weighted Levenshtein distance used when scoring fuzzy hash digests."""

from collections.abc import Sequence

INSERT_COST = 1
REMOVE_COST = 1
REPLACE_COST = 2


def edit_distn(s1: Sequence, s2: Sequence) -> int:
    """Return the edit distance between two sequences.

    Insertions and removals cost 1, a replacement costs 2. Works on ``str``,
    ``bytes`` or any sequence whose items compare with ``==``.
    """
    previous = [i * REMOVE_COST for i in range(len(s2) + 1)]
    for i1, c1 in enumerate(s1):
        current = [(i1 + 1) * INSERT_COST]
        for i2, c2 in enumerate(s2):
            cost_insert = previous[i2 + 1] + INSERT_COST
            cost_remove = current[i2] + REMOVE_COST
            cost_replace = previous[i2] + (0 if c1 == c2 else REPLACE_COST)
            current.append(min(cost_insert, cost_remove, cost_replace))
        previous = current
    return previous[-1]